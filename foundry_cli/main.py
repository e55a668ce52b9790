#!/usr/bin/env python3
"""
Foundry Tools CLI - Main entry point.

Usage:
    foundry-tools tools                      # List tools and availability
    foundry-tools call NAME '{"k": "v"}'     # Run one tool, print its JSON result
    foundry-tools shell                      # Interactive tool shell
    foundry-tools doctor                     # Check toolchain and configuration
    foundry-tools config                     # Show configuration
    foundry-tools config set KEY VALUE       # Set a config value
    foundry-tools version                    # Show version
"""

import argparse
import json
import logging
import shlex
import sys

from dotenv import load_dotenv

from foundry_cli import __version__
from foundry_cli.config import Colors, apply_config_to_env, color, get_env_path


def _load_environment():
    """Secrets from ~/.foundry-tools/.env first, then config.yaml defaults."""
    env_path = get_env_path()
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)
    apply_config_to_env()


def parse_tool_line(line: str):
    """
    Split a shell line into (tool name, arguments dict).

    Accepts ``name`` alone, ``name {json}`` or ``name key=value ...``.
    """
    name, _, rest = line.strip().partition(" ")
    rest = rest.strip()
    if not rest:
        return name, {}
    if rest.startswith("{"):
        args = json.loads(rest)
        if not isinstance(args, dict):
            raise ValueError("Tool arguments must be a JSON object")
        return name, args
    args = {}
    for token in shlex.split(rest):
        key, sep, value = token.partition("=")
        if not sep:
            raise ValueError(f"Expected key=value, got {token!r}")
        try:
            args[key] = json.loads(value)
        except json.JSONDecodeError:
            args[key] = value
    return name, args


def cmd_tools(args):
    """List tools grouped by toolset."""
    from model_tools import get_available_toolsets

    for name, info in get_available_toolsets().items():
        status = color("✓", Colors.GREEN) if info["available"] else color("✗", Colors.RED)
        print(f"{status} {color(name, Colors.BOLD)}: {info['description']}")
        for tool_name in info["tools"]:
            print(f"    {tool_name}")
        if not info["available"]:
            print(color(f"    requires: {', '.join(info['requirements'])}", Colors.DIM))


def cmd_call(args):
    """Run a single tool and print its result."""
    from foundry_tools.anvil_tool import install_signal_handlers
    from model_tools import handle_function_call

    try:
        function_args = json.loads(args.arguments) if args.arguments else {}
    except json.JSONDecodeError as e:
        print(f"✗ Invalid JSON arguments: {e}")
        sys.exit(2)
    if not isinstance(function_args, dict):
        print("✗ Tool arguments must be a JSON object")
        sys.exit(2)

    install_signal_handlers()
    print(handle_function_call(args.name, function_args))


def cmd_shell(args):
    """Interactive loop; anvil started here lives until the shell exits."""
    from foundry_tools.anvil_tool import cleanup_anvil, install_signal_handlers
    from model_tools import get_all_tool_names, handle_function_call

    install_signal_handlers()

    print(color(f"Foundry Tools v{__version__}", Colors.CYAN, Colors.BOLD))
    print(color("Enter: <tool> {json args} | <tool> key=value ... | tools | exit", Colors.DIM))

    try:
        while True:
            try:
                line = input(color("foundry> ", Colors.CYAN))
            except EOFError:
                print()
                break

            line = line.strip()
            if not line:
                continue
            if line in ("exit", "quit"):
                break
            if line == "tools":
                print("  " + "\n  ".join(get_all_tool_names()))
                continue

            try:
                name, function_args = parse_tool_line(line)
            except ValueError as e:
                print(color(f"✗ {e}", Colors.RED))
                continue

            print(handle_function_call(name, function_args))
    finally:
        cleanup_anvil()


def cmd_doctor(args):
    """Check configuration and dependencies."""
    from foundry_cli.doctor import run_doctor
    issues = run_doctor(args)
    if issues:
        sys.exit(1)


def cmd_config(args):
    """Configuration management."""
    from foundry_cli.config import config_command
    config_command(args)


def cmd_version(args):
    """Show version."""
    print(f"Foundry Tools v{__version__}")
    print(f"Python: {sys.version.split()[0]}")

    try:
        import aiohttp
        print(f"aiohttp: {aiohttp.__version__}")
    except ImportError:
        print("aiohttp: Not installed")


def main():
    """Main entry point for foundry-tools CLI."""
    parser = argparse.ArgumentParser(
        prog="foundry-tools",
        description="Foundry Tools - agent-callable wrappers for forge, anvil, cast and chisel",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    foundry-tools tools                                 List tools
    foundry-tools call forge_build                      Compile the project
    foundry-tools call cast_balance '{"address": "0x..."}'
    foundry-tools shell                                 Interactive session
    foundry-tools config set project_root ~/contracts   Set a config value

For more help on a command:
    foundry-tools <command> --help
"""
    )

    parser.add_argument(
        "--version", "-V",
        action="store_true",
        help="Show version and exit"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # =========================================================================
    # tools command
    # =========================================================================
    tools_parser = subparsers.add_parser(
        "tools",
        help="List tools and whether their executables are installed"
    )
    tools_parser.set_defaults(func=cmd_tools)

    # =========================================================================
    # call command
    # =========================================================================
    call_parser = subparsers.add_parser(
        "call",
        help="Run a single tool",
        description="Run one tool and print its JSON result"
    )
    call_parser.add_argument("name", help="Tool name (e.g., forge_test)")
    call_parser.add_argument("arguments", nargs="?", help="Tool arguments as a JSON object")
    call_parser.set_defaults(func=cmd_call)

    # =========================================================================
    # shell command
    # =========================================================================
    shell_parser = subparsers.add_parser(
        "shell",
        help="Interactive tool shell",
        description="Run tools interactively; a started anvil node lives until the shell exits"
    )
    shell_parser.set_defaults(func=cmd_shell)

    # =========================================================================
    # doctor command
    # =========================================================================
    doctor_parser = subparsers.add_parser(
        "doctor",
        help="Check configuration and dependencies",
        description="Diagnose issues with the Foundry toolchain and tool setup"
    )
    doctor_parser.add_argument(
        "--fix",
        action="store_true",
        help="Create missing directories"
    )
    doctor_parser.set_defaults(func=cmd_doctor)

    # =========================================================================
    # config command
    # =========================================================================
    config_parser = subparsers.add_parser(
        "config",
        help="View and edit configuration",
        description="Manage Foundry Tools configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_subparsers.add_parser("show", help="Show current configuration")
    config_subparsers.add_parser("edit", help="Open config file in editor")

    config_set = config_subparsers.add_parser("set", help="Set a configuration value")
    config_set.add_argument("key", nargs="?", help="Configuration key (e.g., project_root, timeouts.chisel)")
    config_set.add_argument("value", nargs="?", help="Value to set")

    config_subparsers.add_parser("path", help="Print config file path")
    config_subparsers.add_parser("env-path", help="Print .env file path")

    config_parser.set_defaults(func=cmd_config)

    # =========================================================================
    # version command
    # =========================================================================
    version_parser = subparsers.add_parser(
        "version",
        help="Show version information"
    )
    version_parser.set_defaults(func=cmd_version)

    # =========================================================================
    # Parse and execute
    # =========================================================================
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.version:
        cmd_version(args)
        return

    _load_environment()

    if hasattr(args, 'func'):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
