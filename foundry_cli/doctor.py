"""
Doctor command for foundry-tools CLI.

Diagnoses issues with the Foundry toolchain and tool configuration.
"""

import os
import subprocess
import shutil
import sys
from pathlib import Path

from foundry_cli.config import Colors, color, get_config_path, get_env_path, load_config
from foundry_tools.process.base import get_project_root, get_tools_home

FOUNDRY_EXECUTABLES = [
    ("forge", "forge_build, forge_test, gas_*"),
    ("anvil", "anvil_start/stop/status"),
    ("cast", "cast_*"),
    ("chisel", "chisel_*"),
]

REQUIRED_PACKAGES = [
    ("yaml", "PyYAML"),
    ("dotenv", "python-dotenv"),
    ("aiohttp", "aiohttp"),
]

def check_ok(text: str, detail: str = ""):
    print(f"  {color('✓', Colors.GREEN)} {text}" + (f" {color(detail, Colors.DIM)}" if detail else ""))

def check_warn(text: str, detail: str = ""):
    print(f"  {color('⚠', Colors.YELLOW)} {text}" + (f" {color(detail, Colors.DIM)}" if detail else ""))

def check_fail(text: str, detail: str = ""):
    print(f"  {color('✗', Colors.RED)} {text}" + (f" {color(detail, Colors.DIM)}" if detail else ""))

def check_info(text: str):
    print(f"    {color('→', Colors.CYAN)} {text}")


def _executable_version(executable: str) -> str:
    try:
        result = subprocess.run([executable, "--version"], capture_output=True, text=True, timeout=10)
    except (OSError, subprocess.TimeoutExpired):
        return ""
    first_line = (result.stdout or "").strip().splitlines()
    return first_line[0] if first_line else ""


def run_doctor(args):
    """Run diagnostic checks."""
    should_fix = getattr(args, 'fix', False)

    issues = []

    print()
    print(color("┌─────────────────────────────────────────────────────────┐", Colors.CYAN))
    print(color("│                 🩺 Foundry Tools Doctor                 │", Colors.CYAN))
    print(color("└─────────────────────────────────────────────────────────┘", Colors.CYAN))

    # =========================================================================
    # Check: Python version
    # =========================================================================
    print()
    print(color("◆ Python Environment", Colors.CYAN, Colors.BOLD))

    py_version = sys.version_info
    if py_version >= (3, 9):
        check_ok(f"Python {py_version.major}.{py_version.minor}.{py_version.micro}")
    else:
        check_fail(f"Python {py_version.major}.{py_version.minor}.{py_version.micro}", "(3.9+ required)")
        issues.append("Upgrade Python to 3.9+")

    if sys.prefix != sys.base_prefix:
        check_ok("Virtual environment active")
    else:
        check_warn("Not in virtual environment", "(recommended)")

    # =========================================================================
    # Check: Required packages
    # =========================================================================
    print()
    print(color("◆ Required Packages", Colors.CYAN, Colors.BOLD))

    for module, name in REQUIRED_PACKAGES:
        try:
            __import__(module)
            check_ok(name)
        except ImportError:
            check_fail(name, "(missing)")
            issues.append(f"Install {name}: pip install {name}")

    # =========================================================================
    # Check: Foundry toolchain
    # =========================================================================
    print()
    print(color("◆ Foundry Toolchain", Colors.CYAN, Colors.BOLD))

    missing_executables = []
    for executable, used_by in FOUNDRY_EXECUTABLES:
        if shutil.which(executable):
            check_ok(executable, _executable_version(executable) or f"(used by {used_by})")
        else:
            check_fail(f"{executable} not found", f"(needed by {used_by})")
            missing_executables.append(executable)

    if missing_executables:
        check_info("Install Foundry: curl -L https://foundry.paradigm.xyz | bash && foundryup")
        issues.append(f"Install Foundry ({', '.join(missing_executables)} missing from PATH)")

    # =========================================================================
    # Check: Configuration files
    # =========================================================================
    print()
    print(color("◆ Configuration Files", Colors.CYAN, Colors.BOLD))

    env_path = get_env_path()
    if env_path.exists():
        check_ok(f"{env_path} exists")
    else:
        check_warn(f"{env_path} not found", "(needed only for private keys)")

    config_path = get_config_path()
    if config_path.exists():
        check_ok(f"{config_path} exists")
    else:
        check_warn("config.yaml not found", "(using defaults)")

    if os.getenv("FOUNDRY_PRIVATE_KEY"):
        check_ok("FOUNDRY_PRIVATE_KEY set", "(cast_send, cast_wallet_info)")
    else:
        check_warn("FOUNDRY_PRIVATE_KEY not set", "(cast_send needs private_key per call)")
        check_info("foundry-tools config set FOUNDRY_PRIVATE_KEY 0x...")

    if os.getenv("ETHERSCAN_API_KEY"):
        check_ok("ETHERSCAN_API_KEY set", "(chisel_fetch_interface)")
    else:
        check_warn("ETHERSCAN_API_KEY not set", "(chisel_fetch_interface may be rate limited)")

    # =========================================================================
    # Check: Project and directories
    # =========================================================================
    print()
    print(color("◆ Foundry Project", Colors.CYAN, Colors.BOLD))

    config = load_config()
    project_root = Path(get_project_root())
    if project_root.is_dir():
        check_ok(f"Project root {project_root}")
    else:
        check_fail(f"Project root {project_root} does not exist")
        issues.append("Fix project_root in config.yaml or PROJECT_ROOT")

    if (project_root / "foundry.toml").exists():
        check_ok("foundry.toml found")
    else:
        check_warn("foundry.toml not found", "(forge/gas tools expect a Foundry project)")
        check_info("Create one with: forge init")

    logs_dir = get_tools_home() / "logs"
    if logs_dir.exists():
        check_ok(f"{logs_dir} exists")
    else:
        check_warn(f"{logs_dir} not found", "(will be created on first anvil_start)")
        if should_fix:
            logs_dir.mkdir(parents=True, exist_ok=True)
            check_ok(f"Created {logs_dir}")

    timeouts = config.get("timeouts", {})
    for key in ("command", "chisel"):
        value = timeouts.get(key)
        if not isinstance(value, (int, float)) or value <= 0:
            check_fail(f"timeouts.{key} = {value!r}", "(must be a positive number)")
            issues.append(f"Fix timeouts.{key} in config.yaml")

    # =========================================================================
    # Check: Tool Availability
    # =========================================================================
    print()
    print(color("◆ Tool Availability", Colors.CYAN, Colors.BOLD))

    from model_tools import get_available_toolsets

    for name, info in get_available_toolsets().items():
        if info["available"]:
            check_ok(name, f"({len(info['tools'])} tools)")
        else:
            check_warn(name, f"(requires {', '.join(info['requirements'])})")

    # =========================================================================
    # Summary
    # =========================================================================
    print()
    if issues:
        print(color("─" * 60, Colors.YELLOW))
        print(color(f"  Found {len(issues)} issue(s) to address:", Colors.YELLOW, Colors.BOLD))
        print()
        for i, issue in enumerate(issues, 1):
            print(f"  {i}. {issue}")
        print()
    else:
        print(color("─" * 60, Colors.GREEN))
        print(color("  All checks passed! 🎉", Colors.GREEN, Colors.BOLD))

    print()
    return len(issues)
