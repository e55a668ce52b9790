"""
Configuration management for Foundry Tools.

Config files are stored in ~/.foundry-tools/ for easy access:
- ~/.foundry-tools/config.yaml  - Settings (project root, timeouts, anvil, rpc)
- ~/.foundry-tools/.env         - Private keys and API keys

The tools themselves only read environment variables; apply_config_to_env()
exports config values into them without overriding anything already set.

This module provides:
- foundry-tools config          - Show current configuration
- foundry-tools config edit     - Open config in editor
- foundry-tools config set      - Set a specific value
"""

import copy
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import dotenv_values, set_key

from foundry_tools.payload import redact_key as _redact
from foundry_tools.process.base import get_tools_home

# ANSI colors
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"

def color(text: str, *codes) -> str:
    if not sys.stdout.isatty():
        return text
    return "".join(codes) + text + Colors.RESET


# =============================================================================
# Config paths
# =============================================================================

def get_config_path() -> Path:
    """Get the main config file path."""
    return get_tools_home() / "config.yaml"

def get_env_path() -> Path:
    """Get the .env file path (for private keys)."""
    return get_tools_home() / ".env"

def ensure_tools_home():
    """Ensure ~/.foundry-tools directory structure exists."""
    (get_tools_home() / "logs").mkdir(parents=True, exist_ok=True)


# =============================================================================
# Config loading/saving
# =============================================================================

DEFAULT_CONFIG = {
    "project_root": None,  # None = current directory

    "timeouts": {
        "command": 300,
        "chisel": 120,
    },

    "anvil": {
        "log_file": None,  # None = ~/.foundry-tools/logs/anvil.log
        "startup_grace": 0.5,
    },

    "rpc_url": None,  # None = cast's own default (local node)
}

# Secrets go to .env instead of config.yaml
SECRET_KEYS = [
    "FOUNDRY_PRIVATE_KEY",
    "ETHERSCAN_API_KEY",
    "ETH_RPC_URL",
]

# config key -> environment variable read by the tools
CONFIG_ENV_VARS = {
    "project_root": "PROJECT_ROOT",
    "timeouts.command": "FOUNDRY_COMMAND_TIMEOUT",
    "timeouts.chisel": "CHISEL_TIMEOUT",
    "anvil.log_file": "ANVIL_LOG_FILE",
    "anvil.startup_grace": "ANVIL_STARTUP_GRACE",
    "rpc_url": "ETH_RPC_URL",
}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``base`` updated with ``override``, merging nested dicts key by key."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config() -> Dict[str, Any]:
    """Load configuration from ~/.foundry-tools/config.yaml."""
    config_path = get_config_path()

    if not config_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_path) as f:
            user_config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        print(f"Warning: Failed to load config: {e}")
        return copy.deepcopy(DEFAULT_CONFIG)

    if not isinstance(user_config, dict):
        print(f"Warning: Ignoring {config_path}: expected a mapping")
        return copy.deepcopy(DEFAULT_CONFIG)

    return deep_merge(DEFAULT_CONFIG, user_config)


def save_config(config: Dict[str, Any]):
    """Save configuration to ~/.foundry-tools/config.yaml."""
    ensure_tools_home()
    with open(get_config_path(), 'w') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def load_env() -> Dict[str, str]:
    """Load values from ~/.foundry-tools/.env."""
    env_path = get_env_path()
    if not env_path.exists():
        return {}
    return {k: v for k, v in dotenv_values(env_path).items() if v is not None}


def save_env_value(key: str, value: str):
    """Save or update a value in ~/.foundry-tools/.env."""
    ensure_tools_home()
    env_path = get_env_path()
    env_path.touch(exist_ok=True)
    set_key(str(env_path), key, value, quote_mode="never")


def get_env_value(key: str) -> Optional[str]:
    """Get a value from the environment or ~/.foundry-tools/.env."""
    if key in os.environ:
        return os.environ[key]
    return load_env().get(key)


def get_config_value(config: Dict[str, Any], dotted_key: str) -> Any:
    current: Any = config
    for part in dotted_key.split('.'):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def apply_config_to_env(config: Optional[Dict[str, Any]] = None):
    """
    Export config values into the environment variables the tools read.

    Uses setdefault, so variables already present in the environment (or
    loaded from .env) always win over config.yaml.
    """
    config = config if config is not None else load_config()
    for dotted_key, env_var in CONFIG_ENV_VARS.items():
        value = get_config_value(config, dotted_key)
        if value is not None and value != "":
            os.environ.setdefault(env_var, os.path.expanduser(str(value)))


# =============================================================================
# Config display
# =============================================================================

def redact_key(key: Optional[str]) -> str:
    """Redact a secret for display."""
    if not key:
        return color("(not set)", Colors.DIM)
    return _redact(key)


def show_config():
    """Display current configuration."""
    config = load_config()

    print()
    print(color("┌─────────────────────────────────────────────────────────┐", Colors.CYAN))
    print(color("│              ⚒  Foundry Tools Configuration             │", Colors.CYAN))
    print(color("└─────────────────────────────────────────────────────────┘", Colors.CYAN))

    # Paths
    print()
    print(color("◆ Paths", Colors.CYAN, Colors.BOLD))
    print(f"  Config:       {get_config_path()}")
    print(f"  Secrets:      {get_env_path()}")
    print(f"  Project root: {config.get('project_root') or os.getcwd()}")

    # Secrets
    print()
    print(color("◆ Keys", Colors.CYAN, Colors.BOLD))
    for env_key in SECRET_KEYS:
        print(f"  {env_key:<20} {redact_key(get_env_value(env_key))}")

    # Timeouts
    print()
    print(color("◆ Timeouts", Colors.CYAN, Colors.BOLD))
    timeouts = config.get('timeouts', {})
    print(f"  Commands:     {timeouts.get('command', 300)}s")
    print(f"  Chisel:       {timeouts.get('chisel', 120)}s")

    # Anvil
    print()
    print(color("◆ Anvil", Colors.CYAN, Colors.BOLD))
    anvil = config.get('anvil', {})
    print(f"  Log file:     {anvil.get('log_file') or get_tools_home() / 'logs' / 'anvil.log'}")
    print(f"  Startup wait: {anvil.get('startup_grace', 0.5)}s")
    print(f"  RPC URL:      {config.get('rpc_url') or color('(cast default)', Colors.DIM)}")

    print()
    print(color("─" * 60, Colors.DIM))
    print(color("  foundry-tools config edit     # Edit config file", Colors.DIM))
    print(color("  foundry-tools config set KEY VALUE", Colors.DIM))
    print()


def edit_config():
    """Open config file in user's editor."""
    config_path = get_config_path()

    if not config_path.exists():
        save_config(DEFAULT_CONFIG)
        print(f"Created {config_path}")

    editor = os.getenv('EDITOR') or os.getenv('VISUAL')

    if not editor:
        for cmd in ['nano', 'vim', 'vi', 'code', 'notepad']:
            if shutil.which(cmd):
                editor = cmd
                break

    if not editor:
        print(f"No editor found. Config file is at:")
        print(f"  {config_path}")
        return

    print(f"Opening {config_path} in {editor}...")
    subprocess.run([editor, str(config_path)])


def parse_config_value(value: str) -> Any:
    """Convert a command-line string to bool, int or float where it looks like one."""
    if value.lower() in ('true', 'yes', 'on'):
        return True
    if value.lower() in ('false', 'no', 'off'):
        return False
    if value.isdigit():
        return int(value)
    if value.replace('.', '', 1).isdigit():
        return float(value)
    return value


def set_config_value(key: str, value: str):
    """Set a configuration value."""
    if key.upper() in SECRET_KEYS:
        save_env_value(key.upper(), value)
        print(f"✓ Set {key.upper()} in {get_env_path()}")
        return

    config = load_config()

    # Handle nested keys (e.g., "timeouts.chisel")
    parts = key.split('.')
    current = config
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]

    parsed = parse_config_value(value)
    current[parts[-1]] = parsed
    save_config(config)
    print(f"✓ Set {key} = {parsed} in {get_config_path()}")


# =============================================================================
# Command handler
# =============================================================================

def config_command(args):
    """Handle config subcommands."""
    subcmd = getattr(args, 'config_command', None)

    if subcmd is None or subcmd == "show":
        show_config()

    elif subcmd == "edit":
        edit_config()

    elif subcmd == "set":
        key = getattr(args, 'key', None)
        value = getattr(args, 'value', None)
        if not key or value is None:
            print("Usage: foundry-tools config set KEY VALUE")
            print()
            print("Examples:")
            print("  foundry-tools config set project_root ~/code/my-contracts")
            print("  foundry-tools config set timeouts.chisel 60")
            print("  foundry-tools config set FOUNDRY_PRIVATE_KEY 0xac09...")
            sys.exit(1)
        set_config_value(key, value)

    elif subcmd == "path":
        print(get_config_path())

    elif subcmd == "env-path":
        print(get_env_path())

    else:
        print(f"Unknown config command: {subcmd}")
        sys.exit(1)
