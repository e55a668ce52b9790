"""Shared types for the Foundry process layer.

Holds the ExecutionResult value produced by every executable invocation, the
error taxonomy raised by the registry and the interactive driver, and the
runtime configuration read from environment variables.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional


class FoundryToolError(Exception):
    """Base class for failures surfaced by the process layer."""

    kind = "error"

    def __init__(self, message: str, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr


class SpawnFailure(FoundryToolError):
    """Executable not found or could not be launched."""

    kind = "spawn_failure"


class NonZeroExit(FoundryToolError):
    """The subprocess ran and exited with a failure code."""

    kind = "non_zero_exit"

    def __init__(self, message: str, exit_code: int, stdout: str = "", stderr: str = ""):
        super().__init__(message, stdout=stdout, stderr=stderr)
        self.exit_code = exit_code


class AlreadyRunningError(FoundryToolError):
    kind = "already_running"


class NotRunningError(FoundryToolError):
    kind = "not_running"


class MissingCredentialError(FoundryToolError):
    kind = "missing_credential"


class ProcessTimeout(FoundryToolError):
    """Wall-clock limit exceeded; the subprocess was killed."""

    kind = "timeout"


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of a single executable invocation."""

    success: bool
    stdout: str
    stderr: str
    exit_code: Optional[int] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "error_kind": self.error_kind,
        }


# Exit code reported for commands killed on timeout (same as coreutils `timeout`)
TIMEOUT_EXIT_CODE = 124


def get_project_root() -> str:
    """Working directory for every invocation (PROJECT_ROOT, else cwd)."""
    return os.getenv("PROJECT_ROOT") or os.getcwd()


def get_tools_home() -> Path:
    """Get the tools home directory (~/.foundry-tools)."""
    return Path(os.getenv("FOUNDRY_TOOLS_HOME", Path.home() / ".foundry-tools"))


def get_default_private_key() -> Optional[str]:
    return os.getenv("FOUNDRY_PRIVATE_KEY") or None


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_runtime_config() -> Dict[str, Any]:
    """Get process-layer configuration from environment variables."""
    return {
        "project_root": get_project_root(),
        "command_timeout": _float_env("FOUNDRY_COMMAND_TIMEOUT", 300.0),
        "chisel_timeout": _float_env("CHISEL_TIMEOUT", 120.0),
        "anvil_startup_grace": _float_env("ANVIL_STARTUP_GRACE", 0.5),
        "anvil_log_file": os.getenv("ANVIL_LOG_FILE") or str(get_tools_home() / "logs" / "anvil.log"),
    }
