"""Foundry process layer.

Three ways of running the external toolchain, all sharing the error taxonomy
in base.py:

- runner: one-shot commands (forge, cast, chisel list/view)
- background: the single long-running anvil node
- interactive: scripted chisel conversations
"""

from foundry_tools.process.base import (
    ExecutionResult,
    FoundryToolError,
    SpawnFailure,
    NonZeroExit,
    AlreadyRunningError,
    NotRunningError,
    MissingCredentialError,
    ProcessTimeout,
)
from foundry_tools.process.runner import run_command
from foundry_tools.process.background import (
    BackgroundProcessRegistry,
    ProcessSlot,
    ProcessState,
    ProcessStatus,
)
from foundry_tools.process.interactive import run_interactive, script_artifact

__all__ = [
    "ExecutionResult",
    "FoundryToolError",
    "SpawnFailure",
    "NonZeroExit",
    "AlreadyRunningError",
    "NotRunningError",
    "MissingCredentialError",
    "ProcessTimeout",
    "run_command",
    "BackgroundProcessRegistry",
    "ProcessSlot",
    "ProcessState",
    "ProcessStatus",
    "run_interactive",
    "script_artifact",
]
