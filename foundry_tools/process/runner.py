"""One-shot command runner.

Runs an executable to completion with a literal argument vector (no shell),
captures both streams and folds every failure mode into an ExecutionResult.
"""

import asyncio
import logging
import os
from typing import Dict, List, Optional, Sequence

from foundry_tools.process.base import (
    ExecutionResult,
    NonZeroExit,
    ProcessTimeout,
    SpawnFailure,
    TIMEOUT_EXIT_CODE,
    get_runtime_config,
)

logger = logging.getLogger(__name__)


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


async def _kill(proc: asyncio.subprocess.Process):
    try:
        proc.kill()
    except ProcessLookupError:
        return
    await proc.wait()


async def run_command(
    executable: str,
    args: Sequence[str],
    *,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> ExecutionResult:
    """
    Run ``executable`` with ``args`` and return its captured output.

    Args:
        executable: Program name (resolved on PATH) or path
        args: Argument vector; each element reaches the child verbatim
        cwd: Working directory (default: project root)
        env: Environment (default: inherited)
        timeout: Wall-clock limit in seconds (default: FOUNDRY_COMMAND_TIMEOUT)

    Returns:
        ExecutionResult; never raises for process failures
    """
    config = get_runtime_config()
    work_dir = cwd or config["project_root"]
    effective_timeout = timeout or config["command_timeout"]
    argv: List[str] = [str(a) for a in args]

    logger.debug("exec %s %s (cwd=%s)", executable, argv, work_dir)

    try:
        proc = await asyncio.create_subprocess_exec(
            executable,
            *argv,
            cwd=work_dir,
            env=env if env is not None else os.environ.copy(),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (OSError, ValueError) as e:
        message = f"Failed to launch {executable}: {e}"
        logger.warning(message)
        return ExecutionResult(
            success=False,
            stdout="",
            stderr=message,
            error_kind=SpawnFailure.kind,
        )

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=effective_timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        logger.warning("%s timed out after %ss", executable, effective_timeout)
        return ExecutionResult(
            success=False,
            stdout="",
            stderr=f"{executable} timed out after {effective_timeout:g} seconds",
            exit_code=TIMEOUT_EXIT_CODE,
            error_kind=ProcessTimeout.kind,
        )

    returncode = proc.returncode
    if returncode != 0:
        logger.debug("%s exited with %s", executable, returncode)
        err_text = _decode(stderr) or f"{executable} exited with code {returncode}"
        return ExecutionResult(
            success=False,
            stdout=_decode(stdout),
            stderr=err_text,
            exit_code=returncode,
            error_kind=NonZeroExit.kind,
        )

    return ExecutionResult(
        success=True,
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        exit_code=0,
    )
