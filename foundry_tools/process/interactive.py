"""Scripted driver for an interactive line-oriented subprocess (chisel).

The driver spawns the subprocess once, feeds it the whole script over stdin,
closes stdin and collects the transcript until the process exits. Input
commands are not correlated with output fragments.
"""

import asyncio
import contextlib
import logging
import os
import tempfile
from typing import Dict, Iterator, Optional, Sequence

from foundry_tools.process.base import (
    ExecutionResult,
    NonZeroExit,
    ProcessTimeout,
    SpawnFailure,
    get_runtime_config,
)
from foundry_tools.process.runner import _decode, _kill

logger = logging.getLogger(__name__)


def render_script(lines: Sequence[str]) -> str:
    """Join script lines, newline-terminating each one."""
    return "".join(f"{line}\n" for line in lines)


async def run_interactive(
    lines: Sequence[str],
    *,
    executable: str = "chisel",
    args: Sequence[str] = (),
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> ExecutionResult:
    """
    Drive ``executable`` through ``lines`` and return the full transcript.

    The script must end with the tool's own exit directive; the subprocess is
    only killed when ``timeout`` (default: CHISEL_TIMEOUT) is exceeded.

    Raises:
        SpawnFailure: the executable could not be launched
        NonZeroExit: the subprocess exited with a failure code
        ProcessTimeout: the wall-clock limit was exceeded
    """
    config = get_runtime_config()
    work_dir = cwd or config["project_root"]
    effective_timeout = timeout or config["chisel_timeout"]
    script = render_script(lines).encode("utf-8")

    logger.debug("interactive %s: %d line(s) (cwd=%s)", executable, len(lines), work_dir)

    try:
        proc = await asyncio.create_subprocess_exec(
            executable,
            *[str(a) for a in args],
            cwd=work_dir,
            env=env if env is not None else os.environ.copy(),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (OSError, ValueError) as e:
        raise SpawnFailure(f"Failed to launch {executable}: {e}", stderr=str(e))

    try:
        # communicate() writes stdin in order, closes it, then drains both streams
        stdout, stderr = await asyncio.wait_for(proc.communicate(input=script), timeout=effective_timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        raise ProcessTimeout(f"{executable} session timed out after {effective_timeout:g} seconds")

    out_text = _decode(stdout)
    err_text = _decode(stderr)

    if proc.returncode != 0:
        raise NonZeroExit(
            f"{executable} exited with code {proc.returncode}: {err_text}",
            exit_code=proc.returncode,
            stdout=out_text,
            stderr=err_text,
        )

    return ExecutionResult(success=True, stdout=out_text, stderr=err_text, exit_code=0)


@contextlib.contextmanager
def script_artifact(lines: Sequence[str], directory: str, prefix: str = ".chisel_script_") -> Iterator[str]:
    """Write ``lines`` to a temporary script file that is removed on exit."""
    fd, path = tempfile.mkstemp(prefix=prefix, suffix=".txt", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(render_script(lines))
        yield path
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
