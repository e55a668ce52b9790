"""Single-slot registry for a long-running background process.

The registry owns at most one live process (the local anvil node). Its state
lives in an explicit ProcessSlot injected at construction; every read or
write of the slot goes through the slot's lock.
"""

import logging
import os
import subprocess
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from foundry_tools.process.base import (
    AlreadyRunningError,
    NotRunningError,
    SpawnFailure,
    get_runtime_config,
)

logger = logging.getLogger(__name__)


class ProcessState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


@dataclass
class BackgroundProcessHandle:
    process: subprocess.Popen
    pid: int
    args: List[str]
    started_at: float
    log_path: Optional[str] = None

    def is_alive(self) -> bool:
        return self.process.poll() is None


@dataclass
class ProcessSlot:
    """Mutable state for one background process; shared only via the registry."""
    handle: Optional[BackgroundProcessHandle] = None
    state: ProcessState = ProcessState.STOPPED
    lock: threading.Lock = field(default_factory=threading.Lock)


@dataclass(frozen=True)
class ProcessStatus:
    state: ProcessState
    pid: Optional[int] = None
    args: Optional[List[str]] = None
    started_at: Optional[float] = None
    log_path: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.state is ProcessState.RUNNING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "is_running": self.is_running,
            "pid": self.pid,
            "args": self.args,
            "started_at": self.started_at,
            "log_path": self.log_path,
        }


def _read_log_tail(log_path: Optional[str], max_chars: int = 2000) -> str:
    if not log_path:
        return ""
    try:
        text = Path(log_path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""
    return text[-max_chars:]


class BackgroundProcessRegistry:
    """
    Start/stop/status/cleanup for a singleton background process.

    State machine: STOPPED -> STARTING -> RUNNING -> STOPPED. Starting while a
    live process is held is a caller error (AlreadyRunningError), not a race.
    """

    def __init__(
        self,
        executable: str,
        slot: Optional[ProcessSlot] = None,
        log_path: Optional[str] = None,
        startup_grace: Optional[float] = None,
        stop_timeout: float = 5.0,
    ):
        self.executable = executable
        self.slot = slot if slot is not None else ProcessSlot()
        self._log_path = log_path
        self._startup_grace = startup_grace
        self.stop_timeout = stop_timeout

    def _live_handle(self) -> Optional[BackgroundProcessHandle]:
        # Caller holds the slot lock
        handle = self.slot.handle
        if handle is not None and handle.is_alive():
            return handle
        return None

    def start(self, args: Sequence[str], cwd: Optional[str] = None) -> int:
        """Spawn the process with ``args`` and return its pid."""
        config = get_runtime_config()
        log_path = self._log_path or config["anvil_log_file"]
        grace = self._startup_grace if self._startup_grace is not None else config["anvil_startup_grace"]
        argv = [str(a) for a in args]

        with self.slot.lock:
            live = self._live_handle()
            if live is not None:
                raise AlreadyRunningError(
                    f"{self.executable} is already running (pid {live.pid}). Stop it first."
                )

            self.slot.handle = None
            self.slot.state = ProcessState.STARTING

            try:
                Path(log_path).parent.mkdir(parents=True, exist_ok=True)
                with open(log_path, "ab") as log_file:
                    process = subprocess.Popen(
                        [self.executable, *argv],
                        cwd=cwd or config["project_root"],
                        env=os.environ.copy(),
                        stdin=subprocess.DEVNULL,
                        stdout=log_file,
                        stderr=subprocess.STDOUT,
                    )
            except (OSError, ValueError) as e:
                self.slot.state = ProcessState.STOPPED
                raise SpawnFailure(f"Failed to launch {self.executable}: {e}", stderr=str(e))

            if grace > 0:
                time.sleep(grace)

            if process.poll() is not None:
                self.slot.state = ProcessState.STOPPED
                tail = _read_log_tail(log_path)
                raise SpawnFailure(
                    f"{self.executable} exited during startup with code {process.returncode}",
                    stderr=tail,
                )

            self.slot.handle = BackgroundProcessHandle(
                process=process,
                pid=process.pid,
                args=argv,
                started_at=time.time(),
                log_path=log_path,
            )
            self.slot.state = ProcessState.RUNNING
            logger.info("%s started (pid %s): %s", self.executable, process.pid, argv)
            return process.pid

    def _terminate(self, handle: BackgroundProcessHandle):
        # Caller holds the slot lock
        process = handle.process
        if process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=self.stop_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("%s (pid %s) ignored SIGTERM, killing", self.executable, handle.pid)
            process.kill()
            process.wait()

    def stop(self) -> int:
        """Terminate the held process and return the pid it had."""
        with self.slot.lock:
            handle = self._live_handle()
            if handle is None:
                self.slot.handle = None
                self.slot.state = ProcessState.STOPPED
                raise NotRunningError(f"No {self.executable} process is currently running")

            self._terminate(handle)
            self.slot.handle = None
            self.slot.state = ProcessState.STOPPED
            logger.info("%s stopped (pid %s)", self.executable, handle.pid)
            return handle.pid

    def status(self) -> ProcessStatus:
        with self.slot.lock:
            handle = self._live_handle()
            if handle is None:
                return ProcessStatus(state=ProcessState.STOPPED)
            return ProcessStatus(
                state=self.slot.state,
                pid=handle.pid,
                args=list(handle.args),
                started_at=handle.started_at,
                log_path=handle.log_path,
            )

    def cleanup(self):
        """Stop the process if one is live. Safe to call repeatedly."""
        with self.slot.lock:
            handle = self.slot.handle
            self.slot.handle = None
            self.slot.state = ProcessState.STOPPED
            if handle is None:
                return
            try:
                self._terminate(handle)
                logger.info("Cleaned up %s (pid %s)", self.executable, handle.pid)
            except OSError as e:
                logger.warning("Error cleaning up %s (pid %s): %s", self.executable, handle.pid, e)
