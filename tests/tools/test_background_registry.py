"""Tests for the single-slot background process registry."""

import sys
import threading
from unittest.mock import MagicMock

import pytest

from foundry_tools.process import (
    AlreadyRunningError,
    BackgroundProcessRegistry,
    NotRunningError,
    ProcessSlot,
    ProcessState,
    SpawnFailure,
)

SLEEPER = ["-c", "import time; time.sleep(60)"]


@pytest.fixture
def registry(tmp_path, project_root):
    reg = BackgroundProcessRegistry(
        sys.executable,
        log_path=str(tmp_path / "logs" / "bg.log"),
        startup_grace=0.1,
        stop_timeout=2.0,
    )
    yield reg
    reg.cleanup()


class TestStart:
    """start() transitions and the already-running guard."""

    def test_start_reports_running(self, registry):
        """A started process is RUNNING with its pid and args recorded."""
        pid = registry.start(SLEEPER)
        status = registry.status()

        assert status.is_running
        assert status.state is ProcessState.RUNNING
        assert status.pid == pid
        assert status.args == SLEEPER

    def test_second_start_raises_and_keeps_original(self, registry):
        """Starting twice raises AlreadyRunningError and leaves the first handle alone."""
        pid = registry.start(SLEEPER)
        original_handle = registry.slot.handle

        with pytest.raises(AlreadyRunningError) as exc_info:
            registry.start(SLEEPER)

        assert exc_info.value.kind == "already_running"
        assert registry.slot.handle is original_handle
        assert registry.status().pid == pid
        assert original_handle.is_alive()

    def test_missing_executable_is_spawn_failure(self, tmp_path, project_root):
        """A binary that cannot be launched leaves the slot STOPPED."""
        reg = BackgroundProcessRegistry(
            "definitely-not-anvil", log_path=str(tmp_path / "a.log"), startup_grace=0
        )
        with pytest.raises(SpawnFailure):
            reg.start([])
        assert reg.status().state is ProcessState.STOPPED

    def test_early_exit_is_spawn_failure_with_log_tail(self, tmp_path, project_root):
        """A process that dies inside the grace period reports its log output."""
        reg = BackgroundProcessRegistry(sys.executable, log_path=str(tmp_path / "crash.log"), startup_grace=2.0)
        crash = ["-c", "import sys; print('port already in use', flush=True); sys.exit(1)"]
        with pytest.raises(SpawnFailure) as exc_info:
            reg.start(crash)

        assert "port already in use" in exc_info.value.stderr
        assert reg.status().state is ProcessState.STOPPED

    def test_restart_after_process_died(self, registry):
        """A slot whose process already exited does not block a new start."""
        registry.start(SLEEPER)
        registry.slot.handle.process.kill()
        registry.slot.handle.process.wait()

        assert not registry.status().is_running
        new_pid = registry.start(SLEEPER)
        assert registry.status().pid == new_pid


class TestStop:
    """stop() semantics."""

    def test_stop_running_process(self, registry):
        """stop() terminates the process and returns its pid."""
        pid = registry.start(SLEEPER)
        process = registry.slot.handle.process

        assert registry.stop() == pid
        assert process.poll() is not None
        assert registry.status().state is ProcessState.STOPPED

    def test_stop_when_stopped_raises(self, registry):
        """stop() with nothing running raises NotRunningError and changes nothing."""
        with pytest.raises(NotRunningError) as exc_info:
            registry.stop()

        assert exc_info.value.kind == "not_running"
        assert registry.slot.handle is None
        assert registry.status().state is ProcessState.STOPPED


class TestCleanup:
    """cleanup() is idempotent."""

    def test_cleanup_twice_terminates_once(self, registry):
        """Second cleanup is a no-op: no error, no second terminate."""
        registry.start(SLEEPER)
        process = registry.slot.handle.process
        process.terminate = MagicMock(wraps=process.terminate)

        registry.cleanup()
        registry.cleanup()

        assert process.terminate.call_count == 1
        assert registry.status().state is ProcessState.STOPPED

    def test_cleanup_when_never_started(self, registry):
        """cleanup() on an empty slot does nothing."""
        registry.cleanup()
        assert registry.status().state is ProcessState.STOPPED


class TestInjectedSlot:
    """State lives in the injected slot, not in the registry."""

    def test_registries_sharing_a_slot_see_the_same_process(self, tmp_path, project_root):
        """Two registries over one slot share the already-running guard."""
        slot = ProcessSlot()
        first = BackgroundProcessRegistry(sys.executable, slot=slot, log_path=str(tmp_path / "b.log"), startup_grace=0.1)
        second = BackgroundProcessRegistry(sys.executable, slot=slot, log_path=str(tmp_path / "b.log"), startup_grace=0.1)
        try:
            first.start(SLEEPER)
            with pytest.raises(AlreadyRunningError):
                second.start(SLEEPER)
            assert second.status().pid == first.status().pid
        finally:
            first.cleanup()


class TestConcurrentStart:
    """start() is serialized through the slot lock."""

    def test_racing_starts_spawn_one_process(self, registry):
        """Of four threads starting at once, exactly one spawns; the rest see AlreadyRunningError."""
        barrier = threading.Barrier(4)
        pids = []
        errors = []
        record = threading.Lock()

        def start():
            barrier.wait()
            try:
                pid = registry.start(SLEEPER)
            except AlreadyRunningError as e:
                with record:
                    errors.append(e)
            else:
                with record:
                    pids.append(pid)

        threads = [threading.Thread(target=start) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len(pids) == 1
        assert len(errors) == 3
        assert registry.status().pid == pids[0]
