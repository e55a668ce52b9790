"""Tests for the one-shot command runner."""

import json
import sys

import pytest

from foundry_tools.process import run_command
from foundry_tools.process.base import TIMEOUT_EXIT_CODE


ECHO_ARGV = "import json, sys; print(json.dumps(sys.argv[1:]))"


class TestLiteralArguments:
    """Arguments must reach the child verbatim, never through a shell."""

    @pytest.mark.asyncio
    async def test_shell_metacharacters_preserved(self, project_root):
        """Quotes, pipes, globs and substitutions arrive unchanged."""
        tricky = [
            "a; rm -rf /",
            "$(whoami)",
            "`id`",
            "x | y && z",
            "*.sol",
            "it's \"quoted\"",
            "",
        ]
        result = await run_command(sys.executable, ["-c", ECHO_ARGV, *tricky])

        assert result.success
        assert result.exit_code == 0
        assert json.loads(result.stdout) == tricky

    @pytest.mark.asyncio
    async def test_runs_in_project_root(self, project_root):
        """Default working directory is PROJECT_ROOT."""
        result = await run_command(sys.executable, ["-c", "import os; print(os.getcwd())"])
        assert result.success
        assert result.stdout.strip() == str(project_root.resolve())


class TestFailureModes:
    """Every failure is folded into the result instead of raised."""

    @pytest.mark.asyncio
    async def test_nonzero_exit_keeps_streams(self, project_root):
        """Exit code, stdout and stderr of a failing child are reported."""
        code = "import sys; print('partial'); sys.stderr.write('boom'); sys.exit(3)"
        result = await run_command(sys.executable, ["-c", code])

        assert not result.success
        assert result.exit_code == 3
        assert result.error_kind == "non_zero_exit"
        assert result.stdout.strip() == "partial"
        assert result.stderr == "boom"

    @pytest.mark.asyncio
    async def test_nonzero_exit_with_empty_stderr(self, project_root):
        """A silent failure still gets a descriptive stderr."""
        result = await run_command(sys.executable, ["-c", "import sys; sys.exit(1)"])
        assert not result.success
        assert "exited with code 1" in result.stderr

    @pytest.mark.asyncio
    async def test_missing_executable(self, project_root):
        """An executable that is not on PATH is a spawn failure."""
        result = await run_command("definitely-not-a-foundry-binary", ["build"])

        assert not result.success
        assert result.error_kind == "spawn_failure"
        assert result.exit_code is None
        assert "definitely-not-a-foundry-binary" in result.stderr

    @pytest.mark.asyncio
    async def test_timeout_kills_child(self, project_root):
        """A child that outlives the timeout is killed and reported as such."""
        result = await run_command(sys.executable, ["-c", "import time; time.sleep(30)"], timeout=0.5)

        assert not result.success
        assert result.error_kind == "timeout"
        assert result.exit_code == TIMEOUT_EXIT_CODE
        assert "timed out" in result.stderr

    @pytest.mark.asyncio
    async def test_timeout_from_environment(self, project_root, monkeypatch):
        """FOUNDRY_COMMAND_TIMEOUT is the default limit."""
        monkeypatch.setenv("FOUNDRY_COMMAND_TIMEOUT", "0.5")
        result = await run_command(sys.executable, ["-c", "import time; time.sleep(30)"])
        assert result.error_kind == "timeout"
