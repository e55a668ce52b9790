"""Tests for forge tools."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from foundry_tools.forge_tool import forge_build_tool, forge_test_tool
from foundry_tools.process import ExecutionResult


class TestForgeTools:
    """argv construction and failure reporting."""

    @pytest.mark.asyncio
    async def test_test_argv(self, project_root):
        """Filters and profile precede extra args."""
        ok = ExecutionResult(True, "[PASS] testTransfer()", "", exit_code=0)
        with patch("foundry_tools.forge_tool.run_command", new_callable=AsyncMock, return_value=ok) as mock_run:
            result = json.loads(await forge_test_tool(
                match_test="testTransfer", match_path="test/Token.t.sol", profile="ci", extra_args=["-vvvv"]
            ))

        mock_run.assert_awaited_once_with("forge", [
            "test", "--match-test", "testTransfer", "--match-path", "test/Token.t.sol",
            "--profile", "ci", "-vvvv",
        ])
        assert result["success"] is True
        assert result["data"]["args"][0] == "test"

    @pytest.mark.asyncio
    async def test_missing_forge_is_spawn_failure(self, project_root, monkeypatch):
        """Without forge on PATH the build fails cleanly with spawn_failure."""
        monkeypatch.setenv("PATH", str(project_root))
        result = json.loads(await forge_build_tool())

        assert result["success"] is False
        assert result["error_kind"] == "spawn_failure"
        assert result["stdout"] == ""
