"""Tests for anvil tools (registry patched, no Foundry install needed)."""

import json
from unittest.mock import patch

import pytest

from foundry_tools import anvil_tool
from foundry_tools.anvil_tool import (
    _port_from_args,
    _probe_rpc,
    anvil_start_tool,
    anvil_status_tool,
    anvil_stop_tool,
    build_anvil_args,
)
from foundry_tools.process import AlreadyRunningError, NotRunningError
from foundry_tools.process.background import ProcessState, ProcessStatus

MNEMONIC = "test test test test test test test test test test test junk"


class TestAnvilArgs:
    """Flag construction from tool parameters."""

    def test_all_flags(self):
        """Every parameter maps to its anvil flag, extras last."""
        args = build_anvil_args(
            port=8546, chain_id=1, accounts=3, balance="100",
            fork_url="https://x", fork_block_number=19000000, extra_args=["--no-mining"],
        )
        assert args == [
            "--port", "8546", "--chain-id", "1", "--accounts", "3", "--balance", "100",
            "--fork-url", "https://x", "--fork-block-number", "19000000", "--no-mining",
        ]

    def test_defaults_are_empty(self):
        """No parameters, no flags."""
        assert build_anvil_args() == []

    def test_port_from_args(self):
        """The RPC port comes from --port, else 8545."""
        assert _port_from_args(["--port", "9000"]) == 9000
        assert _port_from_args(["--chain-id", "1"]) == 8545

    def test_port_equals_form(self):
        """--port=N in extra args is honored too."""
        assert _port_from_args(build_anvil_args(extra_args=["--port=8546"])) == 8546
        assert _port_from_args(["--port", "9000", "--port=9001"]) == 9001

    @pytest.mark.asyncio
    async def test_start_reports_port_from_extra_args(self):
        """The rpc_url reflects a port passed as --port=N."""
        status = ProcessStatus(state=ProcessState.RUNNING, pid=7, args=["--port=8546"])
        with patch.object(anvil_tool._anvil_registry, "start", return_value=7), \
                patch.object(anvil_tool._anvil_registry, "status", return_value=status):
            result = json.loads(await anvil_start_tool(extra_args=["--port=8546"]))

        assert result["data"]["rpc_url"] == "http://127.0.0.1:8546"


class TestAnvilLifecycle:
    """Tool-level behavior around the registry."""

    @pytest.mark.asyncio
    async def test_start_success_redacts_mnemonic(self):
        """The mnemonic is passed to anvil but never echoed."""
        status = ProcessStatus(state=ProcessState.RUNNING, pid=4242, args=["--port", "8546"], log_path="/tmp/anvil.log")
        with patch.object(anvil_tool._anvil_registry, "start", return_value=4242) as start, \
                patch.object(anvil_tool._anvil_registry, "status", return_value=status):
            raw = await anvil_start_tool(port=8546, mnemonic=MNEMONIC)

        assert start.call_args.args[0] == ["--port", "8546", "--mnemonic", MNEMONIC]
        assert MNEMONIC not in raw
        result = json.loads(raw)
        assert result["success"] is True
        assert result["data"]["pid"] == 4242
        assert result["data"]["rpc_url"] == "http://127.0.0.1:8546"

    @pytest.mark.asyncio
    async def test_start_when_running(self):
        """A second start reports already_running."""
        error = AlreadyRunningError("anvil is already running (pid 1)")
        with patch.object(anvil_tool._anvil_registry, "start", side_effect=error):
            result = json.loads(await anvil_start_tool())

        assert result["success"] is False
        assert result["error_kind"] == "already_running"
        assert any("anvil_stop" in note for note in result["notes"])

    @pytest.mark.asyncio
    async def test_stop_when_stopped(self):
        """Stopping with nothing running reports not_running."""
        with patch.object(anvil_tool._anvil_registry, "stop", side_effect=NotRunningError("anvil is not running")):
            result = json.loads(await anvil_stop_tool())

        assert result["success"] is False
        assert result["error_kind"] == "not_running"

    @pytest.mark.asyncio
    async def test_status_when_stopped(self):
        """A stopped node reports is_running false and is not probed."""
        with patch.object(anvil_tool._anvil_registry, "status", return_value=ProcessStatus(state=ProcessState.STOPPED)), \
                patch("foundry_tools.anvil_tool._probe_rpc") as probe:
            result = json.loads(await anvil_status_tool())

        probe.assert_not_called()
        assert result["success"] is True
        assert result["data"]["is_running"] is False
        assert result["data"]["state"] == "stopped"


class TestProbe:
    """JSON-RPC liveness probe."""

    @pytest.mark.asyncio
    async def test_unreachable_endpoint(self):
        """A closed port is reported, not raised."""
        result = await _probe_rpc("http://127.0.0.1:1", timeout=1.0)
        assert result["rpc_reachable"] is False
        assert result["rpc_error"]
