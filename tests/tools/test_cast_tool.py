"""Tests for cast tools (runner patched, no Foundry install needed)."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from foundry_tools.cast_tool import (
    cast_balance_tool,
    cast_call_tool,
    cast_estimate_gas_tool,
    cast_send_tool,
    cast_wallet_info_tool,
)
from foundry_tools.process import ExecutionResult

ANVIL_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TOKEN = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


def _ok(stdout=""):
    return ExecutionResult(success=True, stdout=stdout, stderr="", exit_code=0)


class TestCastSendCredentials:
    """cast_send needs a key before anything is spawned."""

    @pytest.mark.asyncio
    async def test_no_key_fails_without_spawning(self, project_root, no_private_key):
        """No explicit key and no FOUNDRY_PRIVATE_KEY: missing_credential, no process."""
        with patch("foundry_tools.cast_tool.run_command", new_callable=AsyncMock) as mock_run:
            result = json.loads(await cast_send_tool(TOKEN, "transfer(address,uint256)", ["0xabc", "1"]))

        mock_run.assert_not_called()
        assert result["success"] is False
        assert result["error_kind"] == "missing_credential"
        assert "private key" in result["error"].lower()

    @pytest.mark.asyncio
    async def test_env_key_used_and_redacted(self, project_root, monkeypatch):
        """FOUNDRY_PRIVATE_KEY signs the transaction but is not echoed back."""
        monkeypatch.setenv("FOUNDRY_PRIVATE_KEY", ANVIL_KEY)
        with patch("foundry_tools.cast_tool.run_command", new_callable=AsyncMock, return_value=_ok("0xtxhash")) as mock_run:
            raw = await cast_send_tool(TOKEN, "transfer(address,uint256)", ["0xabc", "1"], rpc_url="http://127.0.0.1:8545")

        executable, argv = mock_run.call_args.args
        assert executable == "cast"
        assert argv == [
            "send",
            "--rpc-url", "http://127.0.0.1:8545",
            "--private-key", ANVIL_KEY,
            TOKEN, "transfer(address,uint256)", "0xabc", "1",
        ]
        assert ANVIL_KEY not in raw
        assert json.loads(raw)["success"] is True

    @pytest.mark.asyncio
    async def test_explicit_key_wins(self, project_root, monkeypatch):
        """An explicit private_key overrides the environment default."""
        monkeypatch.setenv("FOUNDRY_PRIVATE_KEY", ANVIL_KEY)
        explicit = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
        with patch("foundry_tools.cast_tool.run_command", new_callable=AsyncMock, return_value=_ok()) as mock_run:
            await cast_send_tool(TOKEN, "f()", private_key=explicit, value="1ether", gas_limit="100000")

        argv = mock_run.call_args.args[1]
        assert argv[argv.index("--private-key") + 1] == explicit
        assert argv[argv.index("--value") + 1] == "1ether"
        assert argv[argv.index("--gas-limit") + 1] == "100000"

    @pytest.mark.asyncio
    async def test_wallet_info_without_key(self, project_root, no_private_key):
        """cast_wallet_info also refuses to run without a key."""
        with patch("foundry_tools.cast_tool.run_command", new_callable=AsyncMock) as mock_run:
            result = json.loads(await cast_wallet_info_tool())
        mock_run.assert_not_called()
        assert result["error_kind"] == "missing_credential"

    @pytest.mark.asyncio
    async def test_wallet_info_returns_address(self, project_root, monkeypatch):
        """The derived address is returned stripped."""
        monkeypatch.setenv("FOUNDRY_PRIVATE_KEY", ANVIL_KEY)
        address = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
        with patch("foundry_tools.cast_tool.run_command", new_callable=AsyncMock, return_value=_ok(address + "\n")):
            result = json.loads(await cast_wallet_info_tool())
        assert result["success"] is True
        assert result["data"]["address"] == address


class TestCastReadCommands:
    """Argument vectors for read-only commands."""

    @pytest.mark.asyncio
    async def test_call_argv(self, project_root):
        """Flags come before the address, extra args last."""
        with patch("foundry_tools.cast_tool.run_command", new_callable=AsyncMock, return_value=_ok("0x01")) as mock_run:
            result = json.loads(await cast_call_tool(
                TOKEN, "balanceOf(address)", ["0xabc"], block_number="19000000", extra_args=["--json"]
            ))

        assert mock_run.call_args.args[1] == [
            "call", "--block", "19000000", TOKEN, "balanceOf(address)", "0xabc", "--json",
        ]
        assert result["stdout"] == "0x01"

    @pytest.mark.asyncio
    async def test_estimate_argv(self, project_root):
        """estimate passes --from and --value."""
        with patch("foundry_tools.cast_tool.run_command", new_callable=AsyncMock, return_value=_ok("21000\n")) as mock_run:
            result = json.loads(await cast_estimate_gas_tool(TOKEN, "f()", from_address="0xabc", value="1"))

        assert mock_run.call_args.args[1] == ["estimate", "--from", "0xabc", "--value", "1", TOKEN, "f()"]
        assert result["data"]["estimated_gas"] == "21000"

    @pytest.mark.asyncio
    async def test_balance_failure(self, project_root):
        """A failing cast run is reported as a failure payload."""
        failed = ExecutionResult(False, "", "error sending request", exit_code=1, error_kind="non_zero_exit")
        with patch("foundry_tools.cast_tool.run_command", new_callable=AsyncMock, return_value=failed):
            result = json.loads(await cast_balance_tool("0xabc", rpc_url="http://127.0.0.1:9999"))

        assert result["success"] is False
        assert result["error_kind"] == "non_zero_exit"
        assert result["stderr"] == "error sending request"
