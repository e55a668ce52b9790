#!/usr/bin/env python3
"""
Anvil Tools Module

Manage a single local Anvil node that outlives individual tool calls.

Lifecycle:
- anvil_start: spawn anvil with the requested flags (fails if one is running)
- anvil_stop: SIGTERM the running node
- anvil_status: report state, pid and, when running, the node's block number

The node is owned by a module-level BackgroundProcessRegistry. Hosts should
call install_signal_handlers() so the node is terminated when they exit.

Usage:
    from foundry_tools.anvil_tool import anvil_start_tool, anvil_stop_tool

    result = await anvil_start_tool(port=8546, fork_url="https://eth.llamarpc.com")
    result = await anvil_stop_tool()
"""

import asyncio
import atexit
import logging
import shutil
import signal
import sys
from typing import Any, Dict, List, Optional

import aiohttp

from foundry_tools.payload import from_exception, redact_argv, redact_params, success_payload
from foundry_tools.process import BackgroundProcessRegistry, FoundryToolError

logger = logging.getLogger(__name__)

ANVIL_EXECUTABLE = "anvil"
DEFAULT_PORT = 8545

_anvil_registry = BackgroundProcessRegistry(ANVIL_EXECUTABLE)
_signal_handlers_installed = False

ANVIL_START_SCHEMA = {
    "name": "anvil_start",
    "description": "Start a local Anvil blockchain node with optional configuration. Only one node can run at a time.",
    "parameters": {
        "type": "object",
        "properties": {
            "port": {
                "type": "integer",
                "description": "Port for Anvil to listen on (default: 8545)"
            },
            "chain_id": {
                "type": "integer",
                "description": "Chain ID for the local network (default: 31337)"
            },
            "accounts": {
                "type": "integer",
                "description": "Number of accounts to generate (default: 10)"
            },
            "balance": {
                "type": "string",
                "description": "Initial balance for each account in ETH (default: 10000)"
            },
            "mnemonic": {
                "type": "string",
                "description": "BIP39 mnemonic phrase to use"
            },
            "fork_url": {
                "type": "string",
                "description": "URL to fork from (e.g., mainnet RPC)"
            },
            "fork_block_number": {
                "type": "integer",
                "description": "Block number to fork from"
            },
            "extra_args": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Additional anvil CLI flags"
            }
        },
        "required": []
    }
}

ANVIL_STOP_SCHEMA = {
    "name": "anvil_stop",
    "description": "Stop the running Anvil blockchain node.",
    "parameters": {"type": "object", "properties": {}, "required": []}
}

ANVIL_STATUS_SCHEMA = {
    "name": "anvil_status",
    "description": "Check if Anvil is currently running and whether its RPC endpoint answers.",
    "parameters": {"type": "object", "properties": {}, "required": []}
}


def get_registry() -> BackgroundProcessRegistry:
    return _anvil_registry


def build_anvil_args(
    port: Optional[int] = None,
    chain_id: Optional[int] = None,
    accounts: Optional[int] = None,
    balance: Optional[str] = None,
    mnemonic: Optional[str] = None,
    fork_url: Optional[str] = None,
    fork_block_number: Optional[int] = None,
    extra_args: Optional[List[str]] = None,
) -> List[str]:
    args: List[str] = []
    if port:
        args.extend(["--port", str(port)])
    if chain_id:
        args.extend(["--chain-id", str(chain_id)])
    if accounts:
        args.extend(["--accounts", str(accounts)])
    if balance:
        args.extend(["--balance", balance])
    if mnemonic:
        args.extend(["--mnemonic", mnemonic])
    if fork_url:
        args.extend(["--fork-url", fork_url])
    if fork_block_number:
        args.extend(["--fork-block-number", str(fork_block_number)])
    args.extend(extra_args or [])
    return args


def _port_from_args(args: List[str]) -> int:
    """Port from --port N or --port=N; the last occurrence wins."""
    port = DEFAULT_PORT
    for idx, arg in enumerate(args):
        if arg == "--port" and idx + 1 < len(args):
            value = args[idx + 1]
        elif arg.startswith("--port="):
            value = arg.split("=", 1)[1]
        else:
            continue
        if value.isdigit():
            port = int(value)
    return port


async def _probe_rpc(rpc_url: str, timeout: float = 2.0) -> Dict[str, Any]:
    """Ask the node for its latest block number over JSON-RPC."""
    request = {"jsonrpc": "2.0", "id": 1, "method": "eth_blockNumber", "params": []}
    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(rpc_url, json=request, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                if response.status != 200:
                    return {"rpc_reachable": False, "rpc_error": f"HTTP {response.status}"}
                body = await response.json(content_type=None)
                if "result" not in body:
                    return {"rpc_reachable": False, "rpc_error": str(body.get("error", "no result"))}
                return {"rpc_reachable": True, "block_number": int(body["result"], 16)}
    except aiohttp.ClientError as e:
        return {"rpc_reachable": False, "rpc_error": f"Cannot connect to {rpc_url}: {e}"}
    except Exception as e:
        return {"rpc_reachable": False, "rpc_error": str(e)}


async def anvil_start_tool(
    port: Optional[int] = None,
    chain_id: Optional[int] = None,
    accounts: Optional[int] = None,
    balance: Optional[str] = None,
    mnemonic: Optional[str] = None,
    fork_url: Optional[str] = None,
    fork_block_number: Optional[int] = None,
    extra_args: Optional[List[str]] = None,
) -> str:
    """
    Start the local Anvil node.

    Returns:
        str: JSON payload with pid, args and rpc_url, or an already_running failure
    """
    args = build_anvil_args(port, chain_id, accounts, balance, mnemonic, fork_url, fork_block_number, extra_args)
    params = {
        "port": port,
        "chain_id": chain_id,
        "accounts": accounts,
        "balance": balance,
        "mnemonic": mnemonic,
        "fork_url": fork_url,
        "fork_block_number": fork_block_number,
        "extra_args": extra_args or [],
    }
    params = redact_params(params, ("mnemonic",))
    shown_args = redact_argv(args, ("--mnemonic",))

    try:
        pid = await asyncio.to_thread(_anvil_registry.start, args)
    except FoundryToolError as e:
        notes = ["Use anvil_stop to stop the running node first."] if e.kind == "already_running" else []
        return from_exception("anvil_start", params, e, data={"args": shown_args}, notes=notes).to_json()

    status = _anvil_registry.status()
    return success_payload(
        "anvil_start",
        params,
        data={
            "pid": pid,
            "args": shown_args,
            "rpc_url": f"http://127.0.0.1:{_port_from_args(args)}",
            "log_path": status.log_path,
            "message": "Anvil started successfully",
        },
    ).to_json()


async def anvil_stop_tool() -> str:
    """Stop the local Anvil node."""
    try:
        pid = await asyncio.to_thread(_anvil_registry.stop)
    except FoundryToolError as e:
        return from_exception("anvil_stop", {}, e).to_json()
    return success_payload("anvil_stop", {}, data={"pid": pid, "message": "Anvil stopped successfully"}).to_json()


async def anvil_status_tool() -> str:
    """Report whether the node is running; probes its RPC endpoint when it is."""
    status = _anvil_registry.status()
    data = status.to_dict()
    if status.is_running:
        rpc_url = f"http://127.0.0.1:{_port_from_args(status.args or [])}"
        data["rpc_url"] = rpc_url
        data.update(await _probe_rpc(rpc_url))
    return success_payload("anvil_status", {}, data=data).to_json()


def cleanup_anvil():
    """Terminate the node if it is running. Idempotent."""
    _anvil_registry.cleanup()


def _handle_exit_signal(signum, frame):
    logger.info("Received signal %s, stopping anvil", signum)
    cleanup_anvil()
    sys.exit(0)


def install_signal_handlers():
    """Stop the node on SIGINT/SIGTERM and at interpreter exit."""
    global _signal_handlers_installed
    if _signal_handlers_installed:
        return
    signal.signal(signal.SIGTERM, _handle_exit_signal)
    signal.signal(signal.SIGINT, _handle_exit_signal)
    atexit.register(cleanup_anvil)
    _signal_handlers_installed = True


def check_anvil_requirements() -> bool:
    """Check if the anvil executable is on PATH."""
    return shutil.which(ANVIL_EXECUTABLE) is not None
