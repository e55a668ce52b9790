#!/usr/bin/env python3
"""
Cast Tools Module

Read chain state and send transactions with `cast`.

Available tools:
- cast_call: read-only contract call
- cast_send: signed transaction (needs a private key)
- cast_estimate_gas: gas estimate for a call
- cast_balance: ETH balance of an address
- cast_wallet_info: address of the configured signing key

Signing keys come from the ``private_key`` argument or FOUNDRY_PRIVATE_KEY.
Keys are never echoed back in results.

Usage:
    from foundry_tools.cast_tool import cast_call_tool

    result = await cast_call_tool("0x...", "balanceOf(address)", args=["0x..."])
"""

import shutil
from typing import Any, Dict, List, Optional

from foundry_tools.payload import failure_payload, from_execution, redact_argv, redact_params, success_payload
from foundry_tools.process import MissingCredentialError, run_command
from foundry_tools.process.base import get_default_private_key

CAST_EXECUTABLE = "cast"

_SECRET_FLAGS = ("--private-key",)

_MISSING_KEY_NOTES = [
    "Pass private_key or set FOUNDRY_PRIVATE_KEY in ~/.foundry-tools/.env",
]


def _call_properties(address_description: str, signature_example: str) -> Dict[str, Any]:
    return {
        "contract_address": {
            "type": "string",
            "description": address_description
        },
        "signature": {
            "type": "string",
            "description": f"Function signature (e.g., '{signature_example}')"
        },
        "args": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Function arguments"
        },
    }


_RPC_URL_PROPERTY = {
    "type": "string",
    "description": "RPC URL (defaults to local Anvil)"
}

CAST_CALL_SCHEMA = {
    "name": "cast_call",
    "description": "Call a read-only function on a contract using cast.",
    "parameters": {
        "type": "object",
        "properties": {
            **_call_properties("The contract address to call", "balanceOf(address)"),
            "rpc_url": _RPC_URL_PROPERTY,
            "block_number": {
                "type": "string",
                "description": "Block number to query at"
            },
            "extra_args": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Additional cast call CLI flags"
            }
        },
        "required": ["contract_address", "signature"]
    }
}

CAST_SEND_SCHEMA = {
    "name": "cast_send",
    "description": "Send a transaction to a contract using cast.",
    "parameters": {
        "type": "object",
        "properties": {
            **_call_properties("The contract address to send to", "transfer(address,uint256)"),
            "private_key": {
                "type": "string",
                "description": "Private key to sign with (falls back to FOUNDRY_PRIVATE_KEY env var)"
            },
            "from_address": {
                "type": "string",
                "description": "From address"
            },
            "value": {
                "type": "string",
                "description": "ETH value to send"
            },
            "gas_limit": {
                "type": "string",
                "description": "Gas limit"
            },
            "gas_price": {
                "type": "string",
                "description": "Gas price"
            },
            "rpc_url": _RPC_URL_PROPERTY,
            "extra_args": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Additional cast send CLI flags"
            }
        },
        "required": ["contract_address", "signature"]
    }
}

CAST_ESTIMATE_GAS_SCHEMA = {
    "name": "cast_estimate_gas",
    "description": "Estimate gas cost for a transaction.",
    "parameters": {
        "type": "object",
        "properties": {
            **_call_properties("The contract address", "transfer(address,uint256)"),
            "from_address": {
                "type": "string",
                "description": "From address"
            },
            "value": {
                "type": "string",
                "description": "ETH value to send"
            },
            "rpc_url": _RPC_URL_PROPERTY,
            "extra_args": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Additional cast estimate CLI flags"
            }
        },
        "required": ["contract_address", "signature"]
    }
}

CAST_BALANCE_SCHEMA = {
    "name": "cast_balance",
    "description": "Get the ETH balance of an address.",
    "parameters": {
        "type": "object",
        "properties": {
            "address": {
                "type": "string",
                "description": "The address to check balance for"
            },
            "rpc_url": _RPC_URL_PROPERTY,
            "block_number": {
                "type": "string",
                "description": "Block number to query at"
            },
            "extra_args": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Additional cast balance CLI flags"
            }
        },
        "required": ["address"]
    }
}

CAST_WALLET_INFO_SCHEMA = {
    "name": "cast_wallet_info",
    "description": "Get the wallet address derived from the configured private key (FOUNDRY_PRIVATE_KEY).",
    "parameters": {"type": "object", "properties": {}, "required": []}
}


async def run_cast(args: List[str], **kwargs):
    return await run_command(CAST_EXECUTABLE, args, **kwargs)


def _missing_key_failure(tool: str, params: Dict[str, Any]) -> str:
    error = MissingCredentialError("No private key provided and FOUNDRY_PRIVATE_KEY is not set")
    return failure_payload(
        tool,
        params,
        error=str(error),
        error_kind=error.kind,
        notes=_MISSING_KEY_NOTES,
    ).to_json()


async def cast_call_tool(
    contract_address: str,
    signature: str,
    args: Optional[List[str]] = None,
    rpc_url: Optional[str] = None,
    block_number: Optional[str] = None,
    extra_args: Optional[List[str]] = None,
) -> str:
    """Run `cast call` against a contract."""
    cast_args = ["call"]
    if rpc_url:
        cast_args.extend(["--rpc-url", rpc_url])
    if block_number:
        cast_args.extend(["--block", str(block_number)])
    cast_args.extend([contract_address, signature, *(args or []), *(extra_args or [])])

    result = await run_cast(cast_args)
    params = {
        "contract_address": contract_address,
        "signature": signature,
        "args": args or [],
        "rpc_url": rpc_url,
        "block_number": block_number,
        "extra_args": extra_args or [],
    }
    return from_execution("cast_call", params, result, data={"args": cast_args}).to_json()


async def cast_send_tool(
    contract_address: str,
    signature: str,
    args: Optional[List[str]] = None,
    private_key: Optional[str] = None,
    from_address: Optional[str] = None,
    value: Optional[str] = None,
    gas_limit: Optional[str] = None,
    gas_price: Optional[str] = None,
    rpc_url: Optional[str] = None,
    extra_args: Optional[List[str]] = None,
) -> str:
    """
    Send a signed transaction with `cast send`.

    The explicit ``private_key`` wins over FOUNDRY_PRIVATE_KEY. With neither,
    no process is spawned and a missing_credential failure is returned.
    """
    params = redact_params(
        {
            "contract_address": contract_address,
            "signature": signature,
            "args": args or [],
            "private_key": private_key,
            "from_address": from_address,
            "value": value,
            "gas_limit": gas_limit,
            "gas_price": gas_price,
            "rpc_url": rpc_url,
            "extra_args": extra_args or [],
        },
        ("private_key",),
    )

    key = private_key or get_default_private_key()
    if not key:
        return _missing_key_failure("cast_send", params)

    cast_args = ["send"]
    if rpc_url:
        cast_args.extend(["--rpc-url", rpc_url])
    cast_args.extend(["--private-key", key])
    if from_address:
        cast_args.extend(["--from", from_address])
    if value:
        cast_args.extend(["--value", value])
    if gas_limit:
        cast_args.extend(["--gas-limit", gas_limit])
    if gas_price:
        cast_args.extend(["--gas-price", gas_price])
    cast_args.extend([contract_address, signature, *(args or []), *(extra_args or [])])

    result = await run_cast(cast_args)
    return from_execution(
        "cast_send",
        params,
        result,
        data={"args": redact_argv(cast_args, _SECRET_FLAGS)},
    ).to_json()


async def cast_estimate_gas_tool(
    contract_address: str,
    signature: str,
    args: Optional[List[str]] = None,
    from_address: Optional[str] = None,
    value: Optional[str] = None,
    rpc_url: Optional[str] = None,
    extra_args: Optional[List[str]] = None,
) -> str:
    """Estimate gas for a call with `cast estimate`."""
    cast_args = ["estimate"]
    if rpc_url:
        cast_args.extend(["--rpc-url", rpc_url])
    if from_address:
        cast_args.extend(["--from", from_address])
    if value:
        cast_args.extend(["--value", value])
    cast_args.extend([contract_address, signature, *(args or []), *(extra_args or [])])

    result = await run_cast(cast_args)
    params = {
        "contract_address": contract_address,
        "signature": signature,
        "args": args or [],
        "from_address": from_address,
        "value": value,
        "rpc_url": rpc_url,
        "extra_args": extra_args or [],
    }
    data: Dict[str, Any] = {"args": cast_args}
    if result.success:
        data["estimated_gas"] = result.stdout.strip()
    return from_execution("cast_estimate_gas", params, result, data=data).to_json()


async def cast_balance_tool(
    address: str,
    rpc_url: Optional[str] = None,
    block_number: Optional[str] = None,
    extra_args: Optional[List[str]] = None,
) -> str:
    cast_args = ["balance"]
    if rpc_url:
        cast_args.extend(["--rpc-url", rpc_url])
    if block_number:
        cast_args.extend(["--block", str(block_number)])
    cast_args.append(address)
    cast_args.extend(extra_args or [])

    result = await run_cast(cast_args)
    params = {
        "address": address,
        "rpc_url": rpc_url,
        "block_number": block_number,
        "extra_args": extra_args or [],
    }
    data: Dict[str, Any] = {"args": cast_args}
    if result.success:
        data["balance_wei"] = result.stdout.strip()
    return from_execution("cast_balance", params, result, data=data).to_json()


async def cast_wallet_info_tool() -> str:
    """Derive the address of the FOUNDRY_PRIVATE_KEY signer."""
    key = get_default_private_key()
    if not key:
        return _missing_key_failure("cast_wallet_info", {})

    cast_args = ["wallet", "address", "--private-key", key]
    result = await run_cast(cast_args)
    data: Dict[str, Any] = {"args": redact_argv(cast_args, _SECRET_FLAGS)}
    if not result.success:
        return from_execution("cast_wallet_info", {}, result, data=data).to_json()

    data["address"] = result.stdout.strip()
    return success_payload("cast_wallet_info", {}, result, data=data).to_json()


def check_cast_requirements() -> bool:
    """Check if the cast executable is on PATH."""
    return shutil.which(CAST_EXECUTABLE) is not None
