#!/usr/bin/env python3
"""
Model Tools Module

This module constructs tool schemas and handlers for AI model API calls.
It imports tools from the foundry_tools package and provides a unified
interface for defining tools and executing function calls.

Currently supports:
- Forge tools (build, test) from forge_tool.py
- Anvil tools (start, stop, status of the local node) from anvil_tool.py
- Cast tools (call, send, estimate, balance, wallet info) from cast_tool.py
- Chisel tools (scripted REPL sessions) from chisel_tool.py
- Gas tools (snapshots, comparisons, regressions, suggestions) from gas_tool.py
- Project tools (project layout) from project_tool.py

Usage:
    from model_tools import get_tool_definitions, handle_function_call

    # Get all available tool definitions for model API
    tools = get_tool_definitions()

    # Get specific toolsets
    cast_tools = get_tool_definitions(enabled_toolsets=['cast_tools'])

    # Handle function calls from model
    result = handle_function_call("cast_balance", {"address": "0x..."})
"""

import asyncio
import concurrent.futures
import logging
from typing import Any, Awaitable, Dict, List

from foundry_tools.forge_tool import (
    FORGE_BUILD_SCHEMA,
    FORGE_TEST_SCHEMA,
    check_forge_requirements,
    forge_build_tool,
    forge_test_tool,
)
from foundry_tools.anvil_tool import (
    ANVIL_START_SCHEMA,
    ANVIL_STATUS_SCHEMA,
    ANVIL_STOP_SCHEMA,
    anvil_start_tool,
    anvil_status_tool,
    anvil_stop_tool,
    check_anvil_requirements,
)
from foundry_tools.cast_tool import (
    CAST_BALANCE_SCHEMA,
    CAST_CALL_SCHEMA,
    CAST_ESTIMATE_GAS_SCHEMA,
    CAST_SEND_SCHEMA,
    CAST_WALLET_INFO_SCHEMA,
    cast_balance_tool,
    cast_call_tool,
    cast_estimate_gas_tool,
    cast_send_tool,
    cast_wallet_info_tool,
    check_cast_requirements,
)
from foundry_tools.chisel_tool import (
    CHISEL_DEBUG_EXPRESSION_SCHEMA,
    CHISEL_EXECUTE_CODE_SCHEMA,
    CHISEL_EXPERIMENT_BUILDER_SCHEMA,
    CHISEL_FETCH_INTERFACE_SCHEMA,
    CHISEL_SESSION_MANAGER_SCHEMA,
    check_chisel_requirements,
    chisel_debug_expression_tool,
    chisel_execute_code_tool,
    chisel_experiment_builder_tool,
    chisel_fetch_interface_tool,
    chisel_session_manager_tool,
)
from foundry_tools.gas_tool import (
    DEFAULT_BASELINE_SNAPSHOT,
    DEFAULT_REGRESSION_THRESHOLD,
    GAS_COMPARE_IMPLEMENTATIONS_SCHEMA,
    GAS_OPTIMIZATION_SUGGESTIONS_SCHEMA,
    GAS_PROFILE_FUNCTION_SCHEMA,
    GAS_REGRESSION_TEST_SCHEMA,
    gas_compare_implementations_tool,
    gas_optimization_suggestions_tool,
    gas_profile_function_tool,
    gas_regression_test_tool,
)
from foundry_tools.payload import failure_payload
from foundry_tools.project_tool import FOUNDRY_PROJECT_INFO_SCHEMA, foundry_project_info_tool

logger = logging.getLogger(__name__)

# Toolset name -> schemas, in the order tools are presented to the model
TOOLSET_SCHEMAS = {
    "forge_tools": [FORGE_BUILD_SCHEMA, FORGE_TEST_SCHEMA],
    "anvil_tools": [ANVIL_START_SCHEMA, ANVIL_STOP_SCHEMA, ANVIL_STATUS_SCHEMA],
    "cast_tools": [
        CAST_CALL_SCHEMA,
        CAST_SEND_SCHEMA,
        CAST_ESTIMATE_GAS_SCHEMA,
        CAST_BALANCE_SCHEMA,
        CAST_WALLET_INFO_SCHEMA,
    ],
    "chisel_tools": [
        CHISEL_EXECUTE_CODE_SCHEMA,
        CHISEL_DEBUG_EXPRESSION_SCHEMA,
        CHISEL_FETCH_INTERFACE_SCHEMA,
        CHISEL_SESSION_MANAGER_SCHEMA,
        CHISEL_EXPERIMENT_BUILDER_SCHEMA,
    ],
    "gas_tools": [
        GAS_PROFILE_FUNCTION_SCHEMA,
        GAS_COMPARE_IMPLEMENTATIONS_SCHEMA,
        GAS_REGRESSION_TEST_SCHEMA,
        GAS_OPTIMIZATION_SUGGESTIONS_SCHEMA,
    ],
    "project_tools": [FOUNDRY_PROJECT_INFO_SCHEMA],
}


def _as_definitions(schemas: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Wrap raw schemas in OpenAI's function-tool envelope."""
    return [{"type": "function", "function": schema} for schema in schemas]


def get_forge_tool_definitions() -> List[Dict[str, Any]]:
    return _as_definitions(TOOLSET_SCHEMAS["forge_tools"])


def get_anvil_tool_definitions() -> List[Dict[str, Any]]:
    return _as_definitions(TOOLSET_SCHEMAS["anvil_tools"])


def get_cast_tool_definitions() -> List[Dict[str, Any]]:
    return _as_definitions(TOOLSET_SCHEMAS["cast_tools"])


def get_chisel_tool_definitions() -> List[Dict[str, Any]]:
    return _as_definitions(TOOLSET_SCHEMAS["chisel_tools"])


def get_gas_tool_definitions() -> List[Dict[str, Any]]:
    return _as_definitions(TOOLSET_SCHEMAS["gas_tools"])


def get_project_tool_definitions() -> List[Dict[str, Any]]:
    return _as_definitions(TOOLSET_SCHEMAS["project_tools"])


def get_all_tool_names() -> List[str]:
    """
    Get the names of all tools across toolsets, whether or not their
    executables are installed.

    Returns:
        List[str]: List of all tool names
    """
    return [schema["name"] for schemas in TOOLSET_SCHEMAS.values() for schema in schemas]


def get_toolset_for_tool(tool_name: str) -> str:
    """
    Get the toolset that a tool belongs to.

    Args:
        tool_name (str): Name of the tool

    Returns:
        str: Name of the toolset, or "unknown" if not found
    """
    for toolset_name, schemas in TOOLSET_SCHEMAS.items():
        if any(schema["name"] == tool_name for schema in schemas):
            return toolset_name
    return "unknown"


def get_tool_definitions(
    enabled_tools: List[str] = None,
    disabled_tools: List[str] = None,
    enabled_toolsets: List[str] = None,
    disabled_toolsets: List[str] = None
) -> List[Dict[str, Any]]:
    """
    Get tool definitions for model API calls with optional filtering.

    Only toolsets whose executables are installed are included.

    Filter Priority (higher priority overrides lower):
    1. enabled_tools (highest priority - only these tools, overrides everything)
    2. disabled_tools (applied after toolset filtering)
    3. enabled_toolsets (only tools from these toolsets)
    4. disabled_toolsets (exclude tools from these toolsets)

    Args:
        enabled_tools (List[str]): Only include these specific tools
        disabled_tools (List[str]): Exclude these specific tools
        enabled_toolsets (List[str]): Only include tools from these toolsets
        disabled_toolsets (List[str]): Exclude tools from these toolsets

    Returns:
        List[Dict]: Filtered list of tool definitions

    Examples:
        # Only chisel tools
        tools = get_tool_definitions(enabled_toolsets=["chisel_tools"])

        # Everything except transactions
        tools = get_tool_definitions(disabled_tools=["cast_send"])
    """
    if enabled_tools and (enabled_toolsets or disabled_toolsets or disabled_tools):
        logger.warning("enabled_tools overrides all other filters")

    if enabled_toolsets and disabled_toolsets:
        overlap = set(enabled_toolsets) & set(disabled_toolsets)
        if overlap:
            logger.warning("Conflicting toolsets %s in both enabled and disabled; enabled_toolsets takes priority", overlap)

    availability = check_toolset_requirements()
    toolset_tools = {
        name: _as_definitions(schemas) if availability[name] else []
        for name, schemas in TOOLSET_SCHEMAS.items()
    }

    if enabled_tools:
        wanted = set(enabled_tools)
        filtered_tools = [
            tool for tools in toolset_tools.values() for tool in tools
            if tool["function"]["name"] in wanted
        ]
        missing_tools = wanted - {tool["function"]["name"] for tool in filtered_tools}
        if missing_tools:
            logger.warning("Requested tools not available: %s", missing_tools)
        return filtered_tools

    all_tools = []
    if enabled_toolsets:
        for toolset_name in enabled_toolsets:
            if toolset_name in toolset_tools:
                all_tools.extend(toolset_tools[toolset_name])
            else:
                logger.warning("Unknown toolset: %s", toolset_name)
    else:
        for toolset_name, tools in toolset_tools.items():
            if not disabled_toolsets or toolset_name not in disabled_toolsets:
                all_tools.extend(tools)

    if disabled_tools:
        excluded = set(disabled_tools)
        all_tools = [tool for tool in all_tools if tool["function"]["name"] not in excluded]

    return all_tools


def _run_async(coro: Awaitable[str]) -> str:
    """
    Run a tool coroutine to completion from synchronous code.

    Uses asyncio.run() normally; when called from inside a running event loop
    the coroutine gets its own loop on a worker thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


def handle_forge_function_call(function_name: str, function_args: Dict[str, Any]) -> str:
    """
    Handle function calls for forge tools.

    Args:
        function_name (str): Name of the forge function to call
        function_args (Dict): Arguments for the function

    Returns:
        str: Function result as JSON string
    """
    if function_name == "forge_build":
        return _run_async(forge_build_tool(
            profile=function_args.get("profile"),
            extra_args=function_args.get("extra_args"),
        ))

    elif function_name == "forge_test":
        return _run_async(forge_test_tool(
            match_test=function_args.get("match_test"),
            match_path=function_args.get("match_path"),
            profile=function_args.get("profile"),
            extra_args=function_args.get("extra_args"),
        ))

    else:
        return failure_payload(function_name, function_args, error=f"Unknown forge function: {function_name}").to_json()


def handle_anvil_function_call(function_name: str, function_args: Dict[str, Any]) -> str:
    """Handle function calls for anvil tools."""
    if function_name == "anvil_start":
        return _run_async(anvil_start_tool(
            port=function_args.get("port"),
            chain_id=function_args.get("chain_id"),
            accounts=function_args.get("accounts"),
            balance=function_args.get("balance"),
            mnemonic=function_args.get("mnemonic"),
            fork_url=function_args.get("fork_url"),
            fork_block_number=function_args.get("fork_block_number"),
            extra_args=function_args.get("extra_args"),
        ))

    elif function_name == "anvil_stop":
        return _run_async(anvil_stop_tool())

    elif function_name == "anvil_status":
        return _run_async(anvil_status_tool())

    else:
        return failure_payload(function_name, function_args, error=f"Unknown anvil function: {function_name}").to_json()


def handle_cast_function_call(function_name: str, function_args: Dict[str, Any]) -> str:
    """Handle function calls for cast tools."""
    if function_name == "cast_call":
        return _run_async(cast_call_tool(
            contract_address=function_args.get("contract_address", ""),
            signature=function_args.get("signature", ""),
            args=function_args.get("args"),
            rpc_url=function_args.get("rpc_url"),
            block_number=function_args.get("block_number"),
            extra_args=function_args.get("extra_args"),
        ))

    elif function_name == "cast_send":
        return _run_async(cast_send_tool(
            contract_address=function_args.get("contract_address", ""),
            signature=function_args.get("signature", ""),
            args=function_args.get("args"),
            private_key=function_args.get("private_key"),
            from_address=function_args.get("from_address"),
            value=function_args.get("value"),
            gas_limit=function_args.get("gas_limit"),
            gas_price=function_args.get("gas_price"),
            rpc_url=function_args.get("rpc_url"),
            extra_args=function_args.get("extra_args"),
        ))

    elif function_name == "cast_estimate_gas":
        return _run_async(cast_estimate_gas_tool(
            contract_address=function_args.get("contract_address", ""),
            signature=function_args.get("signature", ""),
            args=function_args.get("args"),
            from_address=function_args.get("from_address"),
            value=function_args.get("value"),
            rpc_url=function_args.get("rpc_url"),
            extra_args=function_args.get("extra_args"),
        ))

    elif function_name == "cast_balance":
        return _run_async(cast_balance_tool(
            address=function_args.get("address", ""),
            rpc_url=function_args.get("rpc_url"),
            block_number=function_args.get("block_number"),
            extra_args=function_args.get("extra_args"),
        ))

    elif function_name == "cast_wallet_info":
        return _run_async(cast_wallet_info_tool())

    else:
        return failure_payload(function_name, function_args, error=f"Unknown cast function: {function_name}").to_json()


def handle_chisel_function_call(function_name: str, function_args: Dict[str, Any]) -> str:
    """Handle function calls for chisel tools."""
    if function_name == "chisel_execute_code":
        code = function_args.get("code", "")
        if not code:
            return failure_payload(function_name, function_args, error="code is required for chisel_execute_code").to_json()
        return _run_async(chisel_execute_code_tool(
            code=code,
            session_id=function_args.get("session_id"),
            save_session=function_args.get("save_session", False),
            enable_traces=function_args.get("enable_traces", False),
            fork_url=function_args.get("fork_url"),
        ))

    elif function_name == "chisel_debug_expression":
        return _run_async(chisel_debug_expression_tool(
            code=function_args.get("code", ""),
            debug_level=function_args.get("debug_level", "basic"),
            variables=function_args.get("variables"),
            fork_url=function_args.get("fork_url"),
        ))

    elif function_name == "chisel_fetch_interface":
        return _run_async(chisel_fetch_interface_tool(
            contract_address=function_args.get("contract_address", ""),
            interface_name=function_args.get("interface_name", ""),
            session_id=function_args.get("session_id"),
            save_session=function_args.get("save_session", False),
            test_call=function_args.get("test_call"),
            fork_url=function_args.get("fork_url"),
        ))

    elif function_name == "chisel_session_manager":
        return _run_async(chisel_session_manager_tool(
            action=function_args.get("action", ""),
            session_id=function_args.get("session_id"),
            new_session_name=function_args.get("new_session_name"),
        ))

    elif function_name == "chisel_experiment_builder":
        return _run_async(chisel_experiment_builder_tool(
            experiment=function_args.get("experiment") or {},
            save_experiment=function_args.get("save_experiment", False),
            enable_debugging=function_args.get("enable_debugging", False),
        ))

    else:
        return failure_payload(function_name, function_args, error=f"Unknown chisel function: {function_name}").to_json()


def handle_gas_function_call(function_name: str, function_args: Dict[str, Any]) -> str:
    """Handle function calls for gas tools."""
    if function_name == "gas_profile_function":
        return _run_async(gas_profile_function_tool(
            contract_name=function_args.get("contract_name", ""),
            function_name=function_args.get("function_name", ""),
            test_inputs=function_args.get("test_inputs"),
            create_baseline=function_args.get("create_baseline", False),
        ))

    elif function_name == "gas_compare_implementations":
        return _run_async(gas_compare_implementations_tool(
            implementation_tests=function_args.get("implementation_tests") or [],
            baseline_test=function_args.get("baseline_test"),
            output_format=function_args.get("output_format", "table"),
        ))

    elif function_name == "gas_regression_test":
        return _run_async(gas_regression_test_tool(
            baseline_snapshot=function_args.get("baseline_snapshot", DEFAULT_BASELINE_SNAPSHOT),
            threshold=float(function_args.get("threshold", DEFAULT_REGRESSION_THRESHOLD)),
            generate_report=function_args.get("generate_report", True),
            fail_on_regression=function_args.get("fail_on_regression", False),
        ))

    elif function_name == "gas_optimization_suggestions":
        return _run_async(gas_optimization_suggestions_tool(
            contract_name=function_args.get("contract_name"),
            focus_area=function_args.get("focus_area"),
        ))

    else:
        return failure_payload(function_name, function_args, error=f"Unknown gas function: {function_name}").to_json()


def handle_function_call(function_name: str, function_args: Dict[str, Any]) -> str:
    """
    Main function call dispatcher that routes calls to appropriate toolsets.

    Args:
        function_name (str): Name of the function to call
        function_args (Dict): Arguments for the function

    Returns:
        str: Function result as JSON string

    Raises:
        None: Returns error as JSON string instead of raising exceptions
    """
    function_args = function_args or {}
    try:
        toolset = get_toolset_for_tool(function_name)

        if toolset == "forge_tools":
            return handle_forge_function_call(function_name, function_args)

        elif toolset == "anvil_tools":
            return handle_anvil_function_call(function_name, function_args)

        elif toolset == "cast_tools":
            return handle_cast_function_call(function_name, function_args)

        elif toolset == "chisel_tools":
            return handle_chisel_function_call(function_name, function_args)

        elif toolset == "gas_tools":
            return handle_gas_function_call(function_name, function_args)

        elif toolset == "project_tools":
            return _run_async(foundry_project_info_tool())

        else:
            error_msg = f"Unknown function: {function_name}"
            logger.error(error_msg)
            return failure_payload(function_name, function_args, error=error_msg).to_json()

    except Exception as e:
        logger.exception("Error executing %s", function_name)
        return failure_payload(function_name, function_args, error=f"Error executing {function_name}: {str(e)}").to_json()


def get_available_toolsets() -> Dict[str, Dict[str, Any]]:
    """
    Get information about all toolsets and their status.

    Returns:
        Dict: Information about each toolset including availability and tools
    """
    availability = check_toolset_requirements()
    descriptions = {
        "forge_tools": ("Compile contracts and run Solidity tests", ["forge executable on PATH"]),
        "anvil_tools": ("Start, stop and inspect the local Anvil node", ["anvil executable on PATH"]),
        "cast_tools": (
            "Contract calls, transactions, gas estimates, balances and wallet info",
            ["cast executable on PATH", "FOUNDRY_PRIVATE_KEY for cast_send/cast_wallet_info"],
        ),
        "chisel_tools": ("Scripted Chisel REPL sessions for Solidity experiments", ["chisel executable on PATH"]),
        "gas_tools": ("Gas snapshots, comparisons, regression checks and suggestions", ["forge executable on PATH"]),
        "project_tools": ("Paths of the current Foundry project", []),
    }
    return {
        name: {
            "available": availability[name],
            "tools": [schema["name"] for schema in schemas],
            "description": descriptions[name][0],
            "requirements": descriptions[name][1],
        }
        for name, schemas in TOOLSET_SCHEMAS.items()
    }


def check_toolset_requirements() -> Dict[str, bool]:
    """
    Check if all requirements for available toolsets are met.

    Returns:
        Dict: Status of each toolset's requirements
    """
    return {
        "forge_tools": check_forge_requirements(),
        "anvil_tools": check_anvil_requirements(),
        "cast_tools": check_cast_requirements(),
        "chisel_tools": check_chisel_requirements(),
        "gas_tools": check_forge_requirements(),
        "project_tools": True,
    }


if __name__ == "__main__":
    """
    Simple test/demo when run directly
    """
    print("🛠️  Model Tools Module")
    print("=" * 40)

    requirements = check_toolset_requirements()
    print("📋 Toolset Requirements:")
    for toolset, available in requirements.items():
        status = "✅" if available else "❌"
        print(f"  {status} {toolset}: {'Available' if available else 'Missing requirements'}")

    all_tool_names = get_all_tool_names()
    print(f"\n🔧 Tools ({len(all_tool_names)} total):")
    for tool_name in all_tool_names:
        print(f"  📌 {tool_name} (from {get_toolset_for_tool(tool_name)})")
