#!/usr/bin/env python3
"""
Chisel Tools Module

Scripted conversations with the `chisel` Solidity REPL. Each tool builds a
ChiselScript, feeds it to a fresh chisel process over stdin and returns the
full transcript. Input lines are not correlated with output fragments.

Available tools:
- chisel_execute_code: run an expression or statement, optionally in a saved session
- chisel_debug_expression: run code with traces plus memory/stack dumps
- chisel_fetch_interface: pull a verified contract interface from Etherscan
- chisel_session_manager: list/view/load/save/export/clear cached sessions
- chisel_experiment_builder: multi-step setup/tests/inspection experiments

Usage:
    from foundry_tools.chisel_tool import chisel_execute_code_tool

    result = await chisel_execute_code_tool("uint256 x = 42;", save_session=True)
"""

import logging
import shutil
from typing import Any, Dict, List, Optional

from foundry_tools.chisel_script import (
    DEBUG_LEVELS,
    ChiselScript,
    build_execute_script,
    looks_like_statement,
    sanitize_name,
)
from foundry_tools.payload import failure_payload, from_exception, from_execution, success_payload
from foundry_tools.process import ExecutionResult, FoundryToolError, run_command, run_interactive, script_artifact
from foundry_tools.process.base import get_project_root

logger = logging.getLogger(__name__)

CHISEL_EXECUTABLE = "chisel"

# Used for test calls after !fetch when no fork URL is given
DEFAULT_FETCH_FORK_URL = "https://rpc.ankr.com/eth"

SESSION_ACTIONS = ("list", "load", "save", "view", "clear_cache", "export")

EXECUTION_NOTES = [
    "Expressions return immediate values without persisting state",
    "Statements (ending with ;) persist in the session",
    "Use !source to see the generated contract code",
    "Enable traces to see detailed execution information",
]

DEBUGGING_TIPS = [
    "Memory dump shows the raw memory layout after execution",
    "Stack dump reveals the EVM stack state",
    "Raw stack shows actual variable storage for < 32 byte variables",
    "Traces provide step-by-step execution details",
]

INTERFACE_USAGE_NOTES = [
    "Interface is now available in your Chisel session",
    "You can interact with the contract using the interface",
    "Fork mainnet to test actual contract interactions",
    "Save the session to reuse the interface later",
]

INTERFACE_TROUBLESHOOTING = [
    "Ensure the contract address is verified on Etherscan",
    "Only Ethereum mainnet contracts are currently supported",
    "Check that the address format is correct (0x...)",
]

SESSION_TIPS = [
    "Sessions persist your Solidity state across Chisel runs",
    "Use descriptive session names for better organization",
    "Export sessions to Foundry scripts for permanent storage",
    "Sessions are stored in ~/.foundry/cache/chisel/",
]

EXPERIMENT_FEATURES = [
    "Multi-step testing with persistent state",
    "Variable inspection and debugging",
    "Fork testing with real blockchain state",
    "Automated experiment execution and documentation",
]


CHISEL_EXECUTE_CODE_SCHEMA = {
    "name": "chisel_execute_code",
    "description": "Execute Solidity expressions or statements in an interactive Chisel session.",
    "parameters": {
        "type": "object",
        "properties": {
            "code": {
                "type": "string",
                "description": "Solidity code to execute (expression or statement)"
            },
            "session_id": {
                "type": "string",
                "description": "Optional session ID to load existing session"
            },
            "save_session": {
                "type": "boolean",
                "description": "Save the session after execution for future use"
            },
            "enable_traces": {
                "type": "boolean",
                "description": "Enable execution traces for debugging"
            },
            "fork_url": {
                "type": "string",
                "description": "Fork from this RPC URL for mainnet state"
            }
        },
        "required": ["code"]
    }
}

CHISEL_DEBUG_EXPRESSION_SCHEMA = {
    "name": "chisel_debug_expression",
    "description": "Execute code in Chisel with detailed debugging information including memory and stack dumps.",
    "parameters": {
        "type": "object",
        "properties": {
            "code": {
                "type": "string",
                "description": "Solidity code to debug"
            },
            "debug_level": {
                "type": "string",
                "enum": list(DEBUG_LEVELS),
                "description": "Level of debugging detail (default: basic)"
            },
            "variables": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Variable names to inspect with !rawstack"
            },
            "fork_url": {
                "type": "string",
                "description": "Fork from RPC for debugging with real state"
            }
        },
        "required": ["code"]
    }
}

CHISEL_FETCH_INTERFACE_SCHEMA = {
    "name": "chisel_fetch_interface",
    "description": "Fetch the interface of a verified contract from Etherscan and make it available in Chisel.",
    "parameters": {
        "type": "object",
        "properties": {
            "contract_address": {
                "type": "string",
                "description": "Address of the verified contract on Ethereum mainnet"
            },
            "interface_name": {
                "type": "string",
                "description": "Name to assign to the interface in Chisel"
            },
            "session_id": {
                "type": "string",
                "description": "Session ID to load/save"
            },
            "save_session": {
                "type": "boolean",
                "description": "Save session after fetching interface"
            },
            "test_call": {
                "type": "string",
                "description": "Optional function call to test the interface"
            },
            "fork_url": {
                "type": "string",
                "description": f"RPC URL to fork for the test call (default: {DEFAULT_FETCH_FORK_URL})"
            }
        },
        "required": ["contract_address", "interface_name"]
    }
}

CHISEL_SESSION_MANAGER_SCHEMA = {
    "name": "chisel_session_manager",
    "description": "List, load, save, and manage Chisel sessions for persistent experimentation.",
    "parameters": {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "enum": list(SESSION_ACTIONS),
                "description": "Session management action"
            },
            "session_id": {
                "type": "string",
                "description": "Session ID for load/save/view/export actions"
            },
            "new_session_name": {
                "type": "string",
                "description": "Name for saving a new session"
            }
        },
        "required": ["action"]
    }
}

CHISEL_EXPERIMENT_BUILDER_SCHEMA = {
    "name": "chisel_experiment_builder",
    "description": "Create multi-step Solidity experiments for testing complex logic, gas optimization, or learning.",
    "parameters": {
        "type": "object",
        "properties": {
            "experiment": {
                "type": "object",
                "description": "Experiment configuration",
                "properties": {
                    "name": {"type": "string", "description": "Name of the experiment"},
                    "description": {"type": "string", "description": "Description of what this tests"},
                    "setup": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Setup code statements"
                    },
                    "tests": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Test expressions/statements"
                    },
                    "variables": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Variables to inspect"
                    },
                    "fork": {"type": "string", "description": "Fork URL for testing with real state"}
                },
                "required": ["name", "description", "tests"]
            },
            "save_experiment": {
                "type": "boolean",
                "description": "Save the experiment as a session"
            },
            "enable_debugging": {
                "type": "boolean",
                "description": "Enable detailed debugging output"
            }
        },
        "required": ["experiment"]
    }
}


async def run_chisel_script(script: ChiselScript, keep_artifact: bool = False) -> ExecutionResult:
    """
    Run a built script through chisel.

    With ``keep_artifact`` the script is also written to a temporary
    `.chisel_script_*.txt` file in the project root for the duration of the
    run; the file is removed whether or not chisel succeeds.
    """
    lines = script.build()
    if not keep_artifact:
        return await run_interactive(lines, executable=CHISEL_EXECUTABLE)
    with script_artifact(lines, get_project_root()) as path:
        logger.debug("chisel script written to %s", path)
        return await run_interactive(lines, executable=CHISEL_EXECUTABLE)


async def chisel_execute_code_tool(
    code: str,
    session_id: Optional[str] = None,
    save_session: bool = False,
    enable_traces: bool = False,
    fork_url: Optional[str] = None,
) -> str:
    """
    Execute Solidity code in a scripted chisel session.

    Statements (anything that looks like an assignment, function or contract)
    also get a !source dump of the generated contract.

    Returns:
        str: JSON payload with the transcript and the saved session id, if any
    """
    params = {
        "code": code,
        "session_id": session_id,
        "save_session": save_session,
        "enable_traces": enable_traces,
        "fork_url": fork_url,
    }
    script = build_execute_script(
        code,
        session_id=session_id,
        fork_url=fork_url,
        enable_traces=enable_traces,
        save_session=save_session,
        show_source=looks_like_statement(code),
    )

    try:
        result = await run_chisel_script(script, keep_artifact=True)
    except FoundryToolError as e:
        return from_exception("chisel_execute_code", params, e).to_json()

    data = {
        "code": code,
        "session_id": script.saved_session_id or session_id,
        "script": script.build(),
    }
    return success_payload("chisel_execute_code", params, result, data=data, notes=EXECUTION_NOTES).to_json()


async def chisel_debug_expression_tool(
    code: str,
    debug_level: str = "basic",
    variables: Optional[List[str]] = None,
    fork_url: Optional[str] = None,
) -> str:
    """Run code with traces on and the requested memory/stack dumps."""
    variables = variables or []
    params = {"code": code, "debug_level": debug_level, "variables": variables, "fork_url": fork_url}

    script = ChiselScript()
    if fork_url:
        script.fork(fork_url)
    script.traces().code(code)
    try:
        script.debug(debug_level, variables)
    except ValueError as e:
        return failure_payload("chisel_debug_expression", params, error=str(e)).to_json()
    script.source()

    try:
        result = await run_chisel_script(script)
    except FoundryToolError as e:
        return from_exception("chisel_debug_expression", params, e).to_json()

    data = {"code": code, "debug_level": debug_level, "inspected_variables": variables}
    return success_payload("chisel_debug_expression", params, result, data=data, notes=DEBUGGING_TIPS).to_json()


async def chisel_fetch_interface_tool(
    contract_address: str,
    interface_name: str,
    session_id: Optional[str] = None,
    save_session: bool = False,
    test_call: Optional[str] = None,
    fork_url: Optional[str] = None,
) -> str:
    """
    Fetch a verified contract's interface from Etherscan into a session.

    A ``test_call`` runs against a fork of ``fork_url`` (mainnet by default)
    right after the fetch.
    """
    params = {
        "contract_address": contract_address,
        "interface_name": interface_name,
        "session_id": session_id,
        "save_session": save_session,
        "test_call": test_call,
        "fork_url": fork_url,
    }

    script = ChiselScript()
    if session_id:
        script.load(session_id)
    script.fetch_interface(contract_address, interface_name)
    if test_call:
        script.fork(fork_url or DEFAULT_FETCH_FORK_URL).code(test_call)
    script.source()
    if save_session:
        script.save(session_id, prefix=f"interface_{sanitize_name(interface_name)}")

    try:
        result = await run_chisel_script(script)
    except FoundryToolError as e:
        return from_exception("chisel_fetch_interface", params, e, notes=INTERFACE_TROUBLESHOOTING).to_json()

    data = {
        "contract_address": contract_address,
        "interface_name": interface_name,
        "test_call": test_call,
        "session_id": script.saved_session_id or session_id,
    }
    return success_payload("chisel_fetch_interface", params, result, data=data, notes=INTERFACE_USAGE_NOTES).to_json()


def _session_script(action: str, session_id: Optional[str], new_session_name: Optional[str]) -> ChiselScript:
    script = ChiselScript()
    if action == "load":
        script.load(session_id).source()
    elif action == "save":
        script.save(new_session_name or session_id or "default")
    elif action == "export":
        script.load(session_id).export()
    return script


async def chisel_session_manager_tool(
    action: str,
    session_id: Optional[str] = None,
    new_session_name: Optional[str] = None,
) -> str:
    """
    Manage cached chisel sessions.

    list, view and clear_cache are one-shot `chisel` subcommands; load, save
    and export need a REPL script. view, load and export require session_id.
    """
    tool = "chisel_session_manager"
    params = {"action": action, "session_id": session_id, "new_session_name": new_session_name}

    if action not in SESSION_ACTIONS:
        return failure_payload(
            tool, params, error=f"Unknown action: {action}. Use one of {', '.join(SESSION_ACTIONS)}"
        ).to_json()
    if action in ("view", "load", "export") and not session_id:
        return failure_payload(tool, params, error=f"Session ID required for {action} action").to_json()

    data: Dict[str, Any] = {"action": action, "session_id": session_id}

    if action in ("list", "view", "clear_cache"):
        cli_args = {"list": ["list"], "view": ["view", session_id], "clear_cache": ["clear-cache"]}[action]
        result = await run_command(CHISEL_EXECUTABLE, cli_args)
        data["args"] = cli_args
        return from_execution(tool, params, result, data=data, notes=SESSION_TIPS).to_json()

    script = _session_script(action, session_id, new_session_name)
    try:
        result = await run_chisel_script(script)
    except FoundryToolError as e:
        return from_exception(tool, params, e, data=data).to_json()

    if script.saved_session_id:
        data["session_id"] = script.saved_session_id
    return success_payload(tool, params, result, data=data, notes=SESSION_TIPS).to_json()


def build_experiment_script(
    experiment: Dict[str, Any],
    save_experiment: bool = False,
    enable_debugging: bool = False,
) -> ChiselScript:
    """Lay out setup, tests and variable inspection as commented sections."""
    script = ChiselScript()
    if experiment.get("fork"):
        script.fork(experiment["fork"])
    if enable_debugging:
        script.traces()

    setup = experiment.get("setup") or []
    if setup:
        script.comment(f"SETUP: {experiment.get('description', '')}")
        script.code(*setup)

    script.comment("TESTS")
    script.code(*(experiment.get("tests") or []))

    variables = experiment.get("variables") or []
    if variables:
        script.comment("VARIABLE INSPECTION")
        script.code(*variables)
        if enable_debugging:
            for variable in variables:
                script.rawstack(variable)

    script.source()
    if save_experiment:
        script.save(prefix=f"exp_{sanitize_name(experiment['name'])}")
    return script


async def chisel_experiment_builder_tool(
    experiment: Dict[str, Any],
    save_experiment: bool = False,
    enable_debugging: bool = False,
) -> str:
    """Run a multi-step experiment in one chisel session."""
    tool = "chisel_experiment_builder"
    params = {"experiment": experiment, "save_experiment": save_experiment, "enable_debugging": enable_debugging}

    if not experiment.get("name") or not experiment.get("tests"):
        return failure_payload(tool, params, error="experiment requires a name and at least one test").to_json()

    script = build_experiment_script(experiment, save_experiment, enable_debugging)
    try:
        result = await run_chisel_script(script)
    except FoundryToolError as e:
        return from_exception(tool, params, e).to_json()

    data = {"experiment": experiment, "session_id": script.saved_session_id}
    return success_payload(tool, params, result, data=data, notes=EXPERIMENT_FEATURES).to_json()


def check_chisel_requirements() -> bool:
    """Check if the chisel executable is on PATH."""
    return shutil.which(CHISEL_EXECUTABLE) is not None
