#!/usr/bin/env python3
"""
Forge Tools Module

Compile and test the Foundry project in PROJECT_ROOT with `forge`.

Usage:
    from foundry_tools.forge_tool import forge_build_tool, forge_test_tool

    result = await forge_build_tool(profile="ci")
    result = await forge_test_tool(match_test="testTransfer", extra_args=["-vvvv"])
"""

import shutil
from typing import Any, Dict, List, Optional

from foundry_tools.payload import from_execution
from foundry_tools.process import run_command

FORGE_EXECUTABLE = "forge"

FORGE_BUILD_SCHEMA = {
    "name": "forge_build",
    "description": "Run `forge build` in the current Foundry project to compile contracts.",
    "parameters": {
        "type": "object",
        "properties": {
            "profile": {
                "type": "string",
                "description": "Optional Foundry profile to use"
            },
            "extra_args": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Additional forge build CLI flags"
            }
        },
        "required": []
    }
}

FORGE_TEST_SCHEMA = {
    "name": "forge_test",
    "description": "Run `forge test` with optional filters and flags to execute Solidity tests.",
    "parameters": {
        "type": "object",
        "properties": {
            "match_test": {
                "type": "string",
                "description": "Value for `--match-test` to run a single test or pattern"
            },
            "match_path": {
                "type": "string",
                "description": "Value for `--match-path` to filter test files"
            },
            "profile": {
                "type": "string",
                "description": "Optional Foundry profile to use"
            },
            "extra_args": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Additional forge test CLI flags, e.g. ['-vvvv']"
            }
        },
        "required": []
    }
}


async def run_forge(args: List[str], **kwargs):
    return await run_command(FORGE_EXECUTABLE, args, **kwargs)


async def forge_build_tool(profile: Optional[str] = None, extra_args: Optional[List[str]] = None) -> str:
    """
    Compile contracts with `forge build`.

    Returns:
        str: JSON payload with success, args, stdout and stderr
    """
    args = ["build"]
    if profile:
        args.extend(["--profile", profile])
    args.extend(extra_args or [])

    result = await run_forge(args)
    params = {"profile": profile, "extra_args": extra_args or []}
    return from_execution("forge_build", params, result, data={"args": args}).to_json()


async def forge_test_tool(
    match_test: Optional[str] = None,
    match_path: Optional[str] = None,
    profile: Optional[str] = None,
    extra_args: Optional[List[str]] = None,
) -> str:
    """
    Run Solidity tests with `forge test`.

    Returns:
        str: JSON payload with success, args, stdout and stderr
    """
    args = ["test"]
    if match_test:
        args.extend(["--match-test", match_test])
    if match_path:
        args.extend(["--match-path", match_path])
    if profile:
        args.extend(["--profile", profile])
    args.extend(extra_args or [])

    result = await run_forge(args)
    params: Dict[str, Any] = {
        "match_test": match_test,
        "match_path": match_path,
        "profile": profile,
        "extra_args": extra_args or [],
    }
    return from_execution("forge_test", params, result, data={"args": args}).to_json()


def check_forge_requirements() -> bool:
    """Check if the forge executable is on PATH."""
    return shutil.which(FORGE_EXECUTABLE) is not None
