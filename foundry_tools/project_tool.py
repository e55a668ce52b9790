#!/usr/bin/env python3
"""
Project Info Tool

Reports the layout of the Foundry project the other tools operate on.
"""

import os

from foundry_tools.payload import success_payload
from foundry_tools.process.base import get_project_root

FOUNDRY_PROJECT_INFO_SCHEMA = {
    "name": "foundry_project_info",
    "description": "Return basic paths for the current Foundry project (src, test, script).",
    "parameters": {"type": "object", "properties": {}, "required": []}
}


def get_project_info() -> dict:
    root = get_project_root()
    return {
        "project_root": root,
        "src_dir": os.path.join(root, "src"),
        "test_dir": os.path.join(root, "test"),
        "script_dir": os.path.join(root, "script"),
        "has_foundry_toml": os.path.isfile(os.path.join(root, "foundry.toml")),
    }


async def foundry_project_info_tool() -> str:
    return success_payload("foundry_project_info", {}, data=get_project_info()).to_json()
