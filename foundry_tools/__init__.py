#!/usr/bin/env python3
"""
Foundry Tools Package

Tool implementations that drive the Foundry toolchain on behalf of an agent.
Each module wraps one executable:

- forge_tool: compile and test (`forge build`, `forge test`)
- anvil_tool: lifecycle of the single local Anvil node
- cast_tool: contract calls, transactions, balances and wallet info
- chisel_tool: scripted Chisel REPL sessions
- gas_tool: gas snapshots, comparisons and regression checks
- project_tool: paths of the current Foundry project

The tools are imported into model_tools.py which provides a unified interface
for the agent to access all capabilities.
"""

# Compile / test
from .forge_tool import (
    forge_build_tool,
    forge_test_tool,
    check_forge_requirements
)

# Local node (background process)
from .anvil_tool import (
    anvil_start_tool,
    anvil_stop_tool,
    anvil_status_tool,
    cleanup_anvil,
    install_signal_handlers,
    check_anvil_requirements
)

from .cast_tool import (
    cast_call_tool,
    cast_send_tool,
    cast_estimate_gas_tool,
    cast_balance_tool,
    cast_wallet_info_tool,
    check_cast_requirements
)

# Interactive REPL
from .chisel_tool import (
    chisel_execute_code_tool,
    chisel_debug_expression_tool,
    chisel_fetch_interface_tool,
    chisel_session_manager_tool,
    chisel_experiment_builder_tool,
    check_chisel_requirements
)

from .gas_tool import (
    gas_profile_function_tool,
    gas_compare_implementations_tool,
    gas_regression_test_tool,
    gas_optimization_suggestions_tool,
    GasDelta,
    parse_snapshot_diff
)

from .project_tool import foundry_project_info_tool

__all__ = [
    # Forge tools
    'forge_build_tool',
    'forge_test_tool',
    'check_forge_requirements',
    # Anvil tools
    'anvil_start_tool',
    'anvil_stop_tool',
    'anvil_status_tool',
    'cleanup_anvil',
    'install_signal_handlers',
    'check_anvil_requirements',
    # Cast tools
    'cast_call_tool',
    'cast_send_tool',
    'cast_estimate_gas_tool',
    'cast_balance_tool',
    'cast_wallet_info_tool',
    'check_cast_requirements',
    # Chisel tools
    'chisel_execute_code_tool',
    'chisel_debug_expression_tool',
    'chisel_fetch_interface_tool',
    'chisel_session_manager_tool',
    'chisel_experiment_builder_tool',
    'check_chisel_requirements',
    # Gas tools
    'gas_profile_function_tool',
    'gas_compare_implementations_tool',
    'gas_regression_test_tool',
    'gas_optimization_suggestions_tool',
    'GasDelta',
    'parse_snapshot_diff',
    # Project info
    'foundry_project_info_tool',
]
