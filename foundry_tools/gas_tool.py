#!/usr/bin/env python3
"""
Gas Tools Module

Gas profiling on top of `forge snapshot` and `forge test --gas-report`.

Available tools:
- gas_profile_function: snapshot the tests of one function, optionally as a baseline
- gas_compare_implementations: snapshot several tests and diff them against a baseline test
- gas_regression_test: diff the current snapshot against a baseline and flag regressions
- gas_optimization_suggestions: gas report plus a checklist per focus area

Regression detection parses each `forge snapshot --diff` line into a GasDelta
instead of matching on formatted text downstream.

Usage:
    from foundry_tools.gas_tool import gas_regression_test_tool

    result = await gas_regression_test_tool(threshold=2.5, fail_on_regression=True)
"""

import logging
import os
import re
import shutil
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from foundry_tools.chisel_script import sanitize_name
from foundry_tools.forge_tool import run_forge
from foundry_tools.payload import failure_payload, from_execution, success_payload
from foundry_tools.process.base import get_project_root

logger = logging.getLogger(__name__)

DEFAULT_BASELINE_SNAPSHOT = ".gas-snapshot"
CURRENT_SNAPSHOT = ".gas-snapshot-current"
DEFAULT_REGRESSION_THRESHOLD = 5.0

OUTPUT_FORMATS = ("table", "json", "diff")
FOCUS_AREAS = ("deployment", "functions", "loops", "storage", "external_calls")

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")

# e.g. "CounterTest:test_Increment() (gas: +1203 (2.350%))"
_DIFF_LINE = re.compile(
    r"^(?P<test>\S.*?)\s+\(gas:\s*(?P<delta>[+-]?\d+)\s+\((?P<pct>[+-]?(?:\d+(?:\.\d*)?|\.\d+|inf))%\)\)"
)

PROFILE_TIPS = [
    "Use vm.snapshotGasLeft() and vm.snapshotGas() in tests for precise measurements",
    "Test with different input sizes to identify scaling issues",
    "Compare gas usage with equivalent functions from gas-optimized libraries",
    "Consider assembly optimizations for frequently called functions",
]

COMPARISON_SUGGESTIONS = [
    "Look for patterns in gas differences across implementations",
    "Identify which operations cause the most gas variance",
    "Consider hybrid approaches combining the best aspects of each implementation",
    "Test with realistic input sizes and edge cases",
]

REGRESSION_RECOMMENDATIONS = [
    "Review recent code changes that may have increased gas usage",
    "Run gas_profile_function on affected functions for detailed analysis",
    "Consider reverting changes if gas increase is not justified",
    "Update baseline snapshot if gas increase is intentional",
]

NO_REGRESSION_RECOMMENDATIONS = [
    "No gas regressions detected",
    "Consider updating baseline snapshot to current version",
]

OPTIMIZATION_CATEGORIES = {
    "deployment": {
        "category": "Deployment Optimization",
        "suggestions": [
            "Use --via-ir compilation for large contracts",
            "Increase optimizer_runs for frequently deployed contracts",
            "Consider splitting large contracts into smaller modules",
            "Remove unused imports and functions",
            "Use custom errors instead of string messages",
        ],
    },
    "functions": {
        "category": "Function Optimization",
        "suggestions": [
            "Pack struct variables to minimize storage slots",
            "Use uint256 instead of smaller integers to avoid conversions",
            "Cache array lengths in loops",
            "Use assembly for simple operations in hot paths",
            "Prefer external over public for functions not called internally",
        ],
    },
    "loops": {
        "category": "Loop Optimization",
        "suggestions": [
            "Cache array.length before loops",
            "Use unchecked blocks for loop counters when overflow is impossible",
            "Consider batch operations instead of individual calls in loops",
            "Pre-increment (++i) instead of post-increment (i++)",
            "Break early from loops when possible",
        ],
    },
    "storage": {
        "category": "Storage Optimization",
        "suggestions": [
            "Pack multiple variables into single storage slots",
            "Use mappings instead of arrays when possible",
            "Delete storage variables when no longer needed",
            "Use constants and immutables instead of storage variables",
            "Minimize SSTORE operations by batching updates",
        ],
    },
    "external_calls": {
        "category": "External Call Optimization",
        "suggestions": [
            "Batch multiple calls using multicall patterns",
            "Use staticcall for read-only external calls",
            "Cache external call results when possible",
            "Avoid unnecessary external calls in loops",
            "Use low-level calls for simple token transfers",
        ],
    },
}

OPTIMIZATION_NEXT_STEPS = [
    "Implement suggested optimizations incrementally",
    "Use gas_compare_implementations to test optimization effectiveness",
    "Run gas_regression_test after changes to ensure no regressions",
    "Profile individual functions with gas_profile_function for detailed analysis",
]


@dataclass(frozen=True)
class GasDelta:
    """Gas change of one test between a baseline snapshot and the current run."""

    test: str
    gas_change: int
    percent_change: float

    def is_regression(self, threshold: float) -> bool:
        return self.percent_change > threshold

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_snapshot_diff(output: str) -> List[GasDelta]:
    """Parse `forge snapshot --diff` output, skipping lines that are not per-test deltas."""
    deltas = []
    for raw_line in output.splitlines():
        line = _ANSI_ESCAPE.sub("", raw_line).strip()
        match = _DIFF_LINE.match(line)
        if not match:
            continue
        deltas.append(
            GasDelta(
                test=match.group("test"),
                gas_change=int(match.group("delta")),
                percent_change=float(match.group("pct")),
            )
        )
    return deltas


GAS_PROFILE_FUNCTION_SCHEMA = {
    "name": "gas_profile_function",
    "description": "Create targeted gas analysis for specific functions using gas snapshots.",
    "parameters": {
        "type": "object",
        "properties": {
            "contract_name": {
                "type": "string",
                "description": "Name of the contract containing the function"
            },
            "function_name": {
                "type": "string",
                "description": "Name of the function to profile"
            },
            "test_inputs": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Different input parameters to test (as strings)"
            },
            "create_baseline": {
                "type": "boolean",
                "description": "Create a baseline snapshot for future comparisons"
            }
        },
        "required": ["contract_name", "function_name"]
    }
}

GAS_COMPARE_IMPLEMENTATIONS_SCHEMA = {
    "name": "gas_compare_implementations",
    "description": "Compare gas costs between different implementations of the same functionality.",
    "parameters": {
        "type": "object",
        "properties": {
            "implementation_tests": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Test names representing different implementations"
            },
            "baseline_test": {
                "type": "string",
                "description": "Test name to use as baseline for comparison"
            },
            "output_format": {
                "type": "string",
                "enum": list(OUTPUT_FORMATS),
                "description": "Output format for comparison results (default: table)"
            }
        },
        "required": ["implementation_tests"]
    }
}

GAS_REGRESSION_TEST_SCHEMA = {
    "name": "gas_regression_test",
    "description": "Monitor for gas usage regressions by comparing against a baseline snapshot.",
    "parameters": {
        "type": "object",
        "properties": {
            "baseline_snapshot": {
                "type": "string",
                "description": "Path to baseline snapshot file (default: .gas-snapshot)"
            },
            "threshold": {
                "type": "number",
                "description": "Gas increase threshold percentage to flag as regression (default: 5)"
            },
            "generate_report": {
                "type": "boolean",
                "description": "Include the per-test deltas and raw diff output (default: true)"
            },
            "fail_on_regression": {
                "type": "boolean",
                "description": "Return failure if regression is detected"
            }
        },
        "required": []
    }
}

GAS_OPTIMIZATION_SUGGESTIONS_SCHEMA = {
    "name": "gas_optimization_suggestions",
    "description": "Generate a gas report and provide optimization recommendations.",
    "parameters": {
        "type": "object",
        "properties": {
            "contract_name": {
                "type": "string",
                "description": "Specific contract to analyze (if not provided, analyzes all)"
            },
            "focus_area": {
                "type": "string",
                "enum": list(FOCUS_AREAS),
                "description": "Focus analysis on specific optimization area"
            }
        },
        "required": []
    }
}


def _snapshot_file_for(test_name: str) -> str:
    return f".gas-snapshot-impl-{sanitize_name(test_name)}"


async def gas_profile_function_tool(
    contract_name: str,
    function_name: str,
    test_inputs: Optional[List[str]] = None,
    create_baseline: bool = False,
) -> str:
    """
    Snapshot the tests matching ``test.*<function_name>``.

    With ``create_baseline`` the fresh snapshot is copied to
    ``<snapshot>-baseline`` for later --diff runs.
    """
    snapshot_file = f".gas-snapshot-{contract_name}-{function_name}"
    args = ["snapshot", "--match-test", f"test.*{function_name}", "--snap", snapshot_file]
    result = await run_forge(args)

    params = {
        "contract_name": contract_name,
        "function_name": function_name,
        "test_inputs": test_inputs or [],
        "create_baseline": create_baseline,
    }
    data: Dict[str, Any] = {
        "contract_name": contract_name,
        "function_name": function_name,
        "snapshot_file": snapshot_file,
        "args": args,
    }

    if create_baseline and result.success:
        source = os.path.join(get_project_root(), snapshot_file)
        baseline_file = f"{snapshot_file}-baseline"
        if os.path.exists(source):
            try:
                shutil.copyfile(source, os.path.join(get_project_root(), baseline_file))
                data["baseline_file"] = baseline_file
            except OSError as e:
                logger.warning("Could not write baseline %s: %s", baseline_file, e)
                data["baseline_error"] = str(e)

    return from_execution("gas_profile_function", params, result, data=data, notes=PROFILE_TIPS).to_json()


def _format_table(implementations: List[Dict[str, Any]]) -> str:
    rows = ["| Test | Snapshot | Success |", "|------|----------|---------|"]
    for impl in implementations:
        rows.append(f"| {impl['test_name']} | {impl['snapshot_file']} | {'yes' if impl['success'] else 'no'} |")
    return "\n".join(rows)


async def gas_compare_implementations_tool(
    implementation_tests: List[str],
    baseline_test: Optional[str] = None,
    output_format: str = "table",
) -> str:
    """Snapshot each implementation test and diff the others against ``baseline_test``."""
    tool = "gas_compare_implementations"
    params = {
        "implementation_tests": implementation_tests,
        "baseline_test": baseline_test,
        "output_format": output_format,
    }
    if output_format not in OUTPUT_FORMATS:
        return failure_payload(
            tool, params, error=f"Unknown output format: {output_format}. Use one of {', '.join(OUTPUT_FORMATS)}"
        ).to_json()
    if not implementation_tests:
        return failure_payload(tool, params, error="implementation_tests must not be empty").to_json()

    implementations = []
    for test_name in implementation_tests:
        snapshot_file = _snapshot_file_for(test_name)
        result = await run_forge(["snapshot", "--match-test", test_name, "--snap", snapshot_file])
        implementations.append({
            "test_name": test_name,
            "snapshot_file": snapshot_file,
            "success": result.success,
            "stdout": result.stdout,
            "stderr": result.stderr,
        })

    comparison = None
    if baseline_test:
        comparison = []
        baseline_file = _snapshot_file_for(baseline_test)
        for impl in implementations:
            if impl["test_name"] == baseline_test:
                continue
            diff_result = await run_forge(["snapshot", "--diff", baseline_file, "--match-test", impl["test_name"]])
            comparison.append({
                "implementation": impl["test_name"],
                "baseline": baseline_test,
                "success": diff_result.success,
                "deltas": [d.to_dict() for d in parse_snapshot_diff(diff_result.stdout)],
                "diff": diff_result.stdout,
            })

    data: Dict[str, Any] = {"implementations": implementations, "comparison": comparison}
    if output_format == "table":
        data["table"] = _format_table(implementations)
    return success_payload(tool, params, data=data, notes=COMPARISON_SUGGESTIONS).to_json()


async def gas_regression_test_tool(
    baseline_snapshot: str = DEFAULT_BASELINE_SNAPSHOT,
    threshold: float = DEFAULT_REGRESSION_THRESHOLD,
    generate_report: bool = True,
    fail_on_regression: bool = False,
) -> str:
    """
    Compare the current gas snapshot with a baseline.

    A test regresses when its percentage increase exceeds ``threshold``. The
    result only fails on regressions when ``fail_on_regression`` is set.
    """
    tool = "gas_regression_test"
    params = {
        "baseline_snapshot": baseline_snapshot,
        "threshold": threshold,
        "generate_report": generate_report,
        "fail_on_regression": fail_on_regression,
    }

    snapshot_result = await run_forge(["snapshot", "--snap", CURRENT_SNAPSHOT])
    if not snapshot_result.success:
        return failure_payload(
            tool,
            params,
            error="Failed to generate current snapshot",
            error_kind=snapshot_result.error_kind or "error",
            stdout=snapshot_result.stdout,
            stderr=snapshot_result.stderr,
        ).to_json()

    diff_result = await run_forge(["snapshot", "--diff", baseline_snapshot])
    if not diff_result.success:
        return failure_payload(
            tool,
            params,
            error="Failed to diff against baseline snapshot",
            error_kind=diff_result.error_kind or "error",
            stdout=diff_result.stdout,
            stderr=diff_result.stderr,
        ).to_json()

    deltas = parse_snapshot_diff(diff_result.stdout)
    regressions = [d for d in deltas if d.is_regression(threshold)]
    has_regressions = bool(regressions)

    data: Dict[str, Any] = {
        "threshold": threshold,
        "has_regressions": has_regressions,
        "total_regressions": len(regressions),
        "regressions": [d.to_dict() for d in regressions],
    }
    if generate_report:
        data["deltas"] = [d.to_dict() for d in deltas]
        data["diff_output"] = diff_result.stdout
    notes = REGRESSION_RECOMMENDATIONS if has_regressions else NO_REGRESSION_RECOMMENDATIONS

    if fail_on_regression and has_regressions:
        return failure_payload(
            tool,
            params,
            error=f"{len(regressions)} test(s) exceeded the {threshold:g}% gas threshold",
            error_kind="gas_regression",
            stdout=diff_result.stdout,
            stderr=diff_result.stderr,
            data=data,
            notes=notes,
        ).to_json()
    return success_payload(tool, params, diff_result, data=data, notes=notes).to_json()


def optimization_suggestions(focus_area: Optional[str] = None) -> List[Dict[str, Any]]:
    if focus_area:
        return [OPTIMIZATION_CATEGORIES[focus_area]]
    return [OPTIMIZATION_CATEGORIES[area] for area in FOCUS_AREAS]


async def gas_optimization_suggestions_tool(
    contract_name: Optional[str] = None,
    focus_area: Optional[str] = None,
) -> str:
    """Run `forge test --gas-report` and attach the matching optimization checklists."""
    tool = "gas_optimization_suggestions"
    params = {"contract_name": contract_name, "focus_area": focus_area}
    if focus_area and focus_area not in OPTIMIZATION_CATEGORIES:
        return failure_payload(
            tool, params, error=f"Unknown focus area: {focus_area}. Use one of {', '.join(FOCUS_AREAS)}"
        ).to_json()

    args = ["test", "--gas-report"]
    if contract_name:
        args.extend(["--match-contract", contract_name])
    result = await run_forge(args)

    data = {
        "args": args,
        "contract_name": contract_name or "all contracts",
        "focus_area": focus_area or "general",
        "optimization_suggestions": optimization_suggestions(focus_area),
    }
    return from_execution(tool, params, result, data=data, notes=OPTIMIZATION_NEXT_STEPS).to_json()
