"""
Tool result payloads.

Every tool invocation returns a ToolSuccess or a ToolFailure, serialized to a
JSON string. Both variants echo the request parameters and always carry
``success``; tool-specific fields live under ``data`` and advisory text under
``notes``.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from foundry_tools.process.base import ExecutionResult, FoundryToolError, get_project_root


@dataclass
class ToolPayload:
    tool: str
    params: Dict[str, Any] = field(default_factory=dict)
    project_root: str = ""
    stdout: str = ""
    stderr: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    notes: List[str] = field(default_factory=list)

    success = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "success": self.success,
            "project_root": self.project_root,
            "params": self.params,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "data": self.data,
            "notes": self.notes,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "ToolPayload":
        common = dict(
            tool=data["tool"],
            params=data.get("params", {}),
            project_root=data.get("project_root", ""),
            stdout=data.get("stdout", ""),
            stderr=data.get("stderr", ""),
            data=data.get("data", {}),
            notes=data.get("notes", []),
        )
        if data.get("success"):
            return ToolSuccess(**common)
        return ToolFailure(
            error=data.get("error", ""),
            error_kind=data.get("error_kind", "error"),
            **common,
        )

    @staticmethod
    def from_json(text: str) -> "ToolPayload":
        return ToolPayload.from_dict(json.loads(text))


@dataclass
class ToolSuccess(ToolPayload):
    success = True


@dataclass
class ToolFailure(ToolPayload):
    error: str = ""
    error_kind: str = "error"

    success = False

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["error"] = self.error
        result["error_kind"] = self.error_kind
        return result


def redact_key(key: Optional[str]) -> Optional[str]:
    """Redact a secret for display."""
    if not key:
        return key
    if len(key) < 12:
        return "***"
    return key[:4] + "..." + key[-4:]


def redact_params(params: Dict[str, Any], secret_fields: Sequence[str]) -> Dict[str, Any]:
    return {k: (redact_key(v) if k in secret_fields else v) for k, v in params.items()}


def redact_argv(args: Sequence[str], secret_flags: Sequence[str]) -> List[str]:
    """Copy of ``args`` with the value after each secret flag redacted."""
    redacted = list(args)
    for i, arg in enumerate(redacted[:-1]):
        if arg in secret_flags:
            redacted[i + 1] = redact_key(redacted[i + 1])
    return redacted


def success_payload(
    tool: str,
    params: Dict[str, Any],
    result: Optional[ExecutionResult] = None,
    data: Optional[Dict[str, Any]] = None,
    notes: Optional[List[str]] = None,
) -> ToolSuccess:
    return ToolSuccess(
        tool=tool,
        params=params,
        project_root=get_project_root(),
        stdout=result.stdout if result else "",
        stderr=result.stderr if result else "",
        data=data or {},
        notes=notes or [],
    )


def failure_payload(
    tool: str,
    params: Dict[str, Any],
    error: str,
    error_kind: str = "error",
    stdout: str = "",
    stderr: str = "",
    data: Optional[Dict[str, Any]] = None,
    notes: Optional[List[str]] = None,
) -> ToolFailure:
    return ToolFailure(
        tool=tool,
        params=params,
        project_root=get_project_root(),
        stdout=stdout,
        stderr=stderr,
        data=data or {},
        notes=notes or [],
        error=error,
        error_kind=error_kind,
    )


def from_execution(
    tool: str,
    params: Dict[str, Any],
    result: ExecutionResult,
    data: Optional[Dict[str, Any]] = None,
    notes: Optional[List[str]] = None,
) -> ToolPayload:
    """Wrap a Command Runner result, picking the variant from ``result.success``."""
    if result.success:
        return success_payload(tool, params, result, data=data, notes=notes)
    if result.exit_code is not None and result.error_kind == "non_zero_exit":
        error = f"Command exited with code {result.exit_code}"
    else:
        error = result.stderr or "Command failed"
    return failure_payload(
        tool,
        params,
        error=error,
        error_kind=result.error_kind or "error",
        stdout=result.stdout,
        stderr=result.stderr,
        data=data,
        notes=notes,
    )


def from_exception(
    tool: str,
    params: Dict[str, Any],
    exc: Exception,
    data: Optional[Dict[str, Any]] = None,
    notes: Optional[List[str]] = None,
) -> ToolFailure:
    if isinstance(exc, FoundryToolError):
        return failure_payload(
            tool,
            params,
            error=str(exc),
            error_kind=exc.kind,
            stdout=exc.stdout,
            stderr=exc.stderr,
            data=data,
            notes=notes,
        )
    return failure_payload(tool, params, error=str(exc), data=data, notes=notes)
