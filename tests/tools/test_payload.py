"""Tests for tool result payloads."""

import json

from foundry_tools.payload import (
    ToolFailure,
    ToolPayload,
    ToolSuccess,
    failure_payload,
    from_exception,
    from_execution,
    redact_argv,
    redact_params,
    success_payload,
)
from foundry_tools.process import ExecutionResult, NonZeroExit


class TestRoundTrip:
    """Serialized payloads parse back into the same variant."""

    def test_success_round_trip(self, project_root):
        """success, stdout and stderr survive to_json/from_json."""
        result = ExecutionResult(success=True, stdout="Compiler run successful\n", stderr="warning: x", exit_code=0)
        payload = success_payload("forge_build", {"profile": None}, result, data={"args": ["build"]})

        parsed = ToolPayload.from_json(payload.to_json())

        assert isinstance(parsed, ToolSuccess)
        assert parsed.success is True
        assert parsed.stdout == payload.stdout
        assert parsed.stderr == payload.stderr
        assert parsed.data == {"args": ["build"]}
        assert parsed.project_root == str(project_root)

    def test_failure_round_trip(self, project_root):
        """Failures keep their error and error_kind."""
        payload = failure_payload(
            "cast_send", {}, error="No private key", error_kind="missing_credential", stderr="e"
        )
        parsed = ToolPayload.from_json(payload.to_json())

        assert isinstance(parsed, ToolFailure)
        assert parsed.success is False
        assert parsed.error == "No private key"
        assert parsed.error_kind == "missing_credential"
        assert parsed.stderr == "e"

    def test_json_always_has_success_flag(self, project_root):
        """Both variants serialize a boolean success field."""
        assert json.loads(success_payload("t", {}).to_json())["success"] is True
        assert json.loads(failure_payload("t", {}, error="x").to_json())["success"] is False


class TestConversions:
    """Building payloads from runner results and exceptions."""

    def test_from_execution_failure(self, project_root):
        """A non-zero exit becomes a failure that keeps both streams."""
        result = ExecutionResult(False, "out", "err", exit_code=1, error_kind="non_zero_exit")
        payload = from_execution("forge_test", {}, result)

        assert isinstance(payload, ToolFailure)
        assert payload.error_kind == "non_zero_exit"
        assert payload.error == "Command exited with code 1"
        assert payload.stdout == "out"
        assert payload.stderr == "err"

    def test_from_execution_spawn_failure(self, project_root):
        """Spawn failures carry the synthesized stderr as the error."""
        result = ExecutionResult(False, "", "Failed to launch forge: not found", error_kind="spawn_failure")
        payload = from_execution("forge_build", {}, result)
        assert payload.error == "Failed to launch forge: not found"
        assert payload.error_kind == "spawn_failure"

    def test_from_exception_uses_kind(self, project_root):
        """Process-layer exceptions map their kind and streams."""
        exc = NonZeroExit("chisel exited with code 1", exit_code=1, stdout="o", stderr="bad")
        payload = from_exception("chisel_execute_code", {"code": "x"}, exc)

        assert payload.error_kind == "non_zero_exit"
        assert payload.stdout == "o"
        assert payload.stderr == "bad"

    def test_from_exception_generic(self, project_root):
        """Other exceptions fall back to the generic kind."""
        payload = from_exception("t", {}, RuntimeError("boom"))
        assert payload.error_kind == "error"
        assert payload.error == "boom"


class TestRedaction:
    """Secrets are never echoed verbatim."""

    def test_redact_params(self):
        """Only the named fields are redacted; missing values stay None."""
        key = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
        params = redact_params({"private_key": key, "value": "1ether"}, ("private_key",))
        assert params["private_key"] == "0xac...ff80"
        assert params["value"] == "1ether"
        assert redact_params({"private_key": None}, ("private_key",)) == {"private_key": None}

    def test_redact_argv(self):
        """The value following a secret flag is redacted."""
        argv = ["send", "--private-key", "0x1234567890abcdef", "0xContract", "f()"]
        assert redact_argv(argv, ("--private-key",)) == ["send", "--private-key", "0x12...cdef", "0xContract", "f()"]
