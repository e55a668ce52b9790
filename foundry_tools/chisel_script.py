"""
Chisel Script Builder

Translates a structured intent into the ordered command list fed to the
chisel REPL. Directives are grouped by phase and always emitted in phase
order, whatever order the builder methods were called in:

    LOAD -> FORK -> TRACES -> CODE -> DEBUG -> SOURCE -> SAVE -> EXIT

Usage:
    script = ChiselScript().fork("https://eth.llamarpc.com").code("x = 1").save()
    lines = script.build()
    # ['!fork https://eth.llamarpc.com', 'x = 1', '!save session_...', '!quit']
"""

import re
import time
import uuid
from enum import IntEnum
from typing import Dict, List, Optional, Sequence


class ScriptPhase(IntEnum):
    LOAD = 1
    FORK = 2
    TRACES = 3
    CODE = 4
    DEBUG = 5
    SOURCE = 6
    SAVE = 7
    EXIT = 8


EXIT_DIRECTIVE = "!quit"

DEBUG_LEVELS = ("basic", "memory", "stack", "full")


def generate_session_id(prefix: str = "session") -> str:
    """Time-based session name with a random suffix, unique per call."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def sanitize_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", name)


class ChiselScript:
    """Phase-ordered builder for a chisel REPL script."""

    def __init__(self):
        self._phases: Dict[ScriptPhase, List[str]] = {phase: [] for phase in ScriptPhase}
        self.saved_session_id: Optional[str] = None

    def load(self, session_id: str) -> "ChiselScript":
        self._phases[ScriptPhase.LOAD] = [f"!load {session_id}"]
        return self

    def fork(self, rpc_url: str) -> "ChiselScript":
        self._phases[ScriptPhase.FORK] = [f"!fork {rpc_url}"]
        return self

    def traces(self) -> "ChiselScript":
        self._phases[ScriptPhase.TRACES] = ["!traces"]
        return self

    def code(self, *lines: str) -> "ChiselScript":
        self._phases[ScriptPhase.CODE].extend(lines)
        return self

    def comment(self, text: str) -> "ChiselScript":
        return self.code(f"// === {text} ===")

    def fetch_interface(self, contract_address: str, interface_name: str) -> "ChiselScript":
        return self.code(f"!fetch {contract_address} {interface_name}")

    def export(self) -> "ChiselScript":
        return self.code("!export")

    def memdump(self) -> "ChiselScript":
        self._phases[ScriptPhase.DEBUG].append("!memdump")
        return self

    def stackdump(self) -> "ChiselScript":
        self._phases[ScriptPhase.DEBUG].append("!stackdump")
        return self

    def rawstack(self, variable: str) -> "ChiselScript":
        self._phases[ScriptPhase.DEBUG].append(f"!rawstack {variable}")
        return self

    def debug(self, level: str = "basic", variables: Sequence[str] = ()) -> "ChiselScript":
        """Add memory/stack dumps for ``level`` and a raw stack view per variable."""
        if level not in DEBUG_LEVELS:
            raise ValueError(f"Unknown debug level: {level}. Use one of {', '.join(DEBUG_LEVELS)}")
        if level in ("memory", "full"):
            self.memdump()
        if level in ("stack", "full"):
            self.stackdump()
        for variable in variables:
            self.rawstack(variable)
        return self

    def source(self) -> "ChiselScript":
        self._phases[ScriptPhase.SOURCE] = ["!source"]
        return self

    def save(self, session_id: Optional[str] = None, prefix: str = "session") -> "ChiselScript":
        self.saved_session_id = session_id or generate_session_id(prefix)
        self._phases[ScriptPhase.SAVE] = [f"!save {self.saved_session_id}"]
        return self

    def build(self) -> List[str]:
        lines: List[str] = []
        for phase in ScriptPhase:
            if phase is ScriptPhase.EXIT:
                lines.append(EXIT_DIRECTIVE)
            else:
                lines.extend(self._phases[phase])
        return lines


def looks_like_statement(code: str) -> bool:
    """Heuristic for code that defines state, whose generated source is worth showing."""
    return "=" in code or "function" in code or "contract" in code


def build_execute_script(
    code: str,
    session_id: Optional[str] = None,
    fork_url: Optional[str] = None,
    enable_traces: bool = False,
    save_session: bool = False,
    show_source: bool = False,
) -> ChiselScript:
    """Builder for the load/fork/trace/execute/save flow."""
    script = ChiselScript()
    if session_id:
        script.load(session_id)
    if fork_url:
        script.fork(fork_url)
    if enable_traces:
        script.traces()
    script.code(code)
    if show_source:
        script.source()
    if save_session:
        script.save(session_id)
    return script
