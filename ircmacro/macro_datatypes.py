"""
Defines the core data types for the macro expansion engine.

These are plain value objects: the session snapshot handed to every parse
call, the transient nodes produced while decomposing a `$name(...)` call,
and the structured result of an expansion run.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class RecursionLimit(Exception):
    """Raised internally when re-entrant expansion exceeds the configured depth."""
    def __init__(self, depth: int):
        super().__init__(f"maximum expansion depth {depth} exceeded")
        self.depth = depth


# =================================================================
# Session state
# =================================================================

@dataclass(frozen=True)
class EvaluationContext:
    """Read-only snapshot of the session values identifiers can see.

    `me` is our own nick on the connection; `nick` is the nick that
    triggered the event (or the query partner). The engine never mutates
    a context, so one instance can be shared between nested calls.
    """
    me: str = ""
    nick: str = ""
    channel: str = ""
    address: str = ""
    active: str = ""
    cid: int = 0
    server: str = ""
    network: str = ""


# =================================================================
# Per-call nodes
# =================================================================

@dataclass
class IdentifierCall:
    """One level of a nested call: `$name(raw_args)`."""
    name: str
    raw_args: str

    def __repr__(self) -> str:
        return f"IdentifierCall(${self.name}({self.raw_args}))"


@dataclass
class CallMatch:
    """A balanced `$name(...)` occurrence found in a line."""
    start: int
    end: int
    name: str
    raw_args: str

    @property
    def text(self) -> str:
        return f"${self.name}({self.raw_args})"

    def as_call(self) -> IdentifierCall:
        return IdentifierCall(self.name, self.raw_args)


# =================================================================
# Results
# =================================================================

@dataclass
class ExpansionResult:
    """The structured result of expanding one line."""
    value: str = ""
    side_effects: List[Dict[str, Any]] = field(default_factory=list)
    recursion_limited: bool = False

    @property
    def messages(self) -> List[str]:
        return [e.get('message', '') for e in self.side_effects if e.get('topics') == ['stderr']]

    def format_errors(self) -> str:
        return "\n".join(self.messages)


def context_value(context: Optional[EvaluationContext], attr: str) -> str:
    if context is None:
        return ""
    value = getattr(context, attr, "")
    return "" if value is None else str(value)
