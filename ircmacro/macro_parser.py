"""
The identifier expansion engine: rewrites a line containing `$name` and
`$name(args)` tokens into plain text.

Order of work for one line:
  1. every balanced `$name(...)` call is evaluated and replaced in place;
  2. the line is split on `$+`, each segment trimmed, and the segments joined
     (a line with no `$+` keeps its surrounding whitespace);
  3. remaining bare `$name` tokens are resolved (context values, aliases,
     then builtins).
Nothing raises out of parse(); unresolved identifiers become ''.
Alias re-entry and call nesting share one depth budget (max_depth).
"""
import math
import os
import re
import time
from typing import List, Optional, Sequence

from ircmacro.macro_aliases import AliasStore
from ircmacro.macro_builtins import Builtins
from ircmacro.macro_calc import Calculator
from ircmacro.macro_conditional import ConditionEvaluator
from ircmacro.macro_datatypes import (
    EvaluationContext, IdentifierCall, ExpansionResult, RecursionLimit, context_value
)
from ircmacro.macro_debug import _dbg
from ircmacro.macro_host import MacroHost
from ircmacro.macro_scanner import match_whole_call, split_arguments, substitute_calls

# A bare token is not a call head: `$left(` with no closing paren stays literal.
_BARE_TOKEN = re.compile(r"\$(\w+)(?![\w(])")
CONCAT_MARKER = "$+"
DEFAULT_MAX_DEPTH = 32

# Bare identifiers answered straight from the session context.
_CONTEXT_FIELDS = {
    "ME": "me",
    "CHAN": "channel",
    "NICK": "nick",
    "ADDRESS": "address",
    "ACTIVE": "active",
    "CID": "cid",
    "SERVER": "server",
    "NETWORK": "network",
}


def build_evaluation_stack(call: IdentifierCall) -> List[IdentifierCall]:
    """Walk inward while the args are themselves exactly one call.

    The last entry is the innermost call; its raw args hold no further
    whole-call nesting.
    """
    stack = [call]
    inner = match_whole_call(call.raw_args)
    while inner is not None:
        stack.append(inner)
        inner = match_whole_call(inner.raw_args)
    return stack


class IdentifierParser:
    """Expands identifiers for one session; collaborators are injected."""

    def __init__(self, aliases: Optional[AliasStore] = None,
                 host: Optional[MacroHost] = None,
                 calculator: Optional[Calculator] = None,
                 conditions: Optional[ConditionEvaluator] = None,
                 max_depth: int = DEFAULT_MAX_DEPTH,
                 app_dir: Optional[str] = None):
        self.aliases = aliases if aliases is not None else AliasStore()
        self.host = host if host is not None else MacroHost(app_dir=app_dir)
        if app_dir is not None:
            self.host.app_dir = app_dir
        self.builtins = Builtins(self.host, calculator, conditions)
        self.max_depth = max(1, int(max_depth))
        self.side_effects: List[dict] = []
        self._depth = 0

    @classmethod
    def from_config(cls, config) -> 'IdentifierParser':
        host = MacroHost(
            app_dir=config.app_dir,
            addresses=config.addresses,
            hash_tables=config.hash_tables,
            channels=config.channels,
        )
        return cls(aliases=AliasStore.from_mapping(config.aliases), host=host, max_depth=config.max_depth)

    # --- Entry points ---

    def parse(self, context: Optional[EvaluationContext], line: str) -> str:
        """Expand every identifier in line and return the resulting text."""
        return self.expand(context, line).value

    def expand(self, context: Optional[EvaluationContext], line: str) -> ExpansionResult:
        """Like parse(), but also returns the diagnostics gathered during the run."""
        if self._depth == 0:
            return self._expand_outermost(context, line)
        # Re-entered from an alias body.
        if self._depth >= self.max_depth:
            raise RecursionLimit(self.max_depth)
        self._depth += 1
        try:
            return ExpansionResult(self._expand_text(context, line), self.side_effects)
        finally:
            self._depth -= 1

    def _expand_outermost(self, context, line: str) -> ExpansionResult:
        self.side_effects = []
        self._depth = 1
        try:
            value = self._expand_text(context, line)
        except RecursionLimit as e:
            self._report(f"RecursionLimit: {e}")
            return ExpansionResult("", self.side_effects, recursion_limited=True)
        except RecursionError:
            # max_depth set beyond what the interpreter stack can hold
            self._report(f"RecursionLimit: interpreter stack exhausted below depth {self.max_depth}")
            return ExpansionResult("", self.side_effects, recursion_limited=True)
        finally:
            self._depth = 0
        return ExpansionResult(value, self.side_effects)

    # --- Pipeline ---

    def _expand_text(self, context, text: str) -> str:
        if '$' not in text:
            return text
        text = substitute_calls(text, lambda m: self._evaluate_call(context, m.as_call()))
        return self._resolve_bare_tokens(context, text)

    def _resolve_bare_tokens(self, context, text: str) -> str:
        if CONCAT_MARKER not in text:
            return self._substitute_tokens(context, text)
        # Tokens are located per pre-collapse segment so `$chan $+ x` never fuses into `$chanx`.
        segments = text.split(CONCAT_MARKER)
        return "".join(self._substitute_tokens(context, s.strip()) for s in segments)

    def _substitute_tokens(self, context, text: str) -> str:
        if '$' not in text:
            return text
        return _BARE_TOKEN.sub(lambda m: self.resolve_identifier(context, m.group(1)), text)

    def _evaluate_call(self, context, call: IdentifierCall) -> str:
        """Evaluate a matched call innermost-first.

        The innermost node gets its own args, split and expanded. Each
        outer node then receives the previous result as one argument, so
        commas produced by an inner call never split the outer list.
        """
        # Calls nested inside a split argument recurse through _expand_text.
        if self._depth >= self.max_depth:
            raise RecursionLimit(self.max_depth)
        self._depth += 1
        try:
            stack = build_evaluation_stack(call)
            _dbg("STACK", [f"{n.name}" for n in stack])
            accumulated: Optional[List[str]] = None
            while stack:
                node = stack.pop()
                if accumulated is None:
                    args = [self._expand_text(context, a) for a in split_arguments(node.raw_args)]
                else:
                    args = accumulated
                accumulated = [self.invoke(context, node.name, args)]
            return accumulated[0]
        finally:
            self._depth -= 1

    # --- Dispatch ---

    def resolve_identifier(self, context: Optional[EvaluationContext], name: str) -> str:
        """Resolve a bare `$name`: context values first, then alias, then builtin."""
        if context is None:
            return ""
        value = self._context_identifier(context, name.upper())
        if value is not None:
            return value
        return self.invoke(context, name, [])

    def _context_identifier(self, context: EvaluationContext, key: str) -> Optional[str]:
        if key in _CONTEXT_FIELDS:
            return context_value(context, _CONTEXT_FIELDS[key])
        match key:
            case "APPDIR":
                return os.path.join(self.host.app_dir, "")
            case "TICKS":
                return str(int(time.monotonic() * 1000))
            case "PI":
                return str(math.pi)
            case "NULL":
                return "\0"
        return None

    def invoke(self, context: Optional[EvaluationContext], name: str, args: Sequence[str]) -> str:
        """Call `$name(args)`: an alias of that name wins over a builtin."""
        try:
            alias = self.aliases.lookup(name)
            if alias is not None:
                _dbg("ALIAS", name, list(args))
                result = alias.parse(context, list(args), parser=self)
            else:
                _dbg("BUILTIN", name, list(args))
                result = self.builtins.call(name, list(args))
        except (RecursionLimit, RecursionError):
            raise
        except Exception as e:
            self._report(f"InternalError: ${name}: {e}")
            return ""
        return "" if result is None else str(result)

    def _report(self, message: str):
        _dbg(message)
        self.side_effects.append({'topics': ['stderr'], 'message': message})
