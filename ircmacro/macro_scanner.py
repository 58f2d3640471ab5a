"""
Scanning helpers for `$name(...)` calls.

The extractor walks the text with an explicit parenthesis-depth counter
rather than a recursive regex, so nested calls of any depth are matched
with their own closing parenthesis.
"""
import re
from typing import Callable, List, Optional

from ircmacro.macro_datatypes import CallMatch, IdentifierCall

_CALL_HEAD = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)\(")


def closing_paren(text: str, open_index: int) -> int:
    """Index of the ')' matching the '(' at open_index, or -1 if unbalanced."""
    depth = 0
    for i in range(open_index, len(text)):
        ch = text[i]
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth == 0:
                return i
    return -1


def find_calls(line: str) -> List[CallMatch]:
    """Find every outermost balanced `$name(...)` in line, left to right.

    A head whose parenthesis never closes is skipped (it stays literal),
    but scanning continues inside it so a balanced call further on is
    still found.
    """
    matches: List[CallMatch] = []
    pos = 0
    while True:
        m = _CALL_HEAD.search(line, pos)
        if m is None:
            break
        open_index = m.end() - 1
        close = closing_paren(line, open_index)
        if close == -1:
            pos = m.end()
            continue
        matches.append(CallMatch(m.start(), close + 1, m.group(1), line[open_index + 1:close]))
        pos = close + 1
    return matches


def match_whole_call(text: str) -> Optional[IdentifierCall]:
    """Anchored match: text must be exactly one `$name(args)` and nothing else."""
    m = _CALL_HEAD.match(text)
    if m is None:
        return None
    open_index = m.end() - 1
    if closing_paren(text, open_index) != len(text) - 1:
        return None
    return IdentifierCall(m.group(1), text[open_index + 1:-1])


def split_arguments(raw_args: str) -> List[str]:
    """Split an argument list on commas at parenthesis depth zero.

    Commas inside a nested `$call(...)` (or any parenthesised text) belong
    to that inner expression and never split the current level. Empty
    segments are kept so that `$replace(abc,b,)` has three arguments.
    """
    if raw_args == "":
        return []
    args: List[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(raw_args):
        if ch == '(':
            depth += 1
        elif ch == ')':
            if depth > 0:
                depth -= 1
        elif ch == ',' and depth == 0:
            args.append(raw_args[start:i])
            start = i + 1
    args.append(raw_args[start:])
    return args


def substitute_calls(line: str, evaluate: Callable[[CallMatch], str]) -> str:
    """Replace each call found in line by evaluate(match), by position."""
    matches = find_calls(line)
    if not matches:
        return line
    out = []
    pos = 0
    for m in matches:
        out.append(line[pos:m.start])
        out.append(evaluate(m))
        pos = m.end
    out.append(line[pos:])
    return "".join(out)
