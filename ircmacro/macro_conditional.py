"""
The conditional evaluator used by $iif.

Conditions arrive already expanded, so operands are plain text:
`hello == HELLO`, `5 > 3 && #chan isin #chan,#other`, `!$false`.
"""
import re
from typing import List, Optional

from ircmacro.macro_debug import _dbg

_OPERATOR = re.compile(
    r"(?P<sym>===|==|!=|<=|>=|<|>)"
    r"|(?:(?<=\s)|^)(?P<neg>!?)(?P<word>isincs|isin|iswmcs|iswm|isnum|isletter)(?=\s|$)",
    re.IGNORECASE,
)

FALSE_VALUES = ("", "0", "$false")


def _to_number(text: str) -> Optional[float]:
    try:
        return float(text)
    except ValueError:
        return None


def _wildcard_regex(mask: str, flags=0):
    body = "".join(".*" if ch == "*" else "." if ch == "?" else re.escape(ch) for ch in mask)
    return re.compile(f"^{body}$", flags | re.DOTALL)


def split_top_level(text: str, sep: str) -> List[str]:
    """Split on sep where it is not inside parentheses."""
    parts = []
    depth = 0
    start = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == '(':
            depth += 1
        elif ch == ')' and depth > 0:
            depth -= 1
        elif depth == 0 and text.startswith(sep, i):
            parts.append(text[start:i])
            i += len(sep)
            start = i
            continue
        i += 1
    parts.append(text[start:])
    return parts


def _wrapped_in_parens(text: str) -> bool:
    if not (text.startswith('(') and text.endswith(')')):
        return False
    depth = 0
    for i, ch in enumerate(text):
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth == 0 and i != len(text) - 1:
                return False
    return depth == 0


class ConditionEvaluator:
    """Boolean evaluation of `$iif` conditions; never raises."""

    def evaluate(self, expr: str) -> bool:
        try:
            return self._or(expr or "")
        except Exception as e:
            _dbg("IIF condition failed", repr(expr), e)
            return False

    def _or(self, text: str) -> bool:
        return any(self._and(part) for part in split_top_level(text, "||"))

    def _and(self, text: str) -> bool:
        return all(self._term(part) for part in split_top_level(text, "&&"))

    def _term(self, text: str) -> bool:
        t = text.strip()
        if _wrapped_in_parens(t):
            return self._or(t[1:-1])
        if t.startswith('!') and not t.startswith('!='):
            rest = t[1:].strip()
            if not _OPERATOR.search(rest) or _wrapped_in_parens(rest):
                return not self._term(rest)
        m = _OPERATOR.search(t)
        if m is None:
            return t not in FALSE_VALUES and t.lower() != "$false"
        left = t[:m.start()].strip()
        right = t[m.end():].strip()
        if m.group('sym'):
            return self._compare(m.group('sym'), left, right)
        result = self._word(m.group('word').lower(), left, right)
        return not result if m.group('neg') else result

    def _compare(self, op: str, left: str, right: str) -> bool:
        if op == "===":
            return left == right
        ln, rn = _to_number(left), _to_number(right)
        numeric = ln is not None and rn is not None
        if op in ("==", "!="):
            equal = (ln == rn) if numeric else (left.lower() == right.lower())
            return equal if op == "==" else not equal
        a, b = (ln, rn) if numeric else (left.lower(), right.lower())
        match op:
            case "<": return a < b
            case ">": return a > b
            case "<=": return a <= b
            case ">=": return a >= b
        return False

    def _word(self, op: str, left: str, right: str) -> bool:
        match op:
            case "isin":
                return left.lower() in right.lower()
            case "isincs":
                return left in right
            case "iswm":
                return bool(_wildcard_regex(left, re.IGNORECASE).match(right))
            case "iswmcs":
                return bool(_wildcard_regex(left).match(right))
            case "isnum":
                return self._isnum(left, right)
            case "isletter":
                if not left:
                    return False
                if right:
                    return all(ch in right for ch in left)
                return left.isalpha()
        return False

    def _isnum(self, left: str, bounds: str) -> bool:
        value = _to_number(left)
        if value is None:
            return False
        if not bounds:
            return True
        low_text, sep, high_text = bounds.partition('-')
        low = _to_number(low_text) if low_text else None
        if not sep:
            return low is not None and value == low
        high = _to_number(high_text) if high_text else None
        if low is not None and value < low:
            return False
        if high is not None and value > high:
            return False
        return True
