"""
Token-list helpers behind $gettok, $deltok and $addtok.

A token string is split on a single delimiter character given by its code
point (44 is a comma, 32 a space). Runs of the delimiter count as one, so
empty tokens never appear.
"""
import re
from typing import List, Optional, Tuple

_INDEX_SPEC = re.compile(r"^\s*(-?\d+)(?:(-)(-?\d+)?)?\s*$")


def delimiter_from_code(code: str) -> Optional[str]:
    try:
        value = int(code)
        return chr(value) if value > 0 else None
    except (ValueError, OverflowError):
        return None


def tokenize(text: str, delim: str) -> List[str]:
    return [t for t in text.split(delim) if t]


def _position(n: int, count: int) -> int:
    """1-based token position; negatives count back from the end."""
    return count + 1 + n if n < 0 else n


def parse_index_spec(spec: str, count: int) -> Optional[Tuple[int, int, bool]]:
    """Returns (first, last, is_range), 1-based inclusive, or None when malformed."""
    m = _INDEX_SPEC.match(spec)
    if m is None:
        return None
    first = _position(int(m.group(1)), count)
    if m.group(2) is None:
        return first, first, False
    last = _position(int(m.group(3)), count) if m.group(3) is not None else count
    return first, last, True


def get_tokens(text: str, index: str, delim_code: str) -> str:
    delim = delimiter_from_code(delim_code)
    if delim is None:
        return ""
    tokens = tokenize(text, delim)
    if index.strip() == "0":
        return str(len(tokens))
    spec = parse_index_spec(index, len(tokens))
    if spec is None:
        return ""
    first, last, _ = spec
    first = max(first, 1)
    last = min(last, len(tokens))
    if first > last:
        return ""
    return delim.join(tokens[first - 1:last])


def del_tokens(text: str, index: str, delim_code: str) -> str:
    """Remove a token or token range; anything malformed leaves text untouched."""
    delim = delimiter_from_code(delim_code)
    if delim is None:
        return text
    tokens = tokenize(text, delim)
    spec = parse_index_spec(index, len(tokens))
    if spec is None:
        return text
    first, last, _ = spec
    first = max(first, 1)
    last = min(last, len(tokens))
    if first > last:
        return text
    return delim.join(tokens[:first - 1] + tokens[last:])


def add_token(text: str, token: str, delim_code: str) -> str:
    delim = delimiter_from_code(delim_code)
    if delim is None or not token:
        return ""
    tokens = tokenize(text, delim)
    if any(t.lower() == token.lower() for t in tokens):
        return delim.join(tokens)
    tokens.append(token)
    return delim.join(tokens)
