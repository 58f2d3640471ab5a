"""
User-defined aliases: named script bodies callable as `$name` or `$name(args)`.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterator, List, Mapping, Optional, Sequence, Union

import yaml

from ircmacro.macro_datatypes import EvaluationContext

if TYPE_CHECKING:
    from ircmacro.macro_parser import IdentifierParser

# $0, $N and $N- (N to the end)
_POSITIONAL = re.compile(r"\$(\d+)(-?)(?![\w(])")


def substitute_params(line: str, args: Sequence[str]) -> str:
    def sub(m):
        n = int(m.group(1))
        if n == 0:
            return str(len(args))
        if m.group(2):
            return " ".join(args[n - 1:])
        return args[n - 1] if n <= len(args) else ""
    return _POSITIONAL.sub(sub, line)


class ScriptAlias:
    """An alias body: one or more lines, the last line's expansion is the value."""

    def __init__(self, name: str, body: Union[str, Sequence[str]]):
        self.name = name
        if isinstance(body, (list, tuple)):
            self.lines: List[str] = [str(line) for line in body]
        else:
            self.lines = str(body).splitlines()

    def parse(self, context: Optional[EvaluationContext], args: Sequence[str] = (),
              parser: Optional['IdentifierParser'] = None) -> str:
        """Expand each body line with the calling session's parser.

        Without a parser the substituted lines are returned as they are.
        """
        result = ""
        for line in self.lines:
            line = substitute_params(line, list(args))
            result = parser.parse(context, line) if parser is not None else line
        return result

    def __repr__(self) -> str:
        return f"<ScriptAlias {self.name} lines={len(self.lines)}>"


class AliasStore:
    """Case-insensitive alias registry. The engine only reads it, so sessions may share one."""

    def __init__(self, aliases: Optional[Mapping[str, Union[str, Sequence[str]]]] = None):
        self._aliases: Dict[str, ScriptAlias] = {}
        for name, body in (aliases or {}).items():
            self.add(name, body)

    @classmethod
    def from_mapping(cls, aliases: Mapping[str, Union[str, Sequence[str]]]) -> 'AliasStore':
        return cls(aliases)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'AliasStore':
        """Load `name: body` pairs; a body may be a string or a list of lines."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"alias file must contain a mapping: {path}")
        return cls({str(k): v if isinstance(v, list) else str(v) for k, v in data.items()})

    def add(self, name: str, body: Union[str, Sequence[str]]) -> ScriptAlias:
        alias = ScriptAlias(name.lstrip('$'), body)
        self._aliases[alias.name.lower()] = alias
        return alias

    def remove(self, name: str):
        self._aliases.pop(name.lstrip('$').lower(), None)

    def lookup(self, name: str) -> Optional[ScriptAlias]:
        return self._aliases.get(name.lstrip('$').lower())

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def __len__(self) -> int:
        return len(self._aliases)

    def __iter__(self) -> Iterator[str]:
        return iter(a.name for a in self._aliases.values())
