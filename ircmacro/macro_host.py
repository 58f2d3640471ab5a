"""
The host side of the engine: session collaborators that identifiers read
from (address list, shared channels, hash tables, files, user prompts).

Subclass MacroHost to connect a live IRC session. Methods marked with
@identifier_method are exposed to scripts as extra `$name(...)` builtins.
"""
from __future__ import annotations

import configparser
import inspect
import os
import random
import re
from typing import Callable, Dict, Iterable, List, Optional

from ircmacro.macro_debug import _dbg

_IPV4 = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")


def identifier_method(func):
    """A decorator to explicitly mark host methods as callable from scripts."""
    func._is_identifier = True
    return func


def _domain_mask(host: str) -> str:
    if _IPV4.match(host):
        return host.rsplit('.', 1)[0] + ".*"
    if '.' not in host:
        return host
    return "*." + host.split('.', 1)[1]


def address_mask(address: str, level: int) -> str:
    """Apply an IRC address-mask level (0-9) to a full nick!user@host."""
    nick, bang, rest = address.partition('!')
    user, at, host = rest.partition('@')
    if not bang or not at or not nick or not host:
        return ""
    if level < 0 or level > 9:
        return ""
    who = nick if level >= 5 else "*"
    star_user = "*" + user.lstrip('~')
    match level % 5:
        case 0:
            return f"{who}!{user}@{host}"
        case 1:
            return f"{who}!{star_user}@{host}"
        case 2:
            return f"{who}!*@{host}"
        case 3:
            return f"{who}!{star_user}@{_domain_mask(host)}"
        case 4:
            return f"{who}!*@{_domain_mask(host)}"
    return ""


class MacroHost:
    """Default session collaborator. Every reader is fail-soft and returns ''."""

    def __init__(self, app_dir: Optional[str] = None,
                 addresses: Optional[Dict[str, str]] = None,
                 hash_tables: Optional[Dict[str, Dict[str, str]]] = None,
                 channels: Optional[Dict[str, Iterable[str]]] = None):
        self.app_dir = app_dir or os.getcwd()
        # Internal address list: lowercase nick -> nick!user@host
        self.addresses: Dict[str, str] = {k.lower(): v for k, v in (addresses or {}).items()}
        self.hash_tables: Dict[str, Dict[str, str]] = {
            k.lower(): {ik.lower(): str(iv) for ik, iv in (v or {}).items()}
            for k, v in (hash_tables or {}).items()
        }
        # channel -> nicks present
        self.channels: Dict[str, List[str]] = {k: list(v) for k, v in (channels or {}).items()}

    # --- Session lookups ---

    def lookup_address(self, nick: str) -> str:
        return self.addresses.get(nick.lower(), "")

    def common_channels(self, nick: str) -> List[str]:
        lowered = nick.lower()
        return [chan for chan, nicks in self.channels.items() if any(n.lower() == lowered for n in nicks)]

    def hash_get(self, key: str, table: str) -> str:
        return self.hash_tables.get(table.lower(), {}).get(key.lower(), "")

    def prompt_input(self, prompt: str, title: Optional[str] = None) -> str:
        """No UI is attached by default; hosts with a window override this."""
        return ""

    # --- File readers ---

    def resolve_path(self, path: str) -> str:
        path = path.strip().strip('"')
        if path.startswith("~"):
            return os.path.expanduser(path)
        if os.path.isabs(path):
            return path
        return os.path.normpath(os.path.join(self.app_dir, path))

    def read_line(self, path: str, line: Optional[int] = None) -> str:
        """Line N (1-based) of a text file; 0 gives the line count, None a random line."""
        try:
            with open(self.resolve_path(path), "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            _dbg("READ failed", path, e)
            return ""
        if line is None:
            return random.choice(lines) if lines else ""
        if line == 0:
            return str(len(lines))
        if 1 <= line <= len(lines):
            return lines[line - 1]
        return ""

    def read_ini(self, path: str, section: str, key: str) -> str:
        parser = configparser.ConfigParser(interpolation=None)
        try:
            with open(self.resolve_path(path), "r", encoding="utf-8") as f:
                parser.read_file(f)
        except (OSError, UnicodeDecodeError, configparser.Error) as e:
            _dbg("READINI failed", path, e)
            return ""
        for name in parser.sections():
            if name.lower() == section.lower():
                return parser.get(name, key, fallback="")
        return ""

    # --- Script extension ---

    def identifier_methods(self) -> Dict[str, Callable]:
        """@identifier_method members keyed by upper-case identifier name."""
        found: Dict[str, Callable] = {}
        for name, member in inspect.getmembers(self):
            if name.startswith('_') or not callable(member):
                continue
            is_identifier = getattr(member, "_is_identifier", False)
            if not is_identifier:
                func = getattr(member, "__func__", None)
                if func is not None:
                    is_identifier = getattr(func, "_is_identifier", False)
            if is_identifier:
                found[name.upper()] = member
        return found
