"""
The builtin identifier catalog.

Every `_name` method on Builtins is registered as the upper-case identifier
NAME. A builtin receives its already-expanded arguments as a list of
strings and returns a string; an arity or number-format problem gives the
empty string instead of an error.
"""
import base64
import binascii
import hashlib
import inspect
import math
import os
import random
import re
from typing import Callable, Dict, List, Optional

from ircmacro.macro_calc import Calculator, format_number
from ircmacro.macro_conditional import ConditionEvaluator
from ircmacro.macro_host import MacroHost, address_mask
from ircmacro.macro_time import asctime, ctime, duration
from ircmacro.macro_tokens import add_token, del_tokens, get_tokens

# bold, colour (+fg[,bg]), hex colour, reset, reverse, italic, strike, underline
_CONTROL_CODES = re.compile(
    r"\x03(?:\d{1,2}(?:,\d{1,2})?)?"
    r"|\x04(?:[0-9a-fA-F]{6}(?:,[0-9a-fA-F]{6})?)?"
    r"|[\x02\x0f\x16\x1d\x1e\x1f]"
)


def strip_codes(text: str) -> str:
    return _CONTROL_CODES.sub("", text)


def _int(text) -> Optional[int]:
    try:
        return int(str(text).strip())
    except ValueError:
        return None


def _token_text(args: List[str]) -> str:
    # The token string may itself contain commas; only the last two args are index/delimiter.
    return ",".join(args[:-2])


class Builtins:
    """Python implementations of every builtin identifier."""

    def __init__(self, host: Optional[MacroHost] = None,
                 calculator: Optional[Calculator] = None,
                 conditions: Optional[ConditionEvaluator] = None):
        self.host = host if host is not None else MacroHost()
        self.calculator = calculator if calculator is not None else Calculator()
        self.conditions = conditions if conditions is not None else ConditionEvaluator()
        self.functions: Dict[str, Callable[[List[str]], str]] = {}
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                self.functions[name[1:].upper()] = member
        # Host identifiers take precedence over the native ones.
        for name, member in self.host.identifier_methods().items():
            self.functions[name] = lambda args, _m=member: _m(*args)

    def __contains__(self, name: str) -> bool:
        return name.upper() in self.functions

    def call(self, name: str, args: List[str]) -> str:
        fn = self.functions.get(name.upper())
        if fn is None:
            return ""
        result = fn(list(args))
        return "" if result is None else str(result)

    # --- Strings ---
    def _left(self, args):
        n = _int(args[1]) if len(args) == 2 else None
        if n is None or n <= 0:
            return ""
        return args[0][:n]

    def _right(self, args):
        n = _int(args[1]) if len(args) == 2 else None
        if n is None or n <= 0:
            return ""
        return args[0][-n:]

    def _mid(self, args):
        if len(args) not in (2, 3):
            return ""
        start = _int(args[1])
        length = -1 if len(args) == 2 else _int(args[2])
        if start is None or length is None:
            return ""
        s = args[0]
        start = max(start, 1)
        if start > len(s):
            return ""
        if length == -1:
            return s[start - 1:]
        if length < 0:
            return ""
        return s[start - 1:start - 1 + length]

    def _len(self, args): return str(len(args[0])) if len(args) == 1 else ""
    def _upper(self, args): return args[0].upper() if len(args) == 1 else ""
    def _lower(self, args): return args[0].lower() if len(args) == 1 else ""
    def _strip(self, args): return strip_codes(args[0]) if args else ""

    def _replace(self, args):
        if len(args) != 3:
            return ""
        s, old, new = args
        if not old:
            return s
        return re.sub(re.escape(old), lambda m: new, s, flags=re.IGNORECASE)

    def _replacecs(self, args):
        if len(args) != 3:
            return ""
        s, old, new = args
        return s.replace(old, new) if old else s

    def _concat(self, args): return "".join(args)

    # --- Tokens ---
    def _gettok(self, args):
        # $gettok(string,N,C)
        return get_tokens(_token_text(args), args[-2], args[-1]) if len(args) >= 3 else ""

    def _deltok(self, args):
        # $deltok(string,N-N2,C); malformed calls hand the string back
        if len(args) < 3:
            return args[0] if args else ""
        return del_tokens(_token_text(args), args[-2], args[-1])

    def _addtok(self, args):
        # $addtok(string,newtoken,C)
        return add_token(_token_text(args), args[-2], args[-1]) if len(args) >= 3 else ""

    # --- Encoding and hashing ---
    def _encode(self, args):
        if len(args) != 1:
            return ""
        return base64.b64encode(args[0].encode("utf-8")).decode("ascii")

    def _decode(self, args):
        if len(args) != 1:
            return ""
        try:
            return base64.b64decode(args[0].strip(), validate=True).decode("utf-8")
        except (binascii.Error, ValueError, UnicodeDecodeError):
            return ""

    def _md5(self, args):
        if len(args) != 1:
            return ""
        return hashlib.md5(args[0].encode("utf-8")).hexdigest()

    # --- Numbers ---
    def _calc(self, args):
        if len(args) != 1:
            return ""
        return format_number(self.calculator.evaluate(args[0]))

    def _sqrt(self, args):
        n = _int(args[0]) if len(args) == 1 else None
        if n is None or n < 0:
            return ""
        return format_number(round(math.sqrt(n), 6))

    def _rand(self, args):
        if len(args) != 2:
            return ""
        low, high = _int(args[0]), _int(args[1])
        if low is None or high is None or low > high:
            return ""
        if low == high:
            return str(low)
        return str(random.randrange(low, high))

    def _chr(self, args):
        code = _int(args[0]) if len(args) == 1 else None
        if code is None:
            return ""
        try:
            return chr(code)
        except (ValueError, OverflowError):
            return ""

    def _asc(self, args):
        if len(args) != 1 or len(args[0]) != 1:
            return ""
        return str(ord(args[0]))

    # --- Time ---
    def _ctime(self, args): return ctime()

    def _asctime(self, args):
        return asctime(args[0] if args else "", args[1] if len(args) > 1 else None)

    def _duration(self, args): return duration(args[0]) if args else ""

    # --- Session and files ---
    def _read(self, args):
        if not args or not args[0]:
            return ""
        if len(args) > 1 and args[1]:
            n = _int(args[1])
            return "" if n is None else self.host.read_line(args[0], n)
        return self.host.read_line(args[0])

    def _readini(self, args):
        return self.host.read_ini(*args) if len(args) == 3 else ""

    def _hget(self, args):
        return self.host.hash_get(args[0], args[1]) if len(args) == 2 else ""

    def _address(self, args):
        if len(args) not in (1, 2):
            return ""
        address = self.host.lookup_address(args[0])
        if not address:
            return ""
        if len(args) == 1:
            return address
        level = _int(args[1])
        return "" if level is None else address_mask(address, level)

    def _comchan(self, args):
        index = _int(args[1]) if len(args) >= 2 else None
        if index is None:
            return ""
        channels = self.host.common_channels(args[0])
        if index == 0:
            return str(len(channels))
        if 1 <= index <= len(channels):
            return channels[index - 1]
        return ""

    def _input(self, args):
        if not args:
            return ""
        return self.host.prompt_input(args[0], args[1] if len(args) > 1 else None)

    # --- Control ---
    def _iif(self, args):
        # $iif(condition,true part,false part)
        if len(args) != 3:
            return ""
        return args[1] if self.conditions.evaluate(args[0]) else args[2]

    def _appdir(self, args):
        if not args or not args[0]:
            return os.path.join(self.host.app_dir, "")
        return os.path.join(self.host.app_dir, args[0])
