import os
import sys


def _dbg(*parts):
    """Trace to stderr when IRCMACRO_DEBUG is set."""
    if os.environ.get("IRCMACRO_DEBUG"):
        try:
            print("[DBG]", *parts, file=sys.stderr)
        except Exception:
            pass
