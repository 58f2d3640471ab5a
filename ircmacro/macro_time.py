"""
Time helpers behind $ctime, $asctime and $duration.
"""
import re
import time
from typing import Optional

MONTHS = ("January", "February", "March", "April", "May", "June", "July",
          "August", "September", "October", "November", "December")
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

DEFAULT_FORMAT = "ddd mmm dd HH:nn:ss yyyy"

# Longest tokens first so 'mmmm' wins over 'mm' and 'm'.
_FORMAT_TOKENS = re.compile(r"yyyy|yy|mmmm|mmm|mm|m|dddd|ddd|dd|d|HH|H|hh|h|nn|n|ss|s|TT|tt")

_DURATION_UNITS = (
    (7 * 24 * 3600, "wk"),
    (24 * 3600, "day"),
    (3600, "hr"),
    (60, "min"),
    (1, "sec"),
)


def ctime(now: Optional[float] = None) -> str:
    """Seconds since the Unix epoch."""
    return str(int(time.time() if now is None else now))


def _hour12(hour: int) -> int:
    h = hour % 12
    return 12 if h == 0 else h


def format_time(tm: time.struct_time, fmt: str) -> str:
    def sub(m):
        match m.group(0):
            case "yyyy": return f"{tm.tm_year:04d}"
            case "yy": return f"{tm.tm_year % 100:02d}"
            case "mmmm": return MONTHS[tm.tm_mon - 1]
            case "mmm": return MONTHS[tm.tm_mon - 1][:3]
            case "mm": return f"{tm.tm_mon:02d}"
            case "m": return str(tm.tm_mon)
            case "dddd": return WEEKDAYS[tm.tm_wday]
            case "ddd": return WEEKDAYS[tm.tm_wday][:3]
            case "dd": return f"{tm.tm_mday:02d}"
            case "d": return str(tm.tm_mday)
            case "HH": return f"{tm.tm_hour:02d}"
            case "H": return str(tm.tm_hour)
            case "hh": return f"{_hour12(tm.tm_hour):02d}"
            case "h": return str(_hour12(tm.tm_hour))
            case "nn": return f"{tm.tm_min:02d}"
            case "n": return str(tm.tm_min)
            case "ss": return f"{tm.tm_sec:02d}"
            case "s": return str(tm.tm_sec)
            case "TT": return "AM" if tm.tm_hour < 12 else "PM"
            case "tt": return "am" if tm.tm_hour < 12 else "pm"
        return m.group(0)
    return _FORMAT_TOKENS.sub(sub, fmt)


def asctime(value: str = "", fmt: Optional[str] = None, *, utc: bool = False) -> str:
    """Format an epoch value (empty means now); returns '' for a non-numeric value."""
    if value is None or value.strip() == "":
        stamp = time.time()
    else:
        try:
            stamp = int(value.strip())
        except ValueError:
            return ""
    try:
        tm = time.gmtime(stamp) if utc else time.localtime(stamp)
    except (OverflowError, OSError, ValueError):
        return ""
    return format_time(tm, fmt or DEFAULT_FORMAT)


def duration(seconds: str) -> str:
    try:
        remaining = int(str(seconds).strip())
    except ValueError:
        return ""
    if remaining < 0:
        return ""
    if remaining == 0:
        return "0secs"
    parts = []
    for size, unit in _DURATION_UNITS:
        count, remaining = divmod(remaining, size)
        if count:
            parts.append(f"{count}{unit}{'' if count == 1 else 's'}")
    return " ".join(parts)
