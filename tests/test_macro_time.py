import time

import pytest

from ircmacro.macro_time import asctime, ctime, duration, format_time

# Tuesday 2 January 2024, 15:04:05
STAMP = time.struct_time((2024, 1, 2, 15, 4, 5, 1, 2, 0))


@pytest.mark.parametrize("fmt, expected", [
    ("yyyy-mm-dd", "2024-01-02"),
    ("yy/m/d", "24/1/2"),
    ("dddd, mmmm d", "Tuesday, January 2"),
    ("ddd mmm", "Tue Jan"),
    ("HH:nn:ss", "15:04:05"),
    ("h:n:s TT", "3:4:5 PM"),
    ("hh tt", "03 pm"),
])
def test_format_time(fmt, expected):
    assert format_time(STAMP, fmt) == expected


def test_asctime_default_format_in_utc():
    assert asctime("0", utc=True) == "Thu Jan 01 00:00:00 1970"
    assert asctime("86400", "dd/mm/yyyy", utc=True) == "02/01/1970"


def test_asctime_rejects_non_numbers():
    assert asctime("soon") == ""


def test_ctime():
    assert ctime(1700000000.9) == "1700000000"
    assert abs(int(ctime()) - int(time.time())) <= 1


@pytest.mark.parametrize("seconds, expected", [
    ("0", "0secs"),
    ("1", "1sec"),
    ("59", "59secs"),
    ("60", "1min"),
    ("3600", "1hr"),
    ("90061", "1day 1hr 1min 1sec"),
    ("1300000", "2wks 1day 1hr 6mins 40secs"),
    ("-5", ""),
    ("ten", ""),
])
def test_duration(seconds, expected):
    assert duration(seconds) == expected
