# -*- coding: utf-8 -*-

from datetime import datetime
from datetime import tzinfo
from typing import Optional
from typing import Union

__all__ = ('get_timestamp', '_isdecimal', 'parse_int',
           'parse_decimal', 'parse_bool', 'parse_rgb',
           'magnitude_fmt_time')

BLANK_CHARS = ' \t'

def get_timestamp(
    full: bool = False,
    tz: Optional[tzinfo] = None
) -> str:
    fmt = '%d/%m/%Y %I:%M:%S%p' if full else '%I:%M:%S%p'
    return f'{datetime.now(tz=tz):{fmt}}'

def _isdecimal(s: str, _float: bool = False,
               _negative: bool = False) -> bool:
    if _float:
        s = s.replace('.', '', 1)

    if _negative and s[:1] in ('-', '+'):
        s = s[1:]

    # str.isdecimal() accepts non-ascii digits
    # which int() would also take; we don't.
    return s.isascii() and s.isdecimal()

""" primitives used by the .osu reader.

all of these take a single token (already cut out of the line),
tolerate surrounding blanks, and raise ValueError otherwise.
"""

def parse_int(s: str) -> int:
    s = s.strip(BLANK_CHARS)
    if not _isdecimal(s, _negative=True):
        raise ValueError(f'Invalid integer {s!r}.')

    return int(s)

def parse_decimal(s: str) -> float:
    s = s.strip(BLANK_CHARS)

    # float() would also take things like 'nan', '1e5' & '_'
    if not _isdecimal(s, _float=True, _negative=True):
        raise ValueError(f'Invalid decimal {s!r}.')

    return float(s)

def parse_bool(s: str) -> bool:
    s = s.strip(BLANK_CHARS)
    if s == '1':
        return True
    elif s == '0':
        return False

    raise ValueError(f'Invalid boolean {s!r}.')

def parse_rgb(s: str) -> tuple[int, int, int]:
    if len(split := s.split(',')) != 3:
        raise ValueError(f'Invalid rgb triplet {s!r}.')

    r, g, b = map(parse_int, split)

    if not all(0 <= c <= 255 for c in (r, g, b)):
        raise ValueError(f'Rgb component out of range in {s!r}.')

    return r, g, b

# TODO: genericize this to metric all units?
TIME_ORDER_SUFFIXES = ['nsec', 'μsec', 'msec', 'sec']
def magnitude_fmt_time(
    t: Union[int, float] # in nanosec
) -> str:
    for suffix in TIME_ORDER_SUFFIXES:
        if t < 1000:
            break
        t /= 1000
    return f'{t:.2f} {suffix}'
