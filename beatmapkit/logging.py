# -*- coding: utf-8 -*-

import sys
from datetime import tzinfo
from enum import IntEnum
from functools import cache
from typing import Optional
from zoneinfo import ZoneInfo

from .utils import get_timestamp

__all__ = ('Ansi', 'printc', 'set_timezone',
           'set_debug', 'log', 'debug')

class Ansi(IntEnum):
    # Default colours
    BLACK   = 30
    RED     = 31
    GREEN   = 32
    YELLOW  = 33
    BLUE    = 34
    MAGENTA = 35
    CYAN    = 36
    WHITE   = 37

    # Light colours
    GRAY     = 90
    LRED     = 91
    LGREEN   = 92
    LYELLOW  = 93
    LBLUE    = 94
    LMAGENTA = 95
    LCYAN    = 96
    LWHITE   = 97

    RESET = 0

    @cache
    def __repr__(self) -> str:
        return f'\x1b[{self.value}m'

_gray = repr(Ansi.GRAY)
_reset = repr(Ansi.RESET)

# looked up at call time so that
# redirected/captured stdout works.
def _write(s: str) -> None:
    sys.stdout.write(s)
    sys.stdout.flush()

def printc(msg: str, col: Ansi, end: str = '\n') -> None:
    """Print a string, in a specified ansi colour."""
    _write(f'{col!r}{msg}{_reset}{end}')

# TODO: better solution than this; this at least requires the
# iana/tzinfo database to be installed, meaning it's limited.
_log_tz = ZoneInfo('GMT') # default
def set_timezone(tz: tzinfo) -> None:
    global _log_tz
    _log_tz = tz

_debug = False
def set_debug(enabled: bool) -> None:
    """Toggle output from `debug()` (off by default)."""
    global _debug
    _debug = enabled

def log(msg: str, col: Optional[Ansi] = None,
        file: Optional[str] = None, end: str = '\n') -> None:
    """\
    Print a string, in a specified ansi colour with timestamp.

    Allows for the functionality to write to a file as
    well by passing the filepath with the `file` parameter.
    """

    ts_short = get_timestamp(full=False, tz=_log_tz)

    if col:
        _write(f'{_gray}[{ts_short}] {col!r}{msg}{_reset}{end}')
    else:
        _write(f'{_gray}[{ts_short}]{_reset} {msg}{end}')

    if file:
        # log simple ascii output to file.
        with open(file, 'a+') as f:
            f.write(f'[{get_timestamp(full=True, tz=_log_tz)}] {msg}\n')

def debug(msg: str, file: Optional[str] = None) -> None:
    if _debug:
        log(msg, Ansi.GRAY, file=file)
