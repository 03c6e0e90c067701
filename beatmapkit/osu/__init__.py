# -*- coding: utf-8 -*-

"""\
Tools for working with osu!'s .osu beatmap format.

Parsing is single pass & all-or-nothing; see `Beatmap.from_data`,
`Beatmap.from_stream` & `Beatmap.from_file` for the entry points.

:license: MIT, see LICENSE for details.
"""

from .api import *
from .beatmap import *
from .errors import *
from .reader import *
from .records import *
