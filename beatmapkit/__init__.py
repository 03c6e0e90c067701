# -*- coding: utf-8 -*-

"""\
A reader for osu!'s .osu beatmap file format (v14).

Maps are decoded in a single pass into plain python objects; metadata,
difficulty settings, colours, events, timing points & hit objects
(circles, sliders, spinners & mania holds).

Basic usage:
```
  from beatmapkit.osu import Beatmap

  bmap = Beatmap.from_file('map.osu')
  print(bmap, len(bmap.hit_objects))
```

:license: MIT, see LICENSE for details.
"""

__title__ = 'beatmapkit'
__license__ = 'MIT'
__version__ = '0.1.0'

from .logging import *
from .utils import *
