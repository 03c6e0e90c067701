""" Tools for working with osu!'s .osu file format """
# -*- coding: utf-8 -*-

import codecs
import os
from enum import Enum
from enum import IntEnum
from enum import IntFlag
from enum import unique
from functools import cache
from functools import cached_property
from typing import Any
from typing import BinaryIO
from typing import Callable
from typing import NamedTuple
from typing import Optional
from typing import TextIO
from typing import Union

import orjson

from beatmapkit import logging
from beatmapkit import utils
from beatmapkit.osu.errors import EmptyBeatmap
from beatmapkit.osu.errors import InvalidHitObjectPayload
from beatmapkit.osu.errors import InvalidKeyValueLine
from beatmapkit.osu.errors import InvalidRecordLine
from beatmapkit.osu.errors import MalformedHeader
from beatmapkit.osu.errors import UnknownSection
from beatmapkit.osu.errors import UnsupportedVersion
from beatmapkit.osu.reader import LineCursor
from beatmapkit.osu.records import RecordList

__all__ = ('Beatmap', 'HitObject', 'HitCircle', 'Slider', 'Spinner', 'ManiaHold',
           'ObjectType', 'CurveType', 'HitSound', 'HitSample', 'EdgeSet',
           'SampleSet', 'TimingPoint', 'Effects', 'Colour', 'Countdown',
           'GameMode', 'OverlayPosition', 'Event', 'Background', 'Video',
           'Break', 'General', 'Editor', 'Metadata', 'Difficulty', 'Colours',
           'Section', 'MAX_COMBO_COLOURS', 'SUPPORTED_VERSION')

"""A single-pass reader for osu!'s .osu (v14) beatmap format.

Basic usage:
```
  bmap = Beatmap.from_file('map.osu')
  if not bmap:
    # file not found
    ...

  print(bmap.metadata.title, bmap.difficulty.approach_rate, ...)

  for obj in bmap.hit_objects:
    if isinstance(obj, Slider):
      print(obj.curve_type, obj.curve_points, obj.length)
```

Parsing is all-or-nothing; anything wrong with the file (other
than [Events] lines we don't understand, such as storyboard
commands) raises a `BeatmapError` & no beatmap is returned.
"""

StrOrBytesPath = Union[str, bytes, os.PathLike[str], os.PathLike[bytes]]

HEADER_PREFIX = 'osu file format v'
SUPPORTED_VERSION = '14'

# including the line terminator
MAX_VERSION_LENGTH = 16

MAX_COMBO_COLOURS = 8

@unique
class SampleSet(IntEnum):
    DEFAULT = 0
    NORMAL = 1
    SOFT = 2
    DRUM = 3

    def __str__(self) -> str:
        return self.name.lower()

@unique
class Countdown(IntEnum):
    NONE = 0
    NORMAL = 1
    HALF = 2
    DOUBLE = 3

@unique
class GameMode(IntEnum):
    OSU = 0
    TAIKO = 1
    CATCH = 2
    MANIA = 3

@unique
class OverlayPosition(IntEnum):
    NO_CHANGE = 0
    BELOW = 1
    ABOVE = 2

class Effects(IntFlag):
    NONE = 0
    KIAI = 1 << 0
    OMIT_FIRST_BARLINE = 1 << 3

def _sample_set(value: int) -> SampleSet:
    if not SampleSet.DEFAULT <= value <= SampleSet.DRUM:
        raise ValueError(f'Invalid sample set {value}.')

    return SampleSet(value)

def _ubyte(value: int) -> int:
    if not 0 <= value <= 255:
        raise ValueError(f'{value} does not fit in a byte.')

    return value

def _as_plain(value: Any) -> Any:
    """Convert parsed objects into dicts, lists & scalars."""
    if hasattr(value, 'as_dict'):
        return value.as_dict()
    elif hasattr(value, '_asdict'): # namedtuple
        return value._asdict()
    elif isinstance(value, (list, tuple, RecordList)):
        return [_as_plain(v) for v in value]

    return value

def _slots_as_dict(obj: object) -> dict[str, Any]:
    d = {}
    for cls in reversed(type(obj).__mro__):
        for attr in getattr(cls, '__slots__', ()):
            if not attr.startswith('_'):
                d[attr] = _as_plain(getattr(obj, attr))
    return d

class TimingPoint:
    __slots__ = (
        'time', 'beat_length', 'meter', 'sample_set', 'sample_index',
        'volume', 'uninherited', 'effects', '__dict__'
    )

    def __init__(
        self, time: int, beat_length: float,
        meter: int, sample_set: SampleSet, sample_index: int,
        volume: int, uninherited: bool, effects: Effects
    ) -> None:
        self.time = time
        self.beat_length = beat_length
        self.meter = meter
        self.sample_set = sample_set
        self.sample_index = sample_index
        self.volume = volume
        self.uninherited = uninherited
        self.effects = effects

    def __repr__(self) -> str:
        kind = 'Uninherited' if self.uninherited else 'Inherited'
        return f'{kind} timing point @ {self.time}ms'

    @cached_property
    def bpm(self) -> float:
        # only meaningful for uninherited points, for inherited
        # ones beat_length is a negative inverse slider velocity.
        return 1 / self.beat_length * 1000 * 60

    def as_dict(self) -> dict[str, Any]:
        return _slots_as_dict(self)

    @classmethod
    def from_cursor(cls, cursor: LineCursor) -> 'TimingPoint':
        line_num = cursor.line_num
        line = cursor.current_line()

        tp_split = []
        while (field := cursor.read_field(',')) is not None:
            tp_split.append(field)

        if len(tp_split) != 8:
            raise InvalidRecordLine(
                f'Expected 8 timing point fields, got {len(tp_split)}.',
                line_num
            )

        try:
            return cls(
                time=utils.parse_int(tp_split[0]),
                beat_length=utils.parse_decimal(tp_split[1]),
                meter=utils.parse_int(tp_split[2]),
                sample_set=_sample_set(utils.parse_int(tp_split[3])),
                sample_index=utils.parse_int(tp_split[4]),
                volume=utils.parse_int(tp_split[5]),
                uninherited=utils.parse_bool(tp_split[6]),
                effects=Effects(_ubyte(utils.parse_int(tp_split[7])))
            )
        except ValueError as exc:
            raise InvalidRecordLine(
                f'Invalid timing point {line!r} ({exc})', line_num
            ) from exc

def _read_int_then(
    cursor: LineCursor, delimiters: str, what: str
) -> tuple[int, str]:
    """\
    Read an integer which must be followed by one of `delimiters`;
    returns the integer along with whichever delimiter followed.
    """
    if (value := cursor.read_int()) is None:
        raise InvalidHitObjectPayload(
            f'Expected an integer for {what}.', cursor.line_num
        )

    c = cursor.take()
    if not c or c not in delimiters:
        raise InvalidHitObjectPayload(
            f'Unexpected {c or "end of line"!r} after {what}.',
            cursor.line_num
        )

    return value, c

class HitSample:
    __slots__ = ('normal_set', 'addition_set', 'index', 'volume', 'filename')

    def __init__(
        self, normal_set: SampleSet = SampleSet.DEFAULT,
        addition_set: SampleSet = SampleSet.DEFAULT,
        index: int = 0, volume: int = 0, filename: str = ''
    ) -> None:
        self.normal_set = normal_set
        self.addition_set = addition_set
        self.index = index
        self.volume = volume
        self.filename = filename # '' for the default sample

    def __repr__(self) -> str:
        return (f'<HitSample {self.normal_set}:{self.addition_set}:'
                f'{self.index}:{self.volume}:{self.filename!r}>')

    @property
    def is_default(self) -> bool:
        return (
            self.normal_set == self.addition_set == SampleSet.DEFAULT and
            self.index == self.volume == 0 and not self.filename
        )

    def as_dict(self) -> dict[str, Any]:
        return _slots_as_dict(self)

    @classmethod
    def from_cursor(cls, cursor: LineCursor) -> 'HitSample':
        sets = []
        for what in ('normal set', 'addition set'):
            value, _ = _read_int_then(cursor, ':', what)
            try:
                sets.append(_sample_set(value))
            except ValueError as exc:
                raise InvalidHitObjectPayload(
                    f'Invalid {what} {value}.', cursor.line_num
                ) from exc

        index, _ = _read_int_then(cursor, ':', 'sample index')
        volume, _ = _read_int_then(cursor, ':', 'sample volume')

        # the filename is the rest of the line, optionally quoted
        filename = cursor.read_value()
        if filename.startswith('"'):
            if len(filename) < 2 or not filename.endswith('"'):
                raise InvalidHitObjectPayload(
                    f'Unterminated quote in sample filename {filename!r}.',
                    cursor.line_num
                )

            filename = filename[1:-1]

        return cls(
            normal_set=sets[0],
            addition_set=sets[1],
            index=index,
            volume=volume,
            filename=filename
        )

class ObjectType:
    HIT_CIRCLE = 1 << 0
    SLIDER = 1 << 1
    NEW_COMBO = 1 << 2
    SPINNER = 1 << 3

    SKIP_ONE = 1 << 4
    SKIP_TWO = 1 << 5
    SKIP_THREE = 1 << 6

    MANIA_HOLD = 1 << 7

    # exactly one of these must be set
    KIND_MASK = HIT_CIRCLE | SLIDER | SPINNER | MANIA_HOLD

@unique
class HitSound(IntFlag):
    NORMAL = 1 << 0
    WHISTLE = 1 << 1
    FINISH = 1 << 2
    CLAP = 1 << 3

class HitObject:
    __slots__ = ('x', 'y', 'time', 'type', 'hit_sound', 'hit_sample')

    def __init__(
        self,
        x: int,
        y: int,
        time: int,
        type: int,
        hit_sound: HitSound,
        hit_sample: Optional[HitSample] = None
    ) -> None:
        self.x = x
        self.y = y
        self.time = time

        # the raw bitfield, see `ObjectType`
        self.type = type

        self.hit_sound = hit_sound
        self.hit_sample = hit_sample or HitSample()

    @property
    def new_combo(self) -> bool:
        return bool(self.type & ObjectType.NEW_COMBO)

    @property
    def combo_skip(self) -> int:
        return (self.type >> 4) & 0b111

    def as_dict(self) -> dict[str, Any]:
        return {'kind': type(self).__name__, **_slots_as_dict(self)}

    @staticmethod
    def from_cursor(cursor: LineCursor) -> 'HitObject':
        line_num = cursor.line_num

        args = []
        for what in ('x', 'y', 'time', 'type', 'hit sound'):
            if (field := cursor.read_field(',')) is None:
                raise InvalidRecordLine(f'Missing hit object {what}.', line_num)

            try:
                args.append(utils.parse_int(field))
            except ValueError as exc:
                raise InvalidRecordLine(
                    f'Invalid hit object {what} {field!r}.', line_num
                ) from exc

        x, y, time, t, hit_sound = args

        if not (0 <= t <= 255 and 0 <= hit_sound <= 255):
            raise InvalidRecordLine(
                f'Hit object type/hit sound out of range ({t}, {hit_sound}).',
                line_num
            )

        if cursor.exhausted:
            raise InvalidRecordLine('Missing hit object parameters.', line_num)

        kinds = [cls for bit, cls in (
            (ObjectType.HIT_CIRCLE, HitCircle),
            (ObjectType.SLIDER, Slider),
            (ObjectType.SPINNER, Spinner),
            (ObjectType.MANIA_HOLD, ManiaHold)
        ) if t & bit]

        if len(kinds) != 1:
            raise InvalidHitObjectPayload(
                f'Hit object type {t} must be exactly one of '
                'circle, slider, spinner or hold.', line_num
            )

        return kinds[0].from_cursor(
            cursor,
            x=x,
            y=y,
            time=time,
            type=t,
            hit_sound=HitSound(hit_sound)
        )

class HitCircle(HitObject):
    # hitcircle is simple, nothing extra,
    # so we don't have to write constructor
    __slots__ = ()

    def __repr__(self) -> str:
        return f'Circle @ {{{self.x} {self.y}}}'

    @classmethod
    def from_cursor(cls, cursor: LineCursor, **kwargs) -> 'HitCircle':
        kwargs['hit_sample'] = HitSample.from_cursor(cursor)
        return cls(**kwargs)

@unique
class CurveType(IntEnum):
    Bezier = 0
    CentripetalCatmullRom = 1
    Linear = 2
    PerfectCircle = 3

    @staticmethod
    @cache
    def from_str(s: str) -> 'CurveType':
        return {
            'B': CurveType.Bezier, 'C': CurveType.CentripetalCatmullRom,
            'L': CurveType.Linear, 'P': CurveType.PerfectCircle
        }[s]

class EdgeSet(NamedTuple):
    normal_set: int
    addition_set: int

class Slider(HitObject):
    __slots__ = (
        'curve_type', 'curve_points', 'slides',
        'length', 'edge_sounds', 'edge_sets'
    )

    def __init__(
        self, curve_type: CurveType,
        curve_points: list[tuple[int, int]],
        slides: int,
        length: float,
        edge_sounds: list[HitSound],
        edge_sets: list[EdgeSet],
        **kwargs
    ) -> None:
        self.curve_type = curve_type
        self.curve_points = curve_points
        self.slides = slides
        self.length = length
        self.edge_sounds = edge_sounds
        self.edge_sets = edge_sets

        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f'Slider [{self.curve_type.name}] @ {{{self.x} {self.y}}}'

    @staticmethod
    def _read_list(
        read_item: Callable[[], tuple[Any, str]]
    ) -> list[Any]:
        """Read '|'-separated items up to the terminating ','."""
        items = []
        while True:
            item, delimiter = read_item()
            items.append(item)

            if delimiter == ',':
                return items

    @classmethod
    def from_cursor(cls, cursor: LineCursor, **kwargs) -> 'Slider':
        c = cursor.take()
        try:
            kwargs['curve_type'] = CurveType.from_str(c)
        except KeyError:
            raise InvalidHitObjectPayload(
                f'Unknown curve type {c!r}.', cursor.line_num
            ) from None

        if not cursor.expect('|'):
            raise InvalidHitObjectPayload(
                "Expected '|' after curve type.", cursor.line_num
            )

        def read_curve_point() -> tuple[tuple[int, int], str]:
            x, _ = _read_int_then(cursor, ':', 'curve point x')
            y, delimiter = _read_int_then(cursor, '|,', 'curve point y')
            return (x, y), delimiter

        def read_edge_sound() -> tuple[HitSound, str]:
            value, delimiter = _read_int_then(cursor, '|,', 'edge sound')
            return HitSound(value), delimiter

        def read_edge_set() -> tuple[EdgeSet, str]:
            normal_set, _ = _read_int_then(cursor, ':', 'edge normal set')
            addition_set, delimiter = _read_int_then(
                cursor, '|,', 'edge addition set'
            )
            return EdgeSet(normal_set, addition_set), delimiter

        kwargs['curve_points'] = cls._read_list(read_curve_point)
        kwargs['slides'], _ = _read_int_then(cursor, ',', 'slide count')

        # length is a decimal, running up until the next ','
        len_start = cursor.pos
        len_end = cursor.data.find(',', len_start, cursor.line_end())
        if len_end == -1:
            raise InvalidHitObjectPayload(
                'Missing slider edge sounds.', cursor.line_num
            )

        try:
            kwargs['length'] = utils.parse_decimal(cursor.data[len_start:len_end])
        except ValueError as exc:
            raise InvalidHitObjectPayload(
                f'Invalid slider length {cursor.data[len_start:len_end]!r}.',
                cursor.line_num
            ) from exc

        cursor.pos = len_end + 1

        kwargs['edge_sounds'] = cls._read_list(read_edge_sound)
        kwargs['edge_sets'] = cls._read_list(read_edge_set)
        kwargs['hit_sample'] = HitSample.from_cursor(cursor)

        return cls(**kwargs)

class Spinner(HitObject):
    __slots__ = ('end_time',)

    def __init__(self, end_time: int, **kwargs) -> None:
        self.end_time = end_time

        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f'Spinner @ {self.time}-{self.end_time}ms'

    @classmethod
    def from_cursor(cls, cursor: LineCursor, **kwargs) -> 'Spinner':
        kwargs['end_time'], _ = _read_int_then(cursor, ',', 'spinner end time')
        kwargs['hit_sample'] = HitSample.from_cursor(cursor)
        return cls(**kwargs)

class ManiaHold(HitObject):
    __slots__ = ('end_time',)

    def __init__(self, end_time: int, **kwargs) -> None:
        self.end_time = end_time

        super().__init__(**kwargs)

        # `self.x` determines the column the hold will be in;
        # it can be determined with floor(x * columnCount / 512)
        # clamped between 0 and columnCount - 1
        # y will default to the centre of playfield, 192

    def __repr__(self) -> str:
        return f'Hold @ {{{self.x}}} {self.time}-{self.end_time}ms'

    @classmethod
    def from_cursor(cls, cursor: LineCursor, **kwargs) -> 'ManiaHold':
        # unlike spinners, the end time is ':' terminated;
        # it's really the first field of the hit sample.
        kwargs['end_time'], _ = _read_int_then(cursor, ':', 'hold end time')
        kwargs['hit_sample'] = HitSample.from_cursor(cursor)
        return cls(**kwargs)

class Colour(NamedTuple):
    r: int
    g: int
    b: int

    @classmethod
    def from_str(cls, s: str) -> 'Colour':
        return cls(*utils.parse_rgb(s))

# NOTE: storyboard commands & the other event
#       types are skipped by the beatmap reader.
class Event:
    __slots__ = ('start_time',)

    def __init__(self, start_time: int) -> None:
        self.start_time = start_time

    def as_dict(self) -> dict[str, Any]:
        return {'kind': type(self).__name__, **_slots_as_dict(self)}

    @staticmethod
    def from_cursor(cursor: LineCursor) -> Optional['Event']:
        """Read an event from the line; None if it isn't one we support."""
        if (_type := cursor.read_field(',')) is None:
            return

        cls = {
            '0': Background,
            '1': Video, 'Video': Video,
            '2': Break, 'Break': Break
        }.get(_type)

        if cls is None or (start_time := cursor.read_field(',')) is None:
            return

        try:
            return cls.from_cursor(cursor, start_time=utils.parse_int(start_time))
        except ValueError:
            return

class _MediaEvent(Event):
    __slots__ = ('filename', 'x_offset', 'y_offset')

    def __init__(
        self, filename: str,
        x_offset: int = 0,
        y_offset: int = 0,
        **kwargs
    ) -> None:
        self.filename = filename
        self.x_offset = x_offset
        self.y_offset = y_offset

        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f'{type(self).__name__} {self.filename!r} @ {self.start_time}ms'

    @classmethod
    def from_cursor(cls, cursor: LineCursor, **kwargs) -> Optional['_MediaEvent']:
        if (filename := cursor.read_field(',', quoted=True)) is None:
            return

        if len(filename) >= 2 and filename[0] == filename[-1] == '"':
            filename = filename[1:-1]

        kwargs['filename'] = filename

        # the offsets are optional, but come as a pair
        if (x_off := cursor.read_field(',')) is not None:
            if (y_off := cursor.read_field(',')) is None:
                return

            kwargs['x_offset'] = utils.parse_int(x_off)
            kwargs['y_offset'] = utils.parse_int(y_off)

        if not cursor.exhausted:
            # leftover fields
            return

        return cls(**kwargs)

class Background(_MediaEvent):
    __slots__ = ()

class Video(_MediaEvent):
    __slots__ = ()

class Break(Event):
    __slots__ = ('end_time',)

    def __init__(self, end_time: int, **kwargs) -> None:
        self.end_time = end_time

        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f'Break @ {self.start_time}-{self.end_time}ms'

    @classmethod
    def from_cursor(cls, cursor: LineCursor, **kwargs) -> Optional['Break']:
        if (end_time := cursor.read_field(',')) is None:
            return

        if not cursor.exhausted:
            return

        return cls(end_time=utils.parse_int(end_time), **kwargs)

""" key: value sections """

class General:
    __slots__ = (
        'audio_filename', 'audio_leadin', 'audio_hash', 'preview_time',
        'countdown', 'sample_set', 'stack_leniency', 'mode',
        'letterbox_in_breaks', 'story_fire_in_front', 'use_skin_sprites',
        'always_show_playfield', 'overlay_position', 'skin_preference',
        'epilepsy_warning', 'countdown_offset', 'special_style',
        'widescreen_storyboard', 'samples_match_playback_rate'
    )

    def __init__(self) -> None:
        self.audio_filename: Optional[str] = None
        self.audio_leadin: Optional[int] = None
        self.audio_hash: Optional[str] = None # deprecated
        self.preview_time: Optional[int] = None
        self.countdown: Optional[Countdown] = None
        self.sample_set: Optional[SampleSet] = None
        self.stack_leniency: Optional[float] = None
        self.mode: Optional[GameMode] = None
        self.letterbox_in_breaks: Optional[bool] = None
        self.story_fire_in_front: Optional[bool] = None # deprecated
        self.use_skin_sprites: Optional[bool] = None
        self.always_show_playfield: Optional[bool] = None # deprecated
        self.overlay_position: Optional[OverlayPosition] = None
        self.skin_preference: Optional[str] = None
        self.epilepsy_warning: Optional[bool] = None
        self.countdown_offset: Optional[int] = None
        self.special_style: Optional[bool] = None
        self.widescreen_storyboard: Optional[bool] = None
        self.samples_match_playback_rate: Optional[bool] = None

    def as_dict(self) -> dict[str, Any]:
        return _slots_as_dict(self)

class Editor:
    __slots__ = (
        'bookmarks', 'distance_spacing', 'beat_divisor',
        'grid_size', 'timeline_zoom'
    )

    def __init__(self) -> None:
        self.bookmarks: Optional[list[int]] = None
        self.distance_spacing: Optional[float] = None
        self.beat_divisor: Optional[float] = None
        self.grid_size: Optional[int] = None
        self.timeline_zoom: Optional[float] = None

    def as_dict(self) -> dict[str, Any]:
        return _slots_as_dict(self)

class Metadata:
    __slots__ = (
        'title', 'title_unicode', 'artist', 'artist_unicode', 'creator',
        'version', 'source', 'tags', 'beatmap_id', 'beatmap_set_id'
    )

    def __init__(self) -> None:
        self.title: Optional[str] = None
        self.title_unicode: Optional[str] = None
        self.artist: Optional[str] = None
        self.artist_unicode: Optional[str] = None
        self.creator: Optional[str] = None
        self.version: Optional[str] = None
        self.source: Optional[str] = None
        self.tags: Optional[list[str]] = None
        self.beatmap_id: Optional[int] = None
        self.beatmap_set_id: Optional[int] = None

    def as_dict(self) -> dict[str, Any]:
        return _slots_as_dict(self)

class Difficulty:
    __slots__ = (
        'hp_drain_rate', 'circle_size', 'overall_difficulty',
        'approach_rate', 'slider_multiplier', 'slider_tick_rate'
    )

    def __init__(self) -> None:
        self.hp_drain_rate: Optional[float] = None
        self.circle_size: Optional[float] = None
        self.overall_difficulty: Optional[float] = None
        self.approach_rate: Optional[float] = None
        self.slider_multiplier: Optional[float] = None
        self.slider_tick_rate: Optional[float] = None

    def as_dict(self) -> dict[str, Any]:
        return _slots_as_dict(self)

class Colours:
    __slots__ = ('combos', 'slider_track_override', 'slider_border')

    def __init__(self) -> None:
        # Combo1 is at index 0
        self.combos: list[Optional[Colour]] = [None] * MAX_COMBO_COLOURS
        self.slider_track_override: Optional[Colour] = None
        self.slider_border: Optional[Colour] = None

    def as_dict(self) -> dict[str, Any]:
        return _slots_as_dict(self)

def _string(s: str) -> str:
    return s

def _int_enum(enum_cls: type[IntEnum]) -> Callable[[str], IntEnum]:
    def decode(s: str) -> IntEnum:
        return enum_cls(utils.parse_int(s))
    return decode

def _str_enum(values: dict[str, Enum]) -> Callable[[str], Enum]:
    def decode(s: str) -> Enum:
        if s not in values:
            raise ValueError(f'Unknown value {s!r}.')
        return values[s]
    return decode

def _int_list(s: str) -> list[int]:
    # 'Bookmarks: ' with nothing after it is
    # an empty list, but '1,,2' is an error.
    if not s:
        return []

    return [utils.parse_int(x) for x in s.split(',')]

def _tag_list(s: str) -> list[str]:
    # runs of spaces don't produce empty tags
    return [tag for tag in s.split(' ') if tag]

# (prefix, value decoder, attribute name),
# matched in order against the line.
KeyTable = tuple[tuple[str, Callable[[str], Any], str], ...]

GENERAL_KEYS: KeyTable = (
    ('AudioFilename: ', _string, 'audio_filename'),
    ('AudioLeadIn: ', utils.parse_int, 'audio_leadin'),
    ('AudioHash: ', _string, 'audio_hash'),
    ('PreviewTime: ', utils.parse_int, 'preview_time'),
    ('Countdown: ', _int_enum(Countdown), 'countdown'),
    ('SampleSet: ', _str_enum({
        'Normal': SampleSet.NORMAL,
        'Soft': SampleSet.SOFT,
        'Drum': SampleSet.DRUM
    }), 'sample_set'),
    ('StackLeniency: ', utils.parse_decimal, 'stack_leniency'),
    ('Mode: ', _int_enum(GameMode), 'mode'),
    ('LetterboxInBreaks: ', utils.parse_bool, 'letterbox_in_breaks'),
    ('StoryFireInFront: ', utils.parse_bool, 'story_fire_in_front'),
    ('UseSkinSprites: ', utils.parse_bool, 'use_skin_sprites'),
    ('AlwaysShowPlayfield: ', utils.parse_bool, 'always_show_playfield'),
    ('OverlayPosition: ', _str_enum({
        'NoChange': OverlayPosition.NO_CHANGE,
        'Below': OverlayPosition.BELOW,
        'Above': OverlayPosition.ABOVE
    }), 'overlay_position'),
    ('SkinPreference: ', _string, 'skin_preference'),
    ('EpilepsyWarning: ', utils.parse_bool, 'epilepsy_warning'),
    ('CountdownOffset: ', utils.parse_int, 'countdown_offset'),
    ('SpecialStyle: ', utils.parse_bool, 'special_style'),
    ('WidescreenStoryboard: ', utils.parse_bool, 'widescreen_storyboard'),
    ('SamplesMatchPlaybackRate: ', utils.parse_bool, 'samples_match_playback_rate')
)

EDITOR_KEYS: KeyTable = (
    ('Bookmarks: ', _int_list, 'bookmarks'),
    ('DistanceSpacing: ', utils.parse_decimal, 'distance_spacing'),
    ('BeatDivisor: ', utils.parse_decimal, 'beat_divisor'),
    ('GridSize: ', utils.parse_int, 'grid_size'),
    ('TimelineZoom: ', utils.parse_decimal, 'timeline_zoom')
)

METADATA_KEYS: KeyTable = (
    ('Title:', _string, 'title'),
    ('TitleUnicode:', _string, 'title_unicode'),
    ('Artist:', _string, 'artist'),
    ('ArtistUnicode:', _string, 'artist_unicode'),
    ('Creator:', _string, 'creator'),
    ('Version:', _string, 'version'),
    ('Source:', _string, 'source'),
    ('Tags:', _tag_list, 'tags'),
    ('BeatmapID:', utils.parse_int, 'beatmap_id'),
    ('BeatmapSetID:', utils.parse_int, 'beatmap_set_id')
)

DIFFICULTY_KEYS: KeyTable = (
    ('HPDrainRate:', utils.parse_decimal, 'hp_drain_rate'),
    ('CircleSize:', utils.parse_decimal, 'circle_size'),
    ('OverallDifficulty:', utils.parse_decimal, 'overall_difficulty'),
    ('ApproachRate:', utils.parse_decimal, 'approach_rate'),
    ('SliderMultiplier:', utils.parse_decimal, 'slider_multiplier'),
    ('SliderTickRate:', utils.parse_decimal, 'slider_tick_rate')
)

# Combo<N> is handled separately
COLOUR_KEYS: KeyTable = (
    ('SliderTrackOverride : ', Colour.from_str, 'slider_track_override'),
    ('SliderBorder : ', Colour.from_str, 'slider_border')
)

@unique
class Section(Enum):
    GENERAL = 'General'
    EDITOR = 'Editor'
    METADATA = 'Metadata'
    DIFFICULTY = 'Difficulty'
    EVENTS = 'Events'
    TIMING_POINTS = 'TimingPoints'
    COLOURS = 'Colours'
    HIT_OBJECTS = 'HitObjects'

    @property
    def header(self) -> str:
        return f'[{self.value}]'

class Beatmap:
    __slots__ = (
        'file_version', 'general', 'editor', 'metadata', 'difficulty',
        'colours', 'events', 'timing_points', 'hit_objects', '_section'
    )

    def __init__(self) -> None:
        self.file_version: Optional[int] = None

        self.general = General()
        self.editor = Editor()
        self.metadata = Metadata()
        self.difficulty = Difficulty()
        self.colours = Colours()

        """ comma-separated sections """
        self.events = RecordList() # list[Event]
        self.timing_points = RecordList() # list[TimingPoint]
        self.hit_objects = RecordList() # list[HitObject]

        """ internal reader use only """
        self._section: Optional[Section] = None

    def __repr__(self) -> str:
        m = self.metadata
        return f'{m.artist} - {m.title} ({m.creator}) [{m.version}]'

    @property
    def backgrounds(self) -> list[Background]:
        return [e for e in self.events if isinstance(e, Background)]

    @property
    def videos(self) -> list[Video]:
        return [e for e in self.events if isinstance(e, Video)]

    @property
    def breaks(self) -> list[Break]:
        return [e for e in self.events if isinstance(e, Break)]

    def as_dict(self) -> dict[str, Any]:
        return {
            'file_version': self.file_version,
            'general': self.general.as_dict(),
            'editor': self.editor.as_dict(),
            'metadata': self.metadata.as_dict(),
            'difficulty': self.difficulty.as_dict(),
            'colours': self.colours.as_dict(),
            'events': _as_plain(self.events),
            'timing_points': _as_plain(self.timing_points),
            'hit_objects': _as_plain(self.hit_objects)
        }

    def as_json(self, indent: bool = False) -> bytes:
        option = orjson.OPT_INDENT_2 if indent else 0
        return orjson.dumps(self.as_dict(), option=option)

    @classmethod
    def from_data(cls, data: Union[str, bytes]) -> 'Beatmap':
        """Parse a beatmap from the full contents of a .osu file."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            data = bytes(data).decode('utf-8', errors='replace')

        b = cls()

        cursor = LineCursor(data, pos=b._read_header(data), line_num=2)
        while not cursor.at_end:
            b._parse_line(cursor)

        b._check_not_empty()
        return b

    @classmethod
    def from_stream(cls, f: Union[TextIO, BinaryIO]) -> 'Beatmap':
        """Parse a beatmap from a file object, one line at a time."""
        b = cls()

        header = f.read(len(HEADER_PREFIX))
        binary = isinstance(header, bytes)

        # skip the utf-8 bom, if there is one
        if binary:
            if header.startswith(codecs.BOM_UTF8):
                header = header[len(codecs.BOM_UTF8):] + f.read(len(codecs.BOM_UTF8))
            header = header.decode('utf-8', errors='replace')
        elif header.startswith('\ufeff'):
            header = header[1:] + f.read(1)

        if header != HEADER_PREFIX:
            raise MalformedHeader(f'Missing {HEADER_PREFIX!r} header.', 1)

        version = ''
        for _ in range(MAX_VERSION_LENGTH):
            c = f.read(1)
            if binary:
                c = c.decode('utf-8', errors='replace')

            if c in ('', '\r', '\n'):
                break

            version += c
        else:
            raise MalformedHeader('Version string too long.', 1)

        b._check_version(version)

        if not c:
            raise EmptyBeatmap('Nothing follows the file header.', 1)

        # if the header ended in '\r', the
        # '\n' of '\r\n' is still to be read.
        skip_lf = c == '\r'
        line_num = 2

        for line in iter(f.readline, b'' if binary else ''):
            if binary:
                line = line.decode('utf-8', errors='replace')

            if skip_lf:
                skip_lf = False
                if line.startswith('\n'):
                    line = line[1:]

            cursor = LineCursor(line, line_num=line_num)
            while not cursor.at_end:
                b._parse_line(cursor)

            line_num = cursor.line_num

        b._check_not_empty()
        return b

    @classmethod
    def from_file(cls, path: StrOrBytesPath) -> Optional['Beatmap']:
        if os.path.exists(path):
            with open(path, 'rb') as f:
                return cls.from_stream(f)

    def _check_version(self, version: str) -> None:
        # only v14 is supported for the time being
        if version != SUPPORTED_VERSION:
            raise UnsupportedVersion(version)

        self.file_version = int(version)

    def _check_not_empty(self) -> None:
        if self._section is None:
            raise EmptyBeatmap('No sections found in beatmap.')

    def _read_header(self, data: str) -> int:
        """Check the file header, returning the offset of the next line."""
        start = 1 if data.startswith('\ufeff') else 0

        if not data.startswith(HEADER_PREFIX, start):
            raise MalformedHeader(f'Missing {HEADER_PREFIX!r} header.', 1)

        ver_start = start + len(HEADER_PREFIX)
        for ver_end in range(ver_start, ver_start + MAX_VERSION_LENGTH):
            if ver_end >= len(data) or data[ver_end] in ('\r', '\n'):
                break
        else:
            raise MalformedHeader('Version string too long.', 1)

        self._check_version(data[ver_start:ver_end])

        if ver_end >= len(data):
            raise EmptyBeatmap('Nothing follows the file header.', 1)

        offset = ver_end + 1
        if data[ver_end] == '\r' and data.startswith('\n', offset):
            offset += 1

        return offset

    def _parse_line(self, cursor: LineCursor) -> None:
        """Parse the line under the cursor & move on to the next."""
        if cursor.is_blank_line():
            cursor.advance_to_next_line()
            return

        if cursor.check_prefix('//'):
            # comment
            cursor.advance_to_next_line()
            return

        if cursor.peek() == '[':
            self._parse_section_header(cursor)
            return

        if self._section is None:
            raise UnknownSection(
                'Found content before any section header.',
                cursor.line_num
            )

        if self._section is Section.GENERAL:
            self._parse_key_value(cursor, self.general, GENERAL_KEYS)
        elif self._section is Section.EDITOR:
            self._parse_key_value(cursor, self.editor, EDITOR_KEYS)
        elif self._section is Section.METADATA:
            self._parse_key_value(cursor, self.metadata, METADATA_KEYS)
        elif self._section is Section.DIFFICULTY:
            self._parse_key_value(cursor, self.difficulty, DIFFICULTY_KEYS)
        elif self._section is Section.COLOURS:
            self._parse_colours_line(cursor)
        elif self._section is Section.EVENTS:
            self._parse_events_line(cursor)
        elif self._section is Section.TIMING_POINTS:
            self._parse_timing_points_line(cursor)
        elif self._section is Section.HIT_OBJECTS:
            self._parse_hit_objects_line(cursor)

    def _parse_section_header(self, cursor: LineCursor) -> None:
        line_num = cursor.line_num
        line = cursor.current_line()

        for section in Section:
            if cursor.check_prefix(section.header):
                # only blanks may follow the header
                if cursor.advance_to_next_line(require_non_blank=True):
                    self._section = section
                    return
                break

        raise UnknownSection(f'Unknown section header {line!r}.', line_num)

    def _parse_key_value(
        self, cursor: LineCursor,
        record: object, keys: KeyTable
    ) -> None:
        line_num = cursor.line_num

        for prefix, decode, attr in keys:
            if cursor.check_prefix(prefix):
                value = cursor.read_value()

                try:
                    setattr(record, attr, decode(value))
                except ValueError as exc:
                    raise InvalidKeyValueLine(
                        f'Invalid [{self._section.value}] value for '
                        f'{prefix.rstrip(": ")}: {value!r} ({exc})', line_num
                    ) from exc

                cursor.advance_to_next_line()
                return

        raise InvalidKeyValueLine(
            f'Unknown [{self._section.value}] line '
            f'{cursor.current_line()!r}.', line_num
        )

    def _parse_colours_line(self, cursor: LineCursor) -> None:
        if not cursor.check_prefix('Combo'):
            self._parse_key_value(cursor, self.colours, COLOUR_KEYS)
            return

        line_num = cursor.line_num

        # the index is read straight out of the key name
        if not '0' <= cursor.peek() <= '9':
            raise InvalidKeyValueLine('Missing combo colour index.', line_num)

        combo = cursor.read_int()
        if not 1 <= combo <= MAX_COMBO_COLOURS:
            raise InvalidKeyValueLine(
                f'Combo colour index {combo} out of range '
                f'(1-{MAX_COMBO_COLOURS}).', line_num
            )

        if not cursor.check_prefix(' : '):
            raise InvalidKeyValueLine(
                f"Expected ' : ' after Combo{combo}.", line_num
            )

        value = cursor.read_value()
        try:
            self.colours.combos[combo - 1] = Colour.from_str(value)
        except ValueError as exc:
            raise InvalidKeyValueLine(
                f'Invalid colour for Combo{combo}: {value!r} ({exc})', line_num
            ) from exc

        cursor.advance_to_next_line()

    def _parse_events_line(self, cursor: LineCursor) -> None:
        line_num = cursor.line_num
        line = cursor.current_line()

        # we don't parse storyboards (for the time being),
        # so lines we don't understand are simply skipped.
        if (event := Event.from_cursor(cursor)) is None:
            logging.debug(f'Skipped [Events] line {line_num}: {line!r}')
        else:
            self.events.append(event)

        cursor.advance_to_next_line()

    def _parse_timing_points_line(self, cursor: LineCursor) -> None:
        self.timing_points.append(TimingPoint.from_cursor(cursor))
        cursor.advance_to_next_line()

    def _parse_hit_objects_line(self, cursor: LineCursor) -> None:
        self.hit_objects.append(HitObject.from_cursor(cursor))
        cursor.advance_to_next_line()

if __name__ == '__main__':
    import sys
    import time

    st = time.time_ns()
    bmap = Beatmap.from_file(sys.argv[1])
    elapsed = utils.magnitude_fmt_time(time.time_ns()-st)
    print(f'Parsed {bmap} in {elapsed}.')
