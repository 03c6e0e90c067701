# -*- coding: utf-8 -*-

from typing import Optional

__all__ = ('BeatmapError', 'MalformedHeader', 'EmptyBeatmap',
           'UnsupportedVersion', 'UnknownSection',
           'InvalidKeyValueLine', 'InvalidRecordLine',
           'InvalidHitObjectPayload', 'AllocationFailure')

class BeatmapError(Exception):
    """Base class for everything the .osu reader raises."""
    def __init__(self, msg: str, line_num: Optional[int] = None) -> None:
        self.msg = msg
        self.line_num = line_num

        if line_num is not None:
            msg = f'line {line_num}: {msg}'

        super().__init__(msg)

class MalformedHeader(BeatmapError): ...

# the header itself is fine, but nothing follows it.
class EmptyBeatmap(MalformedHeader): ...

class UnsupportedVersion(BeatmapError):
    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f'Unsupported file format version {version!r}.', 1)

class UnknownSection(BeatmapError): ...
class InvalidKeyValueLine(BeatmapError): ...
class InvalidRecordLine(BeatmapError): ...
class InvalidHitObjectPayload(InvalidRecordLine): ...
class AllocationFailure(BeatmapError): ...
