# -*- coding: utf-8 -*-

from itertools import islice
from typing import Any
from typing import Iterator

from beatmapkit.osu.errors import AllocationFailure

__all__ = ('RecordList',)

GROWTH_FACTOR = 1.5

class RecordList:
    """\
    An append-only list of parsed records (events, timing points, hit objects).

    The number of rows in a section isn't known ahead of time, so storage
    is grown to 1.5x the required size whenever it runs out, keeping the
    total amount of copying linear in the number of records.
    """
    __slots__ = ('_elements', '_count')

    def __init__(self) -> None:
        self._elements: list[Any] = []
        self._count = 0

    def __repr__(self) -> str:
        return f'<RecordList count={self._count} capacity={self.capacity}>'

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[Any]:
        return islice(self._elements, self._count)

    def __getitem__(self, index: int) -> Any:
        if index < 0:
            index += self._count

        if not 0 <= index < self._count:
            raise IndexError('RecordList index out of range')

        return self._elements[index]

    @property
    def capacity(self) -> int:
        return len(self._elements)

    def _grow(self) -> None:
        new_capacity = int((self._count + 1) * GROWTH_FACTOR)

        try:
            self._elements.extend([None] * (new_capacity - self.capacity))
        except MemoryError as exc:
            raise AllocationFailure(
                f'Failed to grow record list to {new_capacity} elements.'
            ) from exc

    def append(self, record: Any) -> None:
        if self._count >= self.capacity:
            self._grow()

        self._elements[self._count] = record
        self._count += 1

    def as_list(self) -> list[Any]:
        return self._elements[:self._count]
