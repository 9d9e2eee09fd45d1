"""Segmented memory with a sorted free list."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class SegmentError(LookupError):
    """Raised for unknown segments, bad positions or failed allocations."""


class FitStrategy(IntEnum):
    """Placement strategy for finding a free block."""

    FIRST = 0
    BEST = 1
    WORST = 2


@dataclass
class Segment:
    """A contiguous range of memory cells."""

    start: int
    size: int

    @property
    def end(self) -> int:
        return self.start + self.size

    def covers(self, start: int, size: int) -> bool:
        return self.start <= start and self.end >= start + size


class MemoryHandler:
    """Memory cells plus named allocated segments and a free list ordered by address."""

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError("memory size must not be negative")
        self.total_size = size
        self.memory: list[Any] = [None] * size
        self.free_list: list[Segment] = [Segment(0, size)]
        self.allocated: dict[str, Segment] = {}

    def find_free_segment(self, start: int, size: int) -> Segment | None:
        """Return the free block that fully contains ``[start, start + size)``."""
        return next((seg for seg in self.free_list if seg.covers(start, size)), None)

    def create_segment(self, name: str, start: int, size: int) -> Segment:
        """Allocate the named segment at ``start``, splitting the free block around it."""
        if name in self.allocated:
            raise SegmentError(f"segment {name!r} already exists")
        free = self.find_free_segment(start, size)
        if free is None:
            raise SegmentError(f"no free block for {size} cells at {start}")

        segment = Segment(start, size)
        self.allocated[name] = segment

        pieces = []
        if start > free.start:
            pieces.append(Segment(free.start, start - free.start))
        if free.end > segment.end:
            pieces.append(Segment(segment.end, free.end - segment.end))
        index = next(i for i, seg in enumerate(self.free_list) if seg is free)
        self.free_list[index:index + 1] = pieces
        return segment

    def remove_segment(self, name: str) -> None:
        """Release the named segment and merge it with adjacent free blocks."""
        segment = self.allocated.pop(name, None)
        if segment is None:
            raise SegmentError(f"segment {name!r} not found")

        released = Segment(segment.start, segment.size)
        index = next(
            (i for i, seg in enumerate(self.free_list) if seg.start >= released.start),
            len(self.free_list),
        )
        if index < len(self.free_list) and released.end == self.free_list[index].start:
            released.size += self.free_list.pop(index).size
        if index > 0 and self.free_list[index - 1].end == released.start:
            self.free_list[index - 1].size += released.size
        else:
            self.free_list.insert(index, released)

    def find_free_address(self, size: int, strategy: int = FitStrategy.FIRST) -> int | None:
        """Start of a free block of at least ``size`` cells, chosen by ``strategy``."""
        strategy = FitStrategy(strategy)
        candidates = [seg for seg in self.free_list if seg.size >= size]
        if strategy is FitStrategy.WORST:
            candidates = [seg for seg in candidates if seg.size > 0]
        if not candidates:
            return None
        if strategy is FitStrategy.FIRST:
            return candidates[0].start
        if strategy is FitStrategy.BEST:
            return min(candidates, key=lambda seg: seg.size).start
        return max(candidates, key=lambda seg: seg.size).start

    def segment(self, name: str) -> Segment | None:
        """The allocated segment called ``name``, if any."""
        return self.allocated.get(name)

    def _address(self, segment_name: str, pos: int) -> int:
        segment = self.allocated.get(segment_name)
        if segment is None:
            raise SegmentError(f"segment {segment_name!r} not found")
        if not 0 <= pos < segment.size:
            raise SegmentError(f"position {pos} out of range of segment {segment_name!r}")
        return segment.start + pos

    def store(self, segment_name: str, pos: int, data: Any) -> Any:
        """Write ``data`` at offset ``pos`` of a segment and return it."""
        self.memory[self._address(segment_name, pos)] = data
        return data

    def load(self, segment_name: str, pos: int) -> Any:
        """Read the cell at offset ``pos`` of a segment."""
        return self.memory[self._address(segment_name, pos)]