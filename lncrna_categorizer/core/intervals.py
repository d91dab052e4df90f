#!/usr/bin/env python3

"""
Per-chromosome interval index over transcript spans.

Spans are closed intervals: two spans overlap when their bounds interleave,
including a shared end point.
"""

from typing import Iterable, List, Tuple

from intervaltree import IntervalTree


class IntervalIndex:
    """Range-overlap lookup of (id, start, end) spans for one chromosome."""

    def __init__(self):
        self.tree = IntervalTree()

    @classmethod
    def build(cls, ranges: Iterable[Tuple[str, int, int]]) -> 'IntervalIndex':
        index = cls()
        for range_id, start, end in ranges:
            index.add(range_id, start, end)
        return index

    def add(self, range_id: str, start: int, end: int) -> None:
        # IntervalTree is half-open and rejects null intervals
        if end < start:
            return
        self.tree.addi(start, end + 1, range_id)

    def query(self, start: int, end: int) -> List[str]:
        """Ids of every stored span overlapping [start, end]."""
        if end < start:
            return []
        hits = sorted(self.tree.overlap(start, end + 1))
        return [interval.data for interval in hits]

    def __len__(self) -> int:
        return len(self.tree)
