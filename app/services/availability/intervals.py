# app/services/availability/intervals.py
"""Half-open [start, end) interval helpers over aware datetimes"""
from datetime import datetime
from typing import Iterable, List, NamedTuple


class Interval(NamedTuple):
    start: datetime
    end: datetime

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Sort by start and sweep-merge intervals that touch or overlap"""
    ordered = sorted((i for i in intervals if i.end > i.start), key=lambda i: (i.start, i.end))
    merged: List[Interval] = []
    for interval in ordered:
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = Interval(last.start, interval.end)
        else:
            merged.append(interval)
    return merged


def subtract_intervals(base: Iterable[Interval], removals: Iterable[Interval]) -> List[Interval]:
    """Remove every removal range from the base ranges. Both sides may overlap."""
    remaining = merge_intervals(base)
    for cut in merge_intervals(removals):
        next_remaining = []
        for interval in remaining:
            if not interval.overlaps(cut):
                next_remaining.append(interval)
                continue
            if interval.start < cut.start:
                next_remaining.append(Interval(interval.start, cut.start))
            if cut.end < interval.end:
                next_remaining.append(Interval(cut.end, interval.end))
        remaining = next_remaining
    return remaining


def clip_before(intervals: Iterable[Interval], boundary: datetime) -> List[Interval]:
    """Drop the part of each interval that lies before `boundary`"""
    clipped = []
    for interval in intervals:
        if interval.end <= boundary:
            continue
        clipped.append(Interval(max(interval.start, boundary), interval.end))
    return clipped
