from datetime import datetime, timezone

from app.services.availability.intervals import Interval, clip_before, merge_intervals, subtract_intervals


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 1, 5, hour, minute, tzinfo=timezone.utc)


def test_merge_intervals_joins_overlapping_and_touching_ranges() -> None:
    merged = merge_intervals([
        Interval(at(13), at(14)),
        Interval(at(9), at(10)),
        Interval(at(10), at(11)),
        Interval(at(13, 30), at(15)),
    ])

    assert merged == [Interval(at(9), at(11)), Interval(at(13), at(15))]


def test_merge_intervals_drops_empty_ranges() -> None:
    assert merge_intervals([Interval(at(9), at(9)), Interval(at(11), at(10))]) == []


def test_subtract_intervals_splits_around_a_cut() -> None:
    remaining = subtract_intervals([Interval(at(9), at(17))], [Interval(at(12), at(13))])

    assert remaining == [Interval(at(9), at(12)), Interval(at(13), at(17))]


def test_subtract_intervals_removes_fully_covered_ranges() -> None:
    remaining = subtract_intervals(
        [Interval(at(9), at(10)), Interval(at(14), at(16))],
        [Interval(at(8), at(11)), Interval(at(15), at(18))],
    )

    assert remaining == [Interval(at(14), at(15))]


def test_clip_before_trims_the_leading_edge() -> None:
    clipped = clip_before([Interval(at(9), at(10)), Interval(at(11), at(13))], at(11, 30))

    assert clipped == [Interval(at(11, 30), at(13))]


def test_interval_overlap_is_half_open() -> None:
    assert not Interval(at(9), at(10)).overlaps(Interval(at(10), at(11)))
    assert Interval(at(9), at(10, 1)).overlaps(Interval(at(10), at(11)))
    assert Interval(at(9), at(12)).contains(Interval(at(10), at(11)))
