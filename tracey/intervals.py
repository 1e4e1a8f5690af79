"""Centered interval trees and interval intersection queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Callable, Iterable, Optional

from tracey.model import Comparator


@dataclass(eq=False)
class Interval:
    """An extent from start to finish carrying a payload.

    The payload defaults to the interval itself. Anything with start, finish
    and payload attributes can be used wherever an Interval is expected.
    """

    start: Any
    finish: Any
    payload: Any = None

    def __post_init__(self) -> None:
        if self.payload is None:
            self.payload = self


def _sorted_by(items: Iterable, key: Callable[[Any], Any], comparator: Comparator) -> list:
    def order(a, b) -> int:
        ka, kb = key(a), key(b)
        if comparator.less(ka, kb):
            return -1
        if comparator.less(kb, ka):
            return 1
        return 0

    return sorted(items, key=cmp_to_key(order))


def _search(n: int, predicate: Callable[[int], bool]) -> int:
    """Returns the smallest index in [0, n) for which predicate holds, or n."""
    lo, hi = 0, n
    while lo < hi:
        mid = (lo + hi) // 2
        if predicate(mid):
            hi = mid
        else:
            lo = mid + 1
    return lo


def interval_center(comparator: Comparator, interval) -> Any:
    """Returns the moment halfway between an interval's start and finish."""
    width = comparator.diff(interval.finish, interval.start)
    return comparator.add(interval.start, width / 2.0)


@dataclass(eq=False)
class IntervalTreeNode:
    """A node of a centered interval tree."""

    center: Any
    left: Optional["IntervalTreeNode"] = None
    right: Optional["IntervalTreeNode"] = None
    intervals_by_start: list = field(default_factory=list)
    intervals_by_finish: list = field(default_factory=list)

    def find_intersecting(
        self,
        comparator: Comparator,
        moment,
        add_intersecting: Callable[[Any], None],
    ) -> None:
        """Calls add_intersecting on every interval in the tree containing moment."""
        node: Optional[IntervalTreeNode] = self
        while node is not None:
            d = comparator.diff(moment, node.center)
            if d == 0:
                for ival in node.intervals_by_start:
                    add_intersecting(ival)
                return
            if d < 0:
                for ival in node.intervals_by_start:
                    if comparator.greater_or_equal(ival.start, moment):
                        break
                    if comparator.greater(ival.finish, moment):
                        add_intersecting(ival)
                node = node.left
            else:
                for ival in reversed(node.intervals_by_finish[1:]):
                    if comparator.less_or_equal(ival.finish, moment):
                        break
                    if comparator.less(ival.start, moment):
                        add_intersecting(ival)
                node = node.right


def build_interval_tree(
    comparator: Comparator, intervals_sorted_by_center: list
) -> Optional[IntervalTreeNode]:
    """Builds a centered interval tree from intervals sorted by center."""
    if not intervals_sorted_by_center:
        return None
    mid = len(intervals_sorted_by_center) // 2
    root = IntervalTreeNode(
        center=interval_center(comparator, intervals_sorted_by_center[mid])
    )
    left, right, here = [], [], []
    for ival in intervals_sorted_by_center:
        if comparator.less(ival.finish, root.center):
            left.append(ival)
        elif comparator.greater(ival.start, root.center):
            right.append(ival)
        else:
            here.append(ival)
    root.intervals_by_start = _sorted_by(here, lambda i: i.start, comparator)
    root.intervals_by_finish = _sorted_by(here, lambda i: i.finish, comparator)
    root.left = build_interval_tree(comparator, left)
    root.right = build_interval_tree(comparator, right)
    return root


@dataclass(frozen=True)
class _Endpoint:
    moment: Any
    interval: Any


class IntersectionFinder:
    """Finds the intervals of a fixed set that intersect a query interval."""

    def __init__(self, comparator: Comparator, intervals: Iterable) -> None:
        intervals = list(intervals)
        self.comparator = comparator
        by_center = _sorted_by(
            intervals, lambda i: interval_center(comparator, i), comparator
        )
        endpoints = [
            _Endpoint(moment, ival)
            for ival in intervals
            for moment in (ival.start, ival.finish)
        ]
        self._sorted_endpoints = _sorted_by(endpoints, lambda e: e.moment, comparator)
        self._tree = build_interval_tree(comparator, by_center)

    def intersecting_intervals(
        self, interval, add_intersecting: Callable[[Any], None]
    ) -> None:
        """Calls add_intersecting on each interval overlapping the given one.

        Duplicates may be reported, the query interval itself is reported if
        present, and intervals merely sharing an endpoint count as overlapping.
        """
        comparator = self.comparator
        endpoints = self._sorted_endpoints
        first = _search(
            len(endpoints),
            lambda idx: comparator.greater_or_equal(endpoints[idx].moment, interval.start),
        )
        last = _search(
            len(endpoints),
            lambda idx: comparator.less(interval.finish, endpoints[idx].moment),
        )
        if first > last:
            raise ValueError(
                "can't find intersecting intervals: interval is negative "
                "or interval endpoints aren't sorted"
            )
        for ep in endpoints[first:last]:
            add_intersecting(ep.interval)
        if self._tree is not None:
            self._tree.find_intersecting(comparator, interval.start, add_intersecting)


class IntersectingIntervalAccumulator:
    """Collects intervals with nonzero overlap with an intersectee."""

    def __init__(self, comparator: Comparator, intersectee) -> None:
        self.comparator = comparator
        self.intersectee = intersectee
        self.intersectee_is_instantaneous = comparator.equal(
            intersectee.start, intersectee.finish
        )
        self._intersecting: set = set()

    def add_intersecting(self, interval) -> None:
        """Records interval unless it is the intersectee or only touches it."""
        if (
            interval.payload is self.intersectee.payload
            or self.comparator.equal(interval.start, self.intersectee.finish)
            or self.comparator.equal(interval.finish, self.intersectee.start)
        ):
            return
        self._intersecting.add(interval)

    def get(self) -> set:
        return self._intersecting