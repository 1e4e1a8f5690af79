"""Slack and drag of elementary spans, reckoned from their activity windows."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from tracey.intervals import (
    IntersectingIntervalAccumulator,
    IntersectionFinder,
    Interval,
)
from tracey.model import Comparator, ElementarySpan, Trace
from tracey.paths import find_all_causally_reachable_elementary_spans_between


class DragError(Exception):
    """Raised when slack or drag cannot be computed."""


@dataclass(eq=False)
class Activity:
    """Earliest and latest start and finish times of an elementary span.

    As an interval it extends from earliest start to latest finish.
    """

    es: ElementarySpan
    earliest_start: Any = 0
    latest_start: Any = 0
    earliest_finish: Any = 0
    latest_finish: Any = 0

    @property
    def start(self):
        return self.earliest_start

    @property
    def finish(self):
        return self.latest_finish

    @property
    def payload(self) -> "Activity":
        return self


@dataclass(eq=False)
class _Builder:
    activity: Activity
    pending_incoming: int = 0
    pending_outgoing: int = 0
    earliest_start_set: bool = False
    latest_finish_set: bool = False


def compute_activity(
    comparator: Comparator,
    eligible: Optional[set],
    origins: Iterable[ElementarySpan],
    destinations: Iterable[ElementarySpan],
) -> list[Activity]:
    """Computes activities of eligible elementary spans between origins and destinations.

    An empty or missing eligible set makes every elementary span eligible.
    """
    origins = list(origins)
    destinations = list(destinations)
    if not origins:
        raise DragError("no origin nodes defined")
    if not destinations:
        raise DragError("no destination nodes defined")
    earliest_start = origins[0].start
    for o in origins[1:]:
        if comparator.less(o.start, earliest_start):
            earliest_start = o.start
    latest_finish = destinations[0].end
    for d in destinations[1:]:
        if comparator.greater(d.end, latest_finish):
            latest_finish = d.end

    def is_eligible(es: Optional[ElementarySpan]) -> bool:
        if es is None:
            return False
        return not eligible or es in eligible

    activities: list[Activity] = []
    builders: dict[ElementarySpan, _Builder] = {}

    def builder_for(es: Optional[ElementarySpan]) -> Optional[_Builder]:
        if not is_eligible(es):
            return None
        builder = builders.get(es)
        if builder is not None:
            return builder
        builder = _Builder(Activity(es))
        activities.append(builder.activity)
        if is_eligible(es.predecessor):
            builder.pending_incoming += 1
        if es.incoming is not None and is_eligible(es.incoming.triggering_origin):
            builder.pending_incoming += 1
        if is_eligible(es.successor):
            builder.pending_outgoing += 1
        if es.outgoing is not None:
            builder.pending_outgoing += sum(
                1 for dest in es.outgoing.destinations if is_eligible(dest)
            )
        builders[es] = builder
        return builder

    queue: deque[_Builder] = deque()
    for o in origins:
        builder = builder_for(o)
        if builder is None:
            raise DragError("origin node is not in the eligible set")
        builder.activity.earliest_start = earliest_start
        queue.append(builder)

    def enqueue_forwards(cursor: _Builder, es: Optional[ElementarySpan]) -> None:
        builder = builder_for(es)
        if builder is None:
            return
        builder.pending_incoming -= 1
        if not builder.earliest_start_set or comparator.greater(
            cursor.activity.earliest_finish, builder.activity.earliest_start
        ):
            builder.earliest_start_set = True
            builder.activity.earliest_start = cursor.activity.earliest_finish
        if builder.pending_incoming == 0:
            queue.append(builder)

    while queue:
        cursor = queue.popleft()
        if cursor.pending_incoming != 0:
            raise DragError("forwards pass: visiting a node that still has a predecessor")
        act = cursor.activity
        act.earliest_finish = comparator.add(
            act.earliest_start, comparator.diff(act.es.end, act.es.start)
        )
        enqueue_forwards(cursor, act.es.successor)
        if act.es.outgoing is not None:
            for dest in act.es.outgoing.destinations:
                enqueue_forwards(cursor, dest)

    for d in destinations:
        builder = builder_for(d)
        if builder is None:
            raise DragError("destination node is not in the eligible set")
        builder.activity.latest_finish = latest_finish
        queue.append(builder)

    def enqueue_backwards(cursor: _Builder, es: Optional[ElementarySpan]) -> None:
        builder = builder_for(es)
        if builder is None:
            return
        builder.pending_outgoing -= 1
        if not builder.latest_finish_set or comparator.less(
            cursor.activity.latest_start, builder.activity.latest_finish
        ):
            builder.latest_finish_set = True
            builder.activity.latest_finish = cursor.activity.latest_start
        if builder.pending_outgoing == 0:
            queue.append(builder)

    while queue:
        cursor = queue.popleft()
        if cursor.pending_outgoing != 0:
            raise DragError("backwards pass: visiting a node that still has a successor")
        act = cursor.activity
        act.latest_start = comparator.add(
            act.latest_finish, comparator.diff(act.es.start, act.es.end)
        )
        enqueue_backwards(cursor, act.es.predecessor)
        if act.es.incoming is not None:
            enqueue_backwards(cursor, act.es.incoming.triggering_origin)
    return activities


def compute_activity_between_endpoints(
    comparator: Comparator,
    origin: ElementarySpan,
    destination: ElementarySpan,
) -> list[Activity]:
    """Computes activities of elementary spans on any path between two endpoints.

    Work off those paths is ignored entirely.
    """
    on_path = find_all_causally_reachable_elementary_spans_between(
        comparator, False, origin, destination
    )
    return compute_activity(comparator, on_path, [origin], [destination])


def compute_global_activity(trace: Trace) -> list[Activity]:
    """Computes activities of every elementary span in the trace."""
    origins, destinations = [], []
    for es in trace.elementary_spans():
        if es.predecessor is None and es.incoming is None:
            origins.append(es)
        if es.successor is None and es.outgoing is None:
            destinations.append(es)
    return compute_activity(trace.comparator, None, origins, destinations)


class DragFinder:
    """Finds the slack and drag of elementary spans from precomputed activities."""

    def __init__(self, comparator: Comparator, activities: Iterable[Activity]) -> None:
        activities = list(activities)
        self.comparator = comparator
        self._activities = {a.es: a for a in activities}
        self._intersection_finder = IntersectionFinder(comparator, activities)

    @classmethod
    def global_finder(cls, trace: Trace) -> "DragFinder":
        """Returns a finder reflecting every dependency in the trace."""
        try:
            activities = compute_global_activity(trace)
        except DragError as err:
            raise DragError(f"failed to construct drag finder: {err}") from err
        return cls(trace.comparator, activities)

    @classmethod
    def endpoint_finder(
        cls, trace: Trace, origin: ElementarySpan, destination: ElementarySpan
    ) -> "DragFinder":
        """Returns a finder over only the paths between two elementary spans."""
        try:
            activities = compute_activity_between_endpoints(
                trace.comparator, origin, destination
            )
        except DragError as err:
            raise DragError(f"failed to construct drag finder: {err}") from err
        return cls(trace.comparator, activities)

    def _slack(self, activity: Activity) -> float:
        return self.comparator.diff(activity.finish, activity.start) - self.comparator.diff(
            activity.es.end, activity.es.start
        )

    def _activity(self, es: ElementarySpan) -> Activity:
        activity = self._activities.get(es)
        if activity is None:
            raise DragError("no activities for provided elementary span")
        return activity

    def slack(self, es: ElementarySpan) -> float:
        """Returns the slack of the elementary span."""
        return self._slack(self._activity(es))

    def drag(self, es: ElementarySpan) -> float:
        """Returns the drag of the elementary span.

        This is its duration, or the least slack of any activity overlapping it
        with nonzero extent, whichever is smaller.
        """
        activity = self._activity(es)
        query = Interval(es.start, es.end, payload=activity)
        accumulator = IntersectingIntervalAccumulator(self.comparator, query)
        try:
            self._intersection_finder.intersecting_intervals(
                query, accumulator.add_intersecting
            )
        except ValueError as err:
            raise DragError(f"can't compute drag: {err}") from err
        result = self.comparator.diff(es.end, es.start)
        for other in accumulator.get():
            result = min(result, self._slack(other.payload))
        return result