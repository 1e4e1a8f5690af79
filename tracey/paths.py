"""Critical path types, endpoints, greedy path search and causal reachability."""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, NamedTuple, Optional

from tracey.model import Comparator, ElementarySpan, Span


class CriticalPathError(Exception):
    """Raised when a critical path cannot be found or represented."""


class CriticalPathType(IntEnum):
    """A particular pair of endpoints of a critical path within a trace."""

    UNKNOWN = 0
    CUSTOM = 1
    SELECTED_ELEMENT = 2
    FIRST_USER_DEFINED = 3


class Strategy(IntEnum):
    """Critical path selection strategies."""

    PREFER_CAUSAL = 0
    PREFER_PREDECESSOR = 1
    PREFER_MOST_PROXIMATE = 2
    PREFER_LEAST_PROXIMATE = 3
    PREFER_MOST_WORK = 4
    PREFER_LEAST_WORK = 5
    PREFER_TEMPORAL_MOST_WORK = 6


@dataclass(frozen=True)
class Options:
    """Options for path-finding.

    With include_positive_nontriggering_origins, any non-negative origin edge
    may be traversed, not only the triggering one.
    """

    include_positive_nontriggering_origins: bool = False


@dataclass
class Endpoint:
    """A point in time within a span."""

    span: Span
    at: Any

    def elementary_span(self, comparator: Comparator) -> Optional[ElementarySpan]:
        """Returns the elementary span running at this point, or None."""
        es = next(
            (es for es in self.span.elementary_spans if comparator.less_or_equal(self.at, es.end)),
            None,
        )
        if es is not None and comparator.less_or_equal(es.start, self.at):
            return es
        return None


def endpoint_from_elementary_span(es: ElementarySpan, at_start: bool) -> Endpoint:
    """Returns an Endpoint at the start (or, if not at_start, the end) of es."""
    return Endpoint(span=es.span, at=es.start if at_start else es.end)


def endpoint_from_position(es: ElementarySpan, at) -> Endpoint:
    """Returns an Endpoint at the given moment within es's span."""
    return Endpoint(span=es.span, at=at)


@dataclass
class Path:
    """A single critical path and its temporal bounds."""

    start: Any
    end: Any
    critical_path: list = field(default_factory=list)

    def elementary_spans(self) -> list[ElementarySpan]:
        for idx, element in enumerate(self.critical_path):
            if not isinstance(element, ElementarySpan):
                raise CriticalPathError(f"path element {idx} is not an ElementarySpan")
        return list(self.critical_path)

    def find_markers(self, pattern) -> list[str]:
        """Returns labels of all marks on the path matching the pattern."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        return [
            mark.label
            for element in self.critical_path
            for mark in element.marks
            if regex.search(mark.label)
        ]


class _Step(NamedTuple):
    es: ElementarySpan
    successor: Optional["_Step"]


def _causal_predecessor(
    comparator: Comparator,
    strategy: Strategy,
    options: Options,
    es: ElementarySpan,
) -> Optional[ElementarySpan]:
    if es.incoming is None:
        return None
    if not options.include_positive_nontriggering_origins:
        return es.incoming.triggering_origin
    least = strategy == Strategy.PREFER_LEAST_PROXIMATE
    best = None
    for origin in es.incoming.origins:
        if not comparator.less_or_equal(origin.end, es.start):
            continue
        if (
            best is None
            or (least and comparator.less(origin.end, best.end))
            or (not least and comparator.greater_or_equal(origin.end, best.end))
        ):
            best = origin
    return best


def greedy_find(
    comparator: Comparator,
    strategy: Strategy,
    options: Optional[Options],
    origin: ElementarySpan,
    destination: ElementarySpan,
) -> list[ElementarySpan]:
    """Greedily searches backwards from destination to origin.

    Returns the path from origin to destination, or an empty list if none.
    """
    options = options or Options()
    visited: set[ElementarySpan] = set()
    stack = [_Step(destination, None)]
    while stack:
        step = stack.pop()
        if step.es is origin:
            path = []
            cursor: Optional[_Step] = step
            while cursor is not None:
                path.append(cursor.es)
                cursor = cursor.successor
            return path
        if step.es in visited:
            continue
        visited.add(step.es)
        in_span = step.es.predecessor
        causal = _causal_predecessor(comparator, strategy, options, step.es)
        if in_span is not None and causal is not None:
            causal_first = comparator.less(causal.end, in_span.end)
            if (
                (strategy == Strategy.PREFER_MOST_PROXIMATE and not causal_first)
                or (strategy == Strategy.PREFER_LEAST_PROXIMATE and causal_first)
                or strategy == Strategy.PREFER_CAUSAL
            ):
                preds = [in_span, causal]
            else:
                preds = [causal, in_span]
        else:
            preds = [p for p in (in_span, causal) if p is not None]
        for pred in preds:
            if comparator.less(step.es.start, pred.end):
                continue
            stack.append(_Step(pred, step))
    return []


class _Direction(Enum):
    FORWARDS = "forwards"
    BACKWARDS = "backwards"


def _find_causally_reachable(
    comparator: Comparator,
    direction: _Direction,
    include_nontriggering: bool,
    origin: ElementarySpan,
    destination: ElementarySpan,
    limit: Optional[set] = None,
) -> set[ElementarySpan]:
    forwards = direction is _Direction.FORWARDS

    def in_range(es: ElementarySpan) -> bool:
        if forwards:
            return comparator.less_or_equal(es.start, destination.start)
        return comparator.greater_or_equal(es.end, origin.end)

    queue = deque([origin if forwards else destination])

    def enqueue(es: Optional[ElementarySpan]) -> None:
        if es is not None and in_range(es) and (limit is None or es in limit):
            queue.append(es)

    reached: set[ElementarySpan] = set()
    while queue:
        es = queue.popleft()
        if es in reached:
            continue
        reached.add(es)
        if forwards:
            enqueue(es.successor)
            out = es.outgoing
            if out is not None and (include_nontriggering or out.triggering_origin is es):
                for dest in out.destinations:
                    if comparator.less_or_equal(es.end, dest.start):
                        enqueue(dest)
        else:
            enqueue(es.predecessor)
            inc = es.incoming
            if inc is None:
                continue
            if include_nontriggering:
                for source in inc.origins:
                    if comparator.less_or_equal(source.end, es.start):
                        enqueue(source)
            else:
                trigger = inc.triggering_origin
                if trigger is not None and comparator.less_or_equal(trigger.end, es.start):
                    enqueue(trigger)
    return reached


def find_all_causally_reachable_elementary_spans_between(
    comparator: Comparator,
    include_positive_nontriggering_origins: bool,
    origin: ElementarySpan,
    destination: ElementarySpan,
) -> set[ElementarySpan]:
    """Returns all elementary spans lying on any causal path between the endpoints."""
    backwards = _find_causally_reachable(
        comparator,
        _Direction.BACKWARDS,
        include_positive_nontriggering_origins,
        origin,
        destination,
    )
    return _find_causally_reachable(
        comparator,
        _Direction.FORWARDS,
        include_positive_nontriggering_origins,
        origin,
        destination,
        backwards,
    )