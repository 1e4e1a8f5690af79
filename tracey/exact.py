"""Exact critical path searches: causal longest path and temporal longest path."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Optional

from tracey.model import ElementarySpan, Trace
from tracey.paths import (
    CriticalPathError,
    Options,
    Strategy,
    find_all_causally_reachable_elementary_spans_between,
)

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _State:
    es: ElementarySpan
    best_weight: float = 0.0
    best_predecessor: Optional["_State"] = None
    remaining_incoming: int = 0
    outgoing_resolved: bool = False
    visited: bool = False


def exact_find(
    trace: Trace,
    strategy: Strategy,
    options: Optional[Options],
    origin: ElementarySpan,
    destination: ElementarySpan,
) -> list[ElementarySpan]:
    """Finds the path with the most (or, under PREFER_LEAST_WORK, least) work.

    All elementary spans on any causal path between the endpoints are visited
    in topological order; cycles are broken at their earliest members.
    """
    options = options or Options()
    comparator = trace.comparator
    include = options.include_positive_nontriggering_origins
    on_path = find_all_causally_reachable_elementary_spans_between(
        comparator, include, origin, destination
    )
    states: dict[ElementarySpan, _State] = {}
    queue: deque[_State] = deque()

    def state_for(es: Optional[ElementarySpan]) -> Optional[_State]:
        if es is None:
            return None
        state = states.get(es)
        if state is not None:
            return state
        if es not in on_path:
            return None
        state = _State(es)
        if es.predecessor is not None and es.predecessor in on_path:
            state.remaining_incoming += 1
        if es.incoming is not None:
            if include:
                for source in es.incoming.origins:
                    if source in on_path and comparator.less_or_equal(source.end, es.start):
                        state.remaining_incoming += 1
            else:
                trigger = es.incoming.triggering_origin
                if (
                    trigger is not None
                    and trigger in on_path
                    and comparator.less_or_equal(trigger.end, es.start)
                ):
                    state.remaining_incoming += 1
        if state.remaining_incoming == 0:
            state.best_weight = comparator.diff(es.end, es.start)
            queue.append(state)
        states[es] = state
        return state

    for es in on_path:
        state_for(es)

    negative_edges = 0
    negative_example = ""

    def resolve(pred: _State, succ: Optional[_State]) -> None:
        nonlocal negative_edges, negative_example
        if succ is None or not comparator.less_or_equal(pred.es.end, succ.es.start):
            return
        edge_length = comparator.diff(succ.es.start, pred.es.end)
        if edge_length >= 0:
            weight = pred.best_weight + comparator.diff(succ.es.end, succ.es.start)
            replace = succ.best_predecessor is None
            if not replace:
                if strategy == Strategy.PREFER_LEAST_WORK:
                    replace = weight < succ.best_weight
                else:
                    replace = weight > succ.best_weight
            if replace:
                succ.best_predecessor = pred
                succ.best_weight = weight
        else:
            if negative_edges == 0:
                negative_example = (
                    f"{trace.span_name(pred.es.span)} @{pred.es.end} -> "
                    f"{trace.span_name(succ.es.span)} @{succ.es.start}, diff={edge_length}"
                )
            negative_edges += 1
        if succ.remaining_incoming > 0:
            succ.remaining_incoming -= 1
            if succ.remaining_incoming == 0:
                queue.append(succ)

    def resolve_outgoing(state: _State) -> None:
        if state.outgoing_resolved:
            return
        resolve(state, state_for(state.es.successor))
        out = state.es.outgoing
        if out is not None and (include or out.triggering_origin is state.es):
            for dest in out.destinations:
                resolve(state, state_for(dest))
        state.outgoing_resolved = True

    count = 0
    while queue:
        state = queue.popleft()
        if state.remaining_incoming != 0:
            raise CriticalPathError(
                "internal error finding critical path: "
                "expected all incoming dependencies to be resolved"
            )
        resolve_outgoing(state)
        state.visited = True
        count += 1
        if not queue and count != len(on_path):
            # A cycle exists among the unvisited spans; break it at the earliest.
            earliest: list[_State] = []
            for candidate in states.values():
                if candidate.visited:
                    continue
                if not earliest or comparator.less(candidate.es.start, earliest[0].es.start):
                    earliest = [candidate]
                elif comparator.equal(candidate.es.start, earliest[0].es.start):
                    earliest.append(candidate)
            for candidate in earliest:
                candidate.remaining_incoming = 0
            queue.extend(earliest)

    path: list[ElementarySpan] = []
    seen: set[int] = set()
    cursor = state_for(destination)
    while True:
        if cursor is None or id(cursor) in seen:
            raise CriticalPathError("no path found between critical path endpoints")
        seen.add(id(cursor))
        path.append(cursor.es)
        if cursor.es is origin:
            break
        cursor = cursor.best_predecessor
    if negative_edges:
        logger.warning(
            "%d negative edges encountered while constructing critical path; "
            "the result may be suboptimal. Example: %s",
            negative_edges,
            negative_example,
        )
    path.reverse()
    return path


def find_temporally_reachable(trace: Trace, start, end) -> list[ElementarySpan]:
    """Returns all elementary spans with nonzero duration lying within [start, end]."""
    comparator = trace.comparator
    found: list[ElementarySpan] = []
    stack = list(reversed(trace.root_spans))
    while stack:
        span = stack.pop()
        if span.start is not None and comparator.greater(span.start, end):
            continue
        for es in span.elementary_spans:
            if comparator.greater(es.end, end):
                break
            if (
                comparator.less(es.start, es.end)
                and comparator.greater_or_equal(es.start, start)
                and comparator.less_or_equal(es.end, end)
            ):
                found.append(es)
        stack.extend(reversed(span.child_spans))
    return found


@dataclass(eq=False)
class _Chain:
    es: ElementarySpan
    weight: float
    successor: Optional["_Chain"]


def non_causal_exact_find(
    trace: Trace,
    origin: ElementarySpan,
    destination: ElementarySpan,
) -> list[ElementarySpan]:
    """Finds the most-work path where any span ending before another starts may precede it."""
    comparator = trace.comparator

    def happens_before(first, second) -> bool:
        if first is None or second is None or first is second:
            return False
        return comparator.less_or_equal(first.end, second.start)

    if not happens_before(origin, destination):
        names = (
            f" {trace.span_name(origin.span)} / {trace.span_name(destination.span)}"
            if origin is not None and destination is not None
            else ""
        )
        raise CriticalPathError(
            f"origin does not end before destination starts{names}"
        )

    between = find_temporally_reachable(trace, origin.end, destination.start)
    between.extend([origin, destination])

    def order(a: ElementarySpan, b: ElementarySpan) -> int:
        if comparator.less(a.start, b.start):
            return -1
        if comparator.less(b.start, a.start):
            return 1
        if comparator.less(a.end, b.end):
            return -1
        if comparator.less(b.end, a.end):
            return 1
        return 0

    between.sort(key=cmp_to_key(order))

    adjacent: dict[ElementarySpan, list[ElementarySpan]] = {}
    for idx, first in enumerate(between[:-1]):
        nearest: Optional[ElementarySpan] = None
        for later in between[idx + 1:]:
            if not happens_before(first, later):
                continue
            if nearest is None or comparator.less(later.end, nearest.end):
                nearest = later
            if later is not nearest and happens_before(nearest, later):
                # Anything starting after the nearest follower ends can be
                # reached through it.
                break
            adjacent.setdefault(first, []).append(later)

    # Edges only point forwards in sorted order, so a reverse sweep is a
    # valid topological order for the longest-path computation.
    chains: dict[ElementarySpan, _Chain] = {}
    for es in reversed(between):
        if es in chains:
            continue
        duration = comparator.diff(es.end, es.start)
        if es is destination:
            chains[es] = _Chain(es, duration, None)
            continue
        best: Optional[_Chain] = None
        for later in adjacent.get(es, ()):
            candidate = chains.get(later)
            if candidate is None:
                continue
            if best is None or best.weight < candidate.weight:
                best = candidate
        weight = duration + (best.weight if best is not None else 0.0)
        chains[es] = _Chain(es, weight, best)

    cursor: Optional[_Chain] = chains.get(origin)
    if cursor is None:
        raise CriticalPathError("no path found between critical path endpoints")
    path: list[ElementarySpan] = []
    current = cursor.es.start
    while True:
        if cursor is None:
            raise CriticalPathError("no path found between critical path endpoints")
        if comparator.less(cursor.es.start, current):
            raise CriticalPathError("overlapping elementary spans found in critical path")
        current = cursor.es.end
        path.append(cursor.es)
        if cursor.es is destination:
            break
        if cursor.successor is None:
            raise CriticalPathError("no path found between critical path endpoints")
        cursor = cursor.successor
    if len(path) < 2:
        raise CriticalPathError("no path found between critical path endpoints")
    return path