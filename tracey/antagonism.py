"""Antagonism analysis.

An antagonism is a stretch of time in which *victim* work was runnable but
did not run, while *antagonist* work ran instead.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Callable, Iterable, Optional, Protocol

from tracey.model import Comparator, ElementarySpan, Span, Trace

logger = logging.getLogger(__name__)

SpanPredicate = Callable[[Span], bool]
ElementarySpansFn = Callable[[Trace], Iterable[ElementarySpan]]


class AntagonismError(Exception):
    """Raised when antagonism analysis cannot be performed."""


@dataclass(eq=False)
class AntagonismSpan:
    """An elementary span as tracked by antagonism analysis."""

    elementary_span: ElementarySpan
    successor: Optional["AntagonismSpan"] = None
    pending_dependencies: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        es = self.elementary_span
        if es.predecessor is not None:
            self.pending_dependencies += 1
        if es.incoming is not None and es.incoming.triggering_origin is not None:
            self.pending_dependencies += 1

    def __repr__(self) -> str:
        return f"AntagonismSpan({self.elementary_span!r})"


class AntagonismLogger(Protocol):
    """Receives each antagonism found during analysis."""

    def log_antagonism(
        self,
        group: "Group",
        victims: frozenset,
        antagonists: frozenset,
        start: Any,
        end: Any,
    ) -> None:
        """Records that every victim was antagonised by every antagonist from start to end."""


class Group:
    """A named antagonism group: a way to pick victims and a way to pick antagonists.

    Victims and antagonists are each chosen either by a predicate on spans or
    by a function yielding elementary spans from the trace. Setting one form
    replaces the other.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._victim_predicate: Optional[SpanPredicate] = None
        self._victim_fn: Optional[ElementarySpansFn] = None
        self._antagonist_predicate: Optional[SpanPredicate] = None
        self._antagonist_fn: Optional[ElementarySpansFn] = None

    def with_victim_span_predicate(self, predicate: SpanPredicate) -> "Group":
        self._victim_predicate = predicate
        self._victim_fn = None
        return self

    def with_victim_elementary_spans_fn(self, fn: ElementarySpansFn) -> "Group":
        self._victim_predicate = None
        self._victim_fn = fn
        return self

    def with_antagonist_span_predicate(self, predicate: SpanPredicate) -> "Group":
        self._antagonist_predicate = predicate
        self._antagonist_fn = None
        return self

    def with_antagonist_elementary_spans_fn(self, fn: ElementarySpansFn) -> "Group":
        self._antagonist_predicate = None
        self._antagonist_fn = fn
        return self

    def __repr__(self) -> str:
        return f"Group({self.name!r})"


class _Selector:
    """Decides membership either by span predicate or by explicit elementary spans."""

    def __init__(
        self,
        predicate: Optional[SpanPredicate],
        fn: Optional[ElementarySpansFn],
        trace: Trace,
        group: Group,
        role: str,
    ) -> None:
        self._predicate = predicate
        self._members: Optional[set] = None
        if predicate is None:
            if fn is None:
                raise AntagonismError(
                    f"group '{group.name}' has not defined a {role} span predicate "
                    f"or {role} elementary span function"
                )
            self._members = set(fn(trace))

    def __contains__(self, aspan: AntagonismSpan) -> bool:
        es = aspan.elementary_span
        if self._members is not None:
            return es in self._members
        return bool(self._predicate(es.span))


class _GroupState:
    def __init__(self, group: Group, trace: Trace) -> None:
        self.group = group
        self._victims = _Selector(
            group._victim_predicate, group._victim_fn, trace, group, "victim"
        )
        self._antagonists = _Selector(
            group._antagonist_predicate, group._antagonist_fn, trace, group, "antagonist"
        )
        self.victims: set[AntagonismSpan] = set()
        self.antagonists: set[AntagonismSpan] = set()

    def set_victim(self, aspan: AntagonismSpan) -> None:
        if aspan in self._victims:
            self.victims.add(aspan)

    def unset_victim(self, aspan: AntagonismSpan) -> None:
        if aspan in self._victims:
            self.victims.discard(aspan)

    def set_antagonist(self, aspan: AntagonismSpan) -> None:
        if aspan in self._antagonists:
            self.antagonists.add(aspan)

    def retire_antagonist(self, aspan: AntagonismSpan) -> None:
        if aspan in self._antagonists:
            self.antagonists.discard(aspan)


class _SpanHeap:
    """A min-heap of antagonism spans ordered by a chosen moment."""

    def __init__(
        self, comparator: Comparator, moment: Callable[[AntagonismSpan], Any]
    ) -> None:
        def order(a, b) -> int:
            if comparator.less(a, b):
                return -1
            if comparator.less(b, a):
                return 1
            return 0

        self._moment = moment
        self._key = cmp_to_key(order)
        self._entries: list = []
        self._counter = itertools.count()

    def push(self, aspan: AntagonismSpan) -> None:
        heapq.heappush(
            self._entries, (self._key(self._moment(aspan)), next(self._counter), aspan)
        )

    def peek(self) -> Optional[AntagonismSpan]:
        return self._entries[0][2] if self._entries else None

    def pop(self) -> AntagonismSpan:
        return heapq.heappop(self._entries)[2]

    def __len__(self) -> int:
        return len(self._entries)


class _Analyzer:
    def __init__(self, trace: Trace, groups: Iterable[Group]) -> None:
        self.comparator = trace.comparator
        self.states = [_GroupState(group, trace) for group in groups]
        self.running = _SpanHeap(self.comparator, lambda a: a.elementary_span.end)
        self.runnable = _SpanHeap(self.comparator, lambda a: a.elementary_span.start)
        self.total = 0
        self.retired = 0
        self.backwards_deps = 0
        self.wrapped: dict[ElementarySpan, AntagonismSpan] = {}
        for span in trace.spans():
            previous: Optional[AntagonismSpan] = None
            for es in span.elementary_spans:
                self.total += 1
                aspan = AntagonismSpan(es)
                self.wrapped[es] = aspan
                if aspan.pending_dependencies == 0:
                    self._set_runnable(aspan)
                if previous is not None:
                    previous.successor = aspan
                previous = aspan

    def _set_runnable(self, aspan: AntagonismSpan) -> None:
        self.runnable.push(aspan)
        for state in self.states:
            state.set_victim(aspan)

    def _set_running(self, aspan: AntagonismSpan) -> None:
        self.running.push(aspan)
        for state in self.states:
            state.unset_victim(aspan)
            state.set_antagonist(aspan)

    def _resolve(self, aspan: Optional[AntagonismSpan]) -> None:
        if aspan is None:
            return
        aspan.pending_dependencies -= 1
        if aspan.pending_dependencies == 0:
            self._set_runnable(aspan)

    def _retire(self, aspan: AntagonismSpan) -> None:
        self.retired += 1
        for state in self.states:
            state.retire_antagonist(aspan)
        self._resolve(aspan.successor)
        es = aspan.elementary_span
        if es.outgoing is not None:
            for dest in es.outgoing.destinations:
                if self.comparator.greater(es.end, dest.start):
                    self.backwards_deps += 1
                self._resolve(self.wrapped.get(dest))

    def find(self, antagonism_logger: AntagonismLogger) -> None:
        comparator = self.comparator
        has_last = False
        last_time = None
        while self.running or self.runnable:
            ending = self.running.peek()
            starting = self.runnable.peek()
            if ending is not None and starting is not None:
                # Ties go to the running span.
                from_running = comparator.less_or_equal(
                    ending.elementary_span.end, starting.elementary_span.start
                )
            else:
                from_running = ending is not None
            if from_running:
                self.running.pop()
                next_time = ending.elementary_span.end
            else:
                self.runnable.pop()
                next_time = starting.elementary_span.start
            # Backwards dependency edges would yield negative durations; skip them.
            if (
                has_last
                and not comparator.equal(last_time, next_time)
                and not comparator.greater(last_time, next_time)
            ):
                for state in self.states:
                    antagonism_logger.log_antagonism(
                        state.group,
                        frozenset(state.victims),
                        frozenset(state.antagonists),
                        last_time,
                        next_time,
                    )
            if from_running:
                self._retire(ending)
            else:
                self._set_running(starting)
            last_time = next_time
            has_last = True
        if self.retired != self.total:
            raise AntagonismError(
                f"after antagonism analysis, {self.total - self.retired} spans remain "
                "blocked, indicating causal errors in the trace"
            )
        if self.backwards_deps > 0:
            logger.warning(
                "trace had %d backwards dependency edges (effect preceded cause); "
                "this can skew antagonism analysis",
                self.backwards_deps,
            )


def analyze(
    trace: Trace, logger: AntagonismLogger, groups: Iterable[Group]
) -> None:
    """Finds antagonisms in the trace for each group, reporting them to the logger."""
    _Analyzer(trace, groups).find(logger)