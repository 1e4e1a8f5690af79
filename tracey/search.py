"""Critical path search between elementary spans or endpoints."""

from __future__ import annotations

from typing import Optional

from tracey.exact import exact_find, non_causal_exact_find
from tracey.model import ElementarySpan, Trace
from tracey.paths import CriticalPathError, Endpoint, Options, Path, Strategy, greedy_find

_GREEDY = frozenset(
    {
        Strategy.PREFER_CAUSAL,
        Strategy.PREFER_PREDECESSOR,
        Strategy.PREFER_MOST_PROXIMATE,
        Strategy.PREFER_LEAST_PROXIMATE,
    }
)
_EXACT = frozenset({Strategy.PREFER_MOST_WORK, Strategy.PREFER_LEAST_WORK})


def find_between_elementary_spans(
    trace: Trace,
    origin: ElementarySpan,
    destination: ElementarySpan,
    strategy: Strategy,
    options: Optional[Options] = None,
) -> Path:
    """Finds a critical path between two elementary spans using the given strategy."""
    options = options or Options()
    try:
        strategy = Strategy(strategy)
    except ValueError:
        raise CriticalPathError("unsupported critical path strategy") from None
    if strategy in _GREEDY:
        path = greedy_find(trace.comparator, strategy, options, origin, destination)
    elif strategy in _EXACT:
        path = exact_find(trace, strategy, options, origin, destination)
    else:
        path = non_causal_exact_find(trace, origin, destination)
    if not path:
        raise CriticalPathError("no critical path found")
    return Path(start=path[0].start, end=path[-1].end, critical_path=path)


def find_between_endpoints(
    trace: Trace,
    start: Endpoint,
    end: Endpoint,
    strategy: Strategy,
    options: Optional[Options] = None,
) -> Path:
    """Finds a critical path between two endpoints; the path is bounded by them."""
    origin = start.elementary_span(trace.comparator)
    if origin is None:
        raise CriticalPathError(
            f"can't find critical path: origin span is not running at {start.at}"
        )
    destination = end.elementary_span(trace.comparator)
    if destination is None:
        raise CriticalPathError(
            f"can't find critical path: destination span is not running at {end.at}"
        )
    path = find_between_elementary_spans(trace, origin, destination, strategy, options)
    path.start, path.end = start.at, end.at
    return path