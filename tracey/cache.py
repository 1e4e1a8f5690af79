"""A thread-safe cache of computed critical paths."""

from __future__ import annotations

import threading
from typing import Optional

from tracey.model import ElementarySpan, Trace
from tracey.paths import CriticalPathError, Endpoint, Options, Path, Strategy
from tracey.search import find_between_elementary_spans

_MISSING_ENDPOINT = "requested critical path lacks at least one endpoint"


class Cache:
    """Caches critical paths by endpoints, strategy and options.

    Failures are cached too, and raised again on later requests.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[tuple, tuple[Optional[Path], Optional[CriticalPathError]]] = {}

    def get_between_elementary_spans(
        self,
        trace: Trace,
        origin: Optional[ElementarySpan],
        destination: Optional[ElementarySpan],
        strategy: Strategy,
        options: Optional[Options] = None,
    ) -> Path:
        """Returns the critical path between two elementary spans, computing it once."""
        if origin is None or destination is None:
            raise CriticalPathError(_MISSING_ENDPOINT)
        options = options or Options()
        key = (origin, destination, strategy, options.include_positive_nontriggering_origins)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                try:
                    entry = (
                        find_between_elementary_spans(
                            trace, origin, destination, strategy, options
                        ),
                        None,
                    )
                except CriticalPathError as err:
                    entry = (None, err)
                self._entries[key] = entry
        path, error = entry
        if error is not None:
            raise error
        return path

    def get_between_endpoints(
        self,
        trace: Trace,
        start: Optional[Endpoint],
        end: Optional[Endpoint],
        strategy: Strategy,
        options: Optional[Options] = None,
    ) -> Path:
        """Returns the critical path between two endpoints, bounded by them."""
        if start is None or end is None:
            raise CriticalPathError(_MISSING_ENDPOINT)
        path = self.get_between_elementary_spans(
            trace,
            start.elementary_span(trace.comparator),
            end.elementary_span(trace.comparator),
            strategy,
            options,
        )
        return Path(start=start.at, end=end.at, critical_path=list(path.critical_path))