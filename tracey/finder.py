"""Finds critical paths of a configured type and strategy within a trace."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from tracey.cache import Cache
from tracey.model import Trace
from tracey.paths import CriticalPathError, CriticalPathType, Endpoint, Options, Path, Strategy
from tracey.search import find_between_endpoints
from tracey.strategies import TypeData

PositionFinder = Callable[[Trace], Sequence[Endpoint]]


class _EndpointTrace(Protocol):
    """A trace wrapper that can supply endpoints for its critical path types."""

    @property
    def trace(self) -> Trace: ...

    def get_endpoints(self, type_data: TypeData) -> Optional["Endpoints"]: ...

    def supported_type_data(self) -> list[TypeData]: ...


@dataclass
class Endpoints:
    """A start and end endpoint pair within a trace."""

    start: Optional[Endpoint]
    end: Optional[Endpoint]


def _unique_position(
    position_finder: Optional[PositionFinder], trace: Trace, which: str
) -> Optional[Endpoint]:
    if position_finder is None:
        return None
    positions = list(position_finder(trace))
    if not positions:
        raise CriticalPathError(f"cannot find custom {which} position")
    if len(positions) > 1:
        raise CriticalPathError(f"found more than one custom {which} position")
    return positions[0]


@dataclass
class Finder:
    """Finds a critical path of a particular type with a particular strategy.

    For the custom type, the endpoints are located by the custom position
    finders, each of which must find exactly one position in the trace.
    """

    type_data: TypeData
    strategy: Strategy
    options: Optional[Options] = None
    custom_start: Optional[PositionFinder] = None
    custom_end: Optional[PositionFinder] = None

    def endpoints(self, trace: _EndpointTrace) -> Endpoints:
        """Returns this finder's endpoints within the trace."""
        if self.type_data.type == CriticalPathType.CUSTOM:
            return Endpoints(
                start=_unique_position(self.custom_start, trace.trace, "start"),
                end=_unique_position(self.custom_end, trace.trace, "end"),
            )
        found = trace.get_endpoints(self.type_data)
        if found is None:
            raise CriticalPathError(
                f"could not find endpoints for critical path type '{self.type_data.name}'"
            )
        return found

    def find(self, trace: _EndpointTrace, cache: Optional[Cache] = None) -> Path:
        """Returns the configured critical path, using the cache if one is given."""
        eps = self.endpoints(trace)
        if cache is not None:
            return cache.get_between_endpoints(
                trace.trace, eps.start, eps.end, self.strategy, self.options
            )
        if eps.start is None or eps.end is None:
            raise CriticalPathError("requested critical path lacks at least one endpoint")
        return find_between_endpoints(
            trace.trace, eps.start, eps.end, self.strategy, self.options
        )