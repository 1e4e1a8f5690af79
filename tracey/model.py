"""Trace model: timestamps, spans, elementary spans and causal dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Optional


class Comparator:
    """Orders and measures trace timestamps, which are plain numbers."""

    def less(self, a, b) -> bool:
        return a < b

    def less_or_equal(self, a, b) -> bool:
        return a <= b

    def equal(self, a, b) -> bool:
        return a == b

    def greater(self, a, b) -> bool:
        return a > b

    def greater_or_equal(self, a, b) -> bool:
        return a >= b

    def diff(self, a, b) -> float:
        """Returns the duration a - b."""
        return float(a - b)

    def add(self, a, delta):
        """Returns the moment `delta` after `a`."""
        return a + delta


@dataclass(frozen=True)
class Mark:
    """A labelled instant within an elementary span."""

    label: str
    at: Any


@dataclass(eq=False, repr=False)
class ElementarySpan:
    """A contiguous running interval of a span, with its causal links."""

    span: "Span"
    start: Any
    end: Any
    predecessor: Optional["ElementarySpan"] = None
    successor: Optional["ElementarySpan"] = None
    incoming: Optional["Dependency"] = None
    outgoing: Optional["Dependency"] = None
    marks: list = field(default_factory=list)

    def __repr__(self) -> str:
        return f"ElementarySpan({self.span.path!r} {self.start}-{self.end})"


class Dependency:
    """A causal edge from one or more origin elementary spans to destinations.

    Under OR semantics, the origin ending earliest is the triggering one.
    """

    def __init__(
        self,
        kind: str = "",
        origins: Iterable[ElementarySpan] = (),
        destinations: Iterable[ElementarySpan] = (),
    ) -> None:
        self.kind = kind
        self.origins: list[ElementarySpan] = []
        self.destinations: list[ElementarySpan] = []
        for origin in origins:
            self.add_origin(origin)
        for destination in destinations:
            self.add_destination(destination)

    def add_origin(self, es: ElementarySpan) -> None:
        if es.outgoing is not None and es.outgoing is not self:
            raise ValueError(f"{es!r} already has an outgoing dependency")
        es.outgoing = self
        self.origins.append(es)

    def add_destination(self, es: ElementarySpan) -> None:
        if es.incoming is not None and es.incoming is not self:
            raise ValueError(f"{es!r} already has an incoming dependency")
        es.incoming = self
        self.destinations.append(es)

    @property
    def triggering_origin(self) -> Optional[ElementarySpan]:
        """The earliest-ending origin, or None if there are no origins."""
        return min(self.origins, key=lambda es: es.end, default=None)

    def __repr__(self) -> str:
        return (
            f"Dependency({self.kind!r}, origins={self.origins!r}, "
            f"destinations={self.destinations!r})"
        )


class Span:
    """A named unit of traced work, made of elementary spans and child spans."""

    def __init__(self, payload: Any, parent: Optional["Span"] = None) -> None:
        self.payload = payload
        self.parent = parent
        self.elementary_spans: list[ElementarySpan] = []
        self.child_spans: list[Span] = []

    @property
    def start(self):
        return self.elementary_spans[0].start if self.elementary_spans else None

    @property
    def end(self):
        return self.elementary_spans[-1].end if self.elementary_spans else None

    @property
    def path(self) -> str:
        """The slash-separated payloads from the root span down to this one."""
        names = []
        span: Optional[Span] = self
        while span is not None:
            names.append(str(span.payload))
            span = span.parent
        return "/".join(reversed(names))

    def add_elementary_span(self, start, end, marks: Iterable[Mark] = ()) -> ElementarySpan:
        """Appends a new elementary span, linking it to the previous one."""
        if end < start:
            raise ValueError(f"elementary span ends ({end}) before it starts ({start})")
        es = ElementarySpan(span=self, start=start, end=end, marks=list(marks))
        if self.elementary_spans:
            previous = self.elementary_spans[-1]
            previous.successor = es
            es.predecessor = previous
        self.elementary_spans.append(es)
        return es

    def add_child(self, payload: Any) -> "Span":
        child = Span(payload, parent=self)
        self.child_spans.append(child)
        return child

    def walk(self) -> Iterator["Span"]:
        """Yields this span and all of its descendants, depth first."""
        yield self
        for child in self.child_spans:
            yield from child.walk()

    def __repr__(self) -> str:
        return f"Span({self.path!r} {self.start}-{self.end})"


class Trace:
    """A collection of root spans sharing one timestamp comparator."""

    def __init__(
        self,
        comparator: Optional[Comparator] = None,
        namer: Optional[Callable[[Span], str]] = None,
    ) -> None:
        self.comparator = comparator or Comparator()
        self.namer = namer
        self.root_spans: list[Span] = []

    def add_root_span(self, payload: Any) -> Span:
        span = Span(payload)
        self.root_spans.append(span)
        return span

    def span_name(self, span: Span) -> str:
        if self.namer is not None:
            return self.namer(span)
        return str(span.payload)

    def spans(self) -> Iterator[Span]:
        """Yields every span in the trace, depth first."""
        for root in self.root_spans:
            yield from root.walk()

    def elementary_spans(self) -> Iterator[ElementarySpan]:
        """Yields every elementary span in the trace, span by span."""
        for span in self.spans():
            yield from span.elementary_spans