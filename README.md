# tracey

Analysis tools for causal execution traces. A trace is a set of spans, each
split into elementary spans that are linked by in-span order and by causal
dependencies. Given such a trace, tracey can:

- find **critical paths** between two points, with several selection
  strategies (greedy causal/predecessor/proximity heuristics, exact
  most-work/least-work, and a temporal most-work variant that ignores
  causality);
- compute **slack** and **drag** for elementary spans, either across the whole
  trace or relative to a pair of endpoints;
- report **antagonism**: stretches of time in which victim work was runnable
  but did not run while antagonist work ran instead.

It has no dependencies beyond the standard library.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Building a trace

`tracey.model` provides `Trace`, `Span`, `ElementarySpan`, `Dependency` and
`Comparator`. Timestamps are plain numbers; the default `Comparator` orders
them, subtracts them (`diff`) and offsets them (`add`).

```python
from tracey.model import Dependency, Trace

trace = Trace()
a = trace.add_root_span("a")
a1 = a.add_elementary_span(0, 10)
a2 = a.add_elementary_span(20, 30)   # a2.predecessor is a1
b = trace.add_root_span("b")
b1 = b.add_elementary_span(10, 20)

Dependency("send", origins=[a1], destinations=[b1])
Dependency("signal", origins=[b1], destinations=[a2])
```

`Span.add_child` creates child spans, `Span.path` gives the slash-separated
path of payloads, and `Trace.spans()` and `Trace.elementary_spans()` walk the
whole trace depth first. Under multiple origins, a dependency's
`triggering_origin` is the origin that ends earliest. A `Trace` may be given a
`namer` callable used by `Trace.span_name`.

## Critical paths

```python
from tracey.paths import Endpoint, Strategy
from tracey.search import find_between_endpoints

path = find_between_endpoints(
    trace,
    Endpoint(a, a.start),
    Endpoint(a, a.end),
    Strategy.PREFER_MOST_WORK,
)
for element in path.critical_path:
    print(element.span, element.start, element.end)
```

`tracey.search.find_between_elementary_spans` takes elementary spans as
endpoints instead. Both accept an `Options` from `tracey.paths`; with
`include_positive_nontriggering_origins=True` any non-negative origin edge may
be followed, not only the triggering one. Failures raise
`tracey.paths.CriticalPathError`.

The strategies in `tracey.paths.Strategy` are:

- `PREFER_CAUSAL`, `PREFER_PREDECESSOR`, `PREFER_MOST_PROXIMATE`,
  `PREFER_LEAST_PROXIMATE`: greedy backwards searches (`paths.greedy_find`);
- `PREFER_MOST_WORK`, `PREFER_LEAST_WORK`: exact longest/shortest-work paths
  over all causally reachable elementary spans (`exact.exact_find`); cycles
  are broken at their earliest members, and negative edges are reported
  through the `logging` module;
- `PREFER_TEMPORAL_MOST_WORK`: the most-work path where any elementary span
  ending before another starts may precede it (`exact.non_causal_exact_find`).

`Path.elementary_spans()` returns the path's elements and
`Path.find_markers(pattern)` returns the labels of marks on the path matching
a regular expression. `paths.find_all_causally_reachable_elementary_spans_between`
returns every elementary span on any causal path between two elementary spans.

### Caching and finders

`tracey.cache.Cache` stores computed paths keyed by endpoints, strategy and
options, so repeated requests are served without recomputing them; failures
are stored too and raised again. It is safe to share between threads.

`tracey.finder.Finder` finds a path of a given type with a given strategy. For
`CriticalPathType.CUSTOM` (see `strategies.CUSTOM_CRITICAL_PATH_TYPE_DATA`)
the endpoints come from `custom_start` and `custom_end`, callables that take
the `Trace` and return the matching `Endpoint`s; each must find exactly one.
For other types the trace wrapper passed to `Finder.find` supplies them: it
needs a `trace` attribute and a `get_endpoints(type_data)` method returning
an `Endpoints` or `None`.

### Named strategies and types

`tracey.strategies.TypeEnumeration` is an ordered set of `TypeData` (type,
name, description) whose first entry is its default; entries can be looked up
by type, name or description, and descriptions can have aliases.
`new_strategies()` and `new_types()` return empty enumerations, and
`COMMON_STRATEGIES` lists the built-in strategies, with `most_work` as the
default.

## Slack and drag

```python
from tracey.drag import DragFinder

finder = DragFinder.global_finder(trace)
for es in path.elementary_spans():
    print(es, finder.slack(es), finder.drag(es))
```

`DragFinder.endpoint_finder(trace, origin, destination)` limits the analysis
to the work lying on paths between two elementary spans. The activity windows
behind these figures (earliest/latest start and finish) are available from
`compute_global_activity`, `compute_activity_between_endpoints` and
`compute_activity`. Errors raise `tracey.drag.DragError`.

`tracey.intervals` holds the centered interval tree and `IntersectionFinder`
used for drag; they work on any objects with `start`, `finish` and `payload`
attributes, such as `intervals.Interval`.

## Antagonism

```python
from tracey.antagonism import Group, analyze

class PrintingLogger:
    def log_antagonism(self, group, victims, antagonists, start, end):
        for victim in victims:
            for antagonist in antagonists:
                print(group.name, victim.elementary_span,
                      antagonist.elementary_span, end - start)

group = (
    Group("all")
    .with_victim_span_predicate(lambda span: True)
    .with_antagonist_span_predicate(lambda span: True)
)
analyze(trace, PrintingLogger(), [group])
```

Victims and antagonists are chosen either by a predicate on spans or by a
function returning elementary spans from the trace
(`with_victim_elementary_spans_fn`, `with_antagonist_elementary_spans_fn`).
The logger receives frozensets of `AntagonismSpan` objects, each wrapping an
`elementary_span`. `analyze` raises `AntagonismError` if a group lacks a
selector or if work remains blocked at the end, which indicates causal errors
in the trace.

## What tracey does not do

tracey is a library only: it has no command-line tool, and it does not read
or write trace files. Traces are built in code with `tracey.model`, and spans
and positions are selected with Python callables rather than a pattern
language.