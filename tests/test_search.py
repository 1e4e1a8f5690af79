import pytest

from tracey.model import Dependency, Trace
from tracey.paths import CriticalPathError, Endpoint, Options, Strategy
from tracey.search import find_between_elementary_spans, find_between_endpoints


def build_trace1():
    tr = Trace()
    s000 = tr.add_root_span("s0.0.0")
    a1 = s000.add_elementary_span(0, 10)
    zero = s000.add_child("0")
    z1 = zero.add_elementary_span(10, 20)
    z2 = zero.add_elementary_span(20, 30)
    z3 = zero.add_elementary_span(30, 40)
    three = zero.add_child("3")
    t1 = three.add_elementary_span(40, 50)
    t2 = three.add_elementary_span(60, 70)
    z4 = zero.add_elementary_span(70, 90)
    a2 = s000.add_elementary_span(90, 100)
    s010 = tr.add_root_span("s0.1.0")
    p1 = s010.add_elementary_span(30, 40)
    p2 = s010.add_elementary_span(40, 50)
    s010.add_elementary_span(50, 70)
    s100 = tr.add_root_span("s1.0.0")
    q1 = s100.add_elementary_span(30, 35)
    s100.add_elementary_span(35, 50)
    Dependency("call", [a1], [z1])
    Dependency("spawn", [z1], [p1])
    Dependency("spawn", [z2], [q1])
    Dependency("call", [z3], [t1])
    Dependency("send", [q1], [p2])
    Dependency("signal", [p2], [t2])
    Dependency("return", [t2], [z4])
    Dependency("return", [z4], [a2])
    return tr, {"s0.0.0": s000, "s0.1.0": s010, "s1.0.0": s100}


def build_cycle_trace():
    tr = Trace()
    a = tr.add_root_span("a")
    a.add_elementary_span(0, 50)
    a2 = a.add_elementary_span(50, 50)
    b = a.add_child("b")
    b1 = b.add_elementary_span(50, 50)
    a.add_elementary_span(50, 100)
    Dependency("call", [a2], [b1])
    Dependency("return", [b1], [a2])
    return tr, {"a": a}


def render(tr, path):
    return [(tr.span_name(es.span), es.start, es.end) for es in path.critical_path]


TRACE1_CASES = [
    (
        Strategy.PREFER_CAUSAL,
        [("s0.0.0", 0, 10), ("0", 10, 20), ("0", 20, 30), ("s1.0.0", 30, 35),
         ("s0.1.0", 40, 50), ("3", 60, 70), ("0", 70, 90), ("s0.0.0", 90, 100)],
    ),
    (
        Strategy.PREFER_PREDECESSOR,
        [("s0.0.0", 0, 10), ("s0.0.0", 90, 100)],
    ),
    (
        Strategy.PREFER_MOST_PROXIMATE,
        [("s0.0.0", 0, 10), ("0", 10, 20), ("s0.1.0", 30, 40), ("s0.1.0", 40, 50),
         ("3", 60, 70), ("0", 70, 90), ("s0.0.0", 90, 100)],
    ),
    (
        Strategy.PREFER_LEAST_PROXIMATE,
        [("s0.0.0", 0, 10), ("s0.0.0", 90, 100)],
    ),
    (
        Strategy.PREFER_MOST_WORK,
        [("s0.0.0", 0, 10), ("0", 10, 20), ("0", 20, 30), ("0", 30, 40),
         ("3", 40, 50), ("3", 60, 70), ("0", 70, 90), ("s0.0.0", 90, 100)],
    ),
    (
        Strategy.PREFER_LEAST_WORK,
        [("s0.0.0", 0, 10), ("s0.0.0", 90, 100)],
    ),
    (
        Strategy.PREFER_TEMPORAL_MOST_WORK,
        [("s0.0.0", 0, 10), ("0", 10, 20), ("0", 20, 30), ("s1.0.0", 30, 35),
         ("s1.0.0", 35, 50), ("s0.1.0", 50, 70), ("0", 70, 90), ("s0.0.0", 90, 100)],
    ),
]


@pytest.mark.parametrize("strategy,expected", TRACE1_CASES)
def test_trace1_end_to_end(strategy, expected):
    tr, spans = build_trace1()
    s000 = spans["s0.0.0"]
    path = find_between_endpoints(tr, Endpoint(s000, 0), Endpoint(s000, 100), strategy)
    assert render(tr, path) == expected


def test_cycles_tolerated_under_most_work():
    tr, spans = build_cycle_trace()
    a = spans["a"]
    path = find_between_endpoints(
        tr, Endpoint(a, 0), Endpoint(a, 100), Strategy.PREFER_MOST_WORK
    )
    assert render(tr, path) == [("a", 0, 50), ("a", 50, 50), ("a", 50, 100)]


def test_no_critical_path_found():
    tr, spans = build_trace1()
    with pytest.raises(CriticalPathError, match="no critical path found"):
        find_between_endpoints(
            tr,
            Endpoint(spans["s0.1.0"], 35),
            Endpoint(spans["s1.0.0"], 40),
            Strategy.PREFER_CAUSAL,
        )


def test_endpoints_bound_the_path():
    tr, spans = build_trace1()
    s000 = spans["s0.0.0"]
    path = find_between_endpoints(
        tr, Endpoint(s000, 5), Endpoint(s000, 95), Strategy.PREFER_MOST_WORK
    )
    assert path.start == 5
    assert path.end == 95
    assert path.critical_path[0] is s000.elementary_spans[0]
    assert path.critical_path[-1] is s000.elementary_spans[-1]


def test_origin_not_running_raises():
    tr, spans = build_trace1()
    s000 = spans["s0.0.0"]
    with pytest.raises(CriticalPathError, match="origin"):
        find_between_endpoints(
            tr, Endpoint(s000, 50), Endpoint(s000, 100), Strategy.PREFER_CAUSAL
        )


def test_destination_not_running_raises():
    tr, spans = build_trace1()
    s000 = spans["s0.0.0"]
    with pytest.raises(CriticalPathError, match="destination"):
        find_between_endpoints(
            tr, Endpoint(s000, 0), Endpoint(s000, 50), Strategy.PREFER_CAUSAL
        )


def test_between_elementary_spans_takes_bounds_from_path():
    tr, spans = build_trace1()
    s000 = spans["s0.0.0"]
    origin, destination = s000.elementary_spans[0], s000.elementary_spans[-1]
    path = find_between_elementary_spans(
        tr, origin, destination, Strategy.PREFER_CAUSAL, Options()
    )
    assert path.start == origin.start
    assert path.end == destination.end
    assert path.elementary_spans() == path.critical_path


def test_unsupported_strategy_raises():
    tr, spans = build_trace1()
    s000 = spans["s0.0.0"]
    with pytest.raises(CriticalPathError, match="unsupported"):
        find_between_elementary_spans(
            tr, s000.elementary_spans[0], s000.elementary_spans[-1], 99
        )