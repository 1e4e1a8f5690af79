import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from tracey.cache import Cache
from tracey.model import Dependency, Trace
from tracey.paths import CriticalPathError, Endpoint, Options, Strategy
from tracey.search import find_between_elementary_spans


def build_trace1():
    tr = Trace()
    s000 = tr.add_root_span("s0.0.0")
    a0 = s000.add_elementary_span(0, 10)
    a1 = s000.add_elementary_span(90, 100)
    zero = s000.add_child("0")
    z0 = zero.add_elementary_span(10, 20)
    z1 = zero.add_elementary_span(20, 30)
    z2 = zero.add_elementary_span(30, 40)
    z3 = zero.add_elementary_span(70, 90)
    three = zero.add_child("3")
    t0 = three.add_elementary_span(40, 50)
    t1 = three.add_elementary_span(60, 70)
    s010 = tr.add_root_span("s0.1.0")
    p0 = s010.add_elementary_span(30, 40)
    p1 = s010.add_elementary_span(40, 50)
    s010.add_elementary_span(50, 70)
    s100 = tr.add_root_span("s1.0.0")
    q0 = s100.add_elementary_span(30, 35)
    s100.add_elementary_span(35, 50)
    Dependency("call", [a0], [z0])
    Dependency("return", [z3], [a1])
    Dependency("spawn", [z0], [p0])
    Dependency("spawn", [z1], [q0])
    Dependency("call", [z2], [t0])
    Dependency("return", [t1], [z3])
    Dependency("send", [q0], [p1])
    Dependency("signal", [p1], [t1])
    return tr


def root(tr, name):
    return next(span for span in tr.root_spans if span.payload == name)


def test_repeated_requests_return_cached_path():
    tr = build_trace1()
    s000 = root(tr, "s0.0.0")
    origin, destination = s000.elementary_spans[0], s000.elementary_spans[-1]
    cache = Cache()
    first = cache.get_between_elementary_spans(
        tr, origin, destination, Strategy.PREFER_MOST_WORK
    )
    second = cache.get_between_elementary_spans(
        tr, origin, destination, Strategy.PREFER_MOST_WORK
    )
    assert first is second


def test_cached_path_matches_direct_search():
    tr = build_trace1()
    s000 = root(tr, "s0.0.0")
    origin, destination = s000.elementary_spans[0], s000.elementary_spans[-1]
    cache = Cache()
    for strategy in Strategy:
        cached = cache.get_between_elementary_spans(tr, origin, destination, strategy)
        direct = find_between_elementary_spans(tr, origin, destination, strategy)
        assert cached.critical_path == direct.critical_path


def test_strategies_and_options_cached_separately():
    tr = build_trace1()
    s000 = root(tr, "s0.0.0")
    origin, destination = s000.elementary_spans[0], s000.elementary_spans[-1]
    cache = Cache()
    most = cache.get_between_elementary_spans(
        tr, origin, destination, Strategy.PREFER_MOST_WORK
    )
    least = cache.get_between_elementary_spans(
        tr, origin, destination, Strategy.PREFER_LEAST_WORK
    )
    assert len(most.critical_path) > len(least.critical_path)
    with_nontriggering = cache.get_between_elementary_spans(
        tr,
        origin,
        destination,
        Strategy.PREFER_MOST_WORK,
        Options(include_positive_nontriggering_origins=True),
    )
    assert with_nontriggering is not most
    assert with_nontriggering.critical_path[0] is origin
    assert with_nontriggering.critical_path[-1] is destination


def test_missing_endpoint_rejected():
    tr = build_trace1()
    es = root(tr, "s0.0.0").elementary_spans[0]
    cache = Cache()
    with pytest.raises(CriticalPathError):
        cache.get_between_elementary_spans(tr, None, es, Strategy.PREFER_CAUSAL)
    with pytest.raises(CriticalPathError):
        cache.get_between_endpoints(tr, Endpoint(es.span, 0), None, Strategy.PREFER_CAUSAL)


def test_failures_are_cached_and_reraised():
    tr = build_trace1()
    cache = Cache()
    start = Endpoint(root(tr, "s0.1.0"), 35)
    end = Endpoint(root(tr, "s1.0.0"), 40)
    with pytest.raises(CriticalPathError) as first:
        cache.get_between_endpoints(tr, start, end, Strategy.PREFER_CAUSAL)
    with pytest.raises(CriticalPathError) as second:
        cache.get_between_endpoints(tr, start, end, Strategy.PREFER_CAUSAL)
    assert first.value is second.value


def test_endpoints_bound_the_returned_path():
    tr = build_trace1()
    s000 = root(tr, "s0.0.0")
    cache = Cache()
    path = cache.get_between_endpoints(
        tr, Endpoint(s000, 5), Endpoint(s000, 95), Strategy.PREFER_MOST_WORK
    )
    assert (path.start, path.end) == (5, 95)
    assert path.critical_path[0] is s000.elementary_spans[0]
    assert path.critical_path[-1] is s000.elementary_spans[-1]
    full = cache.get_between_elementary_spans(
        tr, s000.elementary_spans[0], s000.elementary_spans[-1], Strategy.PREFER_MOST_WORK
    )
    assert (full.start, full.end) == (0, 100)
    assert full.critical_path == path.critical_path


def test_concurrent_requests_share_one_result():
    tr = build_trace1()
    s000 = root(tr, "s0.0.0")
    origin, destination = s000.elementary_spans[0], s000.elementary_spans[-1]
    cache = Cache()
    barrier = threading.Barrier(8)

    def fetch(_):
        barrier.wait()
        return cache.get_between_elementary_spans(
            tr, origin, destination, Strategy.PREFER_MOST_WORK
        )

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(fetch, range(8)))
    assert all(result is results[0] for result in results)