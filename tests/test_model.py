import pytest

from tracey.model import Comparator, Dependency, Mark, Trace


def test_comparator_orderings():
    c = Comparator()
    assert c.less(1, 2) is True
    assert c.less(2, 2) is False
    assert c.less_or_equal(2, 2) is True
    assert c.equal(3, 3) is True
    assert c.greater(3, 2) is True
    assert c.greater_or_equal(2, 3) is False


def test_comparator_diff_and_add_round_trip():
    c = Comparator()
    for a, b in [(10, 4), (0, 25), (7.5, 7.5)]:
        assert c.diff(a, b) == -c.diff(b, a)
        assert c.add(b, c.diff(a, b)) == a


def test_elementary_spans_are_linked_in_order():
    tr = Trace()
    span = tr.add_root_span("a")
    first = span.add_elementary_span(0, 10)
    second = span.add_elementary_span(20, 30)
    assert first.successor is second
    assert second.predecessor is first
    assert first.predecessor is None
    assert second.successor is None
    assert span.start == 0
    assert span.end == 30


def test_elementary_span_rejects_negative_duration():
    span = Trace().add_root_span("a")
    with pytest.raises(ValueError):
        span.add_elementary_span(10, 5)


def test_dependency_links_and_triggering_origin():
    tr = Trace()
    x = tr.add_root_span("x").add_elementary_span(0, 10)
    y = tr.add_root_span("y").add_elementary_span(0, 5)
    z = tr.add_root_span("z").add_elementary_span(20, 30)
    dep = Dependency("send", origins=[x, y], destinations=[z])
    assert x.outgoing is dep and y.outgoing is dep
    assert z.incoming is dep
    assert dep.triggering_origin is y


def test_dependency_without_origins_has_no_trigger():
    assert Dependency().triggering_origin is None


def test_second_outgoing_dependency_rejected():
    tr = Trace()
    x = tr.add_root_span("x").add_elementary_span(0, 10)
    z = tr.add_root_span("z").add_elementary_span(20, 30)
    Dependency(origins=[x], destinations=[z])
    with pytest.raises(ValueError):
        Dependency(origins=[x])


def test_span_path_and_names():
    tr = Trace()
    root = tr.add_root_span("s0.0.0")
    child = root.add_child("0")
    grandchild = child.add_child("3")
    assert grandchild.path == "s0.0.0/0/3"
    assert tr.span_name(grandchild) == "3"
    named = Trace(namer=lambda span: span.path)
    assert named.span_name(grandchild) == "s0.0.0/0/3"


def test_trace_walks_all_spans_depth_first():
    tr = Trace()
    a = tr.add_root_span("a")
    b = a.add_child("b")
    c = tr.add_root_span("c")
    ess = [a.add_elementary_span(0, 1), b.add_elementary_span(1, 2), c.add_elementary_span(2, 3)]
    assert list(tr.spans()) == [a, b, c]
    assert list(tr.elementary_spans()) == ess


def test_marks_are_kept():
    span = Trace().add_root_span("a")
    es = span.add_elementary_span(0, 10, marks=[Mark("go", 5)])
    assert es.marks == [Mark("go", 5)]