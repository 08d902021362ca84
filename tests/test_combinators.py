import pytest

from eventproxy.core import combinators
from eventproxy.core.contracts import InvalidArgument


def test_once_runs_a_single_time(d, calls):
    d.once("ready", lambda *a: calls.append(a))
    d.fire("ready", 1).fire("ready", 2)
    assert calls == [(1,)]
    assert d.listeners("ready") == []


def test_once_returns_wrapper_that_can_be_unbound(d, calls):
    wrapper = combinators.once(d, "ready", calls.append)
    d.unbind("ready", wrapper)
    d.fire("ready", 1)
    assert calls == []


def test_after_collects_first_args(d, calls):
    d.after("chunk", 3, calls.append)
    for v in ("a", "b", "c", "d"):
        d.fire("chunk", v)
    assert calls == [["a", "b", "c"]]


def test_after_without_args_collects_none(d, calls):
    d.after("tick", 2, calls.append)
    d.fire("tick").fire("tick")
    assert calls == [[None, None]]


def test_after_zero_times_calls_immediately(d, calls):
    d.after("never", 0, calls.append)
    assert calls == [[]]
    assert d.listeners("never") == []


@pytest.mark.parametrize("times", ["3", 2.0, True])
def test_after_rejects_non_int(d, times):
    with pytest.raises(InvalidArgument):
        d.after("e", times, print)


def test_all_of_waits_for_every_event(d, calls):
    d.all_of("template", "l10n", callback=lambda tpl, res: calls.append((tpl, res)))

    d.fire("l10n", {"hi": "hello"})
    assert calls == []
    d.fire("template", "<p>{hi}</p>")
    assert calls == [("<p>{hi}</p>", {"hi": "hello"})]

    # one-shot: later fires do nothing
    d.fire("template", "other")
    assert calls == [("<p>{hi}</p>", {"hi": "hello"})]
    assert d.listeners("template") == [] and d.listeners("l10n") == []


def test_assign_uses_latest_value(d, calls):
    d.assign("a", "b", callback=lambda a, b: calls.append((a, b)))
    d.fire("a", 1).fire("a", 2).fire("b", 3)
    assert calls == [(2, 3)]


def test_tail_keeps_firing_after_first_completion(d, calls):
    d.tail("a", "b", callback=lambda a, b: calls.append((a, b)))
    d.fire("a", 1)
    d.fire("b", 2)
    d.fire("a", 3)
    assert calls == [(1, 2), (3, 2)]


def test_combinators_need_an_event(d):
    with pytest.raises(InvalidArgument):
        d.all_of(callback=print)
    with pytest.raises(InvalidArgument):
        d.tail("a", "", callback=print)
