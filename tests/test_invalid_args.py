import pytest

from eventproxy.core.contracts import InvalidArgument
from eventproxy.core.dispatcher import Dispatcher


def cb(*_):
    pass


@pytest.mark.parametrize("event", ["", None, 1, b"bytes"])
def test_bad_event_name_rejected(d, event):
    with pytest.raises(InvalidArgument):
        d.register(event, cb)
    with pytest.raises(InvalidArgument):
        d.fire(event)
    assert d._ep_callbacks == {}


def test_non_callable_rejected_before_state_changes(d):
    with pytest.raises(InvalidArgument):
        d.on("e", "not callable")
    with pytest.raises(InvalidArgument):
        d.headbind("e", None)
    assert "e" not in d._ep_callbacks


def test_invalid_argument_is_a_type_error(d):
    with pytest.raises(TypeError):
        d.bind_for_all(42)


def test_callback_without_event_is_rejected(d):
    d.on("e", cb)
    with pytest.raises(InvalidArgument):
        d.unregister(callback=cb)
    # nothing was wiped
    assert d.listeners("e") == [cb]


def test_empty_wildcard_name_rejected():
    with pytest.raises(InvalidArgument):
        Dispatcher(all_event="")
