"""Derived subscriptions built on top of plain register/unregister.

Each helper keeps its own state in a closure; the emitter itself never
remembers what has fired.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Sequence

from eventproxy.core.contracts import Callback, InvalidArgument, check_callback, check_event

if TYPE_CHECKING:  # pragma: no cover
    from eventproxy.core.dispatcher import EventEmitterMixin


def _first(args: tuple) -> Any:
    return args[0] if args else None


def once(emitter: "EventEmitterMixin", event: str, callback: Callback) -> Callback:
    """Run callback on the next fire of event only. Returns the registered wrapper."""
    check_event(event)
    check_callback(callback)

    def _once(*args: Any, **kwargs: Any) -> Any:
        emitter.unregister(event, _once)
        return callback(*args, **kwargs)

    emitter.register(event, _once)
    return _once


def after(emitter: "EventEmitterMixin", event: str, times: int, callback: Callback) -> None:
    """Call callback(list_of_first_args) once event has fired `times` times."""
    check_event(event)
    check_callback(callback)
    if not isinstance(times, int) or isinstance(times, bool):
        raise InvalidArgument(f"times must be an int, got {times!r}")
    if times <= 0:
        callback([])
        return

    collected: List[Any] = []

    def _after(*args: Any, **kwargs: Any) -> None:
        collected.append(_first(args))
        if len(collected) == times:
            emitter.unregister(event, _after)
            callback(list(collected))

    emitter.register(event, _after)


def _combine(emitter: "EventEmitterMixin", events: Sequence[str], callback: Callback, *, keep: bool) -> None:
    if not events:
        raise InvalidArgument("at least one event name is required")
    for ev in events:
        check_event(ev)
    check_callback(callback)

    names = list(dict.fromkeys(events))
    latest: Dict[str, Any] = {}
    handlers: Dict[str, Callback] = {}

    def _make(ev: str) -> Callback:
        def _on(*args: Any, **kwargs: Any) -> None:
            latest[ev] = _first(args)
            if len(latest) < len(names):
                return
            if not keep:
                for name, h in handlers.items():
                    emitter.unregister(name, h)
            callback(*[latest[e] for e in events])
        return _on

    for ev in names:
        handlers[ev] = _make(ev)
        emitter.register(ev, handlers[ev])


def all_of(emitter: "EventEmitterMixin", *events: str, callback: Callback) -> None:
    """Call callback once, after every event has fired at least once.

    Arguments are the latest first argument of each event, in the order given.
    """
    _combine(emitter, events, callback, keep=False)


# EventProxy spelling
assign = all_of


def tail(emitter: "EventEmitterMixin", *events: str, callback: Callback) -> None:
    """Like all_of, but keeps calling back on every later fire of any event."""
    _combine(emitter, events, callback, keep=True)
