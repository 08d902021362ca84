# src/eventproxy/core/dispatcher.py
from __future__ import annotations

import functools
import logging
from contextlib import nullcontext
from typing import Any, Dict, List, Optional

from eventproxy.core import combinators, log
from eventproxy.core.contracts import (
    ALL_EVENT,
    Callback,
    InvalidArgument,
    Slot,
    check_callback,
    check_event,
)
from eventproxy.core.metrics import Timer, gauge_set, inc


class EventEmitterMixin:
    """
    Custom events for any object.

    - register(ev, cb) / register_at_head(ev, cb): add a callback (tail / head)
    - unregister(ev?, cb?): drop one callback, one event, or everything
    - fire(ev, *args, **kwargs): call every callback of ev, then every callback
      of the wildcard channel with ev prepended

    State is created lazily, so subclasses do not have to call __init__.
    Every operation returns self for chaining.
    """

    _ep_name: str = "emitter"
    _ep_all_event: str = ALL_EVENT
    _ep_metrics: bool = False

    # -------------------- state --------------------
    def _registry(self) -> Dict[str, List[Slot]]:
        calls = getattr(self, "_ep_callbacks", None)
        if calls is None:
            calls = {}
            self._ep_callbacks = calls
        return calls

    @property
    def _log(self) -> logging.Logger:
        return log.get(f"eventproxy.{self._ep_name}")

    @property
    def all_event(self) -> str:
        return self._ep_all_event

    def _track(self, delta: int) -> None:
        # running count of active slots over all events; metrics are per dispatcher, never per event
        self._ep_active = getattr(self, "_ep_active", 0) + delta
        if self._ep_metrics:
            gauge_set("dispatcher_listeners", float(self._ep_active), dispatcher=self._ep_name)

    # -------------------- register --------------------
    def register(self, event: str, callback: Callback):
        check_event(event)
        check_callback(callback)
        self._log.debug("add listener for %s", event)
        self._registry().setdefault(event, []).append(Slot(callback))
        self._track(1)
        return self

    def register_at_head(self, event: str, callback: Callback):
        check_event(event)
        check_callback(callback)
        self._log.debug("add head listener for %s", event)
        self._registry().setdefault(event, []).insert(0, Slot(callback))
        self._track(1)
        return self

    def add_listener(self, event: str, callback: Callback):
        return self.register(event, callback)

    def bind(self, event: str, callback: Callback):
        return self.register(event, callback)

    def on(self, event: str, callback: Callback):
        return self.register(event, callback)

    def subscribe(self, event: str, callback: Callback):
        return self.register(event, callback)

    def headbind(self, event: str, callback: Callback):
        return self.register_at_head(event, callback)

    # -------------------- unregister --------------------
    def unregister(self, event: Optional[str] = None, callback: Optional[Callback] = None):
        """
        - unregister()        -> drop every callback of every event
        - unregister(ev)      -> empty the list of ev
        - unregister(ev, cb)  -> tombstone every slot of ev holding cb
          (identity; bound methods by receiver and function)

        Tombstoned slots stay in place until the next fire walks over them.
        """
        if event is None:
            if callback is not None:
                raise InvalidArgument("unregister(callback=...) needs an event name")
            self._log.debug("remove all listeners")
            self._ep_callbacks = {}
            self._track(-getattr(self, "_ep_active", 0))
            return self

        check_event(event)
        calls = self._registry()
        removed = 0
        if callback is None:
            self._log.debug("remove all listeners of %s", event)
            removed = sum(1 for s in calls.get(event, ()) if s.active)
            calls[event] = []
        else:
            check_callback(callback)
            for slot in calls.get(event, ()):
                if slot.holds(callback):
                    self._log.debug("remove a listener of %s", event)
                    slot.tombstone()
                    removed += 1
        if removed:
            self._track(-removed)
        return self

    def unbind(self, event: Optional[str] = None, callback: Optional[Callback] = None):
        return self.unregister(event, callback)

    def remove_listener(self, event: Optional[str] = None, callback: Optional[Callback] = None):
        return self.unregister(event, callback)

    def remove_all_listeners(self, event: Optional[str] = None):
        return self.unregister(event)

    # wildcard
    def bind_for_all(self, callback: Callback):
        return self.register(self._ep_all_event, callback)

    def unbind_for_all(self, callback: Callback):
        return self.unregister(self._ep_all_event, callback)

    # -------------------- fire --------------------
    def fire(self, event: str, /, *args: Any, **kwargs: Any):
        """
        Call every callback of `event` with (*args, **kwargs), then every
        wildcard callback with (event, *args, **kwargs). Exceptions from a
        callback propagate and end the pass.

        Both channels are read from the mapping as it was when fire() began,
        so a reset made by a direct callback does not cancel the wildcard pass.
        """
        check_event(event)
        calls = self._registry()
        timer = Timer("dispatcher_fire_ms", dispatcher=self._ep_name) if self._ep_metrics else nullcontext()
        with timer:
            self._run(calls, event, args, kwargs)
            self._run(calls, self._ep_all_event, (event,) + args, kwargs)
        if self._ep_metrics:
            inc("dispatcher_fire_total", 1, dispatcher=self._ep_name)
        return self

    def emit(self, event: str, /, *args: Any, **kwargs: Any):
        return self.fire(event, *args, **kwargs)

    def trigger(self, event: str, /, *args: Any, **kwargs: Any):
        return self.fire(event, *args, **kwargs)

    def _run(self, calls: Dict[str, List[Slot]], event: str, args: tuple, kwargs: Dict[str, Any]) -> None:
        slots = calls.get(event)
        if not slots:
            return
        # walk the slots present when the pass began; later registrations wait for the next fire
        for slot in list(slots):
            cb = slot.callback
            if not slot.active or cb is None:
                self._compact(calls, event, slot)
                continue
            cb(*args, **kwargs)

    @staticmethod
    def _compact(calls: Dict[str, List[Slot]], event: str, slot: Slot) -> None:
        live = calls.get(event)
        if not live:
            return
        for i, s in enumerate(live):
            if s is slot:
                del live[i]
                return

    # -------------------- introspection --------------------
    def listeners(self, event: str) -> List[Callback]:
        check_event(event)
        return [s.callback for s in self._registry().get(event, ()) if s.active]

    def listener_count(self, event: str) -> int:
        return len(self.listeners(event))

    # -------------------- combinators --------------------
    def once(self, event: str, callback: Callback):
        combinators.once(self, event, callback)
        return self

    def after(self, event: str, times: int, callback: Callback):
        combinators.after(self, event, times, callback)
        return self

    def all_of(self, *events: str, callback: Callback):
        combinators.all_of(self, *events, callback=callback)
        return self

    def assign(self, *events: str, callback: Callback):
        return self.all_of(*events, callback=callback)

    def tail(self, *events: str, callback: Callback):
        combinators.tail(self, *events, callback=callback)
        return self


class Dispatcher(EventEmitterMixin):
    """Standalone emitter; one instance per owner, no global registry."""

    def __init__(self, name: str = "dispatcher", *, all_event: str = ALL_EVENT, metrics: bool = False):
        self._ep_name = name
        self._ep_all_event = check_event(all_event)
        self._ep_metrics = bool(metrics)
        self._ep_callbacks: Dict[str, List[Slot]] = {}
        self._ep_active = 0

    @property
    def name(self) -> str:
        return self._ep_name

    def __repr__(self) -> str:
        return f"Dispatcher(name={self._ep_name!r}, events={sorted(self._ep_callbacks)!r})"


# operations copied onto objects by mix_into()
OPERATIONS = (
    "register", "register_at_head", "add_listener", "bind", "on", "subscribe", "headbind",
    "unregister", "unbind", "remove_listener", "remove_all_listeners",
    "bind_for_all", "unbind_for_all",
    "fire", "emit", "trigger",
    "listeners", "listener_count",
    "once", "after", "all_of", "assign", "tail",
)


def mix_into(obj: Any, **kwargs: Any) -> Dispatcher:
    """Give an existing object the emitter operations of a fresh Dispatcher.

    Attributes the object already has are left alone. Chaining operations
    return obj, like a subclass of EventEmitterMixin would.
    """
    kwargs.setdefault("name", type(obj).__name__.lower())
    d = Dispatcher(**kwargs)
    for op in OPERATIONS:
        if not hasattr(obj, op):
            setattr(obj, op, _returning_host(obj, d, getattr(d, op)))
    return d


def _returning_host(obj: Any, d: Dispatcher, method: Callback) -> Callback:
    @functools.wraps(method)
    def op(*args: Any, **kwargs: Any) -> Any:
        out = method(*args, **kwargs)
        return obj if out is d else out
    return op
