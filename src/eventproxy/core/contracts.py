from __future__ import annotations

import enum
import types
from dataclasses import dataclass
from typing import Any, Callable, Optional


__all__ = [
    "ALL_EVENT",
    "Callback",
    "InvalidArgument",
    "SlotState",
    "Slot",
    "check_event",
    "check_callback",
    "same_callback",
]


# --------- Primitive / aliases ---------
Callback = Callable[..., Any]

# wildcard channel: receives every fired event, name prepended
ALL_EVENT = "__all__"


class InvalidArgument(TypeError):
    """Raised when an event name or callback is not usable."""


def check_event(event: Any) -> str:
    if not isinstance(event, str) or not event:
        raise InvalidArgument(f"event name must be a non-empty str, got {event!r}")
    return event


def check_callback(callback: Any) -> Callback:
    if not callable(callback):
        raise InvalidArgument(f"callback must be callable, got {callback!r}")
    return callback


def same_callback(a: Callback, b: Callback) -> bool:
    """Identity match; bound methods match on (receiver, function) identity.

    Every `obj.method` lookup builds a new bound-method object, so `is` alone
    would never find the one that was registered.
    """
    if a is b:
        return True
    if isinstance(a, types.MethodType) and isinstance(b, types.MethodType):
        return a.__self__ is b.__self__ and a.__func__ is b.__func__
    if isinstance(a, types.BuiltinMethodType) and isinstance(b, types.BuiltinMethodType):
        return a.__self__ is b.__self__ and a.__name__ == b.__name__
    return False


# --------- Slot ---------
class SlotState(enum.Enum):
    ACTIVE = "active"
    REMOVED = "removed"


@dataclass(slots=True, eq=False)
class Slot:
    """One registration in an event's callback list.

    A removed slot keeps its position until a firing pass walks over it and
    drops it, so indices seen by an in-flight pass never shift.
    """
    callback: Optional[Callback]
    state: SlotState = SlotState.ACTIVE

    @property
    def active(self) -> bool:
        return self.state is SlotState.ACTIVE

    def holds(self, callback: Callback) -> bool:
        return self.active and self.callback is not None and same_callback(self.callback, callback)

    def tombstone(self) -> None:
        self.state = SlotState.REMOVED
        self.callback = None
