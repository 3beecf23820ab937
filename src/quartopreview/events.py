"""Event bus carrying host lifecycle signals to the preview core.

Hosts publish events describing things the user did (closing a window,
quitting the application); the preview core subscribes to the ones it needs
to tear previews down without knowing which toolkit produced them.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, TYPE_CHECKING
from weakref import WeakMethod, ref

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events published on an :class:`EventBus`."""


# =============================================================================
# Lifecycle signals
# =============================================================================


@dataclass(slots=True)
class QuitRequested(Event):
    """The host is about to quit; every context is going away."""


@dataclass(slots=True)
class WindowClosed(Event):
    """A window (or tab) showing an editing context was closed.

    Attributes:
        context_id: Identifier of the editing context the window displayed.
    """

    context_id: str


@dataclass(slots=True)
class ContextClosed(Event):
    """An editing context was destroyed by the host.

    Published after :class:`WindowClosed` when the context itself is gone,
    so observers still registered for it can release their resources.
    """

    context_id: str


# =============================================================================
# Surface notifications
# =============================================================================


@dataclass(slots=True)
class SurfaceOpened(Event):
    """A preview surface was created for ``command``."""

    surface_id: Any
    command: str


@dataclass(slots=True)
class SurfaceDestroyed(Event):
    """A preview surface was torn down."""

    surface_id: Any


@dataclass(slots=True)
class NoticePosted(Event):
    """A user-facing message was reported by the host.

    Attributes:
        message: The text shown to the user.
        severity: One of ``"error"``, ``"warning"`` or ``"info"``.
    """

    message: str
    severity: str = "info"


class EventBus(Generic[E]):
    """Synchronous publish/subscribe dispatcher keyed on event type.

    Bound methods are held through :class:`weakref.WeakMethod` so that an
    observer owned by a discarded object drops out on its own; plain
    functions and closures are held strongly and must be unsubscribed.

    Not thread-safe: every call is expected on the host's main loop.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``.

        Subscribing the same handler twice results in two invocations.
        """
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug(
            "Subscribed handler %s to event type %s",
            _handler_name(handler),
            event_type.__name__,
        )

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for i, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(i)
                logger.debug(
                    "Unsubscribed handler %s from event type %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
                return

    def publish(self, event: E) -> None:
        """Invoke every handler registered for ``type(event)`` in order.

        Handlers may subscribe or unsubscribe while the event is being
        dispatched; the dispatch works on a snapshot of the registrations.
        A handler that raises is logged and the remaining handlers still run.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            logger.debug("No handlers for event type %s", event_type.__name__)
            return

        logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))
        dead: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for handler_ref in dead:
            if handler_ref in handlers:
                handlers.remove(handler_ref)

    def clear(self) -> None:
        """Remove all registered handlers."""
        self._handlers.clear()
        logger.debug("Cleared all event handlers")

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Return the handler count for ``event_type``, or the total when omitted."""
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | ref | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "QuitRequested",
    "WindowClosed",
    "ContextClosed",
    "SurfaceOpened",
    "SurfaceDestroyed",
    "NoticePosted",
]
