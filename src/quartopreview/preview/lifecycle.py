"""Tear a preview down when the editing context that opened it goes away."""

from __future__ import annotations

import logging
from typing import Callable

from ..events import EventBus, QuitRequested, WindowClosed
from .host import EditingContext, PreviewHost, SurfaceId
from .records import SessionRegistry

__all__ = ["LifecycleBinder", "Subscription", "GROUP_NAME"]

LOGGER = logging.getLogger(__name__)

GROUP_NAME = "quartoPreview"


class Subscription:
    """One-shot observer of the "context is going away" signals.

    Fires on :class:`QuitRequested` or on :class:`WindowClosed` for its own
    context, cancels itself before running the callback, and never fires
    again afterwards.
    """

    __slots__ = ("_bus", "_context_id", "_callback", "_active", "group", "__weakref__")

    def __init__(
        self,
        bus: EventBus,
        context_id: str,
        callback: Callable[[], None],
        *,
        group: str = GROUP_NAME,
    ) -> None:
        self._bus = bus
        self._context_id = context_id
        self._callback = callback
        self._active = True
        self.group = group
        bus.subscribe(QuitRequested, self._on_quit)
        bus.subscribe(WindowClosed, self._on_window_closed)

    @property
    def context_id(self) -> str:
        return self._context_id

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Unregister from the bus. Safe to call more than once."""

        if not self._active:
            return
        self._active = False
        self._bus.unsubscribe(QuitRequested, self._on_quit)
        self._bus.unsubscribe(WindowClosed, self._on_window_closed)
        LOGGER.debug("Cancelled %s observer for context %s", self.group, self._context_id)

    def _on_quit(self, event: QuitRequested) -> None:
        del event
        self._fire()

    def _on_window_closed(self, event: WindowClosed) -> None:
        if event.context_id == self._context_id:
            self._fire()

    def _fire(self) -> None:
        if not self._active:
            return
        self.cancel()
        self._callback()


class LifecycleBinder:
    """Attach teardown observers to editing contexts, one per context."""

    def __init__(self, host: PreviewHost, registry: SessionRegistry) -> None:
        self._host = host
        self._registry = registry

    def attach(self, context: EditingContext, surface_id: SurfaceId) -> Subscription:
        """Destroy ``surface_id`` once ``context`` closes or the host quits.

        Any observer already registered for the context is cancelled first,
        so relaunching never stacks teardown triggers.
        """

        record = self._registry.ensure(context.id)
        if record.subscription is not None:
            record.subscription.cancel()

        subscription: Subscription

        def _teardown() -> None:
            if record.subscription is subscription:
                record.subscription = None
            self._teardown(surface_id)

        subscription = Subscription(self._host.events, context.id, _teardown)
        record.subscription = subscription
        LOGGER.debug("Attached exit observer for context %s (surface=%s)", context.id, surface_id)
        return subscription

    def detach(self, context_id: str) -> bool:
        record = self._registry.get(context_id)
        if record is None or record.subscription is None:
            return False
        record.subscription.cancel()
        record.subscription = None
        return True

    def active(self, context_id: str) -> Subscription | None:
        record = self._registry.get(context_id)
        if record is None:
            return None
        return record.subscription

    def _teardown(self, surface_id: SurfaceId) -> None:
        LOGGER.debug("Checking whether preview surface %s should close", surface_id)
        if not self._host.is_live(surface_id):
            return
        LOGGER.debug("Deleting preview surface %s", surface_id)
        self._host.destroy_surface(surface_id, force=True)
