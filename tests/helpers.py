"""Shared test helpers and stub classes.

Import from here instead of re-declaring hosts in individual test files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from quartopreview.events import ContextClosed, EventBus, QuitRequested, WindowClosed
from quartopreview.preview.host import HostPlatform, Severity


class FakePreviewHost:
    """In-memory implementation of the preview host contract.

    Surfaces are integers; ``destroyed`` records every destructive call so
    tests can assert on exact counts.

    Example:
        from tests.helpers import FakePreviewHost

        host = FakePreviewHost(platform=HostPlatform.WINDOWS)
    """

    def __init__(self, *, platform: HostPlatform = HostPlatform.LINUX, fail_with: Exception | None = None) -> None:
        self.events = EventBus()
        self._platform = platform
        self.fail_with = fail_with
        self.focus: Any = "editor"
        self.live: set[int] = set()
        self.opened: list[tuple[int, str, Path | None]] = []
        self.destroyed: list[tuple[int, bool]] = []
        self.focus_calls: list[Any] = []
        self.messages: list[tuple[str, Severity]] = []
        self._next_id = 100

    def platform(self) -> HostPlatform:
        return self._platform

    def open_surface(self, command: str, *, cwd: Path | None = None) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        self._next_id += 1
        surface_id = self._next_id
        self.live.add(surface_id)
        self.opened.append((surface_id, command, cwd))
        self.focus = surface_id
        return surface_id

    def focused_surface(self) -> Any:
        return self.focus

    def set_focus(self, surface_id: Any) -> None:
        self.focus_calls.append(surface_id)
        self.focus = surface_id

    def is_live(self, surface_id: Any) -> bool:
        return surface_id in self.live

    def destroy_surface(self, surface_id: Any, *, force: bool = False) -> None:
        self.destroyed.append((surface_id, force))
        self.live.discard(surface_id)

    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:
        self.messages.append((message, severity))

    # Signal helpers -----------------------------------------------------
    def close_window(self, context_id: str) -> None:
        self.events.publish(WindowClosed(context_id=context_id))

    def destroy_context(self, context_id: str) -> None:
        self.events.publish(ContextClosed(context_id=context_id))

    def quit(self) -> None:
        self.events.publish(QuitRequested())

    def user_closes(self, surface_id: int) -> None:
        """Simulate the user closing a preview directly, bypassing the core."""

        self.live.discard(surface_id)
