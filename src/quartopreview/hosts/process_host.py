"""Headless host that runs previews as plain child processes."""

from __future__ import annotations

import itertools
import logging
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..events import EventBus, NoticePosted, QuitRequested, SurfaceDestroyed, SurfaceOpened
from ..preview.host import HostPlatform, Severity

__all__ = ["ProcessPreviewHost"]

LOGGER = logging.getLogger(__name__)

PopenFactory = Callable[..., subprocess.Popen]


class ProcessPreviewHost:
    """Implements the preview host contract on top of :mod:`subprocess`.

    Every surface is a shell child process identified by an increasing
    integer. The "focus pointer" is bookkeeping only: there is no window to
    raise, but the preview core still restores it after each launch.
    """

    def __init__(
        self,
        *,
        events: EventBus | None = None,
        platform: HostPlatform | None = None,
        popen: PopenFactory | None = None,
        terminate_timeout: float = 5.0,
    ) -> None:
        self._events = events or EventBus()
        self._platform = platform or HostPlatform.current()
        self._popen = popen or subprocess.Popen
        self._terminate_timeout = terminate_timeout
        self._processes: Dict[int, subprocess.Popen] = {}
        self._ids = itertools.count(1)
        self._focus: Optional[Any] = None

    @property
    def events(self) -> EventBus:
        return self._events

    def platform(self) -> HostPlatform:
        return self._platform

    def open_surface(self, command: str, *, cwd: Path | None = None) -> int:
        LOGGER.debug("Spawning preview process: %s (cwd=%s)", command, cwd)
        process = self._popen(command, shell=True, cwd=str(cwd) if cwd is not None else None)
        surface_id = next(self._ids)
        self._processes[surface_id] = process
        self._focus = surface_id
        self._events.publish(SurfaceOpened(surface_id=surface_id, command=command))
        return surface_id

    def focused_surface(self) -> Any:
        return self._focus

    def set_focus(self, surface_id: Any) -> None:
        self._focus = surface_id

    def is_live(self, surface_id: Any) -> bool:
        process = self._processes.get(surface_id)
        return process is not None and process.poll() is None

    def destroy_surface(self, surface_id: Any, *, force: bool = False) -> None:
        process = self._processes.pop(surface_id, None)
        if process is None:
            return
        if process.poll() is None:
            if force:
                process.kill()
            else:
                process.terminate()
            try:
                process.wait(timeout=self._terminate_timeout)
            except subprocess.TimeoutExpired:
                LOGGER.warning("Preview process %s ignored terminate; killing it", surface_id)
                process.kill()
                process.wait()
        if self._focus == surface_id:
            self._focus = None
        self._events.publish(SurfaceDestroyed(surface_id=surface_id))

    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:
        LOGGER.log(severity.log_level, message)
        self._events.publish(NoticePosted(message=message, severity=severity.value))

    # ------------------------------------------------------------------
    # Extras used by the command-line entry point
    # ------------------------------------------------------------------
    def wait(self, surface_id: Any) -> int | None:
        """Block until the surface's process exits; return its exit code."""

        process = self._processes.get(surface_id)
        if process is None:
            return None
        return process.wait()

    def spawn_detached(self, command: str) -> None:
        """Fire-and-forget helper for commands that are not previews."""

        LOGGER.debug("Spawning detached command: %s", command)
        self._popen(command, shell=True)

    def shutdown(self) -> None:
        """Announce that the host is quitting."""

        self._events.publish(QuitRequested())

    def surfaces(self) -> list[int]:
        return list(self._processes)
