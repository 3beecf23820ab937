"""Host collaborator contract consumed by the preview core."""

from __future__ import annotations

import logging
import platform as _platform
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Hashable, Optional, Protocol, runtime_checkable

from ..events import EventBus

__all__ = [
    "EditingContext",
    "HostPlatform",
    "PreviewHost",
    "Severity",
    "SurfaceId",
]

SurfaceId = Hashable


class HostPlatform(Enum):
    """Operating system family of the host; only used to pick quoting."""

    WINDOWS = "windows"
    DARWIN = "darwin"
    LINUX = "linux"
    OTHER = "other"

    @classmethod
    def from_system(cls, name: str | None) -> "HostPlatform":
        """Map a ``platform.system()`` / ``uname`` sysname onto a family."""

        normalized = (name or "").strip().lower()
        if normalized.startswith("windows"):
            return cls.WINDOWS
        if normalized == "darwin":
            return cls.DARWIN
        if normalized == "linux":
            return cls.LINUX
        return cls.OTHER

    @classmethod
    def current(cls) -> "HostPlatform":
        return cls.from_system(_platform.system())


class Severity(Enum):
    """Levels at which the host reports user-facing messages."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def log_level(self) -> int:
        return {
            Severity.ERROR: logging.ERROR,
            Severity.WARNING: logging.WARNING,
            Severity.INFO: logging.INFO,
        }[self]


@dataclass(slots=True, frozen=True)
class EditingContext:
    """One open document as seen by the preview core.

    ``path`` is ``None`` for buffers that were never saved.
    """

    id: str
    path: Optional[Path] = None

    @property
    def has_path(self) -> bool:
        return self.path is not None and str(self.path) != ""


@runtime_checkable
class PreviewHost(Protocol):
    """Operations the preview core needs from the editor host."""

    @property
    def events(self) -> EventBus:  # pragma: no cover - protocol
        """Bus on which the host publishes lifecycle signals."""
        ...

    def platform(self) -> HostPlatform:  # pragma: no cover - protocol
        ...

    def open_surface(self, command: str, *, cwd: Path | None = None) -> SurfaceId:  # pragma: no cover - protocol
        """Create a surface running ``command``; may raise if the host refuses."""
        ...

    def focused_surface(self) -> Any:  # pragma: no cover - protocol
        ...

    def set_focus(self, surface_id: Any) -> None:  # pragma: no cover - protocol
        ...

    def is_live(self, surface_id: SurfaceId) -> bool:  # pragma: no cover - protocol
        ...

    def destroy_surface(self, surface_id: SurfaceId, *, force: bool = False) -> None:  # pragma: no cover - protocol
        ...

    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:  # pragma: no cover - protocol
        ...
