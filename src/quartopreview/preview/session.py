"""Launch previews and keep track of which context owns which surface."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..events import ContextClosed
from .closer import SessionCloser
from .commands import PreviewMode, build_preview_command
from .errors import (
    InvalidContextError,
    LaunchFailureError,
    PreviewError,
    UnsupportedFileTypeError,
)
from .host import EditingContext, PreviewHost, SurfaceId
from .lifecycle import LifecycleBinder
from .paths import PROJECT_MARKER, SUPPORTED_EXTENSIONS, extension_of, find_project_root, is_supported_extension
from .records import SessionRegistry

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..services.settings import PreviewSettings

__all__ = ["PreviewSessionManager", "PreviewSurface"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PreviewSurface:
    """A launched preview, as returned to the caller."""

    surface_id: SurfaceId
    context_id: str
    mode: PreviewMode
    command: str
    project_root: Optional[Path] = None


class PreviewSessionManager:
    """Decide how to run ``quarto preview`` for a context and supervise it.

    ``settings`` is the active configuration; ``None`` means none is loaded,
    in which case previews still launch but are never auto-closed.
    """

    def __init__(
        self,
        host: PreviewHost,
        settings: PreviewSettings | None = None,
        *,
        registry: SessionRegistry | None = None,
    ) -> None:
        self._host = host
        self._settings = settings
        self._registry = registry or SessionRegistry()
        self._binder = LifecycleBinder(host, self._registry)
        self._closer = SessionCloser(host, self._registry)
        host.events.subscribe(ContextClosed, self._on_context_closed)

    @property
    def settings(self) -> PreviewSettings | None:
        return self._settings

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def binder(self) -> LifecycleBinder:
        return self._binder

    @property
    def closer(self) -> SessionCloser:
        return self._closer

    # ------------------------------------------------------------------
    # User-facing commands
    # ------------------------------------------------------------------
    def preview(self, context: EditingContext, extra_args: str = "") -> PreviewSurface | None:
        """Launch a preview and report failures to the user instead of raising."""

        try:
            return self.launch(context, extra_args)
        except PreviewError as exc:
            LOGGER.debug("Preview for context %s aborted: %s", context.id, exc)
            self._host.notify(str(exc), exc.severity)
            return None

    def close_preview(self, context: EditingContext) -> bool:
        return self._closer.close_for(context)

    # ------------------------------------------------------------------
    # Core operation
    # ------------------------------------------------------------------
    def launch(self, context: EditingContext, extra_args: str = "") -> PreviewSurface:
        """Start the preview for ``context`` in a new surface.

        Raises :class:`InvalidContextError`, :class:`UnsupportedFileTypeError`
        or :class:`LaunchFailureError`; on any of them nothing is bound.
        """

        extra_args = extra_args or ""
        path = context.path if context.has_path else None
        LOGGER.debug("Preview requested for context %s (path=%s, args=%r)", context.id, path, extra_args)

        project_root = find_project_root(path, self._project_marker)
        mode = PreviewMode.PROJECT if project_root is not None else PreviewMode.FILE
        LOGGER.debug("Root directory: %s; mode=%s", project_root, mode.value)

        if mode is PreviewMode.FILE:
            if path is None:
                raise InvalidContextError()
            extension = extension_of(path)
            LOGGER.debug("Detected file extension: %r", extension)
            if not extension:
                raise InvalidContextError()
            if not is_supported_extension(extension, self._supported_extensions):
                raise UnsupportedFileTypeError(extension)

        platform = self._host.platform()
        command = build_preview_command(mode, path, extra_args, platform, tool=self._quarto_binary)
        LOGGER.debug("Command to execute (%s): %s", platform.value, command)

        origin = self._host.focused_surface()
        cwd = project_root if project_root is not None else (path.parent if path is not None else None)
        try:
            surface_id = self._host.open_surface(command, cwd=cwd)
        except Exception as exc:
            LOGGER.debug("Opening preview surface failed", exc_info=True)
            raise LaunchFailureError(command, exc) from exc
        LOGGER.debug("Preview output surface: %s", surface_id)

        self._host.set_focus(origin)
        self._registry.bind(context.id, surface_id)

        surface = PreviewSurface(
            surface_id=surface_id,
            context_id=context.id,
            mode=mode,
            command=command,
            project_root=project_root,
        )
        if self._settings is None:
            LOGGER.debug("No configuration found; preview will not auto-close")
            return surface

        if self._settings.close_preview_on_exit:
            self._binder.attach(context, surface_id)
        return surface

    def bound_surface(self, context: EditingContext) -> SurfaceId | None:
        return self._registry.bound_surface(context.id)

    def forget(self, context_id: str) -> None:
        """Drop everything known about a context that no longer exists."""

        record = self._registry.pop(context_id)
        if record is None:
            return
        if record.subscription is not None:
            record.subscription.cancel()
            record.subscription = None
        LOGGER.debug("Forgot session record for context %s", context_id)

    def _on_context_closed(self, event: ContextClosed) -> None:
        self.forget(event.context_id)

    # ------------------------------------------------------------------
    # Settings accessors
    # ------------------------------------------------------------------
    @property
    def _project_marker(self) -> str:
        return self._settings.project_marker if self._settings is not None else PROJECT_MARKER

    @property
    def _supported_extensions(self) -> tuple[str, ...]:
        if self._settings is None:
            return SUPPORTED_EXTENSIONS
        return tuple(self._settings.supported_extensions)

    @property
    def _quarto_binary(self) -> str:
        return self._settings.quarto_binary if self._settings is not None else "quarto"
