"""PySide6 host: editing contexts and previews share one tab strip."""

from __future__ import annotations

import itertools
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from PySide6.QtCore import QObject, QProcess, Signal
from PySide6.QtGui import QFontDatabase
from PySide6.QtWidgets import QApplication, QPlainTextEdit, QTabWidget, QWidget

from ..events import (
    ContextClosed,
    EventBus,
    NoticePosted,
    QuitRequested,
    SurfaceDestroyed,
    SurfaceOpened,
    WindowClosed,
)
from ..preview.host import EditingContext, HostPlatform, Severity

__all__ = ["PreviewPane", "QtPreviewHost"]

LOGGER = logging.getLogger(__name__)

_START_TIMEOUT_MS = 5_000
_STOP_TIMEOUT_MS = 3_000


class PreviewPane(QPlainTextEdit):
    """Read-only pane showing the merged output of a shell command."""

    def __init__(
        self,
        command: str,
        *,
        cwd: Path | None = None,
        platform: HostPlatform = HostPlatform.LINUX,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.command = command
        self.setReadOnly(True)
        self.setFont(QFontDatabase.systemFont(QFontDatabase.SystemFont.FixedFont))
        self._platform = platform
        self._process = QProcess(self)
        self._process.setProcessChannelMode(QProcess.ProcessChannelMode.MergedChannels)
        if cwd is not None:
            self._process.setWorkingDirectory(str(cwd))
        self._process.readyReadStandardOutput.connect(self._drain_output)
        self._process.finished.connect(self._on_finished)

    @property
    def process(self) -> QProcess:
        return self._process

    def start(self) -> None:
        """Start the command; raise :class:`RuntimeError` when it cannot run."""

        if self._platform is HostPlatform.WINDOWS:
            program, arguments = "cmd.exe", ["/C", self.command]
        else:
            program, arguments = "/bin/sh", ["-c", self.command]
        self.appendPlainText(f"$ {self.command}")
        self._process.start(program, arguments)
        if not self._process.waitForStarted(_START_TIMEOUT_MS):
            raise RuntimeError(self._process.errorString())

    def running(self) -> bool:
        return self._process.state() != QProcess.ProcessState.NotRunning

    def stop(self, *, force: bool = False) -> None:
        if not self.running():
            return
        if force:
            self._process.kill()
        else:
            self._process.terminate()
        if not self._process.waitForFinished(_STOP_TIMEOUT_MS):
            self._process.kill()
            self._process.waitForFinished(_STOP_TIMEOUT_MS)

    def _drain_output(self) -> None:
        data = self._process.readAllStandardOutput().data()
        if data:
            self.appendPlainText(data.decode("utf-8", errors="replace").rstrip("\n"))

    def _on_finished(self, exit_code: int, exit_status: Any) -> None:
        del exit_status
        self.appendPlainText(f"[process exited with code {exit_code}]")


class QtPreviewHost(QObject):
    """Preview host backed by a :class:`QTabWidget`.

    Context tabs are registered with :meth:`add_context`; preview panes are
    opened as further tabs. Closing a context tab publishes
    :class:`WindowClosed` then :class:`ContextClosed`; quitting the
    application publishes :class:`QuitRequested`.
    """

    messagePosted = Signal(str, str)

    def __init__(
        self,
        tabs: QTabWidget | None = None,
        *,
        events: EventBus | None = None,
        platform: HostPlatform | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._events = events or EventBus()
        self._platform = platform or HostPlatform.current()
        self._tabs = tabs or QTabWidget()
        self._tabs.setTabsClosable(True)
        self._tabs.tabCloseRequested.connect(self._on_tab_close_requested)
        self._surfaces: Dict[int, PreviewPane] = {}
        self._contexts: Dict[str, QWidget] = {}
        self._ids = itertools.count(1)

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def tabs(self) -> QTabWidget:
        return self._tabs

    def bind_application(self, app: QApplication) -> None:
        app.aboutToQuit.connect(self._on_about_to_quit)

    # ------------------------------------------------------------------
    # Editing contexts
    # ------------------------------------------------------------------
    def add_context(self, context: EditingContext, widget: QWidget, title: str | None = None) -> int:
        label = title or (context.path.name if context.path is not None else "Untitled")
        index = self._tabs.addTab(widget, label)
        self._contexts[context.id] = widget
        self._tabs.setCurrentIndex(index)
        return index

    def context_id_for(self, widget: QWidget | None) -> Optional[str]:
        for context_id, candidate in self._contexts.items():
            if candidate is widget:
                return context_id
        return None

    def close_context(self, context_id: str) -> None:
        widget = self._contexts.pop(context_id, None)
        if widget is None:
            return
        index = self._tabs.indexOf(widget)
        if index >= 0:
            self._tabs.removeTab(index)
        widget.deleteLater()
        self._events.publish(WindowClosed(context_id=context_id))
        self._events.publish(ContextClosed(context_id=context_id))

    # ------------------------------------------------------------------
    # Host contract
    # ------------------------------------------------------------------
    def platform(self) -> HostPlatform:
        return self._platform

    def open_surface(self, command: str, *, cwd: Path | None = None) -> int:
        pane = PreviewPane(command, cwd=cwd, platform=self._platform)
        try:
            pane.start()
        except RuntimeError:
            pane.deleteLater()
            raise
        surface_id = next(self._ids)
        self._surfaces[surface_id] = pane
        index = self._tabs.addTab(pane, f"preview {surface_id}")
        self._tabs.setCurrentIndex(index)
        self._events.publish(SurfaceOpened(surface_id=surface_id, command=command))
        return surface_id

    def focused_surface(self) -> QWidget | None:
        return self._tabs.currentWidget()

    def set_focus(self, surface_id: Any) -> None:
        widget = self._surfaces.get(surface_id) if isinstance(surface_id, int) else surface_id
        if widget is not None and self._tabs.indexOf(widget) >= 0:
            self._tabs.setCurrentWidget(widget)

    def is_live(self, surface_id: Any) -> bool:
        return surface_id in self._surfaces

    def destroy_surface(self, surface_id: Any, *, force: bool = False) -> None:
        pane = self._surfaces.pop(surface_id, None)
        if pane is None:
            return
        pane.stop(force=force)
        index = self._tabs.indexOf(pane)
        if index >= 0:
            self._tabs.removeTab(index)
        pane.deleteLater()
        self._events.publish(SurfaceDestroyed(surface_id=surface_id))

    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:
        LOGGER.log(severity.log_level, message)
        self.messagePosted.emit(message, severity.value)
        self._events.publish(NoticePosted(message=message, severity=severity.value))

    # ------------------------------------------------------------------
    # Qt signal handlers
    # ------------------------------------------------------------------
    def _on_tab_close_requested(self, index: int) -> None:
        widget = self._tabs.widget(index)
        for surface_id, pane in list(self._surfaces.items()):
            if pane is widget:
                self.destroy_surface(surface_id, force=True)
                return
        context_id = self.context_id_for(widget)
        if context_id is not None:
            self.close_context(context_id)

    def _on_about_to_quit(self) -> None:
        LOGGER.debug("Application quitting; notifying preview observers")
        self._events.publish(QuitRequested())
