"""Minimal desktop window driving the preview core through the Qt host."""

from __future__ import annotations

import logging
import subprocess
import uuid
from pathlib import Path
from typing import Dict, Iterable, Optional

from PySide6.QtGui import QAction
from PySide6.QtWidgets import QInputDialog, QLineEdit, QMainWindow, QPlainTextEdit, QToolBar, QWidget

from ..events import ContextClosed
from ..help import search_help
from ..hosts.qt_host import QtPreviewHost
from ..preview import EditingContext, PreviewSessionManager, PreviewSurface, Severity
from ..services.settings import PreviewSettings

__all__ = ["PreviewWindow"]

LOGGER = logging.getLogger(__name__)

_STATUS_TIMEOUT_MS = 8_000


class PreviewWindow(QMainWindow):
    """Tabs of read-only documents with Preview / Close Preview / Help actions."""

    def __init__(
        self,
        settings: PreviewSettings | None = None,
        *,
        host: QtPreviewHost | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Quarto Preview")
        self._settings = settings
        self._host = host or QtPreviewHost(parent=self)
        self._manager = PreviewSessionManager(self._host, settings)
        self._contexts: Dict[str, EditingContext] = {}
        self.setCentralWidget(self._host.tabs)
        self._host.messagePosted.connect(self._show_message)
        self._host.events.subscribe(ContextClosed, self._on_context_closed)
        self._args_edit = QLineEdit(self)
        self._args_edit.setPlaceholderText("extra quarto preview arguments")
        self._build_toolbar()

    @property
    def manager(self) -> PreviewSessionManager:
        return self._manager

    @property
    def host(self) -> QtPreviewHost:
        return self._host

    def open_documents(self, paths: Iterable[Path | str]) -> None:
        for path in paths:
            self.open_document(path)

    def open_document(self, path: Path | str | None = None) -> EditingContext:
        """Show ``path`` in a new tab; ``None`` opens an unsaved buffer."""

        resolved = Path(path).expanduser().resolve() if path else None
        editor = QPlainTextEdit(self)
        editor.setReadOnly(True)
        if resolved is not None and resolved.is_file():
            editor.setPlainText(resolved.read_text(encoding="utf-8", errors="replace"))
        context = EditingContext(id=uuid.uuid4().hex, path=resolved)
        self._contexts[context.id] = context
        self._host.add_context(context, editor)
        return context

    def current_context(self) -> Optional[EditingContext]:
        context_id = self._host.context_id_for(self._host.tabs.currentWidget())
        if context_id is None:
            return None
        return self._contexts.get(context_id)

    def preview_current(self) -> PreviewSurface | None:
        context = self.current_context()
        if context is None:
            self._host.notify("Select a document tab before previewing.", Severity.WARNING)
            return None
        return self._manager.preview(context, self._args_edit.text())

    def close_current_preview(self) -> bool:
        context = self.current_context()
        if context is None:
            return False
        return self._manager.close_preview(context)

    def search_help(self, topic: str | None = None) -> None:
        if topic is None:
            topic, accepted = QInputDialog.getText(self, "Quarto Help", "Search quarto.org for:")
            if not accepted or not topic.strip():
                return
        base_url = self._settings.help_base_url if self._settings is not None else "https://quarto.org/"
        search_help(topic, self._host, self._launch_detached, base_url=base_url)

    def _launch_detached(self, command: str) -> None:
        try:
            subprocess.Popen(command, shell=True)
        except OSError as exc:
            self._host.notify(f"Could not run {command}: {exc}", Severity.ERROR)

    def _build_toolbar(self) -> None:
        toolbar = QToolBar("Preview", self)
        self.addToolBar(toolbar)

        preview_action = QAction("Preview", self)
        preview_action.setShortcut("Ctrl+Shift+P")
        preview_action.triggered.connect(lambda: self.preview_current())
        toolbar.addAction(preview_action)

        close_action = QAction("Close Preview", self)
        close_action.triggered.connect(lambda: self.close_current_preview())
        toolbar.addAction(close_action)

        help_action = QAction("Quarto Help", self)
        help_action.triggered.connect(lambda: self.search_help())
        toolbar.addAction(help_action)

        toolbar.addSeparator()
        toolbar.addWidget(self._args_edit)

    def _on_context_closed(self, event: ContextClosed) -> None:
        self._contexts.pop(event.context_id, None)

    def _show_message(self, message: str, severity: str) -> None:
        LOGGER.debug("Status message (%s): %s", severity, message)
        self.statusBar().showMessage(message, _STATUS_TIMEOUT_MS)
