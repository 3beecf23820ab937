"""Service layer helpers (settings persistence)."""

from .settings import PreviewSettings, SettingsStore

__all__ = ["PreviewSettings", "SettingsStore"]
