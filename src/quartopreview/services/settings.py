"""Settings dataclass and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..preview.paths import PROJECT_MARKER, SUPPORTED_EXTENSIONS

__all__ = ["PreviewSettings", "SettingsStore", "DEFAULT_SETTINGS_PATH"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".quartopreview"
DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "QUARTOPREVIEW_QUARTO_BINARY": "quarto_binary",
    "QUARTOPREVIEW_PROJECT_MARKER": "project_marker",
    "QUARTOPREVIEW_HELP_BASE_URL": "help_base_url",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "QUARTOPREVIEW_CLOSE_PREVIEW_ON_EXIT": "close_preview_on_exit",
    "QUARTOPREVIEW_DEBUG_LOGGING": "debug_logging",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


@dataclass(slots=True, frozen=True)
class PreviewSettings:
    """Options recognised by the preview integration.

    Instances are immutable; use :func:`dataclasses.replace` (or
    :meth:`SettingsStore.load` with ``overrides``) to derive variants.
    """

    close_preview_on_exit: bool = True
    project_marker: str = PROJECT_MARKER
    supported_extensions: tuple[str, ...] = field(default=SUPPORTED_EXTENSIONS)
    quarto_binary: str = "quarto"
    help_base_url: str = "https://quarto.org/"
    debug_logging: bool = False


class SettingsStore:
    """Persistence adapter for :class:`PreviewSettings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> PreviewSettings:
        """Merge defaults, the JSON file, environment and ``overrides`` (in that order)."""

        payload = self._read_payload()
        settings = PreviewSettings()
        if payload:
            data = _filter_fields(payload)
            extensions = data.get("supported_extensions")
            if isinstance(extensions, (list, tuple)):
                data["supported_extensions"] = tuple(str(ext) for ext in extensions)
            elif extensions is not None:
                LOGGER.warning("Ignoring supported_extensions=%r; expected a list", extensions)
                data.pop("supported_extensions")
            try:
                settings = PreviewSettings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = PreviewSettings()

        settings = self._apply_env_overrides(settings)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        LOGGER.debug("Settings loaded from %s: %s", self._path, settings)
        return settings

    def save(self, settings: PreviewSettings) -> Path:
        """Persist settings to disk with an atomic replace."""

        payload: Dict[str, Any] = asdict(settings)
        payload["supported_extensions"] = list(settings.supported_extensions)
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: PreviewSettings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> PreviewSettings:
        allowed = {item.name for item in fields(PreviewSettings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            if key == "supported_extensions" and isinstance(value, list):
                value = tuple(value)
            filtered[key] = value
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: PreviewSettings) -> PreviewSettings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(PreviewSettings)}
    data: Dict[str, Any] = {}
    for key, value in payload.items():
        if key == "version":
            continue
        if key not in allowed:
            LOGGER.warning("Ignoring unknown setting %r", key)
            continue
        data[key] = value
    return data
