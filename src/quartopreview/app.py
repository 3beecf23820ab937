"""Command-line entry point for the quarto preview integration."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import shlex
import subprocess
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, cast, get_args, get_origin, get_type_hints

from .help import search_help
from .hosts.process_host import ProcessPreviewHost
from .preview import EditingContext, HostPlatform, PreviewSessionManager
from .services.settings import PreviewSettings, SettingsStore
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_GLOBAL_VALUE_OPTIONS = {"--settings-path", "--set"}
_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PREVIEW_FAILED = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure logging for the command-line tools."""

    level = logging_utils.resolve_level(debug)
    logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> PreviewSettings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return PreviewSettings()


def create_qapp(settings: PreviewSettings) -> QtRuntime:
    """Create a qasync-powered QApplication instance."""

    try:  # Local import so the headless commands never need PySide6.
        from PySide6.QtWidgets import QApplication
    except ImportError as exc:  # pragma: no cover - depends on desktop stack
        raise RuntimeError("PySide6 must be installed to open the preview window.") from exc

    try:
        from qasync import QEventLoop
    except ImportError as exc:  # pragma: no cover - depends on env setup
        raise RuntimeError("qasync is required to run the async Qt event loop.") from exc

    del settings
    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName("Quarto Preview")

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)
    _install_qt_message_handler()
    return QtRuntime(app=app, loop=loop)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``quartopreview`` console script."""

    parser = _build_parser()
    head, preview_tail = _split_preview_argv(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(head)
    if preview_tail is not None:
        args.path, args.args = _preview_operands(preview_tail)

    debug = args.debug or _env_flag("QUARTOPREVIEW_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("QUARTOPREVIEW_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return EXIT_USAGE

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return EXIT_OK

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    if args.command == "preview":
        return run_preview(args.path, args.args, settings)
    if args.command == "help":
        return run_help(" ".join(args.topic), settings)
    if args.command == "gui":
        return run_gui(args.paths, settings)
    parser.print_help()
    return EXIT_USAGE


def run_preview(
    path: str | None,
    passthrough: Sequence[str],
    settings: PreviewSettings,
    *,
    host: ProcessPreviewHost | None = None,
) -> int:
    """Preview ``path`` (or the current directory) and wait for quarto to exit."""

    host = host or ProcessPreviewHost()
    manager = PreviewSessionManager(host, settings)
    target = Path(path).expanduser().resolve() if path else Path.cwd()
    context = EditingContext(id="cli", path=target)
    surface = manager.preview(context, _join_passthrough(passthrough, host.platform()))
    if surface is None:
        return EXIT_PREVIEW_FAILED

    _LOGGER.info("Started %s preview: %s", surface.mode.value, surface.command)
    try:
        exit_code = host.wait(surface.surface_id)
    except KeyboardInterrupt:
        _LOGGER.info("Shutdown requested by user.")
        host.shutdown()
        return EXIT_INTERRUPTED
    return exit_code or EXIT_OK


def run_help(topic: str, settings: PreviewSettings, *, host: ProcessPreviewHost | None = None) -> int:
    host = host or ProcessPreviewHost()
    command = search_help(topic, host, host.spawn_detached, base_url=settings.help_base_url)
    return EXIT_OK if command is not None else EXIT_PREVIEW_FAILED


def run_gui(paths: Sequence[str], settings: PreviewSettings) -> int:
    """Open the preview window on a qasync event loop."""

    runtime = create_qapp(settings)
    from .ui.preview_window import PreviewWindow

    window = PreviewWindow(settings)
    window.host.bind_application(runtime.app)
    window.open_documents(paths)
    window.show()

    loop = runtime.loop
    try:
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        _drain_event_loop(loop)
        loop.close()
    return EXIT_OK


def _join_passthrough(items: Sequence[str], platform: HostPlatform) -> str:
    if not items:
        return ""
    if platform is HostPlatform.WINDOWS:
        return subprocess.list2cmdline(list(items))
    return shlex.join(items)


def _split_preview_argv(argv: Sequence[str]) -> tuple[list[str], list[str] | None]:
    """Cut the ``preview`` operands off before argparse sees them.

    argparse cannot hand a leading unknown option (``preview --no-browser``)
    to a ``REMAINDER`` positional, so everything after the subcommand is
    returned separately. ``-h``/``--help`` right after it stays with argparse.
    """

    items = list(argv)
    index = 0
    while index < len(items):
        token = items[index]
        if token == "--":
            break
        if token.startswith("-"):
            if token in _GLOBAL_VALUE_OPTIONS:
                index += 1
            index += 1
            continue
        if token != "preview":
            break
        tail = items[index + 1 :]
        if tail[:1] in (["-h"], ["--help"]):
            break
        return items[: index + 1], tail
    return items, None


def _preview_operands(tail: Sequence[str]) -> tuple[str | None, list[str]]:
    if tail and tail[0] == "--":
        return None, list(tail[1:])
    if tail and not tail[0].startswith("-"):
        return tail[0], list(tail[1:])
    return None, list(tail)


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel outstanding tasks before the loop is closed."""

    if loop.is_closed():
        return

    async def _cleanup() -> None:
        current_task = None
        with contextlib.suppress(RuntimeError):
            current_task = asyncio.current_task(loop=loop)
        tasks = [task for task in asyncio.all_tasks(loop) if not task.done() and task is not current_task]
        if tasks:
            _LOGGER.debug("Canceling %s pending asyncio task(s) before shutdown.", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_asyncgens()

    try:
        loop.run_until_complete(_cleanup())
    except RuntimeError as exc:  # pragma: no cover - loop already stopping
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


def _install_qt_message_handler() -> None:
    """Redirect Qt warnings to the Python logging stack."""

    from PySide6.QtCore import QtMsgType, qInstallMessageHandler

    level_map = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }

    def _handler(mode, context, message):  # type: ignore[no-untyped-def]
        del context
        logging.getLogger("PySide6").log(level_map.get(mode, logging.INFO), message)

    qInstallMessageHandler(_handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quartopreview",
        description="Run quarto preview for a document and close it when you are done.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.quartopreview/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    subparsers = parser.add_subparsers(dest="command")

    preview = subparsers.add_parser("preview", help="Preview a document or the enclosing project.")
    preview.add_argument("path", nargs="?", help="Document to preview (defaults to the current directory).")
    preview.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Arguments passed through to quarto preview.",
    )

    help_parser = subparsers.add_parser("help", help="Search the quarto documentation.")
    help_parser.add_argument("topic", nargs="+")

    gui = subparsers.add_parser("gui", help="Open the preview window.")
    gui.add_argument("paths", nargs="*")
    return parser


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = PreviewSettings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(PreviewSettings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is tuple:
        if not normalized.startswith("["):
            return tuple(item.strip() for item in normalized.split(",") if item.strip())
        try:
            return tuple(json.loads(normalized))
        except json.JSONDecodeError as exc:
            raise ValueError("List overrides must be valid JSON arrays") from exc
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, tuple}:
        return tuple
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: PreviewSettings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["supported_extensions"] = list(settings.supported_extensions)
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": sorted(name for name in os.environ if name.startswith("QUARTOPREVIEW_")),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
