"""Tests for :class:`quartopreview.preview.session.PreviewSessionManager`."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from quartopreview.preview import (
    EditingContext,
    HostPlatform,
    InvalidContextError,
    LaunchFailureError,
    PreviewMode,
    PreviewSessionManager,
    Severity,
    UnsupportedFileTypeError,
)
from quartopreview.services.settings import PreviewSettings
from tests.helpers import FakePreviewHost


def test_file_mode_launch_binds_surface(
    host: FakePreviewHost, settings: PreviewSettings, file_context: EditingContext
) -> None:
    manager = PreviewSessionManager(host, settings)

    surface = manager.launch(file_context, "--no-browser")

    assert surface.mode is PreviewMode.FILE
    assert surface.command == f"quarto preview '{file_context.path}' --no-browser"
    assert host.opened == [(surface.surface_id, surface.command, file_context.path.parent)]
    assert manager.bound_surface(file_context) == surface.surface_id


def test_focus_returns_to_origin(host: FakePreviewHost, file_context: EditingContext) -> None:
    manager = PreviewSessionManager(host, PreviewSettings())

    manager.launch(file_context)

    assert host.focus_calls == ["editor"]
    assert host.focus == "editor"


def test_project_mode_omits_path_and_runs_from_root(host: FakePreviewHost, project_file: Path) -> None:
    manager = PreviewSessionManager(host, PreviewSettings())
    context = EditingContext(id="buf-p", path=project_file)

    surface = manager.launch(context, "--render all")

    assert surface.mode is PreviewMode.PROJECT
    assert surface.command == "quarto preview --render all"
    assert surface.project_root == project_file.parent.parent.absolute()
    assert host.opened[0][2] == surface.project_root


def test_project_mode_does_not_check_extension(host: FakePreviewHost, project_file: Path) -> None:
    manager = PreviewSessionManager(host, PreviewSettings())
    context = EditingContext(id="buf-p", path=project_file.parent / "data.csv")

    surface = manager.launch(context)

    assert surface.mode is PreviewMode.PROJECT


def test_windows_host_quotes_with_double_quotes(file_context: EditingContext) -> None:
    host = FakePreviewHost(platform=HostPlatform.WINDOWS)
    manager = PreviewSessionManager(host, PreviewSettings())

    surface = manager.launch(file_context)

    assert surface.command == f'quarto preview "{file_context.path}" '


def test_unsupported_file_type_creates_no_surface(host: FakePreviewHost, tmp_path: Path) -> None:
    notes = tmp_path / "notes.txt"
    notes.write_text("plain", encoding="utf-8")
    manager = PreviewSessionManager(host, PreviewSettings())
    context = EditingContext(id="buf-t", path=notes)

    with pytest.raises(UnsupportedFileTypeError) as excinfo:
        manager.launch(context)

    assert excinfo.value.extension == ".txt"
    assert host.opened == []
    assert manager.bound_surface(context) is None


def test_missing_path_is_invalid_context(host: FakePreviewHost) -> None:
    manager = PreviewSessionManager(host, PreviewSettings())

    with pytest.raises(InvalidContextError):
        manager.launch(EditingContext(id="scratch", path=None))

    assert host.opened == []


def test_path_without_extension_is_invalid_context(host: FakePreviewHost, tmp_path: Path) -> None:
    manager = PreviewSessionManager(host, PreviewSettings())

    with pytest.raises(InvalidContextError):
        manager.launch(EditingContext(id="mk", path=tmp_path / "Makefile"))


def test_dotfile_is_unsupported_file_type(host: FakePreviewHost, tmp_path: Path) -> None:
    manager = PreviewSessionManager(host, PreviewSettings())

    with pytest.raises(UnsupportedFileTypeError) as excinfo:
        manager.launch(EditingContext(id="rc", path=tmp_path / ".bashrc"))

    assert excinfo.value.extension == ".bashrc"
    assert str(excinfo.value) == "Not a Quarto file, ends in .bashrc. Exiting."
    assert host.opened == []


def test_launch_failure_wraps_host_error(file_context: EditingContext) -> None:
    cause = OSError("no terminal available")
    host = FakePreviewHost(fail_with=cause)
    manager = PreviewSessionManager(host, PreviewSettings())

    with pytest.raises(LaunchFailureError) as excinfo:
        manager.launch(file_context)

    assert excinfo.value.__cause__ is cause
    assert "no terminal available" in str(excinfo.value)
    assert manager.bound_surface(file_context) is None
    assert manager.binder.active(file_context.id) is None
    assert host.events.handler_count() == 1  # only the manager's ContextClosed handler


def test_second_launch_overwrites_binding_without_closing_first(
    host: FakePreviewHost, file_context: EditingContext
) -> None:
    manager = PreviewSessionManager(host, PreviewSettings())

    first = manager.launch(file_context)
    second = manager.launch(file_context)

    assert manager.bound_surface(file_context) == second.surface_id
    assert host.is_live(first.surface_id)
    assert host.destroyed == []


def test_relaunch_replaces_teardown_observer(host: FakePreviewHost, file_context: EditingContext) -> None:
    manager = PreviewSessionManager(host, PreviewSettings())

    first = manager.launch(file_context)
    first_subscription = manager.binder.active(file_context.id)
    second = manager.launch(file_context)

    assert first_subscription is not None and not first_subscription.active
    host.close_window(file_context.id)

    assert host.destroyed == [(second.surface_id, True)]
    assert host.is_live(first.surface_id)


def test_no_configuration_skips_auto_close(host: FakePreviewHost, file_context: EditingContext) -> None:
    manager = PreviewSessionManager(host, None)

    surface = manager.launch(file_context)
    host.close_window(file_context.id)

    assert manager.bound_surface(file_context) == surface.surface_id
    assert manager.binder.active(file_context.id) is None
    assert host.destroyed == []


def test_close_on_exit_disabled_skips_observer(host: FakePreviewHost, file_context: EditingContext) -> None:
    manager = PreviewSessionManager(host, PreviewSettings(close_preview_on_exit=False))

    manager.launch(file_context)
    host.quit()

    assert host.destroyed == []


def test_settings_drive_marker_extensions_and_binary(host: FakePreviewHost, tmp_path: Path) -> None:
    (tmp_path / "site.yml").write_text("", encoding="utf-8")
    settings = replace(
        PreviewSettings(),
        project_marker="site.yml",
        supported_extensions=(".txt",),
        quarto_binary="qx",
    )
    manager = PreviewSessionManager(host, settings)

    surface = manager.launch(EditingContext(id="t", path=tmp_path / "sub.txt"), "-v")

    assert surface.command == "qx preview -v"


def test_preview_reports_unsupported_type_as_warning(host: FakePreviewHost, tmp_path: Path) -> None:
    manager = PreviewSessionManager(host, PreviewSettings())

    result = manager.preview(EditingContext(id="b", path=tmp_path / "notes.txt"))

    assert result is None
    assert host.messages == [("Not a Quarto file, ends in .txt. Exiting.", Severity.WARNING)]


def test_preview_reports_invalid_context_as_error(host: FakePreviewHost) -> None:
    manager = PreviewSessionManager(host, PreviewSettings())

    assert manager.preview(EditingContext(id="b")) is None
    assert host.messages == [("Not in a file. Exiting.", Severity.ERROR)]


def test_preview_reports_launch_failure_as_error(file_context: EditingContext) -> None:
    host = FakePreviewHost(fail_with=RuntimeError("refused"))
    manager = PreviewSessionManager(host, PreviewSettings())

    assert manager.preview(file_context) is None
    assert host.messages == [("Error opening terminal: refused", Severity.ERROR)]


def test_context_closed_forgets_record_and_cancels_observer(
    host: FakePreviewHost, file_context: EditingContext
) -> None:
    manager = PreviewSessionManager(host, PreviewSettings())
    manager.launch(file_context)
    subscription = manager.binder.active(file_context.id)

    host.destroy_context(file_context.id)

    assert file_context.id not in manager.registry
    assert subscription is not None and not subscription.active
    host.quit()
    assert host.destroyed == []
