"""Unit tests for :mod:`quartopreview.preview.commands` and platform detection."""

from __future__ import annotations

import pytest

from quartopreview.preview.commands import PreviewMode, build_preview_command
from quartopreview.preview.host import HostPlatform


def test_file_mode_on_windows_uses_double_quotes() -> None:
    command = build_preview_command(PreviewMode.FILE, "/tmp/a b.qmd", "", HostPlatform.WINDOWS)
    assert command == 'quarto preview "/tmp/a b.qmd" '


def test_file_mode_elsewhere_uses_single_quotes() -> None:
    command = build_preview_command(PreviewMode.FILE, "/tmp/a b.qmd", "", HostPlatform.LINUX)
    assert command == "quarto preview '/tmp/a b.qmd' "


def test_file_mode_appends_extra_args_verbatim() -> None:
    command = build_preview_command(
        PreviewMode.FILE, "/tmp/x.qmd", "--port 4200 --no-browser", HostPlatform.DARWIN
    )
    assert command == "quarto preview '/tmp/x.qmd' --port 4200 --no-browser"


@pytest.mark.parametrize("platform", list(HostPlatform))
def test_project_mode_never_embeds_path(platform: HostPlatform) -> None:
    command = build_preview_command(PreviewMode.PROJECT, "/srv/site/secret-name.qmd", "--foo", platform)
    assert command == "quarto preview --foo"
    assert "secret-name" not in command


def test_custom_tool_binary() -> None:
    command = build_preview_command(
        PreviewMode.PROJECT, None, "", HostPlatform.LINUX, tool="/opt/quarto/bin/quarto"
    )
    assert command == "/opt/quarto/bin/quarto preview "


@pytest.mark.parametrize(
    ("sysname", "expected"),
    [
        ("Windows", HostPlatform.WINDOWS),
        ("Windows_NT", HostPlatform.WINDOWS),
        ("CYGWIN_NT-10.0", HostPlatform.OTHER),
        ("MSYS_NT-10.0", HostPlatform.OTHER),
        ("MINGW64_NT-10.0", HostPlatform.OTHER),
        ("Darwin", HostPlatform.DARWIN),
        ("Linux", HostPlatform.LINUX),
        ("FreeBSD", HostPlatform.OTHER),
        ("", HostPlatform.OTHER),
        (None, HostPlatform.OTHER),
    ],
)
def test_platform_from_system(sysname: str | None, expected: HostPlatform) -> None:
    assert HostPlatform.from_system(sysname) is expected


def test_platform_current_uses_platform_module(monkeypatch: pytest.MonkeyPatch) -> None:
    import quartopreview.preview.host as host_module

    monkeypatch.setattr(host_module._platform, "system", lambda: "Windows")
    assert HostPlatform.current() is HostPlatform.WINDOWS
