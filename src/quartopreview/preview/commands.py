"""Build the shell invocation for ``quarto preview``."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from .host import HostPlatform

__all__ = ["PreviewMode", "build_preview_command"]


class PreviewMode(Enum):
    """Whether the preview runs for a whole project or a single file."""

    PROJECT = "project"
    FILE = "file"


def build_preview_command(
    mode: PreviewMode,
    path: Path | str | None,
    extra_args: str,
    platform: HostPlatform,
    *,
    tool: str = "quarto",
) -> str:
    """Return the command line that starts the preview.

    In project mode the path is left out so the tool discovers the project
    root on its own. ``extra_args`` is appended verbatim; callers are
    responsible for its shell safety.
    """

    extra_args = extra_args or ""
    if mode is PreviewMode.PROJECT:
        return f"{tool} preview {extra_args}"

    quote = '"' if platform is HostPlatform.WINDOWS else "'"
    return f"{tool} preview {quote}{path or ''}{quote} {extra_args}"
