"""Classify document paths: project membership and supported extensions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Collection

__all__ = [
    "PROJECT_MARKER",
    "SUPPORTED_EXTENSIONS",
    "extension_of",
    "find_project_root",
    "is_project_path",
    "is_supported_extension",
]

LOGGER = logging.getLogger(__name__)

PROJECT_MARKER = "_quarto.yml"
SUPPORTED_EXTENSIONS: tuple[str, ...] = (".qmd", ".Rmd", ".ipynb", ".md")


def find_project_root(path: Path | str | None, marker: str = PROJECT_MARKER) -> Path | None:
    """Return the nearest ancestor directory of ``path`` that holds ``marker``.

    The search starts at ``path`` itself when it is a directory, otherwise at
    its parent, and stops after the filesystem root. Paths that cannot be
    probed are treated as "not in a project".
    """

    if path is None or str(path) == "":
        return None
    candidate = Path(path).expanduser()
    try:
        start = candidate if candidate.is_dir() else candidate.parent
        start = start.absolute()
    except OSError as exc:
        LOGGER.debug("Cannot resolve %s for project search: %s", path, exc)
        return None

    for directory in (start, *start.parents):
        try:
            if (directory / marker).is_file():
                return directory
        except OSError:
            continue
    return None


def is_project_path(path: Path | str | None, marker: str = PROJECT_MARKER) -> bool:
    return find_project_root(path, marker) is not None


def extension_of(path: Path | str | None) -> str:
    """Return the extension of the final path segment, dot included.

    ``"a/b.c.qmd"`` gives ``".qmd"`` and ``".bashrc"`` gives ``".bashrc"``;
    ``"a/b"`` and ``"a."`` give ``""``.
    """

    if path is None:
        return ""
    name = Path(str(path)).name
    index = name.rfind(".")
    if index < 0 or index == len(name) - 1:
        return ""
    return name[index:]


def is_supported_extension(ext: str, supported: Collection[str] = SUPPORTED_EXTENSIONS) -> bool:
    # Case-sensitive on purpose: ".Rmd" is supported, ".rmd" is not.
    return bool(ext) and ext in supported
