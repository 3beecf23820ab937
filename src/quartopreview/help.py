"""Open the quarto.org search page for a topic."""

from __future__ import annotations

import logging
from typing import Callable
from urllib.parse import quote_plus

from .preview.host import HostPlatform, PreviewHost, Severity

__all__ = ["build_help_url", "help_command", "search_help"]

LOGGER = logging.getLogger(__name__)

DEFAULT_HELP_BASE_URL = "https://quarto.org/"


def build_help_url(topic: str, *, base_url: str = DEFAULT_HELP_BASE_URL) -> str:
    base = base_url if base_url.endswith("/") else f"{base_url}/"
    return f"{base}?q={quote_plus(topic.strip())}&show-results=1"


def help_command(url: str, platform: HostPlatform) -> str | None:
    """Return the shell command that opens ``url`` in the default browser.

    Only Linux (``xdg-open``) and macOS (``open``) are supported.
    """

    if platform is HostPlatform.LINUX:
        return f'xdg-open "{url}"'
    if platform is HostPlatform.DARWIN:
        return f'open "{url}"'
    return None


def search_help(
    topic: str,
    host: PreviewHost,
    launcher: Callable[[str], None],
    *,
    base_url: str = DEFAULT_HELP_BASE_URL,
) -> str | None:
    """Open the docs search for ``topic``; return the command that was run."""

    url = build_help_url(topic, base_url=base_url)
    command = help_command(url, host.platform())
    if command is None:
        host.notify(
            "Sorry, opening a URL in the default browser is only supported on Linux and macOS.",
            Severity.WARNING,
        )
        return None
    LOGGER.debug("Opening help for %r: %s", topic, url)
    launcher(command)
    return command
