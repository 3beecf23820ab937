"""Errors raised while launching a preview."""

from __future__ import annotations

from .host import Severity

__all__ = [
    "PreviewError",
    "InvalidContextError",
    "UnsupportedFileTypeError",
    "LaunchFailureError",
]


class PreviewError(Exception):
    """Base class for recoverable preview failures."""

    severity: Severity = Severity.ERROR


class InvalidContextError(PreviewError):
    """The editing context has no file identity usable in file mode."""

    def __init__(self, message: str = "Not in a file. Exiting.") -> None:
        super().__init__(message)


class UnsupportedFileTypeError(PreviewError):
    """The document's extension is not one quarto can preview."""

    severity = Severity.WARNING

    def __init__(self, extension: str) -> None:
        self.extension = extension
        super().__init__(f"Not a Quarto file, ends in {extension}. Exiting.")


class LaunchFailureError(PreviewError):
    """The host refused to create the preview surface."""

    def __init__(self, command: str, cause: BaseException) -> None:
        self.command = command
        self.cause = cause
        super().__init__(f"Error opening terminal: {cause}")
