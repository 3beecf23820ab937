"""Preview session lifecycle: classify, build, launch, bind, tear down."""

from .closer import SessionCloser
from .commands import PreviewMode, build_preview_command
from .errors import (
    InvalidContextError,
    LaunchFailureError,
    PreviewError,
    UnsupportedFileTypeError,
)
from .host import EditingContext, HostPlatform, PreviewHost, Severity, SurfaceId
from .lifecycle import LifecycleBinder, Subscription
from .paths import (
    PROJECT_MARKER,
    SUPPORTED_EXTENSIONS,
    extension_of,
    find_project_root,
    is_project_path,
    is_supported_extension,
)
from .records import SessionRecord, SessionRegistry
from .session import PreviewSessionManager, PreviewSurface

__all__ = [
    "EditingContext",
    "HostPlatform",
    "InvalidContextError",
    "LaunchFailureError",
    "LifecycleBinder",
    "PROJECT_MARKER",
    "PreviewError",
    "PreviewHost",
    "PreviewMode",
    "PreviewSessionManager",
    "PreviewSurface",
    "SUPPORTED_EXTENSIONS",
    "SessionCloser",
    "SessionRecord",
    "SessionRegistry",
    "Severity",
    "Subscription",
    "SurfaceId",
    "UnsupportedFileTypeError",
    "build_preview_command",
    "extension_of",
    "find_project_root",
    "is_project_path",
    "is_supported_extension",
]
