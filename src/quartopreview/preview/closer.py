"""Close the preview bound to an editing context on request."""

from __future__ import annotations

import logging

from .host import EditingContext, PreviewHost
from .records import SessionRegistry

__all__ = ["SessionCloser"]

LOGGER = logging.getLogger(__name__)


class SessionCloser:
    def __init__(self, host: PreviewHost, registry: SessionRegistry) -> None:
        self._host = host
        self._registry = registry

    def close_for(self, context: EditingContext) -> bool:
        """Destroy the surface bound to ``context``; return whether one was closed.

        Nothing bound, or a surface the user already closed, is a no-op.
        """

        surface_id = self._registry.bound_surface(context.id)
        if surface_id is None:
            LOGGER.debug("No preview bound to context %s", context.id)
            return False
        if not self._host.is_live(surface_id):
            LOGGER.debug("Preview surface %s for context %s is already gone", surface_id, context.id)
            return False
        self._host.destroy_surface(surface_id, force=True)
        LOGGER.info("Closed preview surface %s for context %s", surface_id, context.id)
        return True
