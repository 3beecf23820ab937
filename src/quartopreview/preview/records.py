"""Per-context session records owned by the preview core."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterator, Optional

from .host import SurfaceId

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from .lifecycle import Subscription

__all__ = ["SessionRecord", "SessionRegistry"]


@dataclass(slots=True)
class SessionRecord:
    """What the core remembers about one editing context."""

    context_id: str
    bound_surface: Optional[SurfaceId] = None
    subscription: Optional["Subscription"] = None


class SessionRegistry:
    """Map from context identifier to its :class:`SessionRecord`."""

    def __init__(self) -> None:
        self._records: Dict[str, SessionRecord] = {}

    def get(self, context_id: str) -> SessionRecord | None:
        return self._records.get(context_id)

    def ensure(self, context_id: str) -> SessionRecord:
        record = self._records.get(context_id)
        if record is None:
            record = SessionRecord(context_id=context_id)
            self._records[context_id] = record
        return record

    def bound_surface(self, context_id: str) -> SurfaceId | None:
        record = self._records.get(context_id)
        return record.bound_surface if record is not None else None

    def bind(self, context_id: str, surface_id: SurfaceId) -> SessionRecord:
        """Attach ``surface_id`` to the context, replacing any earlier binding."""

        record = self.ensure(context_id)
        record.bound_surface = surface_id
        return record

    def pop(self, context_id: str) -> SessionRecord | None:
        return self._records.pop(context_id, None)

    def __contains__(self, context_id: object) -> bool:
        return context_id in self._records

    def __iter__(self) -> Iterator[SessionRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)
