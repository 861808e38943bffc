"""Catalog service collaborator supplying workshop records."""
from __future__ import annotations

from typing import Dict, Iterable, Optional, Protocol, Sequence

from .models import Workshop


class WorkshopCatalog(Protocol):
    """Read access to the workshop catalog."""

    def get_workshop(self, workshop_id: str) -> Optional[Workshop]:
        ...

    def list_workshops(self) -> Sequence[Workshop]:
        ...


class InMemoryWorkshopCatalog:
    """Catalog held in memory, ordered by start time."""

    def __init__(self, workshops: Iterable[Workshop] = ()) -> None:
        self._workshops: Dict[str, Workshop] = {}
        for workshop in workshops:
            self.add(workshop)

    def add(self, workshop: Workshop) -> None:
        self._workshops[workshop.id] = workshop

    def get_workshop(self, workshop_id: str) -> Optional[Workshop]:
        return self._workshops.get(workshop_id)

    def list_workshops(self) -> Sequence[Workshop]:
        return sorted(self._workshops.values(), key=lambda workshop: workshop.starts_at)
