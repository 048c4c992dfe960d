"""
Audit Event Store - Durable Audit Trail

The durable counterpart of AuditLogger's in-process log. Writes are
append-only; there is no update or delete.
"""

from typing import List, Optional, Protocol, runtime_checkable

from clinical_suggestion_pipeline.core.models import AuditEvent


@runtime_checkable
class AuditEventStore(Protocol):
    """Append-only durable storage for audit events."""

    async def append(self, event: AuditEvent) -> None:
        ...


class InMemoryAuditEventStore:
    """Audit events kept in a list, in append order."""

    def __init__(self):
        self._events: List[AuditEvent] = []

    async def append(self, event: AuditEvent) -> None:
        self._events.append(event)

    def query(self, visit_id: Optional[str] = None, event_type: Optional[str] = None) -> List[AuditEvent]:
        return [
            event
            for event in self._events
            if (visit_id is None or event.visit_id == visit_id)
            and (event_type is None or event.type == event_type)
        ]

    @property
    def events(self) -> List[AuditEvent]:
        return list(self._events)
