"""
Audit Logger - Append-Only Audit Trail

This module records what happened to suggestions and records, and who did
it. Two write paths exist:

    log(type, payload)                 → in-process, synchronous, never raises
    log_event(type, user_id, metadata) → durable, async, may raise

The in-process log keeps every event from both paths, so `get_audit_logs`
always sees the full trail of this process.

Usage:
    from clinical_suggestion_pipeline.audit import AuditLogger

    audit = AuditLogger()
    audit.log("suggestion_integrated", {"visit_id": "v1", "user_id": "u1"})
"""

from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from clinical_suggestion_pipeline.core.constants import (
    EVENT_BLOCK_UPDATED,
    EVENT_SUGGESTION_INTEGRATED,
)
from clinical_suggestion_pipeline.core.enums import RecordSection
from clinical_suggestion_pipeline.core.exceptions import ConfigurationError
from clinical_suggestion_pipeline.core.models import AgentSuggestion, AuditEvent, MemoryBlock, utc_now
from clinical_suggestion_pipeline.repository.audit_store import AuditEventStore


class AuditLogger:
    """
    Append-only audit log with an optional durable store.

    What it does:
        Keeps every event in memory and, through `log_event`, also persists
        events to an AuditEventStore.

    Why it exists:
        1. The audit log is the source of truth for "did X happen"
        2. Audit failures on the synchronous path must never break the
           operation being audited
        3. Durable writes stay explicit so their errors can be handled

    Example:
        >>> audit = AuditLogger()
        >>> event = audit.log("suggestion_integrated", {"user_id": "u1", "visit_id": "v1"})
        >>> event.visit_id
        'v1'
    """

    def __init__(self, durable_store: Optional[AuditEventStore] = None):
        self._events: List[AuditEvent] = []
        self._durable_store = durable_store

    # =========================================================================
    # STAGE 1: WRITE PATHS
    # =========================================================================

    def log(self, event_type: str, payload: Optional[Dict[str, Any]] = None) -> Optional[AuditEvent]:
        """
        Record an event in the in-process log.

        `user_id` and `visit_id` are read from the payload; the whole payload
        is kept as the event's metadata.

        Returns:
            The recorded event, or None if recording failed (never raises)
        """
        try:
            metadata = dict(payload or {})
            event = AuditEvent(
                type=event_type,
                user_id=str(metadata.get("user_id") or ""),
                visit_id=metadata.get("visit_id"),
                metadata=metadata,
            )
            self._events.append(event)
        except Exception as e:
            logger.error(f"Failed to record audit event {event_type} | {e}")
            return None

        logger.debug(f"Audit event {event_type} | Visit: {event.visit_id or '-'} | User: {event.user_id or '-'}")
        return event

    async def log_event(
        self,
        event_type: str,
        user_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        visit_id: Optional[str] = None,
    ) -> AuditEvent:
        """
        Persist an event to the durable store.

        Raises:
            ConfigurationError: If no durable store was configured
            Exception: Anything the store raises, unmodified
        """
        if self._durable_store is None:
            raise ConfigurationError(
                "Durable audit logging requires an audit event store",
                context={"event_type": event_type},
            )

        event = AuditEvent(
            type=event_type,
            user_id=user_id,
            visit_id=visit_id,
            metadata=dict(metadata or {}),
        )
        await self._durable_store.append(event)
        self._events.append(event)

        logger.info(f"Persisted audit event {event_type} | Visit: {visit_id or '-'} | User: {user_id}")
        return event

    # =========================================================================
    # STAGE 2: DOMAIN HELPERS
    # =========================================================================

    def log_suggestion_integration(
        self,
        suggestion: AgentSuggestion,
        visit_id: str,
        user_id: str,
        section: RecordSection,
    ) -> Optional[AuditEvent]:
        """Record that a suggestion was merged into a record section."""
        return self.log(
            EVENT_SUGGESTION_INTEGRATED,
            {
                "visit_id": visit_id,
                "user_id": user_id,
                "suggestion_id": suggestion.id,
                "suggestion_type": suggestion.type,
                "section": RecordSection(section).value,
                "content": suggestion.content,
                "timestamp": utc_now().isoformat(),
            },
        )

    def log_block_updates(
        self,
        original_blocks: Iterable[MemoryBlock],
        updated_blocks: Iterable[MemoryBlock],
        user_id: str,
        visit_id: str,
    ) -> List[AuditEvent]:
        """
        Record one `memory_block.updated` event per block whose content changed.

        Blocks that are unchanged, or that have no original counterpart, are
        ignored.
        """
        originals = {block.id: block for block in original_blocks}
        events: List[AuditEvent] = []

        for updated in updated_blocks:
            original = originals.get(updated.id)
            if original is None or original.content == updated.content:
                continue

            event = self.log(
                EVENT_BLOCK_UPDATED,
                {
                    "visit_id": visit_id,
                    "user_id": user_id,
                    "block_id": updated.id,
                    "block_type": updated.tier.value,
                    "operation": "update",
                    "old_content": original.content,
                    "new_content": updated.content,
                },
            )
            if event is not None:
                events.append(event)

        return events

    # =========================================================================
    # STAGE 3: QUERIES
    # =========================================================================

    def get_audit_logs(
        self, visit_id: Optional[str] = None, event_type: Optional[str] = None
    ) -> List[AuditEvent]:
        """Events in recording order, optionally filtered by visit and type."""
        return [
            event
            for event in self._events
            if (visit_id is None or event.visit_id == visit_id)
            and (event_type is None or event.type == event_type)
        ]
