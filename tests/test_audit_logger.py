from unittest.mock import AsyncMock

import pytest

from clinical_suggestion_pipeline.audit import AuditLogger
from clinical_suggestion_pipeline.core.constants import EVENT_BLOCK_UPDATED, EVENT_SUGGESTION_INTEGRATED
from clinical_suggestion_pipeline.core.enums import MemoryTier, RecordSection
from clinical_suggestion_pipeline.core.exceptions import ConfigurationError
from clinical_suggestion_pipeline.core.models import MemoryBlock
from clinical_suggestion_pipeline.repository import InMemoryAuditEventStore


class TestInProcessLog:
    """The synchronous, never-raising path."""

    def test_log_reads_ids_from_payload(self, audit_logger):
        event = audit_logger.log("custom.event", {"visit_id": "v1", "user_id": "u1", "extra": 3})

        assert event.visit_id == "v1"
        assert event.user_id == "u1"
        assert event.metadata["extra"] == 3

    def test_unserializable_payload_is_contained(self, audit_logger):
        assert audit_logger.log("bad.event", ["not", "a", "mapping"]) is None
        assert audit_logger.get_audit_logs() == []

    def test_filters(self, audit_logger):
        audit_logger.log("a", {"visit_id": "v1"})
        audit_logger.log("b", {"visit_id": "v1"})
        audit_logger.log("a", {"visit_id": "v2"})

        assert len(audit_logger.get_audit_logs(visit_id="v1")) == 2
        assert len(audit_logger.get_audit_logs(event_type="a")) == 2
        assert len(audit_logger.get_audit_logs(visit_id="v2", event_type="b")) == 0

    def test_suggestion_integration_payload(self, audit_logger, recommendation):
        event = audit_logger.log_suggestion_integration(recommendation, "v1", "u1", RecordSection.PLAN)

        assert event.type == EVENT_SUGGESTION_INTEGRATED
        assert event.metadata["section"] == "plan"
        assert event.metadata["suggestion_id"] == "sug-1"
        assert event.metadata["suggestion_type"] == "recommendation"

    def test_block_updates_only_for_changed_blocks(self, audit_logger):
        original = [
            MemoryBlock(id="b1", tier=MemoryTier.CONTEXTUAL, content="Dolor 5/10"),
            MemoryBlock(id="b2", tier=MemoryTier.PERSISTENT, content="HTA"),
        ]
        updated = [
            MemoryBlock(id="b1", tier=MemoryTier.CONTEXTUAL, content="Dolor 7/10"),
            MemoryBlock(id="b2", tier=MemoryTier.PERSISTENT, content="HTA"),
            MemoryBlock(id="b3", tier=MemoryTier.SEMANTIC, content="new"),
        ]

        events = audit_logger.log_block_updates(original, updated, "u1", "v1")

        assert len(events) == 1
        assert events[0].type == EVENT_BLOCK_UPDATED
        assert events[0].metadata["old_content"] == "Dolor 5/10"
        assert events[0].metadata["new_content"] == "Dolor 7/10"
        assert events[0].metadata["block_type"] == "contextual"


class TestDurableLog:
    """The async path backed by an AuditEventStore."""

    @pytest.mark.asyncio
    async def test_log_event_persists(self):
        store = InMemoryAuditEventStore()
        audit = AuditLogger(store)

        event = await audit.log_event("record.exported", "u1", {"format": "pdf"}, visit_id="v1")

        assert store.query(visit_id="v1") == [event]
        assert audit.get_audit_logs("v1") == [event]

    @pytest.mark.asyncio
    async def test_log_event_without_store(self):
        with pytest.raises(ConfigurationError):
            await AuditLogger().log_event("record.exported", "u1")

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self):
        store = AsyncMock()
        store.append.side_effect = RuntimeError("write failed")
        audit = AuditLogger(store)

        with pytest.raises(RuntimeError):
            await audit.log_event("record.exported", "u1")

        assert audit.get_audit_logs() == []
