"""
Repository Layer - Storage Boundaries

This layer defines the narrow async interfaces through which the pipeline
reaches its external stores, plus in-memory implementations. The repository
pattern:
    1. Hides storage transport details
    2. Provides one consistent async interface per concern
    3. Makes every store replaceable in tests

Submodules:
    memory_store.py   → MemoryStore (memory blocks by visit and tier)
    record_store.py   → RecordStore, VisitDirectory (clinical records)
    metric_store.py   → MetricRepository, LongitudinalRepository
    audit_store.py    → AuditEventStore (durable audit trail)
    feedback_store.py → FeedbackStore (reviewer feedback)

Dependency Rule:
    This layer depends on: core (models, enums)
    This layer is used by: context, integration, audit, pipeline
"""

from clinical_suggestion_pipeline.repository.memory_store import (
    MemoryStore,
    InMemoryMemoryStore,
)
from clinical_suggestion_pipeline.repository.record_store import (
    RecordStore,
    VisitDirectory,
    InMemoryRecordStore,
    InMemoryVisitDirectory,
)
from clinical_suggestion_pipeline.repository.metric_store import (
    MetricRepository,
    LongitudinalRepository,
    InMemoryMetricRepository,
    InMemoryLongitudinalRepository,
)
from clinical_suggestion_pipeline.repository.audit_store import (
    AuditEventStore,
    InMemoryAuditEventStore,
)
from clinical_suggestion_pipeline.repository.feedback_store import (
    FeedbackStore,
    InMemoryFeedbackStore,
)

__all__ = [
    "MemoryStore",
    "InMemoryMemoryStore",
    "RecordStore",
    "VisitDirectory",
    "InMemoryRecordStore",
    "InMemoryVisitDirectory",
    "MetricRepository",
    "LongitudinalRepository",
    "InMemoryMetricRepository",
    "InMemoryLongitudinalRepository",
    "AuditEventStore",
    "InMemoryAuditEventStore",
    "FeedbackStore",
    "InMemoryFeedbackStore",
]
