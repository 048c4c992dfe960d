"""
EMR Integration Engine - Merging Suggestions into Clinical Records

This module merges accepted suggestions into a visit's structured clinical
record (SOAP form). Integration is:
    1. Idempotent: integrated content carries the "🔎 " marker and is never
       appended twice to the same section
    2. Append-only: existing section text is never overwritten
    3. Audited: audit event and metric are emitted only after a successful persist

Section Mapping:
    recommendation → plan
    warning        → assessment
    info           → notes
    anything else  → notes

Pipeline Position:
    Reviewer accepts → [EMRIntegrationEngine] → RecordStore + Audit + Metrics
                        ^^^^^^^^^^^^^^^^^^^^
                        You are here

Usage:
    from clinical_suggestion_pipeline.integration import EMRIntegrationEngine

    engine = EMRIntegrationEngine(record_store, audit_logger, analytics)
    integrated = await engine.integrate(suggestion, "visit-1", "user-1")
"""

import asyncio
import weakref
from typing import Optional, Union

from loguru import logger

from clinical_suggestion_pipeline.audit.audit_logger import AuditLogger
from clinical_suggestion_pipeline.audit.usage_analytics import UsageAnalyticsService
from clinical_suggestion_pipeline.core.constants import (
    DEFAULT_RECORD_SECTION,
    EVENT_RECORD_UPDATED,
    EVENT_SUGGESTIONS_APPROVED,
    RECORD_FORM_TYPE,
    SECTION_BY_SUGGESTION_TYPE,
    SUGGESTION_MARKER,
)
from clinical_suggestion_pipeline.core.enums import MetricType, RecordSection, SuggestionType
from clinical_suggestion_pipeline.core.exceptions import VisitNotFoundError
from clinical_suggestion_pipeline.core.models import AgentSuggestion, ClinicalRecord, utc_now
from clinical_suggestion_pipeline.repository.record_store import RecordStore, VisitDirectory


class EMRIntegrationEngine:
    """
    Integrates suggestions into clinical records.

    What it does:
        Maps a suggestion to a record section, appends the marked content
        unless it is already there, persists the record and then records
        one audit event and one usage metric.

    Why it exists:
        1. Reviewers can accept the same suggestion twice without
           duplicating record content
        2. Audit and metrics never claim a write that did not happen
        3. Integrations for one visit never interleave inside a process

    Errors:
        - VisitNotFoundError: a visit directory is configured and does not
          know the visit whose first record is being created
        - RecordFormatError: the stored record content is unreadable
        - Store errors propagate unmodified (no audit, no metric)

    Example:
        >>> engine = EMRIntegrationEngine(InMemoryRecordStore(), AuditLogger(), UsageAnalyticsService())
        >>> await engine.integrate(suggestion, "visit-1", "user-1")
        True
        >>> await engine.integrate(suggestion, "visit-1", "user-1")
        False
    """

    def __init__(
        self,
        record_store: RecordStore,
        audit_logger: AuditLogger,
        analytics: UsageAnalyticsService,
        visit_directory: Optional[VisitDirectory] = None,
    ):
        """
        Args:
            record_store: Clinical record persistence
            audit_logger: Audit trail for integration events
            analytics: Usage metric recorder
            visit_directory: Optional visit lookup used before a first record
                is created
        """
        self._record_store = record_store
        self._audit = audit_logger
        self._analytics = analytics
        self._visit_directory = visit_directory
        # Entries disappear once no coroutine holds or awaits the lock
        self._visit_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    # =========================================================================
    # STAGE 1: SECTION MAPPING
    # =========================================================================

    @staticmethod
    def map_suggestion_type_to_section(suggestion_type: Union[SuggestionType, str, None]) -> RecordSection:
        """Total, pure mapping from a suggestion type to a record section."""
        if isinstance(suggestion_type, SuggestionType):
            suggestion_type = suggestion_type.value
        if not isinstance(suggestion_type, str):
            return DEFAULT_RECORD_SECTION
        return SECTION_BY_SUGGESTION_TYPE.get(suggestion_type, DEFAULT_RECORD_SECTION)

    # =========================================================================
    # STAGE 2: RECORD ACCESS
    # =========================================================================

    async def get_record(self, visit_id: str) -> Optional[ClinicalRecord]:
        """
        The visit's SOAP record, else its first record, else None.

        Raises:
            RecordFormatError: If the chosen record's content is unreadable
        """
        rows = await self._record_store.get_records_by_visit(visit_id)
        if not rows:
            return None

        row = next((r for r in rows if r.get("form_type") == RECORD_FORM_TYPE), rows[0])
        return ClinicalRecord.from_store_row(row)

    async def get_section_content(self, visit_id: str, section: RecordSection) -> str:
        record = await self.get_record(visit_id)
        return record.get_section(section) if record else ""

    async def save_record(self, record: ClinicalRecord, user_id: str) -> ClinicalRecord:
        """Persist a full record and audit the update."""
        async with self._visit_lock(record.visit_id):
            saved = await self._persist(record)

        self._audit.log(
            EVENT_RECORD_UPDATED,
            {
                "visit_id": saved.visit_id,
                "user_id": user_id,
                "patient_id": saved.patient_id,
                "form_type": RECORD_FORM_TYPE,
            },
        )
        return saved

    # =========================================================================
    # STAGE 3: INTEGRATION
    # =========================================================================

    async def integrate(
        self,
        suggestion: AgentSuggestion,
        visit_id: str,
        user_id: str,
        patient_id: str = "",
    ) -> bool:
        """
        Integrate a suggestion into the visit's record.

        STAGE 3.1: Map type → section and build the integration metric
        STAGE 3.2: Load (or start) the record; skip if already integrated
        STAGE 3.3: Append and persist
        STAGE 3.4: Audit event, then store the metric

        Args:
            suggestion: Suggestion to integrate
            visit_id: Visit whose record receives the content
            user_id: Reviewer performing the integration
            patient_id: Patient id used when a new record is created

        Returns:
            True if content was appended, False if it was already present

        Raises:
            MetricValidationError: Blank user_id or visit_id (nothing is written)
        """
        section = self.map_suggestion_type_to_section(suggestion.type)
        prefixed = f"{SUGGESTION_MARKER}{suggestion.content}"
        metric = self._analytics.build_metric(
            MetricType.SUGGESTIONS_INTEGRATED,
            user_id,
            visit_id,
            value=1,
            details={
                "suggestion_id": suggestion.id,
                "suggestion_type": suggestion.type,
                "emr_section": section.value,
            },
        )

        async with self._visit_lock(visit_id):
            record = await self._load_or_start_record(visit_id, patient_id)

            if prefixed in record.get_section(section):
                logger.debug(
                    f"Suggestion {suggestion.id} already integrated | Visit: {visit_id} | "
                    f"Section: {section.value}"
                )
                return False

            record.append_to_section(section, prefixed)
            await self._persist(record)

            self._audit.log_suggestion_integration(suggestion, visit_id, user_id, section)
            await self._analytics.log_metric(metric)

        logger.info(f"Integrated suggestion {suggestion.id} | Visit: {visit_id} | Section: {section.value}")
        return True

    async def insert_suggested_content(
        self,
        visit_id: str,
        section: RecordSection,
        content: str,
        user_id: str,
        source: str = "agent",
        suggestion_id: Optional[str] = None,
    ) -> bool:
        """
        Insert content into an explicit section (field-bearing suggestions).

        Same marker and idempotence rules as `integrate`. Logs
        `suggestions.approved` and tracks `suggestion_field_matched`.

        Returns:
            True if content was appended, False if it was already present
        """
        section = RecordSection(section)
        prefixed = f"{SUGGESTION_MARKER}{content}"
        metric = self._analytics.build_metric(
            MetricType.SUGGESTION_FIELD_MATCHED,
            user_id,
            visit_id,
            value=1,
            details={"suggestion_id": suggestion_id, "emr_section": section.value, "source": source},
        )

        async with self._visit_lock(visit_id):
            record = await self._load_or_start_record(visit_id, "")

            if prefixed in record.get_section(section):
                return False

            record.append_to_section(section, prefixed)
            await self._persist(record)

            self._audit.log(
                EVENT_SUGGESTIONS_APPROVED,
                {
                    "visit_id": visit_id,
                    "user_id": user_id,
                    "field": section.value,
                    "content": content,
                    "source": source,
                    "suggestion_id": suggestion_id,
                    "timestamp": utc_now().isoformat(),
                },
            )
            await self._analytics.log_metric(metric)

        logger.info(f"Inserted suggested content | Visit: {visit_id} | Section: {section.value}")
        return True

    # =========================================================================
    # STAGE 4: INTERNALS
    # =========================================================================

    def _visit_lock(self, visit_id: str) -> asyncio.Lock:
        lock = self._visit_locks.get(visit_id)
        if lock is None:
            lock = asyncio.Lock()
            self._visit_locks[visit_id] = lock
        return lock

    async def _load_or_start_record(self, visit_id: str, patient_id: str) -> ClinicalRecord:
        """
        Existing record, or a new unsaved one with empty sections.

        Raises:
            VisitNotFoundError: If the visit directory does not know the visit
        """
        record = await self.get_record(visit_id)
        if record is not None:
            return record

        professional_id = ""
        if self._visit_directory is not None:
            visit = await self._visit_directory.get_visit(visit_id)
            if visit is None:
                raise VisitNotFoundError(visit_id)
            professional_id = visit.get("professional_id") or ""
            patient_id = patient_id or visit.get("patient_id") or ""

        logger.debug(f"Starting new clinical record | Visit: {visit_id}")
        return ClinicalRecord(visit_id=visit_id, patient_id=patient_id, professional_id=professional_id)

    async def _persist(self, record: ClinicalRecord) -> ClinicalRecord:
        """update_record when the record has an id, create_record otherwise."""
        record.updated_at = utc_now().isoformat()

        if record.id:
            row = await self._record_store.update_record(record.id, record.to_store_row())
        else:
            row = await self._record_store.create_record(record.to_store_row())
            record.id = row.get("id")
            record.created_at = row.get("created_at")

        record.updated_at = row.get("updated_at") or record.updated_at
        return record
