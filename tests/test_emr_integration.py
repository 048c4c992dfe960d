import asyncio
import gc
import json
from unittest.mock import AsyncMock

import pytest

from clinical_suggestion_pipeline.core.constants import (
    EVENT_RECORD_UPDATED,
    EVENT_SUGGESTION_INTEGRATED,
    EVENT_SUGGESTIONS_APPROVED,
    SUGGESTION_MARKER,
)
from clinical_suggestion_pipeline.core.enums import MetricType, RecordSection, SuggestionType
from clinical_suggestion_pipeline.core.exceptions import (
    MetricValidationError,
    RecordFormatError,
    VisitNotFoundError,
)
from clinical_suggestion_pipeline.core.models import AgentSuggestion, ClinicalRecord
from clinical_suggestion_pipeline.integration import EMRIntegrationEngine
from clinical_suggestion_pipeline.repository import InMemoryVisitDirectory


@pytest.fixture
def engine(record_store, audit_logger, analytics):
    return EMRIntegrationEngine(record_store, audit_logger, analytics)


class TestSectionMapping:
    @pytest.mark.parametrize(
        "suggestion_type, section",
        [
            ("recommendation", RecordSection.PLAN),
            (SuggestionType.WARNING, RecordSection.ASSESSMENT),
            ("info", RecordSection.NOTES),
            ("diagnosis", RecordSection.NOTES),
            (None, RecordSection.NOTES),
        ],
    )
    def test_mapping_is_total(self, suggestion_type, section):
        assert EMRIntegrationEngine.map_suggestion_type_to_section(suggestion_type) is section


class TestIntegrate:
    """Idempotent, append-only integration."""

    @pytest.mark.asyncio
    async def test_creates_record_with_marked_content(self, engine, recommendation, audit_logger):
        integrated = await engine.integrate(recommendation, "visit-1", "user-1", patient_id="patient-1")

        record = await engine.get_record("visit-1")
        assert integrated is True
        assert record.plan == f"{SUGGESTION_MARKER}{recommendation.content}"
        assert record.patient_id == "patient-1"
        assert len(audit_logger.get_audit_logs("visit-1", EVENT_SUGGESTION_INTEGRATED)) == 1

    @pytest.mark.asyncio
    async def test_second_integration_is_a_no_op(self, engine, recommendation, audit_logger, metric_repository):
        await engine.integrate(recommendation, "visit-1", "user-1")
        again = await engine.integrate(recommendation, "visit-1", "user-1")

        record = await engine.get_record("visit-1")
        assert again is False
        assert record.plan.count(SUGGESTION_MARKER) == 1
        assert len(audit_logger.get_audit_logs(event_type=EVENT_SUGGESTION_INTEGRATED)) == 1
        integrated = [m for m in metric_repository.metrics if m.type == MetricType.SUGGESTIONS_INTEGRATED.value]
        assert len(integrated) == 1
        assert integrated[0].details["emr_section"] == "plan"

    @pytest.mark.asyncio
    async def test_existing_section_text_is_kept(self, engine, record_store):
        await record_store.create_record(ClinicalRecord(visit_id="visit-2", assessment="Lumbalgia").to_store_row())
        warning = AgentSuggestion(id="w-1", source_block_id="b", type="warning", content="Riesgo de sangrado")

        await engine.integrate(warning, "visit-2", "user-1")

        record = await engine.get_record("visit-2")
        assert record.assessment == f"Lumbalgia\n{SUGGESTION_MARKER}Riesgo de sangrado"
        assert record_store.record_count == 1

    @pytest.mark.asyncio
    async def test_unknown_visit_raises(self, record_store, audit_logger, analytics, recommendation):
        engine = EMRIntegrationEngine(record_store, audit_logger, analytics, InMemoryVisitDirectory())

        with pytest.raises(VisitNotFoundError):
            await engine.integrate(recommendation, "ghost", "user-1")

        assert record_store.record_count == 0
        assert audit_logger.get_audit_logs() == []

    @pytest.mark.asyncio
    async def test_visit_directory_supplies_ids(self, record_store, audit_logger, analytics, recommendation):
        visits = InMemoryVisitDirectory()
        visits.add_visit("visit-3", patient_id="patient-3", professional_id="doc-3")
        engine = EMRIntegrationEngine(record_store, audit_logger, analytics, visits)

        await engine.integrate(recommendation, "visit-3", "user-1")

        record = await engine.get_record("visit-3")
        assert record.patient_id == "patient-3"
        assert record.professional_id == "doc-3"

    @pytest.mark.asyncio
    async def test_corrupt_record_raises(self, engine, record_store, recommendation):
        await record_store.create_record({"visit_id": "visit-4", "form_type": "SOAP", "content": "not-json"})

        with pytest.raises(RecordFormatError):
            await engine.integrate(recommendation, "visit-4", "user-1")

    @pytest.mark.asyncio
    async def test_failed_persist_emits_nothing(self, audit_logger, analytics, metric_repository, recommendation):
        store = AsyncMock()
        store.get_records_by_visit.return_value = []
        store.create_record.side_effect = IOError("database unavailable")
        engine = EMRIntegrationEngine(store, audit_logger, analytics)

        with pytest.raises(IOError):
            await engine.integrate(recommendation, "visit-5", "user-1")

        assert audit_logger.get_audit_logs() == []
        assert metric_repository.metrics == []

    @pytest.mark.asyncio
    async def test_blank_user_writes_nothing(
        self, engine, record_store, audit_logger, metric_repository, recommendation
    ):
        with pytest.raises(MetricValidationError):
            await engine.integrate(recommendation, "visit-1", "")

        assert record_store.record_count == 0
        assert audit_logger.get_audit_logs() == []
        assert metric_repository.metrics == []

        retried = await engine.integrate(recommendation, "visit-1", "user-1")

        assert retried is True
        assert [m.type for m in metric_repository.metrics] == [MetricType.SUGGESTIONS_INTEGRATED.value]

    @pytest.mark.asyncio
    async def test_blank_visit_on_insert_writes_nothing(self, engine, record_store, audit_logger):
        with pytest.raises(MetricValidationError):
            await engine.insert_suggested_content("", RecordSection.PLAN, "Reposo", "user-1")

        assert record_store.record_count == 0
        assert audit_logger.get_audit_logs() == []

    @pytest.mark.asyncio
    async def test_prefers_soap_record(self, engine, record_store):
        await record_store.create_record({"visit_id": "visit-6", "form_type": "OTHER", "content": "{}"})
        await record_store.create_record(
            {"visit_id": "visit-6", "form_type": "SOAP", "content": json.dumps({"plan": "Reposo"})}
        )

        assert await engine.get_section_content("visit-6", RecordSection.PLAN) == "Reposo"


class TestInsertAndSave:
    """Explicit-section insertion and full record saves."""

    @pytest.mark.asyncio
    async def test_insert_suggested_content(self, engine, audit_logger, metric_repository):
        first = await engine.insert_suggested_content(
            "visit-1", RecordSection.SUBJECTIVE, "Dolor 7/10", "user-1", suggestion_id="s-9"
        )
        second = await engine.insert_suggested_content("visit-1", "subjective", "Dolor 7/10", "user-1")

        assert (first, second) == (True, False)
        assert await engine.get_section_content("visit-1", RecordSection.SUBJECTIVE) == f"{SUGGESTION_MARKER}Dolor 7/10"

        approved = audit_logger.get_audit_logs("visit-1", EVENT_SUGGESTIONS_APPROVED)
        assert len(approved) == 1
        assert approved[0].metadata["field"] == "subjective"
        assert approved[0].metadata["source"] == "agent"
        assert [m.type for m in metric_repository.metrics] == [MetricType.SUGGESTION_FIELD_MATCHED.value]

    @pytest.mark.asyncio
    async def test_save_record_creates_then_updates(self, engine, record_store, audit_logger):
        record = ClinicalRecord(visit_id="visit-8", patient_id="p-8", objective="TA 150/95")

        saved = await engine.save_record(record, "user-1")
        saved.plan = "Control en 2 semanas"
        await engine.save_record(saved, "user-1")

        stored = await engine.get_record("visit-8")
        assert record_store.record_count == 1
        assert stored.plan == "Control en 2 semanas"
        assert stored.objective == "TA 150/95"
        events = audit_logger.get_audit_logs("visit-8", EVENT_RECORD_UPDATED)
        assert len(events) == 2
        assert events[0].metadata["form_type"] == "SOAP"


class TestConcurrency:
    """Per-visit serialization of read-modify-write."""

    @staticmethod
    def _yielding_reads(record_store):
        read = record_store.get_records_by_visit

        async def get_records_by_visit(visit_id):
            await asyncio.sleep(0)
            return await read(visit_id)

        record_store.get_records_by_visit = get_records_by_visit

    @pytest.mark.asyncio
    async def test_concurrent_integrations_append_once(
        self, engine, record_store, audit_logger, metric_repository, recommendation
    ):
        self._yielding_reads(record_store)

        results = await asyncio.gather(*(engine.integrate(recommendation, "visit-1", "user-1") for _ in range(5)))

        record = await engine.get_record("visit-1")
        assert sorted(results) == [False, False, False, False, True]
        assert record.plan.count(SUGGESTION_MARKER) == 1
        assert record_store.record_count == 1
        assert len(audit_logger.get_audit_logs("visit-1", EVENT_SUGGESTION_INTEGRATED)) == 1
        assert len(metric_repository.metrics) == 1

    @pytest.mark.asyncio
    async def test_concurrent_sections_on_one_visit_all_land(self, engine, record_store, recommendation):
        self._yielding_reads(record_store)
        warning = AgentSuggestion(id="w-1", source_block_id="b", type="warning", content="Riesgo de sangrado")

        await asyncio.gather(
            engine.integrate(recommendation, "visit-1", "user-1"),
            engine.integrate(warning, "visit-1", "user-1"),
        )

        record = await engine.get_record("visit-1")
        assert record.plan == f"{SUGGESTION_MARKER}{recommendation.content}"
        assert record.assessment == f"{SUGGESTION_MARKER}Riesgo de sangrado"
        assert record_store.record_count == 1

    @pytest.mark.asyncio
    async def test_visit_locks_are_released(self, engine, recommendation):
        for index in range(3):
            await engine.integrate(recommendation, f"visit-{index}", "user-1")
        gc.collect()

        assert len(engine._visit_locks) == 0
