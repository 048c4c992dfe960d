from typing import Any, Dict

import pytest

from clinical_suggestion_pipeline.audit import AuditLogger, UsageAnalyticsService
from clinical_suggestion_pipeline.core.models import AgentSuggestion, ContextOrigin
from clinical_suggestion_pipeline.repository import (
    InMemoryLongitudinalRepository,
    InMemoryMetricRepository,
    InMemoryRecordStore,
)


@pytest.fixture()
def memory_context() -> Dict[str, Any]:
    """A visit with low back pain, hypertension history and NSAID knowledge."""
    return {
        "contextual": [
            {
                "id": "ctx-1",
                "content": "Paciente refiere dolor lumbar de 3 días de evolución",
                "visit_id": "visit-1",
                "patient_id": "patient-1",
            }
        ],
        "persistent": [
            {"id": "per-1", "content": "Antecedentes de hipertensión arterial", "patient_id": "patient-1"}
        ],
        "semantic": [
            {"id": "sem-1", "content": "AINEs aumentan el riesgo de sangrado digestivo"}
        ],
    }


@pytest.fixture()
def metric_repository() -> InMemoryMetricRepository:
    return InMemoryMetricRepository()


@pytest.fixture()
def analytics(metric_repository) -> UsageAnalyticsService:
    return UsageAnalyticsService(metric_repository, InMemoryLongitudinalRepository())


@pytest.fixture()
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest.fixture()
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture()
def recommendation() -> AgentSuggestion:
    return AgentSuggestion(
        id="sug-1",
        source_block_id="ctx-1",
        type="recommendation",
        content="Utilizar escala EVA para valoración del dolor",
        context_origin=ContextOrigin(source_block="ctx-1", text="Utilizar escala EVA para valor..."),
        source="llm",
    )
