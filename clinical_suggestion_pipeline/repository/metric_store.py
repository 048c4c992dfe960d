"""
Metric Stores - Append-Only Usage and Longitudinal Metrics

Architecture:
    MetricRepository (Protocol)
    └── InMemoryMetricRepository
    LongitudinalRepository (Protocol)
    └── InMemoryLongitudinalRepository

Both stores are append-only. Summaries are computed from the rows on read
and never stored as mutable counters.
"""

from typing import List, Optional, Protocol, runtime_checkable

from loguru import logger

from clinical_suggestion_pipeline.core.models import LongitudinalMetric, UsageMetric


# =============================================================================
# STAGE 1: USAGE METRICS
# =============================================================================


@runtime_checkable
class MetricRepository(Protocol):
    """Append-only storage for usage metrics."""

    async def append(self, metric: UsageMetric) -> None:
        ...

    async def query_by_visit(self, visit_id: str) -> List[UsageMetric]:
        ...


class InMemoryMetricRepository:
    """Usage metrics kept in a list, in append order."""

    def __init__(self):
        self._metrics: List[UsageMetric] = []

    async def append(self, metric: UsageMetric) -> None:
        self._metrics.append(metric)
        logger.debug(f"Stored metric {metric.type} | Visit: {metric.visit_id} | Value: {metric.value}")

    async def query_by_visit(self, visit_id: str) -> List[UsageMetric]:
        return [metric for metric in self._metrics if metric.visit_id == visit_id]

    @property
    def metrics(self) -> List[UsageMetric]:
        return list(self._metrics)


# =============================================================================
# STAGE 2: LONGITUDINAL METRICS
# =============================================================================


@runtime_checkable
class LongitudinalRepository(Protocol):
    """
    Append-only storage for visit-to-visit comparisons.

    Required Methods:
        append(metric)              → Store a comparison
        query_by_patient(patient_id) → All comparisons for a patient, newest first
        get_for_visit(visit_id)      → Latest comparison for a visit, or None
    """

    async def append(self, metric: LongitudinalMetric) -> None:
        ...

    async def query_by_patient(self, patient_id: str) -> List[LongitudinalMetric]:
        ...

    async def get_for_visit(self, visit_id: str) -> Optional[LongitudinalMetric]:
        ...


class InMemoryLongitudinalRepository:
    """Longitudinal metrics kept in a list, in append order."""

    def __init__(self):
        self._metrics: List[LongitudinalMetric] = []

    async def append(self, metric: LongitudinalMetric) -> None:
        self._metrics.append(metric)
        logger.debug(
            f"Stored longitudinal metric | Visit: {metric.visit_id} | "
            f"Previous: {metric.previous_visit_id} | Risk: {metric.risk_level_summary.value}"
        )

    async def query_by_patient(self, patient_id: str) -> List[LongitudinalMetric]:
        matches = [metric for metric in self._metrics if metric.patient_id == patient_id]
        # Newest first; equal dates keep the latest append first
        return sorted(reversed(matches), key=lambda metric: metric.date, reverse=True)

    async def get_for_visit(self, visit_id: str) -> Optional[LongitudinalMetric]:
        for metric in reversed(self._metrics):
            if metric.visit_id == visit_id:
                return metric
        return None
