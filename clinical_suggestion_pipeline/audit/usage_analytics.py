"""
Usage Analytics Service - Metrics, Summaries, Longitudinal Comparisons

This module records append-only usage metrics and derives per-visit
summaries and visit-to-visit comparisons from them.

Summary Mapping (sum of `value` per metric type):
    suggestions_generated    → generated
    suggestions_accepted     → accepted
    suggestions_integrated   → integrated
    suggestion_field_matched → field_matched
    warnings_generated       → warnings
    estimated_time_saved_minutes is summed over ALL of the visit's metrics

Usage:
    from clinical_suggestion_pipeline.audit import UsageAnalyticsService

    analytics = UsageAnalyticsService()
    await analytics.track(MetricType.SUGGESTIONS_GENERATED, "u1", "v1", value=3)
    summary = await analytics.get_metrics_summary_by_visit("v1")
"""

from typing import Any, Dict, List, Optional, Union

from loguru import logger

from clinical_suggestion_pipeline.audit.longitudinal import (
    calculate_clinical_evolution,
    compute_risk_level,
    evolution_indicator,
)
from clinical_suggestion_pipeline.core.enums import ClinicalEvolution, MetricType
from clinical_suggestion_pipeline.core.exceptions import MetricValidationError
from clinical_suggestion_pipeline.core.models import (
    LongitudinalMetric,
    MetricsSummary,
    UsageMetric,
    utc_now,
)
from clinical_suggestion_pipeline.repository.metric_store import (
    InMemoryLongitudinalRepository,
    InMemoryMetricRepository,
    LongitudinalRepository,
    MetricRepository,
)


# =============================================================================
# STAGE 1: CONSTANTS
# =============================================================================

REQUIRED_METRIC_FIELDS = ("timestamp", "visit_id", "user_id", "type", "value")

SUMMARY_FIELD_BY_METRIC_TYPE: Dict[str, str] = {
    MetricType.SUGGESTIONS_GENERATED.value: "generated",
    MetricType.SUGGESTIONS_ACCEPTED.value: "accepted",
    MetricType.SUGGESTIONS_INTEGRATED.value: "integrated",
    MetricType.SUGGESTION_FIELD_MATCHED.value: "field_matched",
    MetricType.WARNINGS_GENERATED.value: "warnings",
}


# =============================================================================
# STAGE 2: USAGE ANALYTICS SERVICE
# =============================================================================


class UsageAnalyticsService:
    """
    Records usage metrics and computes summaries and longitudinal metrics.

    What it does:
        Validates and appends metrics, reduces a visit's metrics into a
        MetricsSummary and compares two visits into a LongitudinalMetric.

    Why it exists:
        1. Summaries are always derived, never stored as mutable counters
        2. Risk scoring is deterministic and auditable via `details`
        3. No fallback data is ever fabricated when a metric is missing

    Errors:
        MetricValidationError for incomplete metrics. Repository errors
        propagate unmodified.
    """

    def __init__(
        self,
        repository: Optional[MetricRepository] = None,
        longitudinal_repository: Optional[LongitudinalRepository] = None,
    ):
        """
        Args:
            repository: Usage metric store (in-memory if omitted)
            longitudinal_repository: Longitudinal metric store (in-memory if omitted)
        """
        self._repository = repository if repository is not None else InMemoryMetricRepository()
        self._longitudinal = (
            longitudinal_repository
            if longitudinal_repository is not None
            else InMemoryLongitudinalRepository()
        )

    # =========================================================================
    # STAGE 3: RECORDING
    # =========================================================================

    @staticmethod
    def validate_metric(metric: UsageMetric) -> None:
        """
        Raises:
            MetricValidationError: If a required field is missing
        """
        missing = [name for name in REQUIRED_METRIC_FIELDS if getattr(metric, name) in (None, "")]
        if missing:
            raise MetricValidationError(missing)

    def build_metric(
        self,
        metric_type: Union[MetricType, str],
        user_id: str,
        visit_id: str,
        value: float = 1,
        details: Optional[Dict[str, Any]] = None,
        estimated_time_saved_minutes: Optional[float] = None,
    ) -> UsageMetric:
        """
        Build and validate a metric without storing it.

        Callers that must not write anything when the metric would be
        rejected build it first and hand it to `log_metric` afterwards.

        Raises:
            MetricValidationError: If a required field is missing
        """
        type_value = metric_type.value if isinstance(metric_type, MetricType) else metric_type

        metric = UsageMetric(
            type=type_value,
            user_id=user_id,
            visit_id=visit_id,
            value=value,
            estimated_time_saved_minutes=estimated_time_saved_minutes,
            details=dict(details or {}),
        )
        self.validate_metric(metric)
        return metric

    async def log_metric(self, metric: UsageMetric) -> None:
        """
        Validate and append a usage metric.

        Raises:
            MetricValidationError: If a required field is missing
        """
        self.validate_metric(metric)

        await self._repository.append(metric)
        logger.debug(f"Logged metric {metric.type} | Visit: {metric.visit_id} | Value: {metric.value}")

    async def track(
        self,
        metric_type: Union[MetricType, str],
        user_id: str,
        visit_id: str,
        value: float = 1,
        details: Optional[Dict[str, Any]] = None,
        estimated_time_saved_minutes: Optional[float] = None,
    ) -> UsageMetric:
        """Build a metric stamped with the current time and log it."""
        metric = self.build_metric(
            metric_type,
            user_id,
            visit_id,
            value=value,
            details=details,
            estimated_time_saved_minutes=estimated_time_saved_minutes,
        )
        await self.log_metric(metric)
        return metric

    # =========================================================================
    # STAGE 4: PER-VISIT QUERIES
    # =========================================================================

    async def get_metrics_by_visit(self, visit_id: str) -> List[UsageMetric]:
        if not visit_id or not visit_id.strip():
            return []
        return await self._repository.query_by_visit(visit_id)

    async def get_metrics_summary_by_visit(self, visit_id: str) -> MetricsSummary:
        """
        Reduce a visit's metrics into a MetricsSummary.

        Example:
            Two `suggestions_generated` metrics with values 3 and 2 give
            `generated == 5`.
        """
        summary = MetricsSummary()

        for metric in await self.get_metrics_by_visit(visit_id):
            field_name = SUMMARY_FIELD_BY_METRIC_TYPE.get(metric.type)
            if field_name:
                setattr(summary, field_name, getattr(summary, field_name) + metric.value)
            if metric.estimated_time_saved_minutes:
                summary.estimated_time_saved_minutes += metric.estimated_time_saved_minutes

        return summary

    # =========================================================================
    # STAGE 5: LONGITUDINAL METRICS
    # =========================================================================

    async def calculate_longitudinal_metrics(
        self,
        current_visit_id: str,
        previous_visit_id: str,
        patient_id: str,
        user_id: str,
        fields_changed: int = 0,
        audio_items_validated: int = 0,
        clinical_evolution: ClinicalEvolution = ClinicalEvolution.STABLE,
        notes: Optional[str] = None,
    ) -> LongitudinalMetric:
        """
        Compare two visits and append the result to the longitudinal store.

        STAGE 5.1: Summarize both visits
        STAGE 5.2: Derive the risk level
        STAGE 5.3: Store both summaries verbatim under `details`

        Returns:
            The stored LongitudinalMetric
        """
        current = await self.get_metrics_summary_by_visit(current_visit_id)
        previous = await self.get_metrics_summary_by_visit(previous_visit_id)

        risk_level = compute_risk_level(current, previous)
        comparison_date = utc_now().isoformat()

        metric = LongitudinalMetric(
            visit_id=current_visit_id,
            previous_visit_id=previous_visit_id,
            patient_id=patient_id,
            user_id=user_id,
            date=comparison_date,
            fields_changed=fields_changed,
            suggestions_generated=current.generated,
            suggestions_accepted=current.accepted,
            suggestions_integrated=current.integrated,
            audio_items_validated=audio_items_validated,
            time_saved_minutes=current.estimated_time_saved_minutes,
            risk_level_summary=risk_level,
            clinical_evolution=ClinicalEvolution(clinical_evolution),
            notes=notes,
            details={
                "previous_metrics": previous.to_dict(),
                "current_metrics": current.to_dict(),
                "comparison_date": comparison_date,
            },
        )
        await self._longitudinal.append(metric)

        logger.info(
            f"Longitudinal metric stored | Visit: {current_visit_id} | "
            f"Previous: {previous_visit_id} | Risk: {risk_level.value} | "
            f"Evolution: {metric.clinical_evolution.value}"
        )
        return metric

    async def get_longitudinal_metrics_by_patient(self, patient_id: str) -> List[LongitudinalMetric]:
        """All comparisons for a patient, newest first."""
        return await self._longitudinal.query_by_patient(patient_id)

    async def get_longitudinal_metric_for_visit(self, visit_id: str) -> Optional[LongitudinalMetric]:
        """The comparison stored for a visit, or None when there is none."""
        return await self._longitudinal.get_for_visit(visit_id)

    # Pure helpers exposed on the service for callers that only hold it
    calculate_clinical_evolution = staticmethod(calculate_clinical_evolution)
    evolution_indicator = staticmethod(evolution_indicator)
