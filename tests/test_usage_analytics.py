import pytest

from clinical_suggestion_pipeline.audit import UsageAnalyticsService
from clinical_suggestion_pipeline.audit.longitudinal import (
    calculate_clinical_evolution,
    compute_risk_level,
    evolution_indicator,
)
from clinical_suggestion_pipeline.core.enums import ClinicalEvolution, MetricType, RiskLevel
from clinical_suggestion_pipeline.core.exceptions import MetricValidationError
from clinical_suggestion_pipeline.core.models import MetricsSummary, UsageMetric


class TestMetricRecording:
    """Append-only metrics and per-visit summaries."""

    @pytest.mark.asyncio
    async def test_summary_sums_values(self, analytics):
        await analytics.track(MetricType.SUGGESTIONS_GENERATED, "u1", "v1", value=3, estimated_time_saved_minutes=9)
        await analytics.track(MetricType.SUGGESTIONS_GENERATED, "u1", "v1", value=2, estimated_time_saved_minutes=6)
        await analytics.track(MetricType.SUGGESTIONS_ACCEPTED, "u1", "v1")
        await analytics.track(MetricType.WARNINGS_GENERATED, "u1", "v1", value=1)
        await analytics.track(MetricType.SUGGESTIONS_GENERATED, "u1", "other", value=7)

        summary = await analytics.get_metrics_summary_by_visit("v1")

        assert summary.generated == 5
        assert summary.accepted == 1
        assert summary.warnings == 1
        assert summary.estimated_time_saved_minutes == 15

    @pytest.mark.asyncio
    async def test_missing_fields_are_rejected(self, analytics, metric_repository):
        with pytest.raises(MetricValidationError) as exc_info:
            await analytics.log_metric(UsageMetric(type="suggestions_generated", user_id="", visit_id="v1", value=1))

        assert exc_info.value.missing_fields == ["user_id"]
        assert metric_repository.metrics == []

    @pytest.mark.asyncio
    async def test_blank_visit_has_no_metrics(self, analytics):
        assert await analytics.get_metrics_by_visit("  ") == []
        assert (await analytics.get_metrics_summary_by_visit("")).generated == 0


class TestRiskLevel:
    """compute_risk_level rules."""

    def test_low_by_default(self):
        assert compute_risk_level(MetricsSummary(), MetricsSummary()) is RiskLevel.LOW

    def test_more_warnings_is_medium(self):
        current = MetricsSummary(generated=4, accepted=4, warnings=2)
        assert compute_risk_level(current, MetricsSummary(warnings=1)) is RiskLevel.MEDIUM

    def test_warnings_with_low_adherence_is_high(self):
        current = MetricsSummary(generated=10, accepted=3, warnings=2)
        assert compute_risk_level(current, MetricsSummary(warnings=5)) is RiskLevel.HIGH

    def test_no_generated_suggestions_counts_as_adherent(self):
        current = MetricsSummary(warnings=1)
        assert compute_risk_level(current, MetricsSummary(warnings=1)) is RiskLevel.LOW


class TestClinicalEvolution:
    @pytest.mark.parametrize(
        "current, previous, higher_is_better, expected",
        [
            (50, 50, True, ClinicalEvolution.STABLE),
            (0, 0, True, ClinicalEvolution.STABLE),
            (104, 100, True, ClinicalEvolution.STABLE),
            (120, 100, True, ClinicalEvolution.IMPROVED),
            (80, 100, True, ClinicalEvolution.WORSENED),
            (3, 7, False, ClinicalEvolution.IMPROVED),
            (8, 5, False, ClinicalEvolution.WORSENED),
            (1, 0, True, ClinicalEvolution.IMPROVED),
        ],
    )
    def test_classification(self, current, previous, higher_is_better, expected):
        assert calculate_clinical_evolution(current, previous, higher_is_better) is expected

    def test_indicators(self):
        assert evolution_indicator(ClinicalEvolution.IMPROVED) == "GREEN"
        assert evolution_indicator("stable") == "YELLOW"
        assert UsageAnalyticsService.evolution_indicator(ClinicalEvolution.WORSENED) == "RED"


class TestLongitudinalMetrics:
    """Visit-to-visit comparisons."""

    @pytest.mark.asyncio
    async def test_high_risk_comparison_is_stored_with_details(self, analytics):
        await analytics.track(MetricType.WARNINGS_GENERATED, "u1", "prev", value=1)
        await analytics.track(MetricType.SUGGESTIONS_GENERATED, "u1", "cur", value=10)
        await analytics.track(MetricType.SUGGESTIONS_ACCEPTED, "u1", "cur", value=3)
        await analytics.track(MetricType.WARNINGS_GENERATED, "u1", "cur", value=2)

        metric = await analytics.calculate_longitudinal_metrics(
            "cur", "prev", "patient-1", "u1", clinical_evolution=ClinicalEvolution.IMPROVED
        )

        assert metric.risk_level_summary is RiskLevel.HIGH
        assert metric.suggestions_generated == 10
        assert metric.details["current_metrics"]["warnings"] == 2
        assert metric.details["previous_metrics"]["warnings"] == 1
        assert metric.details["comparison_date"] == metric.date
        assert await analytics.get_longitudinal_metric_for_visit("cur") is metric

    @pytest.mark.asyncio
    async def test_patient_history_is_newest_first(self, analytics):
        first = await analytics.calculate_longitudinal_metrics("v2", "v1", "patient-1", "u1")
        second = await analytics.calculate_longitudinal_metrics("v3", "v2", "patient-1", "u1")
        await analytics.calculate_longitudinal_metrics("x2", "x1", "patient-2", "u1")

        history = await analytics.get_longitudinal_metrics_by_patient("patient-1")

        assert history == [second, first]

    @pytest.mark.asyncio
    async def test_missing_comparison_is_none(self, analytics):
        assert await analytics.get_longitudinal_metric_for_visit("never") is None
