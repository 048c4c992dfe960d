"""
Longitudinal Indicators - Pure Visit-to-Visit Comparisons

Deterministic functions used by UsageAnalyticsService. Same inputs always
give the same outputs; nothing here touches a store.
"""

from clinical_suggestion_pipeline.core.constants import (
    EVOLUTION_INDICATORS,
    EVOLUTION_STABILITY_RATIO,
    LOW_ADHERENCE_THRESHOLD,
)
from clinical_suggestion_pipeline.core.enums import ClinicalEvolution, RiskLevel
from clinical_suggestion_pipeline.core.models import MetricsSummary


def compute_risk_level(current: MetricsSummary, previous: MetricsSummary) -> RiskLevel:
    """
    Derive the risk summary for a visit compared with an earlier one.

    Rules (later rules win):
        1. low by default
        2. medium if the current visit produced more warnings than the previous one
        3. high if the current visit has warnings and adherence below 0.5

    A visit with no generated suggestions has adherence 1.0.

    Example:
        >>> current = MetricsSummary(generated=10, accepted=3, warnings=2)
        >>> compute_risk_level(current, MetricsSummary(warnings=1))
        <RiskLevel.HIGH: 'high'>
    """
    risk = RiskLevel.LOW

    if current.warnings > previous.warnings:
        risk = RiskLevel.MEDIUM

    if current.warnings > 0 and current.adherence_rate < LOW_ADHERENCE_THRESHOLD:
        risk = RiskLevel.HIGH

    return risk


def calculate_clinical_evolution(
    current: float, previous: float, higher_is_better: bool = True
) -> ClinicalEvolution:
    """
    Classify the change between two measurements.

    A change smaller than 10% of the previous value (or no change at all)
    is stable. Otherwise the direction decides, interpreted through
    `higher_is_better` (e.g. range of motion vs. pain level).
    """
    difference = current - previous

    if difference == 0 or abs(difference) < EVOLUTION_STABILITY_RATIO * abs(previous):
        return ClinicalEvolution.STABLE

    improved = difference > 0 if higher_is_better else difference < 0
    return ClinicalEvolution.IMPROVED if improved else ClinicalEvolution.WORSENED


def evolution_indicator(evolution: ClinicalEvolution) -> str:
    """GREEN / YELLOW / RED indicator for a clinical evolution."""
    return EVOLUTION_INDICATORS[ClinicalEvolution(evolution).value]
