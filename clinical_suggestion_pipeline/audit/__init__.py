"""
Audit Layer - Audit Trail, Usage Metrics, Feedback

Submodules:
    audit_logger.py     → Append-only audit log (in-process + durable)
    usage_analytics.py  → Usage metrics, summaries, longitudinal metrics
    longitudinal.py     → Pure risk / evolution functions
    feedback_service.py → Reviewer feedback and accept/reject actions

Dependency Rule:
    This layer depends on: core, repository
    This layer is used by: integration, pipeline
"""

from clinical_suggestion_pipeline.audit.audit_logger import AuditLogger
from clinical_suggestion_pipeline.audit.usage_analytics import UsageAnalyticsService
from clinical_suggestion_pipeline.audit.longitudinal import (
    compute_risk_level,
    calculate_clinical_evolution,
    evolution_indicator,
)
from clinical_suggestion_pipeline.audit.feedback_service import SuggestionFeedbackService

__all__ = [
    "AuditLogger",
    "UsageAnalyticsService",
    "compute_risk_level",
    "calculate_clinical_evolution",
    "evolution_indicator",
    "SuggestionFeedbackService",
]
