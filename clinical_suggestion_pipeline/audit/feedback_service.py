"""
Suggestion Feedback Service - Reviewer Actions on Suggestions

Records what reviewers think of suggestions (useful, irrelevant, incorrect,
dangerous) and whether they accepted or rejected them. Every action is
audited; accept/reject are also tracked as usage metrics.
"""

from collections import Counter
from typing import Dict, List, Optional

from loguru import logger

from clinical_suggestion_pipeline.audit.audit_logger import AuditLogger
from clinical_suggestion_pipeline.audit.usage_analytics import UsageAnalyticsService
from clinical_suggestion_pipeline.core.constants import (
    EVENT_SUGGESTION_ACCEPTED,
    EVENT_SUGGESTION_FEEDBACK,
    EVENT_SUGGESTION_REJECTED,
)
from clinical_suggestion_pipeline.core.enums import FeedbackType, MetricType
from clinical_suggestion_pipeline.core.models import AgentSuggestion, SuggestionFeedback
from clinical_suggestion_pipeline.repository.feedback_store import (
    FeedbackStore,
    InMemoryFeedbackStore,
)


def _latest_per_user(rows: List[SuggestionFeedback]) -> List[SuggestionFeedback]:
    """Keep the newest row for each (user, suggestion); ties go to the later append."""
    latest: Dict[tuple, SuggestionFeedback] = {}
    for row in rows:
        key = (row.user_id, row.suggestion_id)
        current = latest.get(key)
        if current is None or row.created_at >= current.created_at:
            latest[key] = row
    return list(latest.values())


class SuggestionFeedbackService:
    """
    Reviewer feedback and accept/reject actions.

    Example:
        >>> service = SuggestionFeedbackService(audit_logger, analytics)
        >>> await service.record_feedback(suggestion, "u1", "v1", FeedbackType.USEFUL)
        >>> await service.accept(suggestion, "u1", "v1")
    """

    def __init__(
        self,
        audit_logger: AuditLogger,
        analytics: UsageAnalyticsService,
        store: Optional[FeedbackStore] = None,
    ):
        self._audit = audit_logger
        self._analytics = analytics
        self._store = store if store is not None else InMemoryFeedbackStore()

    async def record_feedback(
        self,
        suggestion: AgentSuggestion,
        user_id: str,
        visit_id: str,
        feedback_type: FeedbackType,
    ) -> SuggestionFeedback:
        """Append a feedback row, attach it to the suggestion and audit it."""
        feedback = SuggestionFeedback(
            suggestion_id=suggestion.id,
            user_id=user_id,
            visit_id=visit_id,
            feedback_type=FeedbackType(feedback_type),
        )
        await self._store.append(feedback)
        suggestion.attach_feedback(feedback)

        self._audit.log(
            EVENT_SUGGESTION_FEEDBACK,
            {
                "visit_id": visit_id,
                "user_id": user_id,
                "suggestion_id": suggestion.id,
                "suggestion_type": suggestion.type,
                "feedback_type": feedback.feedback_type.value,
            },
        )
        logger.info(
            f"Feedback recorded | Suggestion: {suggestion.id} | "
            f"Type: {feedback.feedback_type.value} | User: {user_id}"
        )
        return feedback

    async def accept(self, suggestion: AgentSuggestion, user_id: str, visit_id: str) -> None:
        await self._review(suggestion, user_id, visit_id, accepted=True)

    async def reject(self, suggestion: AgentSuggestion, user_id: str, visit_id: str) -> None:
        await self._review(suggestion, user_id, visit_id, accepted=False)

    async def _review(self, suggestion: AgentSuggestion, user_id: str, visit_id: str, accepted: bool) -> None:
        metric_type = MetricType.SUGGESTIONS_ACCEPTED if accepted else MetricType.SUGGESTIONS_REJECTED
        event_type = EVENT_SUGGESTION_ACCEPTED if accepted else EVENT_SUGGESTION_REJECTED

        await self._analytics.track(
            metric_type,
            user_id,
            visit_id,
            value=1,
            details={"suggestion_id": suggestion.id, "suggestion_type": suggestion.type},
        )
        self._audit.log(
            event_type,
            {
                "visit_id": visit_id,
                "user_id": user_id,
                "suggestion_id": suggestion.id,
                "suggestion_type": suggestion.type,
            },
        )

    async def latest_feedback(self, suggestion_id: str) -> List[SuggestionFeedback]:
        """The current feedback for a suggestion: one row per user, newest wins."""
        return _latest_per_user(await self._store.query_by_suggestion(suggestion_id))

    async def feedback_summary(self, visit_id: str) -> Dict[str, int]:
        """Counts per feedback type over the current (latest) rows of a visit."""
        rows = _latest_per_user(await self._store.query_by_visit(visit_id))
        counts = Counter(row.feedback_type.value for row in rows)
        return {feedback_type.value: counts.get(feedback_type.value, 0) for feedback_type in FeedbackType}
