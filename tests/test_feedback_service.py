import asyncio

import pytest

from clinical_suggestion_pipeline.audit import SuggestionFeedbackService
from clinical_suggestion_pipeline.core.constants import EVENT_SUGGESTION_ACCEPTED, EVENT_SUGGESTION_FEEDBACK
from clinical_suggestion_pipeline.core.enums import FeedbackType, MetricType


@pytest.fixture
def feedback_service(audit_logger, analytics):
    return SuggestionFeedbackService(audit_logger, analytics)


class TestSuggestionFeedbackService:
    """Reviewer feedback and accept/reject actions."""

    @pytest.mark.asyncio
    async def test_record_feedback_attaches_and_audits(self, feedback_service, recommendation, audit_logger):
        feedback = await feedback_service.record_feedback(recommendation, "u1", "v1", FeedbackType.USEFUL)

        assert recommendation.feedback == [feedback]
        events = audit_logger.get_audit_logs("v1", EVENT_SUGGESTION_FEEDBACK)
        assert events[0].metadata["feedback_type"] == "useful"

    @pytest.mark.asyncio
    async def test_latest_feedback_per_user_wins(self, feedback_service, recommendation):
        await feedback_service.record_feedback(recommendation, "u1", "v1", FeedbackType.USEFUL)
        await asyncio.sleep(0.001)
        await feedback_service.record_feedback(recommendation, "u1", "v1", FeedbackType.INCORRECT)
        await feedback_service.record_feedback(recommendation, "u2", "v1", FeedbackType.USEFUL)

        latest = await feedback_service.latest_feedback(recommendation.id)
        summary = await feedback_service.feedback_summary("v1")

        assert sorted((f.user_id, f.feedback_type) for f in latest) == [
            ("u1", FeedbackType.INCORRECT),
            ("u2", FeedbackType.USEFUL),
        ]
        assert summary == {"useful": 1, "irrelevant": 0, "incorrect": 1, "dangerous": 0}

    @pytest.mark.asyncio
    async def test_accept_and_reject_are_tracked(self, feedback_service, recommendation, analytics, audit_logger):
        await feedback_service.accept(recommendation, "u1", "v1")
        await feedback_service.reject(recommendation, "u2", "v1")

        metrics = await analytics.get_metrics_by_visit("v1")
        summary = await analytics.get_metrics_summary_by_visit("v1")

        assert [m.type for m in metrics] == [
            MetricType.SUGGESTIONS_ACCEPTED.value,
            MetricType.SUGGESTIONS_REJECTED.value,
        ]
        assert summary.accepted == 1
        assert len(audit_logger.get_audit_logs("v1", EVENT_SUGGESTION_ACCEPTED)) == 1
