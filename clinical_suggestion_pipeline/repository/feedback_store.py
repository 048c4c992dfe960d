"""
Feedback Store - Reviewer Feedback Rows

Feedback rows are never updated. A newer row for the same (user, suggestion)
pair supersedes older ones when read through SuggestionFeedbackService.
"""

from typing import List, Protocol, runtime_checkable

from clinical_suggestion_pipeline.core.models import SuggestionFeedback


@runtime_checkable
class FeedbackStore(Protocol):
    """Append-only storage for suggestion feedback."""

    async def append(self, feedback: SuggestionFeedback) -> None:
        ...

    async def query_by_suggestion(self, suggestion_id: str) -> List[SuggestionFeedback]:
        ...

    async def query_by_visit(self, visit_id: str) -> List[SuggestionFeedback]:
        ...


class InMemoryFeedbackStore:
    """Feedback rows kept in a list, in append order."""

    def __init__(self):
        self._rows: List[SuggestionFeedback] = []

    async def append(self, feedback: SuggestionFeedback) -> None:
        self._rows.append(feedback)

    async def query_by_suggestion(self, suggestion_id: str) -> List[SuggestionFeedback]:
        return [row for row in self._rows if row.suggestion_id == suggestion_id]

    async def query_by_visit(self, visit_id: str) -> List[SuggestionFeedback]:
        return [row for row in self._rows if row.visit_id == visit_id]
