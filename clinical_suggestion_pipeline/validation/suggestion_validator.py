"""
Suggestion Validator - Rule-Based Suggestion Checks

This module validates parsed suggestions before they are shown to a
reviewer or integrated into a clinical record. Validation is:
    1. Pure (no I/O, no mutation)
    2. Exhaustive (every check runs and reports its own reason)
    3. Advisory (invalid suggestions are reported, never dropped here)

Pipeline Position:
    ResponseParser → [SuggestionValidator] → Orchestrator result / Integration
                      ^^^^^^^^^^^^^^^^^^^
                      You are here

Usage:
    from clinical_suggestion_pipeline.validation import SuggestionValidator

    validator = SuggestionValidator()
    result = validator.evaluate(suggestion)
    if not result.is_valid:
        print(result.reasons)
"""

from typing import Iterable, List

from loguru import logger

from clinical_suggestion_pipeline.core.constants import (
    MIN_CONTENT_LENGTH,
    REASON_CONTENT_TOO_SHORT,
    REASON_EMPTY_CONTENT,
    REASON_INCOMPLETE_CONTEXT_ORIGIN,
    REASON_INVALID_TYPE,
    REASON_MISSING_CONTEXT_ORIGIN,
    REASON_MISSING_ID,
    REASON_MISSING_SOURCE_BLOCK_ID,
)
from clinical_suggestion_pipeline.core.enums import SuggestionType
from clinical_suggestion_pipeline.core.models import AgentSuggestion, ValidationResult


# =============================================================================
# STAGE 1: RULE-BASED CHECKS (STATIC CLASS)
# =============================================================================


def _blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


class SuggestionChecks:
    """
    Static methods for rule-based suggestion validation.

    Each check returns a list of reason strings (empty when it passes), so
    checks compose by concatenation and the reasons stay independent.

    Checks Performed:
        1. Type is recommendation, warning or info (exact label)
        2. Content is present and long enough
        3. Context origin is present and complete
        4. Identifiers (id, source block id) are present
    """

    @staticmethod
    def check_type(suggestion: AgentSuggestion) -> List[str]:
        if suggestion.type not in SuggestionType.all_values():
            return [REASON_INVALID_TYPE]
        return []

    @staticmethod
    def check_content(suggestion: AgentSuggestion, min_length: int = MIN_CONTENT_LENGTH) -> List[str]:
        """
        Empty content and short content are distinct failures; only one of
        them is reported for a given suggestion.
        """
        content = suggestion.content.strip() if isinstance(suggestion.content, str) else ""
        if not content:
            return [REASON_EMPTY_CONTENT]
        if len(content) < min_length:
            return [REASON_CONTENT_TOO_SHORT]
        return []

    @staticmethod
    def check_context_origin(suggestion: AgentSuggestion) -> List[str]:
        origin = suggestion.context_origin
        if origin is None:
            return [REASON_MISSING_CONTEXT_ORIGIN]
        if _blank(origin.source_block) or _blank(origin.text):
            return [REASON_INCOMPLETE_CONTEXT_ORIGIN]
        return []

    @staticmethod
    def check_identifiers(suggestion: AgentSuggestion) -> List[str]:
        reasons = []
        if _blank(suggestion.id):
            reasons.append(REASON_MISSING_ID)
        if _blank(suggestion.source_block_id):
            reasons.append(REASON_MISSING_SOURCE_BLOCK_ID)
        return reasons

    @classmethod
    def run_all_checks(cls, suggestion: AgentSuggestion) -> List[str]:
        """Run every check and return all failure reasons in a stable order."""
        reasons: List[str] = []
        reasons.extend(cls.check_type(suggestion))
        reasons.extend(cls.check_content(suggestion))
        reasons.extend(cls.check_context_origin(suggestion))
        reasons.extend(cls.check_identifiers(suggestion))
        return reasons


# =============================================================================
# STAGE 2: SUGGESTION VALIDATOR
# =============================================================================


class SuggestionValidator:
    """
    Produces ValidationResults for suggestions.

    What it does:
        Wraps SuggestionChecks into a ValidationResult per suggestion and
        offers batch helpers.

    Why it exists:
        1. Free validation (no API costs)
        2. Consistent results (deterministic)
        3. Callers decide what to do with invalid suggestions

    Example:
        >>> validator = SuggestionValidator()
        >>> validator.evaluate(suggestion).is_valid
        True
    """

    def evaluate(self, suggestion: AgentSuggestion) -> ValidationResult:
        reasons = SuggestionChecks.run_all_checks(suggestion)

        if reasons:
            logger.debug(f"Suggestion {suggestion.id or '-'} failed validation | Reasons: {len(reasons)}")

        return ValidationResult(is_valid=not reasons, reasons=reasons, suggestion_id=suggestion.id or None)

    def evaluate_all(self, suggestions: Iterable[AgentSuggestion]) -> List[ValidationResult]:
        """One result per suggestion, in input order."""
        return [self.evaluate(suggestion) for suggestion in suggestions]

    def filter_valid(self, suggestions: Iterable[AgentSuggestion]) -> List[AgentSuggestion]:
        """Return only the suggestions that pass every check."""
        return [suggestion for suggestion in suggestions if self.evaluate(suggestion).is_valid]
