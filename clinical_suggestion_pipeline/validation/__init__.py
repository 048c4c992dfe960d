"""
Validation Layer - Suggestion Validation

This layer checks parsed suggestions with pure, deterministic rules.

Submodules:
    suggestion_validator.py → Rule checks and the validator

Dependency Rule:
    This layer depends on: core
    This layer is used by: pipeline (orchestrator)
"""

from clinical_suggestion_pipeline.validation.suggestion_validator import (
    SuggestionValidator,
    SuggestionChecks,
)

__all__ = [
    "SuggestionValidator",
    "SuggestionChecks",
]
