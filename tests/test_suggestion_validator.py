import pytest

from clinical_suggestion_pipeline.core.constants import (
    REASON_CONTENT_TOO_SHORT,
    REASON_EMPTY_CONTENT,
    REASON_INCOMPLETE_CONTEXT_ORIGIN,
    REASON_INVALID_TYPE,
    REASON_MISSING_CONTEXT_ORIGIN,
    REASON_MISSING_ID,
    REASON_MISSING_SOURCE_BLOCK_ID,
)
from clinical_suggestion_pipeline.core.models import AgentSuggestion, ContextOrigin
from clinical_suggestion_pipeline.validation import SuggestionValidator


@pytest.fixture
def validator():
    return SuggestionValidator()


def _suggestion(**overrides):
    fields = {
        "id": "s-1",
        "source_block_id": "b-1",
        "type": "warning",
        "content": "Verificar alergias medicamentosas",
        "context_origin": ContextOrigin(source_block="b-1", text="Verificar alergias"),
    }
    fields.update(overrides)
    return AgentSuggestion(**fields)


class TestSuggestionValidator:
    """One reason per failed check."""

    def test_valid_suggestion(self, validator, recommendation):
        result = validator.evaluate(recommendation)

        assert result.is_valid
        assert result.reasons == []
        assert result.suggestion_id == "sug-1"

    def test_short_content(self, validator):
        result = validator.evaluate(_suggestion(content="short"))

        assert not result.is_valid
        assert result.reasons == [REASON_CONTENT_TOO_SHORT]

    def test_empty_content_is_not_also_too_short(self, validator):
        result = validator.evaluate(_suggestion(content="   "))

        assert result.reasons == [REASON_EMPTY_CONTENT]

    def test_invalid_type_is_exact(self, validator):
        assert validator.evaluate(_suggestion(type="Warning")).reasons == [REASON_INVALID_TYPE]
        assert validator.evaluate(_suggestion(type="diagnosis")).reasons == [REASON_INVALID_TYPE]

    def test_context_origin_checks(self, validator):
        missing = validator.evaluate(_suggestion(context_origin=None))
        incomplete = validator.evaluate(_suggestion(context_origin=ContextOrigin(source_block="b-1", text="")))

        assert missing.reasons == [REASON_MISSING_CONTEXT_ORIGIN]
        assert incomplete.reasons == [REASON_INCOMPLETE_CONTEXT_ORIGIN]

    def test_every_failure_is_reported(self, validator):
        result = validator.evaluate(
            _suggestion(id="", source_block_id="", type="bogus", content="", context_origin=None)
        )

        assert result.reasons == [
            REASON_INVALID_TYPE,
            REASON_EMPTY_CONTENT,
            REASON_MISSING_CONTEXT_ORIGIN,
            REASON_MISSING_ID,
            REASON_MISSING_SOURCE_BLOCK_ID,
        ]
        assert result.suggestion_id is None

    def test_validation_does_not_mutate(self, validator):
        suggestion = _suggestion(content="short")
        before = suggestion.to_dict()

        validator.evaluate(suggestion)

        assert suggestion.to_dict() == before

    def test_batch_helpers(self, validator):
        suggestions = [_suggestion(), _suggestion(id="s-2", content="tiny")]

        assert [r.is_valid for r in validator.evaluate_all(suggestions)] == [True, False]
        assert [s.id for s in validator.filter_valid(suggestions)] == ["s-1"]
