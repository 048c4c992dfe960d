from clinical_suggestion_pipeline.core.enums import MemoryTier
from clinical_suggestion_pipeline.core.models import AgentContext, MemoryBlock
from clinical_suggestion_pipeline.generation import PromptBuilder
from clinical_suggestion_pipeline.generation.prompt_builder import SECTION_LABELS


def _context(*blocks):
    return AgentContext(visit_id="v1", blocks=list(blocks))


class TestPromptBuilder:
    """Prompt layout."""

    def test_each_block_listed_once_under_its_tier(self):
        prompt = PromptBuilder().build(
            _context(
                MemoryBlock(id="per-1", tier=MemoryTier.PERSISTENT, content="Hipertensión"),
                MemoryBlock(id="ctx-1", tier=MemoryTier.CONTEXTUAL, content="Dolor lumbar"),
                MemoryBlock(id="sem-1", tier=MemoryTier.SEMANTIC, content="AINEs y sangrado"),
            )
        )

        assert prompt.count("- [ctx-1] Dolor lumbar") == 1
        history = prompt.index("## PATIENT HISTORY")
        visit = prompt.index("## CURRENT VISIT")
        knowledge = prompt.index("## CLINICAL KNOWLEDGE")
        assert history < prompt.index("[per-1]") < visit < prompt.index("[ctx-1]") < knowledge

    def test_empty_tiers_have_no_label(self):
        prompt = PromptBuilder().build(
            _context(MemoryBlock(id="ctx-1", tier=MemoryTier.CONTEXTUAL, content="Dolor lumbar"))
        )

        assert "## CURRENT VISIT" in prompt
        assert "PATIENT HISTORY" not in prompt
        assert "CLINICAL KNOWLEDGE" not in prompt

    def test_empty_context_has_no_labels(self):
        prompt = PromptBuilder().build(_context())

        for label in SECTION_LABELS.values():
            assert label not in prompt
        assert "[TIPO:" in prompt

    def test_deterministic(self):
        context = _context(MemoryBlock(id="b", tier=MemoryTier.SEMANTIC, content="x"))
        assert PromptBuilder().build(context) == PromptBuilder().build(context)
