"""
Prompt Builder - Clinical Suggestion Prompts

This module compiles an AgentContext into the prompt sent to the LLM.
Prompts are designed to:
    1. Segment memory by tier so the model can weigh history vs. visit
    2. Cite every block by id so suggestions can be traced back
    3. Ask for a tagged line format the response parser understands

Pipeline Position:
    Assembler → [PromptBuilder] → GenerationAdapter → ResponseParser
                 ^^^^^^^^^^^^^
                 You are here

Output Layout:
    <instruction header>

    ## PATIENT HISTORY        (persistent tier, omitted if empty)
    - [<id>] <content>

    ## CURRENT VISIT          (contextual tier, omitted if empty)
    - [<id>] <content>

    ## CLINICAL KNOWLEDGE     (semantic tier, omitted if empty)
    - [<id>] <content>

    <closing request>
"""

from typing import Dict, List

from clinical_suggestion_pipeline.core.constants import TIER_SCAN_ORDER
from clinical_suggestion_pipeline.core.enums import MemoryTier
from clinical_suggestion_pipeline.core.models import AgentContext, MemoryBlock


# =============================================================================
# STAGE 1: PROMPT TEMPLATES
# =============================================================================
# Header and closing must never contain a section label, so that a section
# label in the prompt always means that tier has content.

PROMPT_HEADER = """You are a clinical assistant supporting a licensed healthcare professional during a patient visit.

**RULES:**
1. Base every suggestion ONLY on the memory notes listed below
2. Be specific and actionable; do not invent findings
3. Flag risks and contraindications explicitly
4. Each note is identified by an id in square brackets
"""

PROMPT_CLOSING = """Based on the notes above, write 2 to 3 clinical suggestions as a numbered list.

Format each item on its own line:
N. [TIPO: recommendation|warning|info] suggestion text [BLOCK: <note id>]

Use `recommendation` for actions to consider, `warning` for risks or contraindications
and `info` for relevant context. The [BLOCK: ...] tag is optional and must reference
one of the note ids listed above.
"""

SECTION_LABELS: Dict[MemoryTier, str] = {
    MemoryTier.PERSISTENT: "PATIENT HISTORY",
    MemoryTier.CONTEXTUAL: "CURRENT VISIT",
    MemoryTier.SEMANTIC: "CLINICAL KNOWLEDGE",
}


# =============================================================================
# STAGE 2: PROMPT BUILDER CLASS
# =============================================================================


class PromptBuilder:
    """
    Compiles an AgentContext into a deterministic prompt string.

    What it does:
        Lists each block exactly once, under the label of its tier, between
        a fixed header and a fixed closing request.

    Why it exists:
        1. Prompt wording lives in one place
        2. Prompts can be tested without making LLM calls
        3. The same context always yields the same prompt

    Example:
        >>> builder = PromptBuilder()
        >>> prompt = builder.build(context)
        >>> "## CURRENT VISIT" in prompt
        True
    """

    def build(self, context: AgentContext) -> str:
        """
        Build the generation prompt.

        STAGE 2.1: Header
        STAGE 2.2: One section per non-empty tier, in fixed tier order
        STAGE 2.3: Closing request

        Args:
            context: Assembled agent context

        Returns:
            Complete prompt string ready for the LLM
        """
        parts: List[str] = [PROMPT_HEADER]

        for tier in TIER_SCAN_ORDER:
            blocks = context.blocks_for_tier(tier)
            if blocks:
                parts.append(self._format_section(SECTION_LABELS[tier], blocks))

        parts.append(PROMPT_CLOSING)
        return "\n".join(parts)

    @staticmethod
    def _format_section(label: str, blocks: List[MemoryBlock]) -> str:
        lines = [f"## {label}"]
        lines.extend(f"- [{block.id}] {block.content}" for block in blocks)
        return "\n".join(lines) + "\n"
