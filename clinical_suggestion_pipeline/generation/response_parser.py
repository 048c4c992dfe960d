"""
Response Parser - Raw LLM Text to AgentSuggestions

This module turns the free text returned by a provider into typed
AgentSuggestion objects. Parsing is tolerant: one malformed entry never
affects its siblings.

Accepted Formats:
    (a) Tagged lines
        1. [TIPO: warning] Check NSAID interactions [BLOCK: b-12]
        - [TYPE: Recomendación] Use a visual analogue pain scale
    (b) JSON lines
        {"type": "warning", "content": "...", "sourceBlockId": "b-12"}
    (b') A whole-text JSON array of such objects

Markdown code-fence lines (```json, ```) are ignored in every format.

Pipeline Position:
    GenerationAdapter → [ResponseParser] → SuggestionValidator → Integration
                         ^^^^^^^^^^^^^^
                         You are here

Usage:
    from clinical_suggestion_pipeline.generation import ResponseParser

    parser = ResponseParser()
    suggestions = parser.parse(raw_text, context.block_ids, source="llm")
"""

import json
import re
import uuid
from typing import Any, Iterable, List, NamedTuple, Optional, Sequence

from loguru import logger

from clinical_suggestion_pipeline.core.constants import (
    DEFAULT_EXCERPT_LENGTH,
    DEFAULT_SOURCE_BLOCK_ID,
    EXCERPT_ELLIPSIS,
)
from clinical_suggestion_pipeline.core.enums import SuggestionType
from clinical_suggestion_pipeline.core.models import AgentSuggestion, ContextOrigin


# =============================================================================
# STAGE 1: PATTERNS
# =============================================================================

TAGGED_LINE_PATTERN = re.compile(
    r"^\s*(?:[-*•]\s*|\d+\s*[.)]\s*)?\[\s*(?:TIPO|TYPE)\s*:\s*(?P<type>[^\]]*?)\s*\]\s*(?P<body>.*)$",
    re.IGNORECASE,
)
"""Optional bullet or number, then [TIPO: x] or [TYPE: x], then the text."""

BLOCK_TAG_PATTERN = re.compile(r"\[\s*BLOCK\s*:\s*(?P<block>[^\]]*?)\s*\]", re.IGNORECASE)

CODE_FENCE_PREFIX = "```"


class _RawEntry(NamedTuple):
    """One candidate suggestion before type normalization."""

    raw_type: Any
    content: Any
    cited_block: Optional[str]


# =============================================================================
# STAGE 2: RESPONSE PARSER
# =============================================================================


class ResponseParser:
    """
    Parses provider output into AgentSuggestions.

    What it does:
        Extracts (type, content, cited block) entries from tagged lines or
        JSON, normalizes the type label, resolves the source block and
        attaches a context-origin excerpt.

    Type Policy:
        Labels are lower-cased, accents are stripped and Spanish aliases
        are mapped. An unknown label becomes `info` when
        `coerce_unknown_type_to_info` is True; otherwise the entry is dropped.

    Source Block Resolution:
        1. The cited block ([BLOCK: id] or JSON sourceBlockId), if it is valid
        2. Otherwise the first valid block id
        3. Otherwise the sentinel "default-block-id"

    Example:
        >>> parser = ResponseParser()
        >>> parser.parse("1. [TIPO: warning] Verify drug allergies", ["b1"])[0].type
        'warning'
    """

    def __init__(
        self,
        coerce_unknown_type_to_info: bool = True,
        excerpt_length: int = DEFAULT_EXCERPT_LENGTH,
    ):
        """
        Args:
            coerce_unknown_type_to_info: Map unknown types to info instead of dropping
            excerpt_length: Characters of content kept in the context origin
        """
        self._coerce_unknown = coerce_unknown_type_to_info
        self._excerpt_length = excerpt_length

    # =========================================================================
    # STAGE 3: PUBLIC API
    # =========================================================================

    def parse(
        self,
        raw: Optional[str],
        source_block_ids: Sequence[str],
        source: Optional[str] = None,
    ) -> List[AgentSuggestion]:
        """
        Parse raw provider text.

        Args:
            raw: Text returned by the generation adapter
            source_block_ids: Ids of the blocks the prompt was built from
            source: Optional producer tag stored on every suggestion

        Returns:
            Suggestions in output order (possibly empty)
        """
        if not raw or not raw.strip():
            logger.warning("Empty LLM response | No suggestions parsed")
            return []

        valid_ids = [block_id for block_id in source_block_ids if block_id]
        entries = list(self._extract_entries(raw))

        suggestions = []
        for entry in entries:
            suggestion = self._build_suggestion(entry, valid_ids, source)
            if suggestion is not None:
                suggestions.append(suggestion)

        skipped = len(entries) - len(suggestions)
        logger.info(f"Parsed {len(suggestions)} suggestions | Skipped entries: {skipped}")
        return suggestions

    @staticmethod
    def to_json_lines(suggestions: Iterable[AgentSuggestion]) -> str:
        """
        Serialize suggestions to JSON-lines format (b).

        Parsing the output again yields the same (type, content) pairs.
        """
        return "\n".join(
            json.dumps(
                {
                    "type": suggestion.type,
                    "content": suggestion.content,
                    "sourceBlockId": suggestion.source_block_id,
                },
                ensure_ascii=False,
            )
            for suggestion in suggestions
        )

    # =========================================================================
    # STAGE 4: ENTRY EXTRACTION
    # =========================================================================

    def _extract_entries(self, raw: str) -> Iterable[_RawEntry]:
        """
        STAGE 4.1: Drop code-fence lines
        STAGE 4.2: Try the whole text as a JSON array
        STAGE 4.3: Fall back to line-by-line (tagged or JSON object)
        """
        lines = [line for line in raw.splitlines() if not line.strip().startswith(CODE_FENCE_PREFIX)]
        text = "\n".join(lines).strip()

        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                for item in parsed:
                    entry = self._entry_from_object(item)
                    if entry is not None:
                        yield entry
                return

        for line in lines:
            stripped = line.strip()
            if not stripped:
                continue

            tagged = TAGGED_LINE_PATTERN.match(stripped)
            if tagged:
                yield self._entry_from_tagged_line(tagged)
                continue

            if stripped.startswith("{"):
                try:
                    obj = json.loads(stripped.rstrip(","))
                except json.JSONDecodeError:
                    logger.debug(f"Skipping malformed JSON line | {stripped[:60]}")
                    continue
                entry = self._entry_from_object(obj)
                if entry is not None:
                    yield entry

    @staticmethod
    def _entry_from_tagged_line(match: re.Match) -> _RawEntry:
        body = match.group("body")
        block_match = BLOCK_TAG_PATTERN.search(body)
        cited = block_match.group("block") if block_match else None
        content = BLOCK_TAG_PATTERN.sub("", body).strip()
        return _RawEntry(raw_type=match.group("type"), content=content, cited_block=cited)

    @staticmethod
    def _entry_from_object(obj: Any) -> Optional[_RawEntry]:
        if not isinstance(obj, dict):
            return None
        cited = obj.get("sourceBlockId") or obj.get("source_block_id")
        return _RawEntry(
            raw_type=obj.get("type"),
            content=obj.get("content"),
            cited_block=cited if isinstance(cited, str) else None,
        )

    # =========================================================================
    # STAGE 5: SUGGESTION CONSTRUCTION
    # =========================================================================

    def _build_suggestion(
        self, entry: _RawEntry, valid_ids: List[str], source: Optional[str]
    ) -> Optional[AgentSuggestion]:
        if not isinstance(entry.raw_type, str) or not entry.raw_type.strip():
            return None
        if not isinstance(entry.content, str) or not entry.content.strip():
            return None

        suggestion_type = SuggestionType.from_string(entry.raw_type)
        if suggestion_type is None:
            if not self._coerce_unknown:
                logger.debug(f"Dropping suggestion with unknown type | Type: {entry.raw_type}")
                return None
            suggestion_type = SuggestionType.INFO

        content = entry.content.strip()
        source_block_id = self._resolve_source_block(entry.cited_block, valid_ids)

        return AgentSuggestion(
            id=str(uuid.uuid4()),
            source_block_id=source_block_id,
            type=suggestion_type.value,
            content=content,
            context_origin=ContextOrigin(source_block=source_block_id, text=self._excerpt(content)),
            source=source,
        )

    @staticmethod
    def _resolve_source_block(cited: Optional[str], valid_ids: List[str]) -> str:
        if cited and cited.strip() in valid_ids:
            return cited.strip()
        if valid_ids:
            return valid_ids[0]
        return DEFAULT_SOURCE_BLOCK_ID

    def _excerpt(self, content: str) -> str:
        if len(content) <= self._excerpt_length:
            return content
        return content[: self._excerpt_length] + EXCERPT_ELLIPSIS
