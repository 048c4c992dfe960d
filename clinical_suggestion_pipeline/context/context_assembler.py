"""
Context Assembler - Memory Collections to AgentContext

This module turns the raw memory collections of a visit into a normalized,
deduplicated AgentContext that the prompt builder can consume.

Input Shape (per tier):
    Either a plain list of records:
        {"contextual": [{"id": "b1", "content": "...", "visit_id": "v1"}], ...}
    or a source envelope:
        {"contextual": {"source": "firestore", "data": [...]}, ...}

Rules:
    1. Records with missing/blank `id` or `content` are dropped
    2. Tier comes from the collection key; extra fields are dropped
    3. Duplicate ids are removed, first occurrence wins, scanning
       persistent → contextual → semantic
    4. patient_id / visit_id come from the first persistent or contextual
       record that carries them ("" when none does)

Pipeline Position:
    MemoryStore → [ContextAssembler] → PromptBuilder → Generation → Parser
                   ^^^^^^^^^^^^^^^^
                   You are here

Usage:
    from clinical_suggestion_pipeline.context import ContextAssembler

    assembler = ContextAssembler()
    context = assembler.assemble(memory_context)
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from loguru import logger

from clinical_suggestion_pipeline.core.constants import IDENTITY_TIERS, TIER_SCAN_ORDER
from clinical_suggestion_pipeline.core.enums import MemoryTier
from clinical_suggestion_pipeline.core.models import AgentContext, MemoryBlock
from clinical_suggestion_pipeline.repository.memory_store import MemoryStore


# =============================================================================
# STAGE 1: RECORD HELPERS
# =============================================================================


def _tier_records(memory_context: Mapping[str, Any], tier: MemoryTier) -> List[Any]:
    """Unwrap one tier's collection, accepting a list or a {"source", "data"} envelope."""
    collection = memory_context.get(tier.value)

    if collection is None:
        return []
    if isinstance(collection, Mapping):
        return list(collection.get("data") or [])
    return list(collection)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _identity(record: Mapping[str, Any], snake_key: str, camel_key: str) -> str:
    return _text(record.get(snake_key)) or _text(record.get(camel_key))


# =============================================================================
# STAGE 2: CONTEXT ASSEMBLER
# =============================================================================


class ContextAssembler:
    """
    Builds an AgentContext from raw memory collections.

    What it does:
        Normalizes records from all three memory tiers into MemoryBlocks,
        drops unusable records, removes duplicates and recovers the visit
        and patient identity.

    Why it exists:
        1. The prompt builder only ever sees clean, typed blocks
        2. Tier-specific record shapes stay out of the rest of the pipeline
        3. Assembly can be tested with literal dictionaries

    Errors:
        Nothing is caught here. A malformed input (e.g. a tier that is not
        iterable) or a failing MemoryStore raises straight to the caller.

    Example:
        >>> assembler = ContextAssembler()
        >>> context = assembler.assemble({
        ...     "contextual": [{"id": "b1", "content": "Dolor lumbar", "visit_id": "v1"}],
        ...     "persistent": [],
        ...     "semantic": [],
        ... })
        >>> context.visit_id
        'v1'
    """

    def __init__(self, memory_store: Optional[MemoryStore] = None):
        """
        Args:
            memory_store: Source for assemble_from_store / load_memory_context
        """
        self._memory_store = memory_store

    # =========================================================================
    # STAGE 3: ASSEMBLY
    # =========================================================================

    def assemble(self, memory_context: Mapping[str, Any]) -> AgentContext:
        """
        Assemble an AgentContext from per-tier raw collections.

        STAGE 3.1: Scan tiers in dedup order, dropping unusable records
        STAGE 3.2: Recover patient/visit identity from identity tiers

        Args:
            memory_context: Mapping of tier name → records or envelope

        Returns:
            AgentContext with deduplicated blocks
        """
        blocks: List[MemoryBlock] = []
        seen_ids: Set[str] = set()
        dropped = 0
        duplicates = 0

        # =====================================================================
        # STAGE 3.1: NORMALIZE AND DEDUPLICATE
        # =====================================================================
        for tier in TIER_SCAN_ORDER:
            for record in _tier_records(memory_context, tier):
                if not isinstance(record, Mapping):
                    dropped += 1
                    continue

                block_id = _text(record.get("id"))
                content = _text(record.get("content"))
                if not block_id or not content:
                    dropped += 1
                    continue

                if block_id in seen_ids:
                    duplicates += 1
                    continue

                seen_ids.add(block_id)
                blocks.append(
                    MemoryBlock(
                        id=block_id,
                        tier=tier,
                        content=content,
                        created_at=_parse_timestamp(record.get("created_at") or record.get("createdAt")),
                    )
                )

        # =====================================================================
        # STAGE 3.2: RECOVER IDENTITY
        # =====================================================================
        identity_records = [
            record
            for tier in IDENTITY_TIERS
            for record in _tier_records(memory_context, tier)
            if isinstance(record, Mapping)
        ]
        patient_id = self._first_identity(identity_records, "patient_id", "patientId")
        visit_id = self._first_identity(identity_records, "visit_id", "visitId")

        logger.debug(
            f"Assembled context | Visit: {visit_id or '-'} | Blocks: {len(blocks)} | "
            f"Dropped: {dropped} | Duplicates: {duplicates}"
        )

        return AgentContext(visit_id=visit_id, patient_id=patient_id, blocks=blocks)

    @staticmethod
    def _first_identity(records: Iterable[Mapping[str, Any]], snake_key: str, camel_key: str) -> str:
        for record in records:
            value = _identity(record, snake_key, camel_key)
            if value:
                return value
        return ""

    # =========================================================================
    # STAGE 4: STORE-BACKED ASSEMBLY
    # =========================================================================

    async def load_memory_context(self, visit_id: str) -> Dict[str, List[Dict[str, Any]]]:
        """
        Read every tier of a visit from the memory store.

        Returns:
            Mapping of tier name → raw records, ready for `assemble`

        Raises:
            RuntimeError: If no memory store was configured
        """
        if self._memory_store is None:
            raise RuntimeError("ContextAssembler has no memory store configured")

        memory_context: Dict[str, List[Dict[str, Any]]] = {}
        for tier in MemoryTier:
            memory_context[tier.value] = await self._memory_store.list_blocks_by_visit(visit_id, tier)

        return memory_context

    async def assemble_from_store(self, visit_id: str) -> AgentContext:
        """Load a visit's tiers from the memory store and assemble them."""
        memory_context = await self.load_memory_context(visit_id)
        context = self.assemble(memory_context)

        if not context.visit_id:
            context.visit_id = visit_id

        return context
