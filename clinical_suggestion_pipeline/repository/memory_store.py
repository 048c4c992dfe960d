"""
Memory Store - Access to a Visit's Memory Blocks

This module defines the read interface the Context Assembler uses to load a
visit's memory, plus an in-memory implementation for tests and local runs.

Architecture:
    MemoryStore (Protocol)
    └── InMemoryMemoryStore  → dict-backed, keyed by visit and tier

Pipeline Position:
    [MemoryStore] → Assembler → Prompt → Generation → Parser → Validation
     ^^^^^^^^^^^
     You are here

Usage:
    from clinical_suggestion_pipeline.repository import InMemoryMemoryStore

    store = InMemoryMemoryStore()
    store.add_block("visit-1", MemoryTier.CONTEXTUAL, {"id": "b1", "content": "..."})
    records = await store.list_blocks_by_visit("visit-1", MemoryTier.CONTEXTUAL)
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from loguru import logger

from clinical_suggestion_pipeline.core.enums import MemoryTier


# =============================================================================
# STAGE 1: REPOSITORY PROTOCOL (INTERFACE)
# =============================================================================


@runtime_checkable
class MemoryStore(Protocol):
    """
    Protocol for the memory subsystem.

    What it does:
        Returns the raw records of one tier for one visit. Records are plain
        dictionaries with at least `id` and `content`; they may also carry
        `patient_id`, `visit_id`, `created_at` and tier-specific fields.

    Errors:
        Implementations raise their own transport errors. Callers do not
        wrap them.
    """

    async def list_blocks_by_visit(self, visit_id: str, tier: MemoryTier) -> List[Dict[str, Any]]:
        """
        List raw memory records of one tier for a visit.

        Args:
            visit_id: Visit whose memory to read
            tier: Memory tier to read

        Returns:
            List of raw record dictionaries (possibly empty)
        """
        ...


# =============================================================================
# STAGE 2: IN-MEMORY IMPLEMENTATION
# =============================================================================


class InMemoryMemoryStore:
    """
    Memory store backed by nested dictionaries: visit_id → tier → records.

    Returned records are shallow copies so callers cannot mutate the store.
    """

    def __init__(self, records: Optional[Dict[str, Dict[str, List[Dict[str, Any]]]]] = None):
        self._records: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}

        for visit_id, tiers in (records or {}).items():
            for tier, tier_records in tiers.items():
                for record in tier_records:
                    self.add_block(visit_id, MemoryTier(tier), record)

    def add_block(self, visit_id: str, tier: MemoryTier, record: Dict[str, Any]) -> None:
        """Store a raw record under a visit and tier."""
        tier_key = MemoryTier(tier).value
        self._records.setdefault(visit_id, {}).setdefault(tier_key, []).append(dict(record))

    async def list_blocks_by_visit(self, visit_id: str, tier: MemoryTier) -> List[Dict[str, Any]]:
        tier_key = MemoryTier(tier).value
        records = self._records.get(visit_id, {}).get(tier_key, [])
        logger.debug(f"Listed memory blocks | Visit: {visit_id} | Tier: {tier_key} | Count: {len(records)}")
        return [dict(record) for record in records]
