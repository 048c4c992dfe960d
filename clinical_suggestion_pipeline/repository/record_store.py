"""
Record Store - Clinical Record Persistence

This module defines the persistence interface the EMR Integration Engine
writes through, the visit lookup used when a first record is created, and
in-memory implementations of both.

Architecture:
    RecordStore (Protocol)
    ├── InMemoryRecordStore
    VisitDirectory (Protocol)
    └── InMemoryVisitDirectory

Row Shape:
    {
        "id": "...",
        "visit_id": "...",
        "patient_id": "...",
        "professional_id": "...",
        "form_type": "SOAP",
        "content": '{"subjective": "...", "plan": "...", ...}',
        "status": "draft",
        "created_at": "...",
        "updated_at": "..."
    }

The store treats `content` as an opaque string. Only ClinicalRecord knows
it is JSON.
"""

import uuid
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from loguru import logger

from clinical_suggestion_pipeline.core.models import utc_now


# =============================================================================
# STAGE 1: RECORD STORE PROTOCOL
# =============================================================================


@runtime_checkable
class RecordStore(Protocol):
    """
    Protocol for clinical record persistence.

    Required Methods:
        get_records_by_visit(visit_id) → All record rows for a visit
        create_record(row)             → Persist a new row, return it with id
        update_record(record_id, row)  → Replace a row's fields, return it

    Errors:
        Any exception raised here reaches the integration caller unmodified.
    """

    async def get_records_by_visit(self, visit_id: str) -> List[Dict[str, Any]]:
        ...

    async def create_record(self, row: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def update_record(self, record_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        ...


@runtime_checkable
class VisitDirectory(Protocol):
    """Lookup used to confirm a visit exists before its first record is created."""

    async def get_visit(self, visit_id: str) -> Optional[Dict[str, Any]]:
        ...


# =============================================================================
# STAGE 2: IN-MEMORY IMPLEMENTATIONS
# =============================================================================


class InMemoryRecordStore:
    """
    Record store backed by a dictionary of rows keyed by record id.

    Example:
        >>> store = InMemoryRecordStore()
        >>> row = await store.create_record({"visit_id": "v1", "content": "{}"})
        >>> row["id"] is not None
        True
    """

    def __init__(self):
        self._rows: Dict[str, Dict[str, Any]] = {}

    async def get_records_by_visit(self, visit_id: str) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._rows.values() if row.get("visit_id") == visit_id]

    async def create_record(self, row: Dict[str, Any]) -> Dict[str, Any]:
        now = utc_now().isoformat()
        stored = dict(row)
        stored["id"] = str(uuid.uuid4())
        stored["created_at"] = now
        stored["updated_at"] = now
        self._rows[stored["id"]] = stored

        logger.debug(f"Created record {stored['id']} | Visit: {stored.get('visit_id')}")
        return dict(stored)

    async def update_record(self, record_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Raises:
            KeyError: If no record with that id exists
        """
        if record_id not in self._rows:
            raise KeyError(f"Clinical record not found: {record_id}")

        stored = self._rows[record_id]
        stored.update({k: v for k, v in row.items() if k not in ("id", "created_at")})
        stored["updated_at"] = utc_now().isoformat()

        logger.debug(f"Updated record {record_id} | Visit: {stored.get('visit_id')}")
        return dict(stored)

    @property
    def record_count(self) -> int:
        return len(self._rows)


class InMemoryVisitDirectory:
    """Visit lookup backed by a dictionary of visit rows."""

    def __init__(self, visits: Optional[Dict[str, Dict[str, Any]]] = None):
        self._visits: Dict[str, Dict[str, Any]] = dict(visits or {})

    def add_visit(self, visit_id: str, **fields: Any) -> None:
        self._visits[visit_id] = {"id": visit_id, **fields}

    async def get_visit(self, visit_id: str) -> Optional[Dict[str, Any]]:
        visit = self._visits.get(visit_id)
        return dict(visit) if visit is not None else None
