from datetime import datetime

import pytest

from clinical_suggestion_pipeline.context import ContextAssembler
from clinical_suggestion_pipeline.core.enums import MemoryTier
from clinical_suggestion_pipeline.repository import InMemoryMemoryStore


class TestAssemble:
    """ContextAssembler.assemble with literal memory collections."""

    @pytest.fixture
    def assembler(self):
        return ContextAssembler()

    def test_blocks_from_all_tiers(self, assembler, memory_context):
        context = assembler.assemble(memory_context)

        assert sorted(context.block_ids) == ["ctx-1", "per-1", "sem-1"]
        assert context.visit_id == "visit-1"
        assert context.patient_id == "patient-1"
        assert [b.id for b in context.blocks_for_tier(MemoryTier.SEMANTIC)] == ["sem-1"]

    def test_unusable_records_are_dropped(self, assembler):
        context = assembler.assemble(
            {
                "contextual": [
                    {"id": "", "content": "no id"},
                    {"id": "b1", "content": "   "},
                    "not a record",
                    {"id": "b2", "content": "Fiebre de 38.7"},
                ],
                "persistent": [],
                "semantic": [],
            }
        )

        assert context.block_ids == ["b2"]

    def test_duplicate_ids_keep_persistent_first(self, assembler):
        context = assembler.assemble(
            {
                "contextual": [{"id": "dup", "content": "contextual copy"}],
                "persistent": [{"id": "dup", "content": "persistent copy"}],
                "semantic": [{"id": "dup", "content": "semantic copy"}],
            }
        )

        assert len(context.blocks) == 1
        assert context.blocks[0].tier is MemoryTier.PERSISTENT
        assert context.blocks[0].content == "persistent copy"

    def test_source_envelope_and_camel_case_identity(self, assembler):
        context = assembler.assemble(
            {
                "contextual": {"source": "firestore", "data": [{"id": "b1", "content": "x", "visitId": "v9"}]},
                "persistent": {"source": "firestore", "data": [{"id": "b2", "content": "y", "patientId": "p9"}]},
                "semantic": [],
            }
        )

        assert context.visit_id == "v9"
        assert context.patient_id == "p9"

    def test_semantic_records_do_not_provide_identity(self, assembler):
        context = assembler.assemble(
            {
                "contextual": [],
                "persistent": [],
                "semantic": [{"id": "s1", "content": "z", "visit_id": "v1", "patient_id": "p1"}],
            }
        )

        assert context.visit_id == ""
        assert context.patient_id == ""

    def test_created_at_is_parsed(self, assembler):
        context = assembler.assemble(
            {
                "contextual": [{"id": "b1", "content": "x", "createdAt": "2024-03-01T10:00:00Z"}],
                "persistent": [],
                "semantic": [],
            }
        )

        assert context.blocks[0].created_at == datetime.fromisoformat("2024-03-01T10:00:00+00:00")

    def test_extra_fields_are_dropped(self, assembler):
        context = assembler.assemble(
            {
                "contextual": [{"id": "b1", "content": "x", "embedding": [0.1, 0.2], "importance": 5}],
                "persistent": [],
                "semantic": [],
            }
        )

        assert context.blocks[0].to_dict() == {
            "id": "b1",
            "tier": "contextual",
            "content": "x",
            "created_at": None,
        }


class TestStoreBackedAssembly:
    """Loading tiers from a MemoryStore."""

    @pytest.mark.asyncio
    async def test_assemble_from_store(self):
        store = InMemoryMemoryStore(
            {
                "visit-7": {
                    "contextual": [{"id": "c1", "content": "Dolor torácico"}],
                    "semantic": [{"id": "s1", "content": "Protocolo de dolor torácico"}],
                }
            }
        )
        assembler = ContextAssembler(store)

        context = await assembler.assemble_from_store("visit-7")

        assert sorted(context.block_ids) == ["c1", "s1"]
        assert context.visit_id == "visit-7"

    @pytest.mark.asyncio
    async def test_load_memory_context_has_every_tier(self):
        assembler = ContextAssembler(InMemoryMemoryStore())

        memory_context = await assembler.load_memory_context("unknown")

        assert memory_context == {"contextual": [], "persistent": [], "semantic": []}

    @pytest.mark.asyncio
    async def test_missing_store_raises(self):
        with pytest.raises(RuntimeError):
            await ContextAssembler().load_memory_context("visit-1")
