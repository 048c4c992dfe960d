"""
Context Layer - Memory Assembly

Submodules:
    context_assembler.py → Raw memory collections → AgentContext

Dependency Rule:
    This layer depends on: core, repository (MemoryStore protocol)
    This layer is used by: pipeline
"""

from clinical_suggestion_pipeline.context.context_assembler import ContextAssembler

__all__ = [
    "ContextAssembler",
]
