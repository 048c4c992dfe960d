"""
Generation Layer - Prompt, Provider Call, Parsing

This layer turns an assembled context into parsed suggestions:
compile the prompt, call the provider, parse the raw text.

Submodules:
    prompt_builder.py     → Prompt construction and templates
    generation_adapter.py → Provider-agnostic generation
    response_parser.py    → Raw text → AgentSuggestion list

Dependency Rule:
    This layer depends on: core, clients (LLM)
    This layer is used by: pipeline (orchestrator)
"""

from clinical_suggestion_pipeline.generation.prompt_builder import PromptBuilder
from clinical_suggestion_pipeline.generation.generation_adapter import GenerationAdapter
from clinical_suggestion_pipeline.generation.response_parser import ResponseParser

__all__ = [
    "PromptBuilder",
    "GenerationAdapter",
    "ResponseParser",
]
