"""
Clinical Suggestion Pipeline

Turns a patient visit's accumulated memory (contextual, persistent and
semantic notes) into vetted, structured clinical suggestions, merges
accepted suggestions into the visit's clinical record and records an
auditable trail and longitudinal quality metrics.

Architecture Overview:
    clinical_suggestion_pipeline/
    ├── core/           → Domain models, enums, constants, configuration (Layer 0 - Pure)
    ├── repository/     → Async storage protocols + in-memory stores (Layer 1 - Infrastructure)
    ├── clients/        → LLM client abstractions (Layer 1 - Infrastructure)
    ├── context/        → Memory → AgentContext assembly (Layer 2 - Business Logic)
    ├── generation/     → Prompt, provider call, parsing (Layer 2 - Business Logic)
    ├── validation/     → Suggestion validation (Layer 2 - Business Logic)
    ├── audit/          → Audit log, usage metrics, feedback (Layer 2 - Business Logic)
    ├── integration/    → Clinical record merging (Layer 3 - Business Logic)
    └── pipeline.py     → Main orchestrator (Layer 4 - Public API)

Quick Start:
    from clinical_suggestion_pipeline import SuggestionPipeline, PipelineConfiguration

    pipeline = SuggestionPipeline.from_config(PipelineConfiguration(llm_provider="mock"))
    result = await pipeline.run(memory_context)
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================

# Main Entry Points
from clinical_suggestion_pipeline.pipeline import SuggestionPipeline, RunParameters
from clinical_suggestion_pipeline.integration import EMRIntegrationEngine

# Services
from clinical_suggestion_pipeline.audit import (
    AuditLogger,
    UsageAnalyticsService,
    SuggestionFeedbackService,
)

# Core Models
from clinical_suggestion_pipeline.core.models import (
    AgentContext,
    AgentSuggestion,
    AgentRunResult,
    ClinicalRecord,
    ValidationResult,
)

# Enums
from clinical_suggestion_pipeline.core.enums import (
    MemoryTier,
    SuggestionType,
    RecordSection,
    FeedbackType,
    MetricType,
)

# Configuration
from clinical_suggestion_pipeline.core.config import PipelineConfiguration

__all__ = [
    # Main Entry Points (use these!)
    "SuggestionPipeline",
    "RunParameters",
    "EMRIntegrationEngine",
    # Services
    "AuditLogger",
    "UsageAnalyticsService",
    "SuggestionFeedbackService",
    # Core Models
    "AgentContext",
    "AgentSuggestion",
    "AgentRunResult",
    "ClinicalRecord",
    "ValidationResult",
    # Enums
    "MemoryTier",
    "SuggestionType",
    "RecordSection",
    "FeedbackType",
    "MetricType",
    # Configuration
    "PipelineConfiguration",
]
