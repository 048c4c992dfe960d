"""
Clinical Suggestion Pipeline - Main Orchestrator

This is the PUBLIC API entry point for suggestion generation. It
coordinates the context, generation and validation layers and records
generation-volume metrics.

Architecture Diagram:
    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SuggestionPipeline                          │
    │                         (This Orchestrator)                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   ┌───────────┐   ┌──────────┐   ┌───────────┐   ┌──────────┐       │
    │   │ Assembler │ → │  Prompt  │ → │  Adapter  │ → │  Parser  │ → (Validator)
    │   └───────────┘   └──────────┘   └───────────┘   └──────────┘       │
    │                                                                     │
    │   on success → metrics (generated, warnings) + audit event          │
    │   on failure → agent_execution_failed metric, empty result          │
    └─────────────────────────────────────────────────────────────────────┘

Failure Contract:
    `run` NEVER raises. Callers treat an empty result as "nothing to show".

Usage:
    from clinical_suggestion_pipeline import SuggestionPipeline

    pipeline = SuggestionPipeline.from_config(PipelineConfiguration(llm_provider="mock"))
    result = await pipeline.run(memory_context)
"""

import asyncio
from collections import Counter
from dataclasses import dataclass, replace
from typing import Any, List, Mapping, Optional

from loguru import logger

from clinical_suggestion_pipeline.audit.audit_logger import AuditLogger
from clinical_suggestion_pipeline.audit.usage_analytics import UsageAnalyticsService
from clinical_suggestion_pipeline.context.context_assembler import ContextAssembler
from clinical_suggestion_pipeline.core.config import PipelineConfiguration
from clinical_suggestion_pipeline.core.constants import EVENT_SUGGESTIONS_GENERATED, LLM_SOURCE_TAG
from clinical_suggestion_pipeline.core.enums import MemoryTier, MetricType, SuggestionType
from clinical_suggestion_pipeline.core.models import AgentRunResult, AgentSuggestion, AuditEvent
from clinical_suggestion_pipeline.generation.generation_adapter import GenerationAdapter
from clinical_suggestion_pipeline.generation.prompt_builder import PromptBuilder
from clinical_suggestion_pipeline.generation.response_parser import ResponseParser
from clinical_suggestion_pipeline.repository.memory_store import InMemoryMemoryStore, MemoryStore
from clinical_suggestion_pipeline.validation.suggestion_validator import SuggestionValidator


# =============================================================================
# STAGE 1: RUN PARAMETERS
# =============================================================================


@dataclass
class RunParameters:
    """
    Per-run options.

    Attributes:
        user_id: Who triggered the run (recorded on metrics and audit)
        visit_id: Visit id to use when the context does not carry one
        validate: Attach validation verdicts (None → config default)
        drop_invalid: Remove suggestions that fail validation
    """

    user_id: str = "anonymous"
    visit_id: Optional[str] = None
    validate: Optional[bool] = None
    drop_invalid: bool = False


# =============================================================================
# STAGE 2: PIPELINE CLASS
# =============================================================================


class SuggestionPipeline:
    """
    Main orchestrator for clinical suggestion generation.

    What it does:
        Turns a visit's memory into parsed (and optionally validated)
        suggestions, contains every failure and records how many
        suggestions and warnings were generated.

    Why it exists:
        1. Simple API: one coroutine to call per visit
        2. Encapsulation: only this class knows the whole chain
        3. Safety: a failing provider or store never breaks the caller

    How it works:
        STAGE 1: Short-circuit unless all three memory tiers are present
        STAGE 2: Assemble → prompt → generate → parse
        STAGE 3: Validate (optional), drop invalid (optional)
        STAGE 4: Record metrics and the audit event

    Example:
        >>> pipeline = SuggestionPipeline.from_config(PipelineConfiguration(llm_provider="mock"))
        >>> result = await pipeline.run(memory_context, params=RunParameters(user_id="u1"))
        >>> len(result.suggestions) > 0
        True
    """

    def __init__(
        self,
        adapter: GenerationAdapter,
        config: Optional[PipelineConfiguration] = None,
        assembler: Optional[ContextAssembler] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        parser: Optional[ResponseParser] = None,
        validator: Optional[SuggestionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        analytics: Optional[UsageAnalyticsService] = None,
    ):
        """
        Initialize pipeline with a generation adapter and optional overrides.

        Args:
            adapter: Generation adapter with at least one provider
            config: Pipeline configuration (defaults if omitted)
            assembler: Optional assembler override (for testing)
            prompt_builder: Optional prompt builder override
            parser: Optional parser override (built from config if omitted)
            validator: Optional validator override
            audit_logger: Audit trail (in-process if omitted)
            analytics: Usage metrics (in-memory if omitted)
        """
        self._config = config or PipelineConfiguration()
        self._adapter = adapter
        self._assembler = assembler or ContextAssembler()
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._parser = parser or ResponseParser(
            coerce_unknown_type_to_info=self._config.coerce_unknown_type_to_info,
            excerpt_length=self._config.excerpt_length,
        )
        self._validator = validator or SuggestionValidator()
        self._audit = audit_logger or AuditLogger()
        self._analytics = analytics or UsageAnalyticsService()

    # =========================================================================
    # STAGE 3: PUBLIC API
    # =========================================================================

    async def run(
        self,
        memory_context: Optional[Mapping[str, Any]],
        provider: Optional[str] = None,
        params: Optional[RunParameters] = None,
    ) -> AgentRunResult:
        """
        Generate suggestions for a visit's memory. Never raises.

        Args:
            memory_context: Mapping of tier name → records (all three tiers)
            provider: Provider id (defaults to the adapter's default)
            params: Per-run options

        Returns:
            AgentRunResult (empty on incomplete input or any failure)
        """
        params = params or RunParameters()

        # =====================================================================
        # STAGE 3.1: INPUT GUARD
        # =====================================================================
        if not self._has_all_tiers(memory_context):
            logger.warning("Incomplete memory context | Skipping suggestion generation")
            return AgentRunResult.empty()

        # =====================================================================
        # STAGE 3.2: ASSEMBLE → PROMPT → GENERATE → PARSE
        # =====================================================================
        visit_id = params.visit_id
        try:
            context = self._assembler.assemble(memory_context)
            visit_id = params.visit_id or context.visit_id or None

            prompt = self._prompt_builder.build(context)
            raw = await self._adapter.generate(prompt, provider)
            suggestions = self._parser.parse(raw, context.block_ids, source=LLM_SOURCE_TAG)

        except Exception as e:
            logger.error(f"Suggestion generation failed | Visit: {visit_id or '-'} | {type(e).__name__}: {e}")
            await self._record_failure(visit_id, params.user_id, provider, e)
            return AgentRunResult.empty()

        # =====================================================================
        # STAGE 3.3: VALIDATION (OPTIONAL)
        # =====================================================================
        should_validate = params.validate if params.validate is not None else self._config.validate_suggestions
        validation = []

        if should_validate or params.drop_invalid:
            validation = self._validator.evaluate_all(suggestions)
            if params.drop_invalid:
                suggestions = [s for s, verdict in zip(suggestions, validation) if verdict.is_valid]

        # =====================================================================
        # STAGE 3.4: METRICS AND AUDIT
        # =====================================================================
        audit_logs: List[AuditEvent] = []
        if suggestions and visit_id:
            audit_logs = await self._record_generation(suggestions, visit_id, params.user_id, provider)

        logger.info(
            f"Suggestion run complete | Visit: {visit_id or '-'} | "
            f"Suggestions: {len(suggestions)} | Validated: {bool(validation)}"
        )
        return AgentRunResult(suggestions=suggestions, audit_logs=audit_logs, validation=validation)

    async def run_for_visit(
        self,
        visit_id: str,
        provider: Optional[str] = None,
        params: Optional[RunParameters] = None,
    ) -> AgentRunResult:
        """Load the visit's memory through the assembler's store, then `run`. Never raises."""
        params = params or RunParameters()
        if not params.visit_id:
            params = replace(params, visit_id=visit_id)

        try:
            memory_context = await self._assembler.load_memory_context(visit_id)
        except Exception as e:
            logger.error(f"Loading memory failed | Visit: {visit_id} | {type(e).__name__}: {e}")
            await self._record_failure(visit_id, params.user_id, provider, e)
            return AgentRunResult.empty()

        return await self.run(memory_context, provider=provider, params=params)

    # =========================================================================
    # STAGE 4: FACTORY METHODS
    # =========================================================================

    @classmethod
    def from_config(
        cls,
        config: Optional[PipelineConfiguration] = None,
        memory_store: Optional[MemoryStore] = None,
        audit_logger: Optional[AuditLogger] = None,
        analytics: Optional[UsageAnalyticsService] = None,
    ) -> "SuggestionPipeline":
        """
        Wire the default components from configuration.

        In-memory repositories are used wherever none is injected.
        """
        config = config or PipelineConfiguration.from_environment()

        return cls(
            adapter=GenerationAdapter.from_config(config),
            config=config,
            assembler=ContextAssembler(memory_store if memory_store is not None else InMemoryMemoryStore()),
            audit_logger=audit_logger,
            analytics=analytics,
        )

    # =========================================================================
    # STAGE 5: PRIVATE HELPERS
    # =========================================================================

    @staticmethod
    def _has_all_tiers(memory_context: Any) -> bool:
        if not isinstance(memory_context, Mapping):
            return False
        return all(memory_context.get(tier.value) is not None for tier in MemoryTier)

    async def _record_generation(
        self,
        suggestions: List[AgentSuggestion],
        visit_id: str,
        user_id: str,
        provider: Optional[str],
    ) -> List[AuditEvent]:
        """Generation metrics (failures contained) plus the audit event."""
        count = len(suggestions)
        type_counts = Counter(suggestion.type for suggestion in suggestions)
        warnings = type_counts.get(SuggestionType.WARNING.value, 0)
        provider_id = provider or self._adapter.default_provider

        try:
            await self._analytics.track(
                MetricType.SUGGESTIONS_GENERATED,
                user_id,
                visit_id,
                value=count,
                estimated_time_saved_minutes=count * self._config.time_saved_per_suggestion,
                details={"provider": provider_id, "by_type": dict(type_counts)},
            )
            if warnings:
                await self._analytics.track(MetricType.WARNINGS_GENERATED, user_id, visit_id, value=warnings)
        except Exception as e:
            logger.error(f"Recording generation metrics failed | Visit: {visit_id} | {e}")

        event = self._audit.log(
            EVENT_SUGGESTIONS_GENERATED,
            {
                "visit_id": visit_id,
                "user_id": user_id,
                "provider": provider_id,
                "count": count,
                "suggestion_ids": [suggestion.id for suggestion in suggestions],
            },
        )
        return [event] if event is not None else []

    async def _record_failure(
        self,
        visit_id: Optional[str],
        user_id: str,
        provider: Optional[str],
        error: Exception,
    ) -> None:
        """agent_execution_failed metric when the visit is known; its own failure is contained."""
        if not visit_id:
            return

        try:
            await self._analytics.track(
                MetricType.AGENT_EXECUTION_FAILED,
                user_id,
                visit_id,
                value=1,
                details={
                    "provider": provider or self._adapter.default_provider,
                    "error_type": type(error).__name__,
                    "error": str(error),
                },
            )
        except Exception as e:
            logger.error(f"Recording failure metric failed | Visit: {visit_id} | {e}")

    # =========================================================================
    # STAGE 6: PROPERTIES
    # =========================================================================

    @property
    def config(self) -> PipelineConfiguration:
        return self._config

    @property
    def adapter(self) -> GenerationAdapter:
        return self._adapter

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    @property
    def analytics(self) -> UsageAnalyticsService:
        return self._analytics


# =============================================================================
# STAGE 7: SMOKE TEST
# =============================================================================

if __name__ == "__main__":
    config = PipelineConfiguration(llm_provider="mock")
    config.configure_logging()

    sample_context = {
        "contextual": [
            {
                "id": "ctx-1",
                "content": "Paciente refiere dolor lumbar de 3 días de evolución",
                "visit_id": "visit-demo",
                "patient_id": "patient-demo",
            }
        ],
        "persistent": [{"id": "per-1", "content": "Antecedentes de hipertensión arterial"}],
        "semantic": [{"id": "sem-1", "content": "AINEs aumentan el riesgo de sangrado digestivo"}],
    }

    print("\n--- Clinical Suggestion Pipeline Smoke Test ---\n")

    pipeline = SuggestionPipeline.from_config(config)
    result = asyncio.run(pipeline.run(sample_context, params=RunParameters(user_id="demo", validate=True)))

    for suggestion, verdict in zip(result.suggestions, result.validation):
        status = "OK" if verdict.is_valid else "INVALID"
        print(f"[{status}] {suggestion.type:<14} {suggestion.content}")

    print(f"\nAudit events: {len(result.audit_logs)}")
