"""
Integration Layer - Clinical Record Merging

Submodules:
    emr_integration.py → Idempotent suggestion → record section merging

Dependency Rule:
    This layer depends on: core, repository, audit
    This layer is used by: callers acting on reviewer decisions
"""

from clinical_suggestion_pipeline.integration.emr_integration import EMRIntegrationEngine

__all__ = [
    "EMRIntegrationEngine",
]
