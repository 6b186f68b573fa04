"""Recovery patterns for workflow generation - retries, fallbacks, partial runs."""

from workflowgen.resilience.failures import FailureLog
from workflowgen.resilience.partial import (
    PartialGenerationCoordinator,
    PartialGenerationFailure,
    PartialGenerationReport,
    PartialGenerationStage,
)
from workflowgen.resilience.recovery import (
    DEFAULT_FALLBACK_CONFIG,
    DEFAULT_GENERATION_RETRY_CONFIG,
    FallbackConfig,
    GenerationErrorRecovery,
    RetryConfig,
)
from workflowgen.resilience.result import GenerationResult

__all__ = [
    "DEFAULT_FALLBACK_CONFIG",
    "DEFAULT_GENERATION_RETRY_CONFIG",
    "FailureLog",
    "FallbackConfig",
    "GenerationErrorRecovery",
    "GenerationResult",
    "PartialGenerationCoordinator",
    "PartialGenerationFailure",
    "PartialGenerationReport",
    "PartialGenerationStage",
    "RetryConfig",
]
