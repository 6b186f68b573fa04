"""Error recovery strategies for the generation pipeline.

``GenerationErrorRecovery`` wraps fallible async operations and returns a
``GenerationResult`` instead of raising:

- ``with_retry``: exponential backoff for recoverable errors on retryable stages
- ``with_template_fallback``: walk an ordered list of template names
- ``with_graceful_degradation``: swap in a fallback operation on failure
- ``attempt_partial_generation``: run stages, tolerating optional failures
- ``safely``: return a default value instead of failing
- ``validate_input``: turn a predicate into a typed validation failure
"""

import asyncio
import dataclasses
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from workflowgen.errors import (
    ErrorCode,
    GenerationError,
    GenerationStage,
    TemplateLoadError,
    to_generation_error,
)
from workflowgen.resilience.failures import FailureLog
from workflowgen.resilience.partial import PartialGenerationCoordinator, PartialGenerationStage
from workflowgen.resilience.result import GenerationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRYABLE_STAGES: frozenset[GenerationStage] = frozenset({
    GenerationStage.TEMPLATE_LOADING,
    GenerationStage.TEMPLATE_COMPILATION,
    GenerationStage.FRAMEWORK_PROCESSING,
    GenerationStage.STEP_GENERATION,
    GenerationStage.OPTIMIZATION,
})


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy for ``with_retry``."""
    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    backoff_multiplier: float = 2.0
    max_delay: float = 30.0  # seconds
    retryable_stages: frozenset[GenerationStage] = DEFAULT_RETRYABLE_STAGES
    timeout: float | None = None  # per attempt, seconds

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays cannot be negative")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt following ``attempt`` (1-based)."""
        delay = self.base_delay * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_delay)

    def is_retryable(self, stage: GenerationStage) -> bool:
        return stage in self.retryable_stages

    @classmethod
    def from_settings(cls, settings: Any = None) -> "RetryConfig":
        if settings is None:
            from workflowgen.config import settings
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            backoff_multiplier=settings.retry_backoff_multiplier,
            max_delay=settings.retry_max_delay,
            timeout=settings.retry_timeout,
        )


@dataclass(frozen=True)
class FallbackConfig:
    """Which degraded paths the engine may take."""
    enable_template_fallback: bool = True
    enable_partial_generation: bool = True
    enable_generic_templates: bool = True
    cache_templates: bool = True
    validate_templates: bool = True

    @classmethod
    def from_settings(cls, settings: Any = None) -> "FallbackConfig":
        if settings is None:
            from workflowgen.config import settings
        return cls(
            enable_template_fallback=settings.enable_template_fallback,
            enable_partial_generation=settings.enable_partial_generation,
            enable_generic_templates=settings.enable_generic_templates,
            cache_templates=settings.cache_templates,
            validate_templates=settings.validate_templates,
        )


DEFAULT_GENERATION_RETRY_CONFIG = RetryConfig()
DEFAULT_FALLBACK_CONFIG = FallbackConfig()


def _normalize_stages(stages: Iterable[GenerationStage | str]) -> frozenset[GenerationStage]:
    return frozenset(GenerationStage(s) for s in stages)


class GenerationErrorRecovery:
    """Retry, fallback and degradation helpers sharing one configuration."""

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        fallback_config: FallbackConfig | None = None,
        failure_log: FailureLog | None = None,
    ) -> None:
        self.retry_config = retry_config or DEFAULT_GENERATION_RETRY_CONFIG
        self.fallback_config = fallback_config or DEFAULT_FALLBACK_CONFIG
        self.failure_log = failure_log if failure_log is not None else FailureLog()

    @classmethod
    def from_settings(cls, settings: Any = None) -> "GenerationErrorRecovery":
        """Build retry, fallback and failure history limits from ``Settings``."""
        if settings is None:
            from workflowgen.config import settings
        return cls(
            retry_config=RetryConfig.from_settings(settings),
            fallback_config=FallbackConfig.from_settings(settings),
            failure_log=FailureLog(max_history=settings.failure_history_size),
        )

    # ------------------------------------------------------------------
    # Retry

    async def with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        stage: GenerationStage | str,
    ) -> GenerationResult[T]:
        """Run ``operation``, retrying recoverable failures with backoff.

        A failure is retried only when the error is recoverable and ``stage``
        is one of the configured retryable stages. At most
        ``max_attempts`` calls are made; the last error is returned as-is.
        """
        stage = GenerationStage(stage)
        config = self.retry_config
        last_error: GenerationError | None = None

        for attempt in range(1, config.max_attempts + 1):
            try:
                data = await self._run_attempt(operation, stage)
            except asyncio.CancelledError:
                raise  # Don't retry cancelled tasks
            except Exception as e:
                last_error = to_generation_error(e, stage)
                self.failure_log.record(last_error, attempt=attempt)

                if not (last_error.recoverable and config.is_retryable(stage)):
                    logger.debug(
                        f"Not retrying {stage.value}: recoverable={last_error.recoverable}, "
                        f"retryable_stage={config.is_retryable(stage)}",
                        extra={"stage": stage},
                    )
                    break
                if attempt >= config.max_attempts:
                    break

                delay = config.delay_for(attempt)
                logger.info(
                    f"Retrying {stage.value} in {delay:.2f}s (attempt {attempt + 1}/{config.max_attempts})",
                    extra={"stage": stage, "attempt": attempt + 1},
                )
                await asyncio.sleep(delay)
                continue

            warnings = []
            if attempt > 1:
                warnings.append(f"Operation succeeded after {attempt} attempts")
            return GenerationResult.ok(data, warnings)

        return GenerationResult.fail(last_error)

    async def _run_attempt(
        self,
        operation: Callable[[], Awaitable[T]],
        stage: GenerationStage,
    ) -> T:
        timeout = self.retry_config.timeout
        if timeout is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise GenerationError(
                f"Operation timed out after {timeout}s",
                code=ErrorCode.TIMEOUT_ERROR,
                component="error-recovery",
                stage=stage,
                recoverable=True,
                context={"timeout_seconds": timeout},
                cause=e,
            ) from e

    # ------------------------------------------------------------------
    # Template fallback

    async def with_template_fallback(
        self,
        operation: Callable[[str], Awaitable[T]],
        hierarchy: Iterable[str],
        stage: GenerationStage | str = GenerationStage.TEMPLATE_LOADING,
        context: dict[str, Any] | None = None,
    ) -> GenerationResult[T]:
        """Call ``operation`` with each template name until one succeeds.

        With template fallback disabled only the first name is tried. A
        non-recoverable error stops the walk immediately.
        """
        stage = GenerationStage(stage)
        names = list(dict.fromkeys(hierarchy))
        if not names:
            return GenerationResult.fail(
                TemplateLoadError("<none>", "fallback-hierarchy", context={"attempted_templates": []})
            )
        if not self.fallback_config.enable_template_fallback:
            names = names[:1]

        primary = names[0]
        attempted: list[str] = []
        errors: list[GenerationError] = []

        for name in names:
            attempted.append(name)
            try:
                data = await operation(name)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                error = e if isinstance(e, GenerationError) else TemplateLoadError(name, stage.value, cause=e)
                errors.append(error)
                logger.debug(
                    f"Template candidate '{name}' failed: {error.message}",
                    extra={"stage": stage, "template_name": name, "error_code": error.code},
                )
                if not error.recoverable:
                    self.failure_log.record(error)
                    return GenerationResult.fail(error)
                continue

            warnings = []
            if name != primary:
                warnings.append(f"Used fallback template '{name}' instead of '{primary}'")
                logger.info(
                    f"Using fallback template '{name}' instead of '{primary}'",
                    extra={"stage": stage, "template_name": name},
                )
            return GenerationResult.ok(data, warnings)

        ctx = dict(context or {})
        ctx["attempted_templates"] = attempted
        ctx["errors"] = [e.message for e in errors]
        final = TemplateLoadError(primary, "fallback-hierarchy", cause=errors[-1], context=ctx)
        self.failure_log.record(final)
        return GenerationResult.fail(final)

    # ------------------------------------------------------------------
    # Graceful degradation

    async def with_graceful_degradation(
        self,
        primary: Callable[[], Awaitable[T]],
        fallback: Callable[[], Awaitable[T]],
        stage: GenerationStage | str,
        condition: Callable[[GenerationError], bool] | None = None,
    ) -> GenerationResult[T]:
        """Run ``primary``; on failure run ``fallback`` if ``condition`` allows it."""
        stage = GenerationStage(stage)
        try:
            return GenerationResult.ok(await primary())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = to_generation_error(e, stage)

        self.failure_log.record(error)

        if condition is not None:
            try:
                allowed = bool(condition(error))
            except Exception as e:
                logger.warning(f"Fallback condition raised, not degrading: {e}", extra={"stage": stage})
                allowed = False
            if not allowed:
                return GenerationResult.fail(error)

        try:
            data = await fallback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            fallback_error = to_generation_error(e, stage)
            logger.error(
                f"Fallback for {stage.value} also failed: {fallback_error.message}",
                extra={"stage": stage, "error_code": fallback_error.code},
            )
            return GenerationResult.fail(
                error, warnings=[f"Fallback operation also failed: {fallback_error.message}"]
            )

        logger.info(f"Degraded {stage.value} to fallback operation", extra={"stage": stage})
        return GenerationResult.ok(data, [f"Used fallback operation due to {error.message}"])

    # ------------------------------------------------------------------
    # Partial generation

    async def attempt_partial_generation(self, stages: list[PartialGenerationStage]):
        """Run ``stages`` in order; see ``PartialGenerationCoordinator``."""
        coordinator = PartialGenerationCoordinator(
            enabled=self.fallback_config.enable_partial_generation,
            failure_log=self.failure_log,
        )
        return await coordinator.run(stages)

    # ------------------------------------------------------------------
    # Safe execution / validation

    async def safely(
        self,
        operation: Callable[[], Awaitable[T]],
        default_value: T,
        stage: GenerationStage | str,
        on_error: Callable[[GenerationError], Any] | None = None,
    ) -> T:
        """Return the result of ``operation`` or ``default_value`` if it fails.

        ``on_error`` (sync or async) is still told about the failure.
        """
        stage = GenerationStage(stage)
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = to_generation_error(e, stage)

        logger.warning(
            f"Using default value for {stage.value}: {error.message}",
            extra={"stage": stage, "error_code": error.code},
        )
        self.failure_log.record(error)
        if on_error is not None:
            outcome = on_error(error)
            if inspect.isawaitable(outcome):
                await outcome
        return default_value

    def validate_input(
        self,
        value: T,
        predicate: Callable[[T], bool],
        message: str,
        stage: GenerationStage | str = GenerationStage.VALIDATION,
    ) -> GenerationResult[T]:
        """Succeed with ``value`` if ``predicate`` holds, else fail with ``message``."""
        stage = GenerationStage(stage)
        if predicate(value):
            return GenerationResult.ok(value)
        return GenerationResult.fail(
            GenerationError(
                message,
                code=ErrorCode.VALIDATION_ERROR,
                component="input-validator",
                stage=stage,
                recoverable=False,
            )
        )

    # ------------------------------------------------------------------
    # Configuration

    def update_retry_config(self, **changes: Any) -> None:
        if "retryable_stages" in changes:
            changes["retryable_stages"] = _normalize_stages(changes["retryable_stages"])
        self.retry_config = dataclasses.replace(self.retry_config, **changes)

    def update_fallback_config(self, **changes: Any) -> None:
        self.fallback_config = dataclasses.replace(self.fallback_config, **changes)

    def get_configuration(self) -> dict[str, Any]:
        return {"retry": self.retry_config, "fallback": self.fallback_config}
