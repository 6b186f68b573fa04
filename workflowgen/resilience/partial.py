"""Partial generation: run pipeline stages and keep whatever succeeds.

Required stages stop the pipeline when they fail. Optional stages record
their error and a warning, and the pipeline moves on. The caller decides how
to present a result that completed with optional failures; ``is_usable``
only reports whether any error was recorded.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from workflowgen.errors import (
    AggregateGenerationError,
    ErrorCode,
    GenerationError,
    GenerationStage,
    to_generation_error,
)
from workflowgen.resilience.failures import FailureLog
from workflowgen.resilience.result import GenerationResult

logger = logging.getLogger(__name__)


@dataclass
class PartialGenerationStage:
    """A named pipeline stage."""
    name: GenerationStage
    operation: Callable[[], Awaitable[Any]]
    required: bool = True

    def __post_init__(self) -> None:
        self.name = GenerationStage(self.name)


@dataclass
class PartialGenerationReport:
    """Outcome of a pipeline run that reached the end."""
    completed_stages: list[GenerationStage] = field(default_factory=list)
    errors: list[GenerationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    outputs: dict[GenerationStage, Any] = field(default_factory=dict)

    @property
    def is_usable(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "completed_stages": [s.value for s in self.completed_stages],
            "errors": [e.to_log_format() for e in self.errors],
            "warnings": self.warnings,
            "is_usable": self.is_usable,
        }


@dataclass
class PartialGenerationFailure:
    """What was completed before a required stage failed."""
    completed_stages: list[GenerationStage]
    failed_stage: GenerationStage
    errors: list[GenerationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    outputs: dict[GenerationStage, Any] = field(default_factory=dict)


class PartialGenerationCoordinator:
    """Runs stages in order, tolerating optional-stage failures."""

    def __init__(self, enabled: bool = True, failure_log: FailureLog | None = None) -> None:
        self.enabled = enabled
        self.failure_log = failure_log if failure_log is not None else FailureLog()

    async def run(
        self, stages: list[PartialGenerationStage]
    ) -> GenerationResult[PartialGenerationReport]:
        if not self.enabled:
            return self._disabled_result(stages)

        report = PartialGenerationReport()

        for stage in stages:
            try:
                output = await stage.operation()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                error = to_generation_error(e, stage.name)
                self.failure_log.record(error)

                if stage.required:
                    report.warnings.append(
                        f"Required stage '{stage.name.value}' failed: {error.message}"
                    )
                    logger.error(
                        f"Stopping generation: required stage '{stage.name.value}' failed",
                        extra={"stage": stage.name, "error_code": error.code},
                    )
                    errors = report.errors + [error]
                    return GenerationResult.fail(
                        AggregateGenerationError(errors),
                        warnings=report.warnings,
                        partial_data=PartialGenerationFailure(
                            completed_stages=list(report.completed_stages),
                            failed_stage=stage.name,
                            errors=errors,
                            warnings=list(report.warnings),
                            outputs=dict(report.outputs),
                        ),
                    )

                report.errors.append(error)
                report.warnings.append(
                    f"Optional stage '{stage.name.value}' failed: {error.message}"
                )
                logger.warning(
                    f"Continuing after optional stage '{stage.name.value}' failed",
                    extra={"stage": stage.name, "error_code": error.code},
                )
                continue

            report.completed_stages.append(stage.name)
            report.outputs[stage.name] = output
            logger.debug(f"Stage '{stage.name.value}' completed", extra={"stage": stage.name})

        if report.errors:
            logger.info(
                f"Generation completed with {len(report.errors)} optional stage failure(s)"
            )
        return GenerationResult.ok(report, warnings=report.warnings)

    def _disabled_result(
        self, stages: list[PartialGenerationStage]
    ) -> GenerationResult[PartialGenerationReport]:
        # No stage runs: the aggregate carries a single error tagged with the
        # first stage, or nothing when there are no stages.
        if not stages:
            return GenerationResult.fail(AggregateGenerationError([]))

        first = stages[0]
        error = GenerationError(
            f"Partial generation is disabled; stage '{first.name.value}' was not attempted",
            code=ErrorCode.GENERATION_ERROR,
            component="partial-generation",
            stage=first.name,
            recoverable=False,
        )
        return GenerationResult.fail(AggregateGenerationError([error]))
