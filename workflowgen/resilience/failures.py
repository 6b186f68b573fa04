"""Bounded history of generation failures for debugging."""

import logging
from typing import Any

from workflowgen.errors import ErrorCode, GenerationError, GenerationStage

logger = logging.getLogger(__name__)


class FailureLog:
    """Logs and tracks generation errors seen by the recovery layer."""

    def __init__(self, max_history: int = 100):
        self._failures: list[GenerationError] = []
        self._max_history = max_history

    def __len__(self) -> int:
        return len(self._failures)

    def record(self, error: GenerationError, attempt: int | None = None) -> None:
        """Record a failure and emit it to the standard logger."""
        self._failures.append(error)
        if len(self._failures) > self._max_history:
            self._failures = self._failures[-self._max_history:]

        extra: dict[str, Any] = {
            "component": error.component,
            "error_code": error.code,
            "recoverable": error.recoverable,
        }
        if error.stage is not None:
            extra["stage"] = error.stage
        if attempt is not None:
            extra["attempt"] = attempt

        level = logging.WARNING if error.recoverable else logging.ERROR
        logger.log(level, f"{type(error).__name__}: {error.message}", extra=extra)

        if error.__cause__ is not None:
            logger.debug(f"Caused by {type(error.__cause__).__name__}: {error.__cause__}")

    def get_recent(
        self,
        stage: GenerationStage | None = None,
        code: ErrorCode | None = None,
        limit: int = 20,
    ) -> list[GenerationError]:
        """Recent failures, optionally filtered by stage or code."""
        failures = self._failures

        if stage:
            failures = [f for f in failures if f.stage == stage]
        if code:
            failures = [f for f in failures if f.code == code]

        return failures[-limit:]

    def get_stats(self) -> dict[str, Any]:
        if not self._failures:
            return {"total": 0}

        by_stage: dict[str, int] = {}
        by_code: dict[str, int] = {}
        recoverable = 0

        for f in self._failures:
            stage = f.stage.value if f.stage else "unknown"
            by_stage[stage] = by_stage.get(stage, 0) + 1
            by_code[f.code.value] = by_code.get(f.code.value, 0) + 1
            if f.recoverable:
                recoverable += 1

        return {
            "total": len(self._failures),
            "by_stage": by_stage,
            "by_code": by_code,
            "recoverable": recoverable,
            "critical": len(self._failures) - recoverable,
        }

    def clear(self) -> None:
        self._failures.clear()
