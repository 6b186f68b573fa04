"""Result type returned by every recovery entry point."""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from workflowgen.errors import GenerationError

T = TypeVar("T")


@dataclass
class GenerationResult(Generic[T]):
    """Outcome of a fallible generation operation.

    ``warnings`` explains any degraded path that was taken, even on success.
    ``partial_data`` is only set on failures that still produced something.
    """

    success: bool
    data: T | None = None
    error: GenerationError | None = None
    warnings: list[str] = field(default_factory=list)
    partial_data: Any = None

    @classmethod
    def ok(cls, data: T, warnings: list[str] | None = None) -> "GenerationResult[T]":
        return cls(success=True, data=data, warnings=list(warnings or []))

    @classmethod
    def fail(
        cls,
        error: GenerationError,
        warnings: list[str] | None = None,
        partial_data: Any = None,
    ) -> "GenerationResult[T]":
        return cls(
            success=False,
            error=error,
            warnings=list(warnings or []),
            partial_data=partial_data,
        )

    def unwrap(self) -> T:
        """Return ``data`` or raise the stored error."""
        if not self.success:
            raise self.error or GenerationError("Generation failed without an error")
        return self.data  # type: ignore[return-value]

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "warnings": self.warnings,
            "error": self.error.to_log_format() if self.error else None,
        }
