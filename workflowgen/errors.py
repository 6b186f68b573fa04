"""Generation error taxonomy.

Every failure inside the template engine is expressed as one of the
``GenerationError`` subclasses below. Each kind pins its own code, owning
component, pipeline stage and recoverability; the recovery layer reads
``recoverable`` to decide whether a retry or a fallback is worth attempting.
"""

from datetime import datetime
from enum import Enum
from typing import Any


class GenerationStage(str, Enum):
    """Stages of the workflow generation pipeline."""
    INITIALIZATION = "initialization"
    TEMPLATE_LOADING = "template-loading"
    TEMPLATE_COMPILATION = "template-compilation"
    FRAMEWORK_PROCESSING = "framework-processing"
    STEP_GENERATION = "step-generation"
    OPTIMIZATION = "optimization"
    RENDERING = "rendering"
    VALIDATION = "validation"
    OUTPUT = "output"


class ErrorCode(str, Enum):
    """Stable codes used in logs and API payloads."""
    GENERATION_ERROR = "GENERATION_ERROR"
    TEMPLATE_LOAD_ERROR = "TEMPLATE_LOAD_ERROR"
    TEMPLATE_COMPILATION_ERROR = "TEMPLATE_COMPILATION_ERROR"
    FRAMEWORK_DATA_ERROR = "FRAMEWORK_DATA_ERROR"
    STEP_GENERATION_ERROR = "STEP_GENERATION_ERROR"
    OPTIMIZATION_ERROR = "OPTIMIZATION_ERROR"
    RENDERING_ERROR = "RENDERING_ERROR"
    WORKFLOW_VALIDATION_ERROR = "WORKFLOW_VALIDATION_ERROR"
    OUTPUT_ERROR = "OUTPUT_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    MULTIPLE_ERRORS = "MULTIPLE_ERRORS"


class GenerationError(Exception):
    """Base class for all generation failures.

    Subclasses fix ``code``, ``component``, ``stage`` and ``recoverable`` as
    class attributes. The base class can be raised directly for ad hoc
    failures (input validation, wrapped unexpected exceptions), in which case
    those values are taken from the constructor.
    """

    code: ErrorCode = ErrorCode.GENERATION_ERROR
    component: str = "generator"
    stage: GenerationStage | None = GenerationStage.INITIALIZATION
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        component: str | None = None,
        stage: GenerationStage | None = None,
        recoverable: bool | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if component is not None:
            self.component = component
        if stage is not None:
            self.stage = stage
        if recoverable is not None:
            self.recoverable = recoverable
        self.context: dict[str, Any] = dict(context or {})
        self.timestamp = datetime.now()
        if cause is not None:
            self.__cause__ = cause
            self.context.setdefault("cause", str(cause))

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def cause_chain(self) -> list[BaseException]:
        """Return the chain of underlying exceptions, innermost last."""
        chain = []
        current = self.__cause__
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__
        return chain

    def to_log_format(self) -> dict[str, Any]:
        """Structured representation for log sinks."""
        data: dict[str, Any] = {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code.value,
            "component": self.component,
            "stage": self.stage.value if self.stage else None,
            "recoverable": self.recoverable,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.__cause__ is not None:
            data["cause"] = f"{type(self.__cause__).__name__}: {self.__cause__}"
        return data

    def get_user_message(self) -> str:
        return self.message

    def get_recovery_actions(self) -> list[str]:
        return [
            "Review the generation logs for more detail",
            "Retry the generation with verbose logging enabled",
        ]


class TemplateLoadError(GenerationError):
    """A template could not be read from storage."""

    code = ErrorCode.TEMPLATE_LOAD_ERROR
    component = "template-manager"
    stage = GenerationStage.TEMPLATE_LOADING
    recoverable = True

    def __init__(
        self,
        template_name: str,
        template_path: str,
        cause: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ):
        message = f"Failed to load template '{template_name}' from '{template_path}'"
        if cause is not None:
            message += f": {cause}"
        ctx = {"template_name": template_name, "template_path": template_path}
        ctx.update(context or {})
        super().__init__(message, context=ctx, cause=cause)
        self.template_name = template_name
        self.template_path = template_path

    def get_user_message(self) -> str:
        return f"The workflow template '{self.template_name}' could not be loaded."

    def get_recovery_actions(self) -> list[str]:
        return [
            "Check if the template file exists at the specified path",
            "Verify the template directory setting points at your templates",
            "Use a fallback template if available",
        ]


class TemplateCompilationError(GenerationError):
    """A template was read but could not be parsed or failed validation."""

    code = ErrorCode.TEMPLATE_COMPILATION_ERROR
    component = "template-compiler"
    stage = GenerationStage.TEMPLATE_COMPILATION
    recoverable = True

    def __init__(
        self,
        template_name: str,
        compilation_error: str,
        cause: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ):
        ctx = {"template_name": template_name, "compilation_error": compilation_error}
        ctx.update(context or {})
        super().__init__(
            f"Failed to compile template '{template_name}': {compilation_error}",
            context=ctx,
            cause=cause,
        )
        self.template_name = template_name

    def get_user_message(self) -> str:
        return f"The workflow template '{self.template_name}' contains errors and could not be used."

    def get_recovery_actions(self) -> list[str]:
        return [
            "Check the template syntax (YAML or JSON)",
            "Make sure every job has a name, a runner and at least one step",
            "Use a fallback template if available",
        ]


class FrameworkDataError(GenerationError):
    """Detected framework information is incomplete or inconsistent."""

    code = ErrorCode.FRAMEWORK_DATA_ERROR
    component = "framework-processor"
    stage = GenerationStage.FRAMEWORK_PROCESSING
    recoverable = True

    def __init__(
        self,
        message: str,
        framework_name: str,
        validation_errors: list[str] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(
            message,
            context={
                "framework_name": framework_name,
                "validation_errors": list(validation_errors or []),
            },
            cause=cause,
        )
        self.framework_name = framework_name

    def get_user_message(self) -> str:
        return f"The detected information for '{self.framework_name}' is incomplete."

    def get_recovery_actions(self) -> list[str]:
        return [
            "Describe the framework and its version more explicitly in the README",
            "Fall back to the language-level template for this project",
        ]


class StepGenerationError(GenerationError):
    """Workflow steps for a framework could not be produced."""

    code = ErrorCode.STEP_GENERATION_ERROR
    component = "step-generator"
    stage = GenerationStage.STEP_GENERATION
    recoverable = True

    def __init__(
        self,
        step_type: str,
        framework: str,
        cause: BaseException | None = None,
    ):
        message = f"Failed to generate {step_type} steps for {framework}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(
            message,
            context={"step_type": step_type, "framework": framework},
            cause=cause,
        )
        self.step_type = step_type
        self.framework = framework

    def get_user_message(self) -> str:
        return f"The {self.step_type} steps for {self.framework} could not be generated."

    def get_recovery_actions(self) -> list[str]:
        return [
            f"Add the {self.step_type} commands to the README so they can be detected",
            "Edit the generated workflow and fill in the missing steps by hand",
        ]


class OptimizationError(GenerationError):
    """An optional workflow optimization (caching, matrix, ...) failed."""

    code = ErrorCode.OPTIMIZATION_ERROR
    component = "workflow-optimizer"
    stage = GenerationStage.OPTIMIZATION
    recoverable = True

    def __init__(self, optimization_type: str, reason: str, cause: BaseException | None = None):
        super().__init__(
            f"Failed to apply {optimization_type} optimization: {reason}",
            context={"optimization_type": optimization_type, "reason": reason},
            cause=cause,
        )
        self.optimization_type = optimization_type

    def get_user_message(self) -> str:
        return f"The {self.optimization_type} optimization was skipped."

    def get_recovery_actions(self) -> list[str]:
        return [
            "The workflow is still usable without this optimization",
            f"Configure {self.optimization_type} manually if you need it",
        ]


class RenderingError(GenerationError):
    """The workflow document could not be serialized."""

    code = ErrorCode.RENDERING_ERROR
    component = "yaml-renderer"
    stage = GenerationStage.RENDERING
    recoverable = False

    def __init__(self, output_type: str, cause: BaseException | None = None):
        message = f"Failed to render {output_type}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message, context={"output_type": output_type}, cause=cause)
        self.output_type = output_type

    def get_user_message(self) -> str:
        return "The workflow file could not be written out."

    def get_recovery_actions(self) -> list[str]:
        return [
            "Report this problem together with the generation logs",
            "Try again with a simpler workflow type",
        ]


class WorkflowValidationError(GenerationError):
    """The generated workflow failed schema validation."""

    code = ErrorCode.WORKFLOW_VALIDATION_ERROR
    component = "workflow-validator"
    stage = GenerationStage.VALIDATION
    recoverable = False

    def __init__(
        self,
        message: str,
        validation_errors: list[str] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(
            message,
            context={"validation_errors": list(validation_errors or [])},
            cause=cause,
        )
        self.validation_errors = list(validation_errors or [])

    def get_user_message(self) -> str:
        return "The generated workflow did not pass validation."

    def get_recovery_actions(self) -> list[str]:
        return [
            "Review the reported validation problems",
            "Regenerate using a generic template",
        ]


class OutputError(GenerationError):
    """The workflow file could not be written to its destination."""

    code = ErrorCode.OUTPUT_ERROR
    component = "output-handler"
    stage = GenerationStage.OUTPUT
    recoverable = True

    def __init__(self, output_path: str, cause: BaseException | None = None):
        message = f"Failed to write workflow to '{output_path}'"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message, context={"output_path": output_path}, cause=cause)
        self.output_path = output_path

    def get_user_message(self) -> str:
        return f"The workflow could not be saved to {self.output_path}."

    def get_recovery_actions(self) -> list[str]:
        return [
            "Check that the output directory exists and is writable",
            "Choose a different output directory",
        ]


class AggregateGenerationError(GenerationError):
    """Several generation errors reported together."""

    code = ErrorCode.MULTIPLE_ERRORS
    component = "generator"
    stage = None
    recoverable = False

    def __init__(self, errors: list[GenerationError], message: str | None = None):
        self.errors = list(errors)
        if message is None:
            message = f"Multiple generation errors occurred ({len(self.errors)} errors)"
            if self.errors:
                message += ": " + "; ".join(e.message for e in self.errors[:3])
        super().__init__(message, context={"error_count": len(self.errors)})
        self.recoverable = bool(self.errors) and all(e.recoverable for e in self.errors)

    def get_errors_by_stage(self) -> dict[str, list[GenerationError]]:
        grouped: dict[str, list[GenerationError]] = {}
        for error in self.errors:
            key = error.stage.value if error.stage else "unknown"
            grouped.setdefault(key, []).append(error)
        return grouped

    def get_recoverable_errors(self) -> list[GenerationError]:
        return [e for e in self.errors if e.recoverable]

    def get_critical_errors(self) -> list[GenerationError]:
        return [e for e in self.errors if not e.recoverable]

    def to_log_format(self) -> dict[str, Any]:
        data = super().to_log_format()
        data["errors"] = [e.to_log_format() for e in self.errors]
        return data

    def get_user_message(self) -> str:
        if not self.errors:
            return "Workflow generation did not complete."
        return f"Workflow generation ran into {len(self.errors)} problem(s): " + "; ".join(
            e.get_user_message() for e in self.errors
        )

    def get_recovery_actions(self) -> list[str]:
        actions: list[str] = []
        for error in self.errors:
            for action in error.get_recovery_actions():
                if action not in actions:
                    actions.append(action)
        return actions or super().get_recovery_actions()


def to_generation_error(
    error: BaseException,
    stage: GenerationStage,
    component: str = "generator",
) -> GenerationError:
    """Return ``error`` unchanged if it is already typed, else wrap it."""
    if isinstance(error, GenerationError):
        return error
    return GenerationError(
        str(error) or type(error).__name__,
        code=ErrorCode.UNEXPECTED_ERROR,
        component=component,
        stage=stage,
        recoverable=False,
        context={"exception_type": type(error).__name__},
        cause=error,
    )
