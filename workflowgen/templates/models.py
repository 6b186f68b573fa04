"""Template document schemas.

Pydantic models for the three template shapes the engine resolves
(workflow, framework and language templates) plus the optional metadata
record stored alongside them. Models are frozen: once a template leaves the
store it is shared through the cache and must not change.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ResolutionKind(str, Enum):
    """Category of template being looked up."""
    WORKFLOW = "workflow"
    FRAMEWORK = "framework"
    LANGUAGE = "language"


class GenericTier(str, Enum):
    """Complexity tiers of the synthesized generic workflow."""
    MINIMAL = "minimal"
    BASIC = "basic"
    STANDARD = "standard"
    COMPREHENSIVE = "comprehensive"


class TemplateDocument(BaseModel):
    """Base for all template documents."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    def to_document(self) -> dict[str, Any]:
        """Dump using the on-disk key names (``runs-on``, ``with``, ``if``)."""
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# Workflow Templates
# =============================================================================


class StepTemplate(TemplateDocument):
    """A single workflow step."""
    name: str
    uses: str | None = None
    run: str | None = None
    with_: dict[str, Any] | None = Field(default=None, alias="with")
    if_: str | None = Field(default=None, alias="if")
    env: dict[str, str] | None = None


class JobTemplate(TemplateDocument):
    """A workflow job."""
    name: str
    runs_on: str | list[str] | None = Field(default=None, alias="runs-on")
    steps: list[StepTemplate] = Field(default_factory=list)
    needs: list[str] | None = None
    if_: str | None = Field(default=None, alias="if")
    strategy: dict[str, Any] | None = None
    permissions: dict[str, str] | None = None
    environment: str | None = None


class WorkflowTemplate(TemplateDocument):
    """A complete CI/CD workflow template."""
    name: str
    type: str = "ci"
    triggers: dict[str, Any] = Field(default_factory=dict)
    permissions: dict[str, str] | None = None
    environment: dict[str, str] | None = None
    jobs: list[JobTemplate] = Field(default_factory=list)


# =============================================================================
# Framework / Language Templates
# =============================================================================


class FrameworkTemplate(TemplateDocument):
    """Framework specific steps merged into a workflow downstream."""
    framework: str
    language: str = "generic"
    custom_steps: list[StepTemplate] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    build_commands: list[str] = Field(default_factory=list)
    test_commands: list[str] = Field(default_factory=list)


class CacheSettings(TemplateDocument):
    """Dependency cache definition."""
    type: Literal["dependencies", "build", "custom"] = "dependencies"
    paths: list[str] = Field(default_factory=list)
    key: str = ""
    restore_keys: list[str] = Field(default_factory=list)


class CacheStrategy(TemplateDocument):
    """Whether and how a language template caches dependencies."""
    enabled: bool = False
    strategy: CacheSettings = Field(default_factory=CacheSettings)


class LanguageTemplate(TemplateDocument):
    """Language toolchain steps."""
    language: str
    setup_steps: list[StepTemplate] = Field(default_factory=list)
    build_steps: list[StepTemplate] = Field(default_factory=list)
    test_steps: list[StepTemplate] = Field(default_factory=list)
    cache_strategy: CacheStrategy = Field(default_factory=CacheStrategy)


class TemplateMetadata(BaseModel):
    """Descriptive record kept next to a template in ``metadata/``."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: Literal["project", "framework", "language", "generic"] = "generic"
    frameworks: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    description: str = ""
    version: str = "1.0.0"
    last_modified: datetime | None = None
    dependencies: list[str] = Field(default_factory=list)

    @classmethod
    def default_for(cls, name: str, kind: ResolutionKind) -> "TemplateMetadata":
        meta_type = "generic" if kind == ResolutionKind.WORKFLOW else kind.value
        return cls(name=name, type=meta_type, description=f"Template for {name}")


Template = WorkflowTemplate | FrameworkTemplate | LanguageTemplate

TEMPLATE_MODELS: dict[ResolutionKind, type[TemplateDocument]] = {
    ResolutionKind.WORKFLOW: WorkflowTemplate,
    ResolutionKind.FRAMEWORK: FrameworkTemplate,
    ResolutionKind.LANGUAGE: LanguageTemplate,
}


# =============================================================================
# Validation
# =============================================================================


@dataclass
class TemplateValidationResult:
    """Result of structural template validation."""
    name: str
    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "valid": self.valid,
            "errors": self.errors,
            "warnings": self.warnings,
        }


def _check_steps(steps: list[StepTemplate], where: str, result: TemplateValidationResult) -> None:
    for i, step in enumerate(steps):
        if not step.name:
            result.errors.append(f"{where}.steps[{i}]: step is missing 'name'")
        if not step.uses and not step.run:
            result.errors.append(
                f"{where}.steps[{i}]: step '{step.name}' must have either 'uses' or 'run'"
            )


def validate_workflow_template(template: WorkflowTemplate) -> TemplateValidationResult:
    """Check that a workflow has named jobs with runners and runnable steps."""
    result = TemplateValidationResult(name=template.name)

    if not template.name:
        result.errors.append("Template is missing 'name'")
    if not template.jobs:
        result.errors.append("Template must define at least one job")
    if not template.triggers:
        result.warnings.append("Template defines no triggers")

    job_names = {job.name for job in template.jobs}
    for job in template.jobs:
        where = f"jobs.{job.name or '?'}"
        if not job.runs_on:
            result.errors.append(f"{where}: job is missing 'runs-on'")
        if not job.steps:
            result.errors.append(f"{where}: job must have at least one step")
        for need in job.needs or []:
            if need not in job_names:
                result.errors.append(f"{where}: needs unknown job '{need}'")
        _check_steps(job.steps, where, result)

    result.valid = not result.errors
    return result


def validate_framework_template(template: FrameworkTemplate) -> TemplateValidationResult:
    result = TemplateValidationResult(name=template.framework)
    if not template.framework:
        result.errors.append("Template is missing 'framework'")
    if not (template.custom_steps or template.build_commands or template.test_commands):
        result.warnings.append("Template defines no steps or commands")
    _check_steps(template.custom_steps, "custom_steps", result)
    result.valid = not result.errors
    return result


def validate_language_template(template: LanguageTemplate) -> TemplateValidationResult:
    result = TemplateValidationResult(name=template.language)
    if not template.language:
        result.errors.append("Template is missing 'language'")
    for group in ("setup_steps", "build_steps", "test_steps"):
        _check_steps(getattr(template, group), group, result)
    if template.cache_strategy.enabled and not template.cache_strategy.strategy.key:
        result.errors.append("cache_strategy is enabled but has no 'key'")
    result.valid = not result.errors
    return result


def validate_template(template: TemplateDocument) -> TemplateValidationResult:
    """Dispatch to the validator matching the template shape."""
    if isinstance(template, WorkflowTemplate):
        return validate_workflow_template(template)
    if isinstance(template, FrameworkTemplate):
        return validate_framework_template(template)
    if isinstance(template, LanguageTemplate):
        return validate_language_template(template)
    raise TypeError(f"Unsupported template type: {type(template).__name__}")
