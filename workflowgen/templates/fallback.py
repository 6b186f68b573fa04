"""Hierarchical template resolution with fallback.

``TemplateFallbackManager`` turns a detection result into an ordered list of
candidate template names and returns the first one that loads:

    primary -> matching fallback rules -> framework/language candidates
            -> configured hierarchy -> synthesized generic template

Loaded templates are cached per ``<kind>:<name>``. The synthesized generic
candidates (``generic-<tier>``, ``generic-framework``, ``generic-language``)
are looked up in the template directory first and built in code when no file
exists, so resolution with generic templates enabled always succeeds.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from workflowgen.detection import DetectionResult, FrameworkDetection, LanguageDetection
from workflowgen.errors import (
    GenerationError,
    GenerationStage,
    TemplateCompilationError,
    TemplateLoadError,
)
from workflowgen.resilience.recovery import FallbackConfig, GenerationErrorRecovery
from workflowgen.resilience.result import GenerationResult
from workflowgen.templates import generic
from workflowgen.templates.cache import CacheEntry, CacheStats, TemplateCache
from workflowgen.templates.models import (
    FrameworkTemplate,
    GenericTier,
    LanguageTemplate,
    ResolutionKind,
    TemplateDocument,
    WorkflowTemplate,
    validate_template,
)
from workflowgen.templates.rules import FallbackRule, FallbackRuleSet
from workflowgen.templates.store import TemplateStore

logger = logging.getLogger(__name__)


@dataclass
class TemplateFallbackHierarchy:
    """Extra candidate names appended after the detection-derived ones."""
    framework: list[str] = field(default_factory=list)
    language: list[str] = field(default_factory=list)
    generic: list[str] = field(default_factory=lambda: ["ci-basic", "ci-standard", "ci-minimal"])


@dataclass
class TemplateFallbackConfig:
    """Construction options for ``TemplateFallbackManager``."""
    template_directory: Path | None = None
    fallback_hierarchy: TemplateFallbackHierarchy = field(default_factory=TemplateFallbackHierarchy)
    generic_tier: GenericTier = GenericTier.BASIC
    fallback_rules: list[FallbackRule] = field(default_factory=list)
    enable_template_fallback: bool = True
    enable_partial_generation: bool = True
    enable_generic_templates: bool = True
    cache_templates: bool = True
    validate_templates: bool = True

    def __post_init__(self) -> None:
        self.generic_tier = GenericTier(self.generic_tier)
        if self.template_directory is not None:
            self.template_directory = Path(self.template_directory)

    def to_fallback_config(self) -> FallbackConfig:
        return FallbackConfig(
            enable_template_fallback=self.enable_template_fallback,
            enable_partial_generation=self.enable_partial_generation,
            enable_generic_templates=self.enable_generic_templates,
            cache_templates=self.cache_templates,
            validate_templates=self.validate_templates,
        )

    @classmethod
    def from_settings(cls, settings: Any = None) -> "TemplateFallbackConfig":
        if settings is None:
            from workflowgen.config import settings
        return cls(
            template_directory=settings.template_dir,
            fallback_hierarchy=TemplateFallbackHierarchy(generic=list(settings.generic_fallbacks)),
            generic_tier=settings.generic_tier,
            enable_template_fallback=settings.enable_template_fallback,
            enable_partial_generation=settings.enable_partial_generation,
            enable_generic_templates=settings.enable_generic_templates,
            cache_templates=settings.cache_templates,
            validate_templates=settings.validate_templates,
        )


def _slug(name: str) -> str:
    return name.strip().lower().replace(" ", "-")


def _dedupe(names: list[str]) -> list[str]:
    return list(dict.fromkeys(n for n in names if n))


class TemplateFallbackManager:
    """Resolves workflow, framework and language templates with fallback.

    Usage:
        manager = TemplateFallbackManager(TemplateFallbackConfig(template_directory=path))
        result = await manager.get_template_with_fallback(detection, primary_name="react-nodejs")
        if result.success:
            workflow = result.data
    """

    def __init__(
        self,
        config: TemplateFallbackConfig | None = None,
        recovery: GenerationErrorRecovery | None = None,
        store: TemplateStore | None = None,
    ) -> None:
        self.config = config or TemplateFallbackConfig()
        self.store = store or TemplateStore(self.config.template_directory)
        self.cache = TemplateCache(enabled=self.config.cache_templates)
        self.recovery = recovery or GenerationErrorRecovery()
        self.rules = FallbackRuleSet(self.config.fallback_rules, self.recovery.failure_log)
        # The recovery layer enforces enable_template_fallback during the walk
        self.recovery.update_fallback_config(**dataclasses.asdict(self.config.to_fallback_config()))

    # ------------------------------------------------------------------
    # Resolution

    async def get_template_with_fallback(
        self,
        detection: DetectionResult,
        kind: ResolutionKind | str = ResolutionKind.WORKFLOW,
        primary_name: str | None = None,
    ) -> GenerationResult[TemplateDocument]:
        """Resolve the best template of ``kind`` for ``detection``."""
        kind = ResolutionKind(kind)
        hierarchy = self.build_fallback_hierarchy(detection, kind, primary_name)
        return await self._resolve(kind, hierarchy, {"kind": kind.value})

    async def get_framework_template(
        self,
        framework: FrameworkDetection | str,
        language: LanguageDetection | str,
        detection: DetectionResult | None = None,
    ) -> GenerationResult[FrameworkTemplate]:
        """Resolve the framework template for a framework/language pair."""
        if isinstance(framework, str):
            framework = FrameworkDetection(name=framework)
        if isinstance(language, str):
            language = LanguageDetection(name=language)
        if detection is None:
            detection = DetectionResult(frameworks=(framework,), languages=(language,))

        fw = _slug(framework.name)
        lang = _slug(language.name)
        category = _slug(framework.category)

        hierarchy = [f"{fw}-{lang}"]
        hierarchy += self.rules.candidates(detection, ResolutionKind.FRAMEWORK)
        hierarchy += [
            f"{fw}-generic",
            f"{lang}-{category}",
            f"{lang}-generic",
            f"{category}-generic",
        ]
        hierarchy += self.config.fallback_hierarchy.framework
        if self.config.enable_generic_templates:
            hierarchy.append(generic.GENERIC_FRAMEWORK_NAME)

        return await self._resolve(
            ResolutionKind.FRAMEWORK,
            _dedupe(hierarchy),
            {"framework": framework.name, "language": language.name},
        )

    async def get_language_template(
        self,
        language: LanguageDetection | str,
        detection: DetectionResult | None = None,
    ) -> GenerationResult[LanguageTemplate]:
        """Resolve the language template, trying the exact version first."""
        if isinstance(language, str):
            language = LanguageDetection(name=language)
        if detection is None:
            detection = DetectionResult(languages=(language,))

        hierarchy = self._versioned(language.name, language.version)
        # Rules go right after the most specific candidate
        hierarchy[1:1] = self.rules.candidates(detection, ResolutionKind.LANGUAGE)
        hierarchy += self.config.fallback_hierarchy.language
        if self.config.enable_generic_templates:
            hierarchy.append(generic.GENERIC_LANGUAGE_NAME)

        return await self._resolve(
            ResolutionKind.LANGUAGE,
            _dedupe(hierarchy),
            {"language": language.name, "version": language.version},
        )

    async def get_generic_template(
        self, tier: GenericTier | str = GenericTier.BASIC
    ) -> GenerationResult[WorkflowTemplate]:
        """Build the generic workflow for ``tier`` without touching storage."""
        try:
            return GenerationResult.ok(generic.synthesize(tier))
        except TemplateCompilationError as e:
            self.recovery.failure_log.record(e)
            return GenerationResult.fail(e)

    def build_fallback_hierarchy(
        self,
        detection: DetectionResult,
        kind: ResolutionKind | str = ResolutionKind.WORKFLOW,
        primary_name: str | None = None,
    ) -> list[str]:
        """Ordered, de-duplicated candidate names for ``kind``."""
        kind = ResolutionKind(kind)
        structural = self._structural_candidates(detection, kind)

        hierarchy: list[str] = []
        if primary_name:
            hierarchy.append(primary_name)
        hierarchy += self.rules.candidates(detection, kind)
        hierarchy += structural
        if self.config.enable_generic_templates:
            hierarchy.append(self._synthesized_name(kind))
        return _dedupe(hierarchy)

    def _structural_candidates(self, detection: DetectionResult, kind: ResolutionKind) -> list[str]:
        configured = self.config.fallback_hierarchy
        frameworks = detection.frameworks_by_confidence()
        primary_language = detection.primary_language

        if kind == ResolutionKind.FRAMEWORK:
            names = []
            lang = _slug(primary_language.name) if primary_language else "generic"
            for fw in frameworks:
                names += [
                    f"{_slug(fw.name)}-{lang}",
                    f"{_slug(fw.name)}-generic",
                    f"{lang}-{_slug(fw.category)}",
                    f"{_slug(fw.category)}-generic",
                ]
            names.append(f"{lang}-generic")
            return names + configured.framework

        if kind == ResolutionKind.LANGUAGE:
            names = []
            if primary_language is not None:
                names += self._versioned(primary_language.name, primary_language.version)
            return names + configured.language

        names = []
        for fw in frameworks:
            names += self._versioned(fw.name, fw.version)
        for language in detection.languages:
            if language.primary:
                names += self._versioned(language.name, language.version)
        return names + configured.framework + configured.language + configured.generic

    @staticmethod
    def _versioned(name: str, version: str | None) -> list[str]:
        slug = _slug(name)
        names = [f"{slug}-{version}"] if version else []
        return names + [f"{slug}-latest", f"{slug}-generic"]

    def _synthesized_name(self, kind: ResolutionKind) -> str:
        if kind == ResolutionKind.FRAMEWORK:
            return generic.GENERIC_FRAMEWORK_NAME
        if kind == ResolutionKind.LANGUAGE:
            return generic.GENERIC_LANGUAGE_NAME
        return generic.generic_template_name(self.config.generic_tier)

    # ------------------------------------------------------------------
    # Loading

    async def _resolve(
        self,
        kind: ResolutionKind,
        hierarchy: list[str],
        context: dict[str, Any],
    ) -> GenerationResult[Any]:
        logger.debug(
            f"Resolving {kind.value} template, candidates: {hierarchy}",
            extra={"template_kind": kind, "stage": GenerationStage.TEMPLATE_LOADING},
        )

        async def load(name: str) -> TemplateDocument:
            return await self._load_candidate(kind, name)

        return await self.recovery.with_template_fallback(
            load, hierarchy, GenerationStage.TEMPLATE_LOADING, context
        )

    async def _load_candidate(self, kind: ResolutionKind, name: str) -> TemplateDocument:
        if not (self.config.enable_generic_templates and name == self._synthesized_name(kind)):
            return await self._load_cached(kind, name)

        # A file with the generic name overrides the built-in template
        try:
            return await self._load_cached(kind, name)
        except GenerationError as e:
            if not e.recoverable:
                raise
            logger.debug(
                f"No usable stored '{name}', synthesizing it",
                extra={"template_kind": kind, "template_name": name},
            )
        return self._synthesize(kind)

    def _synthesize(self, kind: ResolutionKind) -> TemplateDocument:
        if kind == ResolutionKind.FRAMEWORK:
            return generic.synthesize_framework()
        if kind == ResolutionKind.LANGUAGE:
            return generic.synthesize_language()
        return generic.synthesize(self.config.generic_tier)

    async def _load_cached(self, kind: ResolutionKind, name: str) -> TemplateDocument:
        async def loader() -> CacheEntry:
            return await self._load_entry(kind, name)

        entry = await self.cache.get_or_load(f"{kind.value}:{name}", loader)
        # Callers get their own copy so the cached template never changes
        return entry.template.model_copy(deep=True)

    async def _load_entry(self, kind: ResolutionKind, name: str) -> CacheEntry:
        directory = self.store.directory_for(kind)
        try:
            template = await self.store.load(kind, name)
        except OSError as e:
            # TemplateNotFoundError included
            raise TemplateLoadError(name, str(directory), cause=e) from e

        if self.config.validate_templates:
            validation = validate_template(template)
            if not validation.valid:
                raise TemplateCompilationError(
                    name,
                    "; ".join(validation.errors),
                    context={"validation_errors": validation.errors},
                )
            for warning in validation.warnings:
                logger.debug(f"Template {name}: {warning}", extra={"template_name": name})

        metadata = await self.store.load_metadata(kind, name)
        logger.info(
            f"Loaded {kind.value} template '{name}'",
            extra={"template_kind": kind, "template_name": name},
        )
        return CacheEntry(template=template, metadata=metadata)

    # ------------------------------------------------------------------
    # Management

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def clear_cache(self) -> None:
        self.cache.clear()

    def add_fallback_rule(self, rule: FallbackRule) -> None:
        """Register a rule. Call before resolving templates."""
        self.rules.add(rule)
        logger.debug(f"Added fallback rule '{rule.name}' (priority {rule.priority})")

    def update_config(self, **changes: Any) -> None:
        """Apply partial configuration changes.

        Changing ``template_directory`` swaps the store and drops the cache.
        """
        if "fallback_rules" in changes:
            self.rules = FallbackRuleSet(changes["fallback_rules"], self.recovery.failure_log)
        old_directory = self.config.template_directory
        self.config = dataclasses.replace(self.config, **changes)

        if self.config.template_directory != old_directory:
            self.store = TemplateStore(self.config.template_directory)
            self.cache.clear()
        if not self.config.cache_templates and self.cache.enabled:
            self.cache.clear()
        self.cache.enabled = self.config.cache_templates
        self.recovery.update_fallback_config(**dataclasses.asdict(self.config.to_fallback_config()))
