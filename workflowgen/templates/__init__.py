"""Template storage, caching and fallback resolution."""

from workflowgen.templates.cache import CacheEntry, CacheStats, TemplateCache
from workflowgen.templates.fallback import (
    TemplateFallbackConfig,
    TemplateFallbackHierarchy,
    TemplateFallbackManager,
)
from workflowgen.templates.models import (
    FrameworkTemplate,
    GenericTier,
    LanguageTemplate,
    ResolutionKind,
    TemplateMetadata,
    WorkflowTemplate,
)
from workflowgen.templates.rules import FallbackRule, FallbackRuleSet
from workflowgen.templates.store import TemplateNotFoundError, TemplateStore

__all__ = [
    "CacheEntry",
    "CacheStats",
    "FallbackRule",
    "FallbackRuleSet",
    "FrameworkTemplate",
    "GenericTier",
    "LanguageTemplate",
    "ResolutionKind",
    "TemplateCache",
    "TemplateFallbackConfig",
    "TemplateFallbackHierarchy",
    "TemplateFallbackManager",
    "TemplateMetadata",
    "TemplateNotFoundError",
    "TemplateStore",
    "WorkflowTemplate",
]
