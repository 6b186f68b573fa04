"""Detection results consumed by the template engine.

The README analyzer produces these snapshots; the template engine only reads
them to evaluate fallback rules and build candidate template names.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class FrameworkDetection:
    """A framework detected in the project."""
    name: str
    confidence: float = 0.0
    category: str = "generic"  # frontend, backend, fullstack, mobile, ...
    evidence: tuple[str, ...] = ()
    version: str | None = None


@dataclass(frozen=True)
class LanguageDetection:
    """A programming language detected in the project."""
    name: str
    version: str | None = None
    confidence: float = 0.0
    primary: bool = False


@dataclass(frozen=True)
class DetectionResult:
    """Read-only snapshot of everything the analyzer found."""
    frameworks: tuple[FrameworkDetection, ...] = ()
    languages: tuple[LanguageDetection, ...] = ()
    package_managers: tuple[str, ...] = ()
    deployment_targets: tuple[str, ...] = ()
    project_metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def primary_language(self) -> LanguageDetection | None:
        for language in self.languages:
            if language.primary:
                return language
        return self.languages[0] if self.languages else None

    def frameworks_by_confidence(self) -> list[FrameworkDetection]:
        return sorted(self.frameworks, key=lambda f: f.confidence, reverse=True)

    def has_framework(self, name: str) -> bool:
        name_lower = name.lower()
        return any(f.name.lower() == name_lower for f in self.frameworks)

    def has_language(self, name: str) -> bool:
        name_lower = name.lower()
        return any(lang.name.lower() == name_lower for lang in self.languages)
