"""Priority-ordered fallback rules.

A rule maps a condition over the detection result to an extra template
candidate. Matching rules are tried right after the primary template, highest
priority first; rules with equal priority keep their registration order.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from workflowgen.detection import DetectionResult
from workflowgen.errors import ErrorCode, GenerationError, GenerationStage
from workflowgen.resilience.failures import FailureLog
from workflowgen.templates.models import ResolutionKind

logger = logging.getLogger(__name__)

ALL_KINDS: frozenset[ResolutionKind] = frozenset(ResolutionKind)


@dataclass(frozen=True)
class FallbackRule:
    """A conditional template substitution.

    ``kinds`` narrows the rule to some resolution kinds; by default it
    applies to workflow, framework and language lookups alike.
    """
    name: str
    condition: Callable[[DetectionResult], bool]
    fallback_template: str
    priority: int = 0
    kinds: frozenset[ResolutionKind] = ALL_KINDS

    def applies_to(self, kind: ResolutionKind) -> bool:
        return kind in self.kinds


class FallbackRuleSet:
    """Ordered collection of fallback rules.

    Rules are meant to be registered while the resolver is configured and
    then only read during resolution. A condition that raises is recorded in
    ``failure_log`` and treated as not matching.
    """

    def __init__(
        self,
        rules: Iterable[FallbackRule] = (),
        failure_log: FailureLog | None = None,
    ) -> None:
        self._rules: list[FallbackRule] = []
        self.failure_log = failure_log if failure_log is not None else FailureLog()
        for rule in rules:
            self.add(rule)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules)

    def add(self, rule: FallbackRule) -> None:
        """Register a rule, keeping the collection in priority order."""
        self._rules.append(rule)
        # sort() is stable, so equal priorities stay in registration order
        self._rules.sort(key=lambda r: r.priority, reverse=True)

    def remove(self, name: str) -> bool:
        before = len(self._rules)
        self._rules = [r for r in self._rules if r.name != name]
        return len(self._rules) != before

    def matching(self, detection: DetectionResult, kind: ResolutionKind) -> list[FallbackRule]:
        """Rules for ``kind`` whose condition holds, highest priority first."""
        matches = []
        for rule in self._rules:
            if not rule.applies_to(kind):
                continue
            try:
                matched = bool(rule.condition(detection))
            except Exception as e:
                self.failure_log.record(
                    GenerationError(
                        f"Fallback rule '{rule.name}' condition raised: {e}",
                        code=ErrorCode.UNEXPECTED_ERROR,
                        component="fallback-rules",
                        stage=GenerationStage.TEMPLATE_LOADING,
                        recoverable=True,
                        context={"rule": rule.name, "kind": kind.value},
                        cause=e,
                    )
                )
                continue
            if matched:
                matches.append(rule)
        return matches

    def candidates(self, detection: DetectionResult, kind: ResolutionKind) -> list[str]:
        return [rule.fallback_template for rule in self.matching(detection, kind)]


def framework_rule(
    framework: str,
    template: str,
    priority: int = 0,
    kinds: Iterable[ResolutionKind] = ALL_KINDS,
) -> FallbackRule:
    """Rule that fires when ``framework`` was detected."""
    return FallbackRule(
        name=f"framework:{framework}->{template}",
        condition=lambda d: d.has_framework(framework),
        fallback_template=template,
        priority=priority,
        kinds=frozenset(kinds),
    )


def language_rule(
    language: str,
    template: str,
    priority: int = 0,
    kinds: Iterable[ResolutionKind] = ALL_KINDS,
) -> FallbackRule:
    """Rule that fires when ``language`` was detected."""
    return FallbackRule(
        name=f"language:{language}->{template}",
        condition=lambda d: d.has_language(language),
        fallback_template=template,
        priority=priority,
        kinds=frozenset(kinds),
    )
