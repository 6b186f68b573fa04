"""Storage-independent generic templates.

These are the terminal fallback of every resolution: they are built in code,
never read from disk, and each tier is a strict superset in complexity of the
previous one.
"""

from typing import Any, Callable

from workflowgen.errors import TemplateCompilationError
from workflowgen.templates.models import (
    CacheStrategy,
    FrameworkTemplate,
    GenericTier,
    LanguageTemplate,
    StepTemplate,
    WorkflowTemplate,
)

GENERIC_FRAMEWORK_NAME = "generic-framework"
GENERIC_LANGUAGE_NAME = "generic-language"

CHECKOUT = {"name": "Checkout code", "uses": "actions/checkout@v4"}


def _minimal() -> dict[str, Any]:
    return {
        "name": "Minimal CI",
        "type": "ci",
        "triggers": {
            "push": {"branches": ["main"]},
            "pull_request": {"branches": ["main"]},
        },
        "jobs": [
            {
                "name": "build",
                "runs-on": "ubuntu-latest",
                "steps": [
                    CHECKOUT,
                    {"name": "Build project", "run": 'echo "Add your build commands here"'},
                ],
            }
        ],
    }


def _basic() -> dict[str, Any]:
    return {
        "name": "Basic CI",
        "type": "ci",
        "triggers": {
            "push": {"branches": ["main", "develop"]},
            "pull_request": {"branches": ["main"]},
        },
        "permissions": {"contents": "read"},
        "jobs": [
            {
                "name": "build-and-test",
                "runs-on": "ubuntu-latest",
                "steps": [
                    CHECKOUT,
                    {"name": "Setup environment", "run": 'echo "Setup your environment here"'},
                    {"name": "Install dependencies", "run": 'echo "Install dependencies here"'},
                    {"name": "Build project", "run": 'echo "Build your project here"'},
                    {"name": "Run tests", "run": 'echo "Run your tests here"'},
                ],
            }
        ],
    }


def _test_steps() -> list[dict[str, Any]]:
    return [
        CHECKOUT,
        {"name": "Setup environment", "run": 'echo "Setup your environment here"'},
        {"name": "Install dependencies", "run": 'echo "Install dependencies here"'},
        {"name": "Run linting", "run": 'echo "Run linting here"'},
        {"name": "Run tests", "run": 'echo "Run tests here"'},
        {"name": "Upload coverage", "uses": "codecov/codecov-action@v4", "if": "always()"},
    ]


def _standard() -> dict[str, Any]:
    return {
        "name": "Standard CI/CD",
        "type": "ci",
        "triggers": {
            "push": {"branches": ["main", "develop"]},
            "pull_request": {"branches": ["main"]},
        },
        "permissions": {"contents": "read", "security-events": "write"},
        "jobs": [
            {"name": "test", "runs-on": "ubuntu-latest", "steps": _test_steps()},
            {
                "name": "security",
                "runs-on": "ubuntu-latest",
                "needs": ["test"],
                "steps": [
                    CHECKOUT,
                    {"name": "Run security scan", "run": 'echo "Run security scanning here"'},
                ],
            },
        ],
    }


def _comprehensive() -> dict[str, Any]:
    test_steps = _test_steps()
    test_steps.insert(2, {
        "name": "Cache dependencies",
        "uses": "actions/cache@v4",
        "with": {"path": "~/.cache", "key": "deps-${{ runner.os }}-${{ hashFiles('**/*.lock') }}"},
    })
    return {
        "name": "Comprehensive CI/CD",
        "type": "ci",
        "triggers": {
            "push": {"branches": ["main", "develop"]},
            "pull_request": {"branches": ["main"]},
            "schedule": [{"cron": "0 2 * * 1"}],
        },
        "permissions": {"contents": "read", "security-events": "write", "packages": "write"},
        "jobs": [
            {
                "name": "test",
                "runs-on": "${{ matrix.os }}",
                "strategy": {"matrix": {"os": ["ubuntu-latest", "windows-latest"]}},
                "steps": test_steps,
            },
            {
                "name": "security",
                "runs-on": "ubuntu-latest",
                "needs": ["test"],
                "steps": [
                    CHECKOUT,
                    {"name": "Run security scan", "run": 'echo "Run security scanning here"'},
                    {"name": "Run dependency audit", "run": 'echo "Run dependency audit here"'},
                ],
            },
            {
                "name": "build",
                "runs-on": "ubuntu-latest",
                "needs": ["test", "security"],
                "if": "github.ref == 'refs/heads/main'",
                "steps": [
                    CHECKOUT,
                    {"name": "Build application", "run": 'echo "Build application here"'},
                    {
                        "name": "Upload artifacts",
                        "uses": "actions/upload-artifact@v4",
                        "with": {"name": "build-artifacts", "path": "dist/"},
                    },
                ],
            },
        ],
    }


_BUILDERS: dict[GenericTier, Callable[[], dict[str, Any]]] = {
    GenericTier.MINIMAL: _minimal,
    GenericTier.BASIC: _basic,
    GenericTier.STANDARD: _standard,
    GenericTier.COMPREHENSIVE: _comprehensive,
}


def generic_template_name(tier: GenericTier | str) -> str:
    """Candidate name under which a synthesized tier appears in a hierarchy."""
    return f"generic-{GenericTier(tier).value}"


def synthesize(tier: GenericTier | str = GenericTier.BASIC) -> WorkflowTemplate:
    """Build the generic workflow for ``tier``.

    Raises:
        TemplateCompilationError: If ``tier`` is not a known tier
    """
    try:
        builder = _BUILDERS[GenericTier(tier)]
    except ValueError as e:
        raise TemplateCompilationError(
            f"generic-{tier}",
            f"Unknown generic tier '{tier}'. Valid: {', '.join(t.value for t in GenericTier)}",
            cause=e,
        ) from e
    return WorkflowTemplate.model_validate(builder())


def synthesize_framework(framework: str = "generic", language: str = "generic") -> FrameworkTemplate:
    """Generic framework template with placeholder build and test steps."""
    return FrameworkTemplate(
        framework=framework,
        language=language,
        custom_steps=[
            StepTemplate(name="Build", run='echo "Add your build commands here"'),
            StepTemplate(name="Test", run='echo "Add your test commands here"'),
        ],
        build_commands=['echo "Add your build commands here"'],
        test_commands=['echo "Add your test commands here"'],
    )


def synthesize_language(language: str = "generic") -> LanguageTemplate:
    """Generic language template with placeholder toolchain steps."""
    return LanguageTemplate(
        language=language,
        setup_steps=[StepTemplate(name="Setup environment", run='echo "Setup your toolchain here"')],
        build_steps=[StepTemplate(name="Build", run='echo "Build your project here"')],
        test_steps=[StepTemplate(name="Test", run='echo "Run your tests here"')],
        cache_strategy=CacheStrategy(enabled=False),
    )
