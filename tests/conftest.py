"""Pytest fixtures for workflowgen tests."""

import pytest

from workflowgen.detection import DetectionResult, FrameworkDetection, LanguageDetection
from workflowgen.resilience.recovery import GenerationErrorRecovery, RetryConfig


def pytest_configure(config):
    """Register the asyncio marker."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture
def template_dir(tmp_path):
    """Empty template directory."""
    root = tmp_path / "templates"
    root.mkdir()
    return root


@pytest.fixture
def react_detection():
    """React on Node.js, the most common detection in the tests."""
    return DetectionResult(
        frameworks=(
            FrameworkDetection(
                name="react",
                version="18.0.0",
                confidence=0.9,
                evidence=("package.json",),
                category="frontend",
            ),
        ),
        languages=(
            LanguageDetection(name="nodejs", version="18.0.0", confidence=0.95, primary=True),
        ),
        package_managers=("npm",),
        project_metadata={"name": "test-project"},
    )


@pytest.fixture
def fast_recovery():
    """Recovery helper with millisecond backoff."""
    return GenerationErrorRecovery(
        retry_config=RetryConfig(max_attempts=3, base_delay=0.001, max_delay=0.01)
    )
