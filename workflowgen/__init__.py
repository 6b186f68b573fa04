"""workflowgen - resilient template resolution for CI/CD workflow generation."""

__version__ = "0.1.0"
