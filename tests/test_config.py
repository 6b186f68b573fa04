"""Tests for configuration validation."""

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from workflowgen.templates.models import GenericTier


class TestConfigValidation:
    """Tests for Settings validation."""

    def test_defaults(self):
        """Test default settings match the engine defaults."""
        from workflowgen.config import Settings
        s = Settings()
        assert s.generic_tier == GenericTier.BASIC
        assert s.retry_max_attempts == 3
        assert s.cache_templates is True
        assert s.template_dir is None

    def test_env_prefix(self, monkeypatch):
        """Test WORKFLOWGEN_ environment variables are read."""
        from workflowgen.config import Settings
        monkeypatch.setenv("WORKFLOWGEN_GENERIC_TIER", "comprehensive")
        monkeypatch.setenv("WORKFLOWGEN_CACHE_TEMPLATES", "false")
        s = Settings()
        assert s.generic_tier == GenericTier.COMPREHENSIVE
        assert s.cache_templates is False

    def test_unknown_tier_rejected(self):
        """Test an unknown generic tier is rejected."""
        from workflowgen.config import Settings
        with pytest.raises(ValidationError):
            Settings(generic_tier="enterprise")

    def test_attempts_must_be_positive(self):
        """Test zero retry attempts is rejected."""
        from workflowgen.config import Settings
        with pytest.raises(ValidationError) as exc_info:
            Settings(retry_max_attempts=0)
        assert "at least 1" in str(exc_info.value)

    def test_negative_delay_rejected(self):
        """Test negative delays are rejected."""
        from workflowgen.config import Settings
        with pytest.raises(ValidationError):
            Settings(retry_base_delay=-1)

    def test_multiplier_rejected(self):
        """Test a shrinking backoff multiplier is rejected."""
        from workflowgen.config import Settings
        with pytest.raises(ValidationError):
            Settings(retry_backoff_multiplier=0.5)

    def test_template_dir_expanded(self):
        """Test ~ in the template directory is expanded."""
        from workflowgen.config import Settings
        s = Settings(template_dir="~/templates")
        assert s.template_dir == Path("~/templates").expanduser()


class TestConfigHelpers:
    """Tests for config helper functions."""

    def test_get_config_dict_keys(self):
        """Test get_config_dict returns plain values."""
        from workflowgen.config import get_config_dict
        config = get_config_dict()
        assert config["generic_tier"] in {t.value for t in GenericTier}
        assert "retry_max_attempts" in config
        assert "enable_template_fallback" in config

    def test_update_settings(self, monkeypatch):
        """Test runtime overrides are applied and unknown keys ignored."""
        from workflowgen import config
        monkeypatch.setattr(config, "settings", config.Settings())

        config.update_settings({"cache_templates": False, "no_such_setting": 1})

        assert config.settings.cache_templates is False
        assert not hasattr(config.settings, "no_such_setting")

    def test_validate_critical_settings_warns(self, monkeypatch, tmp_path, caplog):
        """Test a missing template directory is reported."""
        from workflowgen import config
        monkeypatch.setattr(config, "settings", config.Settings(template_dir=tmp_path / "missing"))

        with caplog.at_level(logging.WARNING, logger="workflowgen.config"):
            config.validate_critical_settings()

        assert "does not exist" in caplog.text
