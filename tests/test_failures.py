"""Tests for the failure history."""

import logging

from workflowgen.errors import (
    ErrorCode,
    GenerationStage,
    OutputError,
    RenderingError,
    TemplateLoadError,
)
from workflowgen.resilience.failures import FailureLog


class TestFailureLog:
    """Tests for FailureLog."""

    def test_empty_stats(self):
        """Test stats on an empty log."""
        assert FailureLog().get_stats() == {"total": 0}

    def test_stats(self):
        """Test counts by stage, code and recoverability."""
        log = FailureLog()
        log.record(TemplateLoadError("a", "/t"))
        log.record(TemplateLoadError("b", "/t"))
        log.record(RenderingError("yaml"))

        stats = log.get_stats()
        assert stats["total"] == 3
        assert stats["by_stage"] == {"template-loading": 2, "rendering": 1}
        assert stats["by_code"]["TEMPLATE_LOAD_ERROR"] == 2
        assert stats["recoverable"] == 2
        assert stats["critical"] == 1

    def test_history_is_bounded(self):
        """Test only the newest entries are kept."""
        log = FailureLog(max_history=2)
        for name in ("a", "b", "c"):
            log.record(TemplateLoadError(name, "/t"))

        recent = log.get_recent()
        assert len(log) == 2
        assert [e.template_name for e in recent] == ["b", "c"]

    def test_get_recent_filters(self):
        """Test filtering by stage and code."""
        log = FailureLog()
        log.record(TemplateLoadError("a", "/t"))
        log.record(OutputError("/o"))

        assert len(log.get_recent(stage=GenerationStage.OUTPUT)) == 1
        assert len(log.get_recent(code=ErrorCode.TEMPLATE_LOAD_ERROR)) == 1
        assert log.get_recent(limit=1)[0].code == ErrorCode.OUTPUT_ERROR

    def test_log_levels(self, caplog):
        """Test recoverable errors log at WARNING and critical ones at ERROR."""
        log = FailureLog()
        with caplog.at_level(logging.DEBUG, logger="workflowgen"):
            log.record(TemplateLoadError("a", "/t"), attempt=2)
            log.record(RenderingError("yaml"))

        records = [r for r in caplog.records if r.name == "workflowgen.resilience.failures"]
        assert [r.levelno for r in records] == [logging.WARNING, logging.ERROR]
        assert records[0].attempt == 2
        assert records[0].stage == GenerationStage.TEMPLATE_LOADING

    def test_clear(self):
        """Test clearing the history."""
        log = FailureLog()
        log.record(OutputError("/o"))
        log.clear()
        assert len(log) == 0
