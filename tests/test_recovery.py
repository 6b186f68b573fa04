"""Tests for the generation error recovery strategies."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from workflowgen.errors import (
    ErrorCode,
    GenerationError,
    GenerationStage,
    OutputError,
    RenderingError,
    TemplateLoadError,
)
from workflowgen.resilience.recovery import (
    DEFAULT_FALLBACK_CONFIG,
    DEFAULT_GENERATION_RETRY_CONFIG,
    FallbackConfig,
    GenerationErrorRecovery,
    RetryConfig,
)


class TestRetryConfig:
    """Tests for retry policy defaults and backoff."""

    def test_defaults(self):
        """Test default retry policy values."""
        config = DEFAULT_GENERATION_RETRY_CONFIG
        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.backoff_multiplier == 2.0
        assert config.max_delay == 30.0
        assert config.timeout is None
        assert config.retryable_stages == {
            GenerationStage.TEMPLATE_LOADING,
            GenerationStage.TEMPLATE_COMPILATION,
            GenerationStage.FRAMEWORK_PROCESSING,
            GenerationStage.STEP_GENERATION,
            GenerationStage.OPTIMIZATION,
        }

    def test_exponential_backoff(self):
        """Test delay doubles each attempt."""
        config = RetryConfig()
        assert config.delay_for(1) == 1.0
        assert config.delay_for(2) == 2.0
        assert config.delay_for(3) == 4.0

    def test_backoff_capped(self):
        """Test delay never exceeds max_delay."""
        config = RetryConfig(base_delay=10.0, backoff_multiplier=10.0, max_delay=15.0)
        assert config.delay_for(1) == 10.0
        assert config.delay_for(2) == 15.0

    def test_fallback_defaults(self):
        """Test every fallback flag is on by default."""
        assert DEFAULT_FALLBACK_CONFIG == FallbackConfig(
            enable_template_fallback=True,
            enable_partial_generation=True,
            enable_generic_templates=True,
            cache_templates=True,
            validate_templates=True,
        )

    def test_from_settings(self):
        """Test configs are built from Settings."""
        from workflowgen.config import Settings

        s = Settings(retry_max_attempts=5, retry_base_delay=0.5, validate_templates=False)

        assert RetryConfig.from_settings(s).max_attempts == 5
        assert RetryConfig.from_settings(s).base_delay == 0.5
        assert FallbackConfig.from_settings(s).validate_templates is False

    @pytest.mark.parametrize("changes", [
        {"max_attempts": 0},
        {"max_attempts": -1},
        {"base_delay": -0.5},
        {"backoff_multiplier": 0.5},
        {"timeout": 0},
    ])
    def test_invalid_values_rejected(self, changes):
        """Test a retry policy that could never run or wait is refused."""
        with pytest.raises(ValueError):
            RetryConfig(**changes)

    def test_recovery_from_settings(self):
        """Test the recovery helper picks up retry, fallback and history limits."""
        from workflowgen.config import Settings

        recovery = GenerationErrorRecovery.from_settings(
            Settings(retry_max_attempts=4, enable_partial_generation=False, failure_history_size=2)
        )

        assert recovery.retry_config.max_attempts == 4
        assert recovery.fallback_config.enable_partial_generation is False
        for i in range(3):
            recovery.failure_log.record(OutputError(f"out-{i}"))
        assert [e.context["output_path"] for e in recovery.failure_log.get_recent()] == ["out-1", "out-2"]


class TestWithRetry:
    """Tests for retry with exponential backoff."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, fast_recovery):
        """Test a succeeding operation is called once with no warnings."""
        operation = AsyncMock(return_value="ok")

        result = await fast_recovery.with_retry(operation, GenerationStage.TEMPLATE_LOADING)

        assert result.success
        assert result.data == "ok"
        assert result.warnings == []
        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_always_failing_is_bounded(self, fast_recovery):
        """Test a recoverable failure is attempted exactly max_attempts times."""
        error = TemplateLoadError("ci", "/templates")
        operation = AsyncMock(side_effect=error)

        result = await fast_recovery.with_retry(operation, GenerationStage.TEMPLATE_LOADING)

        assert not result.success
        assert result.error is error
        assert operation.call_count == 3

    @pytest.mark.asyncio
    async def test_non_recoverable_not_retried(self, fast_recovery):
        """Test a non-recoverable error is attempted once."""
        operation = AsyncMock(side_effect=RenderingError("yaml"))

        result = await fast_recovery.with_retry(operation, GenerationStage.TEMPLATE_LOADING)

        assert not result.success
        assert result.error.code == ErrorCode.RENDERING_ERROR
        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_non_retryable_stage(self, fast_recovery):
        """Test a recoverable error on a non-retryable stage is attempted once."""
        operation = AsyncMock(side_effect=OutputError("/out"))

        result = await fast_recovery.with_retry(operation, GenerationStage.OUTPUT)

        assert not result.success
        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_success_after_retries(self, fast_recovery):
        """Test eventual success reports how many attempts it took."""
        operation = AsyncMock(side_effect=[TemplateLoadError("ci", "/t"), "ok"])

        result = await fast_recovery.with_retry(operation, "template-loading")

        assert result.success
        assert result.data == "ok"
        assert result.warnings == ["Operation succeeded after 2 attempts"]

    @pytest.mark.asyncio
    async def test_unexpected_exception_wrapped(self, fast_recovery):
        """Test plain exceptions are wrapped and not retried."""
        cause = ValueError("bad input")
        operation = AsyncMock(side_effect=cause)

        result = await fast_recovery.with_retry(operation, GenerationStage.STEP_GENERATION)

        assert not result.success
        assert type(result.error) is GenerationError
        assert result.error.code == ErrorCode.UNEXPECTED_ERROR
        assert result.error.cause is cause
        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_backoff_delays(self):
        """Test sleeps follow the backoff schedule."""
        recovery = GenerationErrorRecovery()
        operation = AsyncMock(side_effect=TemplateLoadError("ci", "/t"))

        with patch("workflowgen.resilience.recovery.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await recovery.with_retry(operation, GenerationStage.TEMPLATE_LOADING)

        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_timeout_is_recoverable(self):
        """Test a timed out attempt becomes a retryable TIMEOUT_ERROR."""
        recovery = GenerationErrorRecovery(
            retry_config=RetryConfig(max_attempts=2, base_delay=0.001, timeout=0.01)
        )
        calls = []

        async def slow():
            calls.append(1)
            await asyncio.sleep(1)

        result = await recovery.with_retry(slow, GenerationStage.OPTIMIZATION)

        assert not result.success
        assert result.error.code == ErrorCode.TIMEOUT_ERROR
        assert result.error.recoverable is True
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, fast_recovery):
        """Test CancelledError is never swallowed or retried."""
        operation = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await fast_recovery.with_retry(operation, GenerationStage.TEMPLATE_LOADING)
        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_failures_logged_per_attempt(self, fast_recovery):
        """Test each failed attempt is recorded."""
        operation = AsyncMock(side_effect=TemplateLoadError("ci", "/t"))

        await fast_recovery.with_retry(operation, GenerationStage.TEMPLATE_LOADING)

        assert len(fast_recovery.failure_log) == 3


class TestWithTemplateFallback:
    """Tests for ordered template fallback."""

    @pytest.mark.asyncio
    async def test_first_success_wins(self, fast_recovery):
        """Test later names are not tried after a success."""
        async def load(name):
            if name == "react-nodejs":
                raise TemplateLoadError(name, "/t")
            return f"template:{name}"

        result = await fast_recovery.with_template_fallback(
            load, ["react-nodejs", "react-generic", "ci-basic"]
        )

        assert result.success
        assert result.data == "template:react-generic"
        assert result.warnings == ["Used fallback template 'react-generic' instead of 'react-nodejs'"]

    @pytest.mark.asyncio
    async def test_all_fail(self, fast_recovery):
        """Test exhaustion lists attempted names."""
        operation = AsyncMock(side_effect=TemplateLoadError("x", "/t"))

        result = await fast_recovery.with_template_fallback(operation, ["a", "b"], context={"kind": "workflow"})

        assert not result.success
        assert result.error.context["attempted_templates"] == ["a", "b"]
        assert result.error.context["kind"] == "workflow"

    @pytest.mark.asyncio
    async def test_empty_hierarchy(self, fast_recovery):
        """Test an empty hierarchy fails without calling the operation."""
        operation = AsyncMock()

        result = await fast_recovery.with_template_fallback(operation, [])

        assert not result.success
        operation.assert_not_called()

    @pytest.mark.asyncio
    async def test_fallback_disabled(self, fast_recovery):
        """Test only the first name is tried when fallback is off."""
        fast_recovery.update_fallback_config(enable_template_fallback=False)
        operation = AsyncMock(side_effect=TemplateLoadError("a", "/t"))

        result = await fast_recovery.with_template_fallback(operation, ["a", "b"])

        assert not result.success
        operation.assert_called_once_with("a")

    @pytest.mark.asyncio
    async def test_non_recoverable_stops_walk(self, fast_recovery):
        """Test a non-recoverable error is surfaced as-is."""
        error = RenderingError("yaml")
        operation = AsyncMock(side_effect=[error, "never"])

        result = await fast_recovery.with_template_fallback(operation, ["a", "b"])

        assert result.error is error
        assert operation.call_count == 1


class TestGracefulDegradation:
    """Tests for primary/fallback degradation."""

    @pytest.mark.asyncio
    async def test_primary_success(self, fast_recovery):
        """Test the fallback is not touched when primary succeeds."""
        fallback = AsyncMock()

        result = await fast_recovery.with_graceful_degradation(
            AsyncMock(return_value="primary"), fallback, GenerationStage.OPTIMIZATION
        )

        assert result.data == "primary"
        fallback.assert_not_called()

    @pytest.mark.asyncio
    async def test_degrades_on_failure(self, fast_recovery):
        """Test a failing primary degrades to the fallback with a warning."""
        primary = AsyncMock(side_effect=OutputError("/out"))

        result = await fast_recovery.with_graceful_degradation(
            primary, AsyncMock(return_value="fallback"), GenerationStage.OUTPUT
        )

        assert result.success
        assert result.data == "fallback"
        assert result.warnings[0].startswith("Used fallback operation due to ")
        assert "/out" in result.warnings[0]

    @pytest.mark.asyncio
    async def test_condition_blocks_fallback(self, fast_recovery):
        """Test a false condition returns the primary error."""
        error = RenderingError("yaml")
        fallback = AsyncMock()

        result = await fast_recovery.with_graceful_degradation(
            AsyncMock(side_effect=error),
            fallback,
            GenerationStage.RENDERING,
            condition=lambda e: e.recoverable,
        )

        assert result.error is error
        fallback.assert_not_called()

    @pytest.mark.asyncio
    async def test_both_fail(self, fast_recovery):
        """Test the primary error is reported when the fallback also fails."""
        error = OutputError("/out")

        result = await fast_recovery.with_graceful_degradation(
            AsyncMock(side_effect=error),
            AsyncMock(side_effect=RuntimeError("disk full")),
            GenerationStage.OUTPUT,
        )

        assert not result.success
        assert result.error is error
        assert "disk full" in result.warnings[0]


class TestSafely:
    """Tests for default-value execution."""

    @pytest.mark.asyncio
    async def test_returns_result(self, fast_recovery):
        """Test the operation result is returned on success."""
        value = await fast_recovery.safely(AsyncMock(return_value=[1]), [], GenerationStage.OPTIMIZATION)
        assert value == [1]

    @pytest.mark.asyncio
    async def test_returns_default_and_notifies(self, fast_recovery):
        """Test failures return the default and call on_error."""
        seen = []

        value = await fast_recovery.safely(
            AsyncMock(side_effect=KeyError("x")), "default", GenerationStage.OPTIMIZATION, seen.append
        )

        assert value == "default"
        assert len(seen) == 1
        error = seen[0]
        assert isinstance(error, GenerationError)
        assert error.stage == GenerationStage.OPTIMIZATION

    @pytest.mark.asyncio
    async def test_async_on_error(self, fast_recovery):
        """Test an async on_error is awaited."""
        on_error = AsyncMock()

        await fast_recovery.safely(
            AsyncMock(side_effect=OutputError("/o")), None, GenerationStage.OUTPUT, on_error
        )

        on_error.assert_awaited_once()


class TestValidateInput:
    """Tests for predicate validation."""

    def test_valid(self, fast_recovery):
        """Test a passing predicate returns the value."""
        result = fast_recovery.validate_input("react", bool, "Framework name required")
        assert result.success
        assert result.data == "react"

    def test_invalid(self, fast_recovery):
        """Test a failing predicate returns a validation error with the message."""
        result = fast_recovery.validate_input(
            "", bool, "Framework name required", GenerationStage.FRAMEWORK_PROCESSING
        )

        assert not result.success
        assert str(result.error) == "Framework name required"
        assert result.error.code == ErrorCode.VALIDATION_ERROR
        assert result.error.component == "input-validator"
        assert result.error.stage == GenerationStage.FRAMEWORK_PROCESSING


class TestConfigurationManagement:
    """Tests for runtime configuration updates."""

    def test_update_retry_config(self, fast_recovery):
        """Test partial retry updates keep other values."""
        fast_recovery.update_retry_config(max_attempts=5, retryable_stages=["output"])

        config = fast_recovery.get_configuration()["retry"]
        assert config.max_attempts == 5
        assert config.base_delay == 0.001
        assert config.retryable_stages == {GenerationStage.OUTPUT}

    def test_update_fallback_config(self, fast_recovery):
        """Test partial fallback updates."""
        fast_recovery.update_fallback_config(cache_templates=False)

        config = fast_recovery.get_configuration()["fallback"]
        assert config.cache_templates is False
        assert config.enable_template_fallback is True

    def test_update_rejects_zero_attempts(self, fast_recovery):
        """Test an update to zero attempts fails and keeps the old policy."""
        with pytest.raises(ValueError):
            fast_recovery.update_retry_config(max_attempts=0)

        assert fast_recovery.retry_config.max_attempts == 3

    def test_empty_failure_log_is_kept(self):
        """Test a caller-supplied failure log is used even before it holds anything."""
        from workflowgen.resilience.failures import FailureLog

        log = FailureLog(max_history=5)

        assert GenerationErrorRecovery(failure_log=log).failure_log is log

    def test_defaults_not_mutated(self):
        """Test updating one instance leaves the shared defaults alone."""
        GenerationErrorRecovery().update_retry_config(max_attempts=9)
        assert DEFAULT_GENERATION_RETRY_CONFIG.max_attempts == 3
