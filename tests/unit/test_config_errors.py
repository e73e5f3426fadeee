"""
Unit tests for configuration, exceptions and error handling helpers
"""

import pytest
from pydantic import ValidationError

from recursive_cognition.config import CYCLE_DEFAULTS, EngineConfig
from recursive_cognition.error_handler import CircuitBreaker, CircuitBreakerOpen, ErrorHandler
from recursive_cognition.exceptions import (
    EXCEPTION_TO_STATUS,
    ClaimLookupTimeout,
    ConfigurationError,
    CycleCancelled,
    DuplicateFramework,
    RegistryUnavailable,
    status_for,
)


class TestEngineConfig:
    """Validated knobs."""

    def test_defaults_from_tables(self):
        """Defaults come from the constant tables."""
        config = EngineConfig()

        assert config.retry_budget == CYCLE_DEFAULTS["retry_budget"]
        assert config.history_size == CYCLE_DEFAULTS["history_size"]

    def test_negative_budget_rejected(self):
        """retry_budget < 0 → ValidationError."""
        with pytest.raises(ValidationError):
            EngineConfig(retry_budget=-1)

    def test_zero_oscillation_threshold_rejected(self):
        """K must be at least 1."""
        with pytest.raises(ValidationError):
            EngineConfig(oscillation_threshold=0)

    def test_floor_must_sit_below_protection(self):
        """regression_floor >= protected_threshold → ValidationError."""
        with pytest.raises(ValidationError):
            EngineConfig(regression_floor=0.6, protected_threshold=0.5)

    def test_config_is_frozen(self):
        """Config cannot change after engine construction."""
        config = EngineConfig()

        with pytest.raises(ValidationError):
            config.retry_budget = 10

    def test_from_env(self, monkeypatch):
        """RCE_* variables override defaults."""
        monkeypatch.setenv("RCE_RETRY_BUDGET", "5")
        monkeypatch.setenv("RCE_CLAIM_LOOKUP_TIMEOUT", "0.5")

        config = EngineConfig.from_env()

        assert config.retry_budget == 5
        assert config.claim_lookup_timeout == 0.5


class TestExceptions:
    """Domain exceptions."""

    def test_to_dict_shape(self):
        """Structured error payload."""
        payload = DuplicateFramework("care").to_dict()

        assert payload["error"]["code"] == "DuplicateFramework"
        assert payload["error"]["details"] == {"framework": "care"}

    def test_status_mapping(self):
        """Exceptions map to HTTP statuses."""
        assert EXCEPTION_TO_STATUS[RegistryUnavailable] == 503
        assert status_for(ClaimLookupTimeout("c1", 1.0)) == 504

    def test_unmapped_subclass_uses_parent_status(self):
        """A ConfigurationError subclass without its own entry → 500."""
        class StaleSnapshot(ConfigurationError):
            pass

        assert status_for(StaleSnapshot("stale")) == 500
        assert status_for(CycleCancelled("s1", "refine")) == 409


class TestErrorHandler:
    """safe_execute and the circuit breaker."""

    def test_safe_execute_returns_default(self):
        """Exception → default value."""
        def boom():
            raise ValueError("bad")

        assert ErrorHandler.safe_execute(boom, default="fallback") == "fallback"

    def test_safe_execute_passes_result(self):
        assert ErrorHandler.safe_execute(lambda: 42) == 42

    def test_breaker_half_open_then_closed(self):
        """Open breaker retries after the timeout and closes on success."""
        now = [0.0]
        breaker = CircuitBreaker(failure_threshold=1, timeout=10, clock=lambda: now[0])

        def fail():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            breaker.call(fail)
        assert breaker.state == "open"

        with pytest.raises(CircuitBreakerOpen):
            breaker.call(lambda: "ok")

        now[0] = 11.0
        assert breaker.call(lambda: "ok") == "ok"
        assert breaker.state == "closed"

    def test_breaker_reopens_on_half_open_failure(self):
        """Failure while half-open → open again."""
        now = [0.0]
        breaker = CircuitBreaker(failure_threshold=1, timeout=10, clock=lambda: now[0])

        def fail():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            breaker.call(fail)
        now[0] = 11.0
        with pytest.raises(ConnectionError):
            breaker.call(fail)

        assert breaker.state == "open"
