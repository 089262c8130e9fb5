"""
Unit tests for the shared configuration, retry policy, errors and logging.
"""

import pytest

from service_rule_groups.app.adapters.memory_api import InMemoryRuleGroupApi
from service_rule_groups.app.main import build_reconciler
from shared.config import ReconcilerConfig, get_config
from shared.errors import UpdateError, ConflictError, RetryTimeoutError
from shared.logging import (
    add_correlation_context, add_service_context, configure_logging, set_reconcile_id, clear_context
)
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, calculate_delay


class TestReconcilerConfig:
    """Test cases for ReconcilerConfig."""

    def test_defaults(self):
        """Test the default scope and timeout."""
        config = ReconcilerConfig()

        assert config.change_token_scope == "global"
        assert config.retry_timeout_seconds == 900.0

    def test_environment_overrides(self, monkeypatch):
        """Test RULEGROUP_ prefixed environment variables."""
        monkeypatch.setenv("RULEGROUP_CHANGE_TOKEN_SCOPE", "eu-west-1")
        monkeypatch.setenv("RULEGROUP_RETRY_TIMEOUT_SECONDS", "45")
        monkeypatch.setenv("RULEGROUP_RETRY_JITTER", "false")

        config = get_config()

        assert config.change_token_scope == "eu-west-1"
        assert config.retry_timeout_seconds == 45.0
        assert config.retry_jitter is False


class TestRetryPolicy:
    """Test cases for calculate_delay and RetryConfig."""

    @pytest.mark.parametrize("strategy,expected", [
        ("exponential", [1.0, 2.0, 4.0, 5.0]),
        ("linear", [1.0, 2.0, 3.0, 4.0]),
        ("fixed", [1.0, 1.0, 1.0, 1.0]),
    ])
    def test_strategies(self, strategy, expected):
        """Test each backoff strategy with the cap applied."""
        config = RetryConfig(base_delay=1.0, max_delay=5.0, jitter=False, backoff_strategy=strategy)

        assert [calculate_delay(attempt, config) for attempt in range(1, 5)] == expected

    def test_jitter_stays_within_ten_percent(self):
        """Test that jitter never moves the delay more than 10%."""
        config = RetryConfig(base_delay=10.0, max_delay=10.0, backoff_strategy="fixed")

        for _ in range(50):
            assert 9.0 <= calculate_delay(1, config) <= 11.0

    def test_from_settings(self):
        """Test building a retry config from settings."""
        settings = ReconcilerConfig(retry_timeout_seconds=12.0, retry_base_delay=0.5, retry_jitter=False)

        config = RetryConfig.from_settings(settings)

        assert config.timeout == 12.0
        assert config.base_delay == 0.5
        assert config.jitter is False


class TestErrors:
    """Test cases for the error taxonomy."""

    def test_update_error_context(self):
        """Test that UpdateError names the operation, id and cause."""
        cause = RetryTimeoutError("gave up", last_exception=ConflictError("stale"), attempts=4)

        error = UpdateError("rg-123", cause)

        assert "rg-123" in str(error)
        assert error.to_dict() == {
            "code": "UPDATE_ERROR",
            "message": error.message,
            "details": {"operation": "updating", "rule_group_id": "rg-123", "cause": "RetryTimeoutError"}
        }
        assert cause.details == {"attempts": 4, "last_error": "stale"}


class TestLogging:
    """Test cases for log correlation."""

    def test_reconcile_id_is_added(self):
        """Test that the reconcile id reaches every event."""
        reconcile_id = set_reconcile_id("rec-1")
        try:
            event = add_correlation_context(None, "info", {"event": "Updated"})
        finally:
            clear_context()

        assert reconcile_id == "rec-1"
        assert event["reconcile_id"] == "rec-1"
        assert "reconcile_id" not in add_correlation_context(None, "info", {})

    def test_service_name_is_added(self):
        """Test that the configured service name reaches every event."""
        configure_logging("rule_groups", "info")

        event = add_service_context(None, "info", {"event": "Updated"})

        assert event["service"] == "rule_groups"
        assert add_service_context(None, "info", {"service": "other"})["service"] == "other"


class TestBuildReconciler:
    """Test cases for build_reconciler wiring."""

    def test_wires_config_into_retryer(self):
        """Test that scope and timeout flow from config."""
        config = ReconcilerConfig(change_token_scope="us-east-1", retry_timeout_seconds=60.0)

        reconciler = build_reconciler(InMemoryRuleGroupApi(), config=config)

        assert reconciler.retryer.scope == "us-east-1"
        assert reconciler.retryer.config.timeout == 60.0
        assert reconciler.metrics is reconciler.retryer.metrics
        assert isinstance(reconciler.metrics, MetricsCollector)
