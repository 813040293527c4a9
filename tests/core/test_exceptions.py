"""
Tests for the process-level exception hierarchy.
"""

from core.exceptions import (
    ConfigurationError,
    InvalidConfigError,
    NewsIntelligenceError,
    Severity,
    StartupError,
)


class TestExceptions:

    def test_defaults_per_class(self):
        assert NewsIntelligenceError("x").severity == Severity.MEDIUM
        assert NewsIntelligenceError("x").recoverable is True
        assert ConfigurationError("x").severity == Severity.HIGH
        assert ConfigurationError("x").recoverable is False
        assert StartupError("x").severity == Severity.CRITICAL

    def test_overrides(self):
        error = NewsIntelligenceError("x", severity=Severity.LOW, recoverable=False)
        assert error.severity == Severity.LOW
        assert error.recoverable is False

    def test_cause_recorded_in_context(self):
        error = StartupError("cannot open", cause=OSError("disk gone"))
        data = error.to_dict()

        assert data["type"] == "StartupError"
        assert data["severity"] == "critical"
        assert data["recoverable"] is False
        assert data["context"]["cause_type"] == "OSError"
        assert data["context"]["cause_message"] == "disk gone"

    def test_invalid_config_context(self):
        error = InvalidConfigError("port", -1, "must be positive")

        assert isinstance(error, ConfigurationError)
        assert str(error) == "Invalid configuration for port: must be positive"
        assert error.context == {"config_key": "port", "value": "-1", "reason": "must be positive"}
