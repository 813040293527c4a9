"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Process-level errors raised while configuring and starting
the news intelligence service.

- Every error knows how bad it is (severity)
- Every error knows whether the process may keep going
- Structured context travels with the error into the logs

============================================================
EXCEPTION HIERARCHY
============================================================
NewsIntelligenceError (base)
├── ConfigurationError
│   └── InvalidConfigError
└── StartupError

Layer-specific errors are declared next to their layer:
- data_ingestion.types: IngestionError, FetchError, ParseError
- ai_enrichment.exceptions: EnrichmentError and subclasses
- database.engine: DatabasePersistenceError and subclasses

============================================================
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """How loudly an error should be reported."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ============================================================
# BASE EXCEPTION
# ============================================================

class NewsIntelligenceError(Exception):
    """
    Root of the process-level error tree.

    Subclasses pick their own default severity and
    recoverability; callers may override both per raise.
    """

    default_severity: Severity = Severity.MEDIUM
    default_recoverable: bool = True

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.severity = self.default_severity if severity is None else severity
        self.recoverable = self.default_recoverable if recoverable is None else recoverable
        self.context = dict(context or {})
        self.cause = cause
        self.raised_at = datetime.now(timezone.utc)

        if cause is not None:
            self.context.setdefault("cause_type", cause.__class__.__name__)
            self.context.setdefault("cause_message", str(cause))

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into a log-friendly mapping."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "raised_at": self.raised_at.isoformat(),
            "context": self.context,
        }


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(NewsIntelligenceError):
    """The service was configured in a way it cannot run with."""

    default_severity = Severity.HIGH
    default_recoverable = False


class InvalidConfigError(ConfigurationError):
    """A single setting holds an unusable value."""

    def __init__(self, key: str, value: Any, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(
            f"Invalid configuration for {key}: {reason}",
            context={
                "config_key": key,
                "value": repr(value)[:100],
                "reason": reason,
            },
        )


# ============================================================
# STARTUP ERRORS
# ============================================================

class StartupError(NewsIntelligenceError):
    """Unrecoverable failure while bootstrapping the process."""

    default_severity = Severity.CRITICAL
    default_recoverable = False
