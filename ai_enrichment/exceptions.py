"""
AI Enrichment Exceptions - Custom error hierarchy.

These exceptions are for internal logging only.
Search and AI collaborators NEVER raise to caller - they
return their fixed fallback values instead.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class EnrichmentError(Exception):
    """Base exception for all enrichment errors."""

    def __init__(
        self,
        message: str,
        provider: str = "",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.provider = provider
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "provider": self.provider,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class ProviderRequestError(EnrichmentError):
    """A single request to the provider failed."""

    def __init__(
        self,
        message: str,
        provider: str = "",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, provider, details)
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data


class ResponseParseError(EnrichmentError):
    """Provider answered but the body could not be decoded."""

    def __init__(
        self,
        message: str,
        provider: str = "",
        raw_data: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, provider, details)
        self.raw_data = raw_data[:500] if raw_data else None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["raw_data_preview"] = self.raw_data[:100] if self.raw_data else None
        return data
