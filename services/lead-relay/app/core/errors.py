"""
Relay error taxonomy

Primary-path errors end a request with a terminal audit state and an HTTP error.
Best-effort sink errors are only ever logged.
"""
from typing import Any, Dict, Optional


class RelayError(Exception):
    """Base class for all relay errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "type": type(self).__name__}


class NotFoundError(RelayError):
    """Unknown source or record. Terminal."""


class ConfigurationError(RelayError):
    """Source is not usable until an operator configures it (e.g. no mapping rules)."""


class AuthError(RelayError):
    """Could not obtain a CRM access token."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status_code
        data["body"] = self.body
        return data


class UpstreamError(RelayError):
    """The CRM rejected the request. Carries the downstream status and body verbatim."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status_code
        data["body"] = self.body
        return data


class BestEffortSinkError(RelayError):
    """A secondary sink failed. Never surfaced to callers."""

    def __init__(self, sink: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(f"{sink} sink failed with status {status_code}")
        self.sink = sink
        self.status_code = status_code
        self.body = body


class TokenStoreError(RelayError):
    """The persisted refresh token could not be read."""


class InvalidStateTransition(RelayError):
    """A request log was asked to leave a terminal state."""
