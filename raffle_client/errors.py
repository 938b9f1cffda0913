"""
Raffle Client Error Codes and Exceptions

Requests never raise: failures come back as ApiResponse values carrying
one of the codes below (or a code forwarded from the server). The
exception classes are used at the edges only, for configuration errors
and for callers that opt into ApiResponse.unwrap().
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Transport never completed
NETWORK_ERROR = "NETWORK_ERROR"
# Non-2xx response without a parseable server error
UNKNOWN_ERROR = "UNKNOWN_ERROR"
# 401 that could not be resolved by token refresh
UNAUTHORIZED = "UNAUTHORIZED"

NETWORK_ERROR_MESSAGE = "Failed to connect to server"
UNKNOWN_ERROR_MESSAGE = "An unexpected error occurred"
UNAUTHORIZED_MESSAGE = "Session expired. Please log in again."


class RaffleApiError(Exception):
    """Base error class for the raffle client."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "name": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class NetworkError(RaffleApiError):
    """Transport-level failure (connection refused, timeout, DNS)."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE, details: Optional[Dict[str, Any]] = None):
        super().__init__(NETWORK_ERROR, message, None, details)


class UnauthorizedError(RaffleApiError):
    """Session expired and could not be renewed."""

    def __init__(self, message: str = UNAUTHORIZED_MESSAGE, details: Optional[Dict[str, Any]] = None):
        super().__init__(UNAUTHORIZED, message, 401, details)


class ConfigurationError(RaffleApiError):
    """Configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, None, details)
