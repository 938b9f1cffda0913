"""
Raffle Client Type Definitions

Configuration, the result envelope returned by every request, and the
payload dataclasses used by the endpoint namespaces.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .errors import (
    ConfigurationError,
    NetworkError,
    RaffleApiError,
    UnauthorizedError,
    NETWORK_ERROR,
    UNAUTHORIZED,
)


# Endpoints that must never trigger a token refresh on 401
DEFAULT_AUTH_PATHS: Tuple[str, ...] = (
    "/auth/login",
    "/auth/register",
    "/auth/refresh",
    "/auth/logout",
    "/auth/forgot-password",
    "/auth/reset-password",
)


@runtime_checkable
class StorageBackend(Protocol):
    """Key/value storage interface for token persistence."""

    def get_item(self, key: str) -> Optional[str]:
        """Get the stored value for key."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store value under key."""
        ...

    def remove_item(self, key: str) -> None:
        """Remove key if present."""
        ...


class RefreshState(str, Enum):
    """Token refresh coordinator state."""
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass
class ClientConfig:
    """Client configuration options."""

    # API base URL, including the /api prefix
    base_url: str = "http://localhost:3001/api"
    # Transport timeout in seconds (default: 30)
    timeout: float = 30.0
    # Token storage backend (default: None, uses MemoryStorage)
    storage: Optional[StorageBackend] = None
    # Token renewal endpoint
    refresh_endpoint: str = "/auth/refresh"
    # Paths that never trigger refresh-and-retry
    auth_paths: Tuple[str, ...] = DEFAULT_AUTH_PATHS
    # Custom headers to include in requests
    headers: Optional[Dict[str, str]] = None
    # Enable debug logging (default: False)
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ClientConfig":
        """
        Build configuration from environment variables.

        Reads RAFFLE_API_URL, RAFFLE_API_TIMEOUT, RAFFLE_TOKEN_FILE and
        RAFFLE_DEBUG. A token file path selects FileStorage.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if env.get("RAFFLE_API_URL"):
            config.base_url = env["RAFFLE_API_URL"]
        if env.get("RAFFLE_API_TIMEOUT"):
            try:
                config.timeout = float(env["RAFFLE_API_TIMEOUT"])
            except ValueError:
                raise ConfigurationError(
                    "RAFFLE_API_TIMEOUT must be a number",
                    {"value": env["RAFFLE_API_TIMEOUT"]},
                )
        if env.get("RAFFLE_TOKEN_FILE"):
            from .storage import FileStorage
            config.storage = FileStorage(env["RAFFLE_TOKEN_FILE"])
        config.debug = env.get("RAFFLE_DEBUG", "").lower() in ("1", "true", "yes")

        return config


@dataclass
class ApiError:
    """Error payload of a failed envelope."""

    code: str
    message: str
    details: Optional[Dict[str, List[str]]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiError":
        """Create from dictionary."""
        return cls(
            code=data.get("code", ""),
            message=data.get("message", ""),
            details=data.get("details"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to wire format."""
        result: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            result["details"] = self.details
        return result


@dataclass
class PageMeta:
    """Pagination metadata."""

    page: Optional[int] = None
    limit: Optional[int] = None
    total: Optional[int] = None
    total_pages: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageMeta":
        return cls(
            page=data.get("page"),
            limit=data.get("limit"),
            total=data.get("total"),
            total_pages=data.get("totalPages"),
        )


@dataclass
class ApiResponse:
    """
    Uniform result envelope.

    Either success=True with data (and optional meta), or success=False
    with error. Request failures are always returned as values of this
    type, never raised.
    """

    success: bool
    data: Any = None
    error: Optional[ApiError] = None
    meta: Optional[PageMeta] = None
    status_code: Optional[int] = None
    raw: Optional[Dict[str, Any]] = None

    @classmethod
    def ok(cls, data: Any = None, meta: Optional[PageMeta] = None, status_code: Optional[int] = None) -> "ApiResponse":
        return cls(success=True, data=data, meta=meta, status_code=status_code)

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        details: Optional[Dict[str, List[str]]] = None,
        status_code: Optional[int] = None,
    ) -> "ApiResponse":
        return cls(
            success=False,
            error=ApiError(code=code, message=message, details=details),
            status_code=status_code,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any], status_code: Optional[int] = None) -> "ApiResponse":
        """Create from a server envelope."""
        error_data = data.get("error")
        meta_data = data.get("meta")
        return cls(
            success=bool(data.get("success", True)),
            data=data.get("data"),
            error=ApiError.from_dict(error_data) if isinstance(error_data, dict) else None,
            meta=PageMeta.from_dict(meta_data) if isinstance(meta_data, dict) else None,
            status_code=status_code,
            raw=data,
        )

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to wire format."""
        if not self.success:
            return {
                "success": False,
                "error": self.error.to_dict() if self.error else None,
            }
        result: Dict[str, Any] = {"success": True, "data": self.data}
        if self.meta is not None:
            result["meta"] = {
                "page": self.meta.page,
                "limit": self.meta.limit,
                "total": self.meta.total,
                "totalPages": self.meta.total_pages,
            }
        return result

    def unwrap(self) -> Any:
        """
        Return data, or raise the matching RaffleApiError for a failure.

        For callers that prefer exceptions over checking `success`.
        """
        if self.success:
            return self.data

        error = self.error or ApiError(code="UNKNOWN_ERROR", message="An unexpected error occurred")
        if error.code == UNAUTHORIZED:
            raise UnauthorizedError(error.message, error.details)
        if error.code == NETWORK_ERROR:
            raise NetworkError(error.message, error.details)
        raise RaffleApiError(error.code, error.message, self.status_code, error.details)


@dataclass
class TokenPair:
    """Tokens issued by login or refresh."""

    access_token: str
    refresh_token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["TokenPair"]:
        """
        Extract tokens from a response payload.

        Accepts either the payload itself or one with a nested "tokens"
        object. Returns None when no usable access token is present.
        """
        tokens = data.get("tokens", data)
        if not isinstance(tokens, dict):
            return None
        access_token = tokens.get("accessToken")
        if not isinstance(access_token, str) or not access_token:
            return None
        refresh_token = tokens.get("refreshToken")
        if not isinstance(refresh_token, str) or not refresh_token:
            refresh_token = None
        return cls(access_token=access_token, refresh_token=refresh_token)


@dataclass
class LoginCredentials:
    """Login credentials."""

    email: str
    password: str

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "password": self.password}


@dataclass
class RegisterData:
    """Registration data."""

    email: str
    password: str
    first_name: str
    last_name: str
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API requests (snake_case on the wire)."""
        result: Dict[str, Any] = {
            "email": self.email,
            "password": self.password,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }
        if self.phone is not None:
            result["phone"] = self.phone
        return result


@dataclass
class PasswordChangeData:
    """Password change data."""

    current_password: str
    new_password: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentPassword": self.current_password,
            "newPassword": self.new_password,
        }


@dataclass
class ProfileUpdateData:
    """Profile update data. Only set fields are sent."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(self.extra)
        if self.first_name is not None:
            result["firstName"] = self.first_name
        if self.last_name is not None:
            result["lastName"] = self.last_name
        if self.phone is not None:
            result["phone"] = self.phone
        return result
