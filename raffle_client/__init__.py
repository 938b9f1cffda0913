"""
Raffle Client
raffle-client

Request layer for the raffle storefront API with sync and async clients,
bearer token attachment, single-flight token refresh and retry-once on
expired sessions. Every request resolves to an ApiResponse envelope.
"""

from .client import RaffleClient, AsyncRaffleClient, create_client, create_async_client
from .types import (
    ClientConfig,
    StorageBackend,
    RefreshState,
    ApiResponse,
    ApiError,
    PageMeta,
    TokenPair,
    LoginCredentials,
    RegisterData,
    ProfileUpdateData,
    PasswordChangeData,
)
from .errors import (
    RaffleApiError,
    NetworkError,
    UnauthorizedError,
    ConfigurationError,
    NETWORK_ERROR,
    UNKNOWN_ERROR,
    UNAUTHORIZED,
)
from .refresh import RefreshCoordinator, AsyncRefreshCoordinator
from .response import normalize_response
from .storage import MemoryStorage, FileStorage, TokenStore

__version__ = "0.1.0"
__all__ = [
    # Clients
    "RaffleClient",
    "AsyncRaffleClient",
    "create_client",
    "create_async_client",
    # Types
    "ClientConfig",
    "StorageBackend",
    "RefreshState",
    "ApiResponse",
    "ApiError",
    "PageMeta",
    "TokenPair",
    "LoginCredentials",
    "RegisterData",
    "ProfileUpdateData",
    "PasswordChangeData",
    # Errors
    "RaffleApiError",
    "NetworkError",
    "UnauthorizedError",
    "ConfigurationError",
    "NETWORK_ERROR",
    "UNKNOWN_ERROR",
    "UNAUTHORIZED",
    # Session
    "RefreshCoordinator",
    "AsyncRefreshCoordinator",
    "normalize_response",
    # Storage
    "MemoryStorage",
    "FileStorage",
    "TokenStore",
]
