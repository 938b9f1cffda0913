"""
Raffle Client

Request layer for the raffle storefront API. Provides both synchronous
and asynchronous clients that attach bearer tokens, renew an expired
access token once per request, and return every outcome as an
ApiResponse instead of raising.
"""

import logging
from typing import Any, Dict, Literal, Mapping, Optional

import httpx

from .types import (
    ApiResponse,
    ClientConfig,
    LoginCredentials,
    PasswordChangeData,
    ProfileUpdateData,
    RegisterData,
    TokenPair,
)
from .errors import ConfigurationError
from .refresh import AsyncRefreshCoordinator, RefreshCoordinator
from .response import network_failure, normalize_response, unauthorized
from .storage import TokenStore


logger = logging.getLogger("raffle_client")

HttpMethod = Literal["GET", "POST", "PUT", "DELETE"]

JSON_CONTENT_TYPE = "application/json"


def _validate_config(config: ClientConfig) -> None:
    """Validate configuration."""
    if not config.base_url:
        raise ConfigurationError("base_url is required")
    if not config.base_url.startswith(("http://", "https://")):
        raise ConfigurationError(
            "Invalid base_url. Expected an http:// or https:// URL",
            {"base_url": config.base_url},
        )
    if config.timeout is not None and config.timeout <= 0:
        raise ConfigurationError("timeout must be positive", {"timeout": config.timeout})
    if not config.refresh_endpoint.startswith("/"):
        raise ConfigurationError(
            "refresh_endpoint must start with '/'",
            {"refresh_endpoint": config.refresh_endpoint},
        )


def _normalize_path(path: str) -> str:
    path = path.split("?", 1)[0]
    return path.rstrip("/") or "/"


class _ClientCore:
    """Configuration, header building and logging shared by both clients."""

    def __init__(self, config: Optional[ClientConfig]) -> None:
        config = config if config is not None else ClientConfig()
        _validate_config(config)

        self._base_url = config.base_url.rstrip("/")
        self._timeout = config.timeout
        self._refresh_endpoint = config.refresh_endpoint
        self._auth_paths = frozenset(_normalize_path(p) for p in config.auth_paths) | {
            _normalize_path(config.refresh_endpoint)
        }
        self._custom_headers = dict(config.headers or {})
        self._debug = config.debug
        self._store = TokenStore(config.storage)

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            logger.debug(f"[Raffle] {message}", *args)

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _is_auth_path(self, path: str) -> bool:
        return _normalize_path(path) in self._auth_paths

    def _build_headers(
        self,
        headers: Optional[Mapping[str, str]] = None,
        multipart: bool = False,
        with_auth: bool = True,
    ) -> httpx.Headers:
        """
        Build outgoing headers.

        Multipart bodies get no Content-Type here; httpx sets it with the
        boundary. The access token is read from the store on every call.
        """
        result = httpx.Headers(self._custom_headers)
        if headers:
            result.update(headers)

        if multipart:
            result.pop("Content-Type", None)
        else:
            result["Content-Type"] = JSON_CONTENT_TYPE

        access_token = self._store.get_access_token() if with_auth else None
        if access_token:
            result["Authorization"] = f"Bearer {access_token}"
        else:
            result.pop("Authorization", None)

        return result

    # =========================================================================
    # Token Methods
    # =========================================================================

    @property
    def tokens(self) -> TokenStore:
        """The token store backing this client."""
        return self._store

    def is_authenticated(self) -> bool:
        """Check whether an access token is present."""
        return bool(self._store.get_access_token())

    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """Replace both tokens."""
        self._store.set_access_token(access_token)
        self._store.set_refresh_token(refresh_token)

    def clear_tokens(self) -> None:
        """Clear both tokens."""
        self._store.clear_tokens()


# =============================================================================
# Sync Client
# =============================================================================

class AuthNamespace:
    """Authentication endpoints for sync client."""

    def __init__(self, client: "RaffleClient") -> None:
        self._client = client

    def login(self, credentials: LoginCredentials) -> ApiResponse:
        """Login with email and password. Stores the issued tokens on success."""
        self._client._log("Login attempt")
        response = self._client.post("/auth/login", credentials.to_dict())
        _store_login_tokens(self._client, response)
        return response

    def register(self, data: RegisterData) -> ApiResponse:
        """Register a new user, then log in with the same credentials."""
        response = self._client.post("/auth/register", data.to_dict())
        if not response.success:
            return response
        return self.login(LoginCredentials(email=data.email, password=data.password))

    def logout(self) -> ApiResponse:
        """Logout. Tokens are cleared whatever the server answers."""
        try:
            return self._client.post("/auth/logout", {})
        finally:
            self._client.clear_tokens()
            self._client._log("Logout")

    def me(self) -> ApiResponse:
        """Fetch the current user."""
        return self._client.get("/auth/me")

    def forgot_password(self, email: str) -> ApiResponse:
        return self._client.post("/auth/forgot-password", {"email": email})

    def reset_password(self, token: str, password: str) -> ApiResponse:
        return self._client.post("/auth/reset-password", {"token": token, "password": password})


class UsersNamespace:
    """User account endpoints for sync client."""

    def __init__(self, client: "RaffleClient") -> None:
        self._client = client

    def update_profile(self, data: ProfileUpdateData) -> ApiResponse:
        return self._client.put("/users/profile", data.to_dict())

    def change_password(self, data: PasswordChangeData) -> ApiResponse:
        return self._client.put("/users/password", data.to_dict())


class CartNamespace:
    """Cart endpoints for sync client."""

    def __init__(self, client: "RaffleClient") -> None:
        self._client = client

    def get(self) -> ApiResponse:
        return self._client.get("/cart")

    def add_item(self, competition_id: str, quantity: int, skill_answer: Optional[str] = None) -> ApiResponse:
        return self._client.post("/cart/add", _cart_item_body(competition_id, quantity, skill_answer))

    def update_item(self, competition_id: str, quantity: int) -> ApiResponse:
        return self._client.put("/cart/update", _cart_item_body(competition_id, quantity))

    def remove_item(self, item_id: str) -> ApiResponse:
        return self._client.delete(f"/cart/{item_id}")

    def apply_promo_code(self, code: str) -> ApiResponse:
        return self._client.post("/cart/apply-promo", {"promo_code": code})

    def remove_promo_code(self) -> ApiResponse:
        return self._client.delete("/cart/promo")


class UploadsNamespace:
    """Image upload endpoints for sync client."""

    def __init__(self, client: "RaffleClient") -> None:
        self._client = client

    def image(self, filename: str, content: bytes, content_type: str = "application/octet-stream") -> ApiResponse:
        """Upload a single image (multipart field "image")."""
        return self._client.upload("/upload/image", files={"image": (filename, content, content_type)})


class RaffleClient(_ClientCore):
    """
    Raffle API Client - synchronous entry point.

    Holds the token store and refresh state for one session. Safe to
    share between threads; at most one thread renews the token at a time.
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        """Initialize the client."""
        super().__init__(config)

        # HTTP client; its cookie jar carries session cookies on every request
        self._http_client = httpx.Client(timeout=self._timeout)
        self._refresher = RefreshCoordinator(self._store, self._send_refresh, self._refresh_endpoint)

        # Namespaces
        self.auth = AuthNamespace(self)
        self.users = UsersNamespace(self)
        self.cart = CartNamespace(self)
        self.uploads = UploadsNamespace(self)

        self._log(f"RaffleClient initialized (base_url={self._base_url})")

    @property
    def refresher(self) -> RefreshCoordinator:
        return self._refresher

    # =========================================================================
    # Request Methods
    # =========================================================================

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self.request(path, "GET", params=params)

    def post(self, path: str, body: Any = None) -> ApiResponse:
        return self.request(path, "POST", body=body)

    def put(self, path: str, body: Any = None) -> ApiResponse:
        return self.request(path, "PUT", body=body)

    def delete(self, path: str) -> ApiResponse:
        return self.request(path, "DELETE")

    def upload(self, path: str, files: Any, data: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """POST a multipart body. `files` takes any httpx files argument."""
        return self.request(path, "POST", files=files, data=data)

    def request(
        self,
        path: str,
        method: HttpMethod = "GET",
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
        files: Any = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ApiResponse:
        """Send a request and return its normalized result. Never raises for HTTP or transport failures."""
        return self._dispatch(path, method, body, params, files, data, headers, is_retry=False)

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _dispatch(
        self,
        path: str,
        method: str,
        body: Any,
        params: Optional[Dict[str, Any]],
        files: Any,
        data: Optional[Dict[str, Any]],
        headers: Optional[Mapping[str, str]],
        is_retry: bool,
    ) -> ApiResponse:
        multipart = files is not None
        request_headers = self._build_headers(headers, multipart=multipart)
        self._log(f"{method} {path}" + (" (retry)" if is_retry else ""))

        try:
            response = self._http_client.request(
                method=method,
                url=self._url(path),
                headers=request_headers,
                params=params,
                json=None if multipart or body is None else body,
                files=files,
                data=data if multipart else None,
            )
        except httpx.RequestError as e:
            self._log(f"{method} {path} failed: {e}")
            return network_failure(e)

        if response.status_code == 401 and not self._is_auth_path(path):
            if is_retry:
                return unauthorized()
            if self._refresher.attempt_refresh():
                return self._dispatch(path, method, body, params, files, data, headers, is_retry=True)
            self._log(f"{method} {path}: session expired")
            return unauthorized()

        return normalize_response(response)

    def _send_refresh(self, path: str, body: Dict[str, Any]) -> httpx.Response:
        return self._http_client.post(
            self._url(path),
            headers=self._build_headers(with_auth=False),
            json=body,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._http_client.close()

    def __enter__(self) -> "RaffleClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


# =============================================================================
# Async Client
# =============================================================================

class AsyncAuthNamespace:
    """Authentication endpoints for async client."""

    def __init__(self, client: "AsyncRaffleClient") -> None:
        self._client = client

    async def login(self, credentials: LoginCredentials) -> ApiResponse:
        """Login with email and password. Stores the issued tokens on success."""
        self._client._log("Login attempt")
        response = await self._client.post("/auth/login", credentials.to_dict())
        _store_login_tokens(self._client, response)
        return response

    async def register(self, data: RegisterData) -> ApiResponse:
        """Register a new user, then log in with the same credentials."""
        response = await self._client.post("/auth/register", data.to_dict())
        if not response.success:
            return response
        return await self.login(LoginCredentials(email=data.email, password=data.password))

    async def logout(self) -> ApiResponse:
        """Logout. Tokens are cleared whatever the server answers."""
        try:
            return await self._client.post("/auth/logout", {})
        finally:
            self._client.clear_tokens()
            self._client._log("Logout")

    async def me(self) -> ApiResponse:
        return await self._client.get("/auth/me")

    async def forgot_password(self, email: str) -> ApiResponse:
        return await self._client.post("/auth/forgot-password", {"email": email})

    async def reset_password(self, token: str, password: str) -> ApiResponse:
        return await self._client.post("/auth/reset-password", {"token": token, "password": password})


class AsyncUsersNamespace:
    """User account endpoints for async client."""

    def __init__(self, client: "AsyncRaffleClient") -> None:
        self._client = client

    async def update_profile(self, data: ProfileUpdateData) -> ApiResponse:
        return await self._client.put("/users/profile", data.to_dict())

    async def change_password(self, data: PasswordChangeData) -> ApiResponse:
        return await self._client.put("/users/password", data.to_dict())


class AsyncCartNamespace:
    """Cart endpoints for async client."""

    def __init__(self, client: "AsyncRaffleClient") -> None:
        self._client = client

    async def get(self) -> ApiResponse:
        return await self._client.get("/cart")

    async def add_item(self, competition_id: str, quantity: int, skill_answer: Optional[str] = None) -> ApiResponse:
        return await self._client.post("/cart/add", _cart_item_body(competition_id, quantity, skill_answer))

    async def update_item(self, competition_id: str, quantity: int) -> ApiResponse:
        return await self._client.put("/cart/update", _cart_item_body(competition_id, quantity))

    async def remove_item(self, item_id: str) -> ApiResponse:
        return await self._client.delete(f"/cart/{item_id}")

    async def apply_promo_code(self, code: str) -> ApiResponse:
        return await self._client.post("/cart/apply-promo", {"promo_code": code})

    async def remove_promo_code(self) -> ApiResponse:
        return await self._client.delete("/cart/promo")


class AsyncUploadsNamespace:
    """Image upload endpoints for async client."""

    def __init__(self, client: "AsyncRaffleClient") -> None:
        self._client = client

    async def image(self, filename: str, content: bytes, content_type: str = "application/octet-stream") -> ApiResponse:
        return await self._client.upload("/upload/image", files={"image": (filename, content, content_type)})


class AsyncRaffleClient(_ClientCore):
    """
    Raffle API Async Client - asynchronous entry point.

    Intended for a single event loop. When several requests hit an expired
    session at once, only the first renews the token; the others resolve
    to UNAUTHORIZED without waiting for it.
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        """Initialize the async client."""
        super().__init__(config)

        # HTTP client (created lazily)
        self._http_client: Optional[httpx.AsyncClient] = None
        self._refresher = AsyncRefreshCoordinator(self._store, self._send_refresh, self._refresh_endpoint)

        # Namespaces
        self.auth = AsyncAuthNamespace(self)
        self.users = AsyncUsersNamespace(self)
        self.cart = AsyncCartNamespace(self)
        self.uploads = AsyncUploadsNamespace(self)

        self._log(f"AsyncRaffleClient initialized (base_url={self._base_url})")

    @property
    def refresher(self) -> AsyncRefreshCoordinator:
        return self._refresher

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    # =========================================================================
    # Request Methods
    # =========================================================================

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return await self.request(path, "GET", params=params)

    async def post(self, path: str, body: Any = None) -> ApiResponse:
        return await self.request(path, "POST", body=body)

    async def put(self, path: str, body: Any = None) -> ApiResponse:
        return await self.request(path, "PUT", body=body)

    async def delete(self, path: str) -> ApiResponse:
        return await self.request(path, "DELETE")

    async def upload(self, path: str, files: Any, data: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """POST a multipart body. `files` takes any httpx files argument."""
        return await self.request(path, "POST", files=files, data=data)

    async def request(
        self,
        path: str,
        method: HttpMethod = "GET",
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
        files: Any = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ApiResponse:
        """Send a request and return its normalized result. Never raises for HTTP or transport failures."""
        return await self._dispatch(path, method, body, params, files, data, headers, is_retry=False)

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _dispatch(
        self,
        path: str,
        method: str,
        body: Any,
        params: Optional[Dict[str, Any]],
        files: Any,
        data: Optional[Dict[str, Any]],
        headers: Optional[Mapping[str, str]],
        is_retry: bool,
    ) -> ApiResponse:
        multipart = files is not None
        request_headers = self._build_headers(headers, multipart=multipart)
        self._log(f"{method} {path}" + (" (retry)" if is_retry else ""))

        try:
            response = await self._get_client().request(
                method=method,
                url=self._url(path),
                headers=request_headers,
                params=params,
                json=None if multipart or body is None else body,
                files=files,
                data=data if multipart else None,
            )
        except httpx.RequestError as e:
            self._log(f"{method} {path} failed: {e}")
            return network_failure(e)

        if response.status_code == 401 and not self._is_auth_path(path):
            if is_retry:
                return unauthorized()
            if await self._refresher.attempt_refresh():
                return await self._dispatch(path, method, body, params, files, data, headers, is_retry=True)
            self._log(f"{method} {path}: session expired")
            return unauthorized()

        return normalize_response(response)

    async def _send_refresh(self, path: str, body: Dict[str, Any]) -> httpx.Response:
        return await self._get_client().post(
            self._url(path),
            headers=self._build_headers(with_auth=False),
            json=body,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "AsyncRaffleClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


# =============================================================================
# Helpers
# =============================================================================

def _store_login_tokens(client: _ClientCore, response: ApiResponse) -> None:
    """Replace stored tokens with the ones a successful login returned."""
    if not response.success or not isinstance(response.data, dict):
        return
    tokens = TokenPair.from_dict(response.data)
    if tokens is None:
        return
    client.set_tokens(tokens.access_token, tokens.refresh_token)


def _cart_item_body(competition_id: str, quantity: int, skill_answer: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"competition_id": competition_id, "quantity": quantity}
    if skill_answer is not None:
        body["skill_answer"] = skill_answer
    return body


# =============================================================================
# Factory Functions
# =============================================================================

def create_client(config: Optional[ClientConfig] = None) -> RaffleClient:
    """Create a new synchronous client."""
    return RaffleClient(config)


def create_async_client(config: Optional[ClientConfig] = None) -> AsyncRaffleClient:
    """Create a new asynchronous client."""
    return AsyncRaffleClient(config)
