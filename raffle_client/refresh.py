"""
Access token renewal.

At most one renewal runs at a time. A caller that finds a renewal already
in flight is told "no" straight away instead of waiting for it; any
failed renewal clears both tokens.
"""

import logging
import threading
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from .storage import TokenStore
from .types import RefreshState, TokenPair


logger = logging.getLogger("raffle_client.refresh")

SendRefresh = Callable[[str, Dict[str, Any]], httpx.Response]
AsyncSendRefresh = Callable[[str, Dict[str, Any]], Awaitable[httpx.Response]]


def parse_refresh_response(response: httpx.Response) -> Optional[TokenPair]:
    """Extract new tokens from a renewal response, or None if it failed."""
    if not response.is_success:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict) or body.get("success") is False:
        return None
    data = body.get("data")
    if not isinstance(data, dict) or not isinstance(data.get("tokens"), dict):
        return None
    return TokenPair.from_dict(data["tokens"])


class RefreshCoordinator:
    """Single-flight token renewal for the synchronous client."""

    def __init__(self, store: TokenStore, send: SendRefresh, endpoint: str = "/auth/refresh") -> None:
        self._store = store
        self._send = send
        self._endpoint = endpoint
        self._state = RefreshState.IDLE
        self._lock = threading.Lock()

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def is_refreshing(self) -> bool:
        return self._state is RefreshState.REFRESHING

    def attempt_refresh(self) -> bool:
        """
        Renew the access token.

        Returns:
            True if new tokens were stored, False otherwise
        """
        with self._lock:
            if self._state is RefreshState.REFRESHING:
                logger.debug("Refresh already in progress, not waiting")
                return False
            refresh_token = self._store.get_refresh_token()
            if not refresh_token:
                logger.debug("No refresh token available")
                return False
            self._state = RefreshState.REFRESHING

        try:
            try:
                response = self._send(self._endpoint, {"refreshToken": refresh_token})
            except httpx.RequestError as e:
                logger.warning("Token refresh failed: %s", e)
                tokens = None
            else:
                tokens = parse_refresh_response(response)

            if tokens is None:
                self._store.clear_tokens()
                return False

            self._store.set_tokens(tokens.access_token, tokens.refresh_token)
            logger.debug("Token refresh succeeded")
            return True
        finally:
            with self._lock:
                self._state = RefreshState.IDLE


class AsyncRefreshCoordinator:
    """
    Single-flight token renewal for the asyncio client.

    The flag needs no lock: the check-and-set below runs without an await
    in between, so no other task can interleave with it.
    """

    def __init__(self, store: TokenStore, send: AsyncSendRefresh, endpoint: str = "/auth/refresh") -> None:
        self._store = store
        self._send = send
        self._endpoint = endpoint
        self._state = RefreshState.IDLE

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def is_refreshing(self) -> bool:
        return self._state is RefreshState.REFRESHING

    async def attempt_refresh(self) -> bool:
        """Renew the access token. Returns True if new tokens were stored."""
        if self._state is RefreshState.REFRESHING:
            logger.debug("Refresh already in progress, not waiting")
            return False
        refresh_token = self._store.get_refresh_token()
        if not refresh_token:
            logger.debug("No refresh token available")
            return False
        self._state = RefreshState.REFRESHING

        try:
            try:
                response = await self._send(self._endpoint, {"refreshToken": refresh_token})
            except httpx.RequestError as e:
                logger.warning("Token refresh failed: %s", e)
                tokens = None
            else:
                tokens = parse_refresh_response(response)

            if tokens is None:
                self._store.clear_tokens()
                return False

            self._store.set_tokens(tokens.access_token, tokens.refresh_token)
            logger.debug("Token refresh succeeded")
            return True
        finally:
            self._state = RefreshState.IDLE
