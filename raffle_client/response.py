"""
Response normalization.

Maps an httpx response (or a transport exception) onto ApiResponse so
callers only ever deal with one result shape.
"""

from typing import Any, Optional

import httpx

from .errors import (
    NETWORK_ERROR,
    NETWORK_ERROR_MESSAGE,
    UNAUTHORIZED,
    UNAUTHORIZED_MESSAGE,
    UNKNOWN_ERROR,
    UNKNOWN_ERROR_MESSAGE,
)
from .types import ApiError, ApiResponse


def _json_body(response: httpx.Response) -> Optional[Any]:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def normalize_response(response: httpx.Response) -> ApiResponse:
    """Convert a completed HTTP response to an ApiResponse."""
    body = _json_body(response)

    if response.is_success:
        if not isinstance(body, dict):
            return ApiResponse.ok(status_code=response.status_code)
        return ApiResponse.from_dict(body, response.status_code)

    error_data = body.get("error") if isinstance(body, dict) else None
    if isinstance(error_data, dict) and "code" in error_data:
        return ApiResponse(
            success=False,
            error=ApiError.from_dict(error_data),
            status_code=response.status_code,
            raw=body,
        )

    return ApiResponse.fail(UNKNOWN_ERROR, UNKNOWN_ERROR_MESSAGE, status_code=response.status_code)


def network_failure(error: Optional[Exception] = None) -> ApiResponse:
    """Envelope for a request that never received a response."""
    details = {"reason": [str(error)]} if error is not None and str(error) else None
    return ApiResponse.fail(NETWORK_ERROR, NETWORK_ERROR_MESSAGE, details)


def unauthorized() -> ApiResponse:
    """Envelope for a 401 that refresh could not resolve."""
    return ApiResponse.fail(UNAUTHORIZED, UNAUTHORIZED_MESSAGE, status_code=401)
