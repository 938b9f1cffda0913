"""
Tests for response normalization and the result envelope

Includes property tests for bearer header attachment and error
pass-through.
"""

import string

import httpx
import pytest
import respx
from hypothesis import given, settings, strategies as st

from raffle_client import ApiResponse, ClientConfig, RaffleClient, normalize_response
from raffle_client.errors import (
    NetworkError,
    RaffleApiError,
    UnauthorizedError,
    UNKNOWN_ERROR,
)
from raffle_client.response import network_failure, unauthorized


BASE_URL = "https://api.raffle.test/api"

token_strategy = st.text(alphabet=string.ascii_letters + string.digits + "-._~+/=", min_size=1, max_size=64)
code_strategy = st.text(alphabet=string.ascii_uppercase + "_", min_size=1, max_size=32)


class TestNormalizeResponse:
    """Tests for normalize_response."""

    def test_success_passthrough(self):
        body = {"success": True, "data": {"id": "c1"}, "message": "ok"}

        result = normalize_response(httpx.Response(200, json=body))

        assert result.success is True
        assert result.data == {"id": "c1"}
        assert result.raw == body
        assert result.status_code == 200

    def test_success_false_in_2xx_is_honoured(self):
        result = normalize_response(httpx.Response(200, json={
            "success": False,
            "error": {"code": "SOLD_OUT", "message": "No tickets left"},
        }))

        assert result.success is False
        assert result.error_code == "SOLD_OUT"

    def test_no_content(self):
        result = normalize_response(httpx.Response(204))

        assert result.success is True
        assert result.data is None

    @pytest.mark.parametrize("response", [
        httpx.Response(500, text="Internal Server Error"),
        httpx.Response(404, json={"success": False}),
        httpx.Response(400, json={"error": "bad"}),
        httpx.Response(503),
    ])
    def test_unstructured_error(self, response):
        result = normalize_response(response)

        assert result.success is False
        assert result.error_code == UNKNOWN_ERROR
        assert result.error is not None
        assert result.error.message == "An unexpected error occurred"

    @given(
        status=st.integers(min_value=400, max_value=599),
        code=code_strategy,
        message=st.text(max_size=80),
        details=st.none() | st.dictionaries(st.text(min_size=1, max_size=10), st.lists(st.text(max_size=20), max_size=3), max_size=3),
    )
    def test_structured_error_passthrough(self, status, code, message, details):
        """Test server error objects are forwarded unchanged."""
        error = {"code": code, "message": message}
        if details is not None:
            error["details"] = details

        result = normalize_response(httpx.Response(status, json={"success": False, "error": error}))

        assert result.success is False
        assert result.error is not None
        assert result.error.to_dict() == error
        assert result.status_code == status


class TestEnvelope:
    """Tests for ApiResponse helpers."""

    def test_unwrap_success(self):
        assert ApiResponse.ok({"id": "1"}).unwrap() == {"id": "1"}

    def test_unwrap_unauthorized(self):
        with pytest.raises(UnauthorizedError) as exc_info:
            unauthorized().unwrap()
        assert exc_info.value.status_code == 401

    def test_unwrap_network_error(self):
        with pytest.raises(NetworkError):
            network_failure(httpx.ConnectError("refused")).unwrap()

    def test_unwrap_server_error(self):
        response = ApiResponse.fail("VALIDATION_ERROR", "Invalid", {"email": ["Required"]}, status_code=400)

        with pytest.raises(RaffleApiError) as exc_info:
            response.unwrap()

        error = exc_info.value.to_dict()
        assert error["code"] == "VALIDATION_ERROR"
        assert error["status_code"] == 400
        assert error["details"] == {"email": ["Required"]}

    def test_to_dict(self):
        assert unauthorized().to_dict() == {
            "success": False,
            "error": {"code": "UNAUTHORIZED", "message": "Session expired. Please log in again."},
        }


class TestHeaderProperties:
    """Property tests for outgoing headers."""

    @settings(max_examples=25, deadline=None)
    @given(token=token_strategy)
    def test_single_bearer_header(self, token):
        """Test exactly one Authorization header equal to the stored token."""
        client = RaffleClient(ClientConfig(base_url=BASE_URL))
        client.set_tokens(token, "refresh")

        with respx.mock:
            route = respx.get(f"{BASE_URL}/competitions").mock(
                return_value=httpx.Response(200, json={"success": True, "data": []})
            )
            client.get("/competitions")
            assert route.calls.last.request.headers.get_list("authorization") == [f"Bearer {token}"]
        client.close()

    @settings(max_examples=25, deadline=None)
    @given(token=token_strategy)
    def test_cleared_tokens_send_no_header(self, token):
        """Test clearing tokens removes the Authorization header."""
        client = RaffleClient(ClientConfig(base_url=BASE_URL))
        client.set_tokens(token, "refresh")
        client.clear_tokens()

        with respx.mock:
            route = respx.get(f"{BASE_URL}/competitions").mock(
                return_value=httpx.Response(200, json={"success": True, "data": []})
            )
            client.get("/competitions")
            assert "authorization" not in route.calls.last.request.headers
        client.close()

    @settings(max_examples=25, deadline=None)
    @given(path=st.sampled_from([
        "/auth/login",
        "/auth/register",
        "/auth/refresh",
        "/auth/logout",
        "/auth/forgot-password",
        "/auth/reset-password",
    ]), status=st.sampled_from([401, 403, 500]))
    def test_auth_paths_never_refresh(self, path, status):
        """Test the auth endpoint family never triggers refresh-and-retry."""
        client = RaffleClient(ClientConfig(base_url=BASE_URL))
        client.set_tokens("expired", "refresh")

        with respx.mock(assert_all_called=False) as router:
            target = router.post(f"{BASE_URL}{path}").mock(return_value=httpx.Response(status, json={}))
            if path != "/auth/refresh":
                refresh = router.post(f"{BASE_URL}/auth/refresh").mock(
                    return_value=httpx.Response(200, json={})
                )
            client.post(path, {})

            assert target.call_count == 1
            if path != "/auth/refresh":
                assert refresh.call_count == 0
        assert client.tokens.get_refresh_token() == "refresh"
        client.close()
