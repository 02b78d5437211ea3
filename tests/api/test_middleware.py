"""Tests for API middleware."""

from fastapi.testclient import TestClient

from itemgen.api.middleware import bearer_token


class TestRequestIdMiddleware:
    """Tests for request ID correlation middleware."""

    def test_generates_request_id_if_not_provided(self, client: TestClient) -> None:
        """Should generate request ID if not in request headers."""
        response = client.get("/health")
        assert response.status_code == 200
        assert len(response.headers["X-Request-ID"]) == 36

    def test_uses_provided_request_id(self, client: TestClient) -> None:
        """Should use request ID from request headers."""
        response = client.get("/health", headers={"X-Request-ID": "custom-request-id"})
        assert response.headers["X-Request-ID"] == "custom-request-id"


class TestApiKeyMiddleware:
    """Tests for API key authentication middleware."""

    def test_public_endpoints_dont_require_auth(self, client: TestClient) -> None:
        """Health endpoints are public."""
        assert client.get("/health").status_code == 200
        assert client.get("/ready").status_code == 200

    def test_missing_header(self, client: TestClient) -> None:
        """Protected endpoints require the Authorization header."""
        response = client.get("/stores/store-1/options")
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_wrong_scheme(self, client: TestClient) -> None:
        """Only the Bearer scheme is accepted."""
        response = client.get(
            "/stores/store-1/options", headers={"Authorization": "Basic abc"}
        )
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_invalid_key(self, client: TestClient) -> None:
        """A wrong key is rejected."""
        response = client.get(
            "/stores/store-1/options", headers={"Authorization": "Bearer wrong-key"}
        )
        assert response.status_code == 401
        assert response.json()["error_code"] == "INVALID_API_KEY"

    def test_valid_key(self, auth_client: TestClient) -> None:
        """A valid key passes."""
        assert auth_client.get("/stores/store-1/options").status_code == 200

    def test_cors_preflight_skips_auth(self, client: TestClient) -> None:
        """Browser preflight requests are answered without a key."""
        response = client.options(
            "/products/p-1/items/regenerate",
            headers={
                "Origin": "http://admin.example.com",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers


class TestBearerToken:
    """Tests for Authorization header parsing."""

    def test_extracts_token(self) -> None:
        """The Bearer scheme is case-insensitive."""
        assert bearer_token("Bearer abc") == "abc"
        assert bearer_token("bearer  abc ") == "abc"

    def test_rejects_other_forms(self) -> None:
        """Missing, empty and non-Bearer headers yield no token."""
        assert bearer_token(None) is None
        assert bearer_token("") is None
        assert bearer_token("Bearer") is None
        assert bearer_token("Basic abc") is None
