"""Unit tests for bearer-token identity and the rate limit helpers."""

from datetime import timedelta

from lessonforge.api.middleware.rate_limit import InMemoryRateLimitStore, is_ai_request
from lessonforge.kernel.identity.jwt import JWTManager


class TestJWT:
    def test_round_trip(self, jwt_manager):
        token = jwt_manager.create_access_token("user-42")
        payload = jwt_manager.verify_access_token(token)
        assert payload is not None
        assert payload.sub == "user-42"

    def test_wrong_key(self, jwt_manager):
        token = JWTManager(secret_key="another-key", algorithm="HS256").create_access_token("user-42")
        assert jwt_manager.verify_access_token(token) is None

    def test_expired(self, jwt_manager):
        token = jwt_manager.create_access_token("user-42", expires_delta=timedelta(minutes=-5))
        assert jwt_manager.verify_access_token(token) is None

    def test_garbage(self, jwt_manager):
        assert jwt_manager.verify_access_token("not-a-token") is None


class TestRateLimit:
    def test_ai_paths(self):
        assert is_ai_request("/api/v1/content/generate", "POST")
        assert is_ai_request("/api/v1/sessions/abc/refine", "POST")
        assert is_ai_request("/api/v1/sessions", "POST")
        assert not is_ai_request("/api/v1/sessions/abc/edit", "POST")
        assert not is_ai_request("/api/v1/content/generate", "GET")

    def test_fixed_window(self):
        store = InMemoryRateLimitStore()
        assert store.check_and_incr("api", "u", limit=2, window_seconds=60)
        assert store.check_and_incr("api", "u", limit=2, window_seconds=60)
        assert not store.check_and_incr("api", "u", limit=2, window_seconds=60)
        assert store.check_and_incr("api", "other", limit=2, window_seconds=60)
