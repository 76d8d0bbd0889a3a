"""
tests/test_rate_limiting.py — Tests for rate limiting behavior

Covers: slowapi limiter configuration, app wiring, and the Redis
storage fallback.

Called by: pytest
Depends on: yumi.rate_limit, yumi.main
"""

from unittest.mock import patch

from slowapi.util import get_remote_address

from yumi.rate_limit import _resolve_storage, limiter


def test_limiter_uses_remote_address():
    """Key function is get_remote_address (IP-based limiting)."""
    assert limiter._key_func is get_remote_address


def test_limiter_attached_to_app():
    from yumi.main import app

    assert app.state.limiter is limiter


def test_rate_limit_disabled_in_test_mode():
    """conftest sets RATE_LIMIT_ENABLED=false so suites never hit 429."""
    assert limiter.enabled is False


def test_search_endpoint_not_blocked_when_disabled(client):
    for _ in range(5):
        assert client.get("/api/recipes/search", params={"q": "arroz"}).status_code == 200


def test_resolve_storage_no_redis():
    """_resolve_storage returns None when Redis is not configured."""
    with patch("yumi.rate_limit.settings") as mock_settings:
        mock_settings.cache_backend = "memory"
        mock_settings.redis_url = ""
        assert _resolve_storage() is None


def test_resolve_storage_redis_unavailable():
    """_resolve_storage returns None when Redis ping fails."""
    import redis as redis_lib

    with patch("yumi.rate_limit.settings") as mock_settings:
        mock_settings.cache_backend = "redis"
        mock_settings.redis_url = "redis://localhost:6379/15"
        with patch.object(redis_lib, "from_url") as mock_from_url:
            mock_from_url.return_value.ping.side_effect = ConnectionError
            assert _resolve_storage() is None


def test_resolve_storage_redis_available():
    import redis as redis_lib

    with patch("yumi.rate_limit.settings") as mock_settings:
        mock_settings.cache_backend = "redis"
        mock_settings.redis_url = "redis://localhost:6379/15"
        with patch.object(redis_lib, "from_url") as mock_from_url:
            mock_from_url.return_value.ping.return_value = True
            assert _resolve_storage() == "redis://localhost:6379/15"
