"""
Unit tests for Session main service.
"""

import asyncio
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from service_session.app.cache.distributed_cache import MemoryDistributedCache
from service_session.app.main import SessionService, create_app
from service_session.app.session.serialization import deserialize_table
from shared.config import SameSitePolicy, SessionOptions, get_config, get_session_options


class TestSessionService:
    """Test cases for SessionService."""

    @pytest.fixture
    def cache(self):
        """Create in-memory cache."""
        return MemoryDistributedCache()

    @pytest.fixture
    def app(self, cache):
        """Create FastAPI app instance."""
        return create_app(cache=cache)

    @pytest.fixture
    def client(self, app):
        """Create test client."""
        return TestClient(app)

    def test_root_endpoint_creates_session(self, client, cache):
        """Test the demo endpoint stores the visit time and issues a cookie."""
        response = client.get("/")

        assert response.status_code == 200
        assert response.text == "Hello World!"
        assert len(cache) == 1

        identity = response.cookies[".AspNetCore.Session"]
        assert len(identity) == 32

    def test_root_endpoint_reuses_cookie(self, client, cache):
        """Test a returning client keeps its session identity."""
        first = client.get("/")
        identity = first.cookies[".AspNetCore.Session"]

        second = client.get("/", headers={"Cookie": f".AspNetCore.Session={identity}"})

        assert second.status_code == 200
        assert second.cookies[".AspNetCore.Session"] == identity
        assert len(cache) == 1

        table = deserialize_table(asyncio.run(cache.fetch("Session:" + identity)))
        assert list(table) == ["now"]

    def test_health_endpoint(self, client):
        """Test health endpoint reports the cache."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "session"
        assert data["status"] == "ok"
        assert data["dependencies"] == {"cache": "ok"}
        assert "set-cookie" not in response.headers

    def test_health_endpoint_cache_down(self):
        """Test health endpoint reports an unreachable cache."""
        cache = AsyncMock()
        cache.health_check.return_value = False
        client = TestClient(create_app(cache=cache))

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "error"

    def test_metrics_endpoint(self, client):
        """Test session metrics are exported."""
        client.get("/")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "session_commits_total" in response.text

    def test_request_id_header(self, client):
        """Test every response carries a request id."""
        response = client.get("/health", headers={"X-Request-ID": "req-1"})

        assert response.headers["X-Request-ID"] == "req-1"

    def test_service_uses_supplied_options(self, cache):
        """Test explicit session options override the environment."""
        options = SessionOptions(cookie_name="demo", idle_timeout=timedelta(seconds=30))
        service = SessionService(cache=cache, session_options=options)

        response = TestClient(service.app).get("/")

        assert "demo" in response.cookies
        assert service.cache is cache


class TestConfig:
    """Test cases for configuration loading."""

    def test_session_option_defaults(self, monkeypatch):
        for name in ("SESSION_COOKIE_NAME", "SESSION_COOKIE_PATH", "SESSION_IDLE_TIMEOUT", "SESSION_SAME_SITE"):
            monkeypatch.delenv(name, raising=False)

        options = get_session_options()

        assert options.cookie_name == ".AspNetCore.Session"
        assert options.cookie_path == "/"
        assert options.idle_timeout == timedelta(minutes=20)
        assert options.same_site is SameSitePolicy.LAX

    def test_session_options_from_environment(self, monkeypatch):
        monkeypatch.setenv("SESSION_COOKIE_NAME", "sid")
        monkeypatch.setenv("SESSION_IDLE_TIMEOUT", "PT5M")
        monkeypatch.setenv("SESSION_SAME_SITE", "strict")

        options = get_session_options()

        assert options.cookie_name == "sid"
        assert options.idle_timeout == timedelta(minutes=5)
        assert options.same_site.as_cookie_attribute() == "strict"

    def test_unspecified_same_site(self):
        assert SameSitePolicy.UNSPECIFIED.as_cookie_attribute() is None

    def test_service_config(self, monkeypatch):
        monkeypatch.setenv("ACCESS_SESSION_CACHE_BACKEND", "redis")

        config = get_config("session", 8020)

        assert config.service_name == "session"
        assert config.port == 8020
        assert config.session_cache_backend == "redis"
