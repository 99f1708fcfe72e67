"""
Session service for the lazy distributed session demo.
"""

from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import Depends
from fastapi.responses import PlainTextResponse

from shared.base_service import BaseService
from shared.config import SessionOptions, get_session_options

from .cache.distributed_cache import DistributedCache, RedisDistributedCache, create_distributed_cache
from .middleware.lazy_session_middleware import install_lazy_session, get_session
from .session.extensions import set_string
from .session.lazy_session import LazySession


class SessionService(BaseService):
    """Session service implementation."""

    def __init__(
        self,
        cache: Optional[DistributedCache] = None,
        session_options: Optional[SessionOptions] = None,
    ):
        self.cache = cache
        self.session_options = session_options if session_options is not None else get_session_options()
        super().__init__("session", 8020)

        self._setup_session_routes()

    def _setup_middleware(self):
        """Set up middleware."""
        if self.cache is None:
            self.cache = create_distributed_cache(
                self.config.session_cache_backend,
                self.config.redis_url
            )

        # Registered before the timing middleware so it runs inside it.
        install_lazy_session(self.app, self.cache, self.session_options, metrics=self.metrics)
        super()._setup_middleware()

    def _setup_session_routes(self):
        """Set up session-specific routes."""

        @self.app.get("/", response_class=PlainTextResponse)
        async def root(session: LazySession = Depends(get_session)):
            """Record the time of the latest visit in the session."""
            set_string(session, "now", datetime.now(timezone.utc).isoformat())
            return "Hello World!"

    async def start(self):
        """Start session service components."""
        if isinstance(self.cache, RedisDistributedCache):
            await self.cache.start()

        self.logger.info(
            "Session service started",
            cache=type(self.cache).__name__,
            cookie_name=self.session_options.cookie_name,
            idle_timeout_seconds=self.session_options.idle_timeout.total_seconds()
        )

    async def stop(self):
        """Stop session service components."""
        if isinstance(self.cache, RedisDistributedCache):
            await self.cache.stop()

        self.logger.info("Session service stopped")

    async def _check_dependencies(self) -> Dict[str, str]:
        health_check = getattr(self.cache, "health_check", None)
        if health_check is None:
            return {"cache": "unknown"}
        if not await health_check():
            raise RuntimeError("distributed cache unreachable")
        return {"cache": "ok"}


def create_app(
    cache: Optional[DistributedCache] = None,
    session_options: Optional[SessionOptions] = None,
):
    """Create session service application."""
    service = SessionService(cache=cache, session_options=session_options)
    return service.app


if __name__ == "__main__":
    service = SessionService()
    service.run()
