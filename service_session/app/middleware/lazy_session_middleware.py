"""
Request middleware that attaches a ``LazySession`` to every request.
"""

from typing import Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from shared.config import SessionOptions
from shared.errors import SessionConfigurationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..cache.distributed_cache import DistributedCache
from ..session.lazy_session import LazySession


DEFAULT_COOKIE_NAME = ".AspNetCore.Session"


def _require_dependencies(cache: Optional[DistributedCache], options: Optional[SessionOptions]) -> None:
    if cache is None:
        raise SessionConfigurationError("A distributed cache is required", {"dependency": "cache"})
    if options is None:
        raise SessionConfigurationError("Session options are required", {"dependency": "options"})


class LazySessionMiddleware(BaseHTTPMiddleware):
    """Load-on-demand session middleware.

    The session is published as ``request.scope["session"]`` before the
    handler runs, committed after it returns, and the session cookie is
    issued or deleted based on what the session holds after the commit.
    """

    def __init__(
        self,
        app,
        cache: DistributedCache,
        options: SessionOptions,
        metrics: Optional[MetricsCollector] = None,
    ):
        super().__init__(app)
        _require_dependencies(cache, options)
        self.cache = cache
        self.options = options
        self.metrics = metrics
        self.logger = get_logger("session.middleware")

    async def dispatch(self, request: Request, call_next):
        cookie_name = self.options.cookie_name or DEFAULT_COOKIE_NAME
        session = LazySession(
            self.cache,
            self.logger,
            self.options,
            request.cookies.get(cookie_name),
            metrics=self.metrics,
        )
        request.scope["session"] = session

        try:
            response = await call_next(request)
        finally:
            await self._commit(session)

        if session.has_data:
            response.set_cookie(
                cookie_name,
                session.identity,
                path=self.options.cookie_path or "/",
                secure=request.url.scheme == "https",
                httponly=True,
                samesite=self.options.same_site.as_cookie_attribute(),
            )
        elif session.had_identity_on_entry:
            response.delete_cookie(cookie_name, path=self.options.cookie_path or "/")

        return response

    async def _commit(self, session: LazySession) -> None:
        try:
            await session.commit()
        except Exception as e:
            self._record_commit("error")
            self.logger.warning("Error committing session", error=str(e))
            return

        self._record_commit("ok" if session.was_modified else "skipped")

    def _record_commit(self, result: str) -> None:
        if self.metrics is not None:
            self.metrics.record_commit(result)


def install_lazy_session(
    app: FastAPI,
    cache: DistributedCache,
    options: Optional[SessionOptions] = None,
    *,
    metrics: Optional[MetricsCollector] = None,
) -> None:
    """Register ``LazySessionMiddleware`` on ``app``.

    Dependencies are checked here so a misconfigured service fails at
    startup instead of on its first request.
    """
    options = options if options is not None else SessionOptions()
    _require_dependencies(cache, options)
    app.add_middleware(LazySessionMiddleware, cache=cache, options=options, metrics=metrics)


def get_session(request: Request) -> LazySession:
    """FastAPI dependency returning the current request's session."""
    session = request.scope.get("session")
    if not isinstance(session, LazySession):
        raise SessionConfigurationError("LazySessionMiddleware is not installed")
    return session
