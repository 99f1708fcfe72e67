"""
Middleware package for Session Service.
"""

from .lazy_session_middleware import LazySessionMiddleware, install_lazy_session, get_session

__all__ = ["LazySessionMiddleware", "install_lazy_session", "get_session"]
