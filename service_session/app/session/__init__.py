"""
Request-scoped session state.
"""

from .lazy_session import LazySession, SESSION_KEY_PREFIX
from .serialization import serialize_table, deserialize_table

__all__ = [
    "LazySession",
    "SESSION_KEY_PREFIX",
    "serialize_table",
    "deserialize_table",
]
