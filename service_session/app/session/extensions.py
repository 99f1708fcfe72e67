"""
Typed accessors over the byte-valued session table.
"""

from typing import Optional

from .lazy_session import LazySession


def set_string(session: LazySession, key: str, value: str) -> None:
    session.set(key, value.encode("utf-8"))


async def get_string(session: LazySession, key: str) -> Optional[str]:
    value, found = await session.get(key)
    if not found:
        return None
    return value.decode("utf-8")


def set_int32(session: LazySession, key: str, value: int) -> None:
    """Store ``value`` as four big-endian bytes."""
    session.set(key, value.to_bytes(4, byteorder="big", signed=True))


async def get_int32(session: LazySession, key: str) -> Optional[int]:
    value, found = await session.get(key)
    if not found or len(value) != 4:
        return None
    return int.from_bytes(value, byteorder="big", signed=True)
