"""
Cache package for Session Service.

Exposes the byte-oriented ``DistributedCache`` contract sessions depend
on, with Redis and in-process implementations.
"""

from .distributed_cache import (
    DistributedCache,
    RedisDistributedCache,
    MemoryDistributedCache,
    create_distributed_cache,
)

__all__ = [
    "DistributedCache",
    "RedisDistributedCache",
    "MemoryDistributedCache",
    "create_distributed_cache",
]
