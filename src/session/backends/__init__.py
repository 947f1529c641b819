"""Session stores: token -> (encoded session data, expiry)."""

from .base import SessionStore, StoreRecord
from .memory import MemoryStore
from .redis_backend import RedisStore

__all__ = [
    "SessionStore",
    "StoreRecord",
    "MemoryStore",
    "RedisStore",
]
