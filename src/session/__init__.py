"""Server-side sessions keyed by an opaque cookie token."""

from .config import CookieConfig, SameSite, SessionConfig
from .codecs import Codec, JSONCodec, PickleCodec
from .errors import CodecError, NotSupportedError, SessionError, StoreError
from .manager import SessionManager
from .models import SessionData, Status

__all__ = [
    "CookieConfig",
    "SameSite",
    "SessionConfig",
    "Codec",
    "JSONCodec",
    "PickleCodec",
    "CodecError",
    "NotSupportedError",
    "SessionError",
    "StoreError",
    "SessionManager",
    "SessionData",
    "Status",
]
