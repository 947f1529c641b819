import os
import re
import logging
from datetime import timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger('satchel.session.config')

# RFC 6265 cookie-name token: no whitespace, separators or control characters
_COOKIE_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


class SameSite(str, Enum):
    lax = "lax"
    strict = "strict"
    none = "none"


class CookieConfig(BaseModel):
    """Attributes of the session cookie. Read-only once the manager is built."""

    model_config = ConfigDict(frozen=True)

    name: str = "session"
    domain: Optional[str] = None
    path: str = "/"
    http_only: bool = True
    secure: bool = False
    # Persistent cookies carry Expires/Max-Age; otherwise they die with the browser session
    persist: bool = True
    same_site: Optional[SameSite] = SameSite.lax

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not _COOKIE_NAME_RE.match(value):
            raise ValueError(f"Invalid cookie name: {value!r}")
        return value


class SessionConfig(BaseModel):
    """
    Session lifetime settings.

    lifetime is the absolute expiry, fixed when the session is first committed.
    idle_timeout, when set, expires sessions after a period of inactivity but
    never extends them past the absolute lifetime.
    """

    model_config = ConfigDict(frozen=True)

    lifetime: timedelta = timedelta(hours=24)
    idle_timeout: Optional[timedelta] = None
    cookie: CookieConfig = Field(default_factory=CookieConfig)

    @field_validator("lifetime")
    @classmethod
    def validate_lifetime(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("lifetime must be positive")
        return value

    @field_validator("idle_timeout")
    @classmethod
    def validate_idle_timeout(cls, value: Optional[timedelta]) -> Optional[timedelta]:
        if value is not None and value <= timedelta(0):
            raise ValueError("idle_timeout must be positive when set")
        return value

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Build the configuration from environment variables."""
        idle_timeout = os.getenv("SESSION_IDLE_TIMEOUT_SECONDS")
        same_site = os.getenv("SESSION_COOKIE_SAMESITE", "lax").strip().lower()

        cookie = CookieConfig(
            name=os.getenv("SESSION_COOKIE_NAME", "session"),
            domain=os.getenv("COOKIE_DOMAIN") or None,  # Set to .example.com for subdomain sharing
            path=os.getenv("SESSION_COOKIE_PATH", "/"),
            http_only=_env_flag("SESSION_COOKIE_HTTP_ONLY", True),
            # For development, allow insecure cookies over HTTP
            secure=_env_flag("SECURE_COOKIES", True),
            persist=_env_flag("SESSION_COOKIE_PERSIST", True),
            same_site=SameSite(same_site) if same_site else None,
        )
        config = cls(
            lifetime=timedelta(seconds=int(os.getenv("SESSION_LIFETIME_SECONDS", 24 * 60 * 60))),
            idle_timeout=timedelta(seconds=int(idle_timeout)) if idle_timeout else None,
            cookie=cookie,
        )
        logger.info(
            f"Session config loaded: cookie={cookie.name}, lifetime={config.lifetime}, "
            f"idle_timeout={config.idle_timeout}, secure={cookie.secure}"
        )
        return config


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() == "true"
