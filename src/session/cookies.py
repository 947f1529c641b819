import math
from datetime import datetime, timezone
from email.utils import format_datetime
from http.cookies import SimpleCookie
from typing import Optional

from .config import CookieConfig

# Sent when a session is destroyed so the browser drops the cookie immediately
EXPIRED = datetime.fromtimestamp(1, tz=timezone.utc)


def _render(
    cookie: CookieConfig,
    value: str,
    expires: Optional[datetime] = None,
    max_age: Optional[int] = None,
) -> str:
    jar: SimpleCookie = SimpleCookie()
    jar[cookie.name] = value
    morsel = jar[cookie.name]

    morsel["path"] = cookie.path
    if cookie.domain:
        morsel["domain"] = cookie.domain
    if expires is not None:
        morsel["expires"] = format_datetime(expires, usegmt=True)
    if max_age is not None:
        morsel["max-age"] = max_age
    if cookie.secure:
        morsel["secure"] = True
    if cookie.http_only:
        morsel["httponly"] = True
    if cookie.same_site is not None:
        morsel["samesite"] = cookie.same_site.value.capitalize()

    return jar.output(header="").strip()


def session_cookie(cookie: CookieConfig, token: str, expiry: Optional[datetime] = None) -> str:
    """
    Build the Set-Cookie value for a committed session.

    Without an expiry the cookie is a browser-session cookie. With one, Expires
    and Max-Age are rounded up to whole seconds so the cookie never expires
    before the stored record.
    """
    if expiry is None:
        return _render(cookie, token)

    expires = datetime.fromtimestamp(int(expiry.timestamp()) + 1, tz=timezone.utc)
    max_age = math.ceil((expiry - datetime.now(timezone.utc)).total_seconds())
    return _render(cookie, token, expires=expires, max_age=max_age)


def expired_cookie(cookie: CookieConfig) -> str:
    """Build the Set-Cookie value that deletes the session cookie client-side."""
    return _render(cookie, "", expires=EXPIRED, max_age=-1)
