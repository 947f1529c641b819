import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, MutableMapping, Optional, Tuple, Union

from starlette.requests import HTTPConnection, Request
from starlette.responses import Response

from .backends import MemoryStore, SessionStore
from .backends.base import mask_token
from .codecs import Codec, JSONCodec
from .config import SessionConfig
from .errors import SessionError
from .models import SessionData, Status

logger = logging.getLogger('satchel.session.manager')

ErrorHandler = Callable[[Request, Exception], Awaitable[Response]]

# ASGI scope key holding {manager: SessionData} for the current request
SCOPE_KEY = "satchel.sessions"
REMEMBER_ME_KEY = "__rememberMe"


def generate_token() -> str:
    return secrets.token_urlsafe(32)


class SessionManager:
    """
    Loads, commits and destroys sessions.

    A manager only holds configuration and references to its store and codec,
    so one instance can serve any number of concurrent requests. All mutable
    state lives in the SessionData of each request. Several managers can be
    installed in the same app as long as their cookie names differ; sessions
    are bound to the request under the identity of the manager that loaded them.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        store: Optional[SessionStore] = None,
        codec: Optional[Codec] = None,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.config = config or SessionConfig()
        self.store = store if store is not None else MemoryStore()
        self.codec = codec or JSONCodec()
        self.error_handler = error_handler

    @property
    def cookie(self):
        return self.config.cookie

    async def load(self, token: Optional[str]) -> SessionData:
        """
        Load the session for token.

        An empty token, or one the store does not know (missing or expired),
        yields a fresh empty session. Decode and store I/O failures raise.
        """
        if not token:
            return SessionData()

        record = await self.store.find(token)
        if record is None:
            logger.debug(f"No stored session for {mask_token(token)}, starting a new one")
            return SessionData()

        deadline, values = self.codec.decode(record.data)
        session = SessionData(token=token, values=values, deadline=deadline)

        # Re-commit on every request so the idle expiry slides forward
        if self.config.idle_timeout is not None:
            session.mark_modified()
        return session

    async def commit(self, session: SessionData) -> Tuple[str, datetime]:
        """Persist the session and return its token and expiry."""
        if session.status is Status.DESTROYED:
            raise SessionError("Cannot commit a destroyed session")
        if session.committed:
            raise SessionError("Session has already been committed for this request")

        now = datetime.now(timezone.utc)
        if not session.token:
            session.token = generate_token()
        if session.deadline is None:
            session.deadline = now + self.config.lifetime

        expiry = session.deadline
        if self.config.idle_timeout is not None:
            expiry = min(expiry, now + self.config.idle_timeout)

        data = self.codec.encode(session.deadline, session.values_snapshot())
        await self.store.commit(session.token, data, expiry)
        session.committed = True

        logger.debug(f"Committed session {mask_token(session.token)}, expires {expiry.isoformat()}")
        return session.token, expiry

    async def destroy(self, session: SessionData) -> None:
        """Delete the stored record and mark the session destroyed."""
        if session.token:
            await self.store.delete(session.token)
            logger.debug(f"Destroyed session {mask_token(session.token)}")
        session.mark_destroyed()

    async def renew_token(self, session: SessionData) -> None:
        """
        Replace the session token while keeping its data.

        Call this after a privilege change such as login to defend against
        session fixation. The old record is removed from the store.
        """
        if session.status is Status.DESTROYED:
            raise SessionError("Cannot renew the token of a destroyed session")
        if session.token:
            await self.store.delete(session.token)
        session.token = generate_token()
        session.mark_modified()

    def remember_me(self, session: SessionData, value: bool) -> None:
        """Force a persistent (or browser-session) cookie for this session only."""
        session[REMEMBER_ME_KEY] = value

    def is_persistent(self, session: SessionData) -> bool:
        return self.cookie.persist or session.get_bool(REMEMBER_ME_KEY)

    def set_deadline(self, session: SessionData, deadline: datetime) -> None:
        """Override the absolute expiry of the session."""
        session.deadline = deadline
        session.mark_modified()

    def bind(self, scope: MutableMapping[str, Any], session: SessionData) -> None:
        sessions: Dict[SessionManager, SessionData] = scope.setdefault(SCOPE_KEY, {})
        sessions[self] = session

    def get_session(self, conn: Union[HTTPConnection, MutableMapping[str, Any]]) -> SessionData:
        """Return the session this manager loaded for the current request."""
        scope = conn.scope if isinstance(conn, HTTPConnection) else conn
        try:
            return scope[SCOPE_KEY][self]
        except KeyError:
            raise SessionError(
                f"No session for cookie '{self.cookie.name}' in request scope, "
                "is SessionMiddleware installed for this manager?"
            ) from None
