import inspect
import logging
from typing import Any, Callable, List, Union

from starlette.requests import HTTPConnection, Request
from starlette.types import ASGIApp, Receive, Scope, Send

from session.cookies import expired_cookie, session_cookie
from session.errors import SessionError
from session.manager import SessionManager
from session.models import Status

from .buffer import ResponseBuffer, add_header_if_missing
from .error_handling import default_error_handler

logger = logging.getLogger('satchel.service.middleware')

CLEANUP_SCOPE_KEY = "satchel.cleanups"


class SessionMiddleware:
    """
    Loads the session before the handler runs and saves it afterwards.

    The handler's response is buffered so the Set-Cookie header can be added
    once the final session status is known:

    - unmodified: the response is relayed untouched
    - modified: the session is committed and its cookie issued or refreshed
    - destroyed: an already-expired cookie is sent so the client drops it

    Load and commit failures go to the manager's error handler.
    A handler that takes over the connection still has its session saved,
    but no cookie can be sent.
    """

    def __init__(self, app: ASGIApp, manager: SessionManager):
        self.app = app
        self.manager = manager
        self.error_handler = manager.error_handler or default_error_handler

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        token = request.cookies.get(self.manager.cookie.name, "")

        try:
            session = await self.manager.load(token)
        except SessionError as exc:
            await self._handle_error(request, exc, send)
            return

        self.manager.bind(scope, session)
        scope.setdefault(CLEANUP_SCOPE_KEY, [])
        buffer = ResponseBuffer(scope, receive, send)

        try:
            await self.app(buffer.scope, buffer.receive, buffer.send)
        finally:
            await run_cleanups(scope)

        set_cookie = None
        if session.status is Status.MODIFIED:
            try:
                token, expiry = await self.manager.commit(session)
            except SessionError as exc:
                if buffer.taken_over:
                    logger.error(f"Session commit failed after connection takeover for {request.url.path}: {exc}")
                    return
                if buffer.started:
                    logger.error(f"Session commit failed after response was flushed for {request.url.path}: {exc}")
                    await send({"type": "http.response.body", "body": b"", "more_body": False})
                    return
                await self._handle_error(request, exc, send)
                return
            persistent = self.manager.is_persistent(session)
            set_cookie = session_cookie(self.manager.cookie, token, expiry if persistent else None)
        elif session.status is Status.DESTROYED:
            set_cookie = expired_cookie(self.manager.cookie)

        if buffer.taken_over:
            if set_cookie is not None:
                logger.warning(f"Connection for {request.url.path} was taken over, session cookie not sent")
            return

        if set_cookie is not None:
            if buffer.started:
                logger.warning(
                    f"Response for {request.url.path} was flushed before the session was saved, "
                    "session cookie not sent"
                )
            elif buffer.headers is not None:
                buffer.headers.append("Set-Cookie", set_cookie)
                add_header_if_missing(buffer.headers, "Cache-Control", 'no-cache="Set-Cookie"')
                add_header_if_missing(buffer.headers, "Vary", "Cookie")
                logger.debug(f"Session cookie set for {request.url.path}: status={session.status.value}")

        await buffer.finish()

    async def _handle_error(self, request: Request, exc: Exception, send: Send) -> None:
        response = await self.error_handler(request, exc)
        await response(request.scope, request.receive, send)


def register_cleanup(conn: Union[HTTPConnection, Scope], callback: Callable[[], Any]) -> None:
    """
    Run callback once the handler has returned, whatever the outcome.

    Use it for request-scoped temporary resources such as uploaded files.
    Callbacks may be sync or async and run in reverse registration order.
    """
    scope = conn.scope if isinstance(conn, HTTPConnection) else conn
    try:
        cleanups: List[Callable[[], Any]] = scope[CLEANUP_SCOPE_KEY]
    except KeyError:
        raise RuntimeError("No cleanup registry in request scope, is SessionMiddleware installed?") from None
    cleanups.append(callback)


async def run_cleanups(scope: Scope) -> None:
    cleanups = scope.get(CLEANUP_SCOPE_KEY) or []
    while cleanups:
        callback = cleanups.pop()
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Request cleanup {callback!r} failed: {e}", exc_info=True)
