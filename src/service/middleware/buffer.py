"""
Buffered ASGI response channel.

The session middleware can only decide on the Set-Cookie header after the
handler has returned, so the handler's start and body messages are held here
and replayed afterwards. Streaming handlers call flush_response() to push what
they have written so far; headers are frozen from that point on.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import anyio
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import Message, Receive, Scope, Send

from session.errors import NotSupportedError

logger = logging.getLogger('satchel.service.middleware')

SCOPE_KEY = "satchel.response_buffer"

# Extensions the buffer can honour; anything else is hidden from the handler
PASSTHROUGH_EXTENSIONS = ("http.response.push", "http.response.early_hint")


@dataclass(frozen=True)
class SinkCapabilities:
    """Transport features of the underlying ASGI server available to handlers."""

    takeover: bool = True
    push: bool = False
    flush: bool = True
    close_notify: bool = True

    @classmethod
    def from_scope(cls, scope: Scope) -> "SinkCapabilities":
        extensions = scope.get("extensions") or {}
        return cls(push="http.response.push" in extensions)


class ResponseBuffer:
    def __init__(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        capabilities: Optional[SinkCapabilities] = None,
    ):
        self._receive = receive
        self._send = send
        self.capabilities = capabilities or SinkCapabilities.from_scope(scope)

        self.status_code: Optional[int] = None
        self.headers: Optional[MutableHeaders] = None
        self._body = bytearray()
        self.disconnected = False
        self._disconnect_event: Optional[anyio.Event] = None

        self.started = False
        self.finished = False
        self.taken_over = False

        extensions = scope.get("extensions") or {}
        self.scope = dict(scope)
        self.scope["extensions"] = {k: v for k, v in extensions.items() if k in PASSTHROUGH_EXTENSIONS}
        self.scope[SCOPE_KEY] = self

    @property
    def has_response(self) -> bool:
        return self.status_code is not None

    @property
    def pending_body(self) -> bytes:
        return bytes(self._body)

    async def receive(self) -> Message:
        message = await self._receive()
        if message["type"] == "http.disconnect":
            self.disconnected = True
            if self._disconnect_event is not None:
                self._disconnect_event.set()
        return message

    async def send(self, message: Message) -> None:
        if self.taken_over:
            await self._send(message)
            return

        message_type = message["type"]
        if message_type == "http.response.start":
            if self.status_code is None:
                self.status_code = message["status"]
                self.headers = MutableHeaders(raw=list(message.get("headers", [])))
            return
        if message_type == "http.response.body":
            self._body.extend(message.get("body", b""))
            return
        if message_type == "http.response.push":
            await self.push(message["path"], message.get("headers", []))
            return
        # Early hints go out ahead of the response
        await self._send(message)

    async def push(self, path: str, headers: List[Tuple[bytes, bytes]]) -> None:
        if not self.capabilities.push:
            raise NotSupportedError("Server push is not supported by this server")
        await self._send({"type": "http.response.push", "path": path, "headers": headers})

    async def flush(self) -> None:
        """Send everything buffered so far, keeping the response open."""
        if not self.capabilities.flush:
            raise NotSupportedError("Flushing is not supported by this server")
        if self.taken_over or self.finished or not self.has_response:
            return

        await self._send_start()
        if self._body:
            chunk = bytes(self._body)
            self._body.clear()
            await self._send({"type": "http.response.body", "body": chunk, "more_body": True})

    def close_notify(self) -> anyio.Event:
        """Event set once the client disconnects."""
        if not self.capabilities.close_notify:
            raise NotSupportedError("Close notification is not supported by this server")
        if self._disconnect_event is None:
            self._disconnect_event = anyio.Event()
            if self.disconnected:
                self._disconnect_event.set()
        return self._disconnect_event

    def takeover(self) -> Send:
        """Hand the raw send channel to the caller and stop buffering."""
        if not self.capabilities.takeover:
            raise NotSupportedError("Connection takeover is not supported by this server")
        if self.started:
            raise RuntimeError("Cannot take over a connection after the response has been flushed")
        self.taken_over = True
        self._body.clear()
        return self._send

    async def finish(self) -> None:
        """Relay the buffered response to the server."""
        if self.taken_over or self.finished:
            return
        if not self.has_response:
            if self._body:
                logger.warning(f"Discarding {len(self._body)} body bytes sent without a response start")
            return

        await self._send_start()
        chunk = bytes(self._body)
        self._body.clear()
        await self._send({"type": "http.response.body", "body": chunk, "more_body": False})
        self.finished = True

    async def _send_start(self) -> None:
        if self.started:
            return
        self.started = True
        await self._send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self.headers.raw if self.headers is not None else [],
        })


def get_response_buffer(conn: Union[HTTPConnection, Scope]) -> ResponseBuffer:
    scope = conn.scope if isinstance(conn, HTTPConnection) else conn
    try:
        return scope[SCOPE_KEY]
    except KeyError:
        raise RuntimeError("No response buffer in request scope, is SessionMiddleware installed?") from None


async def flush_response(conn: Union[HTTPConnection, Scope]) -> None:
    await get_response_buffer(conn).flush()


def add_header_if_missing(headers: MutableHeaders, key: str, value: str) -> None:
    if value not in headers.getlist(key):
        headers.append(key, value)
