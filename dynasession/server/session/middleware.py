from __future__ import annotations

import logging
import secrets
from typing import Any, Optional

from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .base import SessionStore
from .schemas import CookieOptions

logger = logging.getLogger(__name__)


class DynamoDBSessionMiddleware:
    """Server-side sessions: the cookie only carries the session id.

    The payload lives in the store and is exposed to handlers as
    ``request.session``. A non-empty session is written back when the
    response starts; a loaded session that the handler cleared is destroyed.
    """

    def __init__(
        self,
        app: ASGIApp,
        store: SessionStore,
        cookie: Optional[CookieOptions] = None,
    ) -> None:
        self.app = app
        self.store = store
        self.cookie = cookie or CookieOptions()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        sid = connection.cookies.get(self.cookie.name)
        loaded: Optional[dict[str, Any]] = None
        if sid:
            loaded = await self.store.get(sid)
        if loaded is None:
            sid = None

        scope["session"] = {key: value for key, value in (loaded or {}).items() if key != "cookie"}

        async def send_wrapper(message: Message) -> None:
            nonlocal sid
            if message["type"] == "http.response.start":
                session = scope["session"]
                headers = MutableHeaders(scope=message)
                if session:
                    if sid is None:
                        sid = secrets.token_urlsafe(32)
                    await self.store.set(sid, {**session, "cookie": self._cookie_payload()})
                    headers.append("Set-Cookie", self._cookie_header(sid, self.cookie.max_age))
                elif sid is not None:
                    await self.store.destroy(sid)
                    headers.append("Set-Cookie", self._cookie_header("null", 0))
                    logger.debug("Destroyed emptied session %s", sid)
            await send(message)

        await self.app(scope, receive, send_wrapper)

    def _cookie_payload(self) -> dict[str, Any]:
        return {
            "maxAge": self.cookie.max_age * 1000,
            "path": self.cookie.path,
            "secure": self.cookie.secure,
            "sameSite": self.cookie.same_site,
            "httpOnly": True,
        }

    def _cookie_header(self, value: str, max_age: int) -> str:
        header = f"{self.cookie.name}={value}; path={self.cookie.path}; Max-Age={max_age}; httponly; samesite={self.cookie.same_site}"
        if self.cookie.secure:
            header += "; secure"
        return header
