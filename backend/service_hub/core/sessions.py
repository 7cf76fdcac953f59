"""
Server-side session middleware.

The browser only holds a signed session ID; session contents live in
the store (``MongoSessionStore`` in production). Behaviour:

- a new session that the handler never writes to is not stored and
  sets no cookie;
- a session is written back only when its contents changed;
- an unchanged session has its expiry refreshed at most once every
  ``touch_after`` seconds;
- a session emptied by the handler is destroyed and its cookie cleared;
- ``request.session.regenerate()`` swaps the ID (used on login).
"""

import json
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Literal, Optional, Protocol

import itsdangerous
from itsdangerous.exc import BadSignature
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from service_hub.core.logging import get_logger
from service_hub.database.session_store import StoredSession

logger = get_logger(__name__)

SESSION_ID_BYTES = 32


class SessionStore(Protocol):
    """Persistence used by the middleware; see ``MongoSessionStore``."""

    async def load(self, session_id: str) -> Optional[StoredSession]:
        """Return the session, or None if unknown or expired."""
        ...

    async def save(self, session_id: str, data: dict[str, Any], expires: datetime) -> None:
        """Create or replace the session with new contents and expiry."""
        ...

    async def touch(self, session_id: str, expires: datetime) -> None:
        """Extend the expiry without rewriting the contents."""
        ...

    async def destroy(self, session_id: str) -> None:
        """Delete the session."""
        ...


class SessionData(dict):
    """Session contents exposed as ``request.session``."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.regenerate_requested = False

    def regenerate(self) -> None:
        """Issue a fresh session ID when the response is sent, keeping the data."""
        self.regenerate_requested = True


def _fingerprint(data: dict[str, Any]) -> str:
    return json.dumps(data, sort_keys=True, default=str)


def generate_session_id() -> str:
    """Generate a URL-safe random session ID."""
    return secrets.token_urlsafe(SESSION_ID_BYTES)


class SessionMiddleware:
    """Pure ASGI middleware attaching a store-backed session to each request."""

    def __init__(
        self,
        app: ASGIApp,
        store: SessionStore,
        secret_key: str,
        cookie_name: str = "shivalik.sid",
        max_age: int = 60 * 60 * 24 * 7,
        touch_after: int = 24 * 3600,
        path: str = "/",
        same_site: Literal["lax", "strict", "none"] = "lax",
        https_only: bool = False,
    ) -> None:
        self.app = app
        self.store = store
        self.signer = itsdangerous.TimestampSigner(str(secret_key))
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.touch_after = touch_after
        self.path = path
        self.security_flags = "httponly; samesite=" + same_site
        if https_only:
            self.security_flags += "; secure"

    def _unsign(self, cookie_value: Optional[str]) -> Optional[str]:
        if not cookie_value:
            return None
        try:
            return self.signer.unsign(cookie_value, max_age=self.max_age).decode("utf-8")
        except BadSignature:
            logger.warning("Rejected session cookie with invalid signature")
            return None

    def _session_cookie(self, session_id: str) -> str:
        signed = self.signer.sign(session_id).decode("utf-8")
        return (
            f"{self.cookie_name}={signed}; path={self.path}; "
            f"Max-Age={self.max_age}; {self.security_flags}"
        )

    def _clear_cookie(self) -> str:
        return (
            f"{self.cookie_name}=null; path={self.path}; "
            f"expires=Thu, 01 Jan 1970 00:00:00 GMT; {self.security_flags}"
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        session_id = self._unsign(connection.cookies.get(self.cookie_name))
        stored = await self.store.load(session_id) if session_id else None
        if stored is None:
            session_id = None

        session = SessionData(stored.data if stored else {})
        scope["session"] = session
        initial = _fingerprint(session)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                cookie = await self._commit(session, session_id, stored, initial)
                if cookie is not None:
                    headers = MutableHeaders(scope=message)
                    headers.append("Set-Cookie", cookie)
            await send(message)

        await self.app(scope, receive, send_wrapper)

    async def _commit(
        self,
        session: SessionData,
        session_id: Optional[str],
        stored: Optional[StoredSession],
        initial: str,
    ) -> Optional[str]:
        """
        Persist the session after the handler ran.

        Returns:
            Set-Cookie header value, or None when the cookie is unchanged
        """
        now = datetime.now(timezone.utc)
        expires = now + timedelta(seconds=self.max_age)
        had_session = session_id is not None
        modified = _fingerprint(session) != initial

        if session.regenerate_requested and session_id is not None:
            await self.store.destroy(session_id)
            logger.info("Session regenerated", previous_session_id=session_id)
            session_id = None
            modified = True

        if not session:
            if had_session and modified:
                if session_id is not None:
                    await self.store.destroy(session_id)
                return self._clear_cookie()
            return None

        if modified or session_id is None:
            session_id = session_id or generate_session_id()
            await self.store.save(session_id, dict(session), expires)
            return self._session_cookie(session_id)

        if stored is not None:
            age = (now - stored.last_modified).total_seconds()
            if age >= self.touch_after:
                await self.store.touch(session_id, expires)
        return None
