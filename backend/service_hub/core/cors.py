"""
Cross-origin policy shared by the HTTP API and the Socket.IO server.

Origins are accepted when they match the configured list exactly or
match the deployment glob pattern (``https://shivaklik-frontend*.vercel.app``
by default, which covers every Vercel preview build of the frontend).
The same ``OriginPolicy`` instance backs both the Starlette CORS
middleware and the Socket.IO ``cors_allowed_origins`` callback.
"""

import re
from typing import Any, Optional, Sequence

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from service_hub.core.logging import get_logger

logger = get_logger(__name__)

CORS_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization", "Origin", "X-Requested-With", "Accept"]


def compile_origin_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile an origin glob into an anchored regular expression.

    Only ``*`` is special and matches any run of characters; everything
    else, dots included, is matched literally.

    Args:
        pattern: Glob such as ``https://shivaklik-frontend*.vercel.app``

    Returns:
        Compiled pattern intended for ``fullmatch``
    """
    parts = (re.escape(part) for part in pattern.split("*"))
    return re.compile(".*".join(parts))


class OriginPolicy:
    """Decides whether a browser origin may talk to the backend."""

    def __init__(self, allowed_origins: Sequence[str], pattern: Optional[str] = None):
        self.allowed_origins = list(allowed_origins)
        self.pattern = pattern
        self._regex = compile_origin_pattern(pattern) if pattern else None

    def is_allowed(self, origin: Optional[str]) -> bool:
        """
        Check an origin against the exact list and the deployment pattern.

        Args:
            origin: Value of the Origin header

        Returns:
            True when the origin is allowed, False otherwise (including
            for a missing or empty origin)
        """
        if not origin:
            return False
        if origin in self.allowed_origins:
            return True
        return bool(self._regex is not None and self._regex.fullmatch(origin))

    def allows_request_origin(self, origin: Optional[str]) -> bool:
        """
        Origin check for HTTP requests.

        Requests without an Origin header (server-to-server calls, mobile
        apps, curl) are not cross-origin requests and are let through.
        """
        if not origin:
            return True
        if self.is_allowed(origin):
            logger.info("CORS allowed for", origin=origin)
            return True
        logger.warning("Blocked by CORS", origin=origin)
        return False

    def allows_socket_origin(self, origin: Optional[str], environ: Any = None) -> bool:
        """
        Origin check handed to Socket.IO as ``cors_allowed_origins``.

        Args:
            origin: Value of the Origin header of the handshake
            environ: Handshake environment (unused)

        Returns:
            True when the connection may proceed
        """
        if not origin or self.is_allowed(origin):
            return True
        logger.warning("Blocked by CORS", origin=origin, transport="socket.io")
        return False


class OriginPolicyCORSMiddleware(CORSMiddleware):
    """
    Starlette CORS middleware driven by an ``OriginPolicy``.

    Preflight handling and response headers are Starlette's. A
    non-preflight request carrying a disallowed Origin is refused with
    403 instead of being served without CORS headers.
    """

    def __init__(
        self,
        app: ASGIApp,
        policy: OriginPolicy,
        allow_methods: Sequence[str] = CORS_METHODS,
        allow_headers: Sequence[str] = CORS_HEADERS,
        allow_credentials: bool = True,
        expose_headers: Sequence[str] = ("X-Request-ID",),
        max_age: int = 600,
    ) -> None:
        super().__init__(
            app,
            allow_origins=policy.allowed_origins,
            allow_methods=allow_methods,
            allow_headers=allow_headers,
            allow_credentials=allow_credentials,
            expose_headers=expose_headers,
            max_age=max_age,
        )
        self.policy = policy

    def is_allowed_origin(self, origin: str) -> bool:
        return self.policy.is_allowed(origin)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        origin = headers.get("origin")
        if origin is None:
            await self.app(scope, receive, send)
            return

        is_preflight = (
            scope["method"] == "OPTIONS"
            and "access-control-request-method" in headers
        )
        if not self.policy.allows_request_origin(origin) and not is_preflight:
            response = JSONResponse(
                {"error": "Not allowed by CORS"},
                status_code=403,
            )
            await response(scope, receive, send)
            return

        await super().__call__(scope, receive, send)
