"""
Socket.IO server attached to the HTTP application.

Only connection lifecycle logging is handled here; the server object is
exposed on ``app.state.sio`` so route handlers can reach connected
clients.
"""

from typing import Any, Optional

import socketio

from service_hub.core.cors import OriginPolicy
from service_hub.core.logging import get_logger

logger = get_logger(__name__)


async def handle_connect(sid: str, environ: dict[str, Any], auth: Optional[Any] = None) -> None:
    logger.info(
        "Client connected",
        sid=sid,
        origin=environ.get("HTTP_ORIGIN"),
    )


async def handle_disconnect(sid: str, reason: Optional[str] = None) -> None:
    logger.info("Client disconnected", sid=sid, reason=reason)


def create_realtime_server(policy: OriginPolicy) -> socketio.AsyncServer:
    """
    Build the Socket.IO server with the shared origin policy.

    Args:
        policy: Origin policy also used by the HTTP CORS middleware

    Returns:
        Configured ASGI-mode Socket.IO server
    """
    sio = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=policy.allows_socket_origin,
        cors_credentials=True,
        logger=False,
        engineio_logger=False,
    )
    sio.on("connect", handle_connect)
    sio.on("disconnect", handle_disconnect)

    return sio


def create_asgi_app(sio: socketio.AsyncServer, http_app: Any) -> socketio.ASGIApp:
    """Serve Socket.IO on ``/socket.io`` and everything else from ``http_app``."""
    return socketio.ASGIApp(sio, other_asgi_app=http_app, socketio_path="socket.io")
