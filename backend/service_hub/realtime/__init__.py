"""Socket.IO real-time server."""
