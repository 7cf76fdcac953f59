"""HTTP route groups mounted under ``/api``."""

from service_hub.api.routes import admin, auth, cart, payment, products, stats, user_auth

__all__ = ["admin", "auth", "cart", "payment", "products", "stats", "user_auth"]
