"""Request rate limiting for credential endpoints (slowapi)."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from service_hub.core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=get_settings().rate_limit_enabled,
)

LOGIN_RATE_LIMIT = get_settings().login_rate_limit
