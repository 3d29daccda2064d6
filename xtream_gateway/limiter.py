"""
Per-client rate limiting (slowapi).
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from xtream_gateway.config import get_settings

settings = get_settings()

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

# Applied to every Xtream endpoint
DEFAULT_LIMIT = f"{settings.rate_limit_per_minute}/minute"
