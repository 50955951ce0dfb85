# src/utils/rate_limiter.py
from slowapi import Limiter
from slowapi.util import get_remote_address
from core.config import settings

# Per-client limits are declared on the routes with @limiter.limit(...)
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.RATE_LIMIT_ENABLED,
)
