# app/core/limiter.py
from slowapi import Limiter
from slowapi.util import get_remote_address
from app.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.LIMITER_STORAGE_URI or settings.REDIS_URL,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)
