# app/api/idempotency.py
import json
import logging
from typing import Callable, Coroutine, Any
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from app.core.config import settings
from app.core.redis_client import get_redis_client

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"
IDEMPOTENT_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
LOCK_TTL_SECONDS = 60

def _replay(cached: str, key: str) -> Response:
    payload = json.loads(cached)
    logger.debug("Replaying stored response for idempotency key %s", key)
    return Response(
        content=payload["body"],
        status_code=payload["status_code"],
        media_type=payload["media_type"],
    )

class IdempotentAPIRoute(APIRoute):
    """
    Replays the stored response when a mutating request repeats an Idempotency-Key.
    Requests without the header are handled normally.
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        original_handler = super().get_route_handler()

        async def idempotent_handler(request: Request) -> Response:
            key = request.headers.get(IDEMPOTENCY_HEADER)
            if not key or request.method not in IDEMPOTENT_METHODS:
                return await original_handler(request)

            redis_client = get_redis_client()
            cache_key = f"idempotency:{request.method}:{request.url.path}:{key}"

            cached = await redis_client.get(cache_key)
            if cached:
                return _replay(cached, key)

            lock_key = f"{cache_key}:lock"
            if not await redis_client.set(lock_key, "1", ex=LOCK_TTL_SECONDS, nx=True):
                return JSONResponse(
                    status_code=status.HTTP_409_CONFLICT,
                    content={"message": "A request with this Idempotency-Key is already in progress."},
                )

            try:
                # The holder of the previous lock may have stored its response
                # between the first read and taking the lock.
                cached = await redis_client.get(cache_key)
                if cached:
                    return _replay(cached, key)

                response = await original_handler(request)
                # Server errors are not stored so the client can retry them.
                if response.status_code < 500:
                    await redis_client.set(
                        cache_key,
                        json.dumps({
                            "body": response.body.decode("utf-8"),
                            "status_code": response.status_code,
                            "media_type": response.media_type,
                        }),
                        ex=settings.IDEMPOTENCY_TTL_SECONDS,
                    )
                return response
            finally:
                await redis_client.delete(lock_key)

        return idempotent_handler
