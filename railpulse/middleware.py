from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import time
import logging
import uuid

logger = logging.getLogger(__name__)

class LoggingMiddleware(BaseHTTPMiddleware):
    """Tags every request with an X-Request-ID and logs its outcome"""

    async def dispatch(self, request: Request, call_next):
        # Reuse the caller's request ID when one is forwarded
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"

        started = time.perf_counter()
        logger.info(f"[{request_id}] {request.method} {target}")

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        log = logger.warning if response.status_code >= 500 else logger.info
        log(f"[{request_id}] {request.method} {target} -> {response.status_code} in {elapsed_ms:.1f}ms")

        response.headers["X-Request-ID"] = request_id
        return response
