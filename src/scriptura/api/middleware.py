import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("scriptura.api.middleware")


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        logger.info(f"Request: {request.method} {request.url.path}")
        response: Response = await call_next(request)
        elapsed = time.perf_counter() - start
        logger.info(
            f"Response: {request.method} {request.url.path} | Status: {response.status_code} | {elapsed:.2f}s"
        )
        return response
