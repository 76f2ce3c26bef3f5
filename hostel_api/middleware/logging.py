import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from hostel_api.core.request_context import get_request_context

logger = logging.getLogger("access")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        context = get_request_context(request)

        response = await call_next(request)

        # Calculate processing time
        process_time = time.time() - start_time

        logger.info(
            f"{context['endpoint']} - "
            f"Status: {response.status_code} - "
            f"Client: {context['ip_address']} - "
            f"Time: {process_time:.4f}s"
        )

        # Add process time to response headers
        response.headers["X-Process-Time"] = str(process_time)

        return response
