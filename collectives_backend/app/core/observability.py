"""
Observability Middleware.

Adds correlation IDs and structured logging context to requests.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from collectives_backend.app.core.config import settings

logger = logging.getLogger("collectives")


def configure_logging() -> None:
    """Attach a stream handler to the package logger once."""
    logger.setLevel(settings.log_level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        ))
        logger.addHandler(handler)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000  # ms
        
        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = str(process_time)
        
        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(process_time, 2),
            "ip": request.client.host if request.client else "unknown"
        }
        
        message = "%s: %s %s status=%s duration_ms=%s correlation_id=%s ip=%s"
        args = (
            log_data["method"], log_data["path"], log_data["status_code"], log_data["duration_ms"],
            log_data["correlation_id"], log_data["ip"],
        )
        
        # Log level based on status
        if response.status_code >= 500:
            logger.error(message, "Request Failed", *args, extra=log_data)
        elif response.status_code >= 400:
            logger.warning(message, "Request Error", *args, extra=log_data)
        else:
            logger.info(message, "Request API", *args, extra=log_data)
            
        return response
