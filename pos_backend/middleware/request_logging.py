"""
Request Logging Middleware: log slow and failed API requests.

Does NOT block requests, only observes them. Tags each request with an id
that is echoed back in the `X-Request-ID` header.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import logging
import time
import uuid
from typing import Dict

logger = logging.getLogger("requests")

# Maximum request duration before logging as slow
SLOW_REQUEST_THRESHOLD = 5.0  # seconds


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.time()
        context = self._build_context(request)

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(f"REQUEST ERROR {context['method']} {context['path']}: {str(e)[:500]}",
                         extra=self._extra(context, duration))
            raise

        duration = time.time() - start_time
        if duration > SLOW_REQUEST_THRESHOLD:
            logger.warning(f"SLOW REQUEST ({duration:.2f}s) {context['method']} {context['path']}",
                           extra=self._extra(context, duration))
        if response.status_code >= 400:
            self._log_failed_request(context, response.status_code, duration)

        response.headers["X-Request-ID"] = context["request_id"]
        return response

    def _build_context(self, request: Request) -> Dict:
        return {
            "request_id": request.headers.get("x-request-id") or uuid.uuid4().hex[:12],
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        }

    def _extra(self, context: Dict, duration: float) -> Dict:
        return {"request_id": context["request_id"], "duration_ms": round(duration * 1000, 1)}

    def _log_failed_request(self, context: Dict, status_code: int, duration: float):
        message = f"{context['method']} {context['path']} -> {status_code} from {context['client_ip']}"
        extra = self._extra(context, duration)
        if status_code >= 500:
            logger.error(f"SERVER ERROR: {message}", extra=extra)
        elif status_code == 429:
            logger.warning(f"RATE LIMITED: {message}", extra=extra)
        elif status_code in (401, 403):
            logger.warning(f"UNAUTHORIZED: {message}", extra=extra)
        else:
            logger.info(f"CLIENT ERROR: {message}", extra=extra)
