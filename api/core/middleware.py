"""
Request logging middleware.

Every request gets a request id (taken from `X-Request-ID` or generated),
echoed back as a response header and used in error envelopes. Start and
completion are logged with method, path, status, duration and, once the
bearer dependency has run, the authenticated project id.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("api.access")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER, "").strip() or str(uuid.uuid4())
        request.state.request_id = request_id

        logger.info(
            "request_received",
            extra={"context": {"request_id": request_id, "method": request.method, "path": request.url.path}},
        )

        start = time.monotonic()
        response: Response | None = None
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            status_code = response.status_code if response is not None else 500
            context: dict[str, Any] = {
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status": status_code,
                "duration_ms": round((time.monotonic() - start) * 1000, 2),
            }
            project_id = getattr(request.state, "project_id", None)
            if project_id is not None:
                context["project_id"] = str(project_id)

            if status_code >= 500:
                logger.error("request_completed", extra={"context": context})
            elif status_code >= 400:
                logger.warning("request_completed", extra={"context": context})
            else:
                logger.info("request_completed", extra={"context": context})
