from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

ACCESS_LOGGER_NAME = "buildtrack.access"
REQUEST_ID_HEADER = "x-request-id"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One JSON access-log line per request, tagged with the request id and caller."""

    def __init__(self, app, logger: logging.Logger | None = None) -> None:
        super().__init__(app)
        self.logger = logger if logger is not None else logging.getLogger(ACCESS_LOGGER_NAME)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            self._log(self._payload("http_request_error", request, 500, start), level=logging.ERROR)
            raise

        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        self._log(self._payload("http_request", request, response.status_code, start))
        return response

    @staticmethod
    def _payload(event: str, request: Request, status: int, start: float) -> dict[str, object]:
        payload: dict[str, object] = {
            "event": event,
            "request_id": request.state.request_id,
            "method": request.method,
            "path": request.url.path,
            "status": status,
            "duration_ms": int((time.perf_counter() - start) * 1000),
        }
        user_id = getattr(request.state, "user_id", None)
        if user_id:
            payload["user_id"] = user_id
        return payload

    def _log(self, payload: dict[str, object], level: int = logging.INFO) -> None:
        self.logger.log(level, json.dumps(payload, separators=(",", ":")))
