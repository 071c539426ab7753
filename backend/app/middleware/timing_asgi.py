"""
Pure ASGI timing middleware.

Adds an X-Process-Time header, logs slow requests and feeds the HTTP
Prometheus collectors. WebSocket scopes pass straight through.
"""

import logging
import re
import time

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.config import settings
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_SKIP_PATHS = {"/api/v1/health", "/metrics/prometheus"}
_ULID_SEGMENT = re.compile(r"/[0-9A-HJKMNP-TV-Z]{26}(?=/|$)")


def _endpoint_label(path: str) -> str:
    """Collapse ULID path segments so metric cardinality stays bounded."""
    return _ULID_SEGMENT.sub("/{id}", path)


class TimingMiddlewareASGI:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        method = scope.get("method", "")
        if path in _SKIP_PATHS:
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status_holder = {"code": 500}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                status_holder["code"] = message["status"]
                process_ms = (time.perf_counter() - start_time) * 1000
                headers = MutableHeaders(scope=message)
                headers["X-Process-Time"] = f"{process_ms:.2f}ms"
                if process_ms > settings.slow_request_threshold_ms:
                    logger.warning("[TIMING] Slow request: %s %s took %.2fms", method, path, process_ms)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            logger.error(
                "[TIMING] Error in request %s after %.2fms: %s",
                path,
                (time.perf_counter() - start_time) * 1000,
                e,
            )
            raise
        finally:
            prometheus_metrics.record_http_request(
                method,
                _endpoint_label(path),
                time.perf_counter() - start_time,
                status_holder["code"],
            )
