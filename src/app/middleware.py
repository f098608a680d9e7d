"""
ASGI middleware.

- RemoveTrailingSlashMiddleware: 라우팅 전에 "/clients/" → "/clients" (redirect 없음)
- RequestLoggingMiddleware: 요청당 access log 한 줄
- CORS 정책 상수 (CORSMiddleware에 전달)
"""

import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

# =============================================================================
# CORS Policy
# =============================================================================

CORS_ALLOW_ORIGINS = ["*"]
CORS_ALLOW_HEADERS = ["Origin", "Content-Type", "Accept", "Authorization"]
CORS_ALLOW_METHODS = ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"]


# =============================================================================
# Trailing Slash
# =============================================================================


def strip_trailing_slash(path: str) -> str:
    """루트("/")는 그대로, 그 외에는 끝의 "/" 하나만 제거."""
    if len(path) > 1 and path.endswith("/"):
        return path[:-1]
    return path or "/"


class RemoveTrailingSlashMiddleware:
    """요청 경로 끝의 "/" 제거. 라우터보다 먼저 실행되어야 한다."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] in ("http", "websocket"):
            path = scope.get("path", "")
            new_path = strip_trailing_slash(path)
            if new_path != path:
                scope = dict(scope)
                scope["path"] = new_path
                raw_path = scope.get("raw_path")
                if raw_path and raw_path.endswith(b"/"):
                    scope["raw_path"] = raw_path[:-1]

        await self.app(scope, receive, send)


# =============================================================================
# Request Logging
# =============================================================================


class RequestLoggingMiddleware:
    """
    Access log.

    형식: "<client> <METHOD> <path> <status> <latency>ms"
    처리 중 예외는 status 500으로 기록하고 다시 던진다.
    """

    def __init__(self, app: ASGIApp, logger: logging.Logger | None = None) -> None:
        self.app = app
        self.logger = logger or logging.getLogger(__name__)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            client = scope.get("client")
            remote = client[0] if client else "-"
            path = scope.get("path", "")
            if scope.get("query_string"):
                path = f"{path}?{scope['query_string'].decode('latin-1')}"
            self.logger.info(
                f"{remote} {scope.get('method', '-')} {path} "
                f"{status_code} {elapsed_ms:.1f}ms"
            )
