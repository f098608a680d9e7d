"""
test_middleware.py - ASGI middleware 단위 테스트
"""

import logging

import pytest
from fastapi.testclient import TestClient
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from src.app.middleware import (
    RemoveTrailingSlashMiddleware,
    RequestLoggingMiddleware,
    strip_trailing_slash,
)


async def echo_path(request: Request) -> PlainTextResponse:
    return PlainTextResponse(request.url.path)


async def explode(request: Request) -> PlainTextResponse:
    raise RuntimeError("boom")


def _build_app(*middleware) -> Starlette:
    app = Starlette(
        routes=[
            Route("/", echo_path),
            Route("/clients", echo_path),
            Route("/explode", explode),
        ]
    )
    for cls, kwargs in middleware:
        app.add_middleware(cls, **kwargs)
    return app


class TestStripTrailingSlash:
    """strip_trailing_slash 테스트."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/", "/"),
            ("//", "/"),
            ("///", "//"),
            ("/clients", "/clients"),
            ("/clients/", "/clients"),
            ("/api/clients//", "/api/clients/"),
            ("", "/"),
        ],
    )
    def test_paths(self, path: str, expected: str):
        assert strip_trailing_slash(path) == expected


class TestRemoveTrailingSlashMiddleware:
    """RemoveTrailingSlashMiddleware 테스트."""

    def test_rewrites_before_routing(self):
        """redirect 없이 라우트 매칭."""
        app = _build_app((RemoveTrailingSlashMiddleware, {}))

        with TestClient(app) as client:
            response = client.get("/clients/")

        assert response.status_code == 200
        assert response.history == []
        assert response.text == "/clients"

    def test_root_untouched(self):
        """루트는 그대로."""
        app = _build_app((RemoveTrailingSlashMiddleware, {}))

        with TestClient(app) as client:
            assert client.get("/").text == "/"

    def test_strips_single_slash(self):
        """끝의 "/" 하나만 제거 (path, raw_path)."""
        seen = []

        async def capture(scope, receive, send):
            seen.append((scope["path"], scope["raw_path"]))
            await PlainTextResponse("ok")(scope, receive, send)

        # lifespan 없이 (http scope만)
        TestClient(RemoveTrailingSlashMiddleware(capture)).get("/clients//")

        assert seen == [("/clients/", b"/clients/")]


class TestRequestLoggingMiddleware:
    """RequestLoggingMiddleware 테스트."""

    def test_logs_status(self, caplog):
        """method, path, status 기록."""
        log = logging.getLogger("test.access")
        caplog.set_level(logging.INFO, logger="test.access")
        app = _build_app((RequestLoggingMiddleware, {"logger": log}))

        with TestClient(app) as client:
            client.get("/clients")
            client.get("/nope")

        lines = [r.getMessage() for r in caplog.records if r.name == "test.access"]
        assert len(lines) == 2
        assert "testclient GET /clients 200" in lines[0]
        assert "GET /nope 404" in lines[1]
        assert lines[0].endswith("ms")

    def test_logs_failure_and_reraises(self, caplog):
        """예외는 500으로 기록하고 다시 던짐."""
        log = logging.getLogger("test.access")
        caplog.set_level(logging.INFO, logger="test.access")
        app = _build_app((RequestLoggingMiddleware, {"logger": log}))

        with TestClient(app) as client:
            with pytest.raises(RuntimeError):
                client.get("/explode")

        lines = [r.getMessage() for r in caplog.records if r.name == "test.access"]
        assert any("GET /explode 500" in line for line in lines)
