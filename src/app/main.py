"""
FastAPI 애플리케이션 진입점.

실행:
- 개발: uv run uvicorn src.app.main:create_default_app --factory --reload
- 프로덕션: uv run python -m src.app.main --host 0.0.0.0 --port 5000
"""

import argparse
import logging
import os
import secrets
import sys
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from src.app.middleware import (
    CORS_ALLOW_HEADERS,
    CORS_ALLOW_METHODS,
    CORS_ALLOW_ORIGINS,
    RemoveTrailingSlashMiddleware,
    RequestLoggingMiddleware,
)
from src.app.validator import ValidationFailedError, Validator
from src.core.logging import DEFAULT_FORMAT, DEFAULT_LEVEL, configure_logging, get_logger
from src.domain.errors import TemplateExecutionError, TemplateLoadError, TemplateNotFoundError
from src.render.assets import AssetProvider, DirectoryAssets, PackageAssets
from src.render.registry import DEFAULT_TEMPLATE_GROUPS, TemplateGroup, TemplateRegistry

PROJECT_ROOT = Path(__file__).parent.parent.parent
STATIC_DIR = Path(__file__).parent / "static"
DEFAULT_TITLE = "WireGuard UI"
DEFAULT_VERSION = "0.1.0"
DEFAULT_SECRET_ENV = "SESSION_SECRET"
SESSION_COOKIE = "session"

# =============================================================================
# Configuration
# =============================================================================


def load_config(config_path: Path | None = None) -> dict:
    """설정 파일 로드."""
    if config_path is None:
        # 프로젝트 루트의 default.yaml
        config_path = PROJECT_ROOT / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data: dict[Any, Any] = yaml.safe_load(f) or {}
        return data


def resolve_extra_data(config: Mapping[str, Any]) -> dict[str, str]:
    """
    템플릿에 항상 주입할 앱 메타데이터.

    app.version → app_version, app.extra_data는 그 위에 덮어씀. 값은 모두 str.
    """
    app_config = config.get("app") or {}
    extra: dict[str, str] = {
        "app_version": str(app_config.get("version", DEFAULT_VERSION)),
    }
    for key, value in (app_config.get("extra_data") or {}).items():
        extra[str(key)] = "" if value is None else str(value)
    return extra


def resolve_session_secret(
    config: Mapping[str, Any],
    log: logging.Logger | None = None,
) -> bytes:
    """
    세션 쿠키 서명 키.

    session.secret_env 환경 변수(기본 SESSION_SECRET) → 없으면 랜덤 생성.
    랜덤 키는 재시작 시 기존 세션이 모두 무효화된다.
    """
    log = log or get_logger()
    env_name = (config.get("session") or {}).get("secret_env", DEFAULT_SECRET_ENV)

    value = os.environ.get(env_name)
    if value:
        return value.encode("utf-8")

    log.warning(f"{env_name} is not set, using a random session secret")
    return secrets.token_bytes(32)


# =============================================================================
# Exception Handlers
# =============================================================================


def _install_exception_handlers(app: FastAPI, log: logging.Logger) -> None:
    async def render_error_handler(
        request: Request, exc: TemplateNotFoundError | TemplateExecutionError
    ) -> JSONResponse:
        log.error(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": exc.code, "message": exc.message},
        )

    async def validation_error_handler(
        request: Request, exc: ValidationFailedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": exc.code, "message": exc.message, "errors": exc.errors},
        )

    app.add_exception_handler(TemplateNotFoundError, render_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(TemplateExecutionError, render_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ValidationFailedError, validation_error_handler)  # type: ignore[arg-type]


# =============================================================================
# App Factory
# =============================================================================


def create_app(
    assets: AssetProvider,
    extra_data: Mapping[str, str],
    session_secret: bytes | str,
    *,
    logger: logging.Logger | None = None,
    config: Mapping[str, Any] | None = None,
    groups: Iterable[TemplateGroup] = DEFAULT_TEMPLATE_GROUPS,
) -> FastAPI:
    """
    애플리케이션 서버 생성.

    Args:
        assets: 템플릿 소스 asset provider
        extra_data: 모든 map 형태 템플릿 데이터에 주입할 메타데이터
        session_secret: 세션 쿠키 서명 키
        logger: 앱 로거 (없으면 "wgui")
        config: load_config() 결과
        groups: 로드할 템플릿 그룹

    Raises:
        TemplateLoadError: 템플릿 로드 실패 (서버를 띄우지 않음)
        ValueError: session_secret이 비어 있음
    """
    if not session_secret:
        raise ValueError("session_secret must not be empty")
    if isinstance(session_secret, bytes):
        session_secret = session_secret.decode("latin-1")

    log = logger or get_logger()
    config = dict(config or {})
    app_config = config.get("app") or {}

    # 템플릿을 먼저 로드: 실패하면 앱 자체를 만들지 않는다
    renderer = TemplateRegistry.from_assets(assets, extra_data, groups, log)

    app = FastAPI(
        title=app_config.get("title", DEFAULT_TITLE),
        version=str(app_config.get("version", DEFAULT_VERSION)),
    )
    app.state.config = config
    app.state.renderer = renderer
    app.state.validator = Validator()
    app.state.extra_data = renderer.extra_data
    app.state.logger = log

    # 마지막에 추가한 middleware가 가장 바깥
    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        session_cookie=SESSION_COOKIE,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_headers=CORS_ALLOW_HEADERS,
        allow_methods=CORS_ALLOW_METHODS,
    )
    app.add_middleware(RequestLoggingMiddleware, logger=log)
    app.add_middleware(RemoveTrailingSlashMiddleware)

    _install_exception_handlers(app, log)

    # Static files (CSS)
    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.get("/health")
    async def health() -> dict[str, str]:
        """헬스 체크."""
        return {"status": "ok"}

    return app


def create_default_app(
    config_path: Path | None = None,
    assets: AssetProvider | None = None,
    env_file: Path | None = None,
) -> FastAPI:
    """
    default.yaml + .env/환경 변수 + 패키지 내장 템플릿으로 앱 생성.

    uvicorn factory로 사용한다 (import 시점에 템플릿을 로드하지 않음):
        uvicorn src.app.main:create_default_app --factory

    Args:
        config_path: YAML 설정 파일 (없으면 프로젝트 루트 default.yaml)
        assets: 템플릿 asset provider (없으면 패키지 내장 템플릿)
        env_file: .env 파일 (없으면 현재 디렉터리부터 위로 탐색)

    Raises:
        TemplateLoadError
    """
    # 이미 설정된 환경 변수가 .env보다 우선
    load_dotenv(env_file or find_dotenv(usecwd=True))
    config = load_config(config_path)
    log = get_logger()
    return create_app(
        assets if assets is not None else PackageAssets("src.app", "templates"),
        resolve_extra_data(config),
        resolve_session_secret(config, log),
        logger=log,
        config=config,
    )


# =============================================================================
# CLI Entry Point
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="WireGuard UI web server")
    parser.add_argument("--config", type=Path, default=None, help="YAML 설정 파일")
    parser.add_argument("--templates", type=Path, default=None, help="템플릿 디렉터리 (기본: 내장)")
    parser.add_argument("--host", default=None, help="bind 주소")
    parser.add_argument("--port", type=int, default=None, help="bind 포트")
    parser.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    server_config = config.get("server") or {}
    logging_config = config.get("logging") or {}

    log = configure_logging(
        args.log_level or logging_config.get("level", DEFAULT_LEVEL),
        logging_config.get("format", DEFAULT_FORMAT),
    )

    assets = DirectoryAssets(args.templates) if args.templates else None
    try:
        server = create_default_app(args.config, assets)
    except TemplateLoadError as e:
        log.critical(str(e))
        return 1

    import uvicorn

    uvicorn.run(
        server,
        host=args.host or server_config.get("host", "127.0.0.1"),
        port=args.port or int(server_config.get("port", 5000)),
        log_level=logging.getLevelName(log.level).lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
