"""
Logging setup.

- 모듈마다 logging.getLogger(__name__)
- 앱/레지스트리에는 logger를 명시적으로 주입 (전역 레벨 변경 없음)
"""

import logging

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_LEVEL = "DEBUG"
APP_LOGGER_NAME = "wgui"

VALID_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def parse_level(level: str | int) -> int:
    """
    로그 레벨 이름 → 숫자.

    Raises:
        ValueError: 알 수 없는 레벨
    """
    if isinstance(level, int):
        return level

    name = level.strip().upper()
    if name not in VALID_LEVELS:
        raise ValueError(f"Unknown log level: {level!r} (expected one of {VALID_LEVELS})")
    return int(getattr(logging, name))


def configure_logging(
    level: str | int = DEFAULT_LEVEL,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    root handler 설정 후 앱 로거 반환.

    CLI 진입점에서 한 번만 호출한다. 테스트는 호출하지 않고 caplog 사용.
    """
    numeric = parse_level(level)
    logging.basicConfig(level=numeric, format=fmt, force=True)

    app_logger = get_logger()
    app_logger.setLevel(numeric)
    return app_logger


def get_logger(name: str | None = None) -> logging.Logger:
    """앱 로거 또는 그 하위 로거."""
    if not name:
        return logging.getLogger(APP_LOGGER_NAME)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")
