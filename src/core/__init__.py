"""
Core layer: 공통 인프라.

역할:
- 로깅 설정
"""

from .logging import configure_logging, get_logger, parse_level

__all__ = [
    "configure_logging",
    "get_logger",
    "parse_level",
]
