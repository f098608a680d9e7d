"""
Error definitions for the template rendering layer.

규칙:
- 시작 시 템플릿 로드 실패 → TemplateLoadError (치명적, 서버 기동 중단)
- 요청 처리 중 실패 → TemplateNotFoundError / TemplateExecutionError
  (프레임워크 에러 핸들러가 500 응답으로 변환)
- 이미 스트리밍된 출력은 롤백하지 않음
"""

from typing import Any


class RenderError(Exception):
    """
    렌더링 계층 공통 에러.

    Usage:
        raise RenderError("RENDER_FAILED", "template exploded", name="login")
    """

    def __init__(self, code: str, message: str, **context: Any) -> None:
        self.code = code
        self.message = message
        self.context = context
        super().__init__(f"[{code}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """로그/JSON 직렬화용."""
        return {
            "code": self.code,
            "message": self.message,
            **self.context,
        }


class AssetError(RenderError):
    """asset provider에서 파일을 읽을 수 없음."""

    def __init__(self, code: str, path: str) -> None:
        self.path = path
        super().__init__(code, f"Cannot read asset: {path!r}", path=path)


class TemplateLoadError(RenderError):
    """
    템플릿 그룹 로드 실패 (startup, fatal).

    문법 오류, 파일 누락, 그룹에 선언되지 않은 파일 참조 시 발생.
    부분적으로 로드된 TemplateSet으로 서버를 띄우지 않는다.
    """

    def __init__(self, group: str, message: str, **context: Any) -> None:
        self.group = group
        super().__init__(
            ErrorCodes.TEMPLATE_LOAD_FAILED,
            f"Error loading template {group!r}: {message}",
            group=group,
            **context,
        )


class TemplateNotFoundError(RenderError):
    """요청한 이름의 템플릿이 TemplateSet에 없음 (per-request)."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            ErrorCodes.TEMPLATE_NOT_FOUND,
            f"Template not found: {name!r}",
            name=name,
        )


class TemplateExecutionError(RenderError):
    """
    템플릿 실행 실패 (per-request).

    데이터에 필요한 필드가 없거나, 템플릿 내부 참조가 깨진 경우.
    실패 전까지 sink에 쓰인 출력은 그대로 남는다.
    """

    def __init__(self, name: str, message: str, **context: Any) -> None:
        self.name = name
        super().__init__(
            ErrorCodes.RENDER_FAILED,
            f"Error rendering template {name!r}: {message}",
            name=name,
            **context,
        )


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """에러 코드 상수."""

    # === Templates ===
    TEMPLATE_LOAD_FAILED = "TEMPLATE_LOAD_FAILED"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    RENDER_FAILED = "RENDER_FAILED"

    # === Assets ===
    ASSET_NOT_FOUND = "ASSET_NOT_FOUND"
    INVALID_ASSET_PATH = "INVALID_ASSET_PATH"

    # === Request ===
    VALIDATION_FAILED = "VALIDATION_FAILED"
