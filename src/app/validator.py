"""
Request validation hook.

핸들러가 폼/JSON 바디를 pydantic 모델로 검증할 때 사용.
실패 시 ValidationFailedError → 앱 exception handler가 400으로 변환.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from src.domain.errors import ErrorCodes, RenderError

ModelT = TypeVar("ModelT", bound=BaseModel)


class ValidationFailedError(RenderError):
    """요청 데이터 검증 실패."""

    def __init__(self, model: str, errors: list[dict[str, Any]]) -> None:
        self.model = model
        self.errors = errors
        super().__init__(
            ErrorCodes.VALIDATION_FAILED,
            f"Invalid {model}: {len(errors)} error(s)",
            model=model,
            errors=errors,
        )


def _format_errors(exc: ValidationError) -> list[dict[str, Any]]:
    """pydantic 에러 → {field, message, type} 목록."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "__root__",
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


class Validator:
    """
    pydantic 기반 검증기.

    Usage:
        validator = request.app.state.validator
        form = validator.validate(LoginForm, await request.json())
    """

    def validate(self, model: type[ModelT], payload: Mapping[str, Any] | ModelT) -> ModelT:
        """
        Raises:
            ValidationFailedError
        """
        if isinstance(payload, model):
            payload = payload.model_dump()

        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise ValidationFailedError(model.__name__, _format_errors(e)) from e
