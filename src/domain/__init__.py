"""Domain layer: errors."""

from .errors import (
    AssetError,
    ErrorCodes,
    RenderError,
    TemplateExecutionError,
    TemplateLoadError,
    TemplateNotFoundError,
)

__all__ = [
    "RenderError",
    "AssetError",
    "TemplateLoadError",
    "TemplateNotFoundError",
    "TemplateExecutionError",
    "ErrorCodes",
]
