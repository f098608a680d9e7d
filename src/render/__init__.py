"""
Render layer: HTML 페이지 렌더링.

역할:
- asset provider → 템플릿 그룹 컴파일 (Jinja2)
- 템플릿 + 데이터 + extra_data → HTML 스트림
"""

from .assets import (
    AssetLoader,
    AssetProvider,
    DirectoryAssets,
    MemoryAssets,
    PackageAssets,
)
from .registry import (
    DEFAULT_TEMPLATE_GROUPS,
    TemplateGroup,
    TemplateRegistry,
    TemplateUnit,
    build_scope,
    is_mergeable,
    load_templates,
)

__all__ = [
    # assets
    "AssetProvider",
    "AssetLoader",
    "DirectoryAssets",
    "MemoryAssets",
    "PackageAssets",
    # registry
    "DEFAULT_TEMPLATE_GROUPS",
    "TemplateGroup",
    "TemplateUnit",
    "TemplateRegistry",
    "build_scope",
    "is_mergeable",
    "load_templates",
]
