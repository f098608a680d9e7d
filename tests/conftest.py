"""
Pytest fixtures for the web server tests.

구성:
- 메모리 asset (MemoryAssets) 기반 템플릿 그룹
- 패키지 내장 템플릿 (PackageAssets)
- TestClient
"""

from collections.abc import Generator
from pathlib import Path

import pytest
import yaml
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.app.main import create_app
from src.render.assets import MemoryAssets, PackageAssets
from src.render.registry import TemplateGroup, TemplateRegistry

# =============================================================================
# Path Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """프로젝트 루트 경로."""
    return Path(__file__).parent.parent


@pytest.fixture
def default_config_path(project_root: Path) -> Path:
    """default.yaml 경로."""
    return project_root / "default.yaml"


@pytest.fixture
def default_config(default_config_path: Path) -> dict:
    """기본 설정 로드."""
    with open(default_config_path, encoding="utf-8") as f:
        return yaml.safe_load(f)


# =============================================================================
# Template Fixtures
# =============================================================================

BASE_HTML = """<html><head><title>{% block title %}{% endblock %}</title></head>
<body>{% block content %}{% endblock %}
<footer>v{{ app_version }}</footer></body></html>
"""

LOGIN_HTML = """<form>login</form><span>{{ app_version }}</span>
{% if username is defined %}<b>{{ username }}</b>{% endif %}
"""

CLIENTS_HTML = """{% extends "base.html" %}
{% block title %}Clients{% endblock %}
{% block content %}{% for c in clients | default([]) %}<li>{{ c.name }}</li>{% endfor %}{% endblock %}
"""


@pytest.fixture
def extra_data() -> dict[str, str]:
    """모든 map 데이터에 주입되는 메타데이터."""
    return {"app_version": "1.2.3"}


@pytest.fixture
def memory_assets() -> MemoryAssets:
    """login(단독) + clients(base 포함) 템플릿."""
    return MemoryAssets({
        "login.html": LOGIN_HTML,
        "base.html": BASE_HTML,
        "clients.html": CLIENTS_HTML,
    })


@pytest.fixture
def memory_groups() -> tuple[TemplateGroup, ...]:
    return (
        TemplateGroup("login.html"),
        TemplateGroup("clients.html", ("base.html",)),
    )


@pytest.fixture
def registry(
    memory_assets: MemoryAssets,
    memory_groups: tuple[TemplateGroup, ...],
    extra_data: dict[str, str],
) -> TemplateRegistry:
    """메모리 템플릿 레지스트리."""
    return TemplateRegistry.from_assets(memory_assets, extra_data, memory_groups)


@pytest.fixture
def package_assets() -> PackageAssets:
    """패키지에 포함된 실제 페이지 템플릿."""
    return PackageAssets("src.app", "templates")


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(package_assets: PackageAssets, extra_data: dict[str, str]) -> FastAPI:
    """내장 템플릿으로 만든 앱."""
    return create_app(package_assets, extra_data, b"test-secret")


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """FastAPI TestClient."""
    with TestClient(app) as client:
        yield client
