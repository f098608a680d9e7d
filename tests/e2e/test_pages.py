"""
test_pages.py - 패키지 내장 페이지 템플릿 E2E 테스트

페이지:
- login (단독)
- clients, server, global_settings, status (base.html 확장)
"""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from src.app.main import create_app, load_config, resolve_extra_data

PAGES = ["login", "clients", "server", "global_settings", "status"]


@pytest.fixture
def page_client(app: FastAPI):
    """/{page} → 템플릿 렌더링 라우트가 있는 클라이언트."""

    @app.get("/{page}")
    async def render_page(request: Request, page: str):
        return request.app.state.renderer.response(request, page, {"active_page": page})

    with TestClient(app) as client:
        yield client


# =============================================================================
# 최소 데이터 렌더링
# =============================================================================

class TestMinimalData:
    """빈 map 데이터로 모든 페이지 렌더링."""

    @pytest.mark.parametrize("page", PAGES)
    def test_renders_with_version(self, app: FastAPI, page: str):
        """모든 페이지가 버전 문자열 포함."""
        output = app.state.renderer.render_to_string(page, {})

        assert "<html" in output
        assert "1.2.3" in output

    @pytest.mark.parametrize("page", PAGES)
    def test_served_over_http(self, page_client: TestClient, page: str):
        """HTTP로 요청해도 동일 (trailing slash 포함)."""
        response = page_client.get(f"/{page}/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert '<span class="app-version">1.2.3</span>' in response.text

    def test_default_config_extra_data(self, package_assets):
        """default.yaml의 extra_data가 페이지에 노출."""
        extra = resolve_extra_data(load_config())
        app = create_app(package_assets, extra, b"secret")

        for page in PAGES:
            output = app.state.renderer.render_to_string(page, {})
            assert extra["app_version"] in output
            assert extra["git_commit"] in output


# =============================================================================
# 페이지별 데이터
# =============================================================================

class TestPageContent:
    """페이지 데이터 렌더링."""

    def test_clients_list(self, app: FastAPI):
        """클라이언트 카드."""
        output = app.state.renderer.render_to_string("clients", {
            "clients": [
                {
                    "id": "c1",
                    "name": "laptop",
                    "email": "me@example.com",
                    "allocated_ips": ["10.252.1.2/32"],
                    "allowed_ips": ["0.0.0.0/0"],
                    "enabled": False,
                },
            ],
        })

        assert 'id="client_c1"' in output
        assert "laptop" in output
        assert "10.252.1.2/32" in output
        assert "Disabled" in output
        assert "No clients yet." not in output

    def test_clients_empty(self, app: FastAPI):
        """클라이언트 없음."""
        output = app.state.renderer.render_to_string("clients", {"clients": []})

        assert "No clients yet." in output

    def test_server_settings(self, app: FastAPI):
        """서버 인터페이스/키."""
        output = app.state.renderer.render_to_string("server", {
            "server_interface": {"addresses": ["10.252.1.0/24"], "listen_port": 51820},
            "server_keypair": {"public_key": "PUBKEY"},
        })

        assert 'value="10.252.1.0/24"' in output
        assert 'value="51820"' in output
        assert 'value="PUBKEY"' in output

    def test_global_settings_default_path(self, app: FastAPI):
        """설정 파일 경로 기본값."""
        output = app.state.renderer.render_to_string("global_settings", {})

        assert "/etc/wireguard/wg0.conf" in output

    def test_status_peers(self, app: FastAPI):
        """연결된 peer 표."""
        output = app.state.renderer.render_to_string("status", {
            "devices": [
                {
                    "name": "wg0",
                    "peers": [
                        {
                            "name": "phone",
                            "public_key": "PEERKEY",
                            "received_bytes": 2048,
                            "connected": True,
                        },
                    ],
                },
            ],
        })

        assert "<h3>wg0</h3>" in output
        assert "PEERKEY" in output
        assert "2.0 kB" in output

    def test_username_shows_logout(self, app: FastAPI):
        """로그인 사용자 → 로그아웃 링크."""
        output = app.state.renderer.render_to_string("server", {"username": "admin"})

        assert "admin" in output
        assert "/logout" in output

    def test_active_page(self, page_client: TestClient):
        """현재 페이지 메뉴 강조."""
        response = page_client.get("/status")

        assert 'href="/status" class="active"' in response.text
