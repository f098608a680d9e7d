"""
App layer: 웹 서버 (FastAPI).

역할:
- 세션/CORS/access log middleware 구성
- 요청 검증 hook, 렌더링 에러 → HTTP 응답 변환

주의: 폴더 구분
- src/app/templates/ → Jinja2 HTML (패키지에 포함, PackageAssets로 로드)
- src/render/ → 코드 (assets.py, registry.py)
"""
