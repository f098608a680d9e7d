"""
HTML 템플릿 레지스트리: 로더 + 렌더링 어댑터.

규칙:
- 템플릿 그룹 = primary 파일 1개 + dependency 파일 0개 이상
- 조회 키 = primary 파일 이름에서 확장자 제거 ("clients.html" → "clients")
- 시작 시 한 번만 로드, 이후 읽기 전용 (hot reload 없음)
- 그룹 중 하나라도 실패하면 전체 로드 실패 (부분 로드 금지)
- map 형태 데이터에만 extra_data 병합, extra_data가 항상 우선
"""

import dataclasses
import io
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Any, Protocol

from jinja2 import (
    Environment,
    StrictUndefined,
    Template,
    TemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
    meta,
    select_autoescape,
)
from pydantic import BaseModel
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import HTMLResponse

from src.domain.errors import (
    AssetError,
    TemplateExecutionError,
    TemplateLoadError,
    TemplateNotFoundError,
)
from src.render.assets import AssetLoader, AssetProvider, normalize_asset_path

logger = logging.getLogger(__name__)


class TextSink(Protocol):
    """렌더링 출력 대상. write()만 있으면 된다 (socket wrapper, StringIO 등)."""

    def write(self, s: str, /) -> Any: ...


# =============================================================================
# Template Groups
# =============================================================================


@dataclass(frozen=True)
class TemplateGroup:
    """
    함께 컴파일되는 템플릿 파일 묶음.

    primary가 dependency의 block을 확장/호출할 수 있다
    (예: clients.html이 {% extends "base.html" %}).
    """
    primary: str
    dependencies: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        """조회 키: primary 파일 이름에서 확장자 제거."""
        return PurePosixPath(normalize_asset_path(self.primary)).with_suffix("").as_posix()

    @property
    def files(self) -> tuple[str, ...]:
        return (self.primary, *self.dependencies)


DEFAULT_TEMPLATE_GROUPS: tuple[TemplateGroup, ...] = (
    TemplateGroup("login.html"),
    TemplateGroup("clients.html", ("base.html",)),
    TemplateGroup("server.html", ("base.html",)),
    TemplateGroup("global_settings.html", ("base.html",)),
    TemplateGroup("status.html", ("base.html",)),
)


@dataclass(frozen=True)
class TemplateUnit:
    """컴파일된 템플릿 단위 (primary + dependencies)."""
    name: str
    files: tuple[str, ...]
    template: Template = field(repr=False, compare=False)


# =============================================================================
# Loader
# =============================================================================


def _create_environment(assets: AssetProvider, group: TemplateGroup) -> Environment:
    """그룹 전용 Environment. loader는 그룹에 선언된 파일만 본다."""
    return Environment(
        loader=AssetLoader(assets, allowed=group.files),
        autoescape=select_autoescape(["html", "htm", "xml"]),
        undefined=StrictUndefined,
        auto_reload=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def load_template_group(assets: AssetProvider, group: TemplateGroup) -> TemplateUnit:
    """
    템플릿 그룹 하나를 컴파일.

    그룹의 모든 파일을 컴파일해서 문법 오류/누락을 시작 시점에 잡는다.

    Raises:
        TemplateLoadError: 잘못된 경로, 문법 오류, 파일 누락, 미선언 파일 참조
    """
    try:
        name = group.name
        env = _create_environment(assets, group)
    except AssetError as e:
        raise TemplateLoadError(
            group.primary,
            f"invalid file path {e.path!r}",
            file=e.path,
        ) from e

    try:
        for dependency in group.dependencies:
            env.get_template(dependency)
        template = env.get_template(group.primary)
    except TemplateSyntaxError as e:
        raise TemplateLoadError(
            name,
            f"syntax error in {e.name or e.filename!r} line {e.lineno}: {e.message}",
            file=e.name or e.filename,
            line=e.lineno,
        ) from e
    except TemplateNotFound as e:
        raise TemplateLoadError(
            name,
            f"missing file {e.name!r}",
            file=e.name,
        ) from e

    _check_references(env, group, name)

    return TemplateUnit(name=name, files=group.files, template=template)


def _check_references(env: Environment, group: TemplateGroup, name: str) -> None:
    """
    {% extends %} / {% include %} / {% import %} 대상이 그룹 안에 있는지 확인.

    상수 문자열 참조만 검사한다. 변수로 지정된 참조는 실행 시점에 실패한다.
    """
    for filename in group.files:
        source, _, _ = env.loader.get_source(env, filename)  # type: ignore[union-attr]
        referenced = meta.find_referenced_templates(env.parse(source))

        for ref in referenced:
            if ref is None:
                continue
            try:
                env.get_template(ref)
            except TemplateNotFound as e:
                raise TemplateLoadError(
                    name,
                    f"{filename!r} references {ref!r} which is not part of the group",
                    file=filename,
                    reference=ref,
                ) from e
            except TemplateSyntaxError as e:
                raise TemplateLoadError(
                    name,
                    f"syntax error in {ref!r} line {e.lineno}: {e.message}",
                    file=ref,
                    line=e.lineno,
                ) from e


def load_templates(
    assets: AssetProvider,
    groups: Iterable[TemplateGroup] = DEFAULT_TEMPLATE_GROUPS,
    log: logging.Logger | None = None,
) -> Mapping[str, TemplateUnit]:
    """
    템플릿 그룹 목록 → TemplateSet (읽기 전용 매핑).

    Args:
        assets: 템플릿 소스 파일 provider
        groups: 템플릿 그룹 목록
        log: 로거 (없으면 모듈 로거)

    Returns:
        그룹 이름 → TemplateUnit

    Raises:
        TemplateLoadError: 그룹 하나라도 실패하면 즉시
    """
    log = log or logger
    templates: dict[str, TemplateUnit] = {}

    for group in groups:
        unit = load_template_group(assets, group)
        if unit.name in templates:
            raise TemplateLoadError(unit.name, "duplicate template name")

        templates[unit.name] = unit
        log.debug(f"Loaded template {unit.name!r} from {', '.join(unit.files)}")

    log.info(f"Loaded {len(templates)} templates")
    return MappingProxyType(templates)


# =============================================================================
# Render Scope
# =============================================================================


def is_mergeable(data: Any) -> bool:
    """extra_data 병합 대상인지: 키가 모두 str인 Mapping."""
    return isinstance(data, Mapping) and all(isinstance(k, str) for k in data)


def build_scope(data: Any, extra_data: Mapping[str, str]) -> dict[str, Any]:
    """
    템플릿에 보이는 변수 구성.

    - None → {} 로 간주하고 병합
    - str 키 Mapping → 사본에 extra_data를 덮어씀 (extra_data 우선)
    - dataclass / pydantic 모델 → 필드를 그대로 노출, 병합 없음
    - 그 외 → "data" 하나로 노출, 병합 없음
    """
    if data is None:
        data = {}

    if is_mergeable(data):
        scope = dict(data)
        scope.update(extra_data)
        return scope

    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return {f.name: getattr(data, f.name) for f in dataclasses.fields(data)}

    if isinstance(data, BaseModel):
        return dict(data)

    return {"data": data}


# =============================================================================
# Registry (Rendering Adapter)
# =============================================================================


class TemplateRegistry:
    """
    HTML 렌더러.

    TemplateSet과 extra_data는 생성 후 변경되지 않으므로
    여러 요청에서 lock 없이 공유한다.

    Usage:
        registry = TemplateRegistry.from_assets(assets, {"app_version": "1.2.3"})
        registry.render(sink, "login", {})
    """

    def __init__(
        self,
        templates: Mapping[str, TemplateUnit],
        extra_data: Mapping[str, str] | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.templates: Mapping[str, TemplateUnit] = MappingProxyType(dict(templates))
        self.extra_data: Mapping[str, str] = MappingProxyType(dict(extra_data or {}))
        self.logger = log or logger

    @classmethod
    def from_assets(
        cls,
        assets: AssetProvider,
        extra_data: Mapping[str, str] | None = None,
        groups: Iterable[TemplateGroup] = DEFAULT_TEMPLATE_GROUPS,
        log: logging.Logger | None = None,
    ) -> "TemplateRegistry":
        """
        asset provider에서 템플릿을 로드해 레지스트리 생성.

        Raises:
            TemplateLoadError
        """
        return cls(load_templates(assets, groups, log), extra_data, log)

    def __contains__(self, name: object) -> bool:
        return name in self.templates

    def names(self) -> list[str]:
        return sorted(self.templates)

    def render(
        self,
        sink: TextSink,
        name: str,
        data: Any = None,
        request: Request | None = None,
    ) -> None:
        """
        템플릿을 실행해 sink에 스트리밍.

        Args:
            sink: write(str) 가능한 출력 대상
            name: 템플릿 이름 (예: "login")
            data: 템플릿 데이터
            request: 현재 요청 (렌더링에는 쓰지 않음, 프레임워크 호환용)

        Raises:
            TemplateNotFoundError: 이름 없음 (sink에 아무것도 쓰지 않음)
            TemplateExecutionError: 실행 실패 (이미 쓴 출력은 남음)
            OSError: sink 쓰기 실패 (그대로 전파)
        """
        unit = self.templates.get(name)
        if unit is None:
            raise TemplateNotFoundError(name)

        scope = build_scope(data, self.extra_data)
        chunks = unit.template.generate(scope)

        while True:
            try:
                chunk = next(chunks)
            except StopIteration:
                break
            except (TemplateError, TypeError, AttributeError, KeyError, ValueError) as e:
                self.logger.debug(f"Template {name!r} failed mid-render: {e}")
                raise TemplateExecutionError(
                    name,
                    f"{type(e).__name__}: {e}",
                    error_type=type(e).__name__,
                ) from e
            sink.write(chunk)

    def render_to_string(
        self,
        name: str,
        data: Any = None,
        request: Request | None = None,
    ) -> str:
        """render()를 문자열 버퍼로."""
        buffer = io.StringIO()
        self.render(buffer, name, data, request)
        return buffer.getvalue()

    def response(
        self,
        request: Request,
        name: str,
        data: Any = None,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
        background: BackgroundTask | None = None,
    ) -> HTMLResponse:
        """
        라우트 핸들러용 HTMLResponse 생성.

        map 형태 데이터에는 request를 추가한다 (extra_data보다 먼저 적용).
        에러는 그대로 전파되어 앱의 exception handler가 500으로 변환한다.
        """
        if data is None or is_mergeable(data):
            data = {"request": request, **(data or {})}

        content = self.render_to_string(name, data, request)
        return HTMLResponse(
            content,
            status_code=status_code,
            headers=dict(headers) if headers else None,
            background=background,
        )
