#!/usr/bin/env python3
"""
check_templates.py - 페이지 템플릿 사전 검증 스크립트

서버를 띄우지 않고 템플릿 그룹을 컴파일해 본다.
문법 오류, 파일 누락, 그룹에 없는 파일 참조가 있으면 종료 코드 1.

사용법:
    # 패키지 내장 템플릿
    uv run python scripts/check_templates.py

    # 디스크의 템플릿 디렉터리 (편집 중인 사본)
    uv run python scripts/check_templates.py --dir ./my-templates

    # 빈 데이터로 렌더링까지 시도
    uv run python scripts/check_templates.py --render
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

# 프로젝트 루트를 path에 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.domain.errors import RenderError, TemplateLoadError  # noqa: E402
from src.render.assets import AssetProvider, DirectoryAssets, PackageAssets  # noqa: E402
from src.render.registry import (  # noqa: E402
    DEFAULT_TEMPLATE_GROUPS,
    TemplateGroup,
    TemplateRegistry,
    load_template_group,
)

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

CHECK_EXTRA_DATA = {"app_version": "0.0.0-check"}


@dataclass
class CheckResult:
    """검증 결과."""
    checked: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def check_templates(
    assets: AssetProvider,
    groups: tuple[TemplateGroup, ...] = DEFAULT_TEMPLATE_GROUPS,
    render: bool = False,
) -> CheckResult:
    """
    그룹별로 컴파일 (실패해도 나머지 그룹 계속 검사).

    Args:
        assets: 템플릿 asset provider
        groups: 검사할 그룹
        render: True면 빈 map 데이터로 렌더링까지 시도
    """
    result = CheckResult()

    for group in groups:
        result.checked.append(group.name)
        try:
            unit = load_template_group(assets, group)
        except TemplateLoadError as e:
            result.errors[group.name] = e.message
            continue

        if render:
            registry = TemplateRegistry({unit.name: unit}, CHECK_EXTRA_DATA)
            try:
                registry.render_to_string(unit.name, {})
            except RenderError as e:
                result.errors[group.name] = e.message

    return result


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="페이지 템플릿 사전 검증",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--dir",
        type=Path,
        default=None,
        help="템플릿 디렉터리 (기본: 패키지 내장 템플릿)",
    )
    parser.add_argument(
        "--render",
        action="store_true",
        help="빈 데이터로 렌더링까지 시도",
    )
    args = parser.parse_args(argv)

    if args.dir is not None:
        if not args.dir.is_dir():
            logger.error(f"템플릿 디렉터리 없음: {args.dir}")
            return 1
        assets: AssetProvider = DirectoryAssets(args.dir)
    else:
        assets = PackageAssets("src.app", "templates")

    result = check_templates(assets, render=args.render)

    for name in result.checked:
        if name in result.errors:
            logger.error(f"  FAIL {name}: {result.errors[name]}")
        else:
            logger.info(f"  OK   {name}")

    logger.info(f"검사: {len(result.checked)} templates, 실패: {len(result.errors)}")
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
