"""
Asset provider: 템플릿 소스 파일을 제공하는 읽기 전용 가상 파일시스템.

- PackageAssets: 설치된 패키지에 포함된 파일 (importlib.resources)
- DirectoryAssets: 디스크 디렉터리 (root 밖으로 나가는 경로 금지)
- MemoryAssets: 메모리 매핑 (테스트, 임베드용)

AssetLoader는 AssetProvider를 Jinja2 loader로 노출한다.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path, PurePosixPath
from types import MappingProxyType

from jinja2 import BaseLoader, Environment, TemplateNotFound

from src.domain.errors import AssetError, ErrorCodes

# =============================================================================
# Path Helpers
# =============================================================================


def normalize_asset_path(name: str) -> str:
    """
    asset 이름 정규화.

    규칙:
    - 구분자는 "/" (백슬래시는 "/"로 변환)
    - 절대 경로, ".." 세그먼트 금지

    Raises:
        AssetError: INVALID_ASSET_PATH
    """
    cleaned = name.replace("\\", "/").strip()
    path = PurePosixPath(cleaned)

    if not cleaned or path.is_absolute() or ".." in path.parts:
        raise AssetError(ErrorCodes.INVALID_ASSET_PATH, name)

    parts = [p for p in path.parts if p not in ("", ".")]
    if not parts:
        raise AssetError(ErrorCodes.INVALID_ASSET_PATH, name)
    return "/".join(parts)


# =============================================================================
# Providers
# =============================================================================


class AssetProvider(ABC):
    """
    읽기 전용 asset 파일시스템 인터페이스.

    모든 이름은 "/" 구분 상대 경로 (예: "base.html", "partials/nav.html").
    """

    @abstractmethod
    def read_text(self, name: str) -> str:
        """
        파일 내용을 텍스트로 읽기.

        Raises:
            AssetError: ASSET_NOT_FOUND, INVALID_ASSET_PATH
        """

    @abstractmethod
    def exists(self, name: str) -> bool:
        """파일 존재 여부."""

    @abstractmethod
    def list_files(self) -> list[str]:
        """모든 파일 이름 (정렬됨)."""

    def mtime(self, name: str) -> float | None:
        """수정 시각. 변경되지 않는 provider는 None."""
        return None


class MemoryAssets(AssetProvider):
    """
    메모리 기반 asset provider.

    Usage:
        assets = MemoryAssets({"login.html": "<h1>{{ app_version }}</h1>"})
    """

    def __init__(self, files: Mapping[str, str]) -> None:
        self._files: Mapping[str, str] = MappingProxyType(
            {normalize_asset_path(k): v for k, v in files.items()}
        )

    def read_text(self, name: str) -> str:
        key = normalize_asset_path(name)
        try:
            return self._files[key]
        except KeyError:
            raise AssetError(ErrorCodes.ASSET_NOT_FOUND, name) from None

    def exists(self, name: str) -> bool:
        try:
            return normalize_asset_path(name) in self._files
        except AssetError:
            return False

    def list_files(self) -> list[str]:
        return sorted(self._files)


class DirectoryAssets(AssetProvider):
    """디스크 디렉터리 기반 asset provider."""

    def __init__(self, root: Path, encoding: str = "utf-8") -> None:
        self.root = Path(root).resolve()
        self.encoding = encoding

    def _resolve(self, name: str) -> Path:
        path = (self.root / normalize_asset_path(name)).resolve()
        # symlink로 root 밖을 가리키는 경우 차단
        if not path.is_relative_to(self.root):
            raise AssetError(ErrorCodes.INVALID_ASSET_PATH, name)
        return path

    def read_text(self, name: str) -> str:
        path = self._resolve(name)
        if not path.is_file():
            raise AssetError(ErrorCodes.ASSET_NOT_FOUND, name)
        return path.read_text(encoding=self.encoding)

    def exists(self, name: str) -> bool:
        try:
            return self._resolve(name).is_file()
        except AssetError:
            return False

    def list_files(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in self.root.rglob("*")
            if p.is_file()
        )

    def mtime(self, name: str) -> float | None:
        try:
            return self._resolve(name).stat().st_mtime
        except (AssetError, OSError):
            return None


class PackageAssets(AssetProvider):
    """
    패키지에 포함된 asset provider.

    wheel/zip 설치 환경에서도 동작하도록 importlib.resources 사용.

    Usage:
        assets = PackageAssets("src.app", "templates")
    """

    def __init__(
        self,
        package: str,
        directory: str = "templates",
        encoding: str = "utf-8",
    ) -> None:
        self.package = package
        self.directory = directory
        self.encoding = encoding
        self._root = resources.files(package).joinpath(directory)

    def _traverse(self, name: str) -> Traversable:
        node = self._root
        for part in normalize_asset_path(name).split("/"):
            node = node.joinpath(part)
        return node

    def read_text(self, name: str) -> str:
        node = self._traverse(name)
        if not node.is_file():
            raise AssetError(ErrorCodes.ASSET_NOT_FOUND, name)
        return node.read_text(encoding=self.encoding)

    def exists(self, name: str) -> bool:
        try:
            return self._traverse(name).is_file()
        except AssetError:
            return False

    def list_files(self) -> list[str]:
        if not self._root.is_dir():
            return []

        found: list[str] = []
        stack = [(self._root, "")]
        while stack:
            node, prefix = stack.pop()
            for child in node.iterdir():
                rel = f"{prefix}{child.name}"
                if child.is_dir():
                    stack.append((child, f"{rel}/"))
                elif child.is_file():
                    found.append(rel)
        return sorted(found)


# =============================================================================
# Jinja2 Loader
# =============================================================================


class AssetLoader(BaseLoader):
    """
    AssetProvider를 Jinja2 loader로 노출.

    allowed가 주어지면 그 파일만 보인다 (템플릿 그룹 단위 컴파일용).
    """

    def __init__(
        self,
        assets: AssetProvider,
        allowed: Iterable[str] | None = None,
    ) -> None:
        self.assets = assets
        self.allowed = (
            frozenset(normalize_asset_path(n) for n in allowed)
            if allowed is not None
            else None
        )

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str | None, Callable[[], bool] | None]:
        try:
            name = normalize_asset_path(template)
        except AssetError:
            raise TemplateNotFound(template) from None

        if self.allowed is not None and name not in self.allowed:
            raise TemplateNotFound(template)

        try:
            source = self.assets.read_text(name)
        except AssetError:
            raise TemplateNotFound(template) from None

        mtime = self.assets.mtime(name)
        # 한 번 로드한 뒤 다시 읽지 않으므로 uptodate는 단순 비교만
        return source, name, lambda: self.assets.mtime(name) == mtime

    def list_templates(self) -> list[str]:
        names = self.assets.list_files()
        if self.allowed is not None:
            names = [n for n in names if n in self.allowed]
        return names
