"""ローカルの Iconify JSON からアイコンデータを取り出すプロバイダー。

ネットワークからの取得は行わない。`@iconify/json` パッケージの
`json/<prefix>.json` などがローカルに置かれている前提。
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Tuple

from loguru import logger

from icon_exporter.errors import CollectionLoadError, RenderError

ICONIFY_JSON_ENV = "ICONIFY_JSON_DIR"
NODE_MODULES_JSON_DIR = Path("node_modules") / "@iconify" / "json" / "json"

# Iconify の既定値
DEFAULT_ICON_SIZE = 16
_MAX_ALIAS_DEPTH = 8
_PREFIX_RE = re.compile(r"^[a-z0-9][a-z0-9\-]*$", re.IGNORECASE)
_DIMENSION_KEYS = ("left", "top", "width", "height")


@dataclass(frozen=True)
class IconCollectionData:
    prefix: str
    icons: Mapping[str, Mapping[str, Any]]
    aliases: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    width: float = DEFAULT_ICON_SIZE
    height: float = DEFAULT_ICON_SIZE
    left: float = 0
    top: float = 0

    @property
    def icon_names(self) -> Tuple[str, ...]:
        """エクスポート対象となるアイコン名（hidden 指定は除く）。"""
        return tuple(name for name, record in self.icons.items() if not record.get("hidden"))

    def has_icon(self, name: str) -> bool:
        return name in self.icons or name in self.aliases


@dataclass(frozen=True)
class IconRenderData:
    body: str
    view_box: str
    width: float
    height: float


class IconDataProvider(Protocol):
    def locate_collection(self, name: str) -> Optional[Path]:
        ...

    def load_collection(self, path: Path) -> IconCollectionData:
        ...

    def get_icon_render_data(self, data: IconCollectionData, icon: str) -> Optional[IconRenderData]:
        ...


def default_search_paths(
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
) -> list[Path]:
    """環境変数とカレントディレクトリから既定の探索パスを作る。"""
    resolved_env = env if env is not None else os.environ
    resolved_cwd = cwd or Path.cwd()
    paths: list[Path] = []
    env_value = resolved_env.get(ICONIFY_JSON_ENV, "")
    for entry in env_value.split(os.pathsep):
        if entry.strip():
            paths.append(Path(entry.strip()))
    paths.append(resolved_cwd / NODE_MODULES_JSON_DIR)
    return paths


def parse_collection(payload: Any, fallback_prefix: str = "") -> IconCollectionData:
    """Iconify JSON のオブジェクトを IconCollectionData に変換する。"""
    if not isinstance(payload, dict):
        raise ValueError("最上位がオブジェクトではありません")
    icons = payload.get("icons")
    if not isinstance(icons, dict):
        raise ValueError("icons が見つかりません")
    aliases = payload.get("aliases") or {}
    if not isinstance(aliases, dict):
        raise ValueError("aliases の形式が不正です")

    return IconCollectionData(
        prefix=str(payload.get("prefix") or fallback_prefix),
        icons=icons,
        aliases=aliases,
        width=payload.get("width", DEFAULT_ICON_SIZE),
        height=payload.get("height", DEFAULT_ICON_SIZE),
        left=payload.get("left", 0),
        top=payload.get("top", 0),
    )


class IconifyJsonProvider:
    """`<prefix>.json` を探索パスから探して読み込む。"""

    def __init__(
        self,
        search_paths: Iterable[Path] = (),
        *,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        self.search_paths = [Path(p) for p in search_paths] + default_search_paths(env=env, cwd=cwd)

    def locate_collection(self, name: str) -> Optional[Path]:
        direct = Path(name)
        if direct.suffix.lower() == ".json" and direct.is_file():
            return direct
        if not _PREFIX_RE.match(name):
            logger.debug(f"コレクション名として使えない文字が含まれています: {name}")
            return None

        for directory in self.search_paths:
            candidate = directory / f"{name}.json"
            if candidate.is_file():
                logger.debug(f"コレクションを検出: {name} -> {candidate}")
                return candidate
        return None

    def load_collection(self, path: Path) -> IconCollectionData:
        try:
            with Path(path).open("r", encoding="utf-8") as fh:
                payload = json.load(fh)
            return parse_collection(payload, fallback_prefix=Path(path).stem)
        except (OSError, ValueError) as e:
            # JSONDecodeError も ValueError に含まれる
            raise CollectionLoadError(Path(path).stem, str(e)) from e

    def get_icon_render_data(self, data: IconCollectionData, icon: str) -> Optional[IconRenderData]:
        resolved = resolve_icon(data, icon)
        if resolved is None:
            return None

        body = resolved.get("body")
        if not isinstance(body, str) or not body.strip():
            raise RenderError(f"アイコン '{icon}' の body が不正です")

        left = resolved.get("left", data.left)
        top = resolved.get("top", data.top)
        width = resolved.get("width", data.width)
        height = resolved.get("height", data.height)
        view_box = " ".join(f"{float(v):g}" for v in (left, top, width, height))
        return IconRenderData(body=body, view_box=view_box, width=width, height=height)


def resolve_icon(data: IconCollectionData, icon: str) -> Optional[Dict[str, Any]]:
    """アイコン名（エイリアス含む）を実体のアイコン情報に解決する。

    エイリアスで上書きされたサイズ情報は親より優先される。
    循環参照や深すぎる連鎖は見つからない扱い。
    """
    overrides: Dict[str, Any] = {}
    name = icon
    for _ in range(_MAX_ALIAS_DEPTH + 1):
        record = data.icons.get(name)
        if record is not None:
            merged = dict(record)
            merged.update(overrides)
            return merged

        alias = data.aliases.get(name)
        if alias is None:
            return None
        for key in _DIMENSION_KEYS:
            if key in alias and key not in overrides:
                overrides[key] = alias[key]
        parent = alias.get("parent")
        if not isinstance(parent, str):
            return None
        name = parent
    logger.warning(f"エイリアスの連鎖が深すぎます: {data.prefix}:{icon}")
    return None
