"""エクスポート設定の定義・検証・読み込みを扱う。"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple, Union

from loguru import logger

from icon_exporter.errors import ConfigurationError
from icon_exporter.naming import VALID_CASE_KINDS, CaseKind

VALID_OUTPUT_FORMATS = ("svg", "png", "jpeg", "webp")
RASTER_FORMATS = frozenset({"png", "jpeg", "webp"})
_FORMAT_ALIASES = {"jpg": "jpeg"}


@dataclass(frozen=True)
class SquareSize:
    size: int

    @property
    def width(self) -> int:
        return self.size

    @property
    def height(self) -> int:
        return self.size

    @property
    def label(self) -> str:
        return str(self.size)


@dataclass(frozen=True)
class RectSize:
    width: int
    height: int

    @property
    def label(self) -> str:
        return f"{self.width}x{self.height}"


Size = Union[SquareSize, RectSize]


# サイズプリセット（正方形 / 長方形 / モバイル / SNS）
SIZE_PRESETS: Dict[str, Tuple[Size, ...]] = {
    "square": tuple(SquareSize(s) for s in (16, 24, 32, 48, 64, 96, 128, 256, 512)),
    "rectangular": (
        RectSize(32, 16),
        RectSize(64, 32),
        RectSize(128, 64),
        RectSize(300, 150),
        RectSize(400, 200),
        RectSize(800, 400),
        RectSize(120, 60),
        RectSize(240, 120),
    ),
    "mobile": (
        RectSize(375, 812),
        RectSize(390, 844),
        RectSize(428, 926),
        RectSize(393, 852),
        RectSize(430, 932),
    ),
    "social_media": (
        RectSize(1200, 630),
        RectSize(1080, 1080),
        RectSize(1080, 566),
        RectSize(1080, 1350),
        RectSize(1200, 1200),
        RectSize(1584, 396),
        RectSize(400, 400),
    ),
}


def get_size_preset(name: str) -> Tuple[Size, ...]:
    """プリセット名からサイズ一覧を返す（大文字小文字は区別しない）。"""
    key = name.strip().lower().replace("-", "_")
    if key == "social":
        key = "social_media"
    try:
        return SIZE_PRESETS[key]
    except KeyError:
        raise ConfigurationError(
            f"サイズプリセットが見つかりません: {name}（利用可能: {', '.join(SIZE_PRESETS)}）"
        ) from None


def _positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name}は正の整数を指定してください: {value!r}")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ConfigurationError(f"{name}は整数を指定してください: {value!r}") from None
    if isinstance(value, float):
        if not value.is_integer():
            raise ConfigurationError(f"{name}は整数を指定してください: {value!r}")
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f"{name}は正の整数を指定してください: {value!r}")
    return value


def parse_size(value: Any) -> Size:
    """いろいろな表記のサイズ指定を SquareSize / RectSize に変換する。

    受け付ける形式: 48, "48", "32x16", {"width": 32, "height": 16}, (32, 16)
    """
    if isinstance(value, SquareSize):
        return SquareSize(_positive_int(value.size, "サイズ"))
    if isinstance(value, RectSize):
        return RectSize(_positive_int(value.width, "幅"), _positive_int(value.height, "高さ"))
    if isinstance(value, Mapping):
        if "width" not in value or "height" not in value:
            raise ConfigurationError(f"サイズには width と height が必要です: {dict(value)!r}")
        return RectSize(_positive_int(value["width"], "幅"), _positive_int(value["height"], "高さ"))
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ConfigurationError(f"サイズは (幅, 高さ) の2要素で指定してください: {value!r}")
        return RectSize(_positive_int(value[0], "幅"), _positive_int(value[1], "高さ"))
    if isinstance(value, str) and "x" in value.lower():
        width_text, _, height_text = value.lower().partition("x")
        return RectSize(_positive_int(width_text, "幅"), _positive_int(height_text, "高さ"))
    return SquareSize(_positive_int(value, "サイズ"))


def normalize_format(value: str) -> str:
    """出力形式を正規化する（`jpg` は `jpeg` に統一）。"""
    if not isinstance(value, str):
        raise ConfigurationError(f"出力形式は文字列で指定してください: {value!r}")
    requested = value.strip().lower().lstrip(".")
    requested = _FORMAT_ALIASES.get(requested, requested)
    if requested not in VALID_OUTPUT_FORMATS:
        raise ConfigurationError(
            f"不正な出力形式です: {value}（利用可能: {', '.join(VALID_OUTPUT_FORMATS)}）"
        )
    return requested


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return tuple(seen)


def _as_sequence(value: Any) -> Sequence[Any]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class FileNaming:
    pattern: str = "{icon}-{collection}"
    sanitize: bool = True
    case: CaseKind = "kebab"

    def __post_init__(self) -> None:
        if not isinstance(self.pattern, str) or not self.pattern.strip():
            raise ConfigurationError("ファイル名パターンが空です")
        if self.case not in VALID_CASE_KINDS:
            raise ConfigurationError(
                f"不正なケース指定です: {self.case}（利用可能: {', '.join(sorted(VALID_CASE_KINDS))}）"
            )


@dataclass(frozen=True)
class FolderStructure:
    enabled: bool = True
    pattern: str = "{collection}"
    group_by_size: bool = False
    group_by_color: bool = False
    group_by_format: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.pattern, str):
            raise ConfigurationError("フォルダーパターンは文字列で指定してください")


@dataclass(frozen=True)
class ExportConfig:
    collections: Tuple[str, ...]
    icons_to_export: Tuple[str, ...] = ()
    output_dir: Path = Path("./icons")
    default_size: Size = SquareSize(48)
    default_color: str = "currentColor"
    output_formats: Tuple[str, ...] = ("svg",)
    file_naming: FileNaming = field(default_factory=FileNaming)
    folder_structure: FolderStructure = field(default_factory=FolderStructure)
    parallel: int = 1
    skip_existing: bool = False
    dry_run: bool = False
    background_color: Optional[str] = None
    raster_quality: int = 90
    write_summary: bool = False
    collection_paths: Tuple[Path, ...] = ()

    def __post_init__(self) -> None:
        collections = _as_sequence(self.collections)
        if not collections:
            raise ConfigurationError("少なくとも1つのコレクションを指定してください")
        for name in collections:
            if not isinstance(name, str) or not name.strip():
                raise ConfigurationError(f"コレクション名が不正です: {name!r}")
        object.__setattr__(self, "collections", _unique(c.strip() for c in collections))

        icons = _as_sequence(self.icons_to_export)
        object.__setattr__(self, "icons_to_export", _unique(str(i).strip() for i in icons if str(i).strip()))

        if self.output_dir is None or not str(self.output_dir).strip():
            raise ConfigurationError("出力ディレクトリが空です")
        object.__setattr__(self, "output_dir", Path(self.output_dir))

        object.__setattr__(self, "default_size", parse_size(self.default_size))
        object.__setattr__(self, "default_color", (self.default_color or "").strip())

        formats = _as_sequence(self.output_formats)
        if not formats:
            raise ConfigurationError("少なくとも1つの出力形式を指定してください")
        object.__setattr__(self, "output_formats", _unique(normalize_format(f) for f in formats))

        if not isinstance(self.file_naming, FileNaming):
            raise ConfigurationError("file_naming は FileNaming で指定してください")
        if not isinstance(self.folder_structure, FolderStructure):
            raise ConfigurationError("folder_structure は FolderStructure で指定してください")

        object.__setattr__(self, "parallel", _positive_int(self.parallel, "並列数"))

        quality = _positive_int(self.raster_quality, "画質")
        if quality > 100:
            raise ConfigurationError(f"画質は1から100の範囲で指定してください: {quality}")
        object.__setattr__(self, "raster_quality", quality)

        background = (self.background_color or "").strip() or None
        object.__setattr__(self, "background_color", background)
        object.__setattr__(
            self, "collection_paths", tuple(Path(p) for p in _as_sequence(self.collection_paths))
        )

    @property
    def has_raster_formats(self) -> bool:
        return any(fmt in RASTER_FORMATS for fmt in self.output_formats)

    def to_dict(self) -> dict[str, Any]:
        """サマリー出力用のJSON互換表現を返す。"""
        return {
            "collections": list(self.collections),
            "icons_to_export": list(self.icons_to_export),
            "output_dir": str(self.output_dir),
            "default_size": _size_to_json(self.default_size),
            "default_color": self.default_color,
            "output_formats": list(self.output_formats),
            "file_naming": {
                "pattern": self.file_naming.pattern,
                "sanitize": self.file_naming.sanitize,
                "case": self.file_naming.case,
            },
            "folder_structure": {
                "enabled": self.folder_structure.enabled,
                "pattern": self.folder_structure.pattern,
                "group_by_size": self.folder_structure.group_by_size,
                "group_by_color": self.folder_structure.group_by_color,
                "group_by_format": self.folder_structure.group_by_format,
            },
            "parallel": self.parallel,
            "skip_existing": self.skip_existing,
            "dry_run": self.dry_run,
            "background_color": self.background_color,
            "raster_quality": self.raster_quality,
            "write_summary": self.write_summary,
            "collection_paths": [str(p) for p in self.collection_paths],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExportConfig":
        values = merge_config_values(data)
        try:
            file_naming = FileNaming(**values.pop("file_naming"))
            folder_structure = FolderStructure(**values.pop("folder_structure"))
            return cls(file_naming=file_naming, folder_structure=folder_structure, **values)
        except TypeError as e:
            raise ConfigurationError(f"設定の形式が不正です: {e}") from e


def _size_to_json(size: Size) -> Any:
    if isinstance(size, SquareSize):
        return size.size
    return {"width": size.width, "height": size.height}


def default_config_values() -> dict[str, Any]:
    """設定のデフォルト値（collections は必須なので空）。"""
    return {
        "collections": [],
        "icons_to_export": [],
        "output_dir": "./icons",
        "default_size": 48,
        "default_color": "currentColor",
        "output_formats": ["svg"],
        "file_naming": {"pattern": "{icon}-{collection}", "sanitize": True, "case": "kebab"},
        "folder_structure": {
            "enabled": True,
            "pattern": "{collection}",
            "group_by_size": False,
            "group_by_color": False,
            "group_by_format": False,
        },
        "parallel": 1,
        "skip_existing": False,
        "dry_run": False,
        "background_color": None,
        "raster_quality": 90,
        "write_summary": False,
        "collection_paths": [],
    }


# camelCase のキーで書かれた設定ファイルもそのまま読めるようにする
_KEY_ALIASES = {
    "iconsToExport": "icons_to_export",
    "icons": "icons_to_export",
    "outputDir": "output_dir",
    "defaultSize": "default_size",
    "defaultColor": "default_color",
    "outputFormats": "output_formats",
    "formats": "output_formats",
    "fileNaming": "file_naming",
    "folderStructure": "folder_structure",
    "skipExisting": "skip_existing",
    "dryRun": "dry_run",
    "backgroundColor": "background_color",
    "rasterQuality": "raster_quality",
    "writeSummary": "write_summary",
    "collectionPaths": "collection_paths",
    "groupBySize": "group_by_size",
    "groupByColor": "group_by_color",
    "groupByFormat": "group_by_format",
}


def _normalized_items(
    values: Mapping[str, Any], allowed: Iterable[str], scope: str
) -> Iterator[Tuple[str, Any]]:
    # camelCase と snake_case が両方あっても1つずつ順に返す
    allowed_keys = set(allowed)
    for key, value in values.items():
        resolved = _KEY_ALIASES.get(key, key)
        if resolved not in allowed_keys:
            logger.warning(f"未知の設定キーを無視します: {scope}{key}")
            continue
        yield resolved, value


def _merge_layer(merged: dict[str, Any], values: Mapping[str, Any]) -> None:
    for key, value in _normalized_items(values, merged.keys(), ""):
        if key in ("file_naming", "folder_structure"):
            if not isinstance(value, Mapping):
                raise ConfigurationError(f"{key} は辞書で指定してください")
            for nested_key, nested_value in _normalized_items(value, merged[key].keys(), f"{key}."):
                merged[key][nested_key] = nested_value
        else:
            merged[key] = value


def merge_config_values(
    values: Optional[Mapping[str, Any]],
    *overrides: Optional[Mapping[str, Any]],
) -> dict[str, Any]:
    """ユーザー設定をデフォルトに重ねる（ネストした辞書はキー単位でマージ）。

    overrides は後に渡したものほど優先される。
    """
    merged = default_config_values()
    for layer in (values, *overrides):
        if layer:
            _merge_layer(merged, layer)
    return merged


def load_export_config(path: Union[str, Path], overrides: Optional[Mapping[str, Any]] = None) -> ExportConfig:
    """JSON設定ファイルを読み込んで ExportConfig を返す。"""
    config_path = Path(path)
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as e:
        raise ConfigurationError(f"設定ファイルを読み込めません: {config_path} ({e})") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"設定ファイルのJSONが不正です: {config_path} ({e})") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"設定ファイルの最上位はオブジェクトである必要があります: {config_path}")
    return ExportConfig.from_dict(merge_config_values(data, overrides))
