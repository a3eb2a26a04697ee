"""出力先フォルダー・ファイル名の組み立て。

同じ設定と同じ (コレクション, アイコン, サイズ, 色, 形式) からは
常に同じパスを返す。異なるバリアントが同じ文字列に展開された場合は
後から書いた方で上書きされる。
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from icon_exporter.export_config import ExportConfig, Size
from icon_exporter.naming import apply_case, resolve_template, sanitize_filename


@dataclass(frozen=True)
class VariantOptions:
    size: Size
    color: Optional[str]
    output_format: str


@dataclass(frozen=True)
class Variant:
    collection: str
    icon: str
    options: VariantOptions

    def describe(self) -> str:
        color = self.options.color or "default"
        return (
            f"{self.collection}:{self.icon} "
            f"(size={self.options.size.label}, color={color}, format={self.options.output_format})"
        )


def template_values(collection: str, options: VariantOptions, icon: Optional[str] = None) -> Dict[str, object]:
    """テンプレート置換に使う値を作る。"""
    values: Dict[str, object] = {
        "collection": collection,
        "size": options.size.label,
        "width": options.size.width,
        "height": options.size.height,
        "color": options.color,
        "format": options.output_format,
    }
    if icon is not None:
        values["icon"] = icon
    return values


def build_folder_path(config: ExportConfig, collection: str, options: VariantOptions) -> Path:
    """出力フォルダーのパスを返す。

    フォルダー構成が無効な場合は output_dir をそのまま返す。
    有効な場合はパターンの展開結果の下に size-* / color-* / 形式 の順で
    グループ用のフォルダーを追加する。
    """
    structure = config.folder_structure
    if not structure.enabled:
        return config.output_dir

    folder = config.output_dir / resolve_template(structure.pattern, template_values(collection, options))

    if structure.group_by_size:
        folder = folder / f"size-{options.size.label}"
    if structure.group_by_color and options.color and options.color != config.default_color:
        folder = folder / f"color-{sanitize_filename(options.color)}"
    if structure.group_by_format:
        folder = folder / options.output_format
    return folder


def build_file_name(config: ExportConfig, collection: str, icon: str, options: VariantOptions) -> str:
    """拡張子付きのファイル名を返す。"""
    naming = config.file_naming
    name = resolve_template(naming.pattern, template_values(collection, options, icon=icon))
    name = sanitize_filename(name, naming.sanitize)
    name = apply_case(name, naming.case)
    return f"{name}.{options.output_format}"


def build_output_path(config: ExportConfig, variant: Variant) -> Path:
    folder = build_folder_path(config, variant.collection, variant.options)
    return folder / build_file_name(config, variant.collection, variant.icon, variant.options)
