"""ファイル名の組み立てに使う文字列ユーティリティ。

- ケース変換（kebab / snake / camel / pascal / original）
- ファイル名のサニタイズ
- `{collection}` などのプレースホルダー置換
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Literal, Mapping, Optional

from icon_exporter.errors import ConfigurationError

CaseKind = Literal["camel", "pascal", "snake", "kebab", "original"]
VALID_CASE_KINDS = frozenset({"camel", "pascal", "snake", "kebab", "original"})

# 色が指定されていない場合にテンプレートへ埋め込む文字列
DEFAULT_COLOR_TOKEN = "default"

_SEPARATORS = re.compile(r"[\s_]+")
_MULTIPLE_HYPHENS = re.compile(r"-+")
_EDGE_HYPHENS = re.compile(r"^-+|-+$")
_CAMEL_PAIR = re.compile(r"-([a-z])")
_PASCAL_PAIR = re.compile(r"(^|-)([a-z])")

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE = re.compile(r"\s+")
_DISALLOWED_CHARS = re.compile(r"[^\w\-.]")

_PLACEHOLDER = re.compile(r"\{([A-Za-z_]+)\}")


class Placeholder(str, Enum):
    """テンプレートで使えるプレースホルダー"""

    COLLECTION = "collection"
    ICON = "icon"
    SIZE = "size"
    WIDTH = "width"
    HEIGHT = "height"
    COLOR = "color"
    FORMAT = "format"

    @property
    def token(self) -> str:
        return "{" + self.value + "}"


def to_kebab(text: str) -> str:
    """小文字化して区切り文字をハイフン1つにそろえる。"""
    kebab = _SEPARATORS.sub("-", text.lower())
    kebab = _MULTIPLE_HYPHENS.sub("-", kebab)
    return _EDGE_HYPHENS.sub("", kebab)


def to_camel(text: str) -> str:
    return _CAMEL_PAIR.sub(lambda m: m.group(1).upper(), to_kebab(text))


def to_pascal(text: str) -> str:
    pascal = _PASCAL_PAIR.sub(lambda m: m.group(2).upper(), to_kebab(text))
    return pascal.replace("-", "")


def to_snake(text: str) -> str:
    return to_kebab(text).replace("-", "_")


def apply_case(text: str, case: str) -> str:
    """指定されたケースに変換する。

    `original` は何も変換せずそのまま返す。
    未知のケース指定は ConfigurationError。
    """
    if case == "original":
        return text
    if case == "kebab":
        return to_kebab(text)
    if case == "snake":
        return to_snake(text)
    if case == "camel":
        return to_camel(text)
    if case == "pascal":
        return to_pascal(text)
    raise ConfigurationError(f"不正なケース指定です: {case}")


def sanitize_filename(text: str, enabled: bool = True) -> str:
    """ファイル名に使えない文字を取り除く。

    Args:
        text: 対象文字列
        enabled: False の場合は入力をそのまま返す

    Returns:
        str: サニタイズ済みの文字列（何度適用しても結果は変わらない）
    """
    if not enabled:
        return text

    cleaned = _INVALID_FILENAME_CHARS.sub("", text)
    cleaned = _WHITESPACE.sub("-", cleaned)
    cleaned = _DISALLOWED_CHARS.sub("", cleaned)
    cleaned = _MULTIPLE_HYPHENS.sub("-", cleaned)
    return _EDGE_HYPHENS.sub("", cleaned)


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve_template(pattern: str, values: Mapping[str, object]) -> str:
    """パターン中のプレースホルダーを値で置き換える。

    未知のプレースホルダーや値が渡されていないものは文字列のまま残す。
    `{color}` は値が無い場合 "default" になる。
    """

    def _replace(match: "re.Match[str]") -> str:
        key = match.group(1)
        try:
            placeholder = Placeholder(key)
        except ValueError:
            return match.group(0)

        value: Optional[object] = values.get(placeholder.value)
        if placeholder is Placeholder.COLOR:
            return _format_value(value) if value else DEFAULT_COLOR_TOKEN
        if value is None:
            return match.group(0)
        return _format_value(value)

    return _PLACEHOLDER.sub(_replace, pattern)
