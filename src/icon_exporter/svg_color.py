"""SVG本体への色の適用と、SVGドキュメントの組み立て。

色の有無の判定は属性文字列を正規表現で見るだけの簡易判定。
style属性やCSSクラスで指定された色は検出できず、入れ子の別要素に
付いた fill/stroke も「色指定あり」とみなす。
"""

from __future__ import annotations

import re
from typing import Optional

from icon_exporter.export_config import RectSize, Size

# この値（または空文字）の場合はアイコン本来の色を尊重する
INTRINSIC_COLOR = "currentColor"

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
SHAPE_ELEMENTS = ("path", "circle", "rect", "ellipse", "polygon", "polyline")

_PAINT_ATTRIBUTE = re.compile(r"""(?<![\w-])(fill|stroke)\s*=\s*(["'])(.*?)\2""", re.IGNORECASE)
_SHAPE_TAG = re.compile(r"<(" + "|".join(SHAPE_ELEMENTS) + r")(?=[\s/>])", re.IGNORECASE)
_ASPECT_TOLERANCE = 0.1


def keeps_intrinsic_color(color: Optional[str]) -> bool:
    """色を上書きしない指定かどうか。"""
    if color is None:
        return True
    stripped = color.strip()
    return not stripped or stripped.lower() == INTRINSIC_COLOR.lower()


def has_explicit_paint(body: str) -> bool:
    return _PAINT_ATTRIBUTE.search(body) is not None


def apply_color(body: str, requested: Optional[str], fallback: Optional[str] = None) -> str:
    """SVG本体に色を適用した文字列を返す。

    - 色が currentColor / 空 の場合は何もしない
    - fill/stroke 属性が1つも無い場合は図形要素すべてに fill を付与
    - 値が none / 空 の fill/stroke だけを指定色に置き換える
    """
    target = requested if requested is not None else fallback
    if keeps_intrinsic_color(target):
        return body
    color = target.strip().replace('"', "&quot;")

    if not has_explicit_paint(body):
        return _SHAPE_TAG.sub(lambda m: f'<{m.group(1)} fill="{color}"', body)

    def _replace_empty(match: "re.Match[str]") -> str:
        value = match.group(3).strip().lower()
        if value in ("", "none"):
            quote = match.group(2)
            return f"{match.group(1)}={quote}{color}{quote}"
        return match.group(0)

    return _PAINT_ATTRIBUTE.sub(_replace_empty, body)


def _format_number(value: float) -> str:
    return f"{value:g}"


def fit_view_box(view_box: Optional[str], width: int, height: int) -> str:
    """縦横比を保ったまま長方形の出力サイズに合わせた viewBox を返す。"""
    if not view_box:
        return f"0 0 {width} {height}"
    try:
        x, y, original_width, original_height = (float(v) for v in view_box.replace(",", " ").split())
    except ValueError:
        return view_box
    if original_width <= 0 or original_height <= 0:
        return view_box

    original_aspect = original_width / original_height
    target_aspect = width / height
    if abs(original_aspect - target_aspect) < _ASPECT_TOLERANCE:
        return view_box

    if target_aspect > original_aspect:
        # 出力の方が横長: 高さを詰める
        new_height = original_width / target_aspect
        y_offset = (original_height - new_height) / 2
        values = (x, y + y_offset, original_width, new_height)
    else:
        new_width = original_height * target_aspect
        x_offset = (original_width - new_width) / 2
        values = (x + x_offset, y, new_width, original_height)
    return " ".join(_format_number(v) for v in values)


def build_svg_document(body: str, view_box: Optional[str], size: Size) -> str:
    """SVG本体を `<svg>` 要素で包んだドキュメント文字列を返す。"""
    resolved_view_box = view_box or "0 0 24 24"
    if isinstance(size, RectSize):
        resolved_view_box = fit_view_box(resolved_view_box, size.width, size.height)
    return (
        f'<svg xmlns="{SVG_NAMESPACE}" width="{size.width}" height="{size.height}" '
        f'viewBox="{resolved_view_box}">\n'
        f"    {body}\n"
        f"</svg>\n"
    )
