"""SVG文字列を PNG / JPEG / WEBP のバイト列に変換する。

cairosvg で目的サイズのPNGを描画し、JPEG/WEBP や背景色付きPNGは
Pillow で再エンコードする。
"""

from __future__ import annotations

import io
from typing import Any, Dict, Optional, Protocol, Tuple

from PIL import Image, ImageColor

_TRANSPARENT = "transparent"
_JPEG_FALLBACK_BACKGROUND = (255, 255, 255, 255)


class Rasterizer(Protocol):
    def rasterize(self, svg_text: str, output_format: str, width: int, height: int) -> bytes:
        ...


def normalize_quality(value: int) -> int:
    """品質値を1-100に丸める。"""
    return max(1, min(100, int(value)))


def build_encoder_save_kwargs(output_format: str, quality: int) -> Dict[str, Any]:
    """出力形式に応じたエンコーダ設定を返す。"""
    normalized_quality = normalize_quality(quality)
    if output_format == "jpeg":
        return {
            "format": "JPEG",
            "quality": min(normalized_quality, 95),
            "optimize": True,
            "progressive": True,
        }
    if output_format == "png":
        return {"format": "PNG", "optimize": True}
    if output_format == "webp":
        return {"format": "WEBP", "quality": normalized_quality, "method": 6}
    raise ValueError(f"ラスタライズできない形式です: {output_format}")


def parse_background_color(value: Optional[str]) -> Optional[Tuple[int, int, int, int]]:
    """背景色をRGBAに変換する。None / "transparent" は透過のまま。"""
    if value is None:
        return None
    stripped = value.strip()
    if not stripped or stripped.lower() == _TRANSPARENT:
        return None
    return ImageColor.getcolor(stripped, "RGBA")


class CairoRasterizer:
    def __init__(self, background_color: Optional[str] = None, quality: int = 90) -> None:
        # 不正な色指定はここで ValueError
        self.background = parse_background_color(background_color)
        self.quality = normalize_quality(quality)

    def render_png(self, svg_text: str, width: int, height: int) -> bytes:
        import cairosvg

        return cairosvg.svg2png(
            bytestring=svg_text.encode("utf-8"),
            output_width=width,
            output_height=height,
        )

    def rasterize(self, svg_text: str, output_format: str, width: int, height: int) -> bytes:
        save_kwargs = build_encoder_save_kwargs(output_format, self.quality)
        png_bytes = self.render_png(svg_text, width, height)
        if output_format == "png" and self.background is None:
            return png_bytes

        with Image.open(io.BytesIO(png_bytes)) as rendered:
            rendered.load()
            image = rendered.convert("RGBA")
        if image.size != (width, height):
            image = image.resize((width, height), Image.LANCZOS)

        image = self._apply_background(image, output_format)
        buffer = io.BytesIO()
        image.save(buffer, **save_kwargs)
        return buffer.getvalue()

    def _apply_background(self, image: Image.Image, output_format: str) -> Image.Image:
        background = self.background
        if background is None and output_format == "jpeg":
            # JPEGは透過を持てないので白背景へ合成する
            background = _JPEG_FALLBACK_BACKGROUND
        if background is None:
            return image

        canvas = Image.new("RGBA", image.size, background)
        canvas.alpha_composite(image)
        if output_format == "jpeg":
            return canvas.convert("RGB")
        return canvas
