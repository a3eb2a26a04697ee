from __future__ import annotations

import io

import pytest
from PIL import Image

from conftest import cairo_available
from icon_exporter.rasterizer import (
    CairoRasterizer,
    build_encoder_save_kwargs,
    normalize_quality,
    parse_background_color,
)

SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="32" height="32" viewBox="0 0 24 24">\n'
    '    <path fill="#FF0000" d="M0 0h12v24H0z"/>\n'
    "</svg>\n"
)


class _HalfTransparentRasterizer(CairoRasterizer):
    """左半分だけ赤、右半分は透明の PNG を返す（cairo 不要）"""

    def render_png(self, svg_text: str, width: int, height: int) -> bytes:
        image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        for x in range(width // 2):
            for y in range(height):
                image.putpixel((x, y), (255, 0, 0, 255))
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()


def _open(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def test_normalize_quality_clamps() -> None:
    assert normalize_quality(0) == 1
    assert normalize_quality(55) == 55
    assert normalize_quality(150) == 100


def test_build_encoder_save_kwargs() -> None:
    assert build_encoder_save_kwargs("jpeg", 100) == {
        "format": "JPEG",
        "quality": 95,
        "optimize": True,
        "progressive": True,
    }
    assert build_encoder_save_kwargs("png", 90) == {"format": "PNG", "optimize": True}
    assert build_encoder_save_kwargs("webp", 80) == {"format": "WEBP", "quality": 80, "method": 6}
    with pytest.raises(ValueError):
        build_encoder_save_kwargs("svg", 90)


def test_parse_background_color() -> None:
    assert parse_background_color(None) is None
    assert parse_background_color("transparent") is None
    assert parse_background_color("  ") is None
    assert parse_background_color("#00FF00") == (0, 255, 0, 255)
    with pytest.raises(ValueError):
        parse_background_color("not-a-color")


def test_invalid_background_raises_value_error() -> None:
    with pytest.raises(ValueError):
        CairoRasterizer(background_color="nope")


def test_png_keeps_transparency_by_default() -> None:
    image = _open(_HalfTransparentRasterizer().rasterize(SVG, "png", 20, 10))
    assert image.format == "PNG"
    assert image.size == (20, 10)
    assert image.convert("RGBA").getpixel((15, 5))[3] == 0


def test_png_with_background_is_flattened() -> None:
    rasterizer = _HalfTransparentRasterizer(background_color="#0000FF")
    image = _open(rasterizer.rasterize(SVG, "png", 20, 10)).convert("RGBA")
    assert image.getpixel((15, 5)) == (0, 0, 255, 255)
    assert image.getpixel((2, 5)) == (255, 0, 0, 255)


def test_jpeg_flattens_onto_white() -> None:
    image = _open(_HalfTransparentRasterizer().rasterize(SVG, "jpeg", 20, 10))
    assert image.format == "JPEG"
    assert image.mode == "RGB"
    red, green, blue = image.getpixel((17, 5))
    assert min(red, green, blue) > 240


def test_webp_output() -> None:
    image = _open(_HalfTransparentRasterizer(quality=70).rasterize(SVG, "webp", 16, 16))
    assert image.format == "WEBP"
    assert image.size == (16, 16)


@pytest.mark.skipif(not cairo_available(), reason="cairosvg / libcairo が利用できません")
def test_cairo_renders_requested_size() -> None:
    image = _open(CairoRasterizer().rasterize(SVG, "png", 32, 32))
    assert image.size == (32, 32)
    assert image.convert("RGBA").getpixel((4, 16))[:3] == (255, 0, 0)
