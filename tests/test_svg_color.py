from __future__ import annotations

from icon_exporter.export_config import RectSize, SquareSize
from icon_exporter.svg_color import (
    apply_color,
    build_svg_document,
    fit_view_box,
    has_explicit_paint,
    keeps_intrinsic_color,
)


def test_keeps_intrinsic_color() -> None:
    assert keeps_intrinsic_color(None)
    assert keeps_intrinsic_color("")
    assert keeps_intrinsic_color("currentColor")
    assert keeps_intrinsic_color("currentcolor")
    assert not keeps_intrinsic_color("#FF0000")


def test_apply_color_injects_fill_when_body_has_no_paint() -> None:
    body = '<path d="M0 0h24v24H0z"/><circle cx="12" cy="12" r="3"/>'
    result = apply_color(body, "#FF0000")
    assert result == '<path fill="#FF0000" d="M0 0h24v24H0z"/><circle fill="#FF0000" cx="12" cy="12" r="3"/>'


def test_apply_color_replaces_only_empty_paint() -> None:
    body = '<path fill="none" stroke="currentColor" d="M1 1"/><path fill="#123456" d="M2 2"/>'
    result = apply_color(body, "red")
    assert 'fill="red"' in result
    assert 'stroke="currentColor"' in result
    assert 'fill="#123456"' in result
    assert 'fill="none"' not in result


def test_apply_color_ignores_paint_like_attributes() -> None:
    body = '<path fill-rule="evenodd" stroke-width="2" d="M1 1"/>'
    assert not has_explicit_paint(body)
    assert apply_color(body, "blue").startswith('<path fill="blue" fill-rule="evenodd"')


def test_apply_color_leaves_body_for_current_color() -> None:
    body = '<path d="M1 1"/>'
    assert apply_color(body, "currentColor") == body
    assert apply_color(body, "") == body


def test_apply_color_uses_fallback_when_not_requested() -> None:
    body = '<path d="M1 1"/>'
    assert apply_color(body, None, fallback="#00FF00") == '<path fill="#00FF00" d="M1 1"/>'
    assert apply_color(body, None, fallback="currentColor") == body


def test_apply_color_does_not_touch_group_tags() -> None:
    body = '<g><path d="M1 1"/></g><pathology/>'
    assert apply_color(body, "red") == '<g><path fill="red" d="M1 1"/></g><pathology/>'


def test_fit_view_box_keeps_close_aspect() -> None:
    assert fit_view_box("0 0 24 24", 100, 96) == "0 0 24 24"


def test_fit_view_box_wide_output_trims_height() -> None:
    assert fit_view_box("0 0 24 24", 48, 24) == "0 6 24 12"


def test_fit_view_box_tall_output_trims_width() -> None:
    assert fit_view_box("0 0 24 24", 24, 48) == "6 0 12 24"


def test_fit_view_box_without_view_box() -> None:
    assert fit_view_box(None, 32, 16) == "0 0 32 16"


def test_build_svg_document_square() -> None:
    document = build_svg_document('<path d="M1 1"/>', "0 0 24 24", SquareSize(48))
    assert document.startswith('<svg xmlns="http://www.w3.org/2000/svg" width="48" height="48" viewBox="0 0 24 24">')
    assert '    <path d="M1 1"/>\n' in document
    assert document.endswith("</svg>\n")


def test_build_svg_document_rect_adapts_view_box() -> None:
    document = build_svg_document('<path d="M1 1"/>', "0 0 24 24", RectSize(64, 32))
    assert 'width="64" height="32"' in document
    assert 'viewBox="0 6 24 12"' in document
