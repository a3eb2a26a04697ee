from __future__ import annotations

import pytest

from icon_exporter.errors import ConfigurationError
from icon_exporter.naming import (
    Placeholder,
    apply_case,
    resolve_template,
    sanitize_filename,
    to_camel,
    to_kebab,
    to_pascal,
    to_snake,
)


def test_to_kebab_collapses_separators() -> None:
    assert to_kebab("Arrow  Left_Bold") == "arrow-left-bold"
    assert to_kebab("--home--icon--") == "home-icon"
    assert to_kebab("account-circle") == "account-circle"


def test_case_conversions() -> None:
    assert to_camel("arrow-left-bold") == "arrowLeftBold"
    assert to_pascal("arrow-left-bold") == "ArrowLeftBold"
    assert to_snake("arrow-left-bold") == "arrow_left_bold"
    assert to_pascal("home") == "Home"


def test_apply_case_original_is_passthrough() -> None:
    assert apply_case("Home_Icon 24", "original") == "Home_Icon 24"


def test_apply_case_rejects_unknown_kind() -> None:
    with pytest.raises(ConfigurationError):
        apply_case("home", "screaming")


def test_sanitize_filename_removes_reserved_characters() -> None:
    assert sanitize_filename('a<b>:c"d/e\\f|g?h*i') == "abcdefghi"
    assert sanitize_filename("home icon  large") == "home-icon-large"
    assert sanitize_filename("color-#FF0000") == "color-FF0000"
    assert sanitize_filename("-edge-") == "edge"


def test_sanitize_filename_is_idempotent() -> None:
    once = sanitize_filename("  My Icon: v2?.svg ")
    assert sanitize_filename(once) == once


def test_sanitize_filename_disabled_returns_input() -> None:
    assert sanitize_filename("a b/c", enabled=False) == "a b/c"


def test_resolve_template_replaces_known_placeholders() -> None:
    values = {"icon": "home", "collection": "mdi", "size": "48", "width": 48, "height": 48, "format": "png"}
    result = resolve_template("{collection}/{icon}-{width}x{height}.{format}", values)
    assert result == "mdi/home-48x48.png"


def test_resolve_template_keeps_unknown_and_missing_placeholders() -> None:
    assert resolve_template("{icon}-{variant}", {"icon": "home"}) == "home-{variant}"
    assert resolve_template("{icon}-{size}", {"icon": "home"}) == "home-{size}"


def test_resolve_template_uses_default_color_token() -> None:
    assert resolve_template("{icon}-{color}", {"icon": "home", "color": None}) == "home-default"
    assert resolve_template("{icon}-{color}", {"icon": "home", "color": ""}) == "home-default"
    assert resolve_template("{icon}-{color}", {"icon": "home", "color": "red"}) == "home-red"


def test_resolve_template_does_not_reexpand_values() -> None:
    assert resolve_template("{icon}", {"icon": "{collection}", "collection": "mdi"}) == "{collection}"


def test_placeholder_token() -> None:
    assert Placeholder.ICON.token == "{icon}"


IDEMPOTENCE_SAMPLES = [
    "",
    "   ",
    "-_- _-",
    "arrow-left",
    "Arrow  Left_Bold",
    "icon.v2.final",
    "...",
    "ホーム アイコン",
    "café_Crème",
    '<<>>::""//\\\\||??**',
    "a<b>c  d__e--f",
    "MixedCASE-Name_42",
]


@pytest.mark.parametrize("text", IDEMPOTENCE_SAMPLES)
def test_kebab_case_is_idempotent(text: str) -> None:
    once = apply_case(text, "kebab")
    assert apply_case(once, "kebab") == once


@pytest.mark.parametrize("text", IDEMPOTENCE_SAMPLES)
def test_sanitize_is_idempotent_for_edge_cases(text: str) -> None:
    once = sanitize_filename(text)
    assert sanitize_filename(once) == once
