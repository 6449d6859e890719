import pytest

from facetstudio.color_harmony import (
    EYES_BY_COLOR,
    UNDERTONE_CHEEKS,
    UNDERTONE_LIPS,
    adjust_for_skin_type,
    derive_color_harmony,
    hex_to_rgb,
    rgb_to_hex,
)
from facetstudio.models import EyeColor, SkinType, Undertone


def test_hex_to_rgb_accepts_with_and_without_hash():
    assert hex_to_rgb("#E2A691") == (226, 166, 145)
    assert hex_to_rgb("e2a691") == (226, 166, 145)


@pytest.mark.parametrize("bad", ["#FFF", "#GGGGGG", "", "#1234567"])
def test_hex_to_rgb_rejects_malformed(bad):
    with pytest.raises(ValueError):
        hex_to_rgb(bad)


def test_rgb_to_hex_rounds_half_up_and_clamps():
    assert rgb_to_hex(10.5, 29.5, 0.5) == "#0b1e01"
    assert rgb_to_hex(300, -4, 255.4) == "#ff00ff"


def test_oily_brightens_each_channel():
    assert adjust_for_skin_type("#E2A691", SkinType.OILY) == "#edae98"


def test_dry_lifts_and_softens():
    assert adjust_for_skin_type("#E2A691", SkinType.DRY) == "#ebb29e"


def test_oily_clamps_at_white():
    assert adjust_for_skin_type("#F5F5F5", SkinType.OILY) == "#ffffff"


@pytest.mark.parametrize("skin", [SkinType.BALANCED, SkinType.COMBINATION, SkinType.UNKNOWN, None])
def test_other_skin_types_return_input_unchanged(skin):
    assert adjust_for_skin_type("#E2A691", skin) == "#E2A691"


def test_derive_uses_undertone_and_eye_tables():
    palette = derive_color_harmony(Undertone.WARM, EyeColor.BLUE, SkinType.BALANCED)
    assert palette.lips == UNDERTONE_LIPS[Undertone.WARM]
    assert palette.cheeks == UNDERTONE_CHEEKS[Undertone.WARM]
    assert palette.eyes == EYES_BY_COLOR[EyeColor.BLUE]
    assert palette.explanation.startswith("Tailored for warm skin and blue eyes. ")


def test_derive_adjusts_every_shade_for_skin_type():
    palette = derive_color_harmony(Undertone.COOL, EyeColor.GRAY, SkinType.OILY)
    assert palette.eyes[0] == "#ffffff"
    assert palette.lips == [adjust_for_skin_type(c, SkinType.OILY) for c in UNDERTONE_LIPS[Undertone.COOL]]


def test_missing_inputs_fall_back_to_unknown_rows():
    palette = derive_color_harmony(None, None, None)
    assert palette.lips == UNDERTONE_LIPS[Undertone.NEUTRAL]
    assert palette.eyes == EYES_BY_COLOR[EyeColor.BROWN]
    assert "unknown skin and unknown eyes" in palette.explanation


def test_derive_is_deterministic_and_three_shades_each():
    a = derive_color_harmony(Undertone.OLIVE, EyeColor.HAZEL, SkinType.DRY)
    b = derive_color_harmony("olive", "hazel", "dry")
    assert a == b
    assert len(a.lips) == len(a.eyes) == len(a.cheeks) == 3
