# facetstudio/color_harmony.py
# Deterministic lip / eye / cheek palette from undertone, eye color and skin type.

import math
from typing import Dict, List, Optional, Tuple

from facetstudio.models import ColorPalette, EyeColor, SkinType, Undertone


# -----------------------------
# PALETTE TABLES  [soft, everyday, bold]
# -----------------------------
UNDERTONE_LIPS: Dict[Undertone, List[str]] = {
    Undertone.WARM: ["#E2A691", "#D97D54", "#9C4221"],     # Honey, Terracotta, Brick
    Undertone.COOL: ["#D1A1A8", "#B85C7B", "#85122F"],     # Rose, Berry, Deep Plum
    Undertone.NEUTRAL: ["#D9B3A8", "#C77B6B", "#8A3324"],  # Sand, Mauve, Garnet
    Undertone.OLIVE: ["#B58B75", "#A66D5B", "#5C2B1D"],    # Caramel, Mahogany, Espresso
    Undertone.UNKNOWN: ["#D9B3A8", "#C77B6B", "#8A3324"],
}

UNDERTONE_CHEEKS: Dict[Undertone, List[str]] = {
    Undertone.WARM: ["#F2C4B1", "#E59F82", "#C6714E"],     # Peach, Apricot, Bronze
    Undertone.COOL: ["#F2D0D9", "#E5A1B4", "#B5607A"],     # Soft Pink, Peony, Rose
    Undertone.NEUTRAL: ["#F2D4C2", "#E5B098", "#B57D64"],  # Nude, Rosewood, Soft Coral
    Undertone.OLIVE: ["#D9AF96", "#C69072", "#8C5C42"],    # Amber, Copper, Earth
    Undertone.UNKNOWN: ["#F2D4C2", "#E5B098", "#B57D64"],
}

EYES_BY_COLOR: Dict[EyeColor, List[str]] = {
    EyeColor.BLUE: ["#D9C6B0", "#B8860B", "#2F4F4F"],   # Champagne, Gold, Slate
    EyeColor.GREEN: ["#D9BFAF", "#6B3E2E", "#4B0082"],  # Rose Gold, Sienna, Royal Purple
    EyeColor.HAZEL: ["#D9CCB0", "#8B4513", "#556B2F"],  # Beige, Saddle Brown, Olive
    EyeColor.BROWN: ["#E5D4C2", "#A0522D", "#2E2E2E"],  # Ivory, Bronze, Charcoal
    EyeColor.GRAY: ["#F5F5F5", "#778899", "#1C1C1C"],   # Pearl, Steel, Midnight
    EyeColor.AMBER: ["#F5DEB3", "#D2691E", "#800000"],  # Wheat, Chocolate, Maroon
    EyeColor.UNKNOWN: ["#E5D4C2", "#A0522D", "#2E2E2E"],
}


# -----------------------------
# HEX <-> RGB
# -----------------------------
def hex_to_rgb(hex_code: str) -> Tuple[int, int, int]:
    clean = str(hex_code).strip().lstrip("#")
    if len(clean) != 6:
        raise ValueError(f"not a #rrggbb color: {hex_code!r}")
    try:
        return int(clean[0:2], 16), int(clean[2:4], 16), int(clean[4:6], 16)
    except ValueError:
        raise ValueError(f"not a #rrggbb color: {hex_code!r}") from None


def _channel(c: float) -> int:
    return max(0, min(255, int(math.floor(c + 0.5))))


def rgb_to_hex(r: float, g: float, b: float) -> str:
    return "#{:02x}{:02x}{:02x}".format(_channel(r), _channel(g), _channel(b))


def adjust_for_skin_type(hex_code: str, skin_type: Optional[SkinType]) -> str:
    # oily skin reads a touch brighter, dry skin gets lifted and softened
    if skin_type == SkinType.OILY:
        r, g, b = hex_to_rgb(hex_code)
        return rgb_to_hex(r * 1.05, g * 1.05, b * 1.05)
    if skin_type == SkinType.DRY:
        r, g, b = hex_to_rgb(hex_code)
        return rgb_to_hex(r * 0.95 + 20, g * 0.95 + 20, b * 0.95 + 20)
    return hex_code


def derive_color_harmony(
    undertone: Optional[Undertone],
    eye_color: Optional[EyeColor],
    skin_type: Optional[SkinType],
) -> ColorPalette:
    safe_undertone = Undertone.parse(undertone)
    safe_eye = EyeColor.parse(eye_color)
    safe_skin = SkinType.parse(skin_type)

    lips = [adjust_for_skin_type(c, safe_skin) for c in UNDERTONE_LIPS[safe_undertone]]
    cheeks = [adjust_for_skin_type(c, safe_skin) for c in UNDERTONE_CHEEKS[safe_undertone]]
    eyes = [adjust_for_skin_type(c, safe_skin) for c in EYES_BY_COLOR[safe_eye]]

    explanation = (
        f"Tailored for {safe_undertone.value.lower()} skin and {safe_eye.value.lower()} eyes. "
        "Shades are selected to create natural balance and enhance your specific contrasts."
    )
    return ColorPalette(lips=lips, eyes=eyes, cheeks=cheeks, explanation=explanation)
