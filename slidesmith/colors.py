"""
colors.py — Colour math for slide design systems.

WCAG 2.x relative luminance and contrast, lightness nudging, and the
harmonization pass that guarantees readable text and visible accents before a
DesignSystem is frozen:

  text   vs background ≥ 4.5 : 1
  accent vs background ≥ 3.0 : 1
  muted  vs background ≥ 3.0 : 1
  card   vs background ≥ 1.1 : 1   (a visible surface, not a text pair)
"""

from __future__ import annotations

import colorsys
import re
from typing import Optional, Tuple

RGB = Tuple[int, int, int]

TEXT_CONTRAST_MIN = 4.5
ACCENT_CONTRAST_MIN = 3.0
LARGE_TEXT_CONTRAST_MIN = 3.0
MUTED_CONTRAST_MIN = 3.0
CARD_CONTRAST_MIN = 1.1
CARD_NUDGE_STEP = 0.03
DARK_LUMINANCE_MAX = 0.45
MAX_NUDGE_STEPS = 20

_NON_HEX = re.compile(r"[^0-9a-fA-F]")


# ── Parsing ───────────────────────────────────────────────────────────────────

def parse_hex(value: Optional[str]) -> Optional[RGB]:
    """'#abc', '#aabbcc' or '#aabbccdd' (alpha dropped) → (r, g, b); None when not a hex colour."""
    if not value or not isinstance(value, str):
        return None
    digits = value.strip().lstrip("#")
    if _NON_HEX.search(digits):
        return None
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    elif len(digits) == 8:
        digits = digits[:6]
    if len(digits) != 6:
        return None
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def to_hex(rgb: RGB) -> str:
    r, g, b = (max(0, min(255, int(round(c)))) for c in rgb)
    return f"#{r:02X}{g:02X}{b:02X}"


def normalize_hex(value: Optional[str], default: str) -> str:
    rgb = parse_hex(value)
    return to_hex(rgb) if rgb else default


# ── WCAG luminance / contrast ─────────────────────────────────────────────────

def _channel(c: int) -> float:
    s = c / 255
    return s / 12.92 if s <= 0.03928 else ((s + 0.055) / 1.055) ** 2.4


def relative_luminance(rgb: RGB) -> float:
    r, g, b = rgb
    return 0.2126 * _channel(r) + 0.7152 * _channel(g) + 0.0722 * _channel(b)


def contrast_ratio(a: Optional[str], b: Optional[str]) -> float:
    """WCAG contrast between two hex colours; 1.0 if either does not parse."""
    rgb_a, rgb_b = parse_hex(a), parse_hex(b)
    if rgb_a is None or rgb_b is None:
        return 1.0
    la, lb = relative_luminance(rgb_a), relative_luminance(rgb_b)
    lighter, darker = max(la, lb), min(la, lb)
    return (lighter + 0.05) / (darker + 0.05)


def is_dark(value: Optional[str]) -> bool:
    """Light foregrounds read best on it. Unparsable colours count as dark."""
    rgb = parse_hex(value)
    return rgb is None or relative_luminance(rgb) < DARK_LUMINANCE_MAX


# ── Adjustment ────────────────────────────────────────────────────────────────

def adjust_lightness(value: str, amount: float) -> str:
    """Add `amount` × 255 to every channel, clamped. Negative amounts darken."""
    rgb = parse_hex(value) or (128, 128, 128)
    delta = amount * 255
    return to_hex((rgb[0] + delta, rgb[1] + delta, rgb[2] + delta))


def better_extreme(background: str) -> str:
    """White or black, whichever contrasts more with `background`."""
    if contrast_ratio("#FFFFFF", background) >= contrast_ratio("#000000", background):
        return "#FFFFFF"
    return "#000000"


def ensure_contrast(
    color: str,
    background: str,
    minimum: float,
    max_steps: int = MAX_NUDGE_STEPS,
    step: Optional[float] = None,
) -> str:
    """
    Nudge `color` toward the better extreme until it reaches `minimum` against
    `background`. Steps are 0.10 while contrast < 2, then 0.05 (or a fixed
    `step`); at most `max_steps` steps, which is always enough to reach pure
    white or black at the default sizes.
    """
    if parse_hex(background) is None:
        return normalize_hex(color, "#FFFFFF")
    if parse_hex(color) is None:
        return better_extreme(background)

    direction = 1.0 if better_extreme(background) == "#FFFFFF" else -1.0
    current = to_hex(parse_hex(color))
    for _ in range(max_steps):
        ratio = contrast_ratio(current, background)
        if ratio >= minimum:
            break
        amount = step if step is not None else (0.10 if ratio < 2 else 0.05)
        current = adjust_lightness(current, direction * amount)
    return current


def harmonize(text: str, accent: str, background: str) -> Tuple[str, str]:
    """Return (text, accent) adjusted to the minimum contrast against `background`."""
    return (
        ensure_contrast(text, background, TEXT_CONTRAST_MIN),
        ensure_contrast(accent, background, ACCENT_CONTRAST_MIN),
    )


def separate_surface(card: str, background: str) -> str:
    """Lift (or sink) a card colour in small steps until it shows against `background`."""
    return ensure_contrast(card, background, CARD_CONTRAST_MIN, step=CARD_NUDGE_STEP)


# ── Derivation ────────────────────────────────────────────────────────────────

def with_lightness(value: str, lightness: float) -> str:
    """Same hue and saturation, HLS lightness set to `lightness` (0–1)."""
    rgb = parse_hex(value) or (128, 128, 128)
    h, _, s = colorsys.rgb_to_hls(*(c / 255 for c in rgb))
    r, g, b = colorsys.hls_to_rgb(h, lightness, s)
    return to_hex((r * 255, g * 255, b * 255))


def mix(a: str, b: str, t: float) -> str:
    """Linear blend: t=0 → a, t=1 → b."""
    ra = parse_hex(a) or (0, 0, 0)
    rb = parse_hex(b) or (0, 0, 0)
    return to_hex(tuple(ca + (cb - ca) * t for ca, cb in zip(ra, rb)))
