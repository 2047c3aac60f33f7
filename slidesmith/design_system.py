"""
design_system.py — Slide Design System Generator

Takes the brief and its creative direction and produces the single design
system every slide shares:
  - Colour tokens (brand colours, background/text/card, gradient, ambient tones)
  - Typography scale (display → caption, tracking, leading, weight pairs)
  - Spacing system (8pt base unit, card padding/gap, safe margin)
  - Effects (corner style, decorative style, shadow style, ambient gradient)
  - A recurring motif

Whatever Gemini returns is laid over the brief-derived fallback system, so a
partial answer still yields a complete object. Text, accent, muted and card
colours are harmonized against the background before the (frozen)
DesignSystem is built.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List

from . import json_repair
from .colors import MUTED_CONTRAST_MIN, ensure_contrast, harmonize, parse_hex, separate_surface, to_hex
from .errors import UnparsableOutputError
from .fallback import fallback_design_system
from .models import ContentBrief, CreativeDirection, DesignSystem
from .oracle import InvokeOptions, Invocation, ModelClient

SECTIONS = ("colors", "fonts", "typography", "spacing", "effects", "motif")

# Keys some model answers use for the same slots
COLOR_ALIASES = {
    "cardBg": "card",
    "cardBorder": "border",
    "auroraA": "ambientA",
    "auroraB": "ambientB",
    "auroraC": "ambientC",
}
EFFECT_ALIASES = {
    "borderRadius": "cornerStyle",
    "borderRadiusValue": "cornerRadius",
    "auroraGradient": "ambientGradient",
}


SYSTEM_PROMPT = """\
You are a senior presentation designer building the design system for an
award-level 1920×1080 pitch deck. Canvas is dark-first unless the brand demands otherwise.

Return ONE JSON object (camelCase keys) with these sections:

colors:
  primary, secondary, accent   — based on the brand colours
  background                   — very dark, never pure black, with a hint of colour
  text                         — WCAG AA against background (≥ 4.5:1)
  card                         — 10–15% lighter/darker than background
  border                       — subtle (low-opacity primary or white)
  gradientStart, gradientEnd   — for decorative gradients
  muted                        — secondary text (≥ 3:1)
  highlight                    — complementary or analogous second accent
  ambientA, ambientB, ambientC — three tones for a mesh gradient
fonts: heading, body (Google Fonts names)
typography:
  displaySize 80–140, headingSize 48–64, subheadingSize 28–36, bodySize 20–24, captionSize 14–16,
  letterSpacingTight -5…-1, letterSpacingWide 2…8, lineHeightTight 0.9–1.05, lineHeightRelaxed 1.4–1.6,
  weightPairs [[heading, body]] with sharp contrast, e.g. [[900, 300]]
spacing: unit 8, cardPadding 32–48, cardGap 24–40, safeMargin 80
effects: cornerStyle sharp|soft|pill, cornerRadius, decorativeStyle geometric|organic|minimal|brutalist,
  shadowStyle none|fake-3d|glow, ambientGradient (ready CSS radial-gradient mesh of the 3 ambient tones)
motif: type (diagonal-lines / dots / circles / angular-cuts / wave / grid-lines / organic-blobs / triangles),
  opacity 0.05–0.2, color, implementation (CSS description)

All colours as #RRGGBB. JSON only.
"""


def build_design_prompt(brief: ContentBrief, direction: CreativeDirection) -> str:
    return (
        f"{brief.to_prompt_block()}\n\n"
        "## Creative direction\n"
        f"- Visual metaphor: {direction.visual_metaphor}\n"
        f"- Tension: {direction.tension}\n"
        f"- One rule: {direction.one_rule}\n"
        f"- Colour story: {direction.color_story}\n"
        f"- Motif: {direction.motif}\n"
        f"- Typography voice: {direction.typography_voice}\n"
    )


# ── Merge helpers ─────────────────────────────────────────────────────────────

def _camel(key: str) -> str:
    parts = key.split("_")
    return parts[0] + "".join(p[:1].upper() + p[1:] for p in parts[1:])


def _normalize_section(section: Any, aliases: Dict[str, str]) -> Dict[str, Any]:
    if not isinstance(section, dict):
        return {}
    out = {}
    for key, value in section.items():
        key = _camel(str(key))
        out[aliases.get(key, key)] = value
    return out


def merge_design_system(raw: Dict[str, Any], base: DesignSystem) -> Dict[str, Any]:
    """Lay the model's sections over `base`; invalid colours keep the base value."""
    merged = base.model_dump(by_alias=True)

    colors = _normalize_section(raw.get("colors"), COLOR_ALIASES)
    for key, value in colors.items():
        if key in merged["colors"] and parse_hex(value) is not None:
            merged["colors"][key] = to_hex(parse_hex(value))

    effects = _normalize_section(raw.get("effects"), EFFECT_ALIASES)
    # "borderRadius" used to carry the corner style name, its value the radius
    if isinstance(effects.get("cornerStyle"), (int, float)):
        effects["cornerRadius"] = effects.pop("cornerStyle")

    for name, section in (
        ("fonts", _normalize_section(raw.get("fonts"), {})),
        ("typography", _normalize_section(raw.get("typography"), {})),
        ("spacing", _normalize_section(raw.get("spacing"), {})),
        ("effects", effects),
        ("motif", _normalize_section(raw.get("motif"), {})),
    ):
        for key, value in section.items():
            if key in merged[name] and value is not None:
                merged[name][key] = value

    return merged


def harmonize_design_system(design_system: DesignSystem) -> DesignSystem:
    """Return a copy whose text, accent, muted and card colours meet their minimums."""
    c = design_system.colors
    text, accent = harmonize(c.text, c.accent, c.background)
    update = {
        "text": text,
        "accent": accent,
        "muted": ensure_contrast(c.muted, c.background, MUTED_CONTRAST_MIN),
        "card": separate_surface(c.card, c.background),
    }
    if all(getattr(c, key) == value for key, value in update.items()):
        return design_system
    colors = c.model_copy(update=update)
    return design_system.model_copy(update={"colors": colors})


def parse_design_system(text: str, brief: ContentBrief) -> DesignSystem:
    raw = json_repair.parse(text)
    if isinstance(raw, dict) and isinstance(raw.get("designSystem"), dict):
        raw = raw["designSystem"]
    if not isinstance(raw, dict) or not any(k in raw for k in SECTIONS):
        raise UnparsableOutputError("Design system response has none of the expected sections", str(text)[:200])

    base = fallback_design_system(brief)
    merged = merge_design_system(raw, base)
    merged["direction"] = brief.direction
    design_system = json_repair.parse_value(merged, DesignSystem)
    return harmonize_design_system(design_system)


def generate_design_system(
    client: ModelClient,
    brief: ContentBrief,
    direction: CreativeDirection,
    models: List[str],
    options: InvokeOptions,
) -> Invocation:
    """
    Ask Gemini for the deck's design system.

    Returns:
        Invocation whose value is a harmonized, frozen DesignSystem.

    Raises:
        AllModelsExhaustedError: no model produced a usable design system.
    """
    prompt = build_design_prompt(brief, direction)
    options = replace(
        options,
        system_instruction=SYSTEM_PROMPT,
        cache_inputs={
            "brief": brief.model_dump(mode="json"),
            "direction": direction.model_dump(mode="json"),
        },
    )
    return client.invoke_structured(prompt, models, options, validate=lambda t: parse_design_system(t, brief))
