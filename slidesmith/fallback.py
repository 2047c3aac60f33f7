"""
fallback.py — Deterministic stand-ins used whenever a stage runs out of models.

Nothing here calls the model or reads the clock; the same inputs always give
the same output. A fully offline run produces a complete, renderable deck made
of these pieces.
"""

from __future__ import annotations

from typing import List, Optional

from .colors import (
    MUTED_CONTRAST_MIN,
    ensure_contrast,
    harmonize,
    mix,
    normalize_hex,
    separate_surface,
    with_lightness,
)
from .models import (
    Background,
    BrandPalette,
    ContentBrief,
    ContentSpec,
    CreativeDirection,
    DesignColors,
    DesignEffects,
    DesignMotif,
    DesignSystem,
    LayoutDirective,
    ShapeElement,
    TextElement,
    Unit,
)
from .pacing import DEFAULT_TENSION_UNITS, default_temperature_arc

FALLBACK_BACKGROUND = "#0A0A12"
FALLBACK_TEXT = "#F0F0F5"
FALLBACK_CARD = "#1A1A32"
FALLBACK_MUTED = "#808090"

# Composition archetypes the layout stage rotates through
LAYOUT_TECHNIQUES = [
    "Brutalist typography",
    "Asymmetric 30/70 split",
    "Overlapping z-index cards",
    "Full-bleed image",
    "Diagonal grid",
    "Bento box",
    "Magazine spread",
    "Data art",
]

TECHNIQUE_NOTES = {
    "Brutalist typography": "Oversized title bleeding past the canvas edge, transparent watermark text behind it",
    "Asymmetric 30/70 split": "Uneven split with one decorative element crossing the divide",
    "Overlapping z-index cards": "Stacked cards with offset fake-3D shadows for depth",
    "Full-bleed image": "Edge-to-edge image under a gradient scrim, text on the scrim",
    "Diagonal grid": "Rotated text and hairline grid lines on a diagonal axis",
    "Bento box": "Asymmetric grid of unequal cells carrying data points",
    "Magazine spread": "Editorial layout led by a huge pull-quote and a dominant image",
    "Data art": "Giant numerals as the main visual, minimal decoration",
}

STATIC_TECHNIQUES = {
    "cover": "Brutalist typography",
    "brief": "Asymmetric 30/70 split",
    "goals": "Bento box",
    "audience": "Magazine spread",
    "insight": "Full-bleed image",
    "strategy": "Diagonal grid",
    "bigIdea": "Brutalist typography",
    "approach": "Overlapping z-index cards",
    "deliverables": "Bento box",
    "metrics": "Data art",
    "influencerStrategy": "Asymmetric 30/70 split",
    "influencers": "Overlapping z-index cards",
    "closing": "Full-bleed image",
}


# ── Stage 1 ───────────────────────────────────────────────────────────────────

def fallback_creative_direction(brief: ContentBrief, plan: List[ContentSpec]) -> CreativeDirection:
    personality = ", ".join(brief.personality[:3]) or "confident"
    planned = {spec.content_type for spec in plan}
    tension_units = [t for t in DEFAULT_TENSION_UNITS if t in planned]
    if not tension_units and plan:
        tension_units = [plan[0].content_type]
    return CreativeDirection(
        visual_metaphor=f"{brief.brand_name} as a stage: one spotlight, everything else in shadow",
        tension="Quiet dark space against a single loud accent",
        one_rule="The accent colour appears exactly once per slide, as the focal point",
        color_story="Starts cold and dark, warms with the accent at the big idea, settles at the close",
        motif="Thin diagonal lines",
        typography_voice=f"Heavy, tight headlines over light body copy; {personality}",
        emotional_arc="curiosity → understanding → excitement → confidence → action",
        temperature_arc=default_temperature_arc(plan),
        tension_units=tension_units,
    )


# ── Stage 2 ───────────────────────────────────────────────────────────────────

def fallback_colors(palette: BrandPalette) -> DesignColors:
    """Full colour set derived from the brand palette, harmonized."""
    primary = normalize_hex(palette.primary, "#6C5CE7")
    secondary = normalize_hex(palette.secondary, "#00CEC9")
    accent = normalize_hex(palette.accent, "#FD79A8")
    background = normalize_hex(palette.background, FALLBACK_BACKGROUND)
    text = normalize_hex(palette.text, FALLBACK_TEXT)
    text, accent = harmonize(text, accent, background)
    card = FALLBACK_CARD if background == FALLBACK_BACKGROUND else mix(background, text, 0.08)
    return DesignColors(
        primary=primary,
        secondary=secondary,
        accent=accent,
        background=background,
        text=text,
        card=separate_surface(card, background),
        border=mix(primary, background, 0.75),
        gradient_start=primary,
        gradient_end=accent,
        muted=ensure_contrast(FALLBACK_MUTED, background, MUTED_CONTRAST_MIN),
        highlight=accent,
        ambient_a=with_lightness(primary, 0.30),
        ambient_b=with_lightness(accent, 0.30),
        ambient_c=with_lightness(secondary, 0.25),
    )


def fallback_design_system(brief: ContentBrief) -> DesignSystem:
    colors = fallback_colors(brief.palette)
    return DesignSystem(
        colors=colors,
        effects=DesignEffects(
            ambient_gradient=(
                f"radial-gradient(circle at 20% 50%, {colors.ambient_a} 0%, transparent 50%), "
                f"radial-gradient(circle at 80% 20%, {colors.ambient_b} 0%, transparent 50%)"
            ),
        ),
        motif=DesignMotif(
            type="diagonal-lines",
            opacity=0.08,
            color=colors.primary,
            implementation="repeating-linear-gradient",
        ),
        direction=brief.direction,
    )


# ── Stage 3 ───────────────────────────────────────────────────────────────────

def fallback_layout(plan: List[ContentSpec]) -> List[LayoutDirective]:
    directives = []
    for i, spec in enumerate(plan):
        technique = STATIC_TECHNIQUES.get(spec.content_type, LAYOUT_TECHNIQUES[i % len(LAYOUT_TECHNIQUES)])
        directives.append(LayoutDirective(
            content_type=spec.content_type,
            technique=technique,
            description=TECHNIQUE_NOTES[technique],
            constraints=["Keep text inside the 80px safe margin"],
        ))
    return directives


# ── Stage 4 ───────────────────────────────────────────────────────────────────

def fallback_title(spec: ContentSpec, index: int) -> str:
    for key in ("headline", "brandName"):
        value = spec.content.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return spec.title or f"Slide {index + 1}"


def fallback_unit(
    content_type: str,
    design_system: DesignSystem,
    index: int,
    title: Optional[str] = None,
) -> Unit:
    """Minimal, always-valid unit: gradient wash, accent line, title, motif line."""
    colors = design_system.colors
    typo = design_system.typography
    title = title or f"Slide {index + 1}"
    heading_weight = typo.weight_pairs[0][0] if typo.weight_pairs and typo.weight_pairs[0] else 800

    return Unit(
        id=f"unit-{index}",
        content_type=content_type,
        label=title,
        background=Background(type="solid", value=colors.background),
        fallback=True,
        elements=[
            ShapeElement(
                id=f"fb-{index}-bg", x=0, y=0, width=1920, height=1080, z_index=0,
                shape_type="decorative", role="decorative",
                fill=f"radial-gradient(circle at 50% 50%, {colors.card} 0%, {colors.background} 100%)",
            ),
            ShapeElement(
                id=f"fb-{index}-line", x=120, y=200, width=60, height=4, z_index=4,
                shape_type="decorative", role="decorative", fill=colors.accent, opacity=0.8,
            ),
            TextElement(
                id=f"fb-{index}-title", x=120, y=220, width=800, height=100, z_index=10,
                content=title,
                font_size=typo.heading_size,
                font_weight=heading_weight,
                color=colors.text,
                text_align="right" if design_system.direction == "rtl" else "left",
                line_height=typo.line_height_tight,
                letter_spacing=typo.letter_spacing_tight,
                role="title",
            ),
            ShapeElement(
                id=f"fb-{index}-motif", x=-100, y=800, width=2200, height=1, z_index=2,
                shape_type="decorative", role="decorative", fill=colors.muted,
                opacity=design_system.motif.opacity, rotation=15,
            ),
        ],
    )


def fallback_for_spec(spec: ContentSpec, design_system: DesignSystem, index: int) -> Unit:
    return fallback_unit(spec.content_type, design_system, index, fallback_title(spec, index))
