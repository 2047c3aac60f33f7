"""
Generator — builds the positioned-element units (slides) batch by batch.

Batches run sequentially: each batch's prompt quotes a one-line visual summary
of every unit produced so far, so Gemini can avoid repeating layouts, dominant
colours and title positions. Per batch:

  prompt  ← design system + creative direction + layout directives
            + per-unit pacing / temperature / tension + prior summary
            + one worked example (seeded sample)
  answer  → repair parse → {"units": [...]} (a bare list is accepted)
          → unknown element types dropped, missing ids assigned
          → short answers padded with fallback units, extras truncated
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import replace
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from . import json_repair
from .errors import UnparsableOutputError
from .fallback import fallback_for_spec
from .models import (
    ELEMENT_TYPES,
    BatchContext,
    ContentSpec,
    CreativeDirection,
    DesignSystem,
    Element,
    LayoutDirective,
    Unit,
)
from .oracle import InvokeOptions, Invocation, ModelClient
from .pacing import pacing_for, temperature_for

logger = logging.getLogger(__name__)

_element_adapter = TypeAdapter(Element)

# Where images sit best, per content type
IMAGE_SIZE_HINTS = {
    "cover": "Full-bleed (1920×1080) or right half (960×1080). The image is the hero.",
    "brief": "Right 40% (768×800), vertically centred. Leave the left for text.",
    "audience": "Right 45% (864×900). People-focused, large and immersive.",
    "insight": "Background (1920×1080) under a gradient scrim, or right 50%.",
    "bigIdea": "Right 60% (1152×1080), full height. The visual IS the idea.",
    "strategy": "Accent image, 30% (576×600), placed as a visual anchor.",
    "approach": "Small accent (480×480) on a rule-of-thirds intersection.",
    "closing": "Background (1920×1080) at low opacity, or a centred accent.",
}


SYSTEM_PROMPT = """\
You design award-level presentation slides as JSON element trees on a fixed
1920×1080 canvas. Every slide is asymmetric and different from the one before;
this is not PowerPoint.

Element types (camelCase keys):
  shape: {id, type:"shape", x, y, width, height, zIndex, shapeType, fill, borderRadius, clipPath, border, opacity, rotation}
  text:  {id, type:"text", x, y, width, height, zIndex, content, fontSize, fontWeight, color, textAlign,
          role: title|subtitle|body|caption|label|decorative, lineHeight, letterSpacing, opacity, rotation, textStroke}
  image: {id, type:"image", x, y, width, height, zIndex, src, alt, objectFit, borderRadius, clipPath}

Rules:
  - zIndex layers: 0–1 background, 2–3 decoration, 4–5 structure, 6–8 content, 9–10 hero.
  - Keep readable text at least 80px from every edge. Decorative watermark text may overflow.
  - Exactly one role:"title" per slide. Watermarks use role:"decorative", huge size, opacity 0.03–0.08.
  - No box-shadow, backdrop-filter or blur. Fake 3D: a shape offset +12px, fill #000, opacity 0.12–0.18.
  - If a slide has an image URL, it MUST contain an image element with that src, covering ≥ 40% of the canvas.

Return JSON: {"units": [{"id", "contentType", "label", "background": {"type": "solid"|"gradient"|"image", "value"},
"elements": [...]}]} with one unit per requested slide, in order. JSON only.
"""


# ── Worked examples ───────────────────────────────────────────────────────────

def _example_cover(ds: DesignSystem) -> Dict[str, Any]:
    c, t = ds.colors, ds.typography
    return {
        "id": "unit-0", "contentType": "cover", "label": "Cover",
        "background": {"type": "solid", "value": c.background},
        "elements": [
            {"id": "bg", "type": "shape", "x": 0, "y": 0, "width": 1920, "height": 1080, "zIndex": 0,
             "shapeType": "background", "opacity": 0.7,
             "fill": f"radial-gradient(circle at 20% 30%, {c.primary} 0%, transparent 50%)"},
            {"id": "watermark", "type": "text", "x": -150, "y": 180, "width": 2200, "height": 500, "zIndex": 2,
             "content": "BRAND", "fontSize": 380, "fontWeight": 900, "color": "transparent", "opacity": 0.12,
             "rotation": -8, "role": "decorative"},
            {"id": "accent-circle", "type": "shape", "x": 1450, "y": -80, "width": 400, "height": 400, "zIndex": 2,
             "shapeType": "decorative", "fill": c.accent, "clipPath": "circle(50%)", "opacity": 0.12},
            {"id": "title", "type": "text", "x": 120, "y": 380, "width": 900, "height": 200, "zIndex": 10,
             "content": "Brand Name", "fontSize": t.display_size, "fontWeight": 900, "color": c.text,
             "lineHeight": 1.0, "letterSpacing": -4, "role": "title"},
            {"id": "subtitle", "type": "text", "x": 120, "y": 610, "width": 600, "height": 50, "zIndex": 8,
             "content": "Partnership proposal", "fontSize": 22, "fontWeight": 300, "color": c.text,
             "letterSpacing": 6, "role": "subtitle"},
        ],
    }


def _example_metrics(ds: DesignSystem) -> Dict[str, Any]:
    c = ds.colors
    return {
        "id": "unit-9", "contentType": "metrics", "label": "Metrics",
        "background": {"type": "solid", "value": c.background},
        "elements": [
            {"id": "label", "type": "text", "x": 120, "y": 80, "width": 400, "height": 30, "zIndex": 8,
             "content": "GOALS & KPIs", "fontSize": 14, "fontWeight": 400, "color": c.accent,
             "letterSpacing": 4, "role": "label"},
            {"id": "title", "type": "text", "x": 120, "y": 120, "width": 800, "height": 80, "zIndex": 10,
             "content": "The numbers behind the plan", "fontSize": 56, "fontWeight": 800, "color": c.text,
             "lineHeight": 1.1, "letterSpacing": -2, "role": "title"},
            {"id": "c1-shadow", "type": "shape", "x": 135, "y": 275, "width": 520, "height": 320, "zIndex": 4,
             "shapeType": "decorative", "fill": "#000000", "borderRadius": 24, "opacity": 0.15},
            {"id": "c1", "type": "shape", "x": 120, "y": 260, "width": 520, "height": 320, "zIndex": 5,
             "shapeType": "decorative", "fill": c.card, "borderRadius": 24},
            {"id": "c1-num", "type": "text", "x": 160, "y": 290, "width": 440, "height": 120, "zIndex": 8,
             "content": "2.5M", "fontSize": 88, "fontWeight": 900, "color": c.accent, "role": "body"},
            {"id": "c1-lbl", "type": "text", "x": 160, "y": 420, "width": 440, "height": 40, "zIndex": 8,
             "content": "Projected reach", "fontSize": 22, "fontWeight": 400, "color": c.text, "role": "body"},
        ],
    }


WORKED_EXAMPLES = [_example_cover, _example_metrics]


def sample_example(design_system: DesignSystem, rng: random.Random) -> Dict[str, Any]:
    return rng.choice(WORKED_EXAMPLES)(design_system)


# ── Prompt ────────────────────────────────────────────────────────────────────

def _design_block(ds: DesignSystem) -> str:
    c, t, s, e, m = ds.colors, ds.typography, ds.spacing, ds.effects, ds.motif
    weights = ", ".join(f"{p[0]}/{p[1]}" for p in t.weight_pairs if len(p) >= 2)
    return (
        f"Canvas 1920×1080 | direction {ds.direction} | fonts {ds.fonts.heading} / {ds.fonts.body}\n"
        f"Colours: primary {c.primary} | secondary {c.secondary} | accent {c.accent}\n"
        f"Background {c.background} | text {c.text} | card {c.card} | muted {c.muted} | highlight {c.highlight}\n"
        f"Ambient gradient: {e.ambient_gradient}\n"
        f"Type: display {t.display_size}px | heading {t.heading_size}px | body {t.body_size}px | caption {t.caption_size}px\n"
        f"Tracking tight {t.letter_spacing_tight} / wide {t.letter_spacing_wide} | weights {weights}\n"
        f"Leading tight {t.line_height_tight} / relaxed {t.line_height_relaxed}\n"
        f"Card padding {s.card_padding}px | gap {s.card_gap}px | radius {e.corner_radius}px | safe margin {s.safe_margin}px\n"
        f"Decorative style {e.decorative_style} | shadow {e.shadow_style}\n"
        f"Motif: {m.type} (opacity {m.opacity}, colour {m.color}) {m.implementation}"
    )


def _unit_block(spec: ContentSpec, index: int, total: int, layout: Optional[LayoutDirective],
                temperature: str, tension: bool) -> str:
    pacing = pacing_for(spec.content_type)
    lines = [
        f"=== Slide {index + 1}/{total}: \"{spec.title}\" ({spec.content_type}) ===",
        f"Temperature: {temperature} | Energy: {pacing.energy} | Density: {pacing.density}",
        f"Max {pacing.max_elements} elements | at least {round(pacing.min_whitespace * 100)}% whitespace",
    ]
    if tension:
        lines.append("TENSION POINT: this slide needs one bold visual tension.")
    if layout is not None:
        lines.append(f"Layout technique: {layout.technique} — {layout.description}")
        lines.extend(f"  constraint: {c}" for c in layout.constraints)
    if spec.image_url:
        lines.append(f"Image: {spec.image_url} (MUST appear as an image element)")
        lines.append(f"Image sizing: {IMAGE_SIZE_HINTS.get(spec.content_type, 'At least 40% of the canvas')}")
    else:
        lines.append("No image: use decorative shapes, watermarks and dramatic typography.")
    lines.append("Content:")
    lines.append("```json\n" + json.dumps(spec.content, ensure_ascii=False, indent=2) + "\n```")
    return "\n".join(lines)


def build_batch_prompt(
    specs: List[ContentSpec],
    design_system: DesignSystem,
    context: BatchContext,
    layouts: List[Optional[LayoutDirective]],
    example: Dict[str, Any],
    instruction: Optional[str] = None,
) -> str:
    direction = context.creative_direction
    arc = direction.temperature_arc
    unit_blocks = []
    for offset, spec in enumerate(specs):
        index = context.unit_index + offset
        temperature = arc[index] if index < len(arc) else temperature_for(spec.content_type)
        unit_blocks.append(_unit_block(
            spec, index, context.total_units, layouts[offset],
            temperature, spec.content_type in direction.tension_units,
        ))

    if context.prior_units_summary:
        prior = (
            "ANTI-REPETITION: these slides already exist. Do not repeat their layouts, "
            "dominant colours or title positions.\n" + "\n".join(context.prior_units_summary)
        )
    else:
        prior = "This is the first batch, no previous slides."

    prompt = (
        f"Design {len(specs)} slide(s).\n\n"
        "## Creative brief\n"
        f"Visual metaphor: {direction.visual_metaphor}\n"
        f"Tension: {direction.tension}\n"
        f"One rule (every slide): {direction.one_rule}\n"
        f"Colour story: {direction.color_story}\n"
        f"Typography voice: {direction.typography_voice}\n"
        f"Emotional arc: {direction.emotional_arc}\n\n"
        "## Design system\n"
        f"{_design_block(design_system)}\n\n"
        "## Reference example (quality level only, do NOT copy its style)\n"
        f"```json\n{json.dumps(example, ensure_ascii=False)}\n```\n\n"
        "## Previous slides\n"
        f"{prior}\n\n"
        "## Slides to create\n"
        + "\n\n".join(unit_blocks)
    )
    if instruction:
        prompt += f"\n\n## REVISION REQUEST\n{instruction}\nApply it while keeping every rule above."
    return prompt


# ── Normalization ─────────────────────────────────────────────────────────────

def _extract_unit_list(raw: Any) -> List[Any]:
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict):
        for key in ("units", "slides"):
            if isinstance(raw.get(key), list):
                return raw[key]
        if "elements" in raw:
            return [raw]
    raise UnparsableOutputError("Response has no list of units")


def _normalize_elements(raw_elements: Any, unit_index: int) -> List[Any]:
    elements = []
    if not isinstance(raw_elements, list):
        return elements
    for j, item in enumerate(raw_elements):
        if not isinstance(item, dict) or item.get("type") not in ELEMENT_TYPES:
            continue
        item = dict(item)
        if not item.get("id"):
            item["id"] = f"el-{unit_index}-{j}"
        try:
            elements.append(_element_adapter.validate_python(item))
        except ValidationError as e:
            logger.debug(f"[generate] dropped element {item['id']}: {e.error_count()} error(s)")
    return elements


def normalize_unit(raw: Any, spec: ContentSpec, index: int) -> Optional[Unit]:
    """Validate one raw unit against its spec; None when it is unusable."""
    if not isinstance(raw, dict):
        return None
    background = raw.get("background")
    if isinstance(background, str):
        background = {"type": "solid", "value": background}
    data = {
        "id": raw.get("id") or f"unit-{index}",
        "content_type": spec.content_type,
        "label": raw.get("label") or spec.title,
        "elements": _normalize_elements(raw.get("elements"), index),
    }
    if isinstance(background, dict):
        data["background"] = background
    try:
        unit = Unit.model_validate(data)
    except ValidationError:
        return None
    return unit if unit.elements else None


def normalize_batch(
    raw: Any,
    specs: List[ContentSpec],
    start_index: int,
    design_system: DesignSystem,
) -> List[Unit]:
    """
    Map a parsed response onto `specs`: one unit per spec, in order.

    Raises:
        UnparsableOutputError: not a single usable unit in the response.
    """
    raw_units = _extract_unit_list(raw)
    units: List[Unit] = []
    usable = 0
    for offset, spec in enumerate(specs):
        index = start_index + offset
        unit = normalize_unit(raw_units[offset], spec, index) if offset < len(raw_units) else None
        if unit is None:
            unit = fallback_for_spec(spec, design_system, index)
        else:
            usable += 1
        units.append(unit)

    if usable == 0:
        raise UnparsableOutputError(f"No usable units among {len(raw_units)} returned")
    if len(raw_units) > len(specs):
        logger.info(f"[generate] dropped {len(raw_units) - len(specs)} extra unit(s)")
    return units


def summarize_unit(unit: Unit, index: int) -> str:
    sizes = [e.font_size for e in unit.texts()]
    max_font = f"{max(sizes):.0f}px" if sizes else "n/a"
    image = "has image" if unit.has_image() else "no image"
    return f"Unit {index + 1} ({unit.content_type}): {len(unit.elements)} elements, max font {max_font}, {image}"


def split_batches(plan: List[ContentSpec], batch_size: int) -> List[List[ContentSpec]]:
    size = max(1, batch_size)
    return [plan[i:i + size] for i in range(0, len(plan), size)]


# ── Stage entry ───────────────────────────────────────────────────────────────

def generate_batch(
    client: ModelClient,
    specs: List[ContentSpec],
    design_system: DesignSystem,
    context: BatchContext,
    layouts: List[Optional[LayoutDirective]],
    models: List[str],
    options: InvokeOptions,
    rng: random.Random,
    instruction: Optional[str] = None,
) -> Invocation:
    """
    Generate the units for one batch.

    Returns:
        Invocation whose value is a list with exactly one Unit per spec.

    Raises:
        AllModelsExhaustedError: no model produced a usable batch.
    """
    example = sample_example(design_system, rng)
    prompt = build_batch_prompt(specs, design_system, context, layouts, example, instruction)
    options = replace(options, system_instruction=SYSTEM_PROMPT)

    def validate(text: str) -> List[Unit]:
        return normalize_batch(json_repair.parse(text), specs, context.unit_index, design_system)

    return client.invoke_structured(prompt, models, options, validate=validate)
