"""
layout.py — Layout strategy: one composition technique per planned unit.

Gemini proposes a technique for each content type; enforce_variety() then
rewrites the list so that

  - no technique (case-insensitive) is used more than twice, and
  - two adjacent units never share a technique.

When the plan has more units than 2 × the technique pool, the cap is lifted but
adjacency still holds.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from typing import List, Optional, Sequence

from pydantic import ValidationError

from . import json_repair
from .errors import UnparsableOutputError
from .fallback import LAYOUT_TECHNIQUES, TECHNIQUE_NOTES, fallback_layout
from .models import ContentSpec, CreativeDirection, LayoutDirective
from .oracle import InvokeOptions, Invocation, ModelClient
from .pacing import pacing_for

logger = logging.getLogger(__name__)

MAX_TECHNIQUE_USES = 2


SYSTEM_PROMPT = """\
You are an art director planning the composition of every slide in a deck.
Assign each slide ONE layout technique. Prefer this pool:

""" + "\n".join(f"  - {t}: {TECHNIQUE_NOTES[t]}" for t in LAYOUT_TECHNIQUES) + """

Rules:
  - No technique more than twice in the whole deck.
  - Two consecutive slides never share a technique.
  - Peak-energy slides get the most dramatic techniques.

Return JSON: {"layouts": [{"contentType": "...", "technique": "...",
"description": "one sentence on how it applies here", "constraints": ["..."]}]}
One entry per slide, in plan order. JSON only.
"""


def build_layout_prompt(direction: CreativeDirection, plan: List[ContentSpec]) -> str:
    lines = [
        f"Visual metaphor: {direction.visual_metaphor}",
        f"One rule: {direction.one_rule}",
        "",
        "## Slides",
    ]
    for i, spec in enumerate(plan):
        pacing = pacing_for(spec.content_type)
        lines.append(
            f"{i + 1}. {spec.content_type} — energy {pacing.energy}, density {pacing.density}"
            + (", image provided" if spec.image_url else "")
        )
    return "\n".join(lines)


# ── Anti-repetition ───────────────────────────────────────────────────────────

def enforce_variety(
    directives: List[LayoutDirective],
    pool: Sequence[str] = LAYOUT_TECHNIQUES,
    cap: int = MAX_TECHNIQUE_USES,
) -> List[LayoutDirective]:
    """Reassign techniques that break the usage cap or repeat the previous unit's."""
    relaxed = len(directives) > cap * len(pool)
    counts: Counter = Counter()
    previous: Optional[str] = None
    out = []

    for directive in directives:
        key = directive.technique.strip().lower()
        if key == previous or (not relaxed and counts[key] >= cap):
            candidates = [t for t in pool if t.lower() != previous and (relaxed or counts[t.lower()] < cap)]
            if not candidates:
                candidates = [t for t in pool if t.lower() != previous]
            choice = min(candidates, key=lambda t: (counts[t.lower()], pool.index(t)))
            logger.debug(f"[layout] {directive.content_type}: {directive.technique!r} → {choice!r}")
            directive = directive.model_copy(update={
                "technique": choice,
                "description": TECHNIQUE_NOTES.get(choice, directive.description),
            })
            key = choice.lower()
        counts[key] += 1
        previous = key
        out.append(directive)

    return out


# ── Parsing ───────────────────────────────────────────────────────────────────

def parse_layout(text: str, plan: List[ContentSpec]) -> List[LayoutDirective]:
    """One directive per plan entry; gaps filled from the static table, then de-duplicated."""
    raw = json_repair.parse(text)
    if isinstance(raw, dict):
        raw = raw.get("layouts") or raw.get("layout") or raw.get("directives")
    if not isinstance(raw, list):
        raise UnparsableOutputError("Layout response has no list of directives", str(text)[:200])

    proposed: List[LayoutDirective] = []
    for item in raw:
        try:
            proposed.append(LayoutDirective.model_validate(item))
        except ValidationError:
            continue
    if not proposed:
        raise UnparsableOutputError("Layout response has no usable directives", str(text)[:200])

    static = fallback_layout(plan)
    by_position = {}
    remaining = list(proposed)
    for i, spec in enumerate(plan):
        match = next((d for d in remaining if d.content_type == spec.content_type), None)
        if match is not None:
            remaining.remove(match)
            by_position[i] = match.model_copy(update={"content_type": spec.content_type})

    directives = [by_position.get(i, static[i]) for i in range(len(plan))]
    return enforce_variety(directives)


def generate_layout(
    client: ModelClient,
    direction: CreativeDirection,
    plan: List[ContentSpec],
    models: List[str],
    options: InvokeOptions,
) -> Invocation:
    """
    Ask Gemini for one layout directive per planned unit.

    Raises:
        AllModelsExhaustedError: no model produced usable directives.
    """
    prompt = build_layout_prompt(direction, plan)
    options = replace(
        options,
        system_instruction=SYSTEM_PROMPT,
        cache_inputs={
            "direction": direction.model_dump(mode="json"),
            "plan": [spec.content_type for spec in plan],
        },
    )
    return client.invoke_structured(prompt, models, options, validate=lambda t: parse_layout(t, plan))


def static_layout(plan: List[ContentSpec]) -> List[LayoutDirective]:
    """Fallback layout, with the same variety rules applied."""
    return enforce_variety(fallback_layout(plan))
