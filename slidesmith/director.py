"""
Director — uses Gemini to turn the content brief into one creative direction
for the whole deck.

The direction carries:
  - A concrete visual metaphor and the tension it plays with
  - One rule every slide obeys
  - Colour story, motif and typography voice
  - Emotional arc plus a per-unit temperature arc (cold / neutral / warm)
  - The content types that get the boldest "tension" treatment
"""

from __future__ import annotations

from dataclasses import replace
from typing import List

from rich.console import Console
from rich.panel import Panel

from . import json_repair
from .errors import UnparsableOutputError
from .models import ContentBrief, ContentSpec, CreativeDirection
from .oracle import InvokeOptions, Invocation, ModelClient
from .pacing import DEFAULT_TENSION_UNITS, temperature_for

console = Console()


SYSTEM_PROMPT = """\
You are the Creative Director of an award-level presentation studio. Every brand
must feel different; "modern and clean" is not a direction.

Return ONE JSON object with these keys (camelCase):

visualMetaphor   — a concrete visual metaphor. Not "professional" but
                   "brutalist exposed-concrete architecture" or "90s fashion magazine".
tension          — the visual surprise, e.g. "huge broken type + Japanese minimalism".
oneRule          — one rule every slide must keep, e.g. "one element always breaks the frame".
colorStory       — how colour evolves: "starts dark and cold, a burst of accent mid-deck, restraint at the end".
motif            — one recurring graphic motif.
typographyVoice  — how the type speaks, e.g. "screams: 900-weight headlines against 300-weight body".
emotionalArc     — curiosity → understanding → excitement → confidence → desire to act.
temperatureArc   — array with exactly one of "cold" | "neutral" | "warm" per planned slide, in order.
tensionUnits     — array of content types (from the plan) that get the boldest treatment.

JSON only. No markdown, no commentary.
"""


def build_direction_prompt(brief: ContentBrief, plan: List[ContentSpec]) -> str:
    lines = [brief.to_prompt_block(), "", "## Deck plan"]
    for i, spec in enumerate(plan):
        lines.append(f"{i + 1}. {spec.content_type} — {spec.title or '(untitled)'}")
    lines.append("")
    lines.append(f"temperatureArc must have exactly {len(plan)} entries.")
    return "\n".join(lines)


def parse_direction(text: str, plan: List[ContentSpec]) -> CreativeDirection:
    """Repair-parse a direction and fit its arcs to `plan`."""
    raw = json_repair.parse(text)
    if isinstance(raw, dict) and isinstance(raw.get("creativeDirection"), dict):
        raw = raw["creativeDirection"]
    if not isinstance(raw, dict):
        raise UnparsableOutputError("Creative direction is not a JSON object", str(text)[:200])
    direction = json_repair.parse_value(raw, CreativeDirection)
    return fit_to_plan(direction, plan)


def fit_to_plan(direction: CreativeDirection, plan: List[ContentSpec]) -> CreativeDirection:
    """Pad/truncate the temperature arc to the plan and keep only planned tension units."""
    arc = list(direction.temperature_arc[:len(plan)])
    for spec in plan[len(arc):]:
        arc.append(temperature_for(spec.content_type))

    planned = [spec.content_type for spec in plan]
    tension = [t for t in direction.tension_units if t in planned]
    if not tension:
        tension = [t for t in DEFAULT_TENSION_UNITS if t in planned]

    return direction.model_copy(update={"temperature_arc": arc, "tension_units": tension})


def generate_direction(
    client: ModelClient,
    brief: ContentBrief,
    plan: List[ContentSpec],
    models: List[str],
    options: InvokeOptions,
) -> Invocation:
    """
    Ask Gemini for the deck's creative direction.

    Returns:
        Invocation whose value is a CreativeDirection fitted to `plan`.

    Raises:
        AllModelsExhaustedError: no model produced a usable direction.
    """
    prompt = build_direction_prompt(brief, plan)
    options = replace(
        options,
        system_instruction=SYSTEM_PROMPT,
        cache_inputs={
            "brief": brief.model_dump(mode="json"),
            "plan": [spec.content_type for spec in plan],
        },
    )
    return client.invoke_structured(prompt, models, options, validate=lambda t: parse_direction(t, plan))


# ── Display helpers ───────────────────────────────────────────────────────────

def display_direction(direction: CreativeDirection) -> None:
    """Pretty-print the creative direction to the terminal."""
    body = (
        f"[bold]Metaphor:[/bold] {direction.visual_metaphor}\n"
        f"[bold]Tension:[/bold] {direction.tension}\n"
        f"[bold]One rule:[/bold] {direction.one_rule}\n\n"
        f"[bold]Colour story:[/bold] {direction.color_story}\n"
        f"[bold]Motif:[/bold] {direction.motif}\n"
        f"[bold]Typography:[/bold] {direction.typography_voice}\n"
        f"[bold]Arc:[/bold] {direction.emotional_arc}\n"
        f"[bold]Tension units:[/bold] {', '.join(direction.tension_units) or '-'}"
    )
    console.print(Panel(body, title="[bold]Creative Direction[/bold]", border_style="magenta"))
