"""
pacing.py — Static pacing and temperature tables for proposal decks.

Each content type has a rhythm: the cover and big-idea slides are peaks with
lots of air, deliverables and influencer grids are dense "breath" slides, the
closing is the finale. Generation prompts quote these directives and the
Quality Scorer enforces them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from .models import ContentBrief, ContentSpec


@dataclass(frozen=True)
class PacingDirective:
    energy: str           # calm / building / peak / breath / finale
    density: str          # minimal / balanced / dense
    surprise: bool
    max_elements: int
    min_whitespace: float  # fraction of the canvas, 0–1


PACING_MAP: Dict[str, PacingDirective] = {
    "cover":              PacingDirective("peak",     "minimal",  True,  8,  0.40),
    "brief":              PacingDirective("calm",     "balanced", False, 12, 0.30),
    "goals":              PacingDirective("building", "balanced", False, 14, 0.25),
    "audience":           PacingDirective("building", "balanced", False, 12, 0.30),
    "insight":            PacingDirective("peak",     "minimal",  True,  8,  0.40),
    "strategy":           PacingDirective("building", "balanced", False, 12, 0.30),
    "bigIdea":            PacingDirective("peak",     "minimal",  True,  10, 0.35),
    "approach":           PacingDirective("calm",     "balanced", False, 14, 0.25),
    "deliverables":       PacingDirective("calm",     "dense",    False, 18, 0.20),
    "metrics":            PacingDirective("building", "dense",    False, 16, 0.20),
    "influencerStrategy": PacingDirective("calm",     "balanced", False, 12, 0.30),
    "influencers":        PacingDirective("breath",   "dense",    False, 20, 0.15),
    "closing":            PacingDirective("finale",   "minimal",  True,  8,  0.45),
}

TEMPERATURE_MAP: Dict[str, str] = {
    "cover": "cold",
    "brief": "cold",
    "goals": "neutral",
    "audience": "neutral",
    "insight": "warm",
    "strategy": "neutral",
    "bigIdea": "warm",
    "approach": "neutral",
    "deliverables": "neutral",
    "metrics": "neutral",
    "influencerStrategy": "cold",
    "influencers": "neutral",
    "closing": "warm",
}

DEFAULT_TENSION_UNITS = ["cover", "insight", "bigIdea", "closing"]

# Order and default titles of the standard proposal deck
DEFAULT_PLAN = [
    ("cover", ""),
    ("brief", "The Brief"),
    ("goals", "Goals"),
    ("audience", "Who We're Talking To"),
    ("insight", "The Insight"),
    ("strategy", "Strategy"),
    ("bigIdea", "The Big Idea"),
    ("approach", "Our Approach"),
    ("deliverables", "Deliverables"),
    ("metrics", "How We Measure Success"),
    ("influencerStrategy", "Influencer Strategy"),
    ("influencers", "Featured Creators"),
    ("closing", "Let's Make It Happen"),
]


def pacing_for(content_type: str) -> PacingDirective:
    """Directive for `content_type`; unknown types get the `brief` row."""
    return PACING_MAP.get(content_type, PACING_MAP["brief"])


def temperature_for(content_type: str) -> str:
    return TEMPERATURE_MAP.get(content_type, "neutral")


def default_temperature_arc(plan: List[ContentSpec]) -> List[str]:
    return [temperature_for(spec.content_type) for spec in plan]


def default_unit_plan(brief: ContentBrief) -> List[ContentSpec]:
    """The 13-unit proposal plan, filled from the brief where it has data."""
    content_by_type = {
        "cover": {"brandName": brief.brand_name, "industry": brief.industry},
        "brief": {"audience": brief.audience, "industry": brief.industry},
        "goals": {"goals": list(brief.goals)},
        "audience": {"audience": brief.audience},
    }
    plan = []
    for content_type, title in DEFAULT_PLAN:
        if content_type == "cover":
            title = brief.brand_name
        plan.append(ContentSpec(
            content_type=content_type,
            title=title,
            content=content_by_type.get(content_type, {}),
        ))
    return plan


def plan_for(brief: ContentBrief) -> List[ContentSpec]:
    return list(brief.units) if brief.units else default_unit_plan(brief)
