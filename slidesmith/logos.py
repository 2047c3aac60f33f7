"""
logos.py — Logo placement on finished units.

Two marks go on at finalize time, after scoring, so they never count
against a unit's layout:

  agency logo  — small, bottom-left of every unit; the white or black variant
                 is picked from the unit's background luminance
  client logo  — only on cover / bigIdea / closing, at a fixed placement per
                 content type

A missing URL skips that mark.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from .colors import is_dark
from .models import Background, ImageElement, Unit

_HEX_IN_TEXT = re.compile(r"#[0-9a-fA-F]{3,8}\b")

# Image backgrounds and gradients without a readable stop are treated as dark
DEFAULT_DOMINANT = "#1A1A2E"

AGENCY_LOGO_BOX = {"x": 40, "y": 1000, "width": 140, "height": 50, "opacity": 0.7}
AGENCY_LOGO_Z = 99
CLIENT_LOGO_Z = 95

CLIENT_LOGO_PLACEMENTS: Dict[str, Dict[str, float]] = {
    "cover":   {"x": 1620, "y": 60,  "width": 220, "height": 80,  "opacity": 0.95},
    "bigIdea": {"x": 1660, "y": 60,  "width": 180, "height": 65,  "opacity": 0.85},
    "closing": {"x": 810,  "y": 100, "width": 300, "height": 110, "opacity": 1.0},
}


def dominant_color(background: Background) -> str:
    if background.type == "solid":
        return background.value
    if background.type == "gradient":
        match = _HEX_IN_TEXT.search(background.value)
        return match.group(0) if match else DEFAULT_DOMINANT
    return DEFAULT_DOMINANT


def _with_element(unit: Unit, element: ImageElement) -> Unit:
    return unit.model_copy(update={"elements": [*unit.elements, element]})


def inject_agency_logo(units: List[Unit], white_url: Optional[str], black_url: Optional[str]) -> List[Unit]:
    """Add the agency mark to every unit. With one variant configured it is used everywhere."""
    if not white_url and not black_url:
        return units
    out = []
    for unit in units:
        dark = is_dark(dominant_color(unit.background))
        src = (white_url if dark else black_url) or white_url or black_url
        logo = ImageElement(
            id=f"agency-logo-{unit.id}",
            src=src,
            alt="Agency logo",
            z_index=AGENCY_LOGO_Z,
            object_fit="contain",
            role="decorative",
            **AGENCY_LOGO_BOX,
        )
        out.append(_with_element(unit, logo))
    return out


def inject_client_logo(units: List[Unit], logo_url: Optional[str], brand_name: str = "") -> List[Unit]:
    """Add the client's logo to the units that have a placement for it."""
    if not logo_url:
        return units
    out = []
    for unit in units:
        placement = CLIENT_LOGO_PLACEMENTS.get(unit.content_type)
        if placement is None:
            out.append(unit)
            continue
        logo = ImageElement(
            id=f"client-logo-{unit.id}",
            src=logo_url,
            alt=brand_name or "Client brand",
            z_index=CLIENT_LOGO_Z,
            object_fit="contain",
            role="decorative",
            **placement,
        )
        out.append(_with_element(unit, logo))
    return out
