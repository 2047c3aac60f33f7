"""
autofix.py — Deterministic repairs for auto-fixable scorer issues.

Only the elements named by auto-fixable issues change; everything else is
carried over as-is. Running fix() on its own output is a no-op.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from .colors import TEXT_CONTRAST_MIN, ensure_contrast
from .models import CANVAS_HEIGHT, CANVAS_WIDTH, DesignSystem, Issue, TextElement, Unit

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def fix(unit: Unit, issues: List[Issue], design_system: DesignSystem) -> Unit:
    """Return a copy of `unit` with contrast and safe-zone issues repaired."""
    targets: Dict[str, List[str]] = {}
    for issue in issues:
        if issue.auto_fixable and issue.element_id:
            targets.setdefault(issue.element_id, []).append(issue.category)

    if not targets:
        return unit

    margin = design_system.spacing.safe_margin
    background = design_system.colors.background
    elements = []

    for el in unit.elements:
        categories = targets.get(el.id)
        if not categories:
            elements.append(el)
            continue

        update = {}
        if "contrast" in categories and isinstance(el, TextElement):
            update["color"] = ensure_contrast(el.color, background, TEXT_CONTRAST_MIN)
        if "safe-zone" in categories:
            update["x"] = _clamp(el.x, margin, CANVAS_WIDTH - margin - el.width)
            update["y"] = _clamp(el.y, margin, CANVAS_HEIGHT - margin - el.height)
        elements.append(el.model_copy(update=update))

    logger.debug(f"[{unit.id}] auto-fixed {len(targets)} element(s)")
    return unit.model_copy(update={"elements": elements})
