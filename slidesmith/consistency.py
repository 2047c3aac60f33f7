"""
consistency.py — Cross-unit title normalization.

Batches are generated independently, so title positions and sizes drift a
little from one batch to the next. This pass pulls regular titles back to the
deck median without touching the deliberate outliers:

  - the first and last units and peak / finale units are left alone
  - Y snaps to the median only when it is more than 100px off
  - font size snaps only when it is 6–15px off; bigger gaps are intentional
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from .models import TextElement, Unit
from .pacing import pacing_for

logger = logging.getLogger(__name__)

MIN_TITLES = 3
Y_SNAP_THRESHOLD = 100
SIZE_SNAP_BAND = (6, 15)
EXEMPT_ENERGY = ("peak", "finale")


def _median_high(values: List[float]) -> float:
    ordered = sorted(values)
    return ordered[len(ordered) // 2]


def normalize(units: List[Unit]) -> List[Unit]:
    """Return units with drifting titles snapped to the median; input is not modified."""
    all_titles = sum(len(u.titles()) for u in units)
    if all_titles < MIN_TITLES:
        return list(units)

    last = len(units) - 1
    regular: List[Tuple[int, TextElement]] = []
    for i, unit in enumerate(units):
        if i in (0, last) or pacing_for(unit.content_type).energy in EXEMPT_ENERGY:
            continue
        regular.extend((i, t) for t in unit.titles())

    if not regular:
        return list(units)

    median_y = _median_high([t.y for _, t in regular])
    median_size = _median_high([t.font_size for _, t in regular])
    low, high = SIZE_SNAP_BAND

    updates = {}   # (unit index, element id) → field updates
    for i, title in regular:
        update = {}
        if abs(title.y - median_y) > Y_SNAP_THRESHOLD:
            update["y"] = median_y
        if low < abs(title.font_size - median_size) < high:
            update["font_size"] = median_size
        if update:
            updates[(i, title.id)] = update

    if not updates:
        return list(units)

    logger.info(f"[consistency] snapped {len(updates)} title(s) to y={median_y:.0f}, size={median_size:.0f}")
    out = []
    for i, unit in enumerate(units):
        if not any(key[0] == i for key in updates):
            out.append(unit)
            continue
        elements = [
            e.model_copy(update=updates[(i, e.id)]) if (i, e.id) in updates else e
            for e in unit.elements
        ]
        out.append(unit.model_copy(update={"elements": elements}))
    return out
