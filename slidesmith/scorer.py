"""
scorer.py — Quality Scorer for generated units.

Pure metrics over one unit on a 1920×1080 canvas. Starts at 100 and subtracts
a fixed penalty per issue:

  contrast    critical    −15  text colour vs design-system background (auto-fixable)
  density     warning     −10  more elements than the pacing allows
  whitespace  warning      −8  free canvas below the pacing minimum
  safe-zone   warning      −5  text within 60px of an edge, per element (auto-fixable)
  scale       suggestion   −5  max/min font-size ratio too flat for the energy level
  hierarchy   warning  −10/−5  no title (except the opening unit) / more than two
  balance     suggestion   −5  mass concentrated in a few cells of a 4×3 grid
  degraded    warning     −20  the unit is a deterministic fallback
"""

from __future__ import annotations

from typing import List, Sequence

from .colors import LARGE_TEXT_CONTRAST_MIN, TEXT_CONTRAST_MIN, contrast_ratio, parse_hex
from .models import CANVAS_HEIGHT, CANVAS_WIDTH, DesignSystem, Issue, TextElement, Unit, ValidationResult
from .pacing import PacingDirective

SAFE_ZONE_MARGIN = 60
LARGE_TEXT_SIZE = 48
BALANCE_GRID = (4, 3)   # columns, rows
BALANCE_MIN = 0.3

PENALTIES = {
    "contrast": 15,
    "density": 10,
    "whitespace": 8,
    "safe-zone": 5,
    "scale": 5,
    "hierarchy-missing": 10,
    "hierarchy-crowded": 5,
    "balance": 5,
    "degraded": 20,
}


# ── Spatial helpers ───────────────────────────────────────────────────────────

def occupied_fraction(boxes: Sequence) -> float:
    """Σ element area / canvas area, capped at 1."""
    total = sum(max(b.width, 0) * max(b.height, 0) for b in boxes)
    return min(total / (CANVAS_WIDTH * CANVAS_HEIGHT), 1.0)


def balance_score(boxes: Sequence) -> float:
    """
    Visual balance in [0, 1]. Each element's overlap with every cell of a 4×3
    grid is accumulated, cells are normalized by the fullest one, and the
    score is 1 − 2·variance. An empty canvas scores 0.5.
    """
    cols, rows = BALANCE_GRID
    cell_w, cell_h = CANVAS_WIDTH / cols, CANVAS_HEIGHT / rows
    cells = [0.0] * (cols * rows)

    for b in boxes:
        for r in range(rows):
            for c in range(cols):
                cx, cy = c * cell_w, r * cell_h
                overlap_x = max(0.0, min(b.x + b.width, cx + cell_w) - max(b.x, cx))
                overlap_y = max(0.0, min(b.y + b.height, cy + cell_h) - max(b.y, cy))
                cells[r * cols + c] += overlap_x * overlap_y

    peak = max(cells)
    if peak == 0:
        return 0.5
    normalized = [v / peak for v in cells]
    mean = sum(normalized) / len(normalized)
    variance = sum((v - mean) ** 2 for v in normalized) / len(normalized)
    return max(0.0, min(1.0, 1 - variance * 2))


def in_safe_zone(el, margin: float = SAFE_ZONE_MARGIN) -> bool:
    return (
        el.x >= margin
        and el.y >= margin
        and el.x + el.width <= CANVAS_WIDTH - margin
        and el.y + el.height <= CANVAS_HEIGHT - margin
    )


def _is_visible_text(el: TextElement) -> bool:
    return el.opacity > 0 and "transparent" not in (el.color or "").lower()


# ── Scorer ────────────────────────────────────────────────────────────────────

def score(
    unit: Unit,
    design_system: DesignSystem,
    pacing: PacingDirective,
    is_opening: bool = False,
) -> ValidationResult:
    issues: List[Issue] = []
    penalty = 0

    def flag(severity, category, message, cost, element_id=None, auto_fixable=False):
        nonlocal penalty
        issues.append(Issue(severity, category, message, element_id, auto_fixable))
        penalty += cost

    elements = unit.elements
    content_texts = [e for e in unit.texts() if not e.is_decorative]
    background = design_system.colors.background

    for el in content_texts:
        if not _is_visible_text(el) or parse_hex(el.color) is None:
            continue
        ratio = contrast_ratio(el.color, background)
        minimum = LARGE_TEXT_CONTRAST_MIN if el.font_size >= LARGE_TEXT_SIZE else TEXT_CONTRAST_MIN
        if ratio < minimum:
            flag("critical", "contrast", f"Contrast {ratio:.1f}:1 (min {minimum}:1)",
                 PENALTIES["contrast"], el.id, auto_fixable=True)

    if len(elements) > pacing.max_elements:
        flag("warning", "density", f"{len(elements)} elements (max {pacing.max_elements})",
             PENALTIES["density"])

    whitespace = 1 - occupied_fraction(elements)
    if whitespace < pacing.min_whitespace:
        flag("warning", "whitespace",
             f"Whitespace {round(whitespace * 100)}% (min {round(pacing.min_whitespace * 100)}%)",
             PENALTIES["whitespace"])

    for el in content_texts:
        if not in_safe_zone(el):
            flag("warning", "safe-zone", "Text outside the safe zone",
                 PENALTIES["safe-zone"], el.id, auto_fixable=True)

    sizes = [e.font_size for e in content_texts if e.font_size > 0]
    if len(sizes) >= 2:
        ratio = max(sizes) / min(sizes)
        minimum = 8 if pacing.energy == "peak" else 4
        if ratio < minimum:
            flag("suggestion", "scale", f"Font ratio {ratio:.1f}:1 (recommend ≥{minimum}:1)",
                 PENALTIES["scale"])

    titles = [e for e in content_texts if e.role == "title"]
    if not titles and not is_opening:
        flag("warning", "hierarchy", "No title element", PENALTIES["hierarchy-missing"])
    elif len(titles) > 2:
        flag("warning", "hierarchy", f"{len(titles)} competing titles", PENALTIES["hierarchy-crowded"])

    balance = balance_score(elements)
    if balance < BALANCE_MIN:
        flag("suggestion", "balance", f"Balance {balance * 100:.0f}/100", PENALTIES["balance"])

    if unit.fallback:
        flag("warning", "degraded", "Fallback unit (generation failed)", PENALTIES["degraded"])

    valid = not any(i.severity == "critical" for i in issues)
    return ValidationResult(valid=valid, score=max(0, 100 - penalty), issues=issues)
