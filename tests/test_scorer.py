"""
Unit tests for the Quality Scorer and Auto-Fixer.

Run with: pytest tests/test_scorer.py -v
"""

import pytest

from slidesmith.autofix import fix
from slidesmith.errors import ValidationCriticalError
from slidesmith.fallback import fallback_unit
from slidesmith.models import ShapeElement, TextElement, Unit
from slidesmith.pacing import pacing_for
from slidesmith.scorer import PENALTIES, balance_score, in_safe_zone, occupied_fraction, score


def _text(id, x=160, y=300, w=900, h=120, size=96, color="#FFFFFF", role="title"):
    return TextElement(id=id, x=x, y=y, width=w, height=h, font_size=size, color=color, role=role, content=id)


def _unit(*elements, content_type="brief", fallback=False):
    return Unit(id="u", content_type=content_type, elements=list(elements), fallback=fallback)


def _categories(result):
    return [i.category for i in result.issues]


# ---------------------------------------------------------------------------
# Spatial helpers
# ---------------------------------------------------------------------------

class TestSpatialHelpers:
    def test_occupied_fraction_capped(self):
        full = ShapeElement(width=1920, height=1080)
        assert occupied_fraction([full, full]) == 1.0

    def test_empty_canvas_balance(self):
        assert balance_score([]) == 0.5

    def test_single_corner_is_less_balanced_than_even_spread(self):
        corner = ShapeElement(x=0, y=0, width=400, height=300)
        spread = ShapeElement(x=0, y=0, width=1920, height=1080)
        assert balance_score([corner]) < balance_score([spread])
        assert balance_score([spread]) == pytest.approx(1.0)

    def test_safe_zone(self):
        assert in_safe_zone(_text("a", x=60, y=60, w=100, h=100))
        assert not in_safe_zone(_text("b", x=20, y=60, w=100, h=100))


# ---------------------------------------------------------------------------
# score()
# ---------------------------------------------------------------------------

class TestScore:
    def test_clean_unit_scores_100(self, design_system):
        unit = _unit(
            _text("title", size=96),
            _text("body", y=480, h=60, size=22, role="body"),
        )
        result = score(unit, design_system, pacing_for("brief"))
        assert result.score == 100
        assert result.valid
        result.raise_for_critical()

    def test_low_contrast_is_critical_and_fixable(self, design_system):
        unit = _unit(_text("title", color="#111111"), _text("body", y=480, h=60, size=22, role="body"))
        result = score(unit, design_system, pacing_for("brief"))
        assert not result.valid
        assert result.has_critical_fixable()
        issue = next(i for i in result.issues if i.category == "contrast")
        assert issue.element_id == "title"
        assert result.score == 100 - PENALTIES["contrast"]
        with pytest.raises(ValidationCriticalError, match="1 critical issue"):
            result.raise_for_critical()

    def test_decorative_text_is_exempt(self, design_system):
        watermark = _text("wm", color="#111111", role="decorative", y=600)
        unit = _unit(_text("title"), _text("body", y=480, h=60, size=22, role="body"), watermark)
        assert "contrast" not in _categories(score(unit, design_system, pacing_for("brief")))

    def test_density_and_whitespace(self, design_system):
        blocks = [ShapeElement(id=f"s{i}", x=0, y=i * 80, width=1920, height=80) for i in range(13)]
        unit = _unit(_text("title"), *blocks)
        categories = _categories(score(unit, design_system, pacing_for("brief")))
        assert "density" in categories
        assert "whitespace" in categories

    def test_safe_zone_per_element(self, design_system):
        unit = _unit(_text("title", x=10), _text("body", x=10, y=480, h=60, size=22, role="body"))
        result = score(unit, design_system, pacing_for("brief"))
        assert _categories(result).count("safe-zone") == 2

    def test_flat_scale_on_peak_unit(self, design_system):
        unit = _unit(_text("title", size=96), _text("body", y=480, h=60, size=22, role="body"),
                     content_type="cover")
        # 96/22 ≈ 4.4 passes a calm unit but not a peak one
        assert "scale" in _categories(score(unit, design_system, pacing_for("cover"), is_opening=True))
        assert "scale" not in _categories(score(unit, design_system, pacing_for("brief")))

    def test_missing_title_except_opening(self, design_system):
        unit = _unit(_text("body", size=22, role="body"))
        assert "hierarchy" in _categories(score(unit, design_system, pacing_for("brief")))
        assert "hierarchy" not in _categories(score(unit, design_system, pacing_for("brief"), is_opening=True))

    def test_competing_titles(self, design_system):
        unit = _unit(_text("t1"), _text("t2", y=450), _text("t3", y=600))
        result = score(unit, design_system, pacing_for("brief"))
        assert "hierarchy" in _categories(result)

    def test_fallback_unit_is_penalized(self, design_system):
        unit = fallback_unit("brief", design_system, 0, "The Brief")
        result = score(unit, design_system, pacing_for("brief"))
        assert "degraded" in _categories(result)
        assert result.valid
        assert result.score <= 100 - PENALTIES["degraded"]

    def test_score_never_negative(self, design_system):
        elements = [_text(f"t{i}", x=0, y=0, color="#111111") for i in range(25)]
        result = score(_unit(*elements, fallback=True), design_system, pacing_for("cover"))
        assert result.score == 0


# ---------------------------------------------------------------------------
# fix()
# ---------------------------------------------------------------------------

class TestAutoFix:
    def test_fixes_contrast_and_safe_zone(self, design_system):
        unit = _unit(_text("title", x=5, y=1000, color="#111111"), _text("body", y=480, h=60, size=22, role="body"))
        result = score(unit, design_system, pacing_for("brief"))

        fixed = fix(unit, result.issues, design_system)

        rescored = score(fixed, design_system, pacing_for("brief"))
        assert "contrast" not in _categories(rescored)
        assert "safe-zone" not in _categories(rescored)
        title = fixed.elements[0]
        assert title.x == design_system.spacing.safe_margin
        assert title.y + title.height <= 1080 - design_system.spacing.safe_margin

    def test_only_flagged_elements_change(self, design_system):
        body = _text("body", y=480, h=60, size=22, role="body")
        unit = _unit(_text("title", color="#111111"), body)
        fixed = fix(unit, score(unit, design_system, pacing_for("brief")).issues, design_system)
        assert fixed.elements[1] == body
        assert unit.elements[0].color == "#111111"

    def test_idempotent(self, design_system):
        unit = _unit(_text("title", x=5, color="#222222"), _text("body", y=480, h=60, size=22, role="body"))
        issues = score(unit, design_system, pacing_for("brief")).issues
        once = fix(unit, issues, design_system)
        twice = fix(once, issues, design_system)
        assert once == twice

    def test_no_fixable_issues_returns_unit(self, design_system):
        unit = _unit(_text("title"))
        assert fix(unit, [], design_system) is unit
