"""
Unit tests for colour math and design-system harmonization.

Run with: pytest tests/test_colors.py -v
"""

import pytest

from slidesmith.colors import (
    ACCENT_CONTRAST_MIN,
    CARD_CONTRAST_MIN,
    MUTED_CONTRAST_MIN,
    TEXT_CONTRAST_MIN,
    contrast_ratio,
    ensure_contrast,
    harmonize,
    is_dark,
    normalize_hex,
    parse_hex,
    relative_luminance,
    separate_surface,
)
from slidesmith.design_system import harmonize_design_system


class TestParseHex:
    @pytest.mark.parametrize("value,expected", [
        ("#FFFFFF", (255, 255, 255)),
        ("#abc", (170, 187, 204)),
        ("000000", (0, 0, 0)),
        ("#11223344", (17, 34, 51)),
    ])
    def test_valid(self, value, expected):
        assert parse_hex(value) == expected

    @pytest.mark.parametrize("value", ["", None, "#12", "#GGGGGG", "rgb(1,2,3)", "transparent"])
    def test_invalid(self, value):
        assert parse_hex(value) is None

    def test_normalize_hex_uppercases_and_defaults(self):
        assert normalize_hex("#abc", "#000000") == "#AABBCC"
        assert normalize_hex("nope", "#000000") == "#000000"


class TestContrast:
    def test_black_on_white_is_21(self):
        assert contrast_ratio("#000000", "#FFFFFF") == pytest.approx(21.0, rel=1e-3)

    def test_symmetric(self):
        assert contrast_ratio("#336699", "#F0F0F0") == pytest.approx(contrast_ratio("#F0F0F0", "#336699"))

    def test_unparseable_is_one(self):
        assert contrast_ratio("transparent", "#FFFFFF") == 1.0

    def test_ensure_contrast_lightens_on_dark(self):
        result = ensure_contrast("#333333", "#0A0A12", TEXT_CONTRAST_MIN)
        assert contrast_ratio(result, "#0A0A12") >= TEXT_CONTRAST_MIN
        assert relative_luminance(parse_hex(result)) > relative_luminance(parse_hex("#333333"))

    def test_ensure_contrast_darkens_on_light(self):
        result = ensure_contrast("#DDDDDD", "#FAFAFA", TEXT_CONTRAST_MIN)
        assert contrast_ratio(result, "#FAFAFA") >= TEXT_CONTRAST_MIN

    def test_ensure_contrast_keeps_passing_colour(self):
        assert ensure_contrast("#FFFFFF", "#000000", TEXT_CONTRAST_MIN) == "#FFFFFF"


class TestHarmonize:
    def test_dark_on_dark_scenario(self):
        text, accent = harmonize("#222222", "#330000", "#1a1a1a")
        assert contrast_ratio(text, "#1a1a1a") >= TEXT_CONTRAST_MIN
        assert contrast_ratio(accent, "#1a1a1a") >= ACCENT_CONTRAST_MIN
        assert relative_luminance(parse_hex(text)) > relative_luminance(parse_hex("#222222"))
        assert relative_luminance(parse_hex(accent)) > relative_luminance(parse_hex("#330000"))

    def test_design_system_other_fields_unchanged(self, design_system):
        colors = design_system.colors.model_copy(update={
            "text": "#222222", "accent": "#330000", "background": "#1A1A1A",
        })
        ds = design_system.model_copy(update={"colors": colors})

        result = harmonize_design_system(ds)

        assert result.colors.background == "#1A1A1A"
        assert result.colors.primary == ds.colors.primary
        assert contrast_ratio(result.colors.card, "#1A1A1A") >= CARD_CONTRAST_MIN
        assert contrast_ratio(result.colors.muted, "#1A1A1A") >= MUTED_CONTRAST_MIN
        assert result.typography == ds.typography
        assert contrast_ratio(result.colors.text, "#1A1A1A") >= TEXT_CONTRAST_MIN
        assert contrast_ratio(result.colors.accent, "#1A1A1A") >= ACCENT_CONTRAST_MIN

    def test_already_harmonized_returns_same_object(self, design_system):
        assert harmonize_design_system(design_system) is design_system

    def test_muted_and_card_lifted_off_background(self, design_system):
        colors = design_system.colors.model_copy(update={
            "background": "#101010", "muted": "#181818", "card": "#111111",
        })
        result = harmonize_design_system(design_system.model_copy(update={"colors": colors}))

        assert contrast_ratio(result.colors.muted, "#101010") >= MUTED_CONTRAST_MIN
        assert contrast_ratio(result.colors.card, "#101010") >= CARD_CONTRAST_MIN
        # a surface, not text: it stays close to the background
        assert contrast_ratio(result.colors.card, "#101010") < ACCENT_CONTRAST_MIN


class TestSurfaces:
    def test_separate_surface_darkens_on_light(self):
        card = separate_surface("#F8F8F8", "#FAFAFA")
        assert contrast_ratio(card, "#FAFAFA") >= CARD_CONTRAST_MIN
        assert relative_luminance(parse_hex(card)) < relative_luminance(parse_hex("#F8F8F8"))

    def test_separate_surface_keeps_visible_card(self):
        assert separate_surface("#2A2A40", "#0A0A12") == "#2A2A40"

    @pytest.mark.parametrize("value,dark", [
        ("#0A0A12", True),
        ("#1A1A2E", True),
        ("#FFFFFF", False),
        ("#F5E6C8", False),
        ("not-a-colour", True),
    ])
    def test_is_dark(self, value, dark):
        assert is_dark(value) is dark
