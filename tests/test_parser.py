"""
Tests for brief loading and configuration.

Run with: pytest tests/test_parser.py -v
"""

import json

import pytest

from slidesmith.config import STAGES, PipelineConfig
from slidesmith.errors import ConfigError
from slidesmith.parser import parse_brief

BRIEF_MD = """\
# Proposal brief

## Brand Name
Northwind

## Industry
Logistics

## Audience
Operations leads at
mid-size retailers

## Personality
- bold
- precise

## Goals
- Win the pitch
- Show the numbers

## Colors
primary: #2D6CDF
accent: #FF6B35
glitter: #FFFFFF

## Units
cover: Northwind
metrics: Proof
closing: Let's Go
"""


# ---------------------------------------------------------------------------
# parse_brief
# ---------------------------------------------------------------------------

class TestParseBrief:
    def test_markdown_folder(self, tmp_path):
        (tmp_path / "brief.md").write_text(BRIEF_MD, encoding="utf-8")

        brief = parse_brief(str(tmp_path))

        assert brief.brand_name == "Northwind"
        assert brief.industry == "Logistics"
        assert brief.audience == "Operations leads at mid-size retailers"
        assert brief.personality == ["bold", "precise"]
        assert brief.goals == ["Win the pitch", "Show the numbers"]
        assert brief.palette.primary == "#2D6CDF"
        assert brief.palette.accent == "#FF6B35"
        assert brief.palette.secondary == "#00CEC9"
        assert [(u.content_type, u.title) for u in brief.units] == [
            ("cover", "Northwind"), ("metrics", "Proof"), ("closing", "Let's Go"),
        ]
        assert brief.direction == "ltr"
        assert brief.client_logo_url is None

    def test_client_logo_section(self, tmp_path):
        text = BRIEF_MD + "\n## Client Logo\nhttps://cdn.example.com/northwind.svg\n"
        (tmp_path / "brief.md").write_text(text, encoding="utf-8")

        brief = parse_brief(str(tmp_path))

        assert brief.client_logo_url == "https://cdn.example.com/northwind.svg"

    def test_markdown_without_units_gets_default_plan(self, tmp_path):
        text = BRIEF_MD.split("## Units")[0] + "## Language\nar\n"
        (tmp_path / "brief.md").write_text(text, encoding="utf-8")

        brief = parse_brief(str(tmp_path))

        assert len(brief.units) == 13
        assert brief.units[0].title == "Northwind"
        assert brief.direction == "rtl"

    def test_json_file_camel_case(self, tmp_path):
        path = tmp_path / "brief.json"
        path.write_text(json.dumps({
            "brandName": "Acme",
            "palette": {"primary": "#111111"},
            "units": [{"contentType": "cover", "title": "Acme"}],
        }), encoding="utf-8")

        brief = parse_brief(str(path))

        assert brief.brand_name == "Acme"
        assert brief.palette.primary == "#111111"
        assert len(brief.units) == 1

    def test_invalid_json_brief(self, tmp_path):
        path = tmp_path / "brief.json"
        path.write_text('{"industry": "no brand name"}', encoding="utf-8")
        with pytest.raises(ConfigError):
            parse_brief(str(path))

    def test_missing_brand_name(self, tmp_path):
        (tmp_path / "brief.md").write_text("## Industry\nRetail\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            parse_brief(str(tmp_path))

    def test_missing_paths(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            parse_brief(str(tmp_path / "nope"))
        with pytest.raises(FileNotFoundError):
            parse_brief(str(tmp_path))


# ---------------------------------------------------------------------------
# PipelineConfig
# ---------------------------------------------------------------------------

class TestPipelineConfig:
    def test_defaults(self):
        config = PipelineConfig()
        assert config.batch_size == 4
        assert config.cache_ttl_seconds == 1800
        assert not config.enable_self_critique
        assert all(config.models_for(stage) == ["gemini-2.5-pro", "gemini-2.5-flash"] for stage in STAGES)

    def test_from_env(self):
        config = PipelineConfig.from_env({
            "GEMINI_MODEL": "m-primary",
            "GEMINI_FALLBACK_MODEL": "m-backup",
            "SLIDESMITH_MODELS_GENERATE": "fast, slow",
            "SLIDESMITH_SELF_CRITIQUE": "true",
            "SLIDESMITH_BATCH_SIZE": "2",
            "SLIDESMITH_CACHE_TTL": "60",
            "SLIDESMITH_AGENCY_LOGO_WHITE": "https://cdn.example.com/agency-white.png",
            "SLIDESMITH_AGENCY_LOGO_BLACK": "",
        })
        assert config.models_for("direction") == ["m-primary", "m-backup"]
        assert config.models_for("generate") == ["fast", "slow"]
        assert config.enable_self_critique
        assert config.batch_size == 2
        assert config.cache_ttl_seconds == 60
        assert config.agency_logo_white_url == "https://cdn.example.com/agency-white.png"
        assert config.agency_logo_black_url is None

    def test_models_for_returns_copy(self):
        config = PipelineConfig()
        config.models_for("design").append("x")
        assert "x" not in config.models_for("design")

    @pytest.mark.parametrize("env", [
        {"SLIDESMITH_BATCH_SIZE": "zero"},
        {"SLIDESMITH_BATCH_SIZE": "0"},
        {"SLIDESMITH_MODELS_LAYOUT": " , "},
    ])
    def test_invalid_env(self, env):
        with pytest.raises(ConfigError):
            PipelineConfig.from_env(env)
