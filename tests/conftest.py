"""
Shared fixtures: a scripted oracle, a small brief and ready-made model payloads.

No test talks to Gemini.
"""

import json
import threading

import pytest

from slidesmith.config import PipelineConfig
from slidesmith.errors import OracleError
from slidesmith.fallback import fallback_design_system
from slidesmith.models import BrandPalette, ContentBrief, ContentSpec
from slidesmith.oracle import Oracle


class FakeOracle(Oracle):
    """
    Oracle driven by a per-stage script.

    `responses[stage]` is either a list consumed one call at a time (str to
    return, Exception to raise), a single str returned on every call, or a
    callable(prompt, config) -> str. Stages without a script fail.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self._lock = threading.Lock()

    def generate(self, prompt, config):
        with self._lock:
            self.calls.append((config.stage, config.model, prompt))
            script = self.responses.get(config.stage)
            if isinstance(script, list):
                result = script.pop(0) if script else OracleError("script exhausted", model=config.model)
            elif callable(script):
                result = script(prompt, config)
            elif script is None:
                result = OracleError(f"no script for {config.stage}", model=config.model)
            else:
                result = script
        if isinstance(result, Exception):
            raise result
        return result

    def stages(self):
        return [stage for stage, _, _ in self.calls]


def unit_payload(title="Title", color="#FFFFFF"):
    """A unit that passes every scorer check on a dark background."""
    return {
        "label": title,
        "elements": [
            {"type": "text", "x": 160, "y": 300, "width": 1100, "height": 130, "zIndex": 10,
             "content": title, "fontSize": 96, "fontWeight": "bold", "color": color, "role": "title"},
            {"type": "text", "x": 160, "y": 480, "width": 900, "height": 60, "zIndex": 10,
             "content": "Supporting line", "fontSize": 12, "color": color, "role": "body"},
            {"type": "text", "x": 1400, "y": 800, "width": 360, "height": 120, "zIndex": 10,
             "content": "42%", "fontSize": 88, "color": color, "role": "label"},
        ],
    }


def batch_response(count=6, **kwargs):
    return json.dumps({"units": [unit_payload(f"Unit {i}", **kwargs) for i in range(count)]})


DIRECTION_RESPONSE = json.dumps({
    "visualMetaphor": "A lighthouse cutting through fog",
    "tension": "calm vs. beam",
    "oneRule": "One beam of accent per slide",
    "temperatureArc": ["cold", "warm"],
    "tensionUnits": ["insight", "notPlanned"],
})

DESIGN_RESPONSE = json.dumps({
    "designSystem": {
        "colors": {"background": "#101018", "text": "#EDEDF2", "accent": "#FF6B35", "cardBg": "#1C1C28"},
        "typography": {"headingSize": 64},
    }
})

LAYOUT_RESPONSE = json.dumps({
    "layouts": [
        {"contentType": "cover", "technique": "Data art", "description": "Huge numerals"},
        {"contentType": "insight", "technique": "Data art"},
        {"contentType": "closing", "technique": "Magazine spread"},
    ]
})


@pytest.fixture
def brief():
    return ContentBrief(
        brand_name="Northwind",
        industry="Logistics",
        personality=["bold", "precise"],
        audience="Operations leads",
        goals=["Win the pitch"],
        palette=BrandPalette(primary="#2D6CDF", secondary="#00B3A4", accent="#FF6B35"),
        units=[
            ContentSpec(content_type="cover", title="Northwind", content={"brandName": "Northwind"}),
            ContentSpec(content_type="insight", title="The Insight"),
            ContentSpec(content_type="closing", title="Let's Go"),
        ],
    )


@pytest.fixture
def design_system(brief):
    return fallback_design_system(brief)


@pytest.fixture
def config():
    return PipelineConfig(
        stage_models={stage: ["model-a", "model-b"] for stage in ("direction", "design", "layout", "generate", "critique")},
        base_delay_seconds=0,
    )


@pytest.fixture
def healthy_oracle():
    return FakeOracle({
        "direction": DIRECTION_RESPONSE,
        "design": DESIGN_RESPONSE,
        "layout": LAYOUT_RESPONSE,
        "generate": batch_response(),
    })


@pytest.fixture
def no_sleep():
    delays = []
    return delays, delays.append
