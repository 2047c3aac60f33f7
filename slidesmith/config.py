"""
config.py — Pipeline configuration.

Defaults live on PipelineConfig; PipelineConfig.from_env() loads .env and lets
environment variables override them:

    GEMINI_MODEL=gemini-2.5-pro              # primary model, every stage
    GEMINI_FALLBACK_MODEL=gemini-2.5-flash   # second model, every stage
    SLIDESMITH_MODELS_GENERATE=gemini-2.5-flash,gemini-2.5-pro   # per-stage override
    SLIDESMITH_SELF_CRITIQUE=1
    SLIDESMITH_BATCH_SIZE=4
    SLIDESMITH_CACHE_TTL=1800
    SLIDESMITH_BASE_DELAY=2.0
    SLIDESMITH_TIMEOUT=540
    SLIDESMITH_TEMPERATURE=1.0
    SLIDESMITH_MAX_TOKENS=65536
    SLIDESMITH_SEED=7
    SLIDESMITH_AGENCY_LOGO_WHITE=https://cdn.example.com/agency-white.png   # for dark units
    SLIDESMITH_AGENCY_LOGO_BLACK=https://cdn.example.com/agency-black.png   # for light units

GEMINI_API_KEY is read by GeminiOracle, not here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

from .errors import ConfigError

STAGES = ("direction", "design", "layout", "generate", "critique")

DEFAULT_PRIMARY_MODEL = "gemini-2.5-pro"
DEFAULT_FALLBACK_MODEL = "gemini-2.5-flash"


def default_stage_models() -> Dict[str, List[str]]:
    return {stage: [DEFAULT_PRIMARY_MODEL, DEFAULT_FALLBACK_MODEL] for stage in STAGES}


@dataclass
class PipelineConfig:
    enable_self_critique: bool = False
    stage_models: Dict[str, List[str]] = field(default_factory=default_stage_models)
    cache_ttl_seconds: float = 1800
    batch_size: int = 4
    base_delay_seconds: float = 2.0
    request_timeout_seconds: float = 540
    temperature: float = 1.0
    max_output_tokens: int = 65536
    seed: int = 7
    agency_logo_white_url: Optional[str] = None
    agency_logo_black_url: Optional[str] = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be >= 1, got {self.batch_size}")
        for stage in STAGES:
            if not self.stage_models.get(stage):
                raise ConfigError(f"No models configured for stage '{stage}'")

    def models_for(self, stage: str) -> List[str]:
        return list(self.stage_models[stage])

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None, dotenv: bool = True) -> "PipelineConfig":
        """Build a config from `env` (default: os.environ after load_dotenv())."""
        if env is None:
            if dotenv:
                load_dotenv()
            env = dict(os.environ)

        primary = env.get("GEMINI_MODEL", DEFAULT_PRIMARY_MODEL)
        fallback = env.get("GEMINI_FALLBACK_MODEL", DEFAULT_FALLBACK_MODEL)
        base = [m for m in (primary, fallback) if m]
        stage_models = {}
        for stage in STAGES:
            override = env.get(f"SLIDESMITH_MODELS_{stage.upper()}")
            if override is not None:
                stage_models[stage] = [m.strip() for m in override.split(",") if m.strip()]
            else:
                stage_models[stage] = list(dict.fromkeys(base))

        try:
            return cls(
                enable_self_critique=env.get("SLIDESMITH_SELF_CRITIQUE", "").lower() in ("1", "true", "yes", "on"),
                stage_models=stage_models,
                cache_ttl_seconds=float(env.get("SLIDESMITH_CACHE_TTL", 1800)),
                batch_size=int(env.get("SLIDESMITH_BATCH_SIZE", 4)),
                base_delay_seconds=float(env.get("SLIDESMITH_BASE_DELAY", 2.0)),
                request_timeout_seconds=float(env.get("SLIDESMITH_TIMEOUT", 540)),
                temperature=float(env.get("SLIDESMITH_TEMPERATURE", 1.0)),
                max_output_tokens=int(env.get("SLIDESMITH_MAX_TOKENS", 65536)),
                seed=int(env.get("SLIDESMITH_SEED", 7)),
                agency_logo_white_url=env.get("SLIDESMITH_AGENCY_LOGO_WHITE") or None,
                agency_logo_black_url=env.get("SLIDESMITH_AGENCY_LOGO_BLACK") or None,
            )
        except ValueError as e:
            raise ConfigError(f"Invalid SLIDESMITH_* value: {e}") from e
