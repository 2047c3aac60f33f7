"""
oracle.py — Gemini access and the model invocation client.

The generative model is treated as an opaque, untrusted text oracle:

  Oracle.generate(prompt, OracleConfig) → str

GeminiOracle wraps google-genai; NullOracle always fails (offline runs and
tests of the degraded path). ModelClient layers on top of any oracle:

  - an ordered model list per stage (primary → fallback), with a growing pause
    between models (attempt × base_delay)
  - optional structured validation of every response (repair parse + schema);
    an unparsable answer counts as a failed attempt
  - a TTL cache keyed by SHA-256(stage, canonical inputs), consulted first and
    written only after a response validated
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from google import genai
from google.genai import types

from .cache import TTLCache, cache_key
from .errors import AllModelsExhaustedError, ConfigError, OracleError, UnparsableOutputError

logger = logging.getLogger(__name__)

THROTTLE_MARKERS = ("429", "RESOURCE_EXHAUSTED", "quota", "rateLimitExceeded", "503", "overloaded")


# ── Oracle collaborator ───────────────────────────────────────────────────────

@dataclass
class OracleConfig:
    """Per-call settings handed to the oracle."""
    model: str
    stage: str = ""
    system_instruction: Optional[str] = None
    temperature: float = 1.0
    max_output_tokens: int = 65536
    json_mode: bool = True
    timeout_seconds: float = 540.0


class Oracle:
    """Anything that turns a prompt into text. Implementations raise OracleError."""

    def generate(self, prompt: str, config: OracleConfig) -> str:
        raise NotImplementedError


class GeminiOracle(Oracle):
    def __init__(self, api_key: Optional[str] = None, client: Optional[genai.Client] = None) -> None:
        if client is None:
            api_key = api_key or os.environ.get("GEMINI_API_KEY")
            if not api_key:
                raise ConfigError("GEMINI_API_KEY is not set. Add it to .env or the environment.")
            client = genai.Client(api_key=api_key)
        self._client = client

    def generate(self, prompt: str, config: OracleConfig) -> str:
        try:
            response = self._client.models.generate_content(
                model=config.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=config.system_instruction,
                    response_mime_type="application/json" if config.json_mode else None,
                    temperature=config.temperature,
                    max_output_tokens=config.max_output_tokens,
                    http_options=types.HttpOptions(timeout=int(config.timeout_seconds * 1000)),
                ),
            )
        except Exception as e:
            err = str(e)
            throttled = any(k in err for k in THROTTLE_MARKERS)
            raise OracleError(f"{config.model}: {err}", model=config.model, throttled=throttled) from e

        text = response.text or ""
        if not text.strip():
            raise OracleError(f"{config.model} returned no content", model=config.model)
        return text


class NullOracle(Oracle):
    """Oracle for offline runs: every call fails, so every stage falls back."""

    def generate(self, prompt: str, config: OracleConfig) -> str:
        raise OracleError("offline mode: no model available", model=config.model)


# ── Model invocation client ───────────────────────────────────────────────────

@dataclass
class InvokeOptions:
    stage: str
    cache_inputs: Any = None          # canonical identity of the request; defaults to the prompt
    system_instruction: Optional[str] = None
    temperature: float = 1.0
    max_output_tokens: int = 65536
    json_mode: bool = True
    timeout_seconds: float = 540.0
    use_cache: bool = True


@dataclass
class Invocation:
    value: Any
    text: str
    model: str
    cached: bool = False
    attempts: List[str] = field(default_factory=list)


class ModelClient:
    def __init__(
        self,
        oracle: Oracle,
        cache: Optional[TTLCache] = None,
        base_delay_seconds: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.oracle = oracle
        self.cache = cache
        self.base_delay_seconds = base_delay_seconds
        self._sleep = sleep

    def invoke(self, prompt: str, models: List[str], options: InvokeOptions) -> str:
        """Return raw text from the first model that answers."""
        return self.invoke_structured(prompt, models, options).text

    def invoke_structured(
        self,
        prompt: str,
        models: List[str],
        options: InvokeOptions,
        validate: Optional[Callable[[str], Any]] = None,
    ) -> Invocation:
        """
        Walk `models` in order until one returns text that `validate` accepts.

        `validate` turns raw text into a value and raises UnparsableOutputError
        when it cannot; that counts as a failed attempt like an oracle error.

        Raises:
            ConfigError: `models` is empty.
            AllModelsExhaustedError: every model failed.
        """
        stage = options.stage
        if not models:
            raise ConfigError(f"No models configured for stage '{stage}'")

        key = None
        if self.cache is not None and options.use_cache:
            inputs = options.cache_inputs if options.cache_inputs is not None else prompt
            key = cache_key(stage, {"inputs": inputs, "system": options.system_instruction})
            cached_text = self.cache.get(key)
            if cached_text is not None:
                logger.info(f"[{stage}] cache hit")
                value = validate(cached_text) if validate is not None else cached_text
                return Invocation(value=value, text=cached_text, model="cache", cached=True)

        attempts: List[str] = []
        last_error: Optional[Exception] = None

        for attempt, model in enumerate(models):
            if attempt > 0:
                delay = attempt * self.base_delay_seconds
                logger.info(f"[{stage}] trying {model} in {delay:.1f}s")
                self._sleep(delay)

            attempts.append(model)
            config = OracleConfig(
                model=model,
                stage=stage,
                system_instruction=options.system_instruction,
                temperature=options.temperature,
                max_output_tokens=options.max_output_tokens,
                json_mode=options.json_mode,
                timeout_seconds=options.timeout_seconds,
            )
            started = time.monotonic()
            try:
                text = self.oracle.generate(prompt, config)
                value = validate(text) if validate is not None else text
            except (OracleError, UnparsableOutputError) as e:
                last_error = e
                logger.warning(f"[{stage}] {model} failed ({type(e).__name__}): {e}")
                continue

            logger.info(f"[{stage}] {model} answered in {time.monotonic() - started:.1f}s")
            if key is not None:
                self.cache.set(key, text)
            return Invocation(value=value, text=text, model=model, cached=False, attempts=attempts)

        raise AllModelsExhaustedError(stage, attempts, last_error)
