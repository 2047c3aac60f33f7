"""
errors.py — Exception taxonomy for the slide pipeline.

Stages never let these escape to the caller: each stage catches
AllModelsExhaustedError (which wraps the oracle / parse failures of every
model it tried) and substitutes its deterministic fallback. Only ConfigError
reaches the caller, and it is raised at construction time.
"""

from __future__ import annotations

from typing import List, Optional


class SlidesmithError(Exception):
    """Base class for every error raised by slidesmith."""


class ConfigError(SlidesmithError):
    """Missing API key, empty model list, or another setup mistake."""


class OracleError(SlidesmithError):
    """Network failure, timeout, throttling, or empty response from the model."""

    def __init__(self, message: str, model: str = "", throttled: bool = False) -> None:
        super().__init__(message)
        self.model = model
        self.throttled = throttled


class UnparsableOutputError(SlidesmithError):
    """Model text could not be repaired into JSON (or did not match its schema)."""

    def __init__(self, message: str, snippet: str = "") -> None:
        super().__init__(message)
        self.snippet = snippet


class AllModelsExhaustedError(SlidesmithError):
    """Every model in a stage's fallback list failed."""

    def __init__(
        self,
        stage: str,
        attempts: List[str],
        last_error: Optional[Exception] = None,
    ) -> None:
        tried = ", ".join(attempts) or "none"
        super().__init__(
            f"All models failed for stage '{stage}' (tried: {tried}). "
            f"Last error: {last_error}"
        )
        self.stage = stage
        self.attempts = attempts
        self.last_error = last_error


class ValidationCriticalError(SlidesmithError):
    """A unit still has critical issues after auto-fix.

    Never raised across the pipeline boundary: the pipeline keeps the unit and
    the score penalty instead. Available to callers that validate units on
    their own and want strict behaviour.
    """
