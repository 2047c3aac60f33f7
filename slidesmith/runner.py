"""
runner.py — Runs the slide pipeline from async code.

SlidePipeline is synchronous; PipelineRunner executes it in a worker thread so
an event loop (bot, web handler) stays responsive, and enforces the caller's
timeout. A timed-out run is abandoned: the caller gets success=False and no
partial units, while the worker thread finishes in the background.

One runner keeps one TTL cache, so repeated runs of the same brief within the
TTL skip the stages whose inputs did not change.
"""

from __future__ import annotations

import asyncio
import logging
import time
import traceback
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Optional

from .cache import TTLCache
from .config import PipelineConfig
from .diagnostics import Diagnostics
from .models import Artifact, ContentBrief
from .oracle import GeminiOracle, Oracle
from .pipeline import SlidePipeline

logger = logging.getLogger(__name__)


# ── Result model ──────────────────────────────────────────────────────────────

@dataclass
class PipelineResult:
    """Output from one runner call."""
    success: bool
    artifact: Optional[Artifact] = None
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    error: str = ""
    elapsed_seconds: float = 0.0


# ── Progress callback type ────────────────────────────────────────────────────

ProgressCallback = Callable[[str], None]   # sync, called from worker thread


# ── Runner ────────────────────────────────────────────────────────────────────

class PipelineRunner:
    """Runs the full slide pipeline programmatically (non-CLI)."""

    def __init__(
        self,
        oracle: Optional[Oracle] = None,
        config: Optional[PipelineConfig] = None,
        cache: Optional[TTLCache] = None,
        api_key: Optional[str] = None,
        max_workers: int = 2,
    ) -> None:
        self.config = config or PipelineConfig.from_env()
        self.oracle = oracle or GeminiOracle(api_key)
        self.cache = cache if cache is not None else TTLCache(self.config.cache_ttl_seconds)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="slidesmith")

    async def run(
        self,
        brief: ContentBrief,
        timeout: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> PipelineResult:
        start = time.time()
        pipeline = SlidePipeline(
            self.oracle,
            self.config,
            cache=self.cache,
            progress=lambda msg: self._progress(on_progress, msg),
        )
        loop = asyncio.get_event_loop()
        future = loop.run_in_executor(self._executor, pipeline.run, brief)

        try:
            artifact = await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Pipeline run for {brief.brand_name} abandoned after {timeout}s")
            return PipelineResult(
                success=False,
                diagnostics=Diagnostics(events=list(pipeline.diagnostics.events)),
                error=f"Timed out after {timeout}s",
                elapsed_seconds=time.time() - start,
            )
        except Exception as e:
            logger.exception(f"Pipeline run for {brief.brand_name} failed")
            return PipelineResult(
                success=False,
                diagnostics=pipeline.diagnostics,
                error=f"{e}\n\n{traceback.format_exc()}",
                elapsed_seconds=time.time() - start,
            )

        return PipelineResult(
            success=True,
            artifact=artifact,
            diagnostics=pipeline.diagnostics,
            elapsed_seconds=time.time() - start,
        )

    def close(self) -> None:
        """Release worker threads without waiting for abandoned runs."""
        self._executor.shutdown(wait=False)

    def _progress(self, cb: Optional[ProgressCallback], msg: str) -> None:
        if cb:
            try:
                cb(msg)
            except Exception:
                logger.debug("progress callback failed", exc_info=True)
