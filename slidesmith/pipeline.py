"""
pipeline.py — Six-stage slide deck pipeline.

  1. Creative direction   (one call, cached by brief)
  2. Design system        (one call, harmonized + frozen)
  3. Layout strategy      (one call, anti-repetition enforced)
  4. Content generation   (sequential batches threaded by a visual summary)
  5. Validation + fix     (Quality Scorer, Auto-Fixer on critical issues)
  6. Consistency          (title drift snapped to the deck median)
  +  Self-critique        (optional A/B on tension units)
  +  Logos                (agency mark on every unit, client logo on cover/bigIdea/closing)

run() is the one-call form. The same work is exposed in three steps for
callers that must split it across requests: foundation() covers stages 1-3,
run_batch() generates one batch from the summary the previous one returned,
and finalize() does stages 5-6, critique and logos. Foundation and
BatchResult are pydantic models, so both survive a JSON round trip between
requests.

Every stage that talks to Gemini has a deterministic fallback, so run()
always returns an Artifact; the quality score and `diagnostics` say how much
of it is degraded.
"""

from __future__ import annotations

import logging
import random
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from .autofix import fix
from .cache import TTLCache
from .config import PipelineConfig
from .consistency import normalize
from .critique import choose, judge
from .design_system import generate_design_system
from .diagnostics import Diagnostics
from .director import generate_direction
from .errors import AllModelsExhaustedError, ValidationCriticalError
from .fallback import fallback_creative_direction, fallback_design_system, fallback_for_spec
from .generator import generate_batch, split_batches, summarize_unit
from .layout import generate_layout, static_layout
from .logos import inject_agency_logo, inject_client_logo
from .models import (
    Artifact,
    ArtifactMetadata,
    BatchContext,
    BatchResult,
    ContentBrief,
    ContentSpec,
    CreativeDirection,
    DesignSystem,
    Foundation,
    LayoutDirective,
    Unit,
    ValidationResult,
)
from .oracle import InvokeOptions, ModelClient, Oracle
from .pacing import pacing_for, plan_for, temperature_for
from .scorer import score

logger = logging.getLogger(__name__)

PIPELINE_VERSION = "1.0.0"

ProgressCallback = Callable[[str], None]


class SlidePipeline:
    def __init__(
        self,
        oracle: Oracle,
        config: Optional[PipelineConfig] = None,
        cache: Optional[TTLCache] = None,
        sleep: Callable[[float], None] = time.sleep,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.config.validate()
        self.cache = cache if cache is not None else TTLCache(self.config.cache_ttl_seconds)
        self.client = ModelClient(oracle, self.cache, self.config.base_delay_seconds, sleep)
        self.progress = progress
        self.diagnostics = Diagnostics()

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _emit(self, message: str) -> None:
        logger.info(message)
        if self.progress is not None:
            self.progress(message)

    def _options(self, stage: str, use_cache: bool = True) -> InvokeOptions:
        return InvokeOptions(
            stage=stage,
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_output_tokens,
            timeout_seconds=self.config.request_timeout_seconds,
            use_cache=use_cache,
        )

    def _stage(self, name: str, call, fallback):
        """Run one model-backed step; on exhausted models record it and use `fallback()`."""
        started = time.monotonic()
        try:
            invocation = call()
        except AllModelsExhaustedError as e:
            self.diagnostics.record(name, "fallback", detail=str(e), elapsed=time.monotonic() - started)
            return fallback()
        self.diagnostics.record(
            name,
            "cached" if invocation.cached else "ok",
            model=invocation.model,
            elapsed=time.monotonic() - started,
        )
        return invocation.value

    def _score_and_fix(self, unit: Unit, design_system: DesignSystem, is_opening: bool) -> Tuple[Unit, ValidationResult]:
        pacing = pacing_for(unit.content_type)
        result = score(unit, design_system, pacing, is_opening)
        if result.has_critical_fixable():
            unit = fix(unit, result.issues, design_system)
            result = score(unit, design_system, pacing, is_opening)
            logger.debug(f"[validate] {unit.id} fixed → score {result.score}")
        try:
            result.raise_for_critical()
        except ValidationCriticalError as e:
            logger.warning(f"[validate] {unit.id} kept with penalty, score {result.score}: {e}")
        return unit, result

    # ── Stage 5 ───────────────────────────────────────────────────────────────

    def _validate(self, units: List[Unit], design_system: DesignSystem) -> Tuple[List[Unit], List[ValidationResult]]:
        checked, results = [], []
        for i, unit in enumerate(units):
            unit, result = self._score_and_fix(unit, design_system, is_opening=(i == 0))
            checked.append(unit)
            results.append(result)
        return checked, results

    # ── Self-critique ─────────────────────────────────────────────────────────

    def _self_critique(
        self,
        units: List[Unit],
        results: List[ValidationResult],
        plan: List[ContentSpec],
        design_system: DesignSystem,
        direction: CreativeDirection,
        layouts: List[LayoutDirective],
    ) -> Tuple[List[Unit], List[ValidationResult]]:
        units, results = list(units), list(results)
        rng = random.Random(f"{self.config.seed}-critique")
        summary = [summarize_unit(u, i) for i, u in enumerate(units)]

        for i, unit in enumerate(units):
            if i >= len(plan) or unit.content_type not in direction.tension_units:
                continue
            stage = f"critique[{unit.content_type}]"
            started = time.monotonic()
            context = BatchContext(
                prior_units_summary=summary[:i],
                unit_index=i,
                total_units=len(units),
                creative_direction=direction,
            )
            try:
                candidate = generate_batch(
                    self.client, [plan[i]], design_system, context, [layouts[i]],
                    self.config.models_for("generate"), self._options("generate", use_cache=False), rng,
                ).value[0]
            except AllModelsExhaustedError as e:
                self.diagnostics.record(stage, "fallback", detail=f"no candidate B, kept A: {e}",
                                        elapsed=time.monotonic() - started)
                continue
            if candidate.fallback:
                self.diagnostics.record(stage, "fallback", detail="candidate B unusable, kept A",
                                        elapsed=time.monotonic() - started)
                continue

            candidate, candidate_result = self._score_and_fix(
                candidate.model_copy(update={"id": unit.id}), design_system, is_opening=(i == 0),
            )
            try:
                invocation = judge(
                    self.client, unit, candidate, design_system,
                    self.config.models_for("critique"), self._options("critique", use_cache=False),
                )
            except AllModelsExhaustedError as e:
                self.diagnostics.record(stage, "fallback", detail=f"no judgment, kept A: {e}",
                                        elapsed=time.monotonic() - started)
                continue

            verdict = invocation.value
            winner = choose(verdict, results[i], candidate_result)
            if winner == "B":
                units[i], results[i] = candidate, candidate_result
            self.diagnostics.record(
                stage, "ok", model=invocation.model,
                detail=f"verdict {verdict.winner}, kept {winner}: {verdict.reason}",
                elapsed=time.monotonic() - started,
            )

        return units, results

    # ── Public API ────────────────────────────────────────────────────────────

    def run(self, brief: ContentBrief) -> Artifact:
        """Build the full deck for `brief`. Never raises for model failures."""
        foundation = self.foundation(brief)
        units: List[Unit] = []
        previous: Optional[BatchResult] = None
        for index in range(len(foundation.batches)):
            previous = self.run_batch(foundation, index, previous)
            units.extend(previous.units)
        return self.finalize(foundation, units)

    def foundation(self, brief: ContentBrief) -> Foundation:
        """Stages 1-3 and the batch split. Starts a fresh diagnostics record."""
        self.diagnostics = Diagnostics()
        plan = plan_for(brief)
        self._emit(f"Planning {len(plan)} units for {brief.brand_name}")

        direction = self._stage(
            "direction",
            lambda: generate_direction(self.client, brief, plan, self.config.models_for("direction"),
                                       self._options("direction")),
            lambda: fallback_creative_direction(brief, plan),
        )
        self._emit(f"Creative direction: {direction.visual_metaphor}")

        design_system = self._stage(
            "design",
            lambda: generate_design_system(self.client, brief, direction, self.config.models_for("design"),
                                           self._options("design")),
            lambda: fallback_design_system(brief),
        )
        self._emit(f"Design system: background {design_system.colors.background}, "
                   f"text {design_system.colors.text}, accent {design_system.colors.accent}")

        layouts = self._stage(
            "layout",
            lambda: generate_layout(self.client, direction, plan, self.config.models_for("layout"),
                                    self._options("layout")),
            lambda: static_layout(plan),
        )
        self._emit("Layout: " + ", ".join(d.technique for d in layouts))

        return Foundation(
            brief=brief,
            plan=plan,
            creative_direction=direction,
            design_system=design_system,
            layouts=layouts,
            batches=split_batches(plan, self.config.batch_size),
            started_at=time.time(),
        )

    def run_batch(self, foundation: Foundation, index: int, previous: Optional[BatchResult] = None) -> BatchResult:
        """
        Stage 4 for batch `index`, prompted with the summary carried by `previous`.

        Batches must run in order: `previous` is the result of batch index-1
        (None for the first). A batch every model fails on becomes fallback units.

        Raises:
            IndexError: the foundation has no batch `index`.
        """
        batches = foundation.batches
        if not 0 <= index < len(batches):
            raise IndexError(f"Invalid batch index {index} (foundation has {len(batches)} batches)")

        specs = batches[index]
        start = previous.unit_index if previous is not None else 0
        summary = list(previous.summary) if previous is not None else []
        design_system = foundation.design_system
        context = BatchContext(
            prior_units_summary=list(summary),
            unit_index=start,
            total_units=foundation.total_units,
            creative_direction=foundation.creative_direction,
        )
        layouts = list(foundation.layouts[start:start + len(specs)])
        rng = random.Random(f"{self.config.seed}-batch-{index}")
        self._emit(f"Generating batch {index + 1}/{len(batches)} ({len(specs)} units)")

        units = self._stage(
            f"generate[{index + 1}/{len(batches)}]",
            lambda: generate_batch(
                self.client, specs, design_system, context, layouts,
                self.config.models_for("generate"), self._options("generate"), rng,
            ),
            lambda: [fallback_for_spec(spec, design_system, start + i) for i, spec in enumerate(specs)],
        )
        summary.extend(summarize_unit(unit, start + offset) for offset, unit in enumerate(units))
        return BatchResult(units=units, summary=summary, unit_index=start + len(specs))

    def finalize(self, foundation: Foundation, units: List[Unit]) -> Artifact:
        """
        Stages 5-6, optional self-critique and logos, then the Artifact.

        Raises:
            ValueError: `units` is empty.
        """
        if not units:
            raise ValueError("No units to finalize")

        brief = foundation.brief
        design_system = foundation.design_system
        direction = foundation.creative_direction

        units, results = self._validate(units, design_system)
        self._emit(f"Validated {len(units)} units")

        units = normalize(units)
        self._emit("Consistency pass done")

        if self.config.enable_self_critique:
            units, results = self._self_critique(
                units, results, foundation.plan, design_system, direction, foundation.layouts,
            )
            self._emit("Self-critique done")

        units = inject_agency_logo(units, self.config.agency_logo_white_url, self.config.agency_logo_black_url)
        units = inject_client_logo(units, brief.client_logo_url, brief.brand_name)

        quality = round(sum(r.score for r in results) / len(results))
        fallback_units = sum(1 for u in units if u.fallback)
        duration = max(time.time() - foundation.started_at, 0.0)
        self._emit(f"Done: {len(units)} units, quality {quality}/100, {duration:.1f}s")

        return Artifact(
            id=f"deck-{uuid.uuid4().hex[:12]}",
            title=f"{brief.brand_name} Proposal",
            design_system=design_system,
            units=units,
            metadata=ArtifactMetadata(
                quality_score=quality,
                created_at=datetime.now(timezone.utc).isoformat(),
                pipeline_version=PIPELINE_VERSION,
                duration_seconds=round(duration, 2),
                chosen_metaphor=direction.visual_metaphor,
                brand_name=brief.brand_name,
                unit_count=len(units),
                fallback_units=fallback_units,
            ),
        )

    def regenerate_unit(
        self,
        design_system: DesignSystem,
        content_spec: ContentSpec,
        creative_direction: Optional[CreativeDirection] = None,
        layout: Optional[LayoutDirective] = None,
        instruction: Optional[str] = None,
        index: int = 0,
    ) -> Unit:
        """Re-run generation + validation for one unit. Failure yields the fallback unit."""
        direction = creative_direction or CreativeDirection(
            visual_metaphor="Stay consistent with the existing deck",
            temperature_arc=[temperature_for(content_spec.content_type)],
        )
        layout = layout or static_layout([content_spec])[0]
        context = BatchContext(
            prior_units_summary=[],
            unit_index=index,
            total_units=max(index + 1, len(direction.temperature_arc)),
            creative_direction=direction,
        )
        unit = self._stage(
            f"regenerate[{content_spec.content_type}]",
            lambda: generate_batch(
                self.client, [content_spec], design_system, context, [layout],
                self.config.models_for("generate"), self._options("generate", use_cache=False),
                random.Random(f"{self.config.seed}-unit-{index}"), instruction=instruction,
            ),
            lambda: [fallback_for_spec(content_spec, design_system, index)],
        )[0]
        unit, result = self._score_and_fix(unit, design_system, is_opening=(index == 0))
        self._emit(f"Regenerated {unit.id} ({content_spec.content_type}): score {result.score}")
        return unit
