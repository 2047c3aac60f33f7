"""
critique.py — A/B self-critique for tension units.

For the content types the creative direction marks as tension points, the
pipeline generates a second candidate and asks Gemini to judge the two on
impact, typography, composition, whitespace and brand fit. A tie goes to the
Quality Scorer (A wins on equal scores); a judgment that cannot be obtained
keeps A.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import List

from . import json_repair
from .errors import UnparsableOutputError
from .models import DesignSystem, Unit, ValidationResult
from .oracle import InvokeOptions, Invocation, ModelClient

CRITERIA = ("impact", "typography", "composition", "whitespace", "brand fit")


@dataclass
class Verdict:
    winner: str   # "A" | "B" | "tie"
    reason: str = ""


SYSTEM_PROMPT = """\
You are a demanding design director reviewing two candidate versions of the
same slide (1920×1080, positioned-element JSON). Judge them on: """ + ", ".join(CRITERIA) + """.

Return JSON: {"winner": "A" | "B" | "tie", "reason": "one sentence"}. JSON only.
"""


def build_judgment_prompt(unit_a: Unit, unit_b: Unit, design_system: DesignSystem) -> str:
    def dump(unit: Unit) -> str:
        return json.dumps(unit.model_dump(by_alias=True, exclude={"fallback"}), ensure_ascii=False)

    return (
        f"Background {design_system.colors.background}, text {design_system.colors.text}, "
        f"accent {design_system.colors.accent}.\n\n"
        f"## Candidate A\n{dump(unit_a)}\n\n"
        f"## Candidate B\n{dump(unit_b)}\n"
    )


def parse_verdict(text: str) -> Verdict:
    raw = json_repair.parse(text)
    if not isinstance(raw, dict):
        raise UnparsableOutputError("Judgment is not a JSON object", str(text)[:200])
    winner = str(raw.get("winner", "")).strip().upper()
    if winner not in ("A", "B", "TIE"):
        raise UnparsableOutputError(f"Judgment has no valid winner: {raw.get('winner')!r}")
    return Verdict(winner="tie" if winner == "TIE" else winner, reason=str(raw.get("reason", "")))


def judge(
    client: ModelClient,
    unit_a: Unit,
    unit_b: Unit,
    design_system: DesignSystem,
    models: List[str],
    options: InvokeOptions,
) -> Invocation:
    """
    Raises:
        AllModelsExhaustedError: no model returned a usable verdict.
    """
    prompt = build_judgment_prompt(unit_a, unit_b, design_system)
    options = replace(options, system_instruction=SYSTEM_PROMPT, use_cache=False)
    return client.invoke_structured(prompt, models, options, validate=parse_verdict)


def choose(verdict: Verdict, result_a: ValidationResult, result_b: ValidationResult) -> str:
    """Resolve a verdict to "A" or "B"."""
    if verdict.winner in ("A", "B"):
        return verdict.winner
    return "B" if result_b.score > result_a.score else "A"
