"""
diagnostics.py — Structured record of what happened in a pipeline run.

The pipeline never raises for model trouble; it degrades instead. Diagnostics
is where the degradation is written down (one StageEvent per stage or batch)
so callers can show or persist it. Control flow never reads it.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

STATUSES = ("ok", "cached", "fallback")


@dataclass
class StageEvent:
    stage: str
    status: str                 # ok / cached / fallback
    model: Optional[str] = None
    detail: str = ""
    elapsed: float = 0.0


@dataclass
class Diagnostics:
    events: List[StageEvent] = field(default_factory=list)

    def record(
        self,
        stage: str,
        status: str,
        model: Optional[str] = None,
        detail: str = "",
        elapsed: float = 0.0,
    ) -> StageEvent:
        if status not in STATUSES:
            raise ValueError(f"Unknown stage status {status!r}; expected one of {STATUSES}")
        event = StageEvent(stage=stage, status=status, model=model, detail=detail, elapsed=round(elapsed, 3))
        self.events.append(event)
        if status == "fallback":
            logger.warning(f"[{stage}] fallback: {detail}")
        else:
            logger.info(f"[{stage}] {status}" + (f" via {model}" if model else "") + f" ({elapsed:.1f}s)")
        return event

    def fallbacks(self) -> List[StageEvent]:
        return [e for e in self.events if e.status == "fallback"]

    @property
    def degraded(self) -> bool:
        return bool(self.fallbacks())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "degraded": self.degraded,
            "events": [asdict(e) for e in self.events],
        }
