"""
Slidesmith — Main Pipeline

Usage:
  python -m slidesmith.main --brief briefs/acme
  python -m slidesmith.main --brief briefs/acme.json --critique
  python -m slidesmith.main --brief briefs/acme --offline        # fallback deck, no API calls
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

from .config import PipelineConfig
from .diagnostics import Diagnostics
from .director import display_direction
from .errors import ConfigError
from .models import Artifact, BatchResult, Unit
from .oracle import GeminiOracle, NullOracle, Oracle
from .parser import parse_brief
from .pipeline import SlidePipeline

console = Console()

OUTPUTS_ROOT = Path("outputs")


# ── CLI ───────────────────────────────────────────────────────────────────────

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Slidesmith — AI slide deck generator"
    )
    parser.add_argument(
        "--brief",
        required=True,
        help="Path to a brief .json file or a directory containing brief.md",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Output directory (default: outputs/<timestamp>)",
    )
    parser.add_argument(
        "--critique",
        action="store_true",
        help="Enable A/B self-critique on tension units (extra model calls)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Never call Gemini; every stage uses its fallback",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Units per generation call (default: SLIDESMITH_BATCH_SIZE or 4)",
    )
    return parser.parse_args(argv)


# ── Output helpers ────────────────────────────────────────────────────────────

def save_artifact(artifact: Artifact, output_dir: Path) -> Path:
    """Write the renderer contract: camelCase artifact JSON."""
    path = output_dir / "artifact.json"
    path.write_text(
        json.dumps(artifact.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    return path


def save_diagnostics(diagnostics: Diagnostics, output_dir: Path) -> Path:
    path = output_dir / "diagnostics.json"
    path.write_text(json.dumps(diagnostics.to_dict(), indent=2), encoding="utf-8")
    return path


def display_summary(artifact: Artifact, diagnostics: Diagnostics) -> None:
    table = Table(title="Stages", show_lines=False)
    table.add_column("Stage", style="bold")
    table.add_column("Status")
    table.add_column("Model", style="dim")
    table.add_column("Time", justify="right")
    colors = {"ok": "green", "cached": "cyan", "fallback": "yellow"}
    for event in diagnostics.events:
        color = colors.get(event.status, "white")
        table.add_row(event.stage, f"[{color}]{event.status}[/{color}]", event.model or "—", f"{event.elapsed:.1f}s")
    console.print(table)

    meta = artifact.metadata
    console.print(
        Panel(
            f"[bold]{meta.unit_count}[/bold] unit(s), quality [bold]{meta.quality_score}/100[/bold]\n"
            f"Metaphor: {meta.chosen_metaphor}\n"
            f"Fallback units: {meta.fallback_units}",
            title=f"[bold]{artifact.title}[/bold]",
            border_style="yellow" if diagnostics.degraded else "green",
        )
    )


def build_oracle(offline: bool) -> Oracle:
    if offline:
        return NullOracle()
    return GeminiOracle()


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    logging.basicConfig(
        format="%(asctime)s — %(levelname)s — %(name)s — %(message)s",
        level=os.environ.get("LOG_LEVEL", "WARNING").upper(),
    )
    args = parse_args(argv)
    pipeline_start = time.time()

    try:
        config = PipelineConfig.from_env(dotenv=False)
        if args.critique:
            config.enable_self_critique = True
        if args.batch_size is not None:
            config.batch_size = args.batch_size
        config.validate()
        oracle = build_oracle(args.offline)
        brief = parse_brief(args.brief)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    # Set up output directory
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = Path(args.output) if args.output else OUTPUTS_ROOT / timestamp
    output_dir.mkdir(parents=True, exist_ok=True)

    console.print(Rule("[bold magenta]Slidesmith[/bold magenta]"))
    console.print(
        f"  Brand: [bold]{brief.brand_name}[/bold]  |  "
        f"Units: [bold]{len(brief.units)}[/bold]  |  "
        f"Output: [bold]{output_dir}[/bold]"
        + ("  |  [yellow]offline[/yellow]" if args.offline else "")
    )

    pipeline = SlidePipeline(
        oracle,
        config,
        progress=lambda msg: console.print(f"  [green]✓[/green] {msg}"),
    )

    # Phase 1: direction, design system, layout
    foundation = pipeline.foundation(brief)
    display_direction(foundation.creative_direction)

    # Phase 2: batches, each prompted with the summary of the ones before it
    units: List[Unit] = []
    previous: Optional[BatchResult] = None
    for index in range(len(foundation.batches)):
        previous = pipeline.run_batch(foundation, index, previous)
        units.extend(previous.units)

    # Phase 3: validation, consistency, critique, logos
    artifact = pipeline.finalize(foundation, units)

    artifact_path = save_artifact(artifact, output_dir)
    diagnostics_path = save_diagnostics(pipeline.diagnostics, output_dir)

    display_summary(artifact, pipeline.diagnostics)
    console.print(
        f"\n  [dim]Saved: {artifact_path}  |  {diagnostics_path}  "
        f"({time.time() - pipeline_start:.0f}s)[/dim]"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
