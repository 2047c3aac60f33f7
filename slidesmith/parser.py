"""
Brief parser — reads a content brief into a ContentBrief.

Two input forms:

  JSON FILE:
    briefs/acme.json      ← ContentBrief fields (camelCase or snake_case)

  FOLDER:
    briefs/acme/
      brief.md            ← all sections in one file

SUPPORTED SECTIONS IN brief.md:
  ## Brand Name                → brand_name
  ## Industry                  → industry
  ## Audience                  → audience
  ## Personality / ## Keywords → personality (one per line, "- " optional)
  ## Goals                     → goals (one per line)
  ## Colors                    → palette ("primary: #6C5CE7" lines)
  ## Language                  → language ("ar", "he", "fa", "ur" imply rtl)
  ## Units                     → units ("content_type: Title" lines)
  ## Logo / ## Client Logo     → client_logo_url

With no ## Units section the standard 13-unit proposal plan is used.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Dict, List

from pydantic import ValidationError

from .errors import ConfigError
from .models import BrandPalette, ContentBrief, ContentSpec
from .pacing import default_unit_plan

RTL_LANGUAGES = {"ar", "he", "fa", "ur"}
PALETTE_KEYS = ("primary", "secondary", "accent", "background", "text", "style", "mood")


def _extract_section(text: str, *section_names: str) -> str:
    """Extract first non-empty line from any matching ## Section heading."""
    pattern = "|".join(re.escape(n) for n in section_names)
    in_section = False
    for line in text.splitlines():
        if re.match(rf"##\s*({pattern})\s*$", line.strip(), re.IGNORECASE):
            in_section = True
            continue
        if in_section:
            if line.startswith("#"):
                break
            stripped = line.strip()
            if stripped:
                return stripped
    return ""


def _extract_multiline_section(text: str, *section_names: str) -> str:
    """Extract all lines from any matching ## Section until the next ## heading."""
    pattern = "|".join(re.escape(n) for n in section_names)
    in_section = False
    collected: List[str] = []
    for line in text.splitlines():
        if re.match(rf"##\s*({pattern})\s*$", line.strip(), re.IGNORECASE):
            in_section = True
            continue
        if in_section:
            if re.match(r"^#{1,3}\s", line):
                break
            collected.append(line)
    return "\n".join(collected).strip()


def _list_items(block: str) -> List[str]:
    items = []
    for line in block.splitlines():
        stripped = line.strip().lstrip("-*• ").strip()
        if stripped:
            items.append(stripped)
    return items


def _key_values(block: str) -> List[tuple]:
    """`key: value` pairs from a section, in order."""
    pairs = []
    for item in _list_items(block):
        if ":" not in item:
            continue
        key, value = item.split(":", 1)
        pairs.append((key.strip(), value.strip()))
    return pairs


def parse_brief_markdown(text: str) -> ContentBrief:
    brand_name = _extract_section(text, "Brand Name", "Brand")
    if not brand_name:
        raise ConfigError("brief.md has no '## Brand Name' section")

    # ── Palette ───────────────────────────────────────────────────────────────
    palette: Dict[str, str] = {}
    for key, value in _key_values(_extract_multiline_section(text, "Colors", "Colours", "Palette")):
        key = key.lower()
        if key in PALETTE_KEYS and value:
            palette[key] = value

    # ── Units ─────────────────────────────────────────────────────────────────
    units = [
        ContentSpec(content_type=key, title=value)
        for key, value in _key_values(_extract_multiline_section(text, "Units", "Slides"))
        if key
    ]

    language = (_extract_section(text, "Language") or "en").lower()

    return ContentBrief(
        brand_name=brand_name,
        industry=_extract_section(text, "Industry"),
        audience=_extract_multiline_section(text, "Audience", "Target Audience").replace("\n", " ").strip(),
        personality=_list_items(_extract_multiline_section(text, "Personality", "Keywords")),
        goals=_list_items(_extract_multiline_section(text, "Goals", "Objectives")),
        palette=BrandPalette(**palette),
        units=units,
        language=language,
        direction="rtl" if language.split("-")[0] in RTL_LANGUAGES else "ltr",
        client_logo_url=_extract_section(text, "Client Logo", "Logo") or None,
    )


def parse_brief(path: str) -> ContentBrief:
    """
    Load a brief from a .json file or a folder containing brief.md.

    A brief without units gets the default 13-unit plan filled in.

    Raises:
        FileNotFoundError: path or brief.md missing.
        ConfigError: the brief cannot be parsed or validated.
    """
    root = Path(path)
    if not root.exists():
        raise FileNotFoundError(f"Brief not found: {path}")

    if root.is_dir():
        brief_file = root / "brief.md"
        if not brief_file.exists():
            raise FileNotFoundError(f"brief.md not found in {path}")
        brief = parse_brief_markdown(brief_file.read_text(encoding="utf-8"))
    else:
        try:
            brief = ContentBrief.model_validate(json.loads(root.read_text(encoding="utf-8")))
        except json.JSONDecodeError as e:
            raise ConfigError(f"{path} is not valid JSON: {e}") from e
        except ValidationError as e:
            raise ConfigError(f"{path} is not a valid brief: {e}") from e

    if not brief.units:
        brief = brief.model_copy(update={"units": default_unit_plan(brief)})
    return brief
