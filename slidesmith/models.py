"""
models.py — Data model shared by every pipeline stage.

Model-facing structures are pydantic models with camelCase aliases: Gemini and
the downstream renderer speak camelCase JSON, Python code uses snake_case.
Brief and DesignSystem are frozen; stages derive new ones with model_copy().
Pipeline-internal records (issues, batch context) are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .errors import ValidationCriticalError

CANVAS_WIDTH = 1920
CANVAS_HEIGHT = 1080

ROLES = ("title", "subtitle", "body", "caption", "label", "decorative")
ELEMENT_TYPES = ("shape", "text", "image")
TEMPERATURES = ("cold", "neutral", "warm")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ── Brief ─────────────────────────────────────────────────────────────────────

class BrandPalette(FrozenModel):
    primary: str = "#6C5CE7"
    secondary: str = "#00CEC9"
    accent: str = "#FD79A8"
    background: Optional[str] = None
    text: Optional[str] = None
    style: Optional[str] = None
    mood: Optional[str] = None


class ContentSpec(FrozenModel):
    """One planned unit: what it is about and the data it must show."""
    content_type: str
    title: str = ""
    content: Dict[str, Any] = Field(default_factory=dict)
    image_url: Optional[str] = None


class ContentBrief(FrozenModel):
    brand_name: str
    industry: str = ""
    personality: List[str] = Field(default_factory=list)
    audience: str = ""
    goals: List[str] = Field(default_factory=list)
    palette: BrandPalette = Field(default_factory=BrandPalette)
    units: List[ContentSpec] = Field(default_factory=list)
    language: str = "en"
    direction: Literal["ltr", "rtl"] = "ltr"
    client_logo_url: Optional[str] = None

    def to_prompt_block(self) -> str:
        """Render the brief as a markdown block for model prompts."""
        lines = [
            f"# Brand: {self.brand_name}",
            f"**Industry:** {self.industry or 'n/a'}",
            f"**Audience:** {self.audience or 'n/a'}",
            f"**Personality:** {', '.join(self.personality) or 'n/a'}",
            f"**Language:** {self.language} ({self.direction})",
        ]
        if self.goals:
            lines.append("**Goals:**")
            lines.extend(f"- {g}" for g in self.goals)
        p = self.palette
        lines.append(f"**Brand colours:** primary {p.primary}, secondary {p.secondary}, accent {p.accent}")
        if p.style or p.mood:
            lines.append(f"**Style / mood:** {p.style or '-'} / {p.mood or '-'}")
        return "\n".join(lines)


# ── Stage 1: creative direction ───────────────────────────────────────────────

class CreativeDirection(CamelModel):
    visual_metaphor: str = Field(description="One concrete visual metaphor carried through every slide")
    tension: str = Field(default="", description="The visual tension the deck plays with, e.g. 'order vs. rupture'")
    one_rule: str = Field(default="", description="The single rule every slide obeys")
    color_story: str = Field(default="", description="How colour evolves across the deck")
    motif: str = Field(default="", description="A recurring graphic motif")
    typography_voice: str = Field(default="", description="How the type should feel")
    emotional_arc: str = Field(default="", description="Emotional journey from cover to closing")
    temperature_arc: List[str] = Field(default_factory=list, description="cold | neutral | warm, one per unit")
    tension_units: List[str] = Field(default_factory=list, description="Content types that get the boldest treatment")

    @field_validator("temperature_arc", mode="before")
    @classmethod
    def coerce_temperatures(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        out = []
        for item in value:
            item = str(item).strip().lower()
            out.append(item if item in TEMPERATURES else "neutral")
        return out


# ── Stage 2: design system ────────────────────────────────────────────────────

class DesignColors(FrozenModel):
    primary: str
    secondary: str
    accent: str
    background: str
    text: str
    card: str
    border: str
    gradient_start: str
    gradient_end: str
    muted: str
    highlight: str
    ambient_a: str
    ambient_b: str
    ambient_c: str


class DesignFonts(FrozenModel):
    heading: str = "Inter"
    body: str = "Inter"


class DesignTypography(FrozenModel):
    display_size: int = 104
    heading_size: int = 56
    subheading_size: int = 32
    body_size: int = 22
    caption_size: int = 15
    letter_spacing_tight: float = -3
    letter_spacing_wide: float = 5
    line_height_tight: float = 1.0
    line_height_relaxed: float = 1.5
    weight_pairs: List[List[int]] = Field(default_factory=lambda: [[800, 400]])


class DesignSpacing(FrozenModel):
    unit: int = 8
    card_padding: int = 40
    card_gap: int = 32
    safe_margin: int = 80


class DesignEffects(FrozenModel):
    corner_style: str = "soft"
    corner_radius: int = 16
    decorative_style: str = "geometric"
    shadow_style: str = "none"
    ambient_gradient: str = ""


class DesignMotif(FrozenModel):
    type: str = "diagonal-lines"
    opacity: float = 0.08
    color: str = "#FFFFFF"
    implementation: str = ""


class DesignSystem(FrozenModel):
    colors: DesignColors
    fonts: DesignFonts = Field(default_factory=DesignFonts)
    typography: DesignTypography = Field(default_factory=DesignTypography)
    spacing: DesignSpacing = Field(default_factory=DesignSpacing)
    effects: DesignEffects = Field(default_factory=DesignEffects)
    motif: DesignMotif = Field(default_factory=DesignMotif)
    direction: Literal["ltr", "rtl"] = "ltr"


# ── Stage 3: layout ───────────────────────────────────────────────────────────

class LayoutDirective(CamelModel):
    content_type: str
    technique: str
    description: str = ""
    constraints: List[str] = Field(default_factory=list)


# ── Units and elements ────────────────────────────────────────────────────────

def _coerce_weight(value: Any) -> Any:
    if isinstance(value, str):
        v = value.strip().lower()
        if v.isdigit():
            return int(v)
        return {"bold": 700, "bolder": 800, "normal": 400, "light": 300, "lighter": 200}.get(v, 400)
    return value


class ElementBase(CamelModel):
    id: str = ""
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    z_index: int = 1
    opacity: float = 1.0
    rotation: float = 0
    role: Optional[str] = None

    @property
    def area(self) -> float:
        return max(self.width, 0) * max(self.height, 0)

    @property
    def is_decorative(self) -> bool:
        return self.role == "decorative"


class ShapeElement(ElementBase):
    type: Literal["shape"] = "shape"
    shape_type: str = "rectangle"
    fill: str = "transparent"
    border_radius: float = 0
    clip_path: Optional[str] = None
    border: Optional[str] = None


class TextElement(ElementBase):
    type: Literal["text"] = "text"
    content: str = ""
    font_size: float = 22
    font_weight: int = 400
    color: str = "#FFFFFF"
    text_align: str = "left"
    line_height: float = 1.3
    letter_spacing: float = 0
    text_stroke: Optional[Union[str, Dict[str, Any]]] = None

    @field_validator("font_weight", mode="before")
    @classmethod
    def coerce_font_weight(cls, value: Any) -> Any:
        return _coerce_weight(value)


class ImageElement(ElementBase):
    type: Literal["image"] = "image"
    src: str = ""
    alt: str = ""
    object_fit: str = "cover"
    border_radius: float = 0
    clip_path: Optional[str] = None


Element = Annotated[Union[ShapeElement, TextElement, ImageElement], Field(discriminator="type")]


class Background(CamelModel):
    type: Literal["solid", "gradient", "image"] = "solid"
    value: str = "#0A0A12"


class Unit(CamelModel):
    id: str
    content_type: str
    label: str = ""
    background: Background = Field(default_factory=Background)
    elements: List[Element] = Field(default_factory=list)
    fallback: bool = False

    def texts(self) -> List[TextElement]:
        return [e for e in self.elements if isinstance(e, TextElement)]

    def titles(self) -> List[TextElement]:
        return [e for e in self.texts() if e.role == "title"]

    def has_image(self) -> bool:
        return any(isinstance(e, ImageElement) for e in self.elements)


# ── Validation results ────────────────────────────────────────────────────────

@dataclass
class Issue:
    severity: Literal["critical", "warning", "suggestion"]
    category: str
    message: str
    element_id: Optional[str] = None
    auto_fixable: bool = False


@dataclass
class ValidationResult:
    valid: bool
    score: int
    issues: List[Issue] = field(default_factory=list)

    def has_critical_fixable(self) -> bool:
        return any(i.severity == "critical" and i.auto_fixable for i in self.issues)

    def raise_for_critical(self) -> None:
        critical = [i for i in self.issues if i.severity == "critical"]
        if critical:
            raise ValidationCriticalError(
                f"{len(critical)} critical issue(s): " + "; ".join(i.message for i in critical)
            )


# ── Batch hand-off ────────────────────────────────────────────────────────────

@dataclass
class BatchContext:
    """State passed from one generation batch to the next."""
    prior_units_summary: List[str]
    unit_index: int
    total_units: int
    creative_direction: CreativeDirection


# ── Staged runs ───────────────────────────────────────────────────────────────

class Foundation(CamelModel):
    """Everything decided before generation: enough to run any batch later, in another process."""
    brief: ContentBrief
    plan: List[ContentSpec]
    creative_direction: CreativeDirection
    design_system: DesignSystem
    layouts: List[LayoutDirective]
    batches: List[List[ContentSpec]]
    started_at: float

    @property
    def total_units(self) -> int:
        return sum(len(batch) for batch in self.batches)


class BatchResult(CamelModel):
    """One batch's units plus the running summary the next batch is prompted with."""
    units: List[Unit]
    summary: List[str] = Field(default_factory=list)
    unit_index: int = 0


# ── Output ────────────────────────────────────────────────────────────────────

class ArtifactMetadata(CamelModel):
    quality_score: int
    created_at: str
    pipeline_version: str
    duration_seconds: float
    chosen_metaphor: str
    brand_name: str
    unit_count: int
    fallback_units: int = 0


class Artifact(CamelModel):
    id: str
    title: str
    design_system: DesignSystem
    units: List[Unit]
    metadata: ArtifactMetadata
