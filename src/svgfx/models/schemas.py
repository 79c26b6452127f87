"""
Pydantic Models and Schemas
===========================

Data models for scene documents (the laid-out box tree handed over by the
layout engine), render options and render results.
Value types are frozen so they compare and hash by value.
"""

from typing import Optional, List, Dict, Any, Tuple
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from svgfx.core.scene.css_values import parse_css_color, parse_length, parse_shadow_list


# Enums
class BackgroundRepeat(str, Enum):
    """Background tiling modes."""

    REPEAT = "repeat"
    REPEAT_X = "repeat-x"
    REPEAT_Y = "repeat-y"
    NO_REPEAT = "no-repeat"


class BorderStyle(str, Enum):
    """Supported border styles."""

    NONE = "none"
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"
    DOUBLE = "double"


class FilterName(str, Enum):
    """CSS filter functions understood by the vector export."""

    BLUR = "blur"
    DROP_SHADOW = "drop-shadow"
    OPACITY = "opacity"
    GRAYSCALE = "grayscale"
    BRIGHTNESS = "brightness"


# Value Models
class ValueModel(BaseModel):
    """Base model for immutable, hashable value types."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Color(ValueModel):
    """RGBA color with byte channels."""

    r: int = Field(0, ge=0, le=255)
    g: int = Field(0, ge=0, le=255)
    b: int = Field(0, ge=0, le=255)
    a: int = Field(255, ge=0, le=255)

    @model_validator(mode="before")
    @classmethod
    def parse_css(cls, data: Any) -> Any:
        """Accept CSS color strings and (r, g, b[, a]) sequences."""
        if isinstance(data, str):
            r, g, b, a = parse_css_color(data)
            return {"r": r, "g": g, "b": b, "a": a}
        if isinstance(data, (list, tuple)):
            if len(data) not in (3, 4):
                raise ValueError("Color sequences need 3 or 4 channels")
            keys = ("r", "g", "b", "a")
            return dict(zip(keys, data))
        return data

    @property
    def alpha(self) -> float:
        """Alpha channel as a fraction."""
        return self.a / 255.0

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    def to_rgb(self) -> str:
        return f"rgb({self.r},{self.g},{self.b})"


BLACK = Color(r=0, g=0, b=0, a=255)


class Position(ValueModel):
    """Absolute box geometry in CSS pixels."""

    x: float = 0.0
    y: float = 0.0
    width: float = Field(0.0, ge=0)
    height: float = Field(0.0, ge=0)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def intersect(self, other: "Position") -> "Position":
        """Return the overlapping area, empty when the boxes are disjoint."""
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        return Position(
            x=left, y=top, width=max(0.0, right - left), height=max(0.0, bottom - top)
        )


class BorderRadii(ValueModel):
    """Per-corner elliptical border radii."""

    top_left_x: float = Field(0.0, ge=0)
    top_left_y: float = Field(0.0, ge=0)
    top_right_x: float = Field(0.0, ge=0)
    top_right_y: float = Field(0.0, ge=0)
    bottom_right_x: float = Field(0.0, ge=0)
    bottom_right_y: float = Field(0.0, ge=0)
    bottom_left_x: float = Field(0.0, ge=0)
    bottom_left_y: float = Field(0.0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def parse_uniform(cls, data: Any) -> Any:
        """Accept a single number for uniformly rounded corners."""
        if isinstance(data, (int, float, str)):
            radius = parse_length(data)
            return {
                name: radius
                for name in (
                    "top_left_x",
                    "top_left_y",
                    "top_right_x",
                    "top_right_y",
                    "bottom_right_x",
                    "bottom_right_y",
                    "bottom_left_x",
                    "bottom_left_y",
                )
            }
        return data

    def is_zero(self) -> bool:
        return not any(
            (
                self.top_left_x,
                self.top_left_y,
                self.top_right_x,
                self.top_right_y,
                self.bottom_right_x,
                self.bottom_right_y,
                self.bottom_left_x,
                self.bottom_left_y,
            )
        )

    def adjusted(self, delta: float) -> "BorderRadii":
        """Grow (or shrink, for negative delta) every radius, clamping at zero."""
        return BorderRadii(
            **{name: max(0.0, value + delta) for name, value in self.model_dump().items()}
        )


class Shadow(ValueModel):
    """A single box-shadow or text-shadow entry."""

    color: Color = BLACK
    x: float = 0.0
    y: float = 0.0
    blur: float = Field(0.0, ge=0)
    spread: float = 0.0
    inset: bool = False


def _coerce_shadows(value: Any) -> Any:
    if isinstance(value, str):
        return parse_shadow_list(value)
    return value


class ColorStop(ValueModel):
    """Gradient color stop; a missing offset is interpolated."""

    color: Color
    offset: Optional[float] = None


class BackgroundLayer(ValueModel):
    """Geometry of one background layer."""

    border_box: Position
    clip_box: Position
    origin_box: Position
    border_radius: BorderRadii = BorderRadii()
    repeat: BackgroundRepeat = BackgroundRepeat.NO_REPEAT

    @model_validator(mode="before")
    @classmethod
    def default_boxes(cls, data: Any) -> Any:
        """Clip and origin boxes default to the border box."""
        if isinstance(data, dict) and "border_box" in data:
            data = dict(data)
            if data.get("clip_box") is None:
                data["clip_box"] = data["border_box"]
            if data.get("origin_box") is None:
                data["origin_box"] = data["border_box"]
        return data


class LinearGradient(ValueModel):
    """Linear gradient resolved to absolute start/end points."""

    start_x: float
    start_y: float
    end_x: float
    end_y: float
    stops: Tuple[ColorStop, ...]
    repeating: bool = False


class RadialGradient(ValueModel):
    """Elliptical radial gradient."""

    center_x: float
    center_y: float
    radius_x: float = Field(..., ge=0)
    radius_y: float = Field(..., ge=0)
    stops: Tuple[ColorStop, ...]
    repeating: bool = False


class ConicGradient(ValueModel):
    """Conic gradient; angle in degrees clockwise from 12 o'clock."""

    center_x: float
    center_y: float
    angle: float = 0.0
    stops: Tuple[ColorStop, ...]


class FilterFunction(ValueModel):
    """One function of a CSS filter chain."""

    name: FilterName
    amount: float = 0.0
    shadow: Optional[Shadow] = None


# Scene Models
class Background(BaseModel):
    """One background layer with its paint source."""

    layer: BackgroundLayer
    color: Optional[Color] = None
    image_url: Optional[str] = Field(None, alias="imageUrl")
    linear: Optional[LinearGradient] = None
    radial: Optional[RadialGradient] = None
    conic: Optional[ConicGradient] = None

    model_config = ConfigDict(populate_by_name=True)


class Border(BaseModel):
    """Uniform border."""

    width: float = Field(0.0, ge=0)
    color: Color = BLACK
    style: BorderStyle = BorderStyle.SOLID


class TextRun(BaseModel):
    """A positioned, already shaped run of text."""

    text: str
    position: Position
    font_size: float = Field(16.0, gt=0, alias="fontSize")
    font_family: str = Field("sans-serif", alias="fontFamily")
    weight: int = Field(400, ge=1, le=1000)
    italic: bool = False
    color: Color = BLACK
    shadows: Tuple[Shadow, ...] = ()
    outline: Optional[str] = Field(None, description="Glyph outline path data")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("shadows", mode="before")
    @classmethod
    def parse_shadows(cls, v: Any) -> Any:
        return _coerce_shadows(v)


class PaintNode(BaseModel):
    """A laid-out box with its paint instructions."""

    id: Optional[str] = Field(None, description="Node identifier")
    box: Position
    border_radius: BorderRadii = Field(default_factory=BorderRadii, alias="borderRadius")
    opacity: float = Field(1.0, ge=0.0, le=1.0)
    overflow_clip: bool = Field(False, alias="overflowClip")
    backgrounds: List[Background] = Field(default_factory=list)
    box_shadows: Tuple[Shadow, ...] = Field((), alias="boxShadows")
    border: Optional[Border] = None
    text_runs: List[TextRun] = Field(default_factory=list, alias="textRuns")
    filters: Tuple[FilterFunction, ...] = ()
    inline_svg: Optional[str] = Field(
        None, alias="inlineSvg", description="SVG markup painted as the replaced content of the box"
    )
    children: List["PaintNode"] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("box_shadows", mode="before")
    @classmethod
    def parse_box_shadows(cls, v: Any) -> Any:
        return _coerce_shadows(v)


# Update forward reference
PaintNode.model_rebuild()


class SceneDocument(BaseModel):
    """Complete laid-out document."""

    title: Optional[str] = Field(None, description="Document title")
    width: int = Field(800, gt=0, le=4000, description="Canvas width in pixels")
    height: int = Field(600, gt=0, le=4000, description="Canvas height in pixels")
    nodes: List[PaintNode] = Field(default_factory=list, description="Root paint nodes")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional metadata")


# Parsing Results
class ParseResult(BaseModel):
    """Scene parsing result."""

    success: bool
    document: Optional[SceneDocument] = None
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    processing_time: float = 0.0


class RenderOptions(BaseModel):
    """Options for a single render pass."""

    tagging: bool = Field(True, description="Defer effects through magic-color tagging")
    text_to_paths: bool = Field(
        True, description="Emit glyph outlines instead of <text> when outlines are available"
    )
    background: Optional[Color] = Field(None, description="Page background color")


class SvgResult(BaseModel):
    """Result of an SVG render pass."""

    svg: str
    width: int
    height: int
    stats: Dict[str, int] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
