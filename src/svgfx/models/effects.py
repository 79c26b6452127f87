"""
Effect Records
==============

Side-table records captured while painting in tagging mode. Each record
holds everything the resolver needs to rebuild the effect, with the
composed opacity already baked in, so no paint-time state has to be
replayed after serialization.
"""

from typing import Optional, Tuple, Union
from enum import Enum

from pydantic import model_validator

from svgfx.models.schemas import (
    ValueModel,
    Color,
    Position,
    BorderRadii,
    Shadow,
    BackgroundLayer,
    LinearGradient,
    RadialGradient,
    ConicGradient,
    FilterFunction,
)


class GradientKind(str, Enum):
    """Gradient families sharing the gradient table."""

    LINEAR = "linear"
    RADIAL = "radial"
    CONIC = "conic"


class ShadowInfo(ValueModel):
    """One box shadow, with the absolute box it was cast from."""

    color: Color
    blur: float
    x: float
    y: float
    spread: float
    inset: bool
    box_pos: Position
    box_radius: BorderRadii
    opacity: float = 1.0


class TextShadowInfo(ValueModel):
    """A text-shadow list together with the text color it decorates."""

    shadows: Tuple[Shadow, ...]
    text_color: Color
    opacity: float = 1.0


class TextDrawInfo(ValueModel):
    """Paint attributes of a plain text run."""

    weight: int
    italic: bool
    color: Color
    opacity: float = 1.0


class ClipInfo(ValueModel):
    """Rounded clip rectangle."""

    pos: Position
    radii: BorderRadii = BorderRadii()


class ImageDrawInfo(ValueModel):
    """Background or content image draw."""

    url: str
    layer: BackgroundLayer
    opacity: float = 1.0
    clip: Optional[ClipInfo] = None


class InlineSvgInfo(ValueModel):
    """Inline SVG fragment placed at an absolute box."""

    markup: str
    pos: Position
    opacity: float = 1.0


GradientParams = Union[LinearGradient, RadialGradient, ConicGradient]

_PARAMS_BY_KIND = {
    GradientKind.LINEAR: LinearGradient,
    GradientKind.RADIAL: RadialGradient,
    GradientKind.CONIC: ConicGradient,
}


class GradientInfo(ValueModel):
    """Linear, radial or conic gradient fill of a background layer."""

    kind: GradientKind
    layer: BackgroundLayer
    params: GradientParams
    opacity: float = 1.0
    clip: Optional[ClipInfo] = None

    @model_validator(mode="after")
    def check_params(self) -> "GradientInfo":
        expected = _PARAMS_BY_KIND[self.kind]
        if not isinstance(self.params, expected):
            raise ValueError(f"{self.kind.value} gradient needs {expected.__name__} parameters")
        return self


class FilterInfo(ValueModel):
    """CSS filter chain applied to a group."""

    functions: Tuple[FilterFunction, ...]
