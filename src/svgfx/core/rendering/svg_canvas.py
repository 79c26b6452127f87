"""
SVG Canvas
==========

Vector canvas backend that serializes primitive draw calls to SVG markup.

The backend only knows flat fills, strokes, linear/radial shaders, clip
paths and images. Blur, conic sweeps and every other structured effect
are beyond it; those are handled by tagging and later resolution.
"""

from typing import Any, List, Optional, Tuple, Union
from abc import ABC, abstractmethod
from dataclasses import dataclass

from svgfx.config.logging import get_logger
from svgfx.models.schemas import (
    BorderRadii,
    Color,
    ConicGradient,
    LinearGradient,
    Position,
    RadialGradient,
    BLACK,
)
from svgfx.utils.markup import build_attributes, escape_xml, fmt, rrect_path

logger = get_logger(__name__)

Shader = Union[LinearGradient, RadialGradient, ConicGradient]


class CanvasSerializationError(Exception):
    """Exception raised when the canvas cannot produce a document."""

    pass


@dataclass(frozen=True)
class Paint:
    """Fill or stroke parameters of a draw call."""

    color: Color = BLACK
    opacity: float = 1.0
    blur: float = 0.0
    shader: Optional[Shader] = None
    stroke_width: Optional[float] = None
    dash: Optional[Tuple[float, float]] = None


class VectorCanvas(ABC):
    """Abstract primitive draw surface."""

    @abstractmethod
    def save(self) -> None:
        pass

    @abstractmethod
    def restore(self) -> None:
        pass

    @abstractmethod
    def save_layer(self, opacity: float) -> None:
        pass

    @abstractmethod
    def clip_rrect(self, pos: Position, radii: Optional[BorderRadii] = None) -> None:
        pass

    @abstractmethod
    def fill_rect(self, pos: Position, paint: Paint) -> None:
        pass

    @abstractmethod
    def fill_rrect(self, pos: Position, radii: Optional[BorderRadii], paint: Paint) -> None:
        pass

    @abstractmethod
    def fill_path(self, path_data: str, paint: Paint) -> None:
        pass

    @abstractmethod
    def stroke_rrect(self, pos: Position, radii: Optional[BorderRadii], paint: Paint) -> None:
        pass

    @abstractmethod
    def draw_text(
        self,
        text: str,
        pos: Position,
        font_size: float,
        font_family: str,
        paint: Paint,
        weight: Optional[int] = None,
        italic: bool = False,
        outline: Optional[str] = None,
    ) -> None:
        pass

    @abstractmethod
    def draw_image(self, href: str, pos: Position, opacity: float = 1.0) -> None:
        pass

    @abstractmethod
    def serialize(self) -> str:
        pass


class SvgCanvas(VectorCanvas):
    """Canvas writing SVG 1.1 markup."""

    def __init__(
        self, width: int, height: int, precision: int = 2, text_to_paths: bool = True
    ) -> None:
        self.width = width
        self.height = height
        self.precision = precision
        self.text_to_paths = text_to_paths
        self.logger: Any = logger.bind(component="svg_canvas")  # structlog.BoundLoggerBase
        self._defs: List[str] = []
        self._body: List[str] = []
        # Open <g> counts per save level; level 0 is the root.
        self._levels: List[int] = [0]
        self._next_id = 1
        self._finished = False

    # State

    def save(self) -> None:
        self._check_open()
        self._levels.append(0)

    def restore(self) -> None:
        self._check_open()
        if len(self._levels) <= 1:
            raise CanvasSerializationError("restore() without matching save()")
        self._body.extend("</g>" for _ in range(self._levels.pop()))

    @property
    def save_depth(self) -> int:
        return len(self._levels) - 1

    def save_layer(self, opacity: float) -> None:
        """Save, then composite everything up to the matching restore at `opacity`."""
        self.save()
        self._body.append(f'<g opacity="{self._n(opacity)}">')
        self._levels[-1] += 1

    def clip_rrect(self, pos: Position, radii: Optional[BorderRadii] = None) -> None:
        self._check_open()
        clip_id = self._new_id("clip")
        self._defs.append(f'<clipPath id="{clip_id}">{self._shape(pos, radii, "")}</clipPath>')
        self._body.append(f'<g clip-path="url(#{clip_id})">')
        self._levels[-1] += 1

    # Drawing

    def fill_rect(self, pos: Position, paint: Paint) -> None:
        self.fill_rrect(pos, None, paint)

    def fill_rrect(self, pos: Position, radii: Optional[BorderRadii], paint: Paint) -> None:
        self._check_open()
        self._body.append(self._shape(pos, radii, self._fill_attributes(paint)))

    def fill_path(self, path_data: str, paint: Paint) -> None:
        self._check_open()
        attrs = build_attributes({"d": path_data})
        self._body.append(f"<path{attrs}{self._fill_attributes(paint)}/>")

    def stroke_rrect(self, pos: Position, radii: Optional[BorderRadii], paint: Paint) -> None:
        self._check_open()
        self._body.append(self._shape(pos, radii, self._stroke_attributes(paint)))

    def draw_text(
        self,
        text: str,
        pos: Position,
        font_size: float,
        font_family: str,
        paint: Paint,
        weight: Optional[int] = None,
        italic: bool = False,
        outline: Optional[str] = None,
    ) -> None:
        self._check_open()
        fill = self._fill_attributes(paint)
        if outline and self.text_to_paths:
            self._body.append(f"<path{build_attributes({'d': outline})}{fill}/>")
            return

        n = self._n
        # Baseline sits at roughly 80% of the em box below the top edge.
        attrs = build_attributes(
            {
                "x": n(pos.x),
                "y": n(pos.y + font_size * 0.8),
                "font-size": n(font_size),
                "font-family": font_family,
                "font-weight": str(weight) if weight is not None and weight != 400 else None,
                "font-style": "italic" if italic else None,
            }
        )
        self._body.append(f"<text{attrs}{fill}>{escape_xml(text)}</text>")

    def draw_image(self, href: str, pos: Position, opacity: float = 1.0) -> None:
        self._check_open()
        n = self._n
        attrs = build_attributes(
            {
                "x": n(pos.x),
                "y": n(pos.y),
                "width": n(pos.width),
                "height": n(pos.height),
                "preserveAspectRatio": "none",
                "opacity": n(opacity) if opacity < 1.0 else None,
            }
        )
        # The href is a data URL and is written verbatim.
        self._body.append(f'<image{attrs} href="{href}"/>')

    # Output

    def serialize(self) -> str:
        """
        Finish the canvas and return the SVG document.

        Raises:
            CanvasSerializationError: If save/restore calls are unbalanced
        """
        self._check_open()
        if len(self._levels) != 1:
            raise CanvasSerializationError(
                f"Cannot serialize with {len(self._levels) - 1} unrestored save() call(s)"
            )
        self._body.extend("</g>" for _ in range(self._levels[0]))
        self._levels[0] = 0
        self._finished = True

        header = (
            f'<svg xmlns="http://www.w3.org/2000/svg" '
            f'xmlns:xlink="http://www.w3.org/1999/xlink" '
            f'width="{self.width}" height="{self.height}" '
            f'viewBox="0 0 {self.width} {self.height}">'
        )
        defs = f"<defs>{''.join(self._defs)}</defs>" if self._defs else ""
        markup = f"{header}{defs}{''.join(self._body)}</svg>"

        self.logger.debug(
            "Canvas serialized", elements=len(self._body), defs=len(self._defs), size=len(markup)
        )
        return markup

    # Internals

    def _n(self, value: float) -> str:
        return fmt(value, self.precision)

    def _check_open(self) -> None:
        if self._finished:
            raise CanvasSerializationError("Canvas already serialized")

    def _new_id(self, prefix: str) -> str:
        element_id = f"{prefix}{self._next_id}"
        self._next_id += 1
        return element_id

    def _shape(self, pos: Position, radii: Optional[BorderRadii], paint_attrs: str) -> str:
        n = self._n
        if radii is None or radii.is_zero():
            attrs = build_attributes(
                {"x": n(pos.x), "y": n(pos.y), "width": n(pos.width), "height": n(pos.height)}
            )
            return f"<rect{attrs}{paint_attrs}/>"

        uniform = (
            len(
                {
                    radii.top_left_x,
                    radii.top_right_x,
                    radii.bottom_right_x,
                    radii.bottom_left_x,
                }
            )
            == 1
            and len(
                {
                    radii.top_left_y,
                    radii.top_right_y,
                    radii.bottom_right_y,
                    radii.bottom_left_y,
                }
            )
            == 1
        )
        if uniform:
            attrs = build_attributes(
                {
                    "x": n(pos.x),
                    "y": n(pos.y),
                    "width": n(pos.width),
                    "height": n(pos.height),
                    "rx": n(radii.top_left_x),
                    "ry": n(radii.top_left_y),
                }
            )
            return f"<rect{attrs}{paint_attrs}/>"

        attrs = build_attributes({"d": rrect_path(pos, radii, self.precision)})
        return f"<path{attrs}{paint_attrs}/>"

    def _fill_attributes(self, paint: Paint) -> str:
        if paint.blur > 0:
            self.logger.debug("Blur is not expressible on the SVG canvas, dropped", blur=paint.blur)

        fill = paint.color.to_hex()
        opacity = paint.color.alpha * paint.opacity
        if paint.shader is not None:
            fill, opacity = self._shader_fill(paint.shader, paint.opacity)

        return build_attributes(
            {"fill": fill, "fill-opacity": self._n(opacity) if opacity < 1.0 else None}
        )

    def _stroke_attributes(self, paint: Paint) -> str:
        opacity = paint.color.alpha * paint.opacity
        return build_attributes(
            {
                "fill": "none",
                "stroke": paint.color.to_hex(),
                "stroke-width": self._n(paint.stroke_width or 1.0),
                "stroke-opacity": self._n(opacity) if opacity < 1.0 else None,
                "stroke-dasharray": (
                    f"{self._n(paint.dash[0])} {self._n(paint.dash[1])}" if paint.dash else None
                ),
            }
        )

    def _shader_fill(self, shader: Shader, opacity: float) -> Tuple[str, float]:
        if isinstance(shader, ConicGradient):
            # No sweep primitive: fall back to the first stop color.
            self.logger.debug("Conic shader is not expressible on the SVG canvas, flattened")
            first = shader.stops[0].color if shader.stops else BLACK
            return first.to_hex(), first.alpha * opacity

        n = self._n
        gradient_id = self._new_id("grad")
        stops = "".join(
            f'<stop offset="{n(stop.offset if stop.offset is not None else i / max(1, len(shader.stops) - 1))}"'
            f' stop-color="{stop.color.to_hex()}"'
            f' stop-opacity="{n(stop.color.alpha * opacity)}"/>'
            for i, stop in enumerate(shader.stops)
        )
        spread = ' spreadMethod="repeat"' if shader.repeating else ""
        if isinstance(shader, LinearGradient):
            self._defs.append(
                f'<linearGradient id="{gradient_id}" gradientUnits="userSpaceOnUse"'
                f' x1="{n(shader.start_x)}" y1="{n(shader.start_y)}"'
                f' x2="{n(shader.end_x)}" y2="{n(shader.end_y)}"{spread}>{stops}</linearGradient>'
            )
        else:
            self._defs.append(
                f'<radialGradient id="{gradient_id}" gradientUnits="userSpaceOnUse"'
                f' cx="{n(shader.center_x)}" cy="{n(shader.center_y)}"'
                f' r="{n(shader.radius_x)}"{spread}>{stops}</radialGradient>'
            )
        return f"url(#{gradient_id})", 1.0
