"""
Definition Builder
==================

Builds the ``<defs>`` fragments that replace tagged placeholders: shadow
filters, text-shadow filters, gradients, conic sweeps, CSS filter chains,
clip paths and image patterns. Markup comes from Jinja2 templates.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from pathlib import Path
import math

import jinja2

from svgfx.config.logging import get_logger
from svgfx.config.settings import Settings, get_settings
from svgfx.models.effects import FilterInfo, GradientInfo, ShadowInfo, TextShadowInfo
from svgfx.models.schemas import BorderRadii, Color, ColorStop, ConicGradient, Position
from svgfx.utils.markup import fmt, outset_position, rrect_path

logger = get_logger(__name__)


class DefinitionError(Exception):
    """Exception raised when a definition template fails to render."""

    pass


def normalize_stops(
    stops: Sequence[ColorStop], normalize_range: bool = False
) -> List[Tuple[float, Color]]:
    """
    Resolve gradient stop offsets.

    Missing end offsets default to 0 and 1, missing interior offsets are
    spread evenly between their neighbours, and every offset is clamped to
    [0, 1] and to be no smaller than the one before it.

    Args:
        stops: Color stops in declaration order
        normalize_range: Rescale offsets by the largest one when it exceeds 1

    Returns:
        (offset, color) pairs with non-decreasing offsets in [0, 1]
    """
    if not stops:
        return []

    offsets: List[Optional[float]] = [stop.offset for stop in stops]
    if normalize_range:
        known = [offset for offset in offsets if offset is not None]
        peak = max(known) if known else 0.0
        if peak > 1.0:
            offsets = [None if o is None else o / peak for o in offsets]

    if offsets[0] is None:
        offsets[0] = 0.0
    if len(offsets) > 1 and offsets[-1] is None:
        offsets[-1] = 1.0

    resolved: List[Optional[float]] = []
    last = 0.0
    for offset in offsets:
        if offset is None:
            resolved.append(None)
            continue
        last = max(last, min(1.0, max(0.0, offset)))
        resolved.append(last)

    # Spread runs of missing offsets between their known neighbours.
    i = 0
    while i < len(resolved):
        if resolved[i] is None:
            j = i
            while resolved[j] is None:
                j += 1
            lo, hi = resolved[i - 1], resolved[j]
            for k in range(i, j):
                resolved[k] = lo + (hi - lo) * (k - i + 1) / (j - i + 1)  # type: ignore[operator]
            i = j
        i += 1

    return [(offset, stop.color) for offset, stop in zip(resolved, stops)]  # type: ignore[misc]


def sample_stops(stops: Sequence[Tuple[float, Color]], t: float) -> Tuple[Color, float]:
    """Interpolated (opaque color, alpha) at position t of a normalized stop list."""
    if t <= stops[0][0]:
        return stops[0][1].model_copy(update={"a": 255}), stops[0][1].alpha
    for (o0, c0), (o1, c1) in zip(stops, stops[1:]):
        if t <= o1:
            f = 0.0 if o1 <= o0 else (t - o0) / (o1 - o0)
            color = Color(
                r=round(c0.r + (c1.r - c0.r) * f),
                g=round(c0.g + (c1.g - c0.g) * f),
                b=round(c0.b + (c1.b - c0.b) * f),
            )
            return color, c0.alpha + (c1.alpha - c0.alpha) * f
    last = stops[-1][1]
    return last.model_copy(update={"a": 255}), last.alpha


class DefinitionBuilder:
    """Jinja2-based builder of SVG definition fragments."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.precision = self.settings.number_precision
        self.logger: Any = logger.bind(component="definitions")  # structlog.BoundLoggerBase
        self._setup_jinja2_environment()

    def _setup_jinja2_environment(self) -> None:
        """Setup Jinja2 template environment."""
        template_dir = Path(__file__).parent / "templates"
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(["xml", "svg.j2"]),
            undefined=jinja2.StrictUndefined,
        )

        def n(value: float, precision: Optional[int] = None) -> str:
            """Compact number formatting."""
            return fmt(value, self.precision if precision is None else precision)

        self.env.filters["n"] = n

    def _render(self, template_name: str, **context: Any) -> str:
        try:
            return self.env.get_template(template_name).render(**context).strip()
        except jinja2.TemplateError as e:
            error_msg = f"Template {template_name} failed: {e}"
            self.logger.error("Definition rendering failed", error=error_msg)
            raise DefinitionError(error_msg)

    # Shadows

    def shadow_region(self, info: ShadowInfo) -> Position:
        """User-space filter region large enough for blur, spread and offset."""
        margin = info.blur * 1.5 + abs(info.spread) + max(abs(info.x), abs(info.y)) + 1
        return outset_position(info.box_pos, margin)

    def box_shadow_filter(self, element_id: str, info: ShadowInfo) -> str:
        return self._render(
            "box_shadow.svg.j2",
            id=element_id,
            info=info,
            region=self.shadow_region(info),
            flood_opacity=info.color.alpha * info.opacity,
        )

    def shadow_clip(self, element_id: str, info: ShadowInfo) -> str:
        """Clip path excluding the shadow-casting box from an outer shadow."""
        return self._render(
            "shadow_clip.svg.j2",
            id=element_id,
            region=self.shadow_region(info),
            box_path=rrect_path(info.box_pos, info.box_radius, self.precision),
        )

    def text_shadow_filter(self, element_id: str, info: TextShadowInfo) -> str:
        return self._render(
            "text_shadow.svg.j2",
            id=element_id,
            shadows=list(info.shadows),
            opacity=info.opacity,
            text_opacity=info.text_color.alpha * info.opacity,
            margin=self.settings.shadow_filter_margin,
        )

    # Gradients

    def _stop_context(self, stops: Sequence[Tuple[float, Color]], opacity: float) -> List[Dict[str, Any]]:
        return [
            {"offset": offset, "color": color.to_hex(), "opacity": color.alpha * opacity}
            for offset, color in stops
        ]

    def linear_gradient(self, element_id: str, info: GradientInfo) -> str:
        stops = normalize_stops(info.params.stops)
        return self._render(
            "linear_gradient.svg.j2",
            id=element_id,
            params=info.params,
            stops=self._stop_context(stops, info.opacity),
        )

    def radial_gradient(self, element_id: str, info: GradientInfo) -> str:
        stops = normalize_stops(info.params.stops)
        return self._render(
            "radial_gradient.svg.j2",
            id=element_id,
            params=info.params,
            stops=self._stop_context(stops, info.opacity),
        )

    def conic_gradient(self, element_id: str, info: GradientInfo) -> str:
        """
        Conic gradient as a stop list plus an angular sweep.

        SVG has no conic primitive, so the sweep is approximated by
        `conic_sweep_segments` wedges, each filled with the color sampled
        at its middle angle.
        """
        params: ConicGradient = info.params  # type: ignore[assignment]
        stops = normalize_stops(params.stops, normalize_range=True)
        bounds = info.layer.clip_box

        corners = [
            (bounds.x, bounds.y),
            (bounds.right, bounds.y),
            (bounds.x, bounds.bottom),
            (bounds.right, bounds.bottom),
        ]
        radius = max(math.hypot(x - params.center_x, y - params.center_y) for x, y in corners) + 1

        segments = self.settings.conic_sweep_segments
        wedges = []
        for i in range(segments):
            color, alpha = sample_stops(stops, (i + 0.5) / segments)
            start = params.angle + 360.0 * i / segments
            end = params.angle + 360.0 * (i + 1) / segments
            wedges.append(
                {
                    "d": self._wedge_path(params.center_x, params.center_y, radius, start, end),
                    "color": color.to_hex(),
                    "opacity": alpha * info.opacity,
                }
            )

        return self._render(
            "conic_gradient.svg.j2",
            id=element_id,
            bounds=bounds,
            stops=self._stop_context(stops, info.opacity),
            wedges=wedges,
        )

    def _wedge_path(self, cx: float, cy: float, radius: float, start: float, end: float) -> str:
        # Angles are clockwise from 12 o'clock.
        def point(angle: float) -> str:
            rad = math.radians(angle)
            return f"{fmt(cx + radius * math.sin(rad), self.precision)},{fmt(cy - radius * math.cos(rad), self.precision)}"

        large_arc = 1 if end - start > 180 else 0
        r = fmt(radius, self.precision)
        return (
            f"M{fmt(cx, self.precision)},{fmt(cy, self.precision)} L{point(start)} "
            f"A{r},{r} 0 {large_arc} 1 {point(end)} Z"
        )

    # Filters, clips and images

    def css_filter(self, element_id: str, info: FilterInfo) -> str:
        steps = [
            {"name": function.name.value, "amount": function.amount, "shadow": function.shadow}
            for function in info.functions
            if function.name.value != "drop-shadow" or function.shadow is not None
        ]
        return self._render(
            "css_filter.svg.j2",
            id=element_id,
            steps=steps,
            margin=self.settings.shadow_filter_margin,
        )

    def clip_path(self, element_id: str, pos: Position, radii: Optional[BorderRadii] = None) -> str:
        return self._render(
            "clip_path.svg.j2", id=element_id, path=rrect_path(pos, radii, self.precision)
        )

    def image_pattern(self, element_id: str, href: str, tile: Position) -> str:
        return self._render("image_pattern.svg.j2", id=element_id, href=href, tile=tile)
