"""
Canvas Adapter
==============

Paint callback surface used by the document painter.

In tagging mode effects the vector backend cannot express are recorded in
side tables and painted as placeholder shapes filled with magic colors;
scopes (clip, opacity layer, filter) additionally paint tiny marker rects
so the resolver can find them in the serialized markup. In direct mode
everything is painted on the backend as well as it can manage.
"""

from typing import Any, List, Optional, Sequence
import math

from svgfx.config.logging import get_logger
from svgfx.config.settings import Settings, get_settings
from svgfx.core.effects.composition import CompositionStack
from svgfx.core.effects.magic import MagicTag, MagicTagExtended, TagKind, encode, escape_paint_color
from svgfx.core.effects.tables import EffectRecorder
from svgfx.core.rendering.images import ImageStore, svg_data_url
from svgfx.core.rendering.svg_canvas import Paint, Shader, VectorCanvas
from svgfx.models.effects import (
    FilterInfo,
    GradientInfo,
    GradientKind,
    ImageDrawInfo,
    InlineSvgInfo,
    ShadowInfo,
    TextDrawInfo,
    TextShadowInfo,
)
from svgfx.models.schemas import (
    BackgroundLayer,
    BackgroundRepeat,
    Border,
    BorderRadii,
    BorderStyle,
    Color,
    ConicGradient,
    FilterFunction,
    FilterName,
    LinearGradient,
    Position,
    RadialGradient,
    Shadow,
    TextRun,
)
from svgfx.utils.markup import outset_position

logger = get_logger(__name__)

CLIP_MARKER_SIZE = 0.001
MAX_DIRECT_TILES = 4096

_GRADIENT_TAGS = {
    GradientKind.LINEAR: MagicTagExtended.LINEAR_GRADIENT,
    GradientKind.RADIAL: MagicTagExtended.RADIAL_GRADIENT,
    GradientKind.CONIC: MagicTagExtended.CONIC_GRADIENT,
}


class TaggingCanvas:
    """Adapter between the document painter and a vector canvas backend."""

    def __init__(
        self,
        canvas: VectorCanvas,
        recorder: Optional[EffectRecorder] = None,
        stack: Optional[CompositionStack] = None,
        images: Optional[ImageStore] = None,
        settings: Optional[Settings] = None,
        tagging: bool = True,
        viewport: Optional[Position] = None,
    ) -> None:
        self.canvas = canvas
        self.settings = settings or get_settings()
        self.recorder = recorder or EffectRecorder()
        self.stack = stack or CompositionStack()
        self.images = images or ImageStore(self.settings)
        self.tagging = tagging
        self.viewport = viewport or Position(
            width=self.settings.default_width, height=self.settings.default_height
        )
        self.logger: Any = logger.bind(component="canvas_adapter", tagging=tagging)  # structlog.BoundLoggerBase
        self._clip_indices: List[int] = []
        self._filter_indices: List[int] = []

    # Paint helpers

    def _opacity(self) -> float:
        # Direct mode composites layers on the backend, so paint stays opaque.
        return self.stack.current_opacity if self.tagging else 1.0

    def _real_paint(self, color: Color, **kwargs: Any) -> Paint:
        if self.tagging:
            color = escape_paint_color(color)
        return Paint(color=color, opacity=self._opacity(), **kwargs)

    def _marker(self, kind: TagKind, index: int, pos: Optional[Position] = None) -> None:
        if pos is None:
            clip = self.stack.current_clip
            pos = clip.pos if clip is not None else self.viewport
        self.canvas.fill_rect(pos, Paint(color=encode(kind, index)))

    def _clip_marker_pos(self, pos: Position) -> Position:
        return Position(x=pos.x, y=pos.y, width=CLIP_MARKER_SIZE, height=CLIP_MARKER_SIZE)

    # Shadows

    def draw_box_shadow(
        self,
        shadows: Sequence[Shadow],
        pos: Position,
        radii: Optional[BorderRadii] = None,
        inset: bool = False,
    ) -> None:
        """
        Paint every shadow of the list whose inset flag matches `inset`.

        The first declared shadow is painted last so it ends up on top.
        """
        radii = radii or BorderRadii()
        for shadow in reversed(shadows):
            if shadow.inset != inset:
                continue

            if self.tagging:
                info = ShadowInfo(
                    color=shadow.color,
                    blur=shadow.blur,
                    x=shadow.x,
                    y=shadow.y,
                    spread=shadow.spread,
                    inset=shadow.inset,
                    box_pos=pos,
                    box_radius=radii,
                    opacity=self.stack.current_opacity,
                )
                index = self.recorder.record_box_shadow(info)
                self.canvas.fill_rrect(pos, radii, Paint(color=encode(MagicTag.SHADOW, index)))
            elif shadow.inset:
                self._draw_direct_inset_shadow(shadow, pos, radii)
            else:
                shifted = Position(
                    x=pos.x + shadow.x, y=pos.y + shadow.y, width=pos.width, height=pos.height
                )
                self.canvas.fill_rrect(
                    outset_position(shifted, shadow.spread),
                    radii.adjusted(shadow.spread),
                    Paint(color=shadow.color, blur=shadow.blur),
                )

    def _draw_direct_inset_shadow(self, shadow: Shadow, pos: Position, radii: BorderRadii) -> None:
        # Approximated by a stroke hugging the inner edge.
        width = max(1.0, shadow.spread + shadow.blur / 2)
        shifted = Position(
            x=pos.x + shadow.x, y=pos.y + shadow.y, width=pos.width, height=pos.height
        )
        self.canvas.save()
        self.canvas.clip_rrect(pos, radii)
        self.canvas.stroke_rrect(
            outset_position(shifted, -width / 2),
            radii.adjusted(-width / 2),
            Paint(color=shadow.color, blur=shadow.blur, stroke_width=width),
        )
        self.canvas.restore()

    # Text

    def draw_text(self, run: TextRun) -> None:
        if not self.tagging:
            for shadow in reversed(run.shadows):
                shifted = Position(
                    x=run.position.x + shadow.x,
                    y=run.position.y + shadow.y,
                    width=run.position.width,
                    height=run.position.height,
                )
                self.canvas.draw_text(
                    run.text,
                    shifted,
                    run.font_size,
                    run.font_family,
                    Paint(color=shadow.color, blur=shadow.blur),
                    weight=run.weight,
                    italic=run.italic,
                    outline=None,
                )
            self.canvas.draw_text(
                run.text,
                run.position,
                run.font_size,
                run.font_family,
                Paint(color=run.color),
                weight=run.weight,
                italic=run.italic,
                outline=run.outline,
            )
            return

        opacity = self.stack.current_opacity
        weight: Optional[int] = run.weight
        italic = run.italic
        if run.shadows:
            index = self.recorder.record_text_shadow(
                TextShadowInfo(shadows=tuple(run.shadows), text_color=run.color, opacity=opacity)
            )
            color = encode(MagicTag.TEXT_SHADOW, index)
        else:
            index = self.recorder.record_text_draw(
                TextDrawInfo(weight=run.weight, italic=run.italic, color=run.color, opacity=opacity)
            )
            color = encode(MagicTag.TEXT_DRAW, index)
            # Restored by the resolver from the record.
            weight, italic = None, False

        self.canvas.draw_text(
            run.text,
            run.position,
            run.font_size,
            run.font_family,
            Paint(color=color),
            weight=weight,
            italic=italic,
            outline=run.outline,
        )

    # Solid paint

    def draw_solid_fill(
        self, pos: Position, radii: Optional[BorderRadii], color: Color
    ) -> None:
        if color.a == 0 or pos.is_empty():
            return
        self.canvas.fill_rrect(pos, radii, self._real_paint(color))

    def draw_borders(
        self, pos: Position, radii: Optional[BorderRadii], border: Optional[Border]
    ) -> None:
        if border is None or border.width <= 0 or border.style == BorderStyle.NONE:
            return
        radii = radii or BorderRadii()

        if border.style == BorderStyle.DOUBLE:
            third = border.width / 3
            for inset in (third / 2, border.width - third / 2):
                self.canvas.stroke_rrect(
                    outset_position(pos, -inset),
                    radii.adjusted(-inset),
                    self._real_paint(border.color, stroke_width=third),
                )
            return

        dash = None
        if border.style == BorderStyle.DASHED:
            dash = (border.width * 3, border.width * 3)
        elif border.style == BorderStyle.DOTTED:
            dash = (border.width, border.width)

        half = border.width / 2
        self.canvas.stroke_rrect(
            outset_position(pos, -half),
            radii.adjusted(-half),
            self._real_paint(border.color, stroke_width=border.width, dash=dash),
        )

    # Images and gradients

    def draw_image(self, url: str, layer: BackgroundLayer) -> None:
        if layer.clip_box.is_empty():
            return

        if self.tagging:
            info = ImageDrawInfo(
                url=url,
                layer=layer,
                opacity=self.stack.current_opacity,
                clip=self.stack.current_clip,
            )
            index = self.recorder.record_image(info)
            self.canvas.fill_rrect(
                layer.clip_box,
                layer.border_radius,
                Paint(color=encode(MagicTagExtended.IMAGE_DRAW, index)),
            )
            return

        href = self.images.data_url(url)
        if href is None:
            return
        self.canvas.save()
        self.canvas.clip_rrect(layer.clip_box, layer.border_radius)
        for tile in _tiles(layer):
            self.canvas.draw_image(href, tile)
        self.canvas.restore()

    def draw_inline_svg(self, markup: str, pos: Position) -> None:
        """Place an SVG fragment in `pos`, scaled to the box."""
        if pos.is_empty() or not markup.strip():
            return

        if self.tagging:
            index = self.recorder.record_inline_svg(
                InlineSvgInfo(markup=markup, pos=pos, opacity=self.stack.current_opacity)
            )
            self.canvas.fill_rect(pos, Paint(color=encode(MagicTagExtended.INLINE_SVG, index)))
            return

        self.canvas.draw_image(svg_data_url(markup), pos)

    def draw_linear_gradient(self, layer: BackgroundLayer, gradient: LinearGradient) -> None:
        self._draw_gradient(GradientKind.LINEAR, layer, gradient)

    def draw_radial_gradient(self, layer: BackgroundLayer, gradient: RadialGradient) -> None:
        self._draw_gradient(GradientKind.RADIAL, layer, gradient)

    def draw_conic_gradient(self, layer: BackgroundLayer, gradient: ConicGradient) -> None:
        self._draw_gradient(GradientKind.CONIC, layer, gradient)

    def _draw_gradient(self, kind: GradientKind, layer: BackgroundLayer, params: Shader) -> None:
        if layer.clip_box.is_empty() or not params.stops:
            return

        if not self.tagging:
            self.canvas.fill_rrect(layer.clip_box, layer.border_radius, Paint(shader=params))
            return

        info = GradientInfo(
            kind=kind,
            layer=layer,
            params=params,
            opacity=self.stack.current_opacity,
            clip=self.stack.current_clip,
        )
        index = self.recorder.record_gradient(info)
        self.canvas.fill_rrect(
            layer.clip_box, layer.border_radius, Paint(color=encode(_GRADIENT_TAGS[kind], index))
        )

    # Scopes

    def set_clip(self, pos: Position, radii: Optional[BorderRadii] = None) -> None:
        clip = self.stack.push_clip(pos, radii)
        if self.tagging:
            index = self.recorder.record_clip(clip)
            self._clip_indices.append(index)
            self._marker(MagicTag.CLIP_PUSH, index, self._clip_marker_pos(pos))
        self.canvas.save()
        self.canvas.clip_rrect(clip.pos, clip.radii)

    def del_clip(self) -> None:
        clip = self.stack.pop_clip()
        self.canvas.restore()
        if self.tagging:
            index = self._clip_indices.pop()
            self._marker(MagicTag.CLIP_POP, index, self._clip_marker_pos(clip.pos))

    def push_layer(self, opacity: float) -> None:
        """Open an opacity group."""
        self.stack.push_opacity(opacity)
        if self.tagging:
            self._marker(MagicTag.LAYER_PUSH, round(opacity * 255))
            self.canvas.save()
        else:
            self.canvas.save_layer(opacity)

    def pop_layer(self) -> None:
        opacity = self.stack.pop_opacity()
        self.canvas.restore()
        if self.tagging:
            self._marker(MagicTag.LAYER_POP, round(opacity * 255))

    def push_filter(self, functions: Sequence[FilterFunction]) -> None:
        """Open a CSS filter group."""
        if self.tagging:
            index = self.recorder.record_filter(FilterInfo(functions=tuple(functions)))
            self._filter_indices.append(index)
            self._marker(MagicTag.FILTER_PUSH, index)
            self.canvas.save()
            return

        alpha = 1.0
        for function in functions:
            if function.name == FilterName.OPACITY:
                alpha *= max(0.0, min(1.0, function.amount))
            else:
                self.logger.debug("Filter function dropped in direct mode", name=function.name.value)
        self.canvas.save_layer(alpha)

    def pop_filter(self) -> None:
        self.canvas.restore()
        if self.tagging:
            self._marker(MagicTag.FILTER_POP, self._filter_indices.pop())

    def is_balanced(self) -> bool:
        return self.stack.is_balanced() and not self._clip_indices and not self._filter_indices


def _tiles(layer: BackgroundLayer) -> List[Position]:
    """Tile positions covering the clip box, aligned on the origin box."""
    origin = layer.origin_box
    clip = layer.clip_box
    if origin.is_empty() or layer.repeat == BackgroundRepeat.NO_REPEAT:
        return [origin]

    repeat_x = layer.repeat in (BackgroundRepeat.REPEAT, BackgroundRepeat.REPEAT_X)
    repeat_y = layer.repeat in (BackgroundRepeat.REPEAT, BackgroundRepeat.REPEAT_Y)

    def starts(o: float, size: float, lo: float, hi: float, repeat: bool) -> List[float]:
        if not repeat:
            return [o]
        first = o + math.floor((lo - o) / size) * size
        result = []
        position = first
        while position < hi and len(result) < MAX_DIRECT_TILES:
            result.append(position)
            position += size
        return result

    xs = starts(origin.x, origin.width, clip.x, clip.right, repeat_x)
    ys = starts(origin.y, origin.height, clip.y, clip.bottom, repeat_y)
    tiles = [Position(x=x, y=y, width=origin.width, height=origin.height) for y in ys for x in xs]
    return tiles[:MAX_DIRECT_TILES]
