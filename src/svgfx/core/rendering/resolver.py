"""
Vector Resolver
===============

Post-processing pass over serialized canvas markup. Placeholder elements
whose fill is a magic color are looked up in the side tables of the pass
and rewritten into real SVG constructs: filters for shadows, gradient and
pattern fills, embedded images, nested inline SVG and filter groups. Scope markers are
consumed and removed.

A broken reference never aborts the document: the element is dropped (or
its fill set to ``none``) and a warning is logged.
"""

from typing import Any, Dict, List, Optional, Set, Tuple
from dataclasses import dataclass, field
import re

from svgfx.config.logging import get_logger
from svgfx.config.settings import Settings, get_settings
from svgfx.core.effects.magic import DecodedTag, MagicTag, MagicTagExtended, TagKind, decode_fill
from svgfx.core.effects.tables import EffectRecorder
from svgfx.core.rendering.definitions import DefinitionBuilder, normalize_stops
from svgfx.core.rendering.images import ImageStore
from svgfx.models.effects import ClipInfo, GradientInfo, ImageDrawInfo
from svgfx.models.schemas import BackgroundRepeat, Position
from svgfx.utils.markup import build_attributes, fmt

logger = get_logger(__name__)

_TAG_RE = re.compile(r"<(/?)([A-Za-z][\w:.-]*)((?:\s+[^\s=/>]+\s*=\s*\"[^\"]*\")*)\s*(/?)>")
_ATTR_RE = re.compile(r"([^\s=]+)\s*=\s*\"([^\"]*)\"")
_STYLE_FILL_RE = re.compile(r"(?:^|;)\s*fill\s*:\s*([^;]+)")
_SVG_OPEN_RE = re.compile(r"<svg\b[^>]*>")
_DEFS_OPEN_RE = re.compile(r"<defs\s*>")
_XML_DECL_RE = re.compile(r"<\?xml[^>]*\?>\s*")

_SHAPES = {"rect", "path", "image", "use", "ellipse", "circle", "polygon", "polyline"}
_PLACEMENT_ATTRS = {"x", "y", "width", "height"}

Key = Tuple[bool, int, int]


@dataclass
class _Element:
    """One start or empty-element tag."""

    name: str
    attrs: Dict[str, str]
    self_closing: bool

    @classmethod
    def parse(cls, match: "re.Match[str]") -> "_Element":
        attrs = {key: value for key, value in _ATTR_RE.findall(match.group(3))}
        return cls(name=match.group(2), attrs=attrs, self_closing=bool(match.group(4)))

    def fill(self) -> Optional[str]:
        if "fill" in self.attrs:
            return self.attrs["fill"]
        style_match = _STYLE_FILL_RE.search(self.attrs.get("style", ""))
        return style_match.group(1).strip() if style_match else None

    def set_fill(self, value: str, opacity: Optional[float] = None, precision: int = 2) -> None:
        if "style" in self.attrs:
            style = _STYLE_FILL_RE.sub("", self.attrs["style"]).strip("; ")
            if style:
                self.attrs["style"] = style
            else:
                del self.attrs["style"]
        self.attrs["fill"] = value
        self.attrs.pop("fill-opacity", None)
        if opacity is not None and opacity < 1.0:
            self.attrs["fill-opacity"] = fmt(opacity, 4)

    def render(self) -> str:
        attrs = "".join(f' {key}="{value}"' for key, value in self.attrs.items())
        return f"<{self.name}{attrs}{'/' if self.self_closing else ''}>"


@dataclass
class _PassState:
    """Mutable state of one resolve() call."""

    defs: Dict[str, str] = field(default_factory=dict)
    missing: Set[Key] = field(default_factory=set)
    seen_images: Set[int] = field(default_factory=set)
    clip_markers: List[ClipInfo] = field(default_factory=list)
    dropped_scopes: Set[Key] = field(default_factory=set)
    open_filters: int = 0
    stats: Dict[str, int] = field(
        default_factory=lambda: {"references": 0, "resolved": 0, "dropped": 0, "broken": 0}
    )


def _key(tag: DecodedTag) -> Key:
    return (tag.is_extended, tag.tag_value, tag.index)


class VectorResolver:
    """Rewrites tagged markup using the side tables of one render pass."""

    def __init__(
        self,
        recorder: EffectRecorder,
        images: Optional[ImageStore] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.recorder = recorder
        self.settings = settings or get_settings()
        self.images = images or ImageStore(self.settings)
        self.builder = DefinitionBuilder(self.settings)
        self.precision = self.settings.number_precision
        self.logger: Any = logger.bind(component="resolver")  # structlog.BoundLoggerBase
        self.stats: Dict[str, int] = {}

    def resolve(self, markup: str) -> str:
        """
        Resolve every magic-color reference in `markup`.

        Args:
            markup: Serialized canvas output produced in tagging mode

        Returns:
            Final SVG document
        """
        state = _PassState()

        referenced = self.scan(markup)
        state.stats["references"] = len(referenced)
        for tag in referenced:
            self._synthesize(tag, state)

        body = _TAG_RE.sub(lambda match: self._rewrite(match, state), markup)
        if state.open_filters:
            self.logger.warning("Unterminated filter groups closed", count=state.open_filters)
            body = body.replace("</svg>", "</g>" * state.open_filters + "</svg>", 1)

        if self.settings.drop_degenerate_elements:
            body = _TAG_RE.sub(lambda match: self._drop_degenerate(match, state), body)

        result = self._insert_defs(body, list(state.defs.values()))
        self.stats = state.stats
        self.logger.info("Markup resolved", definitions=len(state.defs), **state.stats)
        return result

    # Pre-scan

    def scan(self, markup: str) -> List[DecodedTag]:
        """Distinct known tag references in document order."""
        found: Dict[Key, DecodedTag] = {}
        for match in _TAG_RE.finditer(markup):
            if match.group(1):
                continue
            fill = _Element.parse(match).fill()
            if fill is None:
                continue
            tag = decode_fill(fill)
            if tag.kind is not None:
                found.setdefault(_key(tag), tag)
        return list(found.values())

    # Definitions

    def _synthesize(self, tag: DecodedTag, state: _PassState) -> None:
        kind = tag.kind
        index = tag.index
        builder = self.builder

        if kind is MagicTag.SHADOW:
            info = self.recorder.shadows.get(index)
            if info is not None:
                state.defs[f"box-shadow-{index}"] = builder.box_shadow_filter(f"box-shadow-{index}", info)
                if not info.inset:
                    state.defs[f"box-shadow-clip-{index}"] = builder.shadow_clip(
                        f"box-shadow-clip-{index}", info
                    )
                return
        elif kind is MagicTag.TEXT_SHADOW:
            text_info = self.recorder.text_shadows.get(index)
            if text_info is not None:
                state.defs[f"text-shadow-{index}"] = builder.text_shadow_filter(
                    f"text-shadow-{index}", text_info
                )
                return
        elif kind is MagicTag.TEXT_DRAW:
            if index in self.recorder.text_draws:
                return
        elif kind is MagicTag.FILTER_PUSH:
            filter_info = self.recorder.filters.get(index)
            if filter_info is not None:
                state.defs[f"css-filter-{index}"] = builder.css_filter(f"css-filter-{index}", filter_info)
                return
        elif kind is MagicTag.CLIP_PUSH:
            if index in self.recorder.clips:
                return
        elif isinstance(kind, MagicTag):
            # Pop and layer markers carry no definitions.
            return
        elif kind is MagicTagExtended.INLINE_SVG:
            if index in self.recorder.inline_svgs:
                return
        elif kind is MagicTagExtended.IMAGE_DRAW:
            image = self.recorder.images.get(index)
            if image is not None:
                href = self.images.data_url(image.url)
                if href is not None:
                    if image.layer.repeat != BackgroundRepeat.NO_REPEAT:
                        state.defs[f"image-{index}"] = builder.image_pattern(
                            f"image-{index}", href, image.layer.origin_box
                        )
                    return
        else:
            gradient = self.recorder.gradients.get(index)
            if gradient is not None and self._gradient_matches(kind, gradient):
                element_id = self._gradient_id(gradient, index)
                if gradient.kind.value == "linear":
                    state.defs[element_id] = builder.linear_gradient(element_id, gradient)
                elif gradient.kind.value == "radial":
                    if not self._is_degenerate_radial(gradient):
                        state.defs[element_id] = builder.radial_gradient(element_id, gradient)
                else:
                    state.defs[element_id] = builder.conic_gradient(element_id, gradient)
                return

        state.missing.add(_key(tag))
        self.logger.warning("Broken effect reference", kind=getattr(kind, "name", None), index=index)

    @staticmethod
    def _gradient_matches(kind: Optional[TagKind], gradient: GradientInfo) -> bool:
        expected = {
            "linear": MagicTagExtended.LINEAR_GRADIENT,
            "radial": MagicTagExtended.RADIAL_GRADIENT,
            "conic": MagicTagExtended.CONIC_GRADIENT,
        }
        return expected[gradient.kind.value] is kind

    @staticmethod
    def _gradient_id(gradient: GradientInfo, index: int) -> str:
        return f"{gradient.kind.value}-gradient-{index}"

    @staticmethod
    def _is_degenerate_radial(gradient: GradientInfo) -> bool:
        params = gradient.params
        return params.radius_x <= 0 or params.radius_y <= 0  # type: ignore[union-attr]

    # Rewriting

    def _rewrite(self, match: "re.Match[str]", state: _PassState) -> str:
        if match.group(1):
            return match.group(0)

        element = _Element.parse(match)
        fill = element.fill()
        if fill is None:
            return match.group(0)
        tag = decode_fill(fill)
        kind = tag.kind
        if kind is None:
            return match.group(0)

        if _key(tag) in state.missing:
            state.stats["broken"] += 1
            if kind is MagicTag.CLIP_PUSH or kind is MagicTag.FILTER_PUSH:
                state.dropped_scopes.add(_key(tag))
            return self._soft_fail(element, state)

        index = tag.index
        if kind is MagicTag.SHADOW:
            return self._rewrite_shadow(element, index, state)
        if kind is MagicTag.TEXT_SHADOW or kind is MagicTag.TEXT_DRAW:
            return self._rewrite_text(element, kind, index, state)
        if kind is MagicTagExtended.IMAGE_DRAW:
            return self._rewrite_image(element, index, state)
        if kind is MagicTagExtended.INLINE_SVG:
            return self._rewrite_inline_svg(index, state)
        if isinstance(kind, MagicTagExtended):
            return self._rewrite_gradient(element, index, state)
        return self._consume_marker(kind, index, state)

    def _soft_fail(self, element: _Element, state: _PassState) -> str:
        if element.self_closing:
            state.stats["dropped"] += 1
            return ""
        element.set_fill("none")
        return element.render()

    def _rewrite_shadow(self, element: _Element, index: int, state: _PassState) -> str:
        info = self.recorder.shadows[index]
        element.set_fill("#000000")
        element.attrs["filter"] = f"url(#box-shadow-{index})"
        state.stats["resolved"] += 1
        if info.inset:
            return element.render()
        return f'<g clip-path="url(#box-shadow-clip-{index})">{element.render()}</g>'

    def _rewrite_text(self, element: _Element, kind: TagKind, index: int, state: _PassState) -> str:
        if kind is MagicTag.TEXT_SHADOW:
            shadow_info = self.recorder.text_shadows[index]
            # Glyphs stay opaque; the filter scales the text alpha on SourceGraphic only.
            element.set_fill(shadow_info.text_color.to_hex())
            element.attrs["filter"] = f"url(#text-shadow-{index})"
        else:
            draw_info = self.recorder.text_draws[index]
            element.set_fill(draw_info.color.to_hex(), draw_info.color.alpha * draw_info.opacity)
            # Outlines carry weight and slant in their geometry.
            if element.name == "text":
                if draw_info.weight != 400:
                    element.attrs["font-weight"] = str(draw_info.weight)
                if draw_info.italic:
                    element.attrs["font-style"] = "italic"
        state.stats["resolved"] += 1
        return element.render()

    def _rewrite_gradient(self, element: _Element, index: int, state: _PassState) -> str:
        gradient = self.recorder.gradients[index]
        element_id = self._gradient_id(gradient, index)
        if element_id in state.defs:
            element.set_fill(f"url(#{element_id})")
        else:
            # Zero-sized radial gradients paint their last stop.
            stops = normalize_stops(gradient.params.stops)
            last = stops[-1][1]
            element.set_fill(last.to_hex(), last.alpha * gradient.opacity)
        state.stats["resolved"] += 1
        return element.render()

    def _rewrite_image(self, element: _Element, index: int, state: _PassState) -> str:
        if index in state.seen_images:
            state.stats["dropped"] += 1
            return ""
        state.seen_images.add(index)

        info = self.recorder.images[index]
        clip = info.clip or (state.clip_markers[-1] if state.clip_markers else None)
        layer = info.layer
        n = self._n

        if layer.repeat == BackgroundRepeat.NO_REPEAT:
            bounds = self._bounds(layer.origin_box.intersect(layer.clip_box), clip)
            if bounds.is_empty():
                state.stats["dropped"] += 1
                return ""
            clip_id = f"image-clip-{index}"
            state.defs[clip_id] = self.builder.clip_path(clip_id, layer.clip_box, layer.border_radius)
            href = self.images.data_url(info.url)
            origin = layer.origin_box
            attrs = build_attributes(
                {
                    "x": n(origin.x),
                    "y": n(origin.y),
                    "width": n(origin.width),
                    "height": n(origin.height),
                    "preserveAspectRatio": "none",
                    "clip-path": f"url(#{clip_id})",
                    "opacity": fmt(info.opacity, 4) if info.opacity < 1.0 else None,
                }
            )
            state.stats["resolved"] += 1
            return f'<image{attrs} href="{href}"/>'

        bounds = self._bounds(self._tile_band(info), clip)
        if bounds.is_empty():
            state.stats["dropped"] += 1
            return ""
        clip_id = f"image-clip-{index}"
        state.defs[clip_id] = self.builder.clip_path(clip_id, bounds)
        element.set_fill(f"url(#image-{index})")
        element.attrs["clip-path"] = f"url(#{clip_id})"
        if info.opacity < 1.0:
            element.attrs["opacity"] = fmt(info.opacity, 4)
        state.stats["resolved"] += 1
        return element.render()

    @staticmethod
    def _tile_band(info: ImageDrawInfo) -> Position:
        """Area a repeating image may cover inside its clip box."""
        layer = info.layer
        clip_box, origin = layer.clip_box, layer.origin_box
        if layer.repeat == BackgroundRepeat.REPEAT_X:
            return clip_box.intersect(
                Position(x=clip_box.x, y=origin.y, width=clip_box.width, height=origin.height)
            )
        if layer.repeat == BackgroundRepeat.REPEAT_Y:
            return clip_box.intersect(
                Position(x=origin.x, y=clip_box.y, width=origin.width, height=clip_box.height)
            )
        return clip_box

    @staticmethod
    def _bounds(area: Position, clip: Optional[ClipInfo]) -> Position:
        return area.intersect(clip.pos) if clip is not None else area

    def _rewrite_inline_svg(self, index: int, state: _PassState) -> str:
        """Nested <svg> element placed over the placeholder box."""
        info = self.recorder.inline_svgs[index]
        markup = _XML_DECL_RE.sub("", info.markup).strip()
        n = self._n
        placement = build_attributes(
            {
                "x": n(info.pos.x),
                "y": n(info.pos.y),
                "width": n(info.pos.width),
                "height": n(info.pos.height),
                "opacity": fmt(info.opacity, 4) if info.opacity < 1.0 else None,
            }
        )
        state.stats["resolved"] += 1

        root = _SVG_OPEN_RE.match(markup)
        if root is None:
            return f"<svg{placement}>{markup}</svg>"

        attrs = dict(_ATTR_RE.findall(root.group(0)))
        kept = {key: value for key, value in attrs.items() if key not in _PLACEMENT_ATTRS}
        # Intrinsic size becomes the viewBox so the content scales to the box.
        if "viewBox" not in kept and _is_number(attrs.get("width")) and _is_number(attrs.get("height")):
            kept["viewBox"] = f"0 0 {attrs['width']} {attrs['height']}"
        rest = "".join(f' {key}="{value}"' for key, value in kept.items())
        closing = "/>" if root.group(0).endswith("/>") else ">"
        return f"<svg{placement}{rest}{closing}{markup[root.end():]}"

    def _consume_marker(self, kind: TagKind, index: int, state: _PassState) -> str:
        if kind is MagicTag.CLIP_PUSH:
            state.clip_markers.append(self.recorder.clips[index])
        elif kind is MagicTag.CLIP_POP:
            if (False, MagicTag.CLIP_PUSH.value, index) in state.dropped_scopes:
                return ""
            if state.clip_markers:
                state.clip_markers.pop()
        elif kind is MagicTag.FILTER_PUSH:
            state.open_filters += 1
            return f'<g filter="url(#css-filter-{index})">'
        elif kind is MagicTag.FILTER_POP:
            if (False, MagicTag.FILTER_PUSH.value, index) in state.dropped_scopes:
                return ""
            if state.open_filters:
                state.open_filters -= 1
                return "</g>"
        # Layer opacity is already baked into every record and real paint.
        return ""

    # Cleanup and output

    def _drop_degenerate(self, match: "re.Match[str]", state: _PassState) -> str:
        if match.group(1) or not match.group(4) or match.group(2) not in _SHAPES:
            return match.group(0)
        attrs = dict(_ATTR_RE.findall(match.group(3)))
        if "d" in attrs and not attrs["d"].strip():
            state.stats["dropped"] += 1
            return ""
        for name in ("width", "height"):
            if name in attrs and _is_zero(attrs[name]):
                state.stats["dropped"] += 1
                return ""
        return match.group(0)

    def _insert_defs(self, body: str, definitions: List[str]) -> str:
        if not definitions:
            return body
        content = "".join(definitions)

        defs_match = _DEFS_OPEN_RE.search(body)
        if defs_match is not None:
            return body[: defs_match.end()] + content + body[defs_match.end() :]

        svg_match = _SVG_OPEN_RE.search(body)
        if svg_match is None:
            self.logger.warning("No root element found, definitions prepended")
            return f"<defs>{content}</defs>{body}"
        return body[: svg_match.end()] + f"<defs>{content}</defs>" + body[svg_match.end() :]

    def _n(self, value: float) -> str:
        return fmt(value, self.precision)


def _is_number(value: Optional[str]) -> bool:
    if value is None:
        return False
    try:
        float(value)
        return True
    except ValueError:
        return False


def _is_zero(value: str) -> bool:
    try:
        return float(value.strip().rstrip("px")) == 0.0
    except ValueError:
        return False


def resolve_markup(
    markup: str,
    recorder: EffectRecorder,
    images: Optional[ImageStore] = None,
    settings: Optional[Settings] = None,
) -> str:
    """
    Resolve tagged markup.

    Args:
        markup: Serialized canvas output
        recorder: Side tables of the same render pass
        images: Image resources referenced by image records
        settings: Renderer settings

    Returns:
        Final SVG document
    """
    return VectorResolver(recorder, images, settings).resolve(markup)
