"""
Document Painter
================

Walks the laid-out box tree and issues adapter calls in CSS paint order.
"""

from typing import Any

from svgfx.config.logging import get_logger
from svgfx.core.rendering.canvas_adapter import TaggingCanvas
from svgfx.models.schemas import Background, PaintNode, SceneDocument

logger = get_logger(__name__)


class DocumentPainter:
    """Paints scene documents onto a canvas adapter."""

    def __init__(self) -> None:
        self.logger: Any = logger.bind(component="painter")  # structlog.BoundLoggerBase
        self.nodes_painted = 0

    def paint(self, document: SceneDocument, adapter: TaggingCanvas) -> None:
        self.nodes_painted = 0
        for node in document.nodes:
            self.paint_node(node, adapter)
        self.logger.debug("Document painted", nodes=self.nodes_painted)

    def paint_node(self, node: PaintNode, adapter: TaggingCanvas) -> None:
        """
        Paint one box and its descendants.

        Order: filter and opacity scopes, outer shadows, backgrounds, inset
        shadows, border, inline SVG content, then the overflow clip around
        children and text.
        """
        self.nodes_painted += 1
        if node.box.is_empty() and not node.children:
            return

        has_filter = bool(node.filters)
        has_layer = node.opacity < 1.0

        if has_filter:
            adapter.push_filter(node.filters)
        if has_layer:
            adapter.push_layer(node.opacity)

        adapter.draw_box_shadow(node.box_shadows, node.box, node.border_radius, inset=False)

        # Bottom layer first: the first declared background is on top.
        for background in reversed(node.backgrounds):
            self._paint_background(background, adapter)

        adapter.draw_box_shadow(node.box_shadows, node.box, node.border_radius, inset=True)
        adapter.draw_borders(node.box, node.border_radius, node.border)
        if node.inline_svg:
            adapter.draw_inline_svg(node.inline_svg, node.box)

        if node.overflow_clip:
            adapter.set_clip(node.box, node.border_radius)

        for child in node.children:
            self.paint_node(child, adapter)
        for run in node.text_runs:
            adapter.draw_text(run)

        if node.overflow_clip:
            adapter.del_clip()
        if has_layer:
            adapter.pop_layer()
        if has_filter:
            adapter.pop_filter()

    def _paint_background(self, background: Background, adapter: TaggingCanvas) -> None:
        layer = background.layer
        if background.color is not None:
            adapter.draw_solid_fill(layer.clip_box, layer.border_radius, background.color)
        if background.image_url:
            adapter.draw_image(background.image_url, layer)
        if background.linear is not None:
            adapter.draw_linear_gradient(layer, background.linear)
        if background.radial is not None:
            adapter.draw_radial_gradient(layer, background.radial)
        if background.conic is not None:
            adapter.draw_conic_gradient(layer, background.conic)
