"""
Rendering Module
================

Painting scene documents and exporting SVG.

Components:
- svg_canvas: Primitive vector canvas backend
- canvas_adapter: Tagging/direct paint callback surface
- painter: Box-tree traversal in paint order
- images: Image store and PNG re-encoding
- definitions: Jinja2 builder for filters, gradients, clips and patterns
- resolver: Post-processing of tagged markup
- svg_generator: Render sessions and generator factory
"""
