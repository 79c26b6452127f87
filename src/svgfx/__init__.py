"""
svgfx
=====

Vector (SVG) export for laid-out HTML/CSS documents.

The vector backend can only fill flat shapes, so paint effects it cannot
express are deferred: the canvas adapter paints placeholder shapes whose
fill color encodes a side-table reference, and the resolver rewrites those
placeholders into filters, gradients, clip paths and embedded images once
the markup has been serialized.

This package provides:
- Magic color codec and per-effect side tables
- Composition stack for nested clip and opacity scopes
- Canvas adapter, box-tree painter and SVG canvas backend
- Markup resolver producing a self-contained SVG document
- JSON/YAML scene loading
"""

__version__ = "1.0.0"
__author__ = "svgfx Team"
