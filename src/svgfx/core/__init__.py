"""
Core Business Logic
==================

Core modules for painting scene documents and exporting SVG.

Modules:
- effects: Magic color codec, side tables and composition stack
- scene: Scene document loading and CSS value helpers
- rendering: Canvas backend, canvas adapter, painter and markup resolver
"""
