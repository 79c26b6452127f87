"""
Scene Module
============

Scene documents describe the laid-out box tree produced by the layout
engine, together with the paint instructions of every box.

Components:
- css_values: Color, length and shadow value parsing
- parser: JSON and YAML scene loading with schema validation
"""
