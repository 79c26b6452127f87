"""
Effect Tagging
==============

Building blocks of the deferred effect pipeline.

Components:
- magic: Magic color codec for side-table references
- tables: Per-effect side tables and the effect recorder
- composition: Clip and opacity scope stack
"""
