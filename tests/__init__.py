"""
Test Suite
==========

Test suite matching the src/svgfx/ directory structure.

Test Categories:
- unit: Unit tests for individual components
- integration: End-to-end render pipeline tests
"""
