"""
Shared Utilities
===============

Common utilities and helper functions used across the application.

Modules:
- markup: Number formatting, XML escaping and rounded-rectangle paths
"""
