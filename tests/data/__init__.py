"""
Test Data Package
=================

Sample scene documents for parser and render pipeline tests.
"""

from .sample_scenes import (
    SHADOW_SCENE,
    TEXT_SHADOW_SCENE,
    CONIC_SCENE,
    KITCHEN_SINK_SCENE,
    SCENE_YAML,
)
