"""
Test Configuration
==================

Pytest configuration with fixtures shared by unit and integration tests.
Provides test settings, render pass components and sample documents.
"""

from typing import Generator
from unittest.mock import patch

import pytest
from pydantic_settings import SettingsConfigDict

from svgfx.config.settings import Settings
from svgfx.core.effects.composition import CompositionStack
from svgfx.core.effects.tables import EffectRecorder
from svgfx.core.rendering.canvas_adapter import TaggingCanvas
from svgfx.core.rendering.images import ImageStore
from svgfx.core.rendering.svg_canvas import SvgCanvas
from svgfx.models.schemas import Position, SceneDocument

from tests.data.sample_scenes import (
    CONIC_SCENE,
    KITCHEN_SINK_SCENE,
    SHADOW_SCENE,
    TEXT_SHADOW_SCENE,
)
from tests.utils.helpers import make_png_bytes


# Test settings override
class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    debug: bool = True
    log_level: str = "DEBUG"
    conic_sweep_segments: int = 12  # Fewer wedges keep fixtures readable

    model_config = SettingsConfigDict(env_file=".env.test", env_prefix="SVGFX_")


@pytest.fixture(scope="session")
def test_settings() -> TestSettings:
    """Test settings fixture."""
    return TestSettings()


@pytest.fixture(scope="session", autouse=True)
def override_settings(test_settings: TestSettings) -> Generator[TestSettings, None, None]:
    """Override application settings for testing."""
    with patch("svgfx.config.settings.settings", test_settings):
        yield test_settings


# Render pass components


@pytest.fixture
def recorder() -> EffectRecorder:
    return EffectRecorder()


@pytest.fixture
def stack() -> CompositionStack:
    return CompositionStack()


@pytest.fixture
def canvas() -> SvgCanvas:
    """A 200x100 SVG canvas."""
    return SvgCanvas(200, 100)


@pytest.fixture
def png_bytes() -> bytes:
    """A 2x2 red PNG."""
    return make_png_bytes()


@pytest.fixture
def image_store(test_settings: TestSettings, png_bytes: bytes) -> ImageStore:
    """Image store holding the sample PNG under "tile.png"."""
    store = ImageStore(test_settings)
    store.add("tile.png", png_bytes)
    return store


@pytest.fixture
def adapter(
    canvas: SvgCanvas,
    recorder: EffectRecorder,
    stack: CompositionStack,
    image_store: ImageStore,
    test_settings: TestSettings,
) -> TaggingCanvas:
    """Tagging-mode adapter over the shared canvas and side tables."""
    return TaggingCanvas(
        canvas,
        recorder=recorder,
        stack=stack,
        images=image_store,
        settings=test_settings,
        tagging=True,
        viewport=Position(width=200, height=100),
    )


@pytest.fixture
def direct_adapter(
    canvas: SvgCanvas, image_store: ImageStore, test_settings: TestSettings
) -> TaggingCanvas:
    """Direct-mode adapter painting everything on the canvas."""
    return TaggingCanvas(
        canvas,
        images=image_store,
        settings=test_settings,
        tagging=False,
        viewport=Position(width=200, height=100),
    )


# Sample documents


@pytest.fixture
def shadow_document() -> SceneDocument:
    return SceneDocument.model_validate(SHADOW_SCENE)


@pytest.fixture
def text_shadow_document() -> SceneDocument:
    return SceneDocument.model_validate(TEXT_SHADOW_SCENE)


@pytest.fixture
def conic_document() -> SceneDocument:
    return SceneDocument.model_validate(CONIC_SCENE)


@pytest.fixture
def kitchen_sink_document() -> SceneDocument:
    """Document exercising every effect kind."""
    return SceneDocument.model_validate(KITCHEN_SINK_SCENE)
