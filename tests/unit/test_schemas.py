"""
Unit Tests for Models
=====================

Scene document models and effect records.
"""

import pytest
from pydantic import ValidationError

from svgfx.models.effects import GradientInfo, GradientKind
from svgfx.models.schemas import (
    BackgroundLayer,
    BorderRadii,
    Color,
    ColorStop,
    LinearGradient,
    PaintNode,
    Position,
    RadialGradient,
    SceneDocument,
    TextRun,
)

from tests.data.sample_scenes import KITCHEN_SINK_SCENE


class TestColor:
    """Test the color value type."""

    def test_from_css_string(self):
        color = Color.model_validate("rgba(255, 0, 0, 0.5)")
        assert (color.r, color.g, color.b, color.a) == (255, 0, 0, 128)
        assert color.to_hex() == "#ff0000"

    def test_from_sequence(self):
        assert Color.model_validate((1, 2, 3)).a == 255
        assert Color.model_validate([1, 2, 3, 4]).a == 4

    def test_bad_sequence(self):
        with pytest.raises(ValidationError):
            Color.model_validate((1, 2))

    def test_channel_range(self):
        with pytest.raises(ValidationError):
            Color(r=256)

    def test_values_are_hashable(self):
        assert len({Color(r=1), Color(r=1), Color(r=2)}) == 2

    def test_alpha(self):
        assert Color(a=0).alpha == 0.0
        assert Color().alpha == 1.0


class TestPosition:
    """Test box geometry."""

    def test_intersect(self):
        a = Position(x=0, y=0, width=10, height=10)
        b = Position(x=5, y=5, width=10, height=10)
        assert a.intersect(b) == Position(x=5, y=5, width=5, height=5)

    def test_disjoint_intersection_is_empty(self):
        a = Position(x=0, y=0, width=10, height=10)
        b = Position(x=20, y=20, width=10, height=10)
        assert a.intersect(b).is_empty()

    def test_negative_size_rejected(self):
        with pytest.raises(ValidationError):
            Position(width=-1)


class TestBorderRadii:
    """Test corner radii."""

    def test_uniform(self):
        radii = BorderRadii.model_validate("4px")
        assert radii.bottom_left_y == 4
        assert not radii.is_zero()

    def test_adjusted_clamps(self):
        radii = BorderRadii.model_validate(2).adjusted(-5)
        assert radii.is_zero()


class TestBackgroundLayer:
    def test_boxes_default_to_border_box(self):
        layer = BackgroundLayer.model_validate({"border_box": {"width": 10, "height": 5}})
        assert layer.clip_box == layer.border_box
        assert layer.origin_box == layer.border_box


class TestSceneModels:
    """Test the scene document tree."""

    def test_aliases(self):
        node = PaintNode.model_validate(
            {
                "box": {"width": 10, "height": 10},
                "borderRadius": 3,
                "overflowClip": True,
                "boxShadows": "1px 1px red",
            }
        )
        assert node.overflow_clip is True
        assert node.border_radius.top_left_x == 3
        assert node.box_shadows[0].color == Color(r=255)

    def test_text_run_shadow_string(self):
        run = TextRun.model_validate(
            {
                "text": "Hi",
                "position": {"width": 10, "height": 10},
                "fontSize": 12,
                "shadows": "1px 1px 2px black",
            }
        )
        assert run.font_size == 12
        assert run.shadows[0].blur == 2

    def test_kitchen_sink(self):
        document = SceneDocument.model_validate(KITCHEN_SINK_SCENE)
        panel = document.nodes[0]
        assert len(panel.children) == 2
        assert panel.children[0].backgrounds[0].radial is not None
        assert panel.text_runs[1].outline is not None

    def test_document_size_limit(self):
        with pytest.raises(ValidationError):
            SceneDocument(width=5000, height=10)


class TestGradientInfo:
    """Test the gradient record consistency check."""

    def _layer(self):
        return BackgroundLayer.model_validate({"border_box": {"width": 10, "height": 10}})

    def test_matching_params(self):
        params = LinearGradient(
            start_x=0, start_y=0, end_x=10, end_y=0, stops=(ColorStop(color=Color()),)
        )
        info = GradientInfo(kind=GradientKind.LINEAR, layer=self._layer(), params=params)
        assert info.opacity == 1.0

    def test_mismatched_params(self):
        params = RadialGradient(
            center_x=5, center_y=5, radius_x=5, radius_y=5, stops=(ColorStop(color=Color()),)
        )
        with pytest.raises(ValidationError):
            GradientInfo(kind=GradientKind.LINEAR, layer=self._layer(), params=params)
