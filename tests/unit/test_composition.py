"""
Unit Tests for Composition Stack
================================
"""

import pytest

from svgfx.core.effects.composition import CompositionError
from svgfx.models.schemas import BorderRadii, Position


class TestCompositionStack:
    """Test clip and opacity scopes."""

    def test_empty_stack(self, stack):
        assert stack.current_opacity == 1.0
        assert stack.current_clip is None
        assert stack.is_balanced()

    def test_opacity_multiplies(self, stack):
        stack.push_opacity(0.5)
        stack.push_opacity(0.5)
        assert stack.current_opacity == pytest.approx(0.25)
        stack.pop_opacity()
        assert stack.current_opacity == pytest.approx(0.5)

    def test_innermost_clip_wins(self, stack):
        outer = Position(x=0, y=0, width=100, height=100)
        inner = Position(x=10, y=10, width=20, height=20)
        stack.push_clip(outer)
        clip = stack.push_clip(inner, BorderRadii.model_validate(4))
        assert stack.current_clip == clip
        assert stack.current_clip.radii.top_left_x == 4
        assert stack.clip_depth == 2
        assert stack.pop_clip().pos == inner
        assert stack.current_clip.pos == outer

    def test_push_clip_defaults_radii(self, stack):
        clip = stack.push_clip(Position(width=10, height=10))
        assert clip.radii.is_zero()

    def test_pop_without_push(self, stack):
        with pytest.raises(CompositionError):
            stack.pop_clip()
        with pytest.raises(CompositionError):
            stack.pop_opacity()

    def test_opacity_range(self, stack):
        with pytest.raises(CompositionError):
            stack.push_opacity(1.5)

    def test_balance(self, stack):
        stack.push_opacity(0.5)
        assert not stack.is_balanced()
        assert stack.layer_depth == 1
        stack.pop_opacity()
        assert stack.is_balanced()
