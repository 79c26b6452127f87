"""
Unit Tests for Definition Builder
=================================

Stop normalization and the <defs> fragments built for each effect kind.
"""

import pytest

from svgfx.core.rendering.definitions import DefinitionBuilder, normalize_stops, sample_stops
from svgfx.models.effects import FilterInfo, GradientInfo, GradientKind, TextShadowInfo
from svgfx.models.schemas import (
    BackgroundLayer,
    Color,
    ColorStop,
    ConicGradient,
    FilterFunction,
    FilterName,
    LinearGradient,
    Position,
    RadialGradient,
    Shadow,
)

from tests.utils.assertions import assert_normalized_offsets, assert_valid_svg
from tests.utils.data_generators import EffectRecordGenerator
from tests.utils.helpers import extract_block, find_elements, parse_attributes

RED = Color(r=255)
BLUE = Color(b=255)


def _wrap(fragment: str) -> str:
    return f'<svg xmlns="http://www.w3.org/2000/svg"><defs>{fragment}</defs></svg>'


def _layer(width: float = 100, height: float = 100) -> BackgroundLayer:
    return BackgroundLayer.model_validate({"border_box": {"width": width, "height": height}})


@pytest.fixture
def builder(test_settings):
    return DefinitionBuilder(test_settings)


class TestNormalizeStops:
    """Test gradient stop offset resolution."""

    def test_missing_offsets_are_spread(self):
        stops = [ColorStop(color=RED), ColorStop(color=BLUE), ColorStop(color=RED)]
        assert [offset for offset, _ in normalize_stops(stops)] == [0.0, 0.5, 1.0]

    def test_interior_run(self):
        stops = [ColorStop(color=RED, offset=0.2)] + [ColorStop(color=BLUE)] * 3 + [
            ColorStop(color=RED, offset=1.0)
        ]
        offsets = [offset for offset, _ in normalize_stops(stops)]
        assert offsets == pytest.approx([0.2, 0.4, 0.6, 0.8, 1.0])

    def test_offsets_are_clamped_and_monotonic(self):
        stops = [
            ColorStop(color=RED, offset=-0.5),
            ColorStop(color=BLUE, offset=0.6),
            ColorStop(color=RED, offset=0.3),
            ColorStop(color=BLUE, offset=1.7),
        ]
        offsets = [offset for offset, _ in normalize_stops(stops)]
        assert offsets == [0.0, 0.6, 0.6, 1.0]

    def test_range_normalization(self):
        stops = [ColorStop(color=RED, offset=0), ColorStop(color=BLUE, offset=2)]
        offsets = [offset for offset, _ in normalize_stops(stops, normalize_range=True)]
        assert offsets == [0.0, 1.0]
        stops = [ColorStop(color=RED, offset=1), ColorStop(color=BLUE, offset=4)]
        offsets = [offset for offset, _ in normalize_stops(stops, normalize_range=True)]
        assert offsets == [0.25, 1.0]

    def test_single_and_empty(self):
        assert normalize_stops([]) == []
        assert normalize_stops([ColorStop(color=RED)]) == [(0.0, RED)]

    def test_sample(self):
        stops = normalize_stops([ColorStop(color=RED), ColorStop(color=Color(r=0, a=0))])
        color, alpha = sample_stops(stops, 0.5)
        assert color.r == 128
        assert alpha == pytest.approx(0.5)
        assert sample_stops(stops, 2.0)[0].a == 255


class TestShadowDefinitions:
    """Test box shadow and text shadow filters."""

    def test_outer_shadow_filter(self, builder):
        info = EffectRecordGenerator.shadow(blur=4)
        markup = builder.box_shadow_filter("box-shadow-1", info)
        assert_valid_svg(_wrap(markup))
        assert markup.startswith('<filter id="box-shadow-1" filterUnits="userSpaceOnUse"')
        assert 'stdDeviation="2"' in markup
        assert "feMorphology" not in markup
        assert "SourceGraphic" not in markup

    def test_spread_uses_morphology(self, builder):
        markup = builder.box_shadow_filter("s", EffectRecordGenerator.shadow(spread=3))
        assert 'operator="dilate" radius="3"' in markup
        markup = builder.box_shadow_filter("s", EffectRecordGenerator.shadow(spread=-2))
        assert 'operator="erode" radius="2"' in markup

    def test_inset_shadow_filter(self, builder):
        markup = builder.box_shadow_filter("s", EffectRecordGenerator.shadow(inset=True))
        assert 'tableValues="1 0"' in markup
        assert 'in2="SourceAlpha"' in markup
        assert_valid_svg(_wrap(markup))

    def test_flood_opacity_includes_layer_opacity(self, builder):
        markup = builder.box_shadow_filter("s", EffectRecordGenerator.shadow(opacity=0.5))
        flood = parse_attributes(find_elements(markup, "feFlood")[0])
        assert flood["flood-opacity"] == "0.25"

    def test_region_covers_blur_and_offset(self, builder):
        info = EffectRecordGenerator.shadow(x=5, blur=4, spread=2)
        region = builder.shadow_region(info)
        margin = 4 * 1.5 + 2 + 5 + 1
        assert region.x == info.box_pos.x - margin
        assert region.width == info.box_pos.width + 2 * margin

    def test_shadow_clip(self, builder):
        markup = builder.shadow_clip("box-shadow-clip-1", EffectRecordGenerator.shadow())
        assert 'clip-rule="evenodd"' in markup
        assert "M10,10 L110,10" in markup
        assert_valid_svg(_wrap(markup))

    def test_text_shadow_merge_order(self, builder):
        info = TextShadowInfo(
            shadows=(Shadow(x=1, y=1, blur=2), Shadow(x=2, y=2, blur=4)),
            text_color=Color(r=51, g=51, b=51),
        )
        markup = builder.text_shadow_filter("text-shadow-1", info)
        assert (
            '<feMerge><feMergeNode in="shadow1"/><feMergeNode in="shadow0"/>'
            '<feMergeNode in="SourceGraphic"/></feMerge>'
        ) in markup
        assert_valid_svg(_wrap(markup))

    def test_text_alpha_applies_to_glyphs_only(self, builder):
        info = TextShadowInfo(
            shadows=(Shadow(blur=4),),
            text_color=Color(a=0),
            opacity=0.5,
        )
        markup = builder.text_shadow_filter("text-shadow-1", info)
        assert '<feFlood flood-color="#000000" flood-opacity="0.5" result="flood0"/>' in markup
        assert (
            '<feComponentTransfer in="SourceGraphic" result="glyphs">'
            '<feFuncA type="linear" slope="0"/></feComponentTransfer>'
        ) in markup
        assert '<feMerge><feMergeNode in="shadow0"/><feMergeNode in="glyphs"/></feMerge>' in markup
        assert_valid_svg(_wrap(markup))


class TestGradientDefinitions:
    """Test gradient definitions."""

    def test_linear(self, builder):
        params = LinearGradient(
            start_x=0, start_y=0, end_x=100, end_y=0,
            stops=(ColorStop(color=RED), ColorStop(color=Color(b=255, a=0))),
        )
        info = GradientInfo(kind=GradientKind.LINEAR, layer=_layer(), params=params, opacity=0.5)
        markup = builder.linear_gradient("linear-gradient-1", info)
        stops = [parse_attributes(tag) for tag in find_elements(markup, "stop")]
        assert [stop["offset"] for stop in stops] == ["0", "1"]
        assert stops[0]["stop-opacity"] == "0.5"
        assert stops[1]["stop-opacity"] == "0"
        assert 'x2="100"' in markup

    def test_elliptical_radial(self, builder):
        params = RadialGradient(
            center_x=50, center_y=50, radius_x=50, radius_y=25,
            stops=(ColorStop(color=RED), ColorStop(color=BLUE)),
        )
        info = GradientInfo(kind=GradientKind.RADIAL, layer=_layer(), params=params)
        markup = builder.radial_gradient("radial-gradient-1", info)
        assert "scale(1 0.5)" in markup
        assert_valid_svg(_wrap(markup))

    def test_circular_radial_has_no_transform(self, builder):
        params = RadialGradient(
            center_x=50, center_y=50, radius_x=20, radius_y=20, stops=(ColorStop(color=RED),)
        )
        info = GradientInfo(kind=GradientKind.RADIAL, layer=_layer(), params=params)
        assert "gradientTransform" not in builder.radial_gradient("r", info)

    def test_conic(self, builder, test_settings):
        params = ConicGradient(
            center_x=50, center_y=50,
            stops=(ColorStop(color=RED), ColorStop(color=Color(g=255)), ColorStop(color=BLUE)),
        )
        info = GradientInfo(kind=GradientKind.CONIC, layer=_layer(), params=params)
        markup = builder.conic_gradient("conic-gradient-1", info)
        assert_valid_svg(_wrap(markup))

        stops_block = extract_block(markup, '<linearGradient id="conic-gradient-1-stops"', "</linearGradient>")
        offsets = [float(parse_attributes(tag)["offset"]) for tag in find_elements(stops_block, "stop")]
        assert len(offsets) == 3
        assert_normalized_offsets(offsets)

        pattern = extract_block(markup, '<pattern id="conic-gradient-1"', "</pattern>")
        assert len(find_elements(pattern, "path")) == test_settings.conic_sweep_segments

    def test_conic_first_wedge_starts_at_twelve(self, builder):
        params = ConicGradient(center_x=50, center_y=50, stops=(ColorStop(color=RED),))
        info = GradientInfo(kind=GradientKind.CONIC, layer=_layer(), params=params)
        markup = builder.conic_gradient("c", info)
        first = parse_attributes(find_elements(markup, "path")[0])["d"]
        # Radius reaches the far corner: hypot(50, 50) + 1.
        assert first.startswith("M50,50 L50,-21.71 ")


class TestOtherDefinitions:
    """Test filter chains, clips and patterns."""

    def test_css_filter_chain(self, builder):
        info = FilterInfo(
            functions=(
                FilterFunction(name=FilterName.BLUR, amount=2),
                FilterFunction(name=FilterName.OPACITY, amount=0.5),
            )
        )
        markup = builder.css_filter("css-filter-1", info)
        assert '<feGaussianBlur in="SourceGraphic" stdDeviation="2" result="step0"/>' in markup
        assert '<feComponentTransfer in="step0" result="step1">' in markup
        assert_valid_svg(_wrap(markup))

    def test_drop_shadow_without_shadow_is_skipped(self, builder):
        info = FilterInfo(functions=(FilterFunction(name=FilterName.DROP_SHADOW),))
        assert "feDropShadow" not in builder.css_filter("f", info)

    def test_clip_path(self, builder):
        markup = builder.clip_path("image-clip-1", Position(width=10, height=5))
        assert markup == (
            '<clipPath id="image-clip-1" clipPathUnits="userSpaceOnUse">'
            '<path d="M0,0 L10,0 L10,5 L0,5 L0,0 Z"/></clipPath>'
        )

    def test_image_pattern(self, builder):
        markup = builder.image_pattern("image-1", "data:image/png;base64,AA==", Position(width=8, height=4))
        assert 'patternUnits="userSpaceOnUse"' in markup
        assert 'href="data:image/png;base64,AA=="' in markup
        assert_valid_svg(_wrap(markup))
