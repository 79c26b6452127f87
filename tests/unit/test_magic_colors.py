"""
Unit Tests for Magic Color Codec
================================

Bit packing of tag references into fill colors and the escaping of real
paint out of the tag space.
"""

import pytest

from svgfx.core.effects.magic import (
    MAX_INDEX,
    NOT_MAGIC,
    MagicTag,
    MagicTagExtended,
    decode,
    decode_fill,
    encode,
    escape_paint_color,
    parse_fill,
)
from svgfx.models.schemas import Color


class TestEncode:
    """Test encoding tags into colors."""

    @pytest.mark.parametrize(
        "kind,index,expected",
        [
            (MagicTag.SHADOW, 1, "#000101"),
            (MagicTag.TEXT_SHADOW, 1, "#000201"),
            (MagicTag.TEXT_DRAW, 1, "#000301"),
            (MagicTag.CLIP_PUSH, 1, "#000801"),
            (MagicTag.CLIP_POP, 1, "#000901"),
            (MagicTag.LAYER_PUSH, 128, "#000680"),
            (MagicTagExtended.LINEAR_GRADIENT, 1, "#010301"),
            (MagicTagExtended.INLINE_SVG, 1, "#010401"),
        ],
    )
    def test_known_encodings(self, kind, index, expected):
        """Test the hex form of common tags."""
        assert encode(kind, index).to_hex() == expected

    def test_encoded_colors_are_opaque(self):
        assert encode(MagicTag.SHADOW, 5).a == 255

    def test_max_index_extended(self):
        """Test the largest index of an extended tag."""
        color = encode(MagicTagExtended.IMAGE_DRAW, MAX_INDEX)
        assert (color.r, color.g, color.b) == (253, 0, 255)

    def test_high_index_bits_land_in_red(self):
        color = encode(MagicTag.SHADOW, 0x100)
        assert color.r == 0b100
        assert color.b == 0

    @pytest.mark.parametrize("index", [-1, MAX_INDEX + 1])
    def test_index_out_of_range(self, index):
        with pytest.raises(ValueError):
            encode(MagicTag.SHADOW, index)


class TestDecode:
    """Test decoding colors back into tags."""

    def test_decode_tag(self):
        tag = decode(0, 1, 1)
        assert tag.is_magic is True
        assert tag.is_extended is False
        assert tag.kind is MagicTag.SHADOW
        assert tag.index == 1

    def test_decode_extended_tag(self):
        tag = decode(253, 0, 255)
        assert tag.is_extended is True
        assert tag.kind is MagicTagExtended.IMAGE_DRAW
        assert tag.index == MAX_INDEX

    def test_same_enumerant_in_both_spaces(self):
        """Test that the discriminant separates tags sharing an enumerant."""
        plain = decode(*_rgb(encode(MagicTag.SHADOW, 7)))
        extended = decode(*_rgb(encode(MagicTagExtended.CONIC_GRADIENT, 7)))
        assert plain.kind is MagicTag.SHADOW
        assert extended.kind is MagicTagExtended.CONIC_GRADIENT

    @pytest.mark.parametrize("red", [0b10, 0b11, 0xFE, 0xFF])
    def test_real_paint_is_not_magic(self, red):
        assert decode(red, 1, 1) == NOT_MAGIC

    def test_unknown_enumerant_has_no_kind(self):
        tag = decode(0, 200, 1)
        assert tag.is_magic is True
        assert tag.kind is None

    @pytest.mark.parametrize("kind", list(MagicTag) + list(MagicTagExtended))
    @pytest.mark.parametrize("index", [1, 255, 256, MAX_INDEX])
    def test_every_kind_decodes_to_itself(self, kind, index):
        tag = decode(*_rgb(encode(kind, index)))
        assert tag.kind is kind
        assert tag.index == index


class TestEscapePaint:
    """Test escaping real paint out of the tag space."""

    def test_black_is_escaped(self):
        escaped = escape_paint_color(Color(r=0, g=1, b=1))
        assert escaped.r == 2
        assert decode(escaped.r, escaped.g, escaped.b).is_magic is False

    def test_already_escaped_color_is_unchanged(self):
        color = Color(r=255, g=10, b=20, a=100)
        assert escape_paint_color(color) is color

    def test_red_shift_is_bounded(self):
        for red in range(256):
            escaped = escape_paint_color(Color(r=red))
            assert 0 <= escaped.r - red <= 2

    def test_alpha_is_preserved(self):
        assert escape_paint_color(Color(r=0, a=64)).a == 64


class TestDecodeFill:
    """Test reading fill attribute values."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("#000101", (0, 1, 1)),
            ("#FFF", (255, 255, 255)),
            ("rgb(1, 2, 3)", (1, 2, 3)),
            ("rgba(1,2,3,0.5)", (1, 2, 3)),
        ],
    )
    def test_parse_fill(self, value, expected):
        assert parse_fill(value) == expected

    @pytest.mark.parametrize("value", ["none", "url(#grad1)", "currentColor", "#12345", "rgb(300,0,0)"])
    def test_non_color_fills(self, value):
        assert parse_fill(value) is None
        assert decode_fill(value) == NOT_MAGIC

    def test_decode_fill(self):
        assert decode_fill("#000201").kind is MagicTag.TEXT_SHADOW


def _rgb(color):
    return color.r, color.g, color.b
