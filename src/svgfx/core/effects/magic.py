"""
Magic Color Codec
=================

Encodes side-table references as opaque 24-bit fill colors.

Bit layout::

    R[1:0]  discriminant  00 = tag, 01 = extended tag, 10/11 = real paint
    R[7:2]  index bits 13..8
    G       tag enumerant
    B       index bits 7..0

Index 0 is reserved, so each kind addresses at most 16,383 records.
All functions here are pure.
"""

from typing import NamedTuple, Optional, Union
from enum import IntEnum
import re

from svgfx.models.schemas import Color

INDEX_BITS = 14
MAX_INDEX = (1 << INDEX_BITS) - 1

DISCRIMINANT_MASK = 0b11
DISCRIMINANT_TAG = 0b00
DISCRIMINANT_EXTENDED = 0b01
PAINT_ESCAPE_BIT = 0b10


class MagicTag(IntEnum):
    """Tag enumerants (discriminant 00)."""

    SHADOW = 1
    TEXT_SHADOW = 2
    TEXT_DRAW = 3
    FILTER_PUSH = 4
    FILTER_POP = 5
    LAYER_PUSH = 6
    LAYER_POP = 7
    CLIP_PUSH = 8
    CLIP_POP = 9


class MagicTagExtended(IntEnum):
    """Extended tag enumerants (discriminant 01)."""

    IMAGE_DRAW = 0
    CONIC_GRADIENT = 1
    RADIAL_GRADIENT = 2
    LINEAR_GRADIENT = 3
    INLINE_SVG = 4


TagKind = Union[MagicTag, MagicTagExtended]


class DecodedTag(NamedTuple):
    """Result of decoding an RGB triple."""

    is_magic: bool
    is_extended: bool
    tag_value: int
    index: int

    @property
    def kind(self) -> Optional[TagKind]:
        """The tag enum member, or None for real paint and unknown enumerants."""
        if not self.is_magic:
            return None
        enum_type = MagicTagExtended if self.is_extended else MagicTag
        try:
            return enum_type(self.tag_value)
        except ValueError:
            return None


NOT_MAGIC = DecodedTag(False, False, 0, 0)


def encode(kind: TagKind, index: int) -> Color:
    """
    Pack a tag and side-table index into an opaque color.

    Args:
        kind: Tag or extended tag
        index: Side-table index in [0, MAX_INDEX]

    Returns:
        Opaque magic color

    Raises:
        ValueError: If the index does not fit in 14 bits
    """
    if not 0 <= index <= MAX_INDEX:
        raise ValueError(f"Tag index {index} outside [0, {MAX_INDEX}]")

    discriminant = DISCRIMINANT_EXTENDED if isinstance(kind, MagicTagExtended) else DISCRIMINANT_TAG
    red = ((index >> 8) << 2) | discriminant
    return Color(r=red, g=int(kind), b=index & 0xFF, a=255)


def decode(r: int, g: int, b: int) -> DecodedTag:
    """Unpack an RGB triple; real paint decodes with is_magic=False."""
    discriminant = r & DISCRIMINANT_MASK
    if discriminant & PAINT_ESCAPE_BIT:
        return NOT_MAGIC

    index = ((r >> 2) << 8) | (b & 0xFF)
    return DecodedTag(
        is_magic=True,
        is_extended=discriminant == DISCRIMINANT_EXTENDED,
        tag_value=g & 0xFF,
        index=index,
    )


def escape_paint_color(color: Color) -> Color:
    """
    Move a real paint color out of the tag space.

    Sets bit 1 of the red channel, shifting red by at most 2, so real
    paint never decodes as a tag.
    """
    if color.r & PAINT_ESCAPE_BIT:
        return color
    return color.model_copy(update={"r": color.r | PAINT_ESCAPE_BIT})


_HEX6_RE = re.compile(r"^#([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")
_HEX3_RE = re.compile(r"^#([0-9a-fA-F])([0-9a-fA-F])([0-9a-fA-F])$")
_RGB_RE = re.compile(r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*[\d.]+\s*)?\)$")


def parse_fill(value: str) -> Optional[tuple[int, int, int]]:
    """Read an RGB triple from a serialized fill value; None for anything else."""
    text = value.strip()
    match = _HEX6_RE.match(text)
    if match:
        return tuple(int(part, 16) for part in match.groups())  # type: ignore[return-value]
    match = _HEX3_RE.match(text)
    if match:
        return tuple(int(part * 2, 16) for part in match.groups())  # type: ignore[return-value]
    match = _RGB_RE.match(text)
    if match:
        channels = tuple(int(part) for part in match.groups())
        if all(channel <= 255 for channel in channels):
            return channels  # type: ignore[return-value]
    return None


def decode_fill(value: str) -> DecodedTag:
    """Decode a serialized fill value."""
    rgb = parse_fill(value)
    if rgb is None:
        return NOT_MAGIC
    return decode(*rgb)
