"""
Markup Helpers
==============

Number formatting, escaping and path construction shared by the canvas
backend and the resolver.
"""

from typing import Dict, Optional, Union

from svgfx.models.schemas import BorderRadii, Position

Number = Union[int, float]


def fmt(value: Number, precision: int = 2) -> str:
    """Format a number compactly: fixed precision, trailing zeros removed."""
    text = f"{float(value):.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def escape_xml(text: str) -> str:
    """Escape XML special characters."""
    if not text:
        return ""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#x27;")
    )


def build_attributes(attributes: Dict[str, Optional[str]]) -> str:
    """Build an attribute string, skipping None values."""
    attr_pairs = [
        f'{key}="{escape_xml(str(value))}"' for key, value in attributes.items() if value is not None
    ]
    return " " + " ".join(attr_pairs) if attr_pairs else ""


def rrect_path(pos: Position, radii: Optional[BorderRadii] = None, precision: int = 2) -> str:
    """Path data for a rectangle with elliptical corners, clockwise from top-left."""
    x, y, w, h = pos.x, pos.y, pos.width, pos.height
    r = radii or BorderRadii()

    def n(value: Number) -> str:
        return fmt(value, precision)

    parts = [f"M{n(x + r.top_left_x)},{n(y)}", f"L{n(x + w - r.top_right_x)},{n(y)}"]
    if r.top_right_x > 0 or r.top_right_y > 0:
        parts.append(f"A{n(r.top_right_x)},{n(r.top_right_y)} 0 0 1 {n(x + w)},{n(y + r.top_right_y)}")
    parts.append(f"L{n(x + w)},{n(y + h - r.bottom_right_y)}")
    if r.bottom_right_x > 0 or r.bottom_right_y > 0:
        parts.append(
            f"A{n(r.bottom_right_x)},{n(r.bottom_right_y)} 0 0 1 {n(x + w - r.bottom_right_x)},{n(y + h)}"
        )
    parts.append(f"L{n(x + r.bottom_left_x)},{n(y + h)}")
    if r.bottom_left_x > 0 or r.bottom_left_y > 0:
        parts.append(
            f"A{n(r.bottom_left_x)},{n(r.bottom_left_y)} 0 0 1 {n(x)},{n(y + h - r.bottom_left_y)}"
        )
    parts.append(f"L{n(x)},{n(y + r.top_left_y)}")
    if r.top_left_x > 0 or r.top_left_y > 0:
        parts.append(f"A{n(r.top_left_x)},{n(r.top_left_y)} 0 0 1 {n(x + r.top_left_x)},{n(y)}")
    parts.append("Z")
    return " ".join(parts)


def outset_position(pos: Position, amount: float) -> Position:
    """Grow a box on every side; negative amounts shrink it."""
    width = max(0.0, pos.width + 2 * amount)
    height = max(0.0, pos.height + 2 * amount)
    return Position(x=pos.x - amount, y=pos.y - amount, width=width, height=height)
