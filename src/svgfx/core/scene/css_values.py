"""
CSS Value Helpers
=================

Minimal parsing of the computed CSS values carried by scene documents:
colors, pixel lengths and shadow lists. Full CSS parsing belongs to the
layout engine; these helpers only cover the value forms the box tree
hands over.
"""

from typing import Dict, List, Tuple, Any
import re

RGBA = Tuple[int, int, int, int]

NAMED_COLORS: Dict[str, RGBA] = {
    "black": (0, 0, 0, 255),
    "white": (255, 255, 255, 255),
    "red": (255, 0, 0, 255),
    "green": (0, 128, 0, 255),
    "lime": (0, 255, 0, 255),
    "blue": (0, 0, 255, 255),
    "navy": (0, 0, 128, 255),
    "yellow": (255, 255, 0, 255),
    "orange": (255, 165, 0, 255),
    "purple": (128, 0, 128, 255),
    "gray": (128, 128, 128, 255),
    "grey": (128, 128, 128, 255),
    "silver": (192, 192, 192, 255),
    "teal": (0, 128, 128, 255),
    "maroon": (128, 0, 0, 255),
    "olive": (128, 128, 0, 255),
    "aqua": (0, 255, 255, 255),
    "cyan": (0, 255, 255, 255),
    "fuchsia": (255, 0, 255, 255),
    "magenta": (255, 0, 255, 255),
    "transparent": (0, 0, 0, 0),
}

_LENGTH_RE = re.compile(r"^(-?\d*\.?\d+)(px)?$")
_FUNCTION_RE = re.compile(r"^(rgba?)\((.*)\)$")


def split_top_level(value: str, separator: str) -> List[str]:
    """Split on a separator, ignoring separators nested inside parentheses."""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in value:
        if char == "(":
            depth += 1
        elif char == ")":
            depth = max(0, depth - 1)

        is_separator = char.isspace() if separator == " " else char == separator
        if is_separator and depth == 0:
            part = "".join(current).strip()
            if part:
                parts.append(part)
            current = []
        else:
            current.append(char)

    part = "".join(current).strip()
    if part:
        parts.append(part)
    return parts


def _clamp_byte(value: float) -> int:
    return max(0, min(255, int(round(value))))


def _parse_channel(token: str) -> int:
    if token.endswith("%"):
        return _clamp_byte(float(token[:-1]) * 255.0 / 100.0)
    return _clamp_byte(float(token))


def _parse_alpha(token: str) -> int:
    if token.endswith("%"):
        return _clamp_byte(float(token[:-1]) * 255.0 / 100.0)
    return _clamp_byte(float(token) * 255.0)


def parse_css_color(value: str) -> RGBA:
    """
    Parse a CSS color value into an RGBA byte tuple.

    Args:
        value: Color in hex, rgb()/rgba() or named form

    Returns:
        Tuple of (red, green, blue, alpha) bytes

    Raises:
        ValueError: If the value is not a supported color
    """
    text = value.strip().lower()
    if text in NAMED_COLORS:
        return NAMED_COLORS[text]

    if text.startswith("#"):
        digits = text[1:]
        if not re.fullmatch(r"[0-9a-f]+", digits or "x"):
            raise ValueError(f"Invalid hex color: {value}")
        if len(digits) in (3, 4):
            digits = "".join(ch * 2 for ch in digits)
        if len(digits) == 6:
            digits += "ff"
        if len(digits) != 8:
            raise ValueError(f"Invalid hex color: {value}")
        return (
            int(digits[0:2], 16),
            int(digits[2:4], 16),
            int(digits[4:6], 16),
            int(digits[6:8], 16),
        )

    match = _FUNCTION_RE.match(text)
    if match:
        body = match.group(2).replace("/", " / ")
        if "," in body:
            tokens = [t.strip() for t in body.split(",")]
        else:
            tokens = [t for t in body.split() if t != "/"]
        if len(tokens) not in (3, 4):
            raise ValueError(f"Invalid color function: {value}")
        try:
            red, green, blue = (_parse_channel(t) for t in tokens[:3])
            alpha = _parse_alpha(tokens[3]) if len(tokens) == 4 else 255
        except ValueError:
            raise ValueError(f"Invalid color function: {value}")
        return (red, green, blue, alpha)

    raise ValueError(f"Unsupported color: {value}")


def parse_length(value: Any) -> float:
    """Parse a pixel length ("4px", "0", 2.5) into a float."""
    if isinstance(value, (int, float)):
        return float(value)
    match = _LENGTH_RE.match(str(value).strip().lower())
    if not match:
        raise ValueError(f"Unsupported length: {value}")
    return float(match.group(1))


def is_length(token: str) -> bool:
    return bool(_LENGTH_RE.match(token.strip().lower()))


def parse_shadow_list(value: str) -> List[Dict[str, Any]]:
    """
    Parse a box-shadow or text-shadow value.

    Args:
        value: CSS shadow list, e.g. "0 0 4px rgba(0,0,0,0.5), inset 1px 1px red"

    Returns:
        List of shadow dictionaries in declaration order

    Raises:
        ValueError: If a shadow entry cannot be parsed
    """
    text = value.strip()
    if not text or text.lower() == "none":
        return []

    shadows: List[Dict[str, Any]] = []
    for entry in split_top_level(text, ","):
        lengths: List[float] = []
        color: RGBA = NAMED_COLORS["black"]
        inset = False
        for token in split_top_level(entry, " "):
            if token.lower() == "inset":
                inset = True
            elif is_length(token):
                lengths.append(parse_length(token))
            else:
                color = parse_css_color(token)

        if len(lengths) < 2 or len(lengths) > 4:
            raise ValueError(f"Invalid shadow: {entry}")

        shadows.append(
            {
                "color": color,
                "x": lengths[0],
                "y": lengths[1],
                "blur": max(0.0, lengths[2]) if len(lengths) > 2 else 0.0,
                "spread": lengths[3] if len(lengths) > 3 else 0.0,
                "inset": inset,
            }
        )
    return shadows
