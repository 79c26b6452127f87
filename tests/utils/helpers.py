"""
Test Helpers
============

Helper functions for inspecting rendered markup and building fixtures.
"""

from typing import Dict, List, Tuple
import base64
import io
import re

from PIL import Image

_ELEMENT_RE = re.compile(r"<([A-Za-z][\w:.-]*)(\s[^>]*)?/?>")
_ATTR_RE = re.compile(r"([^\s=]+)=\"([^\"]*)\"")


def find_elements(svg: str, name: str) -> List[str]:
    """Return every start or empty-element tag with the given name."""
    return [m.group(0) for m in _ELEMENT_RE.finditer(svg) if m.group(1) == name]


def parse_attributes(tag: str) -> Dict[str, str]:
    """Attribute dictionary of a single tag string."""
    return dict(_ATTR_RE.findall(tag))


def extract_block(svg: str, start: str, end: str) -> str:
    """Substring from the first `start` up to and including the next `end`."""
    begin = svg.index(start)
    finish = svg.index(end, begin) + len(end)
    return svg[begin:finish]


def strip_defs(svg: str) -> str:
    """Markup with all <defs> blocks removed."""
    return re.sub(r"<defs>.*?</defs>", "", svg, flags=re.S)


def count_fill(svg: str, color: str) -> int:
    return svg.count(f'fill="{color}"')


def make_png_bytes(size: Tuple[int, int] = (2, 2), color: Tuple[int, int, int] = (255, 0, 0)) -> bytes:
    """Encode a solid-color PNG."""
    output = io.BytesIO()
    Image.new("RGB", size, color).save(output, format="PNG")
    return output.getvalue()


def make_data_url(data: bytes, media_type: str = "image/png") -> str:
    return f"data:{media_type};base64," + base64.b64encode(data).decode("ascii")
