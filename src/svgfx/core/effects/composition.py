"""
Composition Stack
=================

Nested clip and opacity scopes active during painting. Effects read the
composed values at record time so every side-table entry is self-contained.
"""

from typing import List, Optional

from svgfx.models.effects import ClipInfo
from svgfx.models.schemas import BorderRadii, Position


class CompositionError(Exception):
    """Exception raised on unbalanced composition scopes."""

    pass


class CompositionStack:
    """Clip rectangles and opacity multipliers of the current paint scope."""

    def __init__(self) -> None:
        self._clips: List[ClipInfo] = []
        self._opacities: List[float] = []

    def push_clip(self, pos: Position, radii: Optional[BorderRadii] = None) -> ClipInfo:
        clip = ClipInfo(pos=pos, radii=radii or BorderRadii())
        self._clips.append(clip)
        return clip

    def pop_clip(self) -> ClipInfo:
        if not self._clips:
            raise CompositionError("pop_clip without matching push_clip")
        return self._clips.pop()

    def push_opacity(self, opacity: float) -> None:
        if not 0.0 <= opacity <= 1.0:
            raise CompositionError(f"Opacity {opacity} outside [0, 1]")
        self._opacities.append(opacity)

    def pop_opacity(self) -> float:
        if not self._opacities:
            raise CompositionError("pop_opacity without matching push_opacity")
        return self._opacities.pop()

    @property
    def current_opacity(self) -> float:
        """Product of all active opacity scalars."""
        result = 1.0
        for opacity in self._opacities:
            result *= opacity
        return result

    @property
    def current_clip(self) -> Optional[ClipInfo]:
        """Innermost active clip, if any."""
        return self._clips[-1] if self._clips else None

    @property
    def clip_depth(self) -> int:
        return len(self._clips)

    @property
    def layer_depth(self) -> int:
        return len(self._opacities)

    def is_balanced(self) -> bool:
        return not self._clips and not self._opacities
