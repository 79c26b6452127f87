"""
Effect Side Tables
==================

Ordered, append-only, 1-indexed tables of effect records, one per effect
kind, populated while a document is painted in tagging mode.
"""

from typing import Dict, Generic, Iterator, List, Optional, TypeVar

from svgfx.config.logging import get_logger
from svgfx.core.effects.magic import MAX_INDEX
from svgfx.models.effects import (
    ShadowInfo,
    TextShadowInfo,
    TextDrawInfo,
    ImageDrawInfo,
    InlineSvgInfo,
    GradientInfo,
    ClipInfo,
    FilterInfo,
)

logger = get_logger(__name__)

T = TypeVar("T")


class IndexSpaceExhaustedError(Exception):
    """Exception raised when a side table runs out of 14-bit indices."""

    pass


class SideTable(Generic[T]):
    """
    Append-only record list addressed by 1-based index.

    Valid indices run from 1 to `capacity` (16,383 by default, the 14-bit
    index space minus the reserved 0). `intern` reuses the index of an equal
    record already in the table; `append` always adds.
    """

    def __init__(self, name: str, capacity: int = MAX_INDEX) -> None:
        self.name = name
        self.capacity = capacity
        self._records: List[T] = []
        self._index: Dict[T, int] = {}

    def append(self, record: T) -> int:
        """
        Add a record and return its index.

        Raises:
            IndexSpaceExhaustedError: If the table is full
        """
        if len(self._records) >= self.capacity:
            logger.error("Side table exhausted", table=self.name, capacity=self.capacity)
            raise IndexSpaceExhaustedError(
                f"{self.name} table exhausted: more than {self.capacity} records in one pass"
            )
        self._records.append(record)
        index = len(self._records)
        self._index.setdefault(record, index)
        return index

    def intern(self, record: T) -> int:
        """Return the index of an equal record, appending it on first sight."""
        existing = self._index.get(record)
        if existing is not None:
            return existing
        return self.append(record)

    def get(self, index: int) -> Optional[T]:
        """Look up a record, returning None for index 0 or out-of-range indices."""
        if 1 <= index <= len(self._records):
            return self._records[index - 1]
        return None

    def __getitem__(self, index: int) -> T:
        record = self.get(index)
        if record is None:
            raise IndexError(f"{self.name} index {index} out of range 1..{len(self._records)}")
        return record

    def __contains__(self, index: object) -> bool:
        return isinstance(index, int) and 1 <= index <= len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[T]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"SideTable(name={self.name!r}, size={len(self._records)})"


class EffectRecorder:
    """Owns the side tables of one render pass."""

    def __init__(self, capacity: int = MAX_INDEX) -> None:
        self.shadows: SideTable[ShadowInfo] = SideTable("box_shadow", capacity)
        self.text_shadows: SideTable[TextShadowInfo] = SideTable("text_shadow", capacity)
        self.text_draws: SideTable[TextDrawInfo] = SideTable("text_draw", capacity)
        self.images: SideTable[ImageDrawInfo] = SideTable("image_draw", capacity)
        self.inline_svgs: SideTable[InlineSvgInfo] = SideTable("inline_svg", capacity)
        self.gradients: SideTable[GradientInfo] = SideTable("gradient", capacity)
        self.clips: SideTable[ClipInfo] = SideTable("clip", capacity)
        self.filters: SideTable[FilterInfo] = SideTable("filter", capacity)

    # Geometry-bearing records are never de-duplicated.
    def record_box_shadow(self, info: ShadowInfo) -> int:
        return self.shadows.append(info)

    def record_image(self, info: ImageDrawInfo) -> int:
        return self.images.append(info)

    def record_inline_svg(self, info: InlineSvgInfo) -> int:
        return self.inline_svgs.append(info)

    def record_gradient(self, info: GradientInfo) -> int:
        return self.gradients.append(info)

    def record_clip(self, info: ClipInfo) -> int:
        return self.clips.append(info)

    def record_filter(self, info: FilterInfo) -> int:
        return self.filters.append(info)

    def record_text_shadow(self, info: TextShadowInfo) -> int:
        return self.text_shadows.intern(info)

    def record_text_draw(self, info: TextDrawInfo) -> int:
        return self.text_draws.intern(info)

    def stats(self) -> Dict[str, int]:
        """Record counts per table."""
        return {
            table.name: len(table)
            for table in (
                self.shadows,
                self.text_shadows,
                self.text_draws,
                self.images,
                self.inline_svgs,
                self.gradients,
                self.clips,
                self.filters,
            )
        }
