"""
Data model for the OCR pipeline.

Regions flow through the stages as immutable dataclasses:

    LayoutDetector  -> TextRegion
    recognition     -> TextBlock (text set)
    reading order   -> TextBlock (reading_order set)
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional

import numpy as np


# Character-count categories emitted by the layout model
CATEGORY_LONG = 1     # up to 100 characters
CATEGORY_MEDIUM = 2   # up to 50 characters
CATEGORY_SHORT = 3    # up to 30 characters
CATEGORIES = (CATEGORY_LONG, CATEGORY_MEDIUM, CATEGORY_SHORT)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in original-image pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    @property
    def x2(self) -> int:
        return self.x + self.width

    @property
    def y2(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2.0

    def iou(self, other: "BoundingBox") -> float:
        """Intersection over union with another box."""
        ix = max(0, min(self.x2, other.x2) - max(self.x, other.x))
        iy = max(0, min(self.y2, other.y2) - max(self.y, other.y))
        inter = ix * iy
        if inter == 0:
            return 0.0
        return inter / float(self.area + other.area - inter)


@dataclass(frozen=True)
class TextRegion(BoundingBox):
    """A text line found by the layout detector."""
    confidence: float = 0.0
    class_id: int = 0
    char_count_category: int = CATEGORY_LONG


@dataclass(frozen=True)
class TextBlock(TextRegion):
    """A recognized text line with its position in the reading sequence."""
    text: str = ""
    reading_order: int = 0

    @classmethod
    def from_region(cls, region: TextRegion, text: str, reading_order: int) -> "TextBlock":
        return cls(
            x=region.x,
            y=region.y,
            width=region.width,
            height=region.height,
            confidence=region.confidence,
            class_id=region.class_id,
            char_count_category=region.char_count_category,
            text=text,
            reading_order=reading_order,
        )

    def with_order(self, reading_order: int) -> "TextBlock":
        return replace(self, reading_order=reading_order)

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "confidence": self.confidence,
            "class_id": self.class_id,
            "char_count_category": self.char_count_category,
            "text": self.text,
            "reading_order": self.reading_order,
        }


@dataclass(eq=False)
class RecognitionJob:
    """Unit of work for a recognition worker.

    ``id`` is the index of the originating region in detection order.
    ``pixels`` is owned by the job: once the job is handed to a worker the
    sender must not read or mutate the buffer again.
    """
    id: int
    pixels: np.ndarray
    char_count_category: Optional[int] = None


@dataclass(frozen=True)
class RecognitionResult:
    id: int
    text: str
    confidence: float


@dataclass(frozen=True)
class ModelCacheEntry:
    name: str
    version_tag: str
    payload: bytes = field(repr=False)
    cached_at: float


@dataclass
class OCRResult:
    """Final output for one page."""
    id: str
    blocks: List[TextBlock]
    full_text: str
    elapsed_ms: int
    source_name: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_name": self.source_name,
            "full_text": self.full_text,
            "elapsed_ms": self.elapsed_ms,
            "blocks": [b.to_dict() for b in self.blocks],
        }
