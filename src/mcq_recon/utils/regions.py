"""
Region geometry for MCQ extraction.

Provides:
- User-selected regions in raster pixel space (questions and options)
- Native page-space rectangles (origin bottom-left)
- Translation between the two spaces
- Cropping a region out of a rendered page
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Any, Tuple
from enum import Enum
import numpy as np

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes and Enums
# ============================================================================

class RegionKind(Enum):
    """What a selected region holds."""
    QUESTION = "question"
    OPTION = "option"


@dataclass(frozen=True)
class Region:
    """
    A user-drawn rectangle on a rendered page.

    Coordinates are raster pixels with the origin at the top-left corner of
    the page image. ``page`` is the 1-based page number.
    """
    x: float
    y: float
    width: float
    height: float
    page: int = 1
    kind: RegionKind = RegionKind.QUESTION
    region_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def crop_from_image(self, image: np.ndarray) -> np.ndarray:
        """Extract the region from a page raster, clamped to the image."""
        h, w = image.shape[:2]
        x1 = max(0, int(round(self.x)))
        y1 = max(0, int(round(self.y)))
        x2 = min(w, int(round(self.x + self.width)))
        y2 = min(h, int(round(self.y + self.height)))
        if x2 <= x1 or y2 <= y1:
            return image[0:0, 0:0]
        return image[y1:y2, x1:x2]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.region_id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "page": self.page,
            "type": self.kind.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Region':
        """Build a region from its JSON form (``type`` or ``kind`` key)."""
        try:
            kind = RegionKind(data.get("type", data.get("kind", "question")))
            values = dict(
                x=float(data["x"]),
                y=float(data["y"]),
                width=float(data["width"]),
                height=float(data["height"]),
                page=int(data.get("page", 1)),
                kind=kind,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed region {data!r}: {e}")

        if data.get("id"):
            values["region_id"] = str(data["id"])
        return cls(**values)


@dataclass(frozen=True)
class NativeRegion:
    """Rectangle in native page units, origin at the bottom-left corner."""
    x: float
    y: float
    width: float
    height: float

    def contains(self, px: float, py: float) -> bool:
        """Point membership, inclusive on all four edges."""
        return (
            self.x <= px <= self.x + self.width and
            self.y <= py <= self.y + self.height
        )


# ============================================================================
# Coordinate Mapping
# ============================================================================

def _check_scale(render_scale: float):
    if not render_scale > 0:
        raise ValueError(f"render_scale must be positive, got {render_scale}")


def to_native_space(
    region: Region,
    page_height: float,
    render_scale: float
) -> NativeRegion:
    """
    Convert a raster region into native page coordinates.

    Args:
        region: Region in raster pixels (origin top-left)
        page_height: Page height in native units
        render_scale: Raster pixels per native unit

    Returns:
        NativeRegion with the y axis flipped to a bottom-left origin
    """
    _check_scale(render_scale)
    return NativeRegion(
        x=region.x / render_scale,
        y=(page_height * render_scale - region.y - region.height) / render_scale,
        width=region.width / render_scale,
        height=region.height / render_scale,
    )


def to_raster_space(
    native: NativeRegion,
    page_height: float,
    render_scale: float,
    page: int = 1,
    kind: RegionKind = RegionKind.QUESTION
) -> Region:
    """Inverse of :func:`to_native_space`."""
    _check_scale(render_scale)
    height = native.height * render_scale
    return Region(
        x=native.x * render_scale,
        y=page_height * render_scale - native.y * render_scale - height,
        width=native.width * render_scale,
        height=height,
        page=page,
        kind=kind,
    )
