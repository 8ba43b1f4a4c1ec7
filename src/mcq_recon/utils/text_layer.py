"""
Structured text layer access.

Reads the text embedded in a PDF page as positioned fragments and selects
the fragments that fall inside a region.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List

from .regions import NativeRegion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextFragment:
    """A run of text anchored at its baseline origin (native space, origin bottom-left)."""
    content: str
    anchor_x: float
    anchor_y: float


def extract_region_text(
    fragments: Iterable[TextFragment],
    native_region: NativeRegion
) -> str:
    """
    Join the fragments whose anchor lies inside the region.

    Only the anchor point is tested. A fragment whose glyphs overlap the
    region but whose anchor falls outside it is left out.

    Args:
        fragments: Page fragments in document order
        native_region: Region in native page coordinates

    Returns:
        Space-joined fragment text, stripped
    """
    if fragments is None:
        raise ValueError("fragments must be a sequence of TextFragment, got None")

    hits = [
        frag.content for frag in fragments
        if native_region.contains(frag.anchor_x, frag.anchor_y)
    ]
    return " ".join(hits).strip()


class PdfTextLayer:
    """
    Text layer of a PyMuPDF document.

    One fragment is produced per text span. PyMuPDF reports span origins with
    a top-left origin, so the y coordinate is flipped against the page height.
    Fragment lists are cached per page for the lifetime of the object.
    """

    def __init__(self, document):
        self.document = document
        self._cache: Dict[int, List[TextFragment]] = {}

    def _page(self, page_number: int):
        if not 1 <= page_number <= self.document.page_count:
            raise ValueError(
                f"Page {page_number} out of range (1-{self.document.page_count})"
            )
        return self.document.load_page(page_number - 1)

    def page_height(self, page_number: int) -> float:
        return float(self._page(page_number).rect.height)

    def fragments_for(self, page_number: int) -> List[TextFragment]:
        """Return the page's fragments in document order."""
        if page_number in self._cache:
            return self._cache[page_number]

        page = self._page(page_number)
        height = float(page.rect.height)
        fragments = []

        d = page.get_text("dict")
        for b in d.get("blocks", []) or []:
            if b.get("type") != 0:
                continue
            for ln in b.get("lines", []) or []:
                for span in ln.get("spans", []) or []:
                    text = span.get("text", "")
                    origin = span.get("origin")
                    if not text or not origin:
                        continue
                    fragments.append(TextFragment(
                        content=text,
                        anchor_x=float(origin[0]),
                        anchor_y=height - float(origin[1]),
                    ))

        logger.debug(f"Page {page_number}: {len(fragments)} text fragments")
        self._cache[page_number] = fragments
        return fragments

    def clear_cache(self):
        self._cache.clear()
