"""
Hybrid region text extraction.

Combines the structured text layer and image recognition for one region:
the text layer is tried first, recognition only runs when the text layer
result is short, and the two are merged when both produce usable text.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Any, Iterable, Optional
import numpy as np

from ..config import (
    STRUCTURED_TRUST_MIN_LENGTH,
    STRUCTURED_CONFIDENCE,
    RECOGNITION_MIN_CONFIDENCE,
    STRUCTURED_DOMINANCE_RATIO,
    RECOGNIZED_DOMINANCE_RATIO,
    PLACEHOLDER_TEXT,
)
from .ocr_math import has_math
from .ocr_text import RecognitionResult, empty_result
from .regions import Region, to_native_space
from .text_layer import TextFragment, extract_region_text

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

class ExtractionMethod(Enum):
    """Which source produced the outcome text."""
    STRUCTURED = "structured"
    RECOGNIZED = "recognized"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class ExtractionOutcome:
    """Final text of one region."""
    text: str
    method: ExtractionMethod
    confidence: float
    has_math: bool = False

    @property
    def is_placeholder(self) -> bool:
        return self.confidence == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "method": self.method.value,
            "confidence": self.confidence,
            "has_math": self.has_math
        }


# ============================================================================
# Combination Heuristic
# ============================================================================

def combine_text_results(structured_text: str, recognized_text: str) -> str:
    """
    Merge text layer and recognizer output when both are present.

    The text layer wins when it is nearly as long as the recognized text.
    Recognized text wins when it is much longer, which usually means the
    recognizer read content the text layer lacks (images, diagrams).
    Otherwise both are kept, text layer first.
    """
    if len(structured_text) > len(recognized_text) * STRUCTURED_DOMINANCE_RATIO:
        return structured_text

    if len(recognized_text) > len(structured_text) * RECOGNIZED_DOMINANCE_RATIO:
        return recognized_text

    return structured_text + ' ' + recognized_text


def _safe_recognize(recognize: Callable[[], RecognitionResult]) -> RecognitionResult:
    try:
        result = recognize()
    except Exception as e:
        logger.error(f"OCR extraction failed: {e}")
        return empty_result(error=str(e))
    if result is None:
        return empty_result()
    return result


def reconcile(
    structured_text: str,
    recognize: Callable[[], RecognitionResult]
) -> ExtractionOutcome:
    """
    Pick or merge the region text from both sources.

    Args:
        structured_text: Text layer result for the region
        recognize: Zero-argument callable running image recognition. Called
            at most once, and not at all when the text layer result is long
            enough to be trusted.

    Returns:
        ExtractionOutcome. Never raises for recognition failures; when
        neither source is usable the outcome carries placeholder text and
        zero confidence.
    """
    structured_text = structured_text or ""

    if len(structured_text) > STRUCTURED_TRUST_MIN_LENGTH:
        return ExtractionOutcome(
            text=structured_text,
            method=ExtractionMethod.STRUCTURED,
            confidence=STRUCTURED_CONFIDENCE,
            has_math=has_math(structured_text)
        )

    return reconcile_results(structured_text, _safe_recognize(recognize))


def reconcile_results(
    structured_text: str,
    recognized: RecognitionResult
) -> ExtractionOutcome:
    """
    Decide the outcome once recognition has run.

    Recognition at or below the confidence floor is ignored. When both
    sources have text they are merged with :func:`combine_text_results`.
    """
    structured_text = structured_text or ""
    structured_confidence = STRUCTURED_CONFIDENCE if structured_text else 0.0
    recognized_text = recognized.text or ""

    if recognized.confidence > RECOGNITION_MIN_CONFIDENCE:
        if structured_text and recognized_text:
            return ExtractionOutcome(
                text=combine_text_results(structured_text, recognized_text),
                method=ExtractionMethod.HYBRID,
                confidence=max(structured_confidence, recognized.confidence),
                has_math=has_math(structured_text) or has_math(recognized_text)
            )

        if recognized_text:
            return ExtractionOutcome(
                text=recognized_text,
                method=ExtractionMethod.RECOGNIZED,
                confidence=recognized.confidence,
                has_math=has_math(recognized_text)
            )

        if structured_text:
            return ExtractionOutcome(
                text=structured_text,
                method=ExtractionMethod.STRUCTURED,
                confidence=structured_confidence,
                has_math=has_math(structured_text)
            )
    else:
        logger.debug(
            f"Discarding recognition at confidence {recognized.confidence:.1f}"
        )

    return ExtractionOutcome(
        text=structured_text or PLACEHOLDER_TEXT,
        method=ExtractionMethod.STRUCTURED if structured_text else ExtractionMethod.RECOGNIZED,
        confidence=0.0,
        has_math=False
    )


# ============================================================================
# Region Extractor
# ============================================================================

class HybridTextExtractor:
    """
    Extracts the text of single regions.

    The recognizer is injected and owned by the caller's session; any object
    with ``recognize(image) -> RecognitionResult`` works. ``release`` is
    forwarded to it when available.
    """

    def __init__(self, recognizer, render_scale: float = 1.5):
        self.recognizer = recognizer
        self.render_scale = render_scale

    def extract_region(
        self,
        region: Region,
        page_image: Optional[np.ndarray],
        fragments: Iterable[TextFragment],
        page_height: float,
        render_scale: Optional[float] = None
    ) -> ExtractionOutcome:
        """
        Extract the text of one region.

        Args:
            region: Region in raster pixels
            page_image: Page raster rendered at ``render_scale``
            fragments: Text layer fragments of the region's page
            page_height: Page height in native units
            render_scale: Overrides the extractor's default scale

        Returns:
            ExtractionOutcome for the region
        """
        scale = render_scale if render_scale is not None else self.render_scale
        native = to_native_space(region, page_height, scale)
        structured_text = extract_region_text(fragments, native)

        def recognize() -> RecognitionResult:
            if page_image is None:
                return empty_result(error="no page image")
            return self.recognizer.recognize(region.crop_from_image(page_image))

        outcome = reconcile(structured_text, recognize)
        logger.debug(
            f"Region {region.region_id} (page {region.page}, {region.kind.value}): "
            f"{outcome.method.value} at {outcome.confidence:.0f}"
        )
        return outcome

    def release(self):
        release = getattr(self.recognizer, "release", None)
        if release is not None:
            release()

    def __enter__(self) -> 'HybridTextExtractor':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
