"""
I/O utilities for the MCQ extraction pipeline.

Handles:
- Opening PDFs as page sources (raster + text layer)
- Loading user-drawn regions
- JSON serialization
- Progress tracking
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import List, Union, Optional, Any, Dict
from dataclasses import dataclass, field, asdict

import numpy as np

from .regions import Region
from .text_layer import PdfTextLayer, TextFragment

logger = logging.getLogger(__name__)


# ============================================================================
# PDF Page Source
# ============================================================================

class PdfPageSource:
    """
    Pages of a PDF rendered at a fixed scale, together with their text layer.

    Rasters are BGR numpy arrays (OpenCV order). Rendered pages are cached
    for the lifetime of the source; call :meth:`close` when done.
    """

    def __init__(self, document, render_scale: float = 1.5):
        if not render_scale > 0:
            raise ValueError(f"render_scale must be positive, got {render_scale}")
        self.document = document
        self.render_scale = render_scale
        self.text_layer = PdfTextLayer(document)
        self._rasters: Dict[int, np.ndarray] = {}

    @property
    def page_count(self) -> int:
        return self.document.page_count

    def page_height(self, page_number: int) -> float:
        return self.text_layer.page_height(page_number)

    def fragments_for(self, page_number: int) -> List[TextFragment]:
        return self.text_layer.fragments_for(page_number)

    def render_page(self, page_number: int) -> np.ndarray:
        """Render a page (1-indexed) at the source's scale."""
        if page_number in self._rasters:
            return self._rasters[page_number]

        import fitz

        page = self.document.load_page(page_number - 1)
        matrix = fitz.Matrix(self.render_scale, self.render_scale)
        pix = page.get_pixmap(matrix=matrix, alpha=False)

        img_array = np.frombuffer(pix.samples, dtype=np.uint8).reshape(
            pix.height, pix.width, pix.n
        )
        # RGB -> BGR for OpenCV compatibility
        if pix.n == 3:
            img_array = img_array[:, :, ::-1]
        img_array = img_array.copy()

        logger.debug(f"Rendered page {page_number}: {img_array.shape}")
        self._rasters[page_number] = img_array
        return img_array

    def close(self):
        self._rasters.clear()
        self.text_layer.clear_cache()
        self.document.close()

    def __enter__(self) -> 'PdfPageSource':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def open_pdf(
    pdf_path: Union[str, Path],
    render_scale: float = 1.5
) -> PdfPageSource:
    """
    Open a PDF as a page source.

    Args:
        pdf_path: Path to the PDF file
        render_scale: Raster pixels per PDF point

    Raises:
        FileNotFoundError: If the PDF file doesn't exist
        ImportError: If PyMuPDF is not installed
        RuntimeError: If the PDF cannot be parsed
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    try:
        import fitz  # PyMuPDF
    except ImportError:
        raise ImportError("PyMuPDF is required. Install with: pip install pymupdf")

    try:
        document = fitz.open(pdf_path)
    except Exception as e:
        raise RuntimeError(f"Failed to parse PDF: {e}")

    logger.info(f"Opened {pdf_path} ({document.page_count} pages) at scale {render_scale}")
    return PdfPageSource(document, render_scale=render_scale)


# ============================================================================
# Regions
# ============================================================================

def load_regions(json_path: Union[str, Path]) -> List[Region]:
    """
    Load user-drawn regions from JSON.

    Accepts either a list of region objects or ``{"regions": [...]}``.
    """
    data = load_json(json_path)
    if isinstance(data, dict):
        data = data.get("regions")
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of regions in {json_path}")

    regions = [Region.from_dict(item) for item in data]
    logger.info(f"Loaded {len(regions)} regions from {json_path}")
    return regions


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy values, enums and dataclasses."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, 'to_dict'):
            return obj.to_dict()
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """Load data from a JSON file."""
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


# ============================================================================
# Progress Tracking
# ============================================================================

@dataclass
class ProcessingProgress:
    """Track progress of question extraction."""
    total: int = 0
    current: int = 0
    current_stage: str = ""
    current_page: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def percent_complete(self) -> float:
        if self.total == 0:
            return 0.0
        return (self.current / self.total) * 100

    def update(self, stage: str, page: Optional[int] = None):
        self.current_stage = stage
        if page is not None:
            self.current_page = page

    def advance(self):
        self.current += 1

    def add_error(self, error: str):
        self.errors.append(error)
        logger.error(error)
