"""
Utility modules for the MCQ extraction pipeline.
"""

from .regions import Region, RegionKind, NativeRegion, to_native_space, to_raster_space
from .text_layer import TextFragment, PdfTextLayer, extract_region_text
from .ocr_text import TextRecognizer, RecognitionResult, clean_ocr_text
from .ocr_math import has_math, extract_latex_segments, wrap_latex_inline
from .reconcile import (
    ExtractionMethod, ExtractionOutcome, HybridTextExtractor,
    reconcile, reconcile_results, combine_text_results,
)
from .io import PdfPageSource, open_pdf, load_regions, save_json, load_json, ProcessingProgress
from .questions import MCQ, QuestionAssembler

__all__ = [
    # Geometry
    "Region", "RegionKind", "NativeRegion", "to_native_space", "to_raster_space",
    # Text layer
    "TextFragment", "PdfTextLayer", "extract_region_text",
    # Recognition
    "TextRecognizer", "RecognitionResult", "clean_ocr_text",
    # Math
    "has_math", "extract_latex_segments", "wrap_latex_inline",
    # Reconciliation
    "ExtractionMethod", "ExtractionOutcome", "HybridTextExtractor",
    "reconcile", "reconcile_results", "combine_text_results",
    # IO
    "PdfPageSource", "open_pdf", "load_regions", "save_json", "load_json",
    "ProcessingProgress",
    # Assembly
    "MCQ", "QuestionAssembler",
]
