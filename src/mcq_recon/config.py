"""
Configuration and constants for the MCQ region extraction pipeline.

This module provides:
- Reconciliation policy constants (fixed, not tunable)
- Recognizer, rendering and extraction settings
- Environment overrides
"""

import os
from dataclasses import dataclass, field
from typing import Optional
import logging

logger = logging.getLogger("mcq_recon")


# ============================================================================
# Reconciliation Policy
# ============================================================================

# A structured-layer hit longer than this is taken as ground truth.
STRUCTURED_TRUST_MIN_LENGTH = 10
STRUCTURED_CONFIDENCE = 95.0

# Recognition at or below this confidence is treated as absent.
RECOGNITION_MIN_CONFIDENCE = 60.0

# Merge ratios for combining both sources.
STRUCTURED_DOMINANCE_RATIO = 0.8
RECOGNIZED_DOMINANCE_RATIO = 1.5

PLACEHOLDER_TEXT = "Unable to extract text"


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class OCRConfig:
    """Image recognizer configuration."""
    engine: str = "tesseract"  # tesseract, easyocr
    language: str = "eng"
    # Sparse text mode: regions are small and often hold a single option line
    tesseract_config: str = "--oem 3 --psm 11"
    # Seconds before a single recognition call is abandoned (0 = no limit)
    timeout: float = 30.0
    use_gpu: bool = False


@dataclass
class RenderConfig:
    """Page raster configuration."""
    # Raster pixels per native page unit
    render_scale: float = 1.5


@dataclass
class ExtractionConfig:
    """Region extraction scheduling."""
    # Pause between successive region extractions, in seconds
    inter_call_delay: float = 0.5
    max_pages: Optional[int] = None


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    ocr: OCRConfig = field(default_factory=OCRConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)

    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    engine = os.environ.get("MCQ_RECON_OCR_ENGINE")
    if engine:
        config.ocr.engine = engine.lower()

    if os.environ.get("MCQ_RECON_USE_GPU", "").lower() == "true":
        config.ocr.use_gpu = True

    if os.environ.get("MCQ_RECON_DEBUG", "").lower() == "true":
        config.debug_mode = True

    scale = os.environ.get("MCQ_RECON_RENDER_SCALE")
    if scale:
        try:
            config.render.render_scale = float(scale)
        except ValueError:
            logger.warning(f"Ignoring invalid MCQ_RECON_RENDER_SCALE: {scale!r}")

    delay = os.environ.get("MCQ_RECON_DELAY")
    if delay:
        try:
            config.extraction.inter_call_delay = float(delay)
        except ValueError:
            logger.warning(f"Ignoring invalid MCQ_RECON_DELAY: {delay!r}")

    return config
