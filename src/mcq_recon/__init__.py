"""
MCQ Region Extraction
=====================

Extracts multiple-choice question text from user-selected regions of PDF
pages by reconciling the PDF text layer with image recognition.

Main components:
- Raster/page coordinate mapping
- Text layer probing by anchor point
- Image recognition with noise cleanup
- Hybrid reconciliation with confidence scoring
- Math notation detection
"""

__version__ = "1.0.0"
__author__ = "MCQ Recon Team"
