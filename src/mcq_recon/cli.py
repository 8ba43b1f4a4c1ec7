#!/usr/bin/env python
"""
Command-line interface for MCQ region extraction.

Usage:
    mcq-recon --input <pdf> --regions <regions.json> --output <result.json> [options]

Examples:
    # Extract with the default Tesseract recognizer
    mcq-recon --input exam.pdf --regions boxes.json --output mcqs.json

    # Regions drawn on a 2x render, no pause between regions
    mcq-recon --input exam.pdf --regions boxes.json --output mcqs.json --scale 2 --delay 0
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("mcq_recon")


def setup_argparser(config) -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="MCQ Region Extraction - pull question and option text out of PDF regions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Regions file:
  A JSON list of {"id", "x", "y", "width", "height", "page", "type"} objects,
  in pixels of the page rendered at --scale, "type" being "question" or "option".
        """
    )

    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input PDF file"
    )

    parser.add_argument(
        "--regions", "-r",
        required=True,
        help="JSON file with the selected regions"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output JSON file"
    )

    parser.add_argument(
        "--scale",
        type=float,
        default=config.render.render_scale,
        help=f"Render scale the regions were drawn at (default: {config.render.render_scale})"
    )

    parser.add_argument(
        "--delay",
        type=float,
        default=config.extraction.inter_call_delay,
        help=f"Seconds to wait between region extractions (default: {config.extraction.inter_call_delay})"
    )

    parser.add_argument(
        "--ocr-engine",
        choices=["tesseract", "easyocr"],
        default=config.ocr.engine,
        help=f"OCR engine (default: {config.ocr.engine})"
    )

    parser.add_argument(
        "--language",
        default=config.ocr.language,
        help=f"OCR language (default: {config.ocr.language})"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    return parser


def check_dependencies(ocr_engine: str) -> bool:
    """Check if required dependencies are available."""
    missing = []

    try:
        import fitz
    except ImportError:
        missing.append("pymupdf")

    try:
        import cv2
    except ImportError:
        missing.append("opencv-python")

    if ocr_engine == "tesseract":
        try:
            import pytesseract
            try:
                pytesseract.get_tesseract_version()
            except Exception:
                missing.append("tesseract-ocr (system package)")
        except ImportError:
            missing.append("pytesseract")
    elif ocr_engine == "easyocr":
        try:
            import easyocr
        except ImportError:
            missing.append("easyocr")

    if missing:
        logger.error("Missing required dependencies:")
        for dep in missing:
            logger.error(f"  - {dep}")
        return False

    return True


def run_pipeline(args, config) -> int:
    """Run region extraction and write the result file."""
    from .utils.io import open_pdf, load_regions, save_json, ProcessingProgress
    from .utils.ocr_text import TextRecognizer
    from .utils.reconcile import HybridTextExtractor
    from .utils.questions import QuestionAssembler

    start_time = time.time()

    regions = load_regions(args.regions)
    if not regions:
        logger.error("No regions to process")
        return 1

    config.ocr.engine = args.ocr_engine
    config.ocr.language = args.language
    progress = ProcessingProgress()

    with open_pdf(args.input, render_scale=args.scale) as source:
        out_of_range = [r for r in regions if not 1 <= r.page <= source.page_count]
        if out_of_range:
            logger.error(
                f"{len(out_of_range)} region(s) reference pages outside 1-{source.page_count}"
            )
            return 1

        with HybridTextExtractor(TextRecognizer.from_config(config.ocr), args.scale) as extractor:
            assembler = QuestionAssembler(extractor, source, inter_call_delay=args.delay)
            mcqs = assembler.assemble(regions, progress=progress)

    output_path = save_json({
        "source": str(Path(args.input)),
        "render_scale": args.scale,
        "questions": [m.to_dict() for m in mcqs],
        "errors": progress.errors,
    }, args.output)

    elapsed = time.time() - start_time
    if not args.quiet:
        low = sum(
            1 for m in mcqs for o in m.outcomes.values() if o.is_placeholder
        )
        print("\n" + "=" * 60)
        print("MCQ EXTRACTION COMPLETE")
        print("=" * 60)
        print(f"Source: {args.input}")
        print(f"Output: {output_path}")
        print(f"Questions: {len(mcqs)} ({len(progress.errors)} failed)")
        print(f"Regions needing review: {low}")
        print(f"Processing time: {elapsed:.2f}s")
        print("=" * 60)

    return 0


def main():
    """Main entry point."""
    from .config import get_config

    config = get_config()
    parser = setup_argparser(config)
    args = parser.parse_args()

    if args.verbose or config.debug_mode:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    if not check_dependencies(args.ocr_engine):
        sys.exit(1)

    try:
        exit_code = run_pipeline(args, config)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
