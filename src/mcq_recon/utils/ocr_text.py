"""
Image text recognition for MCQ regions.

Provides:
- Text recognition on cropped region images
- Multi-engine support (Tesseract, EasyOCR)
- Confidence scoring on a 0-100 scale
- Post-processing of recognizer noise
- A lazily started, reusable recognizer resource
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
import numpy as np

from ..config import RECOGNITION_MIN_CONFIDENCE

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class WordResult:
    """Recognition result for a single word."""
    text: str
    confidence: float
    line_key: tuple = ()


@dataclass
class RecognitionResult:
    """Recognition result for one region image."""
    text: str
    confidence: float
    raw_text: Optional[str] = None  # Before cleanup
    engine_used: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_usable(self) -> bool:
        return self.confidence > RECOGNITION_MIN_CONFIDENCE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "raw_text": self.raw_text,
            "engine": self.engine_used,
            "metadata": self.metadata
        }


def empty_result(engine_used: str = "", error: Optional[str] = None) -> RecognitionResult:
    metadata = {"error": error} if error else {}
    return RecognitionResult(text="", confidence=0.0, engine_used=engine_used, metadata=metadata)


# ============================================================================
# Post-processing
# ============================================================================

_WHITESPACE = re.compile(r'\s+')
_NUMBERING = re.compile(r'(\d+)\s*\.\s*([A-Z])')
_LETTERING = re.compile(r'([a-z])\s*\)\s*')
_PIPE_AS_I = re.compile(r'(?<![\w|])\|(?=[a-z])')
_STROKE_ARTIFACTS = re.compile(r'(?:\s*(?:\|+|_{2,}))+\s*')
_MATH_SPAN = re.compile(r'\$\s*([^$]*?)\s*\$')
_BACKSLASH_SPACE = re.compile(r'\\\s+')


_MAX_CLEANUP_PASSES = 4


def clean_ocr_text(text: str) -> str:
    """
    Clean raw recognizer output.

    Steps run in a fixed order:
    1. collapse whitespace
    2. tighten question numbering and option lettering ("12 . A" -> "12. A")
    3. turn stroke artifacts into "I" or a space
    4. strip spaces inside $...$ and after backslashes
    5. trim

    The pass is repeated until the text stops changing, so cleaning
    already-clean text is a no-op.
    """
    if not text:
        return ""

    # Removing an artifact can expose a new match for an earlier step ("12 | . A")
    for _ in range(_MAX_CLEANUP_PASSES):
        cleaned = _cleanup_pass(text)
        if cleaned == text:
            break
        text = cleaned
    return text


def _cleanup_pass(text: str) -> str:
    text = _WHITESPACE.sub(' ', text)

    text = _NUMBERING.sub(r'\1. \2', text)
    text = _LETTERING.sub(r'\1) ', text)

    # A pipe opening a lowercase word is a misread capital I
    text = _PIPE_AS_I.sub('I', text)
    # Single underscores are kept since they mark subscripts
    text = _STROKE_ARTIFACTS.sub(' ', text)

    text = _MATH_SPAN.sub(lambda m: f"${m.group(1)}$", text)
    text = _BACKSLASH_SPACE.sub(r'\\', text)

    return text.strip()


# ============================================================================
# Recognizer Resource
# ============================================================================

class TextRecognizer:
    """
    Reusable image recognizer.

    The engine is expensive to start, so it is created on first use and kept
    until :meth:`release`. Initialization is single-flight: concurrent callers
    wait on the same start instead of racing duplicate ones.

    ``recognize`` never raises. Engine failures, timeouts and empty crops all
    come back as an empty result with zero confidence.
    """

    def __init__(
        self,
        engine: str = "tesseract",
        language: str = "eng",
        tesseract_config: str = "--oem 3 --psm 11",
        timeout: float = 30.0,
        use_gpu: bool = False
    ):
        self.engine_name = engine
        self.language = language
        self.tesseract_config = tesseract_config
        self.timeout = timeout
        self.use_gpu = use_gpu

        self._engine = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, ocr_config) -> 'TextRecognizer':
        return cls(
            engine=ocr_config.engine,
            language=ocr_config.language,
            tesseract_config=ocr_config.tesseract_config,
            timeout=ocr_config.timeout,
            use_gpu=ocr_config.use_gpu
        )

    @property
    def is_acquired(self) -> bool:
        return self._engine is not None

    def _create_engine(self):
        if self.engine_name == "tesseract":
            return TesseractEngine(
                language=self.language,
                config=self.tesseract_config,
                timeout=self.timeout
            )
        elif self.engine_name == "easyocr":
            return EasyOCREngine(language=self.language, use_gpu=self.use_gpu)
        else:
            raise ValueError(f"Unknown OCR engine: {self.engine_name}")

    def acquire(self):
        """Start the engine if needed and return it."""
        engine = self._engine
        if engine is not None:
            return engine

        with self._lock:
            if self._engine is None:
                self._engine = self._create_engine()
                logger.info(f"Initialized OCR engine: {self.engine_name}")
            return self._engine

    def release(self):
        """Shut the engine down. Safe to call more than once."""
        with self._lock:
            engine, self._engine = self._engine, None

        if engine is None:
            return
        close = getattr(engine, "close", None)
        if close is not None:
            try:
                close()
            except Exception as e:
                logger.warning(f"Error while closing {self.engine_name}: {e}")
        logger.info(f"Released OCR engine: {self.engine_name}")

    def recognize(self, image: Optional[np.ndarray]) -> RecognitionResult:
        """
        Recognize text in a cropped region image.

        Args:
            image: Region crop (BGR or grayscale)

        Returns:
            RecognitionResult with cleaned text and 0-100 confidence
        """
        if image is None or image.size == 0:
            return empty_result(self.engine_name)

        try:
            engine = self.acquire()
            result = engine.recognize(image)
        except Exception as e:
            logger.error(f"OCR extraction failed: {e}")
            return empty_result(self.engine_name, error=str(e))

        result.raw_text = result.text
        result.text = clean_ocr_text(result.text)
        return result

    def __enter__(self) -> 'TextRecognizer':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()


# ============================================================================
# Tesseract Engine
# ============================================================================

class TesseractEngine:
    """OCR using Tesseract."""

    def __init__(
        self,
        language: str = "eng",
        config: str = "--oem 3 --psm 11",
        timeout: float = 30.0
    ):
        try:
            import pytesseract
            self.pytesseract = pytesseract

            # Test that tesseract is installed
            pytesseract.get_tesseract_version()

        except Exception as e:
            raise ImportError(
                f"Tesseract not available: {e}\n"
                "Install with: pip install pytesseract\n"
                "Also install Tesseract: https://github.com/tesseract-ocr/tesseract"
            )

        self.language = language
        self.config = config
        self.timeout = timeout

    def _preprocess_for_ocr(self, image: np.ndarray) -> np.ndarray:
        """Grayscale, upscale tiny crops, binarize."""
        import cv2

        if len(image.shape) == 3:
            gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            gray = image.copy()

        # Option regions are often a single short line
        h, w = gray.shape
        if h < 30:
            scale = 30.0 / h
            gray = cv2.resize(gray, None, fx=scale, fy=scale, interpolation=cv2.INTER_CUBIC)

        gray = cv2.adaptiveThreshold(
            gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 11, 2
        )

        return gray

    def recognize(self, image: np.ndarray) -> RecognitionResult:
        """Recognize text using Tesseract. Raises on engine errors and timeouts."""
        processed = self._preprocess_for_ocr(image)

        data = self.pytesseract.image_to_data(
            processed,
            lang=self.language,
            config=self.config,
            timeout=self.timeout,
            output_type=self.pytesseract.Output.DICT
        )

        words = parse_tesseract_data(data)
        text = join_words(words)
        confidence = float(np.mean([w.confidence for w in words])) if words else 0.0

        return RecognitionResult(
            text=text,
            confidence=confidence,
            engine_used="tesseract"
        )


def parse_tesseract_data(data: Dict[str, List[Any]]) -> List[WordResult]:
    """Collect words with a valid confidence from ``image_to_data`` output."""
    words = []
    for i in range(len(data['text'])):
        text = str(data['text'][i]).strip()
        conf = float(data['conf'][i])

        # -1 marks layout rows with no recognized word
        if conf < 0 or not text:
            continue

        line_key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
        words.append(WordResult(text=text, confidence=conf, line_key=line_key))
    return words


def join_words(words: List[WordResult]) -> str:
    lines = []
    current_key = None
    for word in words:
        if word.line_key != current_key:
            lines.append([])
            current_key = word.line_key
        lines[-1].append(word.text)
    return '\n'.join(' '.join(line) for line in lines)


# ============================================================================
# EasyOCR Engine
# ============================================================================

class EasyOCREngine:
    """OCR using EasyOCR."""

    def __init__(
        self,
        language: str = "en",
        use_gpu: bool = False
    ):
        try:
            import easyocr

            lang_map = {"eng": "en", "chi_sim": "ch_sim", "chi_tra": "ch_tra"}
            easy_lang = lang_map.get(language, language)

            self.reader = easyocr.Reader(
                [easy_lang],
                gpu=use_gpu,
                verbose=False
            )
        except ImportError:
            raise ImportError(
                "EasyOCR not available. Install with: pip install easyocr"
            )

        self.language = language

    def recognize(self, image: np.ndarray) -> RecognitionResult:
        """Recognize text using EasyOCR."""
        result = self.reader.readtext(image)

        detections = []
        for bbox_points, text, conf in result:
            top = min(p[1] for p in bbox_points)
            left = min(p[0] for p in bbox_points)
            detections.append((top, left, text, conf))

        # Reading order: top to bottom, then left to right
        detections.sort(key=lambda d: (d[0], d[1]))

        text = ' '.join(d[2] for d in detections)
        # EasyOCR reports 0-1
        confidence = float(np.mean([d[3] for d in detections])) * 100.0 if detections else 0.0

        return RecognitionResult(
            text=text,
            confidence=confidence,
            engine_used="easyocr"
        )

    def close(self):
        self.reader = None
