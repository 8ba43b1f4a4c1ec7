"""
Tests for the text recognition module.
"""

import threading
import time
import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class StubEngine:
    """Engine double returning a fixed raw text."""

    def __init__(self, text="", confidence=90.0, error=None):
        self.text = text
        self.confidence = confidence
        self.error = error
        self.calls = 0
        self.closed = 0

    def recognize(self, image):
        from mcq_recon.utils.ocr_text import RecognitionResult

        self.calls += 1
        if self.error:
            raise self.error
        return RecognitionResult(text=self.text, confidence=self.confidence, engine_used="stub")

    def close(self):
        self.closed += 1


def make_recognizer(engine, delay=0.0):
    """TextRecognizer whose engine factory returns ``engine``."""
    from mcq_recon.utils.ocr_text import TextRecognizer

    recognizer = TextRecognizer(engine="stub")
    recognizer.created = 0

    def create():
        time.sleep(delay)
        recognizer.created += 1
        return engine

    recognizer._create_engine = create
    return recognizer


class TestRecognitionResult:
    """Test RecognitionResult class."""

    def test_result_creation(self):
        from mcq_recon.utils.ocr_text import RecognitionResult

        result = RecognitionResult(text="B) 7", confidence=88.0, engine_used="tesseract")

        assert result.text == "B) 7"
        assert result.is_usable is True
        assert result.to_dict()["engine"] == "tesseract"

    def test_confidence_floor_is_exclusive(self):
        from mcq_recon.utils.ocr_text import RecognitionResult

        assert RecognitionResult(text="x", confidence=60.0).is_usable is False
        assert RecognitionResult(text="x", confidence=60.5).is_usable is True


class TestCleanOCRText:
    """Test recognizer output cleanup."""

    def test_collapse_whitespace(self):
        from mcq_recon.utils.ocr_text import clean_ocr_text

        assert clean_ocr_text("  Which\n\nof   the\tfollowing ") == "Which of the following"

    def test_question_numbering(self):
        from mcq_recon.utils.ocr_text import clean_ocr_text

        assert clean_ocr_text("12 . Which is true?") == "12. Which is true?"

    def test_option_lettering(self):
        from mcq_recon.utils.ocr_text import clean_ocr_text

        assert clean_ocr_text("b )  42") == "b) 42"

    def test_pipe_read_as_capital_i(self):
        from mcq_recon.utils.ocr_text import clean_ocr_text

        assert clean_ocr_text("|n the figure") == "In the figure"

    def test_stroke_artifacts_removed(self):
        from mcq_recon.utils.ocr_text import clean_ocr_text

        assert clean_ocr_text("Option ___ B | | C") == "Option B C"

    def test_subscript_underscore_kept(self):
        from mcq_recon.utils.ocr_text import clean_ocr_text

        assert clean_ocr_text("x_1 + x_2") == "x_1 + x_2"

    def test_math_delimiters(self):
        from mcq_recon.utils.ocr_text import clean_ocr_text

        assert clean_ocr_text("Find $ x ^ 2 $ when") == "Find $x ^ 2$ when"
        assert clean_ocr_text("\\ frac{1}{2}") == "\\frac{1}{2}"

    def test_artifact_before_numbering(self):
        """Cleanup that exposes a new numbering match is applied again."""
        from mcq_recon.utils.ocr_text import clean_ocr_text

        assert clean_ocr_text("12 | . A") == "12. A"

    def test_empty(self):
        from mcq_recon.utils.ocr_text import clean_ocr_text

        assert clean_ocr_text("") == ""
        assert clean_ocr_text(" \n ") == ""

    @pytest.mark.parametrize("raw", [
        "12 . Which of the following |s correct ?",
        "a )x  b )y",
        "$ a $ $ b $ and $ c",
        "||| ___ | \\  alpha _ x",
        "f(x) = x^2 +  1\n\nA) 3   B ) 5",
        "$a b) $c$",
        "12 | . A",
        "___",
    ])
    def test_idempotent(self, raw):
        from mcq_recon.utils.ocr_text import clean_ocr_text

        once = clean_ocr_text(raw)

        assert clean_ocr_text(once) == once


class TestTextRecognizer:
    """Test the reusable recognizer resource."""

    @pytest.fixture
    def crop(self):
        return np.full((30, 120, 3), 255, dtype=np.uint8)

    def test_lazy_initialization(self, crop):
        engine = StubEngine(text="B) 7")
        recognizer = make_recognizer(engine)

        assert recognizer.is_acquired is False

        recognizer.recognize(crop)
        recognizer.recognize(crop)

        assert recognizer.created == 1
        assert engine.calls == 2

    def test_cleanup_applied(self, crop):
        recognizer = make_recognizer(StubEngine(text="12 .  Which |s\nprime?"))

        result = recognizer.recognize(crop)

        assert result.text == "12. Which Is prime?"
        assert result.raw_text == "12 .  Which |s\nprime?"

    def test_engine_error_recovered(self, crop):
        recognizer = make_recognizer(StubEngine(error=RuntimeError("Tesseract process timeout")))

        result = recognizer.recognize(crop)

        assert result.text == ""
        assert result.confidence == 0
        assert "timeout" in result.metadata["error"]

    def test_unavailable_engine_recovered(self, crop):
        from mcq_recon.utils.ocr_text import TextRecognizer

        recognizer = TextRecognizer(engine="no-such-engine")

        result = recognizer.recognize(crop)

        assert result.confidence == 0
        with pytest.raises(ValueError):
            recognizer.acquire()

    def test_empty_crop_skips_engine(self):
        engine = StubEngine(text="x")
        recognizer = make_recognizer(engine)

        result = recognizer.recognize(np.zeros((0, 0, 3), dtype=np.uint8))

        assert result.text == ""
        assert recognizer.is_acquired is False
        assert engine.calls == 0

    def test_release_is_idempotent(self, crop):
        engine = StubEngine(text="x")
        recognizer = make_recognizer(engine)
        recognizer.recognize(crop)

        recognizer.release()
        recognizer.release()

        assert engine.closed == 1
        assert recognizer.is_acquired is False

    def test_reacquire_after_release(self, crop):
        recognizer = make_recognizer(StubEngine(text="x"))

        recognizer.recognize(crop)
        recognizer.release()
        recognizer.recognize(crop)

        assert recognizer.created == 2

    def test_context_manager_releases(self, crop):
        engine = StubEngine(text="x")

        with make_recognizer(engine) as recognizer:
            recognizer.recognize(crop)

        assert engine.closed == 1

    def test_single_flight_initialization(self):
        """Concurrent first calls start the engine once."""
        engine = StubEngine(text="x")
        recognizer = make_recognizer(engine, delay=0.05)
        acquired = []

        threads = [
            threading.Thread(target=lambda: acquired.append(recognizer.acquire()))
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert recognizer.created == 1
        assert all(e is engine for e in acquired)
        assert len(acquired) == 8


class TestTesseractParsing:
    """Test parsing of Tesseract data output."""

    def test_parse_and_join(self):
        from mcq_recon.utils.ocr_text import parse_tesseract_data, join_words

        data = {
            "text": ["", "Which", "is", "", "prime?"],
            "conf": ["-1", "91", "88", "-1", "70"],
            "block_num": [1, 1, 1, 1, 1],
            "par_num": [1, 1, 1, 1, 1],
            "line_num": [0, 1, 1, 2, 2],
        }

        words = parse_tesseract_data(data)

        assert [w.text for w in words] == ["Which", "is", "prime?"]
        assert join_words(words) == "Which is\nprime?"

    def test_tesseract_recognize(self):
        """Test Tesseract recognition on a rendered crop."""
        import cv2
        from mcq_recon.utils.ocr_text import TesseractEngine

        img = np.ones((60, 300), dtype=np.uint8) * 255
        cv2.putText(img, "Hello World", (10, 40), cv2.FONT_HERSHEY_SIMPLEX, 1.0, 0, 2)

        try:
            engine = TesseractEngine()
        except ImportError:
            pytest.skip("Tesseract not available")

        result = engine.recognize(img)

        assert result.engine_used == "tesseract"
        assert 0.0 <= result.confidence <= 100.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
