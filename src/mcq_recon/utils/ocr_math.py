"""
Math content detection and LaTeX helpers.

Provides:
- Detection of mathematical notation in extracted text
- Inline/display math segment extraction
- Light LaTeX normalization and validation
"""

import logging
import re
from typing import List, Tuple

logger = logging.getLogger(__name__)


# ============================================================================
# Patterns
# ============================================================================

MATH_SYMBOLS = "∑∫∞√≤≥≠±÷×∝∈∉⊆⊇∪∩"
GREEK_LETTERS = "αβγδεζηθικλμνξοπρστυφχψω"

MATH_PATTERNS = [
    re.compile(r'\$[^$]+\$'),             # inline math $...$
    re.compile(r'\\[a-zA-Z]+'),           # commands like \frac, \alpha
    re.compile(r'[\^_](\{[^}]+\}|\w+)'),  # super/subscripts
    re.compile(f'[{MATH_SYMBOLS}]'),
    re.compile(f'[{GREEK_LETTERS}]'),
]

DISPLAY_MATH = re.compile(r'\$\$[^$]+\$\$')
INLINE_MATH = re.compile(r'(?<!\$)\$[^$]+\$(?!\$)')


# ============================================================================
# Detection
# ============================================================================

def has_math(text: str) -> bool:
    """
    Check whether text contains mathematical notation.

    Matches inline ``$...$`` spans, backslash commands, ``^``/``_`` markers
    followed by a token or braced group, math symbols and Greek letters.
    """
    if not text:
        return False
    return any(pattern.search(text) for pattern in MATH_PATTERNS)


def extract_latex_segments(text: str) -> List[str]:
    """Return the display (``$$...$$``) then inline (``$...$``) math spans."""
    if not text:
        return []
    segments = DISPLAY_MATH.findall(text)
    segments.extend(INLINE_MATH.findall(DISPLAY_MATH.sub(' ', text)))
    return segments


def wrap_latex_inline(text: str) -> str:
    """Wrap math-looking text in ``$...$`` unless it already has delimiters."""
    if has_math(text) and '$' not in text:
        return f"${text}$"
    return text


# ============================================================================
# Normalization
# ============================================================================

def clean_latex(latex: str) -> str:
    """
    Clean common recognition noise in a LaTeX string.

    Args:
        latex: Raw LaTeX string

    Returns:
        Cleaned LaTeX string
    """
    if not latex:
        return ""

    latex = re.sub(r'\s+', ' ', latex.strip())
    latex = re.sub(r'\s*\$\s*', '$', latex)
    latex = re.sub(r'\\\s+', r'\\', latex)
    latex = re.sub(r'\{\s+', '{', latex)
    latex = re.sub(r'\s+\}', '}', latex)

    return latex


def validate_latex(latex: str) -> Tuple[bool, str]:
    """
    Validate LaTeX syntax.

    Args:
        latex: LaTeX string

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not latex:
        return False, "Empty LaTeX string"

    brace_count = 0
    for char in latex:
        if char == '{':
            brace_count += 1
        elif char == '}':
            brace_count -= 1
        if brace_count < 0:
            return False, "Unbalanced braces"

    if brace_count != 0:
        return False, "Unbalanced braces"

    if latex.endswith('\\'):
        return False, "Incomplete command"

    if len(re.findall(r'(?<!\\)\$', latex)) % 2:
        return False, "Unbalanced math delimiters"

    return True, ""
