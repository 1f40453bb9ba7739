"""
Raw Confidence Scoring and Confidence Fusion

Stateless heuristics that score a candidate from its own surface features,
plus the weighted fusion used to merge raw and type confidence.

Question scoring rewards terminal question marks, interrogative openers and
imperative request openers, with small length adjustments. Code scoring
rewards fencing, distinct programming keywords, distinct structural syntax
characters and block height.

Author: Quinn Evans
"""

import re

from models import clamp

RAW_WEIGHT = 0.4
TYPE_WEIGHT = 0.6

QUESTION_BASE = 0.3
QUESTION_MARK_BONUS = 0.4
INTERROGATIVE_BONUS = 0.3
IMPERATIVE_BONUS = 0.2

CODE_BASE = 0.4
FENCE_BONUS = 0.5
KEYWORD_STEP = 0.05
KEYWORD_CAP = 0.3
SYNTAX_STEP = 0.03
SYNTAX_CAP = 0.2
HEIGHT_BONUS = 0.1

_CORE_INTERROGATIVE = re.compile(r"^(?:what|how|why|when|where|who|which)\b", re.IGNORECASE)
_IMPERATIVE_OPENER = re.compile(r"^(?:tell me|describe|explain|discuss|give me)\b", re.IGNORECASE)

PROGRAMMING_KEYWORDS = (
    "function", "class", "import", "const", "def", "return", "if", "for", "while",
)
_KEYWORD_PATTERNS = tuple(re.compile(rf"\b{word}\b") for word in PROGRAMMING_KEYWORDS)
STRUCTURAL_CHARS = "{}();=[]"


def score_question(text: str) -> float:
    """
    Score how strongly a cleaned sentence reads as a question.

    Args:
        text (str): Cleaned candidate sentence

    Returns:
        float: Raw confidence in [0.0, 1.0]
    """
    stripped = text.strip()
    confidence = QUESTION_BASE

    if stripped.endswith("?"):
        confidence += QUESTION_MARK_BONUS
    if _CORE_INTERROGATIVE.match(stripped):
        confidence += INTERROGATIVE_BONUS
    if _IMPERATIVE_OPENER.match(stripped):
        confidence += IMPERATIVE_BONUS

    length = len(stripped)
    if length < 20:
        confidence -= 0.1
    if length > 100:
        confidence += 0.1
    if length > 200:
        confidence -= 0.1

    return clamp(confidence)


def score_code(text: str, fenced: bool = False) -> float:
    """
    Score how strongly a text block reads as code or configuration.

    Args:
        text (str): Block body (without fence delimiters)
        fenced (bool): Whether the block was delimited by triple backticks

    Returns:
        float: Raw confidence in [0.0, 1.0]
    """
    confidence = CODE_BASE
    if fenced:
        confidence += FENCE_BONUS

    keyword_hits = sum(1 for pattern in _KEYWORD_PATTERNS if pattern.search(text))
    confidence += min(KEYWORD_CAP, keyword_hits * KEYWORD_STEP)

    syntax_hits = sum(1 for char in STRUCTURAL_CHARS if char in text)
    confidence += min(SYNTAX_CAP, syntax_hits * SYNTAX_STEP)

    line_count = len(text.strip().splitlines())
    if line_count > 3:
        confidence += HEIGHT_BONUS
    if line_count > 8:
        confidence += HEIGHT_BONUS

    return clamp(confidence)


def combine_confidences(raw_confidence: float, type_confidence: float) -> float:
    """Fuse two confidences with a bias toward the second (type) score."""
    return clamp(raw_confidence * RAW_WEIGHT + type_confidence * TYPE_WEIGHT)
