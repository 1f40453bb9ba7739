"""
Sentence Segmentation and Question Candidate Detection

Splits cleaned text into bounded sentences and keeps the ones that read as
questions. Unlike the streaming detector used for live speech, this works
on a complete block of text (typed input or OCR output) in one pass.

Algorithm:
- Split on terminal punctuation followed by a capital letter, or on an
  explicit question mark followed by whitespace
- Drop segments outside the [10, 500) character window
- Strip list numbering and bullets, collapse whitespace
- Keep segments that end with "?" or open with an interrogative, an
  auxiliary/modal verb, or an imperative request phrase

Author: Quinn Evans
"""

import re
from typing import List

from confidence_scorer import score_question
from models import Candidate

MIN_SEGMENT_CHARS = 10
MAX_SEGMENT_CHARS = 500

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s*(?=[A-Z])|(?<=\?)\s+")
_LIST_NUMBERING = re.compile(r"^\d+[.)]\s*")
_BULLET = re.compile(r"^[-•*]\s*")
_WHITESPACE = re.compile(r"\s+")


class QuestionSegmenter:
    """
    Turns a block of text into ordered question candidates.

    Attributes:
        question_patterns (tuple): Opening patterns that mark a question
        min_chars (int): Shortest segment kept (inclusive)
        max_chars (int): Longest segment kept (exclusive)
    """

    def __init__(self, min_chars: int = MIN_SEGMENT_CHARS, max_chars: int = MAX_SEGMENT_CHARS):
        self.min_chars = min_chars
        self.max_chars = max_chars

        # Interrogatives, auxiliaries/modals, imperative requests
        self.question_patterns = (
            re.compile(r"^(?:what|how|why|when|where|who|which|whose|whom)\s", re.IGNORECASE),
            re.compile(r"^(?:can|could|would|will|should|do|does|did|is|are|was|were)\s", re.IGNORECASE),
            re.compile(r"^(?:tell me|describe|explain|discuss|give me|walk me)\s", re.IGNORECASE),
        )

    def extract_candidates(self, text: str) -> List[Candidate]:
        """
        Extract question candidates from text.

        Args:
            text (str): Input text, already OCR-normalized if applicable

        Returns:
            List[Candidate]: Question candidates in reading order. The
                position is the index of the source segment.
        """
        candidates = []
        for index, sentence in enumerate(self.split_into_sentences(text)):
            cleaned = self.clean_sentence(sentence)
            if not self._within_bounds(cleaned):
                continue
            if not self.looks_like_question(cleaned):
                continue

            candidates.append(Candidate(
                text=cleaned,
                original_text=sentence,
                position=index,
                raw_confidence=score_question(cleaned),
            ))

        return candidates

    def split_into_sentences(self, text: str) -> List[str]:
        """Split text on sentence boundaries, keeping only bounded segments."""
        if not text:
            return []

        segments = (segment.strip() for segment in _SENTENCE_BOUNDARY.split(text))
        return [segment for segment in segments if self._within_bounds(segment)]

    def clean_sentence(self, sentence: str) -> str:
        """Remove list numbering and bullets, and collapse whitespace."""
        cleaned = _LIST_NUMBERING.sub("", sentence.strip())
        cleaned = _BULLET.sub("", cleaned)
        return _WHITESPACE.sub(" ", cleaned).strip()

    def looks_like_question(self, sentence: str) -> bool:
        if not sentence:
            return False
        if sentence.endswith("?"):
            return True
        return any(pattern.match(sentence) for pattern in self.question_patterns)

    def _within_bounds(self, segment: str) -> bool:
        return self.min_chars <= len(segment) < self.max_chars
