"""Pytest configuration and fixtures."""

import asyncio

import pytest

from confidence_scorer import combine_confidences
from models import OCRResult, ScoredCandidate
from question_classifier import QuestionClassifier
from question_detector import QuestionDetector
from question_segmenter import QuestionSegmenter

BEHAVIORAL_QUESTION = "Tell me about a time you faced a conflict with a teammate."
TECHNICAL_QUESTION = "How would you implement a rate limiter for an API?"


class FakeAIService:
    """Blocking AI collaborator returning a canned reply."""

    def __init__(self, reply=None, error=None):
        self.reply = reply if reply is not None else "[]"
        self.error = error
        self.calls = []

    def generate_response(self, question, model=None):
        self.calls.append({"question": question, "model": model})
        if self.error is not None:
            raise self.error
        return {"response": self.reply}


class AsyncFakeAIService(FakeAIService):
    """Coroutine AI collaborator with an optional delay."""

    def __init__(self, reply=None, error=None, delay=0.0):
        super().__init__(reply=reply, error=error)
        self.delay = delay

    async def generate_response(self, question, model=None):
        if self.delay:
            await asyncio.sleep(self.delay)
        return FakeAIService.generate_response(self, question, model)


class FakeOCRService:
    def __init__(self, text="", confidence=0.9, error=None):
        self.text = text
        self.confidence = confidence
        self.error = error
        self.calls = []

    def perform_ocr(self, image, options=None):
        self.calls.append((image, options))
        if self.error is not None:
            raise self.error
        return OCRResult(text=self.text, confidence=self.confidence, provider="fake")


def make_scored(text):
    """Classify and fuse a single question the way the detector does."""
    candidate = QuestionSegmenter().extract_candidates(text)[0]
    classification = QuestionClassifier().classify(candidate.text)
    return ScoredCandidate(
        candidate=candidate,
        classification=classification,
        confidence=combine_confidences(candidate.raw_confidence, classification.confidence),
        type=classification.type,
        sub_categories=classification.sub_categories,
    )


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def fixed_clock():
    return lambda: 0.0


@pytest.fixture
def detector(fixed_clock):
    """Heuristic-only detector with a frozen clock."""
    return QuestionDetector(clock=fixed_clock)


@pytest.fixture
def no_ai():
    return {"useAI": False}
