"""
Interview Question Detection

Public entry point of the detection engine. Takes typed text or a
screenshot, and decides whether it contains an interview question or a
code/config challenge, what kind of question it is, and how confident the
caller should be.

Pipeline:
- Resolve input: text passes through, images go to the OCR service
- Code extraction over the raw text; any code block pre-empts questions
- Otherwise segmentation into question candidates, raw scoring, type
  classification and confidence fusion
- Optional AI re-scoring (best effort, never fatal)
- Confidence threshold, best result selection
- Context history and statistics updates on success

detect() never raises for bad or low-quality input: every outcome is a
DetectionResult. Unsupported input and a missing/failed OCR service come
back as success=False with an error message.

Configuration:
- INTERVIEWASSIST_CONFIDENCE_THRESHOLD: default threshold (0.5)
- INTERVIEWASSIST_AI_TIMEOUT: seconds to wait for AI enhancement (8)

Author: Quinn Evans
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from PIL import Image

from ai_enhancer import AIEnhancer
from code_extractor import CodeExtractor
from collaborators import AIService, OCRService, call_collaborator
from confidence_scorer import combine_confidences
from context_tracker import ContextTracker
from errors import NoTextExtracted, ServiceUnavailable, UnsupportedInputType
from exception_logger import exception_logger
from llm import DEFAULT_MODEL
from models import (
    CODE_KIND,
    Candidate,
    Classification,
    ContextEntry,
    DetectionResult,
    ScoredCandidate,
)
from question_classifier import QuestionClassifier
from question_segmenter import QuestionSegmenter

DEFAULT_CONFIDENCE_THRESHOLD = float(os.getenv("INTERVIEWASSIST_CONFIDENCE_THRESHOLD", "0.5"))
AI_TIMEOUT = float(os.getenv("INTERVIEWASSIST_AI_TIMEOUT", "8"))

DATA_URL_PREFIX = "data:image"
SELF_TEST_TEXT = "What is your name?"

NO_TEXT = "no_text"
GENERAL_TEXT = "general_text"
ERROR = "error"

# camelCase keys accepted from JSON callers
_OPTION_ALIASES = {
    "useAI": "use_ai",
    "confidenceThreshold": "confidence_threshold",
    "aiModel": "ai_model",
    "ocrOptions": "ocr_options",
}


@dataclass
class DetectionOptions:
    """Per-call detection options."""

    use_ai: bool = True
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    ai_model: str = DEFAULT_MODEL
    ocr_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Only real booleans; no truthiness coercion
        if not isinstance(self.use_ai, bool):
            raise TypeError(f"use_ai must be a boolean, not {type(self.use_ai).__name__}")
        self.confidence_threshold = float(self.confidence_threshold)
        self.ocr_options = dict(self.ocr_options)

    @classmethod
    def from_value(cls, options: Any) -> "DetectionOptions":
        """
        Build options from None, an existing instance, or a dict.

        Dict keys may be snake_case field names or their camelCase aliases.
        Unknown keys and None values are ignored.
        """
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if not isinstance(options, dict):
            raise TypeError(f"options must be a dict or DetectionOptions, not {type(options).__name__}")

        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name in known and value is not None:
                values[name] = value
        return cls(**values)


class QuestionDetector:
    """
    Orchestrates question and code detection for one interview session.

    Both collaborators are optional. Without an OCR service, image input
    fails with ServiceUnavailable; without an AI service, enhancement is
    skipped.

    Attributes:
        ai_service: AI collaborator or None
        ocr_service: OCR collaborator or None
        enhancer (AIEnhancer): Present only when ai_service is set
        segmenter (QuestionSegmenter): Sentence splitting and candidate detection
        code_extractor (CodeExtractor): Code/config block extraction
        classifier (QuestionClassifier): Category scoring
        tracker (ContextTracker): History and statistics owned by this instance
        clock (callable): Monotonic seconds used for processing time
    """

    def __init__(
        self,
        ai_service: Optional[AIService] = None,
        ocr_service: Optional[OCRService] = None,
        segmenter: Optional[QuestionSegmenter] = None,
        code_extractor: Optional[CodeExtractor] = None,
        classifier: Optional[QuestionClassifier] = None,
        tracker: Optional[ContextTracker] = None,
        clock: Callable[[], float] = time.perf_counter,
        ai_timeout: float = AI_TIMEOUT,
    ):
        self.ai_service = ai_service
        self.ocr_service = ocr_service
        self.enhancer = AIEnhancer(ai_service, timeout=ai_timeout) if ai_service is not None else None

        self.segmenter = segmenter or QuestionSegmenter()
        self.code_extractor = code_extractor or CodeExtractor()
        self.classifier = classifier or QuestionClassifier()
        self.tracker = tracker or ContextTracker()
        self.clock = clock

    # ------------------------------------------------------------------ Detection

    async def detect(self, input_data: Any, options: Any = None) -> DetectionResult:
        """
        Detect the best question or code challenge in the input.

        Args:
            input_data: Text, a data:image URL, encoded image bytes or a
                PIL image
            options: DetectionOptions or a dict of option values

        Returns:
            DetectionResult: Always returned, never raised. Invalid options
                come back as an error result.
        """
        try:
            parsed = DetectionOptions.from_value(options)
        except (TypeError, ValueError) as exc:
            exception_logger.log_exception(exc, "question_detector", "Invalid detection options")
            return DetectionResult(success=False, type=ERROR, error=f"Invalid options: {exc}")
        return await self._detect(input_data, parsed, record=True)

    async def _detect(self, input_data: Any, options: DetectionOptions, record: bool) -> DetectionResult:
        start = self.clock()
        metadata: Dict[str, Any] = {}

        try:
            text = await self._resolve_text(input_data, options, metadata)
        except (UnsupportedInputType, ServiceUnavailable) as exc:
            exception_logger.log_exception(exc, "question_detector", "Input could not be processed")
            return DetectionResult(
                success=False,
                type=ERROR,
                error=str(exc),
                processing_time_ms=self._elapsed_ms(start),
                metadata=metadata,
            )

        if not text or not text.strip():
            metadata["error"] = str(NoTextExtracted("No text extracted from input"))
            return DetectionResult(
                success=False,
                type=NO_TEXT,
                processing_time_ms=self._elapsed_ms(start),
                metadata=metadata,
            )

        scored, ai_requested = await self._run_pipeline(text, options)
        passing = [s for s in scored if s.confidence >= options.confidence_threshold]

        metadata.update({
            "confidenceThreshold": options.confidence_threshold,
            "aiRequested": ai_requested,
            "candidatesFound": len(scored),
            "afterFiltering": len(passing),
        })
        elapsed = self._elapsed_ms(start)

        if not passing:
            if scored:
                metadata["bestConfidence"] = max(s.confidence for s in scored)
            return DetectionResult(
                success=False,
                type=GENERAL_TEXT,
                processing_time_ms=elapsed,
                metadata=metadata,
            )

        # Highest confidence wins; earlier position breaks ties
        best = max(passing, key=lambda s: (s.confidence, -s.candidate.position))
        result = self._build_result(best, elapsed, metadata)

        if record:
            self.tracker.record(text, [best], elapsed)
            print(f"[QuestionDetector] {result.type} ({result.confidence:.2f}) in {elapsed}ms")

        return result

    async def _resolve_text(self, input_data: Any, options: DetectionOptions, metadata: Dict[str, Any]) -> str:
        if isinstance(input_data, str) and not input_data.startswith(DATA_URL_PREFIX):
            return input_data

        if isinstance(input_data, (str, bytes, bytearray, Image.Image)):
            return await self._perform_ocr(input_data, options, metadata)

        raise UnsupportedInputType(f"Unsupported input type: {type(input_data).__name__}")

    async def _perform_ocr(self, image: Any, options: DetectionOptions, metadata: Dict[str, Any]) -> str:
        if self.ocr_service is None:
            raise ServiceUnavailable("OCR service not available")

        try:
            ocr_result = await call_collaborator(self.ocr_service.perform_ocr, image, options.ocr_options)
        except ServiceUnavailable:
            raise
        except Exception as exc:
            raise ServiceUnavailable(f"OCR failed: {exc}") from exc

        if isinstance(ocr_result, dict):
            text = ocr_result.get("text", "")
            metadata["ocrProvider"] = ocr_result.get("provider")
            metadata["ocrConfidence"] = ocr_result.get("confidence")
        else:
            text = ocr_result.text
            metadata["ocrProvider"] = ocr_result.provider
            metadata["ocrConfidence"] = ocr_result.confidence
        return text or ""

    async def _run_pipeline(self, text: str, options: DetectionOptions) -> Tuple[List[ScoredCandidate], bool]:
        """
        Score every candidate in the text.

        Returns:
            Tuple[List[ScoredCandidate], bool]: Scored candidates and
                whether AI enhancement was attempted
        """
        code = self.code_extractor.extract(text)
        if code is not None:
            return [self._score(code, self.classifier.classify_code(code))], False

        scored = [
            self._score(candidate, self.classifier.classify(candidate.text))
            for candidate in self.segmenter.extract_candidates(text)
        ]

        if self.enhancer is not None and options.use_ai and scored:
            scored = await self.enhancer.enhance(scored, text, options.ai_model)
            return scored, True

        return scored, False

    def _score(self, candidate: Candidate, classification: Classification) -> ScoredCandidate:
        return ScoredCandidate(
            candidate=candidate,
            classification=classification,
            confidence=combine_confidences(candidate.raw_confidence, classification.confidence),
            type=classification.type,
            sub_categories=classification.sub_categories,
        )

    def _build_result(self, best: ScoredCandidate, elapsed: int, metadata: Dict[str, Any]) -> DetectionResult:
        candidate = best.candidate
        metadata = dict(metadata)
        metadata.update({
            "source": candidate.kind,
            "position": candidate.position,
            "rawConfidence": candidate.raw_confidence,
            "typeConfidence": best.classification.confidence,
        })

        if candidate.kind == CODE_KIND:
            metadata["category"] = best.type
            metadata["fenced"] = candidate.fenced
            if candidate.language:
                metadata["language"] = candidate.language
            return DetectionResult(
                success=True,
                type=best.sub_categories[0],
                code=candidate.text,
                confidence=best.confidence,
                processing_time_ms=elapsed,
                metadata=metadata,
                sub_categories=list(best.sub_categories),
            )

        metadata["aiEnhanced"] = best.ai_enhanced
        if best.ai_enhanced:
            metadata["aiConfidence"] = best.ai_confidence
            metadata["difficulty"] = best.difficulty
            metadata["aiReasoning"] = best.ai_reasoning
        if best.corrected_text:
            metadata["originalQuestion"] = candidate.text

        return DetectionResult(
            success=True,
            type=best.type,
            question=best.text,
            confidence=best.confidence,
            processing_time_ms=elapsed,
            metadata=metadata,
            sub_categories=list(best.sub_categories),
            matched_keywords=list(best.classification.matched_keywords),
        )

    def _elapsed_ms(self, start: float) -> int:
        return int(round((self.clock() - start) * 1000))

    # ------------------------------------------------------------------ Session state

    def get_stats(self) -> Dict[str, Any]:
        """Running statistics plus service availability."""
        stats = self.tracker.get_stats().to_dict()
        stats.update({
            "contextHistorySize": self.tracker.history_size(),
            "aiServiceAvailable": self.ai_service is not None,
            "ocrServiceAvailable": self.ocr_service is not None,
        })
        return stats

    def get_recent_context(self) -> List[ContextEntry]:
        """Up to five most recent context entries, newest first."""
        return self.tracker.recent()

    def reset_stats(self):
        self.tracker.reset_stats()

    async def health_check(self) -> Dict[str, Any]:
        """
        Report service availability and run a self test.

        The self test detects a fixed question without AI and does not
        touch statistics or context history.
        """
        health: Dict[str, Any] = {
            "status": "healthy",
            "services": {
                "ai": "available" if self.ai_service is not None else "unavailable",
                "ocr": "available" if self.ocr_service is not None else "unavailable",
            },
            "stats": self.get_stats(),
            "errorsLogged": exception_logger.error_count,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        try:
            test_result = await self._detect(SELF_TEST_TEXT, DetectionOptions(use_ai=False), record=False)
        except Exception as exc:
            exception_logger.log_exception(exc, "question_detector", "Health check self test crashed")
            health["status"] = "error"
            health["selfTestResult"] = "failed"
            health["testError"] = str(exc)
            return health

        health["selfTestResult"] = "passed" if test_result.success else "failed"
        if not test_result.success:
            health["status"] = "degraded"
        return health
