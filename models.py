"""
Detection Data Model

Plain data containers passed between the detection stages. Candidates are
created once by the segmenter or the code extractor and never mutated;
later stages wrap them in ScoredCandidate. DetectionResult is the single
externally visible payload of one detect() call.

Author: Quinn Evans
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

QUESTION_KIND = "question"
CODE_KIND = "code"


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a confidence value into [low, high]."""
    return max(low, min(high, float(value)))


@dataclass(frozen=True)
class Category:
    """A fixed question category with its keyword and indicator tables."""

    name: str
    keywords: Tuple[str, ...]
    indicators: Tuple[str, ...]
    weight: float


@dataclass(frozen=True)
class Candidate:
    """A text span considered for question or code classification."""

    text: str
    original_text: str
    position: int
    raw_confidence: float
    source: str = "pattern_matching"
    kind: str = QUESTION_KIND
    fenced: bool = False
    language: Optional[str] = None


@dataclass(frozen=True)
class Classification:
    type: str
    confidence: float
    sub_categories: Tuple[str, ...] = ()
    matched_keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoredCandidate:
    """
    A candidate after classification and confidence fusion.

    The AI fields stay at their defaults unless the enhancement adapter
    matched a response entry to this candidate.
    """

    candidate: Candidate
    classification: Classification
    confidence: float
    type: str
    sub_categories: Tuple[str, ...] = ()
    ai_enhanced: bool = False
    ai_confidence: Optional[float] = None
    difficulty: Optional[str] = None
    corrected_text: Optional[str] = None
    ai_reasoning: Optional[str] = None

    @property
    def text(self) -> str:
        return self.corrected_text or self.candidate.text


@dataclass
class DetectionResult:
    """Outcome of a single detect() call."""

    success: bool
    type: str
    confidence: float = 0.0
    question: Optional[str] = None
    code: Optional[str] = None
    processing_time_ms: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)
    sub_categories: List[str] = field(default_factory=list)
    matched_keywords: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "question": self.question,
            "code": self.code,
            "type": self.type,
            "confidence": self.confidence,
            "processingTimeMs": self.processing_time_ms,
            "metadata": dict(self.metadata),
            "subCategories": list(self.sub_categories),
            "matchedKeywords": list(self.matched_keywords),
            "error": self.error,
        }


@dataclass(frozen=True)
class ContextEntry:
    text_snapshot: str
    question_count: int
    timestamp_ms: int
    types: FrozenSet[str] = frozenset()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "textSnapshot": self.text_snapshot,
            "questionCount": self.question_count,
            "timestampMs": self.timestamp_ms,
            "types": sorted(self.types),
        }


@dataclass
class DetectionStats:
    """Running aggregates owned by one detector instance."""

    total_questions: int = 0
    successful_detections: int = 0
    classification_accuracy: float = 0.0
    average_confidence: float = 0.0
    processing_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalQuestions": self.total_questions,
            "successfulDetections": self.successful_detections,
            "classificationAccuracy": self.classification_accuracy,
            "averageConfidence": self.average_confidence,
            "processingTimeMs": self.processing_time_ms,
        }


@dataclass(frozen=True)
class OCRResult:
    text: str
    confidence: float
    provider: str
    raw_text: str = ""
