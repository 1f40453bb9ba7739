"""
AI Enhancement of Detected Questions

Optional, best-effort re-scoring and correction of question candidates by
an external text-generation service. The heuristic pipeline never depends
on it: any transport failure, timeout or unparseable answer leaves the
candidates exactly as they were.

Parsing has two tiers:
- Strict: the first JSON array in the reply, each item validated against
  the Enhancement schema (invalid items are dropped one by one)
- Fallback: numbered "N." blocks with confidence/score and
  type/classification lines

Matched enhancements fuse their confidence with the candidate's combined
confidence and overwrite type, difficulty and (when it is a plausible
rewrite of the original) the question text.

Dependencies:
- pydantic: schema validation of the JSON tier
- rapidfuzz: similarity guard for AI-corrected question text

Author: Quinn Evans
"""

import asyncio
import json
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from rapidfuzz import fuzz

from collaborators import call_collaborator
from confidence_scorer import combine_confidences
from errors import AIEnhancementFailure, ParseError
from exception_logger import exception_logger
from models import ScoredCandidate, clamp
from question_classifier import CATEGORY_NAMES, sub_categories_for

DIFFICULTY_LEVELS = ("entry", "mid", "senior", "executive")
DEFAULT_AI_CONFIDENCE = 0.7
CONTEXT_CHARS = 500
CORRECTION_MIN_SIMILARITY = 60

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
_ITEM_MARKER = re.compile(r"^(\d+)\.")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_CATEGORY_NAME = re.compile(r"\b(" + "|".join(CATEGORY_NAMES) + r")\b", re.IGNORECASE)


class Enhancement(BaseModel):
    """One AI verdict about one numbered candidate."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question_index: int = Field(alias="questionIndex", ge=1)
    confidence: float = DEFAULT_AI_CONFIDENCE
    type: Optional[str] = None
    corrected_text: Optional[str] = Field(default=None, alias="correctedText")
    difficulty: Optional[str] = None
    reasoning: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def normalise_confidence(cls, value: Any) -> float:
        if value is None:
            return DEFAULT_AI_CONFIDENCE
        try:
            value = float(str(value).strip().rstrip("%"))
        except ValueError as exc:
            raise ValueError(f"confidence is not a number: {value!r}") from exc
        # Percentages come back as 0-100
        if value > 1:
            value /= 100
        return clamp(value)

    @field_validator("type", "difficulty", mode="before")
    @classmethod
    def lower_case(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or None
        return value

    # Unknown labels become None; the rest of the entry is kept
    @field_validator("type")
    @classmethod
    def known_type(cls, value: Optional[str]) -> Optional[str]:
        return value if value in CATEGORY_NAMES else None

    @field_validator("difficulty")
    @classmethod
    def known_difficulty(cls, value: Optional[str]) -> Optional[str]:
        return value if value in DIFFICULTY_LEVELS else None

    @property
    def index(self) -> int:
        """Zero-based candidate index."""
        return self.question_index - 1


def parse_enhancements(response_text: str) -> List[Enhancement]:
    """
    Parse an AI reply into validated enhancements.

    Args:
        response_text (str): Raw model output

    Returns:
        List[Enhancement]: Valid entries in reply order

    Raises:
        ParseError: Reply is empty, or neither tier found anything
    """
    if not response_text or not response_text.strip():
        raise ParseError("AI response was empty")

    match = _JSON_ARRAY.search(response_text)
    if match:
        try:
            items = json.loads(match.group(0))
        except json.JSONDecodeError:
            items = None
        if isinstance(items, list):
            return _validate_items(items)

    enhancements = _parse_structured_lines(response_text)
    if not enhancements:
        raise ParseError("AI response contained no recognisable enhancements")
    return enhancements


def _validate_items(items: List[Any]) -> List[Enhancement]:
    enhancements = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            enhancements.append(Enhancement.model_validate(item))
        except ValidationError as exc:
            exception_logger.log_error(
                f"Dropped invalid enhancement: {exc.error_count()} error(s)",
                "ai_enhancer",
                context=json.dumps(item)[:200],
            )
    return enhancements


def _parse_structured_lines(response_text: str) -> List[Enhancement]:
    """Fallback tier: numbered blocks with confidence and type lines."""
    raw_entries: List[Dict[str, Any]] = []
    current: Optional[Dict[str, Any]] = None

    for line in response_text.splitlines():
        stripped = line.strip()
        marker = _ITEM_MARKER.match(stripped)
        if marker:
            current = {
                "questionIndex": int(marker.group(1)),
                "confidence": DEFAULT_AI_CONFIDENCE,
                "type": "general",
                "difficulty": "mid",
            }
            raw_entries.append(current)
            stripped = stripped[marker.end():]
        if current is None:
            continue

        lowered = stripped.lower()
        if "confidence" in lowered or "score" in lowered:
            number = _NUMBER.search(stripped)
            if number:
                current["confidence"] = float(number.group(0))
        if "type" in lowered or "classification" in lowered:
            category = _CATEGORY_NAME.search(stripped)
            if category:
                current["type"] = category.group(1).lower()

    return _validate_items(raw_entries)


def apply_enhancements(candidates: List[ScoredCandidate], enhancements: List[Enhancement]) -> List[ScoredCandidate]:
    """
    Merge enhancements into candidates by index.

    Args:
        candidates (List[ScoredCandidate]): Candidates in prompt order
        enhancements (List[Enhancement]): Parsed AI verdicts

    Returns:
        List[ScoredCandidate]: New list; unmatched candidates are returned
            unchanged. The first enhancement for an index wins.
    """
    by_index: Dict[int, Enhancement] = {}
    for enhancement in enhancements:
        by_index.setdefault(enhancement.index, enhancement)

    merged = []
    for index, scored in enumerate(candidates):
        enhancement = by_index.get(index)
        if enhancement is None:
            merged.append(scored)
            continue

        corrected = _accept_correction(scored.candidate.text, enhancement.corrected_text)
        new_type = enhancement.type or scored.type
        sub_categories = scored.sub_categories
        if new_type != scored.type:
            sub_categories = sub_categories_for(new_type, corrected or scored.candidate.text)

        merged.append(replace(
            scored,
            confidence=combine_confidences(scored.confidence, enhancement.confidence),
            type=new_type,
            sub_categories=sub_categories,
            ai_enhanced=True,
            ai_confidence=enhancement.confidence,
            difficulty=enhancement.difficulty,
            corrected_text=corrected,
            ai_reasoning=enhancement.reasoning,
        ))

    return merged


def _accept_correction(original: str, corrected: Optional[str]) -> Optional[str]:
    """Keep a corrected text only if it is recognisably the same question."""
    if not corrected or not corrected.strip():
        return None
    corrected = corrected.strip()
    if corrected == original:
        return None
    similarity = fuzz.ratio(original.lower(), corrected.lower())
    if similarity < CORRECTION_MIN_SIMILARITY:
        return None
    return corrected


class AIEnhancer:
    """
    Adapter between detected candidates and an AI collaborator.

    Attributes:
        ai_service: Object exposing generate_response(question=, model=)
        timeout (float): Seconds to wait for the collaborator
    """

    def __init__(self, ai_service, timeout: float = 8.0):
        self.ai_service = ai_service
        self.timeout = timeout

    async def enhance(
        self,
        candidates: List[ScoredCandidate],
        original_text: str,
        model: Optional[str] = None,
    ) -> List[ScoredCandidate]:
        """
        Re-score candidates with the AI collaborator.

        Args:
            candidates (List[ScoredCandidate]): Classified question candidates
            original_text (str): Full input text for context
            model (str, optional): Model name forwarded to the collaborator

        Returns:
            List[ScoredCandidate]: Enhanced candidates, or the input list
                unchanged on any failure
        """
        if not candidates:
            return candidates

        try:
            prompt = self.build_prompt(candidates, original_text)
            reply = await call_collaborator(
                self.ai_service.generate_response,
                question=prompt,
                model=model,
                timeout=self.timeout,
            )
            enhancements = parse_enhancements(_response_text(reply))
        except ParseError as exc:
            exception_logger.log_exception(exc, "ai_enhancer", "Discarding AI enhancement")
            return candidates
        except asyncio.TimeoutError:
            failure = AIEnhancementFailure(f"AI service timed out after {self.timeout:.1f}s")
            exception_logger.log_exception(failure, "ai_enhancer", "Discarding AI enhancement")
            return candidates
        except Exception as exc:
            failure = AIEnhancementFailure(str(exc))
            failure.__cause__ = exc
            exception_logger.log_exception(failure, "ai_enhancer", "AI service call failed")
            return candidates

        return apply_enhancements(candidates, enhancements)

    def build_prompt(self, candidates: List[ScoredCandidate], original_text: str) -> str:
        """Build the numbered re-scoring prompt."""
        question_list = "\n".join(
            f"{index}. {scored.candidate.text}" for index, scored in enumerate(candidates, start=1)
        )
        context = original_text[:CONTEXT_CHARS]
        if len(original_text) > CONTEXT_CHARS:
            context += "..."

        return f"""Analyze the following potential interview questions extracted from text:

Original text context:
{context}

Extracted questions:
{question_list}

For each question, provide:
1. Confidence score (0-1) for whether it's actually an interview question
2. Improved question type classification ({", ".join(CATEGORY_NAMES)})
3. Any corrections to the question text if needed
4. Difficulty level ({", ".join(DIFFICULTY_LEVELS)})

Respond in JSON format with an array of objects containing: questionIndex (the number shown in the list), confidence, type, correctedText, difficulty, reasoning."""


def _response_text(reply: Any) -> str:
    if isinstance(reply, str):
        return reply
    if isinstance(reply, dict):
        text = reply.get("response") or reply.get("text") or ""
    else:
        text = getattr(reply, "response", None) or getattr(reply, "text", None) or ""
    if not isinstance(text, str):
        raise ParseError(f"AI response has unexpected type {type(text).__name__}")
    return text
