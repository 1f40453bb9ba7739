"""
Interview Question Type Classification

Scores question candidates against a fixed table of interview question
categories using weighted keyword and indicator phrase matching, then tags
the winning category with sub-categories from a declarative rule table.

Scoring:
- Every keyword phrase found adds the category weight
- Every indicator phrase found adds half the category weight
- Per-category sums are capped at 1.0
- The highest sum wins; equal sums go to the earlier declared category
- No match at all falls back to "general" with confidence 0.3

Author: Quinn Evans
"""

from typing import Dict, Iterable, Optional, Tuple

from code_extractor import code_subtype
from models import Candidate, Category, Classification, clamp

INDICATOR_FACTOR = 0.5
FALLBACK_TYPE = "general"
FALLBACK_CONFIDENCE = 0.3
CODE_TYPE = "technical"
CODE_TYPE_CONFIDENCE = 0.9  # Technical category weight

CATEGORIES: Tuple[Category, ...] = (
    Category(
        name="behavioral",
        keywords=(
            "tell me about a time", "describe a situation", "give me an example",
            "walk me through", "how did you handle", "what would you do if",
            "share an experience", "can you think of", "have you ever",
            "describe your experience", "give me a specific example",
        ),
        indicators=(
            "situation", "task", "action", "result", "star method",
            "challenge", "conflict", "problem", "difficulty", "success",
            "failure", "leadership", "teamwork", "collaboration",
        ),
        weight=0.8,
    ),
    Category(
        name="technical",
        keywords=(
            "how would you implement", "what is the difference between",
            "explain how", "what are the pros and cons", "how do you optimize",
            "what is the complexity", "design a system", "code this",
            "solve this problem", "algorithm", "data structure",
        ),
        indicators=(
            "algorithm", "complexity", "optimization", "performance",
            "scaling", "architecture", "design pattern", "database",
            "api", "framework", "library", "programming", "coding",
        ),
        weight=0.9,
    ),
    Category(
        name="general",
        keywords=(
            "what", "how", "why", "when", "where", "who", "which",
            "tell me", "describe", "explain", "discuss",
        ),
        indicators=(
            "experience", "background", "skills", "knowledge",
            "opinion", "thoughts", "perspective", "approach",
        ),
        weight=0.6,
    ),
    Category(
        name="company",
        keywords=(
            "why do you want to work here", "what do you know about",
            "why this company", "what attracts you", "our culture",
            "our values", "our mission", "our products",
        ),
        indicators=(
            "company", "organization", "culture", "values", "mission",
            "products", "services", "industry", "market", "competition",
        ),
        weight=0.7,
    ),
    Category(
        name="personal",
        keywords=(
            "tell me about yourself", "your strengths", "your weaknesses",
            "where do you see yourself", "your goals", "your motivation",
            "what drives you", "your passion", "your interests",
        ),
        indicators=(
            "strengths", "weaknesses", "goals", "motivation", "passion",
            "interests", "hobbies", "personality", "character", "values",
        ),
        weight=0.7,
    ),
)

CATEGORY_NAMES: Tuple[str, ...] = tuple(category.name for category in CATEGORIES)

# category -> ((secondary keywords, tag), ...); first hit per rule adds the tag
SUB_CATEGORY_RULES: Dict[str, Tuple[Tuple[Tuple[str, ...], str], ...]] = {
    "behavioral": (
        (("conflict", "disagree"), "conflict_resolution"),
        (("leadership", "lead"), "leadership"),
        (("team", "collaborate"), "teamwork"),
        (("challenge", "difficult"), "problem_solving"),
    ),
    "technical": (
        (("algorithm", "complexity"), "algorithms"),
        (("system", "architecture"), "system_design"),
        (("database", "sql"), "database"),
        (("code", "implement"), "coding"),
    ),
    "personal": (
        (("strength",), "strengths"),
        (("weakness",), "weaknesses"),
        (("goal", "future"), "career_goals"),
    ),
}


def sub_categories_for(category: str, text: str) -> Tuple[str, ...]:
    """
    Tag a question with the sub-categories of its category.

    Args:
        category (str): Winning category name
        text (str): Question text

    Returns:
        Tuple[str, ...]: Tags in rule table order (empty when the category
            has no rules)
    """
    lowered = text.lower()
    return tuple(
        tag
        for secondary_keywords, tag in SUB_CATEGORY_RULES.get(category, ())
        if any(keyword in lowered for keyword in secondary_keywords)
    )


class QuestionClassifier:
    """
    Weighted keyword classifier over a fixed category table.

    Attributes:
        categories (tuple): Category definitions in tie-break order
    """

    def __init__(self, categories: Iterable[Category] = CATEGORIES):
        self.categories = tuple(categories)

    def classify(self, text: str) -> Classification:
        """
        Classify a single question.

        Args:
            text (str): Question text

        Returns:
            Classification: Winning type, capped score, sub-categories and
                the literal keyword phrases that matched
        """
        lowered = text.lower()
        best_category: Optional[Category] = None
        best_score = 0.0
        best_keywords: Tuple[str, ...] = ()

        for category in self.categories:
            score, matched = self._score_category(category, lowered)
            # Strict comparison keeps the earlier category on ties
            if score > best_score:
                best_category, best_score, best_keywords = category, score, matched

        if best_category is None:
            return Classification(type=FALLBACK_TYPE, confidence=FALLBACK_CONFIDENCE)

        return Classification(
            type=best_category.name,
            confidence=best_score,
            sub_categories=sub_categories_for(best_category.name, text),
            matched_keywords=best_keywords,
        )

    def classify_code(self, candidate: Candidate) -> Classification:
        """
        Fixed classification for extracted code and config blocks.

        Every block gets the same type confidence, so its combined score
        depends only on how code-like it is. The subtype is the only
        sub-category.
        """
        return Classification(
            type=CODE_TYPE,
            confidence=CODE_TYPE_CONFIDENCE,
            sub_categories=(code_subtype(candidate.text),),
        )

    def _score_category(self, category: Category, lowered: str) -> Tuple[float, Tuple[str, ...]]:
        score = 0.0
        matched = []

        for keyword in category.keywords:
            if keyword in lowered:
                score += category.weight
                matched.append(keyword)

        for indicator in category.indicators:
            if indicator in lowered:
                score += category.weight * INDICATOR_FACTOR

        return clamp(score), tuple(matched)
