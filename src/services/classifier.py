"""
Keyword-scored category inference for activity titles and calendars.
"""

from collections.abc import Mapping, Sequence

from core.config import DEFAULT_CATEGORY_KEYWORDS
from models.events import Category, ClassificationResult

HIGH_SCORE = 10
HIGH_MARGIN = 5
MEDIUM_SCORE = 5


def score_title(title: str, keywords: Mapping[Category, Sequence[str]]) -> dict[Category, int]:
    """Sum the length of every keyword found in the title, per category."""
    normalized = title.lower()
    scores = {category: 0 for category in Category}
    for category, vocabulary in keywords.items():
        for keyword in vocabulary:
            if keyword in normalized:
                scores[category] += len(keyword)
    return scores


def classify(
    title: str | None,
    keywords: Mapping[Category, Sequence[str]] = DEFAULT_CATEGORY_KEYWORDS,
) -> ClassificationResult:
    """
    Infer a category from a title.

    Confidence:
    - none: nothing matched, category is None
    - high: winning score >= 10 and at least 5 ahead of the runner-up
    - medium: winning score >= 5
    - low: anything else
    """
    if not title:
        return ClassificationResult(category=None, confidence="none")

    scores = score_title(title, keywords)
    # sorted() is stable, so ties keep prod > nonprod > admin order
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    best_category, best_score = ranked[0]
    runner_up = ranked[1][1] if len(ranked) > 1 else 0

    if best_score == 0:
        return ClassificationResult(category=None, confidence="none", scores=scores)

    margin = best_score - runner_up
    if best_score >= HIGH_SCORE and margin >= HIGH_MARGIN:
        confidence = "high"
    elif best_score >= MEDIUM_SCORE:
        confidence = "medium"
    else:
        confidence = "low"

    return ClassificationResult(category=best_category, confidence=confidence, scores=scores)


def category_for_calendar(calendar_name: str | None, fallback: Category = Category.ADMIN) -> Category:
    """Category of a calendar from its name; unknown names use the fallback."""
    name = (calendar_name or "").lower()
    if "nonprod" in name or "non-prod" in name:
        return Category.NONPROD
    if "prod" in name:
        return Category.PROD
    if "admin" in name or "rest" in name or "routine" in name:
        return Category.ADMIN
    return fallback
