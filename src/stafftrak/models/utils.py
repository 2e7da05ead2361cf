"""
Utility functions for working with models.

Provides helper functions for:
- Summative score averaging and rating bands
- Guarded rate/percentage calculations
- Selecting the current record when a staff member has several
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Mapping, Optional, Sequence, TypeVar, Union

from .database import Rating, SummativeEvaluation

T = TypeVar("T")

# Lower bound (inclusive) for each rating band, highest first.
RATING_THRESHOLDS: Sequence = (
    (Decimal("3.5"), Rating.HIGHLY_EFFECTIVE),
    (Decimal("2.5"), Rating.EFFECTIVE),
    (Decimal("1.5"), Rating.DEVELOPING),
)

_TWO_PLACES = Decimal("0.01")


def mean_score(scores: Iterable[Union[int, float]]) -> Optional[Decimal]:
    """Arithmetic mean rounded half-up to two decimals, None when empty."""
    values = [Decimal(str(s)) for s in scores]
    if not values:
        return None
    return (sum(values) / Decimal(len(values))).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def score_to_rating(score: Optional[Union[Decimal, float]]) -> Optional[Rating]:
    """Map a (rounded) overall score onto the four rating bands."""
    if score is None:
        return None

    value = score if isinstance(score, Decimal) else Decimal(str(score))
    for threshold, rating in RATING_THRESHOLDS:
        if value >= threshold:
            return rating
    return Rating.NEEDS_IMPROVEMENT


def overall_from_domains(domain_scores: Mapping[str, Optional[int]]):
    """Overall score (float) and rating derived from entered domain scores."""
    average = mean_score(s for s in domain_scores.values() if s is not None)
    if average is None:
        return None, None
    return float(average), score_to_rating(average)


def safe_rate(numerator: int, denominator: int) -> float:
    """numerator / denominator, resolved to 0.0 when denominator is 0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def percent(numerator: int, denominator: int) -> int:
    """Whole-number percentage rounded half-up, 0 when denominator is 0."""
    if denominator == 0:
        return 0
    value = Decimal(numerator * 100) / Decimal(denominator)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _timestamp_key(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.min
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def latest(records: List[T], key: str = "created_at") -> Optional[T]:
    """
    Most recent record by a timestamp attribute.

    Undated records count as oldest; on a tie the earliest record in the
    list wins, so an all-undated list yields its first element.
    """
    if not records:
        return None
    return max(records, key=lambda r: _timestamp_key(getattr(r, key)))


def current_evaluation(evaluations: List[SummativeEvaluation]) -> Optional[SummativeEvaluation]:
    """The summative evaluation a staff member's cycle is judged on."""
    return latest(evaluations)
