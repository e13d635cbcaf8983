"""
Grade bands: map a numeric score or average to a letter grade and remark.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal, InvalidOperation

NOT_APPLICABLE_GRADE = "N/A"
NOT_APPLICABLE_REMARK = "Not Applicable"


@dataclass(frozen=True)
class GradeBand:
    grade: str
    min: Decimal
    max: Decimal
    remark: str

    def matches(self, score: Decimal) -> bool:
        return self.min <= score <= self.max


@dataclass(frozen=True)
class GradeResult:
    grade: str
    remark: str


NOT_APPLICABLE = GradeResult(NOT_APPLICABLE_GRADE, NOT_APPLICABLE_REMARK)


def _band(grade: str, low: int, high: int, remark: str) -> GradeBand:
    return GradeBand(grade=grade, min=Decimal(low), max=Decimal(high), remark=remark)


GRADING_SYSTEM_AF: tuple[GradeBand, ...] = (
    _band("A", 70, 100, "Excellent"),
    _band("B", 60, 69, "Very Good"),
    _band("C", 50, 59, "Good"),
    _band("D", 45, 49, "Pass"),
    _band("E", 40, 44, "Fair"),
    _band("F", 0, 39, "Fail"),
)

GRADING_SYSTEM_PERCENTAGE: tuple[GradeBand, ...] = (
    _band("A+", 90, 100, "Outstanding"),
    _band("A", 80, 89, "Excellent"),
    _band("B+", 75, 79, "Very Good"),
    _band("B", 70, 74, "Good"),
    _band("C+", 65, 69, "Above Average"),
    _band("C", 60, 64, "Average"),
    _band("D", 50, 59, "Below Average"),
    _band("F", 0, 49, "Fail"),
)

GRADING_SYSTEMS: dict[str, tuple[GradeBand, ...]] = {
    "AF": GRADING_SYSTEM_AF,
    "PERCENTAGE": GRADING_SYSTEM_PERCENTAGE,
}

DEFAULT_GRADING_SYSTEM = "AF"


def get_band_table(name: str | None = None) -> tuple[GradeBand, ...]:
    """Return the band table registered under ``name`` (case-insensitive)."""
    key = (name or DEFAULT_GRADING_SYSTEM).strip().upper()
    try:
        return GRADING_SYSTEMS[key]
    except KeyError:
        raise ValueError(
            f"Unknown grading system {name!r}; expected one of {sorted(GRADING_SYSTEMS)}"
        ) from None


def _to_decimal(value: object) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    try:
        converted = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    return converted if converted.is_finite() else None


def _first_match(score: Decimal, bands: Sequence[GradeBand]) -> GradeBand | None:
    for band in bands:
        if band.matches(score):
            return band
    return None


def _within_table(score: Decimal, bands: Sequence[GradeBand]) -> bool:
    return min(b.min for b in bands) <= score <= max(b.max for b in bands)


def grade(score: object, bands: Sequence[GradeBand] | None = None) -> GradeResult:
    """
    Grade ``score`` against ``bands`` (the A-F table when omitted).

    The first band with ``min <= score <= max`` wins. Tables use integer
    bounds, so a fractional score sitting between two bands (69.5 under A-F)
    is graded by its integer part. Anything left unmatched, including scores
    outside 0-100 and malformed tables, is ``N/A``.
    """
    table = GRADING_SYSTEM_AF if bands is None else bands
    value = _to_decimal(score)
    if value is None or not table:
        return NOT_APPLICABLE

    band = _first_match(value, table)
    if band is None and _within_table(value, table) and value != value.to_integral_value():
        band = _first_match(value.to_integral_value(rounding=ROUND_FLOOR), table)
    if band is None:
        return NOT_APPLICABLE
    return GradeResult(band.grade, band.remark)


def performance_remark(average: object) -> str:
    """Overall performance sentence printed under a student's term average."""
    value = _to_decimal(average)
    if value is None:
        return "Needs Improvement"
    if value >= 70:
        return "Outstanding Performance"
    if value >= 60:
        return "Very Good Performance"
    if value >= 50:
        return "Good Performance"
    if value >= 45:
        return "Satisfactory Performance"
    if value >= 40:
        return "Fair Performance"
    return "Needs Improvement"
