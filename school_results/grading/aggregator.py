from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")


@dataclass(frozen=True)
class Aggregate:
    total: Decimal
    average: Decimal


def _as_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_score(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def calculate_total(scores: Iterable[Decimal | int | float | str]) -> Decimal:
    return sum((_as_decimal(s) for s in scores), ZERO)


def calculate_average(scores: Iterable[Decimal | int | float | str]) -> Decimal:
    values = [_as_decimal(s) for s in scores]
    if not values:
        return ZERO
    return round_score(calculate_total(values) / len(values))


def aggregate(scores: Iterable[Decimal | int | float | str]) -> Aggregate:
    """
    Reduce raw scores to their sum and their mean.

    The mean is NOT weighted by each assessment's max score: a 9/10 test and a
    45/60 exam count the same. Grade bands and existing reports are calibrated
    on this scale, so keep it unless the weighting rules change.

    An empty input aggregates to zeros so unscored subjects still render.
    """
    values = [_as_decimal(s) for s in scores]
    return Aggregate(total=calculate_total(values), average=calculate_average(values))
