from __future__ import annotations

from collections.abc import Hashable, Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol


class Rankable(Protocol):
    @property
    def id(self) -> Hashable: ...

    @property
    def total(self) -> Decimal: ...


@dataclass(frozen=True)
class RankEntry:
    id: Hashable
    total: Decimal


@dataclass(frozen=True)
class RankedEntry:
    id: Hashable
    total: Decimal
    position: int


def rank(entries: Iterable[Rankable]) -> list[RankedEntry]:
    """
    Assign 1-based class positions, highest total first.

    Equal totals share a position and the next lower total resumes at its
    1-based index, so 80, 80, 70 ranks 1, 1, 3. Printed reports depend on
    this numbering. The sort is stable; callers order their input
    deterministically before ranking.
    """
    ordered = sorted(entries, key=lambda e: e.total, reverse=True)

    ranked: list[RankedEntry] = []
    position = 0
    previous_total = None
    for index, entry in enumerate(ordered):
        if previous_total is None or entry.total < previous_total:
            position = index + 1
        previous_total = entry.total
        ranked.append(RankedEntry(id=entry.id, total=entry.total, position=position))
    return ranked
