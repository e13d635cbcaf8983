from decimal import Decimal

import pytest

from school_results.grading import (
    GRADING_SYSTEM_AF,
    GRADING_SYSTEM_PERCENTAGE,
    GradeBand,
    RankEntry,
    aggregate,
    calculate_average,
    calculate_total,
    get_band_table,
    grade,
    performance_remark,
    rank,
)


@pytest.mark.parametrize(
    ("score", "expected"),
    [
        (100, ("A", "Excellent")),
        (70, ("A", "Excellent")),
        (69, ("B", "Very Good")),
        (60, ("B", "Very Good")),
        (59, ("C", "Good")),
        (50, ("C", "Good")),
        (49, ("D", "Pass")),
        (45, ("D", "Pass")),
        (44, ("E", "Fair")),
        (40, ("E", "Fair")),
        (39, ("F", "Fail")),
        (0, ("F", "Fail")),
    ],
)
def test_af_band_boundaries(score, expected):
    result = grade(score)
    assert (result.grade, result.remark) == expected


def test_fractional_score_between_bands_uses_integer_part():
    assert grade(Decimal("69.5")).grade == "B"
    assert grade(Decimal("39.99")).grade == "F"
    assert grade(Decimal("22.33")).grade == "F"


@pytest.mark.parametrize("score", [-1, Decimal("100.5"), 101, "abc", None, float("nan"), True])
def test_unmatched_or_malformed_scores_are_not_applicable(score):
    result = grade(score)
    assert result.grade == "N/A"
    assert result.remark == "Not Applicable"


def test_empty_or_gapped_table_is_not_applicable():
    assert grade(50, []).grade == "N/A"
    gapped = [GradeBand("P", Decimal(50), Decimal(100), "Pass")]
    assert grade(10, gapped).grade == "N/A"
    assert grade(75, gapped).grade == "P"


def test_first_matching_band_wins_on_overlap():
    overlapping = [
        GradeBand("X", Decimal(0), Decimal(60), "first"),
        GradeBand("Y", Decimal(50), Decimal(100), "second"),
    ]
    assert grade(55, overlapping).grade == "X"


def test_percentage_table():
    assert grade(95, GRADING_SYSTEM_PERCENTAGE).grade == "A+"
    assert grade(77, GRADING_SYSTEM_PERCENTAGE).grade == "B+"
    assert grade(49, GRADING_SYSTEM_PERCENTAGE).remark == "Fail"


def test_get_band_table():
    assert get_band_table() is GRADING_SYSTEM_AF
    assert get_band_table("percentage") is GRADING_SYSTEM_PERCENTAGE
    with pytest.raises(ValueError):
        get_band_table("GPA")


@pytest.mark.parametrize(
    ("average", "remark"),
    [
        (85, "Outstanding Performance"),
        (65, "Very Good Performance"),
        (55, "Good Performance"),
        (46, "Satisfactory Performance"),
        (41, "Fair Performance"),
        (12, "Needs Improvement"),
    ],
)
def test_performance_remark(average, remark):
    assert performance_remark(average) == remark


def test_aggregate_rounds_half_up_and_keeps_raw_total():
    totals = aggregate([Decimal("9"), Decimal("8"), Decimal("50")])
    assert totals.total == Decimal("67")
    assert totals.average == Decimal("22.33")

    assert calculate_average([Decimal("0.005")]) == Decimal("0.01")
    assert calculate_average([1, 2]) == Decimal("1.50")


def test_aggregate_empty_is_zero():
    totals = aggregate([])
    assert totals.total == Decimal("0")
    assert totals.average == Decimal("0")


def test_aggregate_is_order_independent():
    scores = [Decimal("12.5"), Decimal("7"), Decimal("33.25")]
    assert aggregate(scores) == aggregate(list(reversed(scores)))
    assert calculate_total(scores) == Decimal("52.75")


def test_rank_ties_share_position_and_leave_gap():
    ranked = rank(
        [
            RankEntry(id="a", total=Decimal(80)),
            RankEntry(id="b", total=Decimal(70)),
            RankEntry(id="c", total=Decimal(80)),
        ]
    )
    assert [(r.id, r.position) for r in ranked] == [("a", 1), ("c", 1), ("b", 3)]


def test_rank_triple_tie_then_lower():
    totals = [90, 90, 90, 60, 50]
    ranked = rank(RankEntry(id=i, total=Decimal(t)) for i, t in enumerate(totals))
    assert [r.position for r in ranked] == [1, 1, 1, 4, 5]


def test_rank_empty_and_single():
    assert rank([]) == []
    assert rank([RankEntry(id="only", total=Decimal(0))])[0].position == 1


def test_rank_is_idempotent():
    entries = [RankEntry(id=i, total=Decimal(t)) for i, t in enumerate([55, 72, 72, 10])]
    first = rank(entries)
    second = rank(RankEntry(id=r.id, total=r.total) for r in first)
    assert first == second
