from school_results.grading.aggregator import Aggregate, aggregate, calculate_average, calculate_total
from school_results.grading.bands import (
    GRADING_SYSTEM_AF,
    GRADING_SYSTEM_PERCENTAGE,
    GradeBand,
    GradeResult,
    get_band_table,
    grade,
    performance_remark,
)
from school_results.grading.ranker import RankedEntry, RankEntry, rank

__all__ = [
    "Aggregate",
    "GRADING_SYSTEM_AF",
    "GRADING_SYSTEM_PERCENTAGE",
    "GradeBand",
    "GradeResult",
    "RankEntry",
    "RankedEntry",
    "aggregate",
    "calculate_average",
    "calculate_total",
    "get_band_table",
    "grade",
    "performance_remark",
    "rank",
]
