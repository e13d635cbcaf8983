from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Iterable, Sequence
from decimal import Decimal

from school_results.core.config import settings
from school_results.grading.aggregator import ZERO, aggregate, calculate_average
from school_results.grading.bands import (
    GRADING_SYSTEM_AF,
    GradeBand,
    get_band_table,
    grade,
    performance_remark,
)
from school_results.grading.ranker import RankEntry, rank
from school_results.schemas.assessment import AssessmentInfo
from school_results.schemas.report import (
    AssessmentScore,
    ClassCompilation,
    ClassStatistics,
    CompiledStudentRow,
    LeaderboardRow,
    ResultStatistics,
    StudentSubjectReport,
    SubjectBreakdown,
    SubjectLeaderboard,
)
from school_results.schemas.result import ResultFilter, ScoreEntry
from school_results.services.entity_lookup import EntityLookup
from school_results.services.result_store import ResultStore


def _group_by(entries: Iterable[ScoreEntry], field: str) -> dict[uuid.UUID, list[ScoreEntry]]:
    grouped: dict[uuid.UUID, list[ScoreEntry]] = defaultdict(list)
    for entry in entries:
        grouped[getattr(entry, field)].append(entry)
    return dict(sorted(grouped.items(), key=lambda item: str(item[0])))


def _statistics(values: Sequence[Decimal]) -> ClassStatistics:
    if not values:
        return ClassStatistics(total_students=0, class_average=ZERO, highest_score=ZERO, lowest_score=ZERO)
    return ClassStatistics(
        total_students=len(values),
        class_average=calculate_average(values),
        highest_score=max(values),
        lowest_score=min(values),
    )


class CompilationService:
    """
    Read-only result views: a student's subject breakdown, a subject
    leaderboard for one class, and the form teacher's full class compilation.

    Every view is recomputed from the stored scores on each call. Missing
    scores mean empty data, never an error; unknown students, classes,
    subjects, terms or sessions raise ``NotFoundError``.
    """

    def __init__(
        self,
        store: ResultStore,
        lookup: EntityLookup,
        bands: Sequence[GradeBand] | None = None,
    ) -> None:
        self.store = store
        self.lookup = lookup
        self.bands = tuple(bands) if bands is not None else get_band_table(settings.GRADING_SYSTEM)

    def _assessment_scores(
        self,
        entries: Sequence[ScoreEntry],
        assessments: dict[uuid.UUID, AssessmentInfo],
    ) -> list[AssessmentScore]:
        scores = []
        for entry in entries:
            info = assessments.get(entry.assessment_id)
            scores.append(
                AssessmentScore(
                    assessment_id=entry.assessment_id,
                    assessment_name=info.name if info else "",
                    score=entry.score,
                    max_score=info.max_score if info else None,
                )
            )
        return sorted(scores, key=lambda s: (s.assessment_name, str(s.assessment_id)))

    def _breakdowns(self, entries: Sequence[ScoreEntry]) -> list[SubjectBreakdown]:
        by_subject = _group_by(entries, "subject_id")
        names = self.lookup.subject_names(by_subject)
        assessments = self.lookup.assessments({e.assessment_id for e in entries})

        breakdowns = []
        for subject_id, subject_entries in by_subject.items():
            totals = aggregate(e.score for e in subject_entries)
            result = grade(totals.average, self.bands)
            breakdowns.append(
                SubjectBreakdown(
                    subject_id=subject_id,
                    subject_name=names.get(subject_id, ""),
                    scores=self._assessment_scores(subject_entries, assessments),
                    total=totals.total,
                    average=totals.average,
                    grade=result.grade,
                    remark=result.remark,
                )
            )
        return sorted(breakdowns, key=lambda b: (b.subject_name, str(b.subject_id)))

    def student_subject_report(
        self,
        student_id: uuid.UUID,
        term_id: uuid.UUID,
        session_id: uuid.UUID,
    ) -> StudentSubjectReport:
        self.lookup.require_student(student_id)
        self.lookup.require_term(term_id)
        self.lookup.require_session(session_id)

        entries = self.store.find_by(
            ResultFilter(student_id=student_id, term_id=term_id, session_id=session_id)
        )
        subjects = self._breakdowns(entries)
        overall = aggregate(s.average for s in subjects)
        overall_grade = grade(overall.average, self.bands)

        return StudentSubjectReport(
            student_id=student_id,
            term_id=term_id,
            session_id=session_id,
            subjects=subjects,
            overall_total=sum((s.total for s in subjects), ZERO),
            overall_average=overall.average,
            overall_grade=overall_grade.grade,
            overall_remark=overall_grade.remark,
            performance_remark=performance_remark(overall.average),
        )

    def class_subject_leaderboard(
        self,
        class_id: uuid.UUID,
        subject_id: uuid.UUID,
        term_id: uuid.UUID,
        session_id: uuid.UUID,
    ) -> SubjectLeaderboard:
        """Rank a class on one subject by raw total; ties share a position."""
        self.lookup.require_class(class_id)
        self.lookup.require_subject(subject_id)
        self.lookup.require_term(term_id)
        self.lookup.require_session(session_id)

        entries = self.store.find_by(
            ResultFilter(
                class_id=class_id,
                subject_id=subject_id,
                term_id=term_id,
                session_id=session_id,
            )
        )
        assessments = self.lookup.assessments({e.assessment_id for e in entries})

        rows: dict[uuid.UUID, LeaderboardRow] = {}
        for student_id, student_entries in _group_by(entries, "student_id").items():
            totals = aggregate(e.score for e in student_entries)
            result = grade(totals.average, self.bands)
            rows[student_id] = LeaderboardRow(
                student_id=student_id,
                scores=self._assessment_scores(student_entries, assessments),
                total=totals.total,
                average=totals.average,
                grade=result.grade,
                remark=result.remark,
                position=0,
            )

        ranked = rank(RankEntry(id=row.student_id, total=row.total) for row in rows.values())
        leaderboard = [
            rows[r.id].model_copy(update={"position": r.position}) for r in ranked
        ]
        return SubjectLeaderboard(
            class_id=class_id,
            subject_id=subject_id,
            term_id=term_id,
            session_id=session_id,
            rows=leaderboard,
            statistics=_statistics([row.total for row in leaderboard]),
        )

    def class_compilation(
        self,
        class_id: uuid.UUID,
        term_id: uuid.UUID,
        session_id: uuid.UUID,
    ) -> ClassCompilation:
        """
        Compile every student's term across all subjects and rank the class.

        Unlike the subject leaderboard this ranks by average score, not raw
        total, so students who take fewer subjects are not pushed down the
        list for it.
        """
        self.lookup.require_class(class_id)
        self.lookup.require_term(term_id)
        self.lookup.require_session(session_id)

        entries = self.store.find_by(
            ResultFilter(class_id=class_id, term_id=term_id, session_id=session_id)
        )

        rows: dict[uuid.UUID, CompiledStudentRow] = {}
        for student_id, student_entries in _group_by(entries, "student_id").items():
            subjects = self._breakdowns(student_entries)
            average_score = calculate_average(s.average for s in subjects)
            overall = grade(average_score, self.bands)
            rows[student_id] = CompiledStudentRow(
                student_id=student_id,
                subjects=subjects,
                total_score=sum((s.total for s in subjects), ZERO),
                average_score=average_score,
                overall_grade=overall.grade,
                overall_remark=overall.remark,
                position=0,
            )

        ranked = rank(RankEntry(id=row.student_id, total=row.average_score) for row in rows.values())
        compiled = [rows[r.id].model_copy(update={"position": r.position}) for r in ranked]
        return ClassCompilation(
            class_id=class_id,
            term_id=term_id,
            session_id=session_id,
            rows=compiled,
            statistics=_statistics([row.average_score for row in compiled]),
        )

    def result_statistics(
        self,
        session_id: uuid.UUID | None = None,
        term_id: uuid.UUID | None = None,
    ) -> ResultStatistics:
        """Raw score count, mean and A-F distribution across a session or term."""
        entries = self.store.find_by(ResultFilter(session_id=session_id, term_id=term_id))
        distribution = {band.grade: 0 for band in GRADING_SYSTEM_AF}
        for entry in entries:
            letter = grade(entry.score, GRADING_SYSTEM_AF).grade
            if letter in distribution:
                distribution[letter] += 1

        return ResultStatistics(
            total_results=len(entries),
            average_score=calculate_average(e.score for e in entries),
            grade_distribution=distribution,
        )
