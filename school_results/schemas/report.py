import uuid

from pydantic import BaseModel

from school_results.schemas.result import ScoreValue


class AssessmentScore(BaseModel):
    assessment_id: uuid.UUID
    assessment_name: str
    score: ScoreValue
    max_score: ScoreValue | None = None


class SubjectBreakdown(BaseModel):
    subject_id: uuid.UUID
    subject_name: str
    scores: list[AssessmentScore] = []
    total: ScoreValue
    average: ScoreValue
    grade: str
    remark: str


class StudentSubjectReport(BaseModel):
    student_id: uuid.UUID
    term_id: uuid.UUID
    session_id: uuid.UUID
    subjects: list[SubjectBreakdown] = []
    overall_total: ScoreValue
    overall_average: ScoreValue
    overall_grade: str
    overall_remark: str
    performance_remark: str


class ClassStatistics(BaseModel):
    total_students: int
    class_average: ScoreValue
    highest_score: ScoreValue
    lowest_score: ScoreValue


class LeaderboardRow(BaseModel):
    student_id: uuid.UUID
    scores: list[AssessmentScore] = []
    total: ScoreValue
    average: ScoreValue
    grade: str
    remark: str
    position: int


class SubjectLeaderboard(BaseModel):
    class_id: uuid.UUID
    subject_id: uuid.UUID
    term_id: uuid.UUID
    session_id: uuid.UUID
    rows: list[LeaderboardRow] = []
    statistics: ClassStatistics


class CompiledStudentRow(BaseModel):
    student_id: uuid.UUID
    subjects: list[SubjectBreakdown] = []
    total_score: ScoreValue
    average_score: ScoreValue
    overall_grade: str
    overall_remark: str
    position: int


class ClassCompilation(BaseModel):
    class_id: uuid.UUID
    term_id: uuid.UUID
    session_id: uuid.UUID
    rows: list[CompiledStudentRow] = []
    statistics: ClassStatistics


class ResultStatistics(BaseModel):
    total_results: int
    average_score: ScoreValue
    grade_distribution: dict[str, int]
