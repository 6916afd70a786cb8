"""Analytics reports for instructors.

Responsibilities:
- Resolve a named date range to a lower bound
- Headline figures: totals, average score, completion rate, active exams
- Per-exam and per-student performance, with student engagement levels
- Grade distribution with passing and excellence rates
- Time analytics over completed attempts

All figures are reductions over rows fetched from the repositories.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal

from lms.core.errors import ValidationError
from lms.core.scoring import letter_grade, round_half_up
from lms.db.database import utcnow
from lms.db.exams_repository import list_examinations
from lms.db.submissions_repository import COMPLETED_STATUSES, SubmissionRecord, list_submissions
from lms.db.users_repository import list_users

DateRange = Literal["7d", "30d", "3m", "6m", "1y", "all"]

DATE_RANGE_DAYS: dict[str, int | None] = {
    "7d": 7,
    "30d": 30,
    "3m": 90,
    "6m": 180,
    "1y": 365,
    "all": None,
}

GRADES: tuple[str, ...] = ("A", "B", "C", "D", "F")
PASSING_GRADES = ("A", "B", "C", "D")
EXCELLENT_GRADES = ("A", "B")

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class PerformanceRow:
    """Aggregated scores for one exam or one student."""

    key: str
    name: str
    total_submissions: int = 0
    total_score: int = 0
    total_max_score: int = 0
    username: str | None = None
    engagement: str | None = None

    @property
    def average_score(self) -> float:
        """Percentage of available points earned."""
        if not self.total_max_score:
            return 0.0
        return self.total_score / self.total_max_score * 100


@dataclass
class GradeBucket:
    grade: str
    count: int
    percentage: float


@dataclass
class GradeDistribution:
    buckets: list[GradeBucket]
    total: int

    @property
    def passing_rate(self) -> float:
        return sum(b.percentage for b in self.buckets if b.grade in PASSING_GRADES)

    @property
    def excellence_rate(self) -> float:
        return sum(b.percentage for b in self.buckets if b.grade in EXCELLENT_GRADES)


@dataclass
class AttemptDuration:
    date: str  # YYYY-MM-DD of submission
    duration_minutes: float
    status: str


@dataclass
class DailyTime:
    date: str
    count: int
    total_minutes: float

    @property
    def average_minutes(self) -> float:
        return self.total_minutes / self.count if self.count else 0.0


@dataclass
class TimeAnalytics:
    attempts: list[AttemptDuration]
    daily: list[DailyTime]
    average_minutes: float
    longest: AttemptDuration | None
    shortest: AttemptDuration | None


@dataclass
class Report:
    """Everything shown on the reports page for one date range."""

    date_range: str
    since: str | None
    total_exams: int
    total_students: int
    total_submissions: int
    average_score: int
    completion_rate: int
    active_exams: int
    recent_activity: list[SubmissionRecord] = field(default_factory=list)
    exam_performance: list[PerformanceRow] = field(default_factory=list)
    student_performance: list[PerformanceRow] = field(default_factory=list)
    grade_distribution: GradeDistribution | None = None
    time_analytics: TimeAnalytics | None = None


# =============================================================================
# HELPERS
# =============================================================================


def range_start(date_range: str, now: datetime | None = None) -> datetime | None:
    """Lower bound of a named date range (None for 'all').

    Raises:
        ValidationError: If the range name is unknown
    """
    if date_range not in DATE_RANGE_DAYS:
        raise ValidationError(f"Unknown date range: {date_range}")
    days = DATE_RANGE_DAYS[date_range]
    if days is None:
        return None
    return (now or utcnow()) - timedelta(days=days)


def engagement_level(submissions: int, average_submissions: float) -> str:
    """High at 1.2x the average submission count, Medium at 0.8x, else Low."""
    if submissions >= average_submissions * 1.2:
        return "High"
    if submissions >= average_submissions * 0.8:
        return "Medium"
    return "Low"


def grade_distribution(submissions: list[SubmissionRecord]) -> GradeDistribution:
    """Letter grade counts over completed submissions.

    Submissions with no available points are not graded but still count in
    the denominator.
    """
    counts = {grade: 0 for grade in GRADES}
    for s in submissions:
        if s.max_score > 0:
            counts[letter_grade(s.total_score / s.max_score * 100)] += 1

    total = len(submissions)
    return GradeDistribution(
        buckets=[
            GradeBucket(grade, count, (count / total * 100) if total else 0.0)
            for grade, count in counts.items()
        ],
        total=total,
    )


def time_analytics(submissions: list[SubmissionRecord]) -> TimeAnalytics:
    """Attempt durations (started to submitted) with daily aggregates."""
    attempts = []
    for s in submissions:
        if not s.submitted_at:
            continue
        started = datetime.fromisoformat(s.started_at)
        submitted = datetime.fromisoformat(s.submitted_at)
        attempts.append(
            AttemptDuration(
                date=submitted.date().isoformat(),
                duration_minutes=(submitted - started).total_seconds() / 60,
                status=s.status,
            )
        )

    by_day: dict[str, DailyTime] = {}
    for a in attempts:
        day = by_day.setdefault(a.date, DailyTime(a.date, 0, 0.0))
        day.count += 1
        day.total_minutes += a.duration_minutes

    return TimeAnalytics(
        attempts=attempts,
        daily=sorted(by_day.values(), key=lambda d: d.date, reverse=True),
        average_minutes=(
            sum(a.duration_minutes for a in attempts) / len(attempts) if attempts else 0.0
        ),
        longest=max(attempts, key=lambda a: a.duration_minutes, default=None),
        shortest=min(attempts, key=lambda a: a.duration_minutes, default=None),
    )


def _performance(
    submissions: list[SubmissionRecord],
    key_of,
    name_of,
) -> list[PerformanceRow]:
    rows: dict[str, PerformanceRow] = {}
    for s in submissions:
        key = key_of(s)
        row = rows.get(key)
        if row is None:
            row = rows[key] = PerformanceRow(key=key, name=name_of(key))
        row.total_submissions += 1
        row.total_score += s.total_score
        row.total_max_score += s.max_score
    return list(rows.values())


# =============================================================================
# REPORT
# =============================================================================


def build_report(date_range: str = "30d", now: datetime | None = None) -> Report:
    """Compute the full report for a named date range."""
    start = range_start(date_range, now)
    since = start.isoformat() if start else None

    exams = list_examinations(created_since=since)
    all_exams = {e.id: e for e in list_examinations()}
    students = [u for u in list_users(role="student") if since is None or u.created_at >= since]
    all_students = {u.id: u for u in list_users(role="student")}

    everything = list_submissions()
    in_range = [s for s in everything if since is None or s.created_at >= since]
    completed_in_range = [s for s in in_range if s.is_completed]
    completed = list_submissions(statuses=COMPLETED_STATUSES, submitted_since=since)

    total_score = sum(s.total_score for s in completed_in_range)
    total_max = sum(s.max_score for s in completed_in_range)
    average_score = (total_score / total_max * 100) if total_max else 0.0
    possible = len(exams) * len(students)
    completion_rate = (len(completed_in_range) / possible * 100) if possible else 0.0

    exam_rows = _performance(
        completed,
        lambda s: s.exam_id,
        lambda key: all_exams[key].title if key in all_exams else "Unknown Exam",
    )
    student_rows = _performance(
        completed,
        lambda s: s.student_id,
        lambda key: all_students[key].full_name if key in all_students else "Unknown Student",
    )
    average_submissions = (
        sum(r.total_submissions for r in student_rows) / len(student_rows) if student_rows else 0.0
    )
    for row in student_rows:
        student = all_students.get(row.key)
        row.username = student.username if student else ""
        row.engagement = engagement_level(row.total_submissions, average_submissions)

    started = [s for s in everything if since is None or s.started_at >= since]

    return Report(
        date_range=date_range,
        since=since,
        total_exams=len(exams),
        total_students=len(students),
        total_submissions=len(in_range),
        average_score=round_half_up(average_score),
        completion_rate=round_half_up(completion_rate),
        active_exams=sum(1 for e in exams if e.is_active),
        recent_activity=in_range[:10],
        exam_performance=exam_rows,
        student_performance=student_rows,
        grade_distribution=grade_distribution(completed),
        time_analytics=time_analytics(started),
    )
