"""Pydantic schemas for the Web API.

Request bodies and response models. Response models read repository
records directly (from_attributes), so dataclass properties such as
SubmissionSummary.percentage are serialized as fields.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, computed_field

from lms.core.scoring import letter_grade, percentage

RoleName = Literal["super_admin", "admin", "student"]
QuestionTypeName = Literal["multiple_choice", "multiple_checkboxes", "essay"]


# =============================================================================
# AUTH / USER SCHEMAS
# =============================================================================


class LoginRequest(BaseModel):
    """Request body for logging in."""

    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """Response for a user (password hash is never exposed)."""

    id: str
    username: str
    email: str
    full_name: str
    role: RoleName
    last_login: str | None = None
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    """Response for a successful login."""

    token: str
    token_type: str = "bearer"
    expires_at: str
    user: UserResponse


class UserCreate(BaseModel):
    """Request body for creating an account."""

    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=200)
    full_name: str = Field(..., min_length=1, max_length=200)
    role: RoleName = "student"
    password: str = Field(..., min_length=6)


class UserUpdate(BaseModel):
    """Request body for updating an account. Omitted fields are unchanged."""

    email: str | None = Field(default=None, max_length=200)
    full_name: str | None = Field(default=None, max_length=200)
    password: str | None = Field(default=None, min_length=6)


class UserListResponse(BaseModel):
    """Response for list of users."""

    users: list[UserResponse]
    count: int


# =============================================================================
# FOLDER / EXAMINATION SCHEMAS
# =============================================================================


class FolderCreate(BaseModel):
    """Request body for creating or renaming a folder."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)


class FolderResponse(BaseModel):
    """Response for a folder."""

    id: str
    name: str
    description: str
    created_by: str | None = None
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class FolderListResponse(BaseModel):
    """Response for list of folders."""

    folders: list[FolderResponse]
    count: int


class QuestionInput(BaseModel):
    """A question in an examination create/update request."""

    question_text: str = Field(..., min_length=1)
    question_type: QuestionTypeName
    options: list[str] = Field(default_factory=list)
    correct_answer: str | None = None
    correct_answers: list[str] = Field(default_factory=list)
    points: int = Field(default=1, ge=0)
    is_required: bool = True


class ExaminationInput(BaseModel):
    """Request body for creating or updating an examination."""

    title: str = Field(..., min_length=1, max_length=300)
    description: str = ""
    scheduled_start: datetime
    scheduled_end: datetime
    duration_minutes: int | None = Field(default=None, ge=1)  # None: configured default
    is_active: bool = True
    folder_id: str | None = None
    questions: list[QuestionInput] = Field(default_factory=list)


class MoveExaminationRequest(BaseModel):
    """Request body for moving an examination (null removes the folder)."""

    folder_id: str | None = None


class QuestionResponse(BaseModel):
    """A question with its answer key (instructor view)."""

    id: str
    question_text: str
    question_type: QuestionTypeName
    options: list[str]
    correct_answer: str | None = None
    correct_answers: list[str] = Field(default_factory=list)
    points: int
    is_required: bool
    order_index: int

    model_config = {"from_attributes": True}


class StudentQuestionResponse(BaseModel):
    """A question without its answer key (student view)."""

    id: str
    question_text: str
    question_type: QuestionTypeName
    options: list[str]
    points: int
    is_required: bool
    order_index: int

    model_config = {"from_attributes": True}


class ExaminationResponse(BaseModel):
    """Response for an examination without its questions."""

    id: str
    title: str
    description: str
    scheduled_start: str
    scheduled_end: str
    duration_minutes: int
    is_active: bool
    folder_id: str | None = None
    created_by: str | None = None
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class ExaminationDetailResponse(BaseModel):
    """Examination with its questions."""

    examination: ExaminationResponse
    questions: list[QuestionResponse]
    max_score: int


class ExaminationListResponse(BaseModel):
    """Response for list of examinations."""

    examinations: list[ExaminationResponse]
    count: int


# =============================================================================
# SUBMISSION SCHEMAS
# =============================================================================


class SubmissionResponse(BaseModel):
    """Response for a submission."""

    id: str
    exam_id: str
    student_id: str
    started_at: str
    submitted_at: str | None = None
    total_score: int
    max_score: int
    status: Literal["in_progress", "submitted", "graded"]

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> int:
        return percentage(self.total_score, self.max_score)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def letter_grade(self) -> str:
        return letter_grade(self.percentage)


class AnswerResponse(BaseModel):
    """Response for a saved answer."""

    question_id: str
    answer_text: str
    answer_array: list[str]
    points_earned: int
    updated_at: str

    model_config = {"from_attributes": True}


class AnswerRequest(BaseModel):
    """Request body for recording an answer."""

    answer_text: str = Field(default="", max_length=20000)
    answer_array: list[str] = Field(default_factory=list)


class AnswerSaveResponse(BaseModel):
    """Save status of one question after an answer change."""

    question_id: str
    save_status: str


class SaveStatusResponse(BaseModel):
    """Save status of every answered question of an exam in progress."""

    submission_id: str
    statuses: dict[str, str]
    remaining_seconds: int


class AttemptResponse(BaseModel):
    """Exam as handed to a student who starts or resumes it."""

    submission: SubmissionResponse
    examination: ExaminationResponse
    questions: list[StudentQuestionResponse]
    answers: list[AnswerResponse]
    remaining_seconds: int
    low_time_warning_seconds: int


# =============================================================================
# STUDENT DASHBOARD SCHEMAS
# =============================================================================


class StudentExamEntryResponse(BaseModel):
    """An exam on the student dashboard."""

    examination: ExaminationResponse = Field(validation_alias="exam")
    submission: SubmissionResponse | None = None
    status: Literal["completed", "in_progress", "upcoming", "expired", "available"]
    can_take: bool
    can_continue: bool

    model_config = {"from_attributes": True}


class StudentStatsResponse(BaseModel):
    """Aggregate results of a student."""

    completed_count: int
    average_score: float
    average_percentage: float
    letter_grade: str

    model_config = {"from_attributes": True}


class StudentDashboardResponse(BaseModel):
    """Student dashboard."""

    exams: list[StudentExamEntryResponse]
    count: int
    stats: StudentStatsResponse
    latest_results: list[SubmissionResponse]


# =============================================================================
# REVIEW SCHEMAS
# =============================================================================


class AnswerReviewResponse(BaseModel):
    """One question of a reviewed submission."""

    question: QuestionResponse
    answer: AnswerResponse | None = None
    is_correct: bool | None = None
    points_earned: int

    model_config = {"from_attributes": True}


class SubmissionReviewResponse(BaseModel):
    """Question-by-question breakdown of a submission."""

    submission: SubmissionResponse
    student: UserResponse | None = None
    examination: ExaminationResponse = Field(validation_alias="exam")
    answers: list[AnswerReviewResponse]

    model_config = {"from_attributes": True}


class SubmissionSummaryResponse(BaseModel):
    """A submission in the review list."""

    submission: SubmissionResponse
    student_name: str
    exam_title: str

    model_config = {"from_attributes": True}


class SubmissionSummaryListResponse(BaseModel):
    """Response for the review list."""

    submissions: list[SubmissionSummaryResponse]
    count: int


class StudentReviewStatsResponse(BaseModel):
    """A student in the review list."""

    student: UserResponse
    submission_count: int
    average_percentage: int

    model_config = {"from_attributes": True}


class StudentReviewStatsListResponse(BaseModel):
    """Response for the students with submissions."""

    students: list[StudentReviewStatsResponse]
    count: int


class GradeRequest(BaseModel):
    """Request body for setting an answer's score."""

    points: int = Field(..., ge=0)


# =============================================================================
# REPORT SCHEMAS
# =============================================================================


class PerformanceRowResponse(BaseModel):
    key: str
    name: str
    username: str | None = None
    total_submissions: int
    total_score: int
    total_max_score: int
    average_score: float
    engagement: str | None = None

    model_config = {"from_attributes": True}


class GradeBucketResponse(BaseModel):
    grade: str
    count: int
    percentage: float

    model_config = {"from_attributes": True}


class GradeDistributionResponse(BaseModel):
    buckets: list[GradeBucketResponse]
    total: int
    passing_rate: float
    excellence_rate: float

    model_config = {"from_attributes": True}


class AttemptDurationResponse(BaseModel):
    date: str
    duration_minutes: float
    status: str

    model_config = {"from_attributes": True}


class DailyTimeResponse(BaseModel):
    date: str
    count: int
    total_minutes: float
    average_minutes: float

    model_config = {"from_attributes": True}


class TimeAnalyticsResponse(BaseModel):
    attempts: list[AttemptDurationResponse]
    daily: list[DailyTimeResponse]
    average_minutes: float
    longest: AttemptDurationResponse | None = None
    shortest: AttemptDurationResponse | None = None

    model_config = {"from_attributes": True}


class ReportResponse(BaseModel):
    """Instructor analytics for a date range."""

    date_range: str
    since: str | None = None
    total_exams: int
    total_students: int
    total_submissions: int
    average_score: int
    completion_rate: int
    active_exams: int
    recent_activity: list[SubmissionResponse]
    exam_performance: list[PerformanceRowResponse]
    student_performance: list[PerformanceRowResponse]
    grade_distribution: GradeDistributionResponse
    time_analytics: TimeAnalyticsResponse

    model_config = {"from_attributes": True}


# =============================================================================
# SUPER-ADMIN SCHEMAS
# =============================================================================


class ActivityLogResponse(BaseModel):
    id: str
    admin_id: str | None = None
    action_type: str
    target_type: str
    target_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: str

    model_config = {"from_attributes": True}


class ActivityLogListResponse(BaseModel):
    logs: list[ActivityLogResponse]
    count: int


class SettingResponse(BaseModel):
    setting_key: str
    value: Any
    description: str | None = None
    category: str
    is_public: bool
    updated_by: str | None = None
    updated_at: str

    model_config = {"from_attributes": True}


class SettingListResponse(BaseModel):
    settings: list[SettingResponse]
    count: int


class SettingUpdate(BaseModel):
    """Request body for changing a setting (any JSON value)."""

    value: Any


class InquiryCreate(BaseModel):
    """Request body for the public contact form."""

    email: str = Field(..., min_length=3, max_length=200)
    subject: str = Field(..., min_length=1, max_length=300)
    message: str = Field(..., min_length=1, max_length=10000)


class InquiryStatusUpdate(BaseModel):
    status: Literal["new", "read", "responded", "archived"]
    response_message: str | None = None


class InquiryResponse(BaseModel):
    id: str
    email: str
    subject: str
    message: str
    status: str
    is_read: bool
    responded_at: str | None = None
    responded_by: str | None = None
    response_message: str | None = None
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class InquiryCreatedResponse(BaseModel):
    id: str
    status: str


class InquiryListResponse(BaseModel):
    inquiries: list[InquiryResponse]
    count: int


class NotificationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    message: str = Field(..., min_length=1)
    notification_type: Literal["info", "warning", "error", "success"] = "info"
    target_role: RoleName | None = None
    target_user_id: str | None = None
    is_system_wide: bool = False
    expires_at: datetime | None = None


class NotificationResponse(BaseModel):
    id: str
    title: str
    message: str
    notification_type: str
    target_role: str | None = None
    target_user_id: str | None = None
    is_read: bool
    is_system_wide: bool
    created_by: str | None = None
    created_at: str
    expires_at: str | None = None

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    count: int


class UserSessionResponse(BaseModel):
    """A login session (the token itself is never exposed)."""

    id: str
    user_id: str
    ip_address: str | None = None
    user_agent: str | None = None
    is_active: bool
    last_activity: str
    expires_at: str
    created_at: str

    model_config = {"from_attributes": True}


class UserSessionListResponse(BaseModel):
    sessions: list[UserSessionResponse]
    count: int


class TerminateAllResponse(BaseModel):
    terminated_count: int


class SystemOverviewResponse(BaseModel):
    users_by_role: dict[str, int]
    total_users: int
    total_exams: int
    active_exams: int
    submissions_by_status: dict[str, int]
    total_submissions: int
    activity_last_7_days: int
    active_sessions: int

    model_config = {"from_attributes": True}


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
