from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Difficulty = Literal["easy", "medium", "hard", "expert"]

DIFFICULTY_ORDER: Dict[str, int] = {"easy": 1, "medium": 2, "hard": 3, "expert": 4}


class CamelModel(BaseModel):
    """Base for records exchanged with the store and the UI (camelCase keys)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


# ----------------------------------------------------------------------
# Stored documents
# ----------------------------------------------------------------------
class Question(CamelModel):
    id: str
    title: str
    content: str
    difficulty: Difficulty
    course: str
    tags: List[str] = []
    created_at: datetime
    updated_at: datetime
    solution: Optional[str] = None
    hints: List[str] = []
    time_estimate: Optional[int] = None
    user_answer: Optional[str] = None
    image_url: Optional[str] = None


class QuestionCreate(CamelModel):
    """Request body for POST /questions."""

    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    course: str = Field(min_length=1)
    difficulty: Difficulty = "medium"
    tags: List[str] = []
    solution: Optional[str] = None
    hints: List[str] = []
    time_estimate: int = 15
    image_url: Optional[str] = None


class QuestionUpdate(CamelModel):
    """Request body for PATCH /questions/{id}. Only set fields are applied."""

    title: Optional[str] = Field(default=None, min_length=1)
    content: Optional[str] = Field(default=None, min_length=1)
    course: Optional[str] = Field(default=None, min_length=1)
    difficulty: Optional[Difficulty] = None
    tags: Optional[List[str]] = None
    solution: Optional[str] = None
    hints: Optional[List[str]] = None
    time_estimate: Optional[int] = None
    user_answer: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("title", "content", "course", "difficulty", "tags", "hints")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class Course(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    question_count: int = 0
    question_types: List[str] = []
    created_at: datetime
    updated_at: datetime


class CourseCreate(CamelModel):
    """Request body for POST /courses."""

    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    question_types: List[str] = []


class CourseUpdate(CamelModel):
    """Request body for PATCH /courses/{id}."""

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    question_types: Optional[List[str]] = None

    @field_validator("name", "question_types")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class QuestionAttempt(CamelModel):
    id: str
    question_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration: Optional[int] = None  # seconds
    success: bool = False
    notes: Optional[str] = None
    distracted: bool = False
    answer: Optional[str] = None
    exam_id: Optional[str] = None


# ----------------------------------------------------------------------
# Queries and session configuration
# ----------------------------------------------------------------------
class QuestionFilter(BaseModel):
    course: Optional[str] = None
    difficulty: Optional[str] = None
    tags: List[str] = []
    search_text: Optional[str] = None


class ExamConfig(BaseModel):
    """Exam start parameters parsed from the query string."""

    course: Optional[str] = None
    difficulty: Optional[str] = None
    duration_minutes: int = 20
    topics: List[str] = []
    random: bool = False

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60


class FormattedTime(BaseModel):
    hours: int
    minutes: int
    seconds: int
    formatted: str


class ExamResult(CamelModel):
    exam_id: str
    question_ids: List[str]
    answers: Dict[str, str]
    elapsed_seconds: int
    reason: Literal["manual", "timeout"]
    started_at: Optional[datetime] = None
    submitted_at: datetime


# ----------------------------------------------------------------------
# API payloads
# ----------------------------------------------------------------------
class AnswerPayload(CamelModel):
    text: str


class FinalAnswer(CamelModel):
    question_id: str
    text: str


class SubmitRequest(CamelModel):
    """Optional body for POST /exams/{id}/submit."""

    final_answer: Optional[FinalAnswer] = None


class ExamState(CamelModel):
    id: str
    status: str
    current_index: int
    total_questions: int
    question_ids: List[str]
    current_question: Optional[Question] = None
    answers: Dict[str, str]
    elapsed_seconds: int
    remaining_seconds: int
    time_left: FormattedTime
    is_running: bool
    is_complete: bool
    result: Optional[ExamResult] = None
    redirect: Optional[str] = None


class StudyState(CamelModel):
    id: str
    status: str
    question: Optional[Question] = None
    user_answer: str
    is_dirty: bool
    is_saved: bool
    is_saving: bool
    elapsed_seconds: int
    elapsed: FormattedTime
    is_running: bool
    redirect: Optional[str] = None


class Notification(CamelModel):
    level: Literal["success", "error"]
    message: str
    created_at: datetime


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str
    store_backend: str
    active_exams: int
    active_study_sessions: int


class AdminResetResponse(BaseModel):
    """Response body for POST /admin/reinitialize."""

    courses: int
    questions: int
