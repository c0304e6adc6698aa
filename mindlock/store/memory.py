"""
In-memory question store. Also the base for the JSON-file store.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from pydantic import ValidationError

from mindlock.data.seed import SAMPLE_COURSES, SAMPLE_QUESTIONS
from mindlock.logger import setup_logger
from mindlock.models import (
    Course,
    CourseCreate,
    Question,
    QuestionAttempt,
    QuestionCreate,
    QuestionFilter,
)
from mindlock.store.base import filter_questions
from mindlock.utils.exceptions import ConfigurationError, NotFoundError, PersistenceError
from mindlock.utils.helpers import new_id, utcnow

logger = setup_logger(__name__)

_READ_ONLY_FIELDS = ("id", "created_at", "question_count")


class InMemoryStore:
    """
    Dict-backed store. Returned records are copies; mutate through the
    update methods only.

    Every write is all-or-nothing: if `_commit` fails, the collections are
    restored to their state before the write.
    """

    def __init__(self, seed: bool = True) -> None:
        self._questions: Dict[str, Question] = {}
        self._courses: Dict[str, Course] = {}
        self._attempts: Dict[str, QuestionAttempt] = {}

        if seed:
            self._load_samples()
            logger.info(
                f"🌱 Seeded {len(self._courses)} courses, {len(self._questions)} questions"
            )

    # ------------------------------------------------------------------
    # Raw document I/O
    # ------------------------------------------------------------------
    def load_documents(self, documents: Dict[str, List[Dict[str, Any]]]) -> None:
        """Validate raw camelCase documents into typed records."""
        try:
            courses = [Course.model_validate(d) for d in documents.get("courses", [])]
            questions = [
                Question.model_validate(d) for d in documents.get("questions", [])
            ]
            attempts = [
                QuestionAttempt.model_validate(d)
                for d in documents.get("attempts", [])
            ]
        except ValidationError as e:
            raise PersistenceError(f"Invalid stored document: {e}") from e

        self._courses = {c.id: c for c in courses}
        self._questions = {q.id: q for q in questions}
        self._attempts = {a.id: a for a in attempts}

        for course_id in self._courses:
            self._recount(course_id)

    def dump_documents(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "courses": [
                c.model_dump(mode="json", by_alias=True) for c in self._courses.values()
            ],
            "questions": [
                q.model_dump(mode="json", by_alias=True)
                for q in self._questions.values()
            ],
            "attempts": [
                a.model_dump(mode="json", by_alias=True)
                for a in self._attempts.values()
            ],
        }

    async def _commit(self) -> None:
        """Persist after a write. Nothing to do in memory."""

    @asynccontextmanager
    async def _write(self) -> AsyncIterator[None]:
        """Apply the enclosed changes and commit them, or roll them back."""
        backup = self._snapshot()
        try:
            yield
            await self._commit()
        except Exception:
            self._questions, self._courses, self._attempts = backup
            raise

    def _snapshot(self):
        return (
            {k: v.model_copy(deep=True) for k, v in self._questions.items()},
            {k: v.model_copy(deep=True) for k, v in self._courses.items()},
            {k: v.model_copy(deep=True) for k, v in self._attempts.items()},
        )

    async def close(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------
    async def list_questions(
        self, query: Optional[QuestionFilter] = None
    ) -> List[Question]:
        return [q.model_copy(deep=True) for q in filter_questions(self._questions.values(), query)]

    async def get_question(self, question_id: str) -> Optional[Question]:
        question = self._questions.get(question_id)
        return question.model_copy(deep=True) if question else None

    async def create_question(self, data: QuestionCreate) -> Question:
        if data.course not in self._courses:
            raise NotFoundError(f"Course {data.course} not found")

        now = utcnow()
        question = Question(id=new_id(), created_at=now, updated_at=now, **data.model_dump())
        async with self._write():
            self._questions[question.id] = question
            self._recount(question.course)

        logger.info(f"➕ Question {question.id} added to course {question.course}")
        return question.model_copy(deep=True)

    async def update_question(self, question_id: str, fields: Dict[str, Any]) -> Question:
        current = self._questions.get(question_id)
        if current is None:
            raise NotFoundError(f"Question {question_id} not found")

        new_course = fields.get("course")
        if new_course and new_course not in self._courses:
            raise NotFoundError(f"Course {new_course} not found")

        updated = self._merge(Question, current, fields)
        async with self._write():
            self._questions[question_id] = updated
            if updated.course != current.course:
                self._recount(current.course)
                self._recount(updated.course)

        return updated.model_copy(deep=True)

    async def delete_question(self, question_id: str) -> None:
        question = self._questions.get(question_id)
        if question is None:
            raise NotFoundError(f"Question {question_id} not found")

        async with self._write():
            del self._questions[question_id]
            self._recount(question.course)
        logger.info(f"🗑️  Question {question_id} deleted")

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------
    async def list_courses(self) -> List[Course]:
        return [c.model_copy(deep=True) for c in self._courses.values()]

    async def get_course(self, course_id: str) -> Optional[Course]:
        course = self._courses.get(course_id)
        return course.model_copy(deep=True) if course else None

    async def create_course(self, data: CourseCreate) -> Course:
        now = utcnow()
        course = Course(id=new_id(), created_at=now, updated_at=now, **data.model_dump())
        async with self._write():
            self._courses[course.id] = course

        logger.info(f"➕ Course {course.id} ({course.name}) added")
        return course.model_copy(deep=True)

    async def update_course(self, course_id: str, fields: Dict[str, Any]) -> Course:
        current = self._courses.get(course_id)
        if current is None:
            raise NotFoundError(f"Course {course_id} not found")

        updated = self._merge(Course, current, fields)
        async with self._write():
            self._courses[course_id] = updated
        return updated.model_copy(deep=True)

    async def delete_course(self, course_id: str) -> None:
        if course_id not in self._courses:
            raise NotFoundError(f"Course {course_id} not found")

        async with self._write():
            del self._courses[course_id]
        logger.info(f"🗑️  Course {course_id} deleted")

    # ------------------------------------------------------------------
    # Attempts
    # ------------------------------------------------------------------
    async def record_attempt(self, attempt: QuestionAttempt) -> QuestionAttempt:
        async with self._write():
            self._attempts[attempt.id] = attempt.model_copy(deep=True)
        return attempt

    async def list_attempts(
        self, question_id: Optional[str] = None
    ) -> List[QuestionAttempt]:
        attempts = [
            a.model_copy(deep=True)
            for a in self._attempts.values()
            if question_id is None or a.question_id == question_id
        ]
        return sorted(attempts, key=lambda a: a.started_at)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------
    async def reset_to_sample_data(self) -> None:
        """Erase questions and courses and reload the sample set. Attempts are kept."""
        async with self._write():
            self._load_samples()
        logger.info(
            f"♻️  Store reinitialized: {len(self._courses)} courses, "
            f"{len(self._questions)} questions"
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _load_samples(self) -> None:
        attempts = self._attempts
        self.load_documents({"courses": SAMPLE_COURSES, "questions": SAMPLE_QUESTIONS})
        self._attempts = attempts

    @staticmethod
    def _merge(model, current, fields: Dict[str, Any]):
        data = current.model_dump()
        data.update({k: v for k, v in fields.items() if k not in _READ_ONLY_FIELDS})
        data["updated_at"] = utcnow()
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {model.__name__} update: {e}") from e

    def _recount(self, course_id: str) -> None:
        course = self._courses.get(course_id)
        if course is None:
            return
        course.question_count = sum(
            1 for q in self._questions.values() if q.course == course_id
        )
