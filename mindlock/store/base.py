"""
Question/course store interface plus the list filtering and sorting rules
shared by every backend.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Literal, Optional, Protocol

from mindlock.config import Settings, settings
from mindlock.logger import setup_logger
from mindlock.models import (
    DIFFICULTY_ORDER,
    Course,
    CourseCreate,
    Question,
    QuestionAttempt,
    QuestionCreate,
    QuestionFilter,
)

logger = setup_logger(__name__)

SortField = Literal["title", "difficulty", "createdAt"]
SortDirection = Literal["asc", "desc"]


class QuestionStore(Protocol):
    """
    Async document store for questions, courses and attempts.

    get_* return None for unknown ids; update_*/delete_* raise NotFoundError.
    Backend failures raise PersistenceError.
    """

    async def list_questions(
        self, query: Optional[QuestionFilter] = None
    ) -> List[Question]: ...

    async def get_question(self, question_id: str) -> Optional[Question]: ...

    async def create_question(self, data: QuestionCreate) -> Question: ...

    async def update_question(
        self, question_id: str, fields: Dict[str, Any]
    ) -> Question: ...

    async def delete_question(self, question_id: str) -> None: ...

    async def list_courses(self) -> List[Course]: ...

    async def get_course(self, course_id: str) -> Optional[Course]: ...

    async def create_course(self, data: CourseCreate) -> Course: ...

    async def update_course(self, course_id: str, fields: Dict[str, Any]) -> Course: ...

    async def delete_course(self, course_id: str) -> None: ...

    async def record_attempt(self, attempt: QuestionAttempt) -> QuestionAttempt: ...

    async def list_attempts(
        self, question_id: Optional[str] = None
    ) -> List[QuestionAttempt]: ...

    async def reset_to_sample_data(self) -> None:
        """Erase questions and courses and reload the sample data."""
        ...

    async def close(self) -> None: ...


def matches_filter(question: Question, query: Optional[QuestionFilter]) -> bool:
    """Course/difficulty equality, any-tag match, case-insensitive search."""
    if query is None:
        return True

    if query.course and question.course != query.course:
        return False

    if query.difficulty and question.difficulty != query.difficulty:
        return False

    if query.tags and not any(tag in question.tags for tag in query.tags):
        return False

    if query.search_text:
        needle = query.search_text.lower()
        if (
            needle not in question.title.lower()
            and needle not in question.content.lower()
            and not any(needle in tag.lower() for tag in question.tags)
        ):
            return False

    return True


def filter_questions(
    questions: Iterable[Question], query: Optional[QuestionFilter]
) -> List[Question]:
    return [q for q in questions if matches_filter(q, query)]


def sort_questions(
    questions: Iterable[Question],
    field: SortField = "createdAt",
    direction: SortDirection = "desc",
) -> List[Question]:
    """Sort a question list the way the question browser does."""
    reverse = direction == "desc"

    if field == "title":
        key = lambda q: q.title.lower()  # noqa: E731
    elif field == "difficulty":
        key = lambda q: DIFFICULTY_ORDER[q.difficulty]  # noqa: E731
    else:
        key = lambda q: q.created_at  # noqa: E731

    return sorted(questions, key=key, reverse=reverse)


def build_store(config: Optional[Settings] = None) -> QuestionStore:
    """Create the store backend selected by `store_backend`."""
    config = config or settings
    backend = config.store_backend

    logger.info(f"🗄️  Using '{backend}' store")

    if backend == "remote":
        from mindlock.store.remote import RemoteDocumentStore

        return RemoteDocumentStore(
            base_url=config.store_url or "",
            api_key=config.store_api_key,
            timeout=config.store_timeout,
            max_retries=config.store_max_retries,
        )

    if backend == "json":
        from mindlock.store.json_file import JsonFileStore

        return JsonFileStore(config.store_path, seed=config.seed_sample_data)

    from mindlock.store.memory import InMemoryStore

    return InMemoryStore(seed=config.seed_sample_data)
