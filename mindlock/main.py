import asyncio
import random
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mindlock.config import settings
from mindlock.logger import quiet_noisy_loggers, setup_logger
from mindlock.models import (
    AdminResetResponse,
    AnswerPayload,
    Course,
    CourseCreate,
    CourseUpdate,
    ExamState,
    HealthResponse,
    Notification,
    Question,
    QuestionAttempt,
    QuestionCreate,
    QuestionFilter,
    QuestionUpdate,
    StudyState,
    SubmitRequest,
)
from mindlock.notify import NotificationCenter
from mindlock.sessions.query import parse_exam_query
from mindlock.sessions.registry import SessionRegistry
from mindlock.store.base import QuestionStore, SortDirection, SortField, build_store, sort_questions
from mindlock.timer import Clock, TickScheduler
from mindlock.utils.exceptions import (
    ConfigurationError,
    MindLockError,
    NotFoundError,
    PersistenceError,
    SessionClosedError,
)
from mindlock.utils.helpers import split_csv

logger = setup_logger(__name__)

router = APIRouter()

_STATUS_BY_ERROR = (
    (ConfigurationError, 422),
    (NotFoundError, 404),
    (SessionClosedError, 409),
    (PersistenceError, 503),
)


def _store(request: Request) -> QuestionStore:
    return request.app.state.store


def _registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


# ----------------------------------------------------------------------
# Health
# ----------------------------------------------------------------------
@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint."""
    registry = _registry(request)
    return HealthResponse(
        status="healthy",
        store_backend=settings.store_backend,
        active_exams=registry.exam_count,
        active_study_sessions=registry.study_count,
    )


# ----------------------------------------------------------------------
# Questions
# ----------------------------------------------------------------------
@router.get("/questions", response_model=List[Question])
async def list_questions(
    request: Request,
    course: Optional[str] = None,
    difficulty: Optional[str] = None,
    tags: Optional[str] = None,
    search: Optional[str] = None,
    sort: SortField = "createdAt",
    direction: SortDirection = "desc",
):
    """
    Browse questions.

    Args:
        tags: Comma-separated; a question matches if it has any of them
        search: Case-insensitive match on title, content and tags
    """
    query = QuestionFilter(
        course=course, difficulty=difficulty, tags=split_csv(tags), search_text=search
    )
    questions = await _store(request).list_questions(query)
    return sort_questions(questions, sort, direction)


@router.get("/questions/{question_id}", response_model=Question)
async def get_question(request: Request, question_id: str):
    question = await _store(request).get_question(question_id)
    if question is None:
        raise NotFoundError(f"Question {question_id} not found")
    return question


@router.post("/questions", response_model=Question, status_code=201)
async def create_question(request: Request, body: QuestionCreate):
    return await _store(request).create_question(body)


@router.patch("/questions/{question_id}", response_model=Question)
async def update_question(request: Request, question_id: str, body: QuestionUpdate):
    fields = body.model_dump(exclude_unset=True)
    return await _store(request).update_question(question_id, fields)


@router.delete("/questions/{question_id}", status_code=204)
async def delete_question(request: Request, question_id: str):
    await _store(request).delete_question(question_id)
    return Response(status_code=204)


@router.get("/attempts", response_model=List[QuestionAttempt])
async def list_attempts(
    request: Request, question_id: Optional[str] = Query(default=None, alias="questionId")
):
    return await _store(request).list_attempts(question_id)


# ----------------------------------------------------------------------
# Courses
# ----------------------------------------------------------------------
@router.get("/courses", response_model=List[Course])
async def list_courses(request: Request):
    return await _store(request).list_courses()


@router.get("/courses/{course_id}", response_model=Course)
async def get_course(request: Request, course_id: str):
    course = await _store(request).get_course(course_id)
    if course is None:
        raise NotFoundError(f"Course {course_id} not found")
    return course


@router.post("/courses", response_model=Course, status_code=201)
async def create_course(request: Request, body: CourseCreate):
    return await _store(request).create_course(body)


@router.patch("/courses/{course_id}", response_model=Course)
async def update_course(request: Request, course_id: str, body: CourseUpdate):
    return await _store(request).update_course(course_id, body.model_dump(exclude_unset=True))


@router.delete("/courses/{course_id}", status_code=204)
async def delete_course(request: Request, course_id: str):
    await _store(request).delete_course(course_id)
    return Response(status_code=204)


# ----------------------------------------------------------------------
# Exam sessions
# ----------------------------------------------------------------------
@router.post("/exams", response_model=ExamState, status_code=201)
async def start_exam(request: Request):
    """
    Start an exam configured by the query string:
    course, difficulty, duration (minutes), topics (comma-separated), random.
    """
    config = parse_exam_query(str(request.url.query))
    session = await _registry(request).start_exam(config)
    return session.snapshot()


@router.get("/exams/{session_id}", response_model=ExamState)
async def get_exam(request: Request, session_id: str):
    return _registry(request).get_exam(session_id).snapshot()


@router.post("/exams/{session_id}/next", response_model=ExamState)
async def next_question(request: Request, session_id: str):
    session = _registry(request).get_exam(session_id)
    session.next()
    return session.snapshot()


@router.post("/exams/{session_id}/previous", response_model=ExamState)
async def previous_question(request: Request, session_id: str):
    session = _registry(request).get_exam(session_id)
    session.previous()
    return session.snapshot()


@router.post("/exams/{session_id}/goto/{index}", response_model=ExamState)
async def goto_question(request: Request, session_id: str, index: int):
    session = _registry(request).get_exam(session_id)
    session.go_to(index)
    return session.snapshot()


@router.put("/exams/{session_id}/answers/{question_id}", response_model=ExamState)
async def set_exam_answer(
    request: Request, session_id: str, question_id: str, body: AnswerPayload
):
    session = _registry(request).get_exam(session_id)
    session.set_answer(question_id, body.text)
    return session.snapshot()


@router.post("/exams/{session_id}/submit", response_model=ExamState)
async def submit_exam(
    request: Request, session_id: str, body: Optional[SubmitRequest] = None
):
    session = _registry(request).get_exam(session_id)
    session.submit(final_answer=body.final_answer if body else None)
    return session.snapshot()


@router.delete("/exams/{session_id}", response_model=ExamState)
async def exit_exam(request: Request, session_id: str):
    return _registry(request).discard_exam(session_id).snapshot()


# ----------------------------------------------------------------------
# Study sessions
# ----------------------------------------------------------------------
@router.post("/study/{question_id}", response_model=StudyState, status_code=201)
async def open_study(request: Request, question_id: str):
    session = await _registry(request).open_study(question_id)
    return session.snapshot()


@router.get("/study/{session_id}", response_model=StudyState)
async def get_study(request: Request, session_id: str):
    return _registry(request).get_study(session_id).snapshot()


@router.put("/study/{session_id}/answer", response_model=StudyState)
async def set_study_answer(request: Request, session_id: str, body: AnswerPayload):
    session = _registry(request).get_study(session_id)
    session.user_answer = body.text
    return session.snapshot()


@router.post("/study/{session_id}/save", response_model=StudyState)
async def save_study_answer(request: Request, session_id: str):
    session = _registry(request).get_study(session_id)
    await session.save()
    return session.snapshot()


@router.post("/study/{session_id}/pause", response_model=StudyState)
async def pause_study(request: Request, session_id: str):
    session = _registry(request).get_study(session_id)
    session.pause()
    return session.snapshot()


@router.post("/study/{session_id}/resume", response_model=StudyState)
async def resume_study(request: Request, session_id: str):
    session = _registry(request).get_study(session_id)
    session.resume()
    return session.snapshot()


@router.post("/study/{session_id}/reset", response_model=StudyState)
async def reset_study(request: Request, session_id: str):
    session = _registry(request).get_study(session_id)
    session.reset_timer()
    return session.snapshot()


@router.delete("/study/{session_id}", response_model=StudyState)
async def close_study(request: Request, session_id: str):
    return _registry(request).discard_study(session_id).snapshot()


# ----------------------------------------------------------------------
# Admin
# ----------------------------------------------------------------------
@router.post("/admin/reinitialize", response_model=AdminResetResponse)
async def reinitialize_store(request: Request):
    """Erase all questions and courses and reload the sample data."""
    store = _store(request)
    notifier = request.app.state.notifier
    try:
        await store.reset_to_sample_data()
    except Exception:
        notifier.error("Failed to reinitialize database")
        raise

    notifier.success("Database reinitialized successfully")
    return AdminResetResponse(
        courses=len(await store.list_courses()),
        questions=len(await store.list_questions()),
    )


# ----------------------------------------------------------------------
# Notifications
# ----------------------------------------------------------------------
@router.get("/notifications", response_model=List[Notification])
async def drain_notifications(request: Request):
    return request.app.state.notifier.drain()


# ----------------------------------------------------------------------
# Error handling
# ----------------------------------------------------------------------
async def mindlock_exception_handler(request: Request, exc: MindLockError):
    """Map application exceptions to HTTP status codes."""
    status_code = next(
        (code for error_type, code in _STATUS_BY_ERROR if isinstance(exc, error_type)),
        400,
    )
    if status_code >= 500:
        logger.error(f"🔥 Store Error: {exc}")
    else:
        logger.warning(f"⚠️ {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"🔥 Unexpected Error: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ----------------------------------------------------------------------
# Application
# ----------------------------------------------------------------------
def create_app(
    store: Optional[QuestionStore] = None,
    clock: Optional[Clock] = None,
    scheduler: Optional[TickScheduler] = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    """
    Build the service. Arguments override the configured store and the
    timer/shuffle sources.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager: startup and shutdown."""
        quiet_noisy_loggers()
        logger.info("🚀 Starting MindLock service")
        logger.info(
            f"   Config: store={settings.store_backend}, "
            f"durations={settings.exam_durations}"
        )
        app.state.store = store or build_store()
        app.state.notifier = NotificationCenter()
        app.state.registry = SessionRegistry(
            app.state.store,
            notifier=app.state.notifier,
            clock=clock,
            scheduler=scheduler,
            rng=rng,
        )
        sweeper = asyncio.create_task(
            app.state.registry.run_sweeper(settings.session_sweep_interval)
        )
        yield
        logger.info("🛑 Shutting down service")
        sweeper.cancel()
        await app.state.registry.close()
        await app.state.store.close()

    app = FastAPI(title="MindLock", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    app.add_exception_handler(MindLockError, mindlock_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    return app


app = create_app()
