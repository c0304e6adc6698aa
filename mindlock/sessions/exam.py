"""
Timed multi-question exam sessions.
"""

from __future__ import annotations

import random
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from mindlock.logger import setup_logger
from mindlock.models import (
    ExamConfig,
    ExamResult,
    ExamState,
    FinalAnswer,
    Question,
    QuestionFilter,
)
from mindlock.notify import Navigator, NotificationCenter, Notifier, RecordingNavigator
from mindlock.store.base import QuestionStore
from mindlock.timer import Clock, SessionTimer, TickScheduler
from mindlock.utils.exceptions import NotFoundError, SessionClosedError
from mindlock.utils.helpers import new_id, utcnow

logger = setup_logger(__name__)

SubmitHook = Callable[[ExamResult], None]


class ExamStatus(str, Enum):
    ACTIVE = "active"
    EMPTY = "empty"  # no questions matched; terminal
    SUBMITTED = "submitted"
    EXITED = "exited"


async def resolve_exam_questions(
    store: QuestionStore, config: ExamConfig, rng: Optional[random.Random] = None
) -> List[Question]:
    """
    Pick the exam's questions.

    Filters by course and difficulty, plus topic tags unless the exam is
    randomized, in which case topics are ignored and the list is shuffled.
    """
    query = QuestionFilter(
        course=config.course,
        difficulty=config.difficulty,
        tags=[] if config.random else config.topics,
    )
    questions = list(await store.list_questions(query))

    if config.random:
        (rng or random.Random()).shuffle(questions)

    return questions


class ExamSession:
    """
    Runs a fixed-duration assessment over an ordered question list.

    The order is fixed at construction. Navigation never touches the timer.
    The session ends once: by `submit()` or when the countdown runs out, and
    later submissions return the first result without side effects.
    """

    def __init__(
        self,
        questions: Sequence[Question],
        budget_seconds: int,
        notifier: Optional[Notifier] = None,
        navigator: Optional[Navigator] = None,
        on_submit: Optional[SubmitHook] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[TickScheduler] = None,
        tick_interval: Optional[float] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.id = session_id or new_id()
        self.questions: List[Question] = list(questions)
        self.current_index = 0
        self.answers: Dict[str, str] = {}
        self.result: Optional[ExamResult] = None
        self.started_at = None

        self.notifier = notifier or NotificationCenter()
        self.navigator = navigator or RecordingNavigator()
        self.on_submit = on_submit

        self.timer = SessionTimer(
            budget_seconds,
            on_complete=self._on_time_up,
            clock=clock,
            scheduler=scheduler,
            tick_interval=tick_interval,
        )
        self.status = ExamStatus.ACTIVE if self.questions else ExamStatus.EMPTY

    @classmethod
    async def create(
        cls,
        config: ExamConfig,
        store: QuestionStore,
        rng: Optional[random.Random] = None,
        **kwargs,
    ) -> "ExamSession":
        """
        Resolve the question set from the store and build the session.

        A store failure is reported through the notifier and produces an
        empty (terminal) session.
        """
        load_failed = False
        try:
            questions = await resolve_exam_questions(store, config, rng)
        except Exception as e:
            logger.error(f"❌ Failed to load exam questions: {e}")
            questions = []
            load_failed = True

        session = cls(questions, config.duration_seconds, **kwargs)
        if load_failed:
            session.notifier.error("Failed to load questions")

        logger.info(
            f"📝 Exam {session.id}: {len(questions)} question(s), "
            f"{config.duration_minutes} min, random={config.random}"
        )
        return session

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions]

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def is_terminal(self) -> bool:
        return self.status != ExamStatus.ACTIVE

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Start the countdown. Empty or finished sessions never start a timer."""
        if self.status != ExamStatus.ACTIVE:
            return
        if self.started_at is None:
            self.started_at = utcnow()
        self.timer.start()

    def submit(
        self, reason: str = "manual", final_answer: Optional[FinalAnswer] = None
    ) -> Optional[ExamResult]:
        """
        End the exam and hand the answers off.

        Args:
            reason: "manual" or "timeout"
            final_answer: Answer for the displayed question, applied first
                unless the time already ran out

        Returns:
            The exam result (the first one on repeated calls), or None for an
            empty/exited session.
        """
        if self.status != ExamStatus.ACTIVE:
            return self.result

        # Catch an expiry the scheduler has not delivered yet
        self.timer.tick()
        if self.status != ExamStatus.ACTIVE:
            return self.result

        if final_answer is not None:
            self.set_answer(final_answer.question_id, final_answer.text)

        self.status = ExamStatus.SUBMITTED
        self.timer.dispose()

        self.result = ExamResult(
            exam_id=self.id,
            question_ids=self.question_ids,
            answers=dict(self.answers),
            elapsed_seconds=self.timer.elapsed_seconds,
            reason="timeout" if reason == "timeout" else "manual",
            started_at=self.started_at,
            submitted_at=utcnow(),
        )
        logger.info(
            f"📬 Exam {self.id} submitted ({self.result.reason}): "
            f"{len(self.answers)}/{len(self.questions)} answered"
        )

        if self.on_submit is not None:
            try:
                self.on_submit(self.result)
            except Exception as e:
                logger.error(f"❌ Exam {self.id} result hand-off failed: {e}")
                self.notifier.error("Failed to save exam results")

        if self.result.reason == "timeout":
            self.notifier.success("Time is up! Exam submitted")
        else:
            self.notifier.success("Exam submitted!")
        self.navigator.go_to("/dashboard")

        return self.result

    def exit(self) -> None:
        """Leave without submitting. The session is discarded."""
        self.timer.dispose()
        if self.status in (ExamStatus.ACTIVE, ExamStatus.EMPTY):
            self.status = ExamStatus.EXITED
            logger.info(f"🚪 Exam {self.id} exited without submission")
            self.navigator.go_to("/questions")

    def _on_time_up(self) -> None:
        logger.info(f"⌛ Exam {self.id} ran out of time")
        self.submit(reason="timeout")

    # ------------------------------------------------------------------
    # Navigation and answers
    # ------------------------------------------------------------------
    def next(self) -> int:
        if not self.is_terminal and self.current_index < len(self.questions) - 1:
            self.current_index += 1
        return self.current_index

    def previous(self) -> int:
        if not self.is_terminal and self.current_index > 0:
            self.current_index -= 1
        return self.current_index

    def go_to(self, index: int) -> int:
        if not self.is_terminal and 0 <= index < len(self.questions):
            self.current_index = index
        return self.current_index

    def set_answer(self, question_id: str, text: str) -> None:
        """
        Record a freeform answer.

        Raises:
            SessionClosedError: the exam is over (including expiry detected now)
            NotFoundError: the question is not part of this exam
        """
        self.timer.tick()
        if self.status != ExamStatus.ACTIVE:
            raise SessionClosedError(f"Exam {self.id} is {self.status.value}")
        if question_id not in self.question_ids:
            raise NotFoundError(f"Question {question_id} is not part of exam {self.id}")

        self.answers[question_id] = text

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------
    def snapshot(self) -> ExamState:
        self.timer.tick()
        return ExamState(
            id=self.id,
            status=self.status.value,
            current_index=self.current_index,
            total_questions=len(self.questions),
            question_ids=self.question_ids,
            current_question=self.current_question,
            answers=dict(self.answers),
            elapsed_seconds=self.timer.elapsed_seconds,
            remaining_seconds=self.timer.remaining_seconds,
            time_left=self.timer.formatted_time(countdown=True, short=True),
            is_running=self.timer.is_running,
            is_complete=self.timer.is_complete,
            result=self.result,
            redirect=getattr(self.navigator, "path", None),
        )
