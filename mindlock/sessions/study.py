"""
Open-ended single-question study sessions with manual save.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional

from mindlock.logger import setup_logger
from mindlock.models import Question, StudyState
from mindlock.notify import Navigator, NotificationCenter, Notifier, RecordingNavigator
from mindlock.store.base import QuestionStore
from mindlock.timer import Clock, SessionTimer, TickScheduler
from mindlock.utils.exceptions import SessionClosedError
from mindlock.utils.helpers import new_id

logger = setup_logger(__name__)


class StudyStatus(str, Enum):
    LOADING = "loading"
    ACTIVE = "active"
    NOT_FOUND = "not_found"  # terminal
    CLOSED = "closed"


class StudySession:
    """
    One question, a stopwatch, and a draft answer that is only written to
    the store by `save()`.
    """

    def __init__(
        self,
        store: QuestionStore,
        question_id: str,
        notifier: Optional[Notifier] = None,
        navigator: Optional[Navigator] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[TickScheduler] = None,
        tick_interval: Optional[float] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.id = session_id or new_id()
        self.store = store
        self.question_id = question_id
        self.question: Optional[Question] = None
        self.status = StudyStatus.LOADING

        self.notifier = notifier or NotificationCenter()
        self.navigator = navigator or RecordingNavigator()

        self._user_answer = ""
        self._persisted_answer = ""
        self._saved = False
        self._save_lock = asyncio.Lock()

        self.timer = SessionTimer(
            0, clock=clock, scheduler=scheduler, tick_interval=tick_interval
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def open(self) -> bool:
        """
        Load the question and start the stopwatch.

        Returns:
            False when the question could not be loaded (terminal not_found)
        """
        try:
            question = await self.store.get_question(self.question_id)
        except Exception as e:
            logger.error(f"❌ Failed to load question {self.question_id}: {e}")
            question = None

        if question is None:
            self.status = StudyStatus.NOT_FOUND
            self.notifier.error("Question not found")
            self.navigator.go_to("/questions")
            return False

        self.question = question
        self._persisted_answer = question.user_answer or ""
        self._user_answer = self._persisted_answer
        self.status = StudyStatus.ACTIVE
        self.timer.start()

        logger.info(f"📖 Study session {self.id} opened for question {question.id}")
        return True

    def close(self) -> None:
        self.timer.dispose()
        if self.status == StudyStatus.ACTIVE:
            self.status = StudyStatus.CLOSED
            self.navigator.go_to("/questions")

    # ------------------------------------------------------------------
    # Timer controls (never touch persisted data)
    # ------------------------------------------------------------------
    def pause(self) -> None:
        self._require_active()
        self.timer.pause()

    def resume(self) -> None:
        self._require_active()
        self.timer.start()

    def reset_timer(self) -> None:
        self._require_active()
        self.timer.reset()

    # ------------------------------------------------------------------
    # Draft answer
    # ------------------------------------------------------------------
    @property
    def user_answer(self) -> str:
        return self._user_answer

    @user_answer.setter
    def user_answer(self, text: str) -> None:
        self._require_active()
        if text != self._user_answer:
            self._user_answer = text
            self._saved = False

    @property
    def is_dirty(self) -> bool:
        return self._user_answer != self._persisted_answer

    @property
    def is_saved(self) -> bool:
        """Drives the "Saved" indicator until the next edit."""
        return self._saved and not self.is_dirty

    @property
    def is_saving(self) -> bool:
        return self._save_lock.locked()

    async def save(self) -> bool:
        """
        Write the draft answer to the store.

        No store call when nothing changed; a call made while another save
        is in flight is ignored.

        Returns:
            True if the answer was written
        """
        if self.status != StudyStatus.ACTIVE or self.question is None:
            return False
        if not self.is_dirty:
            return False
        if self._save_lock.locked():
            logger.debug(f"Save already in flight for study session {self.id}")
            return False

        async with self._save_lock:
            answer = self._user_answer
            try:
                await self.store.update_question(self.question.id, {"user_answer": answer})
            except Exception as e:
                logger.error(f"❌ Error saving answer for {self.question.id}: {e}")
                self.notifier.error("Failed to save answer")
                return False

            self._persisted_answer = answer
            self.question.user_answer = answer
            self._saved = True

        self.notifier.success("Answer saved successfully")
        return True

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------
    def snapshot(self) -> StudyState:
        self.timer.tick()
        return StudyState(
            id=self.id,
            status=self.status.value,
            question=self.question,
            user_answer=self._user_answer,
            is_dirty=self.is_dirty,
            is_saved=self.is_saved,
            is_saving=self.is_saving,
            elapsed_seconds=self.timer.elapsed_seconds,
            elapsed=self.timer.formatted_time(),
            is_running=self.timer.is_running,
            redirect=getattr(self.navigator, "path", None),
        )

    def _require_active(self) -> None:
        if self.status != StudyStatus.ACTIVE:
            raise SessionClosedError(f"Study session {self.id} is {self.status.value}")
