"""
Owns the live exam and study sessions of the service.
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Dict, Optional, Set

from mindlock.config import settings
from mindlock.logger import setup_logger
from mindlock.models import ExamConfig, ExamResult, QuestionAttempt
from mindlock.notify import NotificationCenter, Notifier, RecordingNavigator
from mindlock.sessions.exam import ExamSession, ExamStatus
from mindlock.sessions.query import validate_exam_config
from mindlock.sessions.study import StudySession
from mindlock.store.base import QuestionStore
from mindlock.timer import Clock, TickScheduler
from mindlock.utils.exceptions import NotFoundError
from mindlock.utils.helpers import new_id

logger = setup_logger(__name__)


class SessionRegistry:
    """
    Creates, looks up and discards sessions. Each session owns its timer;
    discarding a session disposes it.

    Submitted exams stay readable for `result_retention` seconds after their
    last access so the client can fetch the result after an automatic
    submission. Study sessions untouched for `idle_timeout` seconds are
    closed by `evict_idle()`. Active exams are left to their countdown.
    """

    def __init__(
        self,
        store: QuestionStore,
        notifier: Optional[Notifier] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[TickScheduler] = None,
        tick_interval: Optional[float] = None,
        rng: Optional[random.Random] = None,
        idle_timeout: Optional[float] = None,
        result_retention: Optional[float] = None,
    ) -> None:
        self.store = store
        self.notifier = notifier or NotificationCenter()
        self.rng = rng
        self._timer_options = {
            "clock": clock,
            "scheduler": scheduler,
            "tick_interval": tick_interval,
        }
        self._exams: Dict[str, ExamSession] = {}
        self._studies: Dict[str, StudySession] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._clock: Clock = clock or time.monotonic
        self._last_access: Dict[str, float] = {}
        self._retained: Set[str] = set()
        self.idle_timeout = (
            idle_timeout if idle_timeout is not None else settings.session_idle_timeout
        )
        self.result_retention = (
            result_retention
            if result_retention is not None
            else settings.session_result_retention
        )

    @property
    def exam_count(self) -> int:
        return len(self._exams)

    @property
    def study_count(self) -> int:
        return len(self._studies)

    # ------------------------------------------------------------------
    # Exams
    # ------------------------------------------------------------------
    async def start_exam(self, config: ExamConfig) -> ExamSession:
        """
        Validate the configuration, resolve questions and start the countdown.

        Raises:
            ConfigurationError: invalid configuration; nothing is created
        """
        validate_exam_config(config)

        session = await ExamSession.create(
            config,
            self.store,
            rng=self.rng,
            notifier=self.notifier,
            navigator=RecordingNavigator(),
            on_submit=self._persist_exam_result,
            **self._timer_options,
        )
        session.start()
        self._exams[session.id] = session
        self._touch(session.id)
        return session

    def get_exam(self, session_id: str) -> ExamSession:
        session = self._exams.get(session_id)
        if session is None:
            raise NotFoundError(f"Exam session {session_id} not found")
        self._touch(session_id)
        return session

    def discard_exam(self, session_id: str) -> ExamSession:
        session = self.get_exam(session_id)
        session.exit()
        del self._exams[session_id]
        self._last_access.pop(session_id, None)
        self._retained.discard(session_id)
        return session

    # ------------------------------------------------------------------
    # Study
    # ------------------------------------------------------------------
    async def open_study(self, question_id: str) -> StudySession:
        """
        Raises:
            NotFoundError: the question does not resolve
        """
        session = StudySession(
            self.store,
            question_id,
            notifier=self.notifier,
            navigator=RecordingNavigator(),
            **self._timer_options,
        )
        if not await session.open():
            raise NotFoundError(f"Question {question_id} not found")

        self._studies[session.id] = session
        self._touch(session.id)
        return session

    def get_study(self, session_id: str) -> StudySession:
        session = self._studies.get(session_id)
        if session is None:
            raise NotFoundError(f"Study session {session_id} not found")
        self._touch(session_id)
        return session

    def discard_study(self, session_id: str) -> StudySession:
        session = self.get_study(session_id)
        session.close()
        del self._studies[session_id]
        self._last_access.pop(session_id, None)
        return session

    # ------------------------------------------------------------------
    # Idle eviction
    # ------------------------------------------------------------------
    def evict_idle(self) -> int:
        """
        Drop study sessions idle past `idle_timeout` and finished exams idle
        past `result_retention`, disposing their timers.

        Returns:
            Number of sessions evicted
        """
        now = self._clock()
        evicted = 0

        for session_id, session in list(self._exams.items()):
            # Observe an expiry the scheduler has not delivered yet
            session.timer.tick()
            if session.status == ExamStatus.ACTIVE:
                continue
            if session_id not in self._retained:
                # Retention starts when the sweep first sees the exam finished
                self._retained.add(session_id)
                self._last_access[session_id] = now
                continue
            if now - self._last_access.get(session_id, now) >= self.result_retention:
                session.timer.dispose()
                del self._exams[session_id]
                self._last_access.pop(session_id, None)
                self._retained.discard(session_id)
                evicted += 1

        for session_id, session in list(self._studies.items()):
            if now - self._last_access.get(session_id, now) >= self.idle_timeout:
                session.close()
                del self._studies[session_id]
                self._last_access.pop(session_id, None)
                evicted += 1

        if evicted:
            logger.info(f"🧹 Evicted {evicted} idle session(s)")
        return evicted

    async def run_sweeper(self, interval: float) -> None:
        """Call `evict_idle()` every `interval` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            try:
                self.evict_idle()
            except Exception as e:
                logger.error(f"❌ Session sweep failed: {e}", exc_info=True)

    def _touch(self, session_id: str) -> None:
        self._last_access[session_id] = self._clock()

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    async def close(self) -> None:
        for session in list(self._exams.values()):
            session.timer.dispose()
        for session in list(self._studies.values()):
            session.timer.dispose()
        self._exams.clear()
        self._studies.clear()
        self._last_access.clear()
        self._retained.clear()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Result hand-off
    # ------------------------------------------------------------------
    def _persist_exam_result(self, result: ExamResult) -> None:
        """Record attempts in the background; the timer callback is synchronous."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"⚠️ No event loop, exam {result.exam_id} results not stored")
            return

        task = loop.create_task(self._record_attempts(result))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _record_attempts(self, result: ExamResult) -> None:
        try:
            for question_id in result.question_ids:
                await self.store.record_attempt(
                    QuestionAttempt(
                        id=new_id(),
                        question_id=question_id,
                        exam_id=result.exam_id,
                        started_at=result.started_at or result.submitted_at,
                        completed_at=result.submitted_at,
                        duration=result.elapsed_seconds,
                        answer=result.answers.get(question_id),
                        notes=f"exam submitted ({result.reason})",
                    )
                )
            logger.info(f"💾 Stored {len(result.question_ids)} attempt(s) for exam {result.exam_id}")
        except Exception as e:
            logger.error(f"❌ Failed to store exam {result.exam_id} results: {e}")
            self.notifier.error("Failed to save exam results")
