"""Tests for session ownership and idle eviction."""

import pytest

from mindlock.models import ExamConfig
from mindlock.sessions.exam import ExamStatus
from mindlock.sessions.registry import SessionRegistry
from mindlock.sessions.study import StudyStatus
from mindlock.utils.exceptions import NotFoundError


@pytest.fixture
def registry(store, notifier, clock, scheduler):
    return SessionRegistry(
        store,
        notifier=notifier,
        clock=clock,
        scheduler=scheduler,
        tick_interval=0.2,
        idle_timeout=100,
        result_retention=50,
    )


def exam_config(**overrides):
    values = {"course": "1", "difficulty": "hard", "duration_minutes": 20}
    values.update(overrides)
    return ExamConfig(**values)


class TestStudyEviction:
    @pytest.mark.asyncio
    async def test_abandoned_study_session_is_closed(self, registry, clock, scheduler):
        session = await registry.open_study("1")
        assert scheduler.active != []

        clock.advance(101)
        assert registry.evict_idle() == 1

        assert session.status == StudyStatus.CLOSED
        assert scheduler.active == []
        with pytest.raises(NotFoundError):
            registry.get_study(session.id)

    @pytest.mark.asyncio
    async def test_access_keeps_session_alive(self, registry, clock):
        session = await registry.open_study("1")

        clock.advance(60)
        registry.get_study(session.id)
        clock.advance(60)

        assert registry.evict_idle() == 0
        assert registry.get_study(session.id) is session


class TestExamEviction:
    @pytest.mark.asyncio
    async def test_active_exam_is_not_evicted(self, registry, clock):
        session = await registry.start_exam(exam_config())
        clock.advance(500)

        assert registry.evict_idle() == 0
        assert session.status == ExamStatus.ACTIVE
        await registry.close()

    @pytest.mark.asyncio
    async def test_submitted_exam_kept_for_retention_window(self, registry, clock):
        session = await registry.start_exam(exam_config())
        session.submit()

        assert registry.evict_idle() == 0
        clock.advance(49)
        assert registry.evict_idle() == 0
        assert registry.get_exam(session.id) is session

        clock.advance(50)
        assert registry.evict_idle() == 1
        with pytest.raises(NotFoundError):
            registry.get_exam(session.id)
        await registry.close()

    @pytest.mark.asyncio
    async def test_expired_exam_result_outlives_first_sweep(self, registry, clock, scheduler):
        session = await registry.start_exam(exam_config())

        # No ticks delivered: the sweep itself observes the expiry
        clock.advance(1300)
        assert registry.evict_idle() == 0
        assert session.status == ExamStatus.SUBMITTED
        assert session.result.reason == "timeout"
        assert registry.get_exam(session.id).result is not None

        clock.advance(50)
        assert registry.evict_idle() == 1
        assert scheduler.active == []
        await registry.close()

    @pytest.mark.asyncio
    async def test_empty_exam_is_evicted_after_retention(self, registry, clock):
        session = await registry.start_exam(exam_config(course="3", difficulty="expert"))
        assert session.status == ExamStatus.EMPTY

        registry.evict_idle()
        clock.advance(50)
        assert registry.evict_idle() == 1
        assert registry.exam_count == 0
