"""
Exam start parameters: query-string parsing and validation.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, Union
from urllib.parse import parse_qs

from mindlock.config import settings
from mindlock.models import DIFFICULTY_ORDER, ExamConfig
from mindlock.utils.exceptions import ConfigurationError
from mindlock.utils.helpers import split_csv

QueryInput = Union[str, Mapping[str, Union[str, Sequence[str]]]]


def _first(params: Mapping, key: str) -> Optional[str]:
    value = params.get(key)
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return None if value is None else str(value)


def parse_exam_query(query: QueryInput, default_minutes: Optional[int] = None) -> ExamConfig:
    """
    Parse `course`, `difficulty`, `duration`, `topics` and `random`.

    Never raises: a missing or malformed duration falls back to the default
    (20 minutes), a missing `random` means False.

    Args:
        query: Raw query string (with or without leading "?") or a mapping
        default_minutes: Override for the default duration

    Returns:
        ExamConfig
    """
    if default_minutes is None:
        default_minutes = settings.default_exam_minutes

    if isinstance(query, str):
        params: Mapping = parse_qs(query.lstrip("?"), keep_blank_values=True)
    else:
        params = query

    duration_minutes = default_minutes
    raw_duration = _first(params, "duration")
    if raw_duration is not None:
        try:
            duration_minutes = int(raw_duration.strip())
        except ValueError:
            duration_minutes = default_minutes
        if duration_minutes <= 0:
            duration_minutes = default_minutes

    raw_random = _first(params, "random") or ""

    return ExamConfig(
        course=_first(params, "course") or None,
        difficulty=_first(params, "difficulty") or None,
        duration_minutes=duration_minutes,
        topics=split_csv(_first(params, "topics")),
        random=raw_random.strip().lower() == "true",
    )


def validate_exam_config(
    config: ExamConfig, allowed_durations: Optional[Sequence[int]] = None
) -> ExamConfig:
    """
    Check an ExamConfig before a session is created.

    Raises:
        ConfigurationError: missing course/difficulty, unknown difficulty, or a
        duration outside the allowed set.
    """
    if allowed_durations is None:
        allowed_durations = settings.exam_durations

    if not config.course:
        raise ConfigurationError("Please select a course")
    if not config.difficulty:
        raise ConfigurationError("Please select a difficulty")
    if config.difficulty not in DIFFICULTY_ORDER:
        raise ConfigurationError(f"Unknown difficulty: {config.difficulty}")
    if config.duration_minutes not in allowed_durations:
        choices = ", ".join(str(d) for d in allowed_durations)
        raise ConfigurationError(
            f"Duration must be one of {choices} minutes, got {config.duration_minutes}"
        )

    return config
