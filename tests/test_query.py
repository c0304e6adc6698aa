"""Tests for exam query-string parsing and validation."""

import pytest

from mindlock.models import ExamConfig
from mindlock.sessions.query import parse_exam_query, validate_exam_config
from mindlock.utils.exceptions import ConfigurationError


class TestParseExamQuery:
    def test_full_query(self):
        config = parse_exam_query("?course=algo&difficulty=hard&duration=45&random=true")
        assert config.course == "algo"
        assert config.difficulty == "hard"
        assert config.duration_seconds == 2700
        assert config.random is True
        assert config.topics == []

    def test_missing_duration_defaults_to_twenty_minutes(self):
        config = parse_exam_query("course=algo&difficulty=hard", default_minutes=20)
        assert config.duration_seconds == 1200
        assert config.random is False

    @pytest.mark.parametrize("raw", ["abc", "", "4.5", "-10", "0"])
    def test_malformed_duration_falls_back(self, raw):
        config = parse_exam_query(f"course=a&difficulty=easy&duration={raw}", default_minutes=20)
        assert config.duration_minutes == 20

    def test_topics_are_split_and_trimmed(self):
        config = parse_exam_query("topics=graphs, arrays,,searching")
        assert config.topics == ["graphs", "arrays", "searching"]

    def test_random_only_true_counts(self):
        assert parse_exam_query("random=TRUE").random is True
        assert parse_exam_query("random=false").random is False
        assert parse_exam_query("random=yes").random is False

    def test_accepts_mapping(self):
        config = parse_exam_query({"course": ["1"], "difficulty": "medium", "duration": "90"})
        assert config.course == "1"
        assert config.difficulty == "medium"
        assert config.duration_minutes == 90

    def test_mapping_values_need_not_be_strings(self):
        config = parse_exam_query({"course": 1, "duration": 45, "random": True})
        assert config.course == "1"
        assert config.duration_minutes == 45
        assert config.random is True

    def test_empty_values_are_missing(self):
        config = parse_exam_query("course=&difficulty=")
        assert config.course is None
        assert config.difficulty is None


class TestValidateExamConfig:
    def test_valid_config_passes(self):
        config = ExamConfig(course="1", difficulty="hard", duration_minutes=45)
        assert validate_exam_config(config, allowed_durations=[20, 45, 90]) is config

    def test_missing_course(self):
        with pytest.raises(ConfigurationError):
            validate_exam_config(ExamConfig(difficulty="hard"), allowed_durations=[20])

    def test_missing_difficulty(self):
        with pytest.raises(ConfigurationError):
            validate_exam_config(ExamConfig(course="1"), allowed_durations=[20])

    def test_unknown_difficulty(self):
        with pytest.raises(ConfigurationError):
            validate_exam_config(
                ExamConfig(course="1", difficulty="impossible"), allowed_durations=[20]
            )

    def test_duration_outside_allowed_set(self):
        with pytest.raises(ConfigurationError):
            validate_exam_config(
                ExamConfig(course="1", difficulty="easy", duration_minutes=30),
                allowed_durations=[20, 45, 90],
            )
