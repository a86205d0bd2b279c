"""Tests for SM-2 scheduling and urgency tiers."""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from backend.config import Settings
from backend.errors import InvalidInputError
from backend.srs.sm2 import (
    Priority,
    ScheduleState,
    SM2Scheduler,
    priority_for,
    quality_grade,
    update_mastery,
)

NOW = datetime(2024, 5, 1, 12, 0, 0)


class TestQualityGrade:
    def test_thresholds(self) -> None:
        assert quality_grade(100) == 5
        assert quality_grade(90) == 5
        assert quality_grade(89) == 4
        assert quality_grade(70) == 4
        assert quality_grade(69) == 3
        assert quality_grade(50) == 3
        assert quality_grade(49) == 2
        assert quality_grade(30) == 2
        assert quality_grade(29) == 0
        assert quality_grade(0) == 0

    def test_grade_one_never_produced(self) -> None:
        assert 1 not in {quality_grade(score) for score in range(101)}


class TestSM2Scheduler:
    def setup_method(self) -> None:
        self.scheduler = SM2Scheduler()

    def test_perfect_recall_grows_interval(self) -> None:
        result = self.scheduler.record_attempt(ScheduleState(2.5, 6), 95, now=NOW)
        assert result.quality == 5
        assert result.ease_factor == pytest.approx(2.6)
        assert result.interval_days == 16
        assert result.next_review_at == NOW + timedelta(days=16)
        assert result.priority == Priority.RELAXED

    def test_failure_resets_interval(self) -> None:
        result = self.scheduler.record_attempt(ScheduleState(2.5, 6), 20, now=NOW)
        assert result.quality == 0
        assert result.ease_factor == pytest.approx(1.7)
        assert result.interval_days == 1
        assert result.priority == Priority.URGENT

    def test_grade_two_resets_interval(self) -> None:
        result = self.scheduler.record_attempt(ScheduleState(2.5, 20), 40, now=NOW)
        assert result.quality == 2
        assert result.interval_days == 1

    def test_grade_three_passes(self) -> None:
        result = self.scheduler.record_attempt(ScheduleState(2.5, 6), 55, now=NOW)
        assert result.quality == 3
        assert result.ease_factor == pytest.approx(2.36)
        assert result.interval_days == 14

    def test_ease_factor_floor(self) -> None:
        result = self.scheduler.record_attempt(ScheduleState(1.3, 10), 0, now=NOW)
        assert result.ease_factor == pytest.approx(1.3)

    def test_new_item_sequence(self) -> None:
        state = ScheduleState()
        intervals = []
        for _ in range(3):
            result = self.scheduler.record_attempt(state, 100, now=NOW)
            intervals.append(result.interval_days)
            state = ScheduleState(result.ease_factor, result.interval_days)
        assert intervals == [1, 6, 17]

    def test_repeated_failures_stay_at_floor(self) -> None:
        state = ScheduleState()
        for _ in range(10):
            result = self.scheduler.record_attempt(state, 0, now=NOW)
            state = ScheduleState(result.ease_factor, result.interval_days)
            assert result.ease_factor >= 1.3
            assert result.interval_days == 1

    def test_custom_floor(self) -> None:
        scheduler = SM2Scheduler(min_ease_factor=2.0)
        result = scheduler.record_attempt(ScheduleState(2.1, 6), 0, now=NOW)
        assert result.ease_factor == pytest.approx(2.0)

    def test_floor_below_minimum_rejected(self) -> None:
        with pytest.raises(ValueError):
            SM2Scheduler(min_ease_factor=1.0)

    def test_prior_ease_factor_is_not_raised_before_update(self) -> None:
        # EF 1.2 + 0.1 = 1.3, the floor applies to the result only
        result = self.scheduler.record_attempt(ScheduleState(1.2, 6), 100, now=NOW)
        assert result.ease_factor == pytest.approx(1.3)

    def test_score_out_of_range(self) -> None:
        with pytest.raises(InvalidInputError):
            self.scheduler.record_attempt(ScheduleState(), 101, now=NOW)
        with pytest.raises(InvalidInputError):
            self.scheduler.record_attempt(ScheduleState(), -1, now=NOW)

    def test_negative_interval_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            self.scheduler.record_attempt(ScheduleState(2.5, -1), 80, now=NOW)


class TestPriority:
    def test_overdue_is_urgent(self) -> None:
        assert priority_for(NOW - timedelta(days=3), NOW) == Priority.URGENT

    def test_urgent_bound_inclusive(self) -> None:
        assert priority_for(NOW + timedelta(hours=24), NOW) == Priority.URGENT
        assert priority_for(NOW + timedelta(hours=24, seconds=1), NOW) == Priority.RECOMMENDED

    def test_recommended_bound_inclusive(self) -> None:
        assert priority_for(NOW + timedelta(hours=48), NOW) == Priority.RECOMMENDED
        assert priority_for(NOW + timedelta(hours=48, seconds=1), NOW) == Priority.RELAXED


class TestMastery:
    def test_gain(self) -> None:
        assert update_mastery(0, 70) == 10

    def test_loss(self) -> None:
        assert update_mastery(50, 49) == 45

    def test_unchanged_between(self) -> None:
        assert update_mastery(50, 60) == 50

    def test_clamped(self) -> None:
        assert update_mastery(95, 100) == 100
        assert update_mastery(3, 10) == 0


class TestSchedulerSettings:
    def test_ease_factor_floor_below_minimum_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(min_ease_factor=1.0)

    def test_default_ease_factor_below_minimum_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(default_ease_factor=1.0)

    def test_higher_floor_accepted(self) -> None:
        assert Settings(min_ease_factor=1.5).min_ease_factor == 1.5
