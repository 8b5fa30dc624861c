"""
Tests for the knowledge decay and XP arithmetic.
"""
from datetime import datetime, timedelta, timezone

import pytest

from aily.models.aily import Emotion
from aily.services.knowledge_tracker import (
    apply_decay,
    apply_interaction_delta,
    check_level_up,
    concept_status,
    days_since_review,
    decay_rate_for,
    mastery_bonus,
    session_xp,
    should_decay,
    xp_for_emotion,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


class TestDecay:
    @pytest.mark.parametrize("days", [0, 1, 2, 3])
    @pytest.mark.parametrize("level", [0.0, 0.3, 0.8, 1.0])
    def test_grace_period_leaves_level_unchanged(self, days, level):
        assert apply_decay(ago(days), level, NOW) == level

    def test_four_days_decays_one_day_at_lowest_rate(self):
        result = apply_decay(ago(4), 0.8, NOW)
        assert result == pytest.approx(0.76)
        assert 0.1 <= result < 0.8

    def test_sixty_days_is_capped_at_eighty_percent(self):
        result = apply_decay(ago(60), 0.8, NOW)
        assert result == pytest.approx(0.8 * 0.2)
        assert result >= 0.1

    def test_rate_bands(self):
        assert decay_rate_for(4) == 0.05
        assert decay_rate_for(7) == 0.05
        assert decay_rate_for(8) == 0.10
        assert decay_rate_for(14) == 0.10
        assert decay_rate_for(15) == 0.15
        assert decay_rate_for(365) == 0.15

    def test_eight_days_uses_middle_band(self):
        # 5 decaying days at 10%/day of 0.8
        assert apply_decay(ago(8), 0.8, NOW) == pytest.approx(0.4)

    @pytest.mark.parametrize("days", [4, 10, 30, 365])
    @pytest.mark.parametrize("level", [0.1, 0.15, 0.5, 1.0])
    def test_positive_levels_never_drop_below_floor(self, days, level):
        assert apply_decay(ago(days), level, NOW) >= 0.1

    @pytest.mark.parametrize("days", [3, 4, 30, 365])
    @pytest.mark.parametrize("level", [0.01, 0.03, 0.05])
    def test_levels_below_floor_are_not_raised(self, days, level):
        assert apply_decay(ago(days), level, NOW) == level

    @pytest.mark.parametrize("days", [0, 4, 60])
    def test_zero_stays_zero(self, days):
        assert apply_decay(ago(days), 0.0, NOW) == 0.0

    @pytest.mark.parametrize("level", [-0.5, -0.01])
    def test_negative_levels_are_not_raised(self, level):
        result = apply_decay(ago(30), level, NOW)
        assert result <= 0
        assert result <= level

    def test_pure_function(self):
        first = apply_decay(ago(9), 0.6, NOW)
        second = apply_decay(ago(9), 0.6, NOW)
        assert first == second

    @pytest.mark.parametrize("level", [0.01, 0.05, 0.1, 0.35, 0.8, 1.0])
    def test_non_increasing_in_days(self, level):
        values = [apply_decay(ago(d), level, NOW) for d in range(0, 90)]
        assert all(a >= b for a, b in zip(values, values[1:]))

    def test_days_are_floored(self):
        assert days_since_review(ago(3.9), NOW) == 3
        assert not should_decay(ago(3.9), NOW)
        assert should_decay(ago(4), NOW)

    def test_naive_timestamps_are_utc(self):
        naive = (NOW - timedelta(days=4)).replace(tzinfo=None)
        assert apply_decay(naive, 0.8, NOW) == pytest.approx(0.76)


class TestInteractionDelta:
    @pytest.mark.parametrize("level,delta", [(0.5, 5.0), (0.5, -5.0), (0.0, -0.05), (1.0, 0.15)])
    def test_result_is_clamped(self, level, delta):
        assert 0.0 <= apply_interaction_delta(level, delta) <= 1.0

    def test_clamp_is_not_reversible_near_boundary(self):
        x = 0.95
        assert apply_interaction_delta(apply_interaction_delta(x, 5), -5) == 0.0

    def test_regular_update(self):
        assert apply_interaction_delta(0.4, 0.1) == pytest.approx(0.5)

    @pytest.mark.parametrize("level,status", [(0.9, "known"), (0.71, "known"), (0.7, "partial"),
                                              (0.31, "partial"), (0.3, "new"), (0.0, "new")])
    def test_status_buckets(self, level, status):
        assert concept_status(level) == status


class TestXP:
    @pytest.mark.parametrize("emotion,xp", [("excited", 10), ("understanding", 5),
                                            ("neutral", 2), ("confused", 0)])
    def test_emotion_table(self, emotion, xp):
        assert xp_for_emotion(emotion) == xp

    def test_enum_members_are_accepted(self):
        assert xp_for_emotion(Emotion.EXCITED) == 10

    @pytest.mark.parametrize("emotion", ["curious", "ecstatic", "", None])
    def test_unknown_emotion_earns_nothing(self, emotion):
        assert xp_for_emotion(emotion) == 0

    def test_mastery_bonus_on_upward_crossing(self):
        assert mastery_bonus(0.65, 0.75) == 50
        assert mastery_bonus(0.6, 0.7) == 50

    @pytest.mark.parametrize("previous,new", [(0.8, 0.6), (0.75, 0.85), (0.7, 0.8),
                                              (0.2, 0.5), (0.69, 0.69)])
    def test_no_bonus_otherwise(self, previous, new):
        assert mastery_bonus(previous, new) == 0


class TestLevels:
    def test_below_next_threshold(self):
        assert check_level_up(250, 1) == (1, False)

    def test_reaching_next_threshold(self):
        assert check_level_up(300, 1) == (2, True)

    def test_single_step_even_when_overshooting(self):
        assert check_level_up(1200, 0) == (1, True)

    def test_max_level_stays(self):
        assert check_level_up(99999, 5) == (5, False)

    def test_custom_thresholds(self):
        assert check_level_up(20, 0, thresholds=[0, 10, 30]) == (1, True)


class TestSessionXP:
    @pytest.mark.parametrize("messages,minutes", [(0, 1), (3, 1), (4, 1), (8, 2), (21, 5)])
    def test_duration_estimate(self, messages, minutes):
        duration, xp = session_xp(messages)
        assert duration == minutes
        assert xp == minutes * 10
