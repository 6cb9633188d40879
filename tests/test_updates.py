from datetime import timedelta

import pytest

from studycore.fire.config import EngineConfig
from studycore.fire.updates import (
    apply_implicit_credit,
    apply_implicit_penalty,
    compute_overdue_ratio,
    update_state,
)


class TestUpdateState:

    def test_first_pass_from_zero(self, make_state, now):
        result = update_state(make_state(0, 0), passed=True, now=now)
        assert result.repetition_level == pytest.approx(1.0)
        assert result.memory == pytest.approx(0.5)
        assert result.last_event_time == now

    def test_pass_with_zero_quality_gives_base_credit(self, make_state, now):
        result = update_state(make_state(1, 0.5), passed=True, quality=0.0, now=now)
        assert result.repetition_level == pytest.approx(1.5)

    def test_fresh_fail(self, make_state, now):
        result = update_state(make_state(2, 1.0), passed=False, now=now)
        assert result.repetition_level == pytest.approx(1.0)
        assert result.memory == pytest.approx(0.7)

    def test_overdue_fail_drops_further_than_fresh_fail(self, make_state, now):
        fresh = update_state(make_state(5, 0.8, days_ago=0), passed=False, now=now)
        overdue = update_state(make_state(5, 0.8, days_ago=32), passed=False, now=now)

        assert 5 - fresh.repetition_level == pytest.approx(1.0)
        assert 5 - overdue.repetition_level == pytest.approx(2.0)

    def test_repetition_level_never_negative(self, make_state, now):
        result = update_state(make_state(0.3, 0.1, days_ago=10), passed=False, now=now)
        assert result.repetition_level == 0
        assert result.memory == 0

    @pytest.mark.parametrize("level", [0, 0.5, 1.5, 2, 3.7, 8])
    @pytest.mark.parametrize("days_ago", [0, 1, 7, 40])
    @pytest.mark.parametrize("quality", [0.0, 0.5, 1.0])
    def test_pass_never_lowers_and_fail_never_raises(self, make_state, now, level, days_ago, quality):
        state = make_state(level, 0.6, days_ago=days_ago)
        assert update_state(state, True, quality, now=now).repetition_level >= level
        assert update_state(state, False, quality, now=now).repetition_level <= level

    def test_learning_speed_scales_delta(self, make_state, now):
        result = update_state(make_state(1, 0.5, learning_speed=2.0), passed=True, now=now)
        assert result.repetition_level == pytest.approx(3.0)

    def test_out_of_range_speed_is_clamped(self, make_state, now):
        result = update_state(make_state(1, 0.5, learning_speed=5.0), passed=True, now=now)
        assert result.learning_speed == 2.0
        assert result.repetition_level == pytest.approx(3.0)

    def test_quality_is_clamped(self, make_state, now):
        result = update_state(make_state(0, 0), passed=True, quality=4.0, now=now)
        assert result.repetition_level == pytest.approx(1.0)

    def test_memory_capped_at_one(self, make_state, now):
        assert update_state(make_state(3, 1.0), passed=True, now=now).memory == 1.0

    def test_input_state_is_not_modified(self, make_state, now):
        state = make_state(2, 0.8, days_ago=3)
        update_state(state, passed=True, now=now)
        assert state.repetition_level == 2
        assert state.memory == 0.8


def test_overdue_ratio():
    assert compute_overdue_ratio(3, 6) == 0
    assert compute_overdue_ratio(12, 6) == pytest.approx(1.0)
    assert compute_overdue_ratio(2, 0) == pytest.approx(2.0)


class TestImplicitCredit:

    def test_credit_applied_to_low_memory_item(self, make_state, now):
        result = apply_implicit_credit(make_state(1, 0.0), 0.5, now=now)
        assert result.repetition_level == pytest.approx(1.5)
        assert result.memory == pytest.approx(0.15)
        assert result.last_event_time == now

    def test_high_memory_discounts_credit(self, make_state, now):
        low = apply_implicit_credit(make_state(1, 0.0), 0.5, now=now)
        high = apply_implicit_credit(make_state(1, 1.0), 0.5, now=now)
        assert high.repetition_level - 1 == pytest.approx(0.5 * 0.3)
        assert high.repetition_level < low.repetition_level

    def test_credit_below_threshold_is_noop(self, make_state, now):
        state = make_state(1, 1.0)
        assert apply_implicit_credit(state, 0.02, now=now) is state

    def test_slow_learner_gets_no_credit_by_default(self, make_state, now):
        state = make_state(1, 0.0, learning_speed=0.8)
        assert apply_implicit_credit(state, 0.5, now=now) is state

        config = EngineConfig(implicit_credit_for_slow_learners=True)
        assert apply_implicit_credit(state, 0.5, config, now).repetition_level > 1

    def test_decayed_memory_discounts_but_stored_memory_grows(self, make_state, now):
        # memory 1.0 decayed over one interval (6 days at level 2) is 0.5
        result = apply_implicit_credit(make_state(2, 1.0, days_ago=6), 1.0, now=now)
        assert result.repetition_level == pytest.approx(2 + 1.0 * (1 - 0.5 * 0.7))
        assert result.memory == pytest.approx(1.0)

    def test_memory_gain_builds_on_stored_memory(self, make_state, now):
        result = apply_implicit_credit(make_state(2, 0.4, days_ago=6), 1.0, now=now)
        effective = 1.0 - 0.2 * 0.7
        assert result.memory == pytest.approx(0.4 + effective * 0.3)


class TestImplicitPenalty:

    def test_penalty_lowers_level_and_memory(self, make_state, now):
        state = make_state(2, 0.5, days_ago=2)
        result = apply_implicit_penalty(state, 1.0)
        assert result.repetition_level == pytest.approx(1.5)
        assert result.memory == pytest.approx(0.3)
        assert result.last_event_time == now - timedelta(days=2)

    def test_penalty_below_threshold_is_noop(self, make_state):
        state = make_state(2, 0.5)
        assert apply_implicit_penalty(state, 0.005) is state

    def test_penalty_floors_at_zero(self, make_state):
        result = apply_implicit_penalty(make_state(0.1, 0.05), 1.0)
        assert result.repetition_level == 0
        assert result.memory == 0
