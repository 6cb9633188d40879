from datetime import timedelta

import pytest

from studycore.fire.migration import (
    estimate_sm2_from_state,
    migrate_all,
    migrate_mastery_record,
    migrate_sm2_to_state,
    migrate_strength_to_sm2,
    migrate_strength_to_state,
    needs_migration,
    strength_to_repetition_level,
)
from studycore.fire.schemas import SM2Data


class TestSM2ToState:

    def test_not_yet_due(self, now):
        sm2 = SM2Data(ease_factor=2.5, interval=6, repetitions=2, next_review_date=now + timedelta(days=3))
        state = migrate_sm2_to_state(sm2, now)

        assert state.repetition_level == 2.0
        assert state.memory == pytest.approx(0.75)
        assert state.learning_speed == pytest.approx(1.0)
        assert state.last_event_time == now - timedelta(days=3)

    def test_overdue_halves_per_interval(self, now):
        sm2 = SM2Data(interval=6, repetitions=3, next_review_date=now - timedelta(days=6))
        assert migrate_sm2_to_state(sm2, now).memory == pytest.approx(0.25)

    def test_ease_factor_maps_to_speed(self, now):
        easy = SM2Data(ease_factor=3.0, interval=1, next_review_date=now)
        hard = SM2Data(ease_factor=1.3, interval=1, next_review_date=now)

        assert migrate_sm2_to_state(easy, now).learning_speed == pytest.approx(1.2)
        assert migrate_sm2_to_state(hard, now).learning_speed == pytest.approx(0.52)


@pytest.mark.parametrize("strength, level", [
    (-5, 0.0),
    (0, 0.0),
    (20, 0.5),
    (40, 1.0),
    (60, 1.5),
    (80, 2.0),
    (90, 3.0),
    (100, 4.0),
    (150, 4.0),
])
def test_strength_to_repetition_level(strength, level):
    assert strength_to_repetition_level(strength) == pytest.approx(level)


class TestStrengthToState:

    def test_just_practiced_is_fully_remembered(self, now):
        state = migrate_strength_to_state(60, "2024-03-01T12:00:00Z", now=now)

        assert state.repetition_level == pytest.approx(1.5)
        assert state.memory == pytest.approx(1.0)
        assert state.last_event_time == now

    def test_overdue_memory_decays(self, now):
        # Level 1.5 has a one day interval; two days is one interval overdue
        state = migrate_strength_to_state(60, "2024-02-28T12:00:00Z", now=now)
        assert state.memory == pytest.approx(0.25)

    def test_fractional_high_level_uses_unrounded_interval(self, now):
        # strength 95 -> level 3.5 -> 2 ** 2.5 days, about 5.66
        state = migrate_strength_to_state(95, "2024-02-28T12:00:00Z", now=now)

        assert state.repetition_level == pytest.approx(3.5)
        assert state.memory == pytest.approx(0.5 + (1 - 2 / 2 ** 2.5) * 0.5)

    def test_invalid_date_falls_back_to_now(self, now):
        state = migrate_strength_to_state(30, "not a date", now=now)

        assert state.last_event_time == now
        assert state.memory == pytest.approx(1.0)

    def test_accuracy_sets_speed(self, now):
        state = migrate_strength_to_state(50, None, times_correct=8, times_incorrect=2, now=now)
        assert state.learning_speed == pytest.approx(1.18)

    def test_few_attempts_keep_normal_speed(self, now):
        state = migrate_strength_to_state(50, None, times_correct=3, times_incorrect=0, now=now)
        assert state.learning_speed == 1.0


def test_mastery_record_prefers_sm2(now):
    record = {
        "strength": 10,
        "lastPracticed": "2024-01-01T00:00:00Z",
        "sm2": {"easeFactor": 2.5, "interval": 6, "repetitions": 2, "nextReviewDate": "2024-03-04T12:00:00Z"},
    }
    state = migrate_mastery_record(record, now)

    assert state.repetition_level == 2.0
    assert state.memory == pytest.approx(0.75)


def test_mastery_record_without_sm2_uses_strength(now):
    state = migrate_mastery_record({"strength": 80, "lastPracticed": "2024-03-01T12:00:00Z"}, now)
    assert state.repetition_level == pytest.approx(2.0)


def test_migrate_all_keeps_item_ids(now):
    states = migrate_all({
        "w1": {"strength": 20, "lastPracticed": "2024-03-01T12:00:00Z"},
        "w2": {"strength": 100, "lastPracticed": "2024-02-01T12:00:00Z"},
    }, now)

    assert set(states) == {"w1", "w2"}
    assert states["w2"].repetition_level == pytest.approx(4.0)


class TestStrengthToSM2:

    def test_new_items_are_due_now(self, now):
        sm2 = migrate_strength_to_sm2(10, "2024-02-01T12:00:00Z", now)

        assert (sm2.ease_factor, sm2.interval, sm2.repetitions) == (2.5, 0, 0)
        assert sm2.next_review_date == now

    @pytest.mark.parametrize("strength, expected", [
        (20, (2.3, 1, 1)),
        (50, (2.5, 3, 2)),
        (79, (2.6, 7, 3)),
        (80, (2.7, 14, 4)),
    ])
    def test_buckets(self, now, strength, expected):
        sm2 = migrate_strength_to_sm2(strength, "2024-02-20T12:00:00Z", now)

        assert (sm2.ease_factor, sm2.interval, sm2.repetitions) == expected
        assert sm2.next_review_date == now - timedelta(days=10) + timedelta(days=expected[1])


def test_estimate_sm2_from_state(make_state, now):
    sm2 = estimate_sm2_from_state(make_state(3, 0.75), now)

    assert sm2.ease_factor == pytest.approx(2.5)
    assert sm2.interval == 4
    assert sm2.repetitions == 3
    assert sm2.next_review_date == now + timedelta(days=2)


def test_estimate_sm2_clips_ease_factor(make_state, now):
    assert estimate_sm2_from_state(make_state(1, 0.5, learning_speed=2.0), now).ease_factor == 3.0


@pytest.mark.parametrize("record, expected", [
    ({"strength": 50, "lastPracticed": "2024-01-01"}, True),
    ({"strength": 50, "last_practiced": "2024-01-01"}, True),
    ({"strength": 50, "lastPracticed": "2024-01-01", "fire": {"memory": 0.5}}, False),
    ({"strength": True, "lastPracticed": "2024-01-01"}, False),
    ({"strength": 50, "lastPracticed": None}, False),
    ({"strength": "50", "lastPracticed": "2024-01-01"}, False),
    ("strength", False),
    (None, False),
])
def test_needs_migration(record, expected):
    assert needs_migration(record) is expected
