"""
Migration - Legacy Strength / SM-2 Records to FIRe States

One-way adapters used when upgrading stored progress. Nothing on the review
path calls them.

Mapping overview:
- SM-2 repetitions -> repetition level
- SM-2 ease factor -> learning speed (2.5 -> 1.0)
- Time until/after the SM-2 due date -> memory (0.5 exactly at the due date)
- Legacy strength 0-100 -> repetition level 0-4, memory from days since practice
"""

from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional, Union

from studycore.fire.constants import (
    EXPONENTIAL_BASE,
    MAX_LEARNING_SPEED,
    MIN_LEARNING_SPEED,
    SECONDS_PER_DAY,
)
from studycore.fire.memory_state import ItemMemoryState, clamp_state, get_interval
from studycore.fire.schemas import LegacyMastery, SM2Data


logger = logging.getLogger(__name__)


# ---- Mapping Parameters ----

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 3.0

MIN_ATTEMPTS_FOR_SPEED = 5     # Accuracy-based speed needs this many answers
ACCURACY_SPEED_BASE = 0.7      # 0% accuracy
ACCURACY_SPEED_RANGE = 0.6     # 100% accuracy -> 1.3

# (upper strength bound, ease factor, interval days, repetitions)
STRENGTH_SM2_BUCKETS = [
    (20, 2.5, 0, 0),    # new
    (40, 2.3, 1, 1),    # learning
    (60, 2.5, 3, 2),    # familiar
    (80, 2.6, 7, 3),    # comfortable
]
MASTERED_SM2_BUCKET = (2.7, 14, 4)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _clip(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _parse_date(value: Optional[str], default: datetime) -> datetime:
    if not value:
        return default
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def migrate_sm2_to_state(sm2: SM2Data, now: Optional[datetime] = None) -> ItemMemoryState:
    """
    Convert SM-2 data to an equivalent FIRe state.

    Memory is 0.5 at the due date, rising linearly to 1.0 for a review that
    just happened, and halving per interval once overdue.

    Args:
        sm2: SM-2 record
        now: Migration time

    Returns:
        FIRe state
    """
    now = now or _utc_now()
    next_review = _as_aware(sm2.next_review_date)
    interval = max(1.0, sm2.interval)
    days_until_review = (next_review - now).total_seconds() / SECONDS_PER_DAY

    if days_until_review >= 0:
        memory = 0.5 + (days_until_review / interval) * 0.5
    else:
        memory = 0.5 * 0.5 ** (-days_until_review / interval)

    return clamp_state(ItemMemoryState(
        repetition_level=float(max(0, sm2.repetitions)),
        memory=_clip(memory, 0.0, 1.0),
        last_event_time=next_review - timedelta(days=sm2.interval),
        learning_speed=_clip(sm2.ease_factor / DEFAULT_EASE_FACTOR, MIN_LEARNING_SPEED, MAX_LEARNING_SPEED),
    ))


def _unrounded_interval(repetition_level: float) -> float:
    # Same schedule as get_interval without rounding or the 365-day cap
    if repetition_level < 3:
        return float(get_interval(repetition_level))
    return EXPONENTIAL_BASE ** (repetition_level - 1)


def strength_to_repetition_level(strength: float) -> float:
    """
    Map a 0-100 strength onto a repetition level.

    0-39 -> 0-1, 40-79 -> 1-2, 80-100 -> 2-4
    """
    strength = _clip(strength, 0.0, 100.0)
    if strength < 40:
        return strength / 40
    if strength < 80:
        return 1 + (strength - 40) / 40
    return 2 + (strength - 80) / 20 * 2


def migrate_strength_to_state(
    strength: float,
    last_practiced: Optional[str],
    times_correct: int = 0,
    times_incorrect: int = 0,
    now: Optional[datetime] = None
) -> ItemMemoryState:
    """
    Convert a legacy strength record to a FIRe state.

    Args:
        strength: Legacy strength 0-100
        last_practiced: ISO date of last practice (invalid or missing -> now)
        times_correct: Correct answers so far
        times_incorrect: Incorrect answers so far
        now: Migration time

    Returns:
        FIRe state
    """
    now = now or _utc_now()
    last_practiced_at = _parse_date(last_practiced, now)
    days_since = max(0.0, (now - last_practiced_at).total_seconds() / SECONDS_PER_DAY)

    repetition_level = strength_to_repetition_level(strength)
    expected_interval = _unrounded_interval(repetition_level)

    if days_since < expected_interval:
        memory = 0.5 + (1 - days_since / expected_interval) * 0.5
    else:
        overdue_ratio = (days_since - expected_interval) / expected_interval
        memory = 0.5 * 0.5 ** overdue_ratio

    learning_speed = 1.0
    attempts = times_correct + times_incorrect
    if attempts >= MIN_ATTEMPTS_FOR_SPEED:
        accuracy = times_correct / attempts
        learning_speed = ACCURACY_SPEED_BASE + accuracy * ACCURACY_SPEED_RANGE

    return clamp_state(ItemMemoryState(
        repetition_level=repetition_level,
        memory=_clip(memory, 0.0, 1.0),
        last_event_time=last_practiced_at,
        learning_speed=learning_speed,
    ))


def migrate_mastery_record(
    record: Union[LegacyMastery, Mapping[str, Any]],
    now: Optional[datetime] = None
) -> ItemMemoryState:
    """
    Convert a legacy mastery record, preferring its SM-2 data when present.
    """
    if not isinstance(record, LegacyMastery):
        record = LegacyMastery.model_validate(record)

    if record.sm2 is not None:
        return migrate_sm2_to_state(record.sm2, now)

    return migrate_strength_to_state(
        record.strength,
        record.last_practiced,
        record.times_correct,
        record.times_incorrect,
        now,
    )


def migrate_all(
    records: Mapping[str, Union[LegacyMastery, Mapping[str, Any]]],
    now: Optional[datetime] = None
) -> dict[str, ItemMemoryState]:
    """Migrate every record of a learner; item ids are kept."""
    now = now or _utc_now()
    states = {item_id: migrate_mastery_record(record, now) for item_id, record in records.items()}
    logger.info("Migrated %d legacy mastery records", len(states))
    return states


def migrate_strength_to_sm2(
    strength: float,
    last_practiced: Optional[str],
    now: Optional[datetime] = None
) -> SM2Data:
    """
    Convert a legacy strength to SM-2 data using fixed buckets.

    Strength below 20 is due immediately; higher buckets are due one interval
    after the last practice.
    """
    now = now or _utc_now()
    base_time = _parse_date(last_practiced, now)

    for upper_bound, ease_factor, interval, repetitions in STRENGTH_SM2_BUCKETS:
        if strength < upper_bound:
            break
    else:
        ease_factor, interval, repetitions = MASTERED_SM2_BUCKET

    next_review = now if interval == 0 else base_time + timedelta(days=interval)
    return SM2Data(
        ease_factor=ease_factor,
        interval=interval,
        repetitions=repetitions,
        next_review_date=next_review,
    )


def estimate_sm2_from_state(state: ItemMemoryState, now: Optional[datetime] = None) -> SM2Data:
    """
    Approximate SM-2 data for a FIRe state (debugging and comparison only).
    """
    now = now or _utc_now()
    interval = get_interval(state.repetition_level)
    days_until_due = (state.memory - 0.5) * 2 * interval

    return SM2Data(
        ease_factor=_clip(state.learning_speed * DEFAULT_EASE_FACTOR, MIN_EASE_FACTOR, MAX_EASE_FACTOR),
        interval=max(1, interval),
        repetitions=int(state.repetition_level),
        next_review_date=now + timedelta(days=days_until_due),
    )


def needs_migration(record: Any) -> bool:
    """
    True for a legacy record (numeric strength, string last_practiced) that
    has no FIRe state yet.
    """
    if not isinstance(record, Mapping):
        return False

    strength = record.get("strength")
    last_practiced = record.get("lastPracticed", record.get("last_practiced"))
    return (
        isinstance(strength, (int, float))
        and not isinstance(strength, bool)
        and isinstance(last_practiced, str)
        and record.get("fire") is None
    )
