"""
Memory State - FIRe Item State, Intervals and Decay

Defines the per-item memory state and the quantities derived from it.

Key concepts:
- Repetition level: accumulated successful repetitions, may be fractional
  because encompassing items pass down implicit credit
- Memory: retrievability estimate (0-1) that halves every expected interval
- Interval: expected days between reviews, grows with repetition level
- Learning speed: per learner/item multiplier on how fast repetitions accrue
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional
import math

from studycore.fire.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from studycore.fire.constants import (
    CHALLENGE_MIN_MEMORY,
    CHALLENGE_MIN_REPETITION,
    DEFAULT_LEARNING_SPEED,
    EXPONENTIAL_BASE,
    FIRST_REP_INTERVAL,
    HARD_PASS_QUALITY,
    MAX_INTERVAL_DAYS,
    MEMORY_HALFLIFE,
    SECOND_REP_INTERVAL,
    SECONDS_PER_DAY,
)


@dataclass(frozen=True)
class ItemMemoryState:
    """
    Memory state for a single learnable item.

    Instances are immutable; engine functions return new states.
    """
    repetition_level: float  # >= 0, drives interval length
    memory: float  # 0-1, decays with time since last event
    last_event_time: datetime  # Last explicit or implicit update (UTC)
    learning_speed: float = DEFAULT_LEARNING_SPEED

    @classmethod
    def from_record(cls, record: Mapping[str, Any], now: Optional[datetime] = None) -> ItemMemoryState:
        """
        Build a state from a persisted record, degrading bad fields to defaults.

        Accepts snake_case or camelCase keys. The timestamp may be a datetime,
        an ISO-8601 string or epoch milliseconds.
        """
        now = now or _utc_now()

        state = cls(
            repetition_level=_as_float(record_field(record, "repetition_level"), 0.0),
            memory=_as_float(record_field(record, "memory"), 0.0),
            last_event_time=parse_event_time(record_field(record, "last_event_time"), now),
            learning_speed=_as_float(record_field(record, "learning_speed"), DEFAULT_LEARNING_SPEED),
        )
        return clamp_state(state)

    def to_record(self) -> dict:
        """Serialize to a plain dict (timestamp as ISO-8601)."""
        return {
            "repetition_level": self.repetition_level,
            "memory": self.memory,
            "last_event_time": self.last_event_time.isoformat(),
            "learning_speed": self.learning_speed,
        }


# Accepted keys per field, snake_case first
RECORD_KEYS: dict[str, tuple[str, ...]] = {
    "repetition_level": ("repetition_level", "repetitionLevel", "repNum"),
    "memory": ("memory",),
    "last_event_time": ("last_event_time", "lastEventTime", "lastRepDate"),
    "learning_speed": ("learning_speed", "learningSpeed"),
}


def record_field(record: Mapping[str, Any], name: str) -> Any:
    """Value of a state field in a persisted record under any accepted key."""
    for key in RECORD_KEYS[name]:
        if key in record:
            return record[key]
    return None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_float(value: Any, default: float) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def parse_event_time(value: Any, default: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a datetime, ISO-8601 string or epoch milliseconds as an aware UTC
    datetime. Unparsable values give default.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return default
    elif isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        try:
            parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return default
    else:
        return default

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up."""
    return int(math.floor(value + 0.5))


def clamp_state(
    state: ItemMemoryState,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG
) -> ItemMemoryState:
    """
    Enforce state invariants: repetition level >= 0, memory in [0, 1],
    learning speed in [min_learning_speed, max_learning_speed].
    """
    repetition_level = max(0.0, state.repetition_level)
    memory = max(0.0, min(1.0, state.memory))
    learning_speed = max(config.min_learning_speed, min(config.max_learning_speed, state.learning_speed))

    if (
        repetition_level == state.repetition_level
        and memory == state.memory
        and learning_speed == state.learning_speed
    ):
        return state

    return replace(
        state,
        repetition_level=repetition_level,
        memory=memory,
        learning_speed=learning_speed,
    )


def create_item_state(now: Optional[datetime] = None) -> ItemMemoryState:
    """
    Initialize state for an item on first encounter.

    Returns:
        State with zero repetition level and memory, normal learning speed
    """
    return ItemMemoryState(
        repetition_level=0.0,
        memory=0.0,
        last_event_time=now or _utc_now(),
        learning_speed=DEFAULT_LEARNING_SPEED,
    )


def get_interval(repetition_level: float) -> int:
    """
    Expected interval (in days) until the next review.

    Schedule:
    - level < 2: 1 day (first exposure)
    - level < 3: 6 days (second exposure)
    - level >= 3: 2^(level - 1) days, capped at 365

    Args:
        repetition_level: Accumulated successful repetitions

    Returns:
        Interval in whole days
    """
    if repetition_level < 2:
        return FIRST_REP_INTERVAL
    if repetition_level < 3:
        return SECOND_REP_INTERVAL

    exponent = repetition_level - 1
    # Anything this large is capped anyway; avoids float overflow on corrupt input
    if exponent >= math.log2(MAX_INTERVAL_DAYS) + 1:
        return MAX_INTERVAL_DAYS
    return min(MAX_INTERVAL_DAYS, round_half_up(EXPONENTIAL_BASE ** exponent))


def get_days_since_event(state: ItemMemoryState, now: Optional[datetime] = None) -> float:
    """
    Days since the last explicit or implicit update.

    Returns 0 for timestamps in the future (clock skew).
    """
    now = now or _utc_now()
    delta = now - state.last_event_time
    return max(0.0, delta.total_seconds() / SECONDS_PER_DAY)


def get_decayed_memory(state: ItemMemoryState, now: Optional[datetime] = None) -> float:
    """
    Current memory after time-based decay.

    Formula: memory * 0.5^(days_since_event / max(1, interval))

    The half-life equals the expected interval, so items with a higher
    repetition level decay more slowly.

    Args:
        state: Item memory state
        now: Evaluation time (defaults to now)

    Returns:
        Decayed memory between 0 and 1
    """
    days_since = get_days_since_event(state, now)
    interval = max(1, get_interval(state.repetition_level))
    return state.memory * MEMORY_HALFLIFE ** (days_since / interval)


def is_due(
    state: ItemMemoryState,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    now: Optional[datetime] = None
) -> bool:
    """
    Check whether an item needs review.

    Due when the decayed memory falls below memory_due_threshold OR the
    elapsed time reaches the expected interval.
    """
    now = now or _utc_now()
    days_since = get_days_since_event(state, now)
    interval = get_interval(state.repetition_level)
    return get_decayed_memory(state, now) < config.memory_due_threshold or days_since >= interval


def get_days_overdue(state: ItemMemoryState, now: Optional[datetime] = None) -> float:
    """Days past the expected interval (0 if not overdue)."""
    return max(0.0, get_days_since_event(state, now) - get_interval(state.repetition_level))


def get_days_until_due(state: ItemMemoryState, now: Optional[datetime] = None) -> float:
    """Days until the expected interval elapses (negative if overdue)."""
    return get_interval(state.repetition_level) - get_days_since_event(state, now)


def estimate_retention(state: ItemMemoryState, now: Optional[datetime] = None) -> float:
    """Estimated probability of recall right now."""
    return get_decayed_memory(state, now)


def is_challenge_candidate(state: ItemMemoryState, now: Optional[datetime] = None) -> bool:
    """
    Well-established items (high repetition level, high memory) are good
    candidates for higher-stakes challenge reviews.
    """
    return (
        state.repetition_level >= CHALLENGE_MIN_REPETITION
        and get_decayed_memory(state, now) >= CHALLENGE_MIN_MEMORY
    )


def simple_to_quality(correct: bool, was_hard: bool = False) -> float:
    """
    Convert a plain correct/incorrect outcome to a quality score (0-1).
    """
    if not correct:
        return 0.0
    return HARD_PASS_QUALITY if was_hard else 1.0
