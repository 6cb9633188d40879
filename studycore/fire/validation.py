"""
State validation for migration and test tooling.

Engine functions never call this; they clamp silently instead. Use it to
audit persisted records or the output of a migration.
"""

from __future__ import annotations
import math
from datetime import datetime
from typing import Any, Mapping, Union

from studycore.fire.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from studycore.fire.memory_state import (
    RECORD_KEYS,
    ItemMemoryState,
    parse_event_time,
    record_field,
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def validate_state(
    state: Union[ItemMemoryState, Mapping[str, Any]],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG
) -> list[str]:
    """
    List the invariants a state (or raw record) violates.

    Args:
        state: ItemMemoryState or a persisted record (snake_case or camelCase
            keys, as accepted by ItemMemoryState.from_record)
        config: Engine configuration (learning speed bounds)

    Returns:
        Error messages, empty if the state is valid
    """
    if isinstance(state, ItemMemoryState):
        record = {
            "repetition_level": state.repetition_level,
            "memory": state.memory,
            "last_event_time": state.last_event_time,
            "learning_speed": state.learning_speed,
        }
    else:
        record = {name: record_field(state, name) for name in RECORD_KEYS}

    errors = []

    repetition_level = record.get("repetition_level")
    if not _is_number(repetition_level) or repetition_level < 0:
        errors.append("repetition_level must be a non-negative number")

    memory = record.get("memory")
    if not _is_number(memory) or memory < 0 or memory > 1:
        errors.append("memory must be a number between 0 and 1")

    last_event_time = record.get("last_event_time")
    if isinstance(last_event_time, datetime):
        if last_event_time.tzinfo is None:
            errors.append("last_event_time must be timezone-aware")
    elif parse_event_time(last_event_time) is None:
        errors.append("last_event_time must be a datetime, an ISO-8601 string or a positive epoch-ms timestamp")

    learning_speed = record.get("learning_speed")
    if (
        not _is_number(learning_speed)
        or learning_speed < config.min_learning_speed
        or learning_speed > config.max_learning_speed
    ):
        errors.append(
            f"learning_speed must be a number between "
            f"{config.min_learning_speed} and {config.max_learning_speed}"
        )

    return errors
