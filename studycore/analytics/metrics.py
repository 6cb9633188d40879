"""
Metric computations for progress dashboards.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Mapping, Optional

import pandas as pd

from studycore.analytics.constants import (
    DECAYING_MEMORY,
    DECAYING_MIN_REPETITION,
    FAMILIAR_REPETITION,
    MASTERED_REPETITION,
    MASTERY_LEVELS,
)
from studycore.analytics.types import MasteryLevel, ReviewStats
from studycore.fire.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from studycore.fire.memory_state import (
    ItemMemoryState,
    get_days_overdue,
    get_decayed_memory,
    get_interval,
    is_due,
)


STATE_COLUMNS = [
    "item_id",
    "repetition_level",
    "memory",
    "decayed_memory",
    "learning_speed",
    "last_event_time",
    "interval_days",
    "days_overdue",
    "is_due",
    "mastery_level",
]


def _utc_timestamp(value: datetime) -> pd.Timestamp:
    ts = pd.Timestamp(value)
    return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")


def mastery_level(state: Optional[ItemMemoryState], now: Optional[datetime] = None) -> MasteryLevel:
    """
    Coarse mastery label for display.

    new: never passed; decaying: learned once but memory has faded;
    otherwise by repetition level (mastered >= 3, familiar >= 1.5).
    """
    if state is None or state.repetition_level == 0:
        return "new"

    if get_decayed_memory(state, now) < DECAYING_MEMORY and state.repetition_level >= DECAYING_MIN_REPETITION:
        return "decaying"
    if state.repetition_level >= MASTERED_REPETITION:
        return "mastered"
    if state.repetition_level >= FAMILIAR_REPETITION:
        return "familiar"
    return "learning"


def states_frame(
    states: Mapping[str, ItemMemoryState],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    now: Optional[datetime] = None
) -> pd.DataFrame:
    """
    One row per item with its derived scheduling values.
    """
    now = now or datetime.now(timezone.utc)
    if not states:
        return pd.DataFrame(columns=STATE_COLUMNS)

    rows = [
        {
            "item_id": item_id,
            "repetition_level": state.repetition_level,
            "memory": state.memory,
            "decayed_memory": get_decayed_memory(state, now),
            "learning_speed": state.learning_speed,
            "last_event_time": state.last_event_time,
            "interval_days": get_interval(state.repetition_level),
            "days_overdue": get_days_overdue(state, now),
            "is_due": is_due(state, config, now),
            "mastery_level": mastery_level(state, now),
        }
        for item_id, state in states.items()
    ]
    df = pd.DataFrame(rows, columns=STATE_COLUMNS)
    df["last_event_time"] = pd.to_datetime(df["last_event_time"], utc=True)
    return df


def compute_review_stats(items_df: pd.DataFrame, now: Optional[datetime] = None) -> ReviewStats:
    """
    Due, overdue and touched-today counts from a states frame.

    Reviewed today compares last_event_time against the current UTC day, so
    items that received implicit credit today count as well.
    """
    if items_df.empty:
        return ReviewStats(due_count=0, overdue_count=0, reviewed_today=0, total_items=0)

    today = _utc_timestamp(now or datetime.now(timezone.utc)).floor("D")
    due = items_df["is_due"].astype(bool)

    return ReviewStats(
        due_count=int(due.sum()),
        overdue_count=int((due & (items_df["days_overdue"] > 0)).sum()),
        reviewed_today=int((items_df["last_event_time"].dt.floor("D") == today).sum()),
        total_items=int(len(items_df)),
    )


def compute_mastery_distribution(items_df: pd.DataFrame) -> pd.Series:
    """
    Item count per mastery level, in display order (missing levels are 0).
    """
    if items_df.empty:
        return pd.Series(0, index=MASTERY_LEVELS, dtype="int64")
    counts = items_df["mastery_level"].value_counts()
    return counts.reindex(MASTERY_LEVELS, fill_value=0).astype("int64")


def compute_average_retention(items_df: pd.DataFrame) -> float:
    """Mean decayed memory over all items (0 for an empty frame)."""
    if items_df.empty:
        return 0.0
    return float(items_df["decayed_memory"].mean())
