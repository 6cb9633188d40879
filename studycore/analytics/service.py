"""
Service layer to assemble a learner's progress dashboard.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional

from studycore.analytics.calibration import calculate_calibration_stats, get_calibration_trend
from studycore.analytics.metrics import (
    compute_average_retention,
    compute_mastery_distribution,
    compute_review_stats,
    states_frame,
)
from studycore.analytics.types import ConfidenceRecord, ProgressDashboard
from studycore.fire.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from studycore.fire.graph import DependencyGraph, find_high_reach_items
from studycore.fire.memory_state import ItemMemoryState


def build_progress_dashboard(
    states: Mapping[str, ItemMemoryState],
    graph: Optional[DependencyGraph] = None,
    confidence_records: Optional[Iterable[ConfidenceRecord]] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    now: Optional[datetime] = None,
    top_n: int = 10
) -> ProgressDashboard:
    """
    Build all KPI values and series needed by a progress page.
    """
    now = now or datetime.now(timezone.utc)
    items_df = states_frame(states, config, now)

    high_reach = find_high_reach_items(states.keys(), graph, top_n) if graph is not None else []

    calibration = None
    trend = None
    if confidence_records is not None:
        records = list(confidence_records)
        calibration = calculate_calibration_stats(records)
        trend = get_calibration_trend(records)

    return ProgressDashboard(
        items=items_df,
        review_stats=compute_review_stats(items_df, now),
        mastery_distribution=compute_mastery_distribution(items_df),
        average_retention=compute_average_retention(items_df),
        high_reach_items=high_reach,
        calibration=calibration,
        calibration_trend=trend,
    )
