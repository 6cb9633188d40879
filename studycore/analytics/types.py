"""
Types for progress analytics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

import pandas as pd


MasteryLevel = Literal["new", "learning", "familiar", "mastered", "decaying"]
CalibrationTendency = Literal["well-calibrated", "overconfident", "underconfident", "insufficient-data"]
CalibrationTrend = Literal["improving", "stable", "declining", "insufficient-data"]


@dataclass(frozen=True)
class ConfidenceRecord:
    """
    One confidence rating given before answering.
    """
    rating: int  # 1 unsure, 2 somewhat sure, 3 very sure
    was_correct: bool
    timestamp: datetime
    item_id: Optional[str] = None


@dataclass(frozen=True)
class LevelStats:
    level: int
    count: int
    correct_count: int
    expected_accuracy: float
    actual_accuracy: float
    difference: float  # actual - expected; negative means overconfident


@dataclass(frozen=True)
class CalibrationStats:
    """
    How well confidence ratings predict correctness.
    """
    total_ratings: int
    calibration_score: float  # 0-1, 1 = perfectly calibrated
    tendency: CalibrationTendency
    by_level: list[LevelStats] = field(default_factory=list)
    feedback_message: str = ""


@dataclass(frozen=True)
class ReviewStats:
    due_count: int
    overdue_count: int
    reviewed_today: int
    total_items: int


@dataclass(frozen=True)
class ProgressDashboard:
    """
    Precomputed progress metrics for one learner.
    """
    items: pd.DataFrame
    review_stats: ReviewStats
    mastery_distribution: pd.Series
    average_retention: float
    high_reach_items: list[str]
    calibration: Optional[CalibrationStats]
    calibration_trend: Optional[CalibrationTrend]
