"""
Confidence calibration (metacognition) metrics.

A well-calibrated learner who says "unsure" is right about a third of the
time, "somewhat sure" about two thirds, and "very sure" about 90%.
"""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from studycore.analytics.constants import (
    EXPECTED_ACCURACY,
    MIN_LEVEL_COUNT_FOR_FEEDBACK,
    MIN_RATINGS_FOR_CALIBRATION,
    TENDENCY_THRESHOLD,
    TREND_THRESHOLD,
    TREND_WINDOW,
    WELL_CALIBRATED_SCORE,
)
from studycore.analytics.types import (
    CalibrationStats,
    CalibrationTendency,
    CalibrationTrend,
    ConfidenceRecord,
    LevelStats,
)


RATING_LEVELS = [1, 2, 3]


def confidence_frame(records: Iterable[ConfidenceRecord]) -> pd.DataFrame:
    """
    Records as a dataframe, most recent first.
    """
    df = pd.DataFrame(
        [
            {"rating": r.rating, "was_correct": bool(r.was_correct), "timestamp": r.timestamp}
            for r in records
        ],
        columns=["rating", "was_correct", "timestamp"],
    )
    if df.empty:
        return df
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df = df[df["rating"].isin(RATING_LEVELS)]
    return df.sort_values("timestamp", ascending=False, kind="stable").reset_index(drop=True)


def _level_stats(df: pd.DataFrame) -> list[LevelStats]:
    grouped = df.groupby("rating")["was_correct"].agg(["sum", "count"]).reindex(RATING_LEVELS, fill_value=0)

    stats = []
    for level, row in grouped.iterrows():
        count = int(row["count"])
        correct = int(row["sum"])
        actual = correct / count if count > 0 else 0.0
        expected = EXPECTED_ACCURACY[int(level)]
        stats.append(LevelStats(
            level=int(level),
            count=count,
            correct_count=correct,
            expected_accuracy=expected,
            actual_accuracy=actual,
            difference=actual - expected,
        ))
    return stats


def _determine_tendency(by_level: list[LevelStats]) -> CalibrationTendency:
    total = sum(s.count for s in by_level)
    if total == 0:
        return "insufficient-data"

    avg_difference = sum(s.difference * s.count for s in by_level) / total
    # Accuracy below expectation means confidence runs ahead of knowledge
    if avg_difference < -TENDENCY_THRESHOLD:
        return "overconfident"
    if avg_difference > TENDENCY_THRESHOLD:
        return "underconfident"
    return "well-calibrated"


def _feedback_message(tendency: CalibrationTendency, by_level: list[LevelStats], score: float) -> str:
    eligible = [s for s in by_level if s.count >= MIN_LEVEL_COUNT_FOR_FEEDBACK]

    if tendency == "overconfident":
        worst = min((s for s in eligible if s.difference < 0), key=lambda s: s.difference, default=None)
        if worst is not None and worst.level == 3:
            return "When you feel 'very sure', pause and double-check. You might be overlooking something."
        return "Your confidence tends to exceed your accuracy. Take a moment to verify before answering."

    if tendency == "underconfident":
        worst = max((s for s in eligible if s.difference > 0), key=lambda s: s.difference, default=None)
        if worst is not None and worst.level == 1:
            return "You know more than you think! Trust your instincts more when answering."
        return "You're more accurate than you believe. Have more confidence in your knowledge!"

    if tendency == "well-calibrated":
        if score >= WELL_CALIBRATED_SCORE:
            return "Excellent metacognition! Your confidence accurately predicts your performance."
        return "Good calibration. Your confidence levels reasonably match your actual accuracy."

    return "Keep practicing with confidence ratings to unlock your calibration insights."


def _stats_from_frame(df: pd.DataFrame) -> CalibrationStats:
    total = int(len(df))
    if total < MIN_RATINGS_FOR_CALIBRATION:
        return CalibrationStats(
            total_ratings=total,
            calibration_score=0.0,
            tendency="insufficient-data",
            by_level=[],
            feedback_message=(
                f"Need {MIN_RATINGS_FOR_CALIBRATION - total} more ratings for calibration analysis."
            ),
        )

    by_level = _level_stats(df)
    weighted_error = sum(abs(s.difference) * s.count for s in by_level)
    weight = sum(s.count for s in by_level)
    mean_error = weighted_error / weight if weight else 0.0
    score = max(0.0, min(1.0, 1.0 - mean_error))
    tendency = _determine_tendency(by_level)

    return CalibrationStats(
        total_ratings=total,
        calibration_score=score,
        tendency=tendency,
        by_level=by_level,
        feedback_message=_feedback_message(tendency, by_level, score),
    )


def calculate_calibration_stats(records: Iterable[ConfidenceRecord]) -> CalibrationStats:
    """
    Calibration score, tendency and per-level breakdown.

    The score is 1 minus the count-weighted mean absolute gap between actual
    and expected accuracy. Fewer than MIN_RATINGS_FOR_CALIBRATION ratings
    yield an insufficient-data result.
    """
    return _stats_from_frame(confidence_frame(records))


def get_calibration_trend(records: Iterable[ConfidenceRecord]) -> CalibrationTrend:
    """
    Compare the latest TREND_WINDOW ratings against the window before them.
    """
    df = confidence_frame(records)
    if len(df) < 2 * TREND_WINDOW:
        return "insufficient-data"

    recent = _stats_from_frame(df.iloc[:TREND_WINDOW])
    previous = _stats_from_frame(df.iloc[TREND_WINDOW:2 * TREND_WINDOW])
    if "insufficient-data" in (recent.tendency, previous.tendency):
        return "insufficient-data"

    improvement = recent.calibration_score - previous.calibration_score
    if improvement > TREND_THRESHOLD:
        return "improving"
    if improvement < -TREND_THRESHOLD:
        return "declining"
    return "stable"
