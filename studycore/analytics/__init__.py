"""
Analytics package exports.
"""

from studycore.analytics.calibration import calculate_calibration_stats, get_calibration_trend
from studycore.analytics.constants import MASTERY_LABELS
from studycore.analytics.metrics import mastery_level, states_frame
from studycore.analytics.service import build_progress_dashboard
from studycore.analytics.types import (
    CalibrationStats,
    ConfidenceRecord,
    MasteryLevel,
    ProgressDashboard,
    ReviewStats,
)

__all__ = [
    "MASTERY_LABELS",
    "build_progress_dashboard",
    "calculate_calibration_stats",
    "get_calibration_trend",
    "mastery_level",
    "states_frame",
    "CalibrationStats",
    "ConfidenceRecord",
    "MasteryLevel",
    "ProgressDashboard",
    "ReviewStats",
]
