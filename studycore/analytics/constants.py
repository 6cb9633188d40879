"""
Constants for progress analytics and confidence calibration.
"""

from __future__ import annotations

from typing import Final


# ---- Mastery levels ----

MASTERY_LEVELS: Final[list[str]] = ["new", "learning", "familiar", "mastered", "decaying"]

MASTERY_LABELS: Final[dict[str, str]] = {
    "new": "New",
    "learning": "Learning",
    "familiar": "Familiar",
    "mastered": "Mastered",
    "decaying": "Needs Review",
}

DECAYING_MEMORY: Final[float] = 0.3       # Decayed memory below this (after first rep) is decaying
DECAYING_MIN_REPETITION: Final[float] = 1.0
FAMILIAR_REPETITION: Final[float] = 1.5
MASTERED_REPETITION: Final[float] = 3.0


# ---- Confidence calibration ----

# Expected accuracy per confidence rating: unsure, somewhat sure, very sure
EXPECTED_ACCURACY: Final[dict[int, float]] = {1: 0.33, 2: 0.66, 3: 0.90}

CONFIDENCE_LABELS: Final[dict[int, str]] = {1: "Unsure", 2: "Somewhat sure", 3: "Very sure"}

MIN_RATINGS_FOR_CALIBRATION: Final[int] = 10
TENDENCY_THRESHOLD: Final[float] = 0.15
WELL_CALIBRATED_SCORE: Final[float] = 0.85
MIN_LEVEL_COUNT_FOR_FEEDBACK: Final[int] = 3

TREND_WINDOW: Final[int] = 20
TREND_THRESHOLD: Final[float] = 0.1
