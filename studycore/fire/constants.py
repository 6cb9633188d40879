"""
FIRe Constants and Parameters

Fixed parameters of the Fractional Implicit Repetition algorithm in one place.
Tunable thresholds live on EngineConfig (see config.py); the values below are
part of the model itself.
"""

from typing import Final


# ---- Interval Schedule ----
# Days until the next review, driven by repetition level

FIRST_REP_INTERVAL: Final[int] = 1    # repetition level < 2
SECOND_REP_INTERVAL: Final[int] = 6   # repetition level < 3
EXPONENTIAL_BASE: Final[float] = 2.0  # 2^(level - 1) afterwards
MAX_INTERVAL_DAYS: Final[int] = 365


# ---- Credit Deltas ----

PASS_BASE: Final[float] = 0.5                # Base credit for a pass
PASS_QUALITY_MULTIPLIER: Final[float] = 0.5  # Extra credit scaled by quality (0-1)
FAIL_PENALTY: Final[float] = -1.0            # Raw delta on a fail
MEMORY_BOOST: Final[float] = 0.5             # Memory change on a pass
MEMORY_REDUCTION: Final[float] = -0.3        # Memory change on a fail


# ---- Decay Factors ----

MEMORY_HALFLIFE: Final[float] = 0.5             # Memory halves at the expected interval
IMPLICIT_DISCOUNT_FACTOR: Final[float] = 0.7    # Discount on implicit credit at high memory
PENALTY_PROPAGATION_FACTOR: Final[float] = 0.5  # Extra damping per upward hop

IMPLICIT_MEMORY_GAIN: Final[float] = 0.3     # Memory gained per unit of implicit credit
IMPLICIT_MEMORY_PENALTY: Final[float] = 0.2  # Memory lost per unit of implicit penalty


# ---- Learning Speed ----

DEFAULT_LEARNING_SPEED: Final[float] = 1.0
MIN_LEARNING_SPEED: Final[float] = 0.5
MAX_LEARNING_SPEED: Final[float] = 2.0


# ---- Calibration ----

CALIBRATION_MIN_RESULTS: Final[int] = 3
CALIBRATION_WINDOW: Final[int] = 10
UNEXPECTED_FAILURE_LIMIT: Final[int] = 2   # Slow down when exceeded
UNEXPECTED_SUCCESS_LIMIT: Final[int] = 3   # Speed up when exceeded
LEARNING_SPEED_STEP: Final[float] = 0.1


# ---- Challenge Candidates ----

CHALLENGE_MIN_REPETITION: Final[float] = 3.0
CHALLENGE_MIN_MEMORY: Final[float] = 0.7

# Quality assigned to a correct-but-hard answer
HARD_PASS_QUALITY: Final[float] = 0.6


SECONDS_PER_DAY: Final[float] = 86400.0
