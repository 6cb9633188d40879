"""
Learning-Speed Calibration

A coarse hysteresis controller over recent review outcomes. Each outcome is
compared against what the engine expected: a learner who keeps failing items
the engine considered safe is slowed down; one who keeps passing items the
engine considered shaky is sped up. Small samples never move the speed.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Sequence

from studycore.fire.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from studycore.fire.constants import (
    CALIBRATION_MIN_RESULTS,
    CALIBRATION_WINDOW,
    LEARNING_SPEED_STEP,
    UNEXPECTED_FAILURE_LIMIT,
    UNEXPECTED_SUCCESS_LIMIT,
)
from studycore.fire.memory_state import ItemMemoryState, clamp_state, get_decayed_memory


@dataclass(frozen=True)
class RepetitionResult:
    """Outcome of one review, paired with the engine's prediction."""
    passed: bool
    expected_to_pass: bool
    timestamp: datetime
    quality: Optional[float] = None


def expected_to_pass(
    state: ItemMemoryState,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    now: Optional[datetime] = None
) -> bool:
    """The engine expects a pass while decayed memory is at or above the due threshold."""
    return get_decayed_memory(state, now) >= config.memory_due_threshold


def calibrate_learning_speed(
    current: ItemMemoryState,
    recent_results: Sequence[RepetitionResult],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG
) -> float:
    """
    Recompute the learning speed from recent results.

    Rules (applied to the last CALIBRATION_WINDOW results):
    - fewer than CALIBRATION_MIN_RESULTS results: unchanged
    - more than 2 unexpected failures: slow down by one step
    - otherwise more than 3 unexpected successes: speed up by one step

    Args:
        current: Current item state
        recent_results: Results in chronological order
        config: Engine configuration

    Returns:
        New learning speed within [min_learning_speed, max_learning_speed]
    """
    speed = current.learning_speed
    if len(recent_results) < CALIBRATION_MIN_RESULTS:
        return speed

    window = list(recent_results)[-CALIBRATION_WINDOW:]
    unexpected_failures = sum(1 for r in window if not r.passed and r.expected_to_pass)
    unexpected_successes = sum(1 for r in window if r.passed and not r.expected_to_pass)

    if unexpected_failures > UNEXPECTED_FAILURE_LIMIT:
        speed -= LEARNING_SPEED_STEP
    elif unexpected_successes > UNEXPECTED_SUCCESS_LIMIT:
        speed += LEARNING_SPEED_STEP

    return max(config.min_learning_speed, min(config.max_learning_speed, speed))


def apply_calibration(
    current: ItemMemoryState,
    recent_results: Sequence[RepetitionResult],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG
) -> ItemMemoryState:
    """Return current with its learning speed recalibrated."""
    speed = calibrate_learning_speed(current, recent_results, config)
    if speed == current.learning_speed:
        return current
    return clamp_state(replace(current, learning_speed=speed), config)
