"""
State Updates - Explicit Reviews and Implicit Credit/Penalty

Implements the FIRe update rules for a single item.

Explicit updates happen when the learner reviews the item itself. Implicit
updates happen when a related item is reviewed and a fraction of the outcome
flows through the dependency graph (see propagation.py).

Key principles:
- Passing always moves the repetition level up, failing always moves it down
- Failing an overdue item is penalized harder than failing a fresh one
- Implicit credit is discounted for items whose memory is already high
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from studycore.fire.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from studycore.fire.constants import (
    FAIL_PENALTY,
    IMPLICIT_DISCOUNT_FACTOR,
    IMPLICIT_MEMORY_GAIN,
    IMPLICIT_MEMORY_PENALTY,
    MEMORY_BOOST,
    MEMORY_HALFLIFE,
    MEMORY_REDUCTION,
    PASS_BASE,
    PASS_QUALITY_MULTIPLIER,
    PENALTY_PROPAGATION_FACTOR,
)
from studycore.fire.memory_state import (
    ItemMemoryState,
    clamp_state,
    get_days_since_event,
    get_decayed_memory,
    get_interval,
)


def compute_raw_delta(passed: bool, quality: float) -> float:
    """
    Raw repetition delta before speed and overdue scaling.

    Formula:
        pass: PASS_BASE + PASS_QUALITY_MULTIPLIER * quality
        fail: FAIL_PENALTY
    """
    if passed:
        return PASS_BASE + PASS_QUALITY_MULTIPLIER * quality
    return FAIL_PENALTY


def compute_overdue_ratio(days_since_event: float, interval: float) -> float:
    """
    How far past the expected interval the review happened, in intervals.
    """
    return max(0.0, days_since_event - interval) / max(1.0, interval)


def update_state(
    current: ItemMemoryState,
    passed: bool,
    quality: Optional[float] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    now: Optional[datetime] = None
) -> ItemMemoryState:
    """
    Update an item's state after an explicit review.

    Formula:
        delta = speed * overdue_multiplier * raw_delta
        level' = max(0, level + delta)
        memory' = clip(memory * 0.5^(days / interval) + boost_or_reduction, 0, 1)

    Where overdue_multiplier = 1 + overdue_ratio on failure and 1 on success.

    Args:
        current: State before the review
        passed: Whether the learner passed
        quality: Response quality 0-1 (defaults to 1 on pass, 0 on fail)
        config: Engine configuration
        now: Review time (defaults to now)

    Returns:
        New state with last_event_time = now
    """
    now = now or datetime.now(timezone.utc)
    if quality is None:
        quality = 1.0 if passed else 0.0
    quality = max(0.0, min(1.0, quality))

    # Out-of-range persisted speeds must not leak into the delta
    current = clamp_state(current, config)

    days_since = get_days_since_event(current, now)
    expected_interval = get_interval(current.repetition_level)

    raw_delta = compute_raw_delta(passed, quality)
    overdue_multiplier = 1.0 if passed else 1.0 + compute_overdue_ratio(days_since, expected_interval)
    new_level = max(0.0, current.repetition_level + current.learning_speed * overdue_multiplier * raw_delta)

    memory_decay = MEMORY_HALFLIFE ** (days_since / max(1, expected_interval))
    memory_change = MEMORY_BOOST if passed else MEMORY_REDUCTION
    new_memory = current.memory * memory_decay + memory_change

    return clamp_state(
        ItemMemoryState(
            repetition_level=new_level,
            memory=new_memory,
            last_event_time=now,
            learning_speed=current.learning_speed,
        ),
        config,
    )


def apply_implicit_credit(
    current: ItemMemoryState,
    fractional_credit: float,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    now: Optional[datetime] = None
) -> ItemMemoryState:
    """
    Apply fractional credit passed down from an encompassing item.

    The credit is discounted by 1 - decayed_memory * 0.7: an item that is
    already well remembered gains little from an indirect success. The memory
    gain is added to the stored memory; decay only feeds the discount.

    Returns the state unchanged when:
    - the learner is slow (speed < 1.0) and slow learners get no implicit credit
    - the discounted credit is below min_credit_threshold

    Args:
        current: State of the encompassed item
        fractional_credit: Credit already scaled by edge weight
        config: Engine configuration
        now: Time of the originating review

    Returns:
        Updated (or unchanged) state
    """
    if not config.implicit_credit_for_slow_learners and current.learning_speed < 1.0:
        return current

    now = now or datetime.now(timezone.utc)
    decayed_memory = get_decayed_memory(current, now)
    effective_credit = fractional_credit * (1.0 - decayed_memory * IMPLICIT_DISCOUNT_FACTOR)

    if effective_credit < config.min_credit_threshold:
        return current

    return clamp_state(
        replace(
            current,
            repetition_level=current.repetition_level + effective_credit,
            memory=current.memory + effective_credit * IMPLICIT_MEMORY_GAIN,
            last_event_time=now,
        ),
        config,
    )


def apply_implicit_penalty(
    current: ItemMemoryState,
    fractional_penalty: float,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG
) -> ItemMemoryState:
    """
    Apply a fractional penalty passed up from a failed encompassed item.

    If a prerequisite is forgotten, items built on it are at risk. The
    timestamp is left alone: the item was not practiced.

    Args:
        current: State of the encompassing item
        fractional_penalty: Penalty magnitude (positive, already weighted)
        config: Engine configuration

    Returns:
        Updated (or unchanged) state
    """
    if fractional_penalty < config.min_credit_threshold:
        return current

    return clamp_state(
        replace(
            current,
            repetition_level=current.repetition_level - fractional_penalty * PENALTY_PROPAGATION_FACTOR,
            memory=current.memory - fractional_penalty * IMPLICIT_MEMORY_PENALTY,
        ),
        config,
    )
