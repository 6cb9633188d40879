"""
Engine configuration.

EngineConfig carries every tunable threshold of the engine. It is immutable and
passed explicitly to each call; per-call variations are made with
with_overrides(). Deployments can override the defaults through environment
variables (or a .env file) via load_engine_config().
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Optional

from dotenv import load_dotenv

from studycore.fire.constants import MAX_LEARNING_SPEED, MIN_LEARNING_SPEED


ENV_PREFIX = "FIRE_"


@dataclass(frozen=True)
class EngineConfig:
    """
    Thresholds and caps for propagation, selection and due-ness.
    """
    min_credit_threshold: float = 0.01      # Credit/penalty below this is not propagated
    max_propagation_depth: int = 10         # Hop limit for graph walks
    knockout_weight_threshold: float = 0.5  # Minimum edge weight for a knockout
    implicit_credit_for_slow_learners: bool = False
    memory_due_threshold: float = 0.5       # Decayed memory below this is due
    min_learning_speed: float = MIN_LEARNING_SPEED
    max_learning_speed: float = MAX_LEARNING_SPEED

    def __post_init__(self):
        if self.min_learning_speed > self.max_learning_speed:
            raise ValueError(
                f"min_learning_speed ({self.min_learning_speed}) must not exceed "
                f"max_learning_speed ({self.max_learning_speed})"
            )

    def with_overrides(self, **overrides) -> EngineConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)


DEFAULT_ENGINE_CONFIG = EngineConfig()


def _parse_env_value(name: str, raw: str, target_type: type):
    if target_type is bool:
        return raw.strip().lower() == "true"
    try:
        return target_type(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a valid {target_type.__name__}, got {raw!r}") from exc


def load_engine_config(env_file: Optional[str] = None) -> EngineConfig:
    """
    Build an EngineConfig from environment variables.

    Each field can be overridden by FIRE_<FIELD_NAME>, e.g.
    FIRE_MEMORY_DUE_THRESHOLD=0.6. Unset variables keep the defaults.

    Args:
        env_file: Optional path to a .env file (defaults to dotenv's lookup)

    Returns:
        EngineConfig with overrides applied

    Raises:
        ValueError: If a variable cannot be parsed or is out of range
    """
    load_dotenv(env_file)

    overrides = {}
    for field in fields(EngineConfig):
        env_name = ENV_PREFIX + field.name.upper()
        raw = os.getenv(env_name)
        if raw is None or raw == "":
            continue
        default_value = getattr(DEFAULT_ENGINE_CONFIG, field.name)
        overrides[field.name] = _parse_env_value(env_name, raw, type(default_value))

    config = DEFAULT_ENGINE_CONFIG.with_overrides(**overrides)

    if config.max_propagation_depth < 0:
        raise ValueError("FIRE_MAX_PROPAGATION_DEPTH must be >= 0")
    for name in ("min_credit_threshold", "knockout_weight_threshold", "memory_due_threshold"):
        value = getattr(config, name)
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{ENV_PREFIX}{name.upper()} must be between 0 and 1, got {value}")
    if config.min_learning_speed <= 0:
        raise ValueError("FIRE_MIN_LEARNING_SPEED must be positive")

    return config
