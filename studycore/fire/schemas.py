"""
Pydantic models for legacy progress records.

Records written before the FIRe engine carry either a 0-100 strength scalar or
SM-2 scheduling data. These models parse both camelCase (as stored) and
snake_case keys; they are only used by the migration adapters.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SM2Data(BaseModel):
    """SM-2 scheduling state of one item."""
    model_config = ConfigDict(populate_by_name=True)

    ease_factor: float = Field(2.5, alias="easeFactor", description="Easiness factor (minimum 1.3)")
    interval: float = Field(0, description="Current interval in days")
    repetitions: int = Field(0, description="Consecutive correct responses")
    next_review_date: datetime = Field(..., alias="nextReviewDate", description="When the item is next due")


class LegacyMastery(BaseModel):
    """Strength-based mastery record, optionally with SM-2 data."""
    model_config = ConfigDict(populate_by_name=True)

    strength: float = Field(0, description="Legacy strength 0-100")
    last_practiced: Optional[str] = Field(None, alias="lastPracticed", description="ISO date of last practice")
    times_correct: int = Field(0, alias="timesCorrect")
    times_incorrect: int = Field(0, alias="timesIncorrect")
    sm2: Optional[SM2Data] = None
