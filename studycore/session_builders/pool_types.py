"""
Typed pool models shared across session builders.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from studycore.fire.memory_state import ItemMemoryState


Bucket = Literal["weak", "learning", "mastered"]


class Exercise(BaseModel):
    """
    Exercise descriptor. lesson_id and type are opaque keys; type is only
    compared for equality.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    lesson_id: str = Field(..., alias="lessonId")
    type: str
    item_ids: list[str] = Field(default_factory=list, alias="itemIds")


@dataclass
class MasteryRecord:
    """
    Per-item mastery as seen by the session builders.
    """
    item_id: str
    strength: float = 0.0  # Legacy 0-100 scalar
    state: Optional[ItemMemoryState] = None


@dataclass
class CategorizedExercises:
    """
    Exercises bucketed by how well their items are known.
    """
    weak: list[Exercise] = field(default_factory=list)
    learning: list[Exercise] = field(default_factory=list)
    mastered: list[Exercise] = field(default_factory=list)

    def add(self, exercise: Exercise, bucket: Bucket) -> None:
        getattr(self, bucket).append(exercise)

    def total(self) -> int:
        return len(self.weak) + len(self.learning) + len(self.mastered)
