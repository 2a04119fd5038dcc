from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

class HabitDefinition(BaseModel):
    """
    The defining fields of a custom habit.

    This is also the shape stored in a partnership's habit snapshot, so it
    deliberately excludes ownership and bookkeeping columns.
    """
    title: str
    description: Optional[str] = None
    emoji: Optional[str] = None
    color: Optional[str] = None
    accent_color: Optional[str] = None
    schedule_days: List[int] = Field(default_factory=list)  # 0 = Monday
    target_quantity: Optional[float] = None
    target_unit: Optional[str] = None
    reminder_time: Optional[str] = None  # "HH:MM"
    timezone: Optional[str] = None

    class Config:
        from_attributes = True

    @field_validator("schedule_days", mode="before")
    @classmethod
    def empty_schedule(cls, v):
        return [] if v is None else v
