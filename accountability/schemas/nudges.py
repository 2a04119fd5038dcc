from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from .partnerships import HabitType

class NudgeCreate(BaseModel):
    nudged_user_id: str
    habit_title: Optional[str] = None

class NudgeResponse(BaseModel):
    id: str
    partnership_id: str
    nudger_id: str
    nudged_user_id: str
    habit_type: HabitType
    habit_key: Optional[str] = None
    custom_habit_id: Optional[str] = None
    nudged_at: datetime

    class Config:
        from_attributes = True

class NudgeAvailability(BaseModel):
    can_nudge: bool
    last_nudged_at: Optional[datetime] = None

class LastNudgeTimesRequest(BaseModel):
    partnership_ids: List[str]
