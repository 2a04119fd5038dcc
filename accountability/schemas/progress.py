from pydantic import BaseModel
from datetime import date as dt_date
from enum import Enum as PyEnum

class ProgressUpdate(BaseModel):
    date: dt_date
    completed: bool

class ProgressStatus(BaseModel):
    completed: bool = False
    streak: int = 0

class ChangeEvent(str, PyEnum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

class ProgressChange(BaseModel):
    """A single mutation of a partner progress row, as seen by feed subscribers."""
    event: ChangeEvent
    partnership_id: str
    user_id: str
    date: dt_date
    completed: bool
    streak_count: int = 0

class PartnerProgressResponse(BaseModel):
    partnership_id: str
    user_id: str
    date: dt_date
    completed: bool
    streak_count: int

    class Config:
        from_attributes = True
