from typing import Optional
from pydantic import BaseModel
from datetime import datetime
from enum import Enum as PyEnum

class NotificationType(str, PyEnum):
    HABIT_INVITE = "habit_invite"
    HABIT_INVITE_ACCEPTED = "habit_invite_accepted"
    HABIT_NUDGE = "habit_nudge"
    PARTNERSHIP_CANCELLED = "partnership_cancelled"

class NotificationResponse(BaseModel):
    id: str
    user_id: str
    from_user_id: Optional[str] = None
    type: NotificationType
    title: str
    message: str
    data: Optional[str] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True
