from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime
from enum import Enum as PyEnum

class HabitType(str, PyEnum):
    CORE = "core"
    CUSTOM = "custom"

class PartnershipMode(str, PyEnum):
    SUPPORTIVE = "supportive"
    COMPETITIVE = "competitive"

class PartnershipStatus(str, PyEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"

# Rows in these states can only be revived by a fresh invite
TERMINAL_STATUSES = (PartnershipStatus.DECLINED, PartnershipStatus.CANCELLED)

class PartnershipInviteCreate(BaseModel):
    invitee_id: str
    habit_type: HabitType
    identifier: str  # habit_key for core habits, custom habit id otherwise
    mode: PartnershipMode = PartnershipMode.SUPPORTIVE

class PartnerProfile(BaseModel):
    id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True

class PartnershipResponse(BaseModel):
    id: str
    inviter_id: str
    invitee_id: str
    habit_type: HabitType
    habit_key: Optional[str] = None
    custom_habit_id: Optional[str] = None
    inviter_habit_id: Optional[str] = None
    invitee_habit_id: Optional[str] = None
    habit_snapshot: Optional[Dict[str, Any]] = None
    mode: PartnershipMode
    status: PartnershipStatus
    created_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class PartnershipDetailResponse(PartnershipResponse):
    partner: PartnerProfile
    habit_name: str
