from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Float, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
import uuid

from accountability.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")

class CustomHabit(Base):
    __tablename__ = "custom_habits"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    title = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    emoji = Column(String, nullable=True)
    color = Column(String, nullable=True)
    accent_color = Column(String, nullable=True)
    schedule_days = Column(JSONType, nullable=True)
    target_quantity = Column(Float, nullable=True)
    target_unit = Column(String, nullable=True)
    reminder_time = Column(String, nullable=True)
    timezone = Column(String, nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

class UserCoreHabit(Base):
    """A core catalog habit the user has switched on."""
    __tablename__ = "user_core_habits"
    __table_args__ = (UniqueConstraint("user_id", "habit_key", name="uq_user_core_habit"),)

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    habit_key = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class CoreHabitSchedule(Base):
    __tablename__ = "core_habit_schedules"
    __table_args__ = (UniqueConstraint("user_id", "habit_key", name="uq_core_habit_schedule"),)

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    habit_key = Column(String, nullable=False)
    days = Column(JSONType, nullable=False)  # weekday numbers, 0 = Monday
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
