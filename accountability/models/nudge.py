from sqlalchemy import Column, String, DateTime, ForeignKey, Enum
import uuid

from accountability.database import Base
from accountability.schemas.partnerships import HabitType

class Nudge(Base):
    """Append-only log of reminders sent between partners."""
    __tablename__ = "habit_nudges"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    partnership_id = Column(String, ForeignKey("habit_accountability_partners.id"), index=True, nullable=False)
    nudger_id = Column(String, ForeignKey("users.id"), nullable=False)
    nudged_user_id = Column(String, ForeignKey("users.id"), nullable=False)
    habit_type = Column(Enum(HabitType), nullable=False)
    habit_key = Column(String, nullable=True)
    custom_habit_id = Column(String, nullable=True)
    nudged_at = Column(DateTime(timezone=True), nullable=False, index=True)
