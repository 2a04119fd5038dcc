from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Boolean, Integer
from sqlalchemy.sql import func

from accountability.database import Base

class PartnerProgress(Base):
    __tablename__ = "habit_partner_progress"

    partnership_id = Column(String, ForeignKey("habit_accountability_partners.id"), primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), primary_key=True)
    date = Column(Date, primary_key=True)
    completed = Column(Boolean, default=False, nullable=False)
    streak_count = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
