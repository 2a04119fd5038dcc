import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text
from sqlalchemy import func
from accountability.database import Base

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), index=True)
    from_user_id = Column(String, ForeignKey("users.id"), nullable=True)
    type = Column(String)  # habit_invite, habit_nudge, etc.
    title = Column(String)
    message = Column(String)
    data = Column(Text)  # JSON data as string
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
