from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean
from accountability.database import Base
from sqlalchemy import func
import uuid

class DeviceToken(Base):
    __tablename__ = "device_tokens"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), index=True)
    token = Column(String, index=True)
    platform = Column(String)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
