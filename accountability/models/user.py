from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func

from accountability.database import Base

class User(Base):
    """Public profile of an app user; auth lives with the identity provider."""
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=True)
    display_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
