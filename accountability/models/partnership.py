from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.sql import func
import uuid

from accountability.database import Base
from accountability.models.habits import JSONType
from accountability.schemas.partnerships import HabitType, PartnershipMode, PartnershipStatus

class Partnership(Base):
    __tablename__ = "habit_accountability_partners"
    # habit_identifier is the core key or the originally invited custom habit id;
    # it is never null so the constraint holds for both habit types.
    __table_args__ = (
        UniqueConstraint(
            "inviter_id", "invitee_id", "habit_type", "habit_identifier",
            name="uq_partnership_invite",
        ),
    )

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    inviter_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    invitee_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    habit_type = Column(Enum(HabitType), nullable=False)
    habit_identifier = Column(String, nullable=False)
    habit_key = Column(String, nullable=True)
    custom_habit_id = Column(String, nullable=True)
    # Plain references: the habits they point at may be deleted later
    inviter_habit_id = Column(String, nullable=True, index=True)
    invitee_habit_id = Column(String, nullable=True, index=True)
    habit_snapshot = Column(JSONType, nullable=True)
    mode = Column(Enum(PartnershipMode), default=PartnershipMode.SUPPORTIVE, nullable=False)
    status = Column(Enum(PartnershipStatus), default=PartnershipStatus.PENDING, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def involves(self, user_id: str) -> bool:
        return user_id in (self.inviter_id, self.invitee_id)

    def counterpart_of(self, user_id: str) -> str:
        return self.invitee_id if user_id == self.inviter_id else self.inviter_id
