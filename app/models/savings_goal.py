# app/models/savings_goal.py
import uuid
from sqlalchemy import Column, String, Numeric, Date, DateTime, ForeignKey, Boolean, Uuid, CheckConstraint, func
from sqlalchemy.orm import relationship
from app.core.database import Base

class SavingsGoal(Base):
    __tablename__ = "savings_goals"
    __table_args__ = (
        CheckConstraint("target_amount > 0", name="ck_savings_goals_target_positive"),
        CheckConstraint("current_amount >= 0", name="ck_savings_goals_current_non_negative"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(length=100), nullable=False)
    # No update path: the target is fixed once the goal exists
    target_amount = Column(Numeric(12, 2), nullable=False)
    # Moved only through the progress engine
    current_amount = Column(Numeric(12, 2), nullable=False, default=0)
    deadline = Column(Date, nullable=True)
    description = Column(String(length=255), nullable=True)
    # Flagged by the maintenance sweep, not by the engine
    is_achieved = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="savings_goals")
    deposits = relationship(
        "SavingsDeposit",
        back_populates="savings_goal",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<SavingsGoal name={self.name} current={self.current_amount} target={self.target_amount} user_id={self.user_id}>"
