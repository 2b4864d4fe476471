# app/models/savings_deposit.py
import uuid
from sqlalchemy import Column, Numeric, Date, DateTime, ForeignKey, Uuid, CheckConstraint, func
from sqlalchemy.orm import relationship
from app.core.database import Base

class SavingsDeposit(Base):
    __tablename__ = "savings_deposits"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_savings_deposits_amount_positive"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    savings_goal_id = Column(Uuid(as_uuid=True), ForeignKey("savings_goals.id", ondelete="CASCADE"), nullable=False, index=True)
    # The increase applied by one update, never the new total
    amount = Column(Numeric(12, 2), nullable=False)
    deposit_date = Column(Date, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    savings_goal = relationship("SavingsGoal", back_populates="deposits")

    def __repr__(self):
        return f"<SavingsDeposit amount={self.amount} date={self.deposit_date} goal_id={self.savings_goal_id}>"
