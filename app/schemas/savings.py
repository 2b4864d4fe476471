# app/schemas/savings.py
from typing import Optional, Literal, List
from pydantic import BaseModel, Field, computed_field
from datetime import date, datetime
from decimal import Decimal
import uuid

from app.utils.budgeting import calculate_progress, determine_status

class SavingsGoalBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="E.g. Emergency fund")
    target_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    deadline: Optional[date] = Field(None, description="Advisory only, never enforced")
    description: Optional[str] = Field(None, max_length=255)

class SavingsGoalCreate(SavingsGoalBase):
    current_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)

class SavingsGoalRead(SavingsGoalBase):
    id: uuid.UUID
    user_id: uuid.UUID
    current_amount: Decimal
    is_achieved: bool = False
    created_at: datetime

    @computed_field
    @property
    def progress_percentage(self) -> float:
        return round(calculate_progress(self.current_amount, self.target_amount), 2)

    @computed_field
    @property
    def status(self) -> str:
        return determine_status(self.progress_percentage)

    class Config:
        from_attributes = True

class SavingsAmountUpdate(BaseModel):
    new_amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2, description="New total saved, not a delta")

class AmountUpdateResult(BaseModel):
    goal_id: uuid.UUID
    status: Literal["updated", "ignored"]
    old_amount: Optional[Decimal] = None
    new_amount: Optional[Decimal] = None
    deposit_amount: Optional[Decimal] = None
    deposit_recorded: bool = False
    milestone: Optional[str] = None
    progress_percentage: Optional[float] = None

class SavingsDepositRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    savings_goal_id: uuid.UUID
    amount: Decimal
    deposit_date: date
    created_at: datetime

    class Config:
        from_attributes = True

class SavingsSummary(BaseModel):
    total_saved: Decimal
    total_target: Decimal
    this_month_deposits: Decimal
    last_month_deposits: Decimal
    goal_count: int
    achieved_count: int
    overall_progress: float

class SavingsDepositList(BaseModel):
    deposits: List[SavingsDepositRead]
    total: Decimal
