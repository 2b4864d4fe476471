# app/utils/budgeting.py
"""
Savings arithmetic shared by the progress engine, the schemas and the summary.

Amounts are Decimals end to end. Percentages used for milestone decisions are
left unclamped; the clamped variant is for display only.
"""
import calendar
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Tuple

HUNDRED = Decimal(100)
ZERO = Decimal(0)

# Progress tier that earns a one-time notification below completion
PROGRESS_MILESTONE_PCT = Decimal(75)


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so floats keep their printed value
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def percentage_of(current: Any, target: Any) -> Decimal:
    """Unclamped percentage of target reached; 0 when the target is not positive."""
    target_dec = to_decimal(target)
    if target_dec <= 0:
        return ZERO
    return to_decimal(current) / target_dec * HUNDRED


def calculate_progress(current: Any, target: Any) -> float:
    """Display percentage, clamped at 100 regardless of overshoot."""
    return float(min(percentage_of(current, target), HUNDRED))


def determine_status(progress_percentage: float) -> str:
    """Status text driven by progress."""
    if progress_percentage >= 100:
        return "Goal Achieved"
    if progress_percentage >= float(PROGRESS_MILESTONE_PCT):
        return "Almost There"
    if progress_percentage > 0:
        return "In Progress"
    return "Not Started"


# ────────────────────────────────────────────────────────────────────────────────
# PERIOD HELPERS
# ────────────────────────────────────────────────────────────────────────────────
def month_range(day: date) -> Tuple[date, date]:
    """First and last day of the calendar month containing ``day``."""
    last_day = calendar.monthrange(day.year, day.month)[1]
    return date(day.year, day.month, 1), date(day.year, day.month, last_day)


def previous_month_range(day: date) -> Tuple[date, date]:
    if day.month == 1:
        return month_range(date(day.year - 1, 12, 1))
    return month_range(date(day.year, day.month - 1, 1))
