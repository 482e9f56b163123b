"""
Recurring Expense Models

Collection: expenses

A recurring expense is stored as a template (type "recurring-template")
carrying its recurrence: a base pattern, an interval multiplier and a
pattern-specific selector.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import date, datetime
from enum import Enum


class RecurrencePattern(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class YearConfig(BaseModel):
    month: int = Field(..., ge=1, le=12)
    day: int = Field(..., ge=1, le=31)


class PatternConfig(BaseModel):
    """Pattern-specific selector"""
    week_days: List[int] = Field(default_factory=list, description="0=Sunday .. 6=Saturday")
    month_days: List[int] = Field(default_factory=list, description="1..31")
    year_config: Optional[YearConfig] = None

    @field_validator("week_days")
    @classmethod
    def validate_week_days(cls, v: List[int]) -> List[int]:
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("week_days must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))

    @field_validator("month_days")
    @classmethod
    def validate_month_days(cls, v: List[int]) -> List[int]:
        if any(day < 1 or day > 31 for day in v):
            raise ValueError("month_days must be between 1 and 31")
        return sorted(set(v))


class Recurrence(BaseModel):
    pattern: RecurrencePattern
    interval: int = Field(default=1, ge=1)
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = True
    config: PatternConfig = Field(default_factory=PatternConfig)

    class Config:
        use_enum_values = True

    @model_validator(mode="after")
    def check_date_range(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class RecurringExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., ge=0)
    category: str = "general"
    payment_method: str = "cash"
    notes: Optional[str] = None
    recurrence: Recurrence


class RecurrenceDescribeRequest(BaseModel):
    """Free-form recurrence to describe, validated only by the formatter"""
    pattern: Optional[str] = None
    interval: int = 1
    config: dict = Field(default_factory=dict)
    locale: Optional[str] = None


class RecurrenceDescription(BaseModel):
    frequency: str


class RecurringExpenseResponse(BaseModel):
    id: str
    description: str
    amount: float
    category: str
    payment_method: str
    notes: Optional[str] = None
    recurrence: dict
    frequency: str
    status: str
    date_range: str
    next_occurrence: Optional[date] = None
    created_by: Optional[str] = None
    created_at: datetime


# ============================================================
# INDEX DEFINITION
# ============================================================

EXPENSES_INDEXES = [
    {
        "keys": [("recurrence.pattern", 1), ("recurrence.is_active", 1)],
        "name": "recurrence_pattern_active_idx"
    },
    {
        "keys": [("type", 1), ("created_at", -1)],
        "name": "type_created_at_idx"
    },
]
