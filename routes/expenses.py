"""Recurring Expense Routes"""

from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional
from datetime import date, datetime
from database.mongodb import get_database
from services.auth_deps import get_current_user, require_admin
from services.recurrence_calculator import normalize_recurrence, next_occurrence
from services.recurrence_formatter import (
    format_frequency, format_status, format_date_range
)
from models.expense import (
    RecurringExpenseCreate, RecurringExpenseResponse,
    RecurrenceDescribeRequest, RecurrenceDescription
)
from models.user import User
from config import get_settings
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/expenses", tags=["expenses"])

RECURRING_TEMPLATE = "recurring-template"


def to_datetime(value: Optional[date]) -> Optional[datetime]:
    """BSON has no date type; store midnight datetimes"""
    if value is None:
        return None
    return datetime.combine(value, datetime.min.time())


def build_expense_response(doc: dict, today: Optional[date] = None, locale: Optional[str] = None) -> RecurringExpenseResponse:
    """Attach the schedule description, status and next occurrence"""
    locale = locale or get_settings().locale
    today = today or date.today()
    recurrence = doc.get("recurrence") or {}
    normalized = normalize_recurrence(doc, today)

    return RecurringExpenseResponse(
        id=str(doc["_id"]),
        description=doc.get("description", ""),
        amount=doc.get("amount", 0.0),
        category=doc.get("category", "general"),
        payment_method=doc.get("payment_method", "cash"),
        notes=doc.get("notes"),
        recurrence=recurrence,
        frequency=format_frequency(
            recurrence.get("pattern"),
            recurrence.get("interval", 1),
            recurrence.get("config") or {},
            locale
        ),
        status=format_status(recurrence.get("is_active"), recurrence.get("end_date"), today, locale),
        date_range=format_date_range(recurrence.get("start_date"), recurrence.get("end_date"), locale=locale),
        next_occurrence=next_occurrence(normalized, today),
        created_by=doc.get("created_by"),
        created_at=doc["created_at"]
    )


@router.post("/recurring", response_model=RecurringExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_recurring_expense(
    expense: RecurringExpenseCreate,
    current_user: User = Depends(require_admin),
    db=Depends(get_database)
):
    """Create a recurring expense template"""
    now = datetime.utcnow()
    recurrence = expense.recurrence.model_dump()
    recurrence["start_date"] = to_datetime(expense.recurrence.start_date)
    recurrence["end_date"] = to_datetime(expense.recurrence.end_date)

    doc = {
        "_id": uuid.uuid4().hex,
        "type": RECURRING_TEMPLATE,
        "description": expense.description,
        "amount": expense.amount,
        "category": expense.category,
        "payment_method": expense.payment_method,
        "notes": expense.notes,
        "recurrence": recurrence,
        "created_by": current_user.id,
        "created_at": now,
        "updated_at": now
    }

    await db.expenses.insert_one(doc)

    logger.info(f"Created recurring expense {doc['_id']} ({expense.description})")

    return build_expense_response(doc)


@router.get("/recurring", response_model=List[RecurringExpenseResponse])
async def list_recurring_expenses(
    active_only: bool = False,
    limit: int = 100,
    current_user: User = Depends(get_current_user),
    db=Depends(get_database)
):
    """List recurring expense templates with their schedule descriptions"""
    today = date.today()
    query = {"type": RECURRING_TEMPLATE}
    if active_only:
        # Finished schedules are not active even when flagged so
        query["recurrence.is_active"] = True
        query["$or"] = [
            {"recurrence.end_date": None},
            {"recurrence.end_date": {"$gte": to_datetime(today)}}
        ]

    cursor = db.expenses.find(query).sort("created_at", -1).limit(min(max(limit, 1), 100))

    return [build_expense_response(doc, today) async for doc in cursor]


@router.post("/recurring/describe", response_model=RecurrenceDescription)
async def describe_recurrence(
    data: RecurrenceDescribeRequest,
    current_user: User = Depends(get_current_user)
):
    """Preview the description of a recurrence while it is being edited"""
    locale = data.locale or get_settings().locale
    return RecurrenceDescription(
        frequency=format_frequency(data.pattern, data.interval, data.config, locale)
    )


@router.get("/recurring/{expense_id}", response_model=RecurringExpenseResponse)
async def get_recurring_expense(
    expense_id: str,
    current_user: User = Depends(get_current_user),
    db=Depends(get_database)
):
    """Get a recurring expense template"""
    doc = await db.expenses.find_one({"_id": expense_id, "type": RECURRING_TEMPLATE})
    if not doc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Recurring expense not found"
        )
    return build_expense_response(doc)
