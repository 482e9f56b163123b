"""
Recurring Expense Calculator

Date and amount arithmetic for recurring expense schedules:
- normalize a stored expense (current `recurrence` block or the legacy
  `recurring_config` block) into one shape
- decide whether a schedule is in effect or occurs on a given day
- find the next occurrence
- convert an amount to its monthly equivalent

Weekdays follow the dashboard convention: 0=Sunday .. 6=Saturday.
"""

import logging
import math
from datetime import date, timedelta
from typing import Any, Dict, Optional

from services.recurrence_formatter import to_date

logger = logging.getLogger(__name__)

DAYS_IN_MONTH = 30
WEEKS_IN_MONTH = 52 / 12
MONTHS_IN_YEAR = 12
MAX_LOOKAHEAD_DAYS = 2 * 366

# Legacy frequency names -> (pattern, interval multiplier)
LEGACY_FREQUENCY_MAP = {
    "daily": ("daily", 1),
    "weekly": ("weekly", 1),
    "biweekly": ("weekly", 2),
    "monthly": ("monthly", 1),
    "bimonthly": ("monthly", 2),
    "quarterly": ("monthly", 3),
    "semiannual": ("monthly", 6),
    "yearly": ("yearly", 1),
    "annual": ("yearly", 1),
}


def sunday_based_weekday(day: date) -> int:
    return (day.weekday() + 1) % 7


def _int_set(values: Any, low: int, high: int) -> list:
    if not isinstance(values, (list, tuple, set)):
        return []
    result = set()
    for value in values:
        try:
            number = int(value)
        except (TypeError, ValueError, OverflowError):
            continue
        if low <= number <= high:
            result.add(number)
    return sorted(result)


def normalize_recurrence(expense: Optional[Dict[str, Any]], today: Optional[date] = None) -> Dict[str, Any]:
    """
    One normalized recurrence dict for any stored expense shape:
    {pattern, interval, start_date, end_date, is_active, config}
    """
    today = today or date.today()
    expense = expense or {}

    if isinstance(expense.get("recurrence"), dict):
        raw = expense["recurrence"]
    elif isinstance(expense.get("recurring_config"), dict):
        raw = expense["recurring_config"]
    else:
        raw = expense

    frequency = str(raw.get("pattern") or raw.get("frequency") or "monthly").lower()
    pattern, multiplier = LEGACY_FREQUENCY_MAP.get(frequency, (frequency, 1))

    try:
        interval = int(raw.get("interval") or 1)
    except (TypeError, ValueError, OverflowError):
        interval = 1
    interval = max(interval, 1) * multiplier

    start_date = to_date(raw.get("start_date")) or to_date(expense.get("date")) or today
    end_date = to_date(raw.get("end_date"))
    is_active = raw.get("is_active")
    if is_active is None:
        is_active = True

    selectors = raw.get("config") if isinstance(raw.get("config"), dict) else {}
    config: Dict[str, Any] = {
        "week_days": _int_set(selectors.get("week_days"), 0, 6),
        "month_days": _int_set(selectors.get("month_days"), 1, 31),
        "year_config": None,
    }

    # Legacy single-day selectors
    if not config["week_days"] and raw.get("day_of_week") is not None:
        config["week_days"] = _int_set([raw.get("day_of_week")], 0, 6)
    if not config["month_days"]:
        legacy_days = raw.get("specific_dates") or (
            [raw.get("day_of_month")] if raw.get("day_of_month") is not None else []
        )
        config["month_days"] = _int_set(legacy_days, 1, 31)

    year_config = selectors.get("year_config")
    if not isinstance(year_config, dict):
        year_config = {}
    month = _int_set([year_config.get("month")], 1, 12)
    day = _int_set([year_config.get("day")], 1, 31)
    if month and day:
        config["year_config"] = {"month": month[0], "day": day[0]}
    elif pattern == "yearly":
        config["year_config"] = {"month": start_date.month, "day": start_date.day}

    return {
        "pattern": pattern,
        "interval": interval,
        "start_date": start_date,
        "end_date": end_date,
        "is_active": bool(is_active),
        "config": config,
    }


def is_finished(recurrence: Dict[str, Any], today: Optional[date] = None) -> bool:
    end_date = to_date(recurrence.get("end_date"))
    return end_date is not None and end_date < (today or date.today())


def is_schedule_active(recurrence: Dict[str, Any], today: Optional[date] = None) -> bool:
    """
    True when the schedule is in effect today: flagged active, started,
    and not past its end date.
    """
    today = today or date.today()
    if not recurrence.get("is_active"):
        return False
    start_date = to_date(recurrence.get("start_date"))
    if start_date is not None and start_date > today:
        return False
    return not is_finished(recurrence, today)


def occurs_on(recurrence: Dict[str, Any], day: date) -> bool:
    """Whether a normalized recurrence has an occurrence on `day`"""
    start = recurrence["start_date"]
    end = recurrence.get("end_date")
    interval = recurrence["interval"]
    config = recurrence["config"]

    if day < start or (end is not None and day > end):
        return False

    pattern = recurrence["pattern"]
    if pattern == "daily":
        return (day - start).days % interval == 0

    if pattern == "weekly":
        week_days = config["week_days"] or [sunday_based_weekday(start)]
        if sunday_based_weekday(day) not in week_days:
            return False
        return ((day - start).days // 7) % interval == 0

    if pattern == "monthly":
        month_days = config["month_days"] or [start.day]
        if day.day not in month_days:
            return False
        months_diff = (day.year - start.year) * 12 + (day.month - start.month)
        return months_diff % interval == 0

    if pattern == "yearly":
        year_config = config["year_config"] or {"month": start.month, "day": start.day}
        if day.month != year_config["month"] or day.day != year_config["day"]:
            return False
        return (day.year - start.year) % interval == 0

    return False


def next_occurrence(recurrence: Dict[str, Any], from_date: Optional[date] = None) -> Optional[date]:
    """
    First occurrence strictly after `from_date` (or the first one on or after
    the start date when the schedule has not started). None when the
    schedule is inactive, over, or has nothing in the next two years.
    """
    if not recurrence.get("is_active"):
        return None

    from_date = from_date or date.today()
    start = recurrence["start_date"]
    end = recurrence.get("end_date")

    candidate = start if from_date < start else from_date + timedelta(days=1)
    last_day = candidate + timedelta(days=MAX_LOOKAHEAD_DAYS)
    if end is not None:
        last_day = min(last_day, end)

    while candidate <= last_day:
        if occurs_on(recurrence, candidate):
            return candidate
        candidate += timedelta(days=1)

    return None


def monthly_amount(amount: Any, recurrence: Dict[str, Any]) -> float:
    """Monthly equivalent of an amount charged on every occurrence"""
    try:
        amount = float(amount or 0)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(amount):
        return 0.0

    pattern = recurrence["pattern"]
    interval = recurrence["interval"]
    config = recurrence["config"]

    if pattern == "daily":
        return amount * DAYS_IN_MONTH / interval
    if pattern == "weekly":
        per_week = max(len(config["week_days"]), 1)
        return amount * per_week * WEEKS_IN_MONTH / interval
    if pattern == "monthly":
        per_month = max(len(config["month_days"]), 1)
        return amount * per_month / interval
    if pattern == "yearly":
        return amount / (interval * MONTHS_IN_YEAR)

    logger.warning(f"Unknown recurrence pattern {pattern!r}, counting amount as monthly")
    return amount
