"""
Recurring Expense Formatter

Human-readable descriptions of recurring expenses, shared by the expense
API and notification messages.

Every function here is pure and never raises on malformed input: missing
or invalid selectors degrade to the most generic description.
"""

import math
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

DEFAULT_LOCALE = "en"

LABELS: Dict[str, Dict[str, Any]] = {
    "en": {
        "weekdays": ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"],
        "months": ["January", "February", "March", "April", "May", "June", "July",
                   "August", "September", "October", "November", "December"],
        "and": "and",
        "every_day": "every day",
        "not_configured": "Not configured",
        "once": {"daily": "Daily", "weekly": "Weekly", "monthly": "Monthly", "yearly": "Yearly"},
        "every": "Repeats every {interval} {unit}",
        "units": {"daily": "days", "weekly": "weeks", "monthly": "months", "yearly": "years"},
        "fallback": "{pattern} every {interval}",
        "month_day": "day {days}",
        "month_days": "days {days}",
        "year_day": "{month} {day}",
        "short_date": "%m/%d/%Y",
        "long_date": "{weekday}, {month} {day}, {year}",
        "medium_date": "{month_short} {day}, {year}",
        "since": "Since {start}",
        "invalid_date": "Invalid date",
        "status": {
            "inactive": "Inactive",
            "finished": "Finished",
            "active_until": "Active (with end date)",
            "active": "Active",
        },
        "unnamed": "Unnamed",
        "no_dates": "No dates",
        "unconfigured_expense": "Unconfigured expense",
    },
    "es": {
        "weekdays": ["Domingo", "Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado"],
        "months": ["enero", "febrero", "marzo", "abril", "mayo", "junio", "julio",
                   "agosto", "septiembre", "octubre", "noviembre", "diciembre"],
        "and": "y",
        "every_day": "todos los días",
        "not_configured": "Sin configurar",
        "once": {"daily": "Diario", "weekly": "Semanal", "monthly": "Mensual", "yearly": "Anual"},
        "every": "Cada {interval} {unit}",
        "units": {"daily": "días", "weekly": "semanas", "monthly": "meses", "yearly": "años"},
        "fallback": "{pattern} cada {interval}",
        "month_day": "día {days}",
        "month_days": "días {days}",
        "year_day": "{day} de {month}",
        "short_date": "%d/%m/%Y",
        "long_date": "{weekday}, {day} de {month} de {year}",
        "medium_date": "{day} {month_short} {year}",
        "since": "Desde {start}",
        "invalid_date": "Fecha inválida",
        "status": {
            "inactive": "Inactivo",
            "finished": "Finalizado",
            "active_until": "Activo (con fecha de fin)",
            "active": "Activo",
        },
        "unnamed": "Sin nombre",
        "no_dates": "Sin fechas",
        "unconfigured_expense": "Gasto sin configurar",
    },
}


def _labels(locale: Optional[str]) -> Dict[str, Any]:
    return LABELS.get((locale or DEFAULT_LOCALE).lower(), LABELS[DEFAULT_LOCALE])


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _int_list(values: Any) -> List[int]:
    """Distinct integers of a selector list; anything unusable is dropped"""
    if not isinstance(values, (list, tuple, set)):
        return []
    result = []
    for value in values:
        number = _as_int(value)
        if number is not None and number not in result:
            result.append(number)
    return result


def _selector(config: Any, *keys: str) -> Any:
    if not isinstance(config, dict):
        return None
    for key in keys:
        if config.get(key) is not None:
            return config[key]
    return None


def join_items(items: Iterable[Any], locale: str = DEFAULT_LOCALE) -> str:
    """'a', 'a and b', 'a, b and c'"""
    words = [str(item) for item in items]
    conjunction = _labels(locale)["and"]
    if not words:
        return ""
    if len(words) == 1:
        return words[0]
    if len(words) == 2:
        return f"{words[0]} {conjunction} {words[1]}"
    return f"{', '.join(words[:-1])} {conjunction} {words[-1]}"


def format_week_days(week_days: Any, locale: str = DEFAULT_LOCALE) -> str:
    """Weekday names for 0=Sunday .. 6=Saturday; all seven collapse to 'every day'"""
    labels = _labels(locale)
    days = sorted(day for day in _int_list(week_days) if 0 <= day <= 6)
    if not days:
        return ""
    if len(days) == 7:
        return labels["every_day"]
    return join_items((labels["weekdays"][day] for day in days), locale)


def _valid_month_days(month_days: Any) -> List[int]:
    return sorted(day for day in _int_list(month_days) if 1 <= day <= 31)


def format_month_days(month_days: Any, locale: str = DEFAULT_LOCALE) -> str:
    return join_items(_valid_month_days(month_days), locale)


def format_year_config(year_config: Any, locale: str = DEFAULT_LOCALE) -> str:
    """'March 15' for {"month": 3, "day": 15}"""
    labels = _labels(locale)
    month = _as_int(_selector(year_config, "month"))
    day = _as_int(_selector(year_config, "day"))
    if not month or not day or not 1 <= month <= 12 or not 1 <= day <= 31:
        return ""
    return labels["year_day"].format(month=labels["months"][month - 1], day=day)


def format_frequency(
    pattern: Optional[str],
    interval: Any = 1,
    config: Optional[Dict[str, Any]] = None,
    locale: str = DEFAULT_LOCALE
) -> str:
    """
    Describe a recurrence, e.g. "Weekly (Monday and Friday)" or
    "Repeats every 2 months (days 1 and 15)".

    Accepts snake_case selectors (week_days, month_days, year_config) as well
    as the camelCase ones sent by the dashboard. Never raises.
    """
    labels = _labels(locale)
    if not pattern:
        return labels["not_configured"]

    interval = _as_int(interval)
    if interval is None or interval < 1:
        interval = 1
    config = config if isinstance(config, dict) else {}
    pattern = str(pattern)

    if pattern == "weekly":
        detail = format_week_days(_selector(config, "week_days", "weekDays"), locale)
    elif pattern == "monthly":
        days = _valid_month_days(_selector(config, "month_days", "monthDays"))
        if not days:
            detail = ""
        else:
            key = "month_day" if len(days) == 1 else "month_days"
            detail = labels[key].format(days=join_items(days, locale))
    elif pattern == "yearly":
        year_config = _selector(config, "year_config", "yearConfig") or config
        detail = format_year_config(year_config, locale)
    elif pattern == "daily":
        detail = ""
    else:
        if interval == 1:
            return pattern
        return labels["fallback"].format(pattern=pattern, interval=interval)

    if interval == 1:
        base = labels["once"][pattern]
    else:
        base = labels["every"].format(interval=interval, unit=labels["units"][pattern])

    return f"{base} ({detail})" if detail else base


def format_amount(amount: Any, currency: str = "$", decimals: int = 2) -> str:
    """'$1,234.50'; anything that is not a number formats as zero"""
    try:
        value = float(amount)
    except (TypeError, ValueError, OverflowError):
        value = 0.0
    if not math.isfinite(value):
        value = 0.0
    return f"{currency}{value:,.{decimals}f}"


def to_date(value: Any) -> Optional[date]:
    """date from a date, datetime or ISO string; None when unparseable"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def format_date(value: Any, fmt: str = "short", locale: str = DEFAULT_LOCALE) -> str:
    """Format a date as 'short', 'iso', 'medium' or 'long'"""
    if value is None or value == "":
        return ""
    labels = _labels(locale)
    day = to_date(value)
    if day is None:
        return labels["invalid_date"]

    if fmt == "iso":
        return day.isoformat()

    month = labels["months"][day.month - 1]
    if fmt == "long":
        weekday = labels["weekdays"][(day.weekday() + 1) % 7]
        return labels["long_date"].format(weekday=weekday, month=month, day=day.day, year=day.year)
    if fmt == "medium":
        return labels["medium_date"].format(month_short=month[:3], day=day.day, year=day.year)

    return day.strftime(labels["short_date"])


def format_date_range(start_date: Any, end_date: Any = None, fmt: str = "short", locale: str = DEFAULT_LOCALE) -> str:
    start = format_date(start_date, fmt, locale)
    if not end_date:
        return _labels(locale)["since"].format(start=start)
    return f"{start} - {format_date(end_date, fmt, locale)}"


def format_status(is_active: Any, end_date: Any = None, today: Optional[date] = None, locale: str = DEFAULT_LOCALE) -> str:
    """
    Schedule status. An end date in the past means the schedule is finished,
    whatever is_active says.
    """
    labels = _labels(locale)["status"]
    if not is_active:
        return labels["inactive"]

    end = to_date(end_date)
    if end is not None:
        today = today or date.today()
        if end < today:
            return labels["finished"]
        return labels["active_until"]

    return labels["active"]


def format_expense_summary(expense: Optional[Dict[str, Any]], today: Optional[date] = None, locale: str = DEFAULT_LOCALE) -> Dict[str, str]:
    """Display block for a recurring expense document"""
    labels = _labels(locale)
    if not expense:
        return {
            "name": labels["unnamed"],
            "amount": format_amount(0),
            "frequency": labels["not_configured"],
            "status": labels["status"]["inactive"],
            "date_range": labels["no_dates"],
            "description": labels["unconfigured_expense"],
        }

    recurrence = expense.get("recurrence") or expense.get("recurring_config") or expense
    if not isinstance(recurrence, dict):
        recurrence = {}
    pattern = recurrence.get("pattern") or recurrence.get("frequency")
    interval = recurrence.get("interval") or 1
    frequency = format_frequency(pattern, interval, recurrence.get("config") or {}, locale)
    amount = format_amount(expense.get("amount"))

    return {
        "name": expense.get("description") or expense.get("name") or labels["unnamed"],
        "amount": amount,
        "frequency": frequency,
        "status": format_status(recurrence.get("is_active"), recurrence.get("end_date"), today, locale),
        "date_range": format_date_range(recurrence.get("start_date"), recurrence.get("end_date"), locale=locale),
        "description": f"{amount} - {frequency}",
    }
