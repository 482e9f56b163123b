"""
Invoice Numbering

Invoice numbers are year-scoped sequences: FAC-2026-00001, FAC-2026-00002, ...

The next number comes from a counter document per prefix and year
(collection `counters`) incremented atomically with $inc. The first time a
year's counter is used it is seeded from the highest invoice number already
stored for that year, so numbers issued before the counter existed are
never reused.

The unique index on invoices.invoice_number stays in place: a duplicate
number raises DuplicateKeyError on insert and is left to the caller.
"""

import re
import logging
from datetime import datetime, timedelta
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from config import get_settings

logger = logging.getLogger(__name__)

SEQUENCE_DIGITS = 5


def format_invoice_number(year: int, sequence: int, prefix: str) -> str:
    return f"{prefix}-{year}-{str(sequence).zfill(SEQUENCE_DIGITS)}"


def parse_invoice_sequence(invoice_number: Optional[str]) -> Optional[int]:
    """Numeric suffix of an invoice number, None when it is malformed"""
    if not invoice_number:
        return None
    parts = invoice_number.rsplit("-", 1)
    if len(parts) != 2 or not parts[1].isdigit():
        return None
    return int(parts[1])


def counter_key(prefix: str, year: int) -> str:
    return f"invoice_number:{prefix}-{year}"


def current_year(now: Optional[datetime] = None) -> int:
    """Year in shop local time for a naive UTC timestamp"""
    settings = get_settings()
    now = now or datetime.utcnow()
    return (now + timedelta(hours=settings.utc_offset_hours)).year


async def find_highest_sequence(
    db: AsyncIOMotorDatabase,
    year: int,
    prefix: Optional[str] = None
) -> int:
    """
    Highest sequence already used by an invoice of `year`, 0 when none.

    Sequences are compared as numbers, so FAC-2026-100000 ranks above
    FAC-2026-99999. Only used to seed a year's counter.
    """
    prefix = prefix or get_settings().invoice_prefix
    cursor = db.invoices.find(
        {"invoice_number": {"$regex": f"^{re.escape(prefix)}-{year}-\\d+$"}},
        {"invoice_number": 1}
    )
    highest = 0
    async for doc in cursor:
        highest = max(highest, parse_invoice_sequence(doc.get("invoice_number")) or 0)
    return highest


async def sync_invoice_counter(
    db: AsyncIOMotorDatabase,
    year: int,
    prefix: Optional[str] = None
) -> int:
    """
    Raise the year's counter to the highest stored sequence.

    Uses $max, so concurrent or repeated calls never move the counter back.
    """
    prefix = prefix or get_settings().invoice_prefix
    highest = await find_highest_sequence(db, year, prefix)
    await db.counters.update_one(
        {"_id": counter_key(prefix, year)},
        {"$max": {"seq": highest}},
        upsert=True
    )
    return highest


async def generate_invoice_number(
    db: AsyncIOMotorDatabase,
    now: Optional[datetime] = None,
    prefix: Optional[str] = None
) -> str:
    """Reserve and return the next invoice number for the current year"""
    prefix = prefix or get_settings().invoice_prefix
    year = current_year(now)
    key = counter_key(prefix, year)

    if await db.counters.find_one({"_id": key}) is None:
        highest = await sync_invoice_counter(db, year, prefix)
        logger.info(f"Seeded invoice counter {key} at {highest}")

    counter = await db.counters.find_one_and_update(
        {"_id": key},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER
    )

    return format_invoice_number(year, counter["seq"], prefix)
