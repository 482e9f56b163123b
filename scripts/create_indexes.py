"""
Index & Counter Maintenance

Creates the invoice and expense indexes and raises each yearly invoice
counter to the highest invoice number already stored, so the next number
issued continues the existing sequence.

Run with: python scripts/create_indexes.py [--year 2026 ...]
"""

import argparse
import asyncio
import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv

load_dotenv()

from config import get_settings
from database.mongodb import ensure_indexes
from services.invoice_numbering import sync_invoice_counter, counter_key


async def main(years):
    settings = get_settings()
    client = AsyncIOMotorClient(os.environ.get("MONGO_URL", settings.mongo_url))
    db = client[os.environ.get("DB_NAME", settings.db_name)]

    print("=" * 60)
    print("INDEXES")
    print("=" * 60)
    await ensure_indexes(db)
    for name in ("invoices", "expenses"):
        indexes = await db[name].index_information()
        print(f"  {name}: {', '.join(sorted(indexes))}")

    print()
    print("=" * 60)
    print("INVOICE COUNTERS")
    print("=" * 60)
    for year in years:
        highest = await sync_invoice_counter(db, year, settings.invoice_prefix)
        counter = await db.counters.find_one({"_id": counter_key(settings.invoice_prefix, year)})
        print(f"  {year}: highest stored={highest}, counter={counter['seq'] if counter else 0}")

    client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create indexes and sync invoice counters")
    parser.add_argument("--year", type=int, action="append", help="Year to sync (repeatable, default: current year)")
    args = parser.parse_args()

    asyncio.run(main(args.year or [datetime.utcnow().year]))
