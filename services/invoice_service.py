"""
Invoice Service

Generates invoices from completed sales and drives their lifecycle
(print, cancel) against MongoDB.

Collections used:
- invoices: invoice documents (never deleted)
- sales: read to build the invoice, linked back through invoice_id
- counters: yearly invoice number sequences

Totals are recomputed explicitly with Invoice.recompute_totals() before an
invoice with new items is written.
"""

import math
import re
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from config import get_settings
from models.invoice import (
    Invoice, InvoiceBarber, InvoiceClient, InvoiceItem, InvoiceMetadata,
    InvoiceStats, InvoiceStatus, DEFAULT_CLIENT_NAME, payment_method_label
)
from models.sale import Sale, SaleStatus, SaleType
from services.invoice_numbering import generate_invoice_number

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {"created_at", "invoice_number", "total", "status"}


class InvoiceNotFoundError(Exception):
    pass


class SaleNotFoundError(Exception):
    pass


class InvoiceStateError(Exception):
    """Operation not allowed in the invoice's (or sale's) current state"""
    pass


def id_query(value: str) -> Dict[str, Any]:
    """Match an _id stored either as a string or as an ObjectId"""
    if ObjectId.is_valid(value):
        return {"_id": {"$in": [value, ObjectId(value)]}}
    return {"_id": value}


def build_invoice_query(filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Mongo filter for invoice listings and stats"""
    filters = filters or {}
    query: Dict[str, Any] = {}

    if filters.get("status"):
        query["status"] = filters["status"]

    if filters.get("barber_id"):
        query["barber.id"] = filters["barber_id"]

    if filters.get("start_date") or filters.get("end_date"):
        query["created_at"] = {}
        if filters.get("start_date"):
            query["created_at"]["$gte"] = filters["start_date"]
        if filters.get("end_date"):
            query["created_at"]["$lte"] = filters["end_date"]

    if filters.get("invoice_number"):
        query["invoice_number"] = {
            "$regex": re.escape(filters["invoice_number"]),
            "$options": "i"
        }

    return query


class InvoiceService:
    """
    Invoice use cases.

    The database handle is passed in; nothing here reads module-level
    connection state.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.settings = get_settings()

    # ============================================================
    # GENERATION
    # ============================================================

    async def generate_from_sale(self, sale_id: str, options: Optional[Dict[str, Any]] = None) -> Invoice:
        """
        Create the invoice of a completed sale.

        Returns the sale's existing invoice unless options["allow_duplicate"].
        DuplicateKeyError from the unique invoice_number index propagates.
        """
        options = options or {}
        logger.info(f"Generating invoice for sale {sale_id}")

        sale_doc = await self.db.sales.find_one(id_query(sale_id))
        if not sale_doc:
            raise SaleNotFoundError(f"Sale {sale_id} not found")

        sale_doc["_id"] = str(sale_doc["_id"])
        for ref in ("barber_id", "product_id", "service_id", "invoice_id"):
            if sale_doc.get(ref) is not None:
                sale_doc[ref] = str(sale_doc[ref])
        sale = Sale(**sale_doc)

        if sale.status != SaleStatus.COMPLETED:
            raise InvoiceStateError(f"Sale {sale_id} is {sale.status}, only completed sales can be invoiced")

        if not options.get("allow_duplicate"):
            existing = await self.db.invoices.find_one({"sale_id": sale.id})
            if existing:
                logger.warning(f"Invoice already exists for sale {sale.id}: {existing['invoice_number']}")
                return Invoice(**existing)

        invoice_number = await generate_invoice_number(self.db)

        invoice = Invoice(
            invoice_number=invoice_number,
            sale_id=sale.id,
            barber=InvoiceBarber(
                id=sale.barber_id,
                name=sale.barber_name or "Barber",
                phone=sale.barber_phone
            ),
            client=InvoiceClient(name=sale.customer_name or DEFAULT_CLIENT_NAME),
            items=[
                InvoiceItem(
                    description=sale.item_description,
                    quantity=sale.quantity,
                    unit_price=sale.unit_price,
                    product_id=sale.product_id if sale.type == SaleType.PRODUCT else None,
                    service_id=sale.service_id if sale.type == SaleType.SERVICE else None
                )
            ],
            payment_method=sale.invoice_payment_method,
            notes=options.get("notes") or sale.notes,
            metadata=InvoiceMetadata(
                source=options.get("source") or "pos",
                device=options.get("device"),
                ip_address=options.get("ip_address"),
                location=options.get("location")
            )
        )
        invoice.recompute_totals()

        await self.db.invoices.insert_one(invoice.to_document())

        await self.db.sales.update_one(
            id_query(sale.id),
            {"$set": {"invoice_id": invoice.id, "updated_at": datetime.utcnow()}}
        )

        logger.info(f"Invoice {invoice_number} generated for sale {sale.id} (total={invoice.total})")
        return invoice

    # ============================================================
    # QUERIES
    # ============================================================

    async def get_invoice(self, invoice_id: str) -> Invoice:
        doc = await self.db.invoices.find_one({"_id": invoice_id})
        if not doc:
            logger.warning(f"Invoice {invoice_id} not found")
            raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")
        return Invoice(**doc)

    async def get_invoices_by_sale(self, sale_id: str) -> List[Invoice]:
        cursor = self.db.invoices.find({"sale_id": sale_id}).sort("created_at", DESCENDING)
        return [Invoice(**doc) async for doc in cursor]

    async def list_invoices(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "created_at",
        sort_order: str = "desc"
    ) -> Dict[str, Any]:
        """Filtered, paginated invoice listing"""
        page = max(page, 1)
        limit = max(limit, 1)
        if sort_by not in SORTABLE_FIELDS:
            sort_by = "created_at"
        direction = ASCENDING if sort_order == "asc" else DESCENDING

        query = build_invoice_query(filters)
        cursor = self.db.invoices.find(query).sort(sort_by, direction).skip((page - 1) * limit).limit(limit)
        invoices = [Invoice(**doc) async for doc in cursor]
        total = await self.db.invoices.count_documents(query)

        return {
            "invoices": invoices,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "total_pages": math.ceil(total / limit)
            }
        }

    async def get_stats(self, filters: Optional[Dict[str, Any]] = None) -> InvoiceStats:
        pipeline = [
            {"$match": build_invoice_query(filters)},
            {
                "$group": {
                    "_id": None,
                    "total_invoices": {"$sum": 1},
                    "total_amount": {"$sum": "$total"},
                    "total_tax": {"$sum": "$tax"},
                    "total_discount": {"$sum": "$discount"},
                    "printed_invoices": {
                        "$sum": {"$cond": [{"$eq": ["$print_info.printed", True]}, 1, 0]}
                    },
                    "cancelled_invoices": {
                        "$sum": {"$cond": [{"$eq": ["$status", InvoiceStatus.CANCELLED.value]}, 1, 0]}
                    }
                }
            }
        ]

        results = await self.db.invoices.aggregate(pipeline).to_list(length=1)
        if not results:
            return InvoiceStats()

        stats = results[0]
        stats.pop("_id", None)
        return InvoiceStats(**stats)

    # ============================================================
    # LIFECYCLE
    # ============================================================

    async def mark_as_printed(self, invoice_id: str, user_id: Optional[str] = None) -> Invoice:
        """
        Record one print with atomic updates, so overlapping prints of the
        same invoice are all counted.

        printed_at is only set while it is still empty and only a pending
        invoice moves to printed.
        """
        now = datetime.utcnow()
        print_fields = {
            "print_info.printed": True,
            "print_info.last_printed_at": now,
            "updated_at": now
        }
        if user_id:
            print_fields["print_info.printed_by"] = user_id

        doc = await self.db.invoices.find_one_and_update(
            {"_id": invoice_id},
            {"$inc": {"print_info.print_count": 1}, "$set": print_fields},
            return_document=ReturnDocument.AFTER
        )
        if not doc:
            logger.warning(f"Invoice {invoice_id} not found")
            raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")

        await self.db.invoices.update_one(
            {"_id": invoice_id, "print_info.printed_at": None},
            {"$set": {"print_info.printed_at": now}}
        )
        await self.db.invoices.update_one(
            {"_id": invoice_id, "status": InvoiceStatus.PENDING.value},
            {"$set": {"status": InvoiceStatus.PRINTED.value}}
        )

        invoice = await self.get_invoice(invoice_id)
        logger.info(
            f"Invoice {invoice.invoice_number} printed by {user_id} "
            f"(print_count={invoice.print_info.print_count})"
        )
        return invoice

    async def cancel_invoice(self, invoice_id: str, reason: str) -> Invoice:
        """Cancel an invoice. Inventory is not restored here."""
        invoice = await self.get_invoice(invoice_id)

        if invoice.status == InvoiceStatus.CANCELLED:
            raise InvoiceStateError(f"Invoice {invoice.invoice_number} is already cancelled")

        invoice.cancel(reason)

        await self.db.invoices.update_one(
            {"_id": invoice.id},
            {"$set": {
                "status": invoice.status,
                "notes": invoice.notes,
                "updated_at": invoice.updated_at
            }}
        )

        logger.info(f"Invoice {invoice.invoice_number} cancelled: {reason}")
        return invoice

    async def format_for_print(self, invoice_id: str) -> Dict[str, Any]:
        invoice = await self.get_invoice(invoice_id)
        return invoice.format_for_print(
            business=self.settings.get_business_info(),
            utc_offset_hours=self.settings.utc_offset_hours
        )

    @staticmethod
    def payment_method_label(method: str) -> str:
        return payment_method_label(method)
