"""
Invoice Models

Invoices are generated from completed sales and printed on the shop's
receipt printer.

Collection: invoices

RULES:
- invoice_number is unique: FAC-<year>-<5-digit sequence>
- item subtotal = quantity * unit_price
- total = subtotal + tax - discount (tax and discount are inputs, never derived)
- status only moves forward: pending -> printed, any -> cancelled
- print_count only ever increments
- invoices are never deleted
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, timedelta, timezone
from enum import Enum
import uuid

DEFAULT_INVOICE_PREFIX = "FAC"
DEFAULT_CLIENT_NAME = "General customer"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PRINTED = "printed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    MIXED = "mixed"


PAYMENT_METHOD_LABELS = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.CARD: "Card",
    PaymentMethod.TRANSFER: "Transfer",
    PaymentMethod.MIXED: "Mixed payment",
}


class InvoiceSource(str, Enum):
    POS = "pos"
    ADMIN = "admin"
    MOBILE = "mobile"
    API = "api"


class InvoiceItem(BaseModel):
    """Invoice line item"""
    description: str
    quantity: int = Field(..., ge=1)
    unit_price: float = Field(..., ge=0)
    subtotal: float = 0.0
    product_id: Optional[str] = None
    service_id: Optional[str] = None


class InvoiceBarber(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None


class InvoiceClient(BaseModel):
    name: str = DEFAULT_CLIENT_NAME
    phone: Optional[str] = None
    email: Optional[str] = None
    document: Optional[str] = None  # CC, NIT, etc.


class PrintInfo(BaseModel):
    printed: bool = False
    printed_at: Optional[datetime] = None  # first print
    printed_by: Optional[str] = None
    print_count: int = 0
    last_printed_at: Optional[datetime] = None


class InvoiceMetadata(BaseModel):
    source: InvoiceSource = InvoiceSource.POS
    device: Optional[str] = None
    ip_address: Optional[str] = None
    location: Optional[str] = None

    class Config:
        use_enum_values = True
        validate_default = True


class Invoice(BaseModel):
    """Invoice document with its lifecycle operations"""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, alias="_id")
    invoice_number: str
    sale_id: str
    barber: InvoiceBarber
    client: InvoiceClient = Field(default_factory=InvoiceClient)
    items: List[InvoiceItem] = []
    subtotal: float = Field(default=0.0, ge=0)
    tax: float = Field(default=0.0, ge=0)
    discount: float = Field(default=0.0, ge=0)
    total: float = Field(default=0.0, ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    status: InvoiceStatus = InvoiceStatus.PENDING
    print_info: PrintInfo = Field(default_factory=PrintInfo)
    notes: Optional[str] = None
    metadata: InvoiceMetadata = Field(default_factory=InvoiceMetadata)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        populate_by_name = True
        use_enum_values = True
        validate_default = True

    @property
    def formatted_number(self) -> str:
        return self.invoice_number or f"{DEFAULT_INVOICE_PREFIX}-{self.id[-6:].upper()}"

    def recompute_totals(self) -> "Invoice":
        """
        Recalculate item subtotals, the invoice subtotal and the total.

        Must be called whenever items change, before the invoice is persisted.
        """
        for item in self.items:
            item.subtotal = item.quantity * item.unit_price

        subtotal = sum(item.subtotal for item in self.items)
        total = subtotal + (self.tax or 0) - (self.discount or 0)
        if total < 0:
            raise ValueError(
                f"Invoice total cannot be negative (subtotal={subtotal}, "
                f"tax={self.tax}, discount={self.discount})"
            )

        self.subtotal = subtotal
        self.total = total
        return self

    def mark_as_printed(self, user_id: Optional[str] = None, now: Optional[datetime] = None) -> "Invoice":
        """Record one print. The first print moves a pending invoice to printed."""
        now = now or datetime.utcnow()
        info = self.print_info

        info.printed = True
        info.printed_at = info.printed_at or now
        info.last_printed_at = now
        info.print_count = (info.print_count or 0) + 1

        if user_id:
            info.printed_by = user_id

        if self.status == InvoiceStatus.PENDING:
            self.status = InvoiceStatus.PRINTED.value

        self.updated_at = now
        return self

    def cancel(self, reason: str, now: Optional[datetime] = None) -> "Invoice":
        """Cancel the invoice. Print history is left as is."""
        note = f"Cancelled: {reason}"
        self.status = InvoiceStatus.CANCELLED.value
        self.notes = f"{self.notes}\n{note}" if self.notes else note
        self.updated_at = now or datetime.utcnow()
        return self

    def format_for_print(self, business: dict, utc_offset_hours: int = 0) -> dict:
        """View model consumed by the receipt printer"""
        created_at = self.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        local_time = created_at.astimezone(timezone(timedelta(hours=utc_offset_hours)))

        return {
            "business": business,
            "invoice": {
                "number": self.formatted_number,
                "date": local_time.strftime("%B %d, %Y, %I:%M %p"),
                "date_iso": self.created_at.isoformat(),
            },
            "barber": {
                "name": self.barber.name,
                "phone": self.barber.phone,
            },
            "client": {
                "name": self.client.name or DEFAULT_CLIENT_NAME,
                "phone": self.client.phone,
                "email": self.client.email,
            },
            "items": [
                {
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "subtotal": item.subtotal,
                }
                for item in self.items
            ],
            "totals": {
                "subtotal": self.subtotal,
                "tax": self.tax,
                "discount": self.discount,
                "total": self.total,
            },
            "payment": {
                "method": self.payment_method,
                "method_label": payment_method_label(self.payment_method),
            },
            "notes": self.notes,
            "print_count": self.print_info.print_count,
            "is_reprint": self.print_info.print_count > 0,
        }

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)

    def to_response(self) -> "InvoiceResponse":
        return InvoiceResponse(
            id=self.id,
            formatted_number=self.formatted_number,
            **self.model_dump(exclude={"id"})
        )


def payment_method_label(method: str) -> str:
    """Human label for a payment method, the raw value when unknown"""
    try:
        return PAYMENT_METHOD_LABELS[PaymentMethod(method)]
    except ValueError:
        return method


# ============================================================
# API MODELS
# ============================================================

class InvoiceGenerateRequest(BaseModel):
    """Options for generating an invoice from a sale"""
    notes: Optional[str] = Field(None, max_length=500)
    source: InvoiceSource = InvoiceSource.POS
    device: Optional[str] = None
    location: Optional[str] = None
    allow_duplicate: bool = False


class InvoiceCancelRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=200)


class InvoiceResponse(BaseModel):
    """Invoice response model"""
    id: str
    invoice_number: str
    formatted_number: str
    sale_id: str
    barber: InvoiceBarber
    client: InvoiceClient
    items: List[InvoiceItem] = []
    subtotal: float
    tax: float
    discount: float
    total: float
    payment_method: str
    status: str
    print_info: PrintInfo
    notes: Optional[str] = None
    metadata: InvoiceMetadata
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class InvoiceListResponse(BaseModel):
    invoices: List[InvoiceResponse]
    pagination: Pagination


class InvoiceStats(BaseModel):
    total_invoices: int = 0
    total_amount: float = 0.0
    total_tax: float = 0.0
    total_discount: float = 0.0
    printed_invoices: int = 0
    cancelled_invoices: int = 0


# ============================================================
# INDEX DEFINITION
# ============================================================

INVOICES_INDEXES = [
    {
        # Backstop for numbering: a duplicate number is rejected, never overwritten
        "keys": [("invoice_number", 1)],
        "unique": True,
        "name": "invoice_number_unique"
    },
    {
        "keys": [("sale_id", 1)],
        "name": "sale_id_idx"
    },
    {
        "keys": [("barber.id", 1), ("created_at", -1)],
        "name": "barber_created_at_idx"
    },
    {
        "keys": [("status", 1), ("created_at", -1)],
        "name": "status_created_at_idx"
    },
    {
        "keys": [("created_at", -1)],
        "name": "created_at_desc_idx"
    },
]
