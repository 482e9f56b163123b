from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from models.invoice import PaymentMethod

class SaleType(str, Enum):
    SERVICE = "service"
    PRODUCT = "product"

class SaleStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

# Sales accept any payment method string (dynamic wallets included);
# invoices only know four.
SALE_PAYMENT_METHOD_MAP = {
    "cash": PaymentMethod.CASH,
    "efectivo": PaymentMethod.CASH,
    "debit": PaymentMethod.CARD,
    "credit": PaymentMethod.CARD,
    "card": PaymentMethod.CARD,
    "tarjeta": PaymentMethod.CARD,
    "nequi": PaymentMethod.TRANSFER,
    "daviplata": PaymentMethod.TRANSFER,
    "nu": PaymentMethod.TRANSFER,
    "bancolombia": PaymentMethod.TRANSFER,
    "digital": PaymentMethod.TRANSFER,
    "transfer": PaymentMethod.TRANSFER,
    "transferencia": PaymentMethod.TRANSFER,
    "mixed": PaymentMethod.MIXED,
    "mixto": PaymentMethod.MIXED,
}

class Sale(BaseModel):
    """Completed sale, read when generating its invoice"""
    id: str = Field(alias="_id")
    type: SaleType
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    service_id: Optional[str] = None
    service_name: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    unit_price: float = Field(default=0.0, ge=0)
    total_amount: float = Field(default=0.0, ge=0)
    barber_id: str
    barber_name: Optional[str] = None
    barber_phone: Optional[str] = None
    payment_method: str = "cash"
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    status: SaleStatus = SaleStatus.COMPLETED
    invoice_id: Optional[str] = None

    class Config:
        populate_by_name = True
        use_enum_values = True
        validate_default = True

    @property
    def item_description(self) -> str:
        if self.type == SaleType.SERVICE:
            return self.service_name or "Service"
        return self.product_name or "Product"

    @property
    def invoice_payment_method(self) -> str:
        method = (self.payment_method or "").strip().lower()
        if not method:
            return PaymentMethod.CASH.value
        # Unknown dynamic methods are digital wallets
        return SALE_PAYMENT_METHOD_MAP.get(method, PaymentMethod.TRANSFER).value
