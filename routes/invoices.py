"""Invoice Routes"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from typing import List, Optional
from datetime import datetime
from pymongo.errors import DuplicateKeyError
from database.mongodb import get_database
from services.auth_deps import get_current_user, require_admin
from services.invoice_service import (
    InvoiceService, InvoiceNotFoundError, SaleNotFoundError, InvoiceStateError
)
from models.invoice import (
    InvoiceGenerateRequest, InvoiceCancelRequest, InvoiceResponse,
    InvoiceListResponse, InvoiceStats, InvoiceStatus
)
from models.user import User
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


def get_invoice_service(db=Depends(get_database)) -> InvoiceService:
    return InvoiceService(db)


def scoped_barber_id(current_user: User, barber_id: Optional[str]) -> Optional[str]:
    """Barbers only see their own invoices; admins may filter by any barber"""
    if current_user.is_admin:
        return barber_id
    return current_user.barber_id or current_user.id


def not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


@router.post("/generate/{sale_id}", response_model=InvoiceResponse)
async def generate_invoice(
    sale_id: str,
    request: Request,
    options: Optional[InvoiceGenerateRequest] = None,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service)
):
    """Generate the invoice of a completed sale"""
    options = options or InvoiceGenerateRequest()
    option_dict = options.model_dump()
    option_dict["ip_address"] = request.client.host if request.client else None

    try:
        invoice = await service.generate_from_sale(sale_id, option_dict)
    except SaleNotFoundError:
        raise not_found("Sale not found")
    except InvoiceStateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DuplicateKeyError:
        logger.error(f"Invoice number collision while invoicing sale {sale_id}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Invoice number already in use, retry the request"
        )

    return invoice.to_response()


@router.post("/print/{invoice_id}")
async def print_invoice(
    invoice_id: str,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service)
):
    """Return the receipt view model and record the print"""
    try:
        receipt = await service.format_for_print(invoice_id)
        invoice = await service.mark_as_printed(invoice_id, current_user.id)
    except InvoiceNotFoundError:
        raise not_found("Invoice not found")

    return {
        "message": "Invoice printed",
        "invoice": invoice.to_response(),
        "receipt": receipt
    }


@router.get("/stats", response_model=InvoiceStats)
async def get_invoice_stats(
    barber_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service)
):
    """Invoice totals (barbers: own invoices, admins: all)"""
    return await service.get_stats({
        "barber_id": scoped_barber_id(current_user, barber_id),
        "start_date": start_date,
        "end_date": end_date
    })


@router.get("/sale/{sale_id}", response_model=List[InvoiceResponse])
async def get_invoices_by_sale(
    sale_id: str,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service)
):
    """Get all invoices of a sale"""
    invoices = await service.get_invoices_by_sale(sale_id)
    return [invoice.to_response() for invoice in invoices]


@router.get("/{invoice_id}/receipt")
async def get_invoice_receipt(
    invoice_id: str,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service)
):
    """Receipt view model without recording a print"""
    try:
        return await service.format_for_print(invoice_id)
    except InvoiceNotFoundError:
        raise not_found("Invoice not found")


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service)
):
    """Get a specific invoice"""
    try:
        invoice = await service.get_invoice(invoice_id)
    except InvoiceNotFoundError:
        raise not_found("Invoice not found")
    return invoice.to_response()


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    barber_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    invoice_number: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service)
):
    """List invoices with filters (barbers: own invoices, admins: all)"""
    result = await service.list_invoices(
        filters={
            "status": status_filter.value if status_filter else None,
            "barber_id": scoped_barber_id(current_user, barber_id),
            "start_date": start_date,
            "end_date": end_date,
            "invoice_number": invoice_number
        },
        page=page,
        limit=min(limit, 100),
        sort_by=sort_by,
        sort_order=sort_order
    )
    return {
        "invoices": [invoice.to_response() for invoice in result["invoices"]],
        "pagination": result["pagination"]
    }


@router.put("/{invoice_id}/cancel", response_model=InvoiceResponse)
async def cancel_invoice(
    invoice_id: str,
    cancel_data: InvoiceCancelRequest,
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service)
):
    """Cancel an invoice (admin only)"""
    try:
        invoice = await service.cancel_invoice(invoice_id, cancel_data.reason)
    except InvoiceNotFoundError:
        raise not_found("Invoice not found")
    except InvoiceStateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"Invoice {invoice.invoice_number} cancelled by {current_user.id}")
    return invoice.to_response()
