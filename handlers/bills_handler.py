"""
handlers/bills_handler.py
-------------------------
Bill routes: listing, one-time bills, edits, lineage-aware deletes,
pay / unpay and payment history.
"""

from fastapi import APIRouter, Depends, Query

from handlers.dependencies import Services, get_services
from handlers.schemas import ObligationCreate, ObligationUpdate, PaymentRequest
from models.obligation import ObligationKind
from security.rate_limiter import rate_limited

router = APIRouter(prefix="/bills", tags=["bills"])

BILL = ObligationKind.BILL


@router.get("")
def list_bills(owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return [b.to_dict() for b in services.obligations.list_bills(owner_id)]


@router.post("", status_code=201)
def create_bill(
    payload: ObligationCreate,
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    bill = services.obligations.create_one_time(owner_id, BILL, payload.model_dump())
    return bill.to_dict()


# Declared before /{bill_id} so "payments" is not parsed as an id.
@router.get("/payments")
def payment_history(owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return services.obligations.payment_history(owner_id)


@router.get("/{bill_id}")
def get_bill(bill_id: int, owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return services.obligations.get(owner_id, bill_id, BILL).to_dict()


@router.put("/{bill_id}")
def update_bill(
    bill_id: int,
    payload: ObligationUpdate,
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    bill = services.obligations.update(owner_id, bill_id, payload.model_dump(exclude_unset=True), BILL)
    return bill.to_dict()


@router.delete("/{bill_id}")
def delete_bill(
    bill_id: int,
    delete_all: bool = Query(False, alias="deleteAll"),
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    deleted = services.obligations.delete(owner_id, bill_id, cascade=delete_all, kind=BILL)
    return {"deleted": deleted}


@router.post("/{bill_id}/pay")
def pay_bill(
    bill_id: int,
    payload: PaymentRequest = PaymentRequest(),
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    bill, entry = services.payments.mark_paid(owner_id, bill_id, payload.paymentDate, kind=BILL)
    return {"bill": bill.to_dict(), "payment": entry.to_dict()}


@router.put("/{bill_id}/unpay")
def unpay_bill(bill_id: int, owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return services.payments.mark_unpaid(owner_id, bill_id, kind=BILL).to_dict()


@router.get("/{bill_id}/payments")
def bill_payments(bill_id: int, owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return services.obligations.payments_for(owner_id, bill_id)
