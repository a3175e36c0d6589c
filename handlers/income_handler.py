"""
handlers/income_handler.py
--------------------------
Income routes: entries (one-time or generated from a source), receipt
tracking through pay / unpay, and income sources.
"""

from fastapi import APIRouter, Depends, Query

from handlers.dependencies import Services, get_services
from handlers.schemas import ObligationCreate, ObligationUpdate, PaymentRequest, TemplateCreate
from models.obligation import ObligationKind
from models.recurring import TemplateKind
from security.rate_limiter import rate_limited

router = APIRouter(prefix="/income", tags=["income"])

INCOME = ObligationKind.INCOME


@router.get("")
def list_income(owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return [i.to_dict() for i in services.obligations.list_incomes(owner_id)]


@router.post("", status_code=201)
def create_income(
    payload: ObligationCreate,
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    entry = services.obligations.create_one_time(owner_id, INCOME, payload.model_dump())
    return entry.to_dict()


@router.get("/sources")
def list_sources(owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return [t.to_dict() for t in services.recurring.list_templates(owner_id, TemplateKind.INCOME_SOURCE)]


@router.post("/sources", status_code=201)
def create_source(
    payload: TemplateCreate,
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    source, created = services.recurring.create_template(
        owner_id, TemplateKind.INCOME_SOURCE, payload.model_dump()
    )
    return {"source": source.to_dict(), "generated": created}


@router.get("/{income_id}")
def get_income(income_id: int, owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return services.obligations.get(owner_id, income_id, INCOME).to_dict()


@router.put("/{income_id}")
def update_income(
    income_id: int,
    payload: ObligationUpdate,
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    entry = services.obligations.update(owner_id, income_id, payload.model_dump(exclude_unset=True), INCOME)
    return entry.to_dict()


@router.post("/{income_id}/pay")
def receive_income(
    income_id: int,
    payload: PaymentRequest = PaymentRequest(),
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    entry, ledger = services.payments.mark_paid(owner_id, income_id, payload.paymentDate, kind=INCOME)
    return {"income": entry.to_dict(), "payment": ledger.to_dict()}


@router.put("/{income_id}/unpay")
def unreceive_income(income_id: int, owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return services.payments.mark_unpaid(owner_id, income_id, kind=INCOME).to_dict()


@router.delete("/{income_id}")
def delete_income(
    income_id: int,
    delete_all: bool = Query(False, alias="deleteAll"),
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    deleted = services.obligations.delete(owner_id, income_id, cascade=delete_all, kind=INCOME)
    return {"deleted": deleted}
