"""
handlers/recurring_handler.py
------------------------------
Payee routes and the on-demand "check recurring" pass.
"""

from fastapi import APIRouter, Depends, Response

from handlers.dependencies import Services, get_services
from handlers.schemas import TemplateCreate, TemplateUpdate
from models.recurring import TemplateKind
from security.rate_limiter import rate_limited

router = APIRouter(tags=["recurring"])


@router.get("/payees")
def list_payees(owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return [t.to_dict() for t in services.recurring.list_templates(owner_id, TemplateKind.PAYEE)]


@router.post("/payees", status_code=201)
def create_payee(
    payload: TemplateCreate,
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    payee, created = services.recurring.create_template(owner_id, TemplateKind.PAYEE, payload.model_dump())
    return {"payee": payee.to_dict(), "generated": created}


@router.put("/payees/{payee_id}")
def update_payee(
    payee_id: int,
    payload: TemplateUpdate,
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    payee, updated = services.recurring.update_template(
        owner_id, payee_id, payload.model_dump(exclude_unset=True), kind=TemplateKind.PAYEE
    )
    return {"payee": payee.to_dict(), "updated": updated}


@router.delete("/payees/{payee_id}", status_code=204)
def delete_payee(payee_id: int, owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    services.recurring.delete_template(owner_id, payee_id, TemplateKind.PAYEE)
    return Response(status_code=204)


@router.get("/check-recurring")
def check_recurring(owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    report = services.recurring.check_recurring(owner_id)
    return {
        "created": sum(r.detail or 0 for r in report.succeeded),
        "report": report.to_dict(),
    }
