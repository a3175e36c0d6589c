"""
handlers/categories_handler.py
------------------------------
Category routes. A category still referenced by bills, income or templates
cannot be deleted.
"""

from fastapi import APIRouter, Depends, Response

from handlers.dependencies import Services, get_services
from handlers.schemas import CategoryCreate
from security.rate_limiter import rate_limited

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("")
def list_categories(owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return [c.to_dict() for c in services.categories.list_categories(owner_id)]


@router.post("", status_code=201)
def create_category(
    payload: CategoryCreate,
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    return services.categories.create(owner_id, payload.name).to_dict()


@router.put("/{category_id}")
def rename_category(
    category_id: int,
    payload: CategoryCreate,
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    return services.categories.rename(owner_id, category_id, payload.name).to_dict()


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: int, owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    services.categories.delete(owner_id, category_id)
    return Response(status_code=204)
