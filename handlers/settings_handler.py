"""
handlers/settings_handler.py
----------------------------
Notification settings routes. Bodies are flat JSON objects whose keys
depend on the provider or notification type, so they are taken as dicts.
"""

from fastapi import APIRouter, Body, Depends

from handlers.dependencies import Services, get_services
from security.rate_limiter import rate_limited

router = APIRouter(prefix="/settings/notifications", tags=["settings"])


@router.get("")
def get_settings(owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    return services.settings.get_settings(owner_id)


@router.put("/provider/{provider_type}")
def update_provider(
    provider_type: str,
    body: dict = Body(...),
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    return services.settings.update_provider(owner_id, provider_type, body)


@router.put("/type/{notification_type}")
def update_type(
    notification_type: str,
    body: dict = Body(...),
    owner_id: int = Depends(rate_limited),
    services: Services = Depends(get_services),
):
    return services.settings.update_type(owner_id, notification_type, body)


@router.post("/test/{provider_type}")
def test_provider(provider_type: str, owner_id: int = Depends(rate_limited), services: Services = Depends(get_services)):
    services.settings.test_provider(owner_id, provider_type)
    return {"message": "Test notification sent"}
