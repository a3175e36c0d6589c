"""
security/auth.py
-----------------
Owner authentication for the HTTP API.

Login and sessions live in the upstream gateway, which forwards the
authenticated owner id in the ``X-Owner-Id`` header. Every route depends
on ``current_owner``; any owner not in the whitelist is blocked.
"""

from typing import Optional

from fastapi import Header, HTTPException

from config import ALLOWED_OWNER_IDS
from repositories.owner_repo import OwnerRepository
from utils.logger import get_logger

logger = get_logger(__name__)

_owners = OwnerRepository()


def current_owner(x_owner_id: Optional[str] = Header(None, alias="X-Owner-Id")) -> int:
    """
    FastAPI dependency resolving the calling owner.

    Behavior:
        - Missing header -> 401; non-numeric header -> 400.
        - If ALLOWED_OWNER_IDS is empty, ALL owners are allowed (dev mode).
        - If the list is set, other owners get 403 and the attempt is logged.
        - The owner row is created on first sight.
    """
    if x_owner_id is None or not x_owner_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-Owner-Id header")
    try:
        owner_id = int(x_owner_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="X-Owner-Id must be an integer")

    if ALLOWED_OWNER_IDS and owner_id not in ALLOWED_OWNER_IDS:
        logger.warning(f"🚫 Unauthorized access attempt: owner_id={owner_id}")
        raise HTTPException(status_code=403, detail="Owner not allowed")

    _owners.ensure_owner(owner_id)
    return owner_id
