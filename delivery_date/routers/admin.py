from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request

from ..config import ADMIN_KEY
from ..policy_service import DeliveryPolicyService, get_policy_service
from ..settings_parser import SettingsValidationError
from .policy import no_store

router = APIRouter(prefix="/api/delivery", tags=["admin"])
logger = logging.getLogger(__name__)


def _is_admin(request: Request) -> bool:
    if not ADMIN_KEY:
        return False
    hdr = request.headers.get("x-admin-key")
    return bool(hdr) and hdr == ADMIN_KEY


@router.put("/settings")
def put_settings(
    request: Request,
    changes: Dict[str, Any] = Body(...),
    shop: Optional[str] = Query(None),
    service: DeliveryPolicyService = Depends(get_policy_service),
):
    if not _is_admin(request):
        raise HTTPException(status_code=401, detail="Unauthorized")
    shop = (shop or "").strip()
    if not shop:
        return no_store({"ok": False, "error": "missing shop"}, status_code=400)
    try:
        config = service.store.update(shop, changes)
    except SettingsValidationError as e:
        logger.info("Rejected settings update for %s: %s", shop, e.errors)
        return no_store({"ok": False, "message": str(e), "errors": e.errors}, status_code=400)
    service.cache.clear()
    return no_store({"ok": True, "settings": config.model_dump(by_alias=True)})
