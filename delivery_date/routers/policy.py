from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..availability import HolidayConfigurationError
from ..policy_service import DeliveryPolicyService, get_policy_service
from ..shopify_client import parse_product_ids_csv
from ..time_rules import parse_month

router = APIRouter()
logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
}


def no_store(payload: Dict[str, Any], status_code: int = 200) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=dict(NO_STORE_HEADERS))


def _shop(shop: Optional[str]) -> str:
    return (shop or "").strip()


def _holiday_error(shop: str, e: HolidayConfigurationError) -> JSONResponse:
    logger.error("Holiday configuration for %s leaves no business day: %s", shop, e)
    return no_store(
        {"ok": False, "reason": "holiday_configuration", "message": str(e)},
        status_code=500,
    )


# ---------------------------
# Storefront (app proxy)
# ---------------------------
@router.get("/apps/delivery-date/policy")
def get_policy(
    shop: Optional[str] = Query(None),
    product_ids: Optional[str] = Query(None, description="Comma-separated product IDs in the cart"),
    service: DeliveryPolicyService = Depends(get_policy_service),
):
    shop = _shop(shop)
    if not shop:
        return no_store({"ok": False, "error": "missing shop"}, status_code=400)
    try:
        result = service.policy(shop, parse_product_ids_csv(product_ids))
    except HolidayConfigurationError as e:
        return _holiday_error(shop, e)
    return no_store(result.as_dict())


@router.get("/apps/delivery-date/settings")
def get_storefront_settings(
    shop: Optional[str] = Query(None),
    service: DeliveryPolicyService = Depends(get_policy_service),
):
    shop = _shop(shop)
    if not shop:
        return no_store({"ok": False, "error": "missing shop"}, status_code=400)
    try:
        settings = service.storefront_settings(shop)
    except HolidayConfigurationError as e:
        return _holiday_error(shop, e)
    return no_store({"ok": True, "settings": settings})


@router.get("/apps/delivery-date/calendar")
def get_calendar(
    shop: Optional[str] = Query(None),
    month: Optional[str] = Query(None, description="YYYY-MM; defaults to the month of the earliest date"),
    product_ids: Optional[str] = Query(None),
    service: DeliveryPolicyService = Depends(get_policy_service),
):
    shop = _shop(shop)
    if not shop:
        return no_store({"ok": False, "error": "missing shop"}, status_code=400)
    first = None
    if month:
        first = parse_month(month)
        if first is None:
            return no_store({"ok": False, "error": "month must be YYYY-MM"}, status_code=400)
    try:
        payload = service.calendar(shop, first, parse_product_ids_csv(product_ids))
    except HolidayConfigurationError as e:
        return _holiday_error(shop, e)
    return no_store({"ok": True, **payload})


# ---------------------------
# Checkout / API
# ---------------------------
class ValidatePayload(BaseModel):
    delivery_date: Optional[str] = None
    delivery_time: Optional[str] = None
    product_ids: List[Union[int, str]] = Field(default_factory=list)


@router.post("/api/delivery/validate")
def api_validate(
    payload: ValidatePayload,
    shop: Optional[str] = Query(None),
    service: DeliveryPolicyService = Depends(get_policy_service),
):
    shop = _shop(shop)
    if not shop:
        return no_store(
            {"ok": False, "reason": "missing_shop", "message": "shop is required"},
            status_code=400,
        )
    try:
        verdict = service.validate(shop, payload.delivery_date, payload.delivery_time, payload.product_ids)
    except HolidayConfigurationError as e:
        return _holiday_error(shop, e)
    if not verdict.ok:
        logger.info("Rejected delivery selection for %s: %s", shop, verdict.reason)
        return no_store(verdict.as_dict(), status_code=400)
    return no_store(verdict.as_dict())


@router.get("/api/delivery/options")
def api_options(
    shop: Optional[str] = Query(None),
    service: DeliveryPolicyService = Depends(get_policy_service),
):
    shop = _shop(shop)
    if not shop:
        return no_store({"ok": False, "error": "missing shop"}, status_code=400)
    try:
        options = service.options(shop)
    except HolidayConfigurationError as e:
        return _holiday_error(shop, e)
    return no_store({"ok": True, **options})
