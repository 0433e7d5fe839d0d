# delivery_date/app.py
from __future__ import annotations

import os
import logging

from fastapi import Depends, FastAPI

from .config import HOLIDAY_SEARCH_LIMIT, SHOPIFY_ADMIN_TOKEN, TAGS_CACHE_TTL_SECONDS
from .policy_service import DeliveryPolicyService, get_policy_service
from .routers.admin import router as admin_router
from .routers.policy import router as policy_router

app = FastAPI(title="Delivery date policy")
logger = logging.getLogger("uvicorn")


# ============================================================
# API routes
# ============================================================
@app.get("/api/health")
def health(service: DeliveryPolicyService = Depends(get_policy_service)):
    store = service.store
    return {
        "ok": True,
        "store": store.kind,
        "shopify_ready": bool(SHOPIFY_ADMIN_TOKEN),
        "tags_cache_ttl": TAGS_CACHE_TTL_SECONDS,
        "holiday_search_limit": HOLIDAY_SEARCH_LIMIT,
    }


app.include_router(policy_router)
app.include_router(admin_router)


# ============================================================
# Startup
# ============================================================
@app.on_event("startup")
def startup_event():
    store = get_policy_service().store
    logger.info("=== App startup: delivery settings store=%s ===", store.kind)
    if not SHOPIFY_ADMIN_TOKEN:
        logger.warning("SHOPIFY_ADMIN_TOKEN not set; product tag policy only applies to shops with their own token")


# ============================================================
# Local dev entrypoint
# ============================================================
if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    import uvicorn
    uvicorn.run("delivery_date.app:app", host=host, port=port, reload=True)
