"""API v1 router aggregating all endpoint routers.

All endpoints are mounted under the v1_prefix configuration
(``/api/v1/lot-register`` by default).
"""

from __future__ import annotations

from fastapi import APIRouter

from app.api.v1.endpoints import allergens, health, root


router = APIRouter()

router.include_router(root.router)
router.include_router(health.router)
router.include_router(allergens.router)
