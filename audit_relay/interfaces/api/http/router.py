"""
Name: HTTP Router Aggregator

Responsibilities:
  - Combine reporting and sample-entity routers into one APIRouter
  - Keep api.main unaware of individual router modules
"""

from fastapi import APIRouter

from .routers import audit_router, entities_router

router = APIRouter()
router.include_router(audit_router)
router.include_router(entities_router)
