from .audit import router as audit_router
from .entities import router as entities_router

__all__ = ["audit_router", "entities_router"]
