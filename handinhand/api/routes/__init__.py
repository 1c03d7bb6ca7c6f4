"""
API routes package.

Combines the auth and product routers; exactly one handler per path.
"""

from fastapi import APIRouter

from handinhand.api.routes.auth import router as auth_router
from handinhand.api.routes.products import router as products_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(products_router)

__all__ = ["router"]
