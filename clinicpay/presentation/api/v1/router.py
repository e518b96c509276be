from fastapi import APIRouter

from .installments import installments_router
from .plans import plans_router

router = APIRouter()

router.include_router(plans_router, tags=["Plans"])
router.include_router(installments_router, tags=["Installments"])
