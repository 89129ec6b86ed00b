from fastapi import APIRouter
from api.v1.routes.erp import router as erp_router
from api.v1.routes.payments import router as payments_router
from api.v1.routes.retry_queue import router as retry_queue_router


# Main v1 router (includes all endpoints)
router = APIRouter()
router.include_router(erp_router)
router.include_router(payments_router)
router.include_router(retry_queue_router)
