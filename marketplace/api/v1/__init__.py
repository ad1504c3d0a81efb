from fastapi import APIRouter
from marketplace.features.auth.routes import router as auth_router
from marketplace.features.penalty.routes import router as penalty_router
from marketplace.features.admin.routes import router as admin_penalty_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
api_router.include_router(penalty_router, prefix="/penalty", tags=["Penalty"])
api_router.include_router(admin_penalty_router, prefix="/admin/penalty", tags=["Admin Penalty"])
