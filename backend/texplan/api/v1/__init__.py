"""
API v1 Router - TexPlan
"""
from fastapi import APIRouter
from texplan.api.v1.endpoints import planning

router = APIRouter()

# Planning runs, purchase suggestions and approval
router.include_router(
    planning.router,
    prefix="/planning",
    tags=["planning"]
)
