"""
API v1 routes.
"""

from fastapi import APIRouter

from src.api.v1 import customize

router = APIRouter()

router.include_router(customize.router, prefix="/customize", tags=["Customize"])
