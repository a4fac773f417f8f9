"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter
from ihs_validity.api.v1 import analytics

api_router = APIRouter()

api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
