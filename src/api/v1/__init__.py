"""
API v1 router.
"""

from fastapi import APIRouter

from .endpoints import health, lti_apps

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(lti_apps.router, tags=["lti-apps"])
