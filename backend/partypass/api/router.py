"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from partypass.api.routes import admin, auth, events, profile, scan, sellers, tickets
from partypass.core.config import get_settings

settings = get_settings()

api_router = APIRouter(prefix=settings.API_PREFIX)
api_router.include_router(auth.router)
api_router.include_router(profile.router)
api_router.include_router(events.router)
api_router.include_router(events.admin_router)
api_router.include_router(sellers.router)
api_router.include_router(tickets.router)
api_router.include_router(scan.router)
api_router.include_router(admin.router)
