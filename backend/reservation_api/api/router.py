"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from reservation_api.api.routes import customers, providers, reservations

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(reservations.router)
api_router.include_router(providers.router)
api_router.include_router(customers.router)
