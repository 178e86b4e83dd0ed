"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from filerelay.api import health, auth, files, payments, webhooks

api_router = APIRouter()

# Include route modules
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(files.router, tags=["files"])
api_router.include_router(payments.router, tags=["payments"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
