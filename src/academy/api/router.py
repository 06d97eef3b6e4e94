"""Main API router that aggregates all route modules."""

from fastapi import APIRouter

from academy.api import access, auth, health, webhooks

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(access.router, tags=["access"])

# Payment events are mounted outside /api at /webhooks
webhooks_router = APIRouter()
webhooks_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
