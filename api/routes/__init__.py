from __future__ import annotations

from fastapi import APIRouter

from api.routes import alarms, events, health


def get_api_router() -> APIRouter:
    router = APIRouter()

    router.include_router(health.router, tags=["health"])
    router.include_router(events.router, tags=["events"])
    router.include_router(alarms.router, tags=["alarms"])

    return router
