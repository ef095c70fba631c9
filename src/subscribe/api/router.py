"""Main router that aggregates all route modules."""

from fastapi import APIRouter

from subscribe.api import status, subscriptions


def build_router(base_path: str = "") -> APIRouter:
    """Mount every route module under ``base_path``."""
    router = APIRouter(prefix=base_path)
    router.include_router(subscriptions.router, tags=["subscriptions"])
    router.include_router(status.router, tags=["status"])
    return router
