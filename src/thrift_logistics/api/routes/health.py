"""Health endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ...db.session import session_scope
from ...models.domain import Campus, Zone

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check the database connection and reference data."""
    try:
        with session_scope() as session:
            campuses = session.scalar(select(func.count()).select_from(Campus)) or 0
            zones = session.scalar(select(func.count()).select_from(Zone)) or 0
    except SQLAlchemyError as exc:
        logger.warning(f"Database health check failed: {exc}")
        return {
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
    return {
        "connected": True,
        "campusesCount": campuses,
        "zonesCount": zones,
        "message": f"Database connected. Found {campuses} campuses and {zones} zones.",
    }
