"""Translation of service failures into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from ..services.errors import InternalFault

logger = logging.getLogger(__name__)


def internal_error(action: str) -> HTTPException:
    """Log the active exception and return a generic 500 for the client."""
    logger.exception(f"Unexpected failure while trying to {action}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=InternalFault().to_dict())
