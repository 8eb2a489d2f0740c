"""
Security dependencies for the API.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from ghostguard.config import settings

logger = logging.getLogger(__name__)


async def verify_api_token(
    request: Request,
    api_key: Optional[str] = Header(None, alias="X-API-Key"),
):
    """
    Verify the API token from the X-API-Key header.

    In development mode (no token configured), this is bypassed.
    In production, a valid token is required.
    """
    if not settings.api_token:
        if settings.is_production:
            logger.warning("API token not configured in production mode!")
        return None

    client_host = request.client.host if request.client else "unknown"

    if not api_key:
        logger.warning(f"Missing API key from {client_host}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if api_key != settings.api_token:
        logger.warning(f"Invalid API key attempt from {client_host}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key
