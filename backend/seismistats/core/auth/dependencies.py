"""FastAPI dependencies for administrative access."""

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from seismistats.config import Settings, get_settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def require_admin_mode(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: Annotated[str | None, Depends(api_key_header)] = None,
) -> None:
    """
    Gate mutating sync operations.

    Raises 403 when admin mode is disabled, and 401 when an API key is
    configured but the X-API-Key header is missing or wrong.
    """
    if not settings.admin_mode:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin mode is disabled",
        )

    if settings.api_key:
        if api_key is None or not secrets.compare_digest(api_key, settings.api_key):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or missing API key",
                headers={"WWW-Authenticate": "APIKey"},
            )


AdminAccess = Depends(require_admin_mode)
