"""Admin authentication - shared API key for cron triggers and settings handlers."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from config import Settings, get_settings


def verify_api_key(
    x_api_key: Annotated[str, Header()],
    settings: Annotated[Settings, Depends(get_settings)],
) -> str:
    """Verify the X-API-Key header against the configured admin key."""
    if x_api_key != settings.admin_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
    return x_api_key
