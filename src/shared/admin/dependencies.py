"""Admin authentication dependencies."""

import hmac
from fastapi import Depends, HTTPException, status, Header
from typing import Optional

from src.shared.contact.config import ContactSettings
from src.shared.contact.dependencies import get_settings


def verify_admin(
    x_admin_secret: Optional[str] = Header(None, alias="X-Admin-Secret"),
    settings: ContactSettings = Depends(get_settings),
) -> None:
    """
    Verify the X-Admin-Secret header against the configured admin secret.

    Raises HTTPException if the secret is not configured, missing or wrong.
    """
    admin_secret = settings.admin_secret

    if not admin_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin authentication not configured"
        )

    if not x_admin_secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin secret required. Provide X-Admin-Secret header."
        )

    if not hmac.compare_digest(x_admin_secret.encode("utf-8"), admin_secret.encode("utf-8")):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin secret"
        )
