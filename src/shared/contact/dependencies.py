"""Request-scoped helpers for the contact routes."""

from fastapi import Request

from src.shared.contact.config import ContactSettings


def get_settings(request: Request) -> ContactSettings:
    """Dependency returning the settings the application was built with."""
    return request.app.state.settings


def get_client_ip(request: Request) -> str:
    """
    Get client IP address for rate limiting.

    X-Forwarded-For is only honoured when the service runs behind a trusted
    proxy; otherwise any client could pick its own rate limit bucket.
    """
    settings: ContactSettings = request.app.state.settings
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # Take the first IP in the chain
            return forwarded.split(",")[0].strip()
    # Fallback to direct connection
    return request.client.host if request.client else "unknown"
