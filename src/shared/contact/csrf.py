"""CSRF token service for the contact form."""

import hmac
import secrets
import time
from typing import Callable, Optional

from src.shared.contact.config import ContactSettings
from src.shared.contact.database import FormSession

TOKEN_BYTES = 32  # 256 bits, rendered as 64 hex characters


class CsrfTokenService:
    """Issues and validates anti-forgery tokens bound to a form session."""

    def __init__(self, settings: ContactSettings, clock: Callable[[], float] = time.time):
        self.token_lifetime = settings.csrf_token_lifetime
        self.clock = clock

    def issue(self, form_session: FormSession) -> str:
        """
        Generate a fresh token and store it on the session.

        Also stamps form_rendered_at when the session has none yet.
        Does NOT commit - caller must commit.
        """
        token = secrets.token_hex(TOKEN_BYTES)
        now = self.clock()
        form_session.csrf_token = token
        form_session.csrf_issued_at = now
        if form_session.form_rendered_at is None:
            form_session.form_rendered_at = now
        return token

    def validate(self, form_session: Optional[FormSession], candidate: Optional[str]) -> bool:
        """
        Check candidate against the session's token.

        An expired token is cleared from the session as a side effect.
        The comparison is constant time.
        """
        if form_session is None or not form_session.csrf_token or form_session.csrf_issued_at is None:
            return False

        if self.clock() - form_session.csrf_issued_at > self.token_lifetime:
            self.invalidate(form_session)
            return False

        expected = form_session.csrf_token.encode("utf-8")
        provided = (candidate or "").encode("utf-8")
        return hmac.compare_digest(expected, provided)

    @staticmethod
    def invalidate(form_session: Optional[FormSession]) -> None:
        """Clear the stored token so it cannot be used again."""
        if form_session is None:
            return
        form_session.csrf_token = None
        form_session.csrf_issued_at = None
