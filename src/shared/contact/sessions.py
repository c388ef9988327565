"""Lookup and lifecycle of server-side form sessions."""

import secrets
import logging
from typing import Optional

from sqlalchemy.orm import Session

from src.shared.contact.database import FormSession


def generate_session_id() -> str:
    """Generate an opaque session identifier for the session cookie."""
    return secrets.token_urlsafe(32)


def load_form_session(db: Session, session_id: Optional[str], now: float, timeout: int) -> Optional[FormSession]:
    """
    Return the live session for session_id, or None.

    Sessions idle for longer than timeout are deleted and treated as absent.
    A live session has its last_seen_at refreshed. Does NOT commit.
    """
    if not session_id:
        return None

    form_session = db.query(FormSession).filter(FormSession.id == session_id).first()
    if form_session is None:
        return None

    if now - form_session.last_seen_at > timeout:
        db.delete(form_session)
        return None

    form_session.last_seen_at = now
    return form_session


def create_form_session(db: Session, now: float) -> FormSession:
    """Create and add a new empty form session. Does NOT commit."""
    form_session = FormSession(
        id=generate_session_id(),
        created_at=now,
        last_seen_at=now
    )
    db.add(form_session)
    return form_session


def purge_expired_sessions(db: Session, now: float, timeout: int) -> int:
    """Delete sessions idle for longer than timeout. Returns the number removed."""
    removed = db.query(FormSession).filter(
        FormSession.last_seen_at < now - timeout
    ).delete(synchronize_session=False)
    if removed:
        logging.info(f"Purged {removed} expired contact form sessions")
    return removed


def delete_all_sessions(db: Session) -> int:
    """Delete every form session (operator reset). Does NOT commit."""
    return db.query(FormSession).delete(synchronize_session=False)
