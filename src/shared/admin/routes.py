"""Admin routes for operating the contact form (rate limit reset, diagnostics, event review)."""

import os
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from pydantic import BaseModel

from src.shared.admin.dependencies import verify_admin
from src.shared.contact.config import ContactSettings
from src.shared.contact.database import get_db
from src.shared.contact.dependencies import get_settings
from src.shared.contact.event_log import EventType
from src.shared.contact.sessions import delete_all_sessions

router = APIRouter(prefix="/api/admin/contact", tags=["admin"], dependencies=[Depends(verify_admin)])

# Sample inputs for the validator self-test, with the result each should give
SAMPLE_NAMES = [
    ("Luis García", True),
    ("María José", True),
    ("Jean-Luc O'Neil", True),
    ("A", False),
    ("John123", False),
]
SAMPLE_EMAILS = [
    ("maria.jose@gmail.com", True),
    ("someone@yahoo.com", True),
    ("invalid-email", False),
    ("user@10minutemail.com", False),
]


class ResetRateLimitResponse(BaseModel):
    """Response schema for a rate limit reset."""
    success: bool = True
    message: str
    backup_file: Optional[str] = None
    sessions_removed: int


class ValidatorCheck(BaseModel):
    value: str
    expected: bool
    actual: bool


class ConfigCheckResponse(BaseModel):
    """Response schema for configuration diagnostics."""
    success: bool = True
    limits: Dict[str, Any]
    lists: Dict[str, int]
    log_file: str
    log_dir_writable: bool
    log_size: int
    log_max_size: int
    mail_backend: str
    smtp_configured: bool
    name_checks: List[ValidatorCheck]
    email_checks: List[ValidatorCheck]
    self_test_passed: bool


class EventsResponse(BaseModel):
    success: bool = True
    count: int
    events: List[Dict[str, Any]]


@router.post("/reset-rate-limit", response_model=ResetRateLimitResponse, status_code=status.HTTP_200_OK)
async def reset_rate_limit(request: Request, db: Session = Depends(get_db)):
    """
    Reset every rate limit.

    Backs the event log up beside itself, empties it, and deletes all form
    sessions (visitors fetch a new token on their next page load).
    """
    state = request.app.state
    backup_path, removed = await run_in_threadpool(_reset_limits, state, db)

    logging.warning(f"Contact rate limits reset by admin (sessions removed: {removed})")
    return ResetRateLimitResponse(
        message="Rate limits reset",
        backup_file=os.path.basename(backup_path) if backup_path else None,
        sessions_removed=removed,
    )


def _reset_limits(state, db: Session):
    backup_path = state.event_log.reset(state.clock())
    removed = delete_all_sessions(db)
    db.commit()
    return backup_path, removed


def _log_dir_writable(log_file: str) -> bool:
    log_dir = os.path.dirname(log_file) or "."
    if os.path.isdir(log_dir):
        return os.access(log_dir, os.W_OK)
    # Not created yet: the nearest existing parent decides
    parent = os.path.dirname(os.path.abspath(log_dir))
    while not os.path.isdir(parent):
        parent = os.path.dirname(parent)
    return os.access(parent, os.W_OK)


@router.get("/config-check", response_model=ConfigCheckResponse)
async def config_check(request: Request, settings: ContactSettings = Depends(get_settings)):
    """Configuration diagnostics plus a self-test of the field validator."""
    state = request.app.state
    validator = state.validator

    name_checks = [
        ValidatorCheck(value=value, expected=expected, actual=validator.validate_name(value))
        for value, expected in SAMPLE_NAMES
    ]
    email_checks = [
        ValidatorCheck(value=value, expected=expected, actual=validator.validate_email(value))
        for value, expected in SAMPLE_EMAILS
    ]
    self_test_passed = all(check.expected == check.actual for check in name_checks + email_checks)
    if not self_test_passed:
        logging.warning("Contact validator self-test failed; check the configured lists and bounds")

    return ConfigCheckResponse(
        limits={
            "max_requests_per_hour": settings.max_requests_per_hour,
            "max_requests_per_day": settings.max_requests_per_day,
            "csrf_token_lifetime": settings.csrf_token_lifetime,
            "session_timeout": settings.session_timeout,
            "honeypot_time_threshold": settings.honeypot_time_threshold,
            "max_links": settings.max_links,
        },
        lists={
            "suspicious_domains": len(settings.suspicious_domains),
            "spam_keywords": len(settings.spam_keywords),
            "spam_patterns": len(settings.spam_patterns),
            "suspicious_user_agents": len(settings.suspicious_user_agents),
            "bot_patterns": len(settings.bot_patterns),
        },
        log_file=settings.log_file,
        log_dir_writable=_log_dir_writable(settings.log_file),
        log_size=await run_in_threadpool(state.event_log.size),
        log_max_size=settings.log_max_size,
        mail_backend=settings.mail_backend,
        smtp_configured=bool(settings.smtp_user and settings.smtp_password),
        name_checks=name_checks,
        email_checks=email_checks,
        self_test_passed=self_test_passed,
    )


@router.get("/events", response_model=EventsResponse)
async def list_events(
    request: Request,
    limit: int = Query(50, ge=1, le=1000),
    ip: Optional[str] = None,
    event_type: Optional[EventType] = None,
):
    """Most recent security events, newest first."""
    events = await run_in_threadpool(
        request.app.state.event_log.recent_events, limit=limit, ip=ip, event_type=event_type
    )
    return EventsResponse(
        count=len(events),
        events=[event.model_dump(mode="json", by_alias=True) for event in events],
    )
