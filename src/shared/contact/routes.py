"""Contact routes: CSRF token issuance and form submission."""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from src.shared.contact.database import get_db
from src.shared.contact.dependencies import get_client_ip
from src.shared.contact.schemas import (
    ContactResponse,
    CsrfTokenResponse,
    TokenErrorResponse,
    RequestMetadata,
    SubmissionRequest,
)
from src.shared.contact.sessions import load_form_session, create_form_session, purge_expired_sessions
from src.shared.contact.submission import is_rejected_content_type

router = APIRouter(prefix="/api/contact", tags=["contact"])

# Registered explicitly so wrong methods get this API's JSON body rather than the framework default
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def _issue_token(state, db: Session, session_cookie):
    """Load or create the form session and issue its token. Commits. Returns (session_id, token)."""
    settings = state.settings
    now = state.clock()

    purge_expired_sessions(db, now, settings.session_timeout)
    form_session = load_form_session(db, session_cookie, now, settings.session_timeout)
    if form_session is None:
        form_session = create_form_session(db, now)
    session_id = form_session.id
    token = state.token_service.issue(form_session)
    db.commit()
    return session_id, token


def _handle_submission(state, db: Session, session_cookie, form, meta):
    """Run the pipeline against the visitor's form session and commit what it changed."""
    settings = state.settings
    form_session = load_form_session(db, session_cookie, state.clock(), settings.session_timeout)
    submission = SubmissionRequest.from_form(form, settings.honeypot_field_name, meta)

    outcome = state.submission_orchestrator.handle(submission, form_session)
    db.commit()
    return outcome


@router.api_route("/csrf-token", methods=ALL_METHODS, response_model=CsrfTokenResponse)
async def get_csrf_token(request: Request, db: Session = Depends(get_db)):
    """
    Issue a CSRF token for the contact form.

    Creates the server-side form session on first call and stamps the form
    render time used by the bot timing check.
    """
    if request.method != "GET":
        return JSONResponse(
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            content=TokenErrorResponse(error="Method not allowed").model_dump()
        )

    state = request.app.state
    settings = state.settings

    # Database work blocks, so it runs in the threadpool
    try:
        session_id, token = await run_in_threadpool(
            _issue_token, state, db, request.cookies.get(settings.session_cookie_name)
        )
    except Exception as e:
        db.rollback()
        logging.error(f"Failed to issue CSRF token: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=TokenErrorResponse(error="Error generating token").model_dump()
        )

    response = JSONResponse(content=CsrfTokenResponse(csrf_token=token).model_dump())
    response.headers["Cache-Control"] = "no-store"
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        max_age=settings.session_timeout,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    return response


@router.api_route("/submit", methods=ALL_METHODS, response_model=ContactResponse)
async def submit_contact_form(request: Request, db: Session = Depends(get_db)):
    """
    Submit the contact form.

    Features:
    - Rate limiting per IP from the security event log (hourly and daily windows)
    - Bot detection (user agent, fill time) and a honeypot field
    - Session-bound CSRF token, cleared after a successful send
    - Field validation with every failing field reported at once
    - Spam content filtering before the message is relayed by email
    """
    state = request.app.state
    settings = state.settings

    meta = RequestMetadata(
        method=request.method,
        content_type=request.headers.get("content-type", ""),
        remote_ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent", ""),
    )

    form = {}
    if meta.method == "POST" and not is_rejected_content_type(meta.content_type):
        form_data = await request.form()
        form = {key: value for key, value in form_data.items() if isinstance(value, str)}

    # Mail relay, log locking and the commit all block
    outcome = await run_in_threadpool(
        _handle_submission, state, db, request.cookies.get(settings.session_cookie_name), form, meta
    )

    return JSONResponse(status_code=outcome.status_code, content=outcome.to_response().model_dump())
