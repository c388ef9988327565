"""Contact Service - FastAPI server for the website contact form."""

import time
import logging
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shared.contact.config import ContactSettings
from src.shared.contact.database import create_session_factory, init_db
from src.shared.contact.csrf import CsrfTokenService
from src.shared.contact.event_log import EventLog
from src.shared.contact.abuse_gate import AbuseGate
from src.shared.contact.input_validation import FieldValidator
from src.shared.contact.email_utils import MailRelay
from src.shared.contact.submission import SubmissionOrchestrator
from src.shared.contact.routes import router as contact_router
from src.shared.admin.routes import router as admin_router

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'self'",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


def _detail_message(detail) -> str:
    if isinstance(detail, str):
        return detail
    return str(detail)


def create_app(
    settings: Optional[ContactSettings] = None,
    clock: Callable[[], float] = time.time,
    mail_relay: Optional[MailRelay] = None,
) -> FastAPI:
    """
    Build the contact service.

    Every component is constructed here from one settings value and hung
    off app.state, so tests can pass their own settings, clock and mail relay.
    """
    if settings is None:
        settings = ContactSettings.from_env()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Contact Service",
        description="Contact form submission with CSRF, abuse and spam protection",
        version="0.1.0"
    )

    session_factory = create_session_factory(settings.database_url)

    # Initialize database on startup
    @app.on_event("startup")
    async def startup_event():
        try:
            init_db(session_factory)
        except Exception as e:
            # Log error but don't crash the app; token issuance reports the failure per request
            logging.error(f"Database initialization error on startup: {str(e)}")

    event_log = EventLog(settings.log_file, settings.log_max_size, settings.log_keep_lines)
    token_service = CsrfTokenService(settings, clock)
    abuse_gate = AbuseGate(settings, event_log, clock)
    validator = FieldValidator(settings)
    if mail_relay is None:
        mail_relay = MailRelay(settings, clock)

    app.state.settings = settings
    app.state.clock = clock
    app.state.session_factory = session_factory
    app.state.event_log = event_log
    app.state.token_service = token_service
    app.state.abuse_gate = abuse_gate
    app.state.validator = validator
    app.state.mail_relay = mail_relay
    app.state.submission_orchestrator = SubmissionOrchestrator(
        settings, token_service, abuse_gate, validator, event_log, mail_relay, clock
    )

    app.include_router(contact_router)
    app.include_router(admin_router)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    # CORS configuration - added last so it wraps the security headers middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": _detail_message(exc.detail)},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": _detail_message(exc.detail)},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"success": False, "message": "Invalid request", "detail": exc.errors()},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logging.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"},
        )

    @app.get("/")
    async def root():
        return {"message": "Contact Service API is running", "status": "ok"}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
