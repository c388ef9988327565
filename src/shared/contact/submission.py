"""
Contact submission pipeline.

Every POST walks the same ordered stages:

    RECEIVED -> METHOD_CHECKED -> CONTENT_TYPE_CHECKED -> RATE_OK -> BOT_CHECKED
    -> CSRF_OK -> HONEYPOT_OK -> FIELDS_VALID -> SPAM_CLEAR -> RELAYED -> LOGGED
    -> RESPONDED

A failed check jumps straight to RESPONDED. Cheap request-level checks
(rate, bot, CSRF, honeypot) run before any field content is examined.
"""

import time
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from src.shared.contact.abuse_gate import AbuseGate, Rejection
from src.shared.contact.config import ContactSettings
from src.shared.contact.csrf import CsrfTokenService
from src.shared.contact.database import FormSession
from src.shared.contact.email_utils import MailRelay
from src.shared.contact.event_log import EventLog, EventType, LogEvent
from src.shared.contact.input_validation import FieldValidator, combine_errors
from src.shared.contact.schemas import ContactResponse, RequestMetadata, SubmissionRequest

ACCEPTED_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

MESSAGE_METHOD_NOT_ALLOWED = "Method not allowed"
MESSAGE_UNSUPPORTED_CONTENT = "Unsupported content type"
MESSAGE_RATE_LIMITED = "Too many requests. Please try again later."
MESSAGE_REJECTED = "Request rejected"
MESSAGE_INVALID_TOKEN = "Invalid security token. Please reload the page."
MESSAGE_SENT = "Message sent successfully. We will get back to you soon."
MESSAGE_INTERNAL_ERROR = "Internal server error. Please try again later."


class SubmissionStage(str, Enum):
    RECEIVED = "RECEIVED"
    METHOD_CHECKED = "METHOD_CHECKED"
    CONTENT_TYPE_CHECKED = "CONTENT_TYPE_CHECKED"
    RATE_OK = "RATE_OK"
    BOT_CHECKED = "BOT_CHECKED"
    CSRF_OK = "CSRF_OK"
    HONEYPOT_OK = "HONEYPOT_OK"
    FIELDS_VALID = "FIELDS_VALID"
    SPAM_CLEAR = "SPAM_CLEAR"
    RELAYED = "RELAYED"
    LOGGED = "LOGGED"
    RESPONDED = "RESPONDED"


@dataclass
class SubmissionOutcome:
    """Result of one pass through the pipeline."""
    status_code: int
    success: bool
    message: str
    trace: List[SubmissionStage] = field(default_factory=list)
    event_type: Optional[EventType] = None

    @property
    def stage(self) -> SubmissionStage:
        """Last stage passed before responding."""
        passed = [stage for stage in self.trace if stage != SubmissionStage.RESPONDED]
        return passed[-1] if passed else SubmissionStage.RECEIVED

    def to_response(self) -> ContactResponse:
        return ContactResponse(success=self.success, message=self.message)


def is_rejected_content_type(content_type: Optional[str]) -> bool:
    """Only an explicit JSON body is refused; missing or unknown types are tolerated."""
    content_type = (content_type or "").lower()
    if not content_type or any(accepted in content_type for accepted in ACCEPTED_CONTENT_TYPES):
        return False
    return "application/json" in content_type


class SubmissionOrchestrator:
    """Sequences token, abuse, validation and spam checks, then relays the message."""

    def __init__(
        self,
        settings: ContactSettings,
        token_service: CsrfTokenService,
        abuse_gate: AbuseGate,
        validator: FieldValidator,
        event_log: EventLog,
        mail_relay: MailRelay,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.token_service = token_service
        self.abuse_gate = abuse_gate
        self.validator = validator
        self.event_log = event_log
        self.mail_relay = mail_relay
        self.clock = clock

    def handle(self, request: SubmissionRequest, form_session: Optional[FormSession]) -> SubmissionOutcome:
        """
        Run one submission through the pipeline.

        Mutates form_session (token expiry or invalidation); the caller commits.
        """
        meta = request.meta
        trace = [SubmissionStage.RECEIVED]

        if meta.method.upper() != "POST":
            return self._respond(trace, 405, MESSAGE_METHOD_NOT_ALLOWED)
        trace.append(SubmissionStage.METHOD_CHECKED)

        if is_rejected_content_type(meta.content_type):
            logging.debug(f"Contact submission rejected, content type {meta.content_type!r}")
            return self._respond(trace, 400, MESSAGE_UNSUPPORTED_CONTENT)
        trace.append(SubmissionStage.CONTENT_TYPE_CHECKED)

        try:
            return self._run_checks(request, form_session, trace)
        except Exception as e:
            logging.error(f"Contact submission failed: {str(e)}", exc_info=True)
            self._record_error(meta, str(e))
            return self._respond(trace, 500, MESSAGE_INTERNAL_ERROR, EventType.ERROR)

    def _run_checks(self, request: SubmissionRequest, form_session: Optional[FormSession],
                    trace: List[SubmissionStage]) -> SubmissionOutcome:
        meta = request.meta

        rejection = self.abuse_gate.check_rate_limit(meta.remote_ip)
        if rejection:
            return self._reject(trace, meta, rejection, 429, MESSAGE_RATE_LIMITED)
        trace.append(SubmissionStage.RATE_OK)

        form_rendered_at = form_session.form_rendered_at if form_session is not None else None
        rejection = self.abuse_gate.check_bot(meta.user_agent, form_rendered_at)
        if rejection:
            return self._reject(trace, meta, rejection, 403, MESSAGE_REJECTED)
        trace.append(SubmissionStage.BOT_CHECKED)

        logging.debug(f"Validating CSRF token, present={bool(request.csrf_token)}")
        if not self.token_service.validate(form_session, request.csrf_token):
            rejection = Rejection(EventType.CSRF_VALIDATION_FAILED, "csrf token invalid or expired")
            return self._reject(trace, meta, rejection, 403, MESSAGE_INVALID_TOKEN)
        trace.append(SubmissionStage.CSRF_OK)

        rejection = self.abuse_gate.check_honeypot(request.honeypot_value)
        if rejection:
            return self._reject(trace, meta, rejection, 403, MESSAGE_REJECTED)
        trace.append(SubmissionStage.HONEYPOT_OK)

        contact = request.normalized_fields()
        errors = self.validator.collect_errors(contact)
        if errors:
            logging.debug(f"Contact field validation failed: {sorted(errors)}")
            rejection = Rejection(EventType.VALIDATION_FAILED, "field validation failed",
                                  {"errors": list(errors.values()), "fields": sorted(errors)})
            return self._reject(trace, meta, rejection, 400, combine_errors(errors))
        trace.append(SubmissionStage.FIELDS_VALID)

        rejection = self.abuse_gate.check_spam(contact.spam_scan_text())
        if rejection:
            rejection = Rejection(rejection.event_type, rejection.reason,
                                  {**rejection.detail, "name": contact.name, "email": contact.email})
            return self._reject(trace, meta, rejection, 403, MESSAGE_REJECTED)
        trace.append(SubmissionStage.SPAM_CLEAR)

        if not self.mail_relay.send(contact, meta.remote_ip, meta.user_agent):
            # The token stays valid so the visitor can retry right away
            self._record_error(meta, "mail relay reported failure")
            return self._respond(trace, 500, MESSAGE_INTERNAL_ERROR, EventType.ERROR)
        trace.append(SubmissionStage.RELAYED)

        # The mail is out: the token must not be reusable even if logging fails
        self.token_service.invalidate(form_session)
        try:
            self._record(EventType.EMAIL_SENT, meta, {
                "name": contact.name,
                "email": contact.email,
                "subject": contact.subject,
            })
        except OSError as e:
            logging.error(f"Message relayed but EMAIL_SENT event not logged: {str(e)}", exc_info=True)
        else:
            trace.append(SubmissionStage.LOGGED)

        logging.info(f"Contact submission accepted from {meta.remote_ip}")
        return self._respond(trace, 200, MESSAGE_SENT, EventType.EMAIL_SENT, success=True)

    def _record(self, event_type: EventType, meta: RequestMetadata, payload: Dict[str, Any]) -> None:
        payload = {**payload, "ip": meta.remote_ip}
        self.event_log.append(LogEvent.create(event_type, meta.remote_ip, meta.user_agent, payload, self.clock()))

    def _record_error(self, meta: RequestMetadata, message: str) -> None:
        try:
            self._record(EventType.ERROR, meta, {"message": message})
        except OSError as e:
            logging.error(f"Could not write ERROR event to contact log: {str(e)}")

    def _reject(self, trace: List[SubmissionStage], meta: RequestMetadata, rejection: Rejection,
                status_code: int, message: str) -> SubmissionOutcome:
        logging.warning(
            f"Contact submission rejected: {rejection.event_type.value} ({rejection.reason}) ip={meta.remote_ip}"
        )
        self._record(rejection.event_type, meta, {"reason": rejection.reason, **rejection.detail})
        return self._respond(trace, status_code, message, rejection.event_type)

    @staticmethod
    def _respond(trace: List[SubmissionStage], status_code: int, message: str,
                 event_type: Optional[EventType] = None, success: bool = False) -> SubmissionOutcome:
        trace.append(SubmissionStage.RESPONDED)
        return SubmissionOutcome(
            status_code=status_code,
            success=success,
            message=message,
            trace=trace,
            event_type=event_type,
        )
