"""Pydantic schemas for contact API."""

from pydantic import BaseModel
from typing import Mapping, Optional

from src.shared.contact.input_validation import ContactFields


class ContactResponse(BaseModel):
    """Schema for contact form response."""
    success: bool
    message: str


class CsrfTokenResponse(BaseModel):
    """Schema for a freshly issued CSRF token."""
    success: bool = True
    csrf_token: str


class TokenErrorResponse(BaseModel):
    """Schema for token endpoint failures."""
    success: bool = False
    error: str


class RequestMetadata(BaseModel):
    """Ambient data about the HTTP request carrying a submission."""
    method: str = "POST"
    content_type: str = ""
    remote_ip: str = "unknown"
    user_agent: str = ""


class SubmissionRequest(BaseModel):
    """One contact form POST, as received (not yet normalized)."""
    name: str = ""
    phone: str = ""
    email: str = ""
    subject: str = ""
    message: str = ""
    csrf_token: str = ""
    honeypot_value: str = ""
    meta: RequestMetadata = RequestMetadata()

    @classmethod
    def from_form(cls, form: Mapping[str, str], honeypot_field_name: str,
                  meta: Optional[RequestMetadata] = None) -> "SubmissionRequest":
        """Pick the known fields out of a parsed form body."""
        return cls(
            name=form.get("name") or "",
            phone=form.get("phone") or "",
            email=form.get("email") or "",
            subject=form.get("subject") or "",
            message=form.get("message") or "",
            csrf_token=form.get("csrf_token") or "",
            honeypot_value=form.get(honeypot_field_name) or "",
            meta=meta or RequestMetadata(),
        )

    def normalized_fields(self) -> ContactFields:
        return ContactFields.from_raw(
            name=self.name,
            phone=self.phone,
            email=self.email,
            subject=self.subject,
            message=self.message,
        )
