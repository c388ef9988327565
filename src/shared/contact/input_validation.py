"""
Input normalization and field validation for contact submissions.
Protects the outgoing mail against HTML and header injection.
"""

import re
import html
from typing import Dict, List, Optional

from email_validator import validate_email, EmailNotValidError
from pydantic import BaseModel

from src.shared.contact.config import ContactSettings

# Besides letters, names may contain whitespace, apostrophes and hyphens
NAME_PUNCTUATION = "'-"
PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)]+$")
_SLASHED = re.compile(r"\\(.?)", re.DOTALL)


def strip_slashes(text: str) -> str:
    """Undo backslash escaping added by upstream transport (\\' -> ', \\\\ -> \\)."""
    return _SLASHED.sub(r"\1", text)


def normalize_input(raw: Optional[str]) -> str:
    """
    Trim, unslash and HTML-escape a submitted value.

    Entities already present are decoded before escaping, so normalizing
    a normalized value returns it unchanged.
    """
    if not raw:
        return ""

    text = strip_slashes(raw.strip())
    text = html.unescape(text).strip()
    # Escape HTML to prevent XSS in the mail body, and keep backslashes out of the output
    return html.escape(text, quote=True).replace("\\", "&#x5C;")


def visible_text(value: str) -> str:
    """The text a user actually typed, for a normalized value."""
    return html.unescape(value)


class ContactFields(BaseModel):
    """Normalized contact form fields."""
    name: str = ""
    phone: str = ""
    email: str = ""
    subject: str = ""
    message: str = ""

    @classmethod
    def from_raw(cls, name=None, phone=None, email=None, subject=None, message=None) -> "ContactFields":
        """Normalize every raw field value."""
        return cls(
            name=normalize_input(name),
            phone=normalize_input(phone),
            email=normalize_input(email),
            subject=normalize_input(subject),
            message=normalize_input(message),
        )

    def spam_scan_text(self) -> str:
        """Text scanned by the spam detector."""
        return f"{self.name} {self.subject} {self.message}"


class FieldValidator:
    """Per-field acceptance rules, bounds taken from settings."""

    def __init__(self, settings: ContactSettings):
        self.settings = settings
        self.suspicious_domains = {domain.lower() for domain in settings.suspicious_domains}

    def validate_name(self, name: str) -> bool:
        value = visible_text(name)
        if len(value) < self.settings.name_min_length or len(value) > self.settings.name_max_length:
            return False
        # isalpha() is true exactly for Unicode letter categories (Lu, Ll, Lt, Lm, Lo)
        return all(ch.isalpha() or ch.isspace() or ch in NAME_PUNCTUATION for ch in value)

    def validate_email(self, email: str) -> bool:
        """
        Validate email format, length and domain.

        The domain (after the last @) must not be a known disposable provider.
        """
        value = visible_text(email)
        if not value or len(value) > self.settings.email_max_length:
            return False

        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            return False

        domain = value.rsplit("@", 1)[-1].lower()
        if not domain or domain in self.suspicious_domains:
            return False

        return True

    def validate_phone(self, phone: str) -> bool:
        """Phone is optional, but must look like a phone number when given."""
        value = visible_text(phone)
        if not value:
            return True
        return bool(PHONE_PATTERN.match(value))

    def validate_subject(self, subject: str) -> bool:
        length = len(visible_text(subject))
        return self.settings.subject_min_length <= length <= self.settings.subject_max_length

    def validate_message(self, message: str) -> bool:
        length = len(visible_text(message))
        return self.settings.message_min_length <= length <= self.settings.message_max_length

    def collect_errors(self, fields: ContactFields) -> Dict[str, str]:
        """
        Validate every field and collect a reason for each failure.

        Returns:
            Mapping of field name to a human readable reason (empty if all valid)
        """
        s = self.settings
        errors = {}

        if not self.validate_name(fields.name):
            errors["name"] = (
                f"Invalid name - must be between {s.name_min_length} and {s.name_max_length} "
                "characters and contain only letters"
            )
        if not self.validate_email(fields.email):
            errors["email"] = "Invalid email - please check the address"
        if not self.validate_phone(fields.phone):
            errors["phone"] = "Invalid phone - use only digits, spaces, +, -, ( and )"
        if not self.validate_subject(fields.subject):
            errors["subject"] = (
                f"Invalid subject - must be between {s.subject_min_length} and {s.subject_max_length} characters"
            )
        if not self.validate_message(fields.message):
            errors["message"] = (
                f"Invalid message - must be between {s.message_min_length} and {s.message_max_length} characters"
            )

        return errors


def combine_errors(errors: Dict[str, str]) -> str:
    """Join field errors into the single message returned to the client."""
    reasons: List[str] = list(errors.values())
    return ", ".join(reasons)
