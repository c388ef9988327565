"""Configuration for the contact form service."""

import os
import json
import logging
from typing import List, Optional, Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ConfigDict

from src.shared.contact.spam_lists import (
    SUSPICIOUS_DOMAINS,
    SPAM_KEYWORDS,
    SPAM_PATTERNS,
    SUSPICIOUS_USER_AGENTS,
    BOT_PATTERNS,
)


class ContactSettings(BaseModel):
    """
    All tunables of the contact pipeline in one value.

    Built once by the application factory and handed to every component
    (token service, validator, abuse gate, event log, mail relay).
    """
    model_config = ConfigDict(frozen=True)

    # Mail
    mail_to: str = "contact@localhost"
    mail_from: str = "no-reply@localhost"
    mail_from_name: str = "Website"
    mail_subject_prefix: str = "Website inquiry: "
    send_copy_to_admin: bool = True
    admin_copy_to: Optional[str] = None
    mail_backend: str = "smtp"  # 'smtp' or 'log'
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    smtp_timeout: float = 20.0

    # Rate limiting
    max_requests_per_hour: int = 3
    max_requests_per_day: int = 8

    # Sessions and CSRF
    session_timeout: int = 3600
    csrf_token_lifetime: int = 1800
    session_cookie_name: str = "contact_session"
    session_cookie_secure: bool = False

    # Honeypot
    honeypot_field_name: str = "website_url"
    honeypot_time_threshold: float = 1.0  # seconds between form render and submit

    # Field bounds
    name_min_length: int = 2
    name_max_length: int = 80
    subject_min_length: int = 3
    subject_max_length: int = 150
    message_min_length: int = 15
    message_max_length: int = 1500
    email_max_length: int = 254

    # Event log
    log_file: str = os.path.join("logs", "contact.log")
    log_max_size: int = 5 * 1024 * 1024  # 5MB
    log_keep_lines: int = 1000

    # Heuristic lists
    suspicious_domains: List[str] = Field(default_factory=lambda: list(SUSPICIOUS_DOMAINS))
    spam_keywords: List[str] = Field(default_factory=lambda: list(SPAM_KEYWORDS))
    spam_patterns: List[str] = Field(default_factory=lambda: list(SPAM_PATTERNS))
    suspicious_user_agents: List[str] = Field(default_factory=lambda: list(SUSPICIOUS_USER_AGENTS))
    bot_patterns: List[str] = Field(default_factory=lambda: list(BOT_PATTERNS))
    max_links: int = 2
    max_repeated_chars: int = 10  # a character followed by this many copies of itself is spam

    # Request metadata
    trust_forwarded_for: bool = False

    # Service
    database_url: str = "sqlite:///./contact_sessions.db"
    admin_secret: Optional[str] = None
    cors_origins: List[str] = Field(default_factory=list)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, load_dotenv_file: bool = True) -> "ContactSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)
            load_dotenv_file: Load a .env file into os.environ first

        Returns:
            ContactSettings with every variable that is set applied on top of the defaults
        """
        if environ is None:
            if load_dotenv_file:
                load_dotenv()
            environ = os.environ

        values = {}
        for field_name, env_name in ENV_VARS.items():
            raw = environ.get(env_name)
            if raw is None or raw == "":
                continue
            annotation = cls.model_fields[field_name].annotation
            if annotation == List[str]:
                values[field_name] = _parse_list(raw)
            elif annotation is bool:
                values[field_name] = raw.strip().lower() in ("1", "true", "yes", "on")
            else:
                values[field_name] = raw.strip()

        database_url = values.get("database_url")
        # Heroku uses postgres:// but SQLAlchemy 2.0+ requires postgresql://
        if database_url and database_url.startswith("postgres://"):
            values["database_url"] = database_url.replace("postgres://", "postgresql://", 1)

        settings = cls(**values)
        if not settings.admin_secret:
            logging.info("ADMIN_SECRET is not set; admin endpoints are disabled")
        return settings


def _parse_list(raw: str) -> List[str]:
    """Parse a JSON array or a comma-separated string."""
    raw = raw.strip()
    if raw.startswith("["):
        parsed = json.loads(raw)
        if not isinstance(parsed, list):
            raise ValueError("Expected a JSON array")
        return [str(item) for item in parsed]
    return [item.strip() for item in raw.split(",") if item.strip()]


ENV_VARS = {
    "mail_to": "CONTACT_MAIL_TO",
    "mail_from": "CONTACT_MAIL_FROM",
    "mail_from_name": "CONTACT_MAIL_FROM_NAME",
    "mail_subject_prefix": "CONTACT_MAIL_SUBJECT_PREFIX",
    "send_copy_to_admin": "CONTACT_SEND_COPY_TO_ADMIN",
    "admin_copy_to": "CONTACT_ADMIN_COPY_TO",
    "mail_backend": "CONTACT_MAIL_BACKEND",
    "smtp_host": "SMTP_HOST",
    "smtp_port": "SMTP_PORT",
    "smtp_user": "SMTP_USER",
    "smtp_password": "SMTP_PASSWORD",
    "smtp_use_tls": "SMTP_USE_TLS",
    "smtp_timeout": "SMTP_TIMEOUT",
    "max_requests_per_hour": "CONTACT_MAX_REQUESTS_PER_HOUR",
    "max_requests_per_day": "CONTACT_MAX_REQUESTS_PER_DAY",
    "session_timeout": "CONTACT_SESSION_TIMEOUT",
    "csrf_token_lifetime": "CONTACT_CSRF_TOKEN_LIFETIME",
    "session_cookie_name": "CONTACT_SESSION_COOKIE_NAME",
    "session_cookie_secure": "CONTACT_SESSION_COOKIE_SECURE",
    "honeypot_field_name": "CONTACT_HONEYPOT_FIELD_NAME",
    "honeypot_time_threshold": "CONTACT_HONEYPOT_TIME_THRESHOLD",
    "name_min_length": "CONTACT_NAME_MIN_LENGTH",
    "name_max_length": "CONTACT_NAME_MAX_LENGTH",
    "subject_min_length": "CONTACT_SUBJECT_MIN_LENGTH",
    "subject_max_length": "CONTACT_SUBJECT_MAX_LENGTH",
    "message_min_length": "CONTACT_MESSAGE_MIN_LENGTH",
    "message_max_length": "CONTACT_MESSAGE_MAX_LENGTH",
    "email_max_length": "CONTACT_EMAIL_MAX_LENGTH",
    "log_file": "CONTACT_LOG_FILE",
    "log_max_size": "CONTACT_LOG_MAX_SIZE",
    "log_keep_lines": "CONTACT_LOG_KEEP_LINES",
    "suspicious_domains": "CONTACT_SUSPICIOUS_DOMAINS",
    "spam_keywords": "CONTACT_SPAM_KEYWORDS",
    "spam_patterns": "CONTACT_SPAM_PATTERNS",
    "suspicious_user_agents": "CONTACT_SUSPICIOUS_USER_AGENTS",
    "bot_patterns": "CONTACT_BOT_PATTERNS",
    "max_links": "CONTACT_MAX_LINKS",
    "max_repeated_chars": "CONTACT_MAX_REPEATED_CHARS",
    "trust_forwarded_for": "CONTACT_TRUST_FORWARDED_FOR",
    "database_url": "DATABASE_URL",
    "admin_secret": "ADMIN_SECRET",
    "cors_origins": "CONTACT_CORS_ORIGINS",
    "log_level": "LOG_LEVEL",
}
