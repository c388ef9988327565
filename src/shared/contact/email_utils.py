"""Email relay for accepted contact form submissions."""

import re
import time
import smtplib
import logging
from datetime import datetime, timezone
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formataddr
from typing import Callable

from src.shared.contact.config import ContactSettings
from src.shared.contact.input_validation import ContactFields, visible_text

_HEADER_BREAKS = re.compile(r"[\r\n]+")


def sanitize_header_value(value: str) -> str:
    """Prevent header injection."""
    return _HEADER_BREAKS.sub("", value or "").strip()


class MailRelay:
    """Sends contact messages through SMTP (or the application log in development)."""

    def __init__(self, settings: ContactSettings, clock: Callable[[], float] = time.time):
        self.settings = settings
        self.clock = clock

    def build_message(self, contact: ContactFields, remote_ip: str, user_agent: str, to_address: str,
                      subject_prefix: str = "") -> MIMEMultipart:
        """Compose the plain text message for one submission."""
        s = self.settings
        sent_at = datetime.fromtimestamp(self.clock(), tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

        msg = MIMEMultipart()
        msg['From'] = formataddr((s.mail_from_name, s.mail_from))
        msg['To'] = to_address
        # Allow the site owner to reply directly to the visitor
        msg['Reply-To'] = formataddr((
            sanitize_header_value(visible_text(contact.name)),
            sanitize_header_value(visible_text(contact.email)),
        ))
        msg['Subject'] = sanitize_header_value(
            f"{subject_prefix}{s.mail_subject_prefix}{visible_text(contact.subject)}"
        )
        msg['X-Mailer'] = "Contact Form Service"

        body = f"""New inquiry from the website contact form

Name: {contact.name}
Email: {contact.email}
Phone: {contact.phone}
Subject: {contact.subject}

Message:
{contact.message}

---
IP: {remote_ip}
Date: {sent_at}
User Agent: {user_agent or 'Not available'}
"""
        msg.attach(MIMEText(body, 'plain', 'utf-8'))
        return msg

    def _deliver(self, msg: MIMEMultipart) -> None:
        s = self.settings
        if s.mail_backend == "log":
            logging.info(f"Contact email (log backend) to {msg['To']}:\n{msg.as_string()}")
            return

        if not s.smtp_user or not s.smtp_password:
            raise RuntimeError("SMTP credentials not configured")

        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout) as server:
            if s.smtp_use_tls:
                server.starttls()  # Enable encryption
            server.login(s.smtp_user, s.smtp_password)
            server.send_message(msg)

    def send(self, contact: ContactFields, remote_ip: str, user_agent: str) -> bool:
        """
        Relay a submission to the configured recipient.

        Returns:
            True if the main message was handed to the mail server, False otherwise
        """
        s = self.settings
        try:
            self._deliver(self.build_message(contact, remote_ip, user_agent, s.mail_to))
        except Exception as e:
            logging.error(f"Failed to send contact form email: {str(e)}", exc_info=True)
            return False

        logging.info(f"Contact form email sent to {s.mail_to}")

        if s.send_copy_to_admin and s.admin_copy_to and s.admin_copy_to != s.mail_to:
            try:
                self._deliver(self.build_message(contact, remote_ip, user_agent, s.admin_copy_to, "[COPY] "))
                logging.info(f"Contact form copy sent to {s.admin_copy_to}")
            except Exception as e:
                # The visitor's message already went out
                logging.warning(f"Failed to send admin copy of contact form email: {str(e)}")

        return True
