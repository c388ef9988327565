"""Test doubles and sample data for the contact service tests."""

from src.shared.contact.config import ContactSettings
from src.shared.contact.email_utils import MailRelay

START_TIME = 1_700_000_000.0
BROWSER_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"
ADMIN_SECRET = "s3cret-admin-value"


class FakeClock:
    """Settable epoch-seconds clock."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingMailRelay(MailRelay):
    """Mail relay that records messages instead of talking to SMTP."""

    def __init__(self, settings, clock):
        super().__init__(settings, clock)
        self.sent = []
        self.fail = False

    def send(self, contact, remote_ip, user_agent):
        if self.fail:
            return False
        self.sent.append({
            "contact": contact,
            "remote_ip": remote_ip,
            "user_agent": user_agent,
            "message": self.build_message(contact, remote_ip, user_agent, self.settings.mail_to),
        })
        return True


def make_settings(tmp_path, **overrides) -> ContactSettings:
    values = {
        "database_url": f"sqlite:///{tmp_path / 'sessions.db'}",
        "log_file": str(tmp_path / "logs" / "contact.log"),
        "mail_backend": "log",
        "mail_to": "owner@acme.io",
        "mail_from": "no-reply@acme.io",
        "admin_secret": ADMIN_SECRET,
    }
    values.update(overrides)
    return ContactSettings(**values)


def valid_form(token: str, **overrides) -> dict:
    form = {
        "name": "Jane Doe",
        "email": "jane@acme.io",
        "phone": "+1 (555) 010-2000",
        "subject": "Project inquiry",
        "message": "I would like to discuss a new website for my bakery.",
        "csrf_token": token,
    }
    form.update(overrides)
    return form
