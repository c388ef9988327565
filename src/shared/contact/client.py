"""
HTTP client for the contact form endpoints.

Mirrors what the site's form script does: fetch a CSRF token, post the
form with it, and fetch a fresh token after a send or a token rejection.
Nothing is retried automatically; a new token fetch is always an explicit
request of its own.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import requests

TOKEN_TIMEOUT = 10  # seconds
SUBMIT_TIMEOUT = 30  # seconds
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ContactFormClient/1.0)"


class ContactClientError(Exception):
    """Raised when the token endpoint cannot be used."""


@dataclass
class SubmissionResult:
    success: bool
    message: str
    status_code: Optional[int] = None


class ContactFormClient:
    """Keeps a CSRF token and session cookie for one visitor."""

    def __init__(
        self,
        base_url: str,
        session=None,
        token_path: str = "/api/contact/csrf-token",
        submit_path: str = "/api/contact/submit",
        token_timeout: float = TOKEN_TIMEOUT,
        submit_timeout: float = SUBMIT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.token_url = f"{self.base_url}{token_path}"
        self.submit_url = f"{self.base_url}{submit_path}"
        self.token_timeout = token_timeout
        self.submit_timeout = submit_timeout
        self.headers = {"User-Agent": user_agent}
        self.csrf_token: Optional[str] = None
        self.initialized = False
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop any pending readiness wait."""
        self._cancelled.set()

    def wait_until_ready(
        self,
        precondition: Callable[[], bool],
        max_retries: int = 10,
        delay: float = 0.2,
        backoff: float = 1.0,
    ) -> bool:
        """
        Poll precondition until it holds.

        Args:
            precondition: Callable returning True once the caller is ready
            max_retries: Number of re-checks after the first one
            delay: Wait before the first re-check, in seconds
            backoff: Multiplier applied to the wait after every re-check (1.0 = fixed)

        Returns:
            True if the precondition held, False if retries ran out or cancel() was called
        """
        wait = delay
        for attempt in range(max_retries + 1):
            if self._cancelled.is_set():
                return False
            try:
                if precondition():
                    return True
            except Exception as e:
                logging.warning(f"Readiness check failed (attempt {attempt + 1}): {str(e)}")
            if attempt == max_retries:
                break
            # Returns early when cancelled
            if self._cancelled.wait(wait):
                return False
            wait *= backoff
        return False

    def initialize(self, precondition: Optional[Callable[[], bool]] = None, **wait_options) -> bool:
        """
        Wait for readiness, then fetch the first token. Safe to call more than once.

        Returns:
            True once the client holds a token
        """
        if self.initialized:
            return True
        if precondition is not None and not self.wait_until_ready(precondition, **wait_options):
            return False
        self.fetch_token()
        self.initialized = True
        return True

    def fetch_token(self) -> str:
        """Fetch a new CSRF token from the server."""
        try:
            response = self.session.get(
                self.token_url,
                headers={**self.headers, "Accept": "application/json", "Cache-Control": "no-cache"},
                timeout=self.token_timeout,
            )
        except requests.Timeout:
            raise ContactClientError("Timed out fetching security token")
        except requests.RequestException as e:
            raise ContactClientError(f"Could not fetch security token: {str(e)}")

        if response.status_code != 200:
            raise ContactClientError(f"HTTP {response.status_code} fetching security token")

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise ContactClientError("Security token response is not JSON")

        try:
            data = response.json()
        except ValueError:
            raise ContactClientError("Security token response is not valid JSON")

        if not data.get("success") or not data.get("csrf_token"):
            raise ContactClientError(data.get("error") or "Invalid security token response")

        self.csrf_token = data["csrf_token"]
        return self.csrf_token

    def _renew_token(self) -> None:
        try:
            self.fetch_token()
        except ContactClientError as e:
            self.csrf_token = None
            logging.warning(f"Could not renew CSRF token: {str(e)}")

    def submit(self, fields: Dict[str, str]) -> SubmissionResult:
        """
        Post the contact form.

        Returns:
            SubmissionResult with the server's message, or a "try again" message on timeout
        """
        if not self.csrf_token:
            try:
                self.fetch_token()
            except ContactClientError as e:
                logging.warning(f"Contact form submit without token: {str(e)}")
                return SubmissionResult(False, "Security error. Please reload the page.")

        data = {**fields, "csrf_token": self.csrf_token}
        try:
            response = self.session.post(
                self.submit_url,
                data=data,
                headers=self.headers,
                timeout=self.submit_timeout,
            )
        except requests.Timeout:
            return SubmissionResult(False, "Timed out sending the message. Please try again.")
        except requests.RequestException as e:
            logging.error(f"Contact form submit failed: {str(e)}")
            return SubmissionResult(False, "Connection error. Check your connection and try again.")

        try:
            body = response.json()
        except ValueError:
            return SubmissionResult(False, "Invalid server response", response.status_code)

        message = body.get("message") or "Error sending the message"
        if response.status_code == 200 and body.get("success"):
            # The used token was cleared server-side; get one for the next message
            self._renew_token()
            return SubmissionResult(True, message, response.status_code)

        if response.status_code == 403 and "token" in message.lower():
            self._renew_token()

        return SubmissionResult(False, message, response.status_code)
