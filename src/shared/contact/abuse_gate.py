"""Rate limiting, bot detection and spam detection for contact submissions."""

import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from src.shared.contact.config import ContactSettings
from src.shared.contact.event_log import EventLog, EventType, RATE_LIMITED_EVENTS

HOUR_SECONDS = 3600
DAY_SECONDS = 86400
LINK_PATTERN = re.compile(r"https?://")


@dataclass(frozen=True)
class Rejection:
    """Why a request was refused. reason is internal and never sent to the client."""
    event_type: EventType
    reason: str
    detail: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RateWindow:
    """Counted events for one IP over the trailing hour and day."""
    hourly: int
    daily: int


class RateLimiter:
    """Per-IP sliding windows recomputed from the event log on every call."""

    def __init__(self, settings: ContactSettings, event_log: EventLog, clock: Callable[[], float] = time.time):
        self.max_per_hour = settings.max_requests_per_hour
        self.max_per_day = settings.max_requests_per_day
        self.event_log = event_log
        self.clock = clock

    def window_for(self, ip: str) -> RateWindow:
        now = self.clock()
        return RateWindow(
            hourly=self.event_log.count_events_in_window(ip, RATE_LIMITED_EVENTS, now - HOUR_SECONDS),
            daily=self.event_log.count_events_in_window(ip, RATE_LIMITED_EVENTS, now - DAY_SECONDS),
        )

    def check(self, ip: str) -> Optional[Rejection]:
        window = self.window_for(ip)
        if window.hourly >= self.max_per_hour:
            return Rejection(EventType.RATE_LIMIT_EXCEEDED, "hourly limit reached",
                             {"hourly": window.hourly, "limit": self.max_per_hour})
        if window.daily >= self.max_per_day:
            return Rejection(EventType.RATE_LIMIT_EXCEEDED, "daily limit reached",
                             {"daily": window.daily, "limit": self.max_per_day})
        return None


class BotDetector:
    """User agent heuristics, honeypot field and form fill timing."""

    def __init__(self, settings: ContactSettings, clock: Callable[[], float] = time.time):
        self.suspicious_agents = [agent.lower() for agent in settings.suspicious_user_agents]
        self.bot_patterns = [re.compile(pattern) for pattern in settings.bot_patterns]
        self.time_threshold = settings.honeypot_time_threshold
        self.clock = clock

    def check_user_agent(self, user_agent: Optional[str]) -> Optional[Rejection]:
        if not user_agent:
            return Rejection(EventType.BOT_DETECTED, "empty user agent")

        user_agent_lower = user_agent.lower()
        for agent in self.suspicious_agents:
            if agent in user_agent_lower:
                return Rejection(EventType.BOT_DETECTED, "suspicious user agent",
                                 {"user_agent": user_agent, "match": agent})

        for pattern in self.bot_patterns:
            if pattern.search(user_agent):
                return Rejection(EventType.BOT_DETECTED, "bot user agent pattern",
                                 {"user_agent": user_agent, "match": pattern.pattern})
        return None

    def check_timing(self, form_rendered_at: Optional[float]) -> Optional[Rejection]:
        """Submissions faster than a human can fill the form are bots. Unknown render time is not judged."""
        if form_rendered_at is None:
            return None
        elapsed = self.clock() - form_rendered_at
        if elapsed < self.time_threshold:
            return Rejection(EventType.BOT_DETECTED, "form submitted too fast",
                             {"elapsed": round(elapsed, 3), "threshold": self.time_threshold})
        return None

    def check(self, user_agent: Optional[str], form_rendered_at: Optional[float]) -> Optional[Rejection]:
        return self.check_user_agent(user_agent) or self.check_timing(form_rendered_at)

    @staticmethod
    def check_honeypot(value: Optional[str]) -> Optional[Rejection]:
        if value:
            return Rejection(EventType.HONEYPOT_TRIGGERED, "honeypot field filled")
        return None


class SpamDetector:
    """Keyword, regex, link-count and repeated-character content checks."""

    def __init__(self, settings: ContactSettings):
        self.keywords = [keyword.lower() for keyword in settings.spam_keywords]
        self.patterns = [re.compile(pattern) for pattern in settings.spam_patterns]
        self.max_links = settings.max_links
        self.repeated_chars = re.compile(r"(.)\1{%d,}" % settings.max_repeated_chars, re.DOTALL)

    def check(self, text: str) -> Optional[Rejection]:
        text_lower = text.lower()
        for keyword in self.keywords:
            if keyword in text_lower:
                return Rejection(EventType.SPAM_DETECTED, "spam keyword", {"match": keyword})

        for pattern in self.patterns:
            if pattern.search(text):
                return Rejection(EventType.SPAM_DETECTED, "spam pattern", {"match": pattern.pattern})

        link_count = len(LINK_PATTERN.findall(text))
        if link_count > self.max_links:
            return Rejection(EventType.SPAM_DETECTED, "too many links", {"links": link_count})

        if self.repeated_chars.search(text):
            return Rejection(EventType.SPAM_DETECTED, "repeated characters")

        return None

    def is_spam(self, text: str) -> bool:
        return self.check(text) is not None


class AbuseGate:
    """
    Composition of the rate limiter, bot detector and spam detector.

    The submission pipeline calls the individual checks so it can run CSRF
    validation and field validation in between; evaluate() runs them all
    in pipeline order for a single accept/reject decision.
    """

    def __init__(self, settings: ContactSettings, event_log: EventLog, clock: Callable[[], float] = time.time):
        self.rate_limiter = RateLimiter(settings, event_log, clock)
        self.bot_detector = BotDetector(settings, clock)
        self.spam_detector = SpamDetector(settings)

    def check_rate_limit(self, ip: str) -> Optional[Rejection]:
        return self.rate_limiter.check(ip)

    def check_bot(self, user_agent: Optional[str], form_rendered_at: Optional[float]) -> Optional[Rejection]:
        return self.bot_detector.check(user_agent, form_rendered_at)

    def check_honeypot(self, value: Optional[str]) -> Optional[Rejection]:
        return self.bot_detector.check_honeypot(value)

    def check_spam(self, text: str) -> Optional[Rejection]:
        return self.spam_detector.check(text)

    def evaluate(self, ip: str, user_agent: Optional[str], form_rendered_at: Optional[float],
                 honeypot_value: Optional[str], text: str) -> Optional[Rejection]:
        """Return the first failing check, or None when the request may pass."""
        return (
            self.check_rate_limit(ip)
            or self.check_bot(user_agent, form_rendered_at)
            or self.check_honeypot(honeypot_value)
            or self.check_spam(text)
        )
