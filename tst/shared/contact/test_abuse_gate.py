"""Tests for rate limiting, bot detection, honeypot and spam heuristics."""

import pytest

from src.shared.contact.abuse_gate import AbuseGate, BotDetector, RateLimiter, SpamDetector
from src.shared.contact.event_log import EventLog, EventType, LogEvent
from tst.support import BROWSER_UA, FakeClock, START_TIME

IP = "203.0.113.7"
CLEAN_TEXT = "Jane Doe Project inquiry I would like to discuss a new website for my bakery."


@pytest.fixture
def event_log(settings):
    return EventLog(settings.log_file, settings.log_max_size)


def record(event_log, event_type, at, ip=IP):
    event_log.append(LogEvent.create(event_type, ip, BROWSER_UA, {}, at))


class TestRateLimiter:

    def test_allows_under_hourly_limit(self, settings, event_log):
        clock = FakeClock()
        record(event_log, EventType.EMAIL_SENT, clock() - 100)
        record(event_log, EventType.VALIDATION_FAILED, clock() - 50)
        limiter = RateLimiter(settings, event_log, clock)
        assert limiter.window_for(IP).hourly == 2
        assert limiter.check(IP) is None

    def test_rejects_at_hourly_limit(self, settings, event_log):
        clock = FakeClock()
        for offset in (300, 200, 100):
            record(event_log, EventType.SPAM_DETECTED, clock() - offset)
        rejection = RateLimiter(settings, event_log, clock).check(IP)
        assert rejection is not None
        assert rejection.event_type == EventType.RATE_LIMIT_EXCEEDED
        assert rejection.reason == "hourly limit reached"

    def test_limits_are_per_ip(self, settings, event_log):
        clock = FakeClock()
        for offset in (300, 200, 100):
            record(event_log, EventType.EMAIL_SENT, clock() - offset)
        assert RateLimiter(settings, event_log, clock).check("198.51.100.1") is None

    def test_only_counted_event_types_apply(self, settings, event_log):
        clock = FakeClock()
        for event_type in (EventType.BOT_DETECTED, EventType.CSRF_VALIDATION_FAILED,
                           EventType.HONEYPOT_TRIGGERED, EventType.RATE_LIMIT_EXCEEDED, EventType.ERROR):
            record(event_log, event_type, clock() - 10)
        assert RateLimiter(settings, event_log, clock).check(IP) is None

    def test_hour_window_boundary_is_exclusive(self, settings, event_log):
        clock = FakeClock()
        for _ in range(3):
            record(event_log, EventType.EMAIL_SENT, clock() - 3600)
        limiter = RateLimiter(settings, event_log, clock)
        assert limiter.window_for(IP).hourly == 0
        assert limiter.check(IP) is None

    def test_rejects_at_daily_limit(self, settings, event_log):
        clock = FakeClock(START_TIME + 86400)
        # Two per hour, spread over the last day
        for hours_ago in range(2, 10, 2):
            record(event_log, EventType.EMAIL_SENT, clock() - hours_ago * 3600)
            record(event_log, EventType.EMAIL_SENT, clock() - hours_ago * 3600 - 60)
        limiter = RateLimiter(settings, event_log, clock)
        assert limiter.window_for(IP).daily == 8
        rejection = limiter.check(IP)
        assert rejection is not None
        assert rejection.reason == "daily limit reached"

    def test_window_slides(self, settings, event_log):
        clock = FakeClock()
        for offset in (300, 200, 100):
            record(event_log, EventType.EMAIL_SENT, clock() - offset)
        limiter = RateLimiter(settings, event_log, clock)
        assert limiter.check(IP) is not None
        clock.advance(3600 - 300 + 1)
        assert limiter.check(IP) is None


class TestBotDetector:

    def test_browser_user_agent_passes(self, settings):
        assert BotDetector(settings, FakeClock()).check_user_agent(BROWSER_UA) is None

    @pytest.mark.parametrize("user_agent", [
        "",
        None,
        "curl/8.4.0",
        "python-requests/2.31.0",
        "Wget/1.21",
        "Mozilla/5.0 (compatible; Googlebot/2.1)",
        "PostmanRuntime/7.36.0",
        "SomeCrawler/1.0",
    ])
    def test_suspicious_user_agents_are_rejected(self, settings, user_agent):
        rejection = BotDetector(settings, FakeClock()).check_user_agent(user_agent)
        assert rejection is not None
        assert rejection.event_type == EventType.BOT_DETECTED

    def test_fast_submission_is_rejected(self, settings):
        clock = FakeClock()
        detector = BotDetector(settings, clock)
        rejection = detector.check_timing(clock() - 0.5)
        assert rejection is not None
        assert rejection.reason == "form submitted too fast"

    def test_submission_at_threshold_passes(self, settings):
        clock = FakeClock()
        detector = BotDetector(settings, clock)
        assert detector.check_timing(clock() - settings.honeypot_time_threshold) is None
        assert detector.check_timing(clock() - 60) is None

    def test_unknown_render_time_is_not_judged(self, settings):
        assert BotDetector(settings, FakeClock()).check_timing(None) is None

    @pytest.mark.parametrize("value", ["http://spam.tk", "x", " "])
    def test_filled_honeypot_is_rejected(self, value):
        rejection = BotDetector.check_honeypot(value)
        assert rejection is not None
        assert rejection.event_type == EventType.HONEYPOT_TRIGGERED

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_honeypot_passes(self, value):
        assert BotDetector.check_honeypot(value) is None


class TestSpamDetector:

    def test_clean_text_passes(self, settings):
        assert SpamDetector(settings).check(CLEAN_TEXT) is None

    @pytest.mark.parametrize("text", [
        "Visit our Casino tonight",
        "Cheap loans available for you",
        "Get 50% off every order",
        "Win $5 million today",
        "Please call 555-123-4567 for details",
        "HELLO THERE friend",
        "Is it working???",
        "Grow your SEO ranking",
        "Go to winners.tk for details",
    ])
    def test_spam_content_is_detected(self, settings, text):
        rejection = SpamDetector(settings).check(text)
        assert rejection is not None
        assert rejection.event_type == EventType.SPAM_DETECTED

    def test_keyword_match_is_case_insensitive(self, settings):
        assert SpamDetector(settings).check("VIAGRA").reason == "spam keyword"

    def test_two_links_pass_three_links_fail(self, settings):
        detector = SpamDetector(settings)
        two = "See https://acme.io/a and http://acme.io/b for the current layout."
        three = two + " Also https://acme.io/c please."
        assert detector.check(two) is None
        rejection = detector.check(three)
        assert rejection is not None
        assert rejection.reason == "too many links"

    def test_repeated_characters(self, settings):
        detector = SpamDetector(settings)
        assert detector.check("Hello " + "a" * 10) is None
        assert detector.check("Hello " + "a" * 11).reason == "repeated characters"

    def test_is_spam(self, settings):
        detector = SpamDetector(settings)
        assert detector.is_spam("Free casino chips")
        assert not detector.is_spam(CLEAN_TEXT)


class TestAbuseGate:

    def test_evaluate_passes_clean_request(self, settings, event_log):
        clock = FakeClock()
        gate = AbuseGate(settings, event_log, clock)
        assert gate.evaluate(IP, BROWSER_UA, clock() - 30, "", CLEAN_TEXT) is None

    def test_evaluate_checks_rate_limit_first(self, settings, event_log):
        clock = FakeClock()
        for offset in (30, 20, 10):
            record(event_log, EventType.EMAIL_SENT, clock() - offset)
        gate = AbuseGate(settings, event_log, clock)
        rejection = gate.evaluate(IP, "curl/8.0", clock(), "filled", "casino")
        assert rejection.event_type == EventType.RATE_LIMIT_EXCEEDED

    def test_evaluate_checks_bot_before_honeypot_and_spam(self, settings, event_log):
        clock = FakeClock()
        gate = AbuseGate(settings, event_log, clock)
        assert gate.evaluate(IP, "curl/8.0", None, "filled", "casino").event_type == EventType.BOT_DETECTED
        assert gate.evaluate(IP, BROWSER_UA, None, "filled", "casino").event_type == EventType.HONEYPOT_TRIGGERED
        assert gate.evaluate(IP, BROWSER_UA, None, "", "casino").event_type == EventType.SPAM_DETECTED
