"""Append-only security event log for the contact form."""

import os
import fcntl
import shutil
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class EventType(str, Enum):
    """Security-relevant event types."""
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    BOT_DETECTED = "BOT_DETECTED"
    CSRF_VALIDATION_FAILED = "CSRF_VALIDATION_FAILED"
    HONEYPOT_TRIGGERED = "HONEYPOT_TRIGGERED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    SPAM_DETECTED = "SPAM_DETECTED"
    EMAIL_SENT = "EMAIL_SENT"
    ERROR = "ERROR"


# Events that count against an IP's rate limit
RATE_LIMITED_EVENTS = (EventType.EMAIL_SENT, EventType.VALIDATION_FAILED, EventType.SPAM_DETECTED)


class LogEvent(BaseModel):
    """One line of the event log."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: datetime
    remote_ip: str = Field(alias="ip")
    user_agent: str = "unknown"
    event_type: EventType = Field(alias="type")
    payload: Dict[str, Any] = Field(default_factory=dict, alias="data")

    @classmethod
    def create(cls, event_type: EventType, remote_ip: str, user_agent: str, payload: Dict[str, Any], now: float) -> "LogEvent":
        return cls(
            timestamp=datetime.fromtimestamp(now, tz=timezone.utc).replace(microsecond=0),
            remote_ip=remote_ip or "unknown",
            user_agent=user_agent or "unknown",
            event_type=event_type,
            payload=payload,
        )

    def to_line(self) -> str:
        return self.model_dump_json(by_alias=True) + "\n"


class EventLog:
    """
    JSON-lines event log on disk.

    Writers take a process-local lock and an advisory flock on a sidecar
    lock file, so appends never interleave and rotation never runs during
    an append. Rotation keeps only the newest keep_lines entries, which
    also bounds the history the rate limiter can see.
    """

    def __init__(self, path: str, max_size: int, keep_lines: int = 1000):
        self.path = path
        self.max_size = max_size
        self.keep_lines = keep_lines
        self._lock = threading.Lock()

    @property
    def lock_path(self) -> str:
        return self.path + ".lock"

    def _ensure_dir(self) -> None:
        log_dir = os.path.dirname(self.path)
        if log_dir:
            os.makedirs(log_dir, mode=0o755, exist_ok=True)

    @contextmanager
    def _locked(self):
        self._ensure_dir()
        with self._lock:
            with open(self.lock_path, "a") as lock_file:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def append(self, event: LogEvent) -> None:
        """Append one event, rotating first if the file is over the size limit."""
        with self._locked():
            self._rotate_locked()
            with open(self.path, "a", encoding="utf-8") as log_file:
                log_file.write(event.to_line())

    def rotate_if_needed(self) -> bool:
        """Truncate to the newest keep_lines entries when over max_size. Returns True if rotated."""
        with self._locked():
            return self._rotate_locked()

    def _rotate_locked(self) -> bool:
        try:
            size = os.path.getsize(self.path)
        except FileNotFoundError:
            return False
        if size <= self.max_size:
            return False

        with open(self.path, "r", encoding="utf-8") as log_file:
            lines = log_file.readlines()
        kept = lines[-self.keep_lines:] if self.keep_lines > 0 else []
        with open(self.path, "w", encoding="utf-8") as log_file:
            log_file.writelines(kept)

        logging.info(f"Rotated contact event log {self.path}: kept {len(kept)} of {len(lines)} entries")
        return True

    def iter_events(self) -> Iterator[LogEvent]:
        """Yield every parseable event in file order. Malformed lines are skipped."""
        # Held while reading so a rotation in another worker is never seen half done
        with self._locked():
            try:
                with open(self.path, "r", encoding="utf-8") as log_file:
                    lines = log_file.readlines()
            except FileNotFoundError:
                return

        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                yield LogEvent.model_validate_json(line)
            except ValidationError:
                continue

    def count_events_in_window(self, ip: str, types: Iterable[EventType], since: float) -> int:
        """Count events of the given types for ip strictly newer than since (epoch seconds)."""
        wanted = set(types)
        count = 0
        for event in self.iter_events():
            if event.remote_ip != ip or event.event_type not in wanted:
                continue
            if event.timestamp.timestamp() > since:
                count += 1
        return count

    def recent_events(self, limit: int = 50, ip: Optional[str] = None,
                      event_type: Optional[EventType] = None) -> List[LogEvent]:
        """Newest-first events, optionally filtered by ip and type."""
        matches = [
            event for event in self.iter_events()
            if (ip is None or event.remote_ip == ip) and (event_type is None or event.event_type == event_type)
        ]
        matches.reverse()
        return matches[:limit]

    def size(self) -> int:
        try:
            return os.path.getsize(self.path)
        except FileNotFoundError:
            return 0

    def reset(self, now: float) -> Optional[str]:
        """
        Back up the log beside itself and empty it.

        Returns:
            Backup file path, or None if there was no log to reset
        """
        with self._locked():
            if not os.path.exists(self.path):
                return None
            stamp = datetime.fromtimestamp(now, tz=timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")
            backup_path = os.path.join(os.path.dirname(self.path), f"contact_backup_{stamp}.log")
            shutil.copyfile(self.path, backup_path)
            with open(self.path, "w", encoding="utf-8"):
                pass
        logging.info(f"Contact event log reset, backup written to {backup_path}")
        return backup_path
