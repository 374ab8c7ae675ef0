"""
In-process registry of running exam sessions, keyed by an opaque token.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections.abc import Callable
from typing import Any, Optional

from errors import NotFound
from exam_session import CountdownTimer, ExamSession, SubmissionReporter
from models import Homework

logger = logging.getLogger(__name__)


class ExamSessionManager:
    """Opens, looks up and closes exam sessions.

    Sessions idle for longer than `ttl` seconds are closed (timer cancelled,
    anti-cheat detached) and dropped on the next open or lookup.
    """

    def __init__(self, ttl: int = 14400, run_timers: bool = True,
                 tick_interval: float = 1.0) -> None:
        self.ttl = ttl
        self.run_timers = run_timers
        self.tick_interval = tick_interval
        self._sessions: dict[str, tuple[ExamSession, float]] = {}
        self._lock = threading.Lock()

    def init_app(self, app) -> None:
        self.ttl = app.config.get("EXAM_SESSION_TTL", self.ttl)
        self.run_timers = app.config.get("EXAM_RUN_TIMERS", True)
        self.tick_interval = app.config.get("EXAM_TICK_INTERVAL", 1.0)
        self.clear()
        app.extensions["exam_sessions"] = self

    def open(self, homework: Homework, *, student: bool,
             submit: Optional[Callable[[dict], Any]] = None) -> tuple[str, ExamSession]:
        self.evict_expired()
        session = ExamSession(
            homework,
            student=student,
            timer_factory=CountdownTimer if self.run_timers else None,
            tick_interval=self.tick_interval,
        )
        if student and submit is not None:
            session.on_complete(SubmissionReporter(submit, notify=session.push_notice))
        token = secrets.token_urlsafe(16)
        with self._lock:
            self._sessions[token] = (session, time.monotonic())
        logger.info("Opened exam session for homework %s (student=%s)", homework.id, student)
        return token, session

    def get(self, token: str) -> ExamSession:
        self.evict_expired()
        with self._lock:
            entry = self._sessions.get(token)
            if entry is None:
                raise NotFound("Exam session not found")
            session = entry[0]
            self._sessions[token] = (session, time.monotonic())
        return session

    def close(self, token: str) -> None:
        with self._lock:
            entry = self._sessions.pop(token, None)
        if entry is None:
            raise NotFound("Exam session not found")
        entry[0].close()

    def evict_expired(self) -> int:
        cutoff = time.monotonic() - self.ttl
        with self._lock:
            stale = [t for t, (_, seen) in self._sessions.items() if seen < cutoff]
            sessions = [self._sessions.pop(t)[0] for t in stale]
        for session in sessions:
            session.close()
        if sessions:
            logger.info("Evicted %d idle exam sessions", len(sessions))
        return len(sessions)

    def clear(self) -> None:
        with self._lock:
            sessions = [s for s, _ in self._sessions.values()]
            self._sessions.clear()
        for session in sessions:
            session.close()
