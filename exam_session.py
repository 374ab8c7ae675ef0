"""
Exam session engine.

One student's attempt at a homework: settings are read from the stored
record, questions are shuffled per attempt, answers are graded one question
at a time, and an optional countdown and anti-cheat guard live exactly as
long as the attempt is in progress.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from collections import deque
from collections.abc import Callable, Sequence
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

from errors import InvalidTransition
from models import Homework, Question, score_percentage

logger = logging.getLogger(__name__)

CELEBRATION_THRESHOLD = 70


# ── Settings ────────────────────────────────────────────────


@dataclass(frozen=True)
class ExamSettings:
    timer_seconds: int
    question_limit: int
    anti_cheat_enabled: bool

    @property
    def timed(self) -> bool:
        return self.timer_seconds > 0

    def to_dict(self) -> dict:
        return {
            "timerSeconds": self.timer_seconds,
            "questionLimit": self.question_limit,
            "antiCheat": self.anti_cheat_enabled,
        }


def resolve_settings(homework: Homework) -> ExamSettings:
    """Exam parameters from the persisted homework record only."""
    return ExamSettings(
        timer_seconds=max(0, int(homework.timer_minutes)) * 60,
        question_limit=max(0, int(homework.question_count)),
        anti_cheat_enabled=bool(homework.anti_cheat),
    )


# ── Randomizer ──────────────────────────────────────────────


def shuffled(items: Sequence, rng: random.Random) -> list:
    """Fisher-Yates shuffle of a copy."""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def randomize_questions(questions: Sequence[Question], limit: int = 0,
                        rng: Optional[random.Random] = None) -> list[Question]:
    """Shuffle, truncate to `limit` when positive, shuffle each option list."""
    rng = rng or random.Random()
    picked = shuffled(questions, rng)
    if limit > 0:
        picked = picked[:limit]
    return [
        replace(q, options=shuffled(q.options, rng) if q.options is not None else None)
        for q in picked
    ]


# ── Grading helpers ─────────────────────────────────────────


def is_correct_answer(answer: Optional[str], correct: str, multiple_choice: bool) -> bool:
    if answer is None:
        return False
    if multiple_choice:
        return answer == correct
    return answer.strip().lower() == correct.strip().lower()


def score_message(percentage: int) -> str:
    if percentage == 100:
        return "Perfect Score!"
    if percentage >= 90:
        return "Outstanding!"
    if percentage >= 80:
        return "Great Job!"
    if percentage >= 70:
        return "Good Work!"
    if percentage >= 60:
        return "Nice Effort!"
    if percentage >= 50:
        return "Keep Practicing!"
    return "Don't Give Up!"


def format_time(seconds: int) -> str:
    mins, secs = divmod(max(0, int(seconds)), 60)
    return f"{mins}:{secs:02d}"


# ── Timer ───────────────────────────────────────────────────


class CountdownTimer:
    """Calls `callback` once per `interval` seconds on a daemon thread until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], Any]) -> None:
        self.interval = interval
        self.callback = callback
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name="exam-countdown", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Countdown callback failed, stopping timer")
                self._stopped.set()

    def cancel(self) -> None:
        self._stopped.set()
        # The callback may cancel its own timer on expiry; never join ourselves.
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=self.interval + 1)


# ── Anti-cheat ──────────────────────────────────────────────


NOTICE_EVENTS = {
    "copy": "Copying is disabled",
    "cut": "Cutting is disabled",
    "paste": "Pasting is disabled",
}
SILENT_EVENTS = {"contextmenu", "selectstart"}


@dataclass(frozen=True)
class EventVerdict:
    suppressed: bool
    notice: Optional[str] = None

    def to_dict(self) -> dict:
        return {"suppressed": self.suppressed, "notice": self.notice}


class AntiCheatMonitor:
    """Decides whether a clipboard/selection event is blocked.

    Only blocks while attached and while the owning session is in progress.
    """

    def __init__(self, is_active: Callable[[], bool],
                 notify: Optional[Callable[[str], None]] = None) -> None:
        self._is_active = is_active
        self._notify = notify
        self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self) -> None:
        self._attached = True

    def detach(self) -> None:
        self._attached = False

    def handle(self, event_type: str) -> EventVerdict:
        if not self._attached or not self._is_active():
            return EventVerdict(suppressed=False)
        if event_type in NOTICE_EVENTS:
            notice = f"{NOTICE_EVENTS[event_type]}. Anti-cheat mode is active."
            if self._notify:
                self._notify(notice)
            return EventVerdict(suppressed=True, notice=notice)
        if event_type in SILENT_EVENTS:
            return EventVerdict(suppressed=True)
        return EventVerdict(suppressed=False)


@contextmanager
def exam_scope(session: ExamSession,
               timer_factory: Optional[Callable[..., CountdownTimer]] = CountdownTimer,
               interval: float = 1.0):
    """Hold the anti-cheat guard and countdown for the life of the block.

    Both are released on every way out of the block.
    """
    timer = None
    if session.settings.anti_cheat_enabled:
        session.anti_cheat.attach()
    try:
        if session.settings.timed and timer_factory is not None:
            timer = timer_factory(interval, session.tick)
            timer.start()
        yield timer
    finally:
        if timer is not None:
            timer.cancel()
        session.anti_cheat.detach()


# ── State machine ───────────────────────────────────────────


@dataclass(frozen=True)
class AttemptResult:
    """A finished attempt, captured while the session lock is held."""

    homework_id: int
    attempt: int
    student_name: Optional[str]
    score: int
    total_questions: int
    answers: tuple[bool, ...]
    time_spent: Optional[int]
    timed_out: bool

    @property
    def percentage(self) -> int:
        return score_percentage(self.score, self.total_questions)


class SessionState(str, Enum):
    NAME_ENTRY = "name_entry"
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ExamSession:
    """One attempt at a homework, driven one question at a time.

    Thread-safe: the countdown thread and request handlers share it. Scope
    release and completion hooks always run outside the lock so a timer
    join can never wait on a thread that is waiting on us. Hooks receive
    the AttemptResult frozen at completion, never the live session.
    """

    def __init__(self, homework: Homework, *, student: bool = False,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.monotonic,
                 timer_factory: Optional[Callable[..., CountdownTimer]] = CountdownTimer,
                 tick_interval: float = 1.0) -> None:
        self.homework = homework
        self.settings = resolve_settings(homework)
        self.student = student
        self._rng = rng or random.Random()
        self._clock = clock
        self._timer_factory = timer_factory
        self._tick_interval = tick_interval
        self._lock = threading.RLock()
        self._scope: Optional[ExitStack] = None
        self._completion_hooks: list[Callable[[AttemptResult], Any]] = []
        self._notices: deque[str] = deque(maxlen=20)
        self.anti_cheat = AntiCheatMonitor(
            is_active=lambda: self.state is SessionState.IN_PROGRESS,
            notify=self.push_notice,
        )
        self.attempt = 0
        self._reset()

    def _reset(self) -> None:
        self.questions = randomize_questions(
            self.homework.questions, self.settings.question_limit, self._rng
        )
        self.state = SessionState.NAME_ENTRY if self.student else SessionState.NOT_STARTED
        self.student_name: Optional[str] = None
        self.index = 0
        self.score = 0
        self.history: list[bool] = []
        self.submitted = False
        self.last_answer: Optional[str] = None
        self.last_correct: Optional[bool] = None
        self.time_left = self.settings.timer_seconds
        self.timed_out = False
        self.started_at: Optional[float] = None
        self.completed_at: Optional[float] = None
        self._celebration_pending = False
        self.result: Optional[AttemptResult] = None
        self.attempt += 1

    # --- Read-only views ---

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if self.state is not SessionState.IN_PROGRESS or self.index >= len(self.questions):
            return None
        return self.questions[self.index]

    @property
    def percentage(self) -> int:
        return score_percentage(self.score, self.total_questions)

    @property
    def completed(self) -> bool:
        return self.state is SessionState.COMPLETED

    @property
    def time_spent(self) -> Optional[int]:
        if self.started_at is None or self.completed_at is None:
            return None
        return int(self.completed_at - self.started_at)

    # --- Hooks and notices ---

    def on_complete(self, hook: Callable[[AttemptResult], Any]) -> None:
        self._completion_hooks.append(hook)

    def push_notice(self, message: str) -> None:
        self._notices.append(message)

    def drain_notices(self) -> list[str]:
        with self._lock:
            notices = list(self._notices)
            self._notices.clear()
            return notices

    # --- Transitions ---

    def start(self, student_name: Optional[str] = None) -> None:
        with self._lock:
            if self.state is SessionState.NAME_ENTRY:
                name = (student_name or "").strip()
                if not name:
                    raise InvalidTransition("Enter your name to start the exam.")
                self.student_name = name
            elif self.state is not SessionState.NOT_STARTED:
                raise InvalidTransition("The exam has already started.")
            if not self.questions:
                raise InvalidTransition("This homework has no questions.")
            self.state = SessionState.IN_PROGRESS
            self.started_at = self._clock()
            scope = ExitStack()
            scope.enter_context(exam_scope(self, self._timer_factory, self._tick_interval))
            self._scope = scope
        logger.info("Exam session started for homework %s (attempt %d)",
                    self.homework.id, self.attempt)

    def submit_answer(self, answer: Optional[str]) -> bool:
        with self._lock:
            if self.state is not SessionState.IN_PROGRESS:
                raise InvalidTransition("The exam is not in progress.")
            if self.submitted:
                raise InvalidTransition("This question has already been answered.")
            question = self.questions[self.index]
            correct = is_correct_answer(answer, question.correct_answer,
                                        self.homework.is_multiple_choice)
            if correct:
                self.score += 1
            self.history.append(correct)
            self.last_answer = answer
            self.last_correct = correct
            self.submitted = True
            return correct

    def advance(self) -> None:
        with self._lock:
            if self.state is not SessionState.IN_PROGRESS:
                raise InvalidTransition("The exam is not in progress.")
            if not self.submitted:
                raise InvalidTransition("Answer the current question first.")
            if self.index < len(self.questions) - 1:
                self.index += 1
                self.submitted = False
                self.last_answer = None
                self.last_correct = None
                return
            result = self._finish_locked()
        if result is not None:
            self._after_completion(result)

    def tick(self) -> None:
        """One second of countdown. Zero ends the exam where it stands."""
        with self._lock:
            if self.state is not SessionState.IN_PROGRESS or not self.settings.timed:
                return
            self.time_left = max(0, self.time_left - 1)
            if self.time_left > 0:
                return
            self.timed_out = True
            result = self._finish_locked()
        if result is not None:
            self._after_completion(result)

    def restart(self) -> None:
        self._release_scope()
        with self._lock:
            self._reset()
        logger.info("Exam session restarted for homework %s (attempt %d)",
                    self.homework.id, self.attempt)

    def close(self) -> None:
        """Leave the session without completing it (navigation away, eviction)."""
        self._release_scope()

    def consume_celebration(self) -> bool:
        """True at most once per completion at or above the celebration threshold."""
        with self._lock:
            pending = self._celebration_pending
            self._celebration_pending = False
            return pending

    def handle_event(self, event_type: str) -> EventVerdict:
        with self._lock:
            return self.anti_cheat.handle(event_type)

    # --- Internals ---

    def _finish_locked(self) -> Optional[AttemptResult]:
        if self.state is not SessionState.IN_PROGRESS:
            return None
        self.state = SessionState.COMPLETED
        self.completed_at = self._clock()
        self._celebration_pending = self.percentage >= CELEBRATION_THRESHOLD
        self.result = AttemptResult(
            homework_id=self.homework.id,
            attempt=self.attempt,
            student_name=self.student_name,
            score=self.score,
            total_questions=self.total_questions,
            answers=tuple(self.history),
            time_spent=self.time_spent,
            timed_out=self.timed_out,
        )
        return self.result

    def _release_scope(self) -> None:
        with self._lock:
            scope, self._scope = self._scope, None
        if scope is not None:
            scope.close()

    def _after_completion(self, result: AttemptResult) -> None:
        self._release_scope()
        logger.info("Exam session completed for homework %s: %d/%d%s",
                    result.homework_id, result.score, result.total_questions,
                    " (timed out)" if result.timed_out else "")
        for hook in list(self._completion_hooks):
            hook(result)

    def snapshot(self) -> dict:
        """JSON view for the client. Answers stay hidden until submitted."""
        with self._lock:
            current = None
            q = self.current_question
            if q is not None:
                current = {"question": q.question, "options": q.options}
                if self.submitted:
                    current["correctAnswer"] = q.correct_answer
                    current["explanation"] = q.explanation
            data = {
                "homeworkId": self.homework.id,
                "topic": self.homework.topic,
                "type": self.homework.type,
                "state": self.state.value,
                "student": self.student,
                "studentName": self.student_name,
                "settings": self.settings.to_dict(),
                "questionIndex": self.index,
                "totalQuestions": self.total_questions,
                "currentQuestion": current,
                "submitted": self.submitted,
                "lastAnswerCorrect": self.last_correct,
                "score": self.score,
                "percentage": self.percentage,
                "answers": list(self.history),
                "timeLeft": self.time_left if self.settings.timed else None,
                "timeLeftDisplay": format_time(self.time_left) if self.settings.timed else None,
                "antiCheatActive": self.anti_cheat.attached,
            }
            if self.completed:
                data["scoreMessage"] = score_message(self.percentage)
                data["timedOut"] = self.timed_out
                data["timeSpent"] = self.time_spent
            return data


# ── Submission reporting ────────────────────────────────────


def build_submission_payload(result: AttemptResult) -> dict:
    return {
        "homework_id": result.homework_id,
        "student_name": result.student_name,
        "score": result.score,
        "total_questions": result.total_questions,
        "percentage": result.percentage,
        "answers": list(result.answers),
        "time_spent": result.time_spent,
    }


class SubmissionReporter:
    """Hands a finished attempt to persistence, once, without retrying.

    Register with ExamSession.on_complete(). Failures are logged and passed
    to `notify`; the student still has their score on screen.
    """

    SUCCESS_NOTICE = "Results submitted. Your teacher will see your score."
    FAILURE_NOTICE = "Could not submit your results. Please tell your teacher your score."

    def __init__(self, submit: Callable[[dict], Any],
                 notify: Optional[Callable[[str], None]] = None) -> None:
        self._submit = submit
        self._notify = notify
        self._reported_attempts: set[int] = set()

    def __call__(self, result: AttemptResult) -> bool:
        return self.report(result)

    def report(self, result: AttemptResult) -> bool:
        if not result.student_name:
            return False
        if result.attempt in self._reported_attempts:
            return False
        self._reported_attempts.add(result.attempt)

        payload = build_submission_payload(result)
        try:
            self._submit(payload)
        except Exception as exc:
            logger.error("Submission for homework %s by %r failed: %s",
                         payload["homework_id"], payload["student_name"], exc, exc_info=True)
            if self._notify:
                self._notify(self.FAILURE_NOTICE)
            return False
        if self._notify:
            self._notify(self.SUCCESS_NOTICE)
        return True
