"""
DB-backed store classes for Homework Helper.

Each store is scoped to one user id and reads/writes SQLite through the
request-local connection from database.get_db().
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Optional

from database import get_db
from errors import (
    AlreadyAnswered,
    InsufficientPoints,
    PowerupUnavailable,
    QuestionMismatch,
    UnknownPowerup,
)
from exam_session import is_correct_answer
from gamification import POINTS_PER_CORRECT, POWERUPS, next_streak, parse_activity_date
from models import (
    DailyQuestion,
    ExamSubmission,
    Homework,
    Question,
    UserPowerup,
    UserStats,
    VocabularyWord,
    score_percentage,
)

logger = logging.getLogger(__name__)


# ── Homework ─────────────────────────────────────────────────────────


class HomeworkStoreDB:
    """Homework owned by one teacher."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def create(self, *, topic: str, difficulty: str, hw_type: str,
               questions: list[Question], timer_minutes: int = 0,
               question_count: int = 0, anti_cheat: bool = False) -> Homework:
        db = get_db()
        now = datetime.now().isoformat()
        cur = db.execute(
            "INSERT INTO homework (user_id, topic, difficulty, type, content, "
            "timer_minutes, question_count, anti_cheat, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (self.user_id, topic, difficulty, hw_type, Homework.content_json(questions),
             timer_minutes, question_count, 1 if anti_cheat else 0, now),
        )
        db.commit()
        return Homework(
            id=cur.lastrowid, user_id=self.user_id, topic=topic, difficulty=difficulty,
            type=hw_type, questions=list(questions), timer_minutes=timer_minutes,
            question_count=question_count, anti_cheat=anti_cheat, created_at=now,
        )

    def list(self) -> list[Homework]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM homework WHERE user_id=? ORDER BY created_at DESC, id DESC",
            (self.user_id,),
        ).fetchall()
        return [row_to_homework(r) for r in rows]

    def get_owned(self, homework_id: int) -> Optional[Homework]:
        hw = HomeworkStoreDB.get(homework_id)
        if hw is None or hw.user_id != self.user_id:
            return None
        return hw

    def delete(self, homework_id: int) -> bool:
        db = get_db()
        cur = db.execute(
            "DELETE FROM homework WHERE id=? AND user_id=?", (homework_id, self.user_id)
        )
        db.commit()
        return cur.rowcount > 0

    @staticmethod
    def get(homework_id: int) -> Optional[Homework]:
        """Any homework by id. Share links are public."""
        db = get_db()
        row = db.execute("SELECT * FROM homework WHERE id=?", (homework_id,)).fetchone()
        return row_to_homework(row) if row else None


def row_to_homework(r) -> Homework:
    try:
        content = json.loads(r["content"])
    except (TypeError, ValueError):
        content = {}
    raw_questions = content.get("questions", []) if isinstance(content, dict) else []
    return Homework(
        id=r["id"], user_id=r["user_id"], topic=r["topic"], difficulty=r["difficulty"],
        type=r["type"],
        questions=[Question.from_dict(q) for q in raw_questions if isinstance(q, dict)],
        timer_minutes=r["timer_minutes"], question_count=r["question_count"],
        anti_cheat=bool(r["anti_cheat"]), created_at=r["created_at"],
    )


# ── Exam submissions ─────────────────────────────────────────────────


class SubmissionStoreDB:
    """Student results, listed for the owner of the homework."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    @staticmethod
    def record(homework: Homework, *, student_name: str, score: int,
               total_questions: int, answers: list[bool],
               time_spent: Optional[int] = None) -> ExamSubmission:
        """Write-once insert. Percentage is always derived from score and total."""
        db = get_db()
        now = datetime.now().isoformat()
        percentage = score_percentage(score, total_questions)
        cur = db.execute(
            "INSERT INTO exam_submissions (homework_id, user_id, student_name, score, "
            "total_questions, percentage, answers, time_spent, submitted_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (homework.id, homework.user_id, student_name, score, total_questions,
             percentage, json.dumps(list(answers)), time_spent, now),
        )
        db.commit()
        logger.info("Recorded submission %s for homework %s: %d/%d",
                    cur.lastrowid, homework.id, score, total_questions)
        return ExamSubmission(
            id=cur.lastrowid, homework_id=homework.id, user_id=homework.user_id,
            student_name=student_name, score=score, total_questions=total_questions,
            percentage=percentage, answers=list(answers), time_spent=time_spent,
            submitted_at=now,
        )

    def list(self) -> list[ExamSubmission]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM exam_submissions WHERE user_id=? ORDER BY submitted_at DESC, id DESC",
            (self.user_id,),
        ).fetchall()
        return [self._row_to_submission(r) for r in rows]

    def by_homework(self, homework_id: int) -> list[ExamSubmission]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM exam_submissions WHERE user_id=? AND homework_id=? "
            "ORDER BY submitted_at DESC, id DESC",
            (self.user_id, homework_id),
        ).fetchall()
        return [self._row_to_submission(r) for r in rows]

    @staticmethod
    def _row_to_submission(r) -> ExamSubmission:
        return ExamSubmission(
            id=r["id"], homework_id=r["homework_id"], user_id=r["user_id"],
            student_name=r["student_name"], score=r["score"],
            total_questions=r["total_questions"], percentage=r["percentage"],
            answers=json.loads(r["answers"] or "[]"), time_spent=r["time_spent"],
            submitted_at=r["submitted_at"],
        )


# ── Vocabulary ───────────────────────────────────────────────────────


class VocabularyStoreDB:
    def __init__(self, user_id: int):
        self.user_id = user_id

    def add(self, word: str, definition: str, example: Optional[str] = None,
            category: Optional[str] = None) -> VocabularyWord:
        db = get_db()
        now = datetime.now().isoformat()
        cur = db.execute(
            "INSERT INTO vocabulary_words (user_id, word, definition, example, category, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (self.user_id, word, definition, example or None, category or None, now),
        )
        db.commit()
        return VocabularyWord(id=cur.lastrowid, user_id=self.user_id, word=word,
                              definition=definition, example=example or None,
                              category=category or None, created_at=now)

    def list(self) -> list[VocabularyWord]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM vocabulary_words WHERE user_id=? ORDER BY created_at DESC, id DESC",
            (self.user_id,),
        ).fetchall()
        return [
            VocabularyWord(id=r["id"], user_id=r["user_id"], word=r["word"],
                           definition=r["definition"], example=r["example"],
                           category=r["category"], created_at=r["created_at"])
            for r in rows
        ]

    def delete(self, word_id: int) -> bool:
        db = get_db()
        cur = db.execute(
            "DELETE FROM vocabulary_words WHERE id=? AND user_id=?", (word_id, self.user_id)
        )
        db.commit()
        return cur.rowcount > 0


# ── Stats ────────────────────────────────────────────────────────────


class UserStatsDB:
    def __init__(self, user_id: int):
        self.user_id = user_id

    def _ensure(self):
        db = get_db()
        db.execute("INSERT OR IGNORE INTO user_stats (user_id) VALUES (?)", (self.user_id,))
        db.commit()

    def get(self) -> UserStats:
        self._ensure()
        db = get_db()
        r = db.execute("SELECT * FROM user_stats WHERE user_id=?", (self.user_id,)).fetchone()
        return self._row_to_stats(r)

    @staticmethod
    def _row_to_stats(r) -> UserStats:
        return UserStats(
            user_id=r["user_id"], points=r["points"], current_streak=r["current_streak"],
            longest_streak=r["longest_streak"], total_correct=r["total_correct"],
            total_answered=r["total_answered"], last_activity_date=r["last_activity_date"],
        )


# ── Daily question ───────────────────────────────────────────────────


class DailyQuestionStoreDB:
    """One generated question per user per calendar day, answerable once."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def get_for_date(self, day: date) -> Optional[DailyQuestion]:
        db = get_db()
        row = db.execute(
            "SELECT * FROM daily_questions WHERE user_id=? AND date=?",
            (self.user_id, day.isoformat()),
        ).fetchone()
        return self._row_to_daily(row) if row else None

    def get_or_create(self, day: date,
                      generate: Callable[[], tuple[Question, str]]) -> DailyQuestion:
        """Today's question, generating it on first access.

        INSERT OR IGNORE on the (user_id, date) key means concurrent first
        requests converge on whichever row landed first.
        """
        existing = self.get_for_date(day)
        if existing is not None:
            return existing

        question, topic = generate()
        db = get_db()
        with db:
            db.execute(
                "INSERT OR IGNORE INTO daily_questions (user_id, date, question, options, "
                "correct_answer, explanation, topic, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (self.user_id, day.isoformat(), question.question,
                 json.dumps(question.options) if question.options is not None else None,
                 question.correct_answer, question.explanation, topic,
                 datetime.now().isoformat()),
            )
        return self.get_for_date(day)

    def answer(self, question_id: int, answer: str, today: date) -> dict:
        """Grade today's question once and update stats in the same transaction."""
        current = self.get_for_date(today)
        if current is None or current.id != question_id:
            raise QuestionMismatch("This is not today's question.")
        if current.answered:
            raise AlreadyAnswered("You have already answered today's question.")

        correct = is_correct_answer(answer, current.correct_answer,
                                    multiple_choice=current.options is not None)
        points_earned = POINTS_PER_CORRECT if correct else 0

        db = get_db()
        with db:
            cur = db.execute(
                "UPDATE daily_questions SET answered=1, answered_correctly=? "
                "WHERE id=? AND user_id=? AND answered=0",
                (1 if correct else 0, question_id, self.user_id),
            )
            if cur.rowcount != 1:
                raise AlreadyAnswered("You have already answered today's question.")

            db.execute("INSERT OR IGNORE INTO user_stats (user_id) VALUES (?)", (self.user_id,))
            r = db.execute("SELECT * FROM user_stats WHERE user_id=?", (self.user_id,)).fetchone()
            streak = next_streak(r["current_streak"], parse_activity_date(r["last_activity_date"]),
                                 today, correct)
            db.execute(
                "UPDATE user_stats SET points = points + ?, current_streak=?, "
                "longest_streak=MAX(longest_streak, ?), total_correct = total_correct + ?, "
                "total_answered = total_answered + 1, last_activity_date=? WHERE user_id=?",
                (points_earned, streak, streak, 1 if correct else 0,
                 today.isoformat(), self.user_id),
            )

        stats = UserStatsDB(self.user_id).get()
        logger.info("User %s answered daily question %s (%s), streak=%d",
                    self.user_id, question_id, "correct" if correct else "incorrect",
                    stats.current_streak)
        return {
            "correct": correct,
            "correctAnswer": current.correct_answer,
            "explanation": current.explanation,
            "pointsEarned": points_earned,
            "stats": stats.to_dict(),
        }

    @staticmethod
    def _row_to_daily(r) -> DailyQuestion:
        return DailyQuestion(
            id=r["id"], user_id=r["user_id"], date=r["date"], question=r["question"],
            correct_answer=r["correct_answer"], explanation=r["explanation"],
            topic=r["topic"], options=json.loads(r["options"]) if r["options"] else None,
            answered=bool(r["answered"]), answered_correctly=bool(r["answered_correctly"]),
        )


# ── Power-ups ────────────────────────────────────────────────────────


class PowerupInventoryDB:
    def __init__(self, user_id: int):
        self.user_id = user_id

    def list(self) -> list[UserPowerup]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM user_powerups WHERE user_id=? AND quantity > 0 ORDER BY powerup_id",
            (self.user_id,),
        ).fetchall()
        return [UserPowerup(r["user_id"], r["powerup_id"], r["quantity"]) for r in rows]

    def quantity(self, powerup_id: str) -> int:
        db = get_db()
        row = db.execute(
            "SELECT quantity FROM user_powerups WHERE user_id=? AND powerup_id=?",
            (self.user_id, powerup_id),
        ).fetchone()
        return row["quantity"] if row else 0

    def buy(self, powerup_id: str) -> dict:
        item = POWERUPS.get(powerup_id)
        if item is None:
            raise UnknownPowerup(f"Unknown power-up: {powerup_id}")
        price = item["price"]

        db = get_db()
        with db:
            db.execute("INSERT OR IGNORE INTO user_stats (user_id) VALUES (?)", (self.user_id,))
            cur = db.execute(
                "UPDATE user_stats SET points = points - ? WHERE user_id=? AND points >= ?",
                (price, self.user_id, price),
            )
            if cur.rowcount != 1:
                raise InsufficientPoints(
                    f"Not enough points. {item['name']} costs {price} points."
                )
            db.execute(
                "INSERT INTO user_powerups (user_id, powerup_id, quantity) VALUES (?, ?, 1) "
                "ON CONFLICT(user_id, powerup_id) DO UPDATE SET quantity = quantity + 1",
                (self.user_id, powerup_id),
            )

        logger.info("User %s bought %s for %d points", self.user_id, powerup_id, price)
        return {
            "success": True,
            "powerup": item,
            "quantity": self.quantity(powerup_id),
            "points": UserStatsDB(self.user_id).get().points,
        }

    def use(self, powerup_id: str) -> dict:
        """Consume one. The in-game effect is not applied anywhere yet."""
        if powerup_id not in POWERUPS:
            raise UnknownPowerup(f"Unknown power-up: {powerup_id}")

        db = get_db()
        with db:
            cur = db.execute(
                "UPDATE user_powerups SET quantity = quantity - 1 "
                "WHERE user_id=? AND powerup_id=? AND quantity >= 1",
                (self.user_id, powerup_id),
            )
            if cur.rowcount != 1:
                raise PowerupUnavailable("You don't have this power-up.")
            db.execute(
                "DELETE FROM user_powerups WHERE user_id=? AND powerup_id=? AND quantity <= 0",
                (self.user_id, powerup_id),
            )

        logger.info("User %s used %s", self.user_id, powerup_id)
        return {"success": True, "powerupId": powerup_id, "remaining": self.quantity(powerup_id)}
