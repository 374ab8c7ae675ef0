"""
Domain dataclasses for Homework Helper.

Rows come out of sqlite as plain values; these classes hold them in Python
and render the camelCase JSON the browser client expects.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

DIFFICULTIES = ("Beginner", "Intermediate", "Advanced")
HOMEWORK_TYPES = ("Multiple Choice", "Fill in the blanks", "Short Answer")
MULTIPLE_CHOICE = "Multiple Choice"


def score_percentage(score: int, total: int) -> int:
    """Percentage rounded half-up; 0 when there are no questions."""
    if total <= 0:
        return 0
    return (200 * score + total) // (2 * total)


@dataclass
class Question:
    question: str
    correct_answer: str
    explanation: str = ""
    options: Optional[list[str]] = None

    @classmethod
    def from_dict(cls, data: dict) -> Question:
        options = data.get("options")
        if options is not None:
            options = [str(o) for o in options]
        return cls(
            question=str(data.get("question", "")),
            correct_answer=str(data.get("correctAnswer", data.get("correct_answer", ""))),
            explanation=str(data.get("explanation", "")),
            options=options or None,
        )

    def to_dict(self) -> dict:
        d = {
            "question": self.question,
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
        }
        if self.options is not None:
            d["options"] = list(self.options)
        return d


@dataclass
class Homework:
    id: int
    user_id: int
    topic: str
    difficulty: str
    type: str
    questions: list[Question] = field(default_factory=list)
    timer_minutes: int = 0
    question_count: int = 0
    anti_cheat: bool = False
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def is_multiple_choice(self) -> bool:
        return self.type == MULTIPLE_CHOICE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "topic": self.topic,
            "difficulty": self.difficulty,
            "type": self.type,
            "content": {"questions": [q.to_dict() for q in self.questions]},
            "timerMinutes": self.timer_minutes,
            "questionCount": self.question_count,
            "antiCheat": self.anti_cheat,
            "createdAt": self.created_at,
        }

    @staticmethod
    def content_json(questions: list[Question]) -> str:
        return json.dumps({"questions": [q.to_dict() for q in questions]})


@dataclass
class ExamSubmission:
    id: int
    homework_id: int
    user_id: int
    student_name: str
    score: int
    total_questions: int
    percentage: int
    answers: list[bool] = field(default_factory=list)
    time_spent: Optional[int] = None
    submitted_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "homeworkId": self.homework_id,
            "userId": self.user_id,
            "studentName": self.student_name,
            "score": self.score,
            "totalQuestions": self.total_questions,
            "percentage": self.percentage,
            "answers": self.answers,
            "timeSpent": self.time_spent,
            "submittedAt": self.submitted_at,
        }


@dataclass
class VocabularyWord:
    id: int
    user_id: int
    word: str
    definition: str
    example: Optional[str] = None
    category: Optional[str] = None
    created_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "word": self.word,
            "definition": self.definition,
            "example": self.example,
            "category": self.category,
            "createdAt": self.created_at,
        }


@dataclass
class DailyQuestion:
    id: int
    user_id: int
    date: str  # ISO calendar date
    question: str
    correct_answer: str
    explanation: str = ""
    topic: str = ""
    options: Optional[list[str]] = None
    answered: bool = False
    answered_correctly: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "date": self.date,
            "question": self.question,
            "options": self.options,
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
            "topic": self.topic,
            "answered": self.answered,
            "answeredCorrectly": self.answered_correctly,
        }


@dataclass
class UserStats:
    user_id: int
    points: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_correct: int = 0
    total_answered: int = 0
    last_activity_date: str = ""

    @property
    def accuracy(self) -> int:
        return score_percentage(self.total_correct, self.total_answered)

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "points": self.points,
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "totalCorrect": self.total_correct,
            "totalAnswered": self.total_answered,
            "accuracy": self.accuracy,
            "lastActivityDate": self.last_activity_date or None,
        }


@dataclass
class UserPowerup:
    user_id: int
    powerup_id: str
    quantity: int

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "powerupId": self.powerup_id,
            "quantity": self.quantity,
        }
