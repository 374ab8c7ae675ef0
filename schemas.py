"""Request body schemas. Validation errors surface as 400 {message, field}."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class HomeworkCreate(_Body):
    topic: str = Field(min_length=1, max_length=200)
    difficulty: Literal["Beginner", "Intermediate", "Advanced"]
    type: Literal["Multiple Choice", "Fill in the blanks", "Short Answer"]
    timer_minutes: int = Field(0, ge=0, le=180, alias="timerMinutes")
    question_count: int = Field(0, ge=0, le=50, alias="questionCount")
    anti_cheat: bool = Field(False, alias="antiCheat")


class SubmissionCreate(_Body):
    homework_id: int = Field(alias="homeworkId")
    student_name: str = Field(min_length=1, max_length=100, alias="studentName")
    score: int = Field(ge=0)
    total_questions: int = Field(ge=0, alias="totalQuestions")
    answers: list[bool] = Field(default_factory=list)
    time_spent: Optional[int] = Field(None, ge=0, alias="timeSpent")

    @model_validator(mode="after")
    def _score_within_total(self):
        if self.score > self.total_questions:
            raise ValueError("score cannot exceed totalQuestions")
        return self


class VocabularyCreate(_Body):
    word: str = Field(min_length=1, max_length=100)
    definition: str = Field(min_length=1, max_length=1000)
    example: Optional[str] = Field(None, max_length=1000)
    category: Optional[str] = Field(None, max_length=100)


class AnswerIn(_Body):
    answer: str = ""


class StartSessionIn(_Body):
    student_name: str = Field(min_length=1, max_length=100, alias="studentName")


class BuyPowerupIn(_Body):
    powerup_id: str = Field(min_length=1, alias="powerupId")


class SessionEventIn(_Body):
    type: str = Field(min_length=1)
