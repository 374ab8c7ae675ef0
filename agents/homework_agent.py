"""Homework Generation Agent: LLM-written English exercises.

Turns a topic/difficulty/format request into a list of Question objects, and
writes the one-question-a-day challenge for the gamification ledger.
"""

from __future__ import annotations

import json
import logging
import os
import random
import re

from agents.base import AgentResponse
from models import MULTIPLE_CHOICE, Question

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful English teacher."

HOMEWORK_PROMPT = """Generate a {difficulty} level English homework exercise about "{topic}".
The format should be "{type}".
Return ONLY a JSON object with a "questions" array.
Each question object should have:
- "id": number
- "question": string
- "options": array of strings (if multiple choice)
- "correctAnswer": string
- "explanation": string

Do not include any markdown formatting or explanations outside the JSON."""

DAILY_PROMPT = """Write one multiple-choice English question about "{topic}" for an intermediate learner.
Return ONLY a JSON object with:
- "question": string
- "options": array of exactly 4 strings
- "correctAnswer": string, identical to one of the options
- "explanation": string

Do not include any markdown formatting or explanations outside the JSON."""

DAILY_TOPICS = [
    "Phrasal verbs",
    "Present perfect vs past simple",
    "Conditionals",
    "Prepositions of time",
    "Collocations",
    "Reported speech",
    "Articles",
    "Modal verbs",
    "Idioms",
    "Passive voice",
    "Comparatives and superlatives",
    "Word formation",
]

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)

_API_KEY_ENV = {"openai": "OPENAI_API_KEY", "claude": "ANTHROPIC_API_KEY"}
_DEFAULT_MODELS = {"openai": "gpt-4o-mini", "claude": "claude-3-5-haiku-latest"}


class HomeworkGenAgent:
    """Generates homework question sets and daily questions."""

    AGENT_NAME = "homework_agent"

    def __init__(self, provider: str = "", model: str = "") -> None:
        self.provider = provider or os.getenv("LLM_PROVIDER", "openai")
        self.model = model or _DEFAULT_MODELS.get(self.provider, "")
        key_env = _API_KEY_ENV.get(self.provider)
        self.available = bool(key_env and os.getenv(key_env))

    def _unavailable(self) -> AgentResponse:
        return AgentResponse(
            content=f"Homework generation requires an API key for provider {self.provider!r}.",
            agent=self.AGENT_NAME,
            confidence=0.0,
        )

    def generate_homework(self, topic: str, difficulty: str, hw_type: str) -> AgentResponse:
        """Generate a question set. metadata["questions"] holds Question objects."""
        if not self.available:
            return self._unavailable()

        prompt = HOMEWORK_PROMPT.format(topic=topic, difficulty=difficulty, type=hw_type)
        try:
            raw = self._call_llm(prompt)
            questions = self.parse_questions(raw, multiple_choice=hw_type == MULTIPLE_CHOICE)
        except Exception as e:
            logger.error("Homework generation failed for %r: %s", topic, e, exc_info=True)
            return AgentResponse(
                content=f"Error generating homework: {e}",
                agent=self.AGENT_NAME,
                confidence=0.0,
            )

        if not questions:
            return AgentResponse(
                content="The model returned no usable questions.",
                agent=self.AGENT_NAME,
                confidence=0.0,
            )

        return AgentResponse(
            content=f"Generated {len(questions)} questions on {topic}.",
            agent=self.AGENT_NAME,
            confidence=0.9,
            metadata={"questions": questions, "topic": topic,
                      "difficulty": difficulty, "type": hw_type},
        )

    def generate_daily_question(self, topic: str = "") -> AgentResponse:
        """Generate one multiple-choice question. metadata["question"] is a Question."""
        if not self.available:
            return self._unavailable()

        topic = topic or random.choice(DAILY_TOPICS)
        try:
            raw = self._call_llm(DAILY_PROMPT.format(topic=topic))
            data = self._load_json(raw)
            if "questions" in data and isinstance(data["questions"], list) and data["questions"]:
                data = data["questions"][0]
            questions = self._clean([data], multiple_choice=True)
        except Exception as e:
            logger.error("Daily question generation failed: %s", e, exc_info=True)
            return AgentResponse(
                content=f"Error generating daily question: {e}",
                agent=self.AGENT_NAME,
                confidence=0.0,
            )

        if not questions:
            return AgentResponse(
                content="The model returned an unusable daily question.",
                agent=self.AGENT_NAME,
                confidence=0.0,
            )
        return AgentResponse(
            content=questions[0].question,
            agent=self.AGENT_NAME,
            confidence=0.9,
            metadata={"question": questions[0], "topic": topic},
        )

    # --- Parsing ---

    @classmethod
    def parse_questions(cls, raw: str, multiple_choice: bool = False) -> list[Question]:
        data = cls._load_json(raw)
        items = data.get("questions") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise ValueError("Response has no 'questions' array")
        return cls._clean(items, multiple_choice)

    @staticmethod
    def _load_json(raw: str):
        text = _FENCE_RE.sub("", (raw or "").strip())
        if not text:
            raise ValueError("Empty response from model")
        return json.loads(text)

    @staticmethod
    def _clean(items: list, multiple_choice: bool) -> list[Question]:
        """Drop entries without question text or answer; MC entries need options."""
        questions = []
        for item in items:
            if not isinstance(item, dict):
                continue
            q = Question.from_dict(item)
            if not q.question.strip() or not q.correct_answer.strip():
                continue
            if multiple_choice and (not q.options or len(q.options) < 2):
                continue
            questions.append(q)
        return questions

    def _call_llm(self, prompt: str) -> str:
        from ai_resilience import resilient_llm_call

        text, _ = resilient_llm_call(
            self.provider, self.model, prompt, system=SYSTEM_PROMPT, json_mode=True
        )
        return text
