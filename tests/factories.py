"""Plain builders shared by the test modules."""

from __future__ import annotations

from models import Question


def make_questions(n: int = 5, multiple_choice: bool = True) -> list[Question]:
    """n distinct questions; the correct answer to question i is 'answer i'."""
    return [
        Question(
            question=f"Question {i}?",
            correct_answer=f"answer {i}",
            explanation=f"Because {i}.",
            options=[f"answer {i}", f"wrong {i}a", f"wrong {i}b", f"wrong {i}c"] if multiple_choice else None,
        )
        for i in range(n)
    ]


def questions_json(n: int = 5, multiple_choice: bool = True) -> str:
    """What a well-behaved model returns for a homework prompt."""
    import json
    return json.dumps({"questions": [
        {"id": i + 1, **q.to_dict()} for i, q in enumerate(make_questions(n, multiple_choice))
    ]})
