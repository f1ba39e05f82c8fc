"""
Base protocol and types for question handlers.
"""

import copy
from dataclasses import dataclass
from typing import Any, Protocol

from quizzer.core.models import AnswerRecord


@dataclass
class GradeResult:
    """Result of grading an answer."""
    correct: bool
    user_answer: Any
    correct_answer: Any
    explanation: str | None = None
    detailed_explanation: str | None = None
    references: list | None = None


def feedback_fields(source: Any, fallback: Any = None) -> dict:
    """
    Explanation/reference fields of a question or stage.

    References fall back to ``fallback`` (the parent question) when the
    source omits its own. References are deep-copied so event listeners
    cannot reach into the loaded question.
    """
    references = getattr(source, "references", None)
    if references is None and fallback is not None:
        references = getattr(fallback, "references", None)
    return {
        "explanation": getattr(source, "explanation", None),
        "detailed_explanation": getattr(source, "detailed_explanation", None),
        "references": copy.deepcopy(list(references)) if references is not None else None,
    }


class QuestionHandler(Protocol):
    """Protocol for question type handlers."""

    def check(self, question: Any, answer: Any) -> GradeResult:
        """Grade the answer against the question's correctness data."""
        ...

    def summarize(self, question: Any, answer: AnswerRecord) -> tuple[Any, Any]:
        """Return the (userAnswer, correctAnswer) pair for a session summary."""
        ...
