"""
Multi-select question handler.

Set equality: a missing correct option and an extra wrong option are both
graded incorrect.
"""

from collections.abc import Iterable

from quizzer.core.models import AnswerRecord, MultiSelectQuestion, QuestionType

from . import register
from .base import GradeResult, feedback_fields


@register(QuestionType.MULTI_SELECT)
class MultiSelectHandler:
    """Handler for multi-select questions."""

    def check(self, question: MultiSelectQuestion, answer: Iterable[int]) -> GradeResult:
        selected = sorted(set(answer))
        correct = sorted(set(question.correct_indices))
        return GradeResult(
            correct=selected == correct,
            user_answer=selected,
            correct_answer=correct,
            **feedback_fields(question),
        )

    def summarize(self, question: MultiSelectQuestion, answer: AnswerRecord) -> tuple:
        selected = answer.selected if isinstance(answer.selected, list) else []
        return list(selected), list(question.correct_indices)
