"""
Ordering question handler.

The answer is a permutation of original item indices. Correct only when it
matches the stored order at every position; there is no partial credit.
"""

from collections.abc import Sequence

from quizzer.core.models import AnswerRecord, OrderingQuestion, QuestionType

from . import register
from .base import GradeResult, feedback_fields


@register(QuestionType.ORDERING)
class OrderingHandler:
    """Handler for ordering questions."""

    def check(self, question: OrderingQuestion, answer: Sequence[int]) -> GradeResult:
        user_order = list(answer)
        correct_order = list(question.correct_order)
        return GradeResult(
            correct=user_order == correct_order,
            user_answer=user_order,
            correct_answer=correct_order,
            **feedback_fields(question),
        )

    def summarize(self, question: OrderingQuestion, answer: AnswerRecord) -> tuple:
        return list(answer.user_order or []), list(question.correct_order)
