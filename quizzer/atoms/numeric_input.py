"""
Numeric-input question handler.

Parses free text ("5K", "1,200") and grades it under the question's
tolerance policy. Unparseable input is graded incorrect, never rejected.
"""

import math

from quizzer.core.models import AnswerRecord, NumericInputQuestion, QuestionType
from quizzer.core.numeric import check_numeric_answer, parse_numeric_input

from . import register
from .base import GradeResult, feedback_fields


@register(QuestionType.NUMERIC_INPUT)
class NumericInputHandler:
    """Handler for numeric-input questions."""

    def check(self, question: NumericInputQuestion, answer: str | float) -> GradeResult:
        """Check a raw string (or already-parsed number) against the target."""
        if isinstance(answer, str):
            user_value = parse_numeric_input(answer.strip())
        else:
            user_value = float(answer)
        return GradeResult(
            correct=check_numeric_answer(user_value, question.answer, question.tolerance),
            user_answer=user_value,
            correct_answer=question.answer,
            **feedback_fields(question),
        )

    def summarize(self, question: NumericInputQuestion, answer: AnswerRecord) -> tuple:
        user_value = answer.user_value
        # Unparseable input is stored as NaN and exported as null
        if user_value is not None and math.isnan(user_value):
            user_value = None
        return user_value, question.answer
