"""
Multiple-choice question handler.

Correct iff the selected option index equals the stored correct index.
"""

from quizzer.core.models import AnswerRecord, MultipleChoiceQuestion, QuestionType

from . import register
from .base import GradeResult, feedback_fields


@register(QuestionType.MULTIPLE_CHOICE)
class MultipleChoiceHandler:
    """Handler for multiple-choice questions."""

    def check(self, question: MultipleChoiceQuestion, answer: int) -> GradeResult:
        return GradeResult(
            correct=answer == question.correct,
            user_answer=answer,
            correct_answer=question.correct,
            **feedback_fields(question),
        )

    def summarize(self, question: MultipleChoiceQuestion, answer: AnswerRecord) -> tuple:
        return answer.selected, question.correct
