"""
Two-stage question handler.

A two-stage question is a sequence of dependent sub-questions. Each stage is
graded like a multiple-choice question; the question as a whole is correct
only if every stage is.
"""

from collections.abc import Sequence

from quizzer.core.models import AnswerRecord, QuestionType, StageAnswer, TwoStageQuestion

from . import register
from .base import GradeResult, feedback_fields


@register(QuestionType.TWO_STAGE)
class TwoStageHandler:
    """Handler for two-stage questions."""

    def check_stage(self, question: TwoStageQuestion, stage_index: int, selected: int) -> GradeResult:
        """Grade a single stage; feedback comes from the stage itself."""
        stage = question.stages[stage_index]
        return GradeResult(
            correct=selected == stage.correct,
            user_answer=selected,
            correct_answer=stage.correct,
            **feedback_fields(stage, fallback=question),
        )

    def check(self, question: TwoStageQuestion, answer: Sequence[StageAnswer]) -> GradeResult:
        """Overall result: logical AND across the recorded stage answers."""
        last_stage = question.stages[-1]
        return GradeResult(
            correct=len(answer) == len(question.stages) and all(a.correct for a in answer),
            user_answer=[a.to_dict() for a in answer],
            correct_answer=[stage.correct for stage in question.stages],
            **feedback_fields(last_stage, fallback=question),
        )

    def summarize(self, question: TwoStageQuestion, answer: AnswerRecord) -> tuple:
        user = [s.to_dict() for s in (answer.stage_answers or [])]
        return user, [stage.correct for stage in question.stages]
