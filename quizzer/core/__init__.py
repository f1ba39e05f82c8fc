"""
Core engine primitives: question models, numeric evaluation, sampling and
the proficiency model. Nothing here performs I/O.
"""

from .models import (
    AnswerRecord,
    Question,
    QuestionType,
    Score,
    StageAnswer,
    TrackingEntry,
    parse_question,
)
from .numeric import check_numeric_answer, format_number, parse_numeric_input
from .proficiency import (
    compute_proficiency,
    compute_sr_weights,
    compute_weakest_areas,
    update_problem_tracking,
)
from .sampler import apply_cap, weighted_shuffle

__all__ = [
    "AnswerRecord",
    "Question",
    "QuestionType",
    "Score",
    "StageAnswer",
    "TrackingEntry",
    "apply_cap",
    "check_numeric_answer",
    "compute_proficiency",
    "compute_sr_weights",
    "compute_weakest_areas",
    "format_number",
    "parse_numeric_input",
    "parse_question",
    "update_problem_tracking",
    "weighted_shuffle",
]
