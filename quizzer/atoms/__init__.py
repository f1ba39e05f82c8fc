"""
Question type handlers for quiz sessions.

Each question type (multiple-choice, numeric-input, etc.) has its own module with:
- check(): Grade an answer
- summarize(): Normalize a recorded answer for the session summary
"""

from typing import TYPE_CHECKING

from quizzer.core.models import QuestionType

if TYPE_CHECKING:
    from .base import QuestionHandler


# Handler registry - populated by @register decorator
HANDLERS: dict[QuestionType, "QuestionHandler"] = {}


def register(question_type: QuestionType):
    """Decorator to register a question handler."""
    def decorator(cls):
        HANDLERS[question_type] = cls()
        return cls
    return decorator


def get_handler(question_type: "str | QuestionType") -> "QuestionHandler | None":
    """Get the handler for a question type."""
    if isinstance(question_type, str) and not isinstance(question_type, QuestionType):
        try:
            question_type = QuestionType(question_type.lower())
        except ValueError:
            return None
    return HANDLERS.get(question_type)


# Import handlers to trigger registration
from . import multiple_choice  # noqa: E402
from . import numeric_input  # noqa: E402
from . import ordering  # noqa: E402
from . import multi_select  # noqa: E402
from . import two_stage  # noqa: E402

__all__ = [
    "HANDLERS",
    "QuestionType",
    "get_handler",
    "register",
]
