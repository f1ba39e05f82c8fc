"""
Quizzer: assessment engine for practice sessions.

Components:
- core: question models, numeric evaluation, weighted sampling, proficiency
- atoms: grading handlers per question type
- session: session state machine with synchronous events
- summary: portable session summaries
- stats: validation, deduplication and aggregation of summaries
"""

from .atoms import HANDLERS, get_handler
from .core.models import QuestionType, parse_question
from .events import EventType
from .session import QuizSession, SessionPhase
from .session_store import SessionSnapshot
from .stats import compute_aggregate_stats, deduplicate_sessions, validate_session_summary

__all__ = [
    "EventType",
    "HANDLERS",
    "QuestionType",
    "QuizSession",
    "SessionPhase",
    "SessionSnapshot",
    "compute_aggregate_stats",
    "deduplicate_sessions",
    "get_handler",
    "parse_question",
    "validate_session_summary",
]
