"""
Session snapshots for save/resume.

A snapshot is a deep copy of a session's fixed question order, original
pool, answer log, context and cap. Restoring one never reshuffles.
Writing snapshots somewhere durable is the caller's job; ``to_dict`` gives
a JSON-ready shape.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from quizzer.core.models import AnswerRecord, parse_question, question_to_dict


@dataclass
class SessionSnapshot:
    """Serializable session state."""

    problems: list[Any]  # question models, in session order
    all_problems: list[Any]  # original pool, used by retry
    answers: list[AnswerRecord]
    context: dict = field(default_factory=dict)
    max_problems: int = 0

    def copy(self) -> SessionSnapshot:
        # Question models are frozen, so sharing them is safe
        return SessionSnapshot(
            problems=list(self.problems),
            all_problems=list(self.all_problems),
            answers=[a.copy() for a in self.answers],
            context=copy.deepcopy(self.context),
            max_problems=self.max_problems,
        )

    @property
    def is_finished(self) -> bool:
        return len(self.answers) >= len(self.problems)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "problems": [question_to_dict(q) for q in self.problems],
            "allProblems": [question_to_dict(q) for q in self.all_problems],
            "answers": [a.to_dict() for a in self.answers],
            "context": copy.deepcopy(self.context),
            "maxProblems": self.max_problems,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SessionSnapshot:
        """
        Create from dictionary.

        Raises:
            pydantic.ValidationError: if a stored question is malformed
            KeyError: if the answer log is missing
        """
        problems = [parse_question(q) for q in data.get("problems", [])]
        return cls(
            problems=problems,
            all_problems=[parse_question(q) for q in data.get("allProblems", [])] or list(problems),
            answers=[AnswerRecord.from_dict(a) for a in data["answers"]],
            context=copy.deepcopy(data.get("context") or {}),
            max_problems=int(data.get("maxProblems", 0) or 0),
        )
