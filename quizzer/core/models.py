"""
Question, answer and tracking models.

Question records are a pydantic discriminated union keyed by ``type``. Models
are frozen and keep their collections as tuples, so a record loaded into a
session cannot be mutated through the caller's original list or dict.

JSON keys are camelCase (``correctOrder``, ``detailedExplanation``); Python
attributes are snake_case.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class QuestionType(str, Enum):
    """Supported question formats."""
    MULTIPLE_CHOICE = "multiple-choice"
    NUMERIC_INPUT = "numeric-input"
    ORDERING = "ordering"
    MULTI_SELECT = "multi-select"
    TWO_STAGE = "two-stage"


DEFAULT_QUESTION_TYPE = QuestionType.MULTIPLE_CHOICE


class _Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class _QuestionBase(_Record):
    id: str
    tags: tuple[str, ...] = ()
    explanation: str | None = None
    detailed_explanation: str | None = None
    references: tuple[Any, ...] | None = None


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multiple-choice"] = "multiple-choice"
    question: str
    options: tuple[str, ...]
    correct: int


class NumericInputQuestion(_QuestionBase):
    type: Literal["numeric-input"] = "numeric-input"
    question: str
    answer: float
    # "exact", "order-of-magnitude", a relative fraction, or None for the default
    tolerance: Literal["exact", "order-of-magnitude"] | float | None = None
    unit: str = ""


class OrderingQuestion(_QuestionBase):
    type: Literal["ordering"] = "ordering"
    question: str
    items: tuple[str, ...]
    correct_order: tuple[int, ...]


class MultiSelectQuestion(_QuestionBase):
    type: Literal["multi-select"] = "multi-select"
    question: str
    options: tuple[str, ...]
    correct_indices: tuple[int, ...]


class Stage(_Record):
    """One sub-question of a two-stage question."""
    question: str
    options: tuple[str, ...]
    correct: int
    explanation: str | None = None
    detailed_explanation: str | None = None
    references: tuple[Any, ...] | None = None


class TwoStageQuestion(_QuestionBase):
    type: Literal["two-stage"] = "two-stage"
    question: str = ""
    stages: tuple[Stage, ...] = Field(min_length=1)


Question = Annotated[
    Union[
        MultipleChoiceQuestion,
        NumericInputQuestion,
        OrderingQuestion,
        MultiSelectQuestion,
        TwoStageQuestion,
    ],
    Field(discriminator="type"),
]

_question_adapter: TypeAdapter[Question] = TypeAdapter(Question)


def parse_question(data: Any) -> Question:
    """
    Validate a raw question record.

    A record without ``type`` is treated as multiple-choice. Already-parsed
    models are returned unchanged. Dict records are deep-copied first, so
    free-form fields such as ``references`` never alias the caller's data.

    Raises:
        pydantic.ValidationError: if the record does not match its type's shape
    """
    if isinstance(data, _QuestionBase):
        return data
    if isinstance(data, dict):
        data = copy.deepcopy(data)
        if not data.get("type"):
            data["type"] = DEFAULT_QUESTION_TYPE.value
    return _question_adapter.validate_python(data)


def question_type(question: Question) -> QuestionType:
    return QuestionType(question.type)


def question_to_dict(question: Question) -> dict:
    """Plain JSON-shaped copy of a question (camelCase keys, lists)."""
    return question.model_dump(mode="json", by_alias=True, exclude_none=True)


# ========================================
# Answer records
# ========================================


@dataclass
class StageAnswer:
    """Outcome of one stage of a two-stage question."""
    selected: int
    correct: bool

    def to_dict(self) -> dict:
        return {"selected": self.selected, "correct": self.correct}


@dataclass
class AnswerRecord:
    """
    One entry of the session answer log.

    Exactly one of the payload fields is set for a graded answer; skipped and
    timed-out answers carry only the flag.
    """
    problem_id: str
    correct: bool
    skipped: bool = False
    timed_out: bool = False
    selected: int | list[int] | None = None
    user_value: float | None = None
    user_order: list[int] | None = None
    stage_answers: list[StageAnswer] | None = None

    @property
    def graded(self) -> bool:
        return not (self.skipped or self.timed_out)

    def copy(self) -> AnswerRecord:
        return AnswerRecord.from_dict(self.to_dict())

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"problemId": self.problem_id, "correct": self.correct}
        if self.skipped:
            data["skipped"] = True
        if self.timed_out:
            data["timedOut"] = True
        if self.selected is not None:
            data["selected"] = (
                list(self.selected) if isinstance(self.selected, list) else self.selected
            )
        if self.user_value is not None:
            data["userValue"] = self.user_value
        if self.user_order is not None:
            data["userOrder"] = list(self.user_order)
        if self.stage_answers is not None:
            data["stageAnswers"] = [s.to_dict() for s in self.stage_answers]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> AnswerRecord:
        selected = data.get("selected")
        stage_answers = data.get("stageAnswers")
        user_order = data.get("userOrder")
        return cls(
            problem_id=str(data["problemId"]),
            correct=bool(data.get("correct", False)),
            skipped=bool(data.get("skipped", False)),
            timed_out=bool(data.get("timedOut", False)),
            selected=list(selected) if isinstance(selected, list) else selected,
            user_value=data.get("userValue"),
            user_order=list(user_order) if user_order is not None else None,
            stage_answers=(
                [StageAnswer(s["selected"], bool(s["correct"])) for s in stage_answers]
                if stage_answers is not None
                else None
            ),
        )


# ========================================
# Tracking
# ========================================


@dataclass
class TrackingEntry:
    """Per-question history, persisted outside the engine."""
    seen: int = 0
    correct: int = 0
    last_seen: str | None = None  # ISO-8601

    def to_dict(self) -> dict:
        return {"seen": self.seen, "correct": self.correct, "lastSeen": self.last_seen}

    @classmethod
    def from_dict(cls, data: dict | TrackingEntry) -> TrackingEntry:
        if isinstance(data, TrackingEntry):
            return cls(data.seen, data.correct, data.last_seen)
        return cls(
            seen=int(data.get("seen", 0) or 0),
            correct=int(data.get("correct", 0) or 0),
            last_seen=data.get("lastSeen"),
        )


@dataclass
class Score:
    correct: int = 0
    total: int = 0
    percentage: int = 0
    skipped: int = 0
    timed_out: int = 0

    def to_dict(self) -> dict:
        return {
            "correct": self.correct,
            "total": self.total,
            "percentage": self.percentage,
            "skipped": self.skipped,
            "timedOut": self.timed_out,
        }


def percent(correct: int, total: int) -> int:
    """Rounded percentage, 0 when there is nothing to divide by."""
    if total <= 0:
        return 0
    # Half-up like JS Math.round for non-negative values
    return int(correct * 100 / total + 0.5)


__all__ = [
    "AnswerRecord",
    "DEFAULT_QUESTION_TYPE",
    "MultiSelectQuestion",
    "MultipleChoiceQuestion",
    "NumericInputQuestion",
    "OrderingQuestion",
    "Question",
    "QuestionType",
    "Score",
    "Stage",
    "StageAnswer",
    "TrackingEntry",
    "TwoStageQuestion",
    "parse_question",
    "percent",
    "question_to_dict",
    "question_type",
]
