"""
Session events.

Every observable transition or grading outcome of a QuizSession is published
as one event: an EventType plus a payload dataclass. Listeners are called
synchronously, in registration order, before the triggering call returns.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger


class EventType(str, Enum):
    """Event names published by a session."""
    STATE_CHANGE = "stateChange"
    QUESTION_SHOW = "questionShow"
    OPTION_SELECTED = "optionSelected"
    TWO_STAGE_ADVANCE = "twoStageAdvance"
    NUMERIC_RESULT = "numericResult"
    MULTI_SELECT_TOGGLE = "multiSelectToggle"
    MULTI_SELECT_RESULT = "multiSelectResult"
    ORDERING_UPDATE = "orderingUpdate"
    ORDERING_RESULT = "orderingResult"
    SKIP = "skip"
    TIMEOUT = "timeout"
    COMPLETE = "complete"


# ========================================
# Payloads
# ========================================


@dataclass(frozen=True)
class StateChange:
    from_state: str
    to_state: str


@dataclass(frozen=True)
class ShuffledItem:
    """Display position of an ordering item and its index in the record."""
    original_index: int
    text: str


@dataclass(frozen=True)
class QuestionShow:
    question: Any
    index: int
    total: int
    type: str
    shuffled_items: list[ShuffledItem] | None = None


@dataclass(frozen=True)
class _Feedback:
    explanation: str | None = None
    detailed_explanation: str | None = None
    references: list | None = None


@dataclass(frozen=True)
class OptionSelected(_Feedback):
    index: int = 0
    correct: bool = False
    correct_index: int = 0
    # Set on the final stage of a two-stage question
    is_final_stage: bool = False
    all_correct: bool | None = None


@dataclass(frozen=True)
class StageResult:
    index: int
    correct: bool
    correct_index: int


@dataclass(frozen=True)
class NextStage:
    stage_index: int
    question: str
    options: list[str]
    previous_answer: str | None


@dataclass(frozen=True)
class TwoStageAdvance:
    stage_index: int
    total_stages: int
    stage_result: StageResult
    next_stage: NextStage


@dataclass(frozen=True)
class NumericResult(_Feedback):
    user_value: float = 0.0
    correct_value: float = 0.0
    correct: bool = False
    formatted: str = ""
    unit: str = ""


@dataclass(frozen=True)
class MultiSelectToggle:
    index: int
    selected: bool


@dataclass(frozen=True)
class MultiSelectResult(_Feedback):
    selected: list[int] = field(default_factory=list)
    correct_indices: list[int] = field(default_factory=list)
    correct: bool = False


@dataclass(frozen=True)
class OrderingUpdate:
    order: list[int]


@dataclass(frozen=True)
class OrderingResult(_Feedback):
    user_order: list[int] = field(default_factory=list)
    correct_order: list[int] = field(default_factory=list)
    correct: bool = False


@dataclass(frozen=True)
class Bypassed:
    """Payload of skip and timeout events."""
    problem_id: str
    index: int
    total: int


@dataclass(frozen=True)
class Complete:
    correct: int
    total: int
    percentage: int
    answers: list
    session_summary: dict


Listener = Callable[[Any], None]


class EventBus:
    """Per-session pub/sub registry."""

    def __init__(self) -> None:
        self._subs: dict[EventType, list[Listener]] = {}

    @staticmethod
    def _event_type(event: EventType | str) -> EventType | None:
        try:
            return EventType(event)
        except ValueError:
            logger.debug(f"Ignoring unknown event name {event!r}")
            return None

    def subscribe(self, event: EventType | str, handler: Listener) -> None:
        """Register a listener; unknown event names are ignored."""
        event_type = self._event_type(event)
        if event_type is not None:
            self._subs.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event: EventType | str, handler: Listener) -> None:
        event_type = self._event_type(event)
        if event_type is None:
            return
        handlers = self._subs.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def emit(self, event: EventType, payload: Any) -> None:
        # Copy so a listener unsubscribing mid-emit does not skip its neighbour
        handlers = list(self._subs.get(event, ()))
        logger.debug(f"emit {event.value} -> {len(handlers)} listener(s)")
        for handler in handlers:
            handler(payload)
