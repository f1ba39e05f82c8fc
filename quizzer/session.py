"""
Quiz Session: state machine for one practice session.

Lifecycle: idle -> practicing -> answered -> complete

- Ordering/Sampling -> quizzer.core.sampler (weighted by quizzer.core.proficiency)
- Grading -> quizzer.atoms (one handler per question type)
- Summaries -> quizzer.summary
- Snapshots -> quizzer.session_store

The session never renders and never touches storage. Drivers call the public
methods and listen to events. Calls that do not fit the current state, or
carry out-of-range indices, are silently ignored.
"""

from __future__ import annotations

import copy
import random
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from loguru import logger
from pydantic import ValidationError

from config import Settings, get_settings
from quizzer.atoms import get_handler
from quizzer.core.models import (
    AnswerRecord,
    QuestionType,
    Score,
    StageAnswer,
    TrackingEntry,
    parse_question,
)
from quizzer.core.numeric import format_number
from quizzer.core.proficiency import compute_sr_weights, utc_now
from quizzer.core.sampler import apply_cap, shuffle_in_place, weighted_shuffle
from quizzer.events import (
    Bypassed,
    Complete,
    EventBus,
    EventType,
    MultiSelectResult,
    MultiSelectToggle,
    NextStage,
    NumericResult,
    OptionSelected,
    OrderingResult,
    OrderingUpdate,
    QuestionShow,
    ShuffledItem,
    StageResult,
    StateChange,
    TwoStageAdvance,
)
from quizzer.session_store import SessionSnapshot
from quizzer.summary import build_session_summary, compute_score


class SessionPhase(str, Enum):
    """Session lifecycle states."""
    IDLE = "idle"
    PRACTICING = "practicing"
    ANSWERED = "answered"
    COMPLETE = "complete"


def load_valid_questions(questions: Iterable[Any]) -> list[Any]:
    """
    Validate raw question records, dropping malformed ones with a warning.

    Returns frozen question models; the caller's records are never aliased.
    """
    loaded = []
    for raw in questions:
        try:
            loaded.append(parse_question(raw))
        except ValidationError as e:
            problem_id = raw.get("id", "(no id)") if isinstance(raw, dict) else "(no id)"
            logger.warning(f"Dropping invalid question {problem_id}: {e.error_count()} error(s)")
            logger.debug(str(e))
    return loaded


class QuizSession:
    """
    Orchestrator for one practice session.

    Emits one event per observable transition or grading outcome, synchronously
    and in listener registration order.
    """

    def __init__(
        self,
        type_weights: Optional[Mapping[str, float]] = None,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or get_settings()
        self._type_weights = {**self.settings.get_type_weights(), **(type_weights or {})}
        self._rng = rng
        self._clock = clock or utc_now
        self._bus = EventBus()
        self._phase = SessionPhase.IDLE

        # Session data
        self._problems: list[Any] = []
        self._all_problems: list[Any] = []
        self._max_problems = 0
        self._current_index = 0
        self._answers: list[AnswerRecord] = []
        self._context: dict = {}
        self._tracking: Optional[dict[str, TrackingEntry]] = None

        # Per-question state
        self._answered = False
        self._multi_selected: set[int] = set()
        self._ordering: list[int] = []
        self._two_stage_index = 0
        self._two_stage_answers: list[StageAnswer] = []

    # ========================================
    # Events
    # ========================================

    def on(self, event: EventType | str, fn: Callable[[Any], None]) -> QuizSession:
        self._bus.subscribe(event, fn)
        return self

    def off(self, event: EventType | str, fn: Callable[[Any], None]) -> QuizSession:
        self._bus.unsubscribe(event, fn)
        return self

    def _emit(self, event: EventType, payload: Any) -> None:
        self._bus.emit(event, payload)

    def _set_phase(self, to: SessionPhase) -> None:
        from_phase = self._phase
        if from_phase == to:
            return
        self._phase = to
        logger.debug(f"Session {from_phase.value} -> {to.value}")
        self._emit(EventType.STATE_CHANGE, StateChange(from_phase.value, to.value))

    # ========================================
    # Read-only views
    # ========================================

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def type_weights(self) -> dict[str, float]:
        return dict(self._type_weights)

    @property
    def progress(self) -> dict[str, int]:
        return {"current": self._current_index + 1, "total": len(self._problems)}

    @property
    def score(self) -> Score:
        return compute_score(self._answers)

    @property
    def current_question(self) -> Any:
        """Question on screen; None while idle or complete."""
        if self._phase in (SessionPhase.IDLE, SessionPhase.COMPLETE):
            return None
        return self._problems[self._current_index]

    @property
    def questions(self) -> list[Any]:
        return list(self._problems)

    @property
    def answers(self) -> list[AnswerRecord]:
        return [a.copy() for a in self._answers]

    @property
    def context(self) -> dict:
        return copy.deepcopy(self._context)

    def get_session_summary(self) -> dict:
        """Summary of results so far; safe in any state."""
        return build_session_summary(self._problems, self._answers, self._context, self._clock())

    # ========================================
    # Lifecycle
    # ========================================

    def load_questions(
        self,
        questions: Iterable[Any],
        max_problems: Optional[int] = None,
        context: Optional[Mapping[str, Any]] = None,
        tracking: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Load a question set and fix the session order.

        Args:
            questions: Raw question dicts or question models
            max_problems: Session length cap (0 = unlimited, None = settings default)
            context: Provenance labels copied into every summary
            tracking: Per-question history used to weight the draw
        """
        self._all_problems = load_valid_questions(questions)
        self._max_problems = self.settings.max_problems if max_problems is None else max_problems
        self._context = copy.deepcopy(dict(context or {}))
        self._tracking = (
            {str(k): TrackingEntry.from_dict(v) for k, v in tracking.items()}
            if tracking is not None
            else None
        )

        self._problems = self._draw()
        self._current_index = 0
        self._answers = []
        self._reset_question_state()
        logger.debug(
            f"Loaded {len(self._problems)}/{len(self._all_problems)} questions "
            f"(cap={self._max_problems})"
        )
        self._set_phase(SessionPhase.IDLE)

    def start(self) -> None:
        if self._phase != SessionPhase.IDLE or not self._problems:
            return
        self._current_index = 0
        self._answers = []
        self._set_phase(SessionPhase.PRACTICING)
        self._show_current()

    def next_question(self) -> None:
        if self._phase != SessionPhase.ANSWERED:
            return
        self._advance()

    def retry(self) -> None:
        """Redraw from the original pool and go straight to practicing."""
        problems = self._draw()
        if not problems:
            return
        self._problems = problems
        self._current_index = 0
        self._answers = []
        self._reset_question_state()
        self._set_phase(SessionPhase.PRACTICING)
        self._show_current()

    def reset(self) -> None:
        self._problems = []
        self._all_problems = []
        self._max_problems = 0
        self._current_index = 0
        self._answers = []
        self._context = {}
        self._tracking = None
        self._reset_question_state()
        self._set_phase(SessionPhase.IDLE)

    # ========================================
    # Answering
    # ========================================

    def _current_of(self, *types: QuestionType) -> Any:
        """Current question if practicing, not yet answered and of an accepted type."""
        if self._phase != SessionPhase.PRACTICING or self._answered:
            return None
        problem = self._problems[self._current_index]
        if QuestionType(problem.type) not in types:
            return None
        return problem

    def select_option(self, index: int) -> None:
        problem = self._current_of(QuestionType.MULTIPLE_CHOICE, QuestionType.TWO_STAGE)
        if problem is None:
            return
        if problem.type == QuestionType.TWO_STAGE.value:
            self._select_two_stage(problem, index)
        else:
            self._select_multiple_choice(problem, index)

    def toggle_multi_select(self, index: int) -> None:
        problem = self._current_of(QuestionType.MULTI_SELECT)
        if problem is None or not 0 <= index < len(problem.options):
            return
        if index in self._multi_selected:
            self._multi_selected.remove(index)
        else:
            self._multi_selected.add(index)
        self._emit(
            EventType.MULTI_SELECT_TOGGLE,
            MultiSelectToggle(index=index, selected=index in self._multi_selected),
        )

    def submit_multi_select(self) -> None:
        problem = self._current_of(QuestionType.MULTI_SELECT)
        if problem is None:
            return
        self._answered = True
        result = get_handler(QuestionType.MULTI_SELECT).check(problem, self._multi_selected)
        self._answers.append(
            AnswerRecord(problem_id=problem.id, correct=result.correct, selected=list(result.user_answer))
        )
        self._set_phase(SessionPhase.ANSWERED)
        self._emit(
            EventType.MULTI_SELECT_RESULT,
            MultiSelectResult(
                selected=list(result.user_answer),
                correct_indices=list(problem.correct_indices),
                correct=result.correct,
                explanation=result.explanation,
                detailed_explanation=result.detailed_explanation,
                references=result.references,
            ),
        )

    def submit_numeric(self, raw: str) -> None:
        problem = self._current_of(QuestionType.NUMERIC_INPUT)
        if problem is None or not raw or not raw.strip():
            return
        self._answered = True
        result = get_handler(QuestionType.NUMERIC_INPUT).check(problem, raw)
        self._answers.append(
            AnswerRecord(problem_id=problem.id, correct=result.correct, user_value=result.user_answer)
        )
        self._set_phase(SessionPhase.ANSWERED)
        self._emit(
            EventType.NUMERIC_RESULT,
            NumericResult(
                user_value=result.user_answer,
                correct_value=problem.answer,
                correct=result.correct,
                formatted=format_number(problem.answer),
                unit=problem.unit,
                explanation=result.explanation,
                detailed_explanation=result.detailed_explanation,
                references=result.references,
            ),
        )

    def move_ordering_item(self, from_index: int, to_index: int) -> None:
        if self._current_of(QuestionType.ORDERING) is None:
            return
        size = len(self._ordering)
        if not (0 <= from_index < size and 0 <= to_index < size):
            return
        item = self._ordering.pop(from_index)
        self._ordering.insert(to_index, item)
        self._emit(EventType.ORDERING_UPDATE, OrderingUpdate(order=list(self._ordering)))

    def submit_ordering(self) -> None:
        problem = self._current_of(QuestionType.ORDERING)
        if problem is None:
            return
        self._answered = True
        result = get_handler(QuestionType.ORDERING).check(problem, self._ordering)
        self._answers.append(
            AnswerRecord(problem_id=problem.id, correct=result.correct, user_order=list(result.user_answer))
        )
        self._set_phase(SessionPhase.ANSWERED)
        self._emit(
            EventType.ORDERING_RESULT,
            OrderingResult(
                user_order=list(result.user_answer),
                correct_order=list(result.correct_answer),
                correct=result.correct,
                explanation=result.explanation,
                detailed_explanation=result.detailed_explanation,
                references=result.references,
            ),
        )

    def skip(self) -> None:
        self._bypass(EventType.SKIP)

    def timeout(self) -> None:
        """Record a timeout for the current question; the caller owns the timer."""
        self._bypass(EventType.TIMEOUT)

    # ========================================
    # Snapshot / Resume
    # ========================================

    def get_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            problems=self._problems,
            all_problems=self._all_problems,
            answers=self._answers,
            context=self._context,
            max_problems=self._max_problems,
        ).copy()

    def restore_session(self, snapshot: SessionSnapshot | dict) -> None:
        """Restore a snapshot into idle without reshuffling; call resume() next."""
        if isinstance(snapshot, dict):
            snapshot = SessionSnapshot.from_dict(snapshot)
        snapshot = snapshot.copy()
        self._problems = snapshot.problems
        self._all_problems = snapshot.all_problems
        self._answers = snapshot.answers[: len(snapshot.problems)]
        self._context = snapshot.context
        self._max_problems = snapshot.max_problems
        self._current_index = len(self._answers)
        self._reset_question_state()
        self._set_phase(SessionPhase.IDLE)

    def resume(self) -> None:
        if self._phase != SessionPhase.IDLE or not self._problems:
            return
        self._set_phase(SessionPhase.PRACTICING)
        if self._current_index >= len(self._problems):
            # Everything was already answered
            self._complete()
            return
        self._show_current()

    # ========================================
    # Internals
    # ========================================

    def _draw(self) -> list[Any]:
        weights: dict[str, float] = {}
        if self._tracking is not None:
            weights = compute_sr_weights(
                self._all_problems,
                self._tracking,
                self._clock(),
                decay_rate=self.settings.proficiency_decay_rate,
                unseen_weight=self.settings.unseen_problem_weight,
            )
        drawn = weighted_shuffle(self._all_problems, self._type_weights, weights, self._rng)
        return apply_cap(drawn, self._max_problems)

    def _reset_question_state(self) -> None:
        self._answered = False
        self._multi_selected = set()
        self._ordering = []
        self._two_stage_index = 0
        self._two_stage_answers = []

    def _show_current(self) -> None:
        self._reset_question_state()
        problem = self._problems[self._current_index]

        shuffled_items = None
        if problem.type == QuestionType.ORDERING.value:
            self._ordering = shuffle_in_place(list(range(len(problem.items))), self._rng)
            shuffled_items = [ShuffledItem(i, problem.items[i]) for i in self._ordering]

        self._emit(
            EventType.QUESTION_SHOW,
            QuestionShow(
                question=problem,
                index=self._current_index,
                total=len(self._problems),
                type=problem.type,
                shuffled_items=shuffled_items,
            ),
        )

    def _advance(self) -> None:
        if self._current_index < len(self._problems) - 1:
            self._current_index += 1
            self._set_phase(SessionPhase.PRACTICING)
            self._show_current()
        else:
            self._complete()

    def _bypass(self, event: EventType) -> None:
        if self._phase != SessionPhase.PRACTICING:
            return
        problem = self._problems[self._current_index]
        self._answers.append(
            AnswerRecord(
                problem_id=problem.id,
                correct=False,
                skipped=event == EventType.SKIP,
                timed_out=event == EventType.TIMEOUT,
            )
        )
        self._emit(event, Bypassed(problem.id, self._current_index, len(self._problems)))
        self._advance()

    def _select_multiple_choice(self, problem: Any, index: int) -> None:
        if not 0 <= index < len(problem.options):
            return
        self._answered = True
        result = get_handler(QuestionType.MULTIPLE_CHOICE).check(problem, index)
        self._answers.append(AnswerRecord(problem_id=problem.id, correct=result.correct, selected=index))
        self._set_phase(SessionPhase.ANSWERED)
        self._emit(
            EventType.OPTION_SELECTED,
            OptionSelected(
                index=index,
                correct=result.correct,
                correct_index=problem.correct,
                explanation=result.explanation,
                detailed_explanation=result.detailed_explanation,
                references=result.references,
            ),
        )

    def _select_two_stage(self, problem: Any, index: int) -> None:
        handler = get_handler(QuestionType.TWO_STAGE)
        stage_index = self._two_stage_index
        stage = problem.stages[stage_index]
        if not 0 <= index < len(stage.options):
            return

        result = handler.check_stage(problem, stage_index, index)
        self._two_stage_answers.append(StageAnswer(selected=index, correct=result.correct))

        if stage_index < len(problem.stages) - 1:
            # Intermediate stage: report it and stay in practicing
            self._two_stage_index = stage_index + 1
            next_stage = problem.stages[stage_index + 1]
            self._emit(
                EventType.TWO_STAGE_ADVANCE,
                TwoStageAdvance(
                    stage_index=stage_index,
                    total_stages=len(problem.stages),
                    stage_result=StageResult(index, result.correct, stage.correct),
                    next_stage=NextStage(
                        stage_index=stage_index + 1,
                        question=next_stage.question,
                        options=list(next_stage.options),
                        previous_answer=stage.options[index],
                    ),
                ),
            )
            return

        self._answered = True
        overall = handler.check(problem, self._two_stage_answers)
        self._answers.append(
            AnswerRecord(
                problem_id=problem.id,
                correct=overall.correct,
                stage_answers=[StageAnswer(a.selected, a.correct) for a in self._two_stage_answers],
            )
        )
        self._set_phase(SessionPhase.ANSWERED)
        self._emit(
            EventType.OPTION_SELECTED,
            OptionSelected(
                index=index,
                correct=result.correct,
                correct_index=stage.correct,
                explanation=result.explanation,
                detailed_explanation=result.detailed_explanation,
                references=result.references,
                is_final_stage=True,
                all_correct=overall.correct,
            ),
        )

    def _complete(self) -> None:
        final = self.score
        summary = self.get_session_summary()
        self._set_phase(SessionPhase.COMPLETE)
        logger.info(f"Session complete: {final.correct}/{final.total} ({final.percentage}%)")
        self._emit(
            EventType.COMPLETE,
            Complete(
                correct=final.correct,
                total=final.total,
                percentage=final.percentage,
                answers=[a.to_dict() for a in self._answers],
                session_summary=summary,
            ),
        )
