"""
Session summary builder.

Turns a session's question sequence and answer log into the portable
summary record (camelCase JSON shape) consumed by history storage and the
aggregate stats engine.

Answer i always belongs to question i of the session order; breakdowns rely
on that positional pairing.
"""
from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from quizzer.atoms import get_handler
from quizzer.core.models import AnswerRecord, Score, percent


def compute_score(answers: Sequence[AnswerRecord]) -> Score:
    """Score over graded answers; skipped/timed-out are counted separately."""
    graded = [a for a in answers if a.graded]
    correct = sum(1 for a in graded if a.correct)
    return Score(
        correct=correct,
        total=len(graded),
        percentage=percent(correct, len(graded)),
        skipped=sum(1 for a in answers if a.skipped),
        timed_out=sum(1 for a in answers if a.timed_out),
    )


def build_result(question: Any, answer: AnswerRecord) -> dict:
    """
    Normalize one answer into a type-erased summary result.

    The userAnswer/correctAnswer shape depends on the question type; an
    unknown type or a missing question falls back to None/None.
    """
    if question is None:
        return {
            "id": answer.problem_id,
            "type": "unknown",
            "question": "",
            "correct": answer.correct,
            "tags": [],
            "userAnswer": None,
            "correctAnswer": None,
        }

    result: dict[str, Any] = {
        "id": answer.problem_id,
        "type": question.type,
        "question": question.question or "",
        "correct": answer.correct,
        "tags": list(question.tags),
    }

    if answer.skipped:
        return {**result, "skipped": True, "userAnswer": None, "correctAnswer": None}
    if answer.timed_out:
        return {**result, "timedOut": True, "userAnswer": None, "correctAnswer": None}

    handler = get_handler(question.type)
    if handler is None:
        user_answer, correct_answer = None, None
    else:
        user_answer, correct_answer = handler.summarize(question, answer)
    return {**result, "userAnswer": user_answer, "correctAnswer": correct_answer}


def _breakdown(pairs: Sequence[tuple[Sequence[str], AnswerRecord]]) -> dict[str, dict]:
    breakdown: dict[str, dict] = {}
    for keys, answer in pairs:
        if not answer.graded:
            continue
        for key in keys:
            entry = breakdown.setdefault(key, {"correct": 0, "total": 0})
            entry["total"] += 1
            if answer.correct:
                entry["correct"] += 1
    for entry in breakdown.values():
        entry["percentage"] = percent(entry["correct"], entry["total"])
    return breakdown


def breakdown_by_type(questions: Sequence[Any], answers: Sequence[AnswerRecord]) -> dict[str, dict]:
    """Accuracy grouped by question type (graded answers only)."""
    return _breakdown([([questions[i].type], a) for i, a in enumerate(answers) if i < len(questions)])


def breakdown_by_tag(questions: Sequence[Any], answers: Sequence[AnswerRecord]) -> dict[str, dict]:
    """Accuracy grouped by tag; a question counts once under each of its tags."""
    return _breakdown([(list(questions[i].tags), a) for i, a in enumerate(answers) if i < len(questions)])


def build_session_summary(
    questions: Sequence[Any],
    answers: Sequence[AnswerRecord],
    context: Mapping[str, Any] | None = None,
    timestamp: datetime | None = None,
) -> dict:
    """
    Build a session summary snapshot.

    Safe at any point in the lifecycle. Every call returns freshly built
    containers, so callers may mutate the result freely.
    """
    score = compute_score(answers)
    results = [
        build_result(questions[i] if i < len(questions) else None, answer)
        for i, answer in enumerate(answers)
    ]
    stamp = (timestamp or datetime.now(UTC)).isoformat(timespec="milliseconds")
    return {
        "timestamp": stamp.replace("+00:00", "Z"),
        "context": copy.deepcopy(dict(context or {})),
        "score": score.to_dict(),
        "results": results,
        "breakdownByType": breakdown_by_type(questions, answers),
        "breakdownByTag": breakdown_by_tag(questions, answers),
    }
