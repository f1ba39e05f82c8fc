"""
Aggregate stats across exported session summaries.

Three independent pure operations:
- validate_session_summary(): structural check returning every problem found
- deduplicate_sessions(): first occurrence per timestamp wins
- compute_aggregate_stats(): totals, merged breakdowns, trend, most-missed

Older summaries may lack breakdownByType, breakdownByTag, context and the
skipped/timedOut score fields; those count as empty/zero.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from quizzer.core.models import percent
from quizzer.core.proficiency import parse_timestamp

MOST_MISSED_LIMIT = 10


@dataclass
class ValidationResult:
    """Outcome of validating one summary; never raised, always returned."""
    valid: bool
    errors: list[str] = field(default_factory=list)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_session_summary(obj: Any) -> ValidationResult:
    """
    Validate the structure of an imported session summary.

    Args:
        obj: Decoded JSON value

    Returns:
        ValidationResult listing every structural problem
    """
    if not isinstance(obj, dict):
        return ValidationResult(valid=False, errors=["Input must be a plain object"])

    errors: list[str] = []
    timestamp = obj.get("timestamp")
    if not isinstance(timestamp, str) or parse_timestamp(timestamp) is None:
        errors.append("Missing or invalid timestamp")

    score = obj.get("score")
    if (
        not isinstance(score, dict)
        or not _is_number(score.get("correct"))
        or not _is_number(score.get("total"))
    ):
        errors.append("Missing or invalid score (needs correct and total)")

    if not isinstance(obj.get("results"), list):
        errors.append("Missing results array")

    return ValidationResult(valid=not errors, errors=errors)


def deduplicate_sessions(sessions: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    """Keep the first session per timestamp, drop later duplicates."""
    seen: set[Any] = set()
    unique = []
    for session in sessions:
        key = session.get("timestamp")
        if key in seen:
            continue
        seen.add(key)
        unique.append(session)
    return unique


def _merge_into(target: dict[str, dict], key: str, correct: int, total: int) -> None:
    entry = target.setdefault(key, {"correct": 0, "total": 0})
    entry["correct"] += correct
    entry["total"] += total


def _add_percentages(groups: dict[str, dict]) -> None:
    for entry in groups.values():
        entry["percentage"] = percent(entry["correct"], entry["total"])


def _sort_key(timestamp: Any) -> datetime:
    return parse_timestamp(timestamp) or datetime.min.replace(tzinfo=UTC)


def compute_aggregate_stats(
    sessions: Sequence[Mapping[str, Any]],
    most_missed_limit: int = MOST_MISSED_LIMIT,
) -> dict:
    """
    Combine validated session summaries into cross-session stats.

    Returns:
        Dict with sessionCount, totalAnswered, totalCorrect, overallPercentage,
        totalSkipped, totalTimedOut, byType, byTag, byUnit, byChapter, trend,
        mostMissed
    """
    total_answered = 0
    total_correct = 0
    total_skipped = 0
    total_timed_out = 0

    by_type: dict[str, dict] = {}
    by_tag: dict[str, dict] = {}
    by_unit: dict[str, dict] = {}
    by_chapter: dict[str, dict] = {}
    problem_stats: dict[str, dict] = {}

    for session in sessions:
        score = session["score"]
        total_answered += score["total"]
        total_correct += score["correct"]
        total_skipped += score.get("skipped") or 0
        total_timed_out += score.get("timedOut") or 0

        for type_name, stats in (session.get("breakdownByType") or {}).items():
            _merge_into(by_type, type_name, stats.get("correct") or 0, stats.get("total") or 0)
        for tag, stats in (session.get("breakdownByTag") or {}).items():
            _merge_into(by_tag, tag, stats.get("correct") or 0, stats.get("total") or 0)

        context = session.get("context") or {}
        if context.get("unitTitle"):
            _merge_into(by_unit, context["unitTitle"], score["correct"], score["total"])
        if context.get("chapterTitle"):
            _merge_into(by_chapter, context["chapterTitle"], score["correct"], score["total"])

        for result in session.get("results") or []:
            if not isinstance(result, dict) or result.get("id") is None:
                continue
            if result.get("skipped") or result.get("timedOut"):
                continue
            problem_id = str(result["id"])
            stats = problem_stats.setdefault(
                problem_id,
                {"id": problem_id, "question": result.get("question") or "", "wrongCount": 0, "seenCount": 0},
            )
            stats["seenCount"] += 1
            if not result.get("correct"):
                stats["wrongCount"] += 1

    for groups in (by_type, by_tag, by_unit, by_chapter):
        _add_percentages(groups)

    trend = sorted(
        (
            {
                "timestamp": s["timestamp"],
                "percentage": s["score"].get("percentage", percent(s["score"]["correct"], s["score"]["total"])),
                "correct": s["score"]["correct"],
                "total": s["score"]["total"],
            }
            for s in sessions
        ),
        key=lambda entry: _sort_key(entry["timestamp"]),
    )

    # sorted() is stable: ties keep first-seen order
    missed = sorted(
        (p for p in problem_stats.values() if p["wrongCount"] > 0),
        key=lambda p: p["wrongCount"],
        reverse=True,
    )
    most_missed = [
        {**p, "percentage": percent(p["wrongCount"], p["seenCount"])}
        for p in missed[:most_missed_limit]
    ]

    return {
        "sessionCount": len(sessions),
        "totalAnswered": total_answered,
        "totalCorrect": total_correct,
        "overallPercentage": percent(total_correct, total_answered),
        "totalSkipped": total_skipped,
        "totalTimedOut": total_timed_out,
        "byType": by_type,
        "byTag": by_tag,
        "byUnit": by_unit,
        "byChapter": by_chapter,
        "trend": trend,
        "mostMissed": most_missed,
    }
