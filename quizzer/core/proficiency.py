"""
Proficiency model for spaced repetition.

Proficiency is a recency-decayed accuracy score in [0, 1]:

    proficiency = accuracy * confidence + 0.5 * (1 - confidence)
    confidence  = e^(-decay_rate * days_since_last_seen)

Old results decay toward 0.5 (uncertain), so a question answered correctly
long ago is surfaced again sooner than one answered correctly yesterday.
Sampling weight = clamp(2 - proficiency, 1, 2); unseen questions get 1.5.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .models import TrackingEntry

NEUTRAL_PROFICIENCY = 0.5
DEFAULT_DECAY_RATE = 0.1
UNSEEN_WEIGHT = 1.5
SECONDS_PER_DAY = 86400.0

TrackingMap = Mapping[str, "TrackingEntry | dict"]


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """
    Parse an ISO-8601 timestamp (trailing "Z" accepted).

    Naive values are taken as UTC. Returns None when unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def utc_now() -> datetime:
    return datetime.now(UTC)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def compute_proficiency(
    entry: TrackingEntry | dict | None,
    now: datetime | str | None = None,
    decay_rate: float = DEFAULT_DECAY_RATE,
) -> float:
    """
    Compute a proficiency score from a tracking entry.

    Args:
        entry: Tracking entry (seen/correct/lastSeen) or None
        now: Reference time (defaults to current UTC time)
        decay_rate: Per-day confidence decay

    Returns:
        Score in [0, 1]; 0.5 for absent or never-seen entries
    """
    if entry is None:
        return NEUTRAL_PROFICIENCY
    entry = TrackingEntry.from_dict(entry)
    last_seen = parse_timestamp(entry.last_seen)
    if entry.seen <= 0 or last_seen is None:
        return NEUTRAL_PROFICIENCY

    reference = parse_timestamp(now) or utc_now()
    accuracy = entry.correct / entry.seen
    # A lastSeen in the future counts as "just now"
    days_since = max((reference - last_seen).total_seconds() / SECONDS_PER_DAY, 0.0)
    confidence = math.exp(-decay_rate * days_since)
    proficiency = accuracy * confidence + NEUTRAL_PROFICIENCY * (1 - confidence)
    return _clamp(proficiency, 0.0, 1.0)


def sampling_weight(
    entry: TrackingEntry | dict | None,
    now: datetime | str | None = None,
    decay_rate: float = DEFAULT_DECAY_RATE,
    unseen_weight: float = UNSEEN_WEIGHT,
) -> float:
    """Convert tracking history into a per-question sampling weight in [1, 2]."""
    if entry is None:
        return unseen_weight
    return _clamp(2 - compute_proficiency(entry, now, decay_rate), 1.0, 2.0)


def compute_sr_weights(
    questions: Iterable[Any],
    tracking: TrackingMap,
    now: datetime | str | None = None,
    decay_rate: float = DEFAULT_DECAY_RATE,
    unseen_weight: float = UNSEEN_WEIGHT,
) -> dict[str, float]:
    """
    Compute per-question spaced-repetition weights for the sampler.

    All weights stay >= 1, so tracking never excludes a question.
    """
    reference = parse_timestamp(now) or utc_now()
    return {
        q.id: sampling_weight(tracking.get(q.id), reference, decay_rate, unseen_weight)
        for q in questions
    }


@dataclass
class WeakArea:
    """A question ranked by proficiency."""
    id: str
    question: str
    proficiency: float
    seen: int
    correct: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "question": self.question,
            "proficiency": self.proficiency,
            "seen": self.seen,
            "correct": self.correct,
        }


def compute_weakest_areas(
    tracking: TrackingMap,
    questions_by_id: Mapping[str, Any] | None = None,
    limit: int = 10,
    now: datetime | str | None = None,
    decay_rate: float = DEFAULT_DECAY_RATE,
) -> list[WeakArea]:
    """
    Rank seen questions by proficiency, weakest first.

    Args:
        tracking: Tracking map keyed by question id
        questions_by_id: Optional question records for display text
        limit: Maximum entries returned
        now: Reference time
    """
    questions_by_id = questions_by_id or {}
    reference = parse_timestamp(now) or utc_now()
    entries: list[WeakArea] = []
    for problem_id, raw in tracking.items():
        entry = TrackingEntry.from_dict(raw)
        if entry.seen == 0:
            continue
        question = questions_by_id.get(problem_id)
        text = ""
        if question is not None:
            text = question.get("question", "") if isinstance(question, dict) else getattr(question, "question", "")
        entries.append(
            WeakArea(
                id=problem_id,
                question=text or "",
                proficiency=compute_proficiency(entry, reference, decay_rate),
                seen=entry.seen,
                correct=entry.correct,
            )
        )
    entries.sort(key=lambda e: e.proficiency)
    return entries[:limit]


def update_problem_tracking(
    existing: TrackingMap | None,
    session_summary: Mapping[str, Any] | None,
) -> dict[str, TrackingEntry]:
    """
    Fold a session summary's graded results into a new tracking map.

    Skipped and timed-out results leave tracking untouched. The input map is
    not modified.
    """
    tracking: dict[str, TrackingEntry] = {
        problem_id: TrackingEntry.from_dict(entry) for problem_id, entry in (existing or {}).items()
    }
    if not session_summary or not isinstance(session_summary.get("results"), list):
        return tracking

    timestamp = session_summary.get("timestamp")
    for result in session_summary["results"]:
        if not isinstance(result, dict) or result.get("id") is None:
            continue
        if result.get("skipped") or result.get("timedOut"):
            continue
        entry = tracking.setdefault(str(result["id"]), TrackingEntry())
        entry.seen += 1
        if result.get("correct"):
            entry.correct += 1
        entry.last_seen = timestamp
    return tracking
