"""
Weighted session sampler.

Orders a question pool so question types are spread through the session
rather than clustered together:

1. Partition the pool by question type and shuffle each partition
2. Pick a type proportionally to its weight (non-empty partitions only)
3. Within that type, pick a question proportionally to its per-question weight
4. Remove it from its partition, append it to the output, repeat

Higher-weight types and questions are front-loaded probabilistically. A type
with weight 0 is never emitted.
"""
from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from typing import Optional, TypeVar

from loguru import logger

from .models import DEFAULT_QUESTION_TYPE

T = TypeVar("T")

DEFAULT_TYPE_WEIGHT = 1.0
DEFAULT_PROBLEM_WEIGHT = 1.0

_default_rng = random.Random()


def _type_of(question) -> str:
    return getattr(question, "type", None) or DEFAULT_QUESTION_TYPE.value


def _id_of(question) -> str:
    return getattr(question, "id", "")


def _pick_index(weights: Sequence[float], rng: random.Random) -> int:
    """
    Walk the weights subtracting each from a uniform draw in [0, total).

    Falls back to the first index when floating point leaves a remainder.
    """
    remaining = rng.random() * sum(weights)
    for i, weight in enumerate(weights):
        remaining -= weight
        if remaining <= 0:
            return i
    return 0


def shuffle_in_place(items: list[T], rng: Optional[random.Random] = None) -> list[T]:
    """Uniform in-place shuffle; returns the same list for chaining."""
    (rng or _default_rng).shuffle(items)
    return items


def weighted_shuffle(
    questions: Sequence[T],
    type_weights: Mapping[str, float],
    problem_weights: Optional[Mapping[str, float]] = None,
    rng: Optional[random.Random] = None,
) -> list[T]:
    """
    Draw the whole pool without replacement using two-level weighting.

    Args:
        questions: Question pool (not modified)
        type_weights: Weight per question type; missing types weigh 1, 0 excludes
        problem_weights: Optional weight per question id; missing ids weigh 1
        rng: Random generator (shared unseeded generator when omitted)

    Returns:
        New list in draw order
    """
    rng = rng or _default_rng
    problem_weights = problem_weights or {}

    # dicts keep insertion order, so partitions are walked in first-seen order
    by_type: dict[str, list[T]] = {}
    for question in questions:
        by_type.setdefault(_type_of(question), []).append(question)

    queues: list[tuple[float, list[T]]] = []
    for type_name, items in by_type.items():
        shuffle_in_place(items, rng)
        queues.append((type_weights.get(type_name, DEFAULT_TYPE_WEIGHT), items))

    result: list[T] = []
    while any(items for _, items in queues):
        active = [(weight, items) for weight, items in queues if items]
        total_weight = sum(weight for weight, _ in active)

        # Only zero-weight partitions remain; they are dropped, not emitted
        if total_weight <= 0:
            dropped = sum(len(items) for _, items in active)
            logger.debug(f"Sampler stopped with {dropped} zero-weight questions undrawn")
            break

        remaining = rng.random() * total_weight
        chosen = None
        for weight, items in active:
            remaining -= weight
            if remaining <= 0 and weight > 0:
                chosen = items
                break
        if chosen is None:
            # Floating point remainder: take the last positive-weight partition
            chosen = [items for weight, items in active if weight > 0][-1]

        item_weights = [problem_weights.get(_id_of(q), DEFAULT_PROBLEM_WEIGHT) for q in chosen]
        result.append(chosen.pop(_pick_index(item_weights, rng)))

    return result


def apply_cap(questions: list[T], max_problems: int) -> list[T]:
    """Truncate to the session length cap (0 or negative = unlimited)."""
    if max_problems > 0 and len(questions) > max_problems:
        return questions[:max_problems]
    return questions
