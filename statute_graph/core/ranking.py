"""Degree-based ranking and truncation.

Shared by the network builder and the relationship listings. Every function
here is a pure function of its inputs: the same candidates always yield the
same retained set. Ties are broken by encounter order (Python's sort
is stable).
"""

from collections import Counter
from collections.abc import Callable, Hashable, Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

Endpoints = Callable[[T], tuple[str, str]]


def degree_map(items: Iterable[T], endpoints: Endpoints) -> Counter:
    """Count one increment per endpoint occurrence."""
    degrees: Counter = Counter()
    for item in items:
        source, target = endpoints(item)
        degrees[source] += 1
        degrees[target] += 1
    return degrees


def rank_stable(items: Iterable[K], score: Callable[[K], float]) -> list[K]:
    """Sort descending by score, keeping encounter order among ties."""
    return sorted(items, key=lambda item: -score(item))


def top_by_score(items: Sequence[T], scores: Sequence[float], limit: int) -> list[T]:
    """Keep the `limit` highest-scoring items, ties resolved by position."""
    order = sorted(range(len(items)), key=lambda i: -scores[i])
    return [items[i] for i in order[:limit]]


def truncate_links(items: Sequence[T], limit: int, endpoints: Endpoints) -> tuple[list[T], bool]:
    """
    Hub-first link truncation.

    Scores each candidate by the sum of its endpoints' degrees within the
    candidate list and keeps the top `limit`. Returns (kept, truncated).
    """
    if limit < 0:
        raise ValueError("limit must be >= 0")
    if len(items) <= limit:
        return list(items), False

    degrees = degree_map(items, endpoints)
    scores = []
    for item in items:
        source, target = endpoints(item)
        scores.append(degrees[source] + degrees[target])

    return top_by_score(items, scores, limit), True


def apply_node_budget(items: Sequence[T], budget: int, endpoints: Endpoints) -> tuple[list[T], bool]:
    """
    Node-count budget over a relationship listing.

    When more than `budget` distinct ids are touched, ranks ids by their own
    degree, keeps the top `budget`, and drops every item referencing a dropped
    id. Returns (kept, truncated).
    """
    if budget < 0:
        raise ValueError("budget must be >= 0")

    degrees = degree_map(items, endpoints)
    if len(degrees) <= budget:
        return list(items), False

    # Counter preserves first-seen order, so ties go to earlier ids
    ranked = rank_stable(degrees.keys(), lambda node_id: degrees[node_id])
    allowed = set(ranked[:budget])

    kept = []
    for item in items:
        source, target = endpoints(item)
        if source in allowed and target in allowed:
            kept.append(item)
    return kept, True
