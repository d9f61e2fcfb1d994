"""Canonical leaderboard ordering and rank lookup.

Order: wpm descending, then mistakes ascending, then cpm descending.
Python's sort is stable, so records with identical stats keep insertion
order; a freshly ranked candidate always lands after its existing equals.
"""
import logging
from collections import Counter
from typing import Iterable, List

from typeboard.domain.score import ScoreRecord

log = logging.getLogger("typeboard.ranking")


def sort_key(record: ScoreRecord) -> tuple:
    return (-record.wpm, record.mistakes, -record.cpm)


def sort_scores(records: Iterable[ScoreRecord]) -> List[ScoreRecord]:
    """Return a new list in canonical order."""
    return sorted(records, key=sort_key)


def rank(snapshot: Iterable[ScoreRecord], candidate: ScoreRecord) -> int:
    """1-based position of ``candidate`` once inserted into ``snapshot``."""
    ordered = list(snapshot)
    ordered.append(candidate)
    ordered.sort(key=sort_key)
    for position, record in enumerate(ordered, start=1):
        if record == candidate:
            return position
    log.warning("Candidate %r not found after insertion; using worst rank", candidate)
    return len(ordered)


def top(snapshot: List[ScoreRecord], limit: int | None = None) -> List[ScoreRecord]:
    if limit is None:
        return list(snapshot)
    return list(snapshot[: max(limit, 0)])


def merge(*sources: Iterable[ScoreRecord]) -> List[ScoreRecord]:
    """
    Union of several views of the same leaderboard, in canonical order.
    A record appearing n times in one source and m times in another is kept
    max(n, m) times, so overlapping views do not double count.
    """
    combined = Counter()
    for source in sources:
        combined |= Counter(source)
    return sort_scores(combined.elements())
