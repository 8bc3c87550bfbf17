"""
Winner, tie and percentage computation for finished sessions.

Percentages are rounded half-up per candidate and are not normalised, so a
three-way 1/1/1 split shows 33% three times.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from ledgervote.domain import Candidate, Session, SessionFilter, Snapshot
from ledgervote.lifecycle import matches_filter


@dataclass(frozen=True)
class CandidateStanding:
    candidate: Candidate
    percentage: int


@dataclass(frozen=True)
class SessionResult:
    session: Session
    total_votes: int
    winner: Optional[Candidate]
    is_tie: bool
    standings: Tuple[CandidateStanding, ...]

    @property
    def no_votes(self) -> bool:
        return self.total_votes == 0


def percentage(vote_count: int, total_votes: int) -> int:
    if total_votes <= 0:
        return 0
    # round(vote_count / total_votes * 100), halves rounded up
    return (200 * vote_count + total_votes) // (2 * total_votes)


def aggregate(session: Session) -> SessionResult:
    candidates = list(session.candidates)
    total_votes = sum(c.vote_count for c in candidates)
    top = max((c.vote_count for c in candidates), default=0)

    winner: Optional[Candidate] = None
    is_tie = False
    if top > 0:
        leaders = [c for c in candidates if c.vote_count == top]
        if len(leaders) > 1:
            is_tie = True
        else:
            winner = leaders[0]

    ordered = sorted(candidates, key=lambda c: c.vote_count, reverse=True)
    standings = tuple(
        CandidateStanding(candidate=c, percentage=percentage(c.vote_count, total_votes))
        for c in ordered
    )
    return SessionResult(
        session=session,
        total_votes=total_votes,
        winner=winner,
        is_tie=is_tie,
        standings=standings,
    )


def aggregate_ended(snapshot: Snapshot, now: Optional[datetime] = None) -> List[SessionResult]:
    """Results for every session that has ended, most recently ended first."""
    observed = now or snapshot.fetched_at
    ended = [s for s in snapshot.sessions if matches_filter(s, SessionFilter.ENDED, observed)]
    ended.sort(key=lambda s: s.end_time, reverse=True)
    return [aggregate(s) for s in ended]


__all__ = ["CandidateStanding", "SessionResult", "percentage", "aggregate", "aggregate_ended"]
