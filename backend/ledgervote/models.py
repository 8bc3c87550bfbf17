from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from ledgervote.coordinator import AdminResult, VoteAttempt
from ledgervote.domain import Session, SessionStatus, Snapshot, WhitelistSnapshot
from ledgervote.lifecycle import resolve_status
from ledgervote.results import SessionResult


class CandidateOut(BaseModel):
    id: int
    name: str
    voteCount: int


class SessionOut(BaseModel):
    id: int
    description: str
    startTime: datetime
    endTime: datetime
    isActive: bool
    status: SessionStatus
    candidates: List[CandidateOut]
    hasVoted: Optional[bool] = None

    @classmethod
    def build(cls, session: Session, now: datetime) -> "SessionOut":
        return cls(
            id=session.id,
            description=session.description,
            startTime=session.start_time,
            endTime=session.end_time,
            isActive=session.is_active,
            status=resolve_status(session, now),
            candidates=[CandidateOut(id=c.id, name=c.name, voteCount=c.vote_count) for c in session.candidates],
            hasVoted=session.has_voted,
        )


class SessionListOut(BaseModel):
    fetchedAt: datetime
    sequence: int
    sessions: List[SessionOut]

    @classmethod
    def build(cls, snapshot: Snapshot, now: datetime) -> "SessionListOut":
        return cls(
            fetchedAt=snapshot.fetched_at,
            sequence=snapshot.sequence,
            sessions=[SessionOut.build(s, now) for s in snapshot.sessions],
        )


class StandingOut(BaseModel):
    id: int
    name: str
    voteCount: int
    percentage: int


class ResultOut(BaseModel):
    sessionId: int
    description: str
    startTime: datetime
    endTime: datetime
    totalVotes: int
    isTie: bool
    noVotes: bool
    winner: Optional[CandidateOut] = None
    standings: List[StandingOut]
    hasVoted: Optional[bool] = None

    @classmethod
    def build(cls, result: SessionResult) -> "ResultOut":
        session = result.session
        winner = None
        if result.winner is not None:
            w = result.winner
            winner = CandidateOut(id=w.id, name=w.name, voteCount=w.vote_count)
        return cls(
            sessionId=session.id,
            description=session.description,
            startTime=session.start_time,
            endTime=session.end_time,
            totalVotes=result.total_votes,
            isTie=result.is_tie,
            noVotes=result.no_votes,
            winner=winner,
            standings=[
                StandingOut(
                    id=s.candidate.id,
                    name=s.candidate.name,
                    voteCount=s.candidate.vote_count,
                    percentage=s.percentage,
                )
                for s in result.standings
            ],
            hasVoted=session.has_voted,
        )


class VoteRequest(BaseModel):
    candidate_id: int = Field(ge=0)


class VoteResponse(BaseModel):
    session_id: int
    candidate_id: int
    state: str
    history: List[str]
    tx_hash: Optional[str] = None
    session: Optional[SessionOut] = None

    @classmethod
    def build(cls, attempt: VoteAttempt, now: datetime) -> "VoteResponse":
        session = None
        if attempt.snapshot is not None:
            refreshed = attempt.snapshot.get(attempt.session_id)
            if refreshed is not None:
                session = SessionOut.build(refreshed, now)
        return cls(
            session_id=attempt.session_id,
            candidate_id=attempt.candidate_id,
            state=attempt.state.value,
            history=[s.value for s in attempt.history],
            tx_hash=attempt.tx_hash,
            session=session,
        )


class WhitelistStatusOut(BaseModel):
    address: str
    required: bool
    whitelisted: bool
    eligible: bool


class CreateSessionPayload(BaseModel):
    start_time: datetime
    end_time: datetime
    description: str = Field(max_length=512)


class CandidatePayload(BaseModel):
    name: str = Field(max_length=128)


class SessionStatusPayload(BaseModel):
    is_active: bool


class WhitelistRequiredPayload(BaseModel):
    required: bool


class AddressPayload(BaseModel):
    address: str


class AddressBatchPayload(BaseModel):
    # Either a list or the newline-separated text an admin pastes in.
    addresses: Union[List[str], str]


class AdminResultOut(BaseModel):
    operation: str
    tx_hash: str
    sessions: Optional[List[SessionOut]] = None
    whitelist_required: Optional[bool] = None

    @classmethod
    def build(cls, result: AdminResult, now: datetime) -> "AdminResultOut":
        out = cls(operation=result.operation, tx_hash=result.tx_hash)
        if isinstance(result.snapshot, Snapshot):
            out.sessions = [SessionOut.build(s, now) for s in result.snapshot.sessions]
        elif isinstance(result.snapshot, WhitelistSnapshot):
            out.whitelist_required = result.snapshot.required
        return out


class AdminMeOut(BaseModel):
    address: str
    is_admin: bool
