from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from ledgervote.core.limiter import limiter, vote_rate_limit
from ledgervote.domain import SessionFilter
from ledgervote.errors import NotActiveError
from ledgervote.models import ResultOut, SessionListOut, SessionOut, VoteRequest, VoteResponse
from ledgervote.results import aggregate, aggregate_ended
from ledgervote.security import Caller, get_current_caller, get_optional_caller
from ledgervote.services import get_session_repository, get_vote_coordinator

router = APIRouter(tags=["sessions"])


def _voter(caller: Optional[Caller]) -> Optional[str]:
    return caller.address if caller else None


@router.get("/sessions", response_model=SessionListOut)
async def list_sessions(
    view: SessionFilter = Query(SessionFilter.ALL),
    caller: Optional[Caller] = Depends(get_optional_caller),
):
    repo = get_session_repository()
    snapshot = await repo.fetch_all(view, _voter(caller))
    return SessionListOut.build(snapshot, repo.clock())


@router.get("/sessions/{session_id}", response_model=SessionOut)
async def get_session(session_id: int, caller: Optional[Caller] = Depends(get_optional_caller)):
    repo = get_session_repository()
    session = await repo.get_session(session_id, _voter(caller))
    return SessionOut.build(session, repo.clock())


@router.get("/sessions/{session_id}/results", response_model=ResultOut)
async def session_results(session_id: int, caller: Optional[Caller] = Depends(get_optional_caller)):
    repo = get_session_repository()
    session = await repo.get_session(session_id, _voter(caller))
    if repo.clock() <= session.end_time:
        raise NotActiveError("Results are available once the session has ended")
    return ResultOut.build(aggregate(session))


@router.get("/results", response_model=List[ResultOut])
async def ended_results(caller: Optional[Caller] = Depends(get_optional_caller)):
    repo = get_session_repository()
    snapshot = await repo.fetch_all(SessionFilter.ENDED, _voter(caller))
    return [ResultOut.build(r) for r in aggregate_ended(snapshot)]


@router.post("/sessions/{session_id}/vote", response_model=VoteResponse)
@limiter.limit(vote_rate_limit)
async def cast_vote(
    request: Request,
    session_id: int,
    payload: VoteRequest,
    caller: Caller = Depends(get_current_caller),
):
    attempt = await get_vote_coordinator().cast_vote(session_id, payload.candidate_id, caller.address)
    attempt.raise_for_rejection()
    return VoteResponse.build(attempt, get_session_repository().clock())
