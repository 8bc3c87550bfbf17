"""
Write orchestration: ballots and admin commands.

A vote attempt moves through an explicit state machine::

    IDLE -> VALIDATING -> SUBMITTING -> AWAITING_CONFIRMATION -> CONFIRMED
                  \\              \\                  \\
                   +--------------+------------------+--> REJECTED

Validation failures never reach the ledger.  Once confirmed, nothing is
incremented locally: the session view is re-fetched and that snapshot is the
one handed back.  Admin commands follow the same command, confirm, re-fetch
cycle.

Single-flight keys stop duplicate submissions while one is outstanding: one key
per (session, voter) ballot, per session for admin writes, and one for all
whitelist writes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Hashable, Iterable, List, Optional, Union

from ledgervote.concurrency import SingleFlight
from ledgervote.core.logger import ledger_logger as logger
from ledgervote.domain import SessionFilter, SessionStatus, Snapshot, normalize_address, to_unix
from ledgervote.errors import (
    AlreadyPendingError,
    AlreadyVotedError,
    ErrorKind,
    LedgerClientError,
    LedgerRejection,
    NotActiveError,
    NotWhitelistedError,
    ValidationError,
    error_for,
    from_rejection,
)
from ledgervote.ledger.gateway import LedgerGateway, PendingTransaction, VoteSubmitter
from ledgervote.lifecycle import resolve_status
from ledgervote.repository import SessionRepository, WhitelistRepository
from ledgervote.validation import check_session_window, parse_address_list, require_address, require_text


class VoteState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


_TRANSITIONS: Dict[VoteState, FrozenSet[VoteState]] = {
    VoteState.IDLE: frozenset({VoteState.VALIDATING, VoteState.REJECTED}),
    VoteState.VALIDATING: frozenset({VoteState.SUBMITTING, VoteState.REJECTED}),
    VoteState.SUBMITTING: frozenset({VoteState.AWAITING_CONFIRMATION, VoteState.REJECTED}),
    VoteState.AWAITING_CONFIRMATION: frozenset({VoteState.CONFIRMED, VoteState.REJECTED}),
    VoteState.CONFIRMED: frozenset(),
    VoteState.REJECTED: frozenset(),
}


@dataclass
class VoteAttempt:
    session_id: int
    candidate_id: int
    voter: str
    state: VoteState = VoteState.IDLE
    history: List[VoteState] = field(default_factory=lambda: [VoteState.IDLE])
    reason: Optional[ErrorKind] = None
    detail: Optional[str] = None
    tx_hash: Optional[str] = None
    snapshot: Optional[Snapshot] = None

    def advance(self, state: VoteState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal vote transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def reject(self, kind: ErrorKind, detail: Optional[str] = None) -> None:
        self.advance(VoteState.REJECTED)
        self.reason = kind
        self.detail = detail

    @property
    def confirmed(self) -> bool:
        return self.state is VoteState.CONFIRMED

    @property
    def rejected(self) -> bool:
        return self.state is VoteState.REJECTED

    def raise_for_rejection(self) -> None:
        if self.rejected and self.reason is not None:
            raise error_for(self.reason, self.detail)


class VoteCoordinator:
    def __init__(
        self,
        submitter: VoteSubmitter,
        sessions: SessionRepository,
        whitelist: WhitelistRepository,
        *,
        refresh_filter: SessionFilter = SessionFilter.FLAGGED_ACTIVE,
        flights: Optional[SingleFlight] = None,
    ) -> None:
        self._submitter = submitter
        self._sessions = sessions
        self._whitelist = whitelist
        self._refresh_filter = refresh_filter
        self._flights = flights or SingleFlight()

    def is_pending(self, session_id: int, voter: str) -> bool:
        return self._flights.is_pending(_vote_key(session_id, voter))

    async def cast_vote(self, session_id: int, candidate_id: int, voter: str) -> VoteAttempt:
        attempt = VoteAttempt(session_id=session_id, candidate_id=candidate_id, voter=voter)
        key = _vote_key(session_id, voter)
        if self._flights.is_pending(key):
            logger.info(f"Vote for session {session_id} by {voter} already pending; duplicate dropped")
            attempt.reject(ErrorKind.ALREADY_PENDING, AlreadyPendingError.default_message)
            return attempt
        with self._flights.claim(key):
            await self._run(attempt)
        return attempt

    async def _run(self, attempt: VoteAttempt) -> None:
        attempt.advance(VoteState.VALIDATING)
        try:
            await self._validate(attempt)
        except LedgerClientError as exc:
            logger.info(f"Vote for session {attempt.session_id} by {attempt.voter} refused locally: {exc.kind.value}")
            attempt.reject(exc.kind, exc.message)
            return

        attempt.advance(VoteState.SUBMITTING)
        try:
            tx = await self._submitter.vote(attempt.session_id, attempt.candidate_id, sender=attempt.voter)
        except (LedgerRejection, LedgerClientError) as exc:
            self._fail(attempt, exc)
            return
        attempt.tx_hash = tx.tx_hash
        logger.info(f"Vote for session {attempt.session_id} by {attempt.voter} submitted: {tx.tx_hash}")

        attempt.advance(VoteState.AWAITING_CONFIRMATION)
        try:
            await tx.wait()
        except (LedgerRejection, LedgerClientError) as exc:
            self._fail(attempt, exc)
            return

        attempt.advance(VoteState.CONFIRMED)
        logger.info(f"Vote {tx.tx_hash} confirmed")
        try:
            attempt.snapshot = await self._sessions.fetch_all(self._refresh_filter, attempt.voter)
        except LedgerClientError as exc:
            logger.warning(f"Refresh after vote {tx.tx_hash} failed: {exc.message}")

    async def _validate(self, attempt: VoteAttempt) -> None:
        require_address(attempt.voter)
        session = await self._sessions.get_session(attempt.session_id, attempt.voter)
        if resolve_status(session, self._sessions.clock()) is not SessionStatus.ACTIVE:
            raise NotActiveError()
        if session.has_voted:
            raise AlreadyVotedError()
        _, _, eligible = await self._whitelist.eligibility(attempt.voter)
        if not eligible:
            raise NotWhitelistedError()
        if session.candidate(attempt.candidate_id) is None:
            raise ValidationError(f"candidate {attempt.candidate_id} does not exist in session {attempt.session_id}")

    @staticmethod
    def _fail(attempt: VoteAttempt, exc: Exception) -> None:
        if isinstance(exc, LedgerRejection):
            error = from_rejection(exc)
            logger.warning(f"Vote for session {attempt.session_id} by {attempt.voter} rejected: {exc.reason}")
        else:
            error = exc
            logger.warning(f"Vote for session {attempt.session_id} by {attempt.voter} failed: {error.message}")
        attempt.reject(error.kind, error.message)


def _vote_key(session_id: int, voter: str) -> Hashable:
    return ("vote", session_id, normalize_address(voter))


@dataclass(frozen=True)
class AdminResult:
    operation: str
    tx_hash: str
    snapshot: Any = None


class AdminCoordinator:
    def __init__(
        self,
        gateway: LedgerGateway,
        sessions: SessionRepository,
        whitelist: WhitelistRepository,
        *,
        flights: Optional[SingleFlight] = None,
    ) -> None:
        self._gateway = gateway
        self._sessions = sessions
        self._whitelist = whitelist
        self._flights = flights or SingleFlight()

    async def is_admin(self, address: Optional[str]) -> bool:
        if not address:
            return False
        admin = await self._gateway.admin_address()
        return normalize_address(admin) == normalize_address(address)

    async def _execute(
        self,
        key: Hashable,
        operation: str,
        sender: str,
        submit: Callable[[], Awaitable[PendingTransaction]],
        refresh: Callable[[], Awaitable[Any]],
    ) -> AdminResult:
        with self._flights.claim(key):
            try:
                tx = await submit()
                logger.info(f"{operation} submitted by {sender}: {tx.tx_hash}")
                await tx.wait()
            except LedgerRejection as exc:
                logger.warning(f"{operation} by {sender} rejected: {exc.reason}")
                raise from_rejection(exc) from exc
            logger.info(f"{operation} {tx.tx_hash} confirmed")
            try:
                snapshot = await refresh()
            except LedgerClientError as exc:
                logger.warning(f"Refresh after {operation} {tx.tx_hash} failed: {exc.message}")
                snapshot = None
        return AdminResult(operation=operation, tx_hash=tx.tx_hash, snapshot=snapshot)

    def _refresh_sessions(self) -> Awaitable[Snapshot]:
        return self._sessions.fetch_all(SessionFilter.ALL)

    async def create_session(
        self,
        start: datetime,
        end: datetime,
        description: str,
        *,
        sender: str,
        now: Optional[datetime] = None,
    ) -> AdminResult:
        description = require_text(description, "description")
        check_session_window(start, end, now or self._sessions.clock())
        start_unix, end_unix = to_unix(start), to_unix(end)
        return await self._execute(
            ("session-create",),
            "createVotingSession",
            sender,
            lambda: self._gateway.create_voting_session(start_unix, end_unix, description, sender=sender),
            self._refresh_sessions,
        )

    async def add_candidate(self, session_id: int, name: str, *, sender: str) -> AdminResult:
        name = require_text(name, "candidate name")
        session = await self._sessions.get_session(session_id)
        if resolve_status(session, self._sessions.clock()) is not SessionStatus.UPCOMING:
            raise ValidationError("candidates can only be added to active sessions that have not started yet")
        return await self._execute(
            ("session", session_id),
            "addCandidate",
            sender,
            lambda: self._gateway.add_candidate(session_id, name, sender=sender),
            self._refresh_sessions,
        )

    async def set_session_status(self, session_id: int, is_active: bool, *, sender: str) -> AdminResult:
        return await self._execute(
            ("session", session_id),
            "setSessionStatus",
            sender,
            lambda: self._gateway.set_session_status(session_id, is_active, sender=sender),
            self._refresh_sessions,
        )

    async def set_whitelist_required(self, required: bool, *, sender: str) -> AdminResult:
        return await self._execute(
            ("whitelist",),
            "setWhitelistRequired",
            sender,
            lambda: self._gateway.set_whitelist_required(required, sender=sender),
            self._whitelist.fetch,
        )

    async def add_voter(self, address: str, *, sender: str) -> AdminResult:
        address = require_address(address)
        return await self._execute(
            ("whitelist",),
            "addVoterToWhitelist",
            sender,
            lambda: self._gateway.add_voter_to_whitelist(address, sender=sender),
            lambda: self._whitelist.fetch(address),
        )

    async def add_voters(self, addresses: Union[str, Iterable[str]], *, sender: str) -> AdminResult:
        parsed = parse_address_list(addresses)
        return await self._execute(
            ("whitelist",),
            "addMultipleVotersToWhitelist",
            sender,
            lambda: self._gateway.add_multiple_voters_to_whitelist(parsed, sender=sender),
            self._whitelist.fetch,
        )

    async def remove_voter(self, address: str, *, sender: str) -> AdminResult:
        address = require_address(address)
        return await self._execute(
            ("whitelist",),
            "removeVoterFromWhitelist",
            sender,
            lambda: self._gateway.remove_voter_from_whitelist(address, sender=sender),
            lambda: self._whitelist.fetch(address),
        )


__all__ = ["VoteState", "VoteAttempt", "VoteCoordinator", "AdminResult", "AdminCoordinator"]
