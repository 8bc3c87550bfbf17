"""
In-process stand-in for the voting contract.

It enforces the same rules and revert messages as the deployed contract so the
rest of the client can be exercised without a node: local development, the
test-suite and demos.  Writes are queued as pending transactions; with
``auto_confirm`` (the default) they are mined immediately, otherwise they wait
until ``mine()`` is called, which lets tests hold a transaction in flight.
"""

from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Set, Tuple

from ledgervote.domain import normalize_address, to_unix, utcnow
from ledgervote.errors import LedgerRejection
from ledgervote.ledger.gateway import CandidateRecord, Receipt, SessionRecord

Clock = Callable[[], datetime]


@dataclass
class _StoredSession:
    record: SessionRecord
    candidates: List[CandidateRecord] = field(default_factory=list)
    voters: Set[str] = field(default_factory=set)


class MemoryTransaction:
    def __init__(self, tx_hash: str, action: Callable[[], None]) -> None:
        self.tx_hash = tx_hash
        self._action = action
        self._future: Optional[asyncio.Future] = None
        self._outcome: Optional[Tuple[Optional[Receipt], Optional[BaseException]]] = None

    def _settle(self, block_number: int) -> None:
        try:
            self._action()
        except LedgerRejection as exc:
            self._outcome = (None, exc)
        else:
            self._outcome = (Receipt(tx_hash=self.tx_hash, block_number=block_number), None)
        if self._future is not None and not self._future.done():
            receipt, error = self._outcome
            if error is not None:
                self._future.set_exception(error)
            else:
                self._future.set_result(receipt)

    @property
    def confirmed(self) -> bool:
        return self._outcome is not None

    async def wait(self) -> Receipt:
        if self._outcome is None:
            if self._future is None:
                self._future = asyncio.get_running_loop().create_future()
            return await asyncio.shield(self._future)
        receipt, error = self._outcome
        if error is not None:
            raise error
        return receipt


class InMemoryLedger:
    def __init__(self, admin: str, *, clock: Clock = utcnow, auto_confirm: bool = True) -> None:
        self._admin = admin
        self._clock = clock
        self.auto_confirm = auto_confirm
        self._sessions: List[_StoredSession] = []
        self._whitelist_required = False
        self._whitelist: Set[str] = set()
        self._pending: List[MemoryTransaction] = []
        self._nonce = 0
        self._block = 0
        # (method, sender) of every write submitted, in order.
        self.writes: List[Tuple[str, str]] = []

    # ---- reads ----
    async def sessions_count(self) -> int:
        return len(self._sessions)

    async def get_session_details(self, session_id: int) -> SessionRecord:
        return self._session(session_id).record

    async def get_candidates_count(self, session_id: int) -> int:
        return len(self._session(session_id).candidates)

    async def get_candidate(self, session_id: int, candidate_id: int) -> CandidateRecord:
        candidates = self._session(session_id).candidates
        if not 0 <= candidate_id < len(candidates):
            raise LedgerRejection("Invalid candidate")
        return candidates[candidate_id]

    async def has_voted(self, session_id: int, address: str) -> bool:
        return normalize_address(address) in self._session(session_id).voters

    async def whitelist_required(self) -> bool:
        return self._whitelist_required

    async def is_voter_whitelisted(self, address: str) -> bool:
        return normalize_address(address) in self._whitelist

    async def admin_address(self) -> str:
        return self._admin

    # ---- writes ----
    async def create_voting_session(self, start_time: int, end_time: int, description: str, *, sender: str):
        self._only_admin(sender)

        def apply() -> None:
            if start_time >= end_time:
                raise LedgerRejection("Start time must be before end time")
            record = SessionRecord(
                id=len(self._sessions),
                start_time=int(start_time),
                end_time=int(end_time),
                is_active=True,
                description=description,
            )
            self._sessions.append(_StoredSession(record=record))

        return self._submit("createVotingSession", sender, apply)

    async def add_candidate(self, session_id: int, name: str, *, sender: str):
        self._only_admin(sender)

        def apply() -> None:
            stored = self._session(session_id)
            stored.candidates.append(CandidateRecord(id=len(stored.candidates), name=name, vote_count=0))

        return self._submit("addCandidate", sender, apply)

    async def set_session_status(self, session_id: int, is_active: bool, *, sender: str):
        self._only_admin(sender)

        def apply() -> None:
            stored = self._session(session_id)
            r = stored.record
            stored.record = SessionRecord(r.id, r.start_time, r.end_time, bool(is_active), r.description)

        return self._submit("setSessionStatus", sender, apply)

    async def set_whitelist_required(self, required: bool, *, sender: str):
        self._only_admin(sender)

        def apply() -> None:
            self._whitelist_required = bool(required)

        return self._submit("setWhitelistRequired", sender, apply)

    async def add_voter_to_whitelist(self, address: str, *, sender: str):
        self._only_admin(sender)
        return self._submit("addVoterToWhitelist", sender, lambda: self._whitelist.add(normalize_address(address)))

    async def add_multiple_voters_to_whitelist(self, addresses: Sequence[str], *, sender: str):
        self._only_admin(sender)

        def apply() -> None:
            self._whitelist.update(normalize_address(a) for a in addresses)

        return self._submit("addMultipleVotersToWhitelist", sender, apply)

    async def remove_voter_from_whitelist(self, address: str, *, sender: str):
        self._only_admin(sender)
        return self._submit(
            "removeVoterFromWhitelist", sender, lambda: self._whitelist.discard(normalize_address(address))
        )

    async def vote(self, session_id: int, candidate_id: int, *, sender: str):
        voter = normalize_address(sender)

        def apply() -> None:
            stored = self._session(session_id)
            r = stored.record
            now = to_unix(self._clock())
            if not (r.is_active and r.start_time <= now <= r.end_time):
                raise LedgerRejection("Voting is not active")
            if self._whitelist_required and voter not in self._whitelist:
                raise LedgerRejection("Voter is not whitelisted")
            if voter in stored.voters:
                raise LedgerRejection("Already voted")
            if not 0 <= candidate_id < len(stored.candidates):
                raise LedgerRejection("Invalid candidate")
            c = stored.candidates[candidate_id]
            stored.candidates[candidate_id] = CandidateRecord(c.id, c.name, c.vote_count + 1)
            stored.voters.add(voter)

        return self._submit("vote", sender, apply)

    # ---- mining ----
    @property
    def pending(self) -> int:
        return len(self._pending)

    def mine(self) -> int:
        """Confirm every queued transaction in submission order; returns how many."""
        queued, self._pending = self._pending, []
        for tx in queued:
            self._block += 1
            tx._settle(self._block)
        return len(queued)

    # ---- helpers ----
    def _session(self, session_id: int) -> _StoredSession:
        if not 0 <= session_id < len(self._sessions):
            raise LedgerRejection("Session does not exist")
        return self._sessions[session_id]

    def _only_admin(self, sender: str) -> None:
        if normalize_address(sender) != normalize_address(self._admin):
            raise LedgerRejection("Only admin can perform this action")

    def _submit(self, method: str, sender: str, action: Callable[[], None]) -> MemoryTransaction:
        self._nonce += 1
        digest = hashlib.sha256(f"{method}:{sender}:{self._nonce}".encode("utf-8")).hexdigest()
        tx = MemoryTransaction("0x" + digest, action)
        self.writes.append((method, sender))
        self._pending.append(tx)
        if self.auto_confirm:
            self.mine()
        return tx


__all__ = ["InMemoryLedger", "MemoryTransaction"]
