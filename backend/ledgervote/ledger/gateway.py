"""
Capability interfaces for the voting contract.

The contract is split into four method groups so callers only depend on what
they use: ``SessionReader`` for views, ``SessionAdmin`` and ``WhitelistAdmin``
for the admin's writes, and ``VoteSubmitter`` for ballots.

Reads return raw records with unix-second timestamps; conversion to
``datetime`` happens in the repository.  Writes return a
``PendingTransaction`` whose ``wait()`` resolves once the ledger has confirmed
the transaction.

Implementations raise ``LedgerRejection`` when the contract reverts and
``LedgerUnavailableError`` for anything infrastructural, plus ``ValidationError``
for an address that cannot be encoded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence


@dataclass(frozen=True)
class SessionRecord:
    id: int
    start_time: int
    end_time: int
    is_active: bool
    description: str


@dataclass(frozen=True)
class CandidateRecord:
    id: int
    name: str
    vote_count: int


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    block_number: Optional[int] = None


class PendingTransaction(Protocol):
    tx_hash: str

    async def wait(self) -> Receipt:
        ...


class SessionReader(Protocol):
    async def sessions_count(self) -> int:
        ...

    async def get_session_details(self, session_id: int) -> SessionRecord:
        ...

    async def get_candidates_count(self, session_id: int) -> int:
        ...

    async def get_candidate(self, session_id: int, candidate_id: int) -> CandidateRecord:
        ...

    async def has_voted(self, session_id: int, address: str) -> bool:
        ...

    async def whitelist_required(self) -> bool:
        ...

    async def is_voter_whitelisted(self, address: str) -> bool:
        ...

    async def admin_address(self) -> str:
        ...


class SessionAdmin(Protocol):
    async def create_voting_session(
        self, start_time: int, end_time: int, description: str, *, sender: str
    ) -> PendingTransaction:
        ...

    async def add_candidate(self, session_id: int, name: str, *, sender: str) -> PendingTransaction:
        ...

    async def set_session_status(
        self, session_id: int, is_active: bool, *, sender: str
    ) -> PendingTransaction:
        ...


class WhitelistAdmin(Protocol):
    async def set_whitelist_required(self, required: bool, *, sender: str) -> PendingTransaction:
        ...

    async def add_voter_to_whitelist(self, address: str, *, sender: str) -> PendingTransaction:
        ...

    async def add_multiple_voters_to_whitelist(
        self, addresses: Sequence[str], *, sender: str
    ) -> PendingTransaction:
        ...

    async def remove_voter_from_whitelist(self, address: str, *, sender: str) -> PendingTransaction:
        ...


class VoteSubmitter(Protocol):
    async def vote(self, session_id: int, candidate_id: int, *, sender: str) -> PendingTransaction:
        ...


class LedgerGateway(SessionReader, SessionAdmin, WhitelistAdmin, VoteSubmitter, Protocol):
    """The whole contract surface; what the app wires up."""


__all__ = [
    "SessionRecord",
    "CandidateRecord",
    "Receipt",
    "PendingTransaction",
    "SessionReader",
    "SessionAdmin",
    "WhitelistAdmin",
    "VoteSubmitter",
    "LedgerGateway",
]
