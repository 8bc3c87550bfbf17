"""
Read-through snapshots of ledger state.

``SessionRepository.fetch_all`` fans the contract reads out concurrently and
assembles an immutable ``Snapshot``.  If any single read fails the whole fetch
fails and nothing is published, so a session is never shown with a partial
candidate list.

Fetches can overlap.  Each one takes a sequence number when it starts and only
publishes if no later-started fetch for the same view got there first; a slow,
superseded fetch gets the newer snapshot back instead of overwriting it.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from types import MappingProxyType
from typing import Callable, Dict, Hashable, Optional, Tuple

from ledgervote.concurrency import SequenceGuard
from ledgervote.core.logger import ledger_logger as logger
from ledgervote.domain import (
    Candidate,
    Session,
    SessionFilter,
    Snapshot,
    WhitelistSnapshot,
    from_unix,
    normalize_address,
    utcnow,
)
from ledgervote.errors import LedgerClientError, LedgerRejection, LedgerUnavailableError, ValidationError
from ledgervote.ledger.gateway import SessionReader, SessionRecord
from ledgervote.lifecycle import is_eligible, matches_filter

Clock = Callable[[], datetime]


def _view_key(session_filter: SessionFilter, voter: Optional[str]) -> Hashable:
    return (session_filter, normalize_address(voter) if voter else None)


class SessionRepository:
    def __init__(self, reader: SessionReader, *, clock: Clock = utcnow) -> None:
        self._reader = reader
        self._clock = clock
        self._guard: SequenceGuard[Snapshot] = SequenceGuard()

    @property
    def clock(self) -> Clock:
        return self._clock

    def latest(self, session_filter: SessionFilter = SessionFilter.ALL, voter: Optional[str] = None) -> Optional[Snapshot]:
        return self._guard.latest(_view_key(session_filter, voter))

    async def fetch_all(
        self,
        session_filter: SessionFilter = SessionFilter.ALL,
        voter: Optional[str] = None,
    ) -> Snapshot:
        sequence = self._guard.begin()
        fetched_at = self._clock()
        try:
            count = await self._reader.sessions_count()
            loaded = await asyncio.gather(
                *(self._load(i, session_filter, voter, fetched_at) for i in range(count))
            )
        except LedgerRejection as exc:
            logger.warning(f"Session fetch #{sequence} failed: {exc.reason}")
            raise LedgerUnavailableError(f"session read reverted: {exc.reason}") from exc
        except LedgerClientError as exc:
            logger.warning(f"Session fetch #{sequence} failed: {exc.message}")
            raise

        snapshot = Snapshot(
            sessions=tuple(s for s in loaded if s is not None),
            fetched_at=fetched_at,
            sequence=sequence,
        )
        published, current = self._guard.offer(_view_key(session_filter, voter), sequence, snapshot)
        if not published:
            logger.info(
                f"Discarded stale session fetch #{sequence} (view {session_filter.value}); "
                f"keeping #{current.sequence}"
            )
        return current

    async def get_session(self, session_id: int, voter: Optional[str] = None) -> Session:
        """Read one session with its candidates (and ``has_voted`` for ``voter``)."""
        try:
            count = await self._reader.sessions_count()
            if not 0 <= session_id < count:
                raise ValidationError(f"session {session_id} does not exist")
            record = await self._reader.get_session_details(session_id)
            return await self._assemble(record, voter)
        except LedgerRejection as exc:
            raise LedgerUnavailableError(f"session read reverted: {exc.reason}") from exc

    async def _load(
        self,
        index: int,
        session_filter: SessionFilter,
        voter: Optional[str],
        now: datetime,
    ) -> Optional[Session]:
        record = await self._reader.get_session_details(index)
        header = _to_session(record)
        if not matches_filter(header, session_filter, now):
            return None
        return await self._assemble(record, voter)

    async def _assemble(self, record: SessionRecord, voter: Optional[str]) -> Session:
        count = await self._reader.get_candidates_count(record.id)
        reads = [self._reader.get_candidate(record.id, j) for j in range(count)]
        if voter:
            reads.append(self._reader.has_voted(record.id, voter))
        results = await asyncio.gather(*reads)
        has_voted: Optional[bool] = None
        if voter:
            has_voted = bool(results[-1])
            results = results[:-1]
        candidates = tuple(Candidate(id=int(c.id), name=c.name, vote_count=int(c.vote_count)) for c in results)
        return _to_session(record, candidates, has_voted)


def _to_session(
    record: SessionRecord,
    candidates: Tuple[Candidate, ...] = (),
    has_voted: Optional[bool] = None,
) -> Session:
    return Session(
        id=int(record.id),
        start_time=from_unix(record.start_time),
        end_time=from_unix(record.end_time),
        is_active=bool(record.is_active),
        description=record.description,
        candidates=candidates,
        has_voted=has_voted,
    )


class WhitelistRepository:
    """Whitelist mode plus lazily-queried per-address membership."""

    def __init__(self, reader: SessionReader, *, clock: Clock = utcnow) -> None:
        self._reader = reader
        self._clock = clock
        self._guard: SequenceGuard[WhitelistSnapshot] = SequenceGuard()

    def latest(self) -> Optional[WhitelistSnapshot]:
        return self._guard.latest("whitelist")

    async def _read(self, address: Optional[str]) -> WhitelistSnapshot:
        sequence = self._guard.begin()
        fetched_at = self._clock()
        membership: Dict[str, bool] = {}
        try:
            required = await self._reader.whitelist_required()
            if address:
                membership[normalize_address(address)] = bool(await self._reader.is_voter_whitelisted(address))
        except LedgerRejection as exc:
            logger.warning(f"Whitelist fetch #{sequence} failed: {exc.reason}")
            raise LedgerUnavailableError(f"whitelist read reverted: {exc.reason}") from exc
        return WhitelistSnapshot(
            required=bool(required),
            fetched_at=fetched_at,
            membership=MappingProxyType(membership),
            sequence=sequence,
        )

    async def fetch(self, address: Optional[str] = None) -> WhitelistSnapshot:
        snapshot = await self._read(address)
        _, current = self._guard.offer("whitelist", snapshot.sequence, snapshot)
        return current

    async def eligibility(self, address: str) -> Tuple[bool, bool, bool]:
        """``(required, is_member, eligible)`` for ``address``, read fresh."""
        snapshot = await self._read(address)
        self._guard.offer("whitelist", snapshot.sequence, snapshot)
        is_member = bool(snapshot.is_member(address))
        return snapshot.required, is_member, is_eligible(snapshot.required, is_member)


__all__ = ["SessionRepository", "WhitelistRepository"]
