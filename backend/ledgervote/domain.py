from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class SessionStatus(str, Enum):
    INACTIVE = "Inactive"
    UPCOMING = "Upcoming"
    ACTIVE = "Active"
    ENDED = "Ended"


class SessionFilter(str, Enum):
    ALL = "all"
    FLAGGED_ACTIVE = "flagged_active"
    OPEN = "open"
    ENDED = "ended"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class Candidate:
    id: int
    name: str
    vote_count: int


@dataclass(frozen=True)
class Session:
    id: int
    start_time: datetime
    end_time: datetime
    is_active: bool
    description: str
    candidates: Tuple[Candidate, ...] = ()
    # Only set when the snapshot was fetched on behalf of a voter.
    has_voted: Optional[bool] = None

    def candidate(self, candidate_id: int) -> Optional[Candidate]:
        for c in self.candidates:
            if c.id == candidate_id:
                return c
        return None


@dataclass(frozen=True)
class Snapshot:
    sessions: Tuple[Session, ...]
    fetched_at: datetime
    sequence: int = 0

    def get(self, session_id: int) -> Optional[Session]:
        for s in self.sessions:
            if s.id == session_id:
                return s
        return None


@dataclass(frozen=True)
class WhitelistSnapshot:
    required: bool
    fetched_at: datetime
    membership: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))
    sequence: int = 0

    def is_member(self, address: str) -> Optional[bool]:
        return self.membership.get(normalize_address(address))


def normalize_address(address: str) -> str:
    return (address or "").strip().lower()


def from_unix(seconds: int) -> datetime:
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def to_unix(instant: datetime) -> int:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return int(instant.timestamp())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = [
    "SessionStatus",
    "SessionFilter",
    "Candidate",
    "Session",
    "Snapshot",
    "WhitelistSnapshot",
    "normalize_address",
    "from_unix",
    "to_unix",
    "utcnow",
]
