from __future__ import annotations

from datetime import datetime

from ledgervote.domain import Session, SessionFilter, SessionStatus


def resolve_status(session: Session, now: datetime) -> SessionStatus:
    """Lifecycle state of ``session`` as observed at ``now``.

    The admin flag wins over the time window; both window bounds count as
    active.
    """
    if not session.is_active:
        return SessionStatus.INACTIVE
    if now < session.start_time:
        return SessionStatus.UPCOMING
    if now > session.end_time:
        return SessionStatus.ENDED
    return SessionStatus.ACTIVE


def is_eligible(required: bool, is_member: bool) -> bool:
    return not required or is_member


def matches_filter(session: Session, session_filter: SessionFilter, now: datetime) -> bool:
    if session_filter is SessionFilter.ALL:
        return True
    if session_filter is SessionFilter.FLAGGED_ACTIVE:
        return session.is_active
    if session_filter is SessionFilter.ENDED:
        # Results are shown for every finished window, whatever the flag says.
        return now > session.end_time
    status = resolve_status(session, now)
    if session_filter is SessionFilter.UPCOMING:
        return status is SessionStatus.UPCOMING
    if session_filter is SessionFilter.OPEN:
        return status in (SessionStatus.ACTIVE, SessionStatus.UPCOMING)
    return False


__all__ = ["resolve_status", "is_eligible", "matches_filter"]
