from datetime import datetime, timedelta, timezone

import pytest

from ledgervote.domain import Session, SessionFilter, SessionStatus, from_unix, to_unix
from ledgervote.lifecycle import is_eligible, matches_filter, resolve_status

START = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
END = START + timedelta(hours=2)


def _session(is_active=True, start=START, end=END):
    return Session(id=0, start_time=start, end_time=end, is_active=is_active, description="Budget vote")


@pytest.mark.parametrize(
    "now, is_active, expected",
    [
        (START - timedelta(seconds=1), True, SessionStatus.UPCOMING),
        (START, True, SessionStatus.ACTIVE),
        (START + timedelta(hours=1), True, SessionStatus.ACTIVE),
        (END, True, SessionStatus.ACTIVE),
        (END + timedelta(seconds=1), True, SessionStatus.ENDED),
        (START - timedelta(days=1), False, SessionStatus.INACTIVE),
        (START + timedelta(hours=1), False, SessionStatus.INACTIVE),
        (END + timedelta(days=1), False, SessionStatus.INACTIVE),
    ],
)
def test_resolve_status(now, is_active, expected):
    assert resolve_status(_session(is_active=is_active), now) is expected


def test_admin_flag_overrides_open_window():
    session = _session(is_active=False)
    assert resolve_status(session, START + timedelta(minutes=30)) is SessionStatus.INACTIVE


@pytest.mark.parametrize(
    "required, member, expected",
    [
        (False, False, True),
        (False, True, True),
        (True, True, True),
        (True, False, False),
    ],
)
def test_whitelist_gate(required, member, expected):
    assert is_eligible(required, member) is expected


def test_filters():
    now = START + timedelta(hours=1)
    upcoming = _session(start=now + timedelta(hours=1), end=now + timedelta(hours=2))
    active = _session()
    ended = _session(start=now - timedelta(hours=3), end=now - timedelta(hours=2))
    ended_and_deactivated = _session(is_active=False, start=ended.start_time, end=ended.end_time)
    paused = _session(is_active=False)

    assert matches_filter(paused, SessionFilter.ALL, now)
    assert not matches_filter(paused, SessionFilter.FLAGGED_ACTIVE, now)
    assert matches_filter(ended, SessionFilter.FLAGGED_ACTIVE, now)

    assert matches_filter(upcoming, SessionFilter.OPEN, now)
    assert matches_filter(active, SessionFilter.OPEN, now)
    assert not matches_filter(ended, SessionFilter.OPEN, now)
    assert not matches_filter(paused, SessionFilter.OPEN, now)

    assert matches_filter(upcoming, SessionFilter.UPCOMING, now)
    assert not matches_filter(active, SessionFilter.UPCOMING, now)

    assert matches_filter(ended, SessionFilter.ENDED, now)
    assert matches_filter(ended_and_deactivated, SessionFilter.ENDED, now)
    assert not matches_filter(active, SessionFilter.ENDED, now)


def test_unix_conversion_is_utc():
    assert to_unix(from_unix(1767225600)) == 1767225600
    assert from_unix(0).tzinfo is timezone.utc
    assert to_unix(datetime(1970, 1, 1, 0, 1)) == 60
