from datetime import datetime, timedelta, timezone

from ledgervote.domain import Candidate, Session, Snapshot
from ledgervote.results import aggregate, aggregate_ended, percentage

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _session(counts, session_id=0, ended_ago=timedelta(hours=1), is_active=True):
    names = ["Alice", "Bob", "Carol", "Dave"]
    end = NOW - ended_ago
    return Session(
        id=session_id,
        start_time=end - timedelta(hours=2),
        end_time=end,
        is_active=is_active,
        description=f"Session {session_id}",
        candidates=tuple(Candidate(id=i, name=names[i], vote_count=v) for i, v in enumerate(counts)),
    )


def test_clear_winner():
    result = aggregate(_session([5, 3, 3]))
    assert result.total_votes == 11
    assert not result.is_tie
    assert result.winner.name == "Alice"
    assert [s.percentage for s in result.standings] == [45, 27, 27]


def test_tie_for_first_has_no_winner():
    result = aggregate(_session([5, 5, 3]))
    assert result.is_tie
    assert result.winner is None
    assert result.total_votes == 13
    assert [s.percentage for s in result.standings] == [38, 38, 23]


def test_no_votes():
    result = aggregate(_session([0, 0]))
    assert result.no_votes
    assert result.winner is None
    assert not result.is_tie
    assert [s.percentage for s in result.standings] == [0, 0]


def test_no_candidates():
    result = aggregate(_session([]))
    assert result.no_votes
    assert result.standings == ()


def test_three_way_split_is_not_normalised():
    result = aggregate(_session([1, 1, 1]))
    assert result.is_tie
    assert [s.percentage for s in result.standings] == [33, 33, 33]


def test_standings_sorted_by_votes_keeping_ledger_order_for_equals():
    result = aggregate(_session([1, 4, 1, 4]))
    assert [s.candidate.name for s in result.standings] == ["Bob", "Dave", "Alice", "Carol"]


def test_percentage_rounds_half_up():
    assert percentage(1, 8) == 13
    assert percentage(1, 200) == 1
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67
    assert percentage(0, 0) == 0


def test_aggregate_ended_most_recent_first():
    older = _session([2, 1], session_id=0, ended_ago=timedelta(days=2))
    newer = _session([0, 1], session_id=1, ended_ago=timedelta(hours=1))
    deactivated = _session([1, 1], session_id=2, ended_ago=timedelta(days=1), is_active=False)
    running = _session([3, 0], session_id=3, ended_ago=-timedelta(hours=1))
    snapshot = Snapshot(sessions=(older, newer, deactivated, running), fetched_at=NOW)

    results = aggregate_ended(snapshot)

    assert [r.session.id for r in results] == [1, 2, 0]
    assert results[0].winner.name == "Bob"
    assert results[1].is_tie
