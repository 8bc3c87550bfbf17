import pytest

from ledgervote.errors import (
    AlreadyVotedError,
    ErrorKind,
    LedgerRejection,
    NotAuthorizedError,
    UnknownRejectionError,
    ValidationError,
    classify_rejection,
    error_for,
    from_rejection,
)


@pytest.mark.parametrize(
    "reason, kind",
    [
        ("Already voted", ErrorKind.ALREADY_VOTED),
        ("execution reverted: Already voted", ErrorKind.ALREADY_VOTED),
        ("Voter is not whitelisted", ErrorKind.NOT_WHITELISTED),
        ("Voting is not active", ErrorKind.NOT_ACTIVE),
        ("VOTING IS NOT ACTIVE", ErrorKind.NOT_ACTIVE),
        ("Only admin can perform this action", ErrorKind.NOT_AUTHORIZED),
        ("Invalid candidate", ErrorKind.UNKNOWN),
        ("", ErrorKind.UNKNOWN),
        (None, ErrorKind.UNKNOWN),
    ],
)
def test_classify_rejection(reason, kind):
    assert classify_rejection(reason) is kind


def test_from_rejection_keeps_unknown_reason():
    error = from_rejection(LedgerRejection("Invalid candidate"))
    assert isinstance(error, UnknownRejectionError)
    assert error.reason == "Invalid candidate"
    assert error.status_code == 502
    assert "Invalid candidate" in error.message


def test_from_rejection_known_kind_uses_friendly_message():
    error = from_rejection(LedgerRejection("execution reverted: Only admin can perform this action"))
    assert isinstance(error, NotAuthorizedError)
    assert error.status_code == 403


def test_error_for_round_trips_kind_and_detail():
    error = error_for(ErrorKind.ALREADY_VOTED, "twice")
    assert isinstance(error, AlreadyVotedError)
    assert error.message == "twice"
    assert error.kind is ErrorKind.ALREADY_VOTED

    assert isinstance(error_for(ErrorKind.VALIDATION), ValidationError)
    assert error_for(ErrorKind.VALIDATION).message == "invalid input"
