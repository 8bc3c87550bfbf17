"""
Error taxonomy for ledger operations.

Every failure a caller can see is a ``LedgerClientError`` subclass carrying an
``ErrorKind`` and the HTTP status the API layer answers with.  Gateways only
raise two things: ``LedgerRejection`` when the contract reverted (with the raw
revert text) and ``LedgerUnavailableError`` when the node could not be reached
or answered garbage.  ``classify_rejection`` turns revert text into a kind.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Type


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    NOT_ACTIVE = "not_active"
    ALREADY_VOTED = "already_voted"
    NOT_WHITELISTED = "not_whitelisted"
    ALREADY_PENDING = "already_pending"
    NOT_AUTHORIZED = "not_authorized"
    NETWORK = "ledger_unavailable"
    UNKNOWN = "unknown_rejection"


class LedgerClientError(Exception):
    kind: ErrorKind = ErrorKind.UNKNOWN
    status_code: int = 500
    default_message = "ledger operation failed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LedgerClientError):
    kind = ErrorKind.VALIDATION
    status_code = 422
    default_message = "invalid input"


class NotActiveError(LedgerClientError):
    kind = ErrorKind.NOT_ACTIVE
    status_code = 409
    default_message = "Voting is not currently active for this session"


class AlreadyVotedError(LedgerClientError):
    kind = ErrorKind.ALREADY_VOTED
    status_code = 409
    default_message = "You have already voted in this session"


class NotWhitelistedError(LedgerClientError):
    kind = ErrorKind.NOT_WHITELISTED
    status_code = 403
    default_message = "You are not whitelisted to vote in this session"


class AlreadyPendingError(LedgerClientError):
    kind = ErrorKind.ALREADY_PENDING
    status_code = 409
    default_message = "A transaction for this operation is already pending"


class NotAuthorizedError(LedgerClientError):
    kind = ErrorKind.NOT_AUTHORIZED
    status_code = 403
    default_message = "Only admin can perform this action"


class LedgerUnavailableError(LedgerClientError):
    kind = ErrorKind.NETWORK
    status_code = 503
    default_message = "The ledger could not be reached. Try again later."


class UnknownRejectionError(LedgerClientError):
    kind = ErrorKind.UNKNOWN
    status_code = 502
    default_message = "The ledger rejected the transaction"

    def __init__(self, reason: Optional[str] = None) -> None:
        self.reason = reason or ""
        super().__init__(f"{self.default_message}: {reason}" if reason else None)


class LedgerRejection(Exception):
    """Raised by a gateway when the contract reverts a call or transaction."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


# Substrings of the contract's revert messages, lower-cased.
_REVERT_PATTERNS = (
    ("already voted", ErrorKind.ALREADY_VOTED),
    ("not whitelisted", ErrorKind.NOT_WHITELISTED),
    ("not active", ErrorKind.NOT_ACTIVE),
    ("only admin", ErrorKind.NOT_AUTHORIZED),
)

_ERRORS: Dict[ErrorKind, Type[LedgerClientError]] = {
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.NOT_ACTIVE: NotActiveError,
    ErrorKind.ALREADY_VOTED: AlreadyVotedError,
    ErrorKind.NOT_WHITELISTED: NotWhitelistedError,
    ErrorKind.ALREADY_PENDING: AlreadyPendingError,
    ErrorKind.NOT_AUTHORIZED: NotAuthorizedError,
    ErrorKind.NETWORK: LedgerUnavailableError,
}


def classify_rejection(reason: Optional[str]) -> ErrorKind:
    """Map revert text to an ``ErrorKind``; anything unrecognised is ``UNKNOWN``."""
    text = (reason or "").lower()
    for needle, kind in _REVERT_PATTERNS:
        if needle in text:
            return kind
    return ErrorKind.UNKNOWN


def error_for(kind: ErrorKind, detail: Optional[str] = None) -> LedgerClientError:
    if kind is ErrorKind.UNKNOWN:
        return UnknownRejectionError(detail)
    return _ERRORS[kind](detail)


def from_rejection(rejection: LedgerRejection) -> LedgerClientError:
    kind = classify_rejection(rejection.reason)
    if kind is ErrorKind.UNKNOWN:
        return UnknownRejectionError(rejection.reason)
    return _ERRORS[kind]()


__all__ = [
    "ErrorKind",
    "LedgerClientError",
    "ValidationError",
    "NotActiveError",
    "AlreadyVotedError",
    "NotWhitelistedError",
    "AlreadyPendingError",
    "NotAuthorizedError",
    "LedgerUnavailableError",
    "UnknownRejectionError",
    "LedgerRejection",
    "classify_rejection",
    "error_for",
    "from_rejection",
]
