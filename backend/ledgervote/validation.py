from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Union

from web3 import Web3

from ledgervote.domain import to_unix
from ledgervote.errors import ValidationError


def require_text(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required")
    return text


def require_address(address: Optional[str]) -> str:
    value = (address or "").strip()
    if not Web3.is_address(value):
        raise ValidationError(f"invalid Ethereum address: {value or '<empty>'}")
    return value


def parse_address_list(addresses: Union[str, Iterable[str]]) -> List[str]:
    """Split a newline-separated blob (or a list) into validated addresses.

    Blank entries are dropped. Every invalid address is reported in one error.
    """
    if isinstance(addresses, str):
        raw = addresses.split("\n")
    else:
        raw = list(addresses)
    cleaned = [a.strip() for a in raw if a and a.strip()]
    if not cleaned:
        raise ValidationError("at least one address is required")
    invalid = [a for a in cleaned if not Web3.is_address(a)]
    if invalid:
        raise ValidationError(f"invalid Ethereum addresses: {', '.join(invalid)}")
    return cleaned


def check_session_window(start: datetime, end: datetime, now: datetime) -> None:
    """Check the window as the ledger will store it, in whole unix seconds."""
    start_unix, end_unix, now_unix = to_unix(start), to_unix(end), to_unix(now)
    if start_unix >= end_unix:
        raise ValidationError("end time must be after start time")
    if start_unix <= now_unix:
        raise ValidationError("start time must be in the future")


__all__ = ["require_text", "require_address", "parse_address_list", "check_session_window"]
