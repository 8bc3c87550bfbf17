from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from ledgervote.concurrency import SingleFlight
from ledgervote.coordinator import AdminCoordinator, VoteCoordinator
from ledgervote.core.settings import get_settings
from ledgervote.domain import utcnow
from ledgervote.ledger import LedgerGateway, build_gateway
from ledgervote.repository import SessionRepository, WhitelistRepository


class Services:
    """Everything the API needs, built around one gateway and one clock."""

    def __init__(self, gateway: LedgerGateway, *, clock: Callable[[], datetime] = utcnow) -> None:
        self.gateway = gateway
        self.clock = clock
        self.sessions = SessionRepository(gateway, clock=clock)
        self.whitelist = WhitelistRepository(gateway, clock=clock)
        flights = SingleFlight()
        self.votes = VoteCoordinator(gateway, self.sessions, self.whitelist, flights=flights)
        self.admin = AdminCoordinator(gateway, self.sessions, self.whitelist, flights=flights)


_services: Optional[Services] = None


def get_services() -> Services:
    global _services
    if _services is None:
        _services = Services(build_gateway(get_settings()))
    return _services


def install_services(gateway: LedgerGateway, *, clock: Callable[[], datetime] = utcnow) -> Services:
    global _services
    _services = Services(gateway, clock=clock)
    return _services


def reset_services() -> None:
    global _services
    _services = None


def get_session_repository() -> SessionRepository:
    return get_services().sessions


def get_whitelist_repository() -> WhitelistRepository:
    return get_services().whitelist


def get_vote_coordinator() -> VoteCoordinator:
    return get_services().votes


def get_admin_coordinator() -> AdminCoordinator:
    return get_services().admin


__all__ = [
    "Services",
    "get_services",
    "install_services",
    "reset_services",
    "get_session_repository",
    "get_whitelist_repository",
    "get_vote_coordinator",
    "get_admin_coordinator",
]
