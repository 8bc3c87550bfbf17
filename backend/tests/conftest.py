from datetime import datetime, timedelta, timezone

import pytest

from ledgervote.domain import to_unix
from ledgervote.ledger import InMemoryLedger
from ledgervote.main import app
from ledgervote.services import Services, install_services, reset_services

ADMIN = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"
VOTER = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
OTHER_VOTER = "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"
OUTSIDER = "0x90f79bf6eb2c4f870365e785982e1f101e93b906"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class Seeder:
    """Puts state on an InMemoryLedger the way an admin would."""

    def __init__(self, ledger: InMemoryLedger, clock: FakeClock):
        self.ledger = ledger
        self.clock = clock

    async def session(
        self,
        *,
        starts_in=timedelta(minutes=-5),
        lasts=timedelta(hours=1),
        names=("Alice", "Bob", "Carol"),
        description="Board election",
        active=True,
    ) -> int:
        session_id = await self.ledger.sessions_count()
        start = self.clock() + starts_in
        tx = await self.ledger.create_voting_session(
            to_unix(start), to_unix(start + lasts), description, sender=ADMIN
        )
        await tx.wait()
        for name in names:
            await (await self.ledger.add_candidate(session_id, name, sender=ADMIN)).wait()
        if not active:
            await (await self.ledger.set_session_status(session_id, False, sender=ADMIN)).wait()
        return session_id

    async def vote(self, session_id: int, candidate_id: int, voter: str) -> None:
        await (await self.ledger.vote(session_id, candidate_id, sender=voter)).wait()

    async def whitelist(self, *addresses: str, required: bool = True) -> None:
        await (await self.ledger.set_whitelist_required(required, sender=ADMIN)).wait()
        if addresses:
            await (await self.ledger.add_multiple_voters_to_whitelist(list(addresses), sender=ADMIN)).wait()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def ledger(clock):
    return InMemoryLedger(admin=ADMIN, clock=clock)


@pytest.fixture
def seed(ledger, clock):
    return Seeder(ledger, clock)


@pytest.fixture
def services(ledger, clock):
    return Services(ledger, clock=clock)


@pytest.fixture
def api(ledger, clock):
    """Route the app at a fresh in-memory ledger and clear rate limits."""
    limiter = getattr(app.state, "limiter", None)
    if limiter is not None:
        limiter.reset()
    installed = install_services(ledger, clock=clock)
    yield installed
    reset_services()
