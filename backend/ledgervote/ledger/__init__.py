from ledgervote.core.settings import Settings
from ledgervote.ledger.gateway import (
    CandidateRecord,
    LedgerGateway,
    PendingTransaction,
    Receipt,
    SessionAdmin,
    SessionReader,
    SessionRecord,
    VoteSubmitter,
    WhitelistAdmin,
)
from ledgervote.ledger.memory import InMemoryLedger
from ledgervote.ledger.web3_gateway import Web3LedgerGateway


def build_gateway(settings: Settings) -> LedgerGateway:
    """Create the gateway selected by ``LEDGER_BACKEND``."""
    if settings.ledger_backend == "web3":
        if not settings.ledger_contract_address:
            raise RuntimeError("LEDGER_CONTRACT_ADDRESS must be set when LEDGER_BACKEND=web3")
        return Web3LedgerGateway(
            settings.ledger_contract_address,
            settings.ledger_rpc_url,
            poll_seconds=settings.receipt_poll_seconds,
        )
    if settings.ledger_backend == "memory":
        return InMemoryLedger(admin=settings.ledger_admin_address)
    raise RuntimeError(f"unknown LEDGER_BACKEND: {settings.ledger_backend}")


__all__ = [
    "CandidateRecord",
    "InMemoryLedger",
    "LedgerGateway",
    "PendingTransaction",
    "Receipt",
    "SessionAdmin",
    "SessionReader",
    "SessionRecord",
    "VoteSubmitter",
    "WhitelistAdmin",
    "Web3LedgerGateway",
    "build_gateway",
]
