import pytest

from ledgervote.core.settings import DEFAULT_ADMIN_ADDRESS, get_settings, reload_settings
from ledgervote.ledger import InMemoryLedger, Web3LedgerGateway, build_gateway


@pytest.fixture(autouse=True)
def _fresh_settings():
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    for name in ("LEDGER_BACKEND", "LEDGER_ADMIN_ADDRESS", "VOTE_RATE_LIMIT", "RECEIPT_POLL_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    settings = reload_settings()
    assert settings.ledger_backend == "memory"
    assert settings.ledger_admin_address == DEFAULT_ADMIN_ADDRESS
    assert settings.vote_rate_limit == "5/minute"
    assert settings.receipt_poll_seconds == 1.0


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("LEDGER_BACKEND", " WEB3 ")
    monkeypatch.setenv("RECEIPT_POLL_SECONDS", "0.25")
    monkeypatch.setenv("VOTE_RATE_LIMIT", "")
    settings = reload_settings()
    assert settings.ledger_backend == "web3"
    assert settings.receipt_poll_seconds == 0.25
    # Empty values fall back to the default.
    assert settings.vote_rate_limit == "5/minute"


def test_memory_backend(monkeypatch):
    monkeypatch.setenv("LEDGER_BACKEND", "memory")
    gateway = build_gateway(reload_settings())
    assert isinstance(gateway, InMemoryLedger)


def test_web3_backend_needs_contract(monkeypatch):
    monkeypatch.setenv("LEDGER_BACKEND", "web3")
    monkeypatch.delenv("LEDGER_CONTRACT_ADDRESS", raising=False)
    with pytest.raises(RuntimeError):
        build_gateway(reload_settings())

    monkeypatch.setenv("LEDGER_CONTRACT_ADDRESS", "0x5FbDB2315678afecb367f032d93F642f64180aa3")
    assert isinstance(build_gateway(reload_settings()), Web3LedgerGateway)


def test_unknown_backend(monkeypatch):
    monkeypatch.setenv("LEDGER_BACKEND", "sqlite")
    with pytest.raises(RuntimeError):
        build_gateway(reload_settings())
