from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field

# Hardhat/Anvil default deployer, used by the in-memory ledger when nothing is configured.
DEFAULT_ADMIN_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


class Settings(BaseModel):
    ledger_backend: str = Field(default="memory")
    ledger_rpc_url: str = Field(default="http://127.0.0.1:8545")
    ledger_contract_address: Optional[str] = Field(default=None)
    ledger_admin_address: str = Field(default=DEFAULT_ADMIN_ADDRESS)
    receipt_poll_seconds: float = Field(default=1.0)
    jwt_secret: str = Field(default="your-secret-key")
    jwt_algorithm: str = Field(default="HS256")
    vote_rate_limit: str = Field(default="5/minute")
    log_file: str = Field(default="ledger.log")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name, default)
    if value == "":
        return default
    return value


def _load_settings() -> Settings:
    backend = (_env("LEDGER_BACKEND", "memory") or "memory").strip().lower()
    rpc_url = _env("LEDGER_RPC_URL", "http://127.0.0.1:8545") or "http://127.0.0.1:8545"
    contract_address = _env("LEDGER_CONTRACT_ADDRESS")
    admin_address = _env("LEDGER_ADMIN_ADDRESS", DEFAULT_ADMIN_ADDRESS) or DEFAULT_ADMIN_ADDRESS
    receipt_poll_seconds = float(_env("RECEIPT_POLL_SECONDS", "1.0") or "1.0")
    jwt_secret = _env("JWT_SECRET", "your-secret-key") or "your-secret-key"
    jwt_algorithm = _env("JWT_ALGORITHM", "HS256") or "HS256"
    vote_rate_limit = _env("VOTE_RATE_LIMIT", "5/minute") or "5/minute"
    log_file = _env("LEDGER_LOG_FILE", "ledger.log") or "ledger.log"
    return Settings(
        ledger_backend=backend,
        ledger_rpc_url=rpc_url,
        ledger_contract_address=contract_address,
        ledger_admin_address=admin_address,
        receipt_poll_seconds=receipt_poll_seconds,
        jwt_secret=jwt_secret,
        jwt_algorithm=jwt_algorithm,
        vote_rate_limit=vote_rate_limit,
        log_file=log_file,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return _load_settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


__all__ = ["DEFAULT_ADMIN_ADDRESS", "Settings", "get_settings", "reload_settings"]
