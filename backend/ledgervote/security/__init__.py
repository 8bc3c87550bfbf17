from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from web3 import Web3

from ledgervote.core.settings import get_settings
from ledgervote.services import get_admin_coordinator

ACCESS_TOKEN_EXPIRE_MINUTES = 60


class Caller:
    def __init__(self, address: str):
        self.address = address


def create_access_token(address: str, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": address, "exp": expire, "iat": now}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _parse_jwt_token(token: str) -> Optional[str]:
    settings = get_settings()
    secret = settings.jwt_secret or "your-secret-key"
    algorithm = settings.jwt_algorithm or "HS256"
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None

    address = payload.get("sub")
    if isinstance(address, str) and Web3.is_address(address):
        return address
    return None


def _parse_token(token: str) -> Optional[str]:
    # First, try signed tokens.
    address = _parse_jwt_token(token)
    if address:
        return address

    # Fallback to local-dev "wallet:<address>" tokens.
    if ":" in token:
        prefix, address = token.split(":", 1)
        if prefix == "wallet" and Web3.is_address(address):
            return address
    return None


def _bearer(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization", "")
    parts = auth.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def get_optional_caller(request: Request) -> Optional[Caller]:
    token = _bearer(request)
    if token:
        address = _parse_token(token)
        if address:
            return Caller(address=address)
    return None


def get_current_caller(request: Request) -> Caller:
    caller = get_optional_caller(request)
    if caller is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthenticated")
    return caller


async def require_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    if not await get_admin_coordinator().is_admin(caller.address):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden")
    return caller


__all__ = [
    "Caller",
    "create_access_token",
    "get_optional_caller",
    "get_current_caller",
    "require_admin",
]
