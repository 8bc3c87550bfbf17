from fastapi import APIRouter, Depends

from ledgervote.models import (
    AddressBatchPayload,
    AddressPayload,
    AdminMeOut,
    AdminResultOut,
    CandidatePayload,
    CreateSessionPayload,
    SessionStatusPayload,
    WhitelistRequiredPayload,
)
from ledgervote.security import Caller, get_current_caller, require_admin
from ledgervote.services import get_admin_coordinator, get_services

router = APIRouter(prefix="/admin", tags=["admin"])


def _out(result) -> AdminResultOut:
    return AdminResultOut.build(result, get_services().clock())


@router.get("/me", response_model=AdminMeOut)
async def whoami(caller: Caller = Depends(get_current_caller)):
    is_admin = await get_admin_coordinator().is_admin(caller.address)
    return AdminMeOut(address=caller.address, is_admin=is_admin)


@router.post("/sessions", response_model=AdminResultOut, status_code=201)
async def create_session(payload: CreateSessionPayload, user: Caller = Depends(require_admin)):
    result = await get_admin_coordinator().create_session(
        payload.start_time, payload.end_time, payload.description, sender=user.address
    )
    return _out(result)


@router.post("/sessions/{session_id}/candidates", response_model=AdminResultOut, status_code=201)
async def add_candidate(session_id: int, payload: CandidatePayload, user: Caller = Depends(require_admin)):
    result = await get_admin_coordinator().add_candidate(session_id, payload.name, sender=user.address)
    return _out(result)


@router.post("/sessions/{session_id}/status", response_model=AdminResultOut)
async def set_session_status(session_id: int, payload: SessionStatusPayload, user: Caller = Depends(require_admin)):
    result = await get_admin_coordinator().set_session_status(session_id, payload.is_active, sender=user.address)
    return _out(result)


@router.post("/whitelist/required", response_model=AdminResultOut)
async def set_whitelist_required(payload: WhitelistRequiredPayload, user: Caller = Depends(require_admin)):
    result = await get_admin_coordinator().set_whitelist_required(payload.required, sender=user.address)
    return _out(result)


@router.post("/whitelist", response_model=AdminResultOut)
async def add_voter(payload: AddressPayload, user: Caller = Depends(require_admin)):
    result = await get_admin_coordinator().add_voter(payload.address, sender=user.address)
    return _out(result)


@router.post("/whitelist/batch", response_model=AdminResultOut)
async def add_voters(payload: AddressBatchPayload, user: Caller = Depends(require_admin)):
    result = await get_admin_coordinator().add_voters(payload.addresses, sender=user.address)
    return _out(result)


# DELETE is blocked by the hardening middleware, so removal is a POST.
@router.post("/whitelist/remove", response_model=AdminResultOut)
async def remove_voter(payload: AddressPayload, user: Caller = Depends(require_admin)):
    result = await get_admin_coordinator().remove_voter(payload.address, sender=user.address)
    return _out(result)
