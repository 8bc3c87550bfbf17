from fastapi import APIRouter, Depends

from ledgervote.models import WhitelistStatusOut
from ledgervote.security import Caller, get_current_caller
from ledgervote.services import get_whitelist_repository

router = APIRouter(prefix="/whitelist", tags=["whitelist"])


@router.get("/me", response_model=WhitelistStatusOut)
async def my_status(caller: Caller = Depends(get_current_caller)):
    required, member, eligible = await get_whitelist_repository().eligibility(caller.address)
    return WhitelistStatusOut(address=caller.address, required=required, whitelisted=member, eligible=eligible)
