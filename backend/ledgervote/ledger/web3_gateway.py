"""
Voting contract gateway backed by an Ethereum JSON-RPC node (web3.py).

Writes are sent with ``transact({"from": sender})``, so the sender must be an
account the node manages (Hardhat, Anvil, a Geth clef setup, ...).  Signing
stays outside this client.

Confirmation polls for the receipt with no overall timeout, retrying failed
lookups on the same interval.  When a mined transaction reverted, the receipt
carries no reason, so the call is replayed against the block it was mined in
to recover the revert message.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3Exception

from ledgervote.core.logger import ledger_logger as logger
from ledgervote.errors import LedgerRejection, LedgerUnavailableError, ValidationError
from ledgervote.ledger.gateway import CandidateRecord, Receipt, SessionRecord


def _fn(name: str, inputs: List[Dict[str, str]], outputs: List[Dict[str, str]], mutability: str) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs,
        "stateMutability": mutability,
    }


def _arg(name: str, type_: str) -> Dict[str, str]:
    return {"name": name, "type": type_, "internalType": type_}


VOTING_ABI: List[Dict[str, Any]] = [
    _fn("admin", [], [_arg("", "address")], "view"),
    _fn("sessionsCount", [], [_arg("", "uint256")], "view"),
    _fn(
        "getSessionDetails",
        [_arg("sessionId", "uint256")],
        [
            _arg("id", "uint256"),
            _arg("startTime", "uint256"),
            _arg("endTime", "uint256"),
            _arg("isActive", "bool"),
            _arg("description", "string"),
        ],
        "view",
    ),
    _fn("getCandidatesCount", [_arg("sessionId", "uint256")], [_arg("", "uint256")], "view"),
    _fn(
        "getCandidate",
        [_arg("sessionId", "uint256"), _arg("candidateId", "uint256")],
        [_arg("id", "uint256"), _arg("name", "string"), _arg("voteCount", "uint256")],
        "view",
    ),
    _fn("hasVoted", [_arg("sessionId", "uint256"), _arg("voter", "address")], [_arg("", "bool")], "view"),
    _fn("whitelistRequired", [], [_arg("", "bool")], "view"),
    _fn("isVoterWhitelisted", [_arg("voter", "address")], [_arg("", "bool")], "view"),
    _fn(
        "createVotingSession",
        [_arg("startTime", "uint256"), _arg("endTime", "uint256"), _arg("description", "string")],
        [],
        "nonpayable",
    ),
    _fn("addCandidate", [_arg("sessionId", "uint256"), _arg("name", "string")], [], "nonpayable"),
    _fn("setSessionStatus", [_arg("sessionId", "uint256"), _arg("isActive", "bool")], [], "nonpayable"),
    _fn("setWhitelistRequired", [_arg("required", "bool")], [], "nonpayable"),
    _fn("addVoterToWhitelist", [_arg("voter", "address")], [], "nonpayable"),
    _fn("addMultipleVotersToWhitelist", [_arg("voters", "address[]")], [], "nonpayable"),
    _fn("removeVoterFromWhitelist", [_arg("voter", "address")], [], "nonpayable"),
    _fn("vote", [_arg("sessionId", "uint256"), _arg("candidateId", "uint256")], [], "nonpayable"),
]

# Failures that mean "could not talk to the node", as opposed to a revert.
_TRANSPORT_ERRORS = (Web3Exception, OSError, asyncio.TimeoutError, ValueError)


def _revert_reason(exc: ContractLogicError) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message.replace("execution reverted:", "").strip() or "execution reverted"


def _checksum(address: str) -> str:
    try:
        return Web3.to_checksum_address(address)
    except (ValueError, TypeError) as exc:
        raise ValidationError(f"invalid Ethereum address: {address}") from exc


class Web3Transaction:
    def __init__(self, gateway: "Web3LedgerGateway", call: Any, sender: str, tx_hash: str) -> None:
        self.tx_hash = tx_hash
        self._gateway = gateway
        self._call = call
        self._sender = sender

    async def wait(self) -> Receipt:
        eth = self._gateway.w3.eth
        while True:
            try:
                receipt = await eth.get_transaction_receipt(self.tx_hash)
            except TransactionNotFound:
                await asyncio.sleep(self._gateway.poll_seconds)
                continue
            except _TRANSPORT_ERRORS as exc:
                logger.warning(f"Receipt lookup for {self.tx_hash} failed, retrying: {exc}")
                await asyncio.sleep(self._gateway.poll_seconds)
                continue
            break

        block_number = receipt.get("blockNumber")
        if receipt.get("status", 1) == 0:
            raise LedgerRejection(await self._replay_reason(block_number))
        return Receipt(tx_hash=self.tx_hash, block_number=block_number)

    async def _replay_reason(self, block_number: Optional[int]) -> str:
        try:
            await self._call.call({"from": self._sender}, block_identifier=block_number)
        except ContractLogicError as exc:
            return _revert_reason(exc)
        except _TRANSPORT_ERRORS as exc:
            logger.warning(f"Could not replay reverted tx {self.tx_hash}: {exc}")
        return "transaction reverted"


class Web3LedgerGateway:
    def __init__(
        self,
        contract_address: str,
        rpc_url: Optional[str] = None,
        *,
        w3: Optional[AsyncWeb3] = None,
        poll_seconds: float = 1.0,
    ) -> None:
        if w3 is None:
            w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self.w3 = w3
        self.poll_seconds = poll_seconds
        self.contract = w3.eth.contract(address=_checksum(contract_address), abi=VOTING_ABI)

    async def _read(self, call: Any) -> Any:
        try:
            return await call.call()
        except ContractLogicError as exc:
            raise LedgerRejection(_revert_reason(exc)) from exc
        except _TRANSPORT_ERRORS as exc:
            raise LedgerUnavailableError(f"ledger read failed: {exc}") from exc

    async def _transact(self, call: Any, sender: str) -> Web3Transaction:
        sender = _checksum(sender)
        try:
            tx_hash = await call.transact({"from": sender})
        except ContractLogicError as exc:
            raise LedgerRejection(_revert_reason(exc)) from exc
        except _TRANSPORT_ERRORS as exc:
            raise LedgerUnavailableError(f"ledger write failed: {exc}") from exc
        return Web3Transaction(self, call, sender, Web3.to_hex(tx_hash))

    # ---- reads ----
    async def sessions_count(self) -> int:
        return int(await self._read(self.contract.functions.sessionsCount()))

    async def get_session_details(self, session_id: int) -> SessionRecord:
        raw = await self._read(self.contract.functions.getSessionDetails(session_id))
        try:
            id_, start, end, is_active, description = raw
            return SessionRecord(int(id_), int(start), int(end), bool(is_active), str(description))
        except (TypeError, ValueError) as exc:
            raise LedgerUnavailableError(f"malformed session details: {raw!r}") from exc

    async def get_candidates_count(self, session_id: int) -> int:
        return int(await self._read(self.contract.functions.getCandidatesCount(session_id)))

    async def get_candidate(self, session_id: int, candidate_id: int) -> CandidateRecord:
        raw = await self._read(self.contract.functions.getCandidate(session_id, candidate_id))
        try:
            id_, name, vote_count = raw
            return CandidateRecord(int(id_), str(name), int(vote_count))
        except (TypeError, ValueError) as exc:
            raise LedgerUnavailableError(f"malformed candidate: {raw!r}") from exc

    async def has_voted(self, session_id: int, address: str) -> bool:
        return bool(await self._read(self.contract.functions.hasVoted(session_id, _checksum(address))))

    async def whitelist_required(self) -> bool:
        return bool(await self._read(self.contract.functions.whitelistRequired()))

    async def is_voter_whitelisted(self, address: str) -> bool:
        return bool(await self._read(self.contract.functions.isVoterWhitelisted(_checksum(address))))

    async def admin_address(self) -> str:
        return str(await self._read(self.contract.functions.admin()))

    # ---- writes ----
    async def create_voting_session(self, start_time: int, end_time: int, description: str, *, sender: str):
        call = self.contract.functions.createVotingSession(start_time, end_time, description)
        return await self._transact(call, sender)

    async def add_candidate(self, session_id: int, name: str, *, sender: str):
        return await self._transact(self.contract.functions.addCandidate(session_id, name), sender)

    async def set_session_status(self, session_id: int, is_active: bool, *, sender: str):
        return await self._transact(self.contract.functions.setSessionStatus(session_id, is_active), sender)

    async def set_whitelist_required(self, required: bool, *, sender: str):
        return await self._transact(self.contract.functions.setWhitelistRequired(required), sender)

    async def add_voter_to_whitelist(self, address: str, *, sender: str):
        return await self._transact(self.contract.functions.addVoterToWhitelist(_checksum(address)), sender)

    async def add_multiple_voters_to_whitelist(self, addresses: Sequence[str], *, sender: str):
        call = self.contract.functions.addMultipleVotersToWhitelist([_checksum(a) for a in addresses])
        return await self._transact(call, sender)

    async def remove_voter_from_whitelist(self, address: str, *, sender: str):
        call = self.contract.functions.removeVoterFromWhitelist(_checksum(address))
        return await self._transact(call, sender)

    async def vote(self, session_id: int, candidate_id: int, *, sender: str):
        return await self._transact(self.contract.functions.vote(session_id, candidate_id), sender)


__all__ = ["VOTING_ABI", "Web3LedgerGateway", "Web3Transaction"]
