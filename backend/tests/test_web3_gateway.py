from unittest.mock import AsyncMock, MagicMock

import pytest
from web3.exceptions import ContractLogicError, TransactionNotFound

from conftest import ADMIN, VOTER
from ledgervote.errors import LedgerRejection, LedgerUnavailableError, ValidationError
from ledgervote.ledger import Web3LedgerGateway
from ledgervote.ledger.web3_gateway import VOTING_ABI

CONTRACT = "0x5fbdb2315678afecb367f032d93f642f64180aa3"


def _gateway():
    w3 = MagicMock()
    contract = MagicMock()
    w3.eth.contract.return_value = contract
    w3.eth.get_transaction_receipt = AsyncMock()
    gateway = Web3LedgerGateway(CONTRACT, w3=w3, poll_seconds=0)
    return gateway, w3, contract


def test_abi_covers_contract_surface():
    names = {entry["name"] for entry in VOTING_ABI}
    assert {"sessionsCount", "getSessionDetails", "getCandidate", "vote", "addMultipleVotersToWhitelist"} <= names


def test_contract_address_is_checksummed():
    _, w3, _ = _gateway()
    kwargs = w3.eth.contract.call_args.kwargs
    assert kwargs["address"] == "0x5FbDB2315678afecb367f032d93F642f64180aa3"


def test_bad_contract_address():
    with pytest.raises(ValidationError):
        Web3LedgerGateway("0xnope", w3=MagicMock())


@pytest.mark.asyncio
async def test_reads_convert_tuples():
    gateway, _, contract = _gateway()
    contract.functions.getSessionDetails.return_value.call = AsyncMock(
        return_value=(0, 1767225600, 1767229200, True, "Budget")
    )
    contract.functions.getCandidate.return_value.call = AsyncMock(return_value=(1, "Bob", 4))

    record = await gateway.get_session_details(0)
    assert record.start_time == 1767225600
    assert record.is_active is True
    candidate = await gateway.get_candidate(0, 1)
    assert (candidate.name, candidate.vote_count) == ("Bob", 4)


@pytest.mark.asyncio
async def test_malformed_tuple_is_unavailable():
    gateway, _, contract = _gateway()
    contract.functions.getCandidate.return_value.call = AsyncMock(return_value=(1, "Bob"))
    with pytest.raises(LedgerUnavailableError):
        await gateway.get_candidate(0, 1)


@pytest.mark.asyncio
async def test_read_revert_and_transport_failure():
    gateway, _, contract = _gateway()
    contract.functions.getCandidatesCount.return_value.call = AsyncMock(
        side_effect=ContractLogicError("execution reverted: Session does not exist")
    )
    with pytest.raises(LedgerRejection) as excinfo:
        await gateway.get_candidates_count(7)
    assert excinfo.value.reason == "Session does not exist"

    contract.functions.sessionsCount.return_value.call = AsyncMock(side_effect=OSError("connection refused"))
    with pytest.raises(LedgerUnavailableError):
        await gateway.sessions_count()


@pytest.mark.asyncio
async def test_vote_polls_for_receipt():
    gateway, w3, contract = _gateway()
    contract.functions.vote.return_value.transact = AsyncMock(return_value=b"\x12" * 32)
    w3.eth.get_transaction_receipt.side_effect = [
        TransactionNotFound("not yet"),
        TransactionNotFound("not yet"),
        {"status": 1, "blockNumber": 7},
    ]

    tx = await gateway.vote(0, 1, sender=VOTER)
    assert tx.tx_hash == "0x" + "12" * 32
    sent = contract.functions.vote.return_value.transact.call_args.args[0]
    assert sent == {"from": "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"}

    receipt = await tx.wait()
    assert receipt.block_number == 7
    assert w3.eth.get_transaction_receipt.await_count == 3


@pytest.mark.asyncio
async def test_receipt_wait_survives_a_dropped_connection():
    gateway, w3, contract = _gateway()
    contract.functions.vote.return_value.transact = AsyncMock(return_value=b"\x56" * 32)
    w3.eth.get_transaction_receipt.side_effect = [
        OSError("connection reset"),
        TransactionNotFound("not yet"),
        {"status": 1, "blockNumber": 7},
    ]

    tx = await gateway.vote(0, 1, sender=VOTER)
    receipt = await tx.wait()

    assert receipt.block_number == 7
    assert w3.eth.get_transaction_receipt.await_count == 3


@pytest.mark.asyncio
async def test_reverted_receipt_recovers_reason():
    gateway, w3, contract = _gateway()
    call = contract.functions.vote.return_value
    call.transact = AsyncMock(return_value=b"\x34" * 32)
    call.call = AsyncMock(side_effect=ContractLogicError("execution reverted: Already voted"))
    w3.eth.get_transaction_receipt.return_value = {"status": 0, "blockNumber": 9}

    tx = await gateway.vote(0, 1, sender=VOTER)
    with pytest.raises(LedgerRejection) as excinfo:
        await tx.wait()
    assert excinfo.value.reason == "Already voted"
    assert call.call.call_args.kwargs["block_identifier"] == 9


@pytest.mark.asyncio
async def test_submission_revert_is_a_rejection():
    gateway, _, contract = _gateway()
    contract.functions.setWhitelistRequired.return_value.transact = AsyncMock(
        side_effect=ContractLogicError("execution reverted: Only admin can perform this action")
    )
    with pytest.raises(LedgerRejection) as excinfo:
        await gateway.set_whitelist_required(True, sender=VOTER)
    assert "Only admin" in excinfo.value.reason


@pytest.mark.asyncio
async def test_batch_whitelist_checksums_every_address():
    gateway, _, contract = _gateway()
    contract.functions.addMultipleVotersToWhitelist.return_value.transact = AsyncMock(return_value=b"\x01" * 32)

    await gateway.add_multiple_voters_to_whitelist([VOTER, ADMIN], sender=ADMIN)

    (addresses,) = contract.functions.addMultipleVotersToWhitelist.call_args.args
    assert addresses == [
        "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
        "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
    ]
