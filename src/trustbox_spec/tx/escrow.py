"""Escrow call specs (create-escrow, approve-release, cancel-escrow).

Terminal transitions write the record's status before the payout transfer
runs. A host transfer that calls back into the ledger therefore observes a
completed or cancelled record and is rejected with INVALID_STATUS; no
escrow can be paid out twice.
"""

from __future__ import annotations

import logging

from .. import events
from ..account_model import AccountModelError
from ..config import CUSTODY_ADDRESS, IDENTITY_SIZE, U128_MAX
from ..errors import ErrorCode, SpecError
from ..host import LedgerHost
from ..types import (
    CallType,
    ContractCall,
    EscrowId,
    EscrowRecord,
    EscrowStatus,
    LedgerState,
)

logger = logging.getLogger(__name__)

ESCROW_CALLS = frozenset({
    CallType.CREATE_ESCROW,
    CallType.APPROVE_RELEASE,
    CallType.CANCEL_ESCROW,
})


def _is_uint(v: object) -> bool:
    return isinstance(v, int) and not isinstance(v, bool) and v >= 0


def _escrow_id(p: dict) -> EscrowId:
    eid = p.get("escrow_id")
    if not _is_uint(eid):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "escrow_id must be a non-negative integer")
    return eid


def _lookup(state: LedgerState, eid: EscrowId) -> EscrowRecord:
    escrow = state.escrows.get(eid)
    if escrow is None:
        raise SpecError(ErrorCode.ESCROW_NOT_FOUND, f"escrow {eid} not found")
    return escrow


def _require_party(escrow: EscrowRecord, caller: bytes) -> None:
    if caller != escrow.buyer and caller != escrow.seller:
        raise SpecError(ErrorCode.NOT_AUTHORIZED, "caller is neither buyer nor seller")


def _require_pending(escrow: EscrowRecord) -> None:
    if escrow.status.is_terminal:
        raise SpecError(ErrorCode.INVALID_STATUS, f"escrow is {escrow.status.value}")


def _move(
    host: LedgerHost,
    state: LedgerState,
    amount: int,
    sender: bytes,
    recipient: bytes,
    committed: bool,
) -> None:
    try:
        host.transfer(state, amount, sender, recipient)
    except AccountModelError as exc:
        raise SpecError(ErrorCode.TRANSFER_FAILED, str(exc), committed=committed) from exc


def verify(state: LedgerState, call: ContractCall) -> None:
    p = call.payload
    ct = call.call_type
    if ct == CallType.CREATE_ESCROW:
        _verify_create(state, call, p)
    elif ct == CallType.APPROVE_RELEASE:
        _verify_approve(state, call, p)
    elif ct == CallType.CANCEL_ESCROW:
        _verify_cancel(state, call, p)
    else:
        raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported escrow call: {ct}")


def apply(state: LedgerState, call: ContractCall, host: LedgerHost) -> LedgerState:
    """Execute a verified call against `state` in place and return it."""
    p = call.payload
    ct = call.call_type
    if ct == CallType.CREATE_ESCROW:
        return _apply_create(state, call, p, host)
    elif ct == CallType.APPROVE_RELEASE:
        return _apply_approve(state, call, p, host)
    elif ct == CallType.CANCEL_ESCROW:
        return _apply_cancel(state, call, p, host)
    raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported escrow call: {ct}")


# --- CREATE_ESCROW ---

def _verify_create(state: LedgerState, call: ContractCall, p: dict) -> None:
    seller = p.get("seller")
    if not isinstance(seller, bytes) or len(seller) != IDENTITY_SIZE:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "seller must be a 32-byte identity")

    amount = p.get("amount")
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "amount must be an integer")
    if amount <= 0:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "escrow amount must be > 0")
    if amount > U128_MAX:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "escrow amount exceeds u128 max")

    if seller == call.source:
        raise SpecError(ErrorCode.SELF_ESCROW, "buyer cannot be seller")


def _apply_create(state: LedgerState, call: ContractCall, p: dict, host: LedgerHost) -> LedgerState:
    eid = state.next_escrow_id
    seller = p["seller"]
    amount = p["amount"]
    height = host.current_height(state)

    # Funding failure aborts before the id or the record exist.
    _move(host, state, amount, call.source, CUSTODY_ADDRESS, committed=False)

    state.escrows[eid] = EscrowRecord(
        buyer=call.source,
        seller=seller,
        amount=amount,
        created_at=height,
    )
    state.next_escrow_id = eid + 1

    events.emit(
        state,
        events.ESCROW_CREATED,
        escrow_id=eid,
        buyer=call.source,
        seller=seller,
        amount=amount,
        height=height,
    )
    return state


# --- APPROVE_RELEASE ---

def _verify_approve(state: LedgerState, call: ContractCall, p: dict) -> None:
    escrow = _lookup(state, _escrow_id(p))
    _require_party(escrow, call.source)
    _require_pending(escrow)

    if call.source == escrow.buyer and escrow.buyer_approved:
        raise SpecError(ErrorCode.ALREADY_APPROVED, "buyer already approved")
    if call.source == escrow.seller and escrow.seller_approved:
        raise SpecError(ErrorCode.ALREADY_APPROVED, "seller already approved")


def _apply_approve(state: LedgerState, call: ContractCall, p: dict, host: LedgerHost) -> LedgerState:
    eid = p["escrow_id"]
    escrow = state.escrows[eid]

    buyer_approved = escrow.buyer_approved or call.source == escrow.buyer
    seller_approved = escrow.seller_approved or call.source == escrow.seller

    if not (buyer_approved and seller_approved):
        escrow.buyer_approved = buyer_approved
        escrow.seller_approved = seller_approved
        events.emit(
            state,
            events.ESCROW_APPROVED,
            escrow_id=eid,
            approver=call.source,
            buyer_approved=buyer_approved,
            seller_approved=seller_approved,
        )
        return state

    # Commit the terminal state before any value moves.
    escrow.buyer_approved = True
    escrow.seller_approved = True
    escrow.status = EscrowStatus.COMPLETED

    _move(host, state, escrow.amount, CUSTODY_ADDRESS, escrow.seller, committed=True)

    events.emit(
        state,
        events.ESCROW_COMPLETED,
        escrow_id=eid,
        buyer=escrow.buyer,
        seller=escrow.seller,
        amount=escrow.amount,
        height=host.current_height(state),
    )
    logger.debug("escrow %d completed, released %d to seller", eid, escrow.amount)
    return state


# --- CANCEL_ESCROW ---

def _verify_cancel(state: LedgerState, call: ContractCall, p: dict) -> None:
    escrow = _lookup(state, _escrow_id(p))
    _require_party(escrow, call.source)
    _require_pending(escrow)


def _apply_cancel(state: LedgerState, call: ContractCall, p: dict, host: LedgerHost) -> LedgerState:
    eid = p["escrow_id"]
    escrow = state.escrows[eid]

    # Approval flags are left as they are; the record is terminal.
    escrow.status = EscrowStatus.CANCELLED

    _move(host, state, escrow.amount, CUSTODY_ADDRESS, escrow.buyer, committed=True)

    events.emit(
        state,
        events.ESCROW_CANCELLED,
        escrow_id=eid,
        cancelled_by=call.source,
        buyer=escrow.buyer,
        seller=escrow.seller,
        amount=escrow.amount,
        height=host.current_height(state),
    )
    logger.debug("escrow %d cancelled, refunded %d to buyer", eid, escrow.amount)
    return state
