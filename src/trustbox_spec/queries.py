"""Read-only accessors over the ledger state."""

from __future__ import annotations

from dataclasses import replace

from .account_model import balance_of
from .config import CUSTODY_ADDRESS
from .errors import ErrorCode, err
from .types import EscrowId, EscrowRecord, EscrowStatus, Height, LedgerState


def get_escrow_info(state: LedgerState, escrow_id: EscrowId) -> EscrowRecord:
    """Return a copy of the record; callers cannot mutate the ledger through it."""
    escrow = state.escrows.get(escrow_id)
    if escrow is None:
        raise err(ErrorCode.ESCROW_NOT_FOUND, f"escrow {escrow_id} not found")
    return replace(escrow)


def get_escrow_status(state: LedgerState, escrow_id: EscrowId) -> EscrowStatus:
    escrow = state.escrows.get(escrow_id)
    if escrow is None:
        raise err(ErrorCode.ESCROW_NOT_FOUND, f"escrow {escrow_id} not found")
    return escrow.status


def get_next_escrow_id(state: LedgerState) -> EscrowId:
    return state.next_escrow_id


def escrow_exists(state: LedgerState, escrow_id: EscrowId) -> bool:
    return escrow_id in state.escrows


def get_current_block(state: LedgerState) -> Height:
    return state.global_state.block_height


def get_counter(state: LedgerState) -> int:
    return state.counter.value


def custody_balance(state: LedgerState) -> int:
    return balance_of(state, CUSTODY_ADDRESS)


def locked_value(state: LedgerState) -> int:
    """Sum of amounts over pending escrows; equals custody_balance while every
    payout transfer has succeeded."""
    return sum(e.amount for e in state.escrows.values() if e.status == EscrowStatus.PENDING)
