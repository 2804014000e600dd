"""Core types for TrustBox Python specs.

The ledger tracks one contract: two-party escrows released by mutual
approval or refunded on cancellation, plus the contract's decorative counter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .config import (
    COUNTER_INITIAL_VALUE,
    FIRST_ESCROW_ID,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_PENDING,
)

Identity = bytes
EscrowId = int
Height = int


class EscrowStatus(Enum):
    PENDING = STATUS_PENDING
    COMPLETED = STATUS_COMPLETED
    CANCELLED = STATUS_CANCELLED

    @property
    def is_terminal(self) -> bool:
        return self is not EscrowStatus.PENDING


class CallType(Enum):
    CREATE_ESCROW = "create-escrow"
    APPROVE_RELEASE = "approve-release"
    CANCEL_ESCROW = "cancel-escrow"
    INCREMENT = "increment"
    DECREMENT = "decrement"


@dataclass
class ContractCall:
    source: Identity
    call_type: CallType
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class EscrowRecord:
    buyer: Identity
    seller: Identity
    amount: int
    buyer_approved: bool = False
    seller_approved: bool = False
    status: EscrowStatus = EscrowStatus.PENDING
    created_at: Height = 0


@dataclass
class AccountState:
    address: Identity
    balance: int = 0


@dataclass
class GlobalState:
    block_height: Height = 0


@dataclass
class CounterState:
    value: int = COUNTER_INITIAL_VALUE


@dataclass
class EventRecord:
    name: str
    height: Height
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class LedgerState:
    accounts: dict[Identity, AccountState] = field(default_factory=dict)
    escrows: dict[EscrowId, EscrowRecord] = field(default_factory=dict)
    next_escrow_id: EscrowId = FIRST_ESCROW_ID
    global_state: GlobalState = field(default_factory=GlobalState)
    # Decorative counter; no escrow operation reads or writes it.
    counter: CounterState = field(default_factory=CounterState)
    # Append-only event sink. Not part of the exported post_state.
    events: list[EventRecord] = field(default_factory=list)
