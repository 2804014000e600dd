"""Account model and the host value-transfer primitive."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from .config import U128_MAX
from .types import AccountState, Identity, LedgerState


class AccountModelErrorCode(IntEnum):
    INSUFFICIENT_BALANCE = 0x01
    SELF_TRANSFER = 0x02
    ACCOUNT_NOT_FOUND = 0x03
    INVALID_TRANSFER = 0x04
    BALANCE_OVERFLOW = 0x05


@dataclass(frozen=True)
class AccountModelError(Exception):
    code: AccountModelErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#04x}): {self.message}"


def apply_balance_change(balance: int, delta: int) -> int:
    """Apply +/- balance with u128 bounds."""
    new_balance = balance + delta
    if new_balance < 0:
        raise AccountModelError(AccountModelErrorCode.INSUFFICIENT_BALANCE, "negative balance")
    if new_balance > U128_MAX:
        raise AccountModelError(AccountModelErrorCode.BALANCE_OVERFLOW, "balance overflow")
    return new_balance


def balance_of(state: LedgerState, address: Identity) -> int:
    acct = state.accounts.get(address)
    return acct.balance if acct is not None else 0


def transfer(state: LedgerState, amount: int, sender: Identity, recipient: Identity) -> None:
    """Move `amount` from `sender` to `recipient` in place.

    All checks run before either balance is touched, so a failed transfer
    leaves the state exactly as it was.
    """
    if amount <= 0:
        raise AccountModelError(AccountModelErrorCode.INVALID_TRANSFER, "transfer amount must be > 0")
    if sender == recipient:
        raise AccountModelError(AccountModelErrorCode.SELF_TRANSFER, "sender is recipient")

    source = state.accounts.get(sender)
    if source is None:
        raise AccountModelError(AccountModelErrorCode.ACCOUNT_NOT_FOUND, "sender not found")
    new_source_balance = apply_balance_change(source.balance, -amount)

    target = state.accounts.get(recipient)
    new_target_balance = apply_balance_change(target.balance if target is not None else 0, amount)

    source.balance = new_source_balance
    if target is None:
        target = AccountState(address=recipient)
        state.accounts[recipient] = target
    target.balance = new_target_balance
