"""TrustBox Python spec error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Contract (numeric values match the deployed contract's err codes)
    UNDERFLOW = 100
    INVALID_AMOUNT = 101
    ESCROW_NOT_FOUND = 102
    NOT_AUTHORIZED = 103
    INVALID_STATUS = 104
    TRANSFER_FAILED = 105
    ALREADY_APPROVED = 106
    SELF_ESCROW = 107

    # Validation (call format)
    INVALID_FORMAT = 0x0100
    INVALID_TYPE = 0x0102
    INVALID_ADDRESS = 0x0106
    INVALID_PAYLOAD = 0x0107

    # Internal
    INTERNAL_ERROR = 0xFF00
    NOT_IMPLEMENTED = 0xFF01


@dataclass(frozen=True)
class SpecError(Exception):
    code: ErrorCode
    message: str
    # Set when the failure happened after a terminal status write that the
    # ledger keeps (see state_transition.apply_call).
    committed: bool = False

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# (and __suppress_context__ for `raise ... from`) while keeping dataclass
# fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(
    ("__traceback__", "__context__", "__cause__", "__suppress_context__", "__notes__")
)
_frozen_setattr = SpecError.__setattr__


def _spec_error_setattr(self: SpecError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


SpecError.__setattr__ = _spec_error_setattr  # type: ignore[method-assign]


def err(code: ErrorCode, message: str) -> SpecError:
    return SpecError(code=code, message=message)
