"""Decorative counter specs (increment/decrement).

Kept apart from the escrow store: these calls only touch `state.counter`.
"""

from __future__ import annotations

from .. import events
from ..errors import ErrorCode, SpecError
from ..types import CallType, ContractCall, LedgerState

COUNTER_CALLS = frozenset({CallType.INCREMENT, CallType.DECREMENT})


def verify(state: LedgerState, call: ContractCall) -> None:
    if call.call_type == CallType.INCREMENT:
        return
    if call.call_type == CallType.DECREMENT:
        if state.counter.value <= 0:
            raise SpecError(ErrorCode.UNDERFLOW, "counter cannot go below 0")
        return
    raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported counter call: {call.call_type}")


def apply(state: LedgerState, call: ContractCall) -> LedgerState:
    delta = 1 if call.call_type == CallType.INCREMENT else -1
    state.counter.value += delta
    events.emit(state, events.COUNTER_CHANGED, caller=call.source, value=state.counter.value)
    return state
