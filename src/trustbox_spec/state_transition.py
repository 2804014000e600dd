"""State transition entrypoints for TrustBox Python specs."""

from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import replace
from typing import Any, Optional

from .config import IDENTITY_SIZE
from .errors import ErrorCode, SpecError
from .host import DEFAULT_HOST, LedgerHost
from .types import CallType, ContractCall, LedgerState
from .tx import counter as tx_counter
from .tx import escrow as tx_escrow

logger = logging.getLogger(__name__)


class TransitionResult:
    """Thin wrapper for verify/apply results."""

    def __init__(self, ok: bool, error: Optional[SpecError] = None, value: Any = None):
        self.ok = ok
        self.error = error
        self.value = value

    @classmethod
    def success(cls, value: Any = None) -> "TransitionResult":
        return cls(True, None, value)

    @classmethod
    def failure(cls, error: SpecError) -> "TransitionResult":
        return cls(False, error)

    def __repr__(self) -> str:
        if self.ok:
            return f"TransitionResult(ok, value={self.value!r})"
        return f"TransitionResult(err, {self.error})"


def _dispatch_verify(state: LedgerState, call: ContractCall) -> None:
    ct = call.call_type
    if ct in tx_escrow.ESCROW_CALLS:
        return tx_escrow.verify(state, call)
    if ct in tx_counter.COUNTER_CALLS:
        return tx_counter.verify(state, call)

    raise SpecError(ErrorCode.NOT_IMPLEMENTED, f"verify not implemented for {ct}")


def _dispatch_apply(state: LedgerState, call: ContractCall, host: LedgerHost) -> LedgerState:
    ct = call.call_type
    if ct in tx_escrow.ESCROW_CALLS:
        return tx_escrow.apply(state, call, host)
    if ct in tx_counter.COUNTER_CALLS:
        return tx_counter.apply(state, call)

    raise SpecError(ErrorCode.NOT_IMPLEMENTED, f"apply not implemented for {ct}")


def _verify_common(state: LedgerState, call: ContractCall) -> None:
    if not isinstance(call.call_type, CallType):
        raise SpecError(ErrorCode.INVALID_TYPE, "unknown call type")
    if not isinstance(call.source, bytes) or len(call.source) != IDENTITY_SIZE:
        raise SpecError(ErrorCode.INVALID_ADDRESS, "caller must be a 32-byte identity")
    if not isinstance(call.payload, dict):
        raise SpecError(ErrorCode.INVALID_FORMAT, "call payload must be dict")


def _return_value(pre: LedgerState, post: LedgerState, call: ContractCall) -> Any:
    ct = call.call_type
    if ct == CallType.CREATE_ESCROW:
        return pre.next_escrow_id
    if ct in tx_counter.COUNTER_CALLS:
        return post.counter.value
    return True


def verify_call(state: LedgerState, call: ContractCall) -> TransitionResult:
    """Check every precondition of `call` without touching `state`."""
    try:
        _verify_common(state, call)
        _dispatch_verify(state, call)
        return TransitionResult.success()
    except SpecError as exc:
        return TransitionResult.failure(exc)


def apply_call(
    state: LedgerState, call: ContractCall, host: Optional[LedgerHost] = None
) -> tuple[LedgerState, TransitionResult]:
    """Apply a call after verification.

    Failed-call semantics:
    - Precondition failure: state unchanged
    - Execution failure: state unchanged, except when the error is marked
      `committed` (a payout transfer failing after the record already went
      terminal). The terminal status write is kept; value is not moved.
    """
    if host is None:
        host = DEFAULT_HOST

    try:
        _verify_common(state, call)
        _dispatch_verify(state, call)
    except SpecError as exc:
        logger.debug("rejected %s: %s", call.call_type, exc)
        return state, TransitionResult.failure(exc)

    working = deepcopy(state)
    try:
        working = _dispatch_apply(working, call, host)
    except SpecError as exc:
        if exc.committed:
            logger.warning("%s failed after terminal status write: %s", call.call_type.value, exc)
            return working, TransitionResult.failure(exc)
        logger.debug("execution of %s failed: %s", call.call_type, exc)
        return state, TransitionResult.failure(exc)

    value = _return_value(state, working, call)
    logger.debug("applied %s -> %r", call.call_type.value, value)
    return working, TransitionResult.success(value)


def advance_height(state: LedgerState, blocks: int = 1) -> LedgerState:
    if blocks < 0:
        raise ValueError("blocks must be non-negative")
    return replace(
        state,
        global_state=replace(
            state.global_state, block_height=state.global_state.block_height + blocks
        ),
    )


def apply_block(
    state: LedgerState, calls: list[ContractCall], host: Optional[LedgerHost] = None
) -> tuple[LedgerState, list[TransitionResult]]:
    """Apply a block worth of calls in order, then advance the block height.

    Each call is atomic on its own; a failing call is recorded and does not
    reject the rest of the block.
    """
    working = state
    results: list[TransitionResult] = []
    for call in calls:
        working, result = apply_call(working, call, host)
        results.append(result)

    return advance_height(working), results
