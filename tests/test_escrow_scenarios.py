"""End-to-end escrow lifecycle specs."""

from __future__ import annotations

import pytest

from trustbox_spec.config import COIN_VALUE, CUSTODY_ADDRESS
from trustbox_spec.account_model import balance_of
from trustbox_spec.queries import (
    custody_balance,
    get_current_block,
    get_escrow_info,
    get_escrow_status,
    get_next_escrow_id,
    locked_value,
)
from trustbox_spec.state_transition import advance_height, apply_block, apply_call, verify_call
from trustbox_spec.test_accounts import ALICE, BOB, CAROL, DAVE
from trustbox_spec.types import (
    AccountState,
    CallType,
    ContractCall,
    EscrowStatus,
    LedgerState,
)

AMOUNT = 1_000_000


def _base_state() -> LedgerState:
    state = LedgerState()
    state.accounts[ALICE] = AccountState(address=ALICE, balance=100 * COIN_VALUE)
    state.accounts[DAVE] = AccountState(address=DAVE, balance=10 * COIN_VALUE)
    return state


def _create(sender: bytes, seller: bytes, amount: int = AMOUNT) -> ContractCall:
    return ContractCall(sender, CallType.CREATE_ESCROW, {"seller": seller, "amount": amount})


def _approve(sender: bytes, escrow_id: int) -> ContractCall:
    return ContractCall(sender, CallType.APPROVE_RELEASE, {"escrow_id": escrow_id})


def _cancel(sender: bytes, escrow_id: int) -> ContractCall:
    return ContractCall(sender, CallType.CANCEL_ESCROW, {"escrow_id": escrow_id})


def _run(state: LedgerState, *calls: ContractCall) -> tuple[LedgerState, list]:
    results = []
    for call in calls:
        state, result = apply_call(state, call)
        results.append(result)
    return state, results


def test_scenario_mutual_release() -> None:
    state, (created,) = _run(_base_state(), _create(ALICE, BOB))
    assert created.value == 0
    custody_before = custody_balance(state)

    state, (first,) = _run(state, _approve(ALICE, 0))
    assert first.value is True
    assert get_escrow_status(state, 0) == EscrowStatus.PENDING

    state, (second,) = _run(state, _approve(BOB, 0))
    assert second.value is True
    assert get_escrow_status(state, 0) == EscrowStatus.COMPLETED
    assert custody_balance(state) == custody_before - AMOUNT
    assert balance_of(state, BOB) == AMOUNT


def test_scenario_cancel_refund() -> None:
    state, _ = _run(_base_state(), _create(ALICE, BOB))
    assert balance_of(state, ALICE) == 100 * COIN_VALUE - AMOUNT

    state, (cancelled,) = _run(state, _cancel(BOB, 0))
    assert cancelled.value is True
    assert get_escrow_status(state, 0) == EscrowStatus.CANCELLED
    assert balance_of(state, ALICE) == 100 * COIN_VALUE

    state, (late,) = _run(state, _approve(ALICE, 0))
    assert late.error.code.name == "INVALID_STATUS"


def test_scenario_independent_escrows() -> None:
    state, results = _run(_base_state(), _create(ALICE, BOB), _create(ALICE, CAROL, 2 * AMOUNT))
    assert [r.value for r in results] == [0, 1]

    state, _ = _run(state, _approve(ALICE, 0), _approve(BOB, 0))
    assert get_escrow_status(state, 0) == EscrowStatus.COMPLETED
    assert get_escrow_status(state, 1) == EscrowStatus.PENDING
    info = get_escrow_info(state, 1)
    assert (info.buyer_approved, info.seller_approved) == (False, False)

    state, _ = _run(state, _approve(CAROL, 1))
    assert get_escrow_info(state, 0).seller_approved is True
    assert get_escrow_info(state, 1).seller_approved is True
    assert get_escrow_status(state, 1) == EscrowStatus.PENDING


def test_multiple_buyers_and_sellers() -> None:
    state, results = _run(
        _base_state(),
        _create(ALICE, BOB, 10),
        _create(DAVE, ALICE, 20),
        _create(ALICE, CAROL, 30),
    )
    assert [r.value for r in results] == [0, 1, 2]
    assert get_escrow_info(state, 1).buyer == DAVE
    assert custody_balance(state) == 60

    # ALICE is seller on escrow 1 and may approve it; CAROL may not.
    state, (ok, denied) = _run(state, _approve(ALICE, 1), _approve(CAROL, 1))
    assert ok.ok
    assert denied.error.code.name == "NOT_AUTHORIZED"


@pytest.mark.parametrize(
    "script",
    [
        ["create", "approve_b", "approve_s", "create", "cancel_s"],
        ["create", "create", "cancel_b", "approve_s", "approve_b"],
        ["create", "approve_s", "cancel_b", "create", "approve_s", "approve_b", "cancel_b"],
    ],
)
def test_custody_matches_pending_escrows(script: list[str]) -> None:
    state = _base_state()
    target = -1
    for step in script:
        if step == "create":
            state, result = apply_call(state, _create(ALICE, BOB, 1000 + state.next_escrow_id))
            target = result.value
        elif step == "approve_b":
            state, _ = apply_call(state, _approve(ALICE, target))
        elif step == "approve_s":
            state, _ = apply_call(state, _approve(BOB, target))
        elif step == "cancel_b":
            state, _ = apply_call(state, _cancel(ALICE, target))
        elif step == "cancel_s":
            state, _ = apply_call(state, _cancel(BOB, target))
        assert custody_balance(state) == locked_value(state)

    total = sum(a.balance for a in state.accounts.values())
    assert total == 110 * COIN_VALUE


def test_terminal_states_never_change() -> None:
    state, _ = _run(_base_state(), _create(ALICE, BOB), _approve(BOB, 0), _approve(ALICE, 0))
    snapshot = get_escrow_info(state, 0)

    state, results = _run(state, _approve(ALICE, 0), _approve(BOB, 0), _cancel(ALICE, 0), _cancel(BOB, 0))
    assert [r.error.code.name for r in results] == ["INVALID_STATUS"] * 4
    assert get_escrow_info(state, 0) == snapshot
    assert balance_of(state, BOB) == AMOUNT


def test_created_at_tracks_block_height() -> None:
    state = advance_height(_base_state(), 5)
    state, _ = _run(state, _create(ALICE, BOB))
    state = advance_height(state, 3)
    state, _ = _run(state, _create(ALICE, BOB))

    assert get_escrow_info(state, 0).created_at == 5
    assert get_escrow_info(state, 1).created_at == 8
    assert get_current_block(state) == 8


def test_advance_height_rejects_negative() -> None:
    with pytest.raises(ValueError):
        advance_height(LedgerState(), -1)


def test_apply_block_is_serial_and_advances_height() -> None:
    state = _base_state()
    calls = [
        _create(ALICE, BOB),
        _approve(ALICE, 0),
        _create(ALICE, ALICE),
        _approve(BOB, 0),
        _cancel(BOB, 0),
    ]
    post, results = apply_block(state, calls)

    assert [r.ok for r in results] == [True, True, False, True, False]
    assert results[2].error.code.name == "SELF_ESCROW"
    assert results[4].error.code.name == "INVALID_STATUS"
    assert get_escrow_status(post, 0) == EscrowStatus.COMPLETED
    assert get_escrow_info(post, 0).created_at == 0
    assert get_current_block(post) == 1
    assert get_next_escrow_id(post) == 1
    assert get_current_block(state) == 0


def test_large_amount_escrow() -> None:
    big = 10**30
    state = LedgerState()
    state.accounts[ALICE] = AccountState(address=ALICE, balance=big)
    state, (created, first, second) = _run(
        state, _create(ALICE, BOB, big), _cancel(ALICE, 0), _cancel(ALICE, 0)
    )
    assert created.ok and first.ok
    assert second.error.code.name == "INVALID_STATUS"
    assert balance_of(state, ALICE) == big
    assert balance_of(state, CUSTODY_ADDRESS) == 0


def test_verify_call_checks_without_mutating() -> None:
    state, _ = _run(_base_state(), _create(ALICE, BOB))

    assert verify_call(state, _approve(BOB, 0)).ok
    assert verify_call(state, _approve(CAROL, 0)).error.code.name == "NOT_AUTHORIZED"
    assert verify_call(state, _create(ALICE, BOB, 0)).error.code.name == "INVALID_AMOUNT"
    malformed = ContractCall(ALICE, CallType.CANCEL_ESCROW, ["not", "a", "dict"])
    assert verify_call(state, malformed).error.code.name == "INVALID_FORMAT"
    assert get_escrow_info(state, 0).seller_approved is False
