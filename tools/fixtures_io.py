"""Helpers to serialize/deserialize minimal fixtures for TrustBox specs."""

from __future__ import annotations

from typing import Any

from trustbox_spec.types import (
    AccountState,
    CallType,
    ContractCall,
    EscrowRecord,
    EscrowStatus,
    LedgerState,
)


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def state_to_json(state: LedgerState) -> dict[str, Any]:
    # Events are observational only and not exported.
    return {
        "global_state": {
            "block_height": state.global_state.block_height,
        },
        "next_escrow_id": state.next_escrow_id,
        "counter": state.counter.value,
        "accounts": [
            {
                "address": _bytes_to_hex(a.address),
                "balance": a.balance,
            }
            for a in state.accounts.values()
        ],
        "escrows": [
            {
                "id": eid,
                "buyer": _bytes_to_hex(e.buyer),
                "seller": _bytes_to_hex(e.seller),
                "amount": e.amount,
                "buyer_approved": e.buyer_approved,
                "seller_approved": e.seller_approved,
                "status": e.status.value,
                "created_at": e.created_at,
            }
            for eid, e in sorted(state.escrows.items())
        ],
    }


def state_from_json(data: dict[str, Any]) -> LedgerState:
    state = LedgerState()
    gs = data.get("global_state", {})
    state.global_state.block_height = gs.get("block_height", 0)
    state.next_escrow_id = data.get("next_escrow_id", 0)
    state.counter.value = data.get("counter", 0)

    for a in data.get("accounts", []):
        acct = AccountState(
            address=_hex_to_bytes(a["address"]),
            balance=a.get("balance", 0),
        )
        state.accounts[acct.address] = acct

    for e in data.get("escrows", []):
        state.escrows[e["id"]] = EscrowRecord(
            buyer=_hex_to_bytes(e["buyer"]),
            seller=_hex_to_bytes(e["seller"]),
            amount=e["amount"],
            buyer_approved=e.get("buyer_approved", False),
            seller_approved=e.get("seller_approved", False),
            status=EscrowStatus(e.get("status", "pending")),
            created_at=e.get("created_at", 0),
        )

    return state


_BYTES_FIELDS: set[str] = {"seller"}


def call_to_json(call: ContractCall) -> dict[str, Any]:
    payload = {
        k: _bytes_to_hex(v) if isinstance(v, (bytes, bytearray)) else v
        for k, v in call.payload.items()
    }
    return {
        "source": _bytes_to_hex(call.source),
        "call_type": call.call_type.value,
        "payload": payload,
    }


def call_from_json(data: dict[str, Any]) -> ContractCall:
    payload: dict[str, Any] = {}
    for key, value in (data.get("payload") or {}).items():
        if key in _BYTES_FIELDS and isinstance(value, str):
            payload[key] = _hex_to_bytes(value)
        else:
            payload[key] = value
    return ContractCall(
        source=_hex_to_bytes(data["source"]),
        call_type=CallType(data["call_type"]),
        payload=payload,
    )


def value_to_json(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return _bytes_to_hex(bytes(value))
    return value
