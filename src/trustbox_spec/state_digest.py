"""Canonical state digest implementation (v1)."""
from __future__ import annotations

from typing import Any

from blake3 import blake3

_STATUS_CODES = {"pending": 0, "completed": 1, "cancelled": 2}


def _hex_to_bytes(value: str | None) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise TypeError("hex value must be string")
    v = value[2:] if value.startswith(("0x", "0X")) else value
    if v == "":
        return b""
    return bytes.fromhex(v)


def _u128_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u128 must be non-negative")
    return int(value).to_bytes(16, "big", signed=False)


def _identity(value: str) -> bytes:
    raw = _hex_to_bytes(value)
    if len(raw) != 32:
        raise ValueError(f"identity must be 32 bytes, got {len(raw)}")
    return raw


def compute_state_digest(post_state: dict[str, Any]) -> str:
    """Compute state digest v1 from an exported post_state.

    Fields are encoded in canonical order and hashed with BLAKE3-256. Events
    are observational and never part of the digest.
    """
    buf = bytearray()
    gs = post_state.get("global_state", {})
    buf += _u128_be(int(gs.get("block_height", 0)))
    buf += _u128_be(int(post_state.get("next_escrow_id", 0)))
    buf += _u128_be(int(post_state.get("counter", 0)))

    accounts = sorted(
        ((_identity(a.get("address", "")), a) for a in post_state.get("accounts", [])),
        key=lambda x: x[0],
    )
    buf += _u128_be(len(accounts))
    for addr, acc in accounts:
        buf += addr
        buf += _u128_be(int(acc.get("balance", 0)))

    escrows = sorted(post_state.get("escrows", []), key=lambda e: int(e["id"]))
    buf += _u128_be(len(escrows))
    for e in escrows:
        buf += _u128_be(int(e["id"]))
        buf += _identity(e["buyer"])
        buf += _identity(e["seller"])
        buf += _u128_be(int(e["amount"]))
        buf += bytes([int(bool(e.get("buyer_approved"))), int(bool(e.get("seller_approved")))])
        buf += bytes([_STATUS_CODES[e["status"]]])
        buf += _u128_be(int(e.get("created_at", 0)))

    return blake3(buf).hexdigest()
