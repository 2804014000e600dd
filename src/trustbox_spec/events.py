"""Append-only event sink for state-changing calls."""

from __future__ import annotations

import logging
from typing import Any

from .types import EventRecord, LedgerState

logger = logging.getLogger(__name__)

ESCROW_CREATED = "escrow-created"
ESCROW_APPROVED = "escrow-approved"
ESCROW_COMPLETED = "escrow-completed"
ESCROW_CANCELLED = "escrow-cancelled"
COUNTER_CHANGED = "counter-changed"


def emit(state: LedgerState, name: str, **fields: Any) -> EventRecord:
    event = EventRecord(name=name, height=state.global_state.block_height, fields=fields)
    state.events.append(event)
    logger.debug("event %s at height %d: %s", name, event.height, fields)
    return event


def events_named(state: LedgerState, name: str) -> list[EventRecord]:
    return [e for e in state.events if e.name == name]
