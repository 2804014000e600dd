"""Host ledger capabilities consumed by the escrow core."""

from __future__ import annotations

from .account_model import transfer
from .types import Height, Identity, LedgerState


class LedgerHost:
    """Default host: transfers move balances inside the ledger state.

    Subclass to model a host whose transfer fails or calls back into the
    ledger while value is in flight.
    """

    def transfer(self, state: LedgerState, amount: int, sender: Identity, recipient: Identity) -> None:
        transfer(state, amount, sender, recipient)

    def current_height(self, state: LedgerState) -> Height:
        return state.global_state.block_height


DEFAULT_HOST = LedgerHost()
