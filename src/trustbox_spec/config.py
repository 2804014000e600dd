"""TrustBox Python spec configuration constants.

Keep this file aligned with the constants declared by the `trustbox`
contract.
"""

from blake3 import blake3

# Units
COIN_DECIMALS = 6
COIN_VALUE = 10**COIN_DECIMALS

# Numeric bounds (contract integers are unsigned 128-bit)
U128_MAX = (1 << 128) - 1

# Identities
IDENTITY_SIZE = 32

# Contract-controlled account holding the locked value of pending escrows.
CUSTODY_ADDRESS = blake3(b"trustbox/custody").digest()

# Escrow status tags
STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
# Declared by the contract but never assigned to a record: approval progress
# is tracked by the per-party flags while the status stays pending.
STATUS_BUYER_APPROVED = "buyer-approved"
STATUS_SELLER_APPROVED = "seller-approved"

# Escrow ids
FIRST_ESCROW_ID = 0

# Decorative counter
COUNTER_INITIAL_VALUE = 0
