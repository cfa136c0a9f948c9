"""
Launchpad Token Ledgers

Provides:
  - TokenLedger          : burnable fungible token with owner-administered policies
  - LedgerRegistry       : factory-held index of created ledgers
  - TransferPolicyEngine : launch-window blacklist and whale-limit decisions
"""

from .policy import (
    PolicyConfig,
    PolicyDecision,
    TransferPolicyEngine,
)
from .ledger import (
    AntiBotDisabledEvent,
    AntiWhaleDisabledEvent,
    ApprovalEvent,
    BlacklistUpdatedEvent,
    LedgerRegistry,
    LimitsUpdatedEvent,
    OwnershipTransferredEvent,
    TokenLedger,
    TransferEvent,
)

__all__ = [
    # Policy
    "PolicyConfig",
    "PolicyDecision",
    "TransferPolicyEngine",
    # Ledger
    "TokenLedger",
    "LedgerRegistry",
    "TransferEvent",
    "ApprovalEvent",
    "BlacklistUpdatedEvent",
    "LimitsUpdatedEvent",
    "AntiBotDisabledEvent",
    "AntiWhaleDisabledEvent",
    "OwnershipTransferredEvent",
]
