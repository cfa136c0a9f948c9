"""
Launchpad Token Factory

Provides:
  - TokenFactory  : fee-collecting ledger factory
  - FeeCalculator : base fee, whitelist waiver and holder discount
"""

from .fees import (
    FactoryConfig,
    FeeCalculator,
    FeeQuote,
    apply_discount,
)
from .factory import (
    BaseFeeUpdatedEvent,
    DiscountConfigUpdatedEvent,
    FactoryOwnershipTransferredEvent,
    FeeSchedule,
    FeesWithdrawnEvent,
    PauseToggledEvent,
    TokenCreatedEvent,
    TokenFactory,
    WhitelistUpdatedEvent,
    validate_token_params,
)

__all__ = [
    # Fees
    "FactoryConfig",
    "FeeCalculator",
    "FeeQuote",
    "apply_discount",
    # Factory
    "TokenFactory",
    "FeeSchedule",
    "validate_token_params",
    "TokenCreatedEvent",
    "BaseFeeUpdatedEvent",
    "WhitelistUpdatedEvent",
    "DiscountConfigUpdatedEvent",
    "FeesWithdrawnEvent",
    "PauseToggledEvent",
    "FactoryOwnershipTransferredEvent",
]
