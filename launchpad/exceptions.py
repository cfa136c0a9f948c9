"""
Launchpad Exceptions

Every failure surfaced to a caller carries a ``Reason`` tag so client
tooling can present the exact cause without parsing messages.
"""

from enum import Enum
from typing import Optional


class Reason(str, Enum):
    """Machine-readable rejection reasons."""

    # validation
    INVALID_NAME = "InvalidName"
    INVALID_SYMBOL = "InvalidSymbol"
    INVALID_DECIMALS = "InvalidDecimals"
    INVALID_SUPPLY = "InvalidSupply"
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_ADDRESS = "InvalidAddress"
    INVALID_OWNER = "InvalidOwner"
    INVALID_LIMITS = "InvalidLimits"
    INVALID_PERCENTAGE = "InvalidPercentage"
    BATCH_TOO_LARGE = "BatchTooLarge"

    # authorization
    UNAUTHORIZED = "Unauthorized"
    CANNOT_BLACKLIST_OWNER = "CannotBlacklistOwner"

    # state
    ALREADY_DISABLED = "AlreadyDisabled"
    ANTI_BOT_NOT_ACTIVE = "AntiBotNotActive"
    ANTI_BOT_EXPIRED = "AntiBotExpired"
    ANTI_WHALE_NOT_ENABLED = "AntiWhaleNotEnabled"
    PAUSED_STATE = "PausedState"
    NOT_PAUSED = "NotPaused"
    REENTRANT_CALL = "ReentrantCall"

    # economic
    INSUFFICIENT_FEE = "InsufficientFee"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    INSUFFICIENT_ALLOWANCE = "InsufficientAllowance"
    NOTHING_TO_WITHDRAW = "NothingToWithdraw"

    # transfer policy
    BLACKLISTED_DURING_LAUNCH = "BlacklistedDuringLaunch"
    EXCEEDS_MAX_TRANSACTION = "ExceedsMaxTransaction"
    EXCEEDS_MAX_WALLET = "ExceedsMaxWallet"

    # funds movement
    REFUND_FAILED = "RefundFailed"
    WITHDRAW_FAILED = "WithdrawFailed"

    def __str__(self) -> str:
        return self.value


class LaunchpadError(Exception):
    """Base exception for launchpad operations."""

    def __init__(self, reason: Reason, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or reason.value)

    def __str__(self) -> str:
        detail = super().__str__()
        if detail == self.reason.value:
            return f"[{self.reason.value}]"
        return f"[{self.reason.value}] {detail}"


class ValidationError(LaunchpadError):
    """Malformed caller input. Caller-correctable."""


class AuthorizationError(LaunchpadError):
    """Caller is not allowed to perform the operation."""


class StateError(LaunchpadError):
    """Operation is not valid in the current state."""


class ReentrantCallError(StateError):
    """A guarded entry point was re-entered while already in progress."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(Reason.REENTRANT_CALL, message)


class EconomicError(LaunchpadError):
    """Insufficient payment, balance or allowance."""


class FundsTransferError(LaunchpadError):
    """Outbound fund movement failed; the enclosing call was rolled back."""


class PolicyViolationError(LaunchpadError):
    """A ledger's transfer policy rejected a balance mutation."""
