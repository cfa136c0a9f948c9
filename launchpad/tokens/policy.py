"""
Transfer Policy Engine

Decides, before every balance mutation of a ledger, whether the proposed
``(sender, recipient, amount)`` may proceed. Two optional policies:

  - Launch-window blacklist: blacklisted addresses cannot send or receive
    until the ledger's expiry height is reached. The window is a plain height
    comparison evaluated on every call; once the height passes the expiry the
    blacklist is never consulted again.
  - Whale limits: per-transaction cap and per-wallet resulting-balance cap
    on transfers between two non-owner holders.

``authorize`` is a pure function of its arguments and the policy
configuration. Administrative mutators raise; ownership is checked by the
ledger before they are reached.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from ..constants import ZERO_ADDRESS
from ..exceptions import (
    AuthorizationError,
    Reason,
    StateError,
    ValidationError,
)
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  DECISION
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of ``authorize``: allow, or reject with a reason."""
    allow: bool = True
    reason: Optional[Reason] = None

    @classmethod
    def reject(cls, reason: Reason) -> "PolicyDecision":
        return cls(allow=False, reason=reason)


ALLOW = PolicyDecision()


# ══════════════════════════════════════════════════════════════════════
#  CONFIG
# ══════════════════════════════════════════════════════════════════════

@dataclass
class PolicyConfig:
    """
    Per-ledger policy state.

    Attributes:
        anti_bot_enabled:        Launch-window blacklist switch (one-way off)
        anti_bot_expiry_height:  Height at which the window closes; set once at creation
        blacklist:               Addresses barred during the window
        anti_whale_enabled:      Whale-limit switch (one-way off)
        max_transaction_amount:  Per-transfer cap (0 when disabled)
        max_wallet_amount:       Recipient resulting-balance cap (0 when disabled)
    """
    anti_bot_enabled: bool = False
    anti_bot_expiry_height: Optional[int] = None
    blacklist: Set[str] = field(default_factory=set)
    anti_whale_enabled: bool = False
    max_transaction_amount: int = 0
    max_wallet_amount: int = 0

    @classmethod
    def create(
        cls,
        *,
        anti_bot: bool,
        anti_whale: bool,
        creation_height: int,
        window: int,
        max_transaction_amount: int = 0,
        max_wallet_amount: int = 0,
    ) -> "PolicyConfig":
        """Build the initial config for a ledger created at *creation_height*."""
        if anti_whale and (max_transaction_amount <= 0 or max_wallet_amount <= 0):
            raise ValidationError(Reason.INVALID_LIMITS, "Initial whale limits must be positive")
        return cls(
            anti_bot_enabled=anti_bot,
            anti_bot_expiry_height=creation_height + window if anti_bot else None,
            anti_whale_enabled=anti_whale,
            max_transaction_amount=max_transaction_amount if anti_whale else 0,
            max_wallet_amount=max_wallet_amount if anti_whale else 0,
        )


# ══════════════════════════════════════════════════════════════════════
#  ENGINE
# ══════════════════════════════════════════════════════════════════════

class TransferPolicyEngine:
    """Launch-window blacklist and whale-limit checks for one ledger."""

    def __init__(self, config: PolicyConfig):
        self.config = config

    # ── Launch window ─────────────────────────────────────────────────

    def is_launch_window_active(self, current_height: int) -> bool:
        cfg = self.config
        return (
            cfg.anti_bot_enabled
            and cfg.anti_bot_expiry_height is not None
            and current_height < cfg.anti_bot_expiry_height
        )

    def is_blacklisted(self, address: str) -> bool:
        return address in self.config.blacklist

    # ── Decision ──────────────────────────────────────────────────────

    def authorize(
        self,
        sender: str,
        recipient: str,
        amount: int,
        *,
        owner: Optional[str],
        current_height: int,
        recipient_balance: int,
        is_mint_or_burn: bool = False,
    ) -> PolicyDecision:
        """
        Decide whether a balance mutation may proceed.

        Args:
            sender: Source address (the null address for a mint)
            recipient: Destination address (the null address for a burn)
            amount: Amount moved
            owner: Current ledger owner (None once renounced)
            current_height: Height supplied by the execution environment
            recipient_balance: Recipient balance before the mutation
            is_mint_or_burn: True for supply-changing mutations
        """
        cfg = self.config

        if self.is_launch_window_active(current_height):
            if sender in cfg.blacklist or recipient in cfg.blacklist:
                return PolicyDecision.reject(Reason.BLACKLISTED_DURING_LAUNCH)

        if not cfg.anti_whale_enabled:
            return ALLOW
        if is_mint_or_burn or sender == ZERO_ADDRESS or recipient == ZERO_ADDRESS:
            return ALLOW
        if owner is not None and (sender == owner or recipient == owner):
            return ALLOW

        if amount > cfg.max_transaction_amount:
            return PolicyDecision.reject(Reason.EXCEEDS_MAX_TRANSACTION)
        if recipient_balance + amount > cfg.max_wallet_amount:
            return PolicyDecision.reject(Reason.EXCEEDS_MAX_WALLET)
        return ALLOW

    # ── Blacklist administration ──────────────────────────────────────

    def require_blacklist_mutable(self, current_height: int):
        cfg = self.config
        if not cfg.anti_bot_enabled:
            raise StateError(Reason.ANTI_BOT_NOT_ACTIVE, "Anti-bot is not enabled")
        if not self.is_launch_window_active(current_height):
            raise StateError(
                Reason.ANTI_BOT_EXPIRED,
                f"Launch window closed at height {cfg.anti_bot_expiry_height}",
            )

    def set_blacklisted(
        self,
        account: str,
        status: bool,
        *,
        owner: str,
        current_height: int,
    ) -> bool:
        """
        Add or remove *account*. Returns True if membership changed.
        """
        self.require_blacklist_mutable(current_height)
        if account == owner:
            raise AuthorizationError(Reason.CANNOT_BLACKLIST_OWNER, "Cannot blacklist the owner")
        if account == ZERO_ADDRESS:
            raise ValidationError(Reason.INVALID_ADDRESS, "Cannot blacklist the null address")
        return self._apply(account, status)

    def set_blacklisted_batch(
        self,
        accounts: Iterable[str],
        status: bool,
        *,
        owner: str,
        current_height: int,
    ) -> List[str]:
        """
        Apply *status* to every account except the owner and the null
        address, which are skipped. Returns the accounts whose membership changed.
        """
        self.require_blacklist_mutable(current_height)
        changed = []
        for account in accounts:
            if account == owner or account == ZERO_ADDRESS:
                continue
            if self._apply(account, status):
                changed.append(account)
        return changed

    def _apply(self, account: str, status: bool) -> bool:
        blacklist = self.config.blacklist
        if status:
            if account in blacklist:
                return False
            blacklist.add(account)
            return True
        if account not in blacklist:
            return False
        blacklist.discard(account)
        return True

    def disable_anti_bot(self):
        """One-way switch. The blacklist set is left as-is."""
        if not self.config.anti_bot_enabled:
            raise StateError(Reason.ALREADY_DISABLED, "Anti-bot already disabled")
        self.config.anti_bot_enabled = False

    # ── Whale administration ──────────────────────────────────────────

    def set_limits(self, max_transaction_amount: int, max_wallet_amount: int):
        if not self.config.anti_whale_enabled:
            raise StateError(Reason.ANTI_WHALE_NOT_ENABLED, "Anti-whale is not enabled")
        if max_transaction_amount <= 0 or max_wallet_amount <= 0:
            raise ValidationError(Reason.INVALID_LIMITS, "Limits must be positive")
        self.config.max_transaction_amount = max_transaction_amount
        self.config.max_wallet_amount = max_wallet_amount

    def disable_anti_whale(self):
        if not self.config.anti_whale_enabled:
            raise StateError(Reason.ALREADY_DISABLED, "Anti-whale already disabled")
        self.config.anti_whale_enabled = False
        self.config.max_transaction_amount = 0
        self.config.max_wallet_amount = 0
