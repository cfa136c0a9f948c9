"""
Token Ledger

A self-contained fungible token created by the launchpad factory:
  - ERC-20–style interface (transfer, approve, transferFrom, balanceOf)
  - Burnable (burn, burnFrom)
  - Single-owner administration of the transfer policies
  - Launch-window blacklist and whale limits enforced on every balance change

Every mint, transfer and burn passes through ``TransferPolicyEngine.authorize``
before balances are touched.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..access import Ownable
from ..addresses import normalize_address
from ..constants import (
    ANTI_BOT_WINDOW_HEIGHT,
    BPS_DENOMINATOR,
    DEFAULT_MAX_TRANSACTION_BPS,
    DEFAULT_MAX_WALLET_BPS,
    LEDGER_MAX_BLACKLIST_BATCH,
    TOKEN_MAX_DECIMALS,
    ZERO_ADDRESS,
)
from ..exceptions import (
    EconomicError,
    PolicyViolationError,
    Reason,
    ValidationError,
)
from ..height import HeightCounter, HeightSource
from ..logger import get_logger
from .policy import PolicyConfig, TransferPolicyEngine

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """Emitted on every balance move, including mint (from null) and burn (to null)."""
    token_symbol: str
    sender: str
    recipient: str
    amount: int
    height: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "token": self.token_symbol,
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
            "height": self.height,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ApprovalEvent:
    token_symbol: str
    owner: str
    spender: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Approval",
            "token": self.token_symbol,
            "owner": self.owner,
            "spender": self.spender,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class BlacklistUpdatedEvent:
    """One record per address whose membership changed."""
    token_symbol: str
    account: str
    blacklisted: bool
    height: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "BlacklistUpdated",
            "token": self.token_symbol,
            "account": self.account,
            "blacklisted": self.blacklisted,
            "height": self.height,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class LimitsUpdatedEvent:
    token_symbol: str
    max_transaction_amount: int
    max_wallet_amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "LimitsUpdated",
            "token": self.token_symbol,
            "maxTransactionAmount": str(self.max_transaction_amount),
            "maxWalletAmount": str(self.max_wallet_amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class AntiBotDisabledEvent:
    token_symbol: str
    height: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "AntiBotDisabled",
            "token": self.token_symbol,
            "height": self.height,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class AntiWhaleDisabledEvent:
    token_symbol: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "AntiWhaleDisabled",
            "token": self.token_symbol,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class OwnershipTransferredEvent:
    token_symbol: str
    previous_owner: str
    new_owner: Optional[str]
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "OwnershipTransferred",
            "token": self.token_symbol,
            "previousOwner": self.previous_owner,
            "newOwner": self.new_owner or ZERO_ADDRESS,
            "timestamp": self.timestamp,
        }


def _bps_of(amount: int, bps: int) -> int:
    return max(1, amount * bps // BPS_DENOMINATOR)


# ══════════════════════════════════════════════════════════════════════
#  TOKEN LEDGER
# ══════════════════════════════════════════════════════════════════════

class TokenLedger:
    """
    Launchpad token ledger.

    Mirrors ERC-20 semantics:
        - balance_of(address) → int
        - transfer(sender, recipient, amount)
        - approve(owner, spender, amount)
        - transfer_from(spender, sender, recipient, amount)
        - burn(caller, amount) / burn_from(spender, account, amount)
        - total_supply → int

    Owner-only policy administration:
        - set_blacklisted / set_blacklisted_batch / disable_anti_bot
        - set_limits / disable_anti_whale
        - transfer_ownership / renounce_ownership

    Amounts are integers in the token's smallest unit.
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        decimals: int,
        initial_supply: int,
        owner: str,
        *,
        anti_bot: bool = False,
        anti_whale: bool = False,
        airdrop: bool = False,
        height_fn: Optional[HeightSource] = None,
        address: Optional[str] = None,
        anti_bot_window: int = ANTI_BOT_WINDOW_HEIGHT,
        max_transaction_bps: int = DEFAULT_MAX_TRANSACTION_BPS,
        max_wallet_bps: int = DEFAULT_MAX_WALLET_BPS,
    ):
        """
        Args:
            name: Human-readable token name
            symbol: Short ticker
            decimals: Fractional digits
            initial_supply: Whole-token supply, scaled by 10**decimals at mint
            owner: Creator; receives the full supply and administers the policies
            anti_bot: Enable the launch-window blacklist
            anti_whale: Enable whale limits
            airdrop: Recorded for off-chain airdrop tooling
            height_fn: Current-height source supplied by the execution environment
            address: Ledger address assigned by the factory
            anti_bot_window: Launch-window length in height units
            max_transaction_bps: Initial per-transfer cap, in bps of supply
            max_wallet_bps: Initial per-wallet cap, in bps of supply
        """
        if not name:
            raise ValidationError(Reason.INVALID_NAME, "Token name cannot be empty")
        if not symbol:
            raise ValidationError(Reason.INVALID_SYMBOL, "Token symbol cannot be empty")
        if decimals < 0 or decimals > TOKEN_MAX_DECIMALS:
            raise ValidationError(
                Reason.INVALID_DECIMALS, f"Decimals must be 0-{TOKEN_MAX_DECIMALS}, got {decimals}"
            )
        if initial_supply < 0:
            raise ValidationError(Reason.INVALID_SUPPLY, "Initial supply cannot be negative")

        self._ownable = Ownable(owner)

        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.address = normalize_address(address) if address else None
        self.airdrop_enabled = airdrop
        self._height_fn = height_fn or HeightCounter()

        self._total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._events: List[Any] = []

        self.creation_height = self._height_fn()
        scaled_supply = initial_supply * 10 ** decimals
        self._policy = TransferPolicyEngine(
            PolicyConfig.create(
                anti_bot=anti_bot,
                anti_whale=anti_whale,
                creation_height=self.creation_height,
                window=anti_bot_window,
                max_transaction_amount=_bps_of(scaled_supply, max_transaction_bps),
                max_wallet_amount=_bps_of(scaled_supply, max_wallet_bps),
            )
        )

        if scaled_supply > 0:
            self._update(ZERO_ADDRESS, self.owner, scaled_supply)

        self._created_at = time.time()
        logger.info(
            f"Ledger created: ${symbol} ({name}) owner={self.owner} supply={scaled_supply} "
            f"anti_bot={anti_bot} anti_whale={anti_whale} height={self.creation_height}"
        )

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def owner(self) -> Optional[str]:
        return self._ownable.owner

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def current_height(self) -> int:
        return self._height_fn()

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    @property
    def policy(self) -> PolicyConfig:
        return self._policy.config

    @property
    def anti_bot_enabled(self) -> bool:
        return self._policy.config.anti_bot_enabled

    @property
    def anti_bot_expiry_height(self) -> Optional[int]:
        return self._policy.config.anti_bot_expiry_height

    @property
    def is_launch_window_active(self) -> bool:
        return self._policy.is_launch_window_active(self.current_height)

    def is_blacklisted(self, address: str) -> bool:
        return self._policy.is_blacklisted(normalize_address(address))

    @property
    def anti_whale_enabled(self) -> bool:
        return self._policy.config.anti_whale_enabled

    @property
    def max_transaction_amount(self) -> int:
        return self._policy.config.max_transaction_amount

    @property
    def max_wallet_amount(self) -> int:
        return self._policy.config.max_wallet_amount

    # ── Balance mutation hook ─────────────────────────────────────────

    def _update(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        """
        Single entry point for mint (sender is null), burn (recipient is null)
        and transfer. Authorizes first, then applies the delta.
        """
        height = self.current_height
        is_mint = sender == ZERO_ADDRESS
        is_burn = recipient == ZERO_ADDRESS

        if not is_mint:
            bal = self._balances.get(sender, 0)
            if bal < amount:
                raise EconomicError(
                    Reason.INSUFFICIENT_BALANCE,
                    f"{sender} balance {bal} < amount {amount}",
                )

        decision = self._policy.authorize(
            sender,
            recipient,
            amount,
            owner=self.owner,
            current_height=height,
            recipient_balance=self._balances.get(recipient, 0),
            is_mint_or_burn=is_mint or is_burn,
        )
        if not decision.allow:
            logger.warning(
                f"${self.symbol} transfer {sender} → {recipient} amount={amount} "
                f"rejected at height={height} [{decision.reason.value}]"
            )
            raise PolicyViolationError(decision.reason)

        if is_mint:
            self._total_supply += amount
        else:
            self._balances[sender] -= amount
        if is_burn:
            self._total_supply -= amount
        else:
            self._balances[recipient] = self._balances.get(recipient, 0) + amount

        event = TransferEvent(
            token_symbol=self.symbol,
            sender=sender,
            recipient=recipient,
            amount=amount,
            height=height,
        )
        self._events.append(event)
        return event

    @staticmethod
    def _require_positive(amount: int):
        if amount <= 0:
            raise ValidationError(Reason.INVALID_AMOUNT, "Amount must be positive")

    @staticmethod
    def _require_account(address: str, role: str) -> str:
        address = normalize_address(address)
        if address == ZERO_ADDRESS:
            raise ValidationError(Reason.INVALID_ADDRESS, f"{role} cannot be the null address")
        return address

    # ── Core ERC-20 operations ────────────────────────────────────────

    async def transfer(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        """Move *amount* from *sender* to *recipient*."""
        sender = self._require_account(sender, "Sender")
        recipient = self._require_account(recipient, "Recipient")
        self._require_positive(amount)

        event = self._update(sender, recipient, amount)
        logger.debug(f"Transfer: {sender} → {recipient} amount={amount} ${self.symbol}")
        return event

    async def approve(self, owner: str, spender: str, amount: int) -> ApprovalEvent:
        owner = self._require_account(owner, "Owner")
        spender = self._require_account(spender, "Spender")
        if amount < 0:
            raise ValidationError(Reason.INVALID_AMOUNT, "Allowance amount cannot be negative")

        self._allowances[(owner, spender)] = amount
        event = ApprovalEvent(
            token_symbol=self.symbol,
            owner=owner,
            spender=spender,
            amount=amount,
        )
        self._events.append(event)
        logger.debug(f"Approve: {owner} → {spender} allowance={amount} ${self.symbol}")
        return event

    async def transfer_from(
        self,
        spender: str,
        sender: str,
        recipient: str,
        amount: int,
    ) -> TransferEvent:
        """Transfer on behalf of *sender* using *spender*'s allowance."""
        spender = normalize_address(spender)
        sender = self._require_account(sender, "Sender")
        recipient = self._require_account(recipient, "Recipient")
        self._require_positive(amount)

        allow = self._allowances.get((sender, spender), 0)
        if allow < amount:
            raise EconomicError(
                Reason.INSUFFICIENT_ALLOWANCE,
                f"Allowance {allow} < transfer amount {amount}",
            )

        event = self._update(sender, recipient, amount)
        self._allowances[(sender, spender)] = allow - amount
        logger.debug(
            f"transferFrom: spender={spender} {sender} → {recipient} amount={amount} ${self.symbol}"
        )
        return event

    # ── Burnable ──────────────────────────────────────────────────────

    async def burn(self, caller: str, amount: int) -> TransferEvent:
        """Destroy *amount* from the caller's own balance."""
        caller = self._require_account(caller, "Caller")
        self._require_positive(amount)
        event = self._update(caller, ZERO_ADDRESS, amount)
        logger.info(f"Burn: {caller} burned amount={amount} ${self.symbol}")
        return event

    async def burn_from(self, spender: str, account: str, amount: int) -> TransferEvent:
        """Destroy *amount* from *account* using *spender*'s allowance."""
        spender = normalize_address(spender)
        account = self._require_account(account, "Account")
        self._require_positive(amount)

        allow = self._allowances.get((account, spender), 0)
        if allow < amount:
            raise EconomicError(
                Reason.INSUFFICIENT_ALLOWANCE,
                f"Allowance {allow} < burn amount {amount}",
            )

        event = self._update(account, ZERO_ADDRESS, amount)
        self._allowances[(account, spender)] = allow - amount
        logger.info(f"Burn: {spender} burned amount={amount} ${self.symbol} from {account}")
        return event

    # ── Anti-bot administration ───────────────────────────────────────

    def set_blacklisted(self, caller: str, account: str, status: bool) -> Optional[BlacklistUpdatedEvent]:
        """
        Add or remove *account* from the launch blacklist.

        Returns the emitted event, or None if membership was already *status*.
        """
        owner = self._ownable.require_owner(caller)
        account = normalize_address(account)
        height = self.current_height

        if not self._policy.set_blacklisted(account, status, owner=owner, current_height=height):
            return None
        event = BlacklistUpdatedEvent(
            token_symbol=self.symbol, account=account, blacklisted=status, height=height,
        )
        self._events.append(event)
        logger.info(f"${self.symbol} blacklist {'add' if status else 'remove'}: {account} height={height}")
        return event

    def set_blacklisted_batch(
        self,
        caller: str,
        accounts: Iterable[str],
        status: bool,
    ) -> List[BlacklistUpdatedEvent]:
        """Apply *status* to many accounts; the owner's own address is skipped."""
        owner = self._ownable.require_owner(caller)
        accounts = [normalize_address(a) for a in accounts]
        if len(accounts) > LEDGER_MAX_BLACKLIST_BATCH:
            raise ValidationError(
                Reason.BATCH_TOO_LARGE,
                f"Batch size {len(accounts)} exceeds max {LEDGER_MAX_BLACKLIST_BATCH}",
            )
        height = self.current_height

        changed = self._policy.set_blacklisted_batch(
            accounts, status, owner=owner, current_height=height
        )
        events = [
            BlacklistUpdatedEvent(
                token_symbol=self.symbol, account=account, blacklisted=status, height=height,
            )
            for account in changed
        ]
        self._events.extend(events)
        logger.info(
            f"${self.symbol} blacklist batch {'add' if status else 'remove'}: "
            f"{len(changed)}/{len(accounts)} changed height={height}"
        )
        return events

    def disable_anti_bot(self, caller: str) -> AntiBotDisabledEvent:
        self._ownable.require_owner(caller)
        self._policy.disable_anti_bot()
        event = AntiBotDisabledEvent(token_symbol=self.symbol, height=self.current_height)
        self._events.append(event)
        logger.info(f"${self.symbol} anti-bot disabled height={event.height}")
        return event

    # ── Anti-whale administration ─────────────────────────────────────

    def set_limits(
        self,
        caller: str,
        max_transaction_amount: int,
        max_wallet_amount: int,
    ) -> LimitsUpdatedEvent:
        self._ownable.require_owner(caller)
        self._policy.set_limits(max_transaction_amount, max_wallet_amount)
        event = LimitsUpdatedEvent(
            token_symbol=self.symbol,
            max_transaction_amount=max_transaction_amount,
            max_wallet_amount=max_wallet_amount,
        )
        self._events.append(event)
        logger.info(
            f"${self.symbol} whale limits set: max_tx amount={max_transaction_amount} "
            f"max_wallet amount={max_wallet_amount}"
        )
        return event

    def disable_anti_whale(self, caller: str) -> AntiWhaleDisabledEvent:
        self._ownable.require_owner(caller)
        self._policy.disable_anti_whale()
        event = AntiWhaleDisabledEvent(token_symbol=self.symbol)
        self._events.append(event)
        logger.info(f"${self.symbol} anti-whale disabled")
        return event

    # ── Ownership ─────────────────────────────────────────────────────

    def transfer_ownership(self, caller: str, new_owner: str) -> OwnershipTransferredEvent:
        previous = self._ownable.transfer(caller, new_owner)
        event = OwnershipTransferredEvent(
            token_symbol=self.symbol, previous_owner=previous, new_owner=self.owner,
        )
        self._events.append(event)
        logger.info(f"${self.symbol} ownership: {previous} → {self.owner}")
        return event

    def renounce_ownership(self, caller: str) -> OwnershipTransferredEvent:
        previous = self._ownable.renounce(caller)
        event = OwnershipTransferredEvent(
            token_symbol=self.symbol, previous_owner=previous, new_owner=None,
        )
        self._events.append(event)
        logger.warning(f"${self.symbol} ownership renounced by {previous}")
        return event

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        cfg = self._policy.config
        return {
            "address": self.address,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "totalSupply": str(self._total_supply),
            "owner": self.owner,
            "antiBotEnabled": cfg.anti_bot_enabled,
            "antiBotExpiryHeight": cfg.anti_bot_expiry_height,
            "blacklisted": sorted(cfg.blacklist),
            "antiWhaleEnabled": cfg.anti_whale_enabled,
            "maxTransactionAmount": str(cfg.max_transaction_amount),
            "maxWalletAmount": str(cfg.max_wallet_amount),
            "airdropEnabled": self.airdrop_enabled,
            "holders": len([b for b in self._balances.values() if b > 0]),
            "createdAt": self._created_at,
        }

    def __repr__(self) -> str:
        return f"<TokenLedger {self.symbol} supply={self._total_supply}>"


# ══════════════════════════════════════════════════════════════════════
#  LEDGER REGISTRY
# ══════════════════════════════════════════════════════════════════════

class LedgerRegistry:
    """
    Index of ledgers created by one factory, by address and by creator.
    """

    def __init__(self):
        self._ledgers: Dict[str, TokenLedger] = {}
        self._by_creator: Dict[str, List[str]] = {}

    def register(self, ledger: TokenLedger, creator: str) -> TokenLedger:
        if ledger.address is None:
            raise ValidationError(Reason.INVALID_ADDRESS, "Ledger has no address")
        if ledger.address in self._ledgers:
            raise ValidationError(Reason.INVALID_ADDRESS, f"Ledger {ledger.address} already registered")

        creator = normalize_address(creator)
        self._ledgers[ledger.address] = ledger
        self._by_creator.setdefault(creator, []).append(ledger.address)
        return ledger

    def unregister(self, address: str) -> bool:
        """Drop a ledger; used only to roll back a failed creation."""
        address = normalize_address(address)
        ledger = self._ledgers.pop(address, None)
        if ledger is None:
            return False
        for addresses in self._by_creator.values():
            if address in addresses:
                addresses.remove(address)
        return True

    def get(self, address: str) -> Optional[TokenLedger]:
        return self._ledgers.get(normalize_address(address))

    def exists(self, address: str) -> bool:
        return normalize_address(address) in self._ledgers

    def created_by(self, creator: str) -> List[str]:
        return list(self._by_creator.get(normalize_address(creator), []))

    def all_ledgers(self) -> List[TokenLedger]:
        return list(self._ledgers.values())

    @property
    def count(self) -> int:
        return len(self._ledgers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ledgerCount": len(self._ledgers),
            "ledgers": {a: l.to_dict() for a, l in self._ledgers.items()},
        }

    def __repr__(self) -> str:
        return f"<LedgerRegistry ledgers={len(self._ledgers)}>"
