"""
Token Factory

Creates ``TokenLedger`` instances for any caller in exchange for a creation
fee, and keeps aggregate statistics.

Every fund-moving entry point (create_token, withdraw, withdraw_to) is
all-or-nothing: guards are checked and results computed before state is
touched, and a failed outbound transfer reverses everything staged for
the call before the error is raised.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional

from ..access import Ownable, PauseGate, ReentrancyGuard
from ..addresses import generate_ledger_address, normalize_address
from ..constants import (
    ANTI_BOT_WINDOW_HEIGHT,
    DEFAULT_BASE_FEE,
    DEFAULT_MAX_TRANSACTION_BPS,
    DEFAULT_MAX_WALLET_BPS,
    LEGACY_FEATURE_FEE,
    MAX_DISCOUNT_PERCENTAGE,
    TOKEN_MAX_DECIMALS,
    TOKEN_MIN_DECIMALS,
    TOKEN_NAME_MAX_LENGTH,
    TOKEN_SYMBOL_MAX_LENGTH,
    ZERO_ADDRESS,
)
from ..exceptions import (
    EconomicError,
    FundsTransferError,
    Reason,
    ValidationError,
)
from ..funds import FundsTransfer, InMemoryFundsTransfer
from ..height import HeightCounter, HeightSource
from ..logger import get_logger
from ..oracle import BalanceOracle
from ..tokens.ledger import LedgerRegistry, TokenLedger
from .fees import FactoryConfig, FeeCalculator, FeeQuote

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TokenCreatedEvent:
    token_address: str
    creator: str
    name: str
    symbol: str
    total_supply: int
    fee_charged: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "TokenCreated",
            "tokenAddress": self.token_address,
            "creator": self.creator,
            "name": self.name,
            "symbol": self.symbol,
            "totalSupply": str(self.total_supply),
            "feeCharged": str(self.fee_charged),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class BaseFeeUpdatedEvent:
    previous_fee: int
    new_fee: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "BaseFeeUpdated",
            "previousFee": str(self.previous_fee),
            "newFee": str(self.new_fee),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class WhitelistUpdatedEvent:
    account: str
    whitelisted: bool
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "WhitelistUpdated",
            "account": self.account,
            "whitelisted": self.whitelisted,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class DiscountConfigUpdatedEvent:
    token: Optional[str]
    threshold: int
    percentage: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "DiscountConfigUpdated",
            "token": self.token or ZERO_ADDRESS,
            "threshold": str(self.threshold),
            "percentage": self.percentage,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FeesWithdrawnEvent:
    recipient: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "FeesWithdrawn",
            "recipient": self.recipient,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class PauseToggledEvent:
    paused: bool
    account: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Paused" if self.paused else "Unpaused",
            "account": self.account,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FactoryOwnershipTransferredEvent:
    previous_owner: str
    new_owner: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "OwnershipTransferred",
            "previousOwner": self.previous_owner,
            "newOwner": self.new_owner,
            "timestamp": self.timestamp,
        }


class FeeSchedule(NamedTuple):
    """Shape returned by ``get_fees``. The feature fees are retired and always zero."""
    base_fee: int
    anti_bot_fee: int = LEGACY_FEATURE_FEE
    anti_whale_fee: int = LEGACY_FEATURE_FEE
    airdrop_fee: int = LEGACY_FEATURE_FEE


class _Snapshot(NamedTuple):
    nonce: int
    balance: int
    total_tokens_created: int
    total_fees_collected: int


# ══════════════════════════════════════════════════════════════════════
#  VALIDATION
# ══════════════════════════════════════════════════════════════════════

def validate_token_params(name: str, symbol: str, decimals: int, initial_supply: int):
    """Check creation arguments in order; the first failure wins."""
    if not name or len(name) > TOKEN_NAME_MAX_LENGTH:
        raise ValidationError(
            Reason.INVALID_NAME, f"Name must be 1-{TOKEN_NAME_MAX_LENGTH} characters"
        )
    if not symbol or len(symbol) > TOKEN_SYMBOL_MAX_LENGTH:
        raise ValidationError(
            Reason.INVALID_SYMBOL, f"Symbol must be 1-{TOKEN_SYMBOL_MAX_LENGTH} characters"
        )
    if decimals < TOKEN_MIN_DECIMALS or decimals > TOKEN_MAX_DECIMALS:
        raise ValidationError(
            Reason.INVALID_DECIMALS,
            f"Decimals must be {TOKEN_MIN_DECIMALS}-{TOKEN_MAX_DECIMALS}, got {decimals}",
        )
    if initial_supply <= 0:
        raise ValidationError(Reason.INVALID_SUPPLY, "Initial supply must be positive")


def validate_discount_params(threshold: int, percentage: int):
    if percentage < 0 or percentage > MAX_DISCOUNT_PERCENTAGE:
        raise ValidationError(
            Reason.INVALID_PERCENTAGE,
            f"Percentage must be 0-{MAX_DISCOUNT_PERCENTAGE}, got {percentage}",
        )
    if threshold < 0:
        raise ValidationError(Reason.INVALID_AMOUNT, "Threshold cannot be negative")


# ══════════════════════════════════════════════════════════════════════
#  FACTORY
# ══════════════════════════════════════════════════════════════════════

class TokenFactory:
    """
    Launchpad token factory.

    Usage::

        factory = TokenFactory(owner=OWNER, base_fee=1000, oracle=oracle)
        address = await factory.create_token(
            ALICE, "My Token", "MTK", 18, 1_000_000,
            anti_bot=True, anti_whale=True, payment=1000,
        )
        ledger = factory.get_token(address)
    """

    def __init__(
        self,
        owner: str,
        base_fee: int = DEFAULT_BASE_FEE,
        discount_token: Optional[str] = None,
        *,
        oracle: Optional[BalanceOracle] = None,
        funds: Optional[FundsTransfer] = None,
        height_fn: Optional[HeightSource] = None,
        address: Optional[str] = None,
        anti_bot_window: int = ANTI_BOT_WINDOW_HEIGHT,
        max_transaction_bps: int = DEFAULT_MAX_TRANSACTION_BPS,
        max_wallet_bps: int = DEFAULT_MAX_WALLET_BPS,
    ):
        """
        Args:
            owner: Factory administrator
            base_fee: Flat creation fee in smallest native units
            discount_token: Asset whose holders may get a discount
            oracle: Balance oracle used for the discount lookup
            funds: Outbound native transfer port for refunds and withdrawals
            height_fn: Height source handed to every created ledger; a fresh
                ``HeightCounter`` owned by the factory when omitted
            address: Factory address; ledger addresses derive from it
            anti_bot_window: Launch-window length for created ledgers
            max_transaction_bps: Initial per-transfer cap for created ledgers
            max_wallet_bps: Initial per-wallet cap for created ledgers
        """
        if base_fee < 0:
            raise ValidationError(Reason.INVALID_AMOUNT, "Base fee cannot be negative")

        self._ownable = Ownable(owner)
        self._pause = PauseGate()
        self._guard = ReentrancyGuard()

        self.address = normalize_address(address) if address else generate_ledger_address(self.owner, 0)
        self.config = FactoryConfig(
            base_fee=base_fee,
            discount_token=normalize_address(discount_token) if discount_token else None,
        )
        self.fees = FeeCalculator(oracle)
        self.funds: FundsTransfer = funds or InMemoryFundsTransfer()
        self.registry = LedgerRegistry()

        self.height = height_fn or HeightCounter()
        self._ledger_options = {
            "anti_bot_window": anti_bot_window,
            "max_transaction_bps": max_transaction_bps,
            "max_wallet_bps": max_wallet_bps,
        }
        self._nonce = 0
        self._balance = 0
        self._events: List[Any] = []

        logger.info(f"Factory deployed at {self.address} owner={self.owner} fee={base_fee}")

    @classmethod
    def from_config(
        cls,
        config,
        *,
        oracle: Optional[BalanceOracle] = None,
        funds: Optional[FundsTransfer] = None,
        height_fn: Optional[HeightSource] = None,
    ) -> "TokenFactory":
        """Build a factory from a ``LaunchpadConfig``."""
        section = config.factory
        validate_discount_params(section.discount_threshold, section.discount_percentage)
        whitelist = {normalize_address(a) for a in section.whitelist}
        factory = cls(
            owner=section.owner,
            base_fee=section.base_fee,
            discount_token=section.discount_token or None,
            oracle=oracle,
            funds=funds,
            height_fn=height_fn,
            address=section.address or None,
            anti_bot_window=config.ledger.anti_bot_window,
            max_transaction_bps=config.ledger.max_transaction_bps,
            max_wallet_bps=config.ledger.max_wallet_bps,
        )
        factory.config.discount_threshold = section.discount_threshold
        factory.config.discount_percentage = section.discount_percentage
        factory.config.whitelist = whitelist
        return factory

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def owner(self) -> Optional[str]:
        return self._ownable.owner

    @property
    def paused(self) -> bool:
        return self._pause.paused

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def get_balance(self) -> int:
        """Native coin held by the factory (collected fees not yet withdrawn)."""
        return self._balance

    def get_fees(self) -> FeeSchedule:
        return FeeSchedule(base_fee=self.config.base_fee)

    async def calculate_fee(self, caller: str) -> int:
        return await self.fees.calculate_fee(caller, self.config)

    async def quote(self, caller: str) -> FeeQuote:
        return await self.fees.quote(caller, self.config)

    def get_token(self, address: str) -> Optional[TokenLedger]:
        return self.registry.get(address)

    def tokens_created_by(self, creator: str) -> List[str]:
        return self.registry.created_by(creator)

    def is_whitelisted(self, account: str) -> bool:
        return normalize_address(account) in self.config.whitelist

    def stats(self) -> Dict[str, int]:
        return {
            "totalTokensCreated": self.config.total_tokens_created,
            "totalFeesCollected": self.config.total_fees_collected,
        }

    # ── Rollback support ──────────────────────────────────────────────

    def _snapshot(self) -> _Snapshot:
        return _Snapshot(
            nonce=self._nonce,
            balance=self._balance,
            total_tokens_created=self.config.total_tokens_created,
            total_fees_collected=self.config.total_fees_collected,
        )

    def _restore(self, snap: _Snapshot):
        self._nonce = snap.nonce
        self._balance = snap.balance
        self.config.total_tokens_created = snap.total_tokens_created
        self.config.total_fees_collected = snap.total_fees_collected

    async def _send(self, recipient: str, amount: int) -> Optional[Exception]:
        """Push native coin out. Returns None on success, otherwise the failure cause."""
        try:
            ok = await self.funds.send(recipient, amount)
        except Exception as exc:
            return exc
        if not ok:
            return RuntimeError(f"recipient {recipient} rejected {amount}")
        return None

    # ── Token creation ────────────────────────────────────────────────

    async def create_token(
        self,
        caller: str,
        name: str,
        symbol: str,
        decimals: int,
        initial_supply: int,
        anti_bot: bool = False,
        anti_whale: bool = False,
        airdrop: bool = False,
        payment: int = 0,
    ) -> str:
        """
        Create a ledger owned by *caller* and return its address.

        *payment* is the native amount sent with the call. The fee is kept,
        any excess is refunded; a failed refund undoes the whole call.
        """
        with self._guard.enter("create_token"):
            validate_token_params(name, symbol, decimals, initial_supply)
            caller = normalize_address(caller)
            self._pause.require_not_paused()
            if payment < 0:
                raise ValidationError(Reason.INVALID_AMOUNT, "Payment cannot be negative")

            quote = await self.fees.quote(caller, self.config)
            fee = quote.fee
            if payment < fee:
                raise EconomicError(
                    Reason.INSUFFICIENT_FEE, f"Payment {payment} < required fee {fee}"
                )

            token_address = generate_ledger_address(self.address, self._nonce)
            ledger = TokenLedger(
                name,
                symbol,
                decimals,
                initial_supply,
                caller,
                anti_bot=anti_bot,
                anti_whale=anti_whale,
                airdrop=airdrop,
                height_fn=self.height,
                address=token_address,
                **self._ledger_options,
            )
            event = TokenCreatedEvent(
                token_address=token_address,
                creator=caller,
                name=name,
                symbol=symbol,
                total_supply=ledger.total_supply,
                fee_charged=fee,
            )

            self.registry.register(ledger, caller)
            snap = self._snapshot()
            self._nonce += 1
            self._balance += payment
            self.config.total_tokens_created += 1
            self.config.total_fees_collected += fee

            refund = payment - fee
            if refund > 0:
                failure = await self._send(caller, refund)
                if failure is not None:
                    self.registry.unregister(token_address)
                    self._restore(snap)
                    logger.warning(
                        f"Refund refund={refund} to {caller} failed, creation of ${symbol} "
                        f"rolled back [RefundFailed]: {failure}"
                    )
                    raise FundsTransferError(
                        Reason.REFUND_FAILED, f"Refund of {refund} to {caller} failed"
                    ) from failure
                self._balance -= refund

            self._events.append(event)
            logger.info(
                f"Token created: ${symbol} at {token_address} by {caller} "
                f"supply={ledger.total_supply} fee={fee} refund={refund}"
            )
            return token_address

    # ── Fee administration ────────────────────────────────────────────

    def set_base_fee(self, caller: str, new_fee: int) -> BaseFeeUpdatedEvent:
        self._ownable.require_owner(caller)
        if new_fee < 0:
            raise ValidationError(Reason.INVALID_AMOUNT, "Base fee cannot be negative")

        event = BaseFeeUpdatedEvent(previous_fee=self.config.base_fee, new_fee=new_fee)
        self.config.base_fee = new_fee
        self._events.append(event)
        logger.info(f"Base fee updated: {event.previous_fee} → fee={new_fee}")
        return event

    def set_fees(
        self,
        caller: str,
        base_fee: int,
        anti_bot_fee: int = 0,
        anti_whale_fee: int = 0,
        airdrop_fee: int = 0,
    ) -> BaseFeeUpdatedEvent:
        """Legacy setter. Only *base_fee* is honoured; feature fees are retired."""
        return self.set_base_fee(caller, base_fee)

    def set_whitelist(self, caller: str, account: str, status: bool) -> WhitelistUpdatedEvent:
        self._ownable.require_owner(caller)
        account = normalize_address(account)
        if account == ZERO_ADDRESS:
            raise ValidationError(Reason.INVALID_ADDRESS, "Cannot whitelist the null address")

        if status:
            self.config.whitelist.add(account)
        else:
            self.config.whitelist.discard(account)
        event = WhitelistUpdatedEvent(account=account, whitelisted=status)
        self._events.append(event)
        logger.info(f"Whitelist {'add' if status else 'remove'}: {account}")
        return event

    def set_discount_config(
        self,
        caller: str,
        token: Optional[str],
        threshold: int,
        percentage: int,
    ) -> DiscountConfigUpdatedEvent:
        """
        Configure the holder discount. A null/empty *token* disables the lookup.
        """
        self._ownable.require_owner(caller)
        validate_discount_params(threshold, percentage)

        token = normalize_address(token) if token else None
        if token == ZERO_ADDRESS:
            token = None

        self.config.discount_token = token
        self.config.discount_threshold = threshold
        self.config.discount_percentage = percentage
        event = DiscountConfigUpdatedEvent(token=token, threshold=threshold, percentage=percentage)
        self._events.append(event)
        logger.info(f"Discount config: token={token} threshold={threshold} pct={percentage}")
        return event

    # ── Withdrawal ────────────────────────────────────────────────────

    async def withdraw(self, caller: str) -> FeesWithdrawnEvent:
        """Send the whole balance to the factory owner."""
        return await self._withdraw("withdraw", caller, self.owner)

    async def withdraw_to(self, caller: str, recipient: str) -> FeesWithdrawnEvent:
        return await self._withdraw("withdraw_to", caller, recipient)

    async def _withdraw(self, entry_point: str, caller: str, recipient: Optional[str]) -> FeesWithdrawnEvent:
        with self._guard.enter(entry_point):
            self._ownable.require_owner(caller)
            if recipient is None:
                raise ValidationError(Reason.INVALID_ADDRESS, "No withdrawal recipient")
            recipient = normalize_address(recipient)
            if recipient == ZERO_ADDRESS:
                raise ValidationError(Reason.INVALID_ADDRESS, "Cannot withdraw to the null address")
            amount = self._balance
            if amount == 0:
                raise EconomicError(Reason.NOTHING_TO_WITHDRAW, "Nothing to withdraw")

            self._balance = 0
            failure = await self._send(recipient, amount)
            if failure is not None:
                self._balance = amount
                logger.warning(
                    f"Withdrawal amount={amount} to {recipient} failed [WithdrawFailed]: {failure}"
                )
                raise FundsTransferError(
                    Reason.WITHDRAW_FAILED, f"Withdrawal of {amount} to {recipient} failed"
                ) from failure

            event = FeesWithdrawnEvent(recipient=recipient, amount=amount)
            self._events.append(event)
            logger.info(f"Fees withdrawn: amount={amount} → {recipient}")
            return event

    # ── Pause / ownership ─────────────────────────────────────────────

    def pause(self, caller: str) -> PauseToggledEvent:
        caller = self._ownable.require_owner(caller)
        self._pause.pause()
        event = PauseToggledEvent(paused=True, account=caller)
        self._events.append(event)
        logger.warning(f"Factory paused by {caller}")
        return event

    def unpause(self, caller: str) -> PauseToggledEvent:
        caller = self._ownable.require_owner(caller)
        self._pause.unpause()
        event = PauseToggledEvent(paused=False, account=caller)
        self._events.append(event)
        logger.info(f"Factory unpaused by {caller}")
        return event

    def transfer_ownership(self, caller: str, new_owner: str) -> FactoryOwnershipTransferredEvent:
        previous = self._ownable.transfer(caller, new_owner)
        event = FactoryOwnershipTransferredEvent(previous_owner=previous, new_owner=self.owner)
        self._events.append(event)
        logger.info(f"Factory ownership: {previous} → {self.owner}")
        return event

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "owner": self.owner,
            "paused": self.paused,
            "baseFee": str(self.config.base_fee),
            "discountToken": self.config.discount_token,
            "discountThreshold": str(self.config.discount_threshold),
            "discountPercentage": self.config.discount_percentage,
            "whitelist": sorted(self.config.whitelist),
            "balance": str(self._balance),
            **self.stats(),
        }

    def __repr__(self) -> str:
        return f"<TokenFactory {self.address} tokens={self.config.total_tokens_created}>"
