"""
Creation Fee Calculator

The fee owed for one token creation is the flat base fee, waived entirely
for whitelisted callers, and reduced by the configured percentage when the
caller holds at least the threshold amount of the discount asset.

The discount lookup is the only foreign call in fee calculation. Whatever
goes wrong with it, the caller is charged the full base fee and the
request carries on.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from ..addresses import normalize_address
from ..constants import DEFAULT_BASE_FEE, MAX_DISCOUNT_PERCENTAGE
from ..logger import get_logger
from ..oracle import BalanceOracle, OracleOutcome, OracleResult

logger = get_logger(__name__)


@dataclass
class FactoryConfig:
    """
    Factory-owned fee configuration and statistics.

    Attributes:
        base_fee:             Flat creation fee in smallest native units
        discount_token:       Asset whose holders get the discount (None = no discount)
        discount_threshold:   Minimum holding that qualifies
        discount_percentage:  0..100
        whitelist:            Callers exempt from the fee
        total_tokens_created: Successful creations
        total_fees_collected: Sum of fees charged (not raw payments)
    """
    base_fee: int = DEFAULT_BASE_FEE
    discount_token: Optional[str] = None
    discount_threshold: int = 0
    discount_percentage: int = 0
    whitelist: Set[str] = field(default_factory=set)
    total_tokens_created: int = 0
    total_fees_collected: int = 0

    @property
    def discount_configured(self) -> bool:
        return self.discount_token is not None and self.discount_percentage > 0


@dataclass(frozen=True)
class FeeQuote:
    """Fee owed by one caller, with the reason it came out that way."""
    caller: str
    base_fee: int
    fee: int
    whitelisted: bool = False
    discount_applied: bool = False
    oracle_outcome: Optional[OracleOutcome] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caller": self.caller,
            "baseFee": str(self.base_fee),
            "fee": str(self.fee),
            "whitelisted": self.whitelisted,
            "discountApplied": self.discount_applied,
            "oracleOutcome": self.oracle_outcome.value if self.oracle_outcome else None,
        }


def apply_discount(base_fee: int, percentage: int) -> int:
    """``base_fee * (100 - percentage) // 100``, rounding down."""
    return base_fee * (MAX_DISCOUNT_PERCENTAGE - percentage) // MAX_DISCOUNT_PERCENTAGE


class FeeCalculator:
    """Computes creation fees against a ``FactoryConfig``."""

    def __init__(self, oracle: Optional[BalanceOracle] = None):
        self.oracle = oracle

    async def _lookup(self, asset: str, holder: str) -> OracleResult:
        """Query the oracle; any failure becomes a non-success result."""
        if self.oracle is None:
            return OracleResult.unavailable("no oracle configured")
        try:
            result = await self.oracle.balance_of(asset, holder)
        except Exception as exc:
            return OracleResult.error(f"{type(exc).__name__}: {exc}")
        if not isinstance(result, OracleResult):
            return OracleResult.error(f"unexpected oracle answer {result!r}")
        if result.outcome is OracleOutcome.SUCCESS and not result.ok:
            return OracleResult.error(f"malformed balance {result.balance!r}")
        return result

    async def quote(self, caller: str, config: FactoryConfig) -> FeeQuote:
        caller = normalize_address(caller)

        if caller in config.whitelist:
            return FeeQuote(caller=caller, base_fee=config.base_fee, fee=0, whitelisted=True)

        if not config.discount_configured:
            return FeeQuote(caller=caller, base_fee=config.base_fee, fee=config.base_fee)

        result = await self._lookup(config.discount_token, caller)
        if not result.ok:
            logger.warning(
                f"Discount lookup for {caller} on {config.discount_token} "
                f"returned {result.outcome.value} ({result.detail}); charging base fee"
            )
            return FeeQuote(
                caller=caller,
                base_fee=config.base_fee,
                fee=config.base_fee,
                oracle_outcome=result.outcome,
            )

        if result.balance < config.discount_threshold:
            return FeeQuote(
                caller=caller,
                base_fee=config.base_fee,
                fee=config.base_fee,
                oracle_outcome=result.outcome,
            )

        return FeeQuote(
            caller=caller,
            base_fee=config.base_fee,
            fee=apply_discount(config.base_fee, config.discount_percentage),
            discount_applied=True,
            oracle_outcome=result.outcome,
        )

    async def calculate_fee(self, caller: str, config: FactoryConfig) -> int:
        return (await self.quote(caller, config)).fee
