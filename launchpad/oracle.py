"""
Discount Balance Oracle

Answers "how much of asset X does holder A own" for the factory's fee
discount. The lookup is a foreign call that may fail, so every
implementation reports an explicit outcome instead of raising:

  - SUCCESS      balance is known
  - UNAVAILABLE  asset or endpoint cannot be reached
  - ERROR        the query ran but failed or returned a malformed answer

Implementations:
  - StaticBalanceOracle   : in-memory table (tests, CLI simulation)
  - LedgerBalanceOracle   : reads ledgers created by a launchpad factory
  - JsonRpcBalanceOracle  : ``eth_call`` of ``balanceOf(address)`` over JSON-RPC
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Set, Tuple

import httpx
from eth_utils import (
    decode_hex,
    encode_hex,
    function_signature_to_4byte_selector,
    to_canonical_address,
)

from .addresses import normalize_address
from .constants import (
    ERC20_BALANCE_OF_SIGNATURE,
    ORACLE_DEFAULT_BLOCK_TAG,
    ORACLE_DEFAULT_TIMEOUT,
)
from .logger import get_logger
from .tokens.ledger import LedgerRegistry

logger = get_logger(__name__)

BALANCE_OF_SELECTOR = function_signature_to_4byte_selector(ERC20_BALANCE_OF_SIGNATURE)


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------

class OracleOutcome(Enum):
    SUCCESS = "success"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass(frozen=True)
class OracleResult:
    """Result of one balance lookup."""
    outcome: OracleOutcome
    balance: Optional[int] = None
    detail: str = ""

    @classmethod
    def success(cls, balance: int) -> "OracleResult":
        return cls(OracleOutcome.SUCCESS, balance=balance)

    @classmethod
    def unavailable(cls, detail: str = "") -> "OracleResult":
        return cls(OracleOutcome.UNAVAILABLE, detail=detail)

    @classmethod
    def error(cls, detail: str = "") -> "OracleResult":
        return cls(OracleOutcome.ERROR, detail=detail)

    @property
    def ok(self) -> bool:
        return (
            self.outcome is OracleOutcome.SUCCESS
            and isinstance(self.balance, int)
            and not isinstance(self.balance, bool)
            and self.balance >= 0
        )


class BalanceOracle(Protocol):
    """Port queried by the fee calculator."""

    async def balance_of(self, asset: str, holder: str) -> OracleResult: ...


# ---------------------------------------------------------------------------
# In-memory oracle
# ---------------------------------------------------------------------------

class StaticBalanceOracle:
    """
    Balance table keyed by (asset, holder).

    Assets marked unavailable answer UNAVAILABLE for every holder; assets
    marked failing answer ERROR. Unknown holders of a known asset hold 0.
    """

    def __init__(self, balances: Optional[Dict[Tuple[str, str], int]] = None):
        self._balances: Dict[Tuple[str, str], int] = {}
        self._assets: Set[str] = set()
        self._unavailable: Set[str] = set()
        self._failing: Set[str] = set()
        for (asset, holder), amount in (balances or {}).items():
            self.set_balance(asset, holder, amount)

    def set_balance(self, asset: str, holder: str, amount: int):
        asset = normalize_address(asset)
        self._assets.add(asset)
        self._balances[(asset, normalize_address(holder))] = amount

    def mark_unavailable(self, asset: str):
        self._unavailable.add(normalize_address(asset))

    def mark_failing(self, asset: str):
        self._failing.add(normalize_address(asset))

    async def balance_of(self, asset: str, holder: str) -> OracleResult:
        asset = normalize_address(asset)
        if asset in self._failing:
            return OracleResult.error(f"balance query for {asset} reverted")
        if asset in self._unavailable or asset not in self._assets:
            return OracleResult.unavailable(f"asset {asset} not reachable")
        return OracleResult.success(self._balances.get((asset, normalize_address(holder)), 0))


# ---------------------------------------------------------------------------
# Launchpad ledgers
# ---------------------------------------------------------------------------

class LedgerBalanceOracle:
    """Reads balances from ledgers held in a ``LedgerRegistry``."""

    def __init__(self, registry: LedgerRegistry):
        self._registry = registry

    async def balance_of(self, asset: str, holder: str) -> OracleResult:
        ledger = self._registry.get(asset)
        if ledger is None:
            return OracleResult.unavailable(f"no ledger at {asset}")
        return OracleResult.success(ledger.balance_of(holder))


# ---------------------------------------------------------------------------
# JSON-RPC oracle
# ---------------------------------------------------------------------------

class JsonRpcBalanceOracle:
    """
    Queries an ERC-20 ``balanceOf`` through an Ethereum-style JSON-RPC node.

    Network failures map to UNAVAILABLE; HTTP errors, JSON-RPC errors and
    results that are not a single 32-byte word map to ERROR.
    """

    _rpc_id_counter = 0

    def __init__(
        self,
        rpc_url: str,
        client: Optional[httpx.AsyncClient] = None,
        *,
        timeout: float = ORACLE_DEFAULT_TIMEOUT,
        block_tag: str = ORACLE_DEFAULT_BLOCK_TAG,
    ):
        self.rpc_url = rpc_url
        self.block_tag = block_tag
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    @classmethod
    def _next_id(cls) -> int:
        cls._rpc_id_counter += 1
        return cls._rpc_id_counter

    @staticmethod
    def encode_balance_of(holder: str) -> str:
        """Calldata for ``balanceOf(holder)``."""
        return encode_hex(
            BALANCE_OF_SELECTOR + to_canonical_address(normalize_address(holder)).rjust(32, b"\x00")
        )

    async def _rpc_call(self, method: str, params: list) -> Dict[str, Any]:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._next_id(),
        }
        start_time = time.time()
        response = await self._client.post(
            self.rpc_url,
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        elapsed = time.time() - start_time
        logger.debug(f"RPC {method} → {self.rpc_url} [{response.status_code}] ({elapsed:.3f}s)")
        response.raise_for_status()
        return response.json()

    async def balance_of(self, asset: str, holder: str) -> OracleResult:
        call = {"to": normalize_address(asset), "data": self.encode_balance_of(holder)}
        try:
            body = await self._rpc_call("eth_call", [call, self.block_tag])
        except httpx.RequestError as exc:
            logger.warning(f"RPC eth_call → {self.rpc_url} NETWORK_ERROR: {exc}")
            return OracleResult.unavailable(str(exc))
        except (json.JSONDecodeError, httpx.HTTPStatusError) as exc:
            logger.warning(f"RPC eth_call → {self.rpc_url} ERROR: {exc}")
            return OracleResult.error(str(exc))

        if not isinstance(body, dict):
            return OracleResult.error("response is not a JSON-RPC object")
        if body.get("error"):
            return OracleResult.error(f"rpc error: {body['error']}")

        result = body.get("result")
        if not isinstance(result, str):
            return OracleResult.error("missing result")
        try:
            raw = decode_hex(result)
        except ValueError as exc:
            return OracleResult.error(f"result is not hex: {exc}")
        if len(raw) != 32:
            return OracleResult.error(f"expected 32-byte word, got {len(raw)} bytes")
        return OracleResult.success(int.from_bytes(raw, "big"))

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()
