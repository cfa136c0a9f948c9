"""
Fee Calculator & Balance Oracle Test Suite

Coverage:
  - Whitelist waiver, flat base fee, holder discount
  - Discount lookup fallbacks: unavailable, error, raised exception,
    malformed answers
  - StaticBalanceOracle / LedgerBalanceOracle
  - JsonRpcBalanceOracle over an httpx mock transport
"""

import json
import os
import sys

import httpx
import pytest
from eth_utils import to_checksum_address

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from launchpad.factory.fees import (
    FactoryConfig,
    FeeCalculator,
    apply_discount,
)
from launchpad.oracle import (
    BALANCE_OF_SELECTOR,
    JsonRpcBalanceOracle,
    LedgerBalanceOracle,
    OracleOutcome,
    OracleResult,
    StaticBalanceOracle,
)
from launchpad.tokens import LedgerRegistry, TokenLedger


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

ALICE = to_checksum_address("0x" + "a1" * 20)
BOB = to_checksum_address("0x" + "b2" * 20)
DISCOUNT_TOKEN = to_checksum_address("0x" + "d7" * 20)
RPC_URL = "http://rpc.test:8545"


def make_config(base_fee=1000, threshold=500, percentage=20, token=DISCOUNT_TOKEN, whitelist=()):
    """Helper to create a fee config with a holder discount."""
    return FactoryConfig(
        base_fee=base_fee,
        discount_token=token,
        discount_threshold=threshold,
        discount_percentage=percentage,
        whitelist=set(whitelist),
    )


def make_oracle(balance=600, holder=ALICE) -> StaticBalanceOracle:
    return StaticBalanceOracle({(DISCOUNT_TOKEN, holder): balance})


class RaisingOracle:
    async def balance_of(self, asset, holder):
        raise RuntimeError("node exploded")


class ConstantOracle:
    """Returns whatever it was given, well-formed or not."""

    def __init__(self, answer):
        self.answer = answer
        self.calls = 0

    async def balance_of(self, asset, holder):
        self.calls += 1
        return self.answer


def word(value: int) -> str:
    return "0x" + value.to_bytes(32, "big").hex()


def make_rpc_oracle(handler) -> JsonRpcBalanceOracle:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return JsonRpcBalanceOracle(RPC_URL, client=client)


# ══════════════════════════════════════════════════════════════════════
#  FEE CALCULATION
# ══════════════════════════════════════════════════════════════════════


class TestApplyDiscount:

    def test_rounds_down(self):
        assert apply_discount(1000, 20) == 800
        assert apply_discount(999, 33) == 669
        assert apply_discount(1000, 100) == 0
        assert apply_discount(1000, 0) == 1000


class TestFeeCalculator:
    """calculate_fee() / quote()"""

    @pytest.mark.asyncio
    async def test_discount_applied_at_threshold(self):
        calc = FeeCalculator(make_oracle(balance=500))
        quote = await calc.quote(ALICE, make_config())
        assert quote.fee == 800
        assert quote.discount_applied is True
        assert quote.oracle_outcome is OracleOutcome.SUCCESS

    @pytest.mark.asyncio
    async def test_discount_scenario(self):
        calc = FeeCalculator(make_oracle(balance=600))
        assert await calc.calculate_fee(ALICE, make_config()) == 800

    @pytest.mark.asyncio
    async def test_below_threshold_pays_base(self):
        calc = FeeCalculator(make_oracle(balance=499))
        quote = await calc.quote(ALICE, make_config())
        assert quote.fee == 1000
        assert quote.discount_applied is False

    @pytest.mark.asyncio
    async def test_unknown_holder_pays_base(self):
        calc = FeeCalculator(make_oracle(holder=BOB))
        assert await calc.calculate_fee(ALICE, make_config()) == 1000

    @pytest.mark.asyncio
    async def test_whitelisted_pays_nothing(self):
        oracle = ConstantOracle(OracleResult.success(10 ** 30))
        calc = FeeCalculator(oracle)
        quote = await calc.quote(ALICE, make_config(whitelist=[ALICE]))
        assert quote.fee == 0
        assert quote.whitelisted is True
        assert oracle.calls == 0

    @pytest.mark.asyncio
    async def test_whitelisted_with_failing_oracle(self):
        calc = FeeCalculator(RaisingOracle())
        assert await calc.calculate_fee(ALICE, make_config(whitelist=[ALICE])) == 0

    @pytest.mark.asyncio
    async def test_no_discount_configured_skips_oracle(self):
        oracle = ConstantOracle(OracleResult.success(10 ** 30))
        calc = FeeCalculator(oracle)
        assert await calc.calculate_fee(ALICE, make_config(token=None)) == 1000
        assert await calc.calculate_fee(ALICE, make_config(percentage=0)) == 1000
        assert oracle.calls == 0

    @pytest.mark.asyncio
    async def test_no_oracle_pays_base(self):
        quote = await FeeCalculator().quote(ALICE, make_config())
        assert quote.fee == 1000
        assert quote.oracle_outcome is OracleOutcome.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_unavailable_asset_pays_base(self):
        oracle = make_oracle()
        oracle.mark_unavailable(DISCOUNT_TOKEN)
        quote = await FeeCalculator(oracle).quote(ALICE, make_config())
        assert quote.fee == 1000
        assert quote.oracle_outcome is OracleOutcome.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_failing_asset_pays_base(self):
        oracle = make_oracle()
        oracle.mark_failing(DISCOUNT_TOKEN)
        quote = await FeeCalculator(oracle).quote(ALICE, make_config())
        assert quote.fee == 1000
        assert quote.oracle_outcome is OracleOutcome.ERROR

    @pytest.mark.asyncio
    async def test_raising_oracle_pays_base(self):
        quote = await FeeCalculator(RaisingOracle()).quote(ALICE, make_config())
        assert quote.fee == 1000
        assert quote.oracle_outcome is OracleOutcome.ERROR

    @pytest.mark.asyncio
    async def test_malformed_answers_pay_base(self):
        for answer in (
            OracleResult.success(-1),
            OracleResult.success(True),
            OracleResult(OracleOutcome.SUCCESS, balance=None),
            600,
            None,
        ):
            calc = FeeCalculator(ConstantOracle(answer))
            assert await calc.calculate_fee(ALICE, make_config()) == 1000

    @pytest.mark.asyncio
    async def test_full_discount(self):
        calc = FeeCalculator(make_oracle())
        assert await calc.calculate_fee(ALICE, make_config(percentage=100)) == 0

    @pytest.mark.asyncio
    async def test_quote_to_dict(self):
        quote = await FeeCalculator(make_oracle()).quote(ALICE, make_config())
        d = quote.to_dict()
        assert d["fee"] == "800"
        assert d["baseFee"] == "1000"
        assert d["oracleOutcome"] == "success"


# ══════════════════════════════════════════════════════════════════════
#  ORACLES
# ══════════════════════════════════════════════════════════════════════


class TestStaticBalanceOracle:

    @pytest.mark.asyncio
    async def test_known_and_unknown(self):
        oracle = make_oracle(balance=42)
        assert (await oracle.balance_of(DISCOUNT_TOKEN, ALICE)).balance == 42
        assert (await oracle.balance_of(DISCOUNT_TOKEN, BOB)).balance == 0
        other = await oracle.balance_of(BOB, ALICE)
        assert other.outcome is OracleOutcome.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_failing_takes_precedence(self):
        oracle = make_oracle()
        oracle.mark_unavailable(DISCOUNT_TOKEN)
        oracle.mark_failing(DISCOUNT_TOKEN)
        assert (await oracle.balance_of(DISCOUNT_TOKEN, ALICE)).outcome is OracleOutcome.ERROR


class TestLedgerBalanceOracle:

    @pytest.mark.asyncio
    async def test_reads_registered_ledger(self):
        registry = LedgerRegistry()
        ledger = TokenLedger("Disc", "DSC", 0, 1_000, ALICE, address=DISCOUNT_TOKEN)
        registry.register(ledger, ALICE)
        oracle = LedgerBalanceOracle(registry)

        result = await oracle.balance_of(DISCOUNT_TOKEN, ALICE)
        assert result.ok
        assert result.balance == 1_000

        missing = await oracle.balance_of(BOB, ALICE)
        assert missing.outcome is OracleOutcome.UNAVAILABLE


class TestJsonRpcBalanceOracle:
    """eth_call balanceOf over an httpx MockTransport."""

    def test_encode_balance_of(self):
        data = JsonRpcBalanceOracle.encode_balance_of(ALICE)
        assert data.startswith("0x70a08231")
        assert BALANCE_OF_SELECTOR.hex() == "70a08231"
        assert data.endswith(ALICE[2:].lower())
        assert len(data) == 2 + 2 * (4 + 32)

    @pytest.mark.asyncio
    async def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": seen["id"], "result": word(600)})

        oracle = make_rpc_oracle(handler)
        result = await oracle.balance_of(DISCOUNT_TOKEN, ALICE)
        await oracle.aclose()

        assert result.ok
        assert result.balance == 600
        assert seen["method"] == "eth_call"
        call, tag = seen["params"]
        assert call["to"] == DISCOUNT_TOKEN
        assert call["data"] == JsonRpcBalanceOracle.encode_balance_of(ALICE)
        assert tag == "latest"

    @pytest.mark.asyncio
    async def test_network_error_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await make_rpc_oracle(handler).balance_of(DISCOUNT_TOKEN, ALICE)
        assert result.outcome is OracleOutcome.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_http_error_is_error(self):
        result = await make_rpc_oracle(lambda r: httpx.Response(503)).balance_of(DISCOUNT_TOKEN, ALICE)
        assert result.outcome is OracleOutcome.ERROR

    @pytest.mark.asyncio
    async def test_non_json_is_error(self):
        result = await make_rpc_oracle(
            lambda r: httpx.Response(200, content=b"<html>nope</html>")
        ).balance_of(DISCOUNT_TOKEN, ALICE)
        assert result.outcome is OracleOutcome.ERROR

    @pytest.mark.asyncio
    async def test_rpc_error_is_error(self):
        body = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "execution reverted"}}
        result = await make_rpc_oracle(lambda r: httpx.Response(200, json=body)).balance_of(DISCOUNT_TOKEN, ALICE)
        assert result.outcome is OracleOutcome.ERROR
        assert "execution reverted" in result.detail

    @pytest.mark.asyncio
    async def test_malformed_results_are_errors(self):
        for result_value in ("0x", "0x1234", "zz", 600, None):
            body = {"jsonrpc": "2.0", "id": 1, "result": result_value}
            oracle = make_rpc_oracle(lambda r, body=body: httpx.Response(200, json=body))
            result = await oracle.balance_of(DISCOUNT_TOKEN, ALICE)
            assert result.outcome is OracleOutcome.ERROR, result_value

    @pytest.mark.asyncio
    async def test_fee_falls_back_on_rpc_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        calc = FeeCalculator(make_rpc_oracle(handler))
        assert await calc.calculate_fee(ALICE, make_config()) == 1000
