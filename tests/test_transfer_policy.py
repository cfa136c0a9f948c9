"""
Transfer Policy & Access Capability Test Suite

Coverage:
  - TransferPolicyEngine.authorize: launch-window blacklist, whale limits,
    owner bypass, mint/burn exemption
  - Blacklist administration: window checks, owner protection, batch skipping
  - One-way disable switches, limit updates
  - Ownable / PauseGate / ReentrancyGuard
  - HeightCounter, address normalisation and ledger address derivation
"""

import os
import sys

import pytest
from eth_utils import to_checksum_address

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from launchpad.access import Ownable, PauseGate, ReentrancyGuard
from launchpad.addresses import (
    generate_ledger_address,
    is_zero_address,
    normalize_address,
)
from launchpad.constants import ZERO_ADDRESS
from launchpad.exceptions import (
    AuthorizationError,
    LaunchpadError,
    Reason,
    ReentrantCallError,
    StateError,
    ValidationError,
)
from launchpad.height import HeightCounter
from launchpad.tokens.policy import (
    PolicyConfig,
    PolicyDecision,
    TransferPolicyEngine,
)


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

OWNER = to_checksum_address("0x" + "0a" * 20)
ALICE = to_checksum_address("0x" + "a1" * 20)
BOB = to_checksum_address("0x" + "b2" * 20)
CAROL = to_checksum_address("0x" + "c3" * 20)

CREATED_AT = 100
WINDOW = 50


def make_engine(
    anti_bot=True,
    anti_whale=True,
    max_tx=100,
    max_wallet=200,
    creation_height=CREATED_AT,
) -> TransferPolicyEngine:
    """Helper to create a policy engine for testing."""
    return TransferPolicyEngine(
        PolicyConfig.create(
            anti_bot=anti_bot,
            anti_whale=anti_whale,
            creation_height=creation_height,
            window=WINDOW,
            max_transaction_amount=max_tx,
            max_wallet_amount=max_wallet,
        )
    )


def authorize(engine, sender, recipient, amount, height=CREATED_AT, recipient_balance=0, **kwargs):
    return engine.authorize(
        sender,
        recipient,
        amount,
        owner=kwargs.pop("owner", OWNER),
        current_height=height,
        recipient_balance=recipient_balance,
        **kwargs,
    )


# ══════════════════════════════════════════════════════════════════════
#  POLICY CONFIG
# ══════════════════════════════════════════════════════════════════════


class TestPolicyConfig:
    """Initial policy state."""

    def test_expiry_set_when_anti_bot_requested(self):
        cfg = make_engine().config
        assert cfg.anti_bot_enabled is True
        assert cfg.anti_bot_expiry_height == CREATED_AT + WINDOW

    def test_no_expiry_without_anti_bot(self):
        cfg = make_engine(anti_bot=False).config
        assert cfg.anti_bot_enabled is False
        assert cfg.anti_bot_expiry_height is None

    def test_limits_zero_without_anti_whale(self):
        cfg = make_engine(anti_whale=False).config
        assert cfg.max_transaction_amount == 0
        assert cfg.max_wallet_amount == 0

    def test_anti_whale_requires_positive_limits(self):
        with pytest.raises(ValidationError) as exc:
            make_engine(max_tx=0)
        assert exc.value.reason is Reason.INVALID_LIMITS


# ══════════════════════════════════════════════════════════════════════
#  LAUNCH WINDOW
# ══════════════════════════════════════════════════════════════════════


class TestLaunchWindow:
    """Blacklist enforcement gated on height."""

    def test_window_active_before_expiry(self):
        engine = make_engine()
        assert engine.is_launch_window_active(CREATED_AT)
        assert engine.is_launch_window_active(CREATED_AT + WINDOW - 1)

    def test_window_closed_at_expiry(self):
        engine = make_engine()
        assert not engine.is_launch_window_active(CREATED_AT + WINDOW)
        assert not engine.is_launch_window_active(CREATED_AT + 10 * WINDOW)

    def test_blacklisted_sender_rejected_in_window(self):
        engine = make_engine(anti_whale=False)
        engine.set_blacklisted(ALICE, True, owner=OWNER, current_height=CREATED_AT)
        decision = authorize(engine, ALICE, BOB, 1, height=CREATED_AT + 1)
        assert decision == PolicyDecision.reject(Reason.BLACKLISTED_DURING_LAUNCH)

    def test_blacklisted_recipient_rejected_in_window(self):
        engine = make_engine(anti_whale=False)
        engine.set_blacklisted(BOB, True, owner=OWNER, current_height=CREATED_AT)
        decision = authorize(engine, OWNER, BOB, 1, height=CREATED_AT + 1)
        assert not decision.allow
        assert decision.reason is Reason.BLACKLISTED_DURING_LAUNCH

    def test_blacklist_ignored_after_expiry(self):
        engine = make_engine(anti_whale=False)
        engine.set_blacklisted(ALICE, True, owner=OWNER, current_height=CREATED_AT)
        decision = authorize(engine, ALICE, BOB, 1, height=CREATED_AT + WINDOW)
        assert decision.allow
        # membership itself is untouched
        assert engine.is_blacklisted(ALICE)

    def test_blacklist_ignored_after_disable(self):
        engine = make_engine(anti_whale=False)
        engine.set_blacklisted(ALICE, True, owner=OWNER, current_height=CREATED_AT)
        engine.disable_anti_bot()
        assert authorize(engine, ALICE, BOB, 1, height=CREATED_AT + 1).allow
        assert engine.is_blacklisted(ALICE)

    def test_mint_to_blacklisted_rejected_in_window(self):
        engine = make_engine(anti_whale=False)
        engine.set_blacklisted(BOB, True, owner=OWNER, current_height=CREATED_AT)
        decision = authorize(engine, ZERO_ADDRESS, BOB, 1, is_mint_or_burn=True)
        assert decision.reason is Reason.BLACKLISTED_DURING_LAUNCH


class TestBlacklistAdmin:
    """Blacklist membership changes."""

    def test_add_and_remove(self):
        engine = make_engine()
        assert engine.set_blacklisted(ALICE, True, owner=OWNER, current_height=CREATED_AT) is True
        assert engine.set_blacklisted(ALICE, True, owner=OWNER, current_height=CREATED_AT) is False
        assert engine.set_blacklisted(ALICE, False, owner=OWNER, current_height=CREATED_AT) is True
        assert not engine.is_blacklisted(ALICE)

    def test_requires_anti_bot(self):
        engine = make_engine(anti_bot=False)
        with pytest.raises(StateError) as exc:
            engine.set_blacklisted(ALICE, True, owner=OWNER, current_height=CREATED_AT)
        assert exc.value.reason is Reason.ANTI_BOT_NOT_ACTIVE

    def test_rejected_after_expiry(self):
        engine = make_engine()
        with pytest.raises(StateError) as exc:
            engine.set_blacklisted(ALICE, True, owner=OWNER, current_height=CREATED_AT + WINDOW)
        assert exc.value.reason is Reason.ANTI_BOT_EXPIRED
        assert not engine.is_blacklisted(ALICE)

    def test_cannot_blacklist_owner(self):
        engine = make_engine()
        with pytest.raises(AuthorizationError) as exc:
            engine.set_blacklisted(OWNER, True, owner=OWNER, current_height=CREATED_AT)
        assert exc.value.reason is Reason.CANNOT_BLACKLIST_OWNER

    def test_cannot_blacklist_null_address(self):
        engine = make_engine()
        with pytest.raises(ValidationError) as exc:
            engine.set_blacklisted(ZERO_ADDRESS, True, owner=OWNER, current_height=CREATED_AT)
        assert exc.value.reason is Reason.INVALID_ADDRESS

    def test_batch_skips_owner(self):
        engine = make_engine()
        changed = engine.set_blacklisted_batch(
            [ALICE, OWNER, BOB, ALICE], True, owner=OWNER, current_height=CREATED_AT
        )
        assert changed == [ALICE, BOB]
        assert not engine.is_blacklisted(OWNER)

    def test_batch_after_expiry_fails_whole(self):
        engine = make_engine()
        with pytest.raises(StateError) as exc:
            engine.set_blacklisted_batch([ALICE], True, owner=OWNER, current_height=CREATED_AT + WINDOW)
        assert exc.value.reason is Reason.ANTI_BOT_EXPIRED

    def test_disable_anti_bot_is_one_way(self):
        engine = make_engine()
        engine.disable_anti_bot()
        with pytest.raises(StateError) as exc:
            engine.disable_anti_bot()
        assert exc.value.reason is Reason.ALREADY_DISABLED
        assert engine.config.anti_bot_enabled is False

    def test_blacklist_mutation_after_disable(self):
        engine = make_engine()
        engine.disable_anti_bot()
        with pytest.raises(StateError) as exc:
            engine.set_blacklisted(ALICE, True, owner=OWNER, current_height=CREATED_AT)
        assert exc.value.reason is Reason.ANTI_BOT_NOT_ACTIVE


# ══════════════════════════════════════════════════════════════════════
#  WHALE LIMITS
# ══════════════════════════════════════════════════════════════════════


class TestWhaleLimits:
    """Per-transaction and per-wallet caps."""

    def test_exceeds_max_transaction(self):
        engine = make_engine(anti_bot=False)
        decision = authorize(engine, ALICE, BOB, 150)
        assert decision.reason is Reason.EXCEEDS_MAX_TRANSACTION

    def test_exceeds_max_wallet(self):
        engine = make_engine(anti_bot=False)
        decision = authorize(engine, ALICE, BOB, 80, recipient_balance=150)
        assert decision.reason is Reason.EXCEEDS_MAX_WALLET

    def test_at_limits_allowed(self):
        engine = make_engine(anti_bot=False)
        assert authorize(engine, ALICE, BOB, 100, recipient_balance=100).allow

    def test_owner_sender_bypasses(self):
        engine = make_engine(anti_bot=False)
        assert authorize(engine, OWNER, BOB, 10_000, recipient_balance=10_000).allow

    def test_owner_recipient_bypasses(self):
        engine = make_engine(anti_bot=False)
        assert authorize(engine, ALICE, OWNER, 10_000, recipient_balance=10_000).allow

    def test_renounced_owner_gets_no_bypass(self):
        engine = make_engine(anti_bot=False)
        decision = authorize(engine, OWNER, BOB, 150, owner=None)
        assert decision.reason is Reason.EXCEEDS_MAX_TRANSACTION

    def test_mint_and_burn_exempt(self):
        engine = make_engine(anti_bot=False)
        assert authorize(engine, ZERO_ADDRESS, ALICE, 10_000, is_mint_or_burn=True).allow
        assert authorize(engine, ALICE, ZERO_ADDRESS, 10_000, is_mint_or_burn=True).allow

    def test_disabled_skips_checks(self):
        engine = make_engine(anti_bot=False, anti_whale=False)
        assert authorize(engine, ALICE, BOB, 10_000, recipient_balance=10_000).allow

    def test_set_limits(self):
        engine = make_engine(anti_bot=False)
        engine.set_limits(500, 1000)
        assert authorize(engine, ALICE, BOB, 400).allow
        assert engine.config.max_transaction_amount == 500
        assert engine.config.max_wallet_amount == 1000

    def test_set_limits_requires_positive(self):
        engine = make_engine(anti_bot=False)
        with pytest.raises(ValidationError) as exc:
            engine.set_limits(0, 1000)
        assert exc.value.reason is Reason.INVALID_LIMITS
        assert engine.config.max_transaction_amount == 100

    def test_set_limits_requires_anti_whale(self):
        engine = make_engine(anti_whale=False)
        with pytest.raises(StateError) as exc:
            engine.set_limits(500, 1000)
        assert exc.value.reason is Reason.ANTI_WHALE_NOT_ENABLED

    def test_disable_zeroes_limits(self):
        engine = make_engine(anti_bot=False)
        engine.disable_anti_whale()
        cfg = engine.config
        assert cfg.anti_whale_enabled is False
        assert cfg.max_transaction_amount == 0
        assert cfg.max_wallet_amount == 0

    def test_disable_twice_fails(self):
        engine = make_engine(anti_bot=False)
        engine.disable_anti_whale()
        with pytest.raises(StateError) as exc:
            engine.disable_anti_whale()
        assert exc.value.reason is Reason.ALREADY_DISABLED

    def test_blacklist_checked_before_limits(self):
        engine = make_engine()
        engine.set_blacklisted(ALICE, True, owner=OWNER, current_height=CREATED_AT)
        decision = authorize(engine, ALICE, BOB, 150)
        assert decision.reason is Reason.BLACKLISTED_DURING_LAUNCH


# ══════════════════════════════════════════════════════════════════════
#  ACCESS CAPABILITIES
# ══════════════════════════════════════════════════════════════════════


class TestOwnable:
    """Single-owner gate."""

    def test_require_owner(self):
        gate = Ownable(OWNER)
        assert gate.require_owner(OWNER.lower()) == OWNER
        with pytest.raises(AuthorizationError) as exc:
            gate.require_owner(ALICE)
        assert exc.value.reason is Reason.UNAUTHORIZED

    def test_null_owner_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Ownable(ZERO_ADDRESS)
        assert exc.value.reason is Reason.INVALID_OWNER

    def test_transfer(self):
        gate = Ownable(OWNER)
        assert gate.transfer(OWNER, ALICE) == OWNER
        assert gate.owner == ALICE
        assert not gate.is_owner(OWNER)

    def test_transfer_to_null_rejected(self):
        gate = Ownable(OWNER)
        with pytest.raises(ValidationError):
            gate.transfer(OWNER, ZERO_ADDRESS)
        assert gate.owner == OWNER

    def test_renounce(self):
        gate = Ownable(OWNER)
        gate.renounce(OWNER)
        assert gate.owner is None
        with pytest.raises(AuthorizationError):
            gate.require_owner(OWNER)


class TestPauseGate:

    def test_pause_cycle(self):
        gate = PauseGate()
        gate.require_not_paused()
        gate.pause()
        with pytest.raises(StateError) as exc:
            gate.require_not_paused()
        assert exc.value.reason is Reason.PAUSED_STATE
        gate.unpause()
        assert gate.paused is False

    def test_unpause_when_running(self):
        with pytest.raises(StateError) as exc:
            PauseGate().unpause()
        assert exc.value.reason is Reason.NOT_PAUSED

    def test_pause_when_paused(self):
        gate = PauseGate(paused=True)
        with pytest.raises(StateError) as exc:
            gate.pause()
        assert exc.value.reason is Reason.PAUSED_STATE


class TestReentrancyGuard:

    def test_nested_entry_rejected(self):
        guard = ReentrancyGuard()
        with guard.enter("withdraw"):
            assert guard.entered
            with pytest.raises(ReentrantCallError) as exc:
                with guard.enter("create_token"):
                    pass
            assert exc.value.reason is Reason.REENTRANT_CALL
        assert not guard.entered

    def test_released_after_exception(self):
        guard = ReentrancyGuard()
        with pytest.raises(RuntimeError):
            with guard.enter("withdraw"):
                raise RuntimeError("boom")
        assert not guard.entered


# ══════════════════════════════════════════════════════════════════════
#  HEIGHT & ADDRESSES
# ══════════════════════════════════════════════════════════════════════


class TestHeightCounter:

    def test_advance_and_set(self):
        height = HeightCounter(10)
        assert height() == 10
        assert height.advance(5) == 15
        assert height.set(20) == 20
        assert height.height == 20

    def test_monotonic(self):
        height = HeightCounter(10)
        with pytest.raises(ValueError):
            height.set(9)
        with pytest.raises(ValueError):
            height.advance(-1)


class TestAddresses:

    def test_normalize_to_checksum(self):
        assert normalize_address(ALICE.lower()) == ALICE

    def test_invalid_address(self):
        for bad in ("", "0x1234", "not-an-address", None):
            with pytest.raises(ValidationError) as exc:
                normalize_address(bad)
            assert exc.value.reason is Reason.INVALID_ADDRESS

    def test_zero_address(self):
        assert is_zero_address(ZERO_ADDRESS)
        assert not is_zero_address(ALICE)

    def test_ledger_address_matches_create_derivation(self):
        sender = "0x6ac7ea33f8831ea9dcc53393aaa88b25a785dbf0"
        assert generate_ledger_address(sender, 0).lower() == "0xcd234a471b72ba2f1ccf0a70fcaba648a5eecd8d"
        assert generate_ledger_address(sender, 1).lower() == "0x343c43a37d37dff08ae8c4a11544c718abb4fcf8"

    def test_error_string_carries_reason(self):
        err = ValidationError(Reason.INVALID_NAME, "Name too long")
        assert isinstance(err, LaunchpadError)
        assert str(err) == "[InvalidName] Name too long"
        assert str(ValidationError(Reason.INVALID_NAME)) == "[InvalidName]"
