"""
Launchpad Constants

This module consolidates the global constants and environment configuration
used throughout the codebase. Constants are organized by category for easy
reference and maintenance.
"""
import ast

from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: CHANGING THE LEDGER AND FACTORY LIMITS BELOW CHANGES THE RULES EVERY NEWLY CREATED
# TOKEN IS BOUND BY. TOKENS ALREADY CREATED KEEP THE VALUES THEY WERE BUILT WITH.

# ==================================================================================
# ADDRESSES
# ==================================================================================
# Mint-source / burn-sink sentinel. Never a valid owner or recipient.
ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'


# ==================================================================================
# FACTORY PARAMETERS
# ==================================================================================
TOKEN_NAME_MAX_LENGTH = 50
TOKEN_SYMBOL_MAX_LENGTH = 10
TOKEN_MIN_DECIMALS = 6
TOKEN_MAX_DECIMALS = 18

DEFAULT_BASE_FEE = 10 ** 17  # 0.1 native coin in smallest units
MAX_DISCOUNT_PERCENTAGE = 100

# getFees() reports three retired per-feature fees (anti-bot, anti-whale, airdrop).
# They are always zero; only the flat base fee is charged.
LEGACY_FEATURE_FEE = 0


# ==================================================================================
# LEDGER PARAMETERS
# ==================================================================================
# Launch-window length in height units, counted from the creation height.
ANTI_BOT_WINDOW_HEIGHT = 50

# Initial whale limits in basis points of the scaled supply.
DEFAULT_MAX_TRANSACTION_BPS = 100  # 1%
DEFAULT_MAX_WALLET_BPS = 200       # 2%
BPS_DENOMINATOR = 10_000

LEDGER_MAX_BLACKLIST_BATCH = 500


# ==================================================================================
# ORACLE PARAMETERS
# ==================================================================================
# balanceOf(address)
ERC20_BALANCE_OF_SIGNATURE = 'balanceOf(address)'
ORACLE_DEFAULT_TIMEOUT = 5.0
ORACLE_DEFAULT_BLOCK_TAG = 'latest'


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    def __hash__(self):
        return hash(bool(self))


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
