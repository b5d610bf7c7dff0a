"""Generic fixed-point constants for on-ledger calculations.

These constants are protocol-agnostic and shared by every pool, the oracle and
the controller.
"""

# Time constants
SECONDS_PER_YEAR = 365 * 24 * 3600  # 31,536,000

# Precision constants
WAD = 10**18  # Standard 18 decimal precision
INDEX_SCALE = WAD  # Borrow index precision
BPS_SCALE = 10_000  # Basis points (100% = 10000)

# Oracle bounds
MAX_PRICE_STALENESS = 24 * 3600  # 1 day
PRICE_DECIMALS = 18  # Normalized price precision

# Pool bounds
MAX_WITHDRAW_FEE_BPS = 100  # 1%
MAX_LIQUIDATION_BONUS_BPS = 2_500  # 25%

# Deposit limit semantics
UNLIMITED = 0  # A zero limit means "no limit"
DEPOSIT_HALT_LIMIT = 1  # Minimum unit, halts deposits even on an empty market
