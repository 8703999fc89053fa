MANTISSA = 10**18
RAY = 10**27
MAX_UINT256 = 2**256 - 1

# Fee rates are expressed in basis points of profit.
MAX_BPS = 10_000
DEFAULT_FEE_RATE_BPS = 1_000

# Fixed-point scale of the reward rate and the reward-per-share accumulator.
REWARD_PRECISION = 10**18

SECONDS_PER_DAY = 24 * 60 * 60
SECONDS_PER_WEEK = 7 * SECONDS_PER_DAY
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# 2024-09-01T00:00:00Z, used as the clock origin of a fresh chain.
GENESIS_TIMESTAMP = 1_725_148_800

DEFAULT_ASSET_DECIMALS = 6
DEFAULT_REWARD_DECIMALS = 18

# Compound v2 style markets report failures as non-zero error codes.
MTOKEN_NO_ERROR = 0
MTOKEN_MATH_ERROR = 9
MTOKEN_INSUFFICIENT_CASH = 14
