"""Asset identifiers and protocol constants."""

# Collateral asset symbols
WETH = "WETH"
WBTC = "WBTC"

# Price feed identifiers (Chainlink USD pairs)
ETH_USD = "ETH/USD"
BTC_USD = "BTC/USD"

# Decimals
DEBT_TOKEN_DECIMALS = 18
FEED_DECIMALS = 8

# Fixed-point scales. Ledger amounts and USD values carry 18 decimals, feed
# prices carry 8, so a price is multiplied by 10**10 before it meets a ledger
# amount.
PRECISION = 10**18
ADDITIONAL_FEED_PRECISION = 10 ** (DEBT_TOKEN_DECIMALS - FEED_DECIMALS)

# Liquidation parameters (percentages over LIQUIDATION_PRECISION)
LIQUIDATION_THRESHOLD = 50  # collateral must be 200% of debt
LIQUIDATION_BONUS = 10
LIQUIDATION_PRECISION = 100
MIN_HEALTH_FACTOR = PRECISION

# Health factor reported for accounts without debt (uint256 max)
MAX_HEALTH_FACTOR = 2**256 - 1

# Oracle staleness timeout in seconds
PRICE_TIMEOUT = 3 * 60 * 60
