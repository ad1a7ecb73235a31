"""Contract addresses and minimal ABIs for on-chain price fetching."""

# ---------------------------------------------------------------------------
# Collateral token addresses (Ethereum mainnet)
# ---------------------------------------------------------------------------
ASSET_ADDRESSES: dict[str, str] = {
    "WETH": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    "WBTC": "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599",
}

# ---------------------------------------------------------------------------
# Chainlink USD aggregators (Ethereum mainnet)
# ---------------------------------------------------------------------------
FEED_ADDRESSES: dict[str, str] = {
    "ETH/USD": "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419",
    "BTC/USD": "0xF4030086522a5bEEa4988F8cA5B36dbC97BeE88c",
}

# ---------------------------------------------------------------------------
# Minimal ABIs: only the view functions we call
# ---------------------------------------------------------------------------

CHAINLINK_FEED_ABI = [
    {
        "inputs": [],
        "name": "latestRoundData",
        "outputs": [
            {"name": "roundId", "type": "uint80"},
            {"name": "answer", "type": "int256"},
            {"name": "startedAt", "type": "uint256"},
            {"name": "updatedAt", "type": "uint256"},
            {"name": "answeredInRound", "type": "uint80"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
]
