"""Constants and configuration for the staking strategy."""

from web3 import Web3

STRATEGY_NAME = "Staked USDe Strategy"
STRATEGY_DESCRIPTION = (
    "Batches wrapped USDe deposits into sUSDe once a threshold is reached and redeems through "
    "the sUSDe cooldown or direct withdrawal, depending on the staking vault's mode."
)

# Role ids checked against the cluster registry (same derivation as OpenZeppelin AccessControl).
PAUSER_ROLE = bytes(Web3.keccak(text="PAUSER_ROLE"))
COOLDOWN_ADMIN_ROLE = bytes(Web3.keccak(text="COOLDOWN_ADMIN_ROLE"))

# Minimal ABI for the staking vault: ERC-4626 surface plus the cooldown/unstake extension.
# Source: sUSDe (StakedUSDeV2) on Etherscan.
STAKING_VAULT_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "asset",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "type": "function",
        "name": "cooldownDuration",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint24"}],
    },
    {
        "type": "function",
        "name": "cooldowns",
        "stateMutability": "view",
        "inputs": [{"name": "", "type": "address"}],
        "outputs": [
            {"name": "cooldownEnd", "type": "uint104"},
            {"name": "underlyingAmount", "type": "uint152"},
        ],
    },
    {
        "type": "function",
        "name": "maxWithdraw",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "deposit",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "assets", "type": "uint256"},
            {"name": "receiver", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "withdraw",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "assets", "type": "uint256"},
            {"name": "receiver", "type": "address"},
            {"name": "owner", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "cooldownAssets",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "assets", "type": "uint256"}],
        "outputs": [{"name": "shares", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "cooldownShares",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "shares", "type": "uint256"}],
        "outputs": [{"name": "assets", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "unstake",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "receiver", "type": "address"}],
        "outputs": [],
    },
]

# Minimal ABI for the wrap adapter (wrapped USDe <-> USDe).
WRAP_ADAPTER_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "underlyingAsset",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "type": "function",
        "name": "wrap",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "unwrap",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
]

# Minimal ABI for the cluster (role) registry.
ROLE_REGISTRY_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "hasRole",
        "stateMutability": "view",
        "inputs": [
            {"name": "account", "type": "address"},
            {"name": "role", "type": "bytes32"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]

ERC20_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "approve",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "decimals",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "type": "function",
        "name": "symbol",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
]


# USDe and sUSDe both use 18 decimals.
TOKEN_DECIMALS = 18

# Internal defaults (not exposed as CLI flags)
DEFAULT_TIMEOUT = 30
DEFAULT_RECEIPT_TIMEOUT = 120

# Local settings persistence
STATE_DIR_NAME = "staking_strategy"
STATE_VERSION = "1"  # Increment when the state file layout changes
