"""Constants and default configuration for the savings vault."""

from decimal import Decimal

WEI_PER_ETH = Decimal(10**18)
PRICE_DECIMALS = 18
PRICE_SCALE = 10**PRICE_DECIMALS
TOTAL_BASIS_POINTS = 100_00

# Linear accrual denominator. Fixed at 365 days so accrual does not depend on a calendar.
SECONDS_PER_DAY = 24 * 60 * 60
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY

# Defaults of the fixed-constant contract generation (HIGH_APR, LOW_APR, ETH_THRESHOLD).
DEFAULT_HIGH_RATE_BPS = 600  # 6% while ETH trades below the threshold
DEFAULT_LOW_RATE_BPS = 300  # 3% at or above the threshold
DEFAULT_PRICE_THRESHOLD = 3000 * PRICE_SCALE  # 3000 USD/ETH, 18 decimals
DEFAULT_MIN_DEPOSIT_WEI = 0
DEFAULT_MAX_DEPOSIT_WEI: int | None = None  # unbounded

# Most recent events kept in memory by a vault. Subscribers see every event.
DEFAULT_EVENT_LOG_SIZE = 10_000

# Tellor oracle deployment the vault was deployed against (Sepolia).
TELLOR_ORACLE_SEPOLIA = "0xD9157453E2668B2fc45b7A803D3FEF3642430cC0"

# Tellor values are only trusted once they are older than the dispute window.
TELLOR_DISPUTE_BUFFER_S = 20 * 60
TELLOR_MAX_AGE_S = 24 * 60 * 60

# Minimal ABI for the Tellor oracle - only the read the vault needs.
# Source: TellorFlex.getDataBefore(bytes32,uint256)
TELLOR_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "getDataBefore",
        "stateMutability": "view",
        "inputs": [
            {"name": "_queryId", "type": "bytes32", "internalType": "bytes32"},
            {"name": "_timestamp", "type": "uint256", "internalType": "uint256"},
        ],
        "outputs": [
            {"name": "_ifRetrieve", "type": "bool", "internalType": "bool"},
            {"name": "_value", "type": "bytes", "internalType": "bytes"},
            {"name": "_timestampRetrieved", "type": "uint256", "internalType": "uint256"},
        ],
    },
]

# Tellor SpotPrice query parameters for ETH/USD.
TELLOR_SPOT_PRICE_QUERY_TYPE = "SpotPrice"
TELLOR_ETH_USD_PAIR = ("eth", "usd")

# State persistence
STATE_DIR_NAME = "savings_vault"
STATE_FILE_NAME = "ledger.json"
STATE_VERSION = "1"  # Increment when the snapshot layout changes
