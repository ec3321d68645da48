"""Contract interaction functions."""

from typing import TYPE_CHECKING, Any

from savings_vault.constants import TELLOR_ETH_USD_PAIR, TELLOR_MIN_ABI, TELLOR_SPOT_PRICE_QUERY_TYPE

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover


def spot_price_query_id(asset: str, currency: str) -> bytes:
    """
    Compute the Tellor query id for a SpotPrice feed.

    queryId = keccak256(abi.encode("SpotPrice", abi.encode(asset, currency)))
    """
    from eth_abi import encode  # pylint: disable=import-outside-toplevel
    from web3 import Web3  # pylint: disable=import-outside-toplevel

    query_params = encode(["string", "string"], [asset, currency])
    query_data = encode(["string", "bytes"], [TELLOR_SPOT_PRICE_QUERY_TYPE, query_params])
    return bytes(Web3.keccak(query_data))


def eth_usd_query_id() -> bytes:
    """Tellor query id of the ETH/USD spot price feed."""
    return spot_price_query_id(*TELLOR_ETH_USD_PAIR)


def tellor_contract(w3: "Web3", oracle_address: str) -> Any:
    """Bind the minimal Tellor ABI to `oracle_address`."""
    return w3.eth.contract(
        address=w3.to_checksum_address(oracle_address),
        abi=TELLOR_MIN_ABI,
    )
