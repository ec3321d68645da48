"""Price oracle adapters. All prices are 18-decimal fixed point."""

import threading
from typing import Any, Protocol

from savings_vault.clock import Clock, system_clock
from savings_vault.constants import TELLOR_DISPUTE_BUFFER_S, TELLOR_MAX_AGE_S
from savings_vault.errors import OracleUnavailable
from savings_vault.models import PriceReading


class PriceOracle(Protocol):
    """Read-only price source. Raises OracleUnavailable when it has no fresh value."""

    def read_price(self) -> PriceReading: ...  # pragma: no cover


class StaticPriceOracle:
    """Deterministic oracle holding a settable price."""

    def __init__(self, price: int, *, clock: Clock = system_clock) -> None:
        if price < 0:
            raise ValueError("price must be >= 0")
        self._price = int(price)
        self._failure: str | None = None
        self._clock = clock
        self._lock = threading.Lock()
        self.reads = 0

    def set_price(self, price: int) -> None:
        if price < 0:
            raise ValueError("price must be >= 0")
        with self._lock:
            self._price = int(price)
            self._failure = None

    def fail_with(self, reason: str) -> None:
        """Make every following read raise OracleUnavailable until `set_price` is called."""
        with self._lock:
            self._failure = reason

    def read_price(self) -> PriceReading:
        with self._lock:
            self.reads += 1
            if self._failure is not None:
                raise OracleUnavailable(self._failure)
            return PriceReading(value=self._price, timestamp=self._clock())


def decode_tellor_value(value: bytes) -> int:
    """Decode a Tellor SpotPrice value (ABI-encoded uint256)."""
    from eth_abi import decode  # pylint: disable=import-outside-toplevel

    if len(value) < 32:
        raise ValueError(f"Tellor value too short: {len(value)} bytes")
    (price,) = decode(["uint256"], bytes(value[:32]))
    return int(price)


class TellorPriceOracle:
    """
    ETH/USD price from a Tellor oracle contract.

    Reads the newest value reported before `now - dispute_buffer_s`, so values still open
    to dispute are ignored. Values older than `max_age_s` are treated as unavailable.
    """

    def __init__(
        self,
        contract: Any,
        query_id: bytes,
        *,
        clock: Clock = system_clock,
        dispute_buffer_s: int = TELLOR_DISPUTE_BUFFER_S,
        max_age_s: int = TELLOR_MAX_AGE_S,
    ) -> None:
        if dispute_buffer_s < 0:
            raise ValueError("dispute_buffer_s must be >= 0")
        if max_age_s <= 0:
            raise ValueError("max_age_s must be > 0")
        self.contract = contract
        self.query_id = query_id
        self._clock = clock
        self._dispute_buffer_s = dispute_buffer_s
        self._max_age_s = max_age_s

    @property
    def address(self) -> str:
        return str(getattr(self.contract, "address", ""))

    def read_price(self) -> PriceReading:
        now = self._clock()
        before = max(0, now - self._dispute_buffer_s)
        try:
            retrieved, value, timestamp = self.contract.functions.getDataBefore(self.query_id, before).call()
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise OracleUnavailable(f"Tellor getDataBefore failed: {ex}") from ex

        timestamp = int(timestamp)
        if not retrieved or timestamp == 0:
            raise OracleUnavailable("Tellor has no value for the ETH/USD feed")
        if now - timestamp > self._max_age_s:
            raise OracleUnavailable(f"Tellor value is stale: reported at {timestamp}, now {now}")

        try:
            price = decode_tellor_value(value)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise OracleUnavailable(f"Tellor value could not be decoded: {ex}") from ex
        if price == 0:
            raise OracleUnavailable("Tellor reported a zero price")
        return PriceReading(value=price, timestamp=timestamp)
