import pytest

from savings_vault.clock import ManualClock
from savings_vault.constants import PRICE_SCALE
from savings_vault.custody import InMemoryCustody
from savings_vault.models import VaultConfig
from savings_vault.oracle import StaticPriceOracle
from savings_vault.vault import VaultService

ETH = 10**18
DAY = 24 * 60 * 60
START = 1_700_000_000


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def oracle(clock) -> StaticPriceOracle:
    # Below the 3000 threshold, so the high rate applies.
    return StaticPriceOracle(2000 * PRICE_SCALE, clock=clock)


@pytest.fixture
def custody() -> InMemoryCustody:
    return InMemoryCustody({"alice": 10_000 * ETH, "bob": 10_000 * ETH})


@pytest.fixture
def vault(oracle, custody, clock) -> VaultService:
    return VaultService(oracle, custody, config=VaultConfig(), clock=clock)
