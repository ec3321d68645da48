import threading

import pytest

from conftest import DAY, ETH, START
from savings_vault.constants import DEFAULT_PRICE_THRESHOLD
from savings_vault.custody import InMemoryCustody
from savings_vault.errors import (
    AboveMaxDeposit,
    BelowMinDeposit,
    InsufficientBalance,
    InsufficientVaultFunds,
    OracleUnavailable,
    TransferFailed,
    Unauthorized,
    ZeroAmount,
)
from savings_vault.ledger import Ledger
from savings_vault.models import ReserveFunded, Staked, VaultConfig, Withdrawn
from savings_vault.vault import VaultService


def expected_interest(principal: int, rate_bps: int, seconds: int) -> int:
    return principal * rate_bps * seconds // (10_000 * 365 * DAY)


def test_defaults_match_fixed_constant_vault(vault):
    assert vault.config.high_rate_bps == 600
    assert vault.config.low_rate_bps == 300
    assert vault.config.price_threshold == DEFAULT_PRICE_THRESHOLD
    assert vault.total_staked() == 0


def test_stake_takes_custody_and_emits(vault, custody):
    event = vault.stake("alice", ETH)
    assert event == Staked(account="alice", amount_wei=ETH, timestamp=START)
    assert vault.balances("alice") == ETH
    assert vault.total_staked() == ETH
    assert vault.stake_timestamps("alice") == START
    assert custody.vault_balance() == ETH
    assert custody.wallet_balance("alice") == 9_999 * ETH
    assert vault.events == (event,)


def test_multiple_users_stake(vault):
    vault.stake("alice", ETH)
    vault.stake("bob", 2 * ETH)
    assert vault.balances("alice") == ETH
    assert vault.balances("bob") == 2 * ETH
    assert vault.total_staked() == 3 * ETH


def test_interest_is_zero_immediately_after_staking(vault):
    vault.stake("alice", ETH)
    assert vault.calculate_interest("alice") == 0


def test_interest_after_thirty_days(vault, clock):
    vault.stake("alice", 100 * ETH)
    clock.advance(30 * DAY)
    interest = vault.calculate_interest("alice")
    assert interest == expected_interest(100 * ETH, 600, 30 * DAY)
    assert abs(interest - 49 * ETH // 100) < 2 * ETH // 100


def test_interest_query_is_idempotent(vault, clock):
    vault.stake("alice", 5 * ETH)
    clock.advance(12_345)
    assert vault.calculate_interest("alice") == vault.calculate_interest("alice")


def test_calls_within_the_same_second_accrue_nothing(vault, clock):
    vault.stake("alice", 5 * ETH)
    clock.advance(DAY)
    first = vault.calculate_interest("alice")
    assert vault.calculate_interest("alice") == first
    clock.advance(1)
    assert vault.calculate_interest("alice") > first


def test_top_up_resets_accrual_clock(vault, clock):
    vault.stake("alice", ETH)
    clock.advance(10 * DAY)
    vault.stake("alice", ETH // 2)
    assert vault.balances("alice") == 3 * ETH // 2
    assert vault.stake_timestamps("alice") == START + 10 * DAY
    assert vault.calculate_interest("alice") == 0


def test_interest_is_proportional_to_principal(vault, clock):
    vault.stake("alice", ETH)
    vault.stake("bob", 10 * ETH)
    clock.advance(30 * DAY)
    small = vault.calculate_interest("alice")
    large = vault.calculate_interest("bob")
    assert large > small
    assert abs(large - 10 * small) <= 10


def test_low_rate_at_or_above_threshold(vault, oracle, clock):
    oracle.set_price(DEFAULT_PRICE_THRESHOLD)
    assert vault.get_current_apr() == 300
    vault.stake("alice", 100 * ETH)
    clock.advance(30 * DAY)
    assert vault.calculate_interest("alice") == expected_interest(100 * ETH, 300, 30 * DAY)
    oracle.set_price(DEFAULT_PRICE_THRESHOLD - 1)
    assert vault.get_current_apr() == 600


def test_get_price_and_oracle_handle(vault, oracle):
    assert vault.oracle is oracle
    assert vault.get_price() == 2000 * 10**18


def test_total_balance_is_principal_plus_interest(vault, clock):
    vault.stake("alice", ETH)
    clock.advance(30 * DAY)
    assert vault.get_total_balance("alice") == vault.balances("alice") + vault.calculate_interest("alice")


def test_unstaked_account_reads_zero(vault, clock):
    clock.advance(DAY)
    assert vault.balances("bob") == 0
    assert vault.calculate_interest("bob") == 0
    assert vault.get_total_balance("bob") == 0
    assert vault.stake_timestamps("bob") == 0


@pytest.mark.parametrize("amount", [0, -ETH])
def test_zero_amounts_rejected(vault, amount):
    with pytest.raises(ZeroAmount):
        vault.stake("alice", amount)
    with pytest.raises(ZeroAmount):
        vault.withdraw("alice", amount)
    with pytest.raises(ZeroAmount):
        vault.fund_reserve("alice", amount)
    assert vault.events == ()


def test_withdraw_more_than_principal_fails(vault):
    vault.stake("alice", ETH)
    with pytest.raises(InsufficientBalance):
        vault.withdraw("alice", 2 * ETH)
    assert vault.balances("alice") == ETH


def test_withdraw_pays_principal_plus_interest(vault, custody, clock):
    vault.stake("alice", ETH)
    vault.fund_reserve("bob", 10 * ETH)
    clock.advance(30 * DAY)
    interest = expected_interest(ETH, 600, 30 * DAY)
    wallet_before = custody.wallet_balance("alice")

    event = vault.withdraw("alice", ETH // 2)

    assert event == Withdrawn(
        account="alice", amount_wei=ETH // 2, timestamp=START + 30 * DAY, interest_wei=interest
    )
    assert vault.balances("alice") == ETH // 2
    assert vault.total_staked() == ETH // 2
    assert vault.stake_timestamps("alice") == START + 30 * DAY
    assert custody.wallet_balance("alice") == wallet_before + ETH // 2 + interest
    assert vault.calculate_interest("alice") == 0


def test_full_and_repeated_withdrawals(vault):
    vault.stake("alice", 2 * ETH)
    vault.withdraw("alice", ETH // 2)
    vault.withdraw("alice", ETH // 2)
    assert vault.balances("alice") == ETH
    vault.withdraw("alice", ETH)
    assert vault.balances("alice") == 0
    assert vault.total_staked() == 0


def test_insufficient_vault_funds_leaves_ledger_untouched(vault, custody, clock):
    vault.stake("alice", ETH)
    clock.advance(30 * DAY)
    before = vault.ledger.snapshot()
    with pytest.raises(InsufficientVaultFunds) as exc_info:
        vault.withdraw("alice", ETH)
    assert exc_info.value.available == ETH
    assert exc_info.value.payout == ETH + expected_interest(ETH, 600, 30 * DAY)
    assert vault.ledger.snapshot() == before
    assert custody.vault_balance() == ETH


def test_failed_stake_transfer_commits_nothing(oracle, clock):
    custody = InMemoryCustody({"alice": ETH})
    vault = VaultService(oracle, custody, clock=clock)
    with pytest.raises(TransferFailed):
        vault.stake("alice", 2 * ETH)
    assert vault.balances("alice") == 0
    assert vault.total_staked() == 0
    assert vault.events == ()


def test_failed_payout_transfer_commits_nothing(vault, custody, clock):
    vault.stake("alice", ETH)
    vault.fund_reserve("bob", ETH)
    clock.advance(DAY)
    before = vault.ledger.snapshot()
    custody.reject_transfers("node rejected transaction")
    with pytest.raises(TransferFailed, match="node rejected"):
        vault.withdraw("alice", ETH)
    assert vault.ledger.snapshot() == before
    custody.reject_transfers(None)
    vault.withdraw("alice", ETH)
    assert vault.balances("alice") == 0


def test_oracle_failure_propagates_to_rate_queries(vault, oracle, clock):
    vault.stake("alice", ETH)
    clock.advance(DAY)
    oracle.fail_with("no fresh value")
    for call in (vault.get_current_apr, vault.get_price):
        with pytest.raises(OracleUnavailable):
            call()
    with pytest.raises(OracleUnavailable):
        vault.calculate_interest("alice")
    with pytest.raises(OracleUnavailable):
        vault.get_total_balance("alice")
    with pytest.raises(OracleUnavailable):
        vault.withdraw("alice", ETH)
    assert vault.balances("alice") == ETH


def test_oracle_failure_does_not_block_stake_or_bound_checks(vault, oracle):
    oracle.fail_with("down")
    vault.stake("alice", ETH)
    assert vault.balances("alice") == ETH
    with pytest.raises(ZeroAmount):
        vault.withdraw("alice", 0)
    with pytest.raises(InsufficientBalance):
        vault.withdraw("alice", 2 * ETH)


def test_oracle_read_at_most_once_per_operation(vault, oracle, clock):
    vault.stake("alice", ETH)
    vault.fund_reserve("bob", ETH)
    assert oracle.reads == 0
    clock.advance(DAY)
    vault.get_total_balance("alice")
    assert oracle.reads == 1
    vault.withdraw("alice", ETH // 2)
    assert oracle.reads == 2


def test_deposit_bounds_from_config(oracle, custody, clock):
    cfg = VaultConfig(min_deposit_wei=ETH // 100, max_deposit_wei=100 * ETH)
    vault = VaultService(oracle, custody, config=cfg, clock=clock)
    with pytest.raises(BelowMinDeposit):
        vault.stake("alice", 1)
    with pytest.raises(AboveMaxDeposit):
        vault.stake("alice", 200 * ETH)
    assert custody.wallet_balance("alice") == 10_000 * ETH
    vault.stake("alice", ETH)
    assert vault.balances("alice") == ETH
    assert vault.ledger.min_deposit_wei == cfg.min_deposit_wei
    assert vault.ledger.max_deposit_wei == cfg.max_deposit_wei


def test_ledger_cannot_be_injected(oracle, custody):
    with pytest.raises(TypeError):
        VaultService(oracle, custody, ledger=Ledger())  # pylint: disable=unexpected-keyword-arg


@pytest.mark.parametrize(
    "cfg",
    [
        VaultConfig(min_deposit_wei=-1),
        VaultConfig(min_deposit_wei=10, max_deposit_wei=5),
        VaultConfig(max_deposit_wei=0),
        VaultConfig(price_threshold=-1),
        VaultConfig(high_rate_bps=-1),
        VaultConfig(seconds_per_year=0),
    ],
)
def test_invalid_config_rejected(oracle, custody, cfg):
    with pytest.raises(ValueError):
        VaultService(oracle, custody, config=cfg)


def test_reserve_funding_and_access_control(oracle, custody, clock):
    vault = VaultService(oracle, custody, config=VaultConfig(reserve_funders=frozenset({"Bob"})), clock=clock)
    with pytest.raises(Unauthorized):
        vault.fund_reserve("alice", ETH)
    event = vault.fund_reserve("bob", 3 * ETH)
    assert event == ReserveFunded(account="bob", amount_wei=3 * ETH, timestamp=START)
    vault.stake("alice", ETH)
    assert vault.total_staked() == ETH
    assert vault.reserve_balance() == 3 * ETH


def test_subscribers_see_events_in_order(vault, capsys):
    seen = []

    def broken(event) -> None:
        raise RuntimeError("observer broke")

    vault.subscribe(seen.append)
    vault.subscribe(broken)
    vault.stake("alice", ETH)
    vault.withdraw("alice", ETH)
    assert [type(e) for e in seen] == [Staked, Withdrawn]
    assert vault.balances("alice") == 0
    assert "observer broke" in capsys.readouterr().err


def test_event_log_keeps_most_recent_events(oracle, custody, clock):
    vault = VaultService(oracle, custody, clock=clock, event_log_size=3)
    seen = []
    vault.subscribe(seen.append)
    for i in range(1, 6):
        vault.stake("alice", i)

    assert [e.amount_wei for e in vault.events] == [3, 4, 5]
    assert [e.amount_wei for e in seen] == [1, 2, 3, 4, 5]


def test_event_log_size_must_be_positive(oracle, custody):
    with pytest.raises(ValueError):
        VaultService(oracle, custody, event_log_size=0)


def test_concurrent_stakes_and_withdrawals(vault, custody):
    accounts = [f"0x{i:040x}" for i in range(8)]
    for a in accounts:
        custody.credit(a, 1_000)

    def worker(account: str) -> None:
        for _ in range(100):
            vault.stake(account, 5)
            vault.withdraw(account, 2)

    threads = [threading.Thread(target=worker, args=(a,)) for a in accounts]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert all(vault.balances(a) == 300 for a in accounts)
    assert vault.total_staked() == sum(vault.balances(a) for a in accounts)
    assert custody.vault_balance() == vault.total_staked()
