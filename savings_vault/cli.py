"""CLI and main logic."""

import argparse
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

from tqdm import tqdm

from savings_vault.clock import ManualClock
from savings_vault.constants import (
    DEFAULT_HIGH_RATE_BPS,
    DEFAULT_LOW_RATE_BPS,
    DEFAULT_PRICE_THRESHOLD,
    PRICE_SCALE,
    TELLOR_ORACLE_SEPOLIA,
)
from savings_vault.contracts import eth_usd_query_id, tellor_contract
from savings_vault.custody import InMemoryCustody
from savings_vault.errors import OracleUnavailable, VaultError
from savings_vault.formatters import format_bp, format_eth, format_price, normalize_hex_str, parse_amount_wei
from savings_vault.journal import Journal, parse_journal, parse_journal_bytes
from savings_vault.models import LedgerSnapshot, ReserveFunded, Staked, VaultConfig, VaultEvent, Withdrawn
from savings_vault.oracle import StaticPriceOracle, TellorPriceOracle
from savings_vault.rates import select_rate
from savings_vault.store import clear_state, load_snapshot, save_snapshot
from savings_vault.vault import VaultService

# Internal defaults (not exposed as CLI flags)
DEFAULT_TIMEOUT = 30
# Below the default threshold.
DEFAULT_REPLAY_PRICE = 2000 * PRICE_SCALE


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--threshold",
        type=parse_amount_wei,
        default=DEFAULT_PRICE_THRESHOLD,
        help="Price threshold, 18 decimals (e.g. '3000 ETH' for 3000 USD). Default: 3000.",
    )
    p.add_argument("--high-bps", type=int, default=DEFAULT_HIGH_RATE_BPS, help="APR below the threshold (bps).")
    p.add_argument("--low-bps", type=int, default=DEFAULT_LOW_RATE_BPS, help="APR at or above the threshold (bps).")


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(description="Savings vault: ETH custody with an oracle-driven APR.")
    sub = p.add_subparsers(dest="command", required=True)

    price = sub.add_parser("price", help="Read the ETH/USD price from Tellor and show the APR it selects.")
    price.add_argument(
        "--rpc-url",
        default=None,
        help="Execution-layer RPC URL. Required if ETH_RPC_URL environment variable is not set.",
    )
    price.add_argument(
        "--oracle",
        default=TELLOR_ORACLE_SEPOLIA,
        help="Tellor oracle address. Default: the Sepolia deployment.",
    )
    _add_config_args(price)

    replay = sub.add_parser("replay", help="Replay a JSON operation journal against an in-memory vault.")
    replay.add_argument("journal", type=Path, help="Path to the journal JSON file.")
    replay.add_argument(
        "--price",
        type=parse_amount_wei,
        default=DEFAULT_REPLAY_PRICE,
        help="Initial oracle price (18 decimals). Journal 'price' operations override it.",
    )
    replay.add_argument(
        "--min-deposit", type=parse_amount_wei, default=0, help="Minimum principal per account (wei or '0.01 ETH')."
    )
    replay.add_argument(
        "--max-deposit", type=parse_amount_wei, default=None, help="Maximum principal per account (wei or '100 ETH')."
    )
    replay.add_argument("--state", type=Path, default=None, help="Load ledger state from / save it to this file.")
    _add_config_args(replay)

    clear = sub.add_parser("clear-state", help="Delete a saved ledger state.")
    clear.add_argument("--state", type=Path, default=None, help="State file (default: the user data directory).")

    return p.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> VaultConfig:
    return VaultConfig(
        min_deposit_wei=getattr(args, "min_deposit", 0),
        max_deposit_wei=getattr(args, "max_deposit", None),
        price_threshold=args.threshold,
        high_rate_bps=args.high_bps,
        low_rate_bps=args.low_bps,
    )


def describe_event(event: VaultEvent) -> str:
    ts = datetime.fromtimestamp(event.timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    if isinstance(event, Staked):
        return f"📥 {ts}  Staked     {event.account}  {format_eth(event.amount_wei)}"
    if isinstance(event, Withdrawn):
        return (
            f"📤 {ts}  Withdrawn  {event.account}  {format_eth(event.amount_wei)}"
            f" + interest {format_eth(event.interest_wei)}"
        )
    if isinstance(event, ReserveFunded):
        return f"💰 {ts}  Funded     {event.account}  {format_eth(event.amount_wei)}"
    return repr(event)


def build_replay_vault(
    journal: Journal, cfg: VaultConfig, *, price: int, snapshot: LedgerSnapshot | None = None
) -> tuple[VaultService, ManualClock, StaticPriceOracle]:
    """Vault on a manual clock and a static oracle, optionally resuming from a saved ledger."""
    clock = ManualClock(journal.start)
    oracle = StaticPriceOracle(price, clock=clock)
    # Restored principal is backed by vault holdings.
    backing = snapshot.total_principal_wei if snapshot is not None else 0
    vault = VaultService(oracle, InMemoryCustody(journal.wallets, vault_balance_wei=backing), config=cfg, clock=clock)
    if snapshot is not None:
        vault.ledger.restore(snapshot)
    return vault, clock, oracle


def replay_journal(
    journal: Journal,
    vault: VaultService,
    clock: ManualClock,
    oracle: StaticPriceOracle,
    *,
    show_progress: bool = True,
) -> list[str]:
    """Run every journal operation. Failed operations are collected and the replay continues."""
    failures: list[str] = []

    with tqdm(
        journal.operations,
        desc="▶️  Replaying journal",
        unit="op",
        file=sys.stderr,
        disable=not show_progress,
    ) as pbar:
        for op in pbar:
            pbar.set_postfix(op=op.op, index=op.index)
            try:
                if op.op == "stake":
                    vault.stake(op.account, op.amount_wei)
                elif op.op == "withdraw":
                    vault.withdraw(op.account, op.amount_wei)
                elif op.op == "fund":
                    vault.fund_reserve(op.account, op.amount_wei)
                elif op.op == "advance":
                    clock.advance(op.seconds)
                elif op.op == "price":
                    oracle.set_price(op.price)
            except VaultError as ex:
                msg = f"#{op.index} {op.op}: {type(ex).__name__}: {ex}"
                failures.append(msg)
                tqdm.write(f"⚠️  {msg}", file=sys.stderr)

    return failures


def print_summary(vault: VaultService) -> None:
    print("\n🏦 Vault summary")
    print("─" * 70)
    print(f"   Total staked:   {format_eth(vault.total_staked())}")
    print(f"   Vault holdings: {format_eth(vault.custody.vault_balance())}")
    print(f"   Reserve:        {format_eth(vault.reserve_balance())}")
    try:
        apr = vault.get_current_apr()
        print(f"   Current APR:    {format_bp(apr)}")
    except OracleUnavailable as ex:
        print(f"⚠️  Oracle unavailable: {ex}", file=sys.stderr)
        return
    print("")
    for account in vault.ledger.accounts():
        principal = vault.balances(account)
        interest = vault.calculate_interest(account)
        print(f"   {account}")
        since = vault.stake_timestamps(account)
        print(f"      Principal: {format_eth(principal)} | Interest: {format_eth(interest)} | Since: {since}")
    print("")


def run_price(args: argparse.Namespace) -> int:
    try:
        from web3 import Web3
    except ImportError as ex:  # pragma: no cover
        print("Missing dependency. Run: pip install -e .", file=sys.stderr)
        raise SystemExit(2) from ex

    # Require RPC URL to be provided either via --rpc-url or ETH_RPC_URL environment variable
    rpc_url = args.rpc_url or os.getenv("ETH_RPC_URL")
    if not rpc_url:
        print(
            "Error: RPC URL is required. Provide --rpc-url or set ETH_RPC_URL environment variable.",
            file=sys.stderr,
        )
        return 2

    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": DEFAULT_TIMEOUT}))
    if not w3.is_connected():
        print(f"Error: failed to connect to RPC at {rpc_url}", file=sys.stderr)
        return 2

    query_id = eth_usd_query_id()
    print(f"ℹ️ Tellor {args.oracle[:10]}... queryId {normalize_hex_str(query_id)[:18]}...", file=sys.stderr)
    oracle = TellorPriceOracle(tellor_contract(w3, args.oracle), query_id)
    try:
        reading = oracle.read_price()
    except OracleUnavailable as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 2

    cfg = config_from_args(args)
    ts = datetime.fromtimestamp(reading.timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    print(f"ETH/USD: {format_price(reading.value)} (reported {ts})")
    print(f"APR:     {format_bp(select_rate(reading.value, cfg))} (threshold {format_price(cfg.price_threshold)})")
    return 0


def run_replay(args: argparse.Namespace) -> int:
    try:
        journal = parse_journal(parse_journal_bytes(args.journal.read_bytes()))
    except (OSError, ValueError) as ex:
        print(f"Error: cannot read journal {args.journal}: {ex}", file=sys.stderr)
        return 2

    snapshot = None
    if args.state is not None:
        try:
            snapshot = load_snapshot(args.state)
        except (OSError, ValueError) as ex:
            print(f"Error: cannot load state {args.state}: {ex}", file=sys.stderr)
            return 2
        if snapshot is not None:
            print(f"ℹ️ Restored {len(snapshot.positions)} positions from {args.state}", file=sys.stderr)

    try:
        vault, clock, oracle = build_replay_vault(journal, config_from_args(args), price=args.price, snapshot=snapshot)
    except ValueError as ex:
        print(f"Error: invalid configuration: {ex}", file=sys.stderr)
        return 2

    vault.subscribe(lambda event: tqdm.write(describe_event(event)))
    failures = replay_journal(journal, vault, clock, oracle)
    print_summary(vault)

    if args.state is not None:
        path = save_snapshot(vault.ledger.snapshot(), args.state)
        print(f"✅ Ledger state saved to {path}", file=sys.stderr)

    if failures:
        print(f"⚠️  {len(failures)} of {len(journal.operations)} operations failed", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)
    if args.command == "price":
        return run_price(args)
    if args.command == "replay":
        return run_replay(args)
    clear_state(args.state)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
