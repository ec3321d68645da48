"""Operation journal parsing for replays."""

import json
from dataclasses import dataclass
from typing import Any

from savings_vault.formatters import as_int, normalize_account, parse_amount_wei

OPERATIONS = ("stake", "withdraw", "fund", "advance", "price")


@dataclass(frozen=True)
class JournalOp:
    """One replayable step. Only the fields relevant to `op` are set."""

    index: int
    op: str
    account: str | None = None
    amount_wei: int = 0
    seconds: int = 0
    price: int = 0


@dataclass(frozen=True)
class Journal:
    start: int
    wallets: dict[str, int]
    operations: list[JournalOp]


def parse_journal_bytes(raw_bytes: bytes) -> dict[str, Any]:
    """Parse journal JSON from raw bytes."""
    data = json.loads(raw_bytes.decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Unexpected journal format (expected JSON object)")
    return data


def parse_journal(data: dict[str, Any]) -> Journal:
    """
    Parse a journal document.

    Format:
        {"start": 1700000000,
         "wallets": {"0xabc": "10 ETH"},
         "operations": [{"op": "stake", "account": "0xabc", "amount": "1 ETH"},
                        {"op": "advance", "seconds": 86400},
                        {"op": "price", "value": "2500000000000000000000"}]}
    """
    start = as_int(data.get("start"))
    if start < 0:
        raise ValueError(f"Journal start must be >= 0 (got {start})")

    wallets = {normalize_account(k): parse_amount_wei(v) for k, v in (data.get("wallets") or {}).items()}

    ops: list[JournalOp] = []
    for i, entry in enumerate(data.get("operations") or []):
        if not isinstance(entry, dict):
            raise ValueError(f"Operation #{i}: expected an object, got {type(entry).__name__}")
        op = str(entry.get("op", "")).strip().lower()
        if op not in OPERATIONS:
            raise ValueError(f"Operation #{i}: unknown op {op!r} (expected one of {', '.join(OPERATIONS)})")

        if op in ("stake", "withdraw", "fund"):
            account = entry.get("account")
            if not account:
                raise ValueError(f"Operation #{i}: {op} needs an account")
            ops.append(
                JournalOp(
                    index=i, op=op, account=normalize_account(account), amount_wei=parse_amount_wei(entry.get("amount"))
                )
            )
        elif op == "advance":
            seconds = as_int(entry.get("seconds"))
            if seconds < 0:
                raise ValueError(f"Operation #{i}: cannot advance by {seconds} seconds")
            ops.append(JournalOp(index=i, op=op, seconds=seconds))
        else:
            price = parse_amount_wei(entry.get("value"))
            if price < 0:
                raise ValueError(f"Operation #{i}: negative price {price}")
            ops.append(JournalOp(index=i, op=op, price=price))

    return Journal(start=start, wallets=wallets, operations=ops)
