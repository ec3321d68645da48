"""JSON persistence of ledger state."""

import json
import os
import sys
from pathlib import Path
from typing import Any

from savings_vault.constants import STATE_DIR_NAME, STATE_FILE_NAME, STATE_VERSION
from savings_vault.models import AccountPosition, LedgerSnapshot
from savings_vault.validation import validate_ledger_snapshot


def get_state_dir() -> Path:
    """Get the state directory path. Uses XDG_DATA_HOME if available, otherwise ~/.local/share."""
    data_home = os.getenv("XDG_DATA_HOME")
    if data_home:
        base = Path(data_home)
    else:
        base = Path.home() / ".local" / "share"
    state_dir = base / STATE_DIR_NAME
    state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir


def default_state_path() -> Path:
    return get_state_dir() / STATE_FILE_NAME


def snapshot_to_dict(snapshot: LedgerSnapshot) -> dict[str, Any]:
    """Serialize a snapshot. Amounts are strings so wei values survive any JSON reader."""
    return {
        "version": STATE_VERSION,
        "totalPrincipal": str(snapshot.total_principal_wei),
        "positions": {
            account: {
                "principal": str(pos.principal_wei),
                "settlementTimestamp": pos.settlement_timestamp,
            }
            for account, pos in sorted(snapshot.positions.items())
        },
    }


def snapshot_from_dict(data: dict[str, Any]) -> LedgerSnapshot:
    """Deserialize and validate a snapshot written by `snapshot_to_dict`."""
    if not isinstance(data, dict):
        raise ValueError("Unexpected state format (expected JSON object)")
    version = str(data.get("version", ""))
    if version != STATE_VERSION:
        raise ValueError(f"Unsupported state version: {version!r} (expected {STATE_VERSION!r})")

    raw_positions = data.get("positions") or {}
    if not isinstance(raw_positions, dict):
        raise ValueError("Unexpected state format ('positions' must be an object)")

    positions: dict[str, AccountPosition] = {}
    for account, raw in raw_positions.items():
        if not isinstance(raw, dict):
            raise ValueError(f"Position {account}: expected an object, got {type(raw).__name__}")
        try:
            positions[str(account)] = AccountPosition(
                principal_wei=int(raw["principal"]),
                settlement_timestamp=int(raw["settlementTimestamp"]),
            )
        except KeyError as ex:
            raise ValueError(f"Position {account}: missing field {ex}") from ex
        except (TypeError, ValueError) as ex:
            raise ValueError(f"Position {account}: {ex}") from ex

    try:
        total = int(data.get("totalPrincipal", 0))
    except (TypeError, ValueError) as ex:
        raise ValueError(f"Invalid totalPrincipal: {data.get('totalPrincipal')!r}") from ex
    snapshot = LedgerSnapshot(positions=positions, total_principal_wei=total)
    validate_ledger_snapshot(snapshot, warn_only=False)
    return snapshot


def save_snapshot(snapshot: LedgerSnapshot, path: Path | None = None) -> Path:
    """Write `snapshot` atomically (temp file + rename). Returns the path written."""
    target = path or default_state_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_suffix(target.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(snapshot_to_dict(snapshot), f, ensure_ascii=False, indent=2)
    tmp.replace(target)
    return target


def load_snapshot(path: Path | None = None) -> LedgerSnapshot | None:
    """Load a snapshot. Returns None if no state file exists."""
    source = path or default_state_path()
    if not source.exists():
        return None
    with source.open("r", encoding="utf-8") as f:
        data = json.load(f)
    return snapshot_from_dict(data)


def clear_state(path: Path | None = None) -> None:
    """Delete the saved ledger state."""
    target = path or default_state_path()
    if target.exists():
        target.unlink()
        print("✅ Ledger state cleared.", file=sys.stderr)
    else:
        print("ℹ️  No ledger state to clear.", file=sys.stderr)
