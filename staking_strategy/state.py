"""Persistence of the strategy's local settings between CLI runs.

Threshold and pause gates live in the strategy object, not on-chain; the CLI keeps them in
one small JSON file per strategy address.
"""

import json
import os
import shutil
import sys
from pathlib import Path
from typing import Any

from staking_strategy.constants import STATE_DIR_NAME, STATE_VERSION
from staking_strategy.strategy import StakedStrategy


def get_state_dir() -> Path:
    """Get the state directory path. Uses XDG_STATE_HOME if available, otherwise ~/.local/state."""
    state_home = os.getenv("XDG_STATE_HOME")
    if state_home:
        base = Path(state_home)
    else:
        base = Path.home() / ".local" / "state"
    state_dir = base / STATE_DIR_NAME
    state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir


def state_file(strategy_address: str) -> Path:
    return get_state_dir() / f"{strategy_address.lower()}.json"


def clear_state() -> None:
    """Remove all persisted strategy settings."""
    state_dir = get_state_dir()
    if state_dir.exists():
        shutil.rmtree(state_dir)
        print("✅ Strategy state cleared.", file=sys.stderr)
    else:
        print("ℹ️  State directory does not exist (nothing to clear).", file=sys.stderr)


def load_state(strategy_address: str) -> dict[str, Any] | None:
    """Load persisted settings. Returns None if missing or written by another state version."""
    path = state_file(strategy_address)
    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict) or data.get("version") != STATE_VERSION:
        print(f"⚠️  Ignoring state file with unexpected format: {path}", file=sys.stderr)
        return None
    return data


def save_state(strategy: StakedStrategy) -> Path:
    """Persist threshold and pause gates of `strategy`."""
    path = state_file(strategy.address)
    data = {
        "version": STATE_VERSION,
        "deposit_threshold": strategy.deposit_threshold,
        "deposit_paused": strategy.deposit_paused,
        "withdraw_paused": strategy.withdraw_paused,
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    return path


def apply_state(strategy: StakedStrategy, data: dict[str, Any] | None) -> None:
    """Restore persisted settings onto a freshly built strategy (no signals, no authorization)."""
    if not data:
        return
    strategy.deposit_threshold = int(data.get("deposit_threshold", 0))
    strategy.deposit_paused = bool(data.get("deposit_paused", False))
    strategy.withdraw_paused = bool(data.get("withdraw_paused", False))
