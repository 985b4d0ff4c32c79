"""Threshold-batched staking strategy with cooldown-aware redemptions."""

from typing import NoReturn

__version__ = "0.1.0"


def _entry_point() -> NoReturn:
    """Entry point for the staking-strategy script."""
    import sys

    from staking_strategy.cli import main

    raise SystemExit(main(sys.argv[1:]))


def _clear_state_entry_point() -> NoReturn:
    """Entry point for clearing persisted strategy settings."""
    from staking_strategy.state import clear_state

    clear_state()
    raise SystemExit(0)
