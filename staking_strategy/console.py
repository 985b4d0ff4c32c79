"""Console output formatting."""

import sys
from collections.abc import Iterable
from datetime import datetime, timezone

from staking_strategy.formatters import format_amount, format_duration, short_address
from staking_strategy.models import (
    ClusterUpdated,
    CooldownRequested,
    DepositCommitted,
    DepositQueued,
    DepositThresholdUpdated,
    EmergencyExited,
    PauseUpdated,
    StrategyEvent,
    StrategyStatus,
    Withdrawn,
)


def gate_label(paused: bool) -> str:
    return "🔴 paused" if paused else "🟢 open"


def print_status(status: StrategyStatus, *, symbol: str = "", decimals: int = 18, now: int | None = None) -> None:
    """Print a strategy status report."""

    def amount(value: int) -> str:
        return format_amount(value, symbol=symbol, decimals=decimals)

    print("=" * 70)
    print(f"📊 {status.name.upper()}")
    print(f"   {status.address}")
    print("=" * 70)

    if status.cooldown_mode:
        print(f"   ⏳ Mode: cooldown ({format_duration(status.cooldown_duration)})")
    else:
        print("   ⚡ Mode: immediate withdrawals")
    print("   " + "─" * 50)
    print(f"   💰 Current balance:      {amount(status.current_balance)}")
    print(f"      • Queued (unstaked):  {amount(status.queued_balance)}")
    pool_label = "In cooldown" if status.cooldown_mode else "Withdrawable"
    print(f"      • {pool_label + ':':<20} {amount(status.available_from_pool)}")

    if status.cooldown_end:
        end = datetime.fromtimestamp(status.cooldown_end, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        if now is not None and now < status.cooldown_end:
            print(f"   🕐 Cooldown ends {end} (in {format_duration(status.cooldown_end - now)})")
        else:
            print(f"   🕐 Cooldown ended {end}")

    print(f"   📦 Deposit threshold:    {amount(status.deposit_threshold)}")
    print(f"   🚦 Deposits:  {gate_label(status.deposit_paused)}")
    print(f"   🚦 Withdraws: {gate_label(status.withdraw_paused)}")
    print("")


def describe_event(event: StrategyEvent, *, symbol: str = "", decimals: int = 18) -> str:
    """One-line description of a strategy signal."""

    def amount(value: int) -> str:
        return format_amount(value, symbol=symbol, decimals=decimals)

    if isinstance(event, DepositQueued):
        return f"📥 Queued {amount(event.amount)}"
    if isinstance(event, DepositCommitted):
        return f"🔒 Committed {amount(event.amount)} to staking"
    if isinstance(event, Withdrawn):
        return f"📤 Withdrew {amount(event.amount)} to {short_address(event.recipient)}"
    if isinstance(event, DepositThresholdUpdated):
        return f"📦 Deposit threshold {amount(event.old_threshold)} → {amount(event.new_threshold)}"
    if isinstance(event, PauseUpdated):
        return f"🚦 {event.direction.value.capitalize()} gate {gate_label(event.old_value)} → {gate_label(event.new_value)}"
    if isinstance(event, CooldownRequested):
        return f"⏳ Cooldown requested: {event.quantity} {event.kind.value}"
    if isinstance(event, ClusterUpdated):
        return "🔑 Cluster registry updated"
    if isinstance(event, EmergencyExited):
        return f"🚨 Emergency exit realized {amount(event.realized)}"
    return repr(event)


def print_events(events: Iterable[StrategyEvent], *, symbol: str = "", decimals: int = 18) -> None:
    print("🔔 Signals:")
    print("─" * 70)
    for event in events:
        print(f"   {describe_event(event, symbol=symbol, decimals=decimals)}")
    print("")


def print_issues(title: str, issues: Iterable[str]) -> None:
    """Print warnings on stderr."""
    issues = list(issues)
    if not issues:
        return
    print(f"⚠️  {title}:", file=sys.stderr)
    for issue in issues:
        print(f"   {issue}", file=sys.stderr)
