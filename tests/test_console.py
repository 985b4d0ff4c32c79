from conftest import WEEK, stake

from staking_strategy.console import describe_event, print_events, print_issues, print_status
from staking_strategy.models import (
    CooldownKind,
    CooldownRequested,
    DepositCommitted,
    DepositQueued,
    DepositThresholdUpdated,
    EmergencyExited,
    PauseDirection,
    PauseUpdated,
    Withdrawn,
)


def test_describe_event():
    assert describe_event(DepositQueued(50), decimals=0) == "📥 Queued 50"
    assert describe_event(DepositCommitted(10**18), symbol="wUSDe") == "🔒 Committed 1 wUSDe to staking"
    assert (
        describe_event(Withdrawn("0x4c9edd5852cd905f086c759e8383e09bff1e68b3", 3), decimals=0)
        == "📤 Withdrew 3 to 0x4c9edd58...1e68b3"
    )
    assert describe_event(DepositThresholdUpdated(0, 100), decimals=0) == "📦 Deposit threshold 0 → 100"
    assert (
        describe_event(PauseUpdated(PauseDirection.DEPOSIT, False, True))
        == "🚦 Deposit gate 🟢 open → 🔴 paused"
    )
    assert describe_event(CooldownRequested(CooldownKind.SHARES, 7)) == "⏳ Cooldown requested: 7 shares"
    assert describe_event(EmergencyExited(200), decimals=0) == "🚨 Emergency exit realized 200"


def test_print_events(capsys):
    print_events([DepositQueued(1), DepositCommitted(2)], decimals=0)
    out = capsys.readouterr().out
    assert "Queued 1" in out
    assert out.index("Queued 1") < out.index("Committed 2")


def test_print_status_immediate(env, strategy, capsys):
    stake(env, strategy, 60)
    print_status(strategy.status(), decimals=0)
    out = capsys.readouterr().out
    assert "STAKED USDE STRATEGY" in out
    assert "immediate withdrawals" in out
    assert "Withdrawable:" in out
    assert "Cooldown" not in out


def test_print_status_pending_cooldown(env, strategy, capsys):
    stake(env, strategy, 60)
    env.staking.set_cooldown_duration(WEEK)
    strategy.cooldown_assets(env.owner, 60)
    print_status(strategy.status(), decimals=0, now=env.chain.timestamp)
    out = capsys.readouterr().out
    assert "cooldown (7d 0h)" in out
    assert "In cooldown:" in out
    assert "(in 7d 0h)" in out


def test_print_issues_goes_to_stderr(capsys):
    print_issues("Invariant warnings", [])
    assert capsys.readouterr().err == ""
    print_issues("Invariant warnings", ["step 1: drift"])
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "step 1: drift" in captured.err
