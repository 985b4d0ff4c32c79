"""Replay of JSON scenarios against the in-memory environment.

A scenario file looks like:

    {
      "cooldown_duration": 0,
      "deposit_threshold": 100,
      "roles": {"0x...": ["pauser"]},
      "steps": [
        {"op": "deposit", "amount": 50, "expect": {"queued_balance": 50}},
        {"op": "withdraw", "to": "0x...", "amount": 500, "expect_error": "InsufficientFunds"}
      ]
    }

Amounts are raw integers (hex strings and "1e18" style strings are accepted too).
"""

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tqdm import tqdm

from staking_strategy.constants import COOLDOWN_ADMIN_ROLE, PAUSER_ROLE
from staking_strategy.errors import StrategyError
from staking_strategy.formatters import as_int
from staking_strategy.models import StrategyEvent, StrategyStatus
from staking_strategy.simulation import SimEnvironment, build_environment
from staking_strategy.strategy import StakedStrategy
from staking_strategy.validation import validate_after_deposit, validate_conservation, validate_status

ROLE_NAMES = {
    "pauser": PAUSER_ROLE,
    "cooldown_admin": COOLDOWN_ADMIN_ROLE,
}

# Operations whose effect on the accounted balance is fully described by their in/out flow.
CONSERVING_OPS = {"deposit", "withdraw", "emergency"}


class ScenarioError(ValueError):
    """Malformed scenario file or step."""


@dataclass
class StepFailure:
    index: int
    op: str
    message: str


@dataclass
class ScenarioResult:
    status: StrategyStatus
    events: list[StrategyEvent] = field(default_factory=list)
    failures: list[StepFailure] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    steps_run: int = 0
    # Simulated chain time after the last step.
    timestamp: int = 0

    @property
    def ok(self) -> bool:
        return not self.failures and not self.issues


def load_scenario(path: str | Path) -> dict[str, Any]:
    """Load a scenario JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ScenarioError("Unexpected scenario format (expected JSON object)")
    if not isinstance(data.get("steps"), list):
        raise ScenarioError("Scenario must contain a 'steps' list")
    return data


def setup_environment(scenario: dict[str, Any]) -> tuple[SimEnvironment, StakedStrategy]:
    """Build the simulated chain and strategy described by the scenario header."""
    env = build_environment(cooldown_duration=as_int(scenario.get("cooldown_duration")))
    strategy = env.make_strategy()

    threshold = as_int(scenario.get("deposit_threshold"))
    if threshold:
        strategy.set_deposit_threshold(env.owner, threshold)

    for account, roles in (scenario.get("roles") or {}).items():
        for role in roles:
            if role not in ROLE_NAMES:
                raise ScenarioError(f"Unknown role: {role}")
            env.registry.grant(account, ROLE_NAMES[role])

    native = as_int(scenario.get("native_balance"))
    if native:
        env.native.deal(env.strategy_address, native)

    return env, strategy


def run_step(env: SimEnvironment, strategy: StakedStrategy, step: dict[str, Any]) -> tuple[int, int]:
    """
    Execute one step.

    Returns (inflow, outflow) of accounted balance caused by the step. A deposit committed
    while the vault is in cooldown mode counts as an outflow, because it leaves the accounted
    balance for staked shares.
    """
    op = step.get("op")
    caller = step.get("caller", env.owner)

    if op == "deposit":
        amount = as_int(step.get("amount"))
        env.fund_aggregator(amount)
        env.transfer_in(amount)
        committed = strategy.on_deposit(amount)
        if committed and strategy.redemption_mode().cooldown:
            # Staked shares are not part of the accounted balance while the vault is in cooldown mode.
            return amount, committed
        return amount, 0
    if op == "withdraw":
        amount = as_int(step.get("amount"))
        strategy.on_withdraw(step.get("to", env.aggregator), amount)
        return 0, amount
    if op == "set_threshold":
        strategy.set_deposit_threshold(caller, as_int(step.get("amount")))
    elif op == "pause":
        strategy.set_pause(caller, step.get("direction", "deposit"), bool(step.get("value", True)))
    elif op == "cooldown":
        strategy.request_cooldown(caller, step.get("kind", "assets"), as_int(step.get("quantity")))
    elif op == "advance":
        env.chain.advance(as_int(step.get("seconds")))
    elif op == "set_cooldown_duration":
        env.staking.set_cooldown_duration(as_int(step.get("seconds")))
    elif op == "rewards":
        env.staking.distribute_rewards(as_int(step.get("amount")))
    elif op == "emergency":
        strategy.emergency_withdraw(caller)
    elif op == "deal_native":
        env.native.deal(env.strategy_address, as_int(step.get("amount")))
    elif op == "rescue_eth":
        strategy.rescue_eth(caller, step.get("to", caller))
    elif op == "grant_role":
        role = step.get("role")
        if role not in ROLE_NAMES:
            raise ScenarioError(f"Unknown role: {role}")
        env.registry.grant(step.get("account", caller), ROLE_NAMES[role])
    elif op == "revoke_role":
        role = step.get("role")
        if role not in ROLE_NAMES:
            raise ScenarioError(f"Unknown role: {role}")
        env.registry.revoke(step.get("account", caller), ROLE_NAMES[role])
    else:
        raise ScenarioError(f"Unknown op: {op!r}")
    return 0, 0


def check_expectations(status: StrategyStatus, expect: dict[str, Any]) -> list[str]:
    """Compare status fields with the step's `expect` block."""
    mismatches: list[str] = []
    for name, expected in expect.items():
        if not hasattr(status, name):
            raise ScenarioError(f"Unknown status field in expect: {name}")
        actual = getattr(status, name)
        if isinstance(actual, bool):
            expected = bool(expected)
        elif isinstance(actual, int):
            expected = as_int(expected)
        if actual != expected:
            mismatches.append(f"{name}: expected {expected}, got {actual}")
    return mismatches


def run_scenario(scenario: dict[str, Any], *, progress: bool = True) -> ScenarioResult:
    """Replay every step, collecting signals, failures and invariant issues."""
    env, strategy = setup_environment(scenario)
    events: list[StrategyEvent] = []
    strategy.add_listener(events.append)

    failures: list[StepFailure] = []
    issues: list[str] = []
    steps = scenario["steps"]

    with tqdm(steps, desc="▶️  Replaying scenario", unit="step", file=sys.stderr, disable=not progress) as pbar:
        for index, step in enumerate(pbar):
            op = str(step.get("op"))
            pbar.set_postfix(op=op)
            expected_error = step.get("expect_error")
            before = strategy.current_balance()

            try:
                # The aggregator's transfer and the strategy call succeed or fail together.
                with env.chain.transaction():
                    inflow, outflow = run_step(env, strategy, step)
            except (StrategyError, ValueError) as ex:
                if isinstance(ex, ScenarioError):
                    raise
                if expected_error != type(ex).__name__:
                    failures.append(StepFailure(index, op, f"{type(ex).__name__}: {ex}"))
                continue

            if expected_error:
                failures.append(StepFailure(index, op, f"expected {expected_error}, but the step succeeded"))
                continue

            status = strategy.status()
            context = f"step {index} ({op}): "
            issues.extend(validate_status(status, context=context))
            if op in CONSERVING_OPS:
                issues.extend(
                    validate_conservation(
                        before, status.current_balance, inflow=inflow, outflow=outflow, context=context
                    )
                )
            if op == "deposit":
                issues.extend(validate_after_deposit(status, context=context))

            mismatches = check_expectations(status, step.get("expect") or {})
            if mismatches:
                failures.append(StepFailure(index, op, "; ".join(mismatches)))

    return ScenarioResult(
        status=strategy.status(),
        events=events,
        failures=failures,
        issues=issues,
        steps_run=len(steps),
        timestamp=env.chain.timestamp,
    )
