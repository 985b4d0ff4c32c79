"""Data models for the staking strategy."""

from dataclasses import dataclass
from enum import Enum


class PauseDirection(str, Enum):
    """Which path a pause gate controls."""

    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


class CooldownKind(str, Enum):
    """How a cooldown request is denominated."""

    ASSETS = "assets"
    SHARES = "shares"


@dataclass(frozen=True)
class CooldownInfo:
    """Cooldown ledger entry held by the staking vault for one holder."""

    cooldown_end: int
    # Underlying amount already moved out of the position and waiting for `unstake`.
    underlying_amount: int


@dataclass(frozen=True)
class StrategyStatus:
    """Point-in-time view of the strategy, used for reporting."""

    name: str
    address: str
    cooldown_mode: bool
    cooldown_duration: int
    queued_balance: int
    available_from_pool: int
    current_balance: int
    deposit_threshold: int
    deposit_paused: bool
    withdraw_paused: bool
    cooldown_end: int


# Signals emitted by the strategy. Each one is appended to `StakedStrategy.events`
# and handed to every registered listener.


@dataclass(frozen=True)
class DepositThresholdUpdated:
    old_threshold: int
    new_threshold: int


@dataclass(frozen=True)
class DepositQueued:
    amount: int


@dataclass(frozen=True)
class DepositCommitted:
    amount: int


@dataclass(frozen=True)
class Withdrawn:
    recipient: str
    amount: int


@dataclass(frozen=True)
class ClusterUpdated:
    old_cluster: object
    new_cluster: object


@dataclass(frozen=True)
class PauseUpdated:
    direction: PauseDirection
    old_value: bool
    new_value: bool


@dataclass(frozen=True)
class CooldownRequested:
    kind: CooldownKind
    quantity: int


@dataclass(frozen=True)
class EmergencyExited:
    realized: int


StrategyEvent = (
    DepositThresholdUpdated
    | DepositQueued
    | DepositCommitted
    | Withdrawn
    | ClusterUpdated
    | PauseUpdated
    | CooldownRequested
    | EmergencyExited
)
