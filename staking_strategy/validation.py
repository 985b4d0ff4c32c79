"""Validation of strategy accounting invariants."""

from staking_strategy.models import StrategyStatus

# Share/asset conversions in the staking vault round down; allow a few wei of drift per step.
DEFAULT_ROUNDING_TOLERANCE = 2


def validate_conservation(
    before: int,
    after: int,
    *,
    inflow: int = 0,
    outflow: int = 0,
    tolerance: int = DEFAULT_ROUNDING_TOLERANCE,
    context: str = "",
    warn_only: bool = True,
) -> list[str]:
    """
    Check that the accounted balance moved only by the net flow of the operation.

    Returns list of warnings. If warn_only=False, raises ValueError instead.
    """
    issues: list[str] = []
    expected = before + inflow - outflow
    if abs(after - expected) > tolerance:
        msg = (
            f"{context}balance not conserved: before={before} + in={inflow} - out={outflow} "
            f"= {expected}, but current balance is {after}"
        )
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)
    return issues


def validate_status(status: StrategyStatus, *, context: str = "", warn_only: bool = True) -> list[str]:
    """
    Validate a status snapshot.

    Checks that the reported current balance is the sum of its parts and that no
    component is negative.
    """
    issues: list[str] = []

    if status.current_balance != status.queued_balance + status.available_from_pool:
        msg = (
            f"{context}current balance {status.current_balance} != queued {status.queued_balance} "
            f"+ pool {status.available_from_pool}"
        )
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    non_negative_fields = {
        "queuedBalance": status.queued_balance,
        "availableFromPool": status.available_from_pool,
        "depositThreshold": status.deposit_threshold,
        "cooldownDuration": status.cooldown_duration,
    }
    for name, value in non_negative_fields.items():
        if value < 0:
            msg = f"{context}negative {name}: {value}"
            issues.append(msg)
            if not warn_only:
                raise ValueError(msg)

    return issues


def validate_after_deposit(status: StrategyStatus, *, context: str = "", warn_only: bool = True) -> list[str]:
    """
    After a successful deposit call the queue is either empty (committed) or below the threshold.
    """
    issues: list[str] = []
    if status.queued_balance != 0 and status.queued_balance >= status.deposit_threshold:
        msg = (
            f"{context}queued balance {status.queued_balance} reached threshold "
            f"{status.deposit_threshold} but was not committed"
        )
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)
    return issues
