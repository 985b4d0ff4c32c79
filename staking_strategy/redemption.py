"""Redemption modes of the staking vault.

The vault either releases assets immediately (`cooldownDuration == 0`) or only after a
cooldown has matured. `redemption_for` reads the duration once per operation and returns
the matching mode, so callers never branch on the duration themselves.
"""

from staking_strategy.interfaces import StakingVault


class ImmediateRedemption:
    """Direct ERC-4626 withdrawals."""

    cooldown = False

    def __init__(self, staking: StakingVault) -> None:
        self.staking = staking

    def available(self, holder: str) -> int:
        return self.staking.max_withdraw(holder)

    def realize(self, holder: str, amount: int) -> None:
        self.staking.withdraw(amount, holder, holder)

    def realize_all(self, holder: str) -> None:
        self.staking.withdraw(self.staking.max_withdraw(holder), holder, holder)


class CooldownRedemption:
    """Withdrawals through a previously requested, matured cooldown.

    `unstake` always releases the whole cooldown amount; partial draws are not possible.
    """

    cooldown = True

    def __init__(self, staking: StakingVault) -> None:
        self.staking = staking

    def available(self, holder: str) -> int:
        return self.staking.cooldowns(holder).underlying_amount

    def realize(self, holder: str, amount: int) -> None:  # pylint: disable=unused-argument
        self.staking.unstake(holder)

    def realize_all(self, holder: str) -> None:
        self.staking.unstake(holder)


RedemptionMode = ImmediateRedemption | CooldownRedemption


def redemption_for(staking: StakingVault) -> RedemptionMode:
    """Select the redemption mode from the vault's live cooldown duration."""
    if staking.cooldown_duration() > 0:
        return CooldownRedemption(staking)
    return ImmediateRedemption(staking)
