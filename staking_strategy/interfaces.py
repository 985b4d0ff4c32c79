"""Interfaces of the external collaborators the strategy talks to.

Write methods take the acting address explicitly; adapters send the call from it.
"""

from typing import Protocol

from staking_strategy.models import CooldownInfo


class TokenLedger(Protocol):
    address: str

    def balance_of(self, holder: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> None: ...

    def approve(self, owner: str, spender: str, amount: int) -> None: ...


class NativeLedger(Protocol):
    def balance_of(self, holder: str) -> int: ...

    def send(self, sender: str, to: str, amount: int) -> bool:
        """Send native currency. Returns False if the recipient rejected it."""
        ...


class StakingVault(Protocol):
    address: str

    def asset(self) -> str: ...

    def cooldown_duration(self) -> int: ...

    def cooldowns(self, holder: str) -> CooldownInfo: ...

    def max_withdraw(self, holder: str) -> int: ...

    def deposit(self, assets: int, receiver: str) -> int: ...

    def withdraw(self, assets: int, receiver: str, owner: str) -> int: ...

    def cooldown_assets(self, assets: int, owner: str) -> int: ...

    def cooldown_shares(self, shares: int, owner: str) -> int: ...

    def unstake(self, receiver: str) -> None: ...


class WrapAdapter(Protocol):
    address: str

    def underlying_asset(self) -> str: ...

    def wrap(self, sender: str, to: str, amount: int) -> None: ...

    def unwrap(self, to: str, amount: int) -> None: ...


class RoleRegistry(Protocol):
    def has_role(self, account: str, role: bytes) -> bool: ...
