"""In-memory reference environment for the strategy.

Implements the collaborator interfaces with plain dict ledgers: an ERC-20 style token, an
ERC-4626 staking vault with the sUSDe cooldown/unstake extension, a 1:1 wrap adapter, a
role registry and a native-currency ledger. `Chain.transaction()` snapshots every
registered component and restores it if the enclosed block raises, which gives strategy
operations the same all-or-nothing behaviour they have on-chain.
"""

import copy
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from staking_strategy.errors import ProtocolError
from staking_strategy.models import CooldownInfo
from staking_strategy.strategy import StakedStrategy


def _key(address: str) -> str:
    return str(address).lower()


class Chain:
    """Clock plus the list of components whose state takes part in transactions."""

    def __init__(self, timestamp: int = 1_700_000_000) -> None:
        self.timestamp = timestamp
        self._components: list = []

    def register(self, component):
        self._components.append(component)
        return component

    def advance(self, seconds: int) -> None:
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        self.timestamp += seconds

    @contextmanager
    def transaction(self) -> Iterator[None]:
        snapshot = [
            {name: copy.deepcopy(getattr(c, name)) for name in c.STATE_FIELDS} for c in self._components
        ]
        try:
            yield
        except Exception:
            for component, state in zip(self._components, snapshot, strict=True):
                for name, value in state.items():
                    setattr(component, name, value)
            raise


class SimToken:
    """Minimal ERC-20 ledger."""

    STATE_FIELDS = ("balances", "allowances", "total_supply")

    def __init__(self, chain: Chain, address: str, symbol: str) -> None:
        self.chain = chain
        self.address = address
        self.symbol = symbol
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}
        self.total_supply = 0
        # Called after every balance move as (sender, to, amount); lets tests model callback tokens.
        self.on_transfer: Callable[[str, str, int], None] | None = None
        chain.register(self)

    def balance_of(self, holder: str) -> int:
        return self.balances.get(_key(holder), 0)

    def mint(self, to: str, amount: int) -> None:
        self.balances[_key(to)] = self.balance_of(to) + amount
        self.total_supply += amount

    def burn(self, holder: str, amount: int) -> None:
        if self.balance_of(holder) < amount:
            raise ProtocolError(f"{self.symbol}: burn amount exceeds balance")
        self.balances[_key(holder)] = self.balance_of(holder) - amount
        self.total_supply -= amount

    def transfer(self, sender: str, to: str, amount: int) -> None:
        if amount < 0:
            raise ProtocolError(f"{self.symbol}: negative transfer")
        if self.balance_of(sender) < amount:
            raise ProtocolError(f"{self.symbol}: transfer amount exceeds balance")
        self.balances[_key(sender)] = self.balance_of(sender) - amount
        self.balances[_key(to)] = self.balance_of(to) + amount
        if self.on_transfer is not None:
            self.on_transfer(sender, to, amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self.allowances[(_key(owner), _key(spender))] = amount

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((_key(owner), _key(spender)), 0)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise ProtocolError(f"{self.symbol}: insufficient allowance")
        self.allowances[(_key(owner), _key(spender))] = allowed - amount
        self.transfer(owner, to, amount)


class SimStakingVault:
    """ERC-4626 vault with a cooldown silo, modelled on sUSDe.

    With `cooldown_duration == 0` assets leave through `withdraw`. Otherwise holders move
    assets into the silo with `cooldown_assets`/`cooldown_shares` and collect them with
    `unstake` once the cooldown has ended. A new cooldown request adds to the pending
    amount and restarts the timer.
    """

    STATE_FIELDS = ("shares", "total_shares", "_cooldowns", "_cooldown_duration")

    def __init__(self, chain: Chain, address: str, asset: SimToken, *, cooldown_duration: int = 0) -> None:
        self.chain = chain
        self.address = address
        self.silo = f"{address}:silo"
        self.underlying = asset
        self.shares: dict[str, int] = {}
        self.total_shares = 0
        self._cooldowns: dict[str, tuple[int, int]] = {}
        self._cooldown_duration = cooldown_duration
        chain.register(self)

    # Views

    def asset(self) -> str:
        return self.underlying.address

    def cooldown_duration(self) -> int:
        return self._cooldown_duration

    def set_cooldown_duration(self, duration: int) -> None:
        self._cooldown_duration = duration

    def cooldowns(self, holder: str) -> CooldownInfo:
        end, amount = self._cooldowns.get(_key(holder), (0, 0))
        return CooldownInfo(cooldown_end=end, underlying_amount=amount)

    def total_assets(self) -> int:
        return self.underlying.balance_of(self.address)

    def balance_of(self, holder: str) -> int:
        return self.shares.get(_key(holder), 0)

    def convert_to_shares(self, assets: int) -> int:
        return assets * (self.total_shares + 1) // (self.total_assets() + 1)

    def convert_to_assets(self, shares: int) -> int:
        return shares * (self.total_assets() + 1) // (self.total_shares + 1)

    def preview_withdraw(self, assets: int) -> int:
        numer = assets * (self.total_shares + 1)
        denom = self.total_assets() + 1
        return -(-numer // denom)

    def max_withdraw(self, holder: str) -> int:
        return self.convert_to_assets(self.balance_of(holder))

    # Rewards

    def distribute_rewards(self, amount: int) -> None:
        """Add yield: new assets without new shares."""
        self.underlying.mint(self.address, amount)

    # Mutations

    def deposit(self, assets: int, receiver: str) -> int:
        shares = self.convert_to_shares(assets)
        self.underlying.transfer_from(self.address, receiver, self.address, assets)
        self._mint_shares(receiver, shares)
        return shares

    def withdraw(self, assets: int, receiver: str, owner: str) -> int:
        if self._cooldown_duration > 0:
            raise ProtocolError("OperationNotAllowed: withdraw while cooldown is on")
        if assets > self.max_withdraw(owner):
            raise ProtocolError("ERC4626ExceededMaxWithdraw")
        shares = self.preview_withdraw(assets)
        self._burn_shares(owner, shares)
        self.underlying.transfer(self.address, receiver, assets)
        return shares

    def cooldown_assets(self, assets: int, owner: str) -> int:
        self._ensure_cooldown_on()
        if assets > self.max_withdraw(owner):
            raise ProtocolError("ExcessiveWithdrawAmount")
        shares = self.preview_withdraw(assets)
        self._start_cooldown(owner, shares, assets)
        return shares

    def cooldown_shares(self, shares: int, owner: str) -> int:
        self._ensure_cooldown_on()
        if shares > self.balance_of(owner):
            raise ProtocolError("ExcessiveRedeemAmount")
        assets = self.convert_to_assets(shares)
        self._start_cooldown(owner, shares, assets)
        return assets

    def unstake(self, receiver: str) -> None:
        end, amount = self._cooldowns.get(_key(receiver), (0, 0))
        if self.chain.timestamp < end and self._cooldown_duration != 0:
            raise ProtocolError("InvalidCooldown: cooldown has not ended")
        self._cooldowns[_key(receiver)] = (0, 0)
        self.underlying.transfer(self.silo, receiver, amount)

    def _ensure_cooldown_on(self) -> None:
        if self._cooldown_duration == 0:
            raise ProtocolError("OperationNotAllowed: cooldown is off")

    def _start_cooldown(self, owner: str, shares: int, assets: int) -> None:
        self._burn_shares(owner, shares)
        self.underlying.transfer(self.address, self.silo, assets)
        _, pending = self._cooldowns.get(_key(owner), (0, 0))
        self._cooldowns[_key(owner)] = (self.chain.timestamp + self._cooldown_duration, pending + assets)

    def _mint_shares(self, holder: str, shares: int) -> None:
        self.shares[_key(holder)] = self.balance_of(holder) + shares
        self.total_shares += shares

    def _burn_shares(self, holder: str, shares: int) -> None:
        if self.balance_of(holder) < shares:
            raise ProtocolError("ERC20InsufficientBalance: shares")
        self.shares[_key(holder)] = self.balance_of(holder) - shares
        self.total_shares -= shares


class SimWrapAdapter:
    """1:1 wrap adapter between the underlying asset and its wrapped form."""

    STATE_FIELDS = ()

    def __init__(self, chain: Chain, address: str, underlying: SimToken, wrapped: SimToken) -> None:
        self.chain = chain
        self.address = address
        self.underlying = underlying
        self.wrapped = wrapped
        chain.register(self)

    def underlying_asset(self) -> str:
        return self.underlying.address

    def wrap(self, sender: str, to: str, amount: int) -> None:
        self.underlying.transfer_from(self.address, sender, self.address, amount)
        self.wrapped.mint(to, amount)

    def unwrap(self, to: str, amount: int) -> None:
        # The caller unwraps its own balance.
        self.wrapped.burn(to, amount)
        self.underlying.transfer(self.address, to, amount)


class SimRoleRegistry:
    STATE_FIELDS = ("roles",)

    def __init__(self, chain: Chain) -> None:
        self.roles: set[tuple[str, bytes]] = set()
        chain.register(self)

    def grant(self, account: str, role: bytes) -> None:
        self.roles.add((_key(account), role))

    def revoke(self, account: str, role: bytes) -> None:
        self.roles.discard((_key(account), role))

    def has_role(self, account: str, role: bytes) -> bool:
        return (_key(account), role) in self.roles


class SimNativeLedger:
    STATE_FIELDS = ("balances",)

    def __init__(self, chain: Chain) -> None:
        self.balances: dict[str, int] = {}
        # Accounts that revert on receiving native currency.
        self.rejecting: set[str] = set()
        chain.register(self)

    def deal(self, holder: str, amount: int) -> None:
        self.balances[_key(holder)] = self.balance_of(holder) + amount

    def balance_of(self, holder: str) -> int:
        return self.balances.get(_key(holder), 0)

    def send(self, sender: str, to: str, amount: int) -> bool:
        if _key(to) in self.rejecting or self.balance_of(sender) < amount:
            return False
        self.balances[_key(sender)] = self.balance_of(sender) - amount
        self.balances[_key(to)] = self.balance_of(to) + amount
        return True


@dataclass
class SimEnvironment:
    chain: Chain
    underlying: SimToken
    wrapped: SimToken
    staking: SimStakingVault
    wrapper: SimWrapAdapter
    registry: SimRoleRegistry
    native: SimNativeLedger
    aggregator: str
    owner: str
    strategy_address: str

    def fund_aggregator(self, amount: int) -> None:
        """Mint wrapped asset to the aggregator together with the underlying that backs it."""
        self.wrapped.mint(self.aggregator, amount)
        self.underlying.mint(self.wrapper.address, amount)

    def transfer_in(self, amount: int) -> None:
        """Move wrapped asset from the aggregator to the strategy, as the aggregator does before `on_deposit`."""
        self.wrapped.transfer(self.aggregator, self.strategy_address, amount)

    def make_strategy(self, **kwargs) -> StakedStrategy:
        """Build a strategy bound to this environment, running every operation in a chain transaction."""
        return StakedStrategy(
            self.strategy_address,
            self.owner,
            asset=self.wrapped,
            underlying=self.underlying,
            staking=self.staking,
            wrapper=self.wrapper,
            registry=kwargs.pop("registry", self.registry),
            native=self.native,
            transaction=self.chain.transaction,
            **kwargs,
        )


def build_environment(
    *,
    cooldown_duration: int = 0,
    owner: str = "0x00000000000000000000000000000000000000a1",
    aggregator: str = "0x00000000000000000000000000000000000000a9",
    strategy_address: str = "0x00000000000000000000000000000000000005a7",
    timestamp: int = 1_700_000_000,
) -> SimEnvironment:
    """Wire up a fresh chain with USDe, wrapped USDe, sUSDe, the wrap adapter and a registry."""
    chain = Chain(timestamp=timestamp)
    underlying = SimToken(chain, "0x4c9edd5852cd905f086c759e8383e09bff1e68b3", "USDe")
    wrapped = SimToken(chain, "0x0000000000000000000000000000000000000e11", "wUSDe")
    staking = SimStakingVault(
        chain, "0x9d39a5de30e57443bff2a8307a4256c8797a3497", underlying, cooldown_duration=cooldown_duration
    )
    wrapper = SimWrapAdapter(chain, "0x0000000000000000000000000000000000000a0a", underlying, wrapped)
    return SimEnvironment(
        chain=chain,
        underlying=underlying,
        wrapped=wrapped,
        staking=staking,
        wrapper=wrapper,
        registry=SimRoleRegistry(chain),
        native=SimNativeLedger(chain),
        aggregator=aggregator,
        owner=owner,
        strategy_address=strategy_address,
    )
