"""Custody strategy between a vault aggregator and a cooldown-based staking vault.

The strategy holds the wrapped base asset. Deposits stay queued in that form until the
queued balance reaches `deposit_threshold`, then the whole queue is unwrapped and staked.
Withdrawals are served from the queued balance first and from the staking position for
the remainder, through whichever redemption mode the staking vault is in.

Balances are always read from the ledgers; the strategy keeps no counters of its own.
"""

from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager, contextmanager, nullcontext

from staking_strategy.constants import COOLDOWN_ADMIN_ROLE, PAUSER_ROLE, STRATEGY_DESCRIPTION, STRATEGY_NAME
from staking_strategy.errors import (
    ConfigurationError,
    CooldownNotAuthorized,
    DepositBlocked,
    InsufficientFunds,
    NotOwner,
    PauserNotAuthorized,
    ReentrantCall,
    TransferFailed,
    WithdrawBlocked,
)
from staking_strategy.formatters import same_address
from staking_strategy.interfaces import NativeLedger, RoleRegistry, StakingVault, TokenLedger, WrapAdapter
from staking_strategy.models import (
    ClusterUpdated,
    CooldownInfo,
    CooldownKind,
    CooldownRequested,
    DepositCommitted,
    DepositQueued,
    DepositThresholdUpdated,
    EmergencyExited,
    PauseDirection,
    PauseUpdated,
    StrategyEvent,
    StrategyStatus,
    Withdrawn,
)
from staking_strategy.redemption import RedemptionMode, redemption_for

Listener = Callable[[StrategyEvent], None]


class StakedStrategy:
    """Threshold-batched staking strategy with cooldown-aware redemptions."""

    def __init__(
        self,
        address: str,
        owner: str,
        *,
        asset: TokenLedger,
        underlying: TokenLedger,
        staking: StakingVault,
        wrapper: WrapAdapter,
        registry: RoleRegistry | None,
        native: NativeLedger | None = None,
        transaction: Callable[[], AbstractContextManager] | None = None,
        listeners: Iterable[Listener] = (),
    ) -> None:
        if registry is None:
            raise ConfigurationError("cluster registry must not be empty")
        wrapped_underlying = wrapper.underlying_asset()
        if not same_address(wrapped_underlying, staking.asset()):
            raise ConfigurationError(
                f"asset mismatch: wrapper unwraps to {wrapped_underlying}, staking vault takes {staking.asset()}"
            )
        if not same_address(underlying.address, wrapped_underlying):
            raise ConfigurationError(
                f"asset mismatch: underlying ledger is {underlying.address}, wrapper unwraps to {wrapped_underlying}"
            )

        self.address = address
        self.owner = owner
        self.asset = asset
        self.underlying = underlying
        self.staking = staking
        self.wrapper = wrapper
        self.registry = registry
        self.native = native

        self.deposit_threshold = 0
        self.deposit_paused = False
        self.withdraw_paused = False

        self.events: list[StrategyEvent] = []
        self._listeners = list(listeners)
        self._transaction = transaction or nullcontext
        self._pending: list[StrategyEvent] = []
        self._active = False

    # ------------------------------------------------------------------
    # Identity and views
    # ------------------------------------------------------------------

    def name(self) -> str:
        return STRATEGY_NAME

    def description(self) -> str:
        return STRATEGY_DESCRIPTION

    def queued_balance(self) -> int:
        """Wrapped asset held directly, not yet committed to staking."""
        return self.asset.balance_of(self.address)

    def redemption_mode(self) -> RedemptionMode:
        return redemption_for(self.staking)

    def available_from_pool(self) -> int:
        """Amount the staking position can release under the current mode."""
        return self.redemption_mode().available(self.address)

    def current_balance(self) -> int:
        """Total accounted value: queued balance plus the readable staking position."""
        return self.queued_balance() + self.available_from_pool()

    def pending_cooldown_amount(self) -> int:
        return self.staking.cooldowns(self.address).underlying_amount

    def immediate_withdrawable(self) -> int:
        return self.staking.max_withdraw(self.address)

    def cooldown_info(self) -> CooldownInfo:
        return self.staking.cooldowns(self.address)

    def harvestable(self) -> int:
        """Amount realizable from the staking vault right now (cooldown amount or max withdraw)."""
        return self.available_from_pool()

    def status(self) -> StrategyStatus:
        """Snapshot of balances, mode and gates for reporting."""
        duration = self.staking.cooldown_duration()
        mode = redemption_for(self.staking)
        queued = self.queued_balance()
        available = mode.available(self.address)
        return StrategyStatus(
            name=self.name(),
            address=self.address,
            cooldown_mode=mode.cooldown,
            cooldown_duration=duration,
            queued_balance=queued,
            available_from_pool=available,
            current_balance=queued + available,
            deposit_threshold=self.deposit_threshold,
            deposit_paused=self.deposit_paused,
            withdraw_paused=self.withdraw_paused,
            cooldown_end=self.staking.cooldowns(self.address).cooldown_end,
        )

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Aggregator hooks
    # ------------------------------------------------------------------

    def on_deposit(self, amount: int) -> int:
        """
        Handle an aggregator deposit of `amount` wrapped asset.

        `amount` is informational; the queued balance is read from the ledger. Returns the
        amount committed to staking (0 when the deposit stays queued).
        """
        _require_non_negative("amount", amount)
        with self._atomic(exclusive=True):
            if self.deposit_paused:
                raise DepositBlocked("deposits are paused")

            queued = self.queued_balance()
            if queued == 0 or queued < self.deposit_threshold:
                self._emit(DepositQueued(amount))
                return 0

            unwrapped = self._measure_underlying(lambda: self.wrapper.unwrap(self.address, queued))
            self.underlying.approve(self.address, self.staking.address, unwrapped)
            self.staking.deposit(unwrapped, self.address)
            self._emit(DepositCommitted(unwrapped))
            return unwrapped

    def on_withdraw(self, recipient: str, amount: int) -> None:
        """
        Deliver exactly `amount` wrapped asset to `recipient`.

        Draws on the queued balance first; only the shortfall is taken from the staking vault.
        In cooldown mode the whole matured cooldown is unstaked and the surplus stays queued.
        """
        _require_non_negative("amount", amount)
        with self._atomic(exclusive=True):
            if self.withdraw_paused:
                raise WithdrawBlocked("withdrawals are paused")

            mode = redemption_for(self.staking)
            available = mode.available(self.address)
            held = self.queued_balance()
            if held + available < amount:
                raise InsufficientFunds(amount, held + available)

            pool_draw = amount - held if amount > held else 0
            if pool_draw > 0:
                realized = self._measure_underlying(lambda: mode.realize(self.address, pool_draw))
                self._wrap(realized)

            self.asset.transfer(self.address, recipient, amount)
            self._emit(Withdrawn(recipient, amount))

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def set_deposit_threshold(self, caller: str, amount: int) -> None:
        self._require_owner(caller)
        _require_non_negative("threshold", amount)
        with self._atomic(exclusive=False):
            old = self.deposit_threshold
            self.deposit_threshold = amount
            self._emit(DepositThresholdUpdated(old, amount))

    def set_cluster(self, caller: str, registry: RoleRegistry | None) -> None:
        self._require_owner(caller)
        if registry is None:
            raise ConfigurationError("cluster registry must not be empty")
        with self._atomic(exclusive=False):
            old = self.registry
            self.registry = registry
            self._emit(ClusterUpdated(old, registry))

    def set_pause(self, caller: str, direction: PauseDirection | str, value: bool) -> None:
        """Open or close one gate. Allowed for the owner and PAUSER_ROLE holders."""
        if not self._is_owner(caller) and not self.registry.has_role(caller, PAUSER_ROLE):
            raise PauserNotAuthorized(f"{caller} may not change pause state")
        with self._atomic(exclusive=False):
            self._set_pause(PauseDirection(direction), bool(value))

    def cooldown_assets(self, caller: str, assets: int) -> int:
        return self.request_cooldown(caller, CooldownKind.ASSETS, assets)

    def cooldown_shares(self, caller: str, shares: int) -> int:
        return self.request_cooldown(caller, CooldownKind.SHARES, shares)

    def request_cooldown(self, caller: str, kind: CooldownKind | str, quantity: int) -> int:
        """Forward a cooldown request to the staking vault. Allowed for the owner and COOLDOWN_ADMIN_ROLE holders."""
        if not self._is_owner(caller) and not self.registry.has_role(caller, COOLDOWN_ADMIN_ROLE):
            raise CooldownNotAuthorized(f"{caller} may not request a cooldown")
        _require_non_negative("quantity", quantity)
        kind = CooldownKind(kind)
        with self._atomic(exclusive=False):
            if kind is CooldownKind.ASSETS:
                result = self.staking.cooldown_assets(quantity, self.address)
            else:
                result = self.staking.cooldown_shares(quantity, self.address)
            self._emit(CooldownRequested(kind, quantity))
            return result

    def emergency_withdraw(self, caller: str) -> int:
        """
        Close both gates and pull the whole staking position back into the held asset.

        Nothing leaves the strategy. Returns the amount realized from the staking vault.
        """
        self._require_owner(caller)
        with self._atomic(exclusive=True):
            self._set_pause(PauseDirection.DEPOSIT, True)
            self._set_pause(PauseDirection.WITHDRAW, True)

            mode = redemption_for(self.staking)
            realized = self._measure_underlying(lambda: mode.realize_all(self.address))
            self._wrap(realized)
            self._emit(EmergencyExited(realized))
            return realized

    def rescue_eth(self, caller: str, to: str) -> int:
        """Send the strategy's whole native balance to `to`."""
        self._require_owner(caller)
        if self.native is None:
            raise ConfigurationError("no native ledger configured")
        with self._atomic(exclusive=False):
            amount = self.native.balance_of(self.address)
            if not self.native.send(self.address, to, amount):
                raise TransferFailed(f"native transfer of {amount} to {to} failed")
            return amount

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_owner(self, caller: str) -> bool:
        return same_address(caller, self.owner)

    def _require_owner(self, caller: str) -> None:
        if not self._is_owner(caller):
            raise NotOwner(f"{caller} is not the owner")

    def _set_pause(self, direction: PauseDirection, value: bool) -> None:
        if direction is PauseDirection.DEPOSIT:
            old = self.deposit_paused
            self.deposit_paused = value
        else:
            old = self.withdraw_paused
            self.withdraw_paused = value
        self._emit(PauseUpdated(direction, old, value))

    def _measure_underlying(self, action: Callable[[], object]) -> int:
        """Run `action` and return how much underlying it delivered to the strategy."""
        before = self.underlying.balance_of(self.address)
        action()
        return self.underlying.balance_of(self.address) - before

    def _wrap(self, amount: int) -> None:
        if amount <= 0:
            return
        self.underlying.approve(self.address, self.wrapper.address, amount)
        self.wrapper.wrap(self.address, self.address, amount)

    def _emit(self, event: StrategyEvent) -> None:
        self._pending.append(event)

    @contextmanager
    def _atomic(self, *, exclusive: bool):
        """
        Run one operation all-or-nothing.

        Local state and pending signals are restored if anything raises; ledger state is
        restored by the environment's `transaction()` context. Signals are published only
        after the operation completes. Exclusive operations may not be entered while any
        other operation is running.
        """
        if self._active:
            if exclusive:
                raise ReentrantCall("re-entrant call into the strategy")
            yield
            return

        saved = (self.deposit_threshold, self.deposit_paused, self.withdraw_paused, self.registry)
        self._active = True
        try:
            with self._transaction():
                yield
        except Exception:
            self.deposit_threshold, self.deposit_paused, self.withdraw_paused, self.registry = saved
            self._pending = []
            raise
        finally:
            self._active = False

        published, self._pending = self._pending, []
        for event in published:
            self.events.append(event)
            for listener in self._listeners:
                listener(event)


def _require_non_negative(name: str, value: int) -> None:
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
