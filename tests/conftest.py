import pytest

from staking_strategy.simulation import SimEnvironment, build_environment

RECIPIENT = "0x00000000000000000000000000000000000000b0"
STRANGER = "0x00000000000000000000000000000000000000c0"
WEEK = 7 * 24 * 3600


def deposit(env: SimEnvironment, strategy, amount: int) -> int:
    """Transfer `amount` in from the aggregator and notify the strategy, like the aggregator does."""
    env.fund_aggregator(amount)
    env.transfer_in(amount)
    return strategy.on_deposit(amount)


def stake(env: SimEnvironment, strategy, amount: int) -> None:
    """Put `amount` straight into the staking position (threshold 0 commits immediately)."""
    old = strategy.deposit_threshold
    strategy.set_deposit_threshold(env.owner, 0)
    deposit(env, strategy, amount)
    strategy.set_deposit_threshold(env.owner, old)


def queue(env: SimEnvironment, strategy, amount: int) -> None:
    """Leave `amount` queued (threshold set out of reach for the call)."""
    old = strategy.deposit_threshold
    strategy.set_deposit_threshold(env.owner, env.wrapped.balance_of(env.strategy_address) + amount + 1)
    deposit(env, strategy, amount)
    strategy.set_deposit_threshold(env.owner, old)


@pytest.fixture
def env() -> SimEnvironment:
    return build_environment()


@pytest.fixture
def strategy(env):
    return env.make_strategy()


@pytest.fixture
def cooldown_setup():
    """Cooldown-mode strategy with 5 queued and a matured cooldown of 30."""
    env = build_environment()
    strategy = env.make_strategy()
    stake(env, strategy, 30)
    queue(env, strategy, 5)
    env.staking.set_cooldown_duration(WEEK)
    strategy.cooldown_assets(env.owner, 30)
    env.chain.advance(WEEK)
    return env, strategy
