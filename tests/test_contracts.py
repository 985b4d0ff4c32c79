import pytest
from web3 import Web3
from web3.exceptions import ContractLogicError

from staking_strategy.contracts import (
    Web3NativeLedger,
    Web3RoleRegistry,
    Web3StakingVault,
    Web3Token,
    Web3WrapAdapter,
    connect_strategy,
    parse_cooldown,
)
from staking_strategy.errors import ConfigurationError, ProtocolError
from staking_strategy.models import CooldownInfo

STRATEGY = "0x00000000000000000000000000000000000005a7"
OWNER = "0x00000000000000000000000000000000000000a1"
USDE = "0x4c9edd5852cd905f086c759e8383e09bff1e68b3"
WUSDE = "0x0000000000000000000000000000000000000e11"
SUSDE = "0x9d39a5de30e57443bff2a8307a4256c8797a3497"
WRAPPER = "0x0000000000000000000000000000000000000a0a"
REGISTRY = "0x00000000000000000000000000000000000000f1"


class FakeBackend:
    """Records calls and transactions; answers calls from `responses[(address, fn_name)]`."""

    def __init__(self):
        self.responses = {}
        self.calls = []
        self.sent = []
        self.receipt_status = 1

    def respond(self, address, fn_name, value):
        self.responses[(Web3.to_checksum_address(address), fn_name)] = value


class FakeFunction:
    def __init__(self, backend, address, name, args):
        self.backend = backend
        self.address = address
        self.name = name
        self.args = args

    def call(self, tx_params=None, block_identifier="latest"):
        self.backend.calls.append((self.address, self.name, self.args, tx_params, block_identifier))
        value = self.backend.responses.get((self.address, self.name))
        if isinstance(value, Exception):
            raise value
        return value(*self.args) if callable(value) else value

    def transact(self, tx_params):
        self.backend.sent.append((self.address, self.name, self.args, tx_params))
        return b"\x01" * 32


class FakeFunctions:
    def __init__(self, backend, address):
        self._backend = backend
        self._address = address

    def __getattr__(self, name):
        return lambda *args: FakeFunction(self._backend, self._address, name, args)


class FakeContract:
    def __init__(self, backend, address):
        self.functions = FakeFunctions(backend, address)


class FakeEth:
    def __init__(self, backend):
        self.backend = backend
        self.balances = {}
        self.native_error = None

    def contract(self, address, abi):
        assert abi, "adapters must pass an ABI"
        return FakeContract(self.backend, address)

    def wait_for_transaction_receipt(self, tx_hash, timeout):
        return {"status": self.backend.receipt_status, "transactionHash": tx_hash}

    def get_balance(self, address):
        return self.balances.get(address, 0)

    def send_transaction(self, tx):
        if self.native_error is not None:
            raise self.native_error
        self.backend.sent.append((None, "send", (), tx))
        return b"\x02" * 32


class FakeWeb3:
    to_checksum_address = staticmethod(Web3.to_checksum_address)

    def __init__(self):
        self.backend = FakeBackend()
        self.eth = FakeEth(self.backend)


@pytest.fixture
def w3():
    return FakeWeb3()


@pytest.mark.parametrize(
    ("entry", "expected"),
    [
        ((1700000000, 25), CooldownInfo(1700000000, 25)),
        ([0, 0], CooldownInfo(0, 0)),
        ({"cooldownEnd": "0x10", "underlyingAmount": "5"}, CooldownInfo(16, 5)),
        ((), CooldownInfo(0, 0)),
    ],
)
def test_parse_cooldown(entry, expected):
    assert parse_cooldown(entry) == expected


def test_staking_vault_reads(w3):
    w3.backend.respond(SUSDE, "cooldownDuration", 604800)
    w3.backend.respond(SUSDE, "cooldowns", (1700604800, 30))
    w3.backend.respond(SUSDE, "maxWithdraw", 123)
    w3.backend.respond(SUSDE, "asset", Web3.to_checksum_address(USDE))

    vault = Web3StakingVault(w3, SUSDE, block_identifier=19_000_000)
    assert vault.cooldown_duration() == 604800
    assert vault.cooldowns(STRATEGY) == CooldownInfo(1700604800, 30)
    assert vault.max_withdraw(STRATEGY) == 123
    assert vault.asset().lower() == USDE

    # Every read is pinned to the configured block.
    assert {c[4] for c in w3.backend.calls} == {19_000_000}
    assert w3.backend.calls[1][2] == (Web3.to_checksum_address(STRATEGY),)


def test_staking_vault_writes_are_simulated_then_sent_from_holder(w3):
    w3.backend.respond(SUSDE, "withdraw", 40)
    vault = Web3StakingVault(w3, SUSDE)

    assert vault.withdraw(40, STRATEGY, STRATEGY) == 40

    holder = Web3.to_checksum_address(STRATEGY)
    assert w3.backend.calls[-1][1] == "withdraw"
    assert w3.backend.calls[-1][3] == {"from": holder}
    assert w3.backend.sent == [(Web3.to_checksum_address(SUSDE), "withdraw", (40, holder, holder), {"from": holder})]


def test_unstake_and_cooldown_requests(w3):
    w3.backend.respond(SUSDE, "cooldownAssets", 29)
    w3.backend.respond(SUSDE, "cooldownShares", 31)
    vault = Web3StakingVault(w3, SUSDE)

    assert vault.cooldown_assets(30, STRATEGY) == 29
    assert vault.cooldown_shares(30, STRATEGY) == 31
    vault.unstake(STRATEGY)

    assert [s[1] for s in w3.backend.sent] == ["cooldownAssets", "cooldownShares", "unstake"]
    assert w3.backend.sent[2][2] == (Web3.to_checksum_address(STRATEGY),)


def test_revert_during_simulation_raises_protocol_error(w3):
    w3.backend.respond(SUSDE, "unstake", ContractLogicError("execution reverted: InvalidCooldown"))
    vault = Web3StakingVault(w3, SUSDE)

    with pytest.raises(ProtocolError, match="InvalidCooldown"):
        vault.unstake(STRATEGY)
    assert w3.backend.sent == []


def test_failed_receipt_raises_protocol_error(w3):
    w3.backend.receipt_status = 0
    token = Web3Token(w3, WUSDE)
    with pytest.raises(ProtocolError, match="reverted in tx"):
        token.transfer(STRATEGY, OWNER, 1)


def test_read_failure_raises_protocol_error(w3):
    w3.backend.respond(REGISTRY, "hasRole", ValueError("connection reset"))
    registry = Web3RoleRegistry(w3, REGISTRY)
    with pytest.raises(ProtocolError):
        registry.has_role(OWNER, b"\x00" * 32)


def test_wrap_adapter_sends_from_the_right_account(w3):
    adapter = Web3WrapAdapter(w3, WRAPPER)
    adapter.wrap(STRATEGY, STRATEGY, 10)
    adapter.unwrap(STRATEGY, 7)

    holder = Web3.to_checksum_address(STRATEGY)
    assert w3.backend.sent[0][2:] == ((holder, holder, 10), {"from": holder})
    assert w3.backend.sent[1][2:] == ((holder, 7), {"from": holder})


def test_native_ledger(w3):
    ledger = Web3NativeLedger(w3)
    w3.eth.balances[Web3.to_checksum_address(STRATEGY)] = 9
    assert ledger.balance_of(STRATEGY) == 9
    assert ledger.send(STRATEGY, OWNER, 9) is True

    w3.eth.native_error = ContractLogicError("execution reverted")
    assert ledger.send(STRATEGY, OWNER, 9) is False


def _respond_collaborators(w3, *, staking_asset=USDE):
    w3.backend.respond(WRAPPER, "underlyingAsset", Web3.to_checksum_address(USDE))
    w3.backend.respond(SUSDE, "asset", Web3.to_checksum_address(staking_asset))


def test_connect_strategy_wires_collaborators(w3):
    _respond_collaborators(w3)
    w3.backend.respond(WUSDE, "balanceOf", 5)
    w3.backend.respond(SUSDE, "cooldownDuration", 0)
    w3.backend.respond(SUSDE, "maxWithdraw", 95)
    w3.backend.respond(REGISTRY, "hasRole", lambda account, role: account == Web3.to_checksum_address(OWNER))

    strategy = connect_strategy(
        w3, strategy=STRATEGY, owner=OWNER, asset=WUSDE, staking=SUSDE, wrapper=WRAPPER, registry=REGISTRY
    )

    assert strategy.underlying.address.lower() == USDE
    assert strategy.current_balance() == 100
    assert strategy.registry.has_role(OWNER, b"\x00" * 32)


def test_connect_strategy_rejects_asset_mismatch(w3):
    _respond_collaborators(w3, staking_asset=WUSDE)
    with pytest.raises(ConfigurationError):
        connect_strategy(
            w3, strategy=STRATEGY, owner=OWNER, asset=WUSDE, staking=SUSDE, wrapper=WRAPPER, registry=REGISTRY
        )
