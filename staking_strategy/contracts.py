"""Contract adapters backed by web3.py.

Each adapter implements one collaborator interface from `staking_strategy.interfaces`.
Reads are plain `eth_call`s at `block_identifier`. Writes are first simulated with
`eth_call` (to surface reverts and capture the return value), then sent with
`transact({"from": sender})` and awaited; the node must be able to sign for the sender
(unlocked or impersonated account).
"""

import sys
from typing import TYPE_CHECKING, Any

from staking_strategy.constants import (
    DEFAULT_RECEIPT_TIMEOUT,
    ERC20_MIN_ABI,
    ROLE_REGISTRY_MIN_ABI,
    STAKING_VAULT_MIN_ABI,
    WRAP_ADAPTER_MIN_ABI,
)
from staking_strategy.errors import ProtocolError
from staking_strategy.formatters import as_int
from staking_strategy.models import CooldownInfo
from staking_strategy.strategy import StakedStrategy

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover


class ContractAdapter:
    """Shared call/transact plumbing for a single contract."""

    abi: list[dict] = []

    def __init__(self, w3: "Web3", address: str, *, block_identifier: int | str = "latest") -> None:
        self.w3 = w3
        self.address = w3.to_checksum_address(address)
        self.contract = w3.eth.contract(address=self.address, abi=self.abi)
        self.block_identifier = block_identifier

    def _call(self, fn_name: str, *args: Any) -> Any:
        fn = getattr(self.contract.functions, fn_name)(*args)
        try:
            return fn.call(block_identifier=self.block_identifier)
        except Exception as ex:
            raise ProtocolError(f"{fn_name} call on {self.address} failed: {ex}") from ex

    def _transact(self, sender: str, fn_name: str, *args: Any) -> Any:
        from web3.exceptions import ContractLogicError  # pylint: disable=import-outside-toplevel

        tx_params = {"from": self.w3.to_checksum_address(sender)}
        fn = getattr(self.contract.functions, fn_name)(*args)
        try:
            result = fn.call(tx_params)
            tx_hash = fn.transact(tx_params)
        except ContractLogicError as ex:
            raise ProtocolError(f"{fn_name} on {self.address} reverted: {ex}") from ex
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=DEFAULT_RECEIPT_TIMEOUT)
        if receipt["status"] != 1:
            raise ProtocolError(f"{fn_name} on {self.address} reverted in tx {receipt['transactionHash'].hex()}")
        return result


class Web3Token(ContractAdapter):
    abi = ERC20_MIN_ABI

    def balance_of(self, holder: str) -> int:
        return as_int(self._call("balanceOf", self.w3.to_checksum_address(holder)))

    def transfer(self, sender: str, to: str, amount: int) -> None:
        self._transact(sender, "transfer", self.w3.to_checksum_address(to), amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._transact(owner, "approve", self.w3.to_checksum_address(spender), amount)

    def decimals(self) -> int:
        return as_int(self._call("decimals"))

    def symbol(self) -> str:
        return str(self._call("symbol"))


class Web3StakingVault(ContractAdapter):
    abi = STAKING_VAULT_MIN_ABI

    def asset(self) -> str:
        return str(self._call("asset"))

    def cooldown_duration(self) -> int:
        return as_int(self._call("cooldownDuration"))

    def cooldowns(self, holder: str) -> CooldownInfo:
        return parse_cooldown(self._call("cooldowns", self.w3.to_checksum_address(holder)))

    def max_withdraw(self, holder: str) -> int:
        return as_int(self._call("maxWithdraw", self.w3.to_checksum_address(holder)))

    def deposit(self, assets: int, receiver: str) -> int:
        return as_int(self._transact(receiver, "deposit", assets, self.w3.to_checksum_address(receiver)))

    def withdraw(self, assets: int, receiver: str, owner: str) -> int:
        return as_int(
            self._transact(
                owner,
                "withdraw",
                assets,
                self.w3.to_checksum_address(receiver),
                self.w3.to_checksum_address(owner),
            )
        )

    def cooldown_assets(self, assets: int, owner: str) -> int:
        return as_int(self._transact(owner, "cooldownAssets", assets))

    def cooldown_shares(self, shares: int, owner: str) -> int:
        return as_int(self._transact(owner, "cooldownShares", shares))

    def unstake(self, receiver: str) -> None:
        self._transact(receiver, "unstake", self.w3.to_checksum_address(receiver))


class Web3WrapAdapter(ContractAdapter):
    """Wrap adapter. `unwrap` is sent from `to`, which unwraps its own balance."""

    abi = WRAP_ADAPTER_MIN_ABI

    def underlying_asset(self) -> str:
        return str(self._call("underlyingAsset"))

    def wrap(self, sender: str, to: str, amount: int) -> None:
        self._transact(
            sender, "wrap", self.w3.to_checksum_address(sender), self.w3.to_checksum_address(to), amount
        )

    def unwrap(self, to: str, amount: int) -> None:
        self._transact(to, "unwrap", self.w3.to_checksum_address(to), amount)


class Web3RoleRegistry(ContractAdapter):
    abi = ROLE_REGISTRY_MIN_ABI

    def has_role(self, account: str, role: bytes) -> bool:
        return bool(self._call("hasRole", self.w3.to_checksum_address(account), role))


class Web3NativeLedger:
    """Native currency balances and transfers."""

    def __init__(self, w3: "Web3") -> None:
        self.w3 = w3

    def balance_of(self, holder: str) -> int:
        return int(self.w3.eth.get_balance(self.w3.to_checksum_address(holder)))

    def send(self, sender: str, to: str, amount: int) -> bool:
        from web3.exceptions import ContractLogicError  # pylint: disable=import-outside-toplevel

        tx = {
            "from": self.w3.to_checksum_address(sender),
            "to": self.w3.to_checksum_address(to),
            "value": amount,
        }
        try:
            tx_hash = self.w3.eth.send_transaction(tx)
        except ContractLogicError as ex:
            print(f"⚠️  native transfer to {to} reverted: {ex}", file=sys.stderr)
            return False
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=DEFAULT_RECEIPT_TIMEOUT)
        return receipt["status"] == 1


def parse_cooldown(entry: Any) -> CooldownInfo:
    """Parse a `cooldowns(address)` result.

    Fields:
        0: cooldownEnd (uint104)
        1: underlyingAmount (uint152)
    """
    if isinstance(entry, dict):
        return CooldownInfo(
            cooldown_end=as_int(entry.get("cooldownEnd")),
            underlying_amount=as_int(entry.get("underlyingAmount")),
        )
    # Tuple format (web3.py decodes multiple outputs as a list/tuple)
    return CooldownInfo(
        cooldown_end=as_int(entry[0] if len(entry) > 0 else None),
        underlying_amount=as_int(entry[1] if len(entry) > 1 else None),
    )


def connect_strategy(
    w3: "Web3",
    *,
    strategy: str,
    owner: str,
    asset: str,
    staking: str,
    wrapper: str,
    registry: str,
    block_identifier: int | str = "latest",
) -> StakedStrategy:
    """Build a strategy for `strategy` address wired to on-chain collaborators.

    The underlying asset is resolved from the wrap adapter.
    """
    wrap_adapter = Web3WrapAdapter(w3, wrapper, block_identifier=block_identifier)
    underlying_address = wrap_adapter.underlying_asset()
    return StakedStrategy(
        w3.to_checksum_address(strategy),
        w3.to_checksum_address(owner),
        asset=Web3Token(w3, asset, block_identifier=block_identifier),
        underlying=Web3Token(w3, underlying_address, block_identifier=block_identifier),
        staking=Web3StakingVault(w3, staking, block_identifier=block_identifier),
        wrapper=wrap_adapter,
        registry=Web3RoleRegistry(w3, registry, block_identifier=block_identifier),
        native=Web3NativeLedger(w3),
    )
