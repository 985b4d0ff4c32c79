"""Errors raised by the strategy and its collaborators."""


class StrategyError(Exception):
    """Base class for every error the strategy raises."""


class AuthorizationError(StrategyError):
    """Caller is neither the owner nor a holder of the required role."""


class NotOwner(AuthorizationError):
    pass


class PauserNotAuthorized(AuthorizationError):
    pass


class CooldownNotAuthorized(AuthorizationError):
    pass


class GateError(StrategyError):
    """Operation attempted while its pause gate is closed."""


class DepositBlocked(GateError):
    pass


class WithdrawBlocked(GateError):
    pass


class InsufficientFunds(StrategyError):
    """Requested withdrawal exceeds held balance plus what the pool can release."""

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(f"insufficient funds: requested={requested}, available={available}")
        self.requested = requested
        self.available = available


class ConfigurationError(StrategyError):
    pass


class TransferFailed(StrategyError):
    pass


class ReentrantCall(StrategyError):
    pass


class ProtocolError(StrategyError):
    """An external protocol call reverted."""
