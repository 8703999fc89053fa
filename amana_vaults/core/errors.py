from __future__ import annotations


class ExecutionReverted(RuntimeError):
    """A contract call was rejected; the surrounding transaction is rolled back."""

    def __init__(self, reason: str, *, contract: str | None = None):
        self.reason = reason
        self.contract = contract
        prefix = f"{contract}: " if contract else ""
        super().__init__(f"{prefix}{reason}")


# Input validation


class InvalidAmountError(ExecutionReverted):
    pass


class InvalidAddressError(ExecutionReverted):
    pass


class InvalidConfigurationError(ExecutionReverted):
    pass


class ZeroSharesError(ExecutionReverted):
    pass


class ZeroTotalAssetsError(ExecutionReverted):
    pass


# Authorization


class UnauthorizedError(ExecutionReverted):
    def __init__(self, caller: str, *, contract: str | None = None, role: str = "owner"):
        self.caller = caller
        self.role = role
        super().__init__(f"unauthorized caller {caller} (requires {role})", contract=contract)


# Balances


class InsufficientBalanceError(ExecutionReverted):
    def __init__(
        self,
        account: str,
        balance: int,
        needed: int,
        *,
        contract: str | None = None,
    ):
        self.account = account
        self.balance = balance
        self.needed = needed
        super().__init__(
            f"insufficient balance for {account}: {balance} < {needed}",
            contract=contract,
        )


class InsufficientAllowanceError(ExecutionReverted):
    def __init__(
        self,
        owner: str,
        spender: str,
        allowance: int,
        needed: int,
        *,
        contract: str | None = None,
    ):
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.needed = needed
        super().__init__(
            f"insufficient allowance {owner} -> {spender}: {allowance} < {needed}",
            contract=contract,
        )


class InsufficientSharesError(InsufficientBalanceError):
    pass


# External venue


class VenueError(ExecutionReverted):
    pass


class VenueShortfallError(VenueError):
    pass


# Lifecycle


class NotInitializedError(ExecutionReverted):
    pass


class AlreadyInitializedError(ExecutionReverted):
    pass


class StrategyNotSetError(ExecutionReverted):
    pass


class InvalidStrategyError(ExecutionReverted):
    pass


class StrategyNotEmptyError(ExecutionReverted):
    pass


class RewardsError(ExecutionReverted):
    pass


# Reentrancy


class ReentrancyError(ExecutionReverted):
    pass
