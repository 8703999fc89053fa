"""Structural interfaces of the external collaborators.

The core only consumes these; ``amana_vaults.sim`` ships in-memory
implementations used by the tests and the scenario runner.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ERC20(Protocol):
    address: str
    decimals: int

    def balance_of(self, account: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def approve(self, spender: str, amount: int, *, caller: str) -> bool: ...

    def transfer(self, to: str, amount: int, *, caller: str) -> bool: ...

    def transfer_from(self, owner: str, to: str, amount: int, *, caller: str) -> bool: ...


class AavePool(Protocol):
    """Aave v3 ``Pool`` surface used for supplying a single reserve."""

    address: str

    def get_reserve_a_token(self, asset: str) -> ERC20: ...

    def accrue(self) -> int: ...

    def supply(self, asset: str, amount: int, on_behalf_of: str, referral_code: int = 0, *, caller: str) -> None: ...

    def withdraw(self, asset: str, amount: int, to: str, *, caller: str) -> int: ...


class MToken(ERC20, Protocol):
    """Compound v2 / Moonwell market token; failures are returned as error codes."""

    def mint(self, mint_amount: int, *, caller: str) -> int: ...

    def redeem(self, redeem_tokens: int, *, caller: str) -> int: ...

    def redeem_underlying(self, redeem_amount: int, *, caller: str) -> int: ...

    def exchange_rate_stored(self) -> int: ...

    def get_cash(self) -> int: ...


class ERC4626(ERC20, Protocol):
    def asset(self) -> str: ...

    def total_assets(self) -> int: ...

    def convert_to_assets(self, shares: int) -> int: ...

    def convert_to_shares(self, assets: int) -> int: ...

    def max_withdraw(self, owner: str) -> int: ...

    def max_redeem(self, owner: str) -> int: ...

    def deposit(self, assets: int, receiver: str, *, caller: str) -> int: ...

    def withdraw(self, assets: int, receiver: str, owner: str, *, caller: str) -> int: ...

    def redeem(self, shares: int, receiver: str, owner: str, *, caller: str) -> int: ...


class ExtraLendingPool(Protocol):
    """Extra Finance ``LendingPool``: per-reserve eTokens priced by an exchange rate."""

    address: str

    def get_e_token(self, reserve_id: int) -> ERC20: ...

    def accrue(self, reserve_id: int | None = None) -> int: ...

    def exchange_rate_of_reserve(self, reserve_id: int) -> int: ...

    def deposit(self, reserve_id: int, amount: int, on_behalf_of: str, referral_code: int = 0, *, caller: str) -> int: ...

    def redeem(self, reserve_id: int, e_token_amount: int, to: str, receive_native_eth: bool = False, *, caller: str) -> int: ...
