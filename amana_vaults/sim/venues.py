"""In-memory lending venues for tests and scenarios.

Each venue mirrors the call surface of the protocol it stands in for
(see ``amana_vaults.core.interfaces``) and adds a few levers the real ones do
not have: ``donate_yield`` to inject an exact profit, ``set_apr`` for
per-second accrual and ``set_available_liquidity`` to lend idle cash out
to a borrower so that withdrawals come up short. Accrued interest only
reaches reserve cash when the venue accrues (``accrue``, or any call that
touches the reserve).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from amana_vaults.core.chain.Contract import Contract
from amana_vaults.core.chain.decorators import external
from amana_vaults.core.chain.erc20 import ERC20Ledger
from amana_vaults.core.constants.base import (
    MANTISSA,
    MAX_UINT256,
    MTOKEN_INSUFFICIENT_CASH,
    MTOKEN_MATH_ERROR,
    MTOKEN_NO_ERROR,
    RAY,
)
from amana_vaults.core.errors import InsufficientBalanceError, VenueError
from amana_vaults.core.utils.addresses import normalize_address, same_address
from amana_vaults.core.utils.fixed_point import Rounding, ceil_div, mul_div, ray_div, ray_mul
from amana_vaults.core.utils.interest import (
    accrue_index,
    apr_to_ray_rate,
    apr_to_rate_per_second,
    linear_interest,
)

if TYPE_CHECKING:
    from amana_vaults.core.chain.Chain import Chain
    from amana_vaults.sim.tokens import MockERC20


class LiquidityMixin:
    """Idle cash can be lent to a borrower address and repaid later.

    Lent cash still counts towards the venue's assets; it just cannot be
    withdrawn until it comes back.
    """

    def _init_liquidity(self) -> None:
        self.borrower = self.chain.allocate_address(f"{self.label}:borrower")
        self.total_borrowed = 0

    def _liquidity_asset(self) -> MockERC20:
        raise NotImplementedError

    def _cash_holder(self) -> str:
        return self.address

    def available_liquidity(self) -> int:
        return self._liquidity_asset().balance_of(self._cash_holder())

    @external
    def set_available_liquidity(self, amount: int) -> int:
        asset = self._liquidity_asset()
        holder = self._cash_holder()
        amount = int(amount)
        cash = asset.balance_of(holder)
        if cash > amount:
            lent = cash - amount
            asset.transfer(self.borrower, lent, caller=holder)
            self.total_borrowed += lent
        elif amount > cash:
            repaid = min(amount - cash, self.total_borrowed)
            if repaid:
                asset.transfer(holder, repaid, caller=self.borrower)
                self.total_borrowed -= repaid
        self.logger.debug(f"Available liquidity now {asset.balance_of(holder)} ({self.total_borrowed} lent out)")
        return asset.balance_of(holder)


# ---------------------------
# Aave v3
# ---------------------------


class SimulatedAToken(ERC20Ledger):
    """Rebasing receipt token; ledger balances are scaled by the pool's liquidity index."""

    contract_type = "ATOKEN"

    def __init__(self, chain: Chain, *, pool: SimulatedAavePool, underlying: MockERC20):
        super().__init__(
            chain,
            name=f"Aave {underlying.symbol}",
            symbol=f"a{underlying.symbol}",
            decimals=underlying.decimals,
        )
        self.pool = pool
        self.underlying = underlying

    def scaled_balance_of(self, account: str) -> int:
        return super().balance_of(account)

    def scaled_total_supply(self) -> int:
        return super().total_supply()

    def balance_of(self, account: str) -> int:
        return ray_mul(self.scaled_balance_of(account), self.pool.normalized_income())

    def total_supply(self) -> int:
        return ray_mul(self.scaled_total_supply(), self.pool.normalized_income())

    def _transfer(self, sender: str, to: str, amount: int) -> None:
        self._update(sender, to, ray_div(amount, self.pool.normalized_income()))


class SimulatedAavePool(LiquidityMixin, Contract):
    contract_type = "AAVE_POOL"

    def __init__(self, chain: Chain, *, asset: MockERC20, apr: float | str = 0, label: str | None = None):
        super().__init__(chain, label or f"AavePool:{asset.symbol}")
        self.asset = asset
        self.rate_ray = apr_to_ray_rate(apr)
        self.liquidity_index = RAY
        self.last_update = chain.timestamp
        self.a_token = SimulatedAToken(chain, pool=self, underlying=asset)
        self._init_liquidity()

    def _liquidity_asset(self) -> MockERC20:
        return self.asset

    def _cash_holder(self) -> str:
        # Aave keeps reserve cash on the aToken contract.
        return self.a_token.address

    def get_reserve_a_token(self, asset: str) -> SimulatedAToken:
        self._check_asset(asset)
        return self.a_token

    def normalized_income(self) -> int:
        return accrue_index(self.liquidity_index, self.rate_ray, self.chain.timestamp - self.last_update)

    def _check_asset(self, asset: str) -> None:
        if not same_address(asset, self.asset.address):
            raise VenueError(f"reserve {asset} not listed", contract=self.label)

    def _accrue(self) -> None:
        updated = self.normalized_income()
        if updated != self.liquidity_index:
            scaled = self.a_token.scaled_total_supply()
            interest = ray_mul(scaled, updated) - ray_mul(scaled, self.liquidity_index)
            if interest > 0:
                self.asset.mint(self._cash_holder(), interest)
            self.liquidity_index = updated
        self.last_update = self.chain.timestamp

    @external
    def accrue(self) -> int:
        """Update the liquidity index and move accrued interest into reserve cash."""
        self._accrue()
        return self.liquidity_index

    @external
    def set_apr(self, apr: float | str) -> None:
        self._accrue()
        self.rate_ray = apr_to_ray_rate(apr)

    @external
    def donate_yield(self, amount: int) -> None:
        self._accrue()
        scaled = self.a_token.scaled_total_supply()
        if scaled == 0:
            raise VenueError("no suppliers to receive yield", contract=self.label)
        self.liquidity_index += mul_div(int(amount), RAY, scaled)
        self.asset.mint(self._cash_holder(), int(amount))

    @external
    def supply(self, asset: str, amount: int, on_behalf_of: str, referral_code: int = 0, *, caller: str) -> None:
        self._check_asset(asset)
        amount = int(amount)
        if amount <= 0:
            raise VenueError("invalid amount", contract=self.label)
        self._accrue()
        scaled = ray_div(amount, self.liquidity_index)
        if scaled == 0:
            raise VenueError("invalid mint amount", contract=self.label)
        self.asset.transfer_from(caller, self._cash_holder(), amount, caller=self.address)
        self.a_token._mint(normalize_address(on_behalf_of, field="on_behalf_of"), scaled)

    @external
    def withdraw(self, asset: str, amount: int, to: str, *, caller: str) -> int:
        self._check_asset(asset)
        caller = normalize_address(caller, field="caller")
        self._accrue()
        balance = self.a_token.balance_of(caller)
        amount = balance if amount == MAX_UINT256 else int(amount)
        if amount <= 0 or amount > balance:
            raise VenueError(f"invalid withdraw amount {amount} (balance {balance})", contract=self.label)
        if amount > self.available_liquidity():
            raise VenueError("not enough available liquidity", contract=self.label)

        scaled_balance = self.a_token.scaled_balance_of(caller)
        scaled = scaled_balance if amount == balance else min(ray_div(amount, self.liquidity_index), scaled_balance)
        self.a_token._burn(caller, scaled)
        self.asset.transfer(normalize_address(to, field="to"), amount, caller=self._cash_holder())
        return amount


# ---------------------------
# Moonwell / Compound v2
# ---------------------------


class SimulatedMToken(LiquidityMixin, ERC20Ledger):
    """Market token priced by ``(cash + borrows) / supply``; failures come back as error codes."""

    contract_type = "MTOKEN"

    def __init__(
        self,
        chain: Chain,
        *,
        underlying: MockERC20,
        apr: float | str = 0,
        initial_exchange_rate: int | None = None,
        label: str | None = None,
    ):
        super().__init__(
            chain,
            name=f"Moonwell {underlying.symbol}",
            symbol=f"m{underlying.symbol}",
            decimals=8,
            label=label,
        )
        self.underlying = underlying
        self.supply_rate_per_second = apr_to_rate_per_second(apr)
        self.accrual_timestamp = chain.timestamp
        # 0.02 underlying per mToken, the usual Compound v2 starting rate.
        self.initial_exchange_rate = initial_exchange_rate or 2 * 10 ** (underlying.decimals + 8)
        self._init_liquidity()

    def _liquidity_asset(self) -> MockERC20:
        return self.underlying

    def get_cash(self) -> int:
        return self.underlying.balance_of(self.address)

    def exchange_rate_stored(self) -> int:
        supply = self.total_supply()
        if supply == 0:
            return self.initial_exchange_rate
        return (self.get_cash() + self.total_borrowed) * MANTISSA // supply

    @external
    def accrue_interest(self) -> int:
        elapsed = self.chain.timestamp - self.accrual_timestamp
        if elapsed > 0 and self.supply_rate_per_second and self.total_supply():
            interest = (self.get_cash() + self.total_borrowed) * self.supply_rate_per_second * elapsed // MANTISSA
            if interest > 0:
                self.underlying.mint(self.address, interest)
        self.accrual_timestamp = self.chain.timestamp
        return MTOKEN_NO_ERROR

    @external
    def set_apr(self, apr: float | str) -> None:
        self.accrue_interest()
        self.supply_rate_per_second = apr_to_rate_per_second(apr)

    @external
    def donate_yield(self, amount: int) -> None:
        self.accrue_interest()
        self.underlying.mint(self.address, int(amount))

    @external
    def mint(self, mint_amount: int, *, caller: str) -> int:
        caller = normalize_address(caller, field="caller")
        self.accrue_interest()
        tokens = int(mint_amount) * MANTISSA // self.exchange_rate_stored()
        if tokens == 0:
            return MTOKEN_MATH_ERROR
        self.underlying.transfer_from(caller, self.address, int(mint_amount), caller=self.address)
        self._mint(caller, tokens)
        return MTOKEN_NO_ERROR

    @external
    def redeem(self, redeem_tokens: int, *, caller: str) -> int:
        self.accrue_interest()
        amount = int(redeem_tokens) * self.exchange_rate_stored() // MANTISSA
        return self._redeem_fresh(normalize_address(caller, field="caller"), int(redeem_tokens), amount)

    @external
    def redeem_underlying(self, redeem_amount: int, *, caller: str) -> int:
        self.accrue_interest()
        tokens = ceil_div(int(redeem_amount) * MANTISSA, self.exchange_rate_stored())
        return self._redeem_fresh(normalize_address(caller, field="caller"), tokens, int(redeem_amount))

    def _redeem_fresh(self, redeemer: str, tokens: int, amount: int) -> int:
        if amount > self.get_cash():
            self.logger.debug(f"Redeem of {amount} rejected: cash {self.get_cash()}")
            return MTOKEN_INSUFFICIENT_CASH
        if tokens > self.balances.get(redeemer, 0):
            raise InsufficientBalanceError(redeemer, self.balances.get(redeemer, 0), tokens, contract=self.label)
        self._burn(redeemer, tokens)
        self.underlying.transfer(redeemer, amount, caller=self.address)
        return MTOKEN_NO_ERROR


# ---------------------------
# ERC-4626
# ---------------------------


class SimulatedERC4626Vault(LiquidityMixin, ERC20Ledger):
    contract_type = "ERC4626"

    def __init__(self, chain: Chain, *, asset: MockERC20, label: str | None = None):
        super().__init__(
            chain,
            name=f"Yield {asset.symbol}",
            symbol=f"yv{asset.symbol}",
            decimals=asset.decimals,
            label=label,
        )
        self.underlying = asset
        self._init_liquidity()

    def _liquidity_asset(self) -> MockERC20:
        return self.underlying

    def asset(self) -> str:
        return self.underlying.address

    def total_assets(self) -> int:
        return self.underlying.balance_of(self.address) + self.total_borrowed

    def convert_to_shares(self, assets: int, rounding: Rounding = Rounding.DOWN) -> int:
        supply = self.total_supply()
        total = self.total_assets()
        if supply == 0 or total == 0:
            return int(assets)
        return mul_div(int(assets), supply, total, rounding)

    def convert_to_assets(self, shares: int, rounding: Rounding = Rounding.DOWN) -> int:
        supply = self.total_supply()
        if supply == 0:
            return int(shares)
        return mul_div(int(shares), self.total_assets(), supply, rounding)

    def max_withdraw(self, owner: str) -> int:
        return min(self.convert_to_assets(self.balance_of(owner)), self.available_liquidity())

    def max_redeem(self, owner: str) -> int:
        return min(self.balance_of(owner), self.convert_to_shares(self.available_liquidity()))

    @external
    def donate_yield(self, amount: int) -> None:
        self.underlying.mint(self.address, int(amount))

    @external
    def deposit(self, assets: int, receiver: str, *, caller: str) -> int:
        assets = int(assets)
        shares = self.convert_to_shares(assets)
        if shares == 0:
            raise VenueError("zero shares", contract=self.label)
        self.underlying.transfer_from(caller, self.address, assets, caller=self.address)
        self._mint(normalize_address(receiver, field="receiver"), shares)
        return shares

    @external
    def withdraw(self, assets: int, receiver: str, owner: str, *, caller: str) -> int:
        owner = normalize_address(owner, field="owner")
        assets = int(assets)
        if assets > self.max_withdraw(owner):
            raise VenueError(f"withdraw of {assets} exceeds max", contract=self.label)
        shares = self.convert_to_shares(assets, Rounding.UP)
        self._exit(normalize_address(caller, field="caller"), receiver, owner, assets, shares)
        return shares

    @external
    def redeem(self, shares: int, receiver: str, owner: str, *, caller: str) -> int:
        owner = normalize_address(owner, field="owner")
        shares = int(shares)
        if shares > self.max_redeem(owner):
            raise VenueError(f"redeem of {shares} exceeds max", contract=self.label)
        assets = self.convert_to_assets(shares)
        self._exit(normalize_address(caller, field="caller"), receiver, owner, assets, shares)
        return assets

    def _exit(self, caller: str, receiver: str, owner: str, assets: int, shares: int) -> None:
        if caller != owner:
            self._spend_allowance(owner, caller, shares)
        self._burn(owner, shares)
        self.underlying.transfer(normalize_address(receiver, field="receiver"), assets, caller=self.address)


# ---------------------------
# Extra Finance
# ---------------------------


class SimulatedEToken(ERC20Ledger):
    contract_type = "ETOKEN"


class SimulatedExtraLendingPool(LiquidityMixin, Contract):
    """Lending pool with per-reserve eTokens priced by a mantissa exchange rate.

    Reserve cash sits on the eToken contract, as in the real pool.
    """

    contract_type = "EXTRA_LENDING_POOL"

    def __init__(self, chain: Chain, *, asset: MockERC20, apr: float | str = 0, label: str | None = None):
        super().__init__(chain, label or f"ExtraLendingPool:{asset.symbol}")
        self.reserves: dict[int, dict] = {}
        self.default_reserve_id = self.add_reserve(asset, apr=apr)
        self._init_liquidity()

    def add_reserve(self, asset: MockERC20, *, apr: float | str = 0) -> int:
        reserve_id = len(self.reserves) + 1
        e_token = SimulatedEToken(
            self.chain,
            name=f"Extra {asset.symbol}",
            symbol=f"e{asset.symbol}",
            decimals=asset.decimals,
        )
        self.reserves[reserve_id] = {
            "asset": asset,
            "e_token": e_token,
            "exchange_rate": MANTISSA,
            "rate_ray": apr_to_ray_rate(apr),
            "last_update": self.chain.timestamp,
        }
        return reserve_id

    def _reserve(self, reserve_id: int) -> dict:
        reserve = self.reserves.get(int(reserve_id))
        if reserve is None:
            raise VenueError(f"unknown reserve {reserve_id}", contract=self.label)
        return reserve

    def _liquidity_asset(self) -> MockERC20:
        return self.reserves[self.default_reserve_id]["asset"]

    def _cash_holder(self) -> str:
        return self.reserves[self.default_reserve_id]["e_token"].address

    def get_e_token(self, reserve_id: int) -> SimulatedEToken:
        return self._reserve(reserve_id)["e_token"]

    def exchange_rate_of_reserve(self, reserve_id: int) -> int:
        reserve = self._reserve(reserve_id)
        elapsed = self.chain.timestamp - reserve["last_update"]
        return reserve["exchange_rate"] * linear_interest(reserve["rate_ray"], elapsed) // RAY

    def _accrue(self, reserve_id: int) -> dict:
        reserve = self._reserve(reserve_id)
        updated = self.exchange_rate_of_reserve(reserve_id)
        if updated != reserve["exchange_rate"]:
            supply = reserve["e_token"].total_supply()
            interest = supply * updated // MANTISSA - supply * reserve["exchange_rate"] // MANTISSA
            if interest > 0:
                reserve["asset"].mint(reserve["e_token"].address, interest)
            reserve["exchange_rate"] = updated
        reserve["last_update"] = self.chain.timestamp
        return reserve

    @external
    def accrue(self, reserve_id: int | None = None) -> int:
        return self._accrue(reserve_id or self.default_reserve_id)["exchange_rate"]

    @external
    def set_apr(self, apr: float | str, reserve_id: int | None = None) -> None:
        reserve = self._accrue(reserve_id or self.default_reserve_id)
        reserve["rate_ray"] = apr_to_ray_rate(apr)

    @external
    def donate_yield(self, amount: int, reserve_id: int | None = None) -> None:
        reserve = self._accrue(reserve_id or self.default_reserve_id)
        supply = reserve["e_token"].total_supply()
        if supply == 0:
            raise VenueError("no suppliers to receive yield", contract=self.label)
        reserve["exchange_rate"] += int(amount) * MANTISSA // supply
        reserve["asset"].mint(reserve["e_token"].address, int(amount))

    @external
    def deposit(self, reserve_id: int, amount: int, on_behalf_of: str, referral_code: int = 0, *, caller: str) -> int:
        reserve = self._accrue(reserve_id)
        amount = int(amount)
        e_amount = amount * MANTISSA // reserve["exchange_rate"]
        if e_amount == 0:
            raise VenueError("deposit too small", contract=self.label)
        reserve["asset"].transfer_from(caller, reserve["e_token"].address, amount, caller=self.address)
        reserve["e_token"]._mint(normalize_address(on_behalf_of, field="on_behalf_of"), e_amount)
        return e_amount

    @external
    def redeem(
        self,
        reserve_id: int,
        e_token_amount: int,
        to: str,
        receive_native_eth: bool = False,
        *,
        caller: str,
    ) -> int:
        if receive_native_eth:
            raise VenueError("native unwrap not supported", contract=self.label)
        caller = normalize_address(caller, field="caller")
        reserve = self._accrue(reserve_id)
        e_token = reserve["e_token"]
        e_amount = e_token.balance_of(caller) if e_token_amount == MAX_UINT256 else int(e_token_amount)
        underlying = e_amount * reserve["exchange_rate"] // MANTISSA
        cash = reserve["asset"].balance_of(e_token.address)
        if underlying > cash:
            raise VenueError(f"insufficient liquidity: {underlying} > {cash}", contract=self.label)
        e_token._burn(caller, e_amount)
        reserve["asset"].transfer(normalize_address(to, field="to"), underlying, caller=e_token.address)
        return underlying
