from __future__ import annotations

from typing import TYPE_CHECKING

from amana_vaults.core.constants.base import MANTISSA, MAX_UINT256
from amana_vaults.core.strategies.Strategy import Strategy
from amana_vaults.core.utils.fixed_point import ceil_div

if TYPE_CHECKING:
    from amana_vaults.core.chain.Chain import Chain
    from amana_vaults.core.interfaces import ERC20, ExtraLendingPool


class ExtraStrategy(Strategy):
    """Supplies one reserve of an Extra Finance lending pool and holds its eToken."""

    name = "Extra Finance Lending"
    venue_kind = "extra_finance"

    def __init__(
        self,
        chain: Chain,
        *,
        vault: str,
        asset: ERC20,
        pool: ExtraLendingPool,
        reserve_id: int,
        name: str | None = None,
    ):
        super().__init__(chain, vault=vault, asset=asset, venue=pool, name=name)
        self.reserve_id = int(reserve_id)
        self.e_token = pool.get_e_token(self.reserve_id)

    def receipt_token(self) -> ERC20:
        return self.e_token

    def _position_value(self) -> int:
        rate = self.venue.exchange_rate_of_reserve(self.reserve_id)
        return self.e_token.balance_of(self.address) * rate // MANTISSA

    def _supply(self, amount: int) -> None:
        self.asset.approve(self.venue.address, amount, caller=self.address)
        self.venue.deposit(self.reserve_id, amount, self.address, 0, caller=self.address)

    def _redeem(self, amount: int) -> None:
        self.venue.accrue(self.reserve_id)
        cash = self.asset.balance_of(self.e_token.address)
        position = self._position_value()
        if amount >= position and cash >= position:
            self.venue.redeem(self.reserve_id, MAX_UINT256, self.address, False, caller=self.address)
            return

        pull = min(amount, cash)
        if pull <= 0:
            return
        rate = self.venue.exchange_rate_of_reserve(self.reserve_id)
        e_amount = min(ceil_div(pull * MANTISSA, rate), self.e_token.balance_of(self.address))
        if e_amount * rate // MANTISSA > cash:
            e_amount = cash * MANTISSA // rate
        if e_amount > 0:
            self.venue.redeem(self.reserve_id, e_amount, self.address, False, caller=self.address)
