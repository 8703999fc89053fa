from __future__ import annotations

from typing import TYPE_CHECKING

from amana_vaults.core.constants.base import MAX_UINT256
from amana_vaults.core.strategies.Strategy import Strategy

if TYPE_CHECKING:
    from amana_vaults.core.chain.Chain import Chain
    from amana_vaults.core.interfaces import ERC20, AavePool


class AaveStrategy(Strategy):
    """Supplies the asset to an Aave v3 pool; the position is the rebasing aToken balance."""

    name = "Aave v3 Supply"
    venue_kind = "aave_v3"

    def __init__(self, chain: Chain, *, vault: str, asset: ERC20, pool: AavePool, name: str | None = None):
        super().__init__(chain, vault=vault, asset=asset, venue=pool, name=name)
        self.a_token = pool.get_reserve_a_token(asset.address)

    def receipt_token(self) -> ERC20:
        return self.a_token

    def _position_value(self) -> int:
        return self.a_token.balance_of(self.address)

    def _supply(self, amount: int) -> None:
        self.asset.approve(self.venue.address, amount, caller=self.address)
        self.venue.supply(self.asset.address, amount, self.address, 0, caller=self.address)

    def _redeem(self, amount: int) -> None:
        # Bring the liquidity index current so accrued interest is counted as reserve cash.
        self.venue.accrue()
        # Reserve cash lives on the aToken; anything beyond it is lent out.
        available = self.asset.balance_of(self.a_token.address)
        position = self._position_value()
        if amount >= position and available >= position:
            self.venue.withdraw(self.asset.address, MAX_UINT256, self.address, caller=self.address)
            return
        pull = min(amount, available)
        if pull > 0:
            self.venue.withdraw(self.asset.address, pull, self.address, caller=self.address)
