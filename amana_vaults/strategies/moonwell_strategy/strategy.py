from __future__ import annotations

from typing import TYPE_CHECKING

from amana_vaults.core.constants.base import MANTISSA, MTOKEN_NO_ERROR
from amana_vaults.core.errors import VenueError
from amana_vaults.core.strategies.Strategy import Strategy

if TYPE_CHECKING:
    from amana_vaults.core.chain.Chain import Chain
    from amana_vaults.core.interfaces import ERC20, MToken


class MoonwellStrategy(Strategy):
    """Lends the asset to a Moonwell (Compound v2) market.

    Position value is ``mToken balance * exchange_rate_stored / 1e18``. The
    market reports failures through error codes, which are raised here as
    ``VenueError``.
    """

    name = "Moonwell Lending"
    venue_kind = "moonwell"

    def __init__(self, chain: Chain, *, vault: str, asset: ERC20, m_token: MToken, name: str | None = None):
        super().__init__(chain, vault=vault, asset=asset, venue=m_token, name=name)

    def receipt_token(self) -> ERC20:
        return self.venue

    def _position_value(self) -> int:
        return self.venue.balance_of(self.address) * self.venue.exchange_rate_stored() // MANTISSA

    def _check(self, code: int, action: str) -> None:
        if code != MTOKEN_NO_ERROR:
            raise VenueError(f"mToken {action} failed with error code {code}", contract=self.label)

    def _supply(self, amount: int) -> None:
        self.asset.approve(self.venue.address, amount, caller=self.address)
        self._check(self.venue.mint(amount, caller=self.address), "mint")

    def _redeem(self, amount: int) -> None:
        cash = self.venue.get_cash()
        position = self._position_value()
        if amount >= position and cash >= position:
            tokens = self.venue.balance_of(self.address)
            self._check(self.venue.redeem(tokens, caller=self.address), "redeem")
            return
        pull = min(amount, cash)
        if pull > 0:
            self._check(self.venue.redeem_underlying(pull, caller=self.address), "redeem_underlying")
