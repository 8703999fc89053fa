from __future__ import annotations

from typing import TYPE_CHECKING

from amana_vaults.core.errors import InvalidConfigurationError
from amana_vaults.core.strategies.Strategy import Strategy
from amana_vaults.core.utils.addresses import same_address

if TYPE_CHECKING:
    from amana_vaults.core.chain.Chain import Chain
    from amana_vaults.core.interfaces import ERC20, ERC4626


class ERC4626Strategy(Strategy):
    """Deposits into any ERC-4626 vault (e.g. a Moonwell or Compound USDC vault)."""

    name = "ERC-4626 Vault"
    venue_kind = "erc4626"

    def __init__(self, chain: Chain, *, vault: str, asset: ERC20, target: ERC4626, name: str | None = None):
        if not same_address(target.asset(), asset.address):
            raise InvalidConfigurationError(f"target vault {target.address} does not accept {asset.address}")
        super().__init__(chain, vault=vault, asset=asset, venue=target, name=name)

    def receipt_token(self) -> ERC20:
        return self.venue

    def _position_value(self) -> int:
        return self.venue.convert_to_assets(self.venue.balance_of(self.address))

    def _supply(self, amount: int) -> None:
        self.asset.approve(self.venue.address, amount, caller=self.address)
        self.venue.deposit(amount, self.address, caller=self.address)

    def _redeem(self, amount: int) -> None:
        max_withdraw = self.venue.max_withdraw(self.address)
        position = self._position_value()
        if amount >= position and max_withdraw >= position:
            shares = self.venue.balance_of(self.address)
            self.venue.redeem(shares, self.address, self.address, caller=self.address)
            return
        pull = min(amount, max_withdraw)
        if pull > 0:
            self.venue.withdraw(pull, self.address, self.address, caller=self.address)
