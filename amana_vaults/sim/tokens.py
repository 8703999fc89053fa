from __future__ import annotations

from typing import TYPE_CHECKING

from amana_vaults.core.chain.decorators import external
from amana_vaults.core.chain.erc20 import ERC20Ledger
from amana_vaults.core.utils.addresses import normalize_address
from amana_vaults.core.utils.units import to_erc20_raw

if TYPE_CHECKING:
    from amana_vaults.core.chain.Chain import Chain


class MockERC20(ERC20Ledger):
    """Freely mintable token for tests and scenarios."""

    contract_type = "MOCK_ERC20"

    def __init__(
        self,
        chain: Chain,
        *,
        name: str = "USD Coin",
        symbol: str = "USDC",
        decimals: int = 6,
        label: str | None = None,
    ):
        super().__init__(chain, name=name, symbol=symbol, decimals=decimals, label=label)

    def units(self, amount: float | str) -> int:
        return to_erc20_raw(amount, self.decimals)

    @external
    def mint(self, to: str, amount: int) -> None:
        self._mint(normalize_address(to, field="to"), int(amount))

    @external
    def burn(self, owner: str, amount: int) -> None:
        self._burn(normalize_address(owner, field="owner"), int(amount))
