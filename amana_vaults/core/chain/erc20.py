from __future__ import annotations

from typing import TYPE_CHECKING

from amana_vaults.core.chain.Contract import Contract
from amana_vaults.core.chain.decorators import external
from amana_vaults.core.chain.models import Approval, Transfer
from amana_vaults.core.constants.base import MAX_UINT256, ZERO_ADDRESS
from amana_vaults.core.errors import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    InvalidAmountError,
)
from amana_vaults.core.utils.addresses import normalize_address

if TYPE_CHECKING:
    from amana_vaults.core.chain.Chain import Chain


class ERC20Ledger(Contract):
    """Fungible-token balance ledger.

    Every balance change funnels through ``_update`` so subclasses can hook
    share movements (the vault settles rewards there).
    """

    contract_type = "ERC20"
    insufficient_balance_error: type[InsufficientBalanceError] = InsufficientBalanceError

    def __init__(
        self,
        chain: Chain,
        *,
        name: str,
        symbol: str,
        decimals: int = 18,
        label: str | None = None,
    ):
        super().__init__(chain, label or symbol)
        self.name = name
        self.symbol = symbol
        self.decimals = int(decimals)
        self.balances: dict[str, int] = {}
        self.allowances: dict[str, dict[str, int]] = {}
        self._total_supply = 0

    # ---------------------------
    # Views
    # ---------------------------

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self.balances.get(normalize_address(account, allow_zero=True), 0)

    def allowance(self, owner: str, spender: str) -> int:
        owner = normalize_address(owner, allow_zero=True)
        spender = normalize_address(spender, allow_zero=True)
        return self.allowances.get(owner, {}).get(spender, 0)

    # ---------------------------
    # Entry points
    # ---------------------------

    @external
    def approve(self, spender: str, amount: int, *, caller: str) -> bool:
        owner = normalize_address(caller, field="caller")
        spender = normalize_address(spender, field="spender")
        self._approve(owner, spender, int(amount))
        return True

    @external
    def transfer(self, to: str, amount: int, *, caller: str) -> bool:
        sender = normalize_address(caller, field="caller")
        self._transfer(sender, normalize_address(to, field="to"), int(amount))
        return True

    @external
    def transfer_from(self, owner: str, to: str, amount: int, *, caller: str) -> bool:
        spender = normalize_address(caller, field="caller")
        owner = normalize_address(owner, field="owner")
        amount = int(amount)
        self._spend_allowance(owner, spender, amount)
        self._transfer(owner, normalize_address(to, field="to"), amount)
        return True

    # ---------------------------
    # Internal ledger mutations
    # ---------------------------

    def _approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmountError("approval must be non-negative", contract=self.label)
        self.allowances.setdefault(owner, {})[spender] = amount
        self.emit(Approval, owner=owner, spender=spender, value=amount)

    def _spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        if owner == spender:
            return
        current = self.allowances.get(owner, {}).get(spender, 0)
        if current == MAX_UINT256:
            return
        if current < amount:
            raise InsufficientAllowanceError(owner, spender, current, amount, contract=self.label)
        self.allowances[owner][spender] = current - amount

    def _transfer(self, sender: str, to: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmountError("transfer amount must be non-negative", contract=self.label)
        self._update(sender, to, amount)

    def _mint(self, to: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmountError("mint amount must be non-negative", contract=self.label)
        self._update(ZERO_ADDRESS, to, amount)

    def _burn(self, owner: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmountError("burn amount must be non-negative", contract=self.label)
        self._update(owner, ZERO_ADDRESS, amount)

    def _update(self, sender: str, to: str, amount: int) -> None:
        if sender == ZERO_ADDRESS:
            self._total_supply += amount
        else:
            balance = self.balances.get(sender, 0)
            if balance < amount:
                raise self.insufficient_balance_error(sender, balance, amount, contract=self.label)
            self.balances[sender] = balance - amount

        if to == ZERO_ADDRESS:
            self._total_supply -= amount
        else:
            self.balances[to] = self.balances.get(to, 0) + amount

        self.emit(Transfer, from_address=sender, to_address=to, value=amount)
