from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, TypedDict

from amana_vaults.core.chain.Contract import Contract
from amana_vaults.core.chain.decorators import external, nonreentrant
from amana_vaults.core.chain.models import Divested, Invested
from amana_vaults.core.errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    UnauthorizedError,
)
from amana_vaults.core.utils.addresses import normalize_address, same_address

if TYPE_CHECKING:
    from amana_vaults.core.chain.Chain import Chain
    from amana_vaults.core.interfaces import ERC20


class StatusDict(TypedDict):
    strategy: str
    venue: str
    vault: str
    asset: str
    receipt_balance: int
    estimated_total_assets: int


class Strategy(Contract, ABC):
    """Adapter placing the vault's pooled asset into exactly one external venue.

    Holds no user-identity state: its whole state is a fungible position in the
    venue. Only the bound vault may move funds. Subclasses implement the three
    venue hooks ``_supply``, ``_redeem`` and ``_position_value``.
    """

    name: str | None = None
    venue_kind: str | None = None

    def __init__(
        self,
        chain: Chain,
        *,
        vault: str,
        asset: ERC20,
        venue: Any,
        name: str | None = None,
    ):
        super().__init__(chain, name or self.name or self.__class__.__name__)
        self.vault = normalize_address(vault, field="vault")
        self.asset = asset
        self.venue = venue
        self._entered = False

    # ---------------------------
    # Entry points (vault only)
    # ---------------------------

    def _only_vault(self, caller: str) -> None:
        if not same_address(caller, self.vault):
            raise UnauthorizedError(caller, contract=self.label, role="vault")

    @external
    @nonreentrant
    def invest(self, amount: int, *, caller: str) -> int:
        """Deposit ``amount`` of the asset, already transferred here by the vault."""
        self._only_vault(caller)
        amount = int(amount)
        if amount <= 0:
            raise InvalidAmountError("invest amount must be positive", contract=self.label)
        idle = self.asset.balance_of(self.address)
        if idle < amount:
            raise InsufficientBalanceError(self.address, idle, amount, contract=self.label)

        self._supply(amount)
        self.emit(Invested, venue=self.venue.address, amount=amount)
        self.logger.info(f"Invested {amount} into {self.venue_kind or 'venue'} {self.venue.address}")
        return amount

    @external
    @nonreentrant
    def divest(self, amount: int, recipient: str, *, caller: str) -> int:
        """Pull up to ``amount`` from the venue and forward what actually arrived.

        The return value, not ``amount``, is the ground truth: the venue may
        release less (liquidity shortfall) or slightly more (rounding, interest).
        """
        self._only_vault(caller)
        recipient = normalize_address(recipient, field="recipient")
        amount = int(amount)
        if amount <= 0:
            raise InvalidAmountError("divest amount must be positive", contract=self.label)

        request = min(amount, self.estimated_total_assets())
        before = self.asset.balance_of(self.address)
        if request > 0:
            self._redeem(request)
        received = self.asset.balance_of(self.address) - before

        if received > 0:
            self.asset.transfer(recipient, received, caller=self.address)
        if received < amount:
            self.logger.warning(
                f"Venue shortfall: requested {amount}, received {received} "
                f"from {self.venue_kind or 'venue'} {self.venue.address}"
            )
        self.emit(
            Divested,
            venue=self.venue.address,
            recipient=recipient,
            requested=amount,
            received=received,
        )
        return received

    # ---------------------------
    # Views
    # ---------------------------

    def estimated_total_assets(self) -> int:
        return self._position_value()

    def receipt_balance(self) -> int:
        return self.receipt_token().balance_of(self.address)

    def status(self) -> StatusDict:
        return {
            "strategy": self.label,
            "venue": self.venue.address,
            "vault": self.vault,
            "asset": self.asset.address,
            "receipt_balance": self.receipt_balance(),
            "estimated_total_assets": self.estimated_total_assets(),
        }

    # ---------------------------
    # Venue hooks
    # ---------------------------

    @abstractmethod
    def receipt_token(self) -> ERC20:
        pass

    @abstractmethod
    def _supply(self, amount: int) -> None:
        pass

    @abstractmethod
    def _redeem(self, amount: int) -> None:
        pass

    @abstractmethod
    def _position_value(self) -> int:
        pass
