from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypedDict

from amana_vaults.core.chain.decorators import external, nonreentrant, require_initialized
from amana_vaults.core.chain.erc20 import ERC20Ledger
from amana_vaults.core.chain.models import (
    Deposit,
    FeeCollected,
    FeeRateUpdated,
    FeeRecipientUpdated,
    Initialized,
    OwnershipTransferred,
    StrategyUpdated,
    Withdraw,
)
from amana_vaults.core.config import get_vault_defaults
from amana_vaults.core.constants.base import MANTISSA, MAX_BPS
from amana_vaults.core.errors import (
    AlreadyInitializedError,
    InsufficientSharesError,
    InvalidAmountError,
    InvalidConfigurationError,
    InvalidStrategyError,
    StrategyNotEmptyError,
    StrategyNotSetError,
    UnauthorizedError,
    VenueShortfallError,
    ZeroSharesError,
    ZeroTotalAssetsError,
)
from amana_vaults.core.utils.addresses import normalize_address, same_address
from amana_vaults.core.utils.fixed_point import Rounding, mul_div
from amana_vaults.core.vault.rewards import RewardsMixin, RewardState

if TYPE_CHECKING:
    from amana_vaults.core.chain.Chain import Chain
    from amana_vaults.core.interfaces import ERC20
    from amana_vaults.core.strategies.Strategy import Strategy


class VaultState(StrEnum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


class VaultStatus(TypedDict):
    vault: str
    asset: str
    strategy: str | None
    total_assets: int
    total_shares: int
    share_price: int
    fee_rate_bps: int
    fee_recipient: str | None
    reward_state: str
    reward_per_share: int


class Vault(RewardsMixin, ERC20Ledger):
    """Pooled stablecoin vault issuing shares against a single strategy.

    Shares are minted at the present-value rate ``total_assets / total_shares``
    (1:1 on the first deposit) with rounding always in the vault's favour.
    Withdrawals pay out what the strategy actually returned, minus a
    performance fee charged on the vault-wide profit ratio.

    ``Vault(chain)`` yields an uninitialized instance to be set up once with
    ``initialize`` (proxy pattern); ``Vault.deploy`` is the constructor path.
    """

    contract_type = "VAULT"
    insufficient_balance_error = InsufficientSharesError

    def __init__(self, chain: Chain, *, label: str | None = None):
        super().__init__(chain, name="", symbol="", decimals=18, label=label or "AmanaVault")
        self.state = VaultState.UNINITIALIZED
        self.asset_token: ERC20 | None = None
        self.owner: str | None = None
        self.fee_rate_bps = 0
        self.fee_recipient: str | None = None
        self.strategy: Strategy | None = None
        self.strict_strategy_migration = False
        self._entered = False
        self._init_rewards()

    @classmethod
    def deploy(
        cls,
        chain: Chain,
        *,
        asset: ERC20,
        owner: str,
        name: str | None = None,
        symbol: str | None = None,
        fee_rate_bps: int | None = None,
        fee_recipient: str | None = None,
        strict_strategy_migration: bool | None = None,
        label: str | None = None,
    ) -> Vault:
        defaults = get_vault_defaults()
        with chain.transaction():
            vault = cls(chain, label=label)
            vault.initialize(
                name=name if name is not None else defaults["name"],
                symbol=symbol if symbol is not None else defaults["symbol"],
                asset=asset,
                owner=owner,
                fee_rate_bps=fee_rate_bps if fee_rate_bps is not None else defaults["fee_rate_bps"],
                fee_recipient=fee_recipient,
                strict_strategy_migration=(
                    strict_strategy_migration
                    if strict_strategy_migration is not None
                    else defaults["strict_strategy_migration"]
                ),
            )
        return vault

    @property
    def initialized(self) -> bool:
        return self.state == VaultState.INITIALIZED

    @external
    def initialize(
        self,
        *,
        name: str,
        symbol: str,
        asset: ERC20,
        owner: str,
        fee_rate_bps: int = 0,
        fee_recipient: str | None = None,
        strict_strategy_migration: bool = False,
    ) -> None:
        if self.initialized:
            raise AlreadyInitializedError("vault already initialized", contract=self.label)
        if asset is None or not hasattr(asset, "balance_of"):
            raise InvalidConfigurationError("asset token is required", contract=self.label)
        owner = normalize_address(owner, field="owner")
        self._validate_fee_rate(fee_rate_bps)

        self.name = name
        self.symbol = symbol
        self.decimals = int(getattr(asset, "decimals", 18))
        self.asset_token = asset
        self.owner = owner
        self.fee_rate_bps = int(fee_rate_bps)
        self.fee_recipient = normalize_address(fee_recipient, field="fee recipient") if fee_recipient else owner
        self.strict_strategy_migration = bool(strict_strategy_migration)
        self.state = VaultState.INITIALIZED

        self.emit(
            Initialized,
            owner=owner,
            asset=asset.address,
            fee_rate_bps=self.fee_rate_bps,
            fee_recipient=self.fee_recipient,
        )
        self.logger.info(f"Initialized {symbol} over {asset.address} (fee {self.fee_rate_bps} bps)")

    # ---------------------------
    # Access control
    # ---------------------------

    def _only_owner(self, caller: str) -> None:
        if not same_address(caller, self.owner):
            raise UnauthorizedError(caller, contract=self.label)

    def _validate_fee_rate(self, fee_rate_bps: int) -> None:
        fee_rate_bps = int(fee_rate_bps)
        if not 0 <= fee_rate_bps <= MAX_BPS:
            raise InvalidConfigurationError(
                f"fee rate must be within [0, {MAX_BPS}] bps, got {fee_rate_bps}",
                contract=self.label,
            )

    def _require_strategy(self) -> Strategy:
        if self.strategy is None:
            raise StrategyNotSetError("no strategy bound", contract=self.label)
        return self.strategy

    # ---------------------------
    # Views
    # ---------------------------

    def asset(self) -> str:
        return self.asset_token.address if self.asset_token is not None else ""

    def total_assets(self) -> int:
        if self.strategy is None:
            return 0
        return self.strategy.estimated_total_assets()

    def convert_to_shares(self, assets: int, rounding: Rounding = Rounding.DOWN) -> int:
        supply = self.total_supply()
        if supply == 0:
            return int(assets)
        total = self.total_assets()
        if total == 0:
            raise ZeroTotalAssetsError("shares outstanding but no assets backing them", contract=self.label)
        return mul_div(int(assets), supply, total, rounding)

    def convert_to_assets(self, shares: int, rounding: Rounding = Rounding.DOWN) -> int:
        supply = self.total_supply()
        if supply == 0:
            return int(shares)
        return mul_div(int(shares), self.total_assets(), supply, rounding)

    def preview_deposit(self, assets: int) -> int:
        return self.convert_to_shares(assets, Rounding.DOWN)

    def preview_mint(self, shares: int) -> int:
        return self.convert_to_assets(shares, Rounding.UP)

    def preview_withdraw(self, assets: int) -> int:
        return self.convert_to_shares(assets, Rounding.UP)

    def preview_redeem(self, shares: int) -> int:
        return self.convert_to_assets(shares, Rounding.DOWN)

    def max_withdraw(self, owner: str) -> int:
        return self.convert_to_assets(self.balance_of(owner), Rounding.DOWN)

    def max_redeem(self, owner: str) -> int:
        return self.balance_of(owner)

    def share_price(self) -> int:
        """Assets per ``MANTISSA`` shares."""
        return self.convert_to_assets(MANTISSA)

    def _fee_on(self, amount: int, total_assets: int, total_shares: int) -> int:
        # fee = rate * (price - 1) / price * amount, with price = assets / shares.
        if self.fee_rate_bps == 0 or total_shares == 0 or total_assets <= total_shares:
            return 0
        return mul_div(amount * self.fee_rate_bps, total_assets - total_shares, total_assets * MAX_BPS)

    def preview_fee(self, assets: int) -> int:
        return self._fee_on(int(assets), self.total_assets(), self.total_supply())

    def status(self) -> VaultStatus:
        supply = self.total_supply()
        return {
            "vault": self.address,
            "asset": self.asset(),
            "strategy": self.strategy.address if self.strategy is not None else None,
            "total_assets": self.total_assets(),
            "total_shares": supply,
            "share_price": self.share_price(),
            "fee_rate_bps": self.fee_rate_bps,
            "fee_recipient": self.fee_recipient,
            "reward_state": str(self.reward_state()),
            "reward_per_share": self.reward_per_share,
        }

    # ---------------------------
    # Deposits
    # ---------------------------

    @external
    @require_initialized
    @nonreentrant
    def deposit(self, assets: int, receiver: str, *, caller: str) -> int:
        assets = int(assets)
        if assets <= 0:
            raise InvalidAmountError("zero amount", contract=self.label)
        caller = normalize_address(caller, field="caller")
        receiver = normalize_address(receiver, field="receiver")
        strategy = self._require_strategy()

        shares = self.preview_deposit(assets)
        if shares == 0:
            raise ZeroSharesError(f"deposit of {assets} mints zero shares", contract=self.label)
        self._deposit(caller, receiver, assets, shares, strategy)
        return shares

    @external
    @require_initialized
    @nonreentrant
    def mint(self, shares: int, receiver: str, *, caller: str) -> int:
        shares = int(shares)
        if shares <= 0:
            raise InvalidAmountError("zero amount", contract=self.label)
        caller = normalize_address(caller, field="caller")
        receiver = normalize_address(receiver, field="receiver")
        strategy = self._require_strategy()

        assets = self.preview_mint(shares)
        if assets == 0:
            raise InvalidAmountError(f"minting {shares} shares costs zero assets", contract=self.label)
        self._deposit(caller, receiver, assets, shares, strategy)
        return assets

    def _deposit(self, caller: str, receiver: str, assets: int, shares: int, strategy: Strategy) -> None:
        # Ledger effects first; the venue is only reached at the very end.
        self._mint(receiver, shares)
        self.asset_token.transfer_from(caller, self.address, assets, caller=self.address)
        self.asset_token.transfer(strategy.address, assets, caller=self.address)
        strategy.invest(assets, caller=self.address)

        self.emit(Deposit, sender=caller, owner=receiver, assets=assets, shares=shares)
        self.logger.info(f"Deposit {assets} from {caller}: minted {shares} shares to {receiver}")

    # ---------------------------
    # Withdrawals
    # ---------------------------

    @external
    @require_initialized
    @nonreentrant
    def withdraw(self, assets: int, receiver: str, owner: str, *, caller: str) -> int:
        assets = int(assets)
        if assets <= 0:
            raise InvalidAmountError("zero amount", contract=self.label)
        caller = normalize_address(caller, field="caller")
        receiver = normalize_address(receiver, field="receiver")
        owner = normalize_address(owner, field="owner")
        strategy = self._require_strategy()

        shares = self.preview_withdraw(assets)
        self._withdraw(caller, receiver, owner, assets, shares, strategy)
        return shares

    @external
    @require_initialized
    @nonreentrant
    def redeem(self, shares: int, receiver: str, owner: str, *, caller: str) -> int:
        shares = int(shares)
        if shares <= 0:
            raise InvalidAmountError("zero amount", contract=self.label)
        caller = normalize_address(caller, field="caller")
        receiver = normalize_address(receiver, field="receiver")
        owner = normalize_address(owner, field="owner")
        strategy = self._require_strategy()

        assets = self.preview_redeem(shares)
        if assets == 0:
            raise InvalidAmountError(f"redeeming {shares} shares yields zero assets", contract=self.label)
        return self._withdraw(caller, receiver, owner, assets, shares, strategy)

    def _withdraw(
        self,
        caller: str,
        receiver: str,
        owner: str,
        assets: int,
        shares: int,
        strategy: Strategy,
    ) -> int:
        # Fee pricing uses the state before this withdrawal.
        total_assets = self.total_assets()
        total_shares = self.total_supply()

        if caller != owner:
            self._spend_allowance(owner, caller, shares)
        self._burn(owner, shares)

        received = strategy.divest(assets, self.address, caller=self.address)
        if received == 0:
            raise VenueShortfallError(f"venue released nothing for a withdrawal of {assets}", contract=self.label)

        fee = self._fee_on(received, total_assets, total_shares)
        payout = received - fee
        if fee > 0:
            self.asset_token.transfer(self.fee_recipient, fee, caller=self.address)
            self.emit(FeeCollected, recipient=self.fee_recipient, amount=fee, fee_rate_bps=self.fee_rate_bps)
        if payout > 0:
            self.asset_token.transfer(receiver, payout, caller=self.address)

        self.emit(
            Withdraw,
            sender=caller,
            receiver=receiver,
            owner=owner,
            assets_requested=assets,
            assets_received=received,
            fee=fee,
            shares=shares,
        )
        if received < assets:
            self.logger.warning(
                f"Withdraw of {assets} for {owner} only received {received}; {shares} shares burned"
            )
        else:
            self.logger.info(f"Withdraw {received} for {owner} to {receiver}: burned {shares} shares, fee {fee}")
        return received

    # ---------------------------
    # Administration
    # ---------------------------

    @external
    @require_initialized
    @nonreentrant
    def set_strategy(self, strategy: Strategy, *, caller: str) -> None:
        """Bind ``strategy``. Funds left in a previous strategy are not migrated."""
        self._only_owner(caller)
        if strategy is None or not hasattr(strategy, "estimated_total_assets"):
            raise InvalidStrategyError("strategy is required", contract=self.label)
        if not same_address(getattr(strategy, "vault", None), self.address):
            raise InvalidStrategyError(f"strategy {strategy.address} is bound to another vault", contract=self.label)
        if not same_address(strategy.asset.address, self.asset()):
            raise InvalidStrategyError(f"strategy {strategy.address} handles a different asset", contract=self.label)

        old = self.strategy
        if old is strategy:
            raise InvalidStrategyError("strategy already bound", contract=self.label)
        if old is not None:
            stranded = old.estimated_total_assets()
            if stranded > 0 and self.strict_strategy_migration:
                raise StrategyNotEmptyError(
                    f"previous strategy still holds {stranded}; divest it before rebinding",
                    contract=self.label,
                )
            if stranded > 0:
                self.logger.warning(f"Rebinding strategy with {stranded} still held by {old.address}")

        self.strategy = strategy
        self.emit(
            StrategyUpdated,
            old_strategy=old.address if old is not None else None,
            new_strategy=strategy.address,
        )
        self.logger.info(f"Strategy set to {strategy.label} at {strategy.address}")

    @external
    @require_initialized
    @nonreentrant
    def set_fee_rate(self, fee_rate_bps: int, *, caller: str) -> None:
        self._only_owner(caller)
        self._validate_fee_rate(fee_rate_bps)
        old = self.fee_rate_bps
        self.fee_rate_bps = int(fee_rate_bps)
        self.emit(FeeRateUpdated, old_rate_bps=old, new_rate_bps=self.fee_rate_bps)

    @external
    @require_initialized
    @nonreentrant
    def set_fee_recipient(self, recipient: str, *, caller: str) -> None:
        self._only_owner(caller)
        recipient = normalize_address(recipient, field="fee recipient")
        old = self.fee_recipient
        self.fee_recipient = recipient
        self.emit(FeeRecipientUpdated, old_recipient=old, new_recipient=recipient)

    @external
    @require_initialized
    @nonreentrant
    def transfer_ownership(self, new_owner: str, *, caller: str) -> None:
        self._only_owner(caller)
        new_owner = normalize_address(new_owner, field="new owner")
        previous = self.owner
        self.owner = new_owner
        self.emit(OwnershipTransferred, previous_owner=previous, new_owner=new_owner)
        self.logger.info(f"Ownership transferred from {previous} to {new_owner}")

    def describe(self) -> dict[str, Any]:
        return {
            **self.status(),
            "name": self.name,
            "symbol": self.symbol,
            "owner": self.owner,
            "state": str(self.state),
            "reward_token": self.reward_token.address if self.reward_token is not None else None,
            "outstanding_rewards": self.outstanding_rewards(),
            "reward_window": {
                "start": self.reward_start,
                "end": self.reward_end,
                "amount": self.reward_amount,
            }
            if self.reward_state() != RewardState.UNSET
            else None,
        }
