import pytest

from amana_vaults.core.chain.decorators import external
from amana_vaults.core.chain.models import Deposit, Transfer
from amana_vaults.core.constants.base import MTOKEN_INSUFFICIENT_CASH
from amana_vaults.core.errors import (
    InsufficientAllowanceError,
    ReentrancyError,
    VenueError,
)
from amana_vaults.core.vault import Vault
from amana_vaults.strategies.erc4626_strategy.strategy import ERC4626Strategy
from amana_vaults.sim.venues import SimulatedERC4626Vault
from amana_vaults.tests.test_utils import deposit

USDC = 10**6


class ReenteringVenue(SimulatedERC4626Vault):
    """ERC-4626 venue that calls back into the vault from inside deposit/withdraw."""

    def __init__(self, chain, *, asset, attacker):
        super().__init__(chain, asset=asset)
        self.attacker = attacker
        self.target = None
        self.armed = False

    def _reenter(self):
        if self.armed and self.target is not None:
            self.target.deposit(1, self.attacker, caller=self.attacker)

    @external
    def deposit(self, assets, receiver, *, caller):
        self._reenter()
        return super().deposit(assets, receiver, caller=caller)

    @external
    def withdraw(self, assets, receiver, owner, *, caller):
        self._reenter()
        return super().withdraw(assets, receiver, owner, caller=caller)


@pytest.fixture
def reentrant_stack(chain, usdc, accounts):
    vault = Vault.deploy(chain, asset=usdc, owner=accounts.owner, fee_recipient=accounts.fee_recipient)
    venue = ReenteringVenue(chain, asset=usdc, attacker=accounts.carol)
    strategy = ERC4626Strategy(chain, vault=vault.address, asset=usdc, target=venue)
    vault.set_strategy(strategy, caller=accounts.owner)
    venue.target = vault
    usdc.mint(accounts.carol, 10 * USDC)
    usdc.approve(vault.address, 10 * USDC, caller=accounts.carol)
    return vault, strategy, venue


def test_reentrant_deposit_is_rejected(reentrant_stack, usdc, accounts):
    vault, _, venue = reentrant_stack
    venue.armed = True
    usdc.mint(accounts.alice, 100 * USDC)
    usdc.approve(vault.address, 100 * USDC, caller=accounts.alice)
    log_len = len(vault.chain.logs)

    with pytest.raises(ReentrancyError):
        vault.deposit(100 * USDC, accounts.alice, caller=accounts.alice)

    assert vault.total_supply() == 0
    assert usdc.balance_of(accounts.alice) == 100 * USDC
    assert usdc.balance_of(accounts.carol) == 10 * USDC
    assert len(vault.chain.logs) == log_len
    assert vault._entered is False


def test_reentrant_withdraw_is_rejected(reentrant_stack, usdc, accounts):
    vault, strategy, venue = reentrant_stack
    deposit(vault, usdc, accounts.alice, 100 * USDC)
    venue.armed = True

    with pytest.raises(ReentrancyError):
        vault.withdraw(40 * USDC, accounts.alice, accounts.alice, caller=accounts.alice)

    assert vault.balance_of(accounts.alice) == 100 * USDC
    assert strategy.estimated_total_assets() == 100 * USDC
    assert usdc.balance_of(accounts.alice) == 0

    # The guard is released after the failed call.
    venue.armed = False
    vault.withdraw(40 * USDC, accounts.alice, accounts.alice, caller=accounts.alice)
    assert usdc.balance_of(accounts.alice) == 40 * USDC


def test_failed_token_pull_rolls_back_minted_shares(make_stack, usdc, accounts):
    stack = make_stack("aave")
    vault = stack.vault
    usdc.mint(accounts.alice, 100 * USDC)
    usdc.approve(vault.address, 50 * USDC, caller=accounts.alice)
    log_len = len(vault.chain.logs)

    with pytest.raises(InsufficientAllowanceError):
        vault.deposit(100 * USDC, accounts.alice, caller=accounts.alice)

    assert vault.total_supply() == 0
    assert vault.balance_of(accounts.alice) == 0
    assert vault.reward_snapshots == {}
    assert usdc.allowance(accounts.alice, vault.address) == 50 * USDC
    assert len(vault.chain.logs) == log_len
    assert not vault.chain.events(Deposit)
    assert not vault.chain.events(Transfer, contract=vault)


def test_venue_error_code_reverts_the_whole_deposit(make_stack, usdc, accounts, monkeypatch):
    stack = make_stack("moonwell")
    vault = stack.vault
    monkeypatch.setattr(stack.venue, "mint", lambda amount, *, caller: MTOKEN_INSUFFICIENT_CASH)
    usdc.mint(accounts.alice, 100 * USDC)
    usdc.approve(vault.address, 100 * USDC, caller=accounts.alice)

    with pytest.raises(VenueError, match="error code 14"):
        vault.deposit(100 * USDC, accounts.alice, caller=accounts.alice)

    assert usdc.balance_of(accounts.alice) == 100 * USDC
    assert usdc.balance_of(stack.strategy.address) == 0
    assert vault.total_supply() == 0
