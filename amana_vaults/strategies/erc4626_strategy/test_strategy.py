import pytest

from amana_vaults.core.errors import InvalidConfigurationError
from amana_vaults.core.vault import Vault
from amana_vaults.strategies.erc4626_strategy.strategy import ERC4626Strategy
from amana_vaults.sim.tokens import MockERC20
from amana_vaults.sim.venues import SimulatedERC4626Vault
from amana_vaults.tests.test_utils import assert_strategy_status

USDC = 10**6


@pytest.fixture
def vault(chain, usdc, accounts):
    return Vault.deploy(chain, asset=usdc, owner=accounts.owner)


@pytest.fixture
def target(chain, usdc):
    return SimulatedERC4626Vault(chain, asset=usdc)


@pytest.fixture
def strategy(chain, usdc, vault, target):
    return ERC4626Strategy(chain, vault=vault.address, asset=usdc, target=target)


def invest(usdc, strategy, vault, amount):
    usdc.mint(strategy.address, amount)
    return strategy.invest(amount, caller=vault.address)


def test_rejects_target_with_other_asset(chain, usdc, vault):
    dai = MockERC20(chain, name="Dai", symbol="DAI", decimals=18)
    target = SimulatedERC4626Vault(chain, asset=dai)

    with pytest.raises(InvalidConfigurationError):
        ERC4626Strategy(chain, vault=vault.address, asset=usdc, target=target)


def test_position_follows_convert_to_assets(strategy, target, usdc, vault, accounts):
    invest(usdc, strategy, vault, 1_000 * USDC)
    # Another depositor shares the target vault.
    usdc.mint(accounts.alice, 1_000 * USDC)
    usdc.approve(target.address, 1_000 * USDC, caller=accounts.alice)
    target.deposit(1_000 * USDC, accounts.alice, caller=accounts.alice)

    target.donate_yield(200 * USDC)

    assert strategy.receipt_balance() == 1_000 * USDC
    assert strategy.estimated_total_assets() == 1_100 * USDC
    assert_strategy_status(strategy.status())


def test_full_exit_redeems_all_shares(strategy, target, usdc, vault):
    invest(usdc, strategy, vault, 1_000 * USDC)
    target.donate_yield(7)

    received = strategy.divest(10_000 * USDC, vault.address, caller=vault.address)

    assert received == 1_000 * USDC + 7
    assert target.balance_of(strategy.address) == 0


def test_divest_is_clamped_to_max_withdraw(strategy, target, usdc, vault):
    invest(usdc, strategy, vault, 1_000 * USDC)
    target.set_available_liquidity(600 * USDC)
    assert target.max_withdraw(strategy.address) == 600 * USDC

    received = strategy.divest(800 * USDC, vault.address, caller=vault.address)

    assert received == 600 * USDC
    assert strategy.estimated_total_assets() == 400 * USDC
