import pytest

from amana_vaults.core.constants.base import MANTISSA, SECONDS_PER_YEAR
from amana_vaults.core.errors import VenueError
from amana_vaults.core.vault import Vault
from amana_vaults.strategies.extra_strategy.strategy import ExtraStrategy
from amana_vaults.sim.venues import SimulatedExtraLendingPool
from amana_vaults.tests.test_utils import assert_strategy_status

USDC = 10**6


@pytest.fixture
def vault(chain, usdc, accounts):
    return Vault.deploy(chain, asset=usdc, owner=accounts.owner)


@pytest.fixture
def pool(chain, usdc):
    return SimulatedExtraLendingPool(chain, asset=usdc, apr="0.10")


@pytest.fixture
def strategy(chain, usdc, vault, pool):
    return ExtraStrategy(chain, vault=vault.address, asset=usdc, pool=pool, reserve_id=pool.default_reserve_id)


def invest(usdc, strategy, vault, amount):
    usdc.mint(strategy.address, amount)
    return strategy.invest(amount, caller=vault.address)


def test_unknown_reserve_is_rejected(chain, usdc, vault, pool):
    with pytest.raises(VenueError):
        ExtraStrategy(chain, vault=vault.address, asset=usdc, pool=pool, reserve_id=99)


def test_position_grows_with_exchange_rate(chain, strategy, pool, usdc, vault):
    invest(usdc, strategy, vault, 1_000 * USDC)
    assert strategy.receipt_balance() == 1_000 * USDC

    chain.advance(SECONDS_PER_YEAR)

    assert pool.exchange_rate_of_reserve(strategy.reserve_id) == MANTISSA * 11 // 10
    assert strategy.estimated_total_assets() == 1_100 * USDC
    assert_strategy_status(strategy.status())

    received = strategy.divest(1_100 * USDC, vault.address, caller=vault.address)
    assert received == 1_100 * USDC
    assert strategy.e_token.balance_of(strategy.address) == 0


def test_partial_divest_burns_rounded_up_etokens(chain, strategy, pool, usdc, vault):
    invest(usdc, strategy, vault, 999 * USDC)
    pool.set_apr(0)
    pool.donate_yield(333 * USDC)

    received = strategy.divest(100 * USDC, vault.address, caller=vault.address)

    assert received >= 100 * USDC
    assert received - 100 * USDC <= 2
    assert strategy.estimated_total_assets() >= 1_232 * USDC - 2


def test_divest_is_clamped_to_reserve_cash(strategy, pool, usdc, vault):
    invest(usdc, strategy, vault, 1_000 * USDC)
    pool.set_apr(0)
    pool.set_available_liquidity(120 * USDC)

    received = strategy.divest(1_000 * USDC, vault.address, caller=vault.address)

    assert received == 120 * USDC
    assert strategy.estimated_total_assets() == 880 * USDC


def test_native_unwrap_is_not_supported(strategy, pool, usdc, vault):
    invest(usdc, strategy, vault, 10 * USDC)

    with pytest.raises(VenueError):
        pool.redeem(strategy.reserve_id, 1, strategy.address, True, caller=strategy.address)
