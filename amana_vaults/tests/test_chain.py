import pytest
from eth_utils import is_checksum_address

from amana_vaults.core.chain import Chain
from amana_vaults.core.chain.models import LogEntry, Transfer
from amana_vaults.core.constants.chains import CHAIN_ID_BASE, CHAIN_ID_ZETACHAIN
from amana_vaults.core.errors import InsufficientBalanceError, InvalidAddressError
from amana_vaults.sim.tokens import MockERC20


def test_addresses_are_deterministic_per_chain():
    a = Chain("base", timestamp=0)
    b = Chain(CHAIN_ID_BASE, timestamp=0)
    z = Chain("zetachain", timestamp=0)

    first = a.allocate_address("token")
    assert is_checksum_address(first)
    assert first == b.allocate_address("token")
    assert first != z.allocate_address("token")
    assert first != a.allocate_address("token")
    assert z.chain_id == CHAIN_ID_ZETACHAIN


def test_unknown_chain_is_rejected():
    with pytest.raises(ValueError):
        Chain("not-a-chain")


def test_clock_only_moves_forward(chain):
    start = chain.timestamp
    assert chain.advance(60) == start + 60
    assert chain.warp(start + 120) == start + 120
    with pytest.raises(ValueError):
        chain.advance(-1)
    with pytest.raises(ValueError):
        chain.warp(start)


def test_events_are_stamped_and_filterable(chain, usdc, accounts):
    other = MockERC20(chain, name="Other", symbol="OTH", decimals=18)
    chain.advance(12)
    usdc.mint(accounts.alice, 5)
    other.mint(accounts.bob, 7)

    transfers = chain.events(Transfer)
    assert [t.value for t in transfers] == [5, 7]
    (usdc_transfer,) = chain.events(Transfer, contract=usdc)
    assert usdc_transfer.block_timestamp == chain.timestamp
    assert usdc_transfer.log_index == 0
    assert chain.events(Transfer, contract=other.address)[0].log_index == 1

    entry = LogEntry.model_validate({"event": usdc_transfer.model_dump()})
    assert entry.event == usdc_transfer


def test_failed_transaction_restores_state(chain, usdc, accounts):
    usdc.mint(accounts.alice, 10)

    with pytest.raises(InsufficientBalanceError):
        with chain.transaction():
            usdc.transfer(accounts.bob, 4, caller=accounts.alice)
            usdc.transfer(accounts.bob, 100, caller=accounts.alice)

    assert usdc.balance_of(accounts.alice) == 10
    assert usdc.balance_of(accounts.bob) == 0
    assert len(chain.events(Transfer)) == 1
    assert not chain.in_transaction


def test_contracts_created_in_a_reverted_transaction_are_dropped(chain):
    before = dict(chain.contracts)

    with pytest.raises(RuntimeError):
        with chain.transaction():
            MockERC20(chain, symbol="TMP")
            raise RuntimeError("boom")

    assert chain.contracts == before


def test_snapshot_and_revert(chain, usdc, accounts):
    usdc.mint(accounts.alice, 10)
    snap = chain.snapshot()

    chain.advance(100)
    usdc.transfer(accounts.bob, 10, caller=accounts.alice)
    chain.revert_to(snap)

    assert usdc.balance_of(accounts.alice) == 10
    assert chain.timestamp == snap["timestamp"]

    # The same snapshot can be reverted to again.
    usdc.transfer(accounts.bob, 3, caller=accounts.alice)
    chain.revert_to(snap)
    assert usdc.balance_of(accounts.bob) == 0


def test_erc20_allowance_flow(usdc, accounts):
    usdc.mint(accounts.alice, 100)
    usdc.approve(accounts.bob, 2**256 - 1, caller=accounts.alice)

    usdc.transfer_from(accounts.alice, accounts.carol, 60, caller=accounts.bob)

    assert usdc.balance_of(accounts.carol) == 60
    assert usdc.allowance(accounts.alice, accounts.bob) == 2**256 - 1
    with pytest.raises(InvalidAddressError):
        usdc.transfer("0x123", 1, caller=accounts.alice)
