import pytest

from amana_vaults.core.chain.models import RewardPaid, RewardsIntervalSet
from amana_vaults.core.errors import (
    InsufficientAllowanceError,
    InvalidAmountError,
    RewardsError,
    UnauthorizedError,
)
from amana_vaults.core.vault import RewardState
from amana_vaults.tests.test_utils import deposit

USDC = 10**6
AMN = 10**18
DURATION = 10_000
REWARD = 1_000 * AMN


@pytest.fixture
def vault_stack(make_stack):
    return make_stack("erc4626")


@pytest.fixture
def campaign(chain, vault_stack, reward_token, accounts):
    """Return a callable opening a reward window starting ``offset`` seconds from now."""
    vault = vault_stack.vault
    vault.set_reward_token(reward_token, caller=accounts.owner)

    def _open(offset=0, duration=DURATION, amount=REWARD):
        reward_token.mint(accounts.owner, amount)
        reward_token.approve(vault.address, amount, caller=accounts.owner)
        start = chain.timestamp + offset
        vault.set_rewards_interval(start, start + duration, amount, caller=accounts.owner)
        return start

    return _open


def test_reward_state_machine(chain, vault_stack, campaign):
    vault = vault_stack.vault
    assert vault.reward_state() == RewardState.UNSET

    start = campaign(offset=100)
    assert vault.reward_state() == RewardState.SCHEDULED

    chain.warp(start)
    assert vault.reward_state() == RewardState.ACTIVE

    chain.warp(start + DURATION - 1)
    assert vault.reward_state() == RewardState.ACTIVE

    chain.warp(start + DURATION)
    assert vault.reward_state() == RewardState.ELAPSED


def test_set_rewards_interval_pulls_funding(vault_stack, reward_token, campaign, accounts):
    vault = vault_stack.vault
    campaign()

    assert reward_token.balance_of(vault.address) == REWARD
    assert reward_token.balance_of(accounts.owner) == 0
    assert vault.reward_rate == REWARD * 10**18 // DURATION

    (event,) = vault.chain.events(RewardsIntervalSet, contract=vault)
    assert event.amount == REWARD
    assert event.end - event.start == DURATION


def test_half_window_accrues_half_the_rewards(chain, vault_stack, usdc, campaign, accounts):
    vault = vault_stack.vault
    deposit(vault, usdc, accounts.alice, 1_000 * USDC)
    start = campaign(offset=50)

    chain.warp(start + DURATION // 2)

    assert vault.claimable_rewards(accounts.alice) == REWARD // 2


def test_claim_transfers_and_resets(chain, vault_stack, usdc, reward_token, campaign, accounts):
    vault = vault_stack.vault
    deposit(vault, usdc, accounts.alice, 1_000 * USDC)
    start = campaign()
    chain.warp(start + DURATION // 4)

    paid = vault.claim_rewards(accounts.carol, caller=accounts.alice)

    assert paid == REWARD // 4
    assert reward_token.balance_of(accounts.carol) == REWARD // 4
    assert vault.claimable_rewards(accounts.alice) == 0
    assert vault.claimed_rewards[accounts.alice] == REWARD // 4

    (event,) = vault.chain.events(RewardPaid, contract=vault)
    assert event.holder == accounts.alice
    assert event.recipient == accounts.carol

    # Nothing new has accrued in the same block.
    assert vault.claim_rewards(accounts.alice, caller=accounts.alice) == 0
    assert len(vault.chain.events(RewardPaid)) == 1


def test_claim_without_rewards_is_a_noop(vault_stack, campaign, accounts):
    vault = vault_stack.vault
    campaign()

    assert vault.claim_rewards(accounts.bob, caller=accounts.bob) == 0
    assert not vault.chain.events(RewardPaid)


def test_accumulator_is_monotonic_and_frozen_after_end(chain, vault_stack, usdc, campaign, accounts):
    vault = vault_stack.vault
    deposit(vault, usdc, accounts.alice, 1_000 * USDC)
    start = campaign(offset=10)

    seen = [vault.reward_per_share]
    for t in (start - 5, start + 1, start + 2_500, start + 5_000, start + DURATION, start + 2 * DURATION):
        chain.warp(t)
        vault.claim_rewards(accounts.alice, caller=accounts.alice)
        seen.append(vault.reward_per_share)
        if t == start + 2_500:
            deposit(vault, usdc, accounts.bob, 250 * USDC)
            seen.append(vault.reward_per_share)

    assert seen == sorted(seen)
    assert seen[-1] == seen[-2]

    chain.advance(10 * DURATION)
    assert vault.claimable_rewards(accounts.alice) == 0
    assert vault.reward_state() == RewardState.ELAPSED


def test_late_depositor_earns_only_after_joining(chain, vault_stack, usdc, campaign, accounts):
    vault = vault_stack.vault
    deposit(vault, usdc, accounts.alice, 1_000 * USDC)
    start = campaign()

    chain.warp(start + DURATION // 2)
    deposit(vault, usdc, accounts.bob, 1_000 * USDC)
    chain.warp(start + DURATION)

    assert vault.claimable_rewards(accounts.alice) == REWARD * 3 // 4
    assert vault.claimable_rewards(accounts.bob) == REWARD // 4


def test_withdrawal_settles_before_burning(chain, vault_stack, usdc, campaign, accounts):
    vault = vault_stack.vault
    deposit(vault, usdc, accounts.alice, 1_000 * USDC)
    deposit(vault, usdc, accounts.bob, 1_000 * USDC)
    start = campaign()

    chain.warp(start + DURATION // 2)
    vault.redeem(vault.balance_of(accounts.alice), accounts.alice, accounts.alice, caller=accounts.alice)
    chain.warp(start + DURATION)

    # Alice keeps what she earned while holding; Bob gets the whole second half.
    assert vault.claimable_rewards(accounts.alice) == REWARD // 4
    assert vault.claimable_rewards(accounts.bob) == REWARD * 3 // 4


def test_share_transfer_moves_future_rewards_only(chain, vault_stack, usdc, campaign, accounts):
    vault = vault_stack.vault
    deposit(vault, usdc, accounts.alice, 1_000 * USDC)
    start = campaign()

    chain.warp(start + DURATION // 2)
    vault.transfer(accounts.carol, 1_000 * USDC, caller=accounts.alice)
    chain.warp(start + DURATION)

    assert vault.claimable_rewards(accounts.alice) == REWARD // 2
    assert vault.claimable_rewards(accounts.carol) == REWARD // 2


def test_rewards_with_no_shares_outstanding_are_not_distributed(chain, vault_stack, usdc, campaign, accounts):
    vault = vault_stack.vault
    start = campaign()

    chain.warp(start + DURATION // 2)
    deposit(vault, usdc, accounts.alice, 1_000 * USDC)
    chain.warp(start + DURATION)

    assert vault.claimable_rewards(accounts.alice) == REWARD // 2


def test_overwriting_window_keeps_accrued_rewards(chain, vault_stack, usdc, campaign, accounts):
    vault = vault_stack.vault
    deposit(vault, usdc, accounts.alice, 1_000 * USDC)
    start = campaign()

    chain.warp(start + DURATION // 2)
    second_start = campaign(duration=DURATION, amount=REWARD)

    chain.warp(second_start + DURATION)
    assert vault.claimable_rewards(accounts.alice) == REWARD // 2 + REWARD


def test_reward_token_must_differ_from_asset(vault_stack, usdc, accounts):
    with pytest.raises(RewardsError):
        vault_stack.vault.set_reward_token(usdc, caller=accounts.owner)


def test_reward_token_locked_during_campaign(chain, vault_stack, reward_token, campaign, accounts):
    from amana_vaults.sim.tokens import MockERC20

    vault = vault_stack.vault
    other = MockERC20(chain, name="Other", symbol="OTH", decimals=18)
    start = campaign(offset=10)

    with pytest.raises(RewardsError):
        vault.set_reward_token(other, caller=accounts.owner)
    chain.warp(start + 1)
    with pytest.raises(RewardsError):
        vault.set_reward_token(other, caller=accounts.owner)

    chain.warp(start + DURATION)
    vault.set_reward_token(other, caller=accounts.owner)
    assert vault.reward_token is other


def test_reward_token_swap_waits_for_owed_rewards(chain, vault_stack, usdc, reward_token, campaign, accounts):
    from amana_vaults.sim.tokens import MockERC20

    vault = vault_stack.vault
    other = MockERC20(chain, name="Other", symbol="OTH", decimals=18)
    deposit(vault, usdc, accounts.alice, 1_000 * USDC)
    start = campaign()
    chain.warp(start + DURATION)
    assert vault.outstanding_rewards() == REWARD

    with pytest.raises(RewardsError, match="still owed"):
        vault.set_reward_token(other, caller=accounts.owner)
    assert vault.reward_token is reward_token

    assert vault.claim_rewards(accounts.alice, caller=accounts.alice) == REWARD
    assert reward_token.balance_of(accounts.alice) == REWARD
    assert vault.outstanding_rewards() == 0

    vault.set_reward_token(other, caller=accounts.owner)
    assert vault.reward_token is other


def test_set_rewards_interval_validation(chain, vault_stack, reward_token, accounts):
    vault = vault_stack.vault
    now = chain.timestamp

    with pytest.raises(RewardsError, match="reward token not set"):
        vault.set_rewards_interval(now, now + 10, REWARD, caller=accounts.owner)

    vault.set_reward_token(reward_token, caller=accounts.owner)
    with pytest.raises(UnauthorizedError):
        vault.set_rewards_interval(now, now + 10, REWARD, caller=accounts.alice)
    with pytest.raises(InvalidAmountError):
        vault.set_rewards_interval(now, now + 10, 0, caller=accounts.owner)
    with pytest.raises(RewardsError):
        vault.set_rewards_interval(now + 10, now + 10, REWARD, caller=accounts.owner)

    chain.advance(100)
    with pytest.raises(RewardsError):
        vault.set_rewards_interval(now, now + 1_000, REWARD, caller=accounts.owner)

    # Unfunded campaigns are rejected by the token pull.
    with pytest.raises(InsufficientAllowanceError):
        vault.set_rewards_interval(chain.timestamp, chain.timestamp + 10, REWARD, caller=accounts.owner)
    assert vault.reward_state() == RewardState.UNSET
