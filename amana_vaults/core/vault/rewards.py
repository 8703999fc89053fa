"""Time-windowed reward campaign accrued per share.

Pull-based: nothing iterates over holders. A global reward-per-share
accumulator advances with time while a window is open, and each holder's owed
amount is materialised whenever their share balance is about to change or they
claim.

    elapsed = min(now, end) - max(last_accrual, start)          (clamped at 0)
    reward_per_share += elapsed * reward_rate // total_shares   (if shares exist)
    owed(holder) += shares * (reward_per_share - snapshot) // REWARD_PRECISION
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

from amana_vaults.core.chain.decorators import external, nonreentrant, require_initialized
from amana_vaults.core.chain.models import RewardPaid, RewardsIntervalSet, RewardTokenSet
from amana_vaults.core.constants.base import REWARD_PRECISION, ZERO_ADDRESS
from amana_vaults.core.errors import InvalidAmountError, RewardsError
from amana_vaults.core.utils.addresses import normalize_address, same_address

if TYPE_CHECKING:
    from amana_vaults.core.interfaces import ERC20


class RewardState(StrEnum):
    UNSET = "unset"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    ELAPSED = "elapsed"


class RewardsMixin:
    # Provided by the host contract.
    chain: Any
    label: str
    logger: Any
    balances: dict[str, int]

    def _init_rewards(self) -> None:
        self.reward_token: ERC20 | None = None
        self.reward_start = 0
        self.reward_end = 0
        self.reward_amount = 0
        # Reward tokens per second, scaled by REWARD_PRECISION.
        self.reward_rate = 0
        # Reward tokens per share, scaled by REWARD_PRECISION. Never decreases.
        self.reward_per_share = 0
        self.last_accrual = 0
        self.reward_snapshots: dict[str, int] = {}
        self.unclaimed_rewards: dict[str, int] = {}
        self.claimed_rewards: dict[str, int] = {}

    # ---------------------------
    # Views
    # ---------------------------

    def reward_state(self) -> RewardState:
        if self.reward_rate == 0:
            return RewardState.UNSET
        now = self.chain.timestamp
        if now < self.reward_start:
            return RewardState.SCHEDULED
        if now < self.reward_end:
            return RewardState.ACTIVE
        return RewardState.ELAPSED

    def _pending_reward_per_share(self) -> int:
        total = self.total_supply()
        if self.reward_rate == 0 or total == 0:
            return self.reward_per_share
        elapsed = min(self.chain.timestamp, self.reward_end) - max(self.last_accrual, self.reward_start)
        if elapsed <= 0:
            return self.reward_per_share
        return self.reward_per_share + elapsed * self.reward_rate // total

    def claimable_rewards(self, holder: str) -> int:
        holder = normalize_address(holder, field="holder")
        delta = self._pending_reward_per_share() - self.reward_snapshots.get(holder, 0)
        owed = self.balances.get(holder, 0) * delta // REWARD_PRECISION
        return self.unclaimed_rewards.get(holder, 0) + owed

    def outstanding_rewards(self) -> int:
        """Rewards earned by holders and not yet claimed, including unsettled accrual."""
        holders = set(self.balances) | set(self.unclaimed_rewards)
        holders.discard(ZERO_ADDRESS)
        return sum(self.claimable_rewards(holder) for holder in holders)

    # ---------------------------
    # Settlement
    # ---------------------------

    def _settle_rewards(self) -> None:
        updated = self._pending_reward_per_share()
        if updated != self.reward_per_share:
            self.logger.debug(
                f"Reward accumulator {self.reward_per_share} -> {updated} at {self.chain.timestamp}"
            )
        self.reward_per_share = updated
        self.last_accrual = self.chain.timestamp

    def _settle_holder(self, holder: str) -> None:
        if holder == ZERO_ADDRESS:
            return
        delta = self.reward_per_share - self.reward_snapshots.get(holder, 0)
        if delta:
            owed = self.balances.get(holder, 0) * delta // REWARD_PRECISION
            if owed:
                self.unclaimed_rewards[holder] = self.unclaimed_rewards.get(holder, 0) + owed
        self.reward_snapshots[holder] = self.reward_per_share

    def _update(self, sender: str, to: str, amount: int) -> None:
        # Snapshot accrual before any share balance or the supply moves.
        self._settle_rewards()
        self._settle_holder(sender)
        self._settle_holder(to)
        super()._update(sender, to, amount)

    # ---------------------------
    # Entry points
    # ---------------------------

    @external
    @require_initialized
    @nonreentrant
    def set_reward_token(self, token: ERC20, *, caller: str) -> None:
        self._only_owner(caller)
        token_address = normalize_address(token, field="reward token")
        if same_address(token_address, self.asset()):
            raise RewardsError("reward token must differ from the asset", contract=self.label)
        if self.reward_state() in (RewardState.SCHEDULED, RewardState.ACTIVE):
            raise RewardsError("cannot change reward token during a campaign", contract=self.label)
        outstanding = self.outstanding_rewards() if self.reward_token is not None else 0
        if outstanding > 0:
            raise RewardsError(
                f"{outstanding} reward tokens are still owed to holders; they must be claimed first",
                contract=self.label,
            )
        self.reward_token = token
        self.emit(RewardTokenSet, token=token_address)
        self.logger.info(f"Reward token set to {token_address}")

    @external
    @require_initialized
    @nonreentrant
    def set_rewards_interval(self, start: int, end: int, amount: int, *, caller: str) -> int:
        """Fund and open a campaign paying ``amount`` linearly over ``[start, end)``.

        Overwrites any existing window. Returns the scaled per-second rate.
        """
        self._only_owner(caller)
        owner = normalize_address(caller, field="caller")
        start, end, amount = int(start), int(end), int(amount)
        if self.reward_token is None:
            raise RewardsError("reward token not set", contract=self.label)
        if amount <= 0:
            raise InvalidAmountError("reward amount must be positive", contract=self.label)
        if end <= start:
            raise RewardsError(f"invalid window [{start}, {end})", contract=self.label)
        if start < self.chain.timestamp:
            raise RewardsError(
                f"window start {start} is before now ({self.chain.timestamp})",
                contract=self.label,
            )

        # Close out the previous window before its parameters are replaced.
        self._settle_rewards()

        self.reward_token.transfer_from(owner, self.address, amount, caller=self.address)
        self.reward_start = start
        self.reward_end = end
        self.reward_amount = amount
        self.reward_rate = amount * REWARD_PRECISION // (end - start)

        self.emit(
            RewardsIntervalSet,
            start=start,
            end=end,
            amount=amount,
            reward_rate=self.reward_rate,
        )
        self.logger.info(f"Reward campaign of {amount} over [{start}, {end}) configured")
        return self.reward_rate

    @external
    @require_initialized
    @nonreentrant
    def claim_rewards(self, recipient: str, *, caller: str) -> int:
        holder = normalize_address(caller, field="caller")
        recipient = normalize_address(recipient, field="recipient")

        self._settle_rewards()
        self._settle_holder(holder)
        amount = self.unclaimed_rewards.pop(holder, 0)
        if amount == 0:
            return 0

        self.claimed_rewards[holder] = self.claimed_rewards.get(holder, 0) + amount
        self.reward_token.transfer(recipient, amount, caller=self.address)
        self.emit(RewardPaid, holder=holder, recipient=recipient, amount=amount)
        self.logger.info(f"Paid {amount} reward tokens for {holder} to {recipient}")
        return amount
