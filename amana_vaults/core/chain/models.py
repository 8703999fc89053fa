from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class EventBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Filled in by the chain when the event is appended to the log.
    contract: str = "unknown"
    block_number: int = 0
    block_timestamp: int = 0
    log_index: int = 0


# ERC-20


class Transfer(EventBase):
    type: Literal["Transfer"] = "Transfer"
    from_address: str
    to_address: str
    value: int


class Approval(EventBase):
    type: Literal["Approval"] = "Approval"
    owner: str
    spender: str
    value: int


# Vault


class Initialized(EventBase):
    type: Literal["Initialized"] = "Initialized"
    owner: str
    asset: str
    fee_rate_bps: int
    fee_recipient: str


class Deposit(EventBase):
    type: Literal["Deposit"] = "Deposit"
    sender: str
    owner: str
    assets: int
    shares: int


class Withdraw(EventBase):
    type: Literal["Withdraw"] = "Withdraw"
    sender: str
    receiver: str
    owner: str
    assets_requested: int
    assets_received: int
    fee: int
    shares: int


class FeeCollected(EventBase):
    type: Literal["FeeCollected"] = "FeeCollected"
    recipient: str
    amount: int
    fee_rate_bps: int


class StrategyUpdated(EventBase):
    type: Literal["StrategyUpdated"] = "StrategyUpdated"
    old_strategy: str | None = None
    new_strategy: str


class OwnershipTransferred(EventBase):
    type: Literal["OwnershipTransferred"] = "OwnershipTransferred"
    previous_owner: str
    new_owner: str


class FeeRateUpdated(EventBase):
    type: Literal["FeeRateUpdated"] = "FeeRateUpdated"
    old_rate_bps: int
    new_rate_bps: int


class FeeRecipientUpdated(EventBase):
    type: Literal["FeeRecipientUpdated"] = "FeeRecipientUpdated"
    old_recipient: str
    new_recipient: str


# Rewards


class RewardTokenSet(EventBase):
    type: Literal["RewardTokenSet"] = "RewardTokenSet"
    token: str


class RewardsIntervalSet(EventBase):
    type: Literal["RewardsIntervalSet"] = "RewardsIntervalSet"
    start: int
    end: int
    amount: int
    reward_rate: int


class RewardPaid(EventBase):
    type: Literal["RewardPaid"] = "RewardPaid"
    holder: str
    recipient: str
    amount: int


# Strategy


class Invested(EventBase):
    type: Literal["Invested"] = "Invested"
    venue: str
    amount: int


class Divested(EventBase):
    type: Literal["Divested"] = "Divested"
    venue: str
    recipient: str
    requested: int
    received: int


Event = (
    Transfer
    | Approval
    | Initialized
    | Deposit
    | Withdraw
    | FeeCollected
    | StrategyUpdated
    | OwnershipTransferred
    | FeeRateUpdated
    | FeeRecipientUpdated
    | RewardTokenSet
    | RewardsIntervalSet
    | RewardPaid
    | Invested
    | Divested
)


class LogEntry(BaseModel):
    event: Annotated[Event, Field(discriminator="type")]
