#!/usr/bin/env python3

# Allow running as a script: `python amana_vaults/run_scenario.py ...`
if __name__ == "__main__" and __package__ is None:
    import sys
    from pathlib import Path

    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import argparse
import json
import sys
from decimal import Decimal
from pathlib import Path
from typing import Annotated, Any, Literal

from loguru import logger
from pydantic import BaseModel, Field

from amana_vaults.core.chain.Chain import Chain
from amana_vaults.core.config import get_log_level, load_config
from amana_vaults.core.errors import ExecutionReverted
from amana_vaults.core.utils.units import parse_erc20_funds, to_erc20_raw
from amana_vaults.sim.stack import VENUE_KINDS, VaultStack, deploy_stack
from amana_vaults.sim.tokens import MockERC20

OWNER = "owner"
TREASURY = "treasury"


class TokenSpec(BaseModel):
    name: str = "USD Coin"
    symbol: str = "USDC"
    decimals: int = 6


class VaultSpec(BaseModel):
    fee_rate_bps: int | None = None
    strict_strategy_migration: bool | None = None


class DepositStep(BaseModel):
    type: Literal["DEPOSIT"] = "DEPOSIT"
    account: str
    amount: Decimal
    receiver: str | None = None


class WithdrawStep(BaseModel):
    type: Literal["WITHDRAW"] = "WITHDRAW"
    account: str
    amount: Decimal | Literal["max"]
    receiver: str | None = None


class RedeemStep(BaseModel):
    type: Literal["REDEEM"] = "REDEEM"
    account: str
    shares: Decimal | Literal["max"] = "max"
    receiver: str | None = None


class AdvanceStep(BaseModel):
    type: Literal["ADVANCE"] = "ADVANCE"
    seconds: int = Field(ge=0)


class YieldStep(BaseModel):
    type: Literal["YIELD"] = "YIELD"
    amount: Decimal


class SetRewardsStep(BaseModel):
    type: Literal["SET_REWARDS"] = "SET_REWARDS"
    amount: Decimal
    duration: int = Field(gt=0)
    start_offset: int = Field(default=0, ge=0)


class ClaimStep(BaseModel):
    type: Literal["CLAIM"] = "CLAIM"
    account: str
    recipient: str | None = None


class SetLiquidityStep(BaseModel):
    type: Literal["SET_LIQUIDITY"] = "SET_LIQUIDITY"
    amount: Decimal


Step = Annotated[
    DepositStep
    | WithdrawStep
    | RedeemStep
    | AdvanceStep
    | YieldStep
    | SetRewardsStep
    | ClaimStep
    | SetLiquidityStep,
    Field(discriminator="type"),
]


class Scenario(BaseModel):
    venue: Literal["aave", "moonwell", "erc4626", "extra"] = "erc4626"
    apr: Decimal = Decimal(0)
    chain_id: int | str | None = None
    asset: TokenSpec = TokenSpec()
    reward_token: TokenSpec = TokenSpec(name="Amana", symbol="AMN", decimals=18)
    vault: VaultSpec = VaultSpec()
    # Account name -> starting asset balance in token units.
    accounts: dict[str, Decimal] = Field(default_factory=dict)
    steps: list[Step] = Field(default_factory=list)


def load_scenario(path: str | Path) -> Scenario:
    return Scenario.model_validate_json(Path(path).read_text())


class ScenarioRunner:
    def __init__(self, scenario: Scenario, *, funds: dict[str, int] | None = None):
        self.scenario = scenario
        self.chain = Chain(scenario.chain_id)
        self.asset = MockERC20(self.chain, **scenario.asset.model_dump())
        self.reward_token = MockERC20(self.chain, **scenario.reward_token.model_dump())

        self.addresses: dict[str, str] = {}
        for name in (OWNER, TREASURY, *scenario.accounts):
            self.address(name)

        self.stack: VaultStack = deploy_stack(
            self.chain,
            asset=self.asset,
            kind=scenario.venue,
            owner=self.address(OWNER),
            fee_recipient=self.address(TREASURY),
            fee_rate_bps=scenario.vault.fee_rate_bps,
            apr=scenario.apr,
            strict_strategy_migration=scenario.vault.strict_strategy_migration,
        )

        balances = {name: self.units(amount) for name, amount in scenario.accounts.items()}
        for name, raw in (funds or {}).items():
            balances[name] = balances.get(name, 0) + raw
        for name, raw in balances.items():
            if raw:
                self.asset.mint(self.address(name), raw)

    @property
    def vault(self):
        return self.stack.vault

    def address(self, name: str) -> str:
        if name not in self.addresses:
            self.addresses[name] = self.chain.allocate_address(f"account:{name}")
        return self.addresses[name]

    def units(self, amount: Decimal) -> int:
        return to_erc20_raw(amount, self.asset.decimals)

    # ---------------------------
    # Steps
    # ---------------------------

    def apply(self, step: Step) -> Any:
        match step:
            case DepositStep():
                account = self.address(step.account)
                amount = self.units(step.amount)
                self.asset.approve(self.vault.address, amount, caller=account)
                return self.vault.deposit(amount, self.address(step.receiver or step.account), caller=account)
            case WithdrawStep():
                account = self.address(step.account)
                amount = self.vault.max_withdraw(account) if step.amount == "max" else self.units(step.amount)
                return self.vault.withdraw(amount, self.address(step.receiver or step.account), account, caller=account)
            case RedeemStep():
                account = self.address(step.account)
                shares = (
                    self.vault.max_redeem(account)
                    if step.shares == "max"
                    else to_erc20_raw(step.shares, self.vault.decimals)
                )
                return self.vault.redeem(shares, self.address(step.receiver or step.account), account, caller=account)
            case AdvanceStep():
                return self.chain.advance(step.seconds)
            case YieldStep():
                return self.stack.venue.donate_yield(self.units(step.amount))
            case SetRewardsStep():
                return self._set_rewards(step)
            case ClaimStep():
                account = self.address(step.account)
                return self.vault.claim_rewards(self.address(step.recipient or step.account), caller=account)
            case SetLiquidityStep():
                return self.stack.venue.set_available_liquidity(self.units(step.amount))
        raise ValueError(f"Unknown step: {step!r}")

    def _set_rewards(self, step: SetRewardsStep) -> int:
        owner = self.address(OWNER)
        amount = to_erc20_raw(step.amount, self.reward_token.decimals)
        if self.vault.reward_token is None:
            self.vault.set_reward_token(self.reward_token, caller=owner)
        self.reward_token.mint(owner, amount)
        self.reward_token.approve(self.vault.address, amount, caller=owner)
        start = self.chain.timestamp + step.start_offset
        return self.vault.set_rewards_interval(start, start + step.duration, amount, caller=owner)

    def run(self) -> dict[str, Any]:
        results: list[dict[str, Any]] = []
        for index, step in enumerate(self.scenario.steps):
            try:
                result = self.apply(step)
            except ExecutionReverted as exc:
                logger.warning(f"Step {index} ({step.type}) reverted: {exc}")
                results.append({"step": index, "type": step.type, "ok": False, "error": str(exc)})
                continue
            logger.info(f"Step {index} ({step.type}) -> {result}")
            results.append({"step": index, "type": step.type, "ok": True, "result": result})
        return {**self.summary(), "steps": results}

    def summary(self) -> dict[str, Any]:
        vault = self.vault
        accounts = {}
        for name, address in self.addresses.items():
            shares = vault.balance_of(address)
            accounts[name] = {
                "address": address,
                "shares": shares,
                "assets": vault.convert_to_assets(shares),
                "asset_balance": self.asset.balance_of(address),
                "claimable_rewards": vault.claimable_rewards(address),
                "reward_balance": self.reward_token.balance_of(address),
            }
        return {
            "venue": self.scenario.venue,
            "chain_id": self.chain.chain_id,
            "timestamp": self.chain.timestamp,
            "vault": vault.describe(),
            "strategy": self.stack.strategy.status(),
            "accounts": accounts,
            "events": len(self.chain.logs),
        }


def run_scenario(scenario: Scenario, *, funds: dict[str, int] | None = None) -> dict[str, Any]:
    return ScenarioRunner(scenario, funds=funds).run()


def main():
    p = argparse.ArgumentParser(description="Replay a vault scenario against a simulated venue.")
    p.add_argument("scenario", help="Path to a scenario JSON file")
    p.add_argument(
        "--venue",
        default=None,
        choices=list(VENUE_KINDS),
        help="Override the scenario's venue kind",
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to config JSON (default: config.json at the project root)",
    )
    p.add_argument(
        "--fund",
        action="append",
        default=[],
        help="Extra starting balance as ACCOUNT:AMOUNT (AMOUNT in tokens).",
    )
    p.add_argument("--debug", action="store_true")
    args = p.parse_args()

    try:
        load_config(args.config, require_exists=bool(args.config))
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.debug else get_log_level())

    scenario = load_scenario(args.scenario)
    if args.venue:
        scenario = scenario.model_copy(update={"venue": args.venue})
    funds = parse_erc20_funds(args.fund, scenario.asset.decimals)

    result = run_scenario(scenario, funds=funds)
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
